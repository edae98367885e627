# backend/app/routers/users.py
from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from ..auth import Principal, get_principal
from ..db import get_db
from ..enums import Role
from ..schemas import UserAssetsOut, UserCreate, UserOut, UserUpdate
from ..services import accounts
from ..services.tenancy import PageParams, page_params

router = APIRouter(prefix="/users", tags=["users"])


def user_out(row) -> dict:
    return UserOut.model_validate(row, from_attributes=True).model_dump(mode="json")


@router.get("", response_model=dict)
def list_users(
    agency_id: Optional[int] = None,
    role: Optional[Role] = None,
    active: Optional[bool] = None,
    search: Optional[str] = None,
    params: PageParams = Depends(page_params),
    db: Session = Depends(get_db),
    p: Principal = Depends(get_principal),
):
    return accounts.list_users(
        db,
        p,
        params,
        agency_id=agency_id,
        role=role.value if role else None,
        active=active,
        search=search,
        serialize=user_out,
    )


@router.post("", response_model=dict, status_code=201)
def create_user(payload: UserCreate, db: Session = Depends(get_db), p: Principal = Depends(get_principal)):
    row = accounts.create_user(db, p, payload.model_dump(mode="json"))
    return {"user": user_out(row), "message": "User created"}


@router.get("/{user_id}", response_model=dict)
def get_user(user_id: int, db: Session = Depends(get_db), p: Principal = Depends(get_principal)):
    return {"user": user_out(accounts.get_user(db, p, user_id))}


@router.put("/{user_id}", response_model=dict)
def update_user(user_id: int, payload: UserUpdate, db: Session = Depends(get_db), p: Principal = Depends(get_principal)):
    row = accounts.update_user(db, p, user_id, payload.model_dump(mode="json", exclude_unset=True))
    return {"user": user_out(row), "message": "User updated"}


@router.delete("/{user_id}", response_model=dict)
def delete_user(user_id: int, db: Session = Depends(get_db), p: Principal = Depends(get_principal)):
    accounts.delete_user(db, p, user_id)
    return {"ok": True, "message": "User deleted"}


@router.get("/{user_id}/assets", response_model=UserAssetsOut)
def user_assets(user_id: int, db: Session = Depends(get_db), p: Principal = Depends(get_principal)):
    return accounts.user_assets(db, p, user_id)
