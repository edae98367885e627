# backend/app/routers/agencies.py
from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from ..auth import Principal, get_principal
from ..db import get_db
from ..schemas import AgencyCreate, AgencyOut, AgencyUpdate
from ..services import accounts
from ..services.tenancy import PageParams, page_params

router = APIRouter(prefix="/agencies", tags=["agencies"])


def agency_out(row) -> dict:
    return AgencyOut.model_validate(row, from_attributes=True).model_dump(mode="json")


@router.get("", response_model=dict)
def list_agencies(
    search: Optional[str] = None,
    active: Optional[bool] = None,
    params: PageParams = Depends(page_params),
    db: Session = Depends(get_db),
    p: Principal = Depends(get_principal),
):
    return accounts.list_agencies(db, p, params, search=search, active=active, serialize=agency_out)


@router.post("", response_model=dict, status_code=201)
def create_agency(payload: AgencyCreate, db: Session = Depends(get_db), p: Principal = Depends(get_principal)):
    row = accounts.create_agency(db, p, payload.model_dump())
    return {"agency": agency_out(row), "message": "Agency created"}


@router.get("/{agency_id}", response_model=dict)
def get_agency(agency_id: int, db: Session = Depends(get_db), p: Principal = Depends(get_principal)):
    return {"agency": agency_out(accounts.get_agency(db, p, agency_id))}


@router.put("/{agency_id}", response_model=dict)
def update_agency(agency_id: int, payload: AgencyUpdate, db: Session = Depends(get_db), p: Principal = Depends(get_principal)):
    row = accounts.update_agency(db, p, agency_id, payload.model_dump(exclude_unset=True))
    return {"agency": agency_out(row), "message": "Agency updated"}


@router.delete("/{agency_id}", response_model=dict)
def delete_agency(agency_id: int, db: Session = Depends(get_db), p: Principal = Depends(get_principal)):
    deleted = accounts.delete_agency(db, p, agency_id)
    return {"ok": True, "deleted": deleted, "message": "Agency deleted"}
