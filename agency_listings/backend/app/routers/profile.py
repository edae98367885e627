# backend/app/routers/profile.py
from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from ..auth import Principal, get_principal
from ..db import get_db
from ..domain.permissions import require_role
from ..enums import Role
from ..schemas import AgencyContactUpdate, AgencyOut, ProfileUpdate, UserOut
from ..services import accounts

router = APIRouter(prefix="/profile", tags=["profile"])


def _profile(row) -> dict:
    out = UserOut.model_validate(row, from_attributes=True).model_dump(mode="json")
    out["agency"] = AgencyOut.model_validate(row.agency, from_attributes=True).model_dump(mode="json") if row.agency else None
    return out


@router.get("", response_model=dict)
def get_profile(db: Session = Depends(get_db), p: Principal = Depends(get_principal)):
    return {"user": _profile(accounts.get_profile(db, p))}


@router.put("", response_model=dict)
def update_profile(payload: ProfileUpdate, db: Session = Depends(get_db), p: Principal = Depends(get_principal)):
    row = accounts.update_profile(db, p, payload.model_dump(exclude_unset=True))
    return {"user": _profile(row), "message": "Profile updated"}


@router.get("/agency", response_model=dict)
def get_own_agency(db: Session = Depends(get_db), p: Principal = Depends(get_principal)):
    require_role(p, Role.AGENCY_ADMIN)
    row = accounts.must_get_agency(db, p.agency_id)
    return {"agency": AgencyOut.model_validate(row, from_attributes=True).model_dump(mode="json")}


@router.put("/agency", response_model=dict)
def update_own_agency(payload: AgencyContactUpdate, db: Session = Depends(get_db), p: Principal = Depends(get_principal)):
    row = accounts.update_own_agency(db, p, payload.model_dump(exclude_unset=True))
    return {"agency": AgencyOut.model_validate(row, from_attributes=True).model_dump(mode="json"), "message": "Agency updated"}
