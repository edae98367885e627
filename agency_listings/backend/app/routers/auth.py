# backend/app/routers/auth.py
from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends

from ..auth import Principal, get_optional_principal, get_principal
from ..schemas import PrincipalOut

router = APIRouter(prefix="/auth", tags=["auth"])


def _principal_out(p: Principal) -> PrincipalOut:
    return PrincipalOut(
        user_id=p.user_id,
        external_auth_id=p.external_auth_id,
        email=p.email,
        role=p.role,
        agency_id=p.agency_id,
        active=p.active,
    )


@router.get("/me", response_model=PrincipalOut)
def me(p: Principal = Depends(get_principal)):
    return _principal_out(p)


@router.get("/session", response_model=dict)
def session(p: Optional[Principal] = Depends(get_optional_principal)):
    """Lets a client ask "am I signed in?" without treating anonymous as an error."""
    if p is None:
        return {"authenticated": False, "principal": None}
    return {"authenticated": True, "principal": _principal_out(p).model_dump()}
