# backend/app/routers/metrics.py
from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends
from sqlalchemy import func, select
from sqlalchemy.orm import Session

from ..auth import Principal, get_principal
from ..db import get_db
from ..models import Agency, Project, Property, User
from ..schemas import MetricsOut
from ..services.catalog import status_counts
from ..services.tenancy import scope_listings

router = APIRouter(prefix="/metrics", tags=["metrics"])


@router.get("", response_model=MetricsOut)
def metrics(
    agency_id: Optional[int] = None,
    db: Session = Depends(get_db),
    p: Principal = Depends(get_principal),
):
    """Listing counts by status over whatever the caller is allowed to see."""
    if p.is_super_admin:
        scope = "platform" if agency_id is None else "agency"
        effective_agency = agency_id
    elif p.is_agency_admin:
        scope, effective_agency = "agency", p.agency_id
    else:
        scope, effective_agency = "own", p.agency_id

    out = MetricsOut(
        scope=scope,
        agency_id=effective_agency,
        properties=status_counts(db, Property, p, agency_id),
        projects=status_counts(db, Project, p, agency_id),
    )

    if p.is_super_admin:
        users = select(func.count()).select_from(User)
        if agency_id is not None:
            users = users.where(User.agency_id == int(agency_id))
        out.users = int(db.scalar(users) or 0)
        out.agencies = int(db.scalar(select(func.count()).select_from(Agency)) or 0)
    elif p.is_agency_admin:
        out.users = int(db.scalar(select(func.count()).select_from(User).where(User.agency_id == p.agency_id)) or 0)

    return out
