from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy import desc, select
from sqlalchemy.orm import Session

from ..auth import Principal, get_principal
from ..db import get_db
from ..domain.audit import loads
from ..models import AuditEvent
from ..schemas import AuditEventOut
from ..services.tenancy import PageParams, page_params, paginate

router = APIRouter(prefix="/audit", tags=["audit"])


def _event_out(row: AuditEvent) -> dict:
    return AuditEventOut(
        id=row.id,
        agency_id=row.agency_id,
        actor_user_id=row.actor_user_id,
        action=row.action,
        entity_type=row.entity_type,
        entity_id=row.entity_id,
        before=loads(row.before_json),
        after=loads(row.after_json),
        created_at=row.created_at,
    ).model_dump(mode="json")


@router.get("", response_model=dict)
def list_audit(
    entity_type: Optional[str] = Query(default=None),
    entity_id: Optional[str] = Query(default=None),
    agency_id: Optional[int] = Query(default=None),
    params: PageParams = Depends(page_params),
    db: Session = Depends(get_db),
    p: Principal = Depends(get_principal),
):
    q = select(AuditEvent)
    if p.is_super_admin:
        if agency_id is not None:
            q = q.where(AuditEvent.agency_id == int(agency_id))
    elif p.is_agency_admin:
        q = q.where(AuditEvent.agency_id == p.agency_id)
    else:
        q = q.where(AuditEvent.actor_user_id == p.user_id)

    if entity_type:
        q = q.where(AuditEvent.entity_type == entity_type)
    if entity_id:
        q = q.where(AuditEvent.entity_id == entity_id)
    return paginate(db, q, params, order_by=(desc(AuditEvent.id),), serialize=_event_out)
