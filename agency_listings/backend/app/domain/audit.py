# backend/app/domain/audit.py
from __future__ import annotations

import json
from datetime import datetime
from typing import Any, Iterable, Optional

from sqlalchemy import inspect
from sqlalchemy.orm import Session

from ..models import AuditEvent

# Columns never worth diffing in the trail.
_SKIP = {"created_at", "updated_at"}


def _dumps(v: Optional[dict[str, Any]]) -> Optional[str]:
    if v is None:
        return None
    return json.dumps(v, sort_keys=True, default=str)


def snapshot(row: Any, *, only: Optional[Iterable[str]] = None) -> dict[str, Any]:
    """Column values of a mapped row as a plain dict (relationships excluded)."""
    mapper = inspect(row).mapper
    keys = list(only) if only is not None else [c.key for c in mapper.column_attrs]
    return {k: getattr(row, k) for k in keys if k not in _SKIP}


def audit_write(
    db: Session,
    *,
    agency_id: Optional[int],
    actor_user_id: Optional[int],
    action: str,
    entity_type: str,
    entity_id: Any,
    before: Optional[dict[str, Any]] = None,
    after: Optional[dict[str, Any]] = None,
) -> AuditEvent:
    """
    Adds an audit row to the caller's transaction.

    - Never commits: the mutation and its audit row land together or not at all.
    - Returns the AuditEvent row for tests / introspection.
    """
    row = AuditEvent(
        agency_id=agency_id,
        actor_user_id=actor_user_id,
        action=action,
        entity_type=entity_type,
        entity_id=str(entity_id),
        before_json=_dumps(before),
        after_json=_dumps(after),
        created_at=datetime.utcnow(),
    )
    db.add(row)
    return row


def loads(raw: Optional[str]) -> Optional[dict[str, Any]]:
    if not raw:
        return None
    return json.loads(raw)
