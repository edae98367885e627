# backend/app/services/listings.py
from __future__ import annotations

import logging
from datetime import datetime
from typing import Any, Optional, Type

from sqlalchemy import asc, select
from sqlalchemy.orm import Session

from ..auth import Principal
from ..domain.audit import audit_write, snapshot
from ..domain.lifecycle import Trigger, apply_transition, plan_transition, transition_for_decision
from ..domain.permissions import Action, ResourceKind, require, require_role
from ..enums import ListingStatus, Role
from ..errors import ValidationError
from .tenancy import (
    M,
    PageParams,
    check_version,
    entity_name,
    get_listing_for,
    kind_for,
    paginate,
    reject_nulls,
    scope_listings,
)

log = logging.getLogger("agency_listings.listings")

_ACTION_FOR_TRIGGER = {
    Trigger.APPROVE: Action.APPROVE,
    Trigger.REJECT: Action.REJECT,
    Trigger.RESUBMIT: Action.RESUBMIT,
    Trigger.EDIT: Action.EDIT,
}

# Kinds whose content edits always go back through review.
_REVIEW_ON_EDIT = {ResourceKind.PROJECT}

# Fields an update may never touch, whatever the payload says.
_IMMUTABLE = {"id", "agent_id", "agency_id", "status", "rejection_message", "version", "created_at", "updated_at"}


def _log_transition(row: Any, model: type, principal: Principal, trigger: Trigger, from_status: Optional[str]) -> None:
    log.info(
        "listing_transition",
        extra={
            "listing_id": row.id,
            "listing_kind": entity_name(model),
            "action": trigger.value,
            "status": row.status,
            "agency_id": row.agency_id,
            "user_id": principal.user_id,
        },
    )


def create_listing(
    db: Session,
    model: Type[M],
    principal: Principal,
    fields: dict[str, Any],
    *,
    commit: bool = True,
) -> M:
    """
    New listings always start PENDING, owned by the caller, inside the caller's agency.
    """
    if principal.agency_id is None:
        raise ValidationError.for_field("agency_id", "Listings can only be created by users that belong to an agency")

    require(
        principal,
        Action.CREATE,
        resource_agency_id=principal.agency_id,
        resource_owner_id=principal.user_id,
        kind=kind_for(model),
    )

    t = plan_transition(None, Trigger.CREATE)
    data = {k: v for k, v in fields.items() if k not in _IMMUTABLE}
    now = datetime.utcnow()
    row = model(**data, agent_id=principal.user_id, agency_id=principal.agency_id, created_at=now, updated_at=now)
    apply_transition(row, t)
    db.add(row)
    db.flush()

    audit_write(
        db,
        agency_id=row.agency_id,
        actor_user_id=principal.user_id,
        action=f"{entity_name(model)}.create",
        entity_type=entity_name(model),
        entity_id=row.id,
        after=snapshot(row),
    )
    if commit:
        db.commit()
        db.refresh(row)
        _log_transition(row, model, principal, Trigger.CREATE, None)
    return row


def get_listing(db: Session, model: Type[M], listing_id: int, principal: Principal) -> M:
    return get_listing_for(db, model, listing_id, principal, Action.VIEW)


def update_listing(
    db: Session,
    model: Type[M],
    listing_id: int,
    principal: Principal,
    changes: dict[str, Any],
    *,
    expected_version: Optional[int] = None,
) -> M:
    """
    Owner edit. A REJECTED listing goes back to PENDING with its message
    cleared. Projects also leave APPROVED on any edit; properties keep it.
    """
    row = get_listing_for(db, model, listing_id, principal, Action.EDIT)
    check_version(row, expected_version)
    reject_nulls(model, changes)

    before = snapshot(row)
    from_status = row.status
    for k, v in changes.items():
        if k in _IMMUTABLE:
            continue
        setattr(row, k, v)

    t = plan_transition(row.status, Trigger.EDIT, reopen_approved=kind_for(model) in _REVIEW_ON_EDIT)
    apply_transition(row, t)
    row.updated_at = datetime.utcnow()
    db.flush()

    audit_write(
        db,
        agency_id=row.agency_id,
        actor_user_id=principal.user_id,
        action=f"{entity_name(model)}.update",
        entity_type=entity_name(model),
        entity_id=row.id,
        before=before,
        after=snapshot(row),
    )
    db.commit()
    db.refresh(row)
    if t.changes_status:
        _log_transition(row, model, principal, Trigger.EDIT, from_status)
    return row


def delete_listing(db: Session, model: Type[M], listing_id: int, principal: Principal) -> None:
    row = get_listing_for(db, model, listing_id, principal, Action.DELETE)
    before = snapshot(row)
    audit_write(
        db,
        agency_id=row.agency_id,
        actor_user_id=principal.user_id,
        action=f"{entity_name(model)}.delete",
        entity_type=entity_name(model),
        entity_id=row.id,
        before=before,
    )
    db.delete(row)
    db.commit()
    log.info(
        "listing_deleted",
        extra={"listing_id": listing_id, "listing_kind": entity_name(model), "agency_id": before.get("agency_id"), "user_id": principal.user_id},
    )


def transition_listing(
    db: Session,
    model: Type[M],
    listing_id: int,
    principal: Principal,
    trigger: Trigger,
    *,
    rejection_message: Optional[str] = None,
    expected_version: Optional[int] = None,
) -> M:
    """
    approve / reject / resubmit.

    Permission first (404/403), then state (409) and payload (400) checks.
    Status and message are written together and committed once; the version
    column makes the UPDATE conditional on nobody else having committed.
    """
    row = get_listing_for(db, model, listing_id, principal, _ACTION_FOR_TRIGGER[trigger])
    check_version(row, expected_version)

    t = plan_transition(row.status, trigger, rejection_message=rejection_message)
    before = {"status": row.status, "rejection_message": row.rejection_message}
    apply_transition(row, t)
    row.updated_at = datetime.utcnow()
    db.flush()

    audit_write(
        db,
        agency_id=row.agency_id,
        actor_user_id=principal.user_id,
        action=f"{entity_name(model)}.{trigger.value}",
        entity_type=entity_name(model),
        entity_id=row.id,
        before=before,
        after={"status": row.status, "rejection_message": row.rejection_message},
    )
    db.commit()
    db.refresh(row)
    _log_transition(row, model, principal, trigger, before["status"])
    return row


def approve_listing(db: Session, model: Type[M], listing_id: int, principal: Principal, *, expected_version: Optional[int] = None) -> M:
    return transition_listing(db, model, listing_id, principal, Trigger.APPROVE, expected_version=expected_version)


def reject_listing(
    db: Session,
    model: Type[M],
    listing_id: int,
    principal: Principal,
    rejection_message: Optional[str],
    *,
    expected_version: Optional[int] = None,
) -> M:
    return transition_listing(
        db,
        model,
        listing_id,
        principal,
        Trigger.REJECT,
        rejection_message=rejection_message,
        expected_version=expected_version,
    )


def resubmit_listing(db: Session, model: Type[M], listing_id: int, principal: Principal) -> M:
    return transition_listing(db, model, listing_id, principal, Trigger.RESUBMIT)


def decide_listing(
    db: Session,
    model: Type[M],
    principal: Principal,
    *,
    listing_id: int,
    status: str,
    rejection_reason: Optional[str] = None,
    expected_version: Optional[int] = None,
) -> M:
    trigger = transition_for_decision(status, rejection_reason)
    return transition_listing(
        db,
        model,
        listing_id,
        principal,
        trigger,
        rejection_message=rejection_reason,
        expected_version=expected_version,
    )


def list_pending(db: Session, model: Type[M], principal: Principal, params: PageParams, *, serialize=lambda r: r) -> dict[str, Any]:
    """Approval queue, oldest first. Reviewers only."""
    require_role(principal, Role.SUPER_ADMIN, Role.AGENCY_ADMIN)
    stmt = select(model).where(model.status == ListingStatus.PENDING.value)
    stmt = scope_listings(stmt, model, principal)
    return paginate(db, stmt, params, order_by=(asc(model.created_at), asc(model.id)), serialize=serialize)
