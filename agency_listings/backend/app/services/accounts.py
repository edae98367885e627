# backend/app/services/accounts.py
from __future__ import annotations

import logging
from datetime import datetime
from typing import Any, Optional

from sqlalchemy import delete, func, or_, select
from sqlalchemy.orm import Session

from ..auth import Principal
from ..domain.audit import audit_write, snapshot
from ..domain.permissions import require_role
from ..enums import Role
from ..errors import AuthorizationError, ConflictError, NotFoundError, ValidationError
from ..models import Agency, Project, Property, User
from .tenancy import PageParams, paginate

log = logging.getLogger("agency_listings.accounts")


# -----------------------------------------------------------------------------
# Agencies (SUPER_ADMIN)
# -----------------------------------------------------------------------------
def _ensure_agency_name_free(db: Session, name: str, *, exclude_id: Optional[int] = None) -> str:
    clean = (name or "").strip()
    if not clean:
        raise ValidationError.for_field("name", "Agency name is required")
    stmt = select(Agency.id).where(func.lower(Agency.name) == clean.lower())
    if exclude_id is not None:
        stmt = stmt.where(Agency.id != int(exclude_id))
    if db.scalar(stmt) is not None:
        raise ValidationError.for_field("name", "An agency with this name already exists")
    return clean


def must_get_agency(db: Session, agency_id: int) -> Agency:
    row = db.get(Agency, int(agency_id))
    if row is None:
        raise NotFoundError("Agency not found")
    return row


def list_agencies(
    db: Session,
    principal: Principal,
    params: PageParams,
    *,
    search: Optional[str] = None,
    active: Optional[bool] = None,
    serialize=lambda r: r,
) -> dict[str, Any]:
    require_role(principal, Role.SUPER_ADMIN)
    stmt = select(Agency)
    if search and search.strip():
        stmt = stmt.where(func.lower(Agency.name).like(f"%{search.strip().lower()}%"))
    if active is not None:
        stmt = stmt.where(Agency.active.is_(bool(active)))
    return paginate(db, stmt, params, order_by=(Agency.name, Agency.id), serialize=serialize)


def get_agency(db: Session, principal: Principal, agency_id: int) -> Agency:
    require_role(principal, Role.SUPER_ADMIN)
    return must_get_agency(db, agency_id)


def create_agency(db: Session, principal: Principal, fields: dict[str, Any]) -> Agency:
    require_role(principal, Role.SUPER_ADMIN)
    name = _ensure_agency_name_free(db, fields.get("name", ""))
    now = datetime.utcnow()
    row = Agency(**{**fields, "name": name}, active=True, created_at=now, updated_at=now)
    db.add(row)
    db.flush()
    audit_write(
        db,
        agency_id=row.id,
        actor_user_id=principal.user_id,
        action="agency.create",
        entity_type="agency",
        entity_id=row.id,
        after=snapshot(row),
    )
    db.commit()
    db.refresh(row)
    log.info("agency_created", extra={"agency_id": row.id, "user_id": principal.user_id})
    return row


def update_agency(db: Session, principal: Principal, agency_id: int, changes: dict[str, Any]) -> Agency:
    require_role(principal, Role.SUPER_ADMIN)
    row = must_get_agency(db, agency_id)
    before = snapshot(row)
    if "name" in changes and changes["name"] is not None:
        changes["name"] = _ensure_agency_name_free(db, changes["name"], exclude_id=row.id)
    for k, v in changes.items():
        if k in ("id", "created_at", "updated_at"):
            continue
        if k in ("name", "active") and v is None:
            continue
        setattr(row, k, v)
    row.updated_at = datetime.utcnow()
    db.flush()
    audit_write(
        db,
        agency_id=row.id,
        actor_user_id=principal.user_id,
        action="agency.update",
        entity_type="agency",
        entity_id=row.id,
        before=before,
        after=snapshot(row),
    )
    db.commit()
    db.refresh(row)
    return row


def delete_agency(db: Session, principal: Principal, agency_id: int) -> dict[str, int]:
    """
    Removes the agency with its listings, project structure and users.
    One transaction: either everything goes or nothing does.
    """
    require_role(principal, Role.SUPER_ADMIN)
    row = must_get_agency(db, agency_id)
    before = snapshot(row)

    counts = {"properties": 0, "projects": 0, "users": 0}
    try:
        counts["properties"] = db.execute(delete(Property).where(Property.agency_id == row.id)).rowcount or 0

        # ORM delete so floors and quadrants cascade
        projects = db.scalars(select(Project).where(Project.agency_id == row.id)).all()
        for proj in projects:
            db.delete(proj)
        counts["projects"] = len(projects)
        db.flush()

        counts["users"] = db.execute(delete(User).where(User.agency_id == row.id)).rowcount or 0

        audit_write(
            db,
            agency_id=None,
            actor_user_id=principal.user_id,
            action="agency.delete",
            entity_type="agency",
            entity_id=row.id,
            before=before,
            after=counts,
        )
        db.delete(row)
        db.commit()
    except Exception:
        db.rollback()
        raise

    log.info("agency_deleted", extra={"agency_id": agency_id, "user_id": principal.user_id})
    return counts


def update_own_agency(db: Session, principal: Principal, changes: dict[str, Any]) -> Agency:
    require_role(principal, Role.AGENCY_ADMIN)
    row = must_get_agency(db, principal.agency_id)
    before = snapshot(row)
    for k in ("logo_url", "address", "phone", "email"):
        if k in changes:
            setattr(row, k, changes[k])
    row.updated_at = datetime.utcnow()
    db.flush()
    audit_write(
        db,
        agency_id=row.id,
        actor_user_id=principal.user_id,
        action="agency.update_contact",
        entity_type="agency",
        entity_id=row.id,
        before=before,
        after=snapshot(row),
    )
    db.commit()
    db.refresh(row)
    return row


# -----------------------------------------------------------------------------
# Users (SUPER_ADMIN, AGENCY_ADMIN within own agency)
# -----------------------------------------------------------------------------
def _check_role_agency(role: str, agency_id: Optional[int]) -> None:
    if role == Role.SUPER_ADMIN.value and agency_id is not None:
        raise ValidationError.for_field("agency_id", "SUPER_ADMIN users cannot belong to an agency")
    if role != Role.SUPER_ADMIN.value and agency_id is None:
        raise ValidationError.for_field("agency_id", f"{role} users must belong to an agency")


def _visible_user(db: Session, principal: Principal, user_id: int) -> User:
    """SUPER_ADMIN sees every user; AGENCY_ADMIN only its own agency; others get 403."""
    require_role(principal, Role.SUPER_ADMIN, Role.AGENCY_ADMIN)
    row = db.get(User, int(user_id))
    if row is None:
        raise NotFoundError("User not found")
    if principal.is_agency_admin and row.agency_id != principal.agency_id:
        raise NotFoundError("User not found")
    return row


def list_users(
    db: Session,
    principal: Principal,
    params: PageParams,
    *,
    agency_id: Optional[int] = None,
    role: Optional[str] = None,
    active: Optional[bool] = None,
    search: Optional[str] = None,
    serialize=lambda r: r,
) -> dict[str, Any]:
    require_role(principal, Role.SUPER_ADMIN, Role.AGENCY_ADMIN)
    stmt = select(User)
    if principal.is_agency_admin:
        stmt = stmt.where(User.agency_id == principal.agency_id)
    elif agency_id is not None:
        stmt = stmt.where(User.agency_id == int(agency_id))
    if role:
        stmt = stmt.where(User.role == role)
    if active is not None:
        stmt = stmt.where(User.active.is_(bool(active)))
    if search and search.strip():
        pat = f"%{search.strip().lower()}%"
        stmt = stmt.where(
            or_(
                func.lower(func.coalesce(User.first_name, "")).like(pat),
                func.lower(func.coalesce(User.last_name, "")).like(pat),
                func.lower(func.coalesce(User.email, "")).like(pat),
            )
        )
    return paginate(db, stmt, params, order_by=(User.created_at.desc(), User.id.desc()), serialize=serialize)


def get_user(db: Session, principal: Principal, user_id: int) -> User:
    return _visible_user(db, principal, user_id)


def create_user(db: Session, principal: Principal, fields: dict[str, Any]) -> User:
    require_role(principal, Role.SUPER_ADMIN, Role.AGENCY_ADMIN)

    role = str(fields.get("role") or Role.AGENT.value)
    agency_id = fields.get("agency_id")

    if principal.is_agency_admin:
        if role == Role.SUPER_ADMIN.value:
            raise AuthorizationError()
        if agency_id is not None and int(agency_id) != int(principal.agency_id):
            raise AuthorizationError()
        agency_id = principal.agency_id

    _check_role_agency(role, agency_id)
    if agency_id is not None:
        must_get_agency(db, agency_id)

    ext_id = str(fields.get("external_auth_id") or "").strip()
    if db.scalar(select(User.id).where(User.external_auth_id == ext_id)) is not None:
        raise ValidationError.for_field("external_auth_id", "A user with this identity already exists")

    now = datetime.utcnow()
    row = User(
        external_auth_id=ext_id,
        email=(fields.get("email") or None),
        first_name=fields.get("first_name"),
        last_name=fields.get("last_name"),
        phone=fields.get("phone"),
        role=role,
        agency_id=agency_id,
        active=True,
        created_at=now,
        updated_at=now,
    )
    db.add(row)
    db.flush()
    audit_write(
        db,
        agency_id=agency_id,
        actor_user_id=principal.user_id,
        action="user.create",
        entity_type="user",
        entity_id=row.id,
        after=snapshot(row),
    )
    db.commit()
    db.refresh(row)
    log.info("user_created", extra={"agency_id": agency_id, "user_id": principal.user_id})
    return row


def update_user(db: Session, principal: Principal, user_id: int, changes: dict[str, Any]) -> User:
    row = _visible_user(db, principal, user_id)
    before = snapshot(row)

    new_role = str(changes["role"]) if changes.get("role") is not None else row.role
    new_agency = changes["agency_id"] if "agency_id" in changes else row.agency_id

    if principal.is_agency_admin:
        if new_role == Role.SUPER_ADMIN.value:
            raise AuthorizationError()
        if new_agency is None or int(new_agency) != int(principal.agency_id):
            raise AuthorizationError()
    elif new_role == Role.SUPER_ADMIN.value and "agency_id" not in changes:
        # promoting to SUPER_ADMIN drops the agency
        new_agency = None

    _check_role_agency(new_role, new_agency)
    if new_agency is not None and new_agency != row.agency_id:
        must_get_agency(db, new_agency)

    for k in ("email", "first_name", "last_name", "phone"):
        if k in changes:
            setattr(row, k, changes[k])
    if changes.get("active") is not None:
        row.active = bool(changes["active"])
    row.role = new_role
    row.agency_id = new_agency
    row.updated_at = datetime.utcnow()
    db.flush()

    audit_write(
        db,
        agency_id=row.agency_id,
        actor_user_id=principal.user_id,
        action="user.update",
        entity_type="user",
        entity_id=row.id,
        before=before,
        after=snapshot(row),
    )
    db.commit()
    db.refresh(row)
    return row


def _owned_counts(db: Session, user_id: int) -> tuple[int, int]:
    props = db.scalar(select(func.count()).select_from(Property).where(Property.agent_id == int(user_id))) or 0
    projs = db.scalar(select(func.count()).select_from(Project).where(Project.agent_id == int(user_id))) or 0
    return int(props), int(projs)


def user_assets(db: Session, principal: Principal, user_id: int) -> dict[str, int]:
    """Listings owned by a user, for the confirm-before-delete dialog."""
    row = _visible_user(db, principal, user_id)
    props, projs = _owned_counts(db, row.id)
    return {"properties_count": props, "projects_count": projs}


def delete_user(db: Session, principal: Principal, user_id: int) -> None:
    row = _visible_user(db, principal, user_id)
    if int(row.id) == int(principal.user_id):
        raise ValidationError("You cannot delete your own account")
    if principal.is_agency_admin and row.role != Role.AGENT.value:
        raise AuthorizationError()

    owned = sum(_owned_counts(db, row.id))
    if owned:
        raise ConflictError(
            "User still owns listings; deactivate the user instead",
            details={"listings": int(owned)},
        )

    audit_write(
        db,
        agency_id=row.agency_id,
        actor_user_id=principal.user_id,
        action="user.delete",
        entity_type="user",
        entity_id=row.id,
        before=snapshot(row),
    )
    db.delete(row)
    db.commit()


# -----------------------------------------------------------------------------
# Own profile
# -----------------------------------------------------------------------------
def get_profile(db: Session, principal: Principal) -> User:
    row = db.get(User, int(principal.user_id))
    if row is None:
        raise NotFoundError("User not found")
    return row


def update_profile(db: Session, principal: Principal, changes: dict[str, Any]) -> User:
    row = get_profile(db, principal)
    before = snapshot(row)
    for k in ("first_name", "last_name", "phone"):
        if k in changes:
            setattr(row, k, changes[k])
    row.updated_at = datetime.utcnow()
    db.flush()
    audit_write(
        db,
        agency_id=row.agency_id,
        actor_user_id=principal.user_id,
        action="user.update_profile",
        entity_type="user",
        entity_id=row.id,
        before=before,
        after=snapshot(row),
    )
    db.commit()
    db.refresh(row)
    return row
