# backend/app/services/project_structure.py
from __future__ import annotations

import logging
from datetime import datetime
from typing import Any, Iterable, Optional

from sqlalchemy import select, update
from sqlalchemy.orm import Session

from ..auth import Principal
from ..domain.audit import audit_write, snapshot
from ..domain.permissions import Action, ResourceKind
from ..errors import NotFoundError, ValidationError
from ..models import Floor, Project, Quadrant
from .listings import create_listing
from .tenancy import get_listing_for, reject_nulls

log = logging.getLogger("agency_listings.project_structure")

QUADRANT_ID_PREFIX = "Q"


def format_custom_id(seq: int) -> str:
    return f"{QUADRANT_ID_PREFIX}{int(seq):03d}"


def _project_for(db: Session, project_id: int, principal: Principal, action: Action) -> Project:
    kind = ResourceKind.PROJECT if action is Action.VIEW else ResourceKind.PROJECT_STRUCTURE
    return get_listing_for(db, Project, project_id, principal, action, kind=kind)


def _floor_for(db: Session, floor_id: int, principal: Principal, action: Action) -> Floor:
    floor = db.get(Floor, int(floor_id))
    if floor is None:
        raise NotFoundError("Floor not found")
    # visibility and ownership come from the parent project
    try:
        _project_for(db, floor.project_id, principal, action)
    except NotFoundError:
        raise NotFoundError("Floor not found")
    return floor


def _quadrant_for(db: Session, quadrant_id: int, principal: Principal, action: Action) -> Quadrant:
    q = db.get(Quadrant, int(quadrant_id))
    if q is None:
        raise NotFoundError("Quadrant not found")
    try:
        _floor_for(db, q.floor_id, principal, action)
    except NotFoundError:
        raise NotFoundError("Quadrant not found")
    return q


def _ensure_floor_number_free(db: Session, project_id: int, number: int, *, exclude_floor_id: Optional[int] = None) -> None:
    stmt = select(Floor.id).where(Floor.project_id == int(project_id), Floor.number == int(number))
    if exclude_floor_id is not None:
        stmt = stmt.where(Floor.id != int(exclude_floor_id))
    if db.scalar(stmt) is not None:
        raise ValidationError.for_field("number", f"Floor {int(number)} already exists in this project")


def next_custom_id(db: Session, floor_id: int) -> str:
    """
    Draws the next quadrant id from the floor's counter.

    The increment is a single UPDATE inside the caller's transaction, so two
    writers on the same floor serialize on the row and never share a value.
    Deleted quadrants do not give their number back.
    """
    db.execute(
        update(Floor)
        .where(Floor.id == int(floor_id))
        .values(quadrant_seq=Floor.quadrant_seq + 1)
        .execution_options(synchronize_session=False)
    )
    seq = db.scalar(select(Floor.quadrant_seq).where(Floor.id == int(floor_id)))
    return format_custom_id(int(seq))


def _add_floor(db: Session, project: Project, number: int, name: Optional[str]) -> Floor:
    _ensure_floor_number_free(db, project.id, number)
    now = datetime.utcnow()
    floor = Floor(project_id=project.id, number=int(number), name=name, quadrant_seq=0, created_at=now, updated_at=now)
    db.add(floor)
    db.flush()
    return floor


def _add_quadrant(db: Session, floor: Floor, fields: dict[str, Any]) -> Quadrant:
    now = datetime.utcnow()
    data = {k: v for k, v in fields.items() if k not in ("id", "floor_id", "custom_id")}
    q = Quadrant(floor_id=floor.id, custom_id=next_custom_id(db, floor.id), created_at=now, updated_at=now, **data)
    db.add(q)
    db.flush()
    return q


# -----------------------------------------------------------------------------
# Projects with structure
# -----------------------------------------------------------------------------
def create_project_with_structure(
    db: Session,
    principal: Principal,
    fields: dict[str, Any],
    floors: Iterable[dict[str, Any]] = (),
) -> Project:
    """
    Project + floors + quadrants in one transaction. Any failure (duplicate
    floor number, constraint violation) rolls back every row.
    """
    try:
        project = create_listing(db, Project, principal, fields, commit=False)

        seen: set[int] = set()
        for f in floors:
            number = int(f["number"])
            if number in seen:
                raise ValidationError.for_field("floors.number", f"Floor {number} is listed more than once")
            seen.add(number)
            floor = _add_floor(db, project, number, f.get("name"))
            for qf in f.get("quadrants") or []:
                _add_quadrant(db, floor, qf)

        db.commit()
    except Exception:
        db.rollback()
        raise

    project = db.scalar(select(Project).where(Project.id == project.id).execution_options(populate_existing=True))
    log.info(
        "listing_transition",
        extra={
            "listing_id": project.id,
            "listing_kind": "project",
            "action": "create",
            "status": project.status,
            "agency_id": project.agency_id,
            "user_id": principal.user_id,
        },
    )
    return project


# -----------------------------------------------------------------------------
# Floors
# -----------------------------------------------------------------------------
def list_floors(db: Session, project_id: int, principal: Principal) -> list[Floor]:
    project = _project_for(db, project_id, principal, Action.VIEW)
    return list(db.scalars(select(Floor).where(Floor.project_id == project.id).order_by(Floor.number)).all())


def create_floor(db: Session, project_id: int, principal: Principal, *, number: int, name: Optional[str] = None) -> Floor:
    project = _project_for(db, project_id, principal, Action.CREATE)
    floor = _add_floor(db, project, number, name)
    audit_write(
        db,
        agency_id=project.agency_id,
        actor_user_id=principal.user_id,
        action="floor.create",
        entity_type="floor",
        entity_id=floor.id,
        after=snapshot(floor),
    )
    db.commit()
    db.refresh(floor)
    return floor


def update_floor(db: Session, floor_id: int, principal: Principal, changes: dict[str, Any]) -> Floor:
    floor = _floor_for(db, floor_id, principal, Action.EDIT)
    reject_nulls(Floor, changes)
    before = snapshot(floor)

    if changes.get("number") is not None and int(changes["number"]) != floor.number:
        _ensure_floor_number_free(db, floor.project_id, int(changes["number"]), exclude_floor_id=floor.id)
        floor.number = int(changes["number"])
    if "name" in changes:
        floor.name = changes["name"]
    floor.updated_at = datetime.utcnow()
    db.flush()

    audit_write(
        db,
        agency_id=floor.project.agency_id,
        actor_user_id=principal.user_id,
        action="floor.update",
        entity_type="floor",
        entity_id=floor.id,
        before=before,
        after=snapshot(floor),
    )
    db.commit()
    db.refresh(floor)
    return floor


def delete_floor(db: Session, floor_id: int, principal: Principal) -> None:
    floor = _floor_for(db, floor_id, principal, Action.DELETE)
    audit_write(
        db,
        agency_id=floor.project.agency_id,
        actor_user_id=principal.user_id,
        action="floor.delete",
        entity_type="floor",
        entity_id=floor.id,
        before=snapshot(floor),
    )
    db.delete(floor)
    db.commit()


# -----------------------------------------------------------------------------
# Quadrants
# -----------------------------------------------------------------------------
def list_quadrants(db: Session, floor_id: int, principal: Principal) -> list[Quadrant]:
    floor = _floor_for(db, floor_id, principal, Action.VIEW)
    return list(db.scalars(select(Quadrant).where(Quadrant.floor_id == floor.id).order_by(Quadrant.id)).all())


def create_quadrant(db: Session, floor_id: int, principal: Principal, fields: dict[str, Any]) -> Quadrant:
    floor = _floor_for(db, floor_id, principal, Action.CREATE)
    q = _add_quadrant(db, floor, fields)
    audit_write(
        db,
        agency_id=floor.project.agency_id,
        actor_user_id=principal.user_id,
        action="quadrant.create",
        entity_type="quadrant",
        entity_id=q.id,
        after=snapshot(q),
    )
    db.commit()
    db.refresh(q)
    return q


def update_quadrant(db: Session, quadrant_id: int, principal: Principal, changes: dict[str, Any]) -> Quadrant:
    q = _quadrant_for(db, quadrant_id, principal, Action.EDIT)
    reject_nulls(Quadrant, changes)
    before = snapshot(q)
    for k, v in changes.items():
        if k in ("id", "floor_id", "custom_id", "created_at", "updated_at"):
            continue
        setattr(q, k, v)
    q.updated_at = datetime.utcnow()
    db.flush()

    audit_write(
        db,
        agency_id=q.floor.project.agency_id,
        actor_user_id=principal.user_id,
        action="quadrant.update",
        entity_type="quadrant",
        entity_id=q.id,
        before=before,
        after=snapshot(q),
    )
    db.commit()
    db.refresh(q)
    return q


def delete_quadrant(db: Session, quadrant_id: int, principal: Principal) -> None:
    q = _quadrant_for(db, quadrant_id, principal, Action.DELETE)
    audit_write(
        db,
        agency_id=q.floor.project.agency_id,
        actor_user_id=principal.user_id,
        action="quadrant.delete",
        entity_type="quadrant",
        entity_id=q.id,
        before=snapshot(q),
    )
    db.delete(q)
    db.commit()
