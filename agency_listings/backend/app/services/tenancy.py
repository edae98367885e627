# backend/app/services/tenancy.py
from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Any, Callable, Optional, Type, TypeVar

from sqlalchemy import Select, asc, desc, func, or_, select
from sqlalchemy.orm import Session

from ..auth import Principal
from ..config import settings
from ..domain.permissions import Action, ResourceKind, decide
from ..enums import ListingStatus
from ..errors import AuthorizationError, ConflictError, NotFoundError, ValidationError
from ..models import Project, Property

M = TypeVar("M", Property, Project)

KIND_BY_MODEL: dict[type, ResourceKind] = {
    Property: ResourceKind.PROPERTY,
    Project: ResourceKind.PROJECT,
}


def kind_for(model: type) -> ResourceKind:
    return KIND_BY_MODEL[model]


def entity_name(model: type) -> str:
    return "property" if model is Property else "project"


# -----------------------------------------------------------------------------
# Scoping
# -----------------------------------------------------------------------------
def scope_listings(
    stmt: Select,
    model: Type[M],
    principal: Principal,
    requested_agency_id: Optional[int] = None,
) -> Select:
    """
    Tenancy predicate, applied before any user filter.

      SUPER_ADMIN   -> everything, optionally narrowed to requested_agency_id
      AGENCY_ADMIN  -> own agency (requested_agency_id ignored)
      AGENT         -> own listings
      anything else -> nothing
    """
    if principal.is_super_admin:
        if requested_agency_id is not None:
            stmt = stmt.where(model.agency_id == int(requested_agency_id))
        return stmt
    if principal.is_agency_admin and principal.agency_id is not None:
        return stmt.where(model.agency_id == int(principal.agency_id))
    if principal.is_agent:
        return stmt.where(model.agent_id == int(principal.user_id))
    return stmt.where(model.id.is_(None))


def scope_public(stmt: Select, model: Type[M]) -> Select:
    stmt = stmt.where(model.status == ListingStatus.APPROVED.value)
    if model is Project:
        stmt = stmt.where(Project.active.is_(True))
    return stmt


def get_listing_for(
    db: Session,
    model: Type[M],
    listing_id: int,
    principal: Principal,
    action: Action | str = Action.VIEW,
    *,
    kind: Optional[ResourceKind] = None,
) -> M:
    """
    Loads a listing the caller may act on.

    - row missing, or outside the caller's view scope -> NotFoundError
    - row visible but action not allowed             -> AuthorizationError
    """
    stmt = scope_listings(select(model).where(model.id == int(listing_id)), model, principal)
    row = db.scalar(stmt)
    if row is None:
        raise NotFoundError(f"{entity_name(model).capitalize()} not found")

    res_kind = kind or kind_for(model)
    d = decide(
        principal,
        action,
        resource_agency_id=row.agency_id,
        resource_owner_id=row.agent_id,
        kind=res_kind,
    )
    if not d.allowed:
        raise AuthorizationError()
    return row


def get_public_listing(db: Session, model: Type[M], listing_id: int) -> M:
    row = db.scalar(scope_public(select(model).where(model.id == int(listing_id)), model))
    if row is None:
        raise NotFoundError(f"{entity_name(model).capitalize()} not found")
    return row


def check_version(row: Any, expected_version: Optional[int]) -> None:
    if expected_version is None:
        return
    if int(row.version) != int(expected_version):
        raise ConflictError(
            "Resource was modified since it was read",
            details={"expected_version": int(expected_version), "current_version": int(row.version)},
        )


def reject_nulls(model: type, changes: dict[str, Any]) -> None:
    """An explicit null on a NOT NULL column is bad input, not a datastore conflict."""
    cols = model.__table__.columns
    bad = sorted(k for k, v in changes.items() if v is None and k in cols and not cols[k].nullable)
    if bad:
        raise ValidationError(
            "Required fields cannot be null",
            details={"fields": [{"field": k, "message": f"{k} cannot be null"} for k in bad]},
        )


# -----------------------------------------------------------------------------
# Paging
# -----------------------------------------------------------------------------
@dataclass(frozen=True)
class PageParams:
    offset: int
    limit: int

    @property
    def page(self) -> int:
        return self.offset // self.limit + 1

    @classmethod
    def build(cls, *, page: Optional[int] = None, offset: Optional[int] = None, limit: Optional[int] = None) -> "PageParams":
        lim = settings.page_default_limit if limit is None else int(limit)
        lim = max(1, min(lim, settings.page_max_limit))
        if offset is not None:
            off = max(0, int(offset))
        elif page is not None:
            off = (max(1, int(page)) - 1) * lim
        else:
            off = 0
        return cls(offset=off, limit=lim)


def page_params(page: Optional[int] = None, offset: Optional[int] = None, limit: Optional[int] = None) -> PageParams:
    """FastAPI dependency: ?page=&offset=&limit= ."""
    return PageParams.build(page=page, offset=offset, limit=limit)


def paginate(
    db: Session,
    stmt: Select,
    params: PageParams,
    *,
    order_by: tuple = (),
    serialize: Callable[[Any], Any] = lambda r: r,
) -> dict[str, Any]:
    total = int(db.scalar(select(func.count()).select_from(stmt.order_by(None).subquery())) or 0)
    rows = db.scalars(stmt.order_by(*order_by).offset(params.offset).limit(params.limit)).unique().all()
    return {
        "items": [serialize(r) for r in rows],
        "total": total,
        "page": params.page,
        "limit": params.limit,
        "total_pages": math.ceil(total / params.limit) if total else 0,
    }


# -----------------------------------------------------------------------------
# Filters
# -----------------------------------------------------------------------------
PROPERTY_SORT_COLUMNS = {
    "created_at": Property.created_at,
    "updated_at": Property.updated_at,
    "price": Property.price,
    "title": Property.title,
}


@dataclass(frozen=True)
class PropertyFilters:
    search: Optional[str] = None
    property_type: Optional[str] = None
    transaction_type: Optional[str] = None
    location_state: Optional[str] = None
    location_city: Optional[str] = None
    min_price: Optional[float] = None
    max_price: Optional[float] = None
    min_bedrooms: Optional[int] = None
    max_bedrooms: Optional[int] = None
    min_bathrooms: Optional[int] = None
    max_bathrooms: Optional[int] = None
    min_square_meters: Optional[float] = None
    max_square_meters: Optional[float] = None
    status: Optional[str] = None
    agent_id: Optional[int] = None
    sort_by: str = "created_at"
    sort_order: str = "desc"


def _like(value: str) -> str:
    return f"%{value.strip().lower()}%"


def _range(stmt: Select, col, lo, hi) -> Select:
    if lo is not None:
        stmt = stmt.where(col >= lo)
    if hi is not None:
        stmt = stmt.where(col <= hi)
    return stmt


def apply_property_filters(stmt: Select, f: PropertyFilters, *, allow_status: bool = True) -> Select:
    """Narrowing filters only; never touches the tenancy predicate."""
    if f.search and f.search.strip():
        pat = _like(f.search)
        stmt = stmt.where(
            or_(
                func.lower(Property.title).like(pat),
                func.lower(Property.description).like(pat),
                func.lower(Property.location_city).like(pat),
                func.lower(Property.location_state).like(pat),
                func.lower(func.coalesce(Property.location_neigh, "")).like(pat),
                func.lower(Property.address).like(pat),
            )
        )
    if f.property_type:
        stmt = stmt.where(Property.property_type == f.property_type)
    if f.transaction_type:
        stmt = stmt.where(Property.transaction_type == f.transaction_type)
    if f.location_state:
        stmt = stmt.where(func.lower(Property.location_state) == f.location_state.strip().lower())
    if f.location_city:
        stmt = stmt.where(func.lower(Property.location_city) == f.location_city.strip().lower())

    stmt = _range(stmt, Property.price, f.min_price, f.max_price)
    stmt = _range(stmt, Property.bedrooms, f.min_bedrooms, f.max_bedrooms)
    stmt = _range(stmt, Property.bathrooms, f.min_bathrooms, f.max_bathrooms)
    stmt = _range(stmt, Property.square_meters, f.min_square_meters, f.max_square_meters)

    if allow_status and f.status:
        stmt = stmt.where(Property.status == f.status)
    if f.agent_id is not None:
        stmt = stmt.where(Property.agent_id == int(f.agent_id))
    return stmt


def property_order(f: PropertyFilters) -> tuple:
    col = PROPERTY_SORT_COLUMNS.get(f.sort_by)
    if col is None:
        raise ValidationError.for_field("sort_by", f"sort_by must be one of {sorted(PROPERTY_SORT_COLUMNS)}")
    order = (f.sort_order or "desc").strip().lower()
    if order not in ("asc", "desc"):
        raise ValidationError.for_field("sort_order", "sort_order must be asc or desc")
    direction = asc if order == "asc" else desc
    return (direction(col), direction(Property.id))


@dataclass(frozen=True)
class ProjectFilters:
    search: Optional[str] = None
    status: Optional[str] = None
    agent_id: Optional[int] = None


def apply_project_filters(stmt: Select, f: ProjectFilters, *, allow_status: bool = True) -> Select:
    if f.search and f.search.strip():
        pat = _like(f.search)
        stmt = stmt.where(
            or_(
                func.lower(Project.name).like(pat),
                func.lower(Project.description).like(pat),
                func.lower(Project.location).like(pat),
            )
        )
    if allow_status and f.status:
        stmt = stmt.where(Project.status == f.status)
    if f.agent_id is not None:
        stmt = stmt.where(Project.agent_id == int(f.agent_id))
    return stmt


def project_order() -> tuple:
    return (desc(Project.created_at), desc(Project.id))
