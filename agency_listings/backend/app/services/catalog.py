# backend/app/services/catalog.py
from __future__ import annotations

import re
from typing import Optional

from sqlalchemy import distinct, func, or_, select
from sqlalchemy.orm import Session

from ..auth import Principal
from ..domain.permissions import require_role
from ..enums import ListingStatus, PropertyType, Role
from ..models import Property
from ..schemas import CityOption, LocationsOut, PropertyStatsOut, SearchSuggestion, StatusCounts
from .tenancy import scope_listings, scope_public

SUGGESTION_LIMIT = 10
SUGGESTION_MIN_QUERY = 2
_LOCATION_ROWS = 20

PROPERTY_TYPE_LABELS = {
    PropertyType.HOUSE: "Casa",
    PropertyType.APARTMENT: "Departamento",
    PropertyType.OFFICE: "Oficina",
    PropertyType.LAND: "Terreno",
}

# (min, max or None, label)
PRICE_RANGES = (
    (0, 200_000, "Hasta Bs. 200.000"),
    (200_000, 500_000, "Bs. 200.000 - Bs. 500.000"),
    (500_000, 1_000_000, "Bs. 500.000 - Bs. 1.000.000"),
    (1_000_000, 2_000_000, "Bs. 1.000.000 - Bs. 2.000.000"),
    (2_000_000, None, "Más de Bs. 2.000.000"),
)

_HAS_DIGIT = re.compile(r"\d")


def status_counts(db: Session, model, principal: Principal, agency_id: Optional[int] = None) -> StatusCounts:
    stmt = select(model.status, func.count()).select_from(model)
    stmt = scope_listings(stmt, model, principal, requested_agency_id=agency_id).group_by(model.status)
    counts = {str(s): int(n) for s, n in db.execute(stmt).all()}
    return StatusCounts(
        total=sum(counts.values()),
        pending=counts.get(ListingStatus.PENDING.value, 0),
        approved=counts.get(ListingStatus.APPROVED.value, 0),
        rejected=counts.get(ListingStatus.REJECTED.value, 0),
    )


def property_stats(db: Session, principal: Principal, *, agency_id: Optional[int] = None) -> PropertyStatsOut:
    """Platform-wide status breakdown plus the summed price of APPROVED properties."""
    require_role(principal, Role.SUPER_ADMIN)

    value_stmt = scope_listings(
        select(func.coalesce(func.sum(Property.price), 0.0)).select_from(Property),
        Property,
        principal,
        requested_agency_id=agency_id,
    ).where(Property.status == ListingStatus.APPROVED.value)

    counts = status_counts(db, Property, principal, agency_id)
    return PropertyStatsOut(**counts.model_dump(), total_value=float(db.scalar(value_stmt) or 0.0))


def catalog_locations(db: Session) -> LocationsOut:
    """Distinct states and (city, state) pairs of the public catalog, for filter pickers."""
    states_stmt = (
        scope_public(select(distinct(Property.location_state)), Property)
        .where(Property.location_state != "")
        .order_by(Property.location_state)
    )
    cities_stmt = (
        scope_public(select(Property.location_city, Property.location_state), Property)
        .where(Property.location_city != "", Property.location_state != "")
        .distinct()
        .order_by(Property.location_state, Property.location_city)
    )
    return LocationsOut(
        states=[s for s in db.scalars(states_stmt).all() if s],
        cities=[
            CityOption(value=city, label=f"{city}, {state}", state=state)
            for city, state in db.execute(cities_stmt).all()
        ],
    )


def search_suggestions(db: Session, query: Optional[str]) -> list[SearchSuggestion]:
    """
    Typeahead for the public search box.

    Locations come from APPROVED properties only; property types match on
    their display label; price ranges are offered once the query has a digit.
    """
    q = (query or "").strip().lower()
    if len(q) < SUGGESTION_MIN_QUERY:
        return []

    out: list[SearchSuggestion] = []
    seen: set[str] = set()

    pat = f"%{q}%"
    stmt = (
        scope_public(select(Property.location_state, Property.location_city, Property.location_neigh), Property)
        .where(
            or_(
                func.lower(Property.location_state).like(pat),
                func.lower(Property.location_city).like(pat),
                func.lower(func.coalesce(Property.location_neigh, "")).like(pat),
            )
        )
        .distinct()
        .order_by(Property.location_state, Property.location_city, Property.location_neigh)
        .limit(_LOCATION_ROWS)
    )

    def _add_location(value: Optional[str], label: str, category: str) -> None:
        if value and q in value.lower() and value not in seen:
            seen.add(value)
            out.append(SearchSuggestion(type="location", value=value, label=label, category=category))

    for state, city, neigh in db.execute(stmt).all():
        _add_location(state, state, "Departamento")
        _add_location(city, f"{city}, {state}", "Ciudad")
        _add_location(neigh, f"{neigh}, {city}", "Barrio")

    for ptype, label in PROPERTY_TYPE_LABELS.items():
        if q in label.lower():
            out.append(SearchSuggestion(type="property_type", value=ptype.value, label=label, category="Tipo de propiedad"))

    if _HAS_DIGIT.search(q):
        for lo, hi, label in PRICE_RANGES:
            out.append(
                SearchSuggestion(
                    type="price_range",
                    value=f"{lo}-{hi if hi is not None else ''}",
                    label=label,
                    category="Rango de precio",
                )
            )

    return out[:SUGGESTION_LIMIT]
