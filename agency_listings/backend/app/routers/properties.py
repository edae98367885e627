# backend/app/routers/properties.py
from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy import select
from sqlalchemy.orm import Session

from ..auth import Principal, get_principal
from ..db import get_db
from ..enums import ListingStatus, PropertyType, TransactionType
from ..models import Property
from ..schemas import (
    ApproveIn,
    DecisionIn,
    LocationsOut,
    PropertyCreate,
    PropertyOut,
    PropertyStatsOut,
    PropertyUpdate,
    RejectIn,
)
from ..services import catalog, listings
from ..services.tenancy import (
    PageParams,
    PropertyFilters,
    apply_property_filters,
    page_params,
    paginate,
    property_order,
    scope_listings,
)

router = APIRouter(prefix="/properties", tags=["properties"])


def property_out(row: Property) -> dict:
    return PropertyOut.model_validate(row, from_attributes=True).model_dump(mode="json")


def property_filters(
    search: Optional[str] = None,
    property_type: Optional[PropertyType] = None,
    transaction_type: Optional[TransactionType] = None,
    location_state: Optional[str] = None,
    location_city: Optional[str] = None,
    min_price: Optional[float] = Query(default=None, ge=0),
    max_price: Optional[float] = Query(default=None, ge=0),
    min_bedrooms: Optional[int] = Query(default=None, ge=0),
    max_bedrooms: Optional[int] = Query(default=None, ge=0),
    min_bathrooms: Optional[int] = Query(default=None, ge=0),
    max_bathrooms: Optional[int] = Query(default=None, ge=0),
    min_square_meters: Optional[float] = Query(default=None, ge=0),
    max_square_meters: Optional[float] = Query(default=None, ge=0),
    status: Optional[ListingStatus] = None,
    agent_id: Optional[int] = None,
    sort_by: str = "created_at",
    sort_order: str = "desc",
) -> PropertyFilters:
    return PropertyFilters(
        search=search,
        property_type=property_type.value if property_type else None,
        transaction_type=transaction_type.value if transaction_type else None,
        location_state=location_state,
        location_city=location_city,
        min_price=min_price,
        max_price=max_price,
        min_bedrooms=min_bedrooms,
        max_bedrooms=max_bedrooms,
        min_bathrooms=min_bathrooms,
        max_bathrooms=max_bathrooms,
        min_square_meters=min_square_meters,
        max_square_meters=max_square_meters,
        status=status.value if status else None,
        agent_id=agent_id,
        sort_by=sort_by,
        sort_order=sort_order,
    )


@router.get("", response_model=dict)
def list_properties(
    agency_id: Optional[int] = None,
    filters: PropertyFilters = Depends(property_filters),
    params: PageParams = Depends(page_params),
    db: Session = Depends(get_db),
    p: Principal = Depends(get_principal),
):
    order = property_order(filters)
    stmt = scope_listings(select(Property), Property, p, requested_agency_id=agency_id)
    stmt = apply_property_filters(stmt, filters)
    return paginate(db, stmt, params, order_by=order, serialize=property_out)


@router.post("", response_model=dict, status_code=201)
def create_property(payload: PropertyCreate, db: Session = Depends(get_db), p: Principal = Depends(get_principal)):
    row = listings.create_listing(db, Property, p, payload.model_dump(mode="json"))
    return {"property": property_out(row), "message": "Property created and sent for approval"}


# -------------------- Approval queue --------------------

@router.get("/approve", response_model=dict)
def pending_properties(
    params: PageParams = Depends(page_params),
    db: Session = Depends(get_db),
    p: Principal = Depends(get_principal),
):
    return listings.list_pending(db, Property, p, params, serialize=property_out)


@router.post("/approve", response_model=dict)
def decide_property(payload: DecisionIn, db: Session = Depends(get_db), p: Principal = Depends(get_principal)):
    row = listings.decide_listing(
        db,
        Property,
        p,
        listing_id=payload.id,
        status=payload.status.value,
        rejection_reason=payload.rejection_reason,
        expected_version=payload.expected_version,
    )
    verb = "approved" if row.status == ListingStatus.APPROVED.value else "rejected"
    return {"property": property_out(row), "message": f"Property {verb}"}


# -------------------- Catalog helpers --------------------

@router.get("/stats", response_model=PropertyStatsOut)
def property_stats(
    agency_id: Optional[int] = None,
    db: Session = Depends(get_db),
    p: Principal = Depends(get_principal),
):
    return catalog.property_stats(db, p, agency_id=agency_id)


@router.get("/locations", response_model=LocationsOut)
def property_locations(db: Session = Depends(get_db)):
    """States and cities present in the public catalog."""
    return catalog.catalog_locations(db)


@router.get("/search-suggestions", response_model=dict)
def property_search_suggestions(q: Optional[str] = Query(default=None, max_length=100), db: Session = Depends(get_db)):
    items = catalog.search_suggestions(db, q)
    return {"suggestions": [s.model_dump() for s in items]}


# -------------------- Single property --------------------

@router.get("/{property_id}", response_model=dict)
def get_property(property_id: int, db: Session = Depends(get_db), p: Principal = Depends(get_principal)):
    row = listings.get_listing(db, Property, property_id, p)
    return {"property": property_out(row)}


@router.put("/{property_id}", response_model=dict)
def update_property(
    property_id: int,
    payload: PropertyUpdate,
    db: Session = Depends(get_db),
    p: Principal = Depends(get_principal),
):
    changes = payload.model_dump(mode="json", exclude_unset=True)
    expected_version = changes.pop("expected_version", None)
    row = listings.update_listing(db, Property, property_id, p, changes, expected_version=expected_version)
    return {"property": property_out(row), "message": "Property updated"}


@router.delete("/{property_id}", response_model=dict)
def delete_property(property_id: int, db: Session = Depends(get_db), p: Principal = Depends(get_principal)):
    listings.delete_listing(db, Property, property_id, p)
    return {"ok": True, "message": "Property deleted"}


@router.post("/{property_id}/approve", response_model=dict)
def approve_property(
    property_id: int,
    payload: Optional[ApproveIn] = None,
    db: Session = Depends(get_db),
    p: Principal = Depends(get_principal),
):
    row = listings.approve_listing(
        db, Property, property_id, p, expected_version=payload.expected_version if payload else None
    )
    return {"property": property_out(row), "message": "Property approved"}


@router.post("/{property_id}/reject", response_model=dict)
def reject_property(
    property_id: int,
    payload: RejectIn,
    db: Session = Depends(get_db),
    p: Principal = Depends(get_principal),
):
    row = listings.reject_listing(
        db, Property, property_id, p, payload.rejection_message, expected_version=payload.expected_version
    )
    return {"property": property_out(row), "message": "Property rejected"}


@router.post("/{property_id}/resend", response_model=dict)
def resend_property(property_id: int, db: Session = Depends(get_db), p: Principal = Depends(get_principal)):
    row = listings.resubmit_listing(db, Property, property_id, p)
    return {"property": property_out(row), "message": "Property resubmitted for approval"}
