# backend/app/routers/public.py
from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends
from sqlalchemy import select
from sqlalchemy.orm import Session

from ..db import get_db
from ..models import Project, Property
from ..services.tenancy import (
    PageParams,
    ProjectFilters,
    PropertyFilters,
    apply_project_filters,
    apply_property_filters,
    get_public_listing,
    page_params,
    paginate,
    project_order,
    property_order,
    scope_public,
)
from .projects import project_out
from .properties import property_filters, property_out

router = APIRouter(prefix="/public", tags=["public"])


@router.get("/properties", response_model=dict)
def public_properties(
    filters: PropertyFilters = Depends(property_filters),
    params: PageParams = Depends(page_params),
    db: Session = Depends(get_db),
):
    """Catalog: APPROVED only, whatever status the caller asks for."""
    order = property_order(filters)
    stmt = scope_public(select(Property), Property)
    stmt = apply_property_filters(stmt, filters, allow_status=False)
    return paginate(db, stmt, params, order_by=order, serialize=property_out)


@router.get("/properties/{property_id}", response_model=dict)
def public_property(property_id: int, db: Session = Depends(get_db)):
    return {"property": property_out(get_public_listing(db, Property, property_id))}


@router.get("/projects", response_model=dict)
def public_projects(
    search: Optional[str] = None,
    params: PageParams = Depends(page_params),
    db: Session = Depends(get_db),
):
    stmt = scope_public(select(Project), Project)
    stmt = apply_project_filters(stmt, ProjectFilters(search=search), allow_status=False)
    return paginate(db, stmt, params, order_by=project_order(), serialize=project_out)


@router.get("/projects/{project_id}", response_model=dict)
def public_project(project_id: int, db: Session = Depends(get_db)):
    return {"project": project_out(get_public_listing(db, Project, project_id))}
