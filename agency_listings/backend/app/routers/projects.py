# backend/app/routers/projects.py
from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends
from sqlalchemy import select
from sqlalchemy.orm import Session

from ..auth import Principal, get_principal
from ..db import get_db
from ..enums import ListingStatus
from ..models import Project
from ..schemas import ApproveIn, DecisionIn, FloorCreate, FloorOut, ProjectCreate, ProjectOut, ProjectUpdate, RejectIn
from ..services import listings, project_structure
from ..services.tenancy import (
    PageParams,
    ProjectFilters,
    apply_project_filters,
    page_params,
    paginate,
    project_order,
    scope_listings,
)

router = APIRouter(prefix="/projects", tags=["projects"])


def project_out(row: Project) -> dict:
    return ProjectOut.model_validate(row, from_attributes=True).model_dump(mode="json")


def floor_out(row) -> dict:
    return FloorOut.model_validate(row, from_attributes=True).model_dump(mode="json")


@router.get("", response_model=dict)
def list_projects(
    search: Optional[str] = None,
    status: Optional[ListingStatus] = None,
    agent_id: Optional[int] = None,
    agency_id: Optional[int] = None,
    params: PageParams = Depends(page_params),
    db: Session = Depends(get_db),
    p: Principal = Depends(get_principal),
):
    f = ProjectFilters(search=search, status=status.value if status else None, agent_id=agent_id)
    stmt = scope_listings(select(Project), Project, p, requested_agency_id=agency_id)
    stmt = apply_project_filters(stmt, f)
    return paginate(db, stmt, params, order_by=project_order(), serialize=project_out)


@router.post("", response_model=dict, status_code=201)
def create_project(payload: ProjectCreate, db: Session = Depends(get_db), p: Principal = Depends(get_principal)):
    data = payload.model_dump(mode="json")
    floors = data.pop("floors", [])
    row = project_structure.create_project_with_structure(db, p, data, floors)
    return {"project": project_out(row), "message": "Project created and sent for approval"}


# -------------------- Approval queue --------------------

@router.get("/approve", response_model=dict)
def pending_projects(
    params: PageParams = Depends(page_params),
    db: Session = Depends(get_db),
    p: Principal = Depends(get_principal),
):
    return listings.list_pending(db, Project, p, params, serialize=project_out)


@router.post("/approve", response_model=dict)
def decide_project(payload: DecisionIn, db: Session = Depends(get_db), p: Principal = Depends(get_principal)):
    row = listings.decide_listing(
        db,
        Project,
        p,
        listing_id=payload.id,
        status=payload.status.value,
        rejection_reason=payload.rejection_reason,
        expected_version=payload.expected_version,
    )
    verb = "approved" if row.status == ListingStatus.APPROVED.value else "rejected"
    return {"project": project_out(row), "message": f"Project {verb}"}


# -------------------- Single project --------------------

@router.get("/{project_id}", response_model=dict)
def get_project(project_id: int, db: Session = Depends(get_db), p: Principal = Depends(get_principal)):
    row = listings.get_listing(db, Project, project_id, p)
    return {"project": project_out(row)}


@router.put("/{project_id}", response_model=dict)
def update_project(
    project_id: int,
    payload: ProjectUpdate,
    db: Session = Depends(get_db),
    p: Principal = Depends(get_principal),
):
    changes = payload.model_dump(mode="json", exclude_unset=True)
    expected_version = changes.pop("expected_version", None)
    row = listings.update_listing(db, Project, project_id, p, changes, expected_version=expected_version)
    return {"project": project_out(row), "message": "Project updated"}


@router.delete("/{project_id}", response_model=dict)
def delete_project(project_id: int, db: Session = Depends(get_db), p: Principal = Depends(get_principal)):
    listings.delete_listing(db, Project, project_id, p)
    return {"ok": True, "message": "Project deleted"}


@router.post("/{project_id}/approve", response_model=dict)
def approve_project(
    project_id: int,
    payload: Optional[ApproveIn] = None,
    db: Session = Depends(get_db),
    p: Principal = Depends(get_principal),
):
    row = listings.approve_listing(
        db, Project, project_id, p, expected_version=payload.expected_version if payload else None
    )
    return {"project": project_out(row), "message": "Project approved"}


@router.post("/{project_id}/reject", response_model=dict)
def reject_project(
    project_id: int,
    payload: RejectIn,
    db: Session = Depends(get_db),
    p: Principal = Depends(get_principal),
):
    row = listings.reject_listing(
        db, Project, project_id, p, payload.rejection_message, expected_version=payload.expected_version
    )
    return {"project": project_out(row), "message": "Project rejected"}


@router.post("/{project_id}/resend", response_model=dict)
def resend_project(project_id: int, db: Session = Depends(get_db), p: Principal = Depends(get_principal)):
    row = listings.resubmit_listing(db, Project, project_id, p)
    return {"project": project_out(row), "message": "Project resubmitted for approval"}


# -------------------- Floors --------------------

@router.get("/{project_id}/floors", response_model=dict)
def list_project_floors(project_id: int, db: Session = Depends(get_db), p: Principal = Depends(get_principal)):
    rows = project_structure.list_floors(db, project_id, p)
    return {"floors": [floor_out(r) for r in rows]}


@router.post("/{project_id}/floors", response_model=dict, status_code=201)
def add_project_floor(
    project_id: int,
    payload: FloorCreate,
    db: Session = Depends(get_db),
    p: Principal = Depends(get_principal),
):
    row = project_structure.create_floor(db, project_id, p, number=payload.number, name=payload.name)
    return {"floor": floor_out(row), "message": "Floor created"}
