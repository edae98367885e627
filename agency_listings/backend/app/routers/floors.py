# backend/app/routers/floors.py
from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from ..auth import Principal, get_principal
from ..db import get_db
from ..schemas import FloorOut, FloorUpdate, QuadrantCreate, QuadrantOut, QuadrantUpdate
from ..services import project_structure

router = APIRouter(tags=["floors"])


def _floor(row) -> dict:
    return FloorOut.model_validate(row, from_attributes=True).model_dump(mode="json")


def _quadrant(row) -> dict:
    return QuadrantOut.model_validate(row, from_attributes=True).model_dump(mode="json")


@router.put("/floors/{floor_id}", response_model=dict)
def update_floor(floor_id: int, payload: FloorUpdate, db: Session = Depends(get_db), p: Principal = Depends(get_principal)):
    row = project_structure.update_floor(db, floor_id, p, payload.model_dump(exclude_unset=True))
    return {"floor": _floor(row), "message": "Floor updated"}


@router.delete("/floors/{floor_id}", response_model=dict)
def delete_floor(floor_id: int, db: Session = Depends(get_db), p: Principal = Depends(get_principal)):
    project_structure.delete_floor(db, floor_id, p)
    return {"ok": True, "message": "Floor deleted"}


@router.get("/floors/{floor_id}/quadrants", response_model=dict)
def list_quadrants(floor_id: int, db: Session = Depends(get_db), p: Principal = Depends(get_principal)):
    rows = project_structure.list_quadrants(db, floor_id, p)
    return {"quadrants": [_quadrant(r) for r in rows]}


@router.post("/floors/{floor_id}/quadrants", response_model=dict, status_code=201)
def add_quadrant(floor_id: int, payload: QuadrantCreate, db: Session = Depends(get_db), p: Principal = Depends(get_principal)):
    row = project_structure.create_quadrant(db, floor_id, p, payload.model_dump(mode="json"))
    return {"quadrant": _quadrant(row), "message": "Quadrant created"}


@router.put("/quadrants/{quadrant_id}", response_model=dict)
def update_quadrant(
    quadrant_id: int,
    payload: QuadrantUpdate,
    db: Session = Depends(get_db),
    p: Principal = Depends(get_principal),
):
    row = project_structure.update_quadrant(db, quadrant_id, p, payload.model_dump(mode="json", exclude_unset=True))
    return {"quadrant": _quadrant(row), "message": "Quadrant updated"}


@router.delete("/quadrants/{quadrant_id}", response_model=dict)
def delete_quadrant(quadrant_id: int, db: Session = Depends(get_db), p: Principal = Depends(get_principal)):
    project_structure.delete_quadrant(db, quadrant_id, p)
    return {"ok": True, "message": "Quadrant deleted"}
