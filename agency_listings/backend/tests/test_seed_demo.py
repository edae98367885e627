# backend/tests/test_seed_demo.py
from __future__ import annotations

from sqlalchemy import func, select

from app.cli.seed_demo import seed_demo
from app.models import Floor, Project, Property, User

from conftest import quadrant_payload


def test_seed_is_idempotent(db):
    first = seed_demo()
    second = seed_demo()

    assert first == second
    assert len(first.property_ids) == 6
    assert db.scalar(select(func.count()).select_from(User)) == 5
    assert db.scalar(select(func.count()).select_from(Property)) == 6
    assert db.scalar(select(func.count()).select_from(Project)) == 1


def test_seeded_identities_work_through_the_api(client, db):
    out = seed_demo(agency_names=("Agencia Demo",))

    mine = client.get("/api/properties", headers={"X-Auth-User-Id": "demo-agent-1"}).json()
    assert {p["status"] for p in mine["items"]} == {"PENDING", "APPROVED", "REJECTED"}

    queue = client.get("/api/properties/approve", headers={"X-Auth-User-Id": "demo-admin-1"}).json()
    assert queue["total"] == 1

    # seeded floors already issued Q001/Q002
    floor = db.scalar(select(Floor).where(Floor.project_id == out.project_id, Floor.number == 1))
    resp = client.post(
        f"/api/floors/{floor.id}/quadrants",
        json=quadrant_payload(),
        headers={"X-Auth-User-Id": "demo-agent-1"},
    )
    assert resp.status_code == 201, resp.text
    assert resp.json()["quadrant"]["custom_id"] == "Q003"


def test_seed_without_listings(db):
    out = seed_demo(create_listings=False)
    assert out.property_ids == [] and out.project_id is None
    assert db.scalar(select(func.count()).select_from(Property)) == 0
