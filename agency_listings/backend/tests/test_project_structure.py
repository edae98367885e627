# backend/tests/test_project_structure.py
from __future__ import annotations

from sqlalchemy import func, select

from app.models import Floor, Project, Quadrant

from conftest import auth, project_payload, quadrant_payload


def _count(db, model) -> int:
    db.expire_all()
    return int(db.scalar(select(func.count()).select_from(model)))


def test_duplicate_floor_number_rejected(client, world):
    headers = auth(world["a1"])
    resp = client.post("/api/projects", json=project_payload(floors=[{"number": 1}]), headers=headers)
    assert resp.status_code == 201, resp.text
    project_id = resp.json()["project"]["id"]

    dup = client.post(f"/api/projects/{project_id}/floors", json={"number": 1}, headers=headers)
    assert dup.status_code == 400
    assert dup.json()["error_code"] == "VALIDATION_ERROR"

    ok = client.post(f"/api/projects/{project_id}/floors", json={"number": 2, "name": "Piso 2"}, headers=headers)
    assert ok.status_code == 201
    assert ok.json()["floor"]["number"] == 2

    floors = client.get(f"/api/projects/{project_id}/floors", headers=headers).json()["floors"]
    assert [f["number"] for f in floors] == [1, 2]


def test_composite_create_builds_structure_and_ids(client, world):
    body = project_payload(
        floors=[
            {"number": 1, "quadrants": [quadrant_payload(), quadrant_payload(area=120)]},
            {"number": 2, "quadrants": [quadrant_payload()]},
        ]
    )
    resp = client.post("/api/projects", json=body, headers=auth(world["a1"]))
    assert resp.status_code == 201, resp.text
    project = resp.json()["project"]
    assert project["status"] == "PENDING"
    assert project["agency_id"] == world["ag1"].id

    by_number = {f["number"]: f for f in project["floors"]}
    assert [q["custom_id"] for q in by_number[1]["quadrants"]] == ["Q001", "Q002"]
    assert [q["custom_id"] for q in by_number[2]["quadrants"]] == ["Q001"]


def test_composite_create_rolls_back_everything(client, db, world):
    body = project_payload(
        floors=[
            {"number": 1, "quadrants": [quadrant_payload()]},
            {"number": 1, "quadrants": [quadrant_payload()]},
        ]
    )
    resp = client.post("/api/projects", json=body, headers=auth(world["a1"]))
    assert resp.status_code == 400

    assert _count(db, Project) == 0
    assert _count(db, Floor) == 0
    assert _count(db, Quadrant) == 0


def test_quadrant_ids_increase_and_are_never_reused(client, factory, world):
    project = factory.project(world["a1"])
    floor = factory.floor(project, 1)
    headers = auth(world["a1"])

    ids = []
    for _ in range(3):
        resp = client.post(f"/api/floors/{floor.id}/quadrants", json=quadrant_payload(), headers=headers)
        assert resp.status_code == 201
        ids.append((resp.json()["quadrant"]["id"], resp.json()["quadrant"]["custom_id"]))
    assert [c for _, c in ids] == ["Q001", "Q002", "Q003"]

    # drop the newest one; its number must not come back
    assert client.delete(f"/api/quadrants/{ids[-1][0]}", headers=headers).status_code == 200
    nxt = client.post(f"/api/floors/{floor.id}/quadrants", json=quadrant_payload(), headers=headers)
    assert nxt.json()["quadrant"]["custom_id"] == "Q004"

    listed = client.get(f"/api/floors/{floor.id}/quadrants", headers=headers).json()["quadrants"]
    assert [q["custom_id"] for q in listed] == ["Q001", "Q002", "Q004"]


def test_quadrant_custom_id_cannot_be_supplied_or_edited(client, factory, world):
    project = factory.project(world["a1"])
    floor = factory.floor(project, 1)
    headers = auth(world["a1"])

    created = client.post(
        f"/api/floors/{floor.id}/quadrants", json=quadrant_payload(custom_id="A-1"), headers=headers
    ).json()["quadrant"]
    assert created["custom_id"] == "Q001"

    updated = client.put(
        f"/api/quadrants/{created['id']}", json={"custom_id": "Z9", "status": "RESERVED"}, headers=headers
    ).json()["quadrant"]
    assert updated["custom_id"] == "Q001"
    assert updated["status"] == "RESERVED"


def test_structure_mutations_are_owner_only(client, factory, world):
    project = factory.project(world["a1"])
    floor = factory.floor(project, 1)

    # super admin and agency admin can see, but not change, the structure
    for who in ("super", "admin1"):
        headers = auth(world[who])
        assert client.get(f"/api/projects/{project.id}/floors", headers=headers).status_code == 200
        assert client.post(f"/api/projects/{project.id}/floors", json={"number": 2}, headers=headers).status_code == 403
        assert client.put(f"/api/floors/{floor.id}", json={"name": "x"}, headers=headers).status_code == 403
        assert client.post(f"/api/floors/{floor.id}/quadrants", json=quadrant_payload(), headers=headers).status_code == 403

    # a peer agent cannot even see it
    peer = auth(world["a1b"])
    assert client.get(f"/api/floors/{floor.id}/quadrants", headers=peer).status_code == 404
    assert client.delete(f"/api/floors/{floor.id}", headers=peer).status_code == 404


def test_floor_renumber_checks_uniqueness(client, factory, world):
    project = factory.project(world["a1"])
    f1 = factory.floor(project, 1)
    factory.floor(project, 2)
    headers = auth(world["a1"])

    assert client.put(f"/api/floors/{f1.id}", json={"number": 2}, headers=headers).status_code == 400
    resp = client.put(f"/api/floors/{f1.id}", json={"number": 3, "name": "Terraza"}, headers=headers)
    assert resp.status_code == 200
    assert resp.json()["floor"]["number"] == 3


def test_floor_delete_cascades_quadrants(client, db, factory, world):
    project = factory.project(world["a1"])
    floor = factory.floor(project, 1)
    headers = auth(world["a1"])
    client.post(f"/api/floors/{floor.id}/quadrants", json=quadrant_payload(), headers=headers)

    assert client.delete(f"/api/floors/{floor.id}", headers=headers).status_code == 200
    assert _count(db, Floor) == 0
    assert _count(db, Quadrant) == 0


def test_project_delete_cascades_structure(client, db, world):
    body = project_payload(floors=[{"number": 1, "quadrants": [quadrant_payload()]}])
    project_id = client.post("/api/projects", json=body, headers=auth(world["a1"])).json()["project"]["id"]

    assert client.delete(f"/api/projects/{project_id}", headers=auth(world["admin1"])).status_code == 200
    assert _count(db, Project) == 0
    assert _count(db, Floor) == 0
    assert _count(db, Quadrant) == 0


def test_floor_number_must_be_positive(client, factory, world):
    project = factory.project(world["a1"])
    resp = client.post(f"/api/projects/{project.id}/floors", json={"number": 0}, headers=auth(world["a1"]))
    assert resp.status_code == 400
    assert resp.json()["details"]["fields"][0]["field"] == "number"


def test_floor_quadrants_keep_creation_order_past_q999(client, db, factory, world):
    project = factory.project(world["a1"])
    floor = factory.floor(project, 1)
    floor.quadrant_seq = 998
    db.commit()
    headers = auth(world["a1"])

    for _ in range(2):
        client.post(f"/api/floors/{floor.id}/quadrants", json=quadrant_payload(), headers=headers)

    floors = client.get(f"/api/projects/{project.id}/floors", headers=headers).json()["floors"]
    assert [q["custom_id"] for q in floors[0]["quadrants"]] == ["Q999", "Q1000"]


def test_null_quadrant_price_is_validation_error(client, factory, world):
    project = factory.project(world["a1"])
    floor = factory.floor(project, 1)
    headers = auth(world["a1"])
    quadrant = client.post(f"/api/floors/{floor.id}/quadrants", json=quadrant_payload(), headers=headers).json()["quadrant"]

    resp = client.put(f"/api/quadrants/{quadrant['id']}", json={"price": None}, headers=headers)
    assert resp.status_code == 400
    assert resp.json()["details"]["fields"] == [{"field": "price", "message": "price cannot be null"}]
