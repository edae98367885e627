# backend/tests/test_agencies_and_users.py
from __future__ import annotations

from sqlalchemy import func, select

from app.models import Agency, Floor, Project, Property, Quadrant, User

from conftest import auth


def _count(db, model, *where) -> int:
    db.expire_all()
    return int(db.scalar(select(func.count()).select_from(model).where(*where)))


# -------------------- Agencies --------------------

def test_agency_name_is_unique(client, world):
    headers = auth(world["super"])
    first = client.post("/api/agencies", json={"name": "Agencia Centro"}, headers=headers)
    assert first.status_code == 201
    assert first.json()["agency"]["name"] == "Agencia Centro"

    dup = client.post("/api/agencies", json={"name": "Agencia Centro"}, headers=headers)
    assert dup.status_code == 400
    assert dup.json()["error_code"] == "VALIDATION_ERROR"

    # renaming onto an existing name is refused too
    other = world["ag1"]
    clash = client.put(f"/api/agencies/{other.id}", json={"name": "agencia centro"}, headers=headers)
    assert clash.status_code == 400


def test_agencies_are_super_admin_only(client, world):
    for who in ("admin1", "a1"):
        headers = auth(world[who])
        assert client.get("/api/agencies", headers=headers).status_code == 403
        assert client.post("/api/agencies", json={"name": "Agencia Pirata"}, headers=headers).status_code == 403


def test_agency_list_search_and_paging(client, world):
    resp = client.get("/api/agencies?search=norte", headers=auth(world["super"]))
    body = resp.json()
    assert body["total"] == 1
    assert body["items"][0]["name"] == "Agencia Norte"
    assert body["page"] == 1


def test_agency_delete_cascades_in_one_go(client, db, factory, world):
    ag1, a1 = world["ag1"], world["a1"]
    factory.property(a1)
    project = factory.project(a1)
    floor = factory.floor(project, 1)
    client.post(
        f"/api/floors/{floor.id}/quadrants",
        json={"area": 50, "price": 40000},
        headers=auth(a1),
    )
    survivor = factory.property(world["a2"])

    resp = client.delete(f"/api/agencies/{ag1.id}", headers=auth(world["super"]))
    assert resp.status_code == 200, resp.text
    assert resp.json()["deleted"] == {"properties": 1, "projects": 1, "users": 3}

    assert _count(db, Agency, Agency.id == ag1.id) == 0
    assert _count(db, User, User.agency_id == ag1.id) == 0
    assert _count(db, Property) == 1
    assert _count(db, Project) == 0
    assert _count(db, Floor) == 0
    assert _count(db, Quadrant) == 0
    assert db.get(Property, survivor.id) is not None


def test_delete_missing_agency_is_not_found(client, world):
    assert client.delete("/api/agencies/9999", headers=auth(world["super"])).status_code == 404


# -------------------- Own agency profile --------------------

def test_agency_admin_edits_own_agency_contact(client, world):
    headers = auth(world["admin1"])
    resp = client.put("/api/profile/agency", json={"phone": "+591 70000000", "name": "Hijacked"}, headers=headers)
    assert resp.status_code == 200
    agency = resp.json()["agency"]
    assert agency["phone"] == "+591 70000000"
    assert agency["name"] == "Agencia Norte"

    assert client.get("/api/profile/agency", headers=auth(world["a1"])).status_code == 403


def test_profile_view_and_edit(client, world):
    headers = auth(world["a1"])
    me = client.get("/api/profile", headers=headers).json()["user"]
    assert me["agency"]["name"] == "Agencia Norte"

    resp = client.put("/api/profile", json={"first_name": "Lucia", "role": "SUPER_ADMIN"}, headers=headers)
    assert resp.status_code == 200
    assert resp.json()["user"]["first_name"] == "Lucia"
    assert resp.json()["user"]["role"] == "AGENT"


# -------------------- Users --------------------

def test_agency_admin_creates_users_only_in_own_agency(client, world):
    headers = auth(world["admin1"])

    ok = client.post("/api/users", json={"external_auth_id": "new-agent", "role": "AGENT"}, headers=headers)
    assert ok.status_code == 201, ok.text
    assert ok.json()["user"]["agency_id"] == world["ag1"].id

    elsewhere = client.post(
        "/api/users",
        json={"external_auth_id": "x-agent", "role": "AGENT", "agency_id": world["ag2"].id},
        headers=headers,
    )
    assert elsewhere.status_code == 403

    escalate = client.post("/api/users", json={"external_auth_id": "boss", "role": "SUPER_ADMIN"}, headers=headers)
    assert escalate.status_code == 403


def test_super_admin_user_creation_checks_agency(client, world):
    headers = auth(world["super"])
    no_agency = client.post("/api/users", json={"external_auth_id": "u1", "role": "AGENT"}, headers=headers)
    assert no_agency.status_code == 400

    missing = client.post("/api/users", json={"external_auth_id": "u2", "role": "AGENT", "agency_id": 9999}, headers=headers)
    assert missing.status_code == 404

    super_with_agency = client.post(
        "/api/users",
        json={"external_auth_id": "u3", "role": "SUPER_ADMIN", "agency_id": world["ag1"].id},
        headers=headers,
    )
    assert super_with_agency.status_code == 400

    dup = client.post(
        "/api/users",
        json={"external_auth_id": world["a1"].external_auth_id, "role": "AGENT", "agency_id": world["ag1"].id},
        headers=headers,
    )
    assert dup.status_code == 400


def test_user_listing_is_scoped(client, world):
    body = client.get("/api/users", headers=auth(world["admin1"])).json()
    assert {u["agency_id"] for u in body["items"]} == {world["ag1"].id}
    assert body["total"] == 3

    assert client.get(f"/api/users/{world['a2'].id}", headers=auth(world["admin1"])).status_code == 404
    assert client.get("/api/users", headers=auth(world["a1"])).status_code == 403


def test_agency_admin_cannot_promote_or_move_users(client, world):
    headers = auth(world["admin1"])
    target = world["a1"].id
    assert client.put(f"/api/users/{target}", json={"role": "SUPER_ADMIN"}, headers=headers).status_code == 403
    assert client.put(f"/api/users/{target}", json={"agency_id": world["ag2"].id}, headers=headers).status_code == 403

    ok = client.put(f"/api/users/{target}", json={"role": "AGENCY_ADMIN", "phone": "70011122"}, headers=headers)
    assert ok.status_code == 200
    assert ok.json()["user"]["role"] == "AGENCY_ADMIN"


def test_deactivated_user_loses_access(client, world):
    target = world["a1"]
    resp = client.put(f"/api/users/{target.id}", json={"active": False}, headers=auth(world["admin1"]))
    assert resp.status_code == 200
    assert client.get("/api/properties", headers=auth(target)).status_code == 401


def test_user_delete_rules(client, factory, world):
    admin1 = auth(world["admin1"])

    assert client.delete(f"/api/users/{world['admin1'].id}", headers=admin1).status_code == 400

    other_admin = factory.agency_admin(world["ag1"])
    assert client.delete(f"/api/users/{other_admin.id}", headers=admin1).status_code == 403

    factory.property(world["a1"])
    owns = client.delete(f"/api/users/{world['a1'].id}", headers=admin1)
    assert owns.status_code == 409
    assert owns.json()["details"]["listings"] == 1

    assert client.delete(f"/api/users/{world['a1b'].id}", headers=admin1).status_code == 200
    assert client.delete(f"/api/users/{world['a2'].id}", headers=admin1).status_code == 404
