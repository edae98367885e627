# backend/tests/test_tenancy_isolation.py
from __future__ import annotations

import pytest

from app.enums import ListingStatus
from app.models import Property

from conftest import auth, fresh, property_payload


def _ids(resp) -> set[int]:
    assert resp.status_code == 200, resp.text
    return {item["id"] for item in resp.json()["items"]}


def test_agency_admin_list_never_leaks_other_agency(client, factory, world):
    mine = factory.property(world["a1"])
    other = factory.property(world["a2"])
    factory.property(world["a2"], ListingStatus.APPROVED)

    admin1 = auth(world["admin1"])
    assert _ids(client.get("/api/properties", headers=admin1)) == {mine.id}

    # an explicit agency filter cannot widen an agency admin's scope
    resp = client.get(f"/api/properties?agency_id={world['ag2'].id}", headers=admin1)
    assert other.id not in _ids(resp)

    # neither can narrowing by another agency's agent
    resp = client.get(f"/api/properties?agent_id={world['a2'].id}&status=PENDING", headers=admin1)
    assert _ids(resp) == set()


@pytest.mark.parametrize("path", ["", "/approve", "/reject"])
def test_agency_admin_cross_agency_single_row_is_not_found(client, factory, world, path):
    other = factory.property(world["a2"])
    headers = auth(world["admin1"])
    if path == "":
        resp = client.get(f"/api/properties/{other.id}", headers=headers)
    else:
        resp = client.post(f"/api/properties/{other.id}{path}", json={"rejection_message": "no"}, headers=headers)
    assert resp.status_code == 404
    assert resp.json()["error_code"] == "NOT_FOUND"


def test_cross_agency_approval_leaves_row_untouched(client, db, factory, world):
    other = factory.property(world["a2"])
    resp = client.post(
        "/api/properties/approve",
        json={"id": other.id, "status": "APPROVED"},
        headers=auth(world["admin1"]),
    )
    assert resp.status_code == 404
    assert fresh(db, Property, other.id).status == "PENDING"


def test_agent_sees_only_own_listings(client, factory, world):
    own = factory.property(world["a1"])
    factory.property(world["a1b"])
    factory.property(world["a2"])

    headers = auth(world["a1"])
    assert _ids(client.get("/api/properties", headers=headers)) == {own.id}
    assert _ids(client.get(f"/api/properties?agent_id={world['a1b'].id}", headers=headers)) == set()


def test_agent_cannot_touch_peer_listing_in_same_agency(client, db, factory, world):
    peer_row = factory.property(world["a1b"])
    headers = auth(world["a1"])

    assert client.get(f"/api/properties/{peer_row.id}", headers=headers).status_code == 404
    assert client.put(f"/api/properties/{peer_row.id}", json={"price": 1}, headers=headers).status_code == 404
    assert client.delete(f"/api/properties/{peer_row.id}", headers=headers).status_code == 404

    row = fresh(db, Property, peer_row.id)
    assert row is not None
    assert row.price == 150000


def test_agency_admin_sees_but_cannot_edit(client, factory, world):
    row = factory.property(world["a1"])
    headers = auth(world["admin1"])
    assert client.get(f"/api/properties/{row.id}", headers=headers).status_code == 200

    resp = client.put(f"/api/properties/{row.id}", json={"price": 1}, headers=headers)
    assert resp.status_code == 403
    assert resp.json() == {"error": "Forbidden", "error_code": "FORBIDDEN"}


def test_super_admin_sees_all_and_can_narrow(client, factory, world):
    p1 = factory.property(world["a1"])
    p2 = factory.property(world["a2"])
    headers = auth(world["super"])

    assert _ids(client.get("/api/properties", headers=headers)) == {p1.id, p2.id}
    assert _ids(client.get(f"/api/properties?agency_id={world['ag2'].id}", headers=headers)) == {p2.id}


def test_create_sets_ownership_from_caller(client, world):
    body = property_payload(agency_id=world["ag2"].id, agent_id=world["a2"].id, status="APPROVED")
    resp = client.post("/api/properties", json=body, headers=auth(world["a1"]))
    assert resp.status_code == 201, resp.text
    prop = resp.json()["property"]
    assert prop["status"] == "PENDING"
    assert prop["agency_id"] == world["ag1"].id
    assert prop["agent_id"] == world["a1"].id
    assert prop["rejection_message"] is None


def test_only_agents_with_agency_create(client, world):
    assert client.post("/api/properties", json=property_payload(), headers=auth(world["super"])).status_code == 400
    assert client.post("/api/properties", json=property_payload(), headers=auth(world["admin1"])).status_code == 403


def test_projects_follow_same_scoping(client, factory, world):
    mine = factory.project(world["a1"])
    theirs = factory.project(world["a2"])

    assert _ids(client.get("/api/projects", headers=auth(world["admin1"]))) == {mine.id}
    assert client.get(f"/api/projects/{theirs.id}", headers=auth(world["admin1"])).status_code == 404
    assert client.get(f"/api/projects/{theirs.id}/floors", headers=auth(world["a1"])).status_code == 404
