# backend/tests/test_public_catalog.py
from __future__ import annotations

from app.enums import ListingStatus


def test_public_properties_only_show_approved(client, factory, world):
    a1 = world["a1"]
    approved = factory.property(a1, ListingStatus.APPROVED, title="Casa aprobada")
    factory.property(a1, ListingStatus.PENDING)
    factory.property(a1, ListingStatus.REJECTED)

    for query in ("", "?status=PENDING", "?status=REJECTED", f"?agent_id={a1.id}"):
        resp = client.get(f"/api/public/properties{query}")
        assert resp.status_code == 200
        items = resp.json()["items"]
        assert [p["id"] for p in items] == [approved.id], query
        assert all(p["status"] == "APPROVED" for p in items)


def test_public_property_detail_hides_unapproved(client, factory, world):
    pending = factory.property(world["a1"])
    approved = factory.property(world["a1"], ListingStatus.APPROVED)

    assert client.get(f"/api/public/properties/{pending.id}").status_code == 404
    resp = client.get(f"/api/public/properties/{approved.id}")
    assert resp.status_code == 200
    assert resp.json()["property"]["agency"]["name"] == "Agencia Norte"


def test_public_filters_narrow_the_catalog(client, factory, world):
    factory.property(world["a1"], ListingStatus.APPROVED, price=80000, bedrooms=2, location_city="Cochabamba")
    big = factory.property(world["a2"], ListingStatus.APPROVED, price=300000, bedrooms=5, title="Mansion en Urubo")

    resp = client.get("/api/public/properties?min_price=100000&min_bedrooms=4")
    assert [p["id"] for p in resp.json()["items"]] == [big.id]

    resp = client.get("/api/public/properties?search=urubo")
    assert [p["id"] for p in resp.json()["items"]] == [big.id]

    resp = client.get("/api/public/properties?sort_by=price&sort_order=asc")
    assert [p["price"] for p in resp.json()["items"]] == [80000, 300000]


def test_public_projects_require_approved_and_active(client, factory, world):
    live = factory.project(world["a1"], ListingStatus.APPROVED)
    hidden = factory.project(world["a1"], ListingStatus.APPROVED, active=False)
    factory.project(world["a1"], ListingStatus.PENDING)

    resp = client.get("/api/public/projects")
    assert [p["id"] for p in resp.json()["items"]] == [live.id]
    assert client.get(f"/api/public/projects/{hidden.id}").status_code == 404
    assert client.get(f"/api/public/projects/{live.id}").status_code == 200


def test_public_catalog_needs_no_identity(client):
    resp = client.get("/api/public/properties")
    assert resp.status_code == 200
    assert resp.json() == {"items": [], "total": 0, "page": 1, "limit": 20, "total_pages": 0}
