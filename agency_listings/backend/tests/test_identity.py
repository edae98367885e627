# backend/tests/test_identity.py
from __future__ import annotations

from datetime import datetime, timedelta, timezone

import jwt

from app.auth import Identity, resolve_identity
from app.config import settings
from app.models import User

from conftest import auth


def _token(sub: str, *, secret: str | None = None, **claims) -> str:
    payload = {"sub": sub, "email": f"{sub}@idp.local", **claims}
    return jwt.encode(payload, secret or settings.auth_jwt_secret, algorithm="HS256")


def test_anonymous_is_401(client):
    resp = client.get("/api/auth/me")
    assert resp.status_code == 401
    assert resp.json()["error_code"] == "NOT_AUTHENTICATED"


def test_dev_headers_resolve_profile(client, world):
    resp = client.get("/api/auth/me", headers=auth(world["admin1"]))
    assert resp.status_code == 200
    body = resp.json()
    assert body["role"] == "AGENCY_ADMIN"
    assert body["agency_id"] == world["ag1"].id
    assert body["user_id"] == world["admin1"].id


def test_unknown_identity_is_401_without_provisioning(client, db):
    resp = client.get("/api/auth/me", headers={"X-Auth-User-Id": "ghost"})
    assert resp.status_code == 401
    assert db.query(User).count() == 0


def test_bearer_token_verified_with_shared_secret(client, world):
    ext = world["a1"].external_auth_id
    ok = client.get("/api/auth/me", headers={"Authorization": f"Bearer {_token(ext)}"})
    assert ok.status_code == 200
    assert ok.json()["user_id"] == world["a1"].id

    forged = client.get("/api/auth/me", headers={"Authorization": f"Bearer {_token(ext, secret='nope')}"})
    assert forged.status_code == 401

    expired = _token(ext, exp=datetime.now(timezone.utc) - timedelta(minutes=5))
    assert client.get("/api/auth/me", headers={"Authorization": f"Bearer {expired}"}).status_code == 401


def test_bad_token_is_not_rescued_by_dev_headers(client, world):
    headers = {**auth(world["a1"]), "Authorization": "Bearer not-a-jwt"}
    assert client.get("/api/auth/me", headers=headers).status_code == 401


def test_optional_principal_session_endpoint(client, world):
    anon = client.get("/api/auth/session").json()
    assert anon == {"authenticated": False, "principal": None}

    signed_in = client.get("/api/auth/session", headers=auth(world["a1"])).json()
    assert signed_in["authenticated"] is True
    assert signed_in["principal"]["role"] == "AGENT"

    assert client.get("/api/auth/session", headers={"X-Auth-User-Id": "ghost"}).status_code == 401


def test_resolve_identity_reports_reasons(db, factory, world):
    assert resolve_identity(db, None) == (None, "missing_identity")
    assert resolve_identity(db, Identity("ghost")) == (None, "unknown_user")

    inactive = factory.agent(world["ag1"], active=False)
    assert resolve_identity(db, Identity(inactive.external_auth_id)) == (None, "inactive")

    user, err = resolve_identity(db, Identity(world["a1"].external_auth_id))
    assert err is None
    assert user.id == world["a1"].id


def test_auto_provision_requires_default_agency(db, monkeypatch):
    monkeypatch.setattr(settings, "auto_provision_profiles", True)
    monkeypatch.setattr(settings, "default_profile_agency_id", None)

    assert resolve_identity(db, Identity("newcomer", "new@idp.local")) == (None, "no_default_agency")
    assert db.query(User).count() == 0


def test_auto_provision_uses_configured_policy(db, factory, monkeypatch):
    agency = factory.agency("Agencia Provision")
    monkeypatch.setattr(settings, "auto_provision_profiles", True)
    monkeypatch.setattr(settings, "default_profile_role", "AGENT")
    monkeypatch.setattr(settings, "default_profile_agency_id", agency.id)

    user, err = resolve_identity(db, Identity("newcomer", "new@idp.local"))
    assert err is None
    assert (user.role, user.agency_id, user.email) == ("AGENT", agency.id, "new@idp.local")

    again, _ = resolve_identity(db, Identity("newcomer"))
    assert again.id == user.id
