# backend/tests/conftest.py
from __future__ import annotations

import os
import tempfile
from datetime import datetime, timedelta
from itertools import count
from pathlib import Path
from typing import Generator, Optional

# Point the app at a throwaway SQLite file before anything imports app.config.
_TMP_DIR = Path(tempfile.mkdtemp(prefix="agency_listings_tests_"))
os.environ["DATABASE_URL"] = "sqlite:///" + (_TMP_DIR / "test.db").as_posix()
os.environ["APP_ENV"] = "test"
os.environ["AUTH_MODE"] = "dev"
os.environ["AUTH_JWT_SECRET"] = "test-only-shared-secret-0123456789abcdef0123456789"
os.environ["AUTO_PROVISION_PROFILES"] = "false"
os.environ["CREATE_TABLES_ON_STARTUP"] = "false"

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402
from sqlalchemy.orm import Session  # noqa: E402

from app import models  # noqa: E402,F401
from app.db import Base, SessionLocal, engine  # noqa: E402
from app.enums import ListingStatus, Role  # noqa: E402
from app.main import create_app  # noqa: E402
from app.models import Agency, Floor, Project, Property, Quadrant, User  # noqa: E402


@pytest.fixture(autouse=True)
def _fresh_schema() -> Generator[None, None, None]:
    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)
    yield


@pytest.fixture
def client() -> Generator[TestClient, None, None]:
    with TestClient(create_app()) as c:
        yield c


@pytest.fixture
def db() -> Generator[Session, None, None]:
    s = SessionLocal()
    try:
        yield s
    finally:
        s.close()


def auth(user: User) -> dict[str, str]:
    """Dev-mode identity headers for acting as `user`."""
    h = {"X-Auth-User-Id": str(user.external_auth_id)}
    if user.email:
        h["X-Auth-Email"] = str(user.email)
    return h


def fresh(db: Session, model, pk: int):
    db.expire_all()
    return db.get(model, pk)


def property_payload(**overrides) -> dict:
    body = {
        "title": "Casa en Equipetrol",
        "description": "Casa amplia de tres dormitorios con patio y garaje.",
        "property_type": "HOUSE",
        "transaction_type": "SALE",
        "price": 150000,
        "currency": "DOLLARS",
        "location_state": "Santa Cruz",
        "location_city": "Santa Cruz de la Sierra",
        "location_neigh": "Equipetrol",
        "address": "Calle Los Pinos 245, Equipetrol",
        "bedrooms": 3,
        "bathrooms": 2,
        "garage_spaces": 1,
        "square_meters": 210,
    }
    body.update(overrides)
    return body


def project_payload(**overrides) -> dict:
    body = {
        "name": "Torre Aurora",
        "description": "Edificio residencial de doce pisos en preventa.",
        "location": "Av. Banzer, 4to anillo",
    }
    body.update(overrides)
    return body


def quadrant_payload(**overrides) -> dict:
    body = {"area": 85.5, "bedrooms": 2, "bathrooms": 1, "price": 95000, "currency": "DOLLARS"}
    body.update(overrides)
    return body


class Factory:
    """Direct-to-database builders; each call commits."""

    def __init__(self, db: Session):
        self.db = db
        self._seq = count(1)
        self._clock = datetime.utcnow()

    def _tick(self) -> datetime:
        # strictly increasing timestamps so "oldest first" is deterministic
        self._clock = self._clock + timedelta(seconds=1)
        return self._clock

    def _save(self, row):
        self.db.add(row)
        self.db.commit()
        self.db.refresh(row)
        return row

    def agency(self, name: Optional[str] = None, **kw) -> Agency:
        now = self._tick()
        return self._save(
            Agency(name=name or f"Agencia {next(self._seq)}", active=True, created_at=now, updated_at=now, **kw)
        )

    def user(self, role: Role = Role.AGENT, agency: Optional[Agency] = None, *, active: bool = True, **kw) -> User:
        n = next(self._seq)
        now = self._tick()
        return self._save(
            User(
                external_auth_id=kw.pop("external_auth_id", f"ext-{role.value.lower()}-{n}"),
                email=kw.pop("email", f"user{n}@test.local"),
                first_name=kw.pop("first_name", "Test"),
                last_name=kw.pop("last_name", f"User{n}"),
                role=role.value,
                agency_id=agency.id if agency is not None else None,
                active=active,
                created_at=now,
                updated_at=now,
                **kw,
            )
        )

    def super_admin(self, **kw) -> User:
        return self.user(Role.SUPER_ADMIN, None, **kw)

    def agency_admin(self, agency: Agency, **kw) -> User:
        return self.user(Role.AGENCY_ADMIN, agency, **kw)

    def agent(self, agency: Agency, **kw) -> User:
        return self.user(Role.AGENT, agency, **kw)

    def property(self, agent: User, status: ListingStatus = ListingStatus.PENDING, **kw) -> Property:
        now = self._tick()
        fields = property_payload()
        fields.update(kw)
        message = fields.pop("rejection_message", None)
        if status is ListingStatus.REJECTED and message is None:
            message = "Faltan fotos"
        return self._save(
            Property(
                **fields,
                status=status.value,
                rejection_message=message if status is ListingStatus.REJECTED else None,
                agent_id=agent.id,
                agency_id=agent.agency_id,
                created_at=now,
                updated_at=now,
            )
        )

    def project(self, agent: User, status: ListingStatus = ListingStatus.PENDING, *, active: bool = True, **kw) -> Project:
        now = self._tick()
        fields = project_payload()
        fields.update(kw)
        return self._save(
            Project(
                **fields,
                status=status.value,
                rejection_message="Faltan planos" if status is ListingStatus.REJECTED else None,
                active=active,
                agent_id=agent.id,
                agency_id=agent.agency_id,
                created_at=now,
                updated_at=now,
            )
        )

    def floor(self, project: Project, number: int = 1, name: Optional[str] = None) -> Floor:
        now = self._tick()
        return self._save(Floor(project_id=project.id, number=number, name=name, quadrant_seq=0, created_at=now, updated_at=now))


@pytest.fixture
def factory(db: Session) -> Factory:
    return Factory(db)


@pytest.fixture
def world(factory: Factory) -> dict:
    """
    Two agencies, each with an admin and two agents, plus a platform super admin.
    """
    ag1 = factory.agency("Agencia Norte")
    ag2 = factory.agency("Agencia Sur")
    return {
        "ag1": ag1,
        "ag2": ag2,
        "super": factory.super_admin(),
        "admin1": factory.agency_admin(ag1),
        "admin2": factory.agency_admin(ag2),
        "a1": factory.agent(ag1),
        "a1b": factory.agent(ag1),
        "a2": factory.agent(ag2),
    }
