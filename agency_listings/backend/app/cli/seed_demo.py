# backend/app/cli/seed_demo.py
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional

from sqlalchemy.orm import Session

from app.db import SessionLocal, init_db
from app.enums import ListingStatus, Role
from app.models import Agency, Floor, Project, Property, Quadrant, User


@dataclass(frozen=True)
class SeedResult:
    super_admin_auth_id: str
    agencies: list[str] = field(default_factory=list)
    property_ids: list[int] = field(default_factory=list)
    project_id: Optional[int] = None


def _get_or_create_agency(db: Session, name: str, **extra) -> Agency:
    row = db.query(Agency).filter(Agency.name == name).one_or_none()
    if row:
        return row
    now = datetime.utcnow()
    row = Agency(name=name, active=True, created_at=now, updated_at=now, **extra)
    db.add(row)
    db.commit()
    db.refresh(row)
    return row


def _get_or_create_user(
    db: Session,
    external_auth_id: str,
    *,
    email: str,
    first_name: str,
    last_name: str,
    role: Role,
    agency_id: Optional[int],
) -> User:
    row = db.query(User).filter(User.external_auth_id == external_auth_id).one_or_none()
    if row:
        return row
    now = datetime.utcnow()
    row = User(
        external_auth_id=external_auth_id,
        email=email,
        first_name=first_name,
        last_name=last_name,
        role=role.value,
        agency_id=agency_id,
        active=True,
        created_at=now,
        updated_at=now,
    )
    db.add(row)
    db.commit()
    db.refresh(row)
    return row


def _get_or_create_property(db: Session, agent: User, title: str, status: ListingStatus, *, price: float) -> Property:
    row = db.query(Property).filter(Property.agent_id == agent.id, Property.title == title).one_or_none()
    if row:
        return row
    now = datetime.utcnow()
    row = Property(
        title=title,
        description=f"{title}: listing seeded for local development and demos.",
        property_type="HOUSE",
        transaction_type="SALE",
        status=status.value,
        rejection_message="Fotos de baja calidad" if status is ListingStatus.REJECTED else None,
        agent_id=agent.id,
        agency_id=agent.agency_id,
        price=price,
        currency="DOLLARS",
        location_state="Santa Cruz",
        location_city="Santa Cruz de la Sierra",
        location_neigh="Equipetrol",
        address="Av. San Martin 1234, Equipetrol",
        bedrooms=3,
        bathrooms=2,
        garage_spaces=1,
        square_meters=180.0,
        images=[],
        videos=[],
        features=["patio"],
        created_at=now,
        updated_at=now,
    )
    db.add(row)
    db.commit()
    db.refresh(row)
    return row


def _get_or_create_project(db: Session, agent: User, name: str) -> Project:
    row = db.query(Project).filter(Project.agent_id == agent.id, Project.name == name).one_or_none()
    if row:
        return row
    now = datetime.utcnow()
    row = Project(
        name=name,
        description="Edificio de departamentos en preventa.",
        location="Av. Beni, 3er anillo",
        images=[],
        status=ListingStatus.APPROVED.value,
        active=True,
        agent_id=agent.id,
        agency_id=agent.agency_id,
        created_at=now,
        updated_at=now,
    )
    db.add(row)
    db.flush()

    for number in (1, 2):
        floor = Floor(project_id=row.id, number=number, name=f"Piso {number}", quadrant_seq=2, created_at=now, updated_at=now)
        db.add(floor)
        db.flush()
        for seq in (1, 2):
            db.add(
                Quadrant(
                    floor_id=floor.id,
                    custom_id=f"Q{seq:03d}",
                    area=75.0 + seq * 10,
                    bedrooms=seq + 1,
                    bathrooms=1,
                    price=85000.0 + seq * 5000,
                    currency="DOLLARS",
                    created_at=now,
                    updated_at=now,
                )
            )
    db.commit()
    db.refresh(row)
    return row


def seed_demo(
    *,
    super_admin_auth_id: str = "demo-super-admin",
    agency_names: tuple[str, ...] = ("Agencia Norte", "Agencia Sur"),
    create_listings: bool = True,
) -> SeedResult:
    """
    Idempotent demo dataset:
      - one SUPER_ADMIN
      - per agency: one AGENCY_ADMIN and one AGENT
      - per agent: one property in each status, and one project for the first agency
    Dev-mode identities are the external_auth_id values (X-Auth-User-Id header).
    """
    init_db()
    db = SessionLocal()
    try:
        _get_or_create_user(
            db,
            super_admin_auth_id,
            email="admin@demo.local",
            first_name="Super",
            last_name="Admin",
            role=Role.SUPER_ADMIN,
            agency_id=None,
        )

        property_ids: list[int] = []
        project_id: Optional[int] = None
        for idx, name in enumerate(agency_names, start=1):
            agency = _get_or_create_agency(db, name, email=f"contacto{idx}@demo.local")
            _get_or_create_user(
                db,
                f"demo-admin-{idx}",
                email=f"admin{idx}@demo.local",
                first_name="Admin",
                last_name=name,
                role=Role.AGENCY_ADMIN,
                agency_id=agency.id,
            )
            agent = _get_or_create_user(
                db,
                f"demo-agent-{idx}",
                email=f"agent{idx}@demo.local",
                first_name="Agent",
                last_name=name,
                role=Role.AGENT,
                agency_id=agency.id,
            )
            if not create_listings:
                continue

            for n, status in enumerate(ListingStatus, start=1):
                row = _get_or_create_property(
                    db, agent, f"Casa {name} {status.value.title()}", status, price=100000.0 * n
                )
                property_ids.append(int(row.id))
            if idx == 1:
                project_id = int(_get_or_create_project(db, agent, "Torre Demo").id)

        return SeedResult(
            super_admin_auth_id=super_admin_auth_id,
            agencies=list(agency_names),
            property_ids=property_ids,
            project_id=project_id,
        )
    finally:
        db.close()
