# backend/app/models.py
from __future__ import annotations

from datetime import datetime
from typing import List, Optional

from sqlalchemy import (
    JSON,
    Boolean,
    CheckConstraint,
    DateTime,
    Float,
    ForeignKey,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from .db import Base


# -----------------------------
# Tenancy: agencies and users
# -----------------------------
class Agency(Base):
    __tablename__ = "agencies"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    name: Mapped[str] = mapped_column(String(100), nullable=False, unique=True, index=True)
    logo_url: Mapped[Optional[str]] = mapped_column(String(500), nullable=True)
    address: Mapped[Optional[str]] = mapped_column(String(200), nullable=True)
    phone: Mapped[Optional[str]] = mapped_column(String(20), nullable=True)
    email: Mapped[Optional[str]] = mapped_column(String(200), nullable=True)
    active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=datetime.utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=datetime.utcnow, onupdate=datetime.utcnow)

    users: Mapped[List["User"]] = relationship(back_populates="agency")


class User(Base):
    __tablename__ = "users"
    __table_args__ = (
        CheckConstraint(
            "(role = 'SUPER_ADMIN' AND agency_id IS NULL) OR (role <> 'SUPER_ADMIN' AND agency_id IS NOT NULL)",
            name="ck_users_role_agency",
        ),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    # id issued by the external identity provider
    external_auth_id: Mapped[str] = mapped_column(String(200), nullable=False, unique=True, index=True)
    email: Mapped[Optional[str]] = mapped_column(String(200), nullable=True, index=True)
    first_name: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    last_name: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    phone: Mapped[Optional[str]] = mapped_column(String(30), nullable=True)

    role: Mapped[str] = mapped_column(String(20), nullable=False, default="AGENT")  # SUPER_ADMIN|AGENCY_ADMIN|AGENT
    agency_id: Mapped[Optional[int]] = mapped_column(Integer, ForeignKey("agencies.id"), nullable=True, index=True)
    active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=datetime.utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=datetime.utcnow, onupdate=datetime.utcnow)

    agency: Mapped[Optional[Agency]] = relationship(back_populates="users")


class AuditEvent(Base):
    __tablename__ = "audit_events"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    # NULL for platform-level events (agency create/delete by a super admin)
    agency_id: Mapped[Optional[int]] = mapped_column(Integer, nullable=True, index=True)
    actor_user_id: Mapped[Optional[int]] = mapped_column(Integer, nullable=True, index=True)

    action: Mapped[str] = mapped_column(String(80), nullable=False)
    entity_type: Mapped[str] = mapped_column(String(80), nullable=False)
    entity_id: Mapped[str] = mapped_column(String(80), nullable=False)

    before_json: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    after_json: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=datetime.utcnow)


# -----------------------------
# Listings
# -----------------------------
_REJECTION_CHECKS = (
    "status <> 'REJECTED' OR rejection_message IS NOT NULL",
    "status = 'REJECTED' OR rejection_message IS NULL",
)


class Property(Base):
    __tablename__ = "properties"
    __table_args__ = (
        CheckConstraint(_REJECTION_CHECKS[0], name="ck_properties_rejected_has_message"),
        CheckConstraint(_REJECTION_CHECKS[1], name="ck_properties_message_only_when_rejected"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    title: Mapped[str] = mapped_column(String(100), nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False)
    property_type: Mapped[str] = mapped_column(String(20), nullable=False)
    transaction_type: Mapped[str] = mapped_column(String(20), nullable=False)

    status: Mapped[str] = mapped_column(String(20), nullable=False, default="PENDING", index=True)
    rejection_message: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    # ownership is fixed at creation
    agent_id: Mapped[int] = mapped_column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    agency_id: Mapped[int] = mapped_column(Integer, ForeignKey("agencies.id"), nullable=False, index=True)

    price: Mapped[float] = mapped_column(Float, nullable=False)
    currency: Mapped[str] = mapped_column(String(20), nullable=False, default="BOLIVIANOS")

    location_state: Mapped[str] = mapped_column(String(120), nullable=False)
    location_city: Mapped[str] = mapped_column(String(120), nullable=False)
    location_neigh: Mapped[Optional[str]] = mapped_column(String(120), nullable=True)
    address: Mapped[str] = mapped_column(String(255), nullable=False)
    latitude: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    longitude: Mapped[Optional[float]] = mapped_column(Float, nullable=True)

    bedrooms: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    bathrooms: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    garage_spaces: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    square_meters: Mapped[float] = mapped_column(Float, nullable=False)

    images: Mapped[list] = mapped_column(JSON, nullable=False, default=list)
    videos: Mapped[list] = mapped_column(JSON, nullable=False, default=list)
    features: Mapped[list] = mapped_column(JSON, nullable=False, default=list)

    version: Mapped[int] = mapped_column(Integer, nullable=False)

    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=datetime.utcnow, index=True)
    updated_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=datetime.utcnow, onupdate=datetime.utcnow)

    agent: Mapped[User] = relationship(lazy="joined")
    agency: Mapped[Agency] = relationship(lazy="joined")

    __mapper_args__ = {"version_id_col": version}


class Project(Base):
    __tablename__ = "projects"
    __table_args__ = (
        CheckConstraint(_REJECTION_CHECKS[0], name="ck_projects_rejected_has_message"),
        CheckConstraint(_REJECTION_CHECKS[1], name="ck_projects_message_only_when_rejected"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False)
    location: Mapped[str] = mapped_column(String(200), nullable=False)
    images: Mapped[list] = mapped_column(JSON, nullable=False, default=list)
    brochure_url: Mapped[Optional[str]] = mapped_column(String(500), nullable=True)
    google_maps_url: Mapped[Optional[str]] = mapped_column(String(500), nullable=True)
    latitude: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    longitude: Mapped[Optional[float]] = mapped_column(Float, nullable=True)

    status: Mapped[str] = mapped_column(String(20), nullable=False, default="PENDING", index=True)
    rejection_message: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    agent_id: Mapped[int] = mapped_column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    agency_id: Mapped[int] = mapped_column(Integer, ForeignKey("agencies.id"), nullable=False, index=True)

    version: Mapped[int] = mapped_column(Integer, nullable=False)

    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=datetime.utcnow, index=True)
    updated_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=datetime.utcnow, onupdate=datetime.utcnow)

    agent: Mapped[User] = relationship(lazy="joined")
    agency: Mapped[Agency] = relationship(lazy="joined")
    floors: Mapped[List["Floor"]] = relationship(
        back_populates="project",
        cascade="all, delete-orphan",
        passive_deletes=True,
        order_by="Floor.number",
        lazy="selectin",
    )

    __mapper_args__ = {"version_id_col": version}


class Floor(Base):
    __tablename__ = "floors"
    __table_args__ = (UniqueConstraint("project_id", "number", name="uq_floors_project_number"),)

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    project_id: Mapped[int] = mapped_column(Integer, ForeignKey("projects.id", ondelete="CASCADE"), nullable=False, index=True)
    number: Mapped[int] = mapped_column(Integer, nullable=False)
    name: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)

    # last issued quadrant sequence; only ever incremented
    quadrant_seq: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=datetime.utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=datetime.utcnow, onupdate=datetime.utcnow)

    project: Mapped[Project] = relationship(back_populates="floors")
    quadrants: Mapped[List["Quadrant"]] = relationship(
        back_populates="floor",
        cascade="all, delete-orphan",
        passive_deletes=True,
        order_by="Quadrant.id",
        lazy="selectin",
    )


class Quadrant(Base):
    __tablename__ = "quadrants"
    __table_args__ = (UniqueConstraint("floor_id", "custom_id", name="uq_quadrants_floor_custom_id"),)

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    floor_id: Mapped[int] = mapped_column(Integer, ForeignKey("floors.id", ondelete="CASCADE"), nullable=False, index=True)
    custom_id: Mapped[str] = mapped_column(String(50), nullable=False)

    quadrant_type: Mapped[str] = mapped_column(String(30), nullable=False, default="DEPARTAMENTO")
    area: Mapped[float] = mapped_column(Float, nullable=False)
    bedrooms: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    bathrooms: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    price: Mapped[float] = mapped_column(Float, nullable=False)
    currency: Mapped[str] = mapped_column(String(20), nullable=False, default="BOLIVIANOS")
    exchange_rate: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    status: Mapped[str] = mapped_column(String(20), nullable=False, default="AVAILABLE")
    active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=datetime.utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=datetime.utcnow, onupdate=datetime.utcnow)

    floor: Mapped[Floor] = relationship(back_populates="quadrants")
