"""init schema: agencies, users, listings, floors, quadrants, audit

Revision ID: 0001_init
Revises:
Create Date: 2026-10-19
"""
from alembic import op
import sqlalchemy as sa


revision = "0001_init"
down_revision = None
branch_labels = None
depends_on = None


def _timestamps():
    return [
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
    ]


def _review_columns():
    return [
        sa.Column("status", sa.String(length=20), nullable=False, server_default="PENDING"),
        sa.Column("rejection_message", sa.Text(), nullable=True),
        sa.Column("agent_id", sa.Integer(), sa.ForeignKey("users.id"), nullable=False),
        sa.Column("agency_id", sa.Integer(), sa.ForeignKey("agencies.id"), nullable=False),
        sa.Column("version", sa.Integer(), nullable=False),
    ]


def _review_checks(table: str):
    return [
        sa.CheckConstraint(
            "status <> 'REJECTED' OR rejection_message IS NOT NULL",
            name=f"ck_{table}_rejected_has_message",
        ),
        sa.CheckConstraint(
            "status = 'REJECTED' OR rejection_message IS NULL",
            name=f"ck_{table}_message_only_when_rejected",
        ),
    ]


def upgrade():
    op.create_table(
        "agencies",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("name", sa.String(length=100), nullable=False),
        sa.Column("logo_url", sa.String(length=500), nullable=True),
        sa.Column("address", sa.String(length=200), nullable=True),
        sa.Column("phone", sa.String(length=20), nullable=True),
        sa.Column("email", sa.String(length=200), nullable=True),
        sa.Column("active", sa.Boolean(), nullable=False, server_default=sa.true()),
        *_timestamps(),
    )
    op.create_index("ix_agencies_name", "agencies", ["name"], unique=True)

    op.create_table(
        "users",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("external_auth_id", sa.String(length=200), nullable=False),
        sa.Column("email", sa.String(length=200), nullable=True),
        sa.Column("first_name", sa.String(length=100), nullable=True),
        sa.Column("last_name", sa.String(length=100), nullable=True),
        sa.Column("phone", sa.String(length=30), nullable=True),
        sa.Column("role", sa.String(length=20), nullable=False, server_default="AGENT"),
        sa.Column("agency_id", sa.Integer(), sa.ForeignKey("agencies.id"), nullable=True),
        sa.Column("active", sa.Boolean(), nullable=False, server_default=sa.true()),
        *_timestamps(),
        sa.CheckConstraint(
            "(role = 'SUPER_ADMIN' AND agency_id IS NULL) OR (role <> 'SUPER_ADMIN' AND agency_id IS NOT NULL)",
            name="ck_users_role_agency",
        ),
    )
    op.create_index("ix_users_external_auth_id", "users", ["external_auth_id"], unique=True)
    op.create_index("ix_users_email", "users", ["email"])
    op.create_index("ix_users_agency_id", "users", ["agency_id"])

    op.create_table(
        "audit_events",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("agency_id", sa.Integer(), nullable=True),
        sa.Column("actor_user_id", sa.Integer(), nullable=True),
        sa.Column("action", sa.String(length=80), nullable=False),
        sa.Column("entity_type", sa.String(length=80), nullable=False),
        sa.Column("entity_id", sa.String(length=80), nullable=False),
        sa.Column("before_json", sa.Text(), nullable=True),
        sa.Column("after_json", sa.Text(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
    )
    op.create_index("ix_audit_events_agency_id", "audit_events", ["agency_id"])
    op.create_index("ix_audit_events_actor_user_id", "audit_events", ["actor_user_id"])

    op.create_table(
        "properties",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("title", sa.String(length=100), nullable=False),
        sa.Column("description", sa.Text(), nullable=False),
        sa.Column("property_type", sa.String(length=20), nullable=False),
        sa.Column("transaction_type", sa.String(length=20), nullable=False),
        sa.Column("price", sa.Float(), nullable=False),
        sa.Column("currency", sa.String(length=20), nullable=False, server_default="BOLIVIANOS"),
        sa.Column("location_state", sa.String(length=120), nullable=False),
        sa.Column("location_city", sa.String(length=120), nullable=False),
        sa.Column("location_neigh", sa.String(length=120), nullable=True),
        sa.Column("address", sa.String(length=255), nullable=False),
        sa.Column("latitude", sa.Float(), nullable=True),
        sa.Column("longitude", sa.Float(), nullable=True),
        sa.Column("bedrooms", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("bathrooms", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("garage_spaces", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("square_meters", sa.Float(), nullable=False),
        sa.Column("images", sa.JSON(), nullable=False),
        sa.Column("videos", sa.JSON(), nullable=False),
        sa.Column("features", sa.JSON(), nullable=False),
        *_review_columns(),
        *_timestamps(),
        *_review_checks("properties"),
    )
    for col in ("status", "agent_id", "agency_id", "created_at"):
        op.create_index(f"ix_properties_{col}", "properties", [col])

    op.create_table(
        "projects",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("name", sa.String(length=100), nullable=False),
        sa.Column("description", sa.Text(), nullable=False),
        sa.Column("location", sa.String(length=200), nullable=False),
        sa.Column("images", sa.JSON(), nullable=False),
        sa.Column("brochure_url", sa.String(length=500), nullable=True),
        sa.Column("google_maps_url", sa.String(length=500), nullable=True),
        sa.Column("latitude", sa.Float(), nullable=True),
        sa.Column("longitude", sa.Float(), nullable=True),
        sa.Column("active", sa.Boolean(), nullable=False, server_default=sa.true()),
        *_review_columns(),
        *_timestamps(),
        *_review_checks("projects"),
    )
    for col in ("status", "agent_id", "agency_id", "created_at"):
        op.create_index(f"ix_projects_{col}", "projects", [col])

    op.create_table(
        "floors",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("project_id", sa.Integer(), sa.ForeignKey("projects.id", ondelete="CASCADE"), nullable=False),
        sa.Column("number", sa.Integer(), nullable=False),
        sa.Column("name", sa.String(length=50), nullable=True),
        sa.Column("quadrant_seq", sa.Integer(), nullable=False, server_default="0"),
        *_timestamps(),
        sa.UniqueConstraint("project_id", "number", name="uq_floors_project_number"),
    )
    op.create_index("ix_floors_project_id", "floors", ["project_id"])

    op.create_table(
        "quadrants",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("floor_id", sa.Integer(), sa.ForeignKey("floors.id", ondelete="CASCADE"), nullable=False),
        sa.Column("custom_id", sa.String(length=50), nullable=False),
        sa.Column("quadrant_type", sa.String(length=30), nullable=False, server_default="DEPARTAMENTO"),
        sa.Column("area", sa.Float(), nullable=False),
        sa.Column("bedrooms", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("bathrooms", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("price", sa.Float(), nullable=False),
        sa.Column("currency", sa.String(length=20), nullable=False, server_default="BOLIVIANOS"),
        sa.Column("exchange_rate", sa.Float(), nullable=True),
        sa.Column("status", sa.String(length=20), nullable=False, server_default="AVAILABLE"),
        sa.Column("active", sa.Boolean(), nullable=False, server_default=sa.true()),
        *_timestamps(),
        sa.UniqueConstraint("floor_id", "custom_id", name="uq_quadrants_floor_custom_id"),
    )
    op.create_index("ix_quadrants_floor_id", "quadrants", ["floor_id"])


def downgrade():
    op.drop_table("quadrants")
    op.drop_table("floors")
    op.drop_table("projects")
    op.drop_table("properties")
    op.drop_table("audit_events")
    op.drop_table("users")
    op.drop_table("agencies")
