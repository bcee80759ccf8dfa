"""Initial database schema.

Revision ID: 001
Revises:
Create Date: 2026-10-19

Complete schema for the carpool application including:
- Users (OIDC and invitation signups)
- Invitation codes with use counters, expiry and revocation
- Key/value settings (OAuth restrictions)
- Trips
"""

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import mysql

# revision identifiers, used by Alembic.
revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Create all tables."""

    # Users table
    op.create_table(
        "users",
        sa.Column("id", sa.String(255), nullable=False),
        sa.Column("email", sa.String(255), nullable=True),
        sa.Column("first_name", sa.String(255), nullable=True),
        sa.Column("last_name", sa.String(255), nullable=True),
        sa.Column("profile_image_url", sa.String(512), nullable=True),
        sa.Column(
            "auth_provider",
            sa.Enum("oidc", "invitation", name="authprovider"),
            nullable=False,
            server_default="oidc",
        ),
        sa.Column("created_at", sa.DateTime(), server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(), server_default=sa.func.now()),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("email"),
    )

    # Invitation codes
    op.create_table(
        "invitation_codes",
        sa.Column("id", mysql.CHAR(36), nullable=False),
        sa.Column("code", sa.String(64), nullable=False),
        sa.Column("created_by_user_id", sa.String(255), nullable=False),
        sa.Column("created_at", sa.DateTime(), server_default=sa.func.now()),
        sa.Column("revoked_at", sa.DateTime(), nullable=True),
        sa.Column("used_by_user_id", sa.String(255), nullable=True),
        sa.Column("used_at", sa.DateTime(), nullable=True),
        sa.Column("max_uses", sa.Integer(), nullable=False, server_default="1"),
        sa.Column("current_uses", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("expires_at", sa.DateTime(), nullable=True),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("code"),
        sa.CheckConstraint("max_uses >= 1", name="ck_invitation_codes_max_uses"),
        sa.CheckConstraint(
            "current_uses >= 0 AND current_uses <= max_uses",
            name="ck_invitation_codes_current_uses",
        ),
    )
    op.create_index("ix_invitation_codes_created_at", "invitation_codes", ["created_at"])

    # Settings (key/value)
    op.create_table(
        "settings",
        sa.Column("id", mysql.CHAR(36), nullable=False),
        sa.Column("key", sa.String(100), nullable=False),
        sa.Column("value", sa.JSON(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), server_default=sa.func.now()),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("key"),
    )

    # Trips
    op.create_table(
        "trips",
        sa.Column("id", mysql.CHAR(36), nullable=False),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("flight_date", sa.String(10), nullable=False),
        sa.Column("flight_time", sa.String(5), nullable=False),
        sa.Column("flight_number", sa.String(20), nullable=False),
        sa.Column(
            "car_status",
            sa.Enum("booked", "looking", "sharing", name="carstatus"),
            nullable=False,
        ),
        sa.Column("created_at", sa.DateTime(), server_default=sa.func.now()),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_trips_flight_date_time", "trips", ["flight_date", "flight_time"])


def downgrade() -> None:
    """Drop all tables."""
    op.drop_table("trips")
    op.drop_table("settings")
    op.drop_table("invitation_codes")
    op.drop_table("users")
