"""SQLAlchemy database models."""

import enum
from datetime import datetime
from uuid import uuid4

from sqlalchemy import (
    JSON,
    CheckConstraint,
    DateTime,
    Enum,
    Index,
    Integer,
    String,
)
from sqlalchemy.dialects.mysql import CHAR
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column
from sqlalchemy.sql import func


class Base(DeclarativeBase):
    """Base class for all SQLAlchemy models."""

    pass


def generate_uuid() -> str:
    """Generate a UUID string for primary keys.

    Returns:
        str: UUID as 36-character string.
    """
    return str(uuid4())


class AuthProvider(str, enum.Enum):
    """How a user was admitted to the application."""

    OIDC = "oidc"  # Signed in through the OpenID Connect provider
    INVITATION = "invitation"  # Signed up directly with an invitation code


class CarStatus(str, enum.Enum):
    """Car arrangement for a trip."""

    BOOKED = "booked"  # Already has a car booked
    LOOKING = "looking"  # Looking for someone to share with
    SHARING = "sharing"  # Has a car and room to share


class User(Base):
    """User model.

    The primary key is the provider subject ID for OIDC users and a
    generated UUID for invitation users.

    Attributes:
        id: Primary key.
        email: User email (unique, lower-case).
        first_name: First name.
        last_name: Last name.
        profile_image_url: Avatar URL reported by the identity provider.
        auth_provider: How the user was admitted.
        created_at: Creation timestamp.
        updated_at: Last profile update timestamp.
    """

    __tablename__ = "users"

    id: Mapped[str] = mapped_column(String(255), primary_key=True, default=generate_uuid)
    email: Mapped[str | None] = mapped_column(String(255), unique=True, nullable=True)
    first_name: Mapped[str | None] = mapped_column(String(255), nullable=True)
    last_name: Mapped[str | None] = mapped_column(String(255), nullable=True)
    profile_image_url: Mapped[str | None] = mapped_column(String(512), nullable=True)
    auth_provider: Mapped[AuthProvider] = mapped_column(
        Enum(AuthProvider, values_callable=lambda x: [e.value for e in x]),
        default=AuthProvider.OIDC,
        nullable=False,
    )
    created_at: Mapped[datetime] = mapped_column(DateTime, server_default=func.now())
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, server_default=func.now(), onupdate=func.now()
    )


class InvitationCode(Base):
    """Invitation code model.

    A code may be redeemed up to ``max_uses`` times. ``used_by_user_id`` and
    ``used_at`` record the first redemption only.

    Attributes:
        id: Primary key UUID.
        code: Code entered by the invitee (unique, upper-case).
        created_by_user_id: User who minted the code.
        created_at: Creation timestamp.
        revoked_at: When the code was revoked, if ever.
        used_by_user_id: User who redeemed the code first.
        used_at: When the code was first redeemed.
        max_uses: Maximum number of redemptions.
        current_uses: Number of redemptions so far.
        expires_at: Expiry timestamp, None for codes that never expire.
    """

    __tablename__ = "invitation_codes"
    __table_args__ = (
        Index("ix_invitation_codes_created_at", "created_at"),
        CheckConstraint("max_uses >= 1", name="ck_invitation_codes_max_uses"),
        CheckConstraint(
            "current_uses >= 0 AND current_uses <= max_uses",
            name="ck_invitation_codes_current_uses",
        ),
    )

    id: Mapped[str] = mapped_column(CHAR(36), primary_key=True, default=generate_uuid)
    code: Mapped[str] = mapped_column(String(64), unique=True, nullable=False)
    created_by_user_id: Mapped[str] = mapped_column(String(255), nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime, server_default=func.now())
    revoked_at: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)
    used_by_user_id: Mapped[str | None] = mapped_column(String(255), nullable=True)
    used_at: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)
    max_uses: Mapped[int] = mapped_column(Integer, default=1, server_default="1", nullable=False)
    current_uses: Mapped[int] = mapped_column(
        Integer, default=0, server_default="0", nullable=False
    )
    expires_at: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)


class Setting(Base):
    """Key/value application setting editable at runtime.

    Attributes:
        id: Primary key UUID.
        key: Setting name (unique).
        value: JSON value.
        updated_at: Last update timestamp.
    """

    __tablename__ = "settings"

    id: Mapped[str] = mapped_column(CHAR(36), primary_key=True, default=generate_uuid)
    key: Mapped[str] = mapped_column(String(100), unique=True, nullable=False)
    value: Mapped[dict] = mapped_column(JSON, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, server_default=func.now(), onupdate=func.now()
    )


class Trip(Base):
    """Airport trip submitted by a traveler.

    Attributes:
        id: Primary key UUID.
        name: Traveler name.
        flight_date: Flight date as ISO string (YYYY-MM-DD).
        flight_time: Flight time as HH:MM.
        flight_number: Flight number (upper-case).
        car_status: Car arrangement.
        created_at: Creation timestamp.
    """

    __tablename__ = "trips"
    __table_args__ = (Index("ix_trips_flight_date_time", "flight_date", "flight_time"),)

    id: Mapped[str] = mapped_column(CHAR(36), primary_key=True, default=generate_uuid)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    flight_date: Mapped[str] = mapped_column(String(10), nullable=False)
    flight_time: Mapped[str] = mapped_column(String(5), nullable=False)
    flight_number: Mapped[str] = mapped_column(String(20), nullable=False)
    car_status: Mapped[CarStatus] = mapped_column(
        Enum(CarStatus, values_callable=lambda x: [e.value for e in x]), nullable=False
    )
    created_at: Mapped[datetime] = mapped_column(DateTime, server_default=func.now())
