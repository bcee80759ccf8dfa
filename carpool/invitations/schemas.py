"""Pydantic schemas for invitation codes."""

from datetime import datetime

from pydantic import EmailStr, Field, field_validator

from carpool.access.policy import as_utc
from carpool.schemas import CamelModel


class InvitationCodeCreate(CamelModel):
    """Schema for minting an invitation code.

    Attributes:
        code: Code value; generated when omitted.
        max_uses: Maximum number of redemptions.
        expires_in_hours: Lifetime in hours; the code never expires if omitted.
    """

    code: str | None = Field(None, max_length=64)
    max_uses: int = 1
    expires_in_hours: int | None = None


class InvitationCodeResponse(CamelModel):
    """Schema for an invitation code."""

    id: str
    code: str
    created_by_user_id: str
    created_at: datetime | None = None
    revoked_at: datetime | None = None
    used_by_user_id: str | None = None
    used_at: datetime | None = None
    max_uses: int
    current_uses: int
    expires_at: datetime | None = None
    status: str

    @field_validator("created_at", "revoked_at", "used_at", "expires_at")
    @classmethod
    def mark_utc(cls, v: datetime | None) -> datetime | None:
        """Timestamps are stored as naive UTC; send them with an explicit zone."""
        return as_utc(v) if v is not None else v


class InvitationSignup(CamelModel):
    """Schema for signing up with an invitation code (no prior session)."""

    name: str = Field(..., min_length=1, max_length=255)
    email: EmailStr
    invitation_code: str = Field(..., min_length=1, max_length=64)


class InvitationValidate(CamelModel):
    """Schema for redeeming a code from a signed-in session."""

    code: str = Field(..., min_length=1, max_length=64)
