"""Pydantic schemas for users."""

from datetime import datetime

from carpool.schemas import CamelModel


class UserResponse(CamelModel):
    """Schema for user information.

    Attributes:
        is_admin: Whether the user is the configured administrator.
    """

    id: str
    email: str | None = None
    first_name: str | None = None
    last_name: str | None = None
    profile_image_url: str | None = None
    auth_provider: str
    created_at: datetime | None = None
    updated_at: datetime | None = None
    is_admin: bool = False
