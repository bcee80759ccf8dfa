"""Admin API routes for OAuth access restrictions."""

from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session

from carpool.access.schemas import AccessRestrictions
from carpool.access.service import RestrictionService, get_restriction_service
from carpool.dependencies import CurrentAdmin, get_db

router = APIRouter()


def get_service(
    db: Annotated[Session, Depends(get_db)],
    _admin: CurrentAdmin,  # Ensures only admins can access
) -> RestrictionService:
    """Get restriction service dependency (admin only)."""
    return get_restriction_service(db)


@router.get("/settings/oauth", response_model=AccessRestrictions)
async def get_oauth_settings(
    service: Annotated[RestrictionService, Depends(get_service)],
):
    """Get the OAuth login restrictions."""
    return service.get_restrictions()


@router.put("/settings/oauth", response_model=AccessRestrictions)
async def update_oauth_settings(
    data: AccessRestrictions,
    service: Annotated[RestrictionService, Depends(get_service)],
):
    """Replace the OAuth login restrictions.

    Args:
        data: New restrictions.
        service: Restriction service.

    Returns:
        AccessRestrictions: Stored restrictions.

    Raises:
        HTTPException: If a domain or organization is malformed.
    """
    try:
        return service.update_restrictions(data)
    except ValueError as e:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=str(e),
        )
