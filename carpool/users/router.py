"""Admin API routes for users."""

from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session

from carpool.dependencies import AppSettings, CurrentAdmin, get_db
from carpool.users.schemas import UserResponse
from carpool.users.service import UserService

router = APIRouter()


def get_service(
    db: Annotated[Session, Depends(get_db)],
    settings: AppSettings,
    _admin: CurrentAdmin,  # Ensures only admins can access
) -> UserService:
    """Get user service dependency (admin only)."""
    return UserService(db, settings.admin_user_id)


@router.get("/users", response_model=list[UserResponse])
async def list_users(
    service: Annotated[UserService, Depends(get_service)],
):
    """List all users."""
    return service.list_users()


@router.delete("/users/{user_id}")
async def delete_user(
    user_id: str,
    admin: CurrentAdmin,
    service: Annotated[UserService, Depends(get_service)],
):
    """Delete a user.

    Args:
        user_id: User ID.
        admin: Current admin user.
        service: User service.

    Returns:
        dict: Success message.

    Raises:
        HTTPException: If the user is the admin or does not exist.
    """
    try:
        deleted = service.delete_user(user_id, admin.id)
    except ValueError as e:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=str(e),
        )
    if not deleted:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="User not found",
        )
    return {"message": "User deleted successfully"}
