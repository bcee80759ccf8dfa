"""Invitation API routes."""

from datetime import timedelta
from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session

from carpool.access.errors import AccessDenied
from carpool.access.policy import utcnow
from carpool.auth.service import AuthService
from carpool.auth.session import Principal, Unrestricted
from carpool.dependencies import AdmittedPrincipal, AppSettings, CurrentAdmin, Sessions, get_db
from carpool.invitations.schemas import (
    InvitationCodeCreate,
    InvitationCodeResponse,
    InvitationSignup,
    InvitationValidate,
)
from carpool.invitations.service import InvitationService, get_invitation_service, to_response
from carpool.users.schemas import UserResponse

router = APIRouter()
admin_router = APIRouter()


def get_service(db: Annotated[Session, Depends(get_db)]) -> InvitationService:
    """Get invitation service dependency."""
    return get_invitation_service(db)


@router.post("/signup", response_model=UserResponse, status_code=status.HTTP_201_CREATED)
async def signup(
    data: InvitationSignup,
    sessions: Sessions,
    settings: AppSettings,
    service: Annotated[InvitationService, Depends(get_service)],
):
    """Sign up with an invitation code and start a session.

    Invitation users have no provider token to refresh, so their session
    principal is issued with a long lifetime.

    Args:
        data: Name, email and invitation code.
        sessions: Session manager.
        settings: Application settings.
        service: Invitation service.

    Returns:
        UserResponse: Created user.

    Raises:
        HTTPException: 400 with the reason the signup was rejected.
    """
    try:
        user = service.signup(data)
    except AccessDenied as e:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=e.to_detail(),
        )

    principal = Principal.for_lifetime(
        user.id, utcnow(), timedelta(days=settings.invitation_principal_ttl_days)
    )
    sessions.sign_in(principal, Unrestricted())
    return AuthService.get_user_response(user, settings.admin_user_id)


@router.post("/validate")
async def validate(
    data: InvitationValidate,
    principal: AdmittedPrincipal,
    sessions: Sessions,
    service: Annotated[InvitationService, Depends(get_service)],
):
    """Redeem an invitation code for the signed-in user.

    This is the only protected operation a pending session may call. On
    success the session is admitted; on failure it stays pending.

    Args:
        data: Invitation code.
        principal: Signed-in principal.
        sessions: Session manager.
        service: Invitation service.

    Returns:
        dict: Success message.

    Raises:
        HTTPException: 400 with the reason the code was rejected.
    """
    try:
        service.redeem_code(data.code, principal.subject_id)
    except AccessDenied as e:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=e.to_detail(),
        )

    sessions.set_admission(Unrestricted())
    return {"message": "Invitation code validated successfully"}


# --- Admin Endpoints ---


@admin_router.get("/invitations", response_model=list[InvitationCodeResponse])
async def list_invitations(
    _admin: CurrentAdmin,
    service: Annotated[InvitationService, Depends(get_service)],
):
    """List all invitation codes, newest first."""
    now = utcnow()
    return [to_response(invitation, now) for invitation in service.list_codes()]


@admin_router.post(
    "/invitations",
    response_model=InvitationCodeResponse,
    status_code=status.HTTP_201_CREATED,
)
async def create_invitation(
    admin: CurrentAdmin,
    service: Annotated[InvitationService, Depends(get_service)],
    data: InvitationCodeCreate | None = None,
):
    """Mint an invitation code.

    Args:
        admin: Current admin user.
        service: Invitation service.
        data: Code parameters; defaults to a generated single-use code.

    Returns:
        InvitationCodeResponse: Created code.

    Raises:
        HTTPException: 400 if the parameters are invalid or the code is taken.
    """
    try:
        invitation = service.create_code(data or InvitationCodeCreate(), admin.id)
    except AccessDenied as e:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=e.to_detail(),
        )
    except ValueError as e:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=str(e),
        )
    return to_response(invitation)


@admin_router.delete("/invitations/{invitation_id}", response_model=InvitationCodeResponse)
async def revoke_invitation(
    invitation_id: str,
    _admin: CurrentAdmin,
    service: Annotated[InvitationService, Depends(get_service)],
):
    """Revoke an invitation code.

    Revoking an already revoked code returns it unchanged.

    Args:
        invitation_id: Invitation UUID.
        _admin: Current admin user.
        service: Invitation service.

    Returns:
        InvitationCodeResponse: Revoked code.

    Raises:
        HTTPException: 404 if the code does not exist.
    """
    invitation = service.revoke_code(invitation_id)
    if invitation is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Invitation code not found",
        )
    return to_response(invitation)
