"""Authentication API routes."""

import logging
from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, Request, status
from fastapi.responses import RedirectResponse
from sqlalchemy.orm import Session

from carpool.access.errors import AccessDenied, AccessReason, ProviderUnavailable
from carpool.auth.gate import complete_invitation_url
from carpool.auth.service import AuthService, get_auth_service
from carpool.auth.session import PendingInvitation, Principal, Unrestricted
from carpool.dependencies import AppSettings, Provider, Sessions, get_db
from carpool.users.schemas import UserResponse

logger = logging.getLogger(__name__)

router = APIRouter()

LOGIN_PATH = "/api/login"


def get_service(db: Annotated[Session, Depends(get_db)]) -> AuthService:
    """Get auth service dependency."""
    return get_auth_service(db)


@router.get("/login")
async def login(
    request: Request,
    sessions: Sessions,
    provider: Provider,
    invitation: bool = False,
    code: str | None = None,
    error: str | None = None,
):
    """Start the OpenID Connect login.

    When started from an invitation link, the session remembers that the
    callback must put the session into the pending-invitation state.

    Args:
        request: FastAPI request object.
        sessions: Session manager.
        provider: Identity provider.
        invitation: Whether the login comes from an invitation link.
        code: Invitation code from the link, used for pre-fill only.
        error: Reason of a rejected callback.

    Returns:
        RedirectResponse: Redirect to the identity provider.

    Raises:
        HTTPException: If a previous callback was denied or the provider is down.
    """
    if error == AccessReason.DOMAIN_DENIED.value:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail=AccessDenied(AccessReason.DOMAIN_DENIED).to_detail(),
        )

    if invitation:
        sessions.remember_invitation_intent(code.strip() if code else None)

    redirect_uri = str(request.url_for("callback"))
    try:
        return await provider.authorize_redirect(request, redirect_uri)
    except ProviderUnavailable:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail=AccessDenied(AccessReason.PROVIDER_UNAVAILABLE).to_detail(),
        )


@router.get("/callback", name="callback")
async def callback(
    request: Request,
    sessions: Sessions,
    provider: Provider,
    service: Annotated[AuthService, Depends(get_service)],
):
    """Finish the OpenID Connect login.

    Nothing is written to the database unless the provider exchange
    succeeds and the email domain is allowed. A denied domain signs the
    browser out.

    Args:
        request: FastAPI request object.
        sessions: Session manager.
        provider: Identity provider.
        service: Auth service.

    Returns:
        RedirectResponse: To ``/``, to the invitation page, or back to login.
    """
    try:
        claims = await provider.fetch_claims(request)
    except ProviderUnavailable:
        return RedirectResponse(url=LOGIN_PATH, status_code=status.HTTP_302_FOUND)

    try:
        service.complete_oauth_login(claims)
    except AccessDenied as e:
        # A denied login also ends any session the browser already had
        sessions.clear()
        return RedirectResponse(
            url=f"{LOGIN_PATH}?error={e.reason.value}", status_code=status.HTTP_302_FOUND
        )

    principal = Principal(
        subject_id=claims.subject_id,
        expires_at=claims.expires_at,
        refresh_token=claims.refresh_token,
    )

    # Signing in again does not lift a pending invitation for the same user
    previous = sessions.get_principal()
    admission = sessions.get_admission()
    if previous is None or previous.subject_id != claims.subject_id:
        admission = Unrestricted()

    intent = sessions.pop_invitation_intent()
    if intent is not None:
        admission = PendingInvitation(code=intent.code)

    sessions.sign_in(principal, admission)

    if isinstance(admission, PendingInvitation):
        logger.info("User %s signed in from an invitation link", claims.subject_id)
        return RedirectResponse(
            url=complete_invitation_url(admission.code), status_code=status.HTTP_302_FOUND
        )
    return RedirectResponse(url="/", status_code=status.HTTP_302_FOUND)


@router.get("/logout")
async def logout(request: Request, sessions: Sessions, provider: Provider):
    """Sign out and end the provider session if it supports that.

    Args:
        request: FastAPI request object.
        sessions: Session manager.
        provider: Identity provider.

    Returns:
        RedirectResponse: To the provider's logout page or to ``/``.
    """
    sessions.clear()
    url = await provider.end_session_url(str(request.base_url))
    return RedirectResponse(url=url or "/", status_code=status.HTTP_302_FOUND)


@router.get("/auth/user", response_model=UserResponse | None)
async def get_current_user_info(
    sessions: Sessions,
    settings: AppSettings,
    service: Annotated[AuthService, Depends(get_service)],
):
    """Get the signed-in user, or null when signed out.

    Args:
        sessions: Session manager.
        settings: Application settings.
        service: Auth service.

    Returns:
        UserResponse | None: User information.
    """
    principal = sessions.get_principal()
    if principal is None:
        return None
    user = service.get_user(principal.subject_id)
    if user is None:
        return None
    return service.get_user_response(user, settings.admin_user_id)
