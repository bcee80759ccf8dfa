"""Dependency injection for FastAPI."""

from typing import Annotated

from fastapi import Depends, HTTPException, Request, status
from sqlalchemy.orm import Session

from carpool.access.errors import ProviderUnavailable
from carpool.access.policy import is_admin, utcnow
from carpool.auth.gate import check_admission
from carpool.auth.provider import IdentityProvider, get_identity_provider
from carpool.auth.session import Principal, SessionManager
from carpool.config import Settings, get_settings
from carpool.db.database import get_db
from carpool.db.models import User


def _unauthorized() -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Unauthorized",
    )


def get_session_manager(request: Request) -> SessionManager:
    """Get typed access to the request's session.

    Args:
        request: FastAPI request object.

    Returns:
        SessionManager: Session manager.
    """
    return SessionManager(request.session)


async def get_current_principal(
    sessions: Annotated[SessionManager, Depends(get_session_manager)],
    provider: Annotated[IdentityProvider, Depends(get_identity_provider)],
) -> Principal:
    """Get the signed-in principal, refreshing it if it has expired.

    Does not apply the admission gate.

    Args:
        sessions: Session manager.
        provider: Identity provider used for refresh token grants.

    Returns:
        Principal: The signed-in principal.

    Raises:
        HTTPException: 401 if signed out, or expired and not refreshable.
    """
    principal = sessions.get_principal()
    if principal is None:
        raise _unauthorized()

    if not principal.is_expired(utcnow()):
        return principal

    if not principal.refresh_token:
        sessions.clear()
        raise _unauthorized()

    try:
        refreshed = await provider.refresh(principal.refresh_token)
    except ProviderUnavailable:
        sessions.clear()
        raise _unauthorized()

    principal = Principal(
        subject_id=principal.subject_id,
        expires_at=refreshed.expires_at,
        refresh_token=refreshed.refresh_token,
    )
    sessions.set_principal(principal)
    return principal


async def get_admitted_principal(
    request: Request,
    principal: Annotated[Principal, Depends(get_current_principal)],
    sessions: Annotated[SessionManager, Depends(get_session_manager)],
) -> Principal:
    """Get the signed-in principal and enforce the admission gate.

    Args:
        request: FastAPI request object.
        principal: Signed-in principal.
        sessions: Session manager.

    Returns:
        Principal: The admitted principal.

    Raises:
        HTTPException: 403 InvitationRequired if the session is pending.
    """
    check_admission(sessions.get_admission(), request.method, request.url.path)
    return principal


async def get_current_user(
    principal: Annotated[Principal, Depends(get_admitted_principal)],
    sessions: Annotated[SessionManager, Depends(get_session_manager)],
    db: Annotated[Session, Depends(get_db)],
) -> User:
    """Get the admitted user.

    Args:
        principal: Admitted principal.
        sessions: Session manager.
        db: Database session.

    Returns:
        User: The signed-in user.

    Raises:
        HTTPException: 401 if the user no longer exists.
    """
    user = db.query(User).filter(User.id == principal.subject_id).first()
    if user is None:
        sessions.clear()
        raise _unauthorized()
    return user


async def get_current_admin_user(
    current_user: Annotated[User, Depends(get_current_user)],
    settings: Annotated[Settings, Depends(get_settings)],
) -> User:
    """Get the current user and verify they are the administrator.

    Args:
        current_user: The admitted user.
        settings: Application settings.

    Returns:
        User: The admin user.

    Raises:
        HTTPException: If the user is not the administrator.
    """
    if not is_admin(current_user.id, settings.admin_user_id):
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Admin privileges required",
        )
    return current_user


# Type aliases for cleaner dependency injection
DbSession = Annotated[Session, Depends(get_db)]
AppSettings = Annotated[Settings, Depends(get_settings)]
Sessions = Annotated[SessionManager, Depends(get_session_manager)]
Provider = Annotated[IdentityProvider, Depends(get_identity_provider)]
CurrentPrincipal = Annotated[Principal, Depends(get_current_principal)]
AdmittedPrincipal = Annotated[Principal, Depends(get_admitted_principal)]
CurrentUser = Annotated[User, Depends(get_current_user)]
CurrentAdmin = Annotated[User, Depends(get_current_admin_user)]
