"""Admission gate for sessions that still owe an invitation code."""

from urllib.parse import quote

from fastapi import HTTPException, status

from carpool.access.errors import REASON_MESSAGES, AccessReason
from carpool.auth.session import AdmissionState, PendingInvitation

REDEMPTION_METHOD = "POST"
REDEMPTION_PATH = "/api/invitations/validate"
COMPLETE_INVITATION_PATH = "/complete-invitation"


def complete_invitation_url(code: str | None) -> str:
    """Build the URL of the page where the invitation code is entered.

    Args:
        code: Code to pre-fill, if known.

    Returns:
        str: Relative URL.
    """
    if code:
        return f"{COMPLETE_INVITATION_PATH}?code={quote(code, safe='')}"
    return COMPLETE_INVITATION_PATH


def is_redemption_request(method: str, path: str) -> bool:
    """Check whether a request targets the code redemption endpoint.

    Args:
        method: HTTP method.
        path: Request path.

    Returns:
        bool: True for the one operation a pending session may call.
    """
    return method.upper() == REDEMPTION_METHOD and path.rstrip("/") == REDEMPTION_PATH


def is_admitted(state: AdmissionState, method: str, path: str) -> bool:
    """Decide whether a session in ``state`` may perform a request.

    Args:
        state: Admission state of the session.
        method: HTTP method.
        path: Request path.

    Returns:
        bool: False only for pending sessions outside the redemption endpoint.
    """
    if isinstance(state, PendingInvitation):
        return is_redemption_request(method, path)
    return True


def invitation_required(state: PendingInvitation) -> HTTPException:
    """Build the rejection for a pending session.

    Args:
        state: Pending admission state.

    Returns:
        HTTPException: 403 telling the client where to redeem a code.
    """
    return HTTPException(
        status_code=status.HTTP_403_FORBIDDEN,
        detail={
            "reason": AccessReason.INVITATION_REQUIRED.value,
            "message": REASON_MESSAGES[AccessReason.INVITATION_REQUIRED],
            "requiresInvitationCode": True,
            "redirectTo": complete_invitation_url(state.code),
        },
    )


def check_admission(state: AdmissionState, method: str, path: str) -> None:
    """Enforce the admission gate.

    Args:
        state: Admission state of the session.
        method: HTTP method.
        path: Request path.

    Raises:
        HTTPException: 403 InvitationRequired if the session is pending.
    """
    if not is_admitted(state, method, path):
        raise invitation_required(state)
