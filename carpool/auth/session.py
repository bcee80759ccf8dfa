"""Signed-cookie session state: the principal and its admission state.

The session is a JSON dict provided by Starlette's ``SessionMiddleware``.
Admission state is stored as a tagged value so a session is either
``Unrestricted`` or ``PendingInvitation``, never a mix of loose flags.
"""

from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Any

PRINCIPAL_KEY = "principal"
ADMISSION_KEY = "admission"
INTENT_KEY = "invitation_intent"

PENDING_INVITATION = "pending_invitation"


@dataclass(frozen=True)
class Principal:
    """Signed-in identity held by a session.

    Attributes:
        subject_id: User ID.
        expires_at: Expiry as a UNIX timestamp.
        refresh_token: Provider refresh token, None for invitation users.
    """

    subject_id: str
    expires_at: int
    refresh_token: str | None = None

    def is_expired(self, now: datetime) -> bool:
        """Check whether the principal has expired.

        Args:
            now: Reference time.

        Returns:
            bool: True once ``now`` is past ``expires_at``.
        """
        return now.timestamp() > self.expires_at

    @classmethod
    def for_lifetime(
        cls, subject_id: str, now: datetime, lifetime: timedelta
    ) -> "Principal":
        """Build a principal without a refresh token.

        Args:
            subject_id: User ID.
            now: Issue time.
            lifetime: How long the principal stays valid.

        Returns:
            Principal: New principal.
        """
        return cls(subject_id=subject_id, expires_at=int((now + lifetime).timestamp()))


@dataclass(frozen=True)
class Unrestricted:
    """Admission state of a session allowed to call protected endpoints."""


@dataclass(frozen=True)
class PendingInvitation:
    """Admission state of a session that must redeem an invitation code.

    Attributes:
        code: Code carried by the invitation link, for pre-filling the form
            only. It is never redeemed without an explicit validate call.
    """

    code: str | None = None


AdmissionState = Unrestricted | PendingInvitation


@dataclass(frozen=True)
class InvitationIntent:
    """Invitation link details kept between login redirect and callback."""

    code: str | None = None


class SessionManager:
    """Typed access to the session dict."""

    def __init__(self, session: dict[str, Any]):
        """Initialize session manager.

        Args:
            session: Mutable session mapping from the request.
        """
        self.session = session

    def get_principal(self) -> Principal | None:
        """Get the signed-in principal.

        Returns:
            Principal | None: Principal, or None if signed out.
        """
        data = self.session.get(PRINCIPAL_KEY)
        if not data:
            return None
        return Principal(
            subject_id=data["sub"],
            expires_at=int(data["expires_at"]),
            refresh_token=data.get("refresh_token"),
        )

    def set_principal(self, principal: Principal) -> None:
        """Store the signed-in principal.

        Args:
            principal: Principal to store.
        """
        self.session[PRINCIPAL_KEY] = {
            "sub": principal.subject_id,
            "expires_at": principal.expires_at,
            "refresh_token": principal.refresh_token,
        }

    def get_admission(self) -> AdmissionState:
        """Get the admission state.

        Returns:
            AdmissionState: Current state; Unrestricted when unset.
        """
        data = self.session.get(ADMISSION_KEY)
        if data and data.get("state") == PENDING_INVITATION:
            return PendingInvitation(code=data.get("code"))
        return Unrestricted()

    def set_admission(self, state: AdmissionState) -> None:
        """Store the admission state.

        Args:
            state: New admission state.
        """
        if isinstance(state, PendingInvitation):
            self.session[ADMISSION_KEY] = {"state": PENDING_INVITATION, "code": state.code}
        else:
            self.session.pop(ADMISSION_KEY, None)

    def remember_invitation_intent(self, code: str | None) -> None:
        """Mark the login in progress as started from an invitation link.

        Args:
            code: Code from the invitation link, if any.
        """
        self.session[INTENT_KEY] = {"code": code}

    def pop_invitation_intent(self) -> InvitationIntent | None:
        """Consume the invitation intent of the login in progress.

        Returns:
            InvitationIntent | None: Intent, or None for a plain login.
        """
        data = self.session.pop(INTENT_KEY, None)
        if data is None:
            return None
        return InvitationIntent(code=data.get("code"))

    def sign_in(self, principal: Principal, admission: AdmissionState) -> None:
        """Establish a session for a principal.

        Args:
            principal: Signed-in principal.
            admission: Initial admission state.
        """
        self.session.pop(PRINCIPAL_KEY, None)
        self.session.pop(ADMISSION_KEY, None)
        self.set_principal(principal)
        self.set_admission(admission)

    def clear(self) -> None:
        """Drop everything held by the session."""
        self.session.clear()
