"""Access policy decisions for invitation codes and OAuth logins.

Everything here is side-effect free: callers pass in the invitation record,
the restriction settings and the current time, so the decisions can be
tested without a database or an identity provider.
"""

import enum
from datetime import UTC, datetime

from carpool.access.schemas import AccessRestrictions
from carpool.db.models import InvitationCode


class InvitationStatus(str, enum.Enum):
    """Classification of an invitation code at a point in time."""

    USABLE = "Usable"
    NOT_FOUND = "NotFound"
    REVOKED = "Revoked"
    EXPIRED = "Expired"
    EXHAUSTED = "Exhausted"


class DomainDecision(str, enum.Enum):
    """Outcome of the email domain check."""

    ALLOWED = "Allowed"
    DENIED = "Denied"


def utcnow() -> datetime:
    """Get the current time as an aware UTC datetime.

    Returns:
        datetime: Current UTC time.
    """
    return datetime.now(UTC)


def as_utc(value: datetime) -> datetime:
    """Treat a naive datetime read back from the database as UTC.

    Args:
        value: Datetime, naive or aware.

    Returns:
        datetime: Aware UTC datetime.
    """
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value.astimezone(UTC)


def evaluate_invitation(invitation: InvitationCode | None, now: datetime) -> InvitationStatus:
    """Classify an invitation code.

    Checks run in order and the first match wins: missing, revoked,
    expired, exhausted. A code whose expiry equals ``now`` is expired.

    Args:
        invitation: Invitation record, or None if no record matched.
        now: Reference time.

    Returns:
        InvitationStatus: Classification of the code.
    """
    if invitation is None:
        return InvitationStatus.NOT_FOUND
    if invitation.revoked_at is not None:
        return InvitationStatus.REVOKED
    if invitation.expires_at is not None and as_utc(invitation.expires_at) <= as_utc(now):
        return InvitationStatus.EXPIRED
    if invitation.current_uses >= invitation.max_uses:
        return InvitationStatus.EXHAUSTED
    return InvitationStatus.USABLE


def is_admin(user_id: str | None, admin_user_id: str) -> bool:
    """Check whether a user is the configured administrator.

    Args:
        user_id: User ID to check.
        admin_user_id: Configured administrator ID; empty disables admin access.

    Returns:
        bool: True if the IDs match.
    """
    if not user_id or not admin_user_id:
        return False
    return user_id == admin_user_id


def email_domain(email: str) -> str | None:
    """Extract the lower-cased domain after the last ``@`` of an email.

    Args:
        email: Email address.

    Returns:
        str | None: Domain, or None if the address has no ``@``.
    """
    if "@" not in email:
        return None
    return email.rsplit("@", 1)[1].strip().lower()


def evaluate_domain(email: str | None, restrictions: AccessRestrictions) -> DomainDecision:
    """Decide whether an email may sign in under the current restrictions.

    ``allowed_github_orgs`` is not consulted.

    Args:
        email: Verified email from the identity provider.
        restrictions: Current access restrictions.

    Returns:
        DomainDecision: Allowed if no domains are configured or the email's
            domain matches one of them.
    """
    if not restrictions.allowed_domains:
        return DomainDecision.ALLOWED

    domain = email_domain(email or "")
    if not domain:
        return DomainDecision.DENIED

    if any(domain == allowed.lower() for allowed in restrictions.allowed_domains):
        return DomainDecision.ALLOWED
    return DomainDecision.DENIED
