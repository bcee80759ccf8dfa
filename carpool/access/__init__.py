"""Access policy and OAuth login restrictions."""

from carpool.access.errors import AccessDenied, AccessReason, ProviderUnavailable
from carpool.access.policy import (
    DomainDecision,
    InvitationStatus,
    evaluate_domain,
    evaluate_invitation,
    is_admin,
)
from carpool.access.schemas import AccessRestrictions

__all__ = [
    "AccessDenied",
    "AccessReason",
    "AccessRestrictions",
    "DomainDecision",
    "InvitationStatus",
    "ProviderUnavailable",
    "evaluate_domain",
    "evaluate_invitation",
    "is_admin",
]
