"""Typed access-control errors."""

import enum


class AccessReason(str, enum.Enum):
    """Machine-readable reason attached to every access rejection."""

    NOT_FOUND = "NotFound"
    REVOKED = "Revoked"
    EXPIRED = "Expired"
    EXHAUSTED = "Exhausted"
    DOMAIN_DENIED = "DomainDenied"
    EMAIL_TAKEN = "EmailTaken"
    INVITATION_REQUIRED = "InvitationRequired"
    DUPLICATE_CODE = "DuplicateCode"
    PROVIDER_UNAVAILABLE = "ProviderUnavailable"


REASON_MESSAGES: dict[AccessReason, str] = {
    AccessReason.NOT_FOUND: "Invalid invitation code",
    AccessReason.REVOKED: "This invitation code has been revoked",
    AccessReason.EXPIRED: "This invitation code has expired",
    AccessReason.EXHAUSTED: "This invitation code has already been used",
    AccessReason.DOMAIN_DENIED: "Your email domain is not authorized to access this application",
    AccessReason.EMAIL_TAKEN: "An account with this email already exists",
    AccessReason.INVITATION_REQUIRED: "Invitation code required",
    AccessReason.DUPLICATE_CODE: "An invitation code with this value already exists",
    AccessReason.PROVIDER_UNAVAILABLE: "The identity provider could not be reached",
}


class AccessDenied(ValueError):
    """Raised by services when a policy check rejects a request.

    Attributes:
        reason: Machine-readable reason.
        message: Human-readable message.
    """

    def __init__(self, reason: AccessReason, message: str | None = None):
        self.reason = AccessReason(reason)
        self.message = message or REASON_MESSAGES[self.reason]
        super().__init__(self.message)

    def to_detail(self) -> dict:
        """Render the error as an HTTP error detail.

        Returns:
            dict: Reason and message.
        """
        return {"reason": self.reason.value, "message": self.message}


class DuplicateCodeError(AccessDenied):
    """Raised when an invitation code value is already taken."""

    def __init__(self, code: str):
        super().__init__(AccessReason.DUPLICATE_CODE)
        self.code = code


class ProviderUnavailable(Exception):
    """Raised when the identity provider call fails or times out."""
