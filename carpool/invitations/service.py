"""Invitation service layer."""

import logging
import re
import secrets
import string
from datetime import datetime, timedelta

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from carpool.access.errors import AccessDenied, AccessReason, DuplicateCodeError
from carpool.access.policy import InvitationStatus, evaluate_invitation, utcnow
from carpool.db.models import AuthProvider, InvitationCode, User
from carpool.invitations.schemas import (
    InvitationCodeCreate,
    InvitationCodeResponse,
    InvitationSignup,
)
from carpool.invitations.store import InvitationStore, normalize_code

logger = logging.getLogger(__name__)

CODE_ALPHABET = string.ascii_uppercase + string.digits
CODE_LENGTH = 8
CODE_PATTERN = re.compile(r"^[A-Z0-9-]{4,32}$")
# Ten years
MAX_EXPIRES_IN_HOURS = 24 * 365 * 10


def generate_code(length: int = CODE_LENGTH) -> str:
    """Generate a random invitation code.

    Args:
        length: Number of characters.

    Returns:
        str: Upper-case alphanumeric code.
    """
    return "".join(secrets.choice(CODE_ALPHABET) for _ in range(length))


def split_name(name: str) -> tuple[str, str]:
    """Split a full name into first and last name.

    The first whitespace-delimited token is the first name; the rest, which
    may be empty, is the last name.

    Args:
        name: Full name.

    Returns:
        tuple[str, str]: First name and last name.
    """
    parts = name.split(maxsplit=1)
    if not parts:
        return "", ""
    return parts[0], parts[1] if len(parts) > 1 else ""


def to_response(invitation: InvitationCode, now: datetime | None = None) -> InvitationCodeResponse:
    """Convert an invitation model to its response schema.

    Args:
        invitation: Invitation record.
        now: Reference time for the status field.

    Returns:
        InvitationCodeResponse: Response schema.
    """
    status = evaluate_invitation(invitation, now or utcnow())
    return InvitationCodeResponse(
        id=invitation.id,
        code=invitation.code,
        created_by_user_id=invitation.created_by_user_id,
        created_at=invitation.created_at,
        revoked_at=invitation.revoked_at,
        used_by_user_id=invitation.used_by_user_id,
        used_at=invitation.used_at,
        max_uses=invitation.max_uses,
        current_uses=invitation.current_uses,
        expires_at=invitation.expires_at,
        status=status.value,
    )


def _reject(status: InvitationStatus) -> AccessDenied:
    return AccessDenied(AccessReason(status.value))


class InvitationService:
    """Service class for invitation code operations."""

    def __init__(self, db: Session):
        """Initialize invitation service.

        Args:
            db: Database session.
        """
        self.db = db
        self.store = InvitationStore(db)

    def create_code(
        self,
        data: InvitationCodeCreate,
        created_by_user_id: str,
        now: datetime | None = None,
    ) -> InvitationCode:
        """Mint an invitation code.

        Args:
            data: Code parameters.
            created_by_user_id: Admin minting the code.
            now: Creation time, used to compute the expiry.

        Returns:
            InvitationCode: Created record.

        Raises:
            ValueError: If the parameters are invalid.
            DuplicateCodeError: If an explicit code is already taken.
        """
        if data.max_uses < 1:
            raise ValueError("maxUses must be at least 1")
        if data.expires_in_hours is not None and not (
            1 <= data.expires_in_hours <= MAX_EXPIRES_IN_HOURS
        ):
            raise ValueError(f"expiresInHours must be between 1 and {MAX_EXPIRES_IN_HOURS}")

        now = now or utcnow()
        expires_at = None
        if data.expires_in_hours is not None:
            expires_at = now + timedelta(hours=data.expires_in_hours)

        if data.code and data.code.strip():
            code = normalize_code(data.code)
            if not CODE_PATTERN.match(code):
                raise ValueError(
                    "Invitation code must be 4-32 characters of letters, digits or dashes"
                )
            invitation = self.store.create(code, created_by_user_id, data.max_uses, expires_at)
        else:
            invitation = self._create_generated(created_by_user_id, data.max_uses, expires_at)

        self.db.commit()
        self.db.refresh(invitation)
        logger.info(
            "Invitation code %s created by %s (max uses %d)",
            invitation.code,
            created_by_user_id,
            invitation.max_uses,
        )
        return invitation

    def _create_generated(
        self, created_by_user_id: str, max_uses: int, expires_at: datetime | None
    ) -> InvitationCode:
        for _ in range(5):
            try:
                return self.store.create(generate_code(), created_by_user_id, max_uses, expires_at)
            except DuplicateCodeError:
                continue
        raise ValueError("Could not generate a unique invitation code")

    def list_codes(self) -> list[InvitationCode]:
        """List all invitation codes, newest first.

        Returns:
            list[InvitationCode]: Records.
        """
        return self.store.list_all()

    def revoke_code(self, invitation_id: str) -> InvitationCode | None:
        """Revoke an invitation code.

        Args:
            invitation_id: Invitation UUID.

        Returns:
            InvitationCode | None: Revoked record, or None if not found.
        """
        invitation = self.store.revoke(invitation_id)
        if invitation is None:
            self.db.rollback()
            return None
        self.db.commit()
        self.db.refresh(invitation)
        logger.info("Invitation code %s revoked", invitation.code)
        return invitation

    def _redeem(self, code: str, user_id: str, now: datetime) -> InvitationCode:
        """Evaluate and redeem a code inside the current transaction.

        Raises:
            AccessDenied: With the reason the code cannot be used.
        """
        invitation = self.store.find_by_code(code)
        status = evaluate_invitation(invitation, now)
        if status != InvitationStatus.USABLE:
            raise _reject(status)

        redeemed = self.store.redeem(invitation.id, user_id, now)
        if redeemed is None:
            # Lost a race with another redemption, revocation or expiry
            status = evaluate_invitation(self.store.get(invitation.id), now)
            if status == InvitationStatus.USABLE:
                status = InvitationStatus.EXHAUSTED
            raise _reject(status)
        return redeemed

    def redeem_code(self, code: str, user_id: str, now: datetime | None = None) -> InvitationCode:
        """Redeem a code for an existing user.

        Args:
            code: Code as typed.
            user_id: User redeeming the code.
            now: Redemption time.

        Returns:
            InvitationCode: Updated record.

        Raises:
            AccessDenied: If the code is missing, revoked, expired or exhausted.
        """
        try:
            invitation = self._redeem(code, user_id, now or utcnow())
        except AccessDenied as e:
            self.db.rollback()
            logger.warning("Invitation redemption by %s rejected: %s", user_id, e.reason.value)
            raise

        self.db.commit()
        self.db.refresh(invitation)
        logger.info(
            "Invitation code %s redeemed by %s (%d/%d)",
            invitation.code,
            user_id,
            invitation.current_uses,
            invitation.max_uses,
        )
        return invitation

    def signup(self, data: InvitationSignup, now: datetime | None = None) -> User:
        """Create an invitation user and redeem their code.

        The user row and the redemption are committed together, so a
        rejected code leaves no user behind.

        Args:
            data: Signup data.
            now: Signup time.

        Returns:
            User: Created user.

        Raises:
            AccessDenied: EmailTaken, or the reason the code cannot be used.
        """
        now = now or utcnow()
        email = data.email.lower()

        if self.db.query(User).filter(User.email == email).first():
            raise AccessDenied(AccessReason.EMAIL_TAKEN)

        status = evaluate_invitation(self.store.find_by_code(data.invitation_code), now)
        if status != InvitationStatus.USABLE:
            raise _reject(status)

        first_name, last_name = split_name(data.name)
        user = User(
            email=email,
            first_name=first_name,
            last_name=last_name,
            auth_provider=AuthProvider.INVITATION,
        )
        self.db.add(user)
        try:
            self.db.flush()
        except IntegrityError as e:
            self.db.rollback()
            raise AccessDenied(AccessReason.EMAIL_TAKEN) from e

        try:
            self._redeem(data.invitation_code, user.id, now)
        except AccessDenied as e:
            self.db.rollback()
            logger.warning("Invitation signup for %s rejected: %s", email, e.reason.value)
            raise

        self.db.commit()
        self.db.refresh(user)
        logger.info("Invitation user %s signed up with code %s", user.id, data.invitation_code)
        return user


def get_invitation_service(db: Session) -> InvitationService:
    """Get invitation service instance.

    Args:
        db: Database session.

    Returns:
        InvitationService: Service instance.
    """
    return InvitationService(db)
