"""Persistence for invitation codes.

Store methods flush but never commit; the calling service owns the
transaction. Counters are only ever changed through ``redeem``, which is a
single conditional UPDATE, so concurrent redemptions of the same code can
never push ``current_uses`` past ``max_uses``.
"""

from datetime import UTC, datetime

from sqlalchemy import case, or_, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from carpool.access.errors import DuplicateCodeError
from carpool.access.policy import utcnow
from carpool.db.models import InvitationCode


def normalize_code(code: str) -> str:
    """Normalize a user-entered code for storage and lookup.

    Args:
        code: Code as typed.

    Returns:
        str: Stripped, upper-case code.
    """
    return code.strip().upper()


def _naive(value: datetime) -> datetime:
    # DateTime columns hold naive UTC
    if value.tzinfo is None:
        return value
    return value.astimezone(UTC).replace(tzinfo=None)


class InvitationStore:
    """Invitation code repository backed by SQLAlchemy."""

    def __init__(self, db: Session):
        """Initialize invitation store.

        Args:
            db: Database session.
        """
        self.db = db

    def create(
        self,
        code: str,
        created_by_user_id: str,
        max_uses: int = 1,
        expires_at: datetime | None = None,
    ) -> InvitationCode:
        """Create an invitation code.

        Args:
            code: Code value.
            created_by_user_id: User minting the code.
            max_uses: Maximum number of redemptions.
            expires_at: Optional expiry.

        Returns:
            InvitationCode: Created record.

        Raises:
            DuplicateCodeError: If the code already exists.
        """
        normalized = normalize_code(code)
        if self.find_by_code(normalized) is not None:
            raise DuplicateCodeError(normalized)

        invitation = InvitationCode(
            code=normalized,
            created_by_user_id=created_by_user_id,
            max_uses=max_uses,
            current_uses=0,
            expires_at=_naive(expires_at) if expires_at else None,
        )
        self.db.add(invitation)
        try:
            self.db.flush()
        except IntegrityError as e:
            self.db.rollback()
            raise DuplicateCodeError(normalized) from e
        self.db.refresh(invitation)
        return invitation

    def get(self, invitation_id: str) -> InvitationCode | None:
        """Get an invitation code by ID.

        Args:
            invitation_id: Invitation UUID.

        Returns:
            InvitationCode | None: Record if found.
        """
        return self.db.get(InvitationCode, invitation_id, populate_existing=True)

    def find_by_code(self, code: str) -> InvitationCode | None:
        """Find an invitation code by value, ignoring case.

        Args:
            code: Code as typed.

        Returns:
            InvitationCode | None: Record if found.
        """
        return self.db.execute(
            select(InvitationCode)
            .where(InvitationCode.code == normalize_code(code))
            .execution_options(populate_existing=True)
        ).scalar_one_or_none()

    def list_all(self) -> list[InvitationCode]:
        """List all invitation codes, newest first.

        Returns:
            list[InvitationCode]: Records.
        """
        return list(
            self.db.execute(
                select(InvitationCode).order_by(
                    InvitationCode.created_at.desc(), InvitationCode.code
                )
            ).scalars()
        )

    def revoke(self, invitation_id: str) -> InvitationCode | None:
        """Revoke an invitation code.

        Revoking an already revoked code keeps the original timestamp.

        Args:
            invitation_id: Invitation UUID.

        Returns:
            InvitationCode | None: Revoked record, or None if not found.
        """
        self.db.execute(
            update(InvitationCode)
            .where(
                InvitationCode.id == invitation_id,
                InvitationCode.revoked_at.is_(None),
            )
            .values(revoked_at=_naive(utcnow()))
            .execution_options(synchronize_session=False)
        )
        return self.get(invitation_id)

    def redeem(
        self,
        invitation_id: str,
        used_by_user_id: str,
        now: datetime | None = None,
    ) -> InvitationCode | None:
        """Consume one use of an invitation code.

        The increment only applies while the code is usable. The first
        redemption also records ``used_by_user_id`` and ``used_at``.

        Args:
            invitation_id: Invitation UUID.
            used_by_user_id: User redeeming the code.
            now: Redemption time.

        Returns:
            InvitationCode | None: Updated record, or None if nothing was
                redeemed (missing, revoked, expired or exhausted).
        """
        now = _naive(now or utcnow())
        first_use = InvitationCode.current_uses == 0

        # MySQL evaluates SET assignments left to right, so the first-use
        # markers must be assigned before the counter moves.
        stmt = (
            update(InvitationCode)
            .where(
                InvitationCode.id == invitation_id,
                InvitationCode.revoked_at.is_(None),
                or_(
                    InvitationCode.expires_at.is_(None),
                    InvitationCode.expires_at > now,
                ),
                InvitationCode.current_uses < InvitationCode.max_uses,
            )
            .ordered_values(
                (
                    InvitationCode.used_by_user_id,
                    case((first_use, used_by_user_id), else_=InvitationCode.used_by_user_id),
                ),
                (
                    InvitationCode.used_at,
                    case((first_use, now), else_=InvitationCode.used_at),
                ),
                (InvitationCode.current_uses, InvitationCode.current_uses + 1),
            )
            .execution_options(synchronize_session=False)
        )
        result = self.db.execute(stmt)
        if result.rowcount != 1:
            return None
        return self.get(invitation_id)
