"""User administration service layer."""

import logging

from sqlalchemy.orm import Session

from carpool.auth.service import AuthService
from carpool.db.models import User
from carpool.users.schemas import UserResponse

logger = logging.getLogger(__name__)


class UserService:
    """Service class for user administration."""

    def __init__(self, db: Session, admin_user_id: str):
        """Initialize user service.

        Args:
            db: Database session.
            admin_user_id: Configured administrator ID.
        """
        self.db = db
        self.admin_user_id = admin_user_id

    def list_users(self) -> list[UserResponse]:
        """List all users, newest first.

        Returns:
            list[UserResponse]: Users.
        """
        users = self.db.query(User).order_by(User.created_at.desc(), User.id).all()
        return [AuthService.get_user_response(u, self.admin_user_id) for u in users]

    def delete_user(self, user_id: str, acting_user_id: str) -> bool:
        """Delete a user.

        Args:
            user_id: User to delete.
            acting_user_id: Admin performing the deletion.

        Returns:
            bool: True if deleted, False if not found.

        Raises:
            ValueError: If the admin tries to delete themselves.
        """
        if user_id == acting_user_id:
            raise ValueError("You cannot delete your own account")

        user = self.db.query(User).filter(User.id == user_id).first()
        if not user:
            return False

        self.db.delete(user)
        self.db.commit()
        logger.info("User %s deleted by %s", user_id, acting_user_id)
        return True
