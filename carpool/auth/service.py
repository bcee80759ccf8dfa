"""Authentication service layer."""

import logging

from sqlalchemy.orm import Session

from carpool.access.errors import AccessDenied, AccessReason
from carpool.access.policy import DomainDecision, evaluate_domain, is_admin
from carpool.access.schemas import AccessRestrictions
from carpool.access.service import RestrictionService
from carpool.auth.provider import IdentityClaims
from carpool.db.models import AuthProvider, User
from carpool.users.schemas import UserResponse

logger = logging.getLogger(__name__)


class AuthService:
    """Service class for authentication operations."""

    def __init__(self, db: Session):
        """Initialize auth service.

        Args:
            db: Database session.
        """
        self.db = db

    def get_restrictions(self) -> AccessRestrictions:
        """Get the OAuth restrictions in force.

        Returns:
            AccessRestrictions: Current restrictions.
        """
        return RestrictionService(self.db).get_restrictions()

    def complete_oauth_login(
        self,
        claims: IdentityClaims,
        restrictions: AccessRestrictions | None = None,
    ) -> User:
        """Admit an identity returned by the provider.

        The domain check runs on every login, before the user row is
        created or updated.

        Args:
            claims: Verified identity claims.
            restrictions: Restrictions to enforce; loaded from settings if None.

        Returns:
            User: The created or updated user.

        Raises:
            AccessDenied: DomainDenied if the email domain is not allowed.
        """
        if restrictions is None:
            restrictions = self.get_restrictions()

        if evaluate_domain(claims.email, restrictions) == DomainDecision.DENIED:
            logger.warning(
                "Login for %s denied: email domain not authorized", claims.subject_id
            )
            raise AccessDenied(AccessReason.DOMAIN_DENIED)

        return self.upsert_user(claims)

    def upsert_user(self, claims: IdentityClaims) -> User:
        """Create or update the user for a provider identity.

        An email already held by a different user is not copied onto this one.

        Args:
            claims: Verified identity claims.

        Returns:
            User: The stored user.
        """
        email = claims.email.lower() if claims.email else None
        if email:
            holder = self.db.query(User).filter(User.email == email).first()
            if holder is not None and holder.id != claims.subject_id:
                logger.warning(
                    "Email of %s already belongs to user %s", claims.subject_id, holder.id
                )
                email = None

        user = self.db.query(User).filter(User.id == claims.subject_id).first()
        if user is None:
            user = User(id=claims.subject_id, auth_provider=AuthProvider.OIDC)
            self.db.add(user)
            logger.info("New user %s signed in", claims.subject_id)

        if email:
            user.email = email
        user.first_name = claims.first_name
        user.last_name = claims.last_name
        user.profile_image_url = claims.profile_image_url

        self.db.commit()
        self.db.refresh(user)
        return user

    def get_user(self, user_id: str) -> User | None:
        """Get a user by ID.

        Args:
            user_id: User ID.

        Returns:
            User | None: User if found.
        """
        return self.db.query(User).filter(User.id == user_id).first()

    @staticmethod
    def get_user_response(user: User, admin_user_id: str) -> UserResponse:
        """Convert a user model to its response schema.

        Args:
            user: User model.
            admin_user_id: Configured administrator ID.

        Returns:
            UserResponse: User information.
        """
        return UserResponse(
            id=user.id,
            email=user.email,
            first_name=user.first_name,
            last_name=user.last_name,
            profile_image_url=user.profile_image_url,
            auth_provider=user.auth_provider.value,
            created_at=user.created_at,
            updated_at=user.updated_at,
            is_admin=is_admin(user.id, admin_user_id),
        )


def get_auth_service(db: Session) -> AuthService:
    """Get auth service instance.

    Args:
        db: Database session.

    Returns:
        AuthService: Service instance.
    """
    return AuthService(db)
