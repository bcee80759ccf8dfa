"""Access restriction settings service."""

import logging
import re

from sqlalchemy.orm import Session

from carpool.access.schemas import AccessRestrictions
from carpool.db.models import Setting

logger = logging.getLogger(__name__)

RESTRICTIONS_KEY = "oauth_restrictions"

DOMAIN_PATTERN = re.compile(r"^[a-z0-9](?:[a-z0-9-]*[a-z0-9])?(?:\.[a-z0-9](?:[a-z0-9-]*[a-z0-9])?)+$")
GITHUB_ORG_PATTERN = re.compile(r"^[A-Za-z0-9](?:[A-Za-z0-9-]{0,38})$")


def _dedupe(values: list[str]) -> list[str]:
    seen: set[str] = set()
    result = []
    for value in values:
        if value and value not in seen:
            seen.add(value)
            result.append(value)
    return result


class RestrictionService:
    """Service class for reading and updating OAuth login restrictions."""

    def __init__(self, db: Session):
        """Initialize restriction service.

        Args:
            db: Database session.
        """
        self.db = db

    def _get_setting(self) -> Setting | None:
        return self.db.query(Setting).filter(Setting.key == RESTRICTIONS_KEY).first()

    def get_restrictions(self) -> AccessRestrictions:
        """Get the current restrictions.

        Returns:
            AccessRestrictions: Stored restrictions, or no restrictions if
                none were ever saved.
        """
        setting = self._get_setting()
        if setting is None or not setting.value:
            return AccessRestrictions()
        return AccessRestrictions.model_validate(setting.value)

    def update_restrictions(self, data: AccessRestrictions) -> AccessRestrictions:
        """Validate, normalize and store new restrictions.

        Domains are lower-cased and may be given with a leading ``@``.

        Args:
            data: New restrictions.

        Returns:
            AccessRestrictions: Stored restrictions.

        Raises:
            ValueError: If a domain or organization name is malformed.
        """
        domains = _dedupe([d.strip().lstrip("@").lower() for d in data.allowed_domains])
        for domain in domains:
            if not DOMAIN_PATTERN.match(domain):
                raise ValueError(f"Invalid email domain: {domain}")

        orgs = _dedupe([o.strip() for o in data.allowed_github_orgs])
        for org in orgs:
            if not GITHUB_ORG_PATTERN.match(org):
                raise ValueError(f"Invalid GitHub organization: {org}")

        restrictions = AccessRestrictions(allowed_domains=domains, allowed_github_orgs=orgs)
        value = restrictions.model_dump()

        setting = self._get_setting()
        if setting is None:
            setting = Setting(key=RESTRICTIONS_KEY, value=value)
            self.db.add(setting)
        else:
            setting.value = value

        self.db.commit()
        logger.info("OAuth restrictions updated: %d allowed domain(s)", len(domains))
        return restrictions


def get_restriction_service(db: Session) -> RestrictionService:
    """Get restriction service instance.

    Args:
        db: Database session.

    Returns:
        RestrictionService: Service instance.
    """
    return RestrictionService(db)
