"""Pydantic schemas for access restriction settings."""

from pydantic import Field

from carpool.schemas import CamelModel


class AccessRestrictions(CamelModel):
    """OAuth login restrictions.

    Attributes:
        allowed_domains: Email domains allowed to sign in; empty means any.
        allowed_github_orgs: GitHub organizations; stored but not enforced.
    """

    allowed_domains: list[str] = Field(default_factory=list)
    allowed_github_orgs: list[str] = Field(default_factory=list, alias="allowedGitHubOrgs")
