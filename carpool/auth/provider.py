"""OpenID Connect identity provider adapter."""

import logging
import time
from dataclasses import dataclass
from functools import lru_cache
from urllib.parse import urlencode

import httpx
from authlib.integrations.base_client import OAuthError
from authlib.integrations.starlette_client import OAuth
from fastapi import Request, Response

from carpool.access.errors import ProviderUnavailable
from carpool.config import Settings, get_settings

logger = logging.getLogger(__name__)

PROVIDER_NAME = "oidc"


@dataclass(frozen=True)
class IdentityClaims:
    """Verified identity returned by the provider.

    Attributes:
        subject_id: Provider subject ID, used as the user ID.
        email: Verified email address.
        first_name: Given name.
        last_name: Family name.
        profile_image_url: Avatar URL.
        expires_at: Token expiry as a UNIX timestamp.
        refresh_token: Refresh token, if the provider issued one.
    """

    subject_id: str
    email: str | None
    first_name: str | None
    last_name: str | None
    profile_image_url: str | None
    expires_at: int
    refresh_token: str | None = None


@dataclass(frozen=True)
class RefreshedToken:
    """Result of a refresh token grant."""

    expires_at: int
    refresh_token: str | None


def _expiry(token: dict, claims: dict | None = None) -> int:
    if claims and claims.get("exp"):
        return int(claims["exp"])
    if token.get("expires_at"):
        return int(token["expires_at"])
    return int(time.time()) + int(token.get("expires_in") or 3600)


class IdentityProvider:
    """Thin wrapper around Authlib's Starlette OIDC client.

    Every provider failure is raised as ``ProviderUnavailable`` so callers
    never see transport or protocol exceptions.
    """

    def __init__(self, settings: Settings):
        """Register the OIDC client.

        Args:
            settings: Application settings.
        """
        self.settings = settings
        self.oauth = OAuth()
        self.oauth.register(
            name=PROVIDER_NAME,
            client_id=settings.oidc_client_id,
            client_secret=settings.oidc_client_secret,
            server_metadata_url=(
                f"{settings.oidc_issuer_url.rstrip('/')}/.well-known/openid-configuration"
            ),
            client_kwargs={"scope": settings.oidc_scope, "timeout": 10.0},
        )

    @property
    def client(self):
        return self.oauth.create_client(PROVIDER_NAME)

    async def authorize_redirect(self, request: Request, redirect_uri: str) -> Response:
        """Redirect the browser to the provider's authorization endpoint.

        Args:
            request: Incoming request; its session stores the OAuth state.
            redirect_uri: Callback URL.

        Returns:
            Response: Redirect response.

        Raises:
            ProviderUnavailable: If the provider metadata cannot be loaded.
        """
        try:
            return await self.client.authorize_redirect(
                request, redirect_uri, prompt="login consent"
            )
        except (OAuthError, httpx.HTTPError) as e:
            logger.warning("Identity provider redirect failed: %s", e)
            raise ProviderUnavailable(str(e)) from e

    async def fetch_claims(self, request: Request) -> IdentityClaims:
        """Exchange the callback's authorization code for verified claims.

        Args:
            request: Callback request.

        Returns:
            IdentityClaims: Verified identity.

        Raises:
            ProviderUnavailable: If the exchange fails or yields no claims.
        """
        try:
            token = await self.client.authorize_access_token(request)
        except (OAuthError, httpx.HTTPError) as e:
            logger.warning("Identity provider token exchange failed: %s", e)
            raise ProviderUnavailable(str(e)) from e

        userinfo = token.get("userinfo")
        if not userinfo or not userinfo.get("sub"):
            raise ProviderUnavailable("No claims in token")

        return IdentityClaims(
            subject_id=str(userinfo["sub"]),
            email=userinfo.get("email"),
            first_name=userinfo.get("first_name") or userinfo.get("given_name"),
            last_name=userinfo.get("last_name") or userinfo.get("family_name"),
            profile_image_url=userinfo.get("profile_image_url") or userinfo.get("picture"),
            expires_at=_expiry(token, userinfo),
            refresh_token=token.get("refresh_token"),
        )

    async def refresh(self, refresh_token: str) -> RefreshedToken:
        """Run a refresh token grant.

        Args:
            refresh_token: Refresh token held by the session.

        Returns:
            RefreshedToken: New expiry and, if rotated, new refresh token.

        Raises:
            ProviderUnavailable: If the grant fails.
        """
        try:
            token = await self.client.fetch_access_token(
                grant_type="refresh_token",
                refresh_token=refresh_token,
            )
        except (OAuthError, httpx.HTTPError) as e:
            logger.warning("Identity provider refresh failed: %s", e)
            raise ProviderUnavailable(str(e)) from e

        return RefreshedToken(
            expires_at=_expiry(token),
            refresh_token=token.get("refresh_token") or refresh_token,
        )

    async def end_session_url(self, post_logout_redirect_uri: str) -> str | None:
        """Build the provider's logout URL.

        Args:
            post_logout_redirect_uri: Where the provider sends the user back.

        Returns:
            str | None: Logout URL, or None if the provider has no
                end-session endpoint or cannot be reached.
        """
        try:
            metadata = await self.client.load_server_metadata()
        except (OAuthError, httpx.HTTPError) as e:
            logger.warning("Could not load provider metadata for logout: %s", e)
            return None

        endpoint = metadata.get("end_session_endpoint")
        if not endpoint:
            return None
        query = urlencode(
            {
                "client_id": self.settings.oidc_client_id,
                "post_logout_redirect_uri": post_logout_redirect_uri,
            }
        )
        return f"{endpoint}?{query}"


@lru_cache
def get_identity_provider() -> IdentityProvider:
    """Get the cached identity provider.

    Returns:
        IdentityProvider: Provider adapter.
    """
    return IdentityProvider(get_settings())
