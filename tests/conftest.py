"""Pytest configuration and fixtures."""

import os
import time
from collections.abc import Callable, Generator

# Set test environment before importing app
os.environ["DATABASE_URL"] = "sqlite:///:memory:"
os.environ["SECRET_KEY"] = "test-secret-key-for-testing-only"
os.environ["DEBUG"] = "false"
os.environ["ADMIN_USER_ID"] = "admin-1"
os.environ["SESSION_HTTPS_ONLY"] = "false"

import pytest
from fastapi import Request, Response
from fastapi.responses import RedirectResponse
from fastapi.testclient import TestClient
from sqlalchemy.orm import Session, sessionmaker

from carpool.access.errors import ProviderUnavailable
from carpool.auth.provider import IdentityClaims, RefreshedToken
from carpool.db.database import create_db_engine
from carpool.db.models import Base, InvitationCode, User

ADMIN_ID = "admin-1"

# Use in-memory SQLite for testing
SQLALCHEMY_TEST_DATABASE_URL = "sqlite:///:memory:"

engine = create_db_engine(SQLALCHEMY_TEST_DATABASE_URL)
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


class FakeIdentityProvider:
    """In-process stand-in for the OpenID Connect provider.

    Tests set ``next_claims`` before driving ``/api/login`` and
    ``/api/callback``; setting ``available`` to False makes every call fail
    the way an unreachable provider does.
    """

    def __init__(self):
        self.next_claims: IdentityClaims | None = None
        self.available = True
        self.refresh_calls: list[str] = []
        self.refresh_fails = False

    async def authorize_redirect(self, request: Request, redirect_uri: str) -> Response:
        if not self.available:
            raise ProviderUnavailable("provider down")
        return RedirectResponse(url=f"{redirect_uri}?code=test-auth-code&state=xyz")

    async def fetch_claims(self, request: Request) -> IdentityClaims:
        if not self.available or self.next_claims is None:
            raise ProviderUnavailable("provider down")
        return self.next_claims

    async def refresh(self, refresh_token: str) -> RefreshedToken:
        self.refresh_calls.append(refresh_token)
        if self.refresh_fails:
            raise ProviderUnavailable("refresh rejected")
        return RefreshedToken(
            expires_at=int(time.time()) + 3600,
            refresh_token=f"{refresh_token}-rotated",
        )

    async def end_session_url(self, post_logout_redirect_uri: str) -> str | None:
        return None


def make_claims(
    subject_id: str,
    email: str | None = None,
    first_name: str | None = "Test",
    last_name: str | None = "User",
    expires_in: int = 3600,
    refresh_token: str | None = "refresh-token",
) -> IdentityClaims:
    """Build identity claims as the provider would return them."""
    return IdentityClaims(
        subject_id=subject_id,
        email=email,
        first_name=first_name,
        last_name=last_name,
        profile_image_url=None,
        expires_at=int(time.time()) + expires_in,
        refresh_token=refresh_token,
    )


@pytest.fixture
def claims() -> Callable[..., IdentityClaims]:
    """Get the identity claims builder."""
    return make_claims


@pytest.fixture(scope="function")
def db() -> Generator[Session, None, None]:
    """Create a fresh database for each test."""
    Base.metadata.create_all(bind=engine)
    session = TestingSessionLocal()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture
def identity_provider() -> FakeIdentityProvider:
    """Create a fake identity provider."""
    return FakeIdentityProvider()


@pytest.fixture(scope="function")
def client(
    db: Session, identity_provider: FakeIdentityProvider
) -> Generator[TestClient, None, None]:
    """Create a test client with database and identity provider overrides."""
    # Import here to ensure env vars are set
    from carpool.auth.provider import get_identity_provider
    from carpool.dependencies import get_db
    from carpool.main import app

    def override_get_db():
        try:
            yield db
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_identity_provider] = lambda: identity_provider
    with TestClient(app, raise_server_exceptions=False) as test_client:
        yield test_client
    app.dependency_overrides.clear()


@pytest.fixture
def other_client(client: TestClient) -> Generator[TestClient, None, None]:
    """Create a second client with its own cookie jar, sharing the overrides."""
    from carpool.main import app

    with TestClient(app, raise_server_exceptions=False) as test_client:
        yield test_client


@pytest.fixture
def sign_in(identity_provider: FakeIdentityProvider) -> Callable:
    """Drive the OAuth login flow for a client.

    Returns:
        Callable: ``sign_in(client, claims, invitation=False, code=None)``
            returning the callback response.
    """

    def _sign_in(
        test_client: TestClient,
        claims: IdentityClaims,
        invitation: bool = False,
        code: str | None = None,
    ):
        identity_provider.next_claims = claims
        params = {}
        if invitation:
            params["invitation"] = "true"
        if code is not None:
            params["code"] = code
        login = test_client.get("/api/login", params=params, follow_redirects=False)
        assert login.status_code in (302, 307)
        return test_client.get(
            "/api/callback",
            params={"code": "test-auth-code", "state": "xyz"},
            follow_redirects=False,
        )

    return _sign_in


@pytest.fixture
def admin_client(client: TestClient, sign_in: Callable) -> TestClient:
    """Create a client signed in as the administrator."""
    response = sign_in(client, make_claims(ADMIN_ID, "admin@acme.com", "Ada", "Admin"))
    assert response.status_code == 302
    return client


@pytest.fixture
def user_client(other_client: TestClient, sign_in: Callable) -> TestClient:
    """Create a client signed in as a regular user."""
    response = sign_in(other_client, make_claims("user-1", "traveler@acme.com"))
    assert response.status_code == 302
    return other_client


@pytest.fixture
def test_user(db: Session) -> User:
    """Create a test user."""
    user = User(
        id="user-existing",
        email="existing@example.com",
        first_name="Existing",
        last_name="User",
    )
    db.add(user)
    db.commit()
    db.refresh(user)
    return user


@pytest.fixture
def invitation_factory(db: Session) -> Callable:
    """Create invitation codes directly in the database."""

    def _create(code: str = "WELCOME1", max_uses: int = 1, **fields) -> InvitationCode:
        invitation = InvitationCode(
            code=code,
            created_by_user_id=ADMIN_ID,
            max_uses=max_uses,
            current_uses=fields.pop("current_uses", 0),
            **fields,
        )
        db.add(invitation)
        db.commit()
        db.refresh(invitation)
        return invitation

    return _create
