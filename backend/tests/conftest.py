"""
Shared pytest fixtures for the TempShare backend test suite.

This module provides:
- environment overrides applied before the application is imported
- a controllable clock for fast-forwarding past expiration
- a throwaway SQLite database and local object store per test
- an ASGI client bound to an application built with those dependencies
"""

import os

# Должно выполниться до первого импорта tempshare: настройки читаются при импорте
os.environ.setdefault("RATE_LIMIT_ENABLED", "false")
os.environ.setdefault("DB__DB_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("SECURITY__JWT_SECRET_KEY", "test-secret")
os.environ.setdefault("APP_URL", "http://test")

from datetime import datetime, timedelta, timezone
from typing import Dict, List, Optional

import pytest
from httpx import ASGITransport, AsyncClient

from tempshare.core.config import settings
from tempshare.core.database import DatabaseHelper
from tempshare.core.schemas.auth import ExternalIdentity
from tempshare.core.security import generate_session_token
from tempshare.main import create_app
from tempshare.models import Base
from tempshare.repositories.session_repository import SessionRepository
from tempshare.repositories.user_repository import UserRepository
from tempshare.services.github_oauth import IdentityProvider
from tempshare.storage.local_store import LocalObjectStore


START_TIME = datetime(2026, 10, 19, 12, 0, 0, tzinfo=timezone.utc)


class FakeClock:
    """Часы, которые двигаются только вручную"""

    def __init__(self, now: datetime = START_TIME):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> datetime:
        self.now = self.now + timedelta(**kwargs)
        return self.now


class FakeIdentityProvider(IdentityProvider):
    """Провайдер без сети: каждый код отдаёт заранее заданную личность"""
    name = "github"

    def __init__(self, identity: Optional[ExternalIdentity] = None):
        self.identity = identity or ExternalIdentity(
            provider="github",
            account_id="4242",
            email="Octo@Example.com",
            name="Octo Cat",
            avatar_url="https://avatars.example.com/u/4242",
            access_token="gho_test",
        )
        self.exchanged_codes: List[str] = []

    def authorize_url(self, redirect_uri: str, state: str) -> str:
        return f"https://idp.test/authorize?state={state}&redirect_uri={redirect_uri}"

    async def exchange_code(self, code: str, redirect_uri: str) -> ExternalIdentity:
        self.exchanged_codes.append(code)
        return self.identity


# =============================================================================
# Infrastructure Fixtures
# =============================================================================

@pytest.fixture
def clock() -> FakeClock:
    """Provide a clock frozen at a fixed instant."""
    return FakeClock()


@pytest.fixture
async def db(tmp_path):
    """Provide a fresh SQLite database with all tables created."""
    helper = DatabaseHelper(f"sqlite+aiosqlite:///{tmp_path / 'tempshare.db'}")
    async with helper.engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield helper
    await helper.dispose()


@pytest.fixture
async def session(db):
    """Provide a database session for arranging and checking state."""
    async with db.session_factory() as db_session:
        yield db_session


@pytest.fixture
def object_store(tmp_path) -> LocalObjectStore:
    """Provide a local object store rooted in a temporary directory."""
    return LocalObjectStore(str(tmp_path / "objects"))


@pytest.fixture
def identity_provider() -> FakeIdentityProvider:
    return FakeIdentityProvider()


# =============================================================================
# Domain Fixtures
# =============================================================================

@pytest.fixture
def make_user(db):
    """Factory creating users in their own short-lived session."""
    counter = {"n": 0}

    async def _make_user(email: Optional[str] = None, name: str = "Test User"):
        counter["n"] += 1
        async with db.session_factory() as db_session:
            return await UserRepository(db_session).create(
                email=email or f"user{counter['n']}@example.com",
                name=name,
                image=f"https://avatars.example.com/{counter['n']}.png",
            )

    return _make_user


@pytest.fixture
def make_session(db, clock):
    """Factory creating a login session; returns its token."""

    async def _make_session(user_id: str, expires_in: timedelta = timedelta(days=7)) -> str:
        token = generate_session_token()
        async with db.session_factory() as db_session:
            await SessionRepository(db_session).create(
                session_id=token,
                user_id=user_id,
                expires_at=clock() + expires_in,
            )
        return token

    return _make_session


def cookie_header(token: str) -> Dict[str, str]:
    return {"Cookie": f"{settings.security.SESSION_COOKIE_NAME}={token}"}


@pytest.fixture
def auth_headers(make_user, make_session):
    """Factory: create a user with a live session and return (user, headers)."""

    async def _auth_headers(email: Optional[str] = None, name: str = "Test User"):
        user = await make_user(email=email, name=name)
        token = await make_session(user.id)
        return user, cookie_header(token)

    return _auth_headers


# =============================================================================
# API Fixtures
# =============================================================================

@pytest.fixture
def app(db, object_store, identity_provider, clock):
    """Application wired to the test database, store, identity provider and clock."""
    return create_app(
        db=db,
        object_store=object_store,
        identity_provider=identity_provider,
        clock=clock,
    )


@pytest.fixture
async def client(app):
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as http_client:
        yield http_client
