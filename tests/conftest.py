"""Pytest configuration and fixtures."""

import asyncio
import os
from contextlib import asynccontextmanager
from typing import AsyncGenerator
from unittest.mock import MagicMock

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

# Set test environment
os.environ["ENVIRONMENT"] = "test"
os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///:memory:"
os.environ["DEBUG"] = "false"
os.environ["CAPTCHA_SECRET"] = ""
os.environ["SMTP_HOST"] = ""

from accountkit.api.app import create_app
from accountkit.config import Settings, get_settings
from accountkit.services import (
    IdentityService,
    Notifier,
    SecurityService,
    Services,
    SessionClaim,
    SSOSigner,
    WalletService,
    get_services,
)
from accountkit.services.identity import LocalIdentityService
from accountkit.services.notifications import wait_for_pending_sends
from accountkit.services.security import LocalSecurityService
from accountkit.services.wallet import LocalWalletService
from accountkit.storage.models import Base
from accountkit.storage.repository import AccountRepository


@pytest.fixture
def settings() -> Settings:
    """Settings with fixed values so assertions do not depend on the environment."""
    return Settings(
        _env_file=None,
        api_name="testex",
        supported_coins="btc,eth",
        database_url="sqlite+aiosqlite:///:memory:",
        debug=False,
        secret_key="test-secret",
        captcha_secret="",
        smtp_host="",
        hmac_token_limit=2,
    )


# ----------------------------------------------------------------------
# Database
# ----------------------------------------------------------------------


@pytest_asyncio.fixture
async def db_engine():
    """Create in-memory database engine for testing."""
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        echo=False,
    )

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    await engine.dispose()


@pytest.fixture
def session_factory(db_engine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(bind=db_engine, class_=AsyncSession, expire_on_commit=False)


@pytest.fixture
def session_scope(session_factory):
    """Commit-or-rollback session scope bound to the test engine."""

    @asynccontextmanager
    async def scope() -> AsyncGenerator[AsyncSession, None]:
        async with session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    return scope


@pytest_asyncio.fixture
async def db_session(session_factory) -> AsyncGenerator[AsyncSession, None]:
    """Create database session for testing."""
    async with session_factory() as session:
        yield session


@pytest_asyncio.fixture
async def repo(db_session: AsyncSession) -> AccountRepository:
    return AccountRepository(db_session)


# ----------------------------------------------------------------------
# Local collaborators
# ----------------------------------------------------------------------


@pytest.fixture
def notifier() -> MagicMock:
    notifier = MagicMock(spec=Notifier)
    notifier.send_email.return_value = True
    return notifier


@pytest_asyncio.fixture(autouse=True)
async def drain_sends():
    """Let emails started during a test finish before its loop closes."""
    yield
    await wait_for_pending_sends()


@pytest.fixture
def held_notifier():
    """Notifier whose sends block until ``notifier.release`` is set."""
    notifier = MagicMock(spec=Notifier)
    notifier.release = asyncio.Event()

    async def send_email(*args, **kwargs):
        await notifier.release.wait()
        return True

    notifier.send_email.side_effect = send_email
    yield notifier
    notifier.release.set()


@pytest.fixture
def security(notifier, settings, session_scope) -> LocalSecurityService:
    return LocalSecurityService(notifier, settings, session_scope=session_scope)


@pytest.fixture
def identity(security, notifier, settings, session_scope) -> LocalIdentityService:
    return LocalIdentityService(security, notifier, settings, session_scope=session_scope)


@pytest.fixture
def wallet(settings, session_scope) -> LocalWalletService:
    return LocalWalletService(settings, session_scope=session_scope)


# ----------------------------------------------------------------------
# HTTP layer with faked collaborators
# ----------------------------------------------------------------------


@pytest.fixture
def auth_headers() -> dict:
    return {"Authorization": "Bearer test-token"}


@pytest.fixture
def claim() -> SessionClaim:
    return SessionClaim(id=7, email="alice@example.com", network_id=3)


@pytest.fixture
def fake_services(claim) -> Services:
    """Collaborator bundle of interface-shaped mocks; async methods become AsyncMocks."""
    services = Services(
        identity=MagicMock(spec=IdentityService),
        security=MagicMock(spec=SecurityService),
        wallet=MagicMock(spec=WalletService),
        notifier=MagicMock(spec=Notifier),
        sso=MagicMock(spec=SSOSigner),
    )
    services.security.verify_token.return_value = claim
    services.notifier.send_email.return_value = True
    return services


@pytest.fixture
def test_app(fake_services, settings):
    app = create_app()
    app.dependency_overrides[get_services] = lambda: fake_services
    app.dependency_overrides[get_settings] = lambda: settings
    yield app
    app.dependency_overrides.clear()


@pytest_asyncio.fixture
async def client(test_app) -> AsyncGenerator[AsyncClient, None]:
    """Create async test client."""
    transport = ASGITransport(app=test_app)
    async with AsyncClient(transport=transport, base_url="http://test/v2") as ac:
        yield ac
