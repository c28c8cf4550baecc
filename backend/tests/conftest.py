"""
Hafez Quraan Backend — Test Configuration (conftest.py)
=========================================================

What:  Shared pytest fixtures for the entire test suite.
How:   pytest auto-discovers conftest.py and makes fixtures available to all tests.

Fixture Hierarchy:
    Function-scoped (created fresh for each test):
    ├── database_url: SQLite file under tmp_path (one database per test)
    ├── engine / session_factory / db_session: real async SQLAlchemy stack,
    │   schema built from ORM metadata
    ├── mock_db_session: AsyncMock session for failure-path tests
    ├── fake_mailer: records send_otp calls instead of calling SendGrid
    └── test_client: HTTPX AsyncClient against create_app(), lifespan run,
        mail dispatcher swapped through dependency_overrides
"""

import os
from typing import List, Optional, Tuple
from unittest.mock import AsyncMock, MagicMock

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

# Override settings for testing BEFORE any app imports
# Prevents tests from using a real database or mail key
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///./test.db")
os.environ["SENDGRID_API_KEY"] = ""
os.environ["RUN_MIGRATIONS_ON_STARTUP"] = "false"
os.environ["LOG_LEVEL"] = "WARNING"

from hafez_api.config import Settings  # noqa: E402
from hafez_api.database import Base, build_engine, build_session_factory  # noqa: E402
from hafez_api.exceptions import UpstreamServiceError  # noqa: E402
from hafez_api.services.mail_base import MailDispatcher  # noqa: E402
from hafez_api.services.mail_service import get_mail_dispatcher  # noqa: E402


# ══════════════════════════════════════════════════════════════════════════
# Fakes
# ══════════════════════════════════════════════════════════════════════════

class FakeMailDispatcher(MailDispatcher):
    """In-memory dispatcher: records sends, optionally fails every call."""

    def __init__(self, error: Optional[UpstreamServiceError] = None):
        self.sent: List[Tuple[str, str]] = []
        self.error = error
        self.closed = False

    async def send_otp(self, email: str, otp: str) -> None:
        if self.error is not None:
            raise self.error
        self.sent.append((email, otp))

    async def close(self) -> None:
        self.closed = True


# ══════════════════════════════════════════════════════════════════════════
# Database Fixtures
# ══════════════════════════════════════════════════════════════════════════

@pytest.fixture
def database_url(tmp_path) -> str:
    return f"sqlite+aiosqlite:///{tmp_path / 'hafez_test.db'}"


@pytest.fixture
def test_settings(database_url) -> Settings:
    return Settings(
        database_url=database_url,
        run_migrations_on_startup=False,
        sendgrid_api_key="",
        log_level="WARNING",
    )


@pytest_asyncio.fixture
async def engine(test_settings):
    """Async engine with every table created from the ORM metadata."""
    engine = build_engine(test_settings)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine):
    return build_session_factory(engine)


@pytest_asyncio.fixture
async def db_session(session_factory):
    """
    A real AsyncSession on a fresh SQLite database.

    Usage:
        async def test_save(db_session):
            await progress_service.save_progress(db_session, payload)
    """
    async with session_factory() as session:
        yield session


@pytest.fixture
def mock_db_session():
    """
    Mock async session for exercising storage-failure paths.

    Usage:
        mock_db_session.execute.side_effect = OperationalError(...)
    """
    session = AsyncMock()
    session.execute = AsyncMock()
    session.commit = AsyncMock()
    session.rollback = AsyncMock()
    session.close = AsyncMock()
    session.add = MagicMock()
    session.add_all = MagicMock()
    return session


# ══════════════════════════════════════════════════════════════════════════
# HTTP Fixtures
# ══════════════════════════════════════════════════════════════════════════

@pytest.fixture
def fake_mailer() -> FakeMailDispatcher:
    return FakeMailDispatcher()


@pytest_asyncio.fixture
async def app(test_settings, engine, fake_mailer):
    """
    Application built by the real factory with its lifespan running.

    The schema already exists (engine fixture), so startup migrations stay off.
    """
    from hafez_api.main import create_app

    application = create_app(test_settings)
    application.dependency_overrides[get_mail_dispatcher] = lambda: fake_mailer
    async with application.router.lifespan_context(application):
        yield application
    application.dependency_overrides.clear()


@pytest_asyncio.fixture
async def test_client(app):
    """
    HTTPX AsyncClient routed straight into the ASGI app (no server).

    Usage:
        async def test_health(test_client):
            response = await test_client.get("/health")
            assert response.status_code == 200
    """
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client
