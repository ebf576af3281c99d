"""Test fixtures for vatofotsy-api."""

import asyncio
import os
from collections.abc import AsyncGenerator, Awaitable, Callable
from datetime import timedelta
from pathlib import Path

import pytest
from alembic import command
from alembic.config import Config
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from vatofotsy_api.auth.tokens import get_token_manager
from vatofotsy_api.db import get_db
from vatofotsy_api.main import app
from vatofotsy_api.models import Base, Poll, User
from vatofotsy_api.models.base import utc_now
from vatofotsy_api.services import polls as poll_service
from vatofotsy_api.services import users as user_service
from vatofotsy_api.services.storage import LocalFileStorage, get_file_storage

# Use in-memory SQLite for tests
TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"

TEST_PASSWORD = "Secret123!"


def get_alembic_config(connection_url: str | None = None) -> Config:
    """Get alembic config for running migrations."""
    base_path = Path(__file__).parent.parent
    alembic_cfg = Config(str(base_path / "alembic.ini"))
    alembic_cfg.set_main_option("script_location", str(base_path / "migrations"))
    if connection_url:
        alembic_cfg.set_main_option("sqlalchemy.url", connection_url)
    return alembic_cfg


def auth_headers(user: User) -> dict[str, str]:
    """Bearer header with a freshly minted access token for the user."""
    token = get_token_manager().create_access_token(user.id).token
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
async def async_engine():
    """Create a test database engine with schema initialized.

    For SQLite tests, we use Base.metadata.create_all() since the migrations
    are PostgreSQL-specific. The pg_engine fixture runs the real migrations.
    """
    engine = create_async_engine(TEST_DATABASE_URL, echo=False)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
async def async_session(async_engine) -> AsyncGenerator[AsyncSession, None]:
    """Create a test database session."""
    async_session_maker = async_sessionmaker(async_engine, expire_on_commit=False)
    async with async_session_maker() as session:
        yield session


@pytest.fixture
def storage(tmp_path: Path) -> LocalFileStorage:
    """File storage writing into a temporary directory."""
    return LocalFileStorage(upload_dir=tmp_path / "uploads", base_url="http://test")


@pytest.fixture
async def client(async_engine, storage) -> AsyncGenerator[AsyncClient, None]:
    """Create a test client with isolated database and file storage."""
    async_session_maker = async_sessionmaker(async_engine, expire_on_commit=False)

    async def override_get_db() -> AsyncGenerator[AsyncSession, None]:
        async with async_session_maker() as session:
            yield session

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_file_storage] = lambda: storage

    async with AsyncClient(
        transport=ASGITransport(app=app), base_url="http://test"
    ) as ac:
        yield ac

    app.dependency_overrides.clear()


@pytest.fixture
def make_user(async_session: AsyncSession) -> Callable[..., Awaitable[User]]:
    """Factory creating registered users with TEST_PASSWORD."""
    counter = 0

    async def _make_user(
        email: str | None = None,
        first_name: str = "Test",
        last_name: str = "User",
        verified: bool = True,
    ) -> User:
        nonlocal counter
        counter += 1
        user = await user_service.create_user(
            async_session,
            email=email or f"user{counter}@example.com",
            password=TEST_PASSWORD,
            first_name=first_name,
            last_name=last_name,
        )
        if not verified:
            user = await user_service.set_verified(async_session, user.id, False)
        return user

    return _make_user


@pytest.fixture
def make_poll(async_session: AsyncSession) -> Callable[..., Awaitable[Poll]]:
    """Factory creating DRAFT polls ending in one hour."""

    async def _make_poll(creator: User, **kwargs) -> Poll:
        kwargs.setdefault("title", "Best lunch spot?")
        kwargs.setdefault("voting_ends_at", utc_now() + timedelta(hours=1))
        return await poll_service.create_poll(
            async_session, created_by=creator.id, **kwargs
        )

    return _make_poll


# PostgreSQL test fixtures for integration testing with real migrations


@pytest.fixture
async def pg_engine():
    """Create a PostgreSQL test database engine with migrations applied.

    Requires VATOFOTSY_API_TEST_DATABASE_URL to point at a disposable database.

    Usage:
        VATOFOTSY_API_TEST_DATABASE_URL=postgresql+asyncpg://... pytest
    """
    pg_url = os.environ.get("VATOFOTSY_API_TEST_DATABASE_URL")
    if not pg_url:
        pytest.skip("PostgreSQL test database URL not configured")

    engine = create_async_engine(pg_url, echo=False)

    # The migration env runs its own event loop, keep it off this one
    alembic_cfg = get_alembic_config(pg_url)
    await asyncio.to_thread(command.upgrade, alembic_cfg, "head")

    yield engine

    await asyncio.to_thread(command.downgrade, alembic_cfg, "base")
    await engine.dispose()
