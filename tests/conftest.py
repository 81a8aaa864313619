"""Pytest fixtures and configuration."""

from __future__ import annotations

import os

# Settings are cached on first use, so the environment is fixed before the
# application is imported.
os.environ["APP_ENV"] = "development"
os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///:memory:"
os.environ["SECRET_KEY"] = "test-secret-key-that-is-at-least-32-characters"
os.environ["CORS_ORIGINS"] = "*"
os.environ["CORS_ALLOW_CREDENTIALS"] = "false"

from collections.abc import AsyncGenerator, Awaitable, Callable
from typing import TYPE_CHECKING, Any

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from src.careconnect import models  # noqa: F401
from src.careconnect.core.config import Settings, get_settings
from src.careconnect.core.security import create_access_token
from src.careconnect.db.session import Base, get_session_factory
from src.careconnect.main import app
from src.careconnect.models.enums import Role
from src.careconnect.models.user import User
from src.careconnect.models.user_role import UserRole

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncEngine

# Test database URL (in-memory SQLite for tests)
TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"

UserFactory = Callable[..., Awaitable[User]]


@pytest.fixture
def settings() -> Settings:
    return get_settings()


@pytest_asyncio.fixture(scope="function")
async def test_engine() -> AsyncGenerator[AsyncEngine, None]:
    """Create a test database engine."""
    engine = create_async_engine(
        TEST_DATABASE_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
        echo=False,
    )

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)

    await engine.dispose()


@pytest.fixture
def session_factory(test_engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(
        test_engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autocommit=False,
        autoflush=False,
    )


@pytest_asyncio.fixture(scope="function")
async def db_session(
    session_factory: async_sessionmaker[AsyncSession],
) -> AsyncGenerator[AsyncSession, None]:
    """Create a test database session."""
    async with session_factory() as session:
        yield session
        await session.rollback()


@pytest_asyncio.fixture(scope="function")
async def client(
    session_factory: async_sessionmaker[AsyncSession],
) -> AsyncGenerator[AsyncClient, None]:
    """Test HTTP client bound to the in-memory database.

    Overriding ``get_session_factory`` swaps the database for request
    handlers, the edge gate middleware and background write-backs.
    """
    app.dependency_overrides[get_session_factory] = lambda: session_factory

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()


@pytest.fixture
def make_user(session_factory: async_sessionmaker[AsyncSession]) -> UserFactory:
    """Seed an identity record (and optionally a ``user_roles`` row) and commit it."""
    counter = 0

    async def _make_user(
        email: str | None = None,
        *,
        metadata: dict[str, Any] | None = None,
        table_role: Role | None = None,
    ) -> User:
        nonlocal counter
        counter += 1
        async with session_factory() as session:
            user = User(
                email=email or f"user{counter}@careconnect.test",
                user_metadata=dict(metadata or {}),
            )
            session.add(user)
            await session.flush()
            if table_role is not None:
                session.add(UserRole(user_id=user.id, role=table_role.value))
            await session.commit()
            await session.refresh(user)
            return user

    return _make_user


@pytest.fixture
def token_for(settings: Settings) -> Callable[[User], str]:
    def _token_for(user: User) -> str:
        return create_access_token(subject=user.id, settings=settings, email=user.email)

    return _token_for


@pytest.fixture
def auth_headers(token_for: Callable[[User], str]) -> Callable[[User], dict[str, str]]:
    """Build ``Authorization: Bearer`` headers for a seeded user."""

    def _auth_headers(user: User) -> dict[str, str]:
        return {"Authorization": f"Bearer {token_for(user)}"}

    return _auth_headers


@pytest.fixture
def fetch_user(session_factory: async_sessionmaker[AsyncSession]) -> Callable[[str], Awaitable[User | None]]:
    """Read a user back in a fresh session, after the request committed."""

    async def _fetch_user(user_id: str) -> User | None:
        async with session_factory() as session:
            return await session.get(User, user_id)

    return _fetch_user
