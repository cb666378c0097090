"""
tests/conftest.py

Test fixtures for API route tests and service-layer tests.
Includes async clients, fake users, dependency overrides, and an in-memory
SQLite database with seeded accounts and a category.
"""

import os
import tempfile

# Settings are read at import time; configure the test environment first.
os.environ["DATABASE_URL"] = "sqlite+aiosqlite://"
os.environ["RATE_LIMIT_ENABLED"] = "false"
os.environ["REDIS_ENABLED"] = "false"
os.environ["LOG_DIR"] = tempfile.mkdtemp(prefix="easyserve-logs-")
os.environ["LOG_LEVEL"] = "WARNING"

# --- Imports ---
from collections.abc import AsyncGenerator, Callable, Generator
from datetime import datetime, timezone
from typing import Any
from unittest.mock import AsyncMock
from uuid import uuid4

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy import event
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from main import app
from easyserve.auth.schemas import ProviderIdentity, RequesterIdentity
from easyserve.catalog.models import Category
from easyserve.core.dependencies import get_current_user
from easyserve.core.security import get_password_hash
from easyserve.database.enums import UserRole
from easyserve.database.models import Base, User
from easyserve.database.session import get_db


# --- Core Test Fixtures ---


@pytest.fixture(scope="session")
def transport() -> ASGITransport:
    """Fixture for ASGI transport."""
    return ASGITransport(app=app)


@pytest_asyncio.fixture(scope="function")
async def async_client(transport: ASGITransport) -> AsyncGenerator[AsyncClient, None]:
    """Fixture for HTTP async client."""
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client


# --- Fake User Fixtures (not persisted) ---


def _fake_user(role: UserRole, name: str) -> User:
    now = datetime.now(timezone.utc)
    return User(
        id=uuid4(),
        email=f"{name.lower().replace(' ', '.')}@example.com",
        name=name,
        phone="03001234567",
        role=role,
        hashed_password="fakehashedpassword",
        is_active=True,
        created_at=now,
        updated_at=now,
    )


@pytest.fixture
def fake_admin_user() -> User:
    return _fake_user(UserRole.ADMIN, "Admin Test")


@pytest.fixture
def fake_requester_user() -> User:
    return _fake_user(UserRole.USER, "Requester Test")


@pytest.fixture
def fake_provider_user() -> User:
    return _fake_user(UserRole.PROVIDER, "Provider Test")


# --- Dependency Override Fixtures ---


@pytest_asyncio.fixture
async def override_get_db() -> AsyncGenerator[None, None]:
    """Override for the database dependency."""

    async def _override() -> AsyncGenerator[AsyncMock, None]:
        yield AsyncMock()

    app.dependency_overrides[get_db] = _override
    yield
    app.dependency_overrides.pop(get_db, None)


@pytest.fixture
def mock_current_admin_user(fake_admin_user: User) -> Generator[User, None, None]:
    app.dependency_overrides[get_current_user] = lambda: fake_admin_user
    yield fake_admin_user
    app.dependency_overrides.pop(get_current_user, None)


@pytest.fixture
def mock_current_requester_user(fake_requester_user: User) -> Generator[User, None, None]:
    app.dependency_overrides[get_current_user] = lambda: fake_requester_user
    yield fake_requester_user
    app.dependency_overrides.pop(get_current_user, None)


@pytest.fixture
def mock_current_provider_user(fake_provider_user: User) -> Generator[User, None, None]:
    app.dependency_overrides[get_current_user] = lambda: fake_provider_user
    yield fake_provider_user
    app.dependency_overrides.pop(get_current_user, None)


# --- Database Fixtures (in-memory SQLite) ---


@pytest_asyncio.fixture
async def engine() -> AsyncGenerator[AsyncEngine, None]:
    test_engine = create_async_engine(
        "sqlite+aiosqlite://",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )

    # Let SQLAlchemy emit BEGIN itself so SAVEPOINTs behave on SQLite
    @event.listens_for(test_engine.sync_engine, "connect")
    def _on_connect(dbapi_connection, connection_record):  # type: ignore[no-untyped-def]
        dbapi_connection.isolation_level = None

    @event.listens_for(test_engine.sync_engine, "begin")
    def _on_begin(conn):  # type: ignore[no-untyped-def]
        conn.exec_driver_sql("BEGIN")

    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield test_engine
    await test_engine.dispose()


@pytest.fixture
def session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(
        bind=engine,
        class_=AsyncSession,
        autoflush=False,
        expire_on_commit=False,
    )


@pytest_asyncio.fixture
async def db_session(
    session_factory: async_sessionmaker[AsyncSession],
) -> AsyncGenerator[AsyncSession, None]:
    async with session_factory() as session:
        yield session


@pytest_asyncio.fixture
async def use_test_db(
    session_factory: async_sessionmaker[AsyncSession],
) -> AsyncGenerator[None, None]:
    """Routes the app's database dependency to the in-memory test database."""

    async def _override() -> AsyncGenerator[AsyncSession, None]:
        async with session_factory() as session:
            try:
                yield session
            except Exception:
                await session.rollback()
                raise

    app.dependency_overrides[get_db] = _override
    yield
    app.dependency_overrides.pop(get_db, None)


async def _create_user(
    factory: async_sessionmaker[AsyncSession], role: UserRole, name: str
) -> User:
    # Seeded through a short-lived session so the shared connection is free afterwards
    user = User(
        email=f"{name.lower().replace(' ', '.')}.{uuid4().hex[:6]}@example.com",
        name=name,
        phone="03001234567",
        role=role,
        hashed_password=get_password_hash("Secret123!"),
    )
    async with factory() as db:
        db.add(user)
        await db.commit()
        await db.refresh(user)
    return user


@pytest_asyncio.fixture
async def requester_user(session_factory: async_sessionmaker[AsyncSession]) -> User:
    return await _create_user(session_factory, UserRole.USER, "Ayesha Khan")


@pytest_asyncio.fixture
async def other_requester_user(session_factory: async_sessionmaker[AsyncSession]) -> User:
    return await _create_user(session_factory, UserRole.USER, "Bilal Ahmed")


@pytest_asyncio.fixture
async def provider_user(session_factory: async_sessionmaker[AsyncSession]) -> User:
    return await _create_user(session_factory, UserRole.PROVIDER, "Provider A")


@pytest_asyncio.fixture
async def other_provider_user(session_factory: async_sessionmaker[AsyncSession]) -> User:
    return await _create_user(session_factory, UserRole.PROVIDER, "Provider B")


@pytest.fixture
def requester(requester_user: User) -> RequesterIdentity:
    return RequesterIdentity(id=requester_user.id, name=requester_user.name)


@pytest.fixture
def other_requester(other_requester_user: User) -> RequesterIdentity:
    return RequesterIdentity(id=other_requester_user.id, name=other_requester_user.name)


@pytest.fixture
def provider_a(provider_user: User) -> ProviderIdentity:
    return ProviderIdentity(id=provider_user.id, name=provider_user.name)


@pytest.fixture
def provider_b(other_provider_user: User) -> ProviderIdentity:
    return ProviderIdentity(id=other_provider_user.id, name=other_provider_user.name)


@pytest_asyncio.fixture
async def category(session_factory: async_sessionmaker[AsyncSession]) -> Category:
    cat = Category(name="Plumbing", icon="wrench")
    async with session_factory() as db:
        db.add(cat)
        await db.commit()
        await db.refresh(cat)
    return cat


# --- Concurrency Helpers ---


@pytest.fixture
def race_before(
    db_session: AsyncSession, monkeypatch: pytest.MonkeyPatch
) -> Callable[..., None]:
    """
    Arms a one-shot race: the next call to `target.<method>` first commits `rows`
    through a second session on db_session's connection, as if another request
    had won between the service's checks and its write.
    `returns` replaces the call's own result when given (e.g. a stale read).
    """

    def _arm(target: Any, method: str, *rows: object, returns: Any = ...) -> None:
        original = getattr(target, method)

        async def _racing(*args: Any, **kwargs: Any) -> Any:
            monkeypatch.setattr(target, method, original)
            connection = await db_session.connection()
            async with AsyncSession(
                bind=connection,
                join_transaction_mode="create_savepoint",
                expire_on_commit=False,
            ) as other:
                other.add_all(rows)
                await other.commit()
            if returns is not ...:
                return returns
            return await original(*args, **kwargs)

        monkeypatch.setattr(target, method, _racing)

    return _arm
