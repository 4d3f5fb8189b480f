"""
Test fixtures for the webbase test suite.

  - db_engine / db_session: Fresh in-memory SQLite database for each test
  - client: Async HTTP test client (anonymous) wired to the test database
  - create_user: Factory that provisions a user through the auth service
  - alice: A ready-made user (alice / alice@example.com / hunter2pass)
  - logged_in_client: The client after logging in as alice via POST /login

Key design decisions:
  - In-memory SQLite (sqlite+aiosqlite://) for speed and isolation. The
    aiosqlite dialect keeps a single shared connection for memory
    databases, so fixtures always commit before the client is used.
  - get_db is overridden through app.dependency_overrides, so the
    application code runs exactly as it does in production.
  - The ASGI transport does not run the lifespan; tables are created here
    and no seed data is inserted unless a test asks for it.
"""

import pytest_asyncio
from httpx import AsyncClient, ASGITransport
from sqlalchemy.ext.asyncio import create_async_engine, AsyncSession, async_sessionmaker

from webbase.config import settings
from webbase.database import Base, enable_sqlite_savepoints, get_db
from webbase.exceptions import WebBaseError
from webbase.main import app
from webbase.services import auth_service
import webbase.models  # noqa: F401


TEST_DATABASE_URL = "sqlite+aiosqlite://"

ALICE_PASSWORD = "hunter2pass"


@pytest_asyncio.fixture
async def db_engine():
    """Create a fresh async engine with all tables for each test."""
    engine = create_async_engine(TEST_DATABASE_URL)
    enable_sqlite_savepoints(engine)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    await engine.dispose()


@pytest_asyncio.fixture
async def session_factory(db_engine):
    return async_sessionmaker(
        db_engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )


@pytest_asyncio.fixture
async def db_session(session_factory):
    """Provide an async session bound to the test engine."""
    async with session_factory() as session:
        yield session


@pytest_asyncio.fixture
async def client(session_factory):
    """
    Async HTTP test client with the test database injected.

    The override mirrors get_db: domain errors commit, anything else
    rolls back.
    """

    async def override_get_db():
        async with session_factory() as session:
            try:
                yield session
                await session.commit()
            except WebBaseError:
                await session.commit()
                raise
            except Exception:
                await session.rollback()
                raise

    app.dependency_overrides[get_db] = override_get_db

    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
    ) as ac:
        yield ac

    app.dependency_overrides.clear()


@pytest_asyncio.fixture
async def create_user(session_factory):
    """
    Factory fixture: provision a user the way the admin CLI does.

    Usage:
        user = await create_user("bob", "bob@example.com", "bobpassword")
    """

    async def _create(username: str, email: str, password: str | None = None):
        async with session_factory() as session:
            user = await auth_service.create_user(session, username, email, password)
            await session.commit()
            return user

    return _create


@pytest_asyncio.fixture
async def alice(create_user):
    return await create_user("alice", "alice@example.com", ALICE_PASSWORD)


@pytest_asyncio.fixture
async def logged_in_client(client, alice):
    """The anonymous client, signed in as alice through the real login form."""
    response = await client.post(
        "/login",
        data={"username": "alice", "password": ALICE_PASSWORD},
    )
    assert response.status_code == 303, f"Login failed: {response.text}"
    assert settings.SESSION_COOKIE_NAME in client.cookies
    return client
