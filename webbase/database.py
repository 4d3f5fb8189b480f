"""
Database engine, session management, and base model class.

SQLAlchemy 2.0 with async support:

  - engine: The async database engine (connection pool for production DBs)
  - AsyncSessionLocal: Factory for creating async database sessions
  - Base: Declarative base class that all ORM models inherit from
  - get_db(): FastAPI dependency that provides a session per request

Session lifecycle:
  Each request gets its own session via get_db(). The session commits on
  success and rolls back on unexpected exceptions. Domain errors
  (WebBaseError) still commit: a rejected login or a redirect to /login may
  have deleted an expired session record, and that cleanup should stick.
"""

from pathlib import Path

from sqlalchemy import event, text
from sqlalchemy.engine import make_url
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import DeclarativeBase

from webbase.config import settings
from webbase.exceptions import WebBaseError


def _ensure_sqlite_directory(database_url: str) -> None:
    """Create the parent directory of a file-backed SQLite database."""
    url = make_url(database_url)
    if url.get_backend_name() == "sqlite" and url.database and url.database != ":memory:":
        Path(url.database).parent.mkdir(parents=True, exist_ok=True)


def enable_sqlite_savepoints(async_engine: AsyncEngine) -> None:
    """
    Let SQLAlchemy own BEGIN on SQLite so SAVEPOINT (begin_nested) works.

    The sqlite3 driver otherwise defers BEGIN until the first DML statement,
    which leaves a leading SAVEPOINT outside any transaction.
    """
    if async_engine.dialect.name != "sqlite":
        return

    @event.listens_for(async_engine.sync_engine, "connect")
    def _disable_driver_begin(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None

    @event.listens_for(async_engine.sync_engine, "begin")
    def _emit_begin(conn):
        conn.exec_driver_sql("BEGIN")


_ensure_sqlite_directory(settings.DATABASE_URL)

# echo=True in debug mode logs all SQL statements
engine = create_async_engine(
    settings.DATABASE_URL,
    echo=settings.DEBUG,
)
enable_sqlite_savepoints(engine)

# expire_on_commit=False prevents lazy-load errors after commit in async context
AsyncSessionLocal = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
)


class Base(DeclarativeBase):
    """Base class for all SQLAlchemy ORM models."""
    pass


async def get_db():
    """
    FastAPI dependency that provides a database session.

    Usage in a route:
        @router.get("/items")
        async def list_items(db: AsyncSession = Depends(get_db)):
            ...
    """
    async with AsyncSessionLocal() as session:
        try:
            yield session
            await session.commit()
        except WebBaseError:
            await session.commit()
            raise
        except Exception:
            await session.rollback()
            raise


async def create_tables(bind: AsyncEngine = engine) -> None:
    """Create all tables that do not exist yet."""
    # Import models so their tables are registered on Base.metadata
    import webbase.models  # noqa: F401

    async with bind.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


async def check_connection(db: AsyncSession) -> bool:
    """Run a trivial query; True when the database answers."""
    result = await db.execute(text("SELECT 1"))
    return result.scalar_one() == 1


def get_connection_info(db: AsyncSession) -> dict:
    """Static facts about the database behind ``db``, for the health check."""
    bind = db.get_bind()
    return {
        "database_name": bind.url.database or "unknown",
        "dialect": bind.dialect.name,
    }
