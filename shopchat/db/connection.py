"""Database connection management for ShopChat.

Provides both synchronous and asynchronous database access using SQLAlchemy.
The async engine serves request handling; the sync engine backs the CLI and
table creation.

Usage:
    # Sync (CLI, scripts)
    from shopchat.db.connection import get_db_context, init_db

    init_db()  # Create tables
    with get_db_context() as db:
        ...

    # Async (FastAPI)
    from shopchat.db.connection import AsyncSessionLocal, async_init_db

    await async_init_db()
    async with AsyncSessionLocal() as db:
        ...
"""

from collections.abc import Generator
from contextlib import contextmanager
from typing import Any

from sqlalchemy import create_engine, event, text
from sqlalchemy.ext.asyncio import (
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import Session, sessionmaker

from shopchat.config import get_config
from shopchat.db.models import Base


# Configuration
def get_database_url() -> str:
    """Get the sync database URL from configuration.

    ``DATABASE_URL`` is honored by the config loader, so it takes
    precedence over YAML here as well.
    """
    return get_config().database.url


def get_async_database_url() -> str:
    """Derive the async database URL from the sync URL.

    Converts sqlite:/// to sqlite+aiosqlite:/// for async support.
    """
    url = get_database_url()
    if url.startswith("sqlite:///"):
        return url.replace("sqlite:///", "sqlite+aiosqlite:///", 1)
    return url


# Engine creation
DATABASE_URL = get_database_url()
ASYNC_DATABASE_URL = get_async_database_url()
_ECHO = get_config().database.echo

# Sync engine
engine = create_engine(
    DATABASE_URL,
    connect_args={"check_same_thread": False}
    if DATABASE_URL.startswith("sqlite")
    else {},
    echo=_ECHO,
)

# Async engine
async_engine = create_async_engine(ASYNC_DATABASE_URL, echo=_ECHO)


@event.listens_for(engine, "connect")
def set_sqlite_pragma(dbapi_connection: Any, connection_record: Any) -> None:
    """Enable WAL so widget reads do not block on a concurrent writer."""
    if DATABASE_URL.startswith("sqlite"):
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA journal_mode=WAL;")
        cursor.execute("PRAGMA synchronous=NORMAL;")
        cursor.close()


# The async engine pools its own DBAPI connections.
event.listen(async_engine.sync_engine, "connect", set_sqlite_pragma)


# Session factories
SessionLocal = sessionmaker(
    autocommit=False,
    autoflush=False,
    bind=engine,
)

AsyncSessionLocal = async_sessionmaker(
    autocommit=False,
    autoflush=False,
    bind=async_engine,
    class_=AsyncSession,
    expire_on_commit=False,
)


@contextmanager
def get_db_context() -> Generator[Session, None, None]:
    """Context manager for database sessions outside of FastAPI.

    Usage:
        with get_db_context() as db:
            store = db.query(Store).first()
    """
    db = SessionLocal()
    try:
        yield db
        db.commit()
    except Exception:
        db.rollback()
        raise
    finally:
        db.close()


# Initialization functions


def init_db() -> None:
    """Create all database tables synchronously.

    Safe to call multiple times - will not recreate existing tables.
    """
    Base.metadata.create_all(bind=engine)


async def async_init_db() -> None:
    """Create all database tables asynchronously.

    Safe to call multiple times - will not recreate existing tables.
    """
    async with async_engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


async def check_database() -> bool:
    """Run a trivial query against the async engine.

    Returns:
        True when the datastore answered.
    """
    async with async_engine.connect() as conn:
        await conn.execute(text("SELECT 1"))
    return True


# Cleanup functions


async def close_async_db() -> None:
    """Close the async engine and dispose of connection pool."""
    await async_engine.dispose()
