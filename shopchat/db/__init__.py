"""Database package: ORM models and engine/session management."""

from shopchat.db.connection import (
    AsyncSessionLocal,
    SessionLocal,
    async_init_db,
    check_database,
    close_async_db,
    get_db_context,
    init_db,
)
from shopchat.db.models import (
    Base,
    Message,
    MessageRole,
    PlatformType,
    Store,
)

__all__ = [
    # Connection management
    "SessionLocal",
    "AsyncSessionLocal",
    "get_db_context",
    "init_db",
    "async_init_db",
    "check_database",
    "close_async_db",
    # Models
    "Base",
    "Store",
    "Message",
    "PlatformType",
    "MessageRole",
]
