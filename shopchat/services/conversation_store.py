"""Persistence service for chat messages.

Thin layer between the orchestrator/API routes and the ``messages``
table. Every read and delete is scoped by store id so a session id
collision between tenants never leaks another store's history.
"""

import logging
from datetime import UTC, datetime, timedelta

from pydantic import BaseModel
from sqlalchemy import delete, func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from shopchat.db.models import Message, MessageRole, utc_now_iso
from shopchat.errors import PersistenceError, ValidationError

logger = logging.getLogger(__name__)

ACTIVE_SESSION_WINDOW = timedelta(hours=24)


class ConversationStats(BaseModel):
    """Aggregate conversation metrics for one store."""

    total_conversations: int
    total_messages: int
    active_sessions: int
    average_messages_per_conversation: int


class ConversationStore:
    """Append-only, ordered message log keyed by (session, store).

    Args:
        session_factory: Async SQLAlchemy session factory.
    """

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self._session_factory = session_factory

    async def append(
        self,
        session_id: str,
        store_id: str,
        user_id: str | None,
        role: str,
        content: str,
    ) -> Message:
        """Persist one message.

        Args:
            session_id: Conversation grouping key.
            store_id: Owning store.
            user_id: Optional end-user identifier.
            role: 'system', 'user' or 'assistant'.
            content: Message text.

        Returns:
            The stored Message row.

        Raises:
            ValidationError: If role is not a known MessageRole.
            PersistenceError: If the write fails.
        """
        try:
            role_value = MessageRole(role).value
        except ValueError as e:
            raise ValidationError(f"Invalid message role: {role!r}") from e

        message = Message(
            session_id=session_id,
            store_id=store_id,
            user_id=user_id,
            role=role_value,
            content=content,
            timestamp=utc_now_iso(),
        )
        try:
            async with self._session_factory() as db:
                db.add(message)
                await db.commit()
        except SQLAlchemyError as e:
            raise PersistenceError(f"Failed to append message: {e}") from e
        return message

    async def read(
        self, session_id: str, limit: int, store_id: str
    ) -> list[Message]:
        """Return the ``limit`` most recent messages, oldest first.

        Raises:
            PersistenceError: If the read fails.
        """
        if limit <= 0:
            return []
        stmt = (
            select(Message)
            .where(Message.session_id == session_id, Message.store_id == store_id)
            .order_by(Message.timestamp.desc(), Message.id.desc())
            .limit(limit)
        )
        try:
            async with self._session_factory() as db:
                result = await db.execute(stmt)
                rows = list(result.scalars().all())
        except SQLAlchemyError as e:
            raise PersistenceError(f"Failed to read history: {e}") from e
        rows.reverse()
        return rows

    async def clear(self, session_id: str, store_id: str) -> int:
        """Delete a session's messages for one store.

        Returns:
            Number of messages removed.

        Raises:
            PersistenceError: If the delete fails.
        """
        stmt = delete(Message).where(
            Message.session_id == session_id, Message.store_id == store_id
        )
        try:
            async with self._session_factory() as db:
                result = await db.execute(stmt)
                await db.commit()
        except SQLAlchemyError as e:
            raise PersistenceError(f"Failed to clear history: {e}") from e
        logger.info("Cleared %d messages for session %s", result.rowcount, session_id)
        return result.rowcount

    async def stats(
        self, store_id: str, now: datetime | None = None
    ) -> ConversationStats:
        """Compute conversation metrics for a store.

        A session is active when it has a message in the last 24 hours.

        Raises:
            PersistenceError: If the query fails.
        """
        now = now or datetime.now(UTC)
        active_since = (now - ACTIVE_SESSION_WINDOW).isoformat(timespec="microseconds")
        scoped = Message.store_id == store_id
        try:
            async with self._session_factory() as db:
                total_conversations = await db.scalar(
                    select(func.count(func.distinct(Message.session_id))).where(scoped)
                )
                total_messages = await db.scalar(
                    select(func.count(Message.id)).where(scoped)
                )
                active_sessions = await db.scalar(
                    select(func.count(func.distinct(Message.session_id))).where(
                        scoped, Message.timestamp >= active_since
                    )
                )
        except SQLAlchemyError as e:
            raise PersistenceError(f"Failed to compute stats: {e}") from e

        total_conversations = total_conversations or 0
        total_messages = total_messages or 0
        average = (
            round(total_messages / total_conversations) if total_conversations else 0
        )
        return ConversationStats(
            total_conversations=total_conversations,
            total_messages=total_messages,
            active_sessions=active_sessions or 0,
            average_messages_per_conversation=average,
        )

    async def count_user_messages_since(
        self, store_id: str, since: datetime
    ) -> int:
        """Count user-authored messages for a store since a point in time.

        Raises:
            PersistenceError: If the query fails.
        """
        stmt = select(func.count(Message.id)).where(
            Message.store_id == store_id,
            Message.role == MessageRole.user.value,
            Message.timestamp >= since.astimezone(UTC).isoformat(timespec="microseconds"),
        )
        try:
            async with self._session_factory() as db:
                count = await db.scalar(stmt)
        except SQLAlchemyError as e:
            raise PersistenceError(f"Failed to count messages: {e}") from e
        return count or 0
