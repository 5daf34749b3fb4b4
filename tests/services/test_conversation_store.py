"""Tests for ConversationStore.

Tests verify:
- append + read round-trip with ordering
- read window returns the most recent messages, oldest first
- store isolation for colliding session ids
- clear, stats and quota counting
"""

from datetime import UTC, datetime, timedelta

import pytest
from sqlalchemy.exc import OperationalError

from shopchat.db.models import Message
from shopchat.errors import PersistenceError, ValidationError
from shopchat.services.conversation_store import ConversationStore


@pytest.fixture
def store(session_factory) -> ConversationStore:
    return ConversationStore(session_factory)


async def seed(session_factory, *rows: dict) -> None:
    """Insert messages with explicit timestamps."""
    async with session_factory() as db:
        for row in rows:
            db.add(Message(**row))
        await db.commit()


def iso(dt: datetime) -> str:
    return dt.isoformat(timespec="microseconds")


class TestAppendAndRead:

    @pytest.mark.asyncio
    async def test_round_trip_preserves_order(self, store):
        await store.append("sess-1", "store-a", "user-1", "user", "Hi there")
        await store.append("sess-1", "store-a", None, "assistant", "Hello! How can I help?")

        messages = await store.read("sess-1", 10, "store-a")

        assert [(m.role, m.content) for m in messages] == [
            ("user", "Hi there"),
            ("assistant", "Hello! How can I help?"),
        ]
        assert messages[0].user_id == "user-1"
        assert messages[1].user_id is None

    @pytest.mark.asyncio
    async def test_latest_message_matches_last_append(self, store):
        await store.append("sess-1", "store-a", None, "user", "first")
        await store.append("sess-1", "store-a", None, "assistant", "second")

        [latest] = await store.read("sess-1", 1, "store-a")

        assert (latest.role, latest.content) == ("assistant", "second")

    @pytest.mark.asyncio
    async def test_append_returns_row_with_timestamp(self, store):
        message = await store.append("sess-1", "store-a", None, "user", "hello")

        assert message.id is not None
        assert message.timestamp.endswith("+00:00")

    @pytest.mark.asyncio
    async def test_reads_are_idempotent(self, store):
        for i in range(3):
            await store.append("sess-1", "store-a", None, "user", f"m{i}")

        first = await store.read("sess-1", 10, "store-a")
        second = await store.read("sess-1", 10, "store-a")

        assert [m.id for m in first] == [m.id for m in second]

    @pytest.mark.asyncio
    async def test_window_returns_most_recent_oldest_first(self, store):
        for i in range(15):
            await store.append("sess-1", "store-a", None, "user", f"m{i}")

        messages = await store.read("sess-1", 10, "store-a")

        assert [m.content for m in messages] == [f"m{i}" for i in range(5, 15)]

    @pytest.mark.asyncio
    async def test_equal_timestamps_order_by_insertion(self, session_factory, store):
        stamp = iso(datetime(2026, 5, 1, tzinfo=UTC))
        await seed(
            session_factory,
            *[
                {
                    "session_id": "s",
                    "store_id": "store-a",
                    "role": "user",
                    "content": f"m{i}",
                    "timestamp": stamp,
                }
                for i in range(3)
            ],
        )

        messages = await store.read("s", 2, "store-a")

        assert [m.content for m in messages] == ["m1", "m2"]

    @pytest.mark.asyncio
    async def test_non_positive_limit_returns_empty(self, store):
        await store.append("sess-1", "store-a", None, "user", "hello")

        assert await store.read("sess-1", 0, "store-a") == []

    @pytest.mark.asyncio
    async def test_unknown_session_returns_empty(self, store):
        assert await store.read("missing", 10, "store-a") == []

    @pytest.mark.asyncio
    async def test_invalid_role_rejected(self, store):
        with pytest.raises(ValidationError):
            await store.append("sess-1", "store-a", None, "robot", "beep")

    @pytest.mark.asyncio
    async def test_write_failure_raises_persistence_error(self):
        def broken_factory():
            raise OperationalError("INSERT", {}, Exception("disk I/O error"))

        store = ConversationStore(broken_factory)
        with pytest.raises(PersistenceError):
            await store.append("sess-1", "store-a", None, "user", "hello")


class TestStoreIsolation:

    @pytest.mark.asyncio
    async def test_same_session_id_in_two_stores(self, store):
        await store.append("shared", "store-a", None, "user", "from A")
        await store.append("shared", "store-b", None, "user", "from B")

        a = await store.read("shared", 10, "store-a")
        b = await store.read("shared", 10, "store-b")

        assert [m.content for m in a] == ["from A"]
        assert [m.content for m in b] == ["from B"]

    @pytest.mark.asyncio
    async def test_clear_only_touches_one_store(self, store):
        await store.append("shared", "store-a", None, "user", "from A")
        await store.append("shared", "store-a", None, "assistant", "reply A")
        await store.append("shared", "store-b", None, "user", "from B")

        deleted = await store.clear("shared", "store-a")

        assert deleted == 2
        assert await store.read("shared", 10, "store-a") == []
        assert len(await store.read("shared", 10, "store-b")) == 1


class TestStats:

    @pytest.mark.asyncio
    async def test_empty_store(self, store):
        stats = await store.stats("store-a")

        assert stats.total_conversations == 0
        assert stats.total_messages == 0
        assert stats.active_sessions == 0
        assert stats.average_messages_per_conversation == 0

    @pytest.mark.asyncio
    async def test_counts_and_active_window(self, session_factory, store):
        now = datetime(2026, 6, 1, 12, 0, tzinfo=UTC)
        recent = iso(now - timedelta(hours=1))
        stale = iso(now - timedelta(days=3))
        await seed(
            session_factory,
            {"session_id": "s1", "store_id": "store-a", "role": "user", "content": "a", "timestamp": recent},
            {"session_id": "s1", "store_id": "store-a", "role": "assistant", "content": "b", "timestamp": recent},
            {"session_id": "s1", "store_id": "store-a", "role": "user", "content": "c", "timestamp": recent},
            {"session_id": "s2", "store_id": "store-a", "role": "user", "content": "d", "timestamp": stale},
            {"session_id": "s3", "store_id": "store-b", "role": "user", "content": "e", "timestamp": recent},
        )

        stats = await store.stats("store-a", now=now)

        assert stats.total_conversations == 2
        assert stats.total_messages == 4
        assert stats.active_sessions == 1
        assert stats.average_messages_per_conversation == 2


class TestCountUserMessages:

    @pytest.mark.asyncio
    async def test_counts_only_user_messages_in_window(self, session_factory, store):
        now = datetime(2026, 6, 1, tzinfo=UTC)
        await seed(
            session_factory,
            {"session_id": "s1", "store_id": "store-a", "role": "user", "content": "new", "timestamp": iso(now - timedelta(days=1))},
            {"session_id": "s1", "store_id": "store-a", "role": "assistant", "content": "reply", "timestamp": iso(now - timedelta(days=1))},
            {"session_id": "s1", "store_id": "store-a", "role": "user", "content": "old", "timestamp": iso(now - timedelta(days=40))},
            {"session_id": "s2", "store_id": "store-b", "role": "user", "content": "other", "timestamp": iso(now - timedelta(days=1))},
        )

        count = await store.count_user_messages_since("store-a", now - timedelta(days=30))

        assert count == 1
