"""Optional per-session serialization of chat turns.

Without it, two concurrent turns for one session may interleave their
history reads and writes. Locks are held in a WeakValueDictionary so a
lock disappears once no turn is waiting on it.
"""

import asyncio
import weakref
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager


class SessionLockRegistry:
    """Hands out one asyncio.Lock per (store_id, session_id)."""

    def __init__(self) -> None:
        self._locks: weakref.WeakValueDictionary[tuple[str, str], asyncio.Lock] = (
            weakref.WeakValueDictionary()
        )

    def get_lock(self, store_id: str, session_id: str) -> asyncio.Lock:
        """Return the live lock for a session, creating it if needed."""
        key = (store_id, session_id)
        lock = self._locks.get(key)
        if lock is None:
            lock = asyncio.Lock()
            self._locks[key] = lock
        return lock

    @asynccontextmanager
    async def hold(self, store_id: str, session_id: str) -> AsyncIterator[None]:
        """Serialize the enclosed block against other turns of the session."""
        lock = self.get_lock(store_id, session_id)
        async with lock:
            yield

    def __len__(self) -> int:
        return len(self._locks)
