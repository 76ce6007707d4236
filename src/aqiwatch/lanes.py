"""Per-chat execution lanes.

Work for one chat runs strictly one-at-a-time; different chats proceed in
parallel. Locks are created on demand and dropped once nobody holds or
waits for them.
"""

from __future__ import annotations

import asyncio
import contextlib
from collections.abc import AsyncIterator


class ChatLanes:
    """Registry of one :class:`asyncio.Lock` per chat id."""

    def __init__(self) -> None:
        self._locks: dict[int, asyncio.Lock] = {}
        self._users: dict[int, int] = {}

    @contextlib.asynccontextmanager
    async def hold(self, chat_id: int) -> AsyncIterator[None]:
        lock = self._locks.get(chat_id)
        if lock is None:
            lock = asyncio.Lock()
            self._locks[chat_id] = lock
        self._users[chat_id] = self._users.get(chat_id, 0) + 1
        try:
            async with lock:
                yield
        finally:
            remaining = self._users[chat_id] - 1
            if remaining:
                self._users[chat_id] = remaining
            else:
                del self._users[chat_id]
                del self._locks[chat_id]

    def is_busy(self, chat_id: int) -> bool:
        lock = self._locks.get(chat_id)
        return lock is not None and lock.locked()

    def __len__(self) -> int:
        return len(self._locks)
