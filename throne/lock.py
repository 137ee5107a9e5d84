from __future__ import annotations

import asyncio
from collections import Counter
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager


class ChatLocks:
    """In-process mutual exclusion keyed by chat id.

    Every read-then-write of a chat's king or balances (and the publish that
    follows it) runs under that chat's lock. Different chats never block each
    other. A chat's lock is dropped once nobody holds or waits on it. Single
    process only; a multi-replica deployment would need a shared lock service
    instead.
    """

    def __init__(self) -> None:
        self._by_chat: dict[int, asyncio.Lock] = {}
        self._users: Counter[int] = Counter()

    @asynccontextmanager
    async def hold(self, chat_id: int) -> AsyncIterator[None]:
        lock = self._by_chat.setdefault(chat_id, asyncio.Lock())
        self._users[chat_id] += 1
        try:
            async with lock:
                yield
        finally:
            self._users[chat_id] -= 1
            if self._users[chat_id] <= 0:
                del self._users[chat_id]
                del self._by_chat[chat_id]

    def __contains__(self, chat_id: object) -> bool:
        return chat_id in self._by_chat


chat_locks = ChatLocks()
