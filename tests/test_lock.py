from __future__ import annotations

import asyncio

import pytest

from throne.lock import ChatLocks


@pytest.mark.asyncio
async def test_same_chat_is_serialized_and_lock_dropped_afterwards() -> None:
    locks = ChatLocks()
    order: list[str] = []

    async def worker(name: str) -> None:
        async with locks.hold(1):
            order.append(f"{name}:in")
            await asyncio.sleep(0.01)
            assert 1 in locks
            order.append(f"{name}:out")

    await asyncio.gather(worker("a"), worker("b"))

    assert order == ["a:in", "a:out", "b:in", "b:out"]
    assert 1 not in locks


@pytest.mark.asyncio
async def test_different_chats_do_not_block() -> None:
    locks = ChatLocks()
    async with locks.hold(1):
        async with locks.hold(2):
            assert 1 in locks and 2 in locks
    assert 1 not in locks and 2 not in locks


@pytest.mark.asyncio
async def test_cancelled_waiter_does_not_leak_its_lock() -> None:
    locks = ChatLocks()

    async def _enter() -> None:
        async with locks.hold(1):
            pass

    async with locks.hold(1):
        waiter = asyncio.create_task(_enter())
        await asyncio.sleep(0)
        waiter.cancel()
        with pytest.raises(asyncio.CancelledError):
            await waiter

    assert 1 not in locks
