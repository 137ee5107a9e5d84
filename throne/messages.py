"""Keeps exactly one live, pinned game message per chat.

Update protocol, in order:

1. publish the new view (failure aborts with `PublishError`, nothing else runs)
2. pin it (best-effort)
3. commit its id as the chat's `last_message_id`
4. unpin then delete the previous message if it differs (best-effort)

The pointer is committed before the old message is touched, so it never
names a message this manager has already deleted. A failed cleanup can leave a
stale message behind; the chat is never left without a current view.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass

from throne.errors import PublishError
from throne.messenger import ChatMessenger, View
from throne.store import ThroneStore


logger = logging.getLogger(__name__)

DEFAULT_NOTICE_DELETE_AFTER = 3.0
PIN_WARNING = "⚠️ Warning: Could not pin the game message. Please check bot permissions."

# Pending notice deletions. Held here so the tasks are not garbage collected.
_background_tasks: set[asyncio.Task[None]] = set()


@dataclass(frozen=True, slots=True)
class StepOutcome:
    step: str
    message_id: str
    ok: bool
    error: str | None = None


@dataclass(frozen=True, slots=True)
class PublishReport:
    message_id: str
    previous_message_id: str | None
    steps: tuple[StepOutcome, ...]

    @property
    def pinned(self) -> bool:
        return any(s.step == "pin" and s.ok for s in self.steps)


async def _best_effort(
    step: str,
    op: Callable[[int, str], Awaitable[None]],
    chat_id: int,
    message_id: str,
) -> StepOutcome:
    try:
        await op(chat_id, message_id)
    except Exception as e:
        logger.warning("chat=%s %s of message %s failed: %s", chat_id, step, message_id, e)
        return StepOutcome(step=step, message_id=message_id, ok=False, error=str(e))
    logger.debug("chat=%s %s of message %s ok", chat_id, step, message_id)
    return StepOutcome(step=step, message_id=message_id, ok=True)


class MessageManager:
    def __init__(
        self,
        store: ThroneStore,
        messenger: ChatMessenger,
        *,
        notice_delete_after: float = DEFAULT_NOTICE_DELETE_AFTER,
    ) -> None:
        self.store = store
        self.messenger = messenger
        self.notice_delete_after = notice_delete_after

    async def update_game_message(self, chat_id: int, view: View) -> PublishReport:
        try:
            message_id = await self.messenger.publish(chat_id, view)
        except Exception as e:
            logger.error("chat=%s failed to publish game message: %s", chat_id, e)
            raise PublishError("Failed to send new game message") from e

        steps = [await _best_effort("pin", self.messenger.pin, chat_id, message_id)]

        previous = self.store.get_last_message_id(chat_id)
        self.store.set_last_message_id(chat_id, message_id)

        if previous and previous != message_id:
            steps.append(await _best_effort("unpin", self.messenger.unpin, chat_id, previous))
            steps.append(await _best_effort("delete", self.messenger.delete, chat_id, previous))

        report = PublishReport(message_id=message_id, previous_message_id=previous, steps=tuple(steps))
        if not report.pinned:
            logger.warning("chat=%s message %s was sent but not pinned", chat_id, message_id)
            await self.send_notice(chat_id, PIN_WARNING)
        return report

    async def retire_game_message(self, chat_id: int) -> tuple[StepOutcome, ...]:
        """Drop the live message: clear the pointer, then unpin and delete it."""

        previous = self.store.get_last_message_id(chat_id)
        if not previous:
            return ()
        self.store.set_last_message_id(chat_id, None)
        return (
            await _best_effort("unpin", self.messenger.unpin, chat_id, previous),
            await _best_effort("delete", self.messenger.delete, chat_id, previous),
        )

    async def reply(self, chat_id: int, text: str) -> str:
        """Persistent plain-text reply; failure is a publish error."""

        try:
            return await self.messenger.send_text(chat_id, text)
        except Exception as e:
            logger.error("chat=%s failed to send reply: %s", chat_id, e)
            raise PublishError("Failed to send reply") from e

    async def send_notice(self, chat_id: int, text: str, *, delete_after: float | None = None) -> str | None:
        """Fire-and-forget status line, deleted again after a delay."""

        try:
            message_id = await self.messenger.send_text(chat_id, text)
        except Exception as e:
            logger.warning("chat=%s could not send notice %r: %s", chat_id, text, e)
            return None

        delay = self.notice_delete_after if delete_after is None else delete_after
        task = asyncio.create_task(self._delete_later(chat_id, message_id, delay))
        _background_tasks.add(task)
        task.add_done_callback(_background_tasks.discard)
        return message_id

    async def _delete_later(self, chat_id: int, message_id: str, delay: float) -> None:
        await asyncio.sleep(delay)
        await _best_effort("delete", self.messenger.delete, chat_id, message_id)


async def drain_notices() -> None:
    """Wait for every scheduled notice deletion (shutdown and tests)."""

    loop = asyncio.get_running_loop()
    while pending := [t for t in _background_tasks if t.get_loop() is loop]:
        await asyncio.gather(*pending, return_exceptions=True)
