"""Outbound side of the chat platform.

The core only talks to a `ChatMessenger`. `StreamMessenger` is the shipped
implementation: it appends every outbound operation to a per-chat Redis Stream
(the outbox) that the platform gateway consumes. The stream entry id of a
`publish_view`/`send_text` entry is the message identifier used by later
pin/unpin/delete entries.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Mapping, Protocol, cast

import redis


ATTACK = "attack"
CASHOUT = "cashout"
GAME_ACTIONS: tuple[str, ...] = (ATTACK, CASHOUT)


@dataclass(frozen=True, slots=True)
class View:
    """A rendered game message plus the buttons attached to it."""

    text: str
    actions: tuple[str, ...] = GAME_ACTIONS
    image_ref: str | None = None


class ChatMessenger(Protocol):
    async def publish(self, chat_id: int, view: View) -> str: ...

    async def send_text(self, chat_id: int, text: str) -> str: ...

    async def pin(self, chat_id: int, message_id: str) -> None: ...

    async def unpin(self, chat_id: int, message_id: str) -> None: ...

    async def delete(self, chat_id: int, message_id: str) -> None: ...


@dataclass(frozen=True, slots=True)
class Outbox:
    chat_id: int

    @property
    def key(self) -> str:
        return f"outbox:chat:{self.chat_id}"


def publish_to_outbox(*, r: redis.Redis, outbox: Outbox, fields: Mapping[str, str]) -> str:
    """Append an entry to a chat's outbox stream."""

    # redis-py stubs expect field/value unions; we only use string fields/values.
    stream_id = r.xadd(outbox.key, {str(k): str(v) for k, v in fields.items()})
    return cast(str, stream_id)


class StreamMessenger:
    def __init__(self, r: redis.Redis) -> None:
        self.r = r

    async def publish(self, chat_id: int, view: View) -> str:
        fields = {
            "type": "publish_view",
            "chat_id": str(chat_id),
            "text": view.text,
            "actions": ",".join(view.actions),
        }
        if view.image_ref:
            fields["image_ref"] = view.image_ref
        return publish_to_outbox(r=self.r, outbox=Outbox(chat_id), fields=fields)

    async def send_text(self, chat_id: int, text: str) -> str:
        return publish_to_outbox(
            r=self.r,
            outbox=Outbox(chat_id),
            fields={"type": "send_text", "chat_id": str(chat_id), "text": text},
        )

    async def pin(self, chat_id: int, message_id: str) -> None:
        self._op(chat_id, "pin", message_id)

    async def unpin(self, chat_id: int, message_id: str) -> None:
        self._op(chat_id, "unpin", message_id)

    async def delete(self, chat_id: int, message_id: str) -> None:
        self._op(chat_id, "delete", message_id)

    def _op(self, chat_id: int, op: str, message_id: str) -> None:
        publish_to_outbox(
            r=self.r,
            outbox=Outbox(chat_id),
            fields={"type": op, "chat_id": str(chat_id), "message_id": message_id},
        )
