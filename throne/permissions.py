from __future__ import annotations

from dataclasses import dataclass, field
from typing import Protocol


REQUIRED_BOT_PERMISSIONS = ("Pin messages", "Delete messages")

MISSING_PERMISSIONS_TEXT = "BOT NEEDS ADMIN RIGHTS\n\nPlease make the bot an admin with these permissions:\n" + "\n".join(
    f"✅ {p}" for p in REQUIRED_BOT_PERMISSIONS
)


class ChatPermissions(Protocol):
    """Answers supplied by the chat platform binding."""

    async def has_required_bot_permissions(self, chat_id: int) -> bool: ...

    async def is_administrator(self, chat_id: int, user_id: int) -> bool: ...


@dataclass(frozen=True, slots=True)
class ConfiguredPermissions:
    """Static answers from configuration.

    Administrators are the same set of user ids in every chat. Bot rights are
    assumed granted unless switched off.
    """

    admin_ids: frozenset[int] = field(default_factory=frozenset)
    bot_permissions_granted: bool = True

    async def has_required_bot_permissions(self, chat_id: int) -> bool:  # noqa: ARG002
        return self.bot_permissions_granted

    async def is_administrator(self, chat_id: int, user_id: int) -> bool:  # noqa: ARG002
        return user_id in self.admin_ids
