"""Entry point for commands and button callbacks.

Applies a typed command by:
- acquiring the chat's lock
- checking collaborator predicates (bot rights, admin)
- running the throne operation (validation first, then store mutation)
- publishing the resulting view through the message manager
- emitting ephemeral notices

A `GameError` is reported to the chat as a notice and re-raised. A
`PublishError` rolls the chat back to its pre-command snapshot and is
re-raised, so a failed publish never leaves a half-applied update.
"""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import TypeVar

from throne.api.models import ChatState
from throne.combat import CombatResolver
from throne.commands import (
    Attack,
    Cashout,
    Claim,
    Command,
    EconomyInfo,
    ForceReset,
    Help,
    Reset,
    SetHouseEdge,
    Start,
    Stats,
)
from throne.economy import Economy
from throne.errors import GameError, PermissionDenied, PublishError, UnknownAction
from throne.game import ResetResult, ThroneGame
from throne.lock import ChatLocks, chat_locks
from throne.messages import DEFAULT_NOTICE_DELETE_AFTER, MessageManager, PublishReport
from throne.messenger import ChatMessenger, View
from throne.permissions import MISSING_PERMISSIONS_TEXT, ChatPermissions
from throne.render import (
    HELP_TEXT,
    START_TEXT,
    chat_stats_text,
    economy_text,
    empty_throne_view,
    king_label,
    reset_summary_text,
    throne_view,
)
from throne.store import ThroneStore


logger = logging.getLogger(__name__)

T = TypeVar("T")

NO_KING_TO_RESET = "ℹ️ No king to reset: there is currently no king in this chat."
THRONE_RESET_NOTICE = "👑 Throne has been reset - ready for new games!"


@dataclass(frozen=True, slots=True)
class CommandResult:
    command: str
    chat: ChatState
    # Id of the newly published game message or reply, if any.
    message_id: str | None = None
    # Reply text for informational commands.
    text: str | None = None


class Dispatcher:
    def __init__(
        self,
        *,
        store: ThroneStore,
        messenger: ChatMessenger,
        permissions: ChatPermissions,
        economy: Economy | None = None,
        resolver: CombatResolver | None = None,
        locks: ChatLocks | None = None,
        notice_delete_after: float = DEFAULT_NOTICE_DELETE_AFTER,
        image_ref: str | None = None,
    ) -> None:
        self.store = store
        self.permissions = permissions
        self.game = ThroneGame(store, economy=economy, resolver=resolver)
        self.economy = self.game.economy
        self.messages = MessageManager(store, messenger, notice_delete_after=notice_delete_after)
        self.locks = locks if locks is not None else chat_locks
        self.image_ref = image_ref

    async def dispatch(self, chat_id: int, command: Command) -> CommandResult:
        try:
            async with self.locks.hold(chat_id):
                return await self._apply(chat_id, command)
        except GameError as e:
            logger.info("chat=%s user=%s %s rejected: %s", chat_id, command.user_id, command.command, e.code)
            await self.messages.send_notice(chat_id, f"❌ {e.message}")
            raise

    async def reset_chat(self, chat_id: int) -> bool:
        """Drop every record for a chat once any in-flight command has finished."""

        async with self.locks.hold(chat_id):
            removed = self.store.reset_chat(chat_id)
        if removed:
            logger.warning("chat=%s all records dropped", chat_id)
        return removed

    async def _apply(self, chat_id: int, cmd: Command) -> CommandResult:
        self.store.get_or_create_user(chat_id, cmd.user_id, cmd.display_name)

        if isinstance(cmd, Claim):
            return await self._claim(chat_id, cmd)
        if isinstance(cmd, Attack):
            return await self._attack(chat_id, cmd)
        if isinstance(cmd, Cashout):
            return await self._cashout(chat_id, cmd)
        if isinstance(cmd, Reset):
            is_admin = await self._is_admin(chat_id, cmd.user_id)
            return await self._reset(chat_id, cmd.command, self.game.reset(chat_id, is_admin=is_admin))
        if isinstance(cmd, ForceReset):
            logger.warning("chat=%s user=%s FORCE RESET: skipping admin check", chat_id, cmd.user_id)
            return await self._reset(chat_id, cmd.command, self.game.force_reset(chat_id))
        if isinstance(cmd, Stats):
            return await self._reply(chat_id, cmd.command, chat_stats_text(self.store.get_chat(chat_id)))
        if isinstance(cmd, EconomyInfo):
            await self._require_admin(chat_id, cmd.user_id)
            return await self._reply(chat_id, cmd.command, economy_text(self.economy.info()))
        if isinstance(cmd, SetHouseEdge):
            await self._require_admin(chat_id, cmd.user_id)
            self.economy.set_house_edge(cmd.percent)
            return await self._reply(chat_id, cmd.command, economy_text(self.economy.info()))
        if isinstance(cmd, Help):
            return await self._reply(chat_id, cmd.command, HELP_TEXT)
        if isinstance(cmd, Start):
            return await self._reply(chat_id, cmd.command, START_TEXT)
        raise UnknownAction(f"Unknown command: {cmd.command}")

    # --- throne operations ---

    async def _claim(self, chat_id: int, cmd: Claim) -> CommandResult:
        await self._require_bot_permissions(chat_id)
        result, report = await self._commit_and_publish(
            chat_id,
            lambda: self.game.claim(chat_id, cmd.user_id, cmd.stake, display_name=cmd.display_name),
            lambda _: self._throne_view(chat_id),
        )
        chat = self.store.get_chat(chat_id)
        await self.messages.send_notice(
            chat_id, f"👑 {king_label(chat, result.king)} is the new KING! Bet: {result.king.stake}"
        )
        return CommandResult(command=cmd.command, chat=chat, message_id=report.message_id)

    async def _attack(self, chat_id: int, cmd: Attack) -> CommandResult:
        await self._require_bot_permissions(chat_id)
        result, report = await self._commit_and_publish(
            chat_id,
            lambda: self.game.attack(chat_id, cmd.user_id, display_name=cmd.display_name),
            lambda _: self._throne_view(chat_id),
        )
        chat = self.store.get_chat(chat_id)
        if result.challenger_won:
            notice = f"💥 {king_label(chat, result.king)} defeated the king!"
        else:
            notice = f"🛡️ King survived! Streak: {result.king.streak}"
        await self.messages.send_notice(chat_id, notice)
        return CommandResult(command=cmd.command, chat=chat, message_id=report.message_id)

    async def _cashout(self, chat_id: int, cmd: Cashout) -> CommandResult:
        await self._require_bot_permissions(chat_id)
        result, report = await self._commit_and_publish(
            chat_id,
            lambda: self.game.cashout(chat_id, cmd.user_id),
            lambda r: empty_throne_view(balance=r.balance, image_ref=self.image_ref),
        )
        await self.messages.send_notice(chat_id, f"💰 King cashed out {result.payout} coins")
        return CommandResult(command=cmd.command, chat=self.store.get_chat(chat_id), message_id=report.message_id)

    async def _reset(self, chat_id: int, name: str, result: ResetResult) -> CommandResult:
        chat = self.store.get_chat(chat_id)
        if result.previous is None:
            await self.messages.send_notice(chat_id, NO_KING_TO_RESET)
            return CommandResult(command=name, chat=chat, text=NO_KING_TO_RESET)

        await self.messages.retire_game_message(chat_id)
        summary = reset_summary_text(chat, result.previous, forced=result.forced, user_count=result.user_count)
        message_id: str | None = None
        try:
            message_id = await self.messages.reply(chat_id, summary)
        except PublishError:
            # The throne is already cleared; the summary is informational only.
            logger.warning("chat=%s reset summary could not be sent", chat_id)
        await self.messages.send_notice(chat_id, THRONE_RESET_NOTICE)
        return CommandResult(command=name, chat=self.store.get_chat(chat_id), message_id=message_id, text=summary)

    async def _commit_and_publish(
        self,
        chat_id: int,
        mutate: Callable[[], T],
        view_for: Callable[[T], View],
    ) -> tuple[T, PublishReport]:
        snapshot = self.store.get_chat(chat_id)
        result = mutate()
        try:
            report = await self.messages.update_game_message(chat_id, view_for(result))
        except PublishError:
            self.store.restore_chat(snapshot)
            logger.error("chat=%s publish failed; rolled back to pre-command state", chat_id)
            raise
        return result, report

    def _throne_view(self, chat_id: int) -> View:
        return throne_view(self.store.get_chat(chat_id), image_ref=self.image_ref)

    # --- replies ---

    async def _reply(self, chat_id: int, name: str, text: str) -> CommandResult:
        message_id = await self.messages.reply(chat_id, text)
        return CommandResult(command=name, chat=self.store.get_chat(chat_id), message_id=message_id, text=text)

    # --- collaborator predicates ---

    async def _require_bot_permissions(self, chat_id: int) -> None:
        if not await _ask(self.permissions.has_required_bot_permissions(chat_id), what="bot permissions"):
            raise PermissionDenied(MISSING_PERMISSIONS_TEXT)

    async def _is_admin(self, chat_id: int, user_id: int) -> bool:
        return await _ask(self.permissions.is_administrator(chat_id, user_id), what="admin status")

    async def _require_admin(self, chat_id: int, user_id: int) -> None:
        if not await self._is_admin(chat_id, user_id):
            raise PermissionDenied("Admin required: Only administrators can use this command.")


async def _ask(check: Awaitable[bool], *, what: str) -> bool:
    # If the platform can't answer, assume no.
    try:
        return bool(await check)
    except Exception:
        logger.exception("Could not check %s", what)
        return False
