"""Throne operations: claim, attack, cashout and reset.

Each operation validates first and mutates second, so a raised `GameError`
always means nothing changed. Callers must hold the chat's lock
(`throne.lock.ChatLocks.hold`) for the whole read-then-write sequence.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import UTC, datetime

from throne.api.models import King
from throne.combat import AttackOutcome, CombatResolver
from throne.economy import Economy, economy as default_economy
from throne.errors import InsufficientBalance, InvalidStake, NotKing, PermissionDenied, SelfAttack, WrongState
from throne.fsm import ThroneFSM
from throne.store import ThroneStore


logger = logging.getLogger(__name__)

MIN_STAKE = 1
MAX_STAKE = 10_000


def _now() -> datetime:
    return datetime.now(tz=UTC)


def is_valid_stake(stake: object) -> bool:
    return isinstance(stake, int) and not isinstance(stake, bool) and MIN_STAKE <= stake <= MAX_STAKE


@dataclass(frozen=True, slots=True)
class ClaimResult:
    king: King
    balance: int


@dataclass(frozen=True, slots=True)
class AttackResult:
    outcome: AttackOutcome
    previous: King
    king: King
    payout: int
    house_cut: int
    challenger_balance: int

    @property
    def challenger_won(self) -> bool:
        return self.outcome.challenger_won


@dataclass(frozen=True, slots=True)
class CashoutResult:
    previous: King
    payout: int
    house_cut: int
    balance: int


@dataclass(frozen=True, slots=True)
class ResetResult:
    """`previous` is None when the throne was already empty (nothing to do)."""

    previous: King | None
    user_count: int
    forced: bool


class ThroneGame:
    def __init__(
        self,
        store: ThroneStore,
        *,
        economy: Economy | None = None,
        resolver: CombatResolver | None = None,
    ) -> None:
        self.store = store
        self.economy = economy or default_economy
        self.resolver = resolver or CombatResolver()

    def _fsm(self, chat_id: int) -> ThroneFSM:
        return ThroneFSM(self.store.get_chat(chat_id))

    def claim(self, chat_id: int, user_id: int, stake: int, *, display_name: str | None = None) -> ClaimResult:
        fsm = self._fsm(chat_id)
        if fsm.current_state != fsm.empty:
            raise WrongState("There's already a king! Attack the throne to challenge them.")
        if not is_valid_stake(stake):
            raise InvalidStake(f"Please specify a valid bet amount ({MIN_STAKE}-{MAX_STAKE})")

        user = self.store.get_or_create_user(chat_id, user_id, display_name)
        if user.balance < stake:
            raise InsufficientBalance(f"Insufficient balance! You have {user.balance} coins, but need {stake} coins.")

        balance = self.store.adjust_balance(chat_id, user_id, -stake)
        king = King(holder_id=user_id, stake=stake, streak=0, claimed_at=_now())
        self.store.set_king(chat_id, king)
        fsm.claim()

        logger.info("chat=%s user=%s claimed the throne with stake=%s", chat_id, user_id, stake)
        return ClaimResult(king=king, balance=balance)

    def attack(self, chat_id: int, challenger_id: int, *, display_name: str | None = None) -> AttackResult:
        fsm = self._fsm(chat_id)
        king = fsm.chat.king
        if fsm.current_state != fsm.claimed or king is None:
            raise WrongState("No king currently")
        if challenger_id == king.holder_id:
            raise SelfAttack("You can't attack yourself!")

        challenger = self.store.get_or_create_user(chat_id, challenger_id, display_name)
        if challenger.balance < king.stake:
            raise InsufficientBalance(f"Need {king.stake} coins to attack")

        # The challenger's stake is spent whatever the outcome.
        self.store.adjust_balance(chat_id, challenger_id, -king.stake)
        outcome = self.resolver.resolve(king.streak)

        edge = self.economy.house_edge
        payout = self.economy.payout(king.stake, edge=edge)
        cut = self.economy.house_cut(king.stake, edge=edge)

        if outcome.challenger_won:
            new_king = King(holder_id=challenger_id, stake=king.stake, streak=0, claimed_at=_now())
            self.store.set_king(chat_id, new_king)
            self.store.adjust_balance(chat_id, challenger_id, payout)
            logger.info(
                "chat=%s challenger=%s dethroned holder=%s (roll=%.3f chance=%.2f)",
                chat_id,
                challenger_id,
                king.holder_id,
                outcome.roll,
                outcome.win_chance,
            )
        else:
            new_king = king.model_copy(update={"streak": king.streak + 1})
            self.store.set_king(chat_id, new_king)
            # The holder never paid for this defense, so the payout is pure winnings.
            self.store.adjust_balance(chat_id, king.holder_id, payout)
            logger.info(
                "chat=%s holder=%s defended against challenger=%s streak=%s (roll=%.3f chance=%.2f)",
                chat_id,
                king.holder_id,
                challenger_id,
                new_king.streak,
                outcome.roll,
                outcome.win_chance,
            )
        fsm.attack()

        return AttackResult(
            outcome=outcome,
            previous=king,
            king=new_king,
            payout=payout,
            house_cut=cut,
            challenger_balance=self.store.get_balance(chat_id, challenger_id),
        )

    def cashout(self, chat_id: int, user_id: int) -> CashoutResult:
        fsm = self._fsm(chat_id)
        king = fsm.chat.king
        if fsm.current_state != fsm.claimed or king is None:
            raise WrongState("No king currently")
        if user_id != king.holder_id:
            raise NotKing("Only the king can cash out!")

        edge = self.economy.house_edge
        payout = self.economy.payout(king.stake, edge=edge)
        cut = self.economy.house_cut(king.stake, edge=edge)
        balance = self.store.adjust_balance(chat_id, user_id, payout)
        self.store.clear_king(chat_id)
        fsm.cashout()

        logger.info("chat=%s holder=%s cashed out payout=%s house_cut=%s", chat_id, user_id, payout, cut)
        return CashoutResult(previous=king, payout=payout, house_cut=cut, balance=balance)

    def reset(self, chat_id: int, *, is_admin: bool) -> ResetResult:
        if not is_admin:
            raise PermissionDenied("Admin required: Only administrators can use this command.")
        return self._clear(chat_id, forced=False)

    def force_reset(self, chat_id: int) -> ResetResult:
        return self._clear(chat_id, forced=True)

    def _clear(self, chat_id: int, *, forced: bool) -> ResetResult:
        fsm = self._fsm(chat_id)
        previous = fsm.chat.king
        user_count = len(fsm.chat.users)
        if previous is not None:
            # The stake is forfeited: no refund on reset.
            self.store.clear_king(chat_id)
            logger.warning(
                "chat=%s throne %sreset; holder=%s forfeits stake=%s",
                chat_id,
                "force " if forced else "",
                previous.holder_id,
                previous.stake,
            )
        fsm.reset_throne()
        return ResetResult(previous=previous, user_count=user_count, forced=forced)
