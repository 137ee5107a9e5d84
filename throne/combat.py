from __future__ import annotations

import random
from dataclasses import dataclass

from throne.economy import win_chance


@dataclass(frozen=True, slots=True)
class AttackOutcome:
    """Result of one attack roll.

    - `won`: the holder defended the throne (roll fell under `win_chance`).
    - `win_chance`: the holder's defense probability for this roll.
    - `roll`: the uniform draw in [0, 1).
    """

    won: bool
    win_chance: float
    roll: float

    @property
    def challenger_won(self) -> bool:
        return not self.won


class CombatResolver:
    """Streak-weighted coin flip.

    Pass a seeded `random.Random` for reproducible outcomes.
    """

    def __init__(self, rng: random.Random | None = None) -> None:
        self._rng = rng or random.Random()

    def resolve(self, streak: int) -> AttackOutcome:
        chance = win_chance(streak)
        roll = self._rng.random()
        return AttackOutcome(won=roll < chance, win_chance=chance, roll=roll)


def odds_string(streak: int) -> str:
    """`attacker/holder` odds in whole percent, e.g. `45/55`."""

    holder = round(win_chance(streak) * 100)
    return f"{100 - holder}/{holder}"
