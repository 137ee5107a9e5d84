"""Stake payouts under a configurable house edge.

With a house edge of 0 every payout equals the stake, so coins only move
between participants. A positive edge withholds `house_cut(stake)` coins from
every resolved attack and every cashout; those coins leave circulation.
"""

from __future__ import annotations

import logging
import math
import threading

from throne.api.models import EconomySnapshot
from throne.errors import OutOfRange


logger = logging.getLogger(__name__)

# Holder defense odds, in whole percent.
BASE_WIN_PERCENT = 50
STREAK_BONUS_PERCENT = 5
MAX_WIN_PERCENT = 70
MAX_HOUSE_EDGE = 0.5


def win_chance(streak: int) -> float:
    """Probability that the holder survives an attack after `streak` defenses."""

    # Integer steps avoid 0.5 + 0.05 * 4 landing a hair above 0.7.
    return min(BASE_WIN_PERCENT + STREAK_BONUS_PERCENT * max(streak, 0), MAX_WIN_PERCENT) / 100


class Economy:
    """Owner of the process-wide house edge.

    Reads and updates go through a lock so a resolution always sees one
    consistent rate. Callers that compute both a payout and a cut for the same
    resolution should read `house_edge` once and pass it to both.
    """

    def __init__(self, house_edge: float = 0.0) -> None:
        self._lock = threading.Lock()
        self._house_edge = 0.0
        self.set_house_edge(house_edge)

    @property
    def house_edge(self) -> float:
        with self._lock:
            return self._house_edge

    def set_house_edge(self, percent: float) -> float:
        if isinstance(percent, bool) or not isinstance(percent, (int, float)) or math.isnan(percent):
            raise OutOfRange("House edge must be a number between 0 and 0.5")
        if percent < 0 or percent > MAX_HOUSE_EDGE:
            raise OutOfRange(f"House edge must be between 0 and {MAX_HOUSE_EDGE}, got {percent}")
        with self._lock:
            previous = self._house_edge
            self._house_edge = float(percent)
        logger.info("House edge updated from %.1f%% to %.1f%%", previous * 100, percent * 100)
        return previous

    def house_cut(self, stake: int, *, edge: float | None = None) -> int:
        rate = self.house_edge if edge is None else edge
        return math.floor(stake * rate)

    def payout(self, stake: int, *, edge: float | None = None) -> int:
        rate = self.house_edge if edge is None else edge
        return stake - self.house_cut(stake, edge=rate)

    def info(self) -> EconomySnapshot:
        rate = self.house_edge
        is_zero_sum = rate == 0
        description = "Zero-sum game (no house edge)" if is_zero_sum else f"{rate * 100:.1f}% house edge"
        return EconomySnapshot(house_edge=rate, is_zero_sum=is_zero_sum, description=description)


economy = Economy()
