"""Coin reward formula for completed focus sessions."""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal

STREAK_BONUS_PER_SESSION = Decimal("0.15")
PASSIVE_BOOST_PER_STREAK = Decimal("0.02")


@dataclass(frozen=True)
class FocusReward:
    """Reward emitted once per completed focus phase."""
    coins_reward: Decimal
    passive_boost: Decimal


def streak_multiplier(streak: int) -> Decimal:
    multiplier = Decimal(1) + Decimal(streak - 1) * STREAK_BONUS_PER_SESSION
    return max(Decimal(1), multiplier)


def calculate_reward(focus_duration_seconds: int, streak: int) -> FocusReward:
    """Map a focus duration and the streak it completed into coins and passive boost.

    Coins are the focused minutes scaled by a streak multiplier that grows 15% per
    consecutive session and never drops below 1x. The passive boost is additive and
    meant to accumulate in the wallet across sessions.
    """
    minutes = Decimal(int(focus_duration_seconds)) / Decimal(60)
    return FocusReward(
        coins_reward=minutes * streak_multiplier(int(streak)),
        passive_boost=Decimal(int(streak)) * PASSIVE_BOOST_PER_STREAK,
    )
