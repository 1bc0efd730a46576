"""Validated configuration for the bank and market simulations."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

import numpy as np


class EconomyConfigurationError(Exception):
    """Raised when market or bank configuration is invalid."""


DEFAULT_PRICE_HISTORY_LIMIT = 60


def make_rng(seed: Optional[int]) -> np.random.Generator:
    """Return a numpy generator; ``None`` seeds from OS entropy."""
    return np.random.default_rng(seed)


@dataclass(frozen=True)
class MarketConfig:
    seed: Optional[int] = None
    history_limit: int = DEFAULT_PRICE_HISTORY_LIMIT

    def __post_init__(self) -> None:
        if self.history_limit < 1:
            raise EconomyConfigurationError(
                f"market.history_limit must be >= 1, got: {self.history_limit}"
            )
        if self.seed is not None and self.seed < 0:
            raise EconomyConfigurationError(
                f"market.seed must be >= 0, got: {self.seed}"
            )

    @classmethod
    def from_settings(cls, settings) -> "MarketConfig":
        return cls(
            seed=settings.seed,
            history_limit=int(settings.history_limit),
        )


@dataclass(frozen=True)
class BankConfig:
    seed: Optional[int] = None

    def __post_init__(self) -> None:
        if self.seed is not None and self.seed < 0:
            raise EconomyConfigurationError(f"bank.seed must be >= 0, got: {self.seed}")

    @classmethod
    def from_settings(cls, settings) -> "BankConfig":
        return cls(seed=settings.seed)
