"""Staking bank: a weekly re-rolled annual rate compounded daily into the wallet."""

from __future__ import annotations

import datetime as dt
import logging
import threading
from dataclasses import dataclass
from decimal import ROUND_HALF_EVEN, Decimal
from typing import Any, Mapping, Optional

import numpy as np

from pomodoro.clock import NowFn, system_now
from shared.codec import datetime_field, decimal_field, encode_datetime, encode_decimal

from .config import BankConfig, make_rng
from .wallet import WalletLedger

MIN_ANNUAL_RATE = Decimal("0.05")
MAX_ANNUAL_RATE = Decimal("0.08")
RATE_PERIOD = dt.timedelta(days=7)
INTEREST_PERIOD = dt.timedelta(days=1)
DAYS_PER_YEAR = Decimal(365)

_RATE_QUANTUM = Decimal("0.0001")
_INTEREST_QUANTUM = Decimal("0.00000001")


@dataclass(frozen=True)
class BankSnapshot:
    annual_interest_rate: Decimal
    last_rate_update: Optional[dt.datetime] = None
    last_interest_applied: Optional[dt.datetime] = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "annual_interest_rate": encode_decimal(self.annual_interest_rate),
            "last_rate_update": encode_datetime(self.last_rate_update),
            "last_interest_applied": encode_datetime(self.last_interest_applied),
        }

    @classmethod
    def from_dict(cls, raw: Mapping[str, Any]) -> "BankSnapshot":
        return cls(
            annual_interest_rate=decimal_field(raw, "annual_interest_rate", MIN_ANNUAL_RATE),
            last_rate_update=datetime_field(raw, "last_rate_update", None),
            last_interest_applied=datetime_field(raw, "last_interest_applied", None),
        )


def clamp_rate(rate: Decimal) -> Decimal:
    return min(max(rate, MIN_ANNUAL_RATE), MAX_ANNUAL_RATE)


class BankService:
    """Opportunistic accrual: both ``*_if_needed`` calls are safe to repeat at will."""

    def __init__(
        self,
        *,
        config: Optional[BankConfig] = None,
        snapshot: Optional[BankSnapshot] = None,
        rng: Optional[np.random.Generator] = None,
        now_fn: Optional[NowFn] = None,
        logger: Optional[logging.Logger] = None,
    ):
        self._config = config or BankConfig()
        self._rng = rng if rng is not None else make_rng(self._config.seed)
        self._now_fn = now_fn or system_now
        self._logger = logger or logging.getLogger("bank")
        self._lock = threading.Lock()

        now = self._now_fn()
        if snapshot is None:
            self._annual_interest_rate = self._draw_rate()
            self._last_rate_update = now
            self._last_interest_applied = now
        else:
            self._annual_interest_rate = clamp_rate(snapshot.annual_interest_rate)
            self._last_rate_update = snapshot.last_rate_update or now
            self._last_interest_applied = snapshot.last_interest_applied or now

    @property
    def annual_interest_rate(self) -> Decimal:
        with self._lock:
            return self._annual_interest_rate

    @property
    def daily_rate(self) -> Decimal:
        with self._lock:
            return self._annual_interest_rate / DAYS_PER_YEAR

    @property
    def last_rate_update(self) -> dt.datetime:
        with self._lock:
            return self._last_rate_update

    @property
    def last_interest_applied(self) -> dt.datetime:
        with self._lock:
            return self._last_interest_applied

    def projected_daily_interest(self, wallet: WalletLedger) -> Decimal:
        return self._interest_for(wallet.staked_balance, self.daily_rate)

    def update_weekly_rate_if_needed(self) -> bool:
        with self._lock:
            now = self._now_fn()
            if now < self._last_rate_update + RATE_PERIOD:
                return False
            previous = self._annual_interest_rate
            self._annual_interest_rate = self._draw_rate()
            self._last_rate_update = now
        self._logger.info(
            "Weekly interest rate updated: previous=%s current=%s",
            previous,
            self._annual_interest_rate,
        )
        return True

    def apply_daily_interest_if_needed(self, wallet: WalletLedger) -> Optional[Decimal]:
        """Deposit one day's interest when a day has passed; returns the amount deposited."""
        with self._lock:
            if self._now_fn() < self._last_interest_applied + INTEREST_PERIOD:
                return None
            return self._apply_interest_locked(wallet)

    def force_apply_interest(self, wallet: WalletLedger) -> Optional[Decimal]:
        with self._lock:
            return self._apply_interest_locked(wallet)

    def to_snapshot(self) -> BankSnapshot:
        with self._lock:
            return BankSnapshot(
                annual_interest_rate=self._annual_interest_rate,
                last_rate_update=self._last_rate_update,
                last_interest_applied=self._last_interest_applied,
            )

    def restore(self, snapshot: BankSnapshot) -> None:
        with self._lock:
            now = self._now_fn()
            self._annual_interest_rate = clamp_rate(snapshot.annual_interest_rate)
            self._last_rate_update = snapshot.last_rate_update or now
            self._last_interest_applied = snapshot.last_interest_applied or now

    def _apply_interest_locked(self, wallet: WalletLedger) -> Optional[Decimal]:
        daily_rate = self._annual_interest_rate / DAYS_PER_YEAR
        interest = self._interest_for(wallet.staked_balance, daily_rate)
        if interest <= 0:
            self._logger.debug("No interest to apply: staked=%s", wallet.staked_balance)
            return None
        wallet.deposit_interest(interest)
        self._last_interest_applied = self._now_fn()
        self._logger.info(
            "Daily interest applied: amount=%s rate=%s",
            interest,
            self._annual_interest_rate,
        )
        return interest

    @staticmethod
    def _interest_for(staked: Decimal, daily_rate: Decimal) -> Decimal:
        return (staked * daily_rate).quantize(_INTEREST_QUANTUM, rounding=ROUND_HALF_EVEN)

    def _draw_rate(self) -> Decimal:
        draw = self._rng.uniform(float(MIN_ANNUAL_RATE), float(MAX_ANNUAL_RATE))
        rate = Decimal(repr(float(draw))).quantize(_RATE_QUANTUM, rounding=ROUND_HALF_EVEN)
        return clamp_rate(rate)
