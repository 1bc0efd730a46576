"""Simulated market of a few focus-themed instruments traded against the wallet."""

from __future__ import annotations

import datetime as dt
import logging
import threading
import uuid
from dataclasses import dataclass, field, replace
from decimal import ROUND_HALF_EVEN, Decimal
from typing import Any, Mapping, Optional

import numpy as np

from pomodoro.clock import NowFn, system_now
from shared.codec import (
    datetime_field,
    decimal_field,
    encode_datetime,
    encode_decimal,
    list_field,
    mapping_field,
    str_field,
)

from .config import DEFAULT_PRICE_HISTORY_LIMIT, MarketConfig, make_rng
from .wallet import TXN_MARKET_BUY, TXN_MARKET_SELL, Amount, WalletLedger, as_money

MIN_PRICE = Decimal("0.2")
MIN_DAILY_SHIFT = -0.08
MAX_DAILY_SHIFT = 0.12
MAX_SUPPLY = Decimal(1_000_000_000)

_PRICE_QUANTUM = Decimal("0.000001")


@dataclass(frozen=True)
class Instrument:
    id: str
    name: str
    symbol: str
    icon: str
    quantity: Decimal
    current_price: Decimal
    average_cost: Decimal
    max_supply: Decimal = MAX_SUPPLY

    @property
    def market_value(self) -> Decimal:
        """Display-only capitalisation; never used in trade arithmetic."""
        return self.current_price * self.max_supply

    @property
    def holding_value(self) -> Decimal:
        return self.current_price * self.quantity

    @property
    def unrealized_gain(self) -> Decimal:
        return (self.current_price - self.average_cost) * self.quantity

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "symbol": self.symbol,
            "icon": self.icon,
            "quantity": encode_decimal(self.quantity),
            "current_price": encode_decimal(self.current_price),
            "average_cost": encode_decimal(self.average_cost),
            "max_supply": encode_decimal(self.max_supply),
        }


@dataclass(frozen=True)
class PricePoint:
    timestamp: dt.datetime
    price: Decimal

    def to_dict(self) -> dict[str, Any]:
        return {
            "timestamp": encode_datetime(self.timestamp),
            "price": encode_decimal(self.price),
        }


DEFAULT_INSTRUMENTS: tuple[tuple[str, str, str, Decimal], ...] = (
    ("LEAF", "Focus Leaf", "leaf.fill", Decimal("1.0")),
    ("ROOT", "Deep Root", "tree.fill", Decimal("1.5")),
    ("BARK", "Serenity Bark", "sparkles", Decimal("0.75")),
)
SYMBOLS: tuple[str, ...] = tuple(symbol for symbol, _, _, _ in DEFAULT_INSTRUMENTS)


def default_instruments() -> list[Instrument]:
    return [
        Instrument(
            id=str(uuid.uuid4()),
            name=name,
            symbol=symbol,
            icon=icon,
            quantity=Decimal(0),
            current_price=price,
            average_cost=price,
        )
        for symbol, name, icon, price in DEFAULT_INSTRUMENTS
    ]


def _instrument_from_dict(raw: Mapping[str, Any]) -> Optional[Instrument]:
    symbol = str_field(raw, "symbol", "")
    defaults = {entry[0]: entry for entry in DEFAULT_INSTRUMENTS}.get(symbol)
    if defaults is None:
        return None
    _, name, icon, price = defaults
    zero = Decimal(0)
    current_price = decimal_field(raw, "current_price", price)
    if current_price <= 0:
        current_price = price
    return Instrument(
        id=str_field(raw, "id", str(uuid.uuid4())),
        name=str_field(raw, "name", name),
        symbol=symbol,
        icon=str_field(raw, "icon", icon),
        quantity=decimal_field(raw, "quantity", zero, minimum=zero),
        current_price=current_price,
        average_cost=decimal_field(raw, "average_cost", current_price, minimum=zero),
        max_supply=MAX_SUPPLY,
    )


@dataclass(frozen=True)
class MarketSnapshot:
    instruments: tuple[Instrument, ...] = ()
    price_history: Mapping[str, tuple[PricePoint, ...]] = field(default_factory=dict)
    last_refresh: Optional[dt.datetime] = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "instruments": [instrument.to_dict() for instrument in self.instruments],
            "price_history": {
                symbol: [point.to_dict() for point in points]
                for symbol, points in self.price_history.items()
            },
            "last_refresh": encode_datetime(self.last_refresh),
        }

    @classmethod
    def from_dict(cls, raw: Mapping[str, Any]) -> "MarketSnapshot":
        instruments = []
        seen: set[str] = set()
        for entry in list_field(raw, "instruments"):
            if not isinstance(entry, Mapping):
                continue
            instrument = _instrument_from_dict(entry)
            if instrument is not None and instrument.symbol not in seen:
                seen.add(instrument.symbol)
                instruments.append(instrument)

        history: dict[str, tuple[PricePoint, ...]] = {}
        for symbol, points in mapping_field(raw, "price_history").items():
            if symbol not in SYMBOLS or not isinstance(points, list):
                continue
            decoded = []
            for point in points:
                if not isinstance(point, Mapping):
                    continue
                timestamp = datetime_field(point, "timestamp", None)
                price = decimal_field(point, "price", Decimal(0))
                if timestamp is not None and price > 0:
                    decoded.append(PricePoint(timestamp=timestamp, price=price))
            history[symbol] = tuple(decoded)

        return cls(
            instruments=tuple(instruments),
            price_history=history,
            last_refresh=datetime_field(raw, "last_refresh", None),
        )


class MarketService:
    """Daily random-walk prices plus buy/sell execution against a wallet.

    ``average_cost`` is recomputed as a weighted mean on buy only; selling
    leaves it untouched.
    """

    def __init__(
        self,
        *,
        config: Optional[MarketConfig] = None,
        snapshot: Optional[MarketSnapshot] = None,
        rng: Optional[np.random.Generator] = None,
        now_fn: Optional[NowFn] = None,
        logger: Optional[logging.Logger] = None,
    ):
        self._config = config or MarketConfig()
        self._history_limit = self._config.history_limit or DEFAULT_PRICE_HISTORY_LIMIT
        self._rng = rng if rng is not None else make_rng(self._config.seed)
        self._now_fn = now_fn or system_now
        self._logger = logger or logging.getLogger("market")
        self._lock = threading.Lock()
        self._instruments: dict[str, Instrument] = {}
        self._history: dict[str, list[PricePoint]] = {}
        self._last_refresh: Optional[dt.datetime] = None
        with self._lock:
            self._restore_locked(snapshot or MarketSnapshot())

    @property
    def last_refresh(self) -> Optional[dt.datetime]:
        with self._lock:
            return self._last_refresh

    def instrument(self, symbol: str) -> Optional[Instrument]:
        with self._lock:
            return self._instruments.get(symbol)

    def instruments(self) -> list[Instrument]:
        with self._lock:
            return list(self._instruments.values())

    def price_history(self, symbol: str) -> tuple[PricePoint, ...]:
        with self._lock:
            return tuple(self._history.get(symbol, ()))

    def portfolio_value(self) -> Decimal:
        with self._lock:
            return sum(
                (instrument.holding_value for instrument in self._instruments.values()),
                Decimal(0),
            )

    def refresh_prices(self, force: bool = False) -> bool:
        """Advance every price once per calendar day, or immediately when ``force``."""
        with self._lock:
            now = self._now_fn()
            if (
                not force
                and self._last_refresh is not None
                and self._last_refresh.date() == now.date()
            ):
                return False

            for symbol, instrument in list(self._instruments.items()):
                shift = float(self._rng.uniform(MIN_DAILY_SHIFT, MAX_DAILY_SHIFT))
                moved = instrument.current_price * (Decimal(1) + Decimal(repr(shift)))
                price = max(MIN_PRICE, moved.quantize(_PRICE_QUANTUM, rounding=ROUND_HALF_EVEN))
                self._instruments[symbol] = replace(instrument, current_price=price)
                self._append_price_locked(symbol, PricePoint(timestamp=now, price=price))
            self._last_refresh = now
            prices = {symbol: str(item.current_price) for symbol, item in self._instruments.items()}
        self._logger.info("Market prices refreshed: %s", prices)
        return True

    def buy(self, symbol: str, amount: Amount, wallet: WalletLedger) -> Optional[Decimal]:
        """Spend ``amount`` of currency on ``symbol``; returns the amount spent or ``None``."""
        value = as_money(amount)
        if value is None or value <= 0:
            return None
        with self._lock:
            instrument = self._instruments.get(symbol)
            if instrument is None:
                self._logger.info("Buy rejected: unknown symbol=%s", symbol)
                return None
            if not wallet.record_market_trade(-value, TXN_MARKET_BUY, (symbol,)):
                self._logger.info("Buy rejected: insufficient funds amount=%s", value)
                return None

            bought = value / instrument.current_price
            quantity = instrument.quantity + bought
            total_cost = instrument.average_cost * instrument.quantity + value
            self._instruments[symbol] = replace(
                instrument,
                quantity=quantity,
                average_cost=total_cost / quantity,
            )
        self._logger.info("Bought %s: amount=%s quantity=%s", symbol, value, bought)
        return value

    def sell(self, symbol: str, quantity: Amount, wallet: WalletLedger) -> bool:
        value = as_money(quantity)
        if value is None or value <= 0:
            return False
        with self._lock:
            instrument = self._instruments.get(symbol)
            if instrument is None or instrument.quantity < value:
                self._logger.info("Sell rejected: symbol=%s quantity=%s", symbol, value)
                return False
            proceeds = value * instrument.current_price
            if not wallet.record_market_trade(proceeds, TXN_MARKET_SELL, (symbol,)):
                return False
            self._instruments[symbol] = replace(instrument, quantity=instrument.quantity - value)
        self._logger.info("Sold %s: quantity=%s proceeds=%s", symbol, value, proceeds)
        return True

    def to_snapshot(self) -> MarketSnapshot:
        with self._lock:
            return MarketSnapshot(
                instruments=tuple(self._instruments.values()),
                price_history={
                    symbol: tuple(points) for symbol, points in self._history.items()
                },
                last_refresh=self._last_refresh,
            )

    def restore(self, snapshot: MarketSnapshot) -> None:
        with self._lock:
            self._restore_locked(snapshot)

    def _restore_locked(self, snapshot: MarketSnapshot) -> None:
        restored = {
            instrument.symbol: instrument
            for instrument in snapshot.instruments
            if instrument.symbol in SYMBOLS
        }
        self._instruments = {}
        for instrument in default_instruments():
            self._instruments[instrument.symbol] = restored.get(instrument.symbol, instrument)

        self._history = {
            symbol: list(snapshot.price_history.get(symbol, ()))[-self._history_limit:]
            for symbol in self._instruments
        }
        self._last_refresh = snapshot.last_refresh

        now = self._now_fn()
        for symbol, instrument in self._instruments.items():
            if not self._history[symbol]:
                self._history[symbol] = [
                    PricePoint(timestamp=now, price=instrument.current_price)
                ]

    def _append_price_locked(self, symbol: str, point: PricePoint) -> None:
        points = self._history.setdefault(symbol, [])
        points.append(point)
        overflow = len(points) - self._history_limit
        if overflow > 0:
            del points[:overflow]
