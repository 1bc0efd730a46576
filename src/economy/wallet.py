"""Wallet ledger: spendable balance, staked balance and a capped transaction log."""

from __future__ import annotations

import datetime as dt
import logging
import threading
import uuid
from dataclasses import dataclass
from decimal import Decimal, InvalidOperation
from typing import Any, Mapping, Optional, Union

from pomodoro.clock import NowFn, system_now
from pomodoro.rewards import FocusReward
from shared.codec import (
    datetime_field,
    decimal_field,
    encode_datetime,
    encode_decimal,
    list_field,
    str_field,
)

TRANSACTION_LIMIT = 250

KIND_EARNED = "earned"
KIND_SPENT = "spent"
KIND_MARKET = "market"
TRANSACTION_KINDS = frozenset({KIND_EARNED, KIND_SPENT, KIND_MARKET})

TXN_REWARD_POMODORO = "TXN_REWARD_POMODORO"
TXN_INTEREST_GAIN = "TXN_INTEREST_GAIN"
TXN_STAKE_DEPOSIT = "TXN_STAKE_DEPOSIT"
TXN_STAKE_WITHDRAW = "TXN_STAKE_WITHDRAW"
TXN_THEME_UNLOCK = "TXN_THEME_UNLOCK"
TXN_MARKET_BUY = "TXN_MARKET_BUY"
TXN_MARKET_SELL = "TXN_MARKET_SELL"

DESCRIPTION_TEMPLATES = {
    TXN_REWARD_POMODORO: "Pomodoro reward",
    TXN_INTEREST_GAIN: "Interest earned",
    TXN_STAKE_DEPOSIT: "Deposited to savings",
    TXN_STAKE_WITHDRAW: "Withdrawn from savings",
    TXN_THEME_UNLOCK: "Theme unlocked: {0}",
    TXN_MARKET_BUY: "Bought {0}",
    TXN_MARKET_SELL: "Sold {0}",
}

# Descriptions written by early releases, before reasons were stored as tags.
_LEGACY_DESCRIPTIONS = {
    "Faize yatırıldı": TXN_STAKE_DEPOSIT,
    "Faiz hesabından çekildi": TXN_STAKE_WITHDRAW,
    "Faiz kazancı": TXN_INTEREST_GAIN,
    "Pomodoro ödülü": TXN_REWARD_POMODORO,
}

Amount = Union[Decimal, int, float, str]


def as_money(value: Amount) -> Optional[Decimal]:
    """Convert ``value`` to a finite Decimal, or ``None`` when it is not a number."""
    if isinstance(value, bool):
        return None
    if isinstance(value, Decimal):
        parsed = value
    else:
        try:
            parsed = Decimal(repr(value) if isinstance(value, float) else str(value))
        except InvalidOperation:
            return None
    if not parsed.is_finite():
        return None
    return parsed


def normalize_reason(reason: str) -> str:
    text = (reason or "").strip()
    return _LEGACY_DESCRIPTIONS.get(text, text)


def render_description(reason: str, args: tuple[str, ...] = ()) -> str:
    template = DESCRIPTION_TEMPLATES.get(reason)
    if template is None:
        return reason
    try:
        return template.format(*args)
    except IndexError:
        return template.replace(": {0}", "").replace(" {0}", "")


@dataclass(frozen=True)
class Transaction:
    id: str
    timestamp: dt.datetime
    amount: Decimal
    kind: str
    reason: str
    args: tuple[str, ...] = ()
    description: str = ""

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "timestamp": encode_datetime(self.timestamp),
            "amount": encode_decimal(self.amount),
            "kind": self.kind,
            "reason": self.reason,
            "args": list(self.args),
            "description": self.description,
        }

    @classmethod
    def from_dict(cls, raw: Mapping[str, Any]) -> Optional["Transaction"]:
        """Decode one entry; older blobs used ``date``, ``type`` and free-text descriptions."""
        timestamp = datetime_field(raw, "timestamp", None) or datetime_field(raw, "date", None)
        amount = decimal_field(raw, "amount", Decimal("NaN"))
        kind = str_field(raw, "kind", "") or str_field(raw, "type", "")
        if timestamp is None or not amount.is_finite() or kind not in TRANSACTION_KINDS:
            return None

        description = str_field(raw, "description", "")
        reason = normalize_reason(str_field(raw, "reason", "") or description)
        if not reason:
            return None
        args = tuple(str(arg) for arg in list_field(raw, "args"))
        if not description or reason in DESCRIPTION_TEMPLATES:
            description = render_description(reason, args)
        return cls(
            id=str_field(raw, "id", str(uuid.uuid4())),
            timestamp=timestamp,
            amount=amount,
            kind=kind,
            reason=reason,
            args=args,
            description=description,
        )


@dataclass(frozen=True)
class WalletSnapshot:
    balance: Decimal = Decimal(0)
    staked_balance: Decimal = Decimal(0)
    accrued_interest: Decimal = Decimal(0)
    passive_income_boost: Decimal = Decimal(0)
    transactions: tuple[Transaction, ...] = ()

    def to_dict(self) -> dict[str, Any]:
        return {
            "balance": encode_decimal(self.balance),
            "staked_balance": encode_decimal(self.staked_balance),
            "accrued_interest": encode_decimal(self.accrued_interest),
            "passive_income_boost": encode_decimal(self.passive_income_boost),
            "transactions": [entry.to_dict() for entry in self.transactions],
        }

    @classmethod
    def from_dict(cls, raw: Mapping[str, Any]) -> "WalletSnapshot":
        zero = Decimal(0)
        transactions = []
        for entry in list_field(raw, "transactions"):
            if isinstance(entry, Mapping):
                transaction = Transaction.from_dict(entry)
                if transaction is not None:
                    transactions.append(transaction)
        return cls(
            balance=decimal_field(raw, "balance", zero, minimum=zero),
            staked_balance=decimal_field(raw, "staked_balance", zero, minimum=zero),
            accrued_interest=decimal_field(raw, "accrued_interest", zero, minimum=zero),
            passive_income_boost=decimal_field(
                raw, "passive_income_boost", zero, minimum=zero
            ),
            transactions=tuple(transactions[:TRANSACTION_LIMIT]),
        )


class WalletLedger:
    """Balance-centric ledger.

    Every mutation of ``balance`` or ``staked_balance`` inserts exactly one
    transaction at the head of the log whose signed amount is the change to
    ``balance``; staking moves therefore record the spendable-side delta.
    Interest is the one exception: it grows only the staked balance and is
    logged as an ``earned`` entry carrying the interest amount.
    """

    def __init__(
        self,
        *,
        snapshot: Optional[WalletSnapshot] = None,
        now_fn: Optional[NowFn] = None,
        logger: Optional[logging.Logger] = None,
    ):
        self._now_fn = now_fn or system_now
        self._logger = logger or logging.getLogger("wallet")
        self._lock = threading.Lock()
        self._balance = Decimal(0)
        self._staked_balance = Decimal(0)
        self._accrued_interest = Decimal(0)
        self._passive_income_boost = Decimal(0)
        self._transactions: list[Transaction] = []
        if snapshot is not None:
            self.restore(snapshot)

    @property
    def balance(self) -> Decimal:
        with self._lock:
            return self._balance

    @property
    def available_balance(self) -> Decimal:
        return self.balance

    @property
    def staked_balance(self) -> Decimal:
        with self._lock:
            return self._staked_balance

    @property
    def accrued_interest(self) -> Decimal:
        with self._lock:
            return self._accrued_interest

    @property
    def passive_income_boost(self) -> Decimal:
        with self._lock:
            return self._passive_income_boost

    @property
    def total_balance(self) -> Decimal:
        with self._lock:
            return self._balance + self._staked_balance

    @property
    def transactions(self) -> tuple[Transaction, ...]:
        with self._lock:
            return tuple(self._transactions)

    def earn(self, amount: Amount, reason: str = TXN_REWARD_POMODORO) -> bool:
        value = _positive(amount)
        if value is None:
            self._logger.debug("Wallet earn ignored: amount=%s", amount)
            return False
        with self._lock:
            self._balance += value
            self._append_locked(value, KIND_EARNED, reason or TXN_REWARD_POMODORO)
        self._logger.info("Wallet credited: amount=%s reason=%s", value, reason)
        return True

    def spend(
        self,
        amount: Amount,
        reason: str,
        args: tuple[str, ...] = (),
    ) -> bool:
        value = _positive(amount)
        if value is None:
            return False
        with self._lock:
            if self._balance < value:
                self._logger.info(
                    "Wallet spend rejected: amount=%s balance=%s", value, self._balance
                )
                return False
            self._balance -= value
            self._append_locked(-value, KIND_SPENT, reason, tuple(str(arg) for arg in args))
        self._logger.info("Wallet debited: amount=%s reason=%s", value, reason)
        return True

    def stake(self, amount: Amount, reason: str = TXN_STAKE_DEPOSIT) -> bool:
        value = _positive(amount)
        if value is None:
            return False
        with self._lock:
            if self._balance < value:
                self._logger.info(
                    "Stake rejected: amount=%s balance=%s", value, self._balance
                )
                return False
            self._balance -= value
            self._staked_balance += value
            self._append_locked(-value, KIND_MARKET, reason or TXN_STAKE_DEPOSIT)
        self._logger.info("Staked: amount=%s", value)
        return True

    def unstake(self, amount: Amount, reason: str = TXN_STAKE_WITHDRAW) -> bool:
        value = _positive(amount)
        if value is None:
            return False
        with self._lock:
            if self._staked_balance < value:
                self._logger.info(
                    "Unstake rejected: amount=%s staked=%s", value, self._staked_balance
                )
                return False
            self._staked_balance -= value
            self._balance += value
            self._append_locked(value, KIND_MARKET, reason or TXN_STAKE_WITHDRAW)
        self._logger.info("Unstaked: amount=%s", value)
        return True

    def apply_passive_boost(self, delta: Amount) -> None:
        value = _positive(delta)
        if value is None:
            return
        with self._lock:
            self._passive_income_boost += value

    def deposit_interest(self, amount: Amount) -> bool:
        value = _positive(amount)
        if value is None:
            return False
        with self._lock:
            self._accrued_interest += value
            self._staked_balance += value
            self._append_locked(value, KIND_EARNED, TXN_INTEREST_GAIN)
        self._logger.info("Interest deposited: amount=%s", value)
        return True

    def record_market_trade(
        self,
        signed_amount: Amount,
        reason: str,
        args: tuple[str, ...] = (),
    ) -> bool:
        """Apply a market cash flow; debits larger than the balance are refused."""
        value = as_money(signed_amount)
        if value is None or value == 0:
            return False
        with self._lock:
            if value < 0 and self._balance < -value:
                return False
            self._balance += value
            self._append_locked(value, KIND_MARKET, reason, tuple(str(arg) for arg in args))
        return True

    def apply_focus_reward(self, reward: FocusReward) -> None:
        self.earn(reward.coins_reward, TXN_REWARD_POMODORO)
        self.apply_passive_boost(reward.passive_boost)

    def reset_accrued_interest(self) -> None:
        with self._lock:
            self._accrued_interest = Decimal(0)

    def to_snapshot(self) -> WalletSnapshot:
        with self._lock:
            return WalletSnapshot(
                balance=self._balance,
                staked_balance=self._staked_balance,
                accrued_interest=self._accrued_interest,
                passive_income_boost=self._passive_income_boost,
                transactions=tuple(self._transactions),
            )

    def restore(self, snapshot: WalletSnapshot) -> None:
        zero = Decimal(0)
        with self._lock:
            self._balance = max(snapshot.balance, zero)
            self._staked_balance = max(snapshot.staked_balance, zero)
            self._accrued_interest = max(snapshot.accrued_interest, zero)
            self._passive_income_boost = max(snapshot.passive_income_boost, zero)
            self._transactions = list(snapshot.transactions[:TRANSACTION_LIMIT])

    def _append_locked(
        self,
        amount: Decimal,
        kind: str,
        reason: str,
        args: tuple[str, ...] = (),
    ) -> None:
        tag = normalize_reason(reason)
        self._transactions.insert(
            0,
            Transaction(
                id=str(uuid.uuid4()),
                timestamp=self._now_fn(),
                amount=amount,
                kind=kind,
                reason=tag,
                args=args,
                description=render_description(tag, args),
            ),
        )
        del self._transactions[TRANSACTION_LIMIT:]


def _positive(amount: Amount) -> Optional[Decimal]:
    value = as_money(amount)
    if value is None or value <= 0:
        return None
    return value
