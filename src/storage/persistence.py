"""Snapshot persistence: one JSON blob per component under a fixed key."""

from __future__ import annotations

import json
import logging
import threading
from typing import Any, Callable, Optional, TypeVar

from economy.bank import BankService, BankSnapshot
from economy.market import MarketService, MarketSnapshot
from economy.room import RoomShop, RoomSnapshot
from economy.wallet import WalletLedger, WalletSnapshot
from pomodoro.categories import CategoryRegistry
from pomodoro.service import PomodoroSnapshot, PomodoroTimer

from .errors import StorageError, StorageReadError
from .stores import BlobStore

TIMER_KEY = "timer_snapshot"
WALLET_KEY = "wallet_snapshot"
MARKET_KEY = "market_snapshot"
BANK_KEY = "bank_snapshot"
ROOM_KEY = "room_snapshot"
CATEGORIES_KEY = "custom_categories"

T = TypeVar("T")


def encode_blob(payload: Any) -> bytes:
    return json.dumps(
        payload,
        ensure_ascii=False,
        sort_keys=True,
        separators=(",", ":"),
    ).encode("utf-8")


def decode_blob(blob: bytes, *, expect_object: bool = True) -> Any:
    """Decode a stored blob; raises ``StorageReadError`` on malformed content."""
    try:
        payload = json.loads(blob.decode("utf-8"))
    except (UnicodeDecodeError, json.JSONDecodeError) as error:
        raise StorageReadError(f"Malformed snapshot blob: {error}") from error
    if expect_object and not isinstance(payload, dict):
        raise StorageReadError(
            f"Snapshot blob must be a JSON object, got: {type(payload).__name__}"
        )
    return payload


class PersistenceController:
    """Save and load every component snapshot through a ``BlobStore``.

    Loading never raises: a missing key yields ``None`` and a corrupt blob is
    logged and also yields ``None`` so the component starts from defaults.
    Save failures are logged and reported as ``False``.
    """

    def __init__(self, store: BlobStore, *, logger: Optional[logging.Logger] = None):
        self._store = store
        self._logger = logger or logging.getLogger("storage")
        # Held from snapshot to write so an older snapshot never lands after a newer one.
        self._save_lock = threading.Lock()

    # Timer

    def save_timer(self, timer: PomodoroTimer) -> bool:
        return self._save(TIMER_KEY, lambda: timer.to_snapshot().to_dict())

    def load_timer(self) -> Optional[PomodoroSnapshot]:
        return self._load(TIMER_KEY, PomodoroSnapshot.from_dict)

    # Wallet

    def save_wallet(self, wallet: WalletLedger) -> bool:
        return self._save(WALLET_KEY, lambda: wallet.to_snapshot().to_dict())

    def load_wallet(self) -> Optional[WalletSnapshot]:
        return self._load(WALLET_KEY, WalletSnapshot.from_dict)

    # Market

    def save_market(self, market: MarketService) -> bool:
        return self._save(MARKET_KEY, lambda: market.to_snapshot().to_dict())

    def load_market(self) -> Optional[MarketSnapshot]:
        return self._load(MARKET_KEY, MarketSnapshot.from_dict)

    # Bank

    def save_bank(self, bank: BankService) -> bool:
        return self._save(BANK_KEY, lambda: bank.to_snapshot().to_dict())

    def load_bank(self) -> Optional[BankSnapshot]:
        return self._load(BANK_KEY, BankSnapshot.from_dict)

    # Room

    def save_room(self, room: RoomShop) -> bool:
        return self._save(ROOM_KEY, lambda: room.to_snapshot().to_dict())

    def load_room(self) -> Optional[RoomSnapshot]:
        return self._load(ROOM_KEY, RoomSnapshot.from_dict)

    # Categories

    def save_categories(self, categories: CategoryRegistry) -> bool:
        return self._save(CATEGORIES_KEY, categories.to_snapshot)

    def load_categories(self) -> Optional[CategoryRegistry]:
        blob = self._read(CATEGORIES_KEY)
        if blob is None:
            return None
        try:
            payload = decode_blob(blob, expect_object=False)
        except StorageReadError as error:
            self._logger.warning("Failed to decode %s: %s", CATEGORIES_KEY, error)
            return None
        return CategoryRegistry.from_snapshot(payload)

    def save_all(
        self,
        *,
        timer: Optional[PomodoroTimer] = None,
        wallet: Optional[WalletLedger] = None,
        market: Optional[MarketService] = None,
        bank: Optional[BankService] = None,
        room: Optional[RoomShop] = None,
        categories: Optional[CategoryRegistry] = None,
    ) -> bool:
        results = []
        if timer is not None:
            results.append(self.save_timer(timer))
        if wallet is not None:
            results.append(self.save_wallet(wallet))
        if market is not None:
            results.append(self.save_market(market))
        if bank is not None:
            results.append(self.save_bank(bank))
        if room is not None:
            results.append(self.save_room(room))
        if categories is not None:
            results.append(self.save_categories(categories))
        return all(results)

    def _save(self, key: str, payload_fn: Callable[[], Any]) -> bool:
        with self._save_lock:
            try:
                self._store.save(key, encode_blob(payload_fn()))
            except StorageError as error:
                self._logger.error("Failed to save %s: %s", key, error)
                return False
        self._logger.debug("Saved %s", key)
        return True

    def _read(self, key: str) -> Optional[bytes]:
        try:
            return self._store.load(key)
        except StorageError as error:
            self._logger.warning("Failed to read %s: %s", key, error)
            return None

    def _load(self, key: str, decode: Callable[[dict[str, Any]], T]) -> Optional[T]:
        blob = self._read(key)
        if blob is None:
            return None
        try:
            return decode(decode_blob(blob))
        except StorageReadError as error:
            self._logger.warning("Failed to decode %s: %s", key, error)
            return None
