import datetime as dt
import threading
import unittest
from decimal import Decimal

from economy.bank import BankService, BankSnapshot
from economy.market import MarketService
from economy.room import LAKE_THEME_ID, RoomShop
from economy.wallet import WalletLedger, WalletSnapshot
from pomodoro.categories import CategoryRegistry
from pomodoro.config import PomodoroConfig
from pomodoro.service import PomodoroTimer
from storage.errors import StorageWriteError
from storage.persistence import (
    BANK_KEY,
    CATEGORIES_KEY,
    TIMER_KEY,
    WALLET_KEY,
    PersistenceController,
)
from storage.stores import MemoryBlobStore

NOW = dt.datetime(2026, 3, 2, 9, 0, tzinfo=dt.timezone.utc)


class _ManualTickScheduler:
    def __init__(self):
        self.generation = None
        self._callback = None

    @property
    def active(self) -> bool:
        return self._callback is not None

    def start(self, generation: int, callback) -> None:
        self.generation = generation
        self._callback = callback

    def cancel(self) -> None:
        self.generation = None
        self._callback = None

    def advance(self, seconds: int = 1) -> None:
        for _ in range(seconds):
            if self._callback is None:
                return
            self._callback(self.generation)


class FixedRng:
    def uniform(self, low: float, high: float) -> float:
        return (low + high) / 2


class FailingStore(MemoryBlobStore):
    def save(self, key: str, blob: bytes) -> None:
        raise StorageWriteError(f"disk full while writing {key}")


class PersistenceRoundTripTests(unittest.TestCase):
    def setUp(self) -> None:
        self.store = MemoryBlobStore()
        self.persistence = PersistenceController(self.store)

    def test_missing_keys_load_as_none(self) -> None:
        self.assertIsNone(self.persistence.load_timer())
        self.assertIsNone(self.persistence.load_wallet())
        self.assertIsNone(self.persistence.load_market())
        self.assertIsNone(self.persistence.load_bank())
        self.assertIsNone(self.persistence.load_room())
        self.assertIsNone(self.persistence.load_categories())

    def test_every_component_round_trips(self) -> None:
        scheduler = _ManualTickScheduler()
        timer = PomodoroTimer(
            config=PomodoroConfig(focus_duration_seconds=60),
            scheduler=scheduler,
            now_fn=lambda: NOW,
        )
        timer.start()
        scheduler.advance(60)
        wallet = WalletLedger(
            snapshot=WalletSnapshot(balance=Decimal(800)), now_fn=lambda: NOW
        )
        wallet.stake(100)
        market = MarketService(rng=FixedRng(), now_fn=lambda: NOW)
        market.buy("LEAF", 50, wallet)
        bank = BankService(rng=FixedRng(), now_fn=lambda: NOW)
        room = RoomShop()
        room.switch_theme(LAKE_THEME_ID, wallet)
        categories = CategoryRegistry()
        categories.add("Chess", color="red")

        self.assertTrue(
            self.persistence.save_all(
                timer=timer,
                wallet=wallet,
                market=market,
                bank=bank,
                room=room,
                categories=categories,
            )
        )

        self.assertEqual(timer.to_snapshot(), self.persistence.load_timer())
        self.assertEqual(wallet.to_snapshot(), self.persistence.load_wallet())
        self.assertEqual(market.to_snapshot(), self.persistence.load_market())
        self.assertEqual(bank.to_snapshot(), self.persistence.load_bank())
        self.assertEqual(room.to_snapshot(), self.persistence.load_room())
        self.assertEqual(categories.custom(), self.persistence.load_categories().custom())

    def test_corrupt_blob_is_logged_and_ignored(self) -> None:
        self.store.save(WALLET_KEY, b"{broken")
        self.store.save(TIMER_KEY, b'"just a string"')
        self.store.save(CATEGORIES_KEY, b"\xff")

        with self.assertLogs("storage", level="WARNING") as logs:
            self.assertIsNone(self.persistence.load_wallet())
            self.assertIsNone(self.persistence.load_timer())
            self.assertIsNone(self.persistence.load_categories())

        self.assertEqual(3, len(logs.records))

    def test_partially_valid_blob_keeps_good_fields(self) -> None:
        self.store.save(BANK_KEY, b'{"annual_interest_rate":"0.07","last_rate_update":12}')

        snapshot = self.persistence.load_bank()

        self.assertIsInstance(snapshot, BankSnapshot)
        self.assertEqual(Decimal("0.07"), snapshot.annual_interest_rate)
        self.assertIsNone(snapshot.last_interest_applied)


class PersistenceFailureTests(unittest.TestCase):
    def test_save_failures_are_reported(self) -> None:
        persistence = PersistenceController(FailingStore())
        wallet = WalletLedger(now_fn=lambda: NOW)

        with self.assertLogs("storage", level="ERROR"):
            self.assertFalse(persistence.save_wallet(wallet))
            self.assertFalse(persistence.save_all(wallet=wallet, room=RoomShop()))


class _VersionedWallet:
    """Each snapshot carries a higher balance; the first one lets a concurrent save race it."""

    def __init__(self):
        self.version = 0
        self.during_first_snapshot = None

    def to_snapshot(self) -> WalletSnapshot:
        self.version += 1
        snapshot = WalletSnapshot(balance=Decimal(self.version))
        if self.version == 1 and self.during_first_snapshot is not None:
            self.during_first_snapshot()
        return snapshot


class ConcurrentSaveTests(unittest.TestCase):
    def test_newer_snapshot_is_never_overwritten_by_older_one(self) -> None:
        store = MemoryBlobStore()
        persistence = PersistenceController(store)
        wallet = _VersionedWallet()
        competing = threading.Thread(target=persistence.save_wallet, args=(wallet,))

        def race() -> None:
            competing.start()
            competing.join(0.1)

        wallet.during_first_snapshot = race
        self.assertTrue(persistence.save_wallet(wallet))
        competing.join(2.0)

        self.assertFalse(competing.is_alive())
        self.assertEqual(Decimal(2), persistence.load_wallet().balance)


if __name__ == "__main__":
    unittest.main()
