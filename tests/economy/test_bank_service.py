import datetime as dt
import unittest
from decimal import Decimal

from economy.bank import BankService, BankSnapshot, clamp_rate
from economy.config import BankConfig, EconomyConfigurationError
from economy.wallet import WalletLedger, WalletSnapshot


class FakeClock:
    def __init__(self, start: dt.datetime):
        self.now = start

    def __call__(self) -> dt.datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now = self.now + dt.timedelta(**kwargs)


class FixedRng:
    def __init__(self, fraction: float):
        self.fraction = fraction
        self.calls = 0

    def uniform(self, low: float, high: float) -> float:
        self.calls += 1
        return low + (high - low) * self.fraction


START = dt.datetime(2026, 3, 2, 9, 0, tzinfo=dt.timezone.utc)


def _bank(rate: str = "0.073", clock=None, rng=None):
    clock = clock or FakeClock(START)
    bank = BankService(
        snapshot=BankSnapshot(
            annual_interest_rate=Decimal(rate),
            last_rate_update=clock.now,
            last_interest_applied=clock.now,
        ),
        rng=rng or FixedRng(0.5),
        now_fn=clock,
    )
    return bank, clock


def _wallet(clock, staked: str = "1000") -> WalletLedger:
    return WalletLedger(
        snapshot=WalletSnapshot(staked_balance=Decimal(staked)),
        now_fn=clock,
    )


class DailyInterestTests(unittest.TestCase):
    def test_interest_applies_once_per_day(self) -> None:
        bank, clock = _bank()
        wallet = _wallet(clock)

        clock.advance(hours=23)
        self.assertIsNone(bank.apply_daily_interest_if_needed(wallet))

        clock.advance(hours=1)
        interest = bank.apply_daily_interest_if_needed(wallet)
        self.assertEqual(Decimal("0.2"), interest)
        self.assertEqual(Decimal("1000.2"), wallet.staked_balance)
        self.assertEqual(clock.now, bank.last_interest_applied)

        clock.advance(minutes=30)
        self.assertIsNone(bank.apply_daily_interest_if_needed(wallet))
        self.assertEqual(1, len(wallet.transactions))

    def test_interest_compounds_on_staked_balance(self) -> None:
        bank, clock = _bank()
        wallet = _wallet(clock)

        clock.advance(days=1)
        bank.apply_daily_interest_if_needed(wallet)
        clock.advance(days=1)
        second = bank.apply_daily_interest_if_needed(wallet)

        self.assertEqual(Decimal("0.20004"), second)
        self.assertEqual(Decimal("0.40004"), wallet.accrued_interest)

    def test_zero_stake_deposits_nothing(self) -> None:
        bank, clock = _bank()
        wallet = _wallet(clock, staked="0")
        before = bank.last_interest_applied

        clock.advance(days=3)

        self.assertIsNone(bank.apply_daily_interest_if_needed(wallet))
        self.assertEqual((), wallet.transactions)
        self.assertEqual(before, bank.last_interest_applied)

    def test_force_apply_ignores_day_boundary(self) -> None:
        bank, clock = _bank()
        wallet = _wallet(clock)

        self.assertEqual(Decimal("0.2"), bank.force_apply_interest(wallet))
        self.assertEqual(Decimal("0.20004"), bank.projected_daily_interest(wallet))


class WeeklyRateTests(unittest.TestCase):
    def test_rate_rerolls_only_after_seven_days(self) -> None:
        rng = FixedRng(0.0)
        bank, clock = _bank(rate="0.06", rng=rng)

        clock.advance(days=6, hours=23)
        self.assertFalse(bank.update_weekly_rate_if_needed())
        self.assertEqual(Decimal("0.06"), bank.annual_interest_rate)

        clock.advance(hours=1)
        self.assertTrue(bank.update_weekly_rate_if_needed())
        self.assertFalse(bank.update_weekly_rate_if_needed())
        self.assertEqual(Decimal("0.05"), bank.annual_interest_rate)
        self.assertEqual(clock.now, bank.last_rate_update)
        self.assertEqual(1, rng.calls)

    def test_fresh_bank_draws_rate_in_range(self) -> None:
        clock = FakeClock(START)
        bank = BankService(rng=FixedRng(1.0), now_fn=clock)

        self.assertEqual(Decimal("0.08"), bank.annual_interest_rate)
        self.assertEqual(START, bank.last_rate_update)

    def test_seeded_numpy_generator_stays_in_range(self) -> None:
        clock = FakeClock(START)
        bank = BankService(config=BankConfig(seed=42), now_fn=clock)

        for _ in range(20):
            clock.advance(days=7)
            bank.update_weekly_rate_if_needed()
            self.assertGreaterEqual(bank.annual_interest_rate, Decimal("0.05"))
            self.assertLessEqual(bank.annual_interest_rate, Decimal("0.08"))


class BankSnapshotTests(unittest.TestCase):
    def test_round_trip(self) -> None:
        bank, _ = _bank()
        snapshot = bank.to_snapshot()

        self.assertEqual(snapshot, BankSnapshot.from_dict(snapshot.to_dict()))

    def test_out_of_range_rate_is_clamped_on_restore(self) -> None:
        bank, _ = _bank(rate="0.5")

        self.assertEqual(Decimal("0.08"), bank.annual_interest_rate)
        self.assertEqual(Decimal("0.05"), clamp_rate(Decimal("-1")))

    def test_missing_timestamps_default_to_now(self) -> None:
        clock = FakeClock(START)
        bank = BankService(
            snapshot=BankSnapshot.from_dict({"annual_interest_rate": "0.07"}),
            rng=FixedRng(0.5),
            now_fn=clock,
        )

        self.assertEqual(START, bank.last_interest_applied)
        self.assertEqual(START, bank.last_rate_update)

    def test_negative_seed_is_rejected(self) -> None:
        with self.assertRaises(EconomyConfigurationError):
            BankConfig(seed=-1)


if __name__ == "__main__":
    unittest.main()
