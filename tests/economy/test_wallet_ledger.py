import datetime as dt
import unittest
from decimal import Decimal

from economy.wallet import (
    TRANSACTION_LIMIT,
    Transaction,
    WalletLedger,
    WalletSnapshot,
    as_money,
    render_description,
)
from pomodoro.rewards import FocusReward

NOW = dt.datetime(2026, 3, 2, 9, 0, tzinfo=dt.timezone.utc)


def _wallet(balance: str = "0", staked: str = "0") -> WalletLedger:
    return WalletLedger(
        snapshot=WalletSnapshot(balance=Decimal(balance), staked_balance=Decimal(staked)),
        now_fn=lambda: NOW,
    )


class WalletMutationTests(unittest.TestCase):
    def test_earn_credits_and_logs_at_head(self) -> None:
        wallet = _wallet()

        self.assertTrue(wallet.earn(Decimal("12.5")))
        self.assertTrue(wallet.earn(3))

        self.assertEqual(Decimal("15.5"), wallet.balance)
        head = wallet.transactions[0]
        self.assertEqual(Decimal(3), head.amount)
        self.assertEqual("earned", head.kind)
        self.assertEqual("TXN_REWARD_POMODORO", head.reason)
        self.assertEqual("Pomodoro reward", head.description)
        self.assertEqual(NOW, head.timestamp)

    def test_non_positive_or_invalid_amounts_are_rejected(self) -> None:
        wallet = _wallet("10", "10")

        for amount in (0, -1, "abc", float("nan"), True):
            self.assertFalse(wallet.earn(amount))
            self.assertFalse(wallet.spend(amount, "TXN_THEME_UNLOCK"))
            self.assertFalse(wallet.stake(amount))
            self.assertFalse(wallet.unstake(amount))
        self.assertEqual((), wallet.transactions)
        self.assertEqual(Decimal(10), wallet.balance)

    def test_spend_rejects_overdraft(self) -> None:
        wallet = _wallet("100")

        self.assertFalse(wallet.spend(Decimal("100.01"), "TXN_THEME_UNLOCK", ("Lake House",)))
        self.assertTrue(wallet.spend(100, "TXN_THEME_UNLOCK", ("Lake House",)))

        self.assertEqual(Decimal(0), wallet.balance)
        self.assertEqual(1, len(wallet.transactions))
        self.assertEqual(Decimal(-100), wallet.transactions[0].amount)
        self.assertEqual("Theme unlocked: Lake House", wallet.transactions[0].description)

    def test_stake_and_unstake_move_between_balances(self) -> None:
        wallet = _wallet("100")

        self.assertTrue(wallet.stake(40))
        self.assertFalse(wallet.unstake(41))
        self.assertTrue(wallet.unstake(15))

        self.assertEqual(Decimal(75), wallet.balance)
        self.assertEqual(Decimal(25), wallet.staked_balance)
        self.assertEqual(Decimal(100), wallet.total_balance)
        self.assertEqual(
            [Decimal(15), Decimal(-40)],
            [entry.amount for entry in wallet.transactions],
        )
        self.assertEqual("Withdrawn from savings", wallet.transactions[0].description)

    def test_stake_beyond_balance_is_rejected(self) -> None:
        wallet = _wallet("10")

        self.assertFalse(wallet.stake(11))
        self.assertEqual(Decimal(0), wallet.staked_balance)

    def test_interest_grows_staked_balance_only(self) -> None:
        wallet = _wallet("5", "1000")

        self.assertTrue(wallet.deposit_interest(Decimal("0.2")))

        self.assertEqual(Decimal(5), wallet.balance)
        self.assertEqual(Decimal("1000.2"), wallet.staked_balance)
        self.assertEqual(Decimal("0.2"), wallet.accrued_interest)
        self.assertEqual("TXN_INTEREST_GAIN", wallet.transactions[0].reason)
        wallet.reset_accrued_interest()
        self.assertEqual(Decimal(0), wallet.accrued_interest)

    def test_focus_reward_credits_coins_and_boost(self) -> None:
        wallet = _wallet()

        wallet.apply_focus_reward(FocusReward(Decimal(25), Decimal("0.02")))
        wallet.apply_focus_reward(FocusReward(Decimal("28.75"), Decimal("0.04")))

        self.assertEqual(Decimal("53.75"), wallet.balance)
        self.assertEqual(Decimal("0.06"), wallet.passive_income_boost)

    def test_market_trade_refuses_overdraft(self) -> None:
        wallet = _wallet("50")

        self.assertFalse(wallet.record_market_trade(Decimal(-60), "TXN_MARKET_BUY", ("LEAF",)))
        self.assertFalse(wallet.record_market_trade(0, "TXN_MARKET_BUY"))
        self.assertTrue(wallet.record_market_trade(Decimal(-50), "TXN_MARKET_BUY", ("LEAF",)))
        self.assertTrue(wallet.record_market_trade(Decimal(12), "TXN_MARKET_SELL", ("LEAF",)))

        self.assertEqual(Decimal(12), wallet.balance)
        self.assertEqual("Sold LEAF", wallet.transactions[0].description)
        self.assertEqual("market", wallet.transactions[1].kind)

    def test_log_is_capped(self) -> None:
        wallet = _wallet()

        for _ in range(TRANSACTION_LIMIT + 20):
            wallet.earn(1)

        self.assertEqual(TRANSACTION_LIMIT, len(wallet.transactions))
        self.assertEqual(Decimal(TRANSACTION_LIMIT + 20), wallet.balance)

    def test_balance_matches_transaction_sum(self) -> None:
        wallet = _wallet()
        wallet.earn(100)
        wallet.stake(60)
        wallet.deposit_interest(Decimal("0.5"))
        wallet.unstake(10)
        wallet.spend(20, "TXN_THEME_UNLOCK", ("Lake House",))
        wallet.record_market_trade(Decimal(-30), "TXN_MARKET_BUY", ("ROOT",))

        non_interest = sum(
            entry.amount
            for entry in wallet.transactions
            if entry.reason != "TXN_INTEREST_GAIN"
        )
        staking = sum(
            entry.amount
            for entry in wallet.transactions
            if entry.reason in ("TXN_STAKE_DEPOSIT", "TXN_STAKE_WITHDRAW")
        )
        self.assertEqual(wallet.balance, non_interest)
        self.assertEqual(wallet.staked_balance, -staking + Decimal("0.5"))


class WalletSnapshotTests(unittest.TestCase):
    def test_round_trip_through_dict(self) -> None:
        wallet = _wallet("100")
        wallet.stake(30)
        wallet.spend(5, "TXN_THEME_UNLOCK", ("Lake House",))
        snapshot = wallet.to_snapshot()

        decoded = WalletSnapshot.from_dict(snapshot.to_dict())

        self.assertEqual(snapshot, decoded)
        restored = WalletLedger(snapshot=decoded, now_fn=lambda: NOW)
        self.assertEqual(snapshot, restored.to_snapshot())

    def test_negative_balances_clamp_and_bad_entries_drop(self) -> None:
        snapshot = WalletSnapshot.from_dict(
            {
                "balance": "-5",
                "staked_balance": "abc",
                "transactions": [
                    {"amount": "1", "kind": "earned", "reason": "TXN_REWARD_POMODORO"},
                    {"timestamp": NOW.isoformat(), "amount": "2", "kind": "gift", "reason": "x"},
                    "junk",
                ],
            }
        )

        self.assertEqual(Decimal(0), snapshot.balance)
        self.assertEqual(Decimal(0), snapshot.staked_balance)
        self.assertEqual((), snapshot.transactions)

    def test_legacy_entries_are_normalized(self) -> None:
        transaction = Transaction.from_dict(
            {
                "date": "2025-01-02T10:00:00+00:00",
                "amount": 50,
                "type": "market",
                "description": "Faize yatırıldı",
            }
        )

        self.assertIsNotNone(transaction)
        self.assertEqual("TXN_STAKE_DEPOSIT", transaction.reason)
        self.assertEqual("Deposited to savings", transaction.description)

    def test_free_text_description_is_kept(self) -> None:
        transaction = Transaction.from_dict(
            {
                "timestamp": NOW.isoformat(),
                "amount": "-3",
                "kind": "spent",
                "description": "Coffee",
            }
        )

        self.assertEqual("Coffee", transaction.reason)
        self.assertEqual("Coffee", transaction.description)


class MoneyHelperTests(unittest.TestCase):
    def test_as_money(self) -> None:
        self.assertEqual(Decimal("0.1"), as_money(0.1))
        self.assertEqual(Decimal("7"), as_money("7"))
        self.assertIsNone(as_money("seven"))
        self.assertIsNone(as_money(Decimal("Infinity")))
        self.assertIsNone(as_money(False))

    def test_render_description_without_args(self) -> None:
        self.assertEqual("Bought", render_description("TXN_MARKET_BUY"))
        self.assertEqual("Theme unlocked", render_description("TXN_THEME_UNLOCK"))
        self.assertEqual("custom", render_description("custom"))


if __name__ == "__main__":
    unittest.main()
