import datetime as dt
import unittest
from decimal import Decimal

from economy.room import (
    ASSETS,
    LAKE_THEME_ID,
    STARTER_THEME_ID,
    RoomShop,
    RoomSnapshot,
)
from economy.wallet import WalletLedger, WalletSnapshot

NOW = dt.datetime(2026, 3, 2, 9, 0, tzinfo=dt.timezone.utc)
DESK_ID = "00000000-0000-0000-0000-000000000101"
MINI_PLANT_ID = "00000000-0000-0000-0000-000000000401"


def _wallet(balance: str) -> WalletLedger:
    return WalletLedger(snapshot=WalletSnapshot(balance=Decimal(balance)), now_fn=lambda: NOW)


class RoomAssetTests(unittest.TestCase):
    def test_unlock_charges_once(self) -> None:
        shop = RoomShop()
        wallet = _wallet("400")

        self.assertTrue(shop.unlock(DESK_ID, wallet))
        self.assertTrue(shop.unlock(DESK_ID, wallet))

        self.assertEqual(Decimal(80), wallet.balance)
        self.assertEqual(1, len(wallet.transactions))
        self.assertTrue(shop.is_unlocked(DESK_ID))
        self.assertEqual([ASSETS[DESK_ID]], shop.owned_assets())

    def test_unlock_rejected_without_funds_or_unknown_asset(self) -> None:
        shop = RoomShop()
        wallet = _wallet("100")

        self.assertFalse(shop.unlock(DESK_ID, wallet))
        self.assertFalse(shop.unlock("missing", wallet))
        self.assertEqual(Decimal(100), wallet.balance)
        self.assertFalse(shop.is_unlocked(DESK_ID))

    def test_only_unlocked_assets_can_be_placed(self) -> None:
        shop = RoomShop()
        wallet = _wallet("1")

        self.assertFalse(shop.place(MINI_PLANT_ID))
        shop.unlock(MINI_PLANT_ID, wallet)
        self.assertTrue(shop.place(MINI_PLANT_ID))
        self.assertEqual((ASSETS[MINI_PLANT_ID],), shop.placed_assets)
        self.assertTrue(shop.remove(MINI_PLANT_ID))
        self.assertFalse(shop.remove(MINI_PLANT_ID))


class RoomThemeTests(unittest.TestCase):
    def test_switching_to_unowned_theme_buys_it(self) -> None:
        shop = RoomShop()
        wallet = _wallet("600")

        self.assertTrue(shop.switch_theme(LAKE_THEME_ID, wallet))

        self.assertEqual("Lake House", shop.current_theme.name)
        self.assertEqual(Decimal(100), wallet.balance)
        self.assertEqual("Theme unlocked: Lake House", wallet.transactions[0].description)

        self.assertTrue(shop.switch_theme(STARTER_THEME_ID, wallet))
        self.assertTrue(shop.switch_theme(LAKE_THEME_ID, wallet))
        self.assertEqual(Decimal(100), wallet.balance)

    def test_theme_purchase_needs_funds(self) -> None:
        shop = RoomShop()
        wallet = _wallet("499")

        self.assertFalse(shop.switch_theme(LAKE_THEME_ID, wallet))
        self.assertFalse(shop.switch_theme("unknown", wallet))
        self.assertEqual(STARTER_THEME_ID, shop.current_theme.id)
        self.assertEqual((STARTER_THEME_ID,), shop.owned_themes)


class RoomSnapshotTests(unittest.TestCase):
    def test_round_trip(self) -> None:
        shop = RoomShop()
        wallet = _wallet("2000")
        shop.unlock(DESK_ID, wallet)
        shop.unlock(MINI_PLANT_ID, wallet)
        shop.place(DESK_ID)
        shop.switch_theme(LAKE_THEME_ID, wallet)
        snapshot = shop.to_snapshot()

        restored = RoomShop(snapshot=RoomSnapshot.from_dict(snapshot.to_dict()))

        self.assertEqual(snapshot, restored.to_snapshot())

    def test_restore_repairs_inconsistent_state(self) -> None:
        snapshot = RoomSnapshot.from_dict(
            {
                "current_theme_id": LAKE_THEME_ID,
                "owned_themes": ["bogus"],
                "unlocked_assets": [DESK_ID, "bogus", 7],
                "placed_assets": [DESK_ID, MINI_PLANT_ID],
            }
        )

        restored = RoomShop(snapshot=snapshot).to_snapshot()

        self.assertEqual(STARTER_THEME_ID, restored.current_theme_id)
        self.assertEqual((STARTER_THEME_ID,), restored.owned_themes)
        self.assertEqual((DESK_ID,), restored.unlocked_assets)
        self.assertEqual((DESK_ID,), restored.placed_assets)


if __name__ == "__main__":
    unittest.main()
