"""Room shop: purchasable decorations and themes paid for from the wallet."""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from decimal import Decimal
from typing import Any, Mapping, Optional

from shared.codec import list_field, str_field

from .wallet import TXN_THEME_UNLOCK, WalletLedger

THEME_PRICE = Decimal(500)

STARTER_THEME_ID = "10000000-0000-0000-0000-000000000001"
LAKE_THEME_ID = "10000000-0000-0000-0000-000000000002"


@dataclass(frozen=True)
class RoomAsset:
    id: str
    name_key: str
    description_key: str
    price: Decimal
    icon: str


@dataclass(frozen=True)
class RoomTheme:
    id: str
    name: str
    assets: tuple[RoomAsset, ...]


@dataclass(frozen=True)
class MarketSection:
    title_key: str
    assets: tuple[RoomAsset, ...]


def _asset(number: int, key: str, price: int, icon: str) -> RoomAsset:
    return RoomAsset(
        id=f"00000000-0000-0000-0000-{number:012d}",
        name_key=f"ROOM_ASSET_{key}",
        description_key=f"ROOM_DESC_{key}",
        price=Decimal(price),
        icon=icon,
    )


MARKET_SECTIONS: tuple[MarketSection, ...] = (
    MarketSection(
        "HOME_MARKET_SECTION_STARTER",
        (_asset(401, "MINI_PLANT", 1, "leaf.circle"),),
    ),
    MarketSection(
        "HOME_MARKET_SECTION_WORKSHOP",
        (
            _asset(101, "WOOD_DESK", 320, "table.furniture"),
            _asset(102, "FOCUS_TIMER", 140, "hourglass"),
            _asset(103, "ERGO_CHAIR", 260, "chair"),
        ),
    ),
    MarketSection(
        "HOME_MARKET_SECTION_RELAX",
        (
            _asset(201, "MEDITATION_MAT", 180, "circle.dotted"),
            _asset(202, "SILENT_PLANT", 120, "leaf"),
            _asset(203, "VINTAGE_LAMP", 150, "lightbulb"),
        ),
    ),
    MarketSection(
        "HOME_MARKET_SECTION_COLLECTION",
        (
            _asset(301, "RETRO_CONSOLE", 420, "gamecontroller"),
            _asset(302, "VINYL_PLAYER", 380, "music.note"),
            _asset(303, "MINI_LIBRARY", 260, "books.vertical"),
        ),
    ),
)

THEMES: tuple[RoomTheme, ...] = (
    RoomTheme(
        STARTER_THEME_ID,
        "Starter Room",
        (
            _asset(501, "BAMBOO_DESK", 150, "desk"),
            _asset(502, "ZEN_PLANT", 200, "leaf"),
            _asset(503, "WARM_LIGHT", 120, "lightbulb"),
        ),
    ),
    RoomTheme(
        LAKE_THEME_ID,
        "Lake House",
        (
            _asset(601, "LAKE_VIEW", 280, "sun.max"),
            _asset(602, "HAMMOCK", 350, "bed.double"),
            _asset(603, "WOOD_SHELF", 220, "books.vertical"),
        ),
    ),
)

ASSETS: dict[str, RoomAsset] = {
    asset.id: asset
    for group in [theme.assets for theme in THEMES] + [section.assets for section in MARKET_SECTIONS]
    for asset in group
}
THEMES_BY_ID: dict[str, RoomTheme] = {theme.id: theme for theme in THEMES}


@dataclass(frozen=True)
class RoomSnapshot:
    current_theme_id: str = STARTER_THEME_ID
    owned_themes: tuple[str, ...] = (STARTER_THEME_ID,)
    unlocked_assets: tuple[str, ...] = ()
    placed_assets: tuple[str, ...] = ()

    def to_dict(self) -> dict[str, Any]:
        return {
            "current_theme_id": self.current_theme_id,
            "owned_themes": list(self.owned_themes),
            "unlocked_assets": list(self.unlocked_assets),
            "placed_assets": list(self.placed_assets),
        }

    @classmethod
    def from_dict(cls, raw: Mapping[str, Any]) -> "RoomSnapshot":
        def ids(name: str) -> tuple[str, ...]:
            return tuple(value for value in list_field(raw, name) if isinstance(value, str))

        return cls(
            current_theme_id=str_field(raw, "current_theme_id", STARTER_THEME_ID),
            owned_themes=ids("owned_themes"),
            unlocked_assets=ids("unlocked_assets"),
            placed_assets=ids("placed_assets"),
        )


class RoomShop:
    def __init__(
        self,
        *,
        snapshot: Optional[RoomSnapshot] = None,
        logger: Optional[logging.Logger] = None,
    ):
        self._logger = logger or logging.getLogger("room")
        self._lock = threading.Lock()
        self._current_theme_id = STARTER_THEME_ID
        self._owned_themes: list[str] = [STARTER_THEME_ID]
        self._unlocked: set[str] = set()
        self._placed: list[str] = []
        if snapshot is not None:
            self.restore(snapshot)

    @property
    def current_theme(self) -> RoomTheme:
        with self._lock:
            return THEMES_BY_ID[self._current_theme_id]

    @property
    def owned_themes(self) -> tuple[str, ...]:
        with self._lock:
            return tuple(self._owned_themes)

    @property
    def placed_assets(self) -> tuple[RoomAsset, ...]:
        with self._lock:
            return tuple(ASSETS[asset_id] for asset_id in self._placed)

    def owned_assets(self) -> list[RoomAsset]:
        with self._lock:
            return [asset for asset_id, asset in ASSETS.items() if asset_id in self._unlocked]

    def is_unlocked(self, asset_id: str) -> bool:
        with self._lock:
            return asset_id in self._unlocked

    def unlock(self, asset_id: str, wallet: WalletLedger) -> bool:
        """Buy an asset once; unlocking an owned asset succeeds without a charge."""
        asset = ASSETS.get(asset_id)
        if asset is None:
            return False
        with self._lock:
            if asset_id in self._unlocked:
                return True
            if not wallet.spend(asset.price, asset.name_key):
                return False
            self._unlocked.add(asset_id)
        self._logger.info("Room asset unlocked: %s price=%s", asset.name_key, asset.price)
        return True

    def place(self, asset_id: str) -> bool:
        with self._lock:
            if asset_id not in self._unlocked:
                return False
            self._placed.append(asset_id)
        return True

    def remove(self, asset_id: str) -> bool:
        with self._lock:
            before = len(self._placed)
            self._placed = [placed for placed in self._placed if placed != asset_id]
            return len(self._placed) != before

    def switch_theme(self, theme_id: str, wallet: WalletLedger) -> bool:
        theme = THEMES_BY_ID.get(theme_id)
        if theme is None:
            return False
        with self._lock:
            if theme_id not in self._owned_themes:
                if not wallet.spend(THEME_PRICE, TXN_THEME_UNLOCK, (theme.name,)):
                    return False
                self._owned_themes.append(theme_id)
                self._logger.info("Room theme purchased: %s", theme.name)
            self._current_theme_id = theme_id
        return True

    def to_snapshot(self) -> RoomSnapshot:
        with self._lock:
            return RoomSnapshot(
                current_theme_id=self._current_theme_id,
                owned_themes=tuple(self._owned_themes),
                unlocked_assets=tuple(sorted(self._unlocked)),
                placed_assets=tuple(self._placed),
            )

    def restore(self, snapshot: RoomSnapshot) -> None:
        owned = [STARTER_THEME_ID]
        for theme_id in snapshot.owned_themes:
            if theme_id in THEMES_BY_ID and theme_id not in owned:
                owned.append(theme_id)
        current = snapshot.current_theme_id
        if current not in owned:
            current = STARTER_THEME_ID
        unlocked = {asset_id for asset_id in snapshot.unlocked_assets if asset_id in ASSETS}
        with self._lock:
            self._owned_themes = owned
            self._current_theme_id = current
            self._unlocked = unlocked
            self._placed = [asset_id for asset_id in snapshot.placed_assets if asset_id in unlocked]
