"""Focus categories used to tag completed sessions."""

from __future__ import annotations

import logging
import threading
import uuid
from dataclasses import dataclass
from typing import Any, Mapping, Optional

from shared.codec import str_field

CATEGORY_UNTAGGED = "untagged"

PREDEFINED_CATEGORY_IDS: tuple[str, ...] = (
    CATEGORY_UNTAGGED,
    "coding",
    "algorithms",
    "physics",
    "business",
    "misc",
)

CATEGORY_COLORS: frozenset[str] = frozenset(
    {
        "blue",
        "purple",
        "green",
        "orange",
        "pink",
        "red",
        "indigo",
        "teal",
        "cyan",
        "mint",
    }
)

_PREDEFINED_ICONS = {
    "untagged": "circle",
    "coding": "chevron.left.forwardslash.chevron.right",
    "algorithms": "function",
    "physics": "atom",
    "business": "chart.line.uptrend.xyaxis",
    "misc": "star.fill",
}

_PREDEFINED_COLORS = {
    "untagged": "blue",
    "coding": "purple",
    "algorithms": "green",
    "physics": "indigo",
    "business": "pink",
    "misc": "orange",
}


@dataclass(frozen=True)
class FocusCategory:
    id: str
    name: str
    icon: str
    color: str
    custom: bool = False

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "icon": self.icon,
            "color": self.color,
            "custom": self.custom,
        }

    @classmethod
    def from_dict(cls, raw: Mapping[str, Any]) -> Optional["FocusCategory"]:
        category_id = str_field(raw, "id", "")
        name = str_field(raw, "name", "")
        color = str_field(raw, "color", "")
        if not category_id or not name or color not in CATEGORY_COLORS:
            return None
        return cls(
            id=category_id,
            name=_sanitize_name(name),
            icon=str_field(raw, "icon", "circle"),
            color=color,
            custom=True,
        )


PREDEFINED_CATEGORIES: dict[str, FocusCategory] = {
    category_id: FocusCategory(
        id=category_id,
        name=category_id.capitalize(),
        icon=_PREDEFINED_ICONS[category_id],
        color=_PREDEFINED_COLORS[category_id],
    )
    for category_id in PREDEFINED_CATEGORY_IDS
}

UNTAGGED = PREDEFINED_CATEGORIES[CATEGORY_UNTAGGED]


class CategoryRegistry:
    """Predefined categories plus user-defined ones, addressable by id."""

    def __init__(
        self,
        custom: Optional[list[FocusCategory]] = None,
        *,
        logger: Optional[logging.Logger] = None,
    ):
        self._logger = logger or logging.getLogger("pomodoro")
        self._lock = threading.Lock()
        self._custom: dict[str, FocusCategory] = {}
        for category in custom or []:
            if category.id not in PREDEFINED_CATEGORIES:
                self._custom[category.id] = category

    def all(self) -> list[FocusCategory]:
        with self._lock:
            return list(PREDEFINED_CATEGORIES.values()) + list(self._custom.values())

    def custom(self) -> list[FocusCategory]:
        with self._lock:
            return list(self._custom.values())

    def resolve(self, category_id: Optional[str]) -> FocusCategory:
        """Return the category for ``category_id``, or ``untagged`` when unknown."""
        if not category_id:
            return UNTAGGED
        predefined = PREDEFINED_CATEGORIES.get(category_id)
        if predefined is not None:
            return predefined
        with self._lock:
            return self._custom.get(category_id, UNTAGGED)

    def add(self, name: str, *, icon: str = "circle", color: str = "blue") -> Optional[FocusCategory]:
        compact = _sanitize_name(name)
        if not compact or color not in CATEGORY_COLORS:
            return None
        category = FocusCategory(
            id=str(uuid.uuid4()),
            name=compact,
            icon=icon.strip() or "circle",
            color=color,
            custom=True,
        )
        with self._lock:
            self._custom[category.id] = category
        self._logger.info("Custom category added: id=%s name=%s", category.id, category.name)
        return category

    def update(self, category: FocusCategory) -> bool:
        with self._lock:
            if category.id not in self._custom:
                return False
            self._custom[category.id] = category
        return True

    def delete(self, category_id: str) -> bool:
        with self._lock:
            removed = self._custom.pop(category_id, None)
        if removed is None:
            return False
        self._logger.info("Custom category deleted: id=%s", category_id)
        return True

    def to_snapshot(self) -> list[dict[str, Any]]:
        with self._lock:
            return [category.to_dict() for category in self._custom.values()]

    @classmethod
    def from_snapshot(
        cls,
        raw: Any,
        *,
        logger: Optional[logging.Logger] = None,
    ) -> "CategoryRegistry":
        entries = raw if isinstance(raw, list) else []
        restored = []
        for entry in entries:
            if not isinstance(entry, Mapping):
                continue
            category = FocusCategory.from_dict(entry)
            if category is not None:
                restored.append(category)
        return cls(restored, logger=logger)


def _sanitize_name(name: str) -> str:
    return " ".join(name.split())[:40]
