"""Validated timer configuration derived from app settings."""

from __future__ import annotations

from dataclasses import dataclass

from .categories import CATEGORY_UNTAGGED
from .constants import (
    DEFAULT_FOCUS_SECONDS,
    DEFAULT_LONG_BREAK_SECONDS,
    DEFAULT_SESSION_HISTORY_LIMIT,
    DEFAULT_SESSIONS_BEFORE_LONG_BREAK,
    DEFAULT_SHORT_BREAK_SECONDS,
)


class PomodoroConfigurationError(Exception):
    """Raised when timer configuration is invalid."""


@dataclass(frozen=True)
class PomodoroConfig:
    focus_duration_seconds: int = DEFAULT_FOCUS_SECONDS
    short_break_duration_seconds: int = DEFAULT_SHORT_BREAK_SECONDS
    long_break_duration_seconds: int = DEFAULT_LONG_BREAK_SECONDS
    sessions_before_long_break: int = DEFAULT_SESSIONS_BEFORE_LONG_BREAK
    auto_start_breaks: bool = False
    category: str = CATEGORY_UNTAGGED
    history_limit: int = DEFAULT_SESSION_HISTORY_LIMIT

    def __post_init__(self) -> None:
        for field_name in (
            "focus_duration_seconds",
            "short_break_duration_seconds",
            "long_break_duration_seconds",
        ):
            value = getattr(self, field_name)
            if value < 60:
                raise PomodoroConfigurationError(
                    f"{field_name} must be at least one minute, got: {value}"
                )
        if self.sessions_before_long_break < 1:
            raise PomodoroConfigurationError(
                "sessions_before_long_break must be >= 1, "
                f"got: {self.sessions_before_long_break}"
            )
        if self.history_limit < 1:
            raise PomodoroConfigurationError(
                f"history_limit must be >= 1, got: {self.history_limit}"
            )

    @classmethod
    def from_settings(cls, settings) -> "PomodoroConfig":
        return cls(
            focus_duration_seconds=int(settings.focus_minutes) * 60,
            short_break_duration_seconds=int(settings.short_break_minutes) * 60,
            long_break_duration_seconds=int(settings.long_break_minutes) * 60,
            sessions_before_long_break=int(settings.sessions_before_long_break),
            auto_start_breaks=bool(settings.auto_start_breaks),
            category=(settings.category or CATEGORY_UNTAGGED).strip(),
            history_limit=int(settings.history_limit),
        )
