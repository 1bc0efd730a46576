"""Validated host-loop configuration derived from app settings."""

from __future__ import annotations

from dataclasses import dataclass


class RuntimeConfigurationError(Exception):
    """Raised when runtime loop configuration is invalid."""


@dataclass(frozen=True)
class RuntimeConfig:
    tick_interval_seconds: float = 1.0
    pending_action_poll_seconds: float = 1.0
    autosave_seconds: float = 30.0

    def __post_init__(self) -> None:
        for field_name in (
            "tick_interval_seconds",
            "pending_action_poll_seconds",
            "autosave_seconds",
        ):
            value = getattr(self, field_name)
            if value <= 0:
                raise RuntimeConfigurationError(
                    f"runtime.{field_name} must be > 0, got: {value}"
                )

    @classmethod
    def from_settings(cls, settings) -> "RuntimeConfig":
        return cls(
            tick_interval_seconds=float(settings.tick_interval_seconds),
            pending_action_poll_seconds=float(settings.pending_action_poll_seconds),
            autosave_seconds=float(settings.autosave_seconds),
        )
