from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Mapping, Optional

try:  # Python 3.11+
    import tomllib
except ModuleNotFoundError:  # pragma: no cover - fallback for older runtimes
    import tomli as tomllib  # type: ignore


DEFAULT_CONFIG_FILE = "config.toml"


class AppConfigurationError(Exception):
    """Raised when application configuration fails."""


@dataclass(frozen=True)
class TimerSettings:
    focus_minutes: int = 25
    short_break_minutes: int = 5
    long_break_minutes: int = 15
    sessions_before_long_break: int = 4
    auto_start_breaks: bool = False
    category: str = "untagged"
    history_limit: int = 1000


@dataclass(frozen=True)
class MarketSettings:
    seed: Optional[int] = None
    history_limit: int = 60


@dataclass(frozen=True)
class BankSettings:
    seed: Optional[int] = None


@dataclass(frozen=True)
class StorageSettings:
    directory: str = "data"


@dataclass(frozen=True)
class RuntimeSettings:
    tick_interval_seconds: float = 1.0
    pending_action_poll_seconds: float = 1.0
    autosave_seconds: float = 30.0


@dataclass(frozen=True)
class AppConfig:
    timer: TimerSettings
    market: MarketSettings
    bank: BankSettings
    storage: StorageSettings
    runtime: RuntimeSettings
    source_file: str


def resolve_config_path(config_path: str | None = None) -> Path:
    env_path = os.getenv("APP_CONFIG_FILE")
    raw = config_path or env_path or DEFAULT_CONFIG_FILE
    path = Path(raw).expanduser()
    if not path.is_absolute():
        path = (Path.cwd() / path).resolve()
    return path


def load_app_config(config_path: str | None = None) -> AppConfig:
    path = resolve_config_path(config_path)
    if not path.exists():
        raise AppConfigurationError(f"Config file not found: {path}")
    if not path.is_file():
        raise AppConfigurationError(f"Config path is not a file: {path}")

    try:
        with open(path, "rb") as fh:
            raw = tomllib.load(fh)
    except Exception as error:
        raise AppConfigurationError(f"Failed to parse config TOML: {error}") from error

    if not isinstance(raw, Mapping):
        raise AppConfigurationError("Root config TOML object must be a table.")

    return parse_app_config(raw, base_dir=path.parent, source_file=str(path))


def parse_app_config(
    raw: Mapping[str, Any],
    *,
    base_dir: Path,
    source_file: str = "",
) -> AppConfig:
    timer_raw = _section(raw, "timer")
    timer = TimerSettings(
        focus_minutes=_as_int(timer_raw.get("focus_minutes", 25), "timer.focus_minutes"),
        short_break_minutes=_as_int(
            timer_raw.get("short_break_minutes", 5),
            "timer.short_break_minutes",
        ),
        long_break_minutes=_as_int(
            timer_raw.get("long_break_minutes", 15),
            "timer.long_break_minutes",
        ),
        sessions_before_long_break=_as_int(
            timer_raw.get("sessions_before_long_break", 4),
            "timer.sessions_before_long_break",
        ),
        auto_start_breaks=_as_bool(
            timer_raw.get("auto_start_breaks", False),
            "timer.auto_start_breaks",
        ),
        category=_as_str(timer_raw.get("category", "untagged"), "timer.category")
        or "untagged",
        history_limit=_as_int(timer_raw.get("history_limit", 1000), "timer.history_limit"),
    )

    market_raw = _section(raw, "market")
    market = MarketSettings(
        seed=_as_optional_int(market_raw.get("seed"), "market.seed"),
        history_limit=_as_int(market_raw.get("history_limit", 60), "market.history_limit"),
    )

    bank_raw = _section(raw, "bank")
    bank = BankSettings(seed=_as_optional_int(bank_raw.get("seed"), "bank.seed"))

    storage_raw = _section(raw, "storage")
    directory = _as_str(storage_raw.get("directory", "data"), "storage.directory")
    if not directory:
        raise AppConfigurationError("storage.directory is required.")
    storage = StorageSettings(directory=_resolve_path(base_dir, directory))

    runtime_raw = _section(raw, "runtime")
    runtime = RuntimeSettings(
        tick_interval_seconds=_as_float(
            runtime_raw.get("tick_interval_seconds", 1.0),
            "runtime.tick_interval_seconds",
        ),
        pending_action_poll_seconds=_as_float(
            runtime_raw.get("pending_action_poll_seconds", 1.0),
            "runtime.pending_action_poll_seconds",
        ),
        autosave_seconds=_as_float(
            runtime_raw.get("autosave_seconds", 30.0),
            "runtime.autosave_seconds",
        ),
    )

    return AppConfig(
        timer=timer,
        market=market,
        bank=bank,
        storage=storage,
        runtime=runtime,
        source_file=source_file,
    )


def _section(root: Mapping[str, Any], name: str) -> Mapping[str, Any]:
    raw = root.get(name, {})
    if raw is None:
        return {}
    if not isinstance(raw, Mapping):
        raise AppConfigurationError(f"[{name}] must be a table.")
    return raw


def _as_str(value: Any, field: str) -> str:
    if value is None:
        return ""
    if isinstance(value, str):
        return value.strip()
    raise AppConfigurationError(f"{field} must be a string.")


def _as_bool(value: Any, field: str) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        lowered = value.strip().lower()
        if lowered in ("true", "1", "yes", "on"):
            return True
        if lowered in ("false", "0", "no", "off"):
            return False
    raise AppConfigurationError(f"{field} must be a boolean.")


def _as_int(value: Any, field: str) -> int:
    if isinstance(value, bool):
        raise AppConfigurationError(f"{field} must be an integer.")
    if isinstance(value, int):
        return value
    if isinstance(value, str):
        text = value.strip().lower()
        base = 16 if text.startswith("0x") else 10
        try:
            return int(text, base)
        except ValueError as error:
            raise AppConfigurationError(f"{field} must be an integer.") from error
    raise AppConfigurationError(f"{field} must be an integer.")


def _as_optional_int(value: Any, field: str) -> Optional[int]:
    if value is None or (isinstance(value, str) and not value.strip()):
        return None
    return _as_int(value, field)


def _as_float(value: Any, field: str) -> float:
    if isinstance(value, bool):
        raise AppConfigurationError(f"{field} must be a float.")
    if isinstance(value, (int, float)):
        return float(value)
    if isinstance(value, str):
        try:
            return float(value.strip())
        except ValueError as error:
            raise AppConfigurationError(f"{field} must be a float.") from error
    raise AppConfigurationError(f"{field} must be a float.")


def _resolve_path(base_dir: Path, raw: str) -> str:
    if not raw:
        return ""
    path = Path(raw).expanduser()
    if not path.is_absolute():
        path = (base_dir / path).resolve()
    return str(path)
