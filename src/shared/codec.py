"""Lenient field decoders shared by every component snapshot.

Decoders never raise: a missing, mistyped, or unparsable field yields the
supplied default so that an old or partially corrupted blob still restores
into a valid component.
"""

from __future__ import annotations

import datetime as dt
from decimal import Decimal, InvalidOperation
from typing import Any, Mapping, Optional


def encode_decimal(value: Decimal) -> str:
    return str(value)


def encode_datetime(value: Optional[dt.datetime]) -> Optional[str]:
    if value is None:
        return None
    return value.isoformat()


def decimal_field(
    raw: Mapping[str, Any],
    name: str,
    default: Decimal,
    *,
    minimum: Optional[Decimal] = None,
) -> Decimal:
    value = raw.get(name)
    if isinstance(value, bool):
        return default
    if isinstance(value, (int, str)):
        text = str(value).strip()
    elif isinstance(value, float):
        text = repr(value)
    else:
        return default
    try:
        parsed = Decimal(text)
    except InvalidOperation:
        return default
    if not parsed.is_finite():
        return default
    if minimum is not None and parsed < minimum:
        return minimum
    return parsed


def int_field(
    raw: Mapping[str, Any],
    name: str,
    default: int,
    *,
    minimum: Optional[int] = None,
) -> int:
    value = raw.get(name)
    if isinstance(value, bool) or not isinstance(value, (int, float, str)):
        return default
    try:
        parsed = int(value)
    except (TypeError, ValueError, OverflowError):
        return default
    if minimum is not None and parsed < minimum:
        return minimum
    return parsed


def bool_field(raw: Mapping[str, Any], name: str, default: bool) -> bool:
    value = raw.get(name)
    if isinstance(value, bool):
        return value
    return default


def str_field(raw: Mapping[str, Any], name: str, default: str) -> str:
    value = raw.get(name)
    if isinstance(value, str) and value.strip():
        return value.strip()
    return default


def parse_datetime(value: Any) -> Optional[dt.datetime]:
    """Parse an ISO-8601 string or epoch seconds; naive values are taken as UTC."""
    parsed: Optional[dt.datetime]
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        try:
            parsed = dt.datetime.fromtimestamp(float(value), tz=dt.timezone.utc)
        except (OverflowError, OSError, ValueError):
            return None
    elif isinstance(value, str):
        try:
            parsed = dt.datetime.fromisoformat(value.strip())
        except ValueError:
            return None
    else:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=dt.timezone.utc)
    return parsed


def datetime_field(
    raw: Mapping[str, Any],
    name: str,
    default: Optional[dt.datetime],
) -> Optional[dt.datetime]:
    parsed = parse_datetime(raw.get(name))
    return parsed if parsed is not None else default


def mapping_field(raw: Mapping[str, Any], name: str) -> Mapping[str, Any]:
    value = raw.get(name)
    if isinstance(value, Mapping):
        return value
    return {}


def list_field(raw: Mapping[str, Any], name: str) -> list[Any]:
    value = raw.get(name)
    if isinstance(value, list):
        return value
    return []
