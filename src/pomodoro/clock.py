"""Wall-clock helpers used to reconcile time spent while the host was suspended."""

from __future__ import annotations

import datetime as dt
import math
from typing import Callable

NowFn = Callable[[], dt.datetime]

ONE_SECOND = dt.timedelta(seconds=1)


def system_now() -> dt.datetime:
    """Return the current local time as a timezone-aware datetime."""
    return dt.datetime.now().astimezone()


def elapsed_whole_seconds(since: dt.datetime, now: dt.datetime) -> int:
    """Whole seconds from ``since`` to ``now``, clamped to zero when time ran backwards."""
    delta = (now - since).total_seconds()
    if delta <= 0:
        return 0
    return int(math.floor(delta))


def sub_second_remainder(since: dt.datetime, now: dt.datetime) -> dt.timedelta:
    """Part of ``now - since`` past its last whole second, zero when time ran backwards."""
    delta = now - since
    if delta <= dt.timedelta(0):
        return dt.timedelta(0)
    return delta % ONE_SECOND


def start_of_day(moment: dt.datetime) -> dt.datetime:
    return moment.replace(hour=0, minute=0, second=0, microsecond=0)


def is_same_day(first: dt.datetime, second: dt.datetime) -> bool:
    return first.date() == second.date()
