"""Aggregate statistics over the completed focus-session history."""

from __future__ import annotations

import calendar
import datetime as dt
from dataclasses import dataclass
from decimal import Decimal
from typing import Callable, Iterable, Optional

from .categories import CategoryRegistry, FocusCategory
from .clock import NowFn, start_of_day, system_now
from .service import FocusSession


@dataclass(frozen=True)
class PeriodStats:
    sessions: int
    hours: Decimal
    coins: Decimal


@dataclass(frozen=True)
class CategoryStats:
    category: FocusCategory
    hours: Decimal
    percentage: Decimal
    sessions: int


@dataclass(frozen=True)
class BestPeriod:
    start: dt.date
    hours: Decimal


_EMPTY = PeriodStats(sessions=0, hours=Decimal(0), coins=Decimal(0))


def _months_ago(moment: dt.datetime, months: int) -> dt.datetime:
    month_index = moment.year * 12 + (moment.month - 1) - months
    year, month = divmod(month_index, 12)
    month += 1
    day = min(moment.day, calendar.monthrange(year, month)[1])
    return moment.replace(year=year, month=month, day=day)


class FocusAnalytics:
    """Read-only calculator over a session history snapshot.

    ``legacy_total_minutes`` covers histories written before sessions were
    recorded individually; it only contributes to all-time totals while the
    history itself is empty.
    """

    def __init__(
        self,
        sessions: Iterable[FocusSession],
        *,
        legacy_total_minutes: Decimal = Decimal(0),
        categories: Optional[CategoryRegistry] = None,
        now_fn: Optional[NowFn] = None,
    ):
        self._sessions = list(sessions)
        self._legacy_total_minutes = legacy_total_minutes
        self._categories = categories or CategoryRegistry()
        self._now_fn = now_fn or system_now

    # Period stats

    def today_stats(self) -> PeriodStats:
        today = self._now_fn().date()
        return self._stats(lambda session: session.started_at.date() == today)

    def week_stats(self) -> PeriodStats:
        now = self._now_fn()
        week_ago = now - dt.timedelta(days=7)
        return self._stats(lambda session: week_ago <= session.started_at <= now)

    def month_stats(self) -> PeriodStats:
        now = self._now_fn()
        month_ago = _months_ago(now, 1)
        return self._stats(lambda session: month_ago <= session.started_at <= now)

    def year_stats(self, year: int) -> PeriodStats:
        return self._stats(lambda session: session.started_at.year == year)

    def all_time_stats(self) -> PeriodStats:
        if not self._sessions and self._legacy_total_minutes > 0:
            return PeriodStats(
                sessions=0,
                hours=self._legacy_total_minutes / Decimal(60),
                coins=Decimal(0),
            )
        return self._stats(lambda _session: True)

    def _stats(self, predicate: Callable[[FocusSession], bool]) -> PeriodStats:
        selected = [session for session in self._sessions if predicate(session)]
        if not selected:
            return _EMPTY
        return PeriodStats(
            sessions=len(selected),
            hours=sum((session.hours for session in selected), Decimal(0)),
            coins=sum((session.coins_earned for session in selected), Decimal(0)),
        )

    # Category breakdown

    def category_breakdown(self, year: Optional[int] = None) -> list[CategoryStats]:
        """Hours per category, largest first; empty when nothing was recorded."""
        sessions = [
            session
            for session in self._sessions
            if year is None or session.started_at.year == year
        ]
        total_hours = sum((session.hours for session in sessions), Decimal(0))
        if total_hours <= 0:
            return []

        hours: dict[str, Decimal] = {}
        counts: dict[str, int] = {}
        for session in sessions:
            category_id = self._categories.resolve(session.category).id
            hours[category_id] = hours.get(category_id, Decimal(0)) + session.hours
            counts[category_id] = counts.get(category_id, 0) + 1

        breakdown = [
            CategoryStats(
                category=self._categories.resolve(category_id),
                hours=category_hours,
                percentage=category_hours / total_hours * 100,
                sessions=counts[category_id],
            )
            for category_id, category_hours in hours.items()
        ]
        breakdown.sort(key=lambda stats: stats.hours, reverse=True)
        return breakdown

    # Best records

    def best_day(self) -> Optional[BestPeriod]:
        return self._best(lambda moment: moment.date())

    def best_week(self) -> Optional[BestPeriod]:
        return self._best(
            lambda moment: moment.date() - dt.timedelta(days=moment.weekday())
        )

    def best_month(self) -> Optional[BestPeriod]:
        return self._best(lambda moment: moment.date().replace(day=1))

    def _best(self, bucket: Callable[[dt.datetime], dt.date]) -> Optional[BestPeriod]:
        totals: dict[dt.date, Decimal] = {}
        for session in self._sessions:
            key = bucket(session.started_at)
            totals[key] = totals.get(key, Decimal(0)) + session.hours
        if not totals:
            return None
        start, hours = max(totals.items(), key=lambda item: (item[1], item[0]))
        return BestPeriod(start=start, hours=hours)

    def best_streak(self) -> int:
        """Longest run of consecutive calendar days with at least one session."""
        days = sorted({session.started_at.date() for session in self._sessions})
        best = 0
        current = 0
        previous: Optional[dt.date] = None
        for day in days:
            if previous is not None and (day - previous).days == 1:
                current += 1
            else:
                current = 1
            best = max(best, current)
            previous = day
        return best

    # Heatmap

    def yearly_heatmap(self, year: int) -> dict[dt.date, Decimal]:
        heatmap: dict[dt.date, Decimal] = {}
        day = dt.date(year, 1, 1)
        while day.year == year:
            heatmap[day] = Decimal(0)
            day += dt.timedelta(days=1)
        for session in self._sessions:
            session_day = start_of_day(session.started_at).date()
            if session_day in heatmap:
                heatmap[session_day] += session.hours
        return heatmap
