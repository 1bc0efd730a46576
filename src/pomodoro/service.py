"""Thread-safe pomodoro session state machine with suspend/resume reconciliation."""

from __future__ import annotations

import datetime as dt
import logging
import threading
import uuid
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any, Callable, Mapping, Optional, Union

from shared.codec import (
    bool_field,
    datetime_field,
    decimal_field,
    encode_datetime,
    encode_decimal,
    int_field,
    list_field,
    parse_datetime,
    str_field,
)

from .categories import CATEGORY_UNTAGGED, CategoryRegistry, FocusCategory
from .clock import (
    ONE_SECOND,
    NowFn,
    elapsed_whole_seconds,
    start_of_day,
    sub_second_remainder,
    system_now,
)
from .config import PomodoroConfig
from .constants import (
    ACTION_PAUSE,
    ACTION_RESET,
    ACTION_RESUME,
    ACTION_SKIP,
    ACTION_START,
    BREAK_PHASES,
    DEFAULT_FOCUS_SECONDS,
    DEFAULT_LONG_BREAK_SECONDS,
    DEFAULT_SESSIONS_BEFORE_LONG_BREAK,
    DEFAULT_SHORT_BREAK_SECONDS,
    MINIMUM_PHASE_MINUTES,
    PHASE_FOCUS,
    PHASE_IDLE,
    PHASE_LONG_BREAK,
    PHASE_SHORT_BREAK,
    PHASES,
    REASON_ALREADY_RUNNING,
    REASON_NOT_ACTIVE,
    REASON_NOT_RUNNING,
    REASON_NOTHING_REMAINING,
    REASON_PAUSED,
    REASON_RESET,
    REASON_RESUMED,
    REASON_SKIPPED,
    REASON_STARTED,
    REASON_UNSUPPORTED_ACTION,
    SNAPSHOT_VERSION,
)
from .rewards import FocusReward, calculate_reward
from .ticker import ThreadTickScheduler, TickScheduler


@dataclass(frozen=True)
class FocusSession:
    """One completed focus phase as recorded in the session history."""
    id: str
    started_at: dt.datetime
    duration_minutes: Decimal
    category: str
    coins_earned: Decimal

    @property
    def hours(self) -> Decimal:
        return self.duration_minutes / Decimal(60)

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "started_at": encode_datetime(self.started_at),
            "duration_minutes": encode_decimal(self.duration_minutes),
            "category": self.category,
            "coins_earned": encode_decimal(self.coins_earned),
        }

    @classmethod
    def from_dict(cls, raw: Mapping[str, Any]) -> Optional["FocusSession"]:
        started_at = datetime_field(raw, "started_at", None)
        if started_at is None:
            return None
        return cls(
            id=str_field(raw, "id", str(uuid.uuid4())),
            started_at=started_at,
            duration_minutes=decimal_field(
                raw, "duration_minutes", Decimal(0), minimum=Decimal(0)
            ),
            category=str_field(raw, "category", CATEGORY_UNTAGGED),
            coins_earned=decimal_field(raw, "coins_earned", Decimal(0), minimum=Decimal(0)),
        )


@dataclass(frozen=True)
class PomodoroSnapshot:
    """Immutable timer state, used both for observers and for persistence."""
    phase: str = PHASE_IDLE
    remaining_seconds: int = DEFAULT_FOCUS_SECONDS
    is_running: bool = False
    started_at: Optional[dt.datetime] = None
    suspended_at: Optional[dt.datetime] = None
    focus_started_at: Optional[dt.datetime] = None
    focus_duration_seconds: int = DEFAULT_FOCUS_SECONDS
    short_break_duration_seconds: int = DEFAULT_SHORT_BREAK_SECONDS
    long_break_duration_seconds: int = DEFAULT_LONG_BREAK_SECONDS
    sessions_before_long_break: int = DEFAULT_SESSIONS_BEFORE_LONG_BREAK
    auto_start_breaks: bool = False
    completed_focus_sessions: int = 0
    last_goal_reset: Optional[dt.datetime] = None
    streak: int = 0
    total_completed_sessions: int = 0
    total_focus_minutes: Decimal = Decimal(0)
    focus_days: tuple[dt.datetime, ...] = ()
    session_history: tuple[FocusSession, ...] = ()
    selected_category: str = CATEGORY_UNTAGGED

    @property
    def is_active(self) -> bool:
        return self.phase != PHASE_IDLE

    @property
    def is_suspended(self) -> bool:
        return self.suspended_at is not None

    def to_dict(self) -> dict[str, Any]:
        return {
            "version": SNAPSHOT_VERSION,
            "phase": self.phase,
            "remaining_seconds": self.remaining_seconds,
            "is_running": self.is_running,
            "started_at": encode_datetime(self.started_at),
            "suspended_at": encode_datetime(self.suspended_at),
            "focus_started_at": encode_datetime(self.focus_started_at),
            "focus_duration_seconds": self.focus_duration_seconds,
            "short_break_duration_seconds": self.short_break_duration_seconds,
            "long_break_duration_seconds": self.long_break_duration_seconds,
            "sessions_before_long_break": self.sessions_before_long_break,
            "auto_start_breaks": self.auto_start_breaks,
            "completed_focus_sessions": self.completed_focus_sessions,
            "last_goal_reset": encode_datetime(self.last_goal_reset),
            "streak": self.streak,
            "total_completed_sessions": self.total_completed_sessions,
            "total_focus_minutes": encode_decimal(self.total_focus_minutes),
            "focus_days": [encode_datetime(day) for day in self.focus_days],
            "session_history": [session.to_dict() for session in self.session_history],
            "selected_category": self.selected_category,
        }

    @classmethod
    def from_dict(cls, raw: Mapping[str, Any]) -> "PomodoroSnapshot":
        """Decode a persisted snapshot; every unusable field falls back to its default."""
        phase = str_field(raw, "phase", PHASE_IDLE)
        focus_days = []
        for value in list_field(raw, "focus_days"):
            day = parse_datetime(value)
            if day is not None:
                focus_days.append(day)
        history = []
        for entry in list_field(raw, "session_history"):
            if isinstance(entry, Mapping):
                session = FocusSession.from_dict(entry)
                if session is not None:
                    history.append(session)
        return cls(
            phase=phase if phase in PHASES else PHASE_IDLE,
            remaining_seconds=int_field(
                raw, "remaining_seconds", DEFAULT_FOCUS_SECONDS, minimum=0
            ),
            is_running=bool_field(raw, "is_running", False),
            started_at=datetime_field(raw, "started_at", None),
            suspended_at=datetime_field(raw, "suspended_at", None),
            focus_started_at=datetime_field(raw, "focus_started_at", None),
            focus_duration_seconds=int_field(
                raw, "focus_duration_seconds", DEFAULT_FOCUS_SECONDS
            ),
            short_break_duration_seconds=int_field(
                raw, "short_break_duration_seconds", DEFAULT_SHORT_BREAK_SECONDS
            ),
            long_break_duration_seconds=int_field(
                raw, "long_break_duration_seconds", DEFAULT_LONG_BREAK_SECONDS
            ),
            sessions_before_long_break=int_field(
                raw, "sessions_before_long_break", DEFAULT_SESSIONS_BEFORE_LONG_BREAK
            ),
            auto_start_breaks=bool_field(raw, "auto_start_breaks", False),
            completed_focus_sessions=int_field(
                raw, "completed_focus_sessions", 0, minimum=0
            ),
            last_goal_reset=datetime_field(raw, "last_goal_reset", None),
            streak=int_field(raw, "streak", 0, minimum=0),
            total_completed_sessions=int_field(
                raw, "total_completed_sessions", 0, minimum=0
            ),
            total_focus_minutes=decimal_field(
                raw, "total_focus_minutes", Decimal(0), minimum=Decimal(0)
            ),
            focus_days=tuple(sorted(set(focus_days))),
            session_history=tuple(history),
            selected_category=str_field(raw, "selected_category", CATEGORY_UNTAGGED),
        )


@dataclass(frozen=True)
class PomodoroActionResult:
    """Result envelope returned after applying a timer action."""
    action: str
    accepted: bool
    reason: str
    snapshot: PomodoroSnapshot


@dataclass(frozen=True)
class PhaseCompletion:
    """Emitted once every time a focus or break phase runs out."""
    completed_phase: str
    next_phase: str
    auto_started: bool
    snapshot: PomodoroSnapshot
    reward: Optional[FocusReward] = None


RewardListener = Callable[[FocusReward], None]
PhaseListener = Callable[[PhaseCompletion], None]
_Event = Union[FocusReward, PhaseCompletion]


@dataclass
class _PendingEvents:
    items: list[_Event] = field(default_factory=list)


def sanitize_duration(seconds: int, minimum_minutes: int = MINIMUM_PHASE_MINUTES) -> int:
    """Floor a duration to whole minutes, never below ``minimum_minutes``."""
    minutes = max(int(seconds) // 60, minimum_minutes)
    return minutes * 60


class PomodoroTimer:
    """Focus/break session state machine.

    The countdown is a remembered ``remaining_seconds`` decremented by a
    cancellable one-second tick source. While the host is suspended no ticks
    are delivered; ``on_resume`` subtracts the wall-clock seconds elapsed since
    ``on_suspend`` instead. Every operation is total: rejected actions come
    back as ``accepted=False`` results rather than exceptions.
    """

    def __init__(
        self,
        *,
        config: Optional[PomodoroConfig] = None,
        snapshot: Optional[PomodoroSnapshot] = None,
        categories: Optional[CategoryRegistry] = None,
        scheduler: Optional[TickScheduler] = None,
        now_fn: Optional[NowFn] = None,
        logger: Optional[logging.Logger] = None,
    ):
        self._config = config or PomodoroConfig()
        self._logger = logger or logging.getLogger("pomodoro")
        self._now_fn = now_fn or system_now
        self._scheduler = scheduler or ThreadTickScheduler(logger=self._logger)
        self._categories = categories or CategoryRegistry(logger=self._logger)
        self._lock = threading.Lock()
        self._reward_listeners: list[RewardListener] = []
        self._phase_listeners: list[PhaseListener] = []
        self._generation = 0

        now = self._now_fn()
        self._phase = PHASE_IDLE
        self._focus_duration = sanitize_duration(self._config.focus_duration_seconds)
        self._short_break_duration = sanitize_duration(
            self._config.short_break_duration_seconds
        )
        self._long_break_duration = sanitize_duration(
            self._config.long_break_duration_seconds
        )
        self._sessions_before_long_break = self._config.sessions_before_long_break
        self._auto_start_breaks = self._config.auto_start_breaks
        self._history_limit = self._config.history_limit
        self._remaining_seconds = self._focus_duration
        self._is_running = False
        self._started_at: Optional[dt.datetime] = None
        self._suspended_at: Optional[dt.datetime] = None
        self._last_tick_at: Optional[dt.datetime] = None
        self._focus_started_at: Optional[dt.datetime] = None
        self._completed_focus_sessions = 0
        self._last_goal_reset = start_of_day(now)
        self._streak = 0
        self._total_completed_sessions = 0
        self._total_focus_minutes = Decimal(0)
        self._focus_days: set[dt.datetime] = set()
        self._session_history: list[FocusSession] = []
        self._selected_category = self._categories.resolve(self._config.category).id

        if snapshot is not None:
            with self._lock:
                self._restore_locked(snapshot, now)
        else:
            with self._lock:
                self._check_rollover_locked(now)

    # Listeners

    def add_reward_listener(self, listener: RewardListener) -> None:
        with self._lock:
            self._reward_listeners.append(listener)

    def add_phase_listener(self, listener: PhaseListener) -> None:
        with self._lock:
            self._phase_listeners.append(listener)

    # Read access

    def to_snapshot(self) -> PomodoroSnapshot:
        with self._lock:
            return self._snapshot_locked(self._now_fn())

    @property
    def phase(self) -> str:
        with self._lock:
            return self._phase

    @property
    def remaining_seconds(self) -> int:
        with self._lock:
            return self._remaining_seconds

    @property
    def is_running(self) -> bool:
        with self._lock:
            return self._is_running

    @property
    def streak(self) -> int:
        with self._lock:
            return self._streak

    def duration_for(self, phase: str) -> int:
        with self._lock:
            return self._duration_for_locked(phase)

    # Pending-action interface

    def apply(self, action: str) -> PomodoroActionResult:
        """Apply one of ``start``, ``pause``, ``resume`` or ``reset``."""
        pending = _PendingEvents()
        with self._lock:
            now = self._now_fn()
            if action == ACTION_START:
                result = self._start_locked(now, pending)
            elif action == ACTION_PAUSE:
                result = self._pause_locked(now, pending)
            elif action == ACTION_RESUME:
                result = self._resume_locked(now)
            elif action == ACTION_RESET:
                result = self._reset_locked(now)
            else:
                self._logger.warning("Unsupported pomodoro action: %s", action)
                result = self._result_locked(action, False, REASON_UNSUPPORTED_ACTION, now)
        self._dispatch(pending)
        return result

    def start(self) -> PomodoroActionResult:
        return self.apply(ACTION_START)

    def pause(self) -> PomodoroActionResult:
        return self.apply(ACTION_PAUSE)

    def resume(self) -> PomodoroActionResult:
        return self.apply(ACTION_RESUME)

    def reset(self) -> PomodoroActionResult:
        return self.apply(ACTION_RESET)

    def skip_phase(self) -> PomodoroActionResult:
        """Leave the current phase early; a skipped focus breaks the streak and pays nothing."""
        with self._lock:
            now = self._now_fn()
            if self._phase == PHASE_IDLE:
                return self._result_locked(ACTION_SKIP, False, REASON_NOT_ACTIVE, now)

            skipped = self._phase
            self._stop_ticking_locked()
            self._is_running = False
            self._started_at = None
            self._suspended_at = None
            if skipped == PHASE_FOCUS:
                self._streak = 0
                self._remaining_seconds = 0
                self._focus_started_at = None
                self._enter_phase_locked(
                    PHASE_SHORT_BREAK,
                    now,
                    auto_start=self._auto_start_breaks,
                )
            else:
                self._remaining_seconds = 0
                self._enter_phase_locked(PHASE_FOCUS, now, auto_start=True)

            self._logger.info(
                "Pomodoro phase skipped: from=%s to=%s running=%s",
                skipped,
                self._phase,
                self._is_running,
            )
            return self._result_locked(ACTION_SKIP, True, REASON_SKIPPED, now)

    # Host lifecycle

    def on_suspend(self, now: Optional[dt.datetime] = None) -> bool:
        """Remember when the host went to background and stop ticking."""
        with self._lock:
            moment = now or self._now_fn()
            if not self._is_running or self._suspended_at is not None:
                self._logger.debug("Pomodoro suspend ignored: running=%s", self._is_running)
                return False
            # The part of a second already run down since the last tick is carried into the gap.
            self._suspended_at = moment - self._unticked_locked(moment)
            self._stop_ticking_locked()
            self._logger.info(
                "Pomodoro suspended: phase=%s remaining=%ss",
                self._phase,
                self._remaining_seconds,
            )
            return True

    def on_resume(self, now: Optional[dt.datetime] = None) -> bool:
        """Count wall-clock time spent suspended exactly once, then resume ticking.

        Returns ``False`` when there was no recorded suspension, so repeated
        calls never subtract the same interval twice.
        """
        pending = _PendingEvents()
        with self._lock:
            moment = now or self._now_fn()
            if self._suspended_at is None:
                return False
            self._reconcile_locked(moment, pending)
        self._dispatch(pending)
        return True

    def check_daily_rollover(self, now: Optional[dt.datetime] = None) -> bool:
        with self._lock:
            return self._check_rollover_locked(now or self._now_fn())

    # Settings

    def adjust_durations(
        self,
        *,
        focus: Optional[int] = None,
        short_break: Optional[int] = None,
        long_break: Optional[int] = None,
    ) -> PomodoroSnapshot:
        with self._lock:
            if focus is not None:
                self._focus_duration = sanitize_duration(focus)
            if short_break is not None:
                self._short_break_duration = sanitize_duration(short_break)
            if long_break is not None:
                self._long_break_duration = sanitize_duration(long_break)
            if not self._is_running:
                self._remaining_seconds = self._duration_for_locked(self._phase)
            return self._snapshot_locked(self._now_fn())

    def set_sessions_before_long_break(self, sessions: int) -> bool:
        if int(sessions) < 1:
            return False
        with self._lock:
            self._sessions_before_long_break = int(sessions)
        return True

    def set_auto_start_breaks(self, enabled: bool) -> None:
        with self._lock:
            self._auto_start_breaks = bool(enabled)

    def select_category(self, category_id: Optional[str]) -> FocusCategory:
        category = self._categories.resolve(category_id)
        with self._lock:
            self._selected_category = category.id
        return category

    def restore(self, snapshot: PomodoroSnapshot) -> None:
        with self._lock:
            self._restore_locked(snapshot, self._now_fn())

    # Transitions

    def _start_locked(self, now: dt.datetime, pending: _PendingEvents) -> PomodoroActionResult:
        if self._phase == PHASE_IDLE:
            self._start_focus_locked(now)
            return self._result_locked(ACTION_START, True, REASON_STARTED, now)
        return self._resume_locked(now, action=ACTION_START)

    def _resume_locked(
        self,
        now: dt.datetime,
        *,
        action: str = ACTION_RESUME,
    ) -> PomodoroActionResult:
        if self._is_running:
            return self._result_locked(action, False, REASON_ALREADY_RUNNING, now)
        if self._phase == PHASE_IDLE:
            return self._result_locked(action, False, REASON_NOT_ACTIVE, now)
        if self._remaining_seconds <= 0:
            return self._result_locked(action, False, REASON_NOTHING_REMAINING, now)

        self._remaining_seconds = min(
            self._remaining_seconds,
            self._duration_for_locked(self._phase),
        )
        if self._phase == PHASE_FOCUS and self._focus_started_at is None:
            self._focus_started_at = now
        self._begin_ticking_locked(now)
        self._logger.info(
            "Pomodoro resumed: phase=%s remaining=%ss",
            self._phase,
            self._remaining_seconds,
        )
        return self._result_locked(action, True, REASON_RESUMED, now)

    def _pause_locked(self, now: dt.datetime, pending: _PendingEvents) -> PomodoroActionResult:
        if not self._is_running:
            return self._result_locked(ACTION_PAUSE, False, REASON_NOT_RUNNING, now)
        if self._suspended_at is not None:
            self._reconcile_locked(now, pending)
            if not self._is_running:
                return self._result_locked(ACTION_PAUSE, False, REASON_NOT_RUNNING, now)

        self._stop_ticking_locked()
        self._is_running = False
        self._started_at = None
        self._logger.info(
            "Pomodoro paused: phase=%s remaining=%ss",
            self._phase,
            self._remaining_seconds,
        )
        return self._result_locked(ACTION_PAUSE, True, REASON_PAUSED, now)

    def _reset_locked(self, now: dt.datetime) -> PomodoroActionResult:
        self._stop_ticking_locked()
        self._is_running = False
        self._started_at = None
        self._suspended_at = None
        self._focus_started_at = None
        self._remaining_seconds = self._duration_for_locked(self._phase)
        self._logger.info(
            "Pomodoro reset: phase=%s remaining=%ss",
            self._phase,
            self._remaining_seconds,
        )
        return self._result_locked(ACTION_RESET, True, REASON_RESET, now)

    def _start_focus_locked(self, now: dt.datetime) -> None:
        self._phase = PHASE_FOCUS
        self._remaining_seconds = self._duration_for_locked(PHASE_FOCUS)
        self._focus_started_at = now
        self._begin_ticking_locked(now)
        self._logger.info(
            "Pomodoro focus started: duration=%ss category=%s",
            self._remaining_seconds,
            self._selected_category,
        )

    def _enter_phase_locked(self, phase: str, now: dt.datetime, *, auto_start: bool) -> None:
        if phase == PHASE_FOCUS and auto_start:
            self._start_focus_locked(now)
            return

        self._phase = phase
        self._remaining_seconds = self._duration_for_locked(phase)
        if auto_start:
            self._begin_ticking_locked(now)
        else:
            self._is_running = False
            self._started_at = None
            self._focus_started_at = None

    def _begin_ticking_locked(
        self, now: dt.datetime, carry: dt.timedelta = dt.timedelta(0)
    ) -> None:
        self._started_at = now
        self._last_tick_at = now - carry
        self._suspended_at = None
        self._is_running = True
        self._generation += 1
        self._scheduler.start(self._generation, self._on_tick)

    def _unticked_locked(self, now: dt.datetime) -> dt.timedelta:
        if self._last_tick_at is None:
            return dt.timedelta(0)
        return sub_second_remainder(self._last_tick_at, now)

    def _stop_ticking_locked(self) -> None:
        # A tick already waiting on the lock carries the old generation and is dropped.
        self._generation += 1
        self._scheduler.cancel()

    def _on_tick(self, generation: int) -> None:
        pending = _PendingEvents()
        with self._lock:
            if (
                generation != self._generation
                or not self._is_running
                or self._suspended_at is not None
            ):
                return
            now = self._now_fn()
            self._remaining_seconds = max(self._remaining_seconds - 1, 0)
            if self._last_tick_at is not None:
                self._last_tick_at = min(self._last_tick_at + ONE_SECOND, now)
            if self._remaining_seconds == 0:
                self._finish_phase_locked(now, pending)
        self._dispatch(pending)

    def _reconcile_locked(self, now: dt.datetime, pending: _PendingEvents) -> None:
        suspended_at = self._suspended_at
        self._suspended_at = None
        if suspended_at is None or not self._is_running:
            return

        elapsed = elapsed_whole_seconds(suspended_at, now)
        carry = sub_second_remainder(suspended_at, now)
        self._remaining_seconds = max(self._remaining_seconds - elapsed, 0)
        self._logger.info(
            "Pomodoro reconciled after suspension: elapsed=%ss remaining=%ss",
            elapsed,
            self._remaining_seconds,
        )
        if self._remaining_seconds == 0:
            self._finish_phase_locked(now, pending)
        else:
            self._begin_ticking_locked(now, carry)

    def _finish_phase_locked(self, now: dt.datetime, pending: _PendingEvents) -> None:
        self._check_rollover_locked(now)
        self._stop_ticking_locked()
        self._is_running = False
        self._started_at = None
        self._suspended_at = None
        self._remaining_seconds = 0

        completed = self._phase
        reward: Optional[FocusReward] = None
        if completed == PHASE_FOCUS:
            self._completed_focus_sessions += 1
            self._total_completed_sessions += 1
            self._streak += 1
            focus_duration = self._duration_for_locked(PHASE_FOCUS)
            reward = calculate_reward(focus_duration, self._streak)
            started = self._focus_started_at or now
            self._focus_days.add(start_of_day(started))
            self._append_session_locked(
                FocusSession(
                    id=str(uuid.uuid4()),
                    started_at=started,
                    duration_minutes=Decimal(focus_duration) / Decimal(60),
                    category=self._selected_category,
                    coins_earned=reward.coins_reward,
                )
            )
            self._focus_started_at = None
            long_break = (
                self._completed_focus_sessions % self._sessions_before_long_break == 0
            )
            next_phase = PHASE_LONG_BREAK if long_break else PHASE_SHORT_BREAK
            pending.items.append(reward)
        elif completed in BREAK_PHASES:
            next_phase = PHASE_FOCUS
        else:
            return

        self._enter_phase_locked(next_phase, now, auto_start=self._auto_start_breaks)
        self._logger.info(
            "Pomodoro phase completed: phase=%s next=%s streak=%s today=%s",
            completed,
            self._phase,
            self._streak,
            self._completed_focus_sessions,
        )
        pending.items.append(
            PhaseCompletion(
                completed_phase=completed,
                next_phase=self._phase,
                auto_started=self._is_running,
                snapshot=self._snapshot_locked(now),
                reward=reward,
            )
        )

    def _append_session_locked(self, session: FocusSession) -> None:
        self._session_history.append(session)
        overflow = len(self._session_history) - self._history_limit
        if overflow > 0:
            del self._session_history[:overflow]

    def _check_rollover_locked(self, now: dt.datetime) -> bool:
        today = start_of_day(now)
        if today.date() == self._last_goal_reset.date():
            return False

        rolled_forward = today.date() > self._last_goal_reset.date()
        if rolled_forward:
            self._logger.info(
                "Daily focus count reset: previous_day=%s completed=%s",
                self._last_goal_reset.date(),
                self._completed_focus_sessions,
            )
            self._completed_focus_sessions = 0
        self._last_goal_reset = today
        return rolled_forward

    def _duration_for_locked(self, phase: str) -> int:
        if phase == PHASE_SHORT_BREAK:
            return self._short_break_duration
        if phase == PHASE_LONG_BREAK:
            return self._long_break_duration
        return self._focus_duration

    # Snapshots

    def _snapshot_locked(self, now: dt.datetime) -> PomodoroSnapshot:
        suspended_at = self._suspended_at
        if self._is_running and suspended_at is None:
            # A running countdown persisted now resumes from this instant after a restart.
            suspended_at = now - self._unticked_locked(now)
        return PomodoroSnapshot(
            phase=self._phase,
            remaining_seconds=self._remaining_seconds,
            is_running=self._is_running,
            started_at=self._started_at,
            suspended_at=suspended_at,
            focus_started_at=self._focus_started_at,
            focus_duration_seconds=self._focus_duration,
            short_break_duration_seconds=self._short_break_duration,
            long_break_duration_seconds=self._long_break_duration,
            sessions_before_long_break=self._sessions_before_long_break,
            auto_start_breaks=self._auto_start_breaks,
            completed_focus_sessions=self._completed_focus_sessions,
            last_goal_reset=self._last_goal_reset,
            streak=self._streak,
            total_completed_sessions=self._total_completed_sessions,
            total_focus_minutes=self._total_focus_minutes,
            focus_days=tuple(sorted(self._focus_days)),
            session_history=tuple(self._session_history),
            selected_category=self._selected_category,
        )

    def _restore_locked(self, snapshot: PomodoroSnapshot, now: dt.datetime) -> None:
        self._stop_ticking_locked()
        self._focus_duration = sanitize_duration(snapshot.focus_duration_seconds)
        self._short_break_duration = sanitize_duration(snapshot.short_break_duration_seconds)
        self._long_break_duration = sanitize_duration(snapshot.long_break_duration_seconds)
        self._sessions_before_long_break = (
            snapshot.sessions_before_long_break
            if snapshot.sessions_before_long_break >= 1
            else DEFAULT_SESSIONS_BEFORE_LONG_BREAK
        )
        self._auto_start_breaks = snapshot.auto_start_breaks
        self._completed_focus_sessions = max(snapshot.completed_focus_sessions, 0)
        self._last_goal_reset = (
            start_of_day(snapshot.last_goal_reset)
            if snapshot.last_goal_reset is not None
            else start_of_day(now)
        )
        self._streak = max(snapshot.streak, 0)
        self._total_completed_sessions = max(snapshot.total_completed_sessions, 0)
        self._total_focus_minutes = snapshot.total_focus_minutes
        self._focus_days = set(snapshot.focus_days)
        self._session_history = list(snapshot.session_history)[-self._history_limit:]
        self._selected_category = self._categories.resolve(snapshot.selected_category).id

        phase = snapshot.phase if snapshot.phase in PHASES else PHASE_IDLE
        self._phase = phase
        self._focus_started_at = snapshot.focus_started_at if phase == PHASE_FOCUS else None
        if phase == PHASE_IDLE:
            self._remaining_seconds = self._focus_duration
            self._is_running = False
        else:
            self._remaining_seconds = min(
                max(snapshot.remaining_seconds, 0),
                self._duration_for_locked(phase),
            )
            self._is_running = snapshot.is_running

        if self._is_running:
            # Restored countdowns stay suspended until the host calls on_resume.
            self._started_at = snapshot.started_at or snapshot.suspended_at or now
            self._suspended_at = snapshot.suspended_at or now
        else:
            self._started_at = None
            self._suspended_at = None

        self._check_rollover_locked(now)

    def _result_locked(
        self,
        action: str,
        accepted: bool,
        reason: str,
        now: dt.datetime,
    ) -> PomodoroActionResult:
        return PomodoroActionResult(
            action=action,
            accepted=accepted,
            reason=reason,
            snapshot=self._snapshot_locked(now),
        )

    def _dispatch(self, pending: _PendingEvents) -> None:
        if not pending.items:
            return
        with self._lock:
            reward_listeners = list(self._reward_listeners)
            phase_listeners = list(self._phase_listeners)
        for event in pending.items:
            listeners: list[Callable[[Any], None]]
            if isinstance(event, FocusReward):
                listeners = list(reward_listeners)
            else:
                listeners = list(phase_listeners)
            for listener in listeners:
                try:
                    listener(event)
                except Exception:
                    self._logger.exception(
                        "Pomodoro listener failed for %s",
                        type(event).__name__,
                    )
