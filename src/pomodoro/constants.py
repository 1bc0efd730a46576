"""Phase, action, and reason constants used by the pomodoro state machine."""

from __future__ import annotations

DEFAULT_FOCUS_SECONDS = 25 * 60
DEFAULT_SHORT_BREAK_SECONDS = 5 * 60
DEFAULT_LONG_BREAK_SECONDS = 15 * 60
DEFAULT_SESSIONS_BEFORE_LONG_BREAK = 4
DEFAULT_SESSION_HISTORY_LIMIT = 1000
MINIMUM_PHASE_MINUTES = 1

SNAPSHOT_VERSION = 1

PHASE_IDLE = "idle"
PHASE_FOCUS = "focus"
PHASE_SHORT_BREAK = "short_break"
PHASE_LONG_BREAK = "long_break"

PHASES: frozenset[str] = frozenset(
    {PHASE_IDLE, PHASE_FOCUS, PHASE_SHORT_BREAK, PHASE_LONG_BREAK}
)
BREAK_PHASES: frozenset[str] = frozenset({PHASE_SHORT_BREAK, PHASE_LONG_BREAK})

ACTION_START = "start"
ACTION_PAUSE = "pause"
ACTION_RESUME = "resume"
ACTION_RESET = "reset"
ACTION_SKIP = "skip"

PENDING_ACTIONS: frozenset[str] = frozenset(
    {ACTION_START, ACTION_PAUSE, ACTION_RESUME, ACTION_RESET}
)

REASON_STARTED = "started"
REASON_RESUMED = "resumed"
REASON_PAUSED = "paused"
REASON_RESET = "reset"
REASON_SKIPPED = "skipped"
REASON_ALREADY_RUNNING = "already_running"
REASON_NOT_RUNNING = "not_running"
REASON_NOT_ACTIVE = "not_active"
REASON_NOTHING_REMAINING = "nothing_remaining"
REASON_UNSUPPORTED_ACTION = "unsupported_action"
