from .analytics import BestPeriod, CategoryStats, FocusAnalytics, PeriodStats
from .categories import CATEGORY_UNTAGGED, CategoryRegistry, FocusCategory
from .config import PomodoroConfig, PomodoroConfigurationError
from .rewards import FocusReward, calculate_reward
from .service import (
    FocusSession,
    PhaseCompletion,
    PomodoroActionResult,
    PomodoroSnapshot,
    PomodoroTimer,
)
from .ticker import ThreadTickScheduler, TickScheduler

__all__ = [
    "BestPeriod",
    "CATEGORY_UNTAGGED",
    "CategoryRegistry",
    "CategoryStats",
    "FocusAnalytics",
    "FocusCategory",
    "FocusReward",
    "FocusSession",
    "PeriodStats",
    "PhaseCompletion",
    "PomodoroActionResult",
    "PomodoroConfig",
    "PomodoroConfigurationError",
    "PomodoroSnapshot",
    "PomodoroTimer",
    "ThreadTickScheduler",
    "TickScheduler",
    "calculate_reward",
]
