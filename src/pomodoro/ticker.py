"""Cancellable once-per-second tick sources for the pomodoro state machine."""

from __future__ import annotations

import logging
import threading
from typing import Callable, Optional, Protocol

TickCallback = Callable[[int], None]


class TickScheduler(Protocol):
    def start(self, generation: int, callback: TickCallback) -> None:
        """Begin calling ``callback(generation)`` once per interval."""

    def cancel(self) -> None:
        """Stop delivering ticks; must not block on the tick callback."""


class ThreadTickScheduler:
    """Daemon-thread ticker; each ``start`` replaces the previous tick thread."""

    def __init__(
        self,
        *,
        interval_seconds: float = 1.0,
        logger: Optional[logging.Logger] = None,
    ):
        if interval_seconds <= 0:
            raise ValueError("interval_seconds must be greater than zero")
        self._interval_seconds = float(interval_seconds)
        self._logger = logger or logging.getLogger("pomodoro")
        self._lock = threading.Lock()
        self._stop_event: Optional[threading.Event] = None

    def start(self, generation: int, callback: TickCallback) -> None:
        stop_event = threading.Event()
        with self._lock:
            if self._stop_event is not None:
                self._stop_event.set()
            self._stop_event = stop_event

        thread = threading.Thread(
            target=self._run,
            args=(stop_event, generation, callback),
            name=f"pomodoro-tick-{generation}",
            daemon=True,
        )
        thread.start()

    def cancel(self) -> None:
        with self._lock:
            if self._stop_event is not None:
                self._stop_event.set()
                self._stop_event = None

    def _run(
        self,
        stop_event: threading.Event,
        generation: int,
        callback: TickCallback,
    ) -> None:
        while not stop_event.wait(self._interval_seconds):
            try:
                callback(generation)
            except Exception:
                self._logger.exception("Pomodoro tick callback failed")
                return
