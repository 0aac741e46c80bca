"""CountdownTimer — whole-second countdown for a playing session.

The timer only counts. What a warning or a timeout *means* is decided by
whoever calls ``tick()``; the background thread started by ``start()``
simply invokes ``on_tick`` every ``interval_s`` until cancelled or
expired. There is no pause.
"""

from __future__ import annotations

import logging
import threading
from enum import Enum
from typing import Callable

logger = logging.getLogger(__name__)


class TimerSignal(Enum):
    TICK = "tick"
    WARNING = "warning"
    TIMEOUT = "timeout"


class CountdownTimer:
    """Counts ``duration_s`` down to zero, one tick at a time."""

    def __init__(
        self,
        duration_s: int = 300,
        warning_s: int = 30,
        interval_s: float = 1.0,
        on_tick: Callable[[], None] | None = None,
        name: str = "countdown",
    ):
        self.duration_s = duration_s
        self.warning_s = warning_s
        self.interval_s = interval_s
        self._on_tick = on_tick
        self._name = name
        self._remaining = duration_s
        self._warned = False
        self._lock = threading.Lock()
        self._cancelled = threading.Event()
        self._thread: threading.Thread | None = None

    @property
    def remaining(self) -> int:
        return self._remaining

    @property
    def expired(self) -> bool:
        return self._remaining <= 0

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def tick(self) -> TimerSignal:
        """Advance one second.

        Returns WARNING exactly once, when the remaining time first reaches
        the warning threshold, and TIMEOUT when it reaches zero. Ticks after
        expiry return TIMEOUT again without going negative.
        """
        with self._lock:
            if self._remaining <= 0:
                return TimerSignal.TIMEOUT
            self._remaining -= 1
            if self._remaining <= 0:
                self._remaining = 0
                return TimerSignal.TIMEOUT
            if not self._warned and self._remaining <= self.warning_s:
                self._warned = True
                return TimerSignal.WARNING
            return TimerSignal.TICK

    def start(self) -> None:
        """Start the background ticking thread. No-op if already running."""
        if self.running or self._on_tick is None:
            return
        # Fresh event per run so a cancelled thread never sees a later start
        self._cancelled = threading.Event()
        self._thread = threading.Thread(
            target=self._run, args=(self._cancelled,), daemon=True, name=self._name,
        )
        self._thread.start()

    def cancel(self) -> None:
        """Signal the background thread to exit.

        Does not join: the caller may hold a lock that a pending ``on_tick``
        is waiting for. A tick already in flight still runs once.
        """
        self._cancelled.set()
        self._thread = None

    def _run(self, cancelled: threading.Event) -> None:
        while not cancelled.wait(self.interval_s):
            try:
                self._on_tick()
            except Exception:
                logger.exception("Timer callback failed (%s)", self._name)
            if self.expired:
                return
