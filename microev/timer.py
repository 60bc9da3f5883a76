"""One-shot and periodic timers on the monotonic clock."""

from __future__ import annotations

import time
from typing import Any, Optional

from .loop import Callback, Context, Events, Watcher, WatcherType


def _check_range(timeout: int, period: int) -> None:
    if timeout < 0 or period < 0:
        raise ValueError("timeout and period must not be negative")


class TimerWatcher(Watcher):
    """Calls back after ``timeout`` milliseconds, then every ``period`` ms.

    A timeout of zero leaves the timer disarmed.  Timers are armed when
    the loop starts running, or at once if it is already running.
    """

    kind = WatcherType.TIMER
    needs_fd = False

    def __init__(
        self,
        ctx: Context,
        callback: Optional[Callback],
        arg: Any = None,
        timeout: int = 0,
        period: int = 0,
    ) -> None:
        _check_range(timeout, period)
        super().__init__(ctx, callback, arg)
        self.timeout = timeout
        self.period = period
        self._open = True
        self._deadline: Optional[float] = None
        try:
            self.set(timeout, period)
        except Exception:
            Watcher.stop(self)
            self._open = False
            raise

    def set(self, timeout: int, period: int) -> None:
        """Reset the timer; a timeout of zero disarms it."""
        _check_range(timeout, period)
        if not self._open and not timeout and not period:
            return

        self.timeout = timeout
        self.period = period
        if self.ctx.running:
            self._deadline = time.monotonic() + timeout / 1000 if timeout else None

        Watcher.start(self)
        self._open = True

    def start(self) -> None:
        """Start a stopped timer with its last timeout and period."""
        if self._open:
            Watcher.stop(self)
        self.set(self.timeout, self.period)

    def stop(self) -> None:
        """Stop and disarm the timer."""
        if not self.active:
            return
        Watcher.stop(self)
        self._open = False
        self._deadline = None

    def _loop_started(self) -> None:
        self.set(self.timeout, self.period)

    def _remaining(self) -> Optional[float]:
        if self._deadline is None:
            return None
        return self._deadline - time.monotonic()

    def _dispatch(self, events: Events) -> Events:
        now = time.monotonic()
        if self._deadline is None or self._deadline > now:
            # Re-armed by an earlier callback in the same batch.
            self.stop()
            events = Events.ERROR
        elif self.period:
            step = self.period / 1000
            missed = int((now - self._deadline) // step) + 1
            self._deadline += missed * step

        if not self.period:
            self.timeout = 0
        if not self.timeout:
            self.stop()
        return events