"""At and cron style jobs on the wall clock."""

from __future__ import annotations

import time
from typing import Any, Optional

from .loop import Callback, Context, Events, Watcher, WatcherType

_CLOCK_JUMP = 1.0
"""Seconds of wall-clock drift taken to mean the clock was set."""


def _check_range(when: float, interval: float) -> None:
    if when < 0 or interval < 0:
        raise ValueError("when and interval must not be negative")


def _clock_offset() -> float:
    return time.time() - time.monotonic()


class CronWatcher(Watcher):
    """Calls back at the absolute time ``when``, then every ``interval`` s.

    ``interval`` zero makes a one-time at job.  A ``when`` of zero leaves
    the job disarmed.  If the wall clock is set while the job is armed,
    the callback sees ``Events.HUP``.
    """

    kind = WatcherType.CRON
    needs_fd = False

    def __init__(
        self,
        ctx: Context,
        callback: Optional[Callback],
        arg: Any = None,
        when: float = 0,
        interval: float = 0,
    ) -> None:
        _check_range(when, interval)
        super().__init__(ctx, callback, arg)
        self.when = when
        self.interval = interval
        self._open = True
        self._deadline: Optional[float] = None
        self._offset = _clock_offset()
        try:
            self.set(when, interval)
        except Exception:
            Watcher.stop(self)
            self._open = False
            raise

    def set(self, when: float, interval: float) -> None:
        """Reset the job to run first at ``when``, then every ``interval``."""
        _check_range(when, interval)
        if not self._open and not when and not interval:
            return

        self.when = when
        self.interval = interval
        if self.ctx.running:
            self._deadline = float(when) if when else None
            self._offset = _clock_offset()

        Watcher.start(self)
        self._open = True

    def start(self) -> None:
        """Start a stopped job with its last ``when`` and ``interval``."""
        if self._open:
            Watcher.stop(self)
        self.set(self.when, self.interval)

    def stop(self) -> None:
        """Stop and disarm the job."""
        if not self.active:
            return
        Watcher.stop(self)
        self._open = False
        self._deadline = None

    def _loop_started(self) -> None:
        self.set(self.when, self.interval)

    def _remaining(self) -> Optional[float]:
        if self._deadline is None:
            return None
        return self._deadline - time.time()

    def _dispatch(self, events: Events) -> Events:
        now = time.time()
        offset = _clock_offset()
        if self._deadline is None:
            self.stop()
            events = Events.ERROR
        elif abs(offset - self._offset) > _CLOCK_JUMP:
            self._offset = offset
            events = Events.HUP
        elif self._deadline > now:
            self.stop()
            events = Events.ERROR
        elif self.interval:
            missed = int((now - self._deadline) // self.interval) + 1
            self._deadline += missed * self.interval
        else:
            self._deadline = None

        if not self.interval:
            self.when = 0
        else:
            self.when += self.interval
        if not self.when:
            self.stop()
        return events