"""Generic event watchers that other code, or other threads, can post to."""

from __future__ import annotations

import os
from typing import Any, Optional

from .loop import Callback, Context, Events, Watcher, WatcherType

_HAS_EVENTFD = hasattr(os, "eventfd")


class EventWatcher(Watcher):
    """Calls back after :meth:`post`; posts made before it is served coalesce."""

    kind = WatcherType.EVENT
    needs_fd = True

    def __init__(self, ctx: Context, callback: Optional[Callback], arg: Any = None) -> None:
        super().__init__(ctx, callback, arg)
        self._wfd = -1
        if _HAS_EVENTFD:
            self.fd = os.eventfd(0, os.EFD_NONBLOCK | os.EFD_CLOEXEC)
        else:
            rfd, wfd = os.pipe()
            os.set_blocking(rfd, False)
            os.set_blocking(wfd, False)
            self.fd, self._wfd = rfd, wfd
        try:
            Watcher.start(self)
        except Exception:
            self._close()
            raise

    def post(self) -> None:
        """Wake the watcher; safe to call from another thread."""
        if self.fd < 0:
            raise ValueError("event watcher is stopped")
        if _HAS_EVENTFD:
            os.eventfd_write(self.fd, 1)
            return
        try:
            os.write(self._wfd, b"\x01")
        except BlockingIOError:
            # The pipe is full, so an event is pending already.
            pass

    def stop(self) -> None:
        """Stop the watcher and release its descriptor."""
        if not self.active:
            return
        Watcher.stop(self)
        self._close()

    def _close(self) -> None:
        for fd in (self.fd, self._wfd):
            if fd >= 0:
                os.close(fd)
        self.fd = -1
        self._wfd = -1

    def _dispatch(self, events: Events) -> Events:
        try:
            if _HAS_EVENTFD:
                os.eventfd_read(self.fd)
            elif not os.read(self.fd, 65536):
                return Events.HUP
        except OSError:
            return Events.HUP
        return events