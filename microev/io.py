"""Descriptor watchers for files, sockets, pipes and the like."""

from __future__ import annotations

import contextlib
from typing import Any, Optional

from .loop import Callback, Context, Events, Watcher, WatcherType


class IoWatcher(Watcher):
    """Calls back when a descriptor becomes readable or writable."""

    kind = WatcherType.IO
    needs_fd = True

    def __init__(
        self,
        ctx: Context,
        callback: Optional[Callback],
        arg: Any = None,
        fd: int = -1,
        events: Events = Events.READ,
    ) -> None:
        if fd is None or fd < 0:
            raise ValueError("an I/O watcher needs a valid descriptor")
        super().__init__(ctx, callback, arg, fd, events)
        Watcher.start(self)

    def set(self, fd: int, events: Events) -> None:
        """Watch ``fd`` for ``events``; a one-shot active watcher is re-armed."""
        events = Events(events)
        if events & Events.ONESHOT and self.active:
            self.rearm()
            return

        # Clean up anything lingering from the previous setup.
        with contextlib.suppress(OSError, ValueError):
            self.stop()

        if fd is None or fd < 0:
            raise ValueError("an I/O watcher needs a valid descriptor")
        self.fd = fd
        self.events = events
        Watcher.start(self)

    def start(self) -> None:
        """Start the watcher again with its current descriptor and events."""
        self.set(self.fd, self.events)

    def stop(self) -> None:
        """Stop watching the descriptor; the descriptor itself stays open."""
        Watcher.stop(self)