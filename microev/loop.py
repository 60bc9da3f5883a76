"""Event loop context and the generic watcher it drives."""

from __future__ import annotations

import enum
import os
import select
import selectors
import stat
from typing import Any, Callable, List, Optional, Tuple

MAX_EVENTS = 10
"""Upper bound on the number of events served per loop iteration."""


class Events(enum.IntFlag):
    """I/O event flags; signal, timer and event watchers always see READ."""

    NONE = 0
    READ = 0x001
    PRI = 0x002
    WRITE = 0x004
    ERROR = 0x008
    HUP = 0x010
    RDHUP = 0x2000
    ONESHOT = 1 << 30
    EDGE = 1 << 31


EVENT_MASK = (
    Events.ERROR
    | Events.READ
    | Events.WRITE
    | Events.PRI
    | Events.RDHUP
    | Events.HUP
    | Events.EDGE
    | Events.ONESHOT
)


class RunFlags(enum.IntFlag):
    """Flags for :meth:`Context.run`."""

    NONE = 0
    ONCE = 1
    NONBLOCK = 2


class WatcherType(enum.IntEnum):
    """Kind of watcher."""

    IO = 1
    SIGNAL = 2
    TIMER = 3
    CRON = 4
    EVENT = 5


class _State(enum.Enum):
    STOPPED = 0
    ACTIVE = 1
    POLLED = -1  # regular-file stdin, served without the selector


Callback = Callable[["Watcher", Any, Events], None]


def _has_data(fd: int) -> bool:
    """Return True if reading ``fd`` would yield data right now."""
    try:
        st = os.fstat(fd)
    except OSError:
        return False
    if stat.S_ISREG(st.st_mode):
        try:
            return os.lseek(fd, 0, os.SEEK_CUR) < st.st_size
        except OSError:
            return False
    try:
        readable, _, _ = select.select([fd], [], [], 0)
    except (OSError, ValueError):
        return False
    return bool(readable)


def _selector_mask(events: Events) -> int:
    mask = 0
    if events & Events.READ:
        mask |= selectors.EVENT_READ
    if events & Events.WRITE:
        mask |= selectors.EVENT_WRITE
    if not mask:
        raise ValueError("watcher events must include READ or WRITE")
    return mask


class Context:
    """An event loop; one per thread."""

    def __init__(self, maxevents: int = MAX_EVENTS) -> None:
        if maxevents < 1:
            raise ValueError("maxevents must be at least 1")
        self.maxevents = min(maxevents, MAX_EVENTS)
        self.running = False
        self._selector: Optional[selectors.BaseSelector] = selectors.DefaultSelector()
        self._watchers: List[Watcher] = []
        self._workaround = False

    def __enter__(self) -> "Context":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.exit()

    @property
    def closed(self) -> bool:
        """True once :meth:`exit` has released the context."""
        return self._selector is None

    @property
    def watchers(self) -> Tuple["Watcher", ...]:
        """Watchers currently linked to the loop, newest first."""
        return tuple(self._watchers)

    def _require_open(self) -> selectors.BaseSelector:
        if self._selector is None:
            raise RuntimeError("event loop context is closed")
        return self._selector

    def _link(self, watcher: "Watcher") -> None:
        if watcher not in self._watchers:
            self._watchers.insert(0, watcher)

    def _unlink(self, watcher: "Watcher") -> None:
        if watcher in self._watchers:
            self._watchers.remove(watcher)

    def _register(self, watcher: "Watcher") -> None:
        selector = self._require_open()
        mask = _selector_mask(watcher.events)
        try:
            if watcher._registered:
                selector.modify(watcher.fd, mask, watcher)
            else:
                selector.register(watcher.fd, mask, watcher)
        except KeyError as exc:
            raise FileExistsError(f"descriptor {watcher.fd} is already watched") from exc
        watcher._registered = True

    def _unregister(self, watcher: "Watcher") -> None:
        if watcher._registered and self._selector is not None:
            try:
                self._selector.unregister(watcher.fd)
            except (KeyError, ValueError):
                pass
        watcher._registered = False

    def exit(self) -> None:
        """Stop every watcher and release the loop; safe to call twice."""
        for watcher in list(self._watchers):
            self._unlink(watcher)
            if watcher.active:
                watcher.stop()
        self._watchers.clear()
        self.running = False
        if self._selector is not None:
            self._selector.close()
            self._selector = None

    def run(self, flags: RunFlags = RunFlags.NONE) -> None:
        """Serve events until :meth:`exit`, or once with ``RunFlags.ONCE``."""
        self._require_open()
        flags = RunFlags(flags)
        block = not flags & RunFlags.NONBLOCK

        self.running = True
        for watcher in list(self._watchers):
            watcher._loop_started()

        while self.running and self._watchers:
            if self._workaround and self._serve_polled():
                continue
            self._workaround = False

            try:
                ready = self._poll(block)
            except OSError:
                if not self.running:
                    break
                self.exit()
                raise

            for watcher, events in ready:
                if not self.running:
                    break
                if watcher._state is _State.STOPPED:
                    continue
                events = watcher._dispatch(events)
                # The callback may stop or discard its own watcher.
                if watcher.callback is not None:
                    watcher.callback(watcher, watcher.arg, Events(events & EVENT_MASK))

            if flags & RunFlags.ONCE:
                break

    def _serve_polled(self) -> bool:
        served = 0
        for watcher in list(self._watchers):
            if watcher._state is not _State.POLLED or watcher.callback is None:
                continue
            if not _has_data(watcher.fd):
                watcher._state = _State.STOPPED
                self._unlink(watcher)
            served += 1
            watcher.callback(watcher, watcher.arg, Events.READ)
        return served > 0

    def _poll(self, block: bool) -> List[Tuple["Watcher", Events]]:
        selector = self._require_open()
        timeout: Optional[float] = None if block else 0
        if block:
            waits = [r for w in self._watchers if (r := w._remaining()) is not None]
            if waits:
                timeout = max(0.0, min(waits))

        ready: List[Tuple[Watcher, Events]] = []
        for key, mask in selector.select(timeout):
            events = Events.NONE
            if mask & selectors.EVENT_READ:
                events |= Events.READ
            if mask & selectors.EVENT_WRITE:
                events |= Events.WRITE
            ready.append((key.data, events))

        for watcher in list(self._watchers):
            remaining = watcher._remaining()
            if remaining is not None and remaining <= 0:
                ready.append((watcher, Events.READ))

        ready = ready[: self.maxevents]
        for watcher, _ in ready:
            if watcher.needs_fd and watcher.events & Events.ONESHOT:
                self._unregister(watcher)
        return ready


class Watcher:
    """A callback bound to a descriptor or other event source in a context."""

    kind: WatcherType = WatcherType.IO
    needs_fd = True

    def __init__(
        self,
        ctx: Context,
        callback: Optional[Callback],
        arg: Any = None,
        fd: int = -1,
        events: Events = Events.READ,
    ) -> None:
        if ctx is None:
            raise ValueError("a watcher needs a context")
        self.ctx = ctx
        self.callback = callback
        self.arg = arg
        self.fd = fd
        self.events = Events(events)
        self.signo = 0
        self.siginfo: Any = None
        self._state = _State.STOPPED
        self._registered = False

    def __repr__(self) -> str:
        return (
            f"<{type(self).__name__} kind={self.kind.name} fd={self.fd} "
            f"events={self.events!r} active={self.active}>"
        )

    @property
    def active(self) -> bool:
        """True while the watcher is registered with its loop."""
        return self._state is _State.ACTIVE

    def start(self) -> None:
        """Register the watcher with its loop; no-op if already started."""
        if self.needs_fd and (self.fd is None or self.fd < 0):
            raise ValueError("watcher has no valid descriptor")
        self.ctx._require_open()
        if self._state is not _State.STOPPED:
            return

        if self.needs_fd:
            try:
                self.ctx._register(self)
            except PermissionError:
                # Stdin redirected from a regular file cannot be polled.
                if self.kind is not WatcherType.IO or self.events != Events.READ or self.fd != 0:
                    raise
                self.ctx._workaround = True
                self._state = _State.POLLED
            else:
                self._state = _State.ACTIVE
        else:
            self._state = _State.ACTIVE

        self.ctx._link(self)

    def stop(self) -> None:
        """Unregister the watcher; no-op if it is not active."""
        if not self.active:
            return
        self._state = _State.STOPPED
        self.ctx._unlink(self)
        if self._registered:
            self.ctx._unregister(self)

    def rearm(self) -> None:
        """Re-enable a one-shot watcher after it has fired."""
        if not self.needs_fd:
            return
        if self.fd is None or self.fd < 0:
            raise ValueError("watcher has no valid descriptor")
        self.ctx._register(self)

    # Hooks for specialised watchers.

    def _loop_started(self) -> None:
        """Called for each linked watcher when the loop starts running."""

    def _remaining(self) -> Optional[float]:
        """Seconds until a timed watcher is due, or None if not timed."""
        return None

    def _dispatch(self, events: Events) -> Events:
        """Prepare for the callback and return the events to report."""
        if events & (Events.HUP | Events.ERROR):
            self.stop()
        return events