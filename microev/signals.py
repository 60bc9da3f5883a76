"""Signal watchers, delivered through the event loop instead of handlers."""

from __future__ import annotations

import dataclasses
import os
import signal as _signal
from typing import Any, Dict, Optional, Set

from .loop import Callback, Context, Events, Watcher, WatcherType


@dataclasses.dataclass(frozen=True)
class SignalInfo:
    """What is known about a received signal."""

    signo: int


# Signal number -> write ends of the pipes of the watchers that want it.
_targets: Dict[int, Set[int]] = {}
# Signal number -> handler that was installed before the first watcher.
_saved: Dict[int, Any] = {}


def _deliver(signo: int, frame: object) -> None:
    for wfd in tuple(_targets.get(signo, ())):
        try:
            os.write(wfd, bytes((signo,)))
        except OSError:
            # Pipe full: the watcher already has this signal pending.
            pass


def _subscribe(signo: int, wfd: int) -> None:
    if signo not in _targets:
        previous = _signal.signal(signo, _deliver)
        _saved[signo] = previous if previous is not None else _signal.SIG_DFL
        _targets[signo] = set()
    _targets[signo].add(wfd)


def _unsubscribe(signo: int, wfd: int) -> None:
    targets = _targets.get(signo)
    if targets is None:
        return
    targets.discard(wfd)
    if not targets:
        del _targets[signo]
        _signal.signal(signo, _saved.pop(signo, _signal.SIG_DFL))


class SignalWatcher(Watcher):
    """Calls back when the process receives signal ``signo``.

    While the watcher is active the signal is not handled according to
    its previous disposition; that disposition is restored once the last
    watcher of the signal stops.  ``siginfo`` holds a :class:`SignalInfo`
    for the signal just served, or None after a spurious wake-up.
    """

    kind = WatcherType.SIGNAL
    needs_fd = True

    def __init__(
        self,
        ctx: Context,
        callback: Optional[Callback],
        arg: Any = None,
        signo: int = 0,
    ) -> None:
        super().__init__(ctx, callback, arg)
        self._wfd = -1
        self._subscribed: Optional[int] = None
        try:
            self.set(signo)
        except Exception:
            Watcher.stop(self)
            self._release()
            raise

    def set(self, signo: int) -> None:
        """Watch for ``signo`` instead of the current signal."""
        self.signo = signo
        if self.fd < 0:
            self._open()

        if self._subscribed != signo:
            _subscribe(signo, self._wfd)
            if self._subscribed is not None:
                _unsubscribe(self._subscribed, self._wfd)
            self._subscribed = signo

        Watcher.start(self)

    def start(self) -> None:
        """Start a stopped watcher again with its last signal."""
        if self.fd != -1:
            self.stop()
        self.set(self.signo)

    def stop(self) -> None:
        """Stop watching and release the signal."""
        if not self.active:
            return
        Watcher.stop(self)
        self._release()

    def _open(self) -> None:
        rfd, wfd = os.pipe()
        os.set_blocking(rfd, False)
        os.set_blocking(wfd, False)
        self.fd, self._wfd = rfd, wfd

    def _release(self) -> None:
        if self._subscribed is not None:
            _unsubscribe(self._subscribed, self._wfd)
            self._subscribed = None
        for fd in (self.fd, self._wfd):
            if fd >= 0:
                os.close(fd)
        self.fd = -1
        self._wfd = -1

    def _dispatch(self, events: Events) -> Events:
        try:
            data = os.read(self.fd, 1)
        except OSError:
            data = b""

        if len(data) != 1:
            try:
                self.start()
            except (OSError, ValueError):
                self.stop()
                events = Events.ERROR
            self.siginfo = None
        else:
            self.siginfo = SignalInfo(data[0])
        return events