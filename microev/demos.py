"""Small programs showing the watchers in use."""

from __future__ import annotations

import os
import signal
import struct
import sys
from typing import Any, Optional, Sequence

from .io import IoWatcher
from .loop import Context, Events, Watcher
from .signals import SignalWatcher
from .timer import TimerWatcher

JOYSTICK_DEVICE = "/dev/input/js0"

_JS_EVENT = struct.Struct("=IhBB")  # time, value, type, number
_JS_BUTTON = 1
_JS_AXIS = 2
_STDOUT = 1
_STDIN = 0


def _prog() -> str:
    return os.path.basename(sys.argv[0]) or "microev"


def _warnx(message: str) -> None:
    print(f"{_prog()}: {message}", file=sys.stderr)


def _warn(message: str, exc: BaseException) -> None:
    reason = getattr(exc, "strerror", None) or str(exc)
    print(f"{_prog()}: {message}: {reason}", file=sys.stderr)


# Ctrl-C handling.

def _zero_wing(watcher: Watcher, arg: Any, events: Events) -> None:
    if events == Events.ERROR:
        print("Ignoring timer watcher error ...")
    print("Zero Wing was the pinnacle of gaming")


def _teaser(watcher: Watcher, arg: Any, events: Events) -> None:
    if events == Events.ERROR:
        print("Ignoring SIGINT watcher error ...")
    print("\nCaught SIGINT ...")
    print("Sorry, you actually need to press Ctrl-\\ to exit.")


def _cleanup(watcher: Watcher, arg: Any, events: Events) -> None:
    if events == Events.ERROR:
        print("Ignoring signal watcher error ...")
    print("\nCaught SIGQUIT, exiting.")
    watcher.ctx.exit()


def ctrl_main(argv: Optional[Sequence[str]] = None) -> int:
    """Tick every two seconds; ignore Ctrl-C, exit on Ctrl-\\."""
    with Context() as ctx:
        TimerWatcher(ctx, _zero_wing, None, 100, 2000)
        SignalWatcher(ctx, _teaser, None, signal.SIGINT)
        SignalWatcher(ctx, _cleanup, None, signal.SIGQUIT)
        print("Starting, press Ctrl-C to exit.")
        ctx.run()
    return 0


# Two robots sharing one loop, with signals.

_ROBOTS = ("Shover", "Pusher")


def _robot_says(watcher: Watcher, robot: Any, events: Events) -> None:
    if events == Events.ERROR:
        print("Ignoring timer watcher error ...")
    print(f"I am the {robot} robot")


def _protect(watcher: Watcher, arg: Any, events: Events) -> None:
    if events == Events.ERROR:
        print("Ignoring SIGINT watcher error ...")
    print("\nWe are here to protect you ...")
    print("Sorry, you actually need to press Ctrl-\\ to exit.")


def _terrible_secret(watcher: Watcher, arg: Any, events: Events) -> None:
    if events == Events.ERROR:
        print("Ignoring signal watcher error ...")
    print("\nAgainst the terrible secret of space.")
    watcher.ctx.exit()


def forky_main(argv: Optional[Sequence[str]] = None) -> int:
    """Run one periodic timer per robot; ignore Ctrl-C, exit on Ctrl-\\."""
    with Context() as ctx:
        for robot in _ROBOTS:
            TimerWatcher(ctx, _robot_says, robot, 100, 2000)
        SignalWatcher(ctx, _protect, None, signal.SIGINT)
        SignalWatcher(ctx, _terrible_secret, None, signal.SIGQUIT)
        print("Starting, press Ctrl-C to exit.")
        ctx.run()
    return 0


# Joystick input.

def _describe_js_event(data: bytes) -> Optional[str]:
    """Describe one joystick event record, or None if it is of no interest."""
    if len(data) < _JS_EVENT.size:
        return None
    _, value, kind, number = _JS_EVENT.unpack(data[: _JS_EVENT.size])
    if kind == _JS_BUTTON:
        return f"Button {number} {'pressed' if value else 'released'}"
    if kind == _JS_AXIS:
        return f"Joystick axis {number} moved, value {value}!"
    return None


def _joystick_event(watcher: Watcher, arg: Any, events: Events) -> None:
    if events == Events.ERROR:
        _warnx("Spurious problem with the joystick watcher, restarting.")
        watcher.start()

    try:
        data = os.read(watcher.fd, _JS_EVENT.size)
    except OSError as exc:
        _warn("Failed reading joystick event", exc)
        return

    if not data or events == Events.HUP:
        _warnx("Joystick disconnected")
        return

    line = _describe_js_event(data)
    if line is not None:
        print(line)


def joystick_main(argv: Optional[Sequence[str]] = None) -> int:
    """Print button and axis events from a joystick device."""
    args = sys.argv[1:] if argv is None else list(argv)
    device = args[0] if args else JOYSTICK_DEVICE
    try:
        fd = os.open(device, os.O_RDONLY | os.O_NONBLOCK)
    except OSError as exc:
        _warnx("Cannot find a joystick attached.")
        return exc.errno or 1

    try:
        with Context() as ctx:
            IoWatcher(ctx, _joystick_event, None, fd, Events.READ)
            print("Starting, press Ctrl-C to exit.")
            ctx.run()
    finally:
        os.close(fd)
    return 0


# Standard input, also when redirected from a regular file.

def _process_stdin(watcher: Watcher, arg: Any, events: Events) -> None:
    if events == Events.ERROR:
        _warnx("Spurious problem with the stdin watcher, restarting.")
        watcher.start()

    try:
        data = os.read(watcher.fd, 256)
    except OSError as exc:
        _warn("Error reading from stdin", exc)
        return

    if not data or events == Events.HUP:
        _warnx("Connection closed.")
        return

    print(f"Read {len(data)} bytes", flush=True)
    try:
        written = os.write(_STDOUT, data)
    except OSError:
        written = -1
    if written != len(data):
        _warnx("Failed writing to stdout")


def redirect_main(argv: Optional[Sequence[str]] = None) -> int:
    """Copy standard input to standard output, reporting each read."""
    ctx = Context()
    try:
        IoWatcher(ctx, _process_stdin, None, _STDIN, Events.READ)
    except (OSError, ValueError) as exc:
        ctx.exit()
        _warn("Failed setting up STDIN watcher", exc)
        return getattr(exc, "errno", None) or 1

    with ctx:
        ctx.run()
    return 0