import contextlib
import os

import pytest

from microev.io import IoWatcher
from microev.loop import Context, Events, RunFlags


@pytest.fixture
def ctx():
    context = Context()
    yield context
    context.exit()


@pytest.fixture
def pipe():
    rfd, wfd = os.pipe()
    yield rfd, wfd
    for fd in (rfd, wfd):
        with contextlib.suppress(OSError):
            os.close(fd)


def test_read_callback_gets_data_and_arg(ctx, pipe):
    rfd, wfd = pipe
    seen = []

    def cb(w, arg, events):
        seen.append((arg, events, os.read(w.fd, 64)))

    watcher = IoWatcher(ctx, cb, "arg", rfd, Events.READ)
    os.write(wfd, b"hello")
    ctx.run(RunFlags.ONCE)

    assert seen == [("arg", Events.READ, b"hello")]
    assert watcher.fd == rfd
    assert watcher.active
    assert watcher in ctx.watchers


def test_negative_descriptor_rejected(ctx):
    with pytest.raises(ValueError):
        IoWatcher(ctx, None, None, -1, Events.READ)


def test_stop_and_start_update_watcher_list(ctx, pipe):
    rfd, _ = pipe
    w = IoWatcher(ctx, lambda *a: None, None, rfd, Events.READ)
    assert w.active
    assert w in ctx.watchers

    w.stop()
    assert not w.active
    assert w not in ctx.watchers

    w.start()
    assert w.active
    assert w in ctx.watchers


def test_write_watcher_reports_write(ctx, pipe):
    _, wfd = pipe
    seen = []

    IoWatcher(ctx, lambda w, arg, ev: seen.append(ev), None, wfd, Events.WRITE)
    ctx.run(RunFlags.ONCE)

    assert seen == [Events.WRITE]


def test_nonblocking_run_with_nothing_pending(ctx, pipe):
    rfd, _ = pipe
    seen = []
    w = IoWatcher(ctx, lambda *a: seen.append(a), None, rfd, Events.READ)

    ctx.run(RunFlags.ONCE | RunFlags.NONBLOCK)

    assert seen == []
    assert w.active


def test_oneshot_needs_rearm(ctx, pipe):
    rfd, wfd = pipe
    calls = []
    w = IoWatcher(ctx, lambda *a: calls.append(a), None, rfd, Events.READ | Events.ONESHOT)
    os.write(wfd, b"x")

    ctx.run(RunFlags.ONCE | RunFlags.NONBLOCK)
    assert len(calls) == 1

    # Data is still pending, but the one-shot watcher is disarmed.
    ctx.run(RunFlags.ONCE | RunFlags.NONBLOCK)
    assert len(calls) == 1

    w.set(rfd, Events.READ | Events.ONESHOT)
    ctx.run(RunFlags.ONCE | RunFlags.NONBLOCK)
    assert len(calls) == 2


def test_set_moves_to_new_descriptor(ctx, pipe):
    old_r, old_w = pipe
    new_r, new_w = os.pipe()
    try:
        data = []
        w = IoWatcher(ctx, lambda w, a, e: data.append(os.read(w.fd, 64)), None, old_r, Events.READ)
        w.set(new_r, Events.READ)
        assert w.fd == new_r

        os.write(old_w, b"old")
        ctx.run(RunFlags.ONCE | RunFlags.NONBLOCK)
        assert data == []

        os.write(new_w, b"new")
        ctx.run(RunFlags.ONCE | RunFlags.NONBLOCK)
        assert data == [b"new"]
    finally:
        os.close(new_r)
        os.close(new_w)


def test_set_with_invalid_descriptor_leaves_watcher_stopped(ctx, pipe):
    rfd, _ = pipe
    w = IoWatcher(ctx, None, None, rfd, Events.READ)
    with pytest.raises(ValueError):
        w.set(-1, Events.READ)
    assert not w.active


def test_same_descriptor_twice_rejected(ctx, pipe):
    rfd, _ = pipe
    IoWatcher(ctx, None, None, rfd, Events.READ)
    with pytest.raises(FileExistsError):
        IoWatcher(ctx, None, None, rfd, Events.READ)


def test_callback_stopping_itself_ends_loop(ctx, pipe):
    rfd, wfd = pipe
    calls = []

    def cb(w, arg, events):
        calls.append(os.read(w.fd, 64))
        w.stop()

    IoWatcher(ctx, cb, None, rfd, Events.READ)
    os.write(wfd, b"bye")
    ctx.run()

    assert calls == [b"bye"]
    assert ctx.watchers == ()


def test_exit_stops_watchers(pipe):
    rfd, _ = pipe
    context = Context()
    w = IoWatcher(context, None, None, rfd, Events.READ)
    context.exit()

    assert not w.active
    assert context.closed
    with pytest.raises(RuntimeError):
        w.start()