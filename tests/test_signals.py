import signal

import pytest

from microev.loop import Context, Events, RunFlags
from microev.signals import SignalWatcher
from microev.timer import TimerWatcher

SIG1 = signal.SIGUSR1
SIG2 = signal.SIGUSR2


@pytest.fixture
def ctx():
    context = Context()
    yield context
    context.exit()


def _guard(ctx, ms=3000):
    return TimerWatcher(ctx, lambda w, a, e: w.ctx.exit(), None, ms, 0)


def test_raised_signal_reaches_callback(ctx):
    seen = []

    def cb(w, arg, events):
        seen.append((w.signo, w.siginfo.signo, arg, events))
        w.ctx.exit()

    SignalWatcher(ctx, cb, "payload", SIG1)
    _guard(ctx)
    signal.raise_signal(SIG1)
    ctx.run()
    assert seen == [(SIG1, SIG1, "payload", Events.READ)]


def test_signal_raised_from_timer_then_deadline_ends_loop(ctx):
    state = {"magic": 1337}
    log = []

    def sig_cb(w, arg, events):
        log.append(("signal", w.signo, arg["magic"]))

    def work_cb(w, arg, events):
        log.append(("work",))
        signal.raise_signal(SIG1)

    def exit_cb(w, arg, events):
        log.append(("deadline",))
        w.ctx.exit()

    SignalWatcher(ctx, sig_cb, {"magic": 0}, SIG2)
    SignalWatcher(ctx, sig_cb, state, SIG1)
    TimerWatcher(ctx, work_cb, state, 400, 0)
    TimerWatcher(ctx, exit_cb, None, 1000, 0)
    ctx.run()
    assert log == [("work",), ("signal", SIG1, 1337), ("deadline",)]


def test_stop_restores_previous_handler(ctx):
    before = signal.getsignal(SIG1)
    watcher = SignalWatcher(ctx, None, None, SIG1)
    assert signal.getsignal(SIG1) != before
    watcher.stop()
    assert signal.getsignal(SIG1) == before
    assert watcher.fd == -1
    assert not watcher.active


def test_start_after_stop_receives_again(ctx):
    seen = []

    def cb(w, arg, events):
        seen.append(w.siginfo.signo)
        w.ctx.exit()

    watcher = SignalWatcher(ctx, cb, None, SIG1)
    watcher.stop()
    watcher.start()
    assert watcher.active
    _guard(ctx)
    signal.raise_signal(SIG1)
    ctx.run()
    assert seen == [SIG1]


def test_set_switches_to_another_signal(ctx):
    before = signal.getsignal(SIG1)
    seen = []

    def cb(w, arg, events):
        seen.append((w.signo, w.siginfo.signo))
        w.ctx.exit()

    watcher = SignalWatcher(ctx, cb, None, SIG1)
    watcher.set(SIG2)
    assert signal.getsignal(SIG1) == before
    _guard(ctx)
    signal.raise_signal(SIG2)
    ctx.run()
    assert seen == [(SIG2, SIG2)]


def test_two_watchers_of_one_signal_both_fire(ctx):
    seen = []
    SignalWatcher(ctx, lambda w, a, e: seen.append(a), "first", SIG1)
    SignalWatcher(ctx, lambda w, a, e: seen.append(a), "second", SIG1)
    signal.raise_signal(SIG1)
    ctx.run(RunFlags.ONCE | RunFlags.NONBLOCK)
    assert sorted(seen) == ["first", "second"]


def test_exit_releases_signal(ctx):
    before = signal.getsignal(SIG2)
    watcher = SignalWatcher(ctx, None, None, SIG2)
    ctx.exit()
    assert signal.getsignal(SIG2) == before
    assert watcher.fd == -1


def test_invalid_signal_number_is_rejected(ctx):
    with pytest.raises(ValueError):
        SignalWatcher(ctx, None, None, 0)
    assert ctx.watchers == ()