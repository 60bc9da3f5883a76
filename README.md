# microev

A small event loop. One `Context` drives any number of watchers,
multiplexed over the platform's default `selectors` selector:

| Watcher         | Module            | Fires when                                                   |
|-----------------|-------------------|--------------------------------------------------------------|
| `IoWatcher`     | `microev.io`      | a descriptor is readable or writable                         |
| `TimerWatcher`  | `microev.timer`   | a monotonic timeout (milliseconds) expires, once or periodic |
| `CronWatcher`   | `microev.cron`    | a wall-clock time (seconds since the epoch) is reached, optionally repeating |
| `SignalWatcher` | `microev.signals` | the process receives a given signal                          |
| `EventWatcher`  | `microev.event`   | someone calls `post()` on it                                 |

The loop, the base `Watcher` class and the flag types `Events`,
`RunFlags` and `WatcherType` live in `microev.loop`. The package needs
nothing beyond the standard library and runs on POSIX systems; on Linux,
`EventWatcher` uses an eventfd, elsewhere a pipe.

## Installing

```
pip install .
```

To run the tests:

```
pip install ".[test]"
pytest
```

## Using the loop

```python
from microev.loop import Context, Events
from microev.timer import TimerWatcher

def tick(watcher, arg, events):
    print("tick", arg)
    arg["n"] += 1
    if arg["n"] == 3:
        watcher.ctx.exit()

with Context() as ctx:
    TimerWatcher(ctx, tick, {"n": 0}, 100, 100)
    ctx.run()
```

1. Create a `Context`. `Context(maxevents)` limits how many events are
   served per loop round (at least 1, at most 10, the default). A context
   is also a context manager; leaving it calls `exit()`.
2. Create watchers on it. Every callback is called as
   `callback(watcher, arg, events)`, with the `arg` given when the watcher
   was created and the `Events` that occurred.
3. Call `ctx.run(flags)`. With no flags it runs until `ctx.exit()` is
   called or no watchers are left. `RunFlags.ONCE` returns after one round;
   `RunFlags.ONCE | RunFlags.NONBLOCK` returns at once if nothing is
   pending. If polling fails, the loop is shut down and the `OSError`
   propagates.

`ctx.exit()` stops every watcher and closes the context; calling it twice
is harmless. `ctx.closed` tells whether it has been closed and
`ctx.watchers` lists the watchers currently linked, newest first.

### Watchers

Every watcher has `start()`, `stop()` and an `active` property; most
also have `set(...)` to re-arm with new parameters. Callbacks should be
prepared to receive `Events.ERROR`, and I/O callbacks `Events.HUP`.

- `IoWatcher(ctx, callback, arg, fd, events)` starts at once. `events` is
  a combination of `Events.READ` and `Events.WRITE`, optionally with
  `Events.ONESHOT`; `set(fd, events)` on an active one-shot watcher
  re-arms it. A negative descriptor raises `ValueError`. Stopping the
  watcher does not close the descriptor.
- `TimerWatcher(ctx, callback, arg, timeout, period)` fires after
  `timeout` ms, then every `period` ms. A period of zero makes a one-shot
  that stops itself after firing; a timeout of zero leaves it disarmed.
  Negative values raise `ValueError`.
- `CronWatcher(ctx, callback, arg, when, interval)` fires at the absolute
  time `when`, then every `interval` seconds (zero for a one-time job). If
  the wall clock is set while the job is armed, the callback gets
  `Events.HUP`.
- `SignalWatcher(ctx, callback, arg, signo)` replaces the signal's
  handler while it is active and restores the previous one when the last
  watcher of that signal stops. After each delivery `watcher.siginfo` is a
  `SignalInfo` holding `signo`, or `None` after a spurious wake-up.
  Python only lets the main thread install signal handlers.
- `EventWatcher(ctx, callback, arg)` fires after `post()`, which may be
  called from another thread; posts made before the watcher is served
  coalesce into one callback. `post()` on a stopped watcher raises
  `ValueError`.

Timers and cron jobs created before `run` are held and armed when the
loop starts; ones created while it runs are armed at once.

Standard input redirected from a regular file (`program < file.txt`),
which the selector refuses, is served as a special case: the watcher's
callback is called with `Events.READ` for as long as data remains.

### Benchmark from Python

`microev.bench.run_benchmark(num_pipes=100, num_active=1, num_writes=None,
timers=False)` runs two rounds and returns a list of `BenchSample`
records with `total_us`, `loop_us`, `events` and `iterations`.

## Commands

```
microev-bench [-n PIPES] [-a ACTIVE] [-w WRITES] [-t]
```

Chains writes across `PIPES` pipes (default 100), starting from `ACTIVE`
writers (default 1) and propagating `WRITES` further writes (default 100);
`-t` adds a timer per pipe that is re-armed on every read. Prints the
total and the loop time in microseconds for each of two rounds. Raises the
open-file limit if needed.

```
microev-ctrl
```

Prints a message every two seconds; Ctrl-C is caught and ignored, Ctrl-\
exits cleanly.

```
microev-forky
```

Like `microev-ctrl`, but with two periodic timers, one per robot, each
announcing itself in the same loop.

```
microev-joystick [DEVICE]
```

Reports button and axis events from a joystick device, by default
`/dev/input/js0`.

```
echo hello | microev-redirect
microev-redirect < some-file.txt
```

Copies standard input to standard output, reporting how many bytes each
read returned; works for pipes and for redirected regular files.

## What it does not do

- Signal information is limited to the signal number; the sender's
  process id and other details are not available.
- `microev-forky` runs both robots in one process; it does not fork.
- There is no cross-thread wake-up other than `EventWatcher.post()`;
  a `Context` is meant to be driven from a single thread.