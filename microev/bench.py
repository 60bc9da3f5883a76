"""Event loop benchmark: a chain of writes propagated through many pipes."""

from __future__ import annotations

import dataclasses
import getopt
import os
import random
import re
import sys
import time
from typing import List, Optional, Sequence, Tuple

from .io import IoWatcher
from .loop import Context, Events, RunFlags, Watcher
from .timer import TimerWatcher

_STEP = RunFlags.ONCE | RunFlags.NONBLOCK


@dataclasses.dataclass(frozen=True)
class BenchSample:
    """Timing of one benchmark round, in microseconds."""

    total_us: int
    loop_us: int
    events: int
    iterations: int


def _timer_ms() -> int:
    return int(10000 + random.random() * 1000)


def _idle(watcher: Watcher, arg: object, events: Events) -> None:
    pass


class _Bench:
    def __init__(
        self, ctx: Context, num_pipes: int, num_active: int, num_writes: int, timers: bool
    ) -> None:
        self.ctx = ctx
        self.num_pipes = num_pipes
        self.num_active = num_active
        self.num_writes = num_writes
        self.pipes: List[Tuple[int, int]] = []
        self.readers: List[IoWatcher] = []
        self.timers: List[TimerWatcher] = []
        self.count = 0
        self.fired = 0
        self.writes = 0

        for index in range(num_pipes):
            if timers:
                self.timers.append(TimerWatcher(ctx, _idle, None, 0, 0))
            rfd, wfd = os.pipe()
            os.set_blocking(rfd, False)
            os.set_blocking(wfd, False)
            self.pipes.append((rfd, wfd))
            self.readers.append(IoWatcher(ctx, self._on_read, index, rfd, Events.READ))

    def close(self) -> None:
        for rfd, wfd in self.pipes:
            os.close(rfd)
            os.close(wfd)
        self.pipes.clear()

    def _on_read(self, watcher: Watcher, index: int, events: Events) -> None:
        if self.timers:
            self.timers[index].set(_timer_ms(), 0)

        self.count += len(os.read(watcher.fd, 1))
        if self.writes:
            target = (index + 1) % self.num_pipes
            os.write(self.pipes[target][1], b"e")
            self.writes -= 1
            self.fired += 1

    def run_once(self) -> BenchSample:
        started = time.perf_counter()
        for reader, timer_index in zip(self.readers, range(len(self.pipes))):
            reader.set(self.pipes[timer_index][0], Events.READ)
            if self.timers:
                self.timers[timer_index].set(_timer_ms(), 0)

        self.ctx.run(_STEP)

        self.fired = 0
        space = self.num_pipes // self.num_active
        for rank in range(self.num_active):
            os.write(self.pipes[rank * space][1], b"e")
            self.fired += 1

        self.count = 0
        self.writes = self.num_writes
        iterations = 0
        looped = time.perf_counter()
        while True:
            self.ctx.run(_STEP)
            iterations += 1
            if self.count == self.fired:
                break
        finished = time.perf_counter()

        return BenchSample(
            total_us=int((finished - started) * 1_000_000),
            loop_us=int((finished - looped) * 1_000_000),
            events=self.count,
            iterations=iterations,
        )


def run_benchmark(
    num_pipes: int = 100,
    num_active: int = 1,
    num_writes: Optional[int] = None,
    timers: bool = False,
) -> List[BenchSample]:
    """Run two rounds over ``num_pipes`` pipes and return their timings."""
    if num_writes is None:
        num_writes = num_pipes
    if num_pipes < 1:
        raise ValueError("need at least one pipe")
    if not 1 <= num_active <= num_pipes:
        raise ValueError("active pipes must be between 1 and the number of pipes")
    if num_writes < 0:
        raise ValueError("number of writes must not be negative")

    with Context() as ctx:
        bench = _Bench(ctx, num_pipes, num_active, num_writes, timers)
        try:
            return [bench.run_once() for _ in range(2)]
        finally:
            ctx.exit()
            bench.close()


def _atoi(text: str) -> int:
    match = re.match(r"\s*([+-]?\d+)", text)
    return int(match.group(1)) if match else 0


def _raise_fd_limit(needed: int) -> None:
    try:
        import resource
    except ImportError:
        return
    soft, hard = resource.getrlimit(resource.RLIMIT_NOFILE)
    if soft == resource.RLIM_INFINITY or soft >= needed:
        return
    if hard != resource.RLIM_INFINITY and hard < needed:
        raise OSError(f"descriptor limit {hard} is below the {needed} needed")
    resource.setrlimit(resource.RLIMIT_NOFILE, (needed, hard))


def main(argv: Optional[Sequence[str]] = None) -> int:
    """Command line entry: ``-a active -n pipes -t -w writes``."""
    args = sys.argv[1:] if argv is None else list(argv)
    num_pipes = 100
    num_active = 1
    num_writes = num_pipes
    timers = False

    try:
        opts, _ = getopt.getopt(args, "a:n:tw:")
    except getopt.GetoptError as exc:
        print(f'Illegal argument "{exc.opt}"', file=sys.stderr)
        return 1

    for opt, value in opts:
        if opt == "-a":
            num_active = _atoi(value)
        elif opt == "-n":
            num_pipes = _atoi(value)
        elif opt == "-t":
            timers = True
        elif opt == "-w":
            num_writes = _atoi(value)

    try:
        _raise_fd_limit(num_pipes * 3 + 50)
    except (OSError, ValueError) as exc:
        print(f"setrlimit: {exc}", file=sys.stderr)
        return 1

    try:
        samples = run_benchmark(num_pipes, num_active, num_writes, timers)
    except ValueError as exc:
        print(f"bench: {exc}", file=sys.stderr)
        return 1

    for sample in samples:
        if sample.iterations != sample.events:
            print(f"Xcount: {sample.iterations}, Rcount: {sample.events}", file=sys.stderr)
        print(f"{sample.total_us:8d} {sample.loop_us:8d}")
    return 0


if __name__ == "__main__":
    sys.exit(main())