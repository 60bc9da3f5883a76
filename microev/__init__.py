"""A small event loop with I/O, timer, cron, signal and event watchers."""

__version__ = "2.4.1"

__all__ = ["loop", "io", "timer", "cron", "signals", "event", "bench", "demos"]