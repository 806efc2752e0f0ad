"""In-memory counters of pending requests and request rates per host."""

from __future__ import annotations

import abc
import threading
from datetime import datetime, timedelta, timezone
from typing import Callable, Dict, Optional

from scalegate.buckets import RequestsBuckets
from scalegate.counts import Count, Counts

__all__ = ["CountReader", "Counter", "Memory"]


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


class CountReader(abc.ABC):
    """Reads the current size of a possibly distributed request queue."""

    @abc.abstractmethod
    def current(self) -> Counts:
        """Return a point-in-time snapshot of the counts for every host."""


class Counter(CountReader):
    """A request queue whose size per host can be changed as well as read."""

    @abc.abstractmethod
    def increase(self, host: str, delta: int) -> None:
        """Grow the queue of ``host`` by ``delta``."""

    @abc.abstractmethod
    def decrease(self, host: str, delta: int) -> None:
        """Shrink the queue of ``host`` by ``delta``."""

    @abc.abstractmethod
    def ensure_key(self, host: str, window: timedelta, granularity: timedelta) -> None:
        """Make sure ``host`` is tracked by this counter."""

    @abc.abstractmethod
    def update_buckets(self, host: str, window: timedelta, granularity: timedelta) -> None:
        """Replace the rate buckets of ``host`` if their settings changed."""

    @abc.abstractmethod
    def remove_key(self, host: str) -> bool:
        """Stop tracking ``host``; tell whether it was tracked."""


class Memory(Counter):
    """A counter that keeps the whole queue in this process's memory.

    ``clock`` returns the current time; it defaults to the UTC wall clock.
    """

    def __init__(self, clock: Optional[Callable[[], datetime]] = None) -> None:
        self._clock = clock or _utc_now
        self._lock = threading.Lock()
        self._concurrency: Dict[str, int] = {}
        self._rates: Dict[str, RequestsBuckets] = {}

    def increase(self, host: str, delta: int) -> None:
        """Add ``delta`` pending requests and record them in the rate buckets.

        Raises KeyError if ``host`` was never passed to ``ensure_key``.
        """
        with self._lock:
            buckets = self._rates.get(host)
            if buckets is None:
                raise KeyError(f"host {host!r} is not tracked")
            self._concurrency[host] = self._concurrency.get(host, 0) + delta
            buckets.record(self._clock(), delta)

    def decrease(self, host: str, delta: int) -> None:
        """Remove ``delta`` pending requests, never going below zero.

        Unknown hosts are left alone.
        """
        with self._lock:
            current = self._concurrency.get(host)
            if current is None:
                return
            self._concurrency[host] = max(current - delta, 0)

    def _ensure_key_locked(self, host: str, window: timedelta, granularity: timedelta) -> None:
        self._concurrency.setdefault(host, 0)
        if host not in self._rates:
            self._rates[host] = RequestsBuckets(window, granularity)

    def ensure_key(self, host: str, window: timedelta, granularity: timedelta) -> None:
        with self._lock:
            self._ensure_key_locked(host, window, granularity)

    def update_buckets(self, host: str, window: timedelta, granularity: timedelta) -> None:
        with self._lock:
            self._ensure_key_locked(host, window, granularity)
            buckets = self._rates[host]
            if buckets.window != window or buckets.granularity != granularity:
                self._rates[host] = RequestsBuckets(window, granularity)

    def remove_key(self, host: str) -> bool:
        with self._lock:
            had_concurrency = self._concurrency.pop(host, None) is not None
            had_rate = self._rates.pop(host, None) is not None
            return had_concurrency and had_rate

    def current(self) -> Counts:
        """Return the concurrency and windowed request rate of every host."""
        with self._lock:
            now = self._clock()
            snapshot: Dict[str, Count] = {}
            for host, concurrency in self._concurrency.items():
                buckets = self._rates.get(host)
                if buckets is None:
                    raise LookupError(f"rps map doesn't contain the key {host!r}")
                snapshot[host] = Count(concurrency, buckets.window_average(now))
            return Counts(snapshot)