"""Stand-in counters for exercising code that talks to a request queue."""

from __future__ import annotations

import queue
import threading
from dataclasses import dataclass
from datetime import timedelta
from typing import Dict, Optional

from scalegate.counts import Count, Counts
from scalegate.memory import Counter, CountReader

__all__ = ["HostAndCount", "FakeCounter", "FakeCountReader"]


@dataclass(frozen=True)
class HostAndCount:
    """A change of ``count`` applied to the queue of ``host``."""

    host: str
    count: int


class FakeCounter(Counter):
    """A counter that reports every change on the ``resized`` queue.

    ``resized`` holds at most one unread notification; a change made while
    one is still unread waits up to ``resize_timeout`` seconds and then
    raises TimeoutError (the counts themselves are already updated).
    """

    def __init__(self, resize_timeout: float = 1.0) -> None:
        self._lock = threading.Lock()
        self.ret_map: Dict[str, Count] = {}
        self.resized: "queue.Queue[HostAndCount]" = queue.Queue(maxsize=1)
        self.resize_timeout = resize_timeout

    def _notify(self, operation: str, host: str, delta: int) -> None:
        try:
            self.resized.put(HostAndCount(host, delta), timeout=self.resize_timeout)
        except queue.Full:
            raise TimeoutError(
                f"FakeCounter.{operation} timeout after {self.resize_timeout}s"
            ) from None

    def increase(self, host: str, delta: int) -> None:
        with self._lock:
            count = self.ret_map.get(host, Count())
            self.ret_map[host] = Count(count.concurrency + delta, count.rps + delta)
        self._notify("increase", host, delta)

    def decrease(self, host: str, delta: int) -> None:
        with self._lock:
            count = self.ret_map.get(host, Count())
            self.ret_map[host] = Count(count.concurrency - delta, count.rps)
        self._notify("decrease", host, delta)

    def ensure_key(self, host: str, window: timedelta, granularity: timedelta) -> None:
        with self._lock:
            self.ret_map[host] = Count()

    def update_buckets(self, host: str, window: timedelta, granularity: timedelta) -> None:
        """Rate buckets are not modelled, so there is nothing to update."""

    def remove_key(self, host: str) -> bool:
        with self._lock:
            return self.ret_map.pop(host, None) is not None

    def current(self) -> Counts:
        with self._lock:
            return Counts(dict(self.ret_map))


@dataclass
class FakeCountReader(CountReader):
    """Reports fixed counts for ``sample.com``, or raises ``error`` when set."""

    concurrency: int = 0
    rps: float = 0.0
    error: Optional[BaseException] = None

    def current(self) -> Counts:
        if self.error is not None:
            raise self.error
        return Counts({"sample.com": Count(self.concurrency, self.rps)})