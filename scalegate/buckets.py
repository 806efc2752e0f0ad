"""Time-bucketed request counts over a sliding window."""

from __future__ import annotations

import math
import threading
from datetime import datetime, timedelta, timezone
from typing import Iterator, List, Optional, Tuple

__all__ = ["RequestsBuckets", "round_to_n_digits"]

PRECISION = 3

_NS_PER_SECOND = 1_000_000_000
_EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)
# Stands for "never written": far enough in the past that every real
# instant is more than a window after it.
_NEVER = -62_135_596_800 * _NS_PER_SECOND


def _duration_ns(value: timedelta) -> int:
    return (value.days * 86_400 + value.seconds) * _NS_PER_SECOND + value.microseconds * 1_000


def _instant_ns(moment: datetime) -> int:
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    return _duration_ns(moment - _EPOCH)


def _from_ns(ns: int) -> datetime:
    return _EPOCH + timedelta(microseconds=ns // 1_000)


def _div_toward_zero(a: int, b: int) -> int:
    quotient = abs(a) // abs(b)
    return quotient if (a >= 0) == (b > 0) else -quotient


def round_to_n_digits(n: int, f: float) -> float:
    """Round ``f`` down to ``n`` decimal digits."""
    scale = 10.0**n
    return math.floor(f * scale) / scale


class RequestsBuckets:
    """Counts recorded per time bucket, forming a ring that spans one window.

    Times are ``datetime`` values (naive ones are taken as UTC); the window
    and the granularity are ``timedelta`` values. The granularity must be at
    least one second.
    """

    def __init__(self, window: timedelta, granularity: timedelta) -> None:
        window_ns = _duration_ns(window)
        granularity_ns = _duration_ns(granularity)
        if window_ns <= 0:
            raise ValueError("window must be positive")
        index_step = int(granularity.total_seconds())
        if index_step <= 0:
            raise ValueError("granularity must be at least one second")

        self.window = window
        self.granularity = granularity
        self._window_ns = window_ns
        self._granularity_ns = granularity_ns
        self._index_step = index_step
        self._lock = threading.Lock()
        self._buckets: List[int] = [0] * -(-window_ns // granularity_ns)
        self._first_write: Optional[int] = None
        self._last_write = _NEVER
        self._window_total = 0

    @property
    def buckets(self) -> List[int]:
        """A copy of the ring of bucket values."""
        with self._lock:
            return list(self._buckets)

    def _truncate(self, ns: int) -> int:
        return ns - ns % self._granularity_ns

    def _index(self, ns: int) -> int:
        return _div_toward_zero(ns // _NS_PER_SECOND, self._index_step)

    def _valid_buckets(self) -> float:
        assert self._first_write is not None
        span = _div_toward_zero(self._last_write - self._first_write, self._granularity_ns) + 1
        return min(float(span), float(len(self._buckets)))

    def is_empty(self, now: datetime) -> bool:
        """Tell whether nothing was recorded during the window before ``now``."""
        now_ns = self._truncate(_instant_ns(now))
        with self._lock:
            return now_ns - self._last_write > self._window_ns

    def window_average(self, now: datetime) -> float:
        """Return the average bucket value over the valid part of the window.

        The average covers only the buckets since the first write when that is
        less than a window ago, and leaves out the buckets after the last
        write. Gaps between writes count as zero; nothing for a whole window
        gives zero.
        """
        now_ns = self._truncate(_instant_ns(now))
        with self._lock:
            elapsed = now_ns - self._last_write
            if elapsed > 0 and elapsed >= self._window_ns:
                return 0.0
            total = self._window_total
            if elapsed > 0:
                size = len(self._buckets)
                start = self._index(self._last_write)
                end = self._index(now_ns)
                for index in range(start + 1, end + 1):
                    total -= self._buckets[index % size]
            return round_to_n_digits(PRECISION, total / self._valid_buckets())

    def record(self, now: datetime, value: int) -> None:
        """Add ``value`` to the bucket of ``now``.

        Buckets skipped since the last write are cleared; a write after a
        whole window of silence restarts the window; a write older than a
        window before the last one is ignored.
        """
        now_ns = _instant_ns(now)
        bucket_ns = self._truncate(now_ns)
        with self._lock:
            size = len(self._buckets)
            write_index = self._index(now_ns)

            if self._last_write != bucket_ns:
                if bucket_ns + self._window_ns <= self._last_write:
                    return
                if self._first_write is None or self._first_write > bucket_ns:
                    self._first_write = bucket_ns
                if bucket_ns > self._last_write:
                    if bucket_ns - self._last_write >= self._window_ns:
                        self._first_write = bucket_ns
                        self._buckets = [0] * size
                        self._window_total = 0
                    else:
                        for index in range(self._index(self._last_write) + 1, write_index + 1):
                            slot = index % size
                            self._window_total -= self._buckets[slot]
                            self._buckets[slot] = 0
                    self._last_write = bucket_ns

            self._buckets[write_index % size] += value
            self._window_total += value

    def iter_buckets(self, now: datetime) -> Iterator[Tuple[datetime, int]]:
        """Yield ``(bucket time, value)`` from the last write backwards.

        Only the buckets still inside the window that ends at ``now`` are
        yielded.
        """
        now_ns = self._truncate(_instant_ns(now))
        with self._lock:
            size = len(self._buckets)
            count = size - _div_toward_zero(now_ns - self._last_write, self._granularity_ns)
            bucket_ns = self._last_write
            index = self._index(bucket_ns)
            snapshot = []
            for _ in range(max(count, 0)):
                snapshot.append((bucket_ns, self._buckets[index % size]))
                index -= 1
                bucket_ns -= self._granularity_ns
        for moment_ns, value in snapshot:
            yield _from_ns(moment_ns), value