"""Small asynchronous building blocks: signals, timeouts and shared values."""

from __future__ import annotations

import asyncio
import concurrent.futures
import threading
from typing import Any, Awaitable, Callable, Generic, Optional, TypeVar

__all__ = [
    "Signaler",
    "AtomicValue",
    "HealthChecker",
    "with_timeout",
    "is_ignored_error",
]

T = TypeVar("T")
V = TypeVar("V")


class Signaler:
    """A one-slot wake-up signal: extra signals while one is pending are dropped."""

    def __init__(self) -> None:
        self._slot: asyncio.Queue[None] = asyncio.Queue(maxsize=1)

    def signal(self) -> None:
        """Mark the signal as pending without ever blocking."""
        try:
            self._slot.put_nowait(None)
        except asyncio.QueueFull:
            pass

    async def wait(self) -> None:
        """Wait until a signal is pending and consume it."""
        await self._slot.get()


class AtomicValue(Generic[V]):
    """A value that can be read and replaced safely from several threads."""

    def __init__(self, value: Optional[V] = None) -> None:
        self._lock = threading.Lock()
        self._value = value

    def get(self) -> Optional[V]:
        with self._lock:
            return self._value

    def set(self, value: V) -> None:
        with self._lock:
            self._value = value


class HealthChecker:
    """Something whose health can be checked; ``health_check`` raises when unhealthy.

    It may wrap a plain callable, or be subclassed with ``health_check``
    overridden. Without a callable it is always healthy.
    """

    def __init__(self, check: Optional[Callable[[], None]] = None) -> None:
        self._check = check

    def health_check(self) -> None:
        if self._check is not None:
            self._check()


async def with_timeout(seconds: float, awaitable: Awaitable[T]) -> T:
    """Await ``awaitable``, raising TimeoutError if it takes longer than ``seconds``."""
    try:
        return await asyncio.wait_for(awaitable, seconds)
    except asyncio.TimeoutError as exc:
        raise TimeoutError(f"timed out after {seconds}s") from exc


def _is_ignored_one(err: BaseException) -> bool:
    if isinstance(err, (asyncio.CancelledError, concurrent.futures.CancelledError)):
        return True
    return bool(getattr(type(err), "ignored_on_shutdown", False))


def is_ignored_error(err: Optional[BaseException]) -> bool:
    """Tell whether ``err`` is an expected outcome of shutting down.

    No error, cancellation, and exception classes that set
    ``ignored_on_shutdown = True`` count, also when they are the
    explicit cause of ``err``.
    """
    seen: set[int] = set()
    current: Any = err
    if current is None:
        return True
    while current is not None and id(current) not in seen:
        seen.add(id(current))
        if _is_ignored_one(current):
            return True
        current = current.__cause__
    return False