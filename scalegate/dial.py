"""Connecting to a backend with retries spaced by a growing backoff."""

from __future__ import annotations

import asyncio
import random
import socket
from dataclasses import dataclass, replace
from datetime import timedelta
from typing import Awaitable, Callable, Optional, Tuple

__all__ = [
    "Backoff",
    "Dial",
    "min_total_backoff_duration",
    "dial_with_retry",
]

_MILLISECOND = timedelta(milliseconds=1)

Dial = Callable[[str, int], Awaitable[Tuple[asyncio.StreamReader, asyncio.StreamWriter]]]
"""Opens a connection to ``host`` and ``port``."""


def _jittered(duration: timedelta, jitter: float) -> timedelta:
    if jitter <= 0:
        return duration
    return duration + duration * (random.random() * jitter)


@dataclass
class Backoff:
    """A schedule of waits that grow by ``factor`` for ``steps`` steps.

    ``jitter`` adds up to that fraction of each wait at random. Once the
    wait would pass ``cap`` it stays at ``cap`` and no further growth
    happens.
    """

    duration: timedelta
    factor: float = 0.0
    jitter: float = 0.0
    steps: int = 0
    cap: Optional[timedelta] = None

    def step(self) -> timedelta:
        """Return the next wait and advance the schedule."""
        if self.steps < 1:
            return _jittered(self.duration, self.jitter)
        self.steps -= 1
        current = self.duration
        if self.factor != 0:
            self.duration = self.duration * self.factor
            if self.cap is not None and self.cap > timedelta(0) and self.duration > self.cap:
                self.duration = self.cap
                self.steps = 0
        return _jittered(current, self.jitter)


def min_total_backoff_duration(backoff: Backoff) -> timedelta:
    """Return the least total wait over all steps of ``backoff``, without jitter.

    The initial wait is taken in whole milliseconds.
    """
    initial_ms = backoff.duration // _MILLISECOND
    total_ms = initial_ms + sum(initial_ms * step for step in range(2, backoff.steps + 1))
    return timedelta(milliseconds=total_ms)


def _enable_keep_alive(writer: asyncio.StreamWriter) -> None:
    sock = writer.get_extra_info("socket")
    if sock is not None:
        try:
            sock.setsockopt(socket.SOL_SOCKET, socket.SO_KEEPALIVE, 1)
        except OSError:
            pass


def dial_with_retry(connect_timeout: timedelta, backoff: Backoff) -> Dial:
    """Return a dial function that tries ``backoff.steps`` times before giving up.

    Each attempt may take up to ``connect_timeout`` (none if zero); after a
    failed attempt it waits for the next step of a fresh copy of
    ``backoff``. When every attempt fails the last error is raised. The
    caller cancels a dial by cancelling the awaiting task.
    """
    tries = backoff.steps
    seconds = connect_timeout.total_seconds()
    timeout = seconds if seconds > 0 else None

    async def dial(host: str, port: int) -> Tuple[asyncio.StreamReader, asyncio.StreamWriter]:
        schedule = replace(backoff)
        last_error: Optional[BaseException] = None
        for _ in range(tries):
            try:
                reader, writer = await asyncio.wait_for(
                    asyncio.open_connection(host, port), timeout
                )
            except asyncio.TimeoutError:
                last_error = TimeoutError(
                    f"dialing {host}:{port} timed out after {connect_timeout}"
                )
            except OSError as exc:
                last_error = exc
            else:
                _enable_keep_alive(writer)
                return reader, writer
            await asyncio.sleep(schedule.step().total_seconds())
        if last_error is None:
            raise ConnectionError(f"no attempt was made to dial {host}:{port}")
        raise last_error

    return dial