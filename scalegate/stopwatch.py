"""A simple wall-clock stopwatch."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Optional

__all__ = ["Stopwatch"]


def _now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class Stopwatch:
    """Records a start and a stop time; also usable as a context manager."""

    start_time: Optional[datetime] = None
    stop_time: Optional[datetime] = None

    def start(self) -> None:
        self.start_time = _now()

    def stop(self) -> None:
        self.stop_time = _now()

    def elapsed(self) -> timedelta:
        """Return the time between start and stop."""
        if self.start_time is None or self.stop_time is None:
            raise RuntimeError("stopwatch has not been both started and stopped")
        return self.stop_time - self.start_time

    def __enter__(self) -> "Stopwatch":
        self.start()
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.stop()