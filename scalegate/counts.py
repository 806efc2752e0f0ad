"""Snapshots of pending-request counts and request rates per host."""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from typing import Any, Dict, Union

__all__ = ["Count", "Counts"]


@dataclass(frozen=True)
class Count:
    """Pending requests (concurrency) and requests per second for one host."""

    concurrency: int = 0
    rps: float = 0.0

    def __add__(self, other: "Count") -> "Count":
        if not isinstance(other, Count):
            return NotImplemented
        return Count(self.concurrency + other.concurrency, self.rps + other.rps)


def _count_to_json(count: Count) -> Dict[str, Any]:
    return {"Concurrency": count.concurrency, "RPS": count.rps}


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def _count_from_json(host: str, raw: Any) -> Count:
    if raw is None:
        return Count()
    if not isinstance(raw, dict):
        raise ValueError(f"count for {host!r} is not an object")
    concurrency = 0
    rps = 0.0
    for name, value in raw.items():
        lowered = name.lower()
        if value is None:
            continue
        if lowered == "concurrency":
            if not isinstance(value, int) or isinstance(value, bool):
                raise ValueError(f"concurrency for {host!r} is not an integer")
            concurrency = value
        elif lowered == "rps":
            if not _is_number(value):
                raise ValueError(f"rps for {host!r} is not a number")
            rps = float(value)
    return Count(concurrency, rps)


def _format_float(value: float) -> str:
    text = repr(float(value))
    return text[:-2] if text.endswith(".0") else text


@dataclass
class Counts:
    """Counts keyed by host."""

    counts: Dict[str, Count] = field(default_factory=dict)

    def aggregate(self) -> Count:
        """Return the sum of the counts of all hosts."""
        total = Count()
        for count in self.counts.values():
            total = total + count
        return total

    def to_json(self) -> str:
        """Encode as a JSON object of host to ``{"Concurrency", "RPS"}``."""
        return json.dumps(
            {host: _count_to_json(count) for host, count in self.counts.items()},
            sort_keys=True,
            separators=(",", ":"),
        )

    @classmethod
    def from_json(cls, data: Union[str, bytes, bytearray]) -> "Counts":
        """Decode what ``to_json`` produces; raise ValueError on malformed data."""
        raw = json.loads(data)
        if raw is None:
            return cls()
        if not isinstance(raw, dict):
            raise ValueError("counts must be a JSON object")
        return cls({host: _count_from_json(host, value) for host, value in raw.items()})

    def __str__(self) -> str:
        items = " ".join(
            f"{host}:{{{count.concurrency} {_format_float(count.rps)}}}"
            for host, count in sorted(self.counts.items())
        )
        return f"map[{items}]"