"""Reading typed settings from environment variables."""

from __future__ import annotations

import os
import re
from datetime import timedelta

__all__ = [
    "EnvNotFoundError",
    "get",
    "get_or",
    "get_int32_or",
    "get_int_or",
    "parse_bool",
    "parse_duration",
    "resolve_env_bool",
    "resolve_env_int",
    "resolve_env_duration",
]

_INT_RE = re.compile(r"[+-]?[0-9]+")
_SEGMENT_RE = re.compile(r"([0-9]*)(?:\.([0-9]*))?([^0-9.]*)")

_TRUE = frozenset({"1", "t", "T", "TRUE", "true", "True"})
_FALSE = frozenset({"0", "f", "F", "FALSE", "false", "False"})

_NANOS_PER_UNIT = {
    "ns": 1,
    "us": 1_000,
    "\u00b5s": 1_000,
    "\u03bcs": 1_000,
    "ms": 1_000_000,
    "s": 1_000_000_000,
    "m": 60 * 1_000_000_000,
    "h": 3600 * 1_000_000_000,
}

_INT64_MAX = 2**63 - 1


class EnvNotFoundError(LookupError):
    """Raised when an environment variable is unset or empty."""

    def __init__(self, env_name: str) -> None:
        super().__init__(f"environment variable {env_name} not found")
        self.env_name = env_name


def get(env_name: str) -> str:
    """Return the value of ``env_name``; an empty value counts as missing."""
    value = os.environ.get(env_name, "")
    if not value:
        raise EnvNotFoundError(env_name)
    return value


def get_or(env_name: str, otherwise: str) -> str:
    """Return the value of ``env_name``, or ``otherwise`` if it is not set."""
    try:
        return get(env_name)
    except EnvNotFoundError:
        return otherwise


def _parse_int(value: str, bits: int) -> int:
    if not _INT_RE.fullmatch(value):
        raise ValueError(f"invalid integer {value!r}")
    number = int(value)
    limit = 2 ** (bits - 1)
    if not -limit <= number < limit:
        raise ValueError(f"integer {value!r} out of range")
    return number


def get_int32_or(env_name: str, otherwise: int) -> int:
    """Return ``env_name`` as a 32-bit integer, or ``otherwise`` if missing or invalid."""
    try:
        return _parse_int(get(env_name), 32)
    except (EnvNotFoundError, ValueError):
        return otherwise


def get_int_or(env_name: str, otherwise: int) -> int:
    """Return ``env_name`` as an integer, or ``otherwise`` if missing or invalid."""
    try:
        return _parse_int(get(env_name), 64)
    except (EnvNotFoundError, ValueError):
        return otherwise


def parse_bool(value: str) -> bool:
    """Parse the boolean spellings 1/t/true/0/f/false in their accepted cases."""
    if value in _TRUE:
        return True
    if value in _FALSE:
        return False
    raise ValueError(f"invalid boolean {value!r}")


def parse_duration(value: str) -> timedelta:
    """Parse a duration such as ``"300ms"``, ``"1.5h"`` or ``"2h45m"``."""
    text = value
    negative = False
    if text[:1] in ("-", "+"):
        negative = text[0] == "-"
        text = text[1:]
    if text == "0":
        return timedelta(0)
    if not text:
        raise ValueError(f"invalid duration {value!r}")

    total = 0
    pos = 0
    while pos < len(text):
        match = _SEGMENT_RE.match(text, pos)
        whole, frac, unit = match.group(1), match.group(2), match.group(3)
        if not whole and not frac:
            raise ValueError(f"invalid duration {value!r}")
        if not unit:
            raise ValueError(f"missing unit in duration {value!r}")
        scale = _NANOS_PER_UNIT.get(unit)
        if scale is None:
            raise ValueError(f"unknown unit {unit!r} in duration {value!r}")
        total += int(whole or "0") * scale
        if frac:
            total += int(frac) * scale // 10 ** len(frac)
        if total > _INT64_MAX:
            raise ValueError(f"invalid duration {value!r}")
        pos = match.end()

    seconds, nanos = divmod(total, 1_000_000_000)
    result = timedelta(seconds=seconds, microseconds=nanos // 1_000)
    return -result if negative else result


def _lookup(env_name: str) -> str | None:
    value = os.environ.get(env_name)
    return value or None


def resolve_env_bool(env_name: str, default: bool) -> bool:
    """Return ``env_name`` as a boolean, ``default`` if unset; raise ValueError if invalid."""
    value = _lookup(env_name)
    return default if value is None else parse_bool(value)


def resolve_env_int(env_name: str, default: int) -> int:
    """Return ``env_name`` as an integer, ``default`` if unset; raise ValueError if invalid."""
    value = _lookup(env_name)
    return default if value is None else _parse_int(value, 64)


def resolve_env_duration(env_name: str) -> timedelta | None:
    """Return ``env_name`` as a duration, None if unset; raise ValueError if invalid."""
    value = _lookup(env_name)
    return None if value is None else parse_duration(value)