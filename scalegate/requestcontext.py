"""Per-request values carried through the current execution context."""

from __future__ import annotations

import logging
from contextlib import contextmanager
from contextvars import ContextVar
from typing import Any, Iterator, Optional, TypeVar

__all__ = [
    "use_logger",
    "current_logger",
    "use_scaled_object",
    "current_scaled_object",
    "use_stream",
    "current_stream",
]

T = TypeVar("T")

_DEFAULT_LOGGER = logging.getLogger("scalegate")

_logger: ContextVar[Optional[logging.Logger]] = ContextVar("logger", default=None)
_scaled_object: ContextVar[Any] = ContextVar("scaled_object", default=None)
_stream: ContextVar[Any] = ContextVar("stream", default=None)


@contextmanager
def _bind(var: ContextVar[Any], value: T) -> Iterator[T]:
    token = var.set(value)
    try:
        yield value
    finally:
        var.reset(token)


def use_logger(logger: logging.Logger) -> Any:
    """Make ``logger`` the current logger inside the ``with`` block."""
    return _bind(_logger, logger)


def current_logger() -> logging.Logger:
    """Return the current logger, or the package logger if none is bound."""
    logger = _logger.get()
    return _DEFAULT_LOGGER if logger is None else logger


def use_scaled_object(obj: Any) -> Any:
    """Make ``obj`` the scaled object of the current request inside the block."""
    return _bind(_scaled_object, obj)


def current_scaled_object() -> Any:
    """Return the scaled object of the current request, or None."""
    return _scaled_object.get()


def use_stream(url: Any) -> Any:
    """Make ``url`` the upstream target of the current request inside the block."""
    return _bind(_stream, url)


def current_stream() -> Any:
    """Return the upstream target of the current request, or None."""
    return _stream.get()