"""Serving and fetching queue counts over HTTP."""

from __future__ import annotations

import logging
from typing import Any, Callable, Iterable, List, Optional, Tuple
from urllib.error import HTTPError, URLError
from urllib.parse import urlsplit, urlunsplit
from urllib.request import urlopen

from scalegate.counts import Counts
from scalegate.memory import CountReader

__all__ = ["COUNTS_PATH", "counts_app", "get_counts"]

COUNTS_PATH = "/queue"

_log = logging.getLogger(__name__)

_StartResponse = Callable[[str, List[Tuple[str, str]]], Any]


def _respond(
    start_response: _StartResponse, status: str, body: bytes, content_type: str
) -> Iterable[bytes]:
    start_response(
        status,
        [("Content-Type", content_type), ("Content-Length", str(len(body)))],
    )
    return [body]


def counts_app(reader: CountReader) -> Callable[[dict, _StartResponse], Iterable[bytes]]:
    """Return a WSGI application that serves ``reader``'s counts as JSON at ``/queue``."""
    _log.info("adding queue counts route path=%s", COUNTS_PATH)

    def app(environ: dict, start_response: _StartResponse) -> Iterable[bytes]:
        if environ.get("PATH_INFO", "") != COUNTS_PATH:
            return _respond(
                start_response,
                "404 Not Found",
                b"404 page not found\n",
                "text/plain; charset=utf-8",
            )
        try:
            counts = reader.current()
        except Exception:
            _log.exception("getting queue size")
            return _respond(
                start_response,
                "500 Internal Server Error",
                b"error getting queue size",
                "text/plain; charset=utf-8",
            )
        try:
            body = (counts.to_json() + "\n").encode("utf-8")
        except (TypeError, ValueError):
            _log.exception("encoding queue counts")
            return _respond(
                start_response,
                "500 Internal Server Error",
                b"error encoding queue counts",
                "text/plain; charset=utf-8",
            )
        return _respond(start_response, "200 OK", body, "application/json")

    return app


def get_counts(base_url: str, timeout: Optional[float] = None) -> Counts:
    """Fetch the queue counts from the server at ``base_url``.

    The path of ``base_url`` is replaced by ``/queue``. Raises
    ConnectionError when the server cannot be reached and ValueError when
    its answer is not a valid counts document.
    """
    url = urlunsplit(urlsplit(base_url)._replace(path=COUNTS_PATH))
    options = {} if timeout is None else {"timeout": timeout}
    try:
        with urlopen(url, **options) as response:
            body = response.read()
    except HTTPError as exc:
        # The status is not checked; the body decides whether this worked.
        try:
            body = exc.read()
        finally:
            exc.close()
    except (URLError, OSError) as exc:
        raise ConnectionError(f"requesting the queue counts from {url}: {exc}") from exc
    try:
        return Counts.from_json(body)
    except ValueError as exc:
        raise ValueError(f"decoding response from the interceptor at {url}: {exc}") from exc