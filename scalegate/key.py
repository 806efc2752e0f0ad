"""Routing keys built from hosts and path prefixes."""

from __future__ import annotations

from typing import List, Optional, Protocol, Sequence, Union, runtime_checkable
from urllib.parse import SplitResult, urlsplit

__all__ = [
    "Key",
    "Routable",
    "new_key",
    "key_from_url",
    "key_from_request",
    "keys_from_scaled_object",
]

Key = str
"""A routing key of the form ``//<host>/<path>/``."""

UrlLike = Union[str, SplitResult]


@runtime_checkable
class Routable(Protocol):
    """An object that routes requests for some hosts and path prefixes.

    ``None`` for either attribute stands for "any"; an empty sequence
    matches nothing.
    """

    hosts: Optional[Sequence[str]]
    path_prefixes: Optional[Sequence[str]]


def new_key(host: str, path: str) -> Key:
    """Build the key for ``host`` (any port dropped) and ``path``.

    Leading and trailing slashes of the path are normalised away, and a
    non-empty path gets a single trailing slash.
    """
    colon = host.rfind(":")
    if colon != -1:
        host = host[:colon]
    path = path.strip("/")
    if path:
        path += "/"
    return f"//{host}/{path}"


def _split(url: UrlLike) -> SplitResult:
    return urlsplit(url) if isinstance(url, str) else url


def _host_of(parts: SplitResult) -> str:
    # The network location may carry user information before the host.
    return parts.netloc.rpartition("@")[2]


def key_from_url(url: Optional[UrlLike]) -> Optional[Key]:
    """Build the key for a URL, or return None when there is no URL."""
    if url is None:
        return None
    parts = _split(url)
    return new_key(_host_of(parts), parts.path)


def key_from_request(host: str, url: Optional[UrlLike]) -> Optional[Key]:
    """Build the key for a request to ``url`` whose Host header is ``host``.

    A non-empty ``host`` takes precedence over the host in the URL.
    """
    if url is None:
        return None
    parts = _split(url)
    return new_key(host or _host_of(parts), parts.path)


def keys_from_scaled_object(obj: Optional[Routable]) -> List[Key]:
    """Return one key for every combination of host and path prefix of ``obj``."""
    if obj is None:
        return []
    hosts = obj.hosts if obj.hosts is not None else [""]
    prefixes = obj.path_prefixes if obj.path_prefixes is not None else [""]
    return [new_key(host, prefix) for host in hosts for prefix in prefixes]