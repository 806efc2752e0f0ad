"""Service endpoints and the backend URLs they stand for."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Callable, List, Sequence, Tuple, Union
from urllib.parse import SplitResult, urlsplit

__all__ = [
    "EndpointAddress",
    "EndpointPort",
    "EndpointSubset",
    "Endpoints",
    "FetchEndpoints",
    "endpoints_for_service",
    "fake_endpoints_for_url",
    "fake_endpoints_for_urls",
]

UrlLike = Union[str, SplitResult]


@dataclass(frozen=True)
class EndpointAddress:
    """One address behind a service."""

    ip: str
    hostname: str = ""


@dataclass(frozen=True)
class EndpointPort:
    """One port exposed by the addresses of a subset."""

    port: int
    name: str = ""


@dataclass
class EndpointSubset:
    """A group of addresses sharing the same ports."""

    addresses: List[EndpointAddress] = field(default_factory=list)
    ports: List[EndpointPort] = field(default_factory=list)


@dataclass
class Endpoints:
    """The endpoints of the service ``name`` in ``namespace``."""

    namespace: str = ""
    name: str = ""
    subsets: List[EndpointSubset] = field(default_factory=list)

    def address_count(self) -> int:
        """Return the number of addresses across all subsets."""
        return sum(len(subset.addresses) for subset in self.subsets)


FetchEndpoints = Callable[[str, str], Endpoints]
"""Fetches the endpoints of a service, given its namespace and name."""


def endpoints_for_service(
    namespace: str,
    service_name: str,
    service_port: str,
    fetch: FetchEndpoints,
) -> List[str]:
    """Return an ``http://<ip>:<port>`` URL for every address of the service.

    Errors from ``fetch`` propagate; an address that does not form a valid
    URL raises ValueError.
    """
    endpoints = fetch(namespace, service_name)
    urls: List[str] = []
    for subset in endpoints.subsets:
        for address in subset.addresses:
            url = f"http://{address.ip}:{service_port}"
            # Accessing the port validates it.
            urlsplit(url).port
            urls.append(url)
    return urls


def _host_and_port(url: UrlLike) -> Tuple[str, str]:
    parts = urlsplit(url) if isinstance(url, str) else url
    hostport = parts.netloc.rpartition("@")[2]
    if hostport.startswith("["):
        close = hostport.find("]")
        if close == -1:
            return hostport[1:], ""
        host, rest = hostport[1:close], hostport[close + 1:]
        port = rest[1:] if rest.startswith(":") else ""
    else:
        host, colon, port = hostport.rpartition(":")
        if not colon:
            host, port = hostport, ""
    if port and not port.isdigit():
        port = ""
    return host, port


def fake_endpoints_for_urls(
    urls: Sequence[UrlLike], namespace: str, name: str
) -> Endpoints:
    """Build endpoints with one subset holding an address and a port per URL.

    Each address has both its IP and hostname set to the URL's host. Raises
    ValueError when a URL carries no numeric port.
    """
    addresses: List[EndpointAddress] = []
    ports: List[EndpointPort] = []
    for url in urls:
        host, port = _host_and_port(url)
        if not port:
            raise ValueError(f"URL {url!r} has no port")
        addresses.append(EndpointAddress(ip=host, hostname=host))
        ports.append(EndpointPort(port=int(port)))
    return Endpoints(
        namespace=namespace,
        name=name,
        subsets=[EndpointSubset(addresses=addresses, ports=ports)],
    )


def fake_endpoints_for_url(
    url: UrlLike, namespace: str, name: str, num: int
) -> Endpoints:
    """Build endpoints with one subset holding ``num`` copies of ``url``."""
    return fake_endpoints_for_urls([url] * num, namespace, name)