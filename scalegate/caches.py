"""In-memory caches of endpoints and services, with watchable changes."""

from __future__ import annotations

import enum
import json
import queue
import threading
from dataclasses import dataclass, replace
from typing import Any, Dict, Optional

from scalegate.endpoints import EndpointAddress, EndpointSubset, Endpoints

__all__ = [
    "EventType",
    "WatchEvent",
    "FakeWatcher",
    "FakeEndpointsCache",
    "FakeServiceCache",
]

_WATCH_BUFFER = 100


def _key(namespace: str, name: str) -> str:
    return f"{namespace}/{name}"


class EventType(enum.Enum):
    ADDED = "ADDED"
    MODIFIED = "MODIFIED"
    DELETED = "DELETED"


@dataclass(frozen=True)
class WatchEvent:
    """A change to a watched object."""

    type: EventType
    obj: Any


class FakeWatcher:
    """A buffered stream of watch events fed by hand.

    Events sent after ``stop`` are dropped; sending to a full buffer raises
    OverflowError.
    """

    def __init__(self, buffer: int = _WATCH_BUFFER) -> None:
        self._events: "queue.Queue[Optional[WatchEvent]]" = queue.Queue(maxsize=buffer + 1)
        self._buffer = buffer
        self._lock = threading.Lock()
        self._stopped = False

    @property
    def stopped(self) -> bool:
        with self._lock:
            return self._stopped

    def _send(self, event_type: EventType, obj: Any) -> None:
        with self._lock:
            if self._stopped:
                return
            if self._events.qsize() >= self._buffer:
                raise OverflowError("watch channel full")
            self._events.put_nowait(WatchEvent(event_type, obj))

    def add(self, obj: Any) -> None:
        self._send(EventType.ADDED, obj)

    def modify(self, obj: Any) -> None:
        self._send(EventType.MODIFIED, obj)

    def delete(self, obj: Any) -> None:
        self._send(EventType.DELETED, obj)

    def stop(self) -> None:
        """End the stream; pending events can still be read."""
        with self._lock:
            if self._stopped:
                return
            self._stopped = True
            self._events.put_nowait(None)

    def next_event(self, timeout: Optional[float] = None) -> Optional[WatchEvent]:
        """Return the next event, or None once the stream is stopped and drained.

        Raises TimeoutError if no event arrives within ``timeout`` seconds.
        """
        try:
            event = self._events.get(timeout=timeout)
        except queue.Empty:
            raise TimeoutError(f"no watch event within {timeout}s") from None
        if event is None:
            # Leave the end marker for later readers.
            self._events.put_nowait(None)
        return event


class FakeEndpointsCache:
    """Endpoints held in memory, with watchers created on demand."""

    def __init__(self) -> None:
        self._lock = threading.RLock()
        self._current: Dict[str, Endpoints] = {}
        self._watchers: Dict[str, FakeWatcher] = {}

    def get(self, namespace: str, name: str) -> Endpoints:
        """Return the endpoints, raising KeyError when there are none."""
        with self._lock:
            try:
                return self._current[_key(namespace, name)]
            except KeyError:
                raise KeyError(f"no endpoints {name} found") from None

    def set(self, endpoints: Endpoints) -> None:
        """Store ``endpoints`` without notifying any watcher."""
        with self._lock:
            self._current[_key(endpoints.namespace, endpoints.name)] = endpoints

    def watch(self, namespace: str, name: str) -> FakeWatcher:
        """Return the watcher for the endpoints, creating it if needed."""
        with self._lock:
            return self._watchers.setdefault(_key(namespace, name), FakeWatcher())

    def get_watcher(self, namespace: str, name: str) -> Optional[FakeWatcher]:
        """Return the registered watcher, or None."""
        with self._lock:
            return self._watchers.get(_key(namespace, name))

    def set_watcher(self, namespace: str, name: str) -> FakeWatcher:
        """Register and return a fresh watcher, replacing any earlier one."""
        with self._lock:
            watcher = FakeWatcher()
            self._watchers[_key(namespace, name)] = watcher
            return watcher

    def set_subsets(self, namespace: str, name: str, num: int) -> None:
        """Give the stored endpoints ``num`` subsets of one address each."""
        with self._lock:
            endpoints = self.get(namespace, name)
            subsets = [
                EndpointSubset(addresses=[EndpointAddress(ip="1.2.3.4")])
                for _ in range(num)
            ]
            self.set(replace(endpoints, subsets=subsets))

    def to_json(self) -> str:
        """Encode the number of addresses per ``namespace/name`` as JSON."""
        with self._lock:
            totals = {key: ep.address_count() for key, ep in self._current.items()}
        return json.dumps(totals, sort_keys=True, separators=(",", ":"))


class FakeServiceCache:
    """Services held in memory, keyed by their ``namespace`` and ``name``."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._current: Dict[str, Any] = {}

    def get(self, namespace: str, name: str) -> Any:
        """Return the service, raising KeyError when it is unknown."""
        with self._lock:
            try:
                return self._current[_key(namespace, name)]
            except KeyError:
                raise KeyError("service not found") from None

    def add(self, service: Any) -> None:
        with self._lock:
            self._current[_key(service.namespace, service.name)] = service