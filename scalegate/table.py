"""A live routing table fed by scaled-object events."""

from __future__ import annotations

import threading
from datetime import timedelta
from typing import Any, Dict, Optional, Tuple

from scalegate.concurrency import AtomicValue, HealthChecker, Signaler
from scalegate.key import UrlLike, key_from_request
from scalegate.memory import Counter
from scalegate.tablememory import NamespacedName, TableMemory

__all__ = ["TableNotSyncedError", "Table"]

_DEFAULT_WINDOW = timedelta(minutes=1)
_DEFAULT_GRANULARITY = timedelta(seconds=1)


class TableNotSyncedError(RuntimeError):
    """Raised by a health check before the table has built its first routes."""

    def __init__(self) -> None:
        super().__init__("table has not synced")


def _rate_settings(obj: Any) -> Tuple[timedelta, timedelta]:
    rate = getattr(obj, "rate", None)
    if rate is None:
        return _DEFAULT_WINDOW, _DEFAULT_GRANULARITY
    return rate.window, rate.granularity


class Table(HealthChecker):
    """Routes requests to scaled objects, kept current by add/update/delete events.

    Objects carry ``namespace``, ``name``, ``hosts`` and ``path_prefixes``,
    optionally ``creation_timestamp`` and a ``rate`` with ``window`` and
    ``granularity`` for the request-rate buckets of ``counter``.
    """

    def __init__(self, counter: Counter) -> None:
        super().__init__()
        self._counter = counter
        self._lock = threading.Lock()
        self._objects: Dict[NamespacedName, Any] = {}
        self._memory: AtomicValue[TableMemory] = AtomicValue()
        self._signaler = Signaler()
        self._started = False

    def on_add(self, obj: Any) -> None:
        """Track a newly added scaled object."""
        name = NamespacedName.of(obj)
        if name is None:
            return
        window, granularity = _rate_settings(obj)
        self._counter.ensure_key(str(name), window, granularity)
        with self._lock:
            self._objects[name] = obj
        self._signaler.signal()

    def on_update(self, old: Any, new: Any) -> None:
        """Replace ``old`` by ``new``, dropping the old name if it changed."""
        old_name = NamespacedName.of(old)
        new_name = NamespacedName.of(new)
        if old_name is None or new_name is None:
            return
        window, granularity = _rate_settings(new)
        self._counter.update_buckets(str(new_name), window, granularity)
        with self._lock:
            self._objects[new_name] = new
            if old_name != new_name:
                self._objects.pop(old_name, None)
                self._counter.remove_key(str(old_name))
        self._signaler.signal()

    def on_delete(self, obj: Any) -> None:
        """Stop tracking a deleted scaled object."""
        name = NamespacedName.of(obj)
        if name is None:
            return
        with self._lock:
            self._objects.pop(name, None)
            self._counter.remove_key(str(name))
        self._signaler.signal()

    def _snapshot(self) -> TableMemory:
        with self._lock:
            objects = list(self._objects.values())
        memory = TableMemory()
        for obj in objects:
            memory = memory.remember(obj)
        return memory

    async def refresh_memory(self) -> None:
        """Rebuild the routes now and after every change, until cancelled."""
        while True:
            self._memory.set(self._snapshot())
            await self._signaler.wait()

    async def start(self) -> None:
        """Keep the routes current until cancelled; a table starts only once."""
        if self._started:
            raise RuntimeError("table has already started, running it more than once is not allowed")
        self._started = True
        await self.refresh_memory()

    def route(self, host: str, url: Optional[UrlLike]) -> Any:
        """Return the scaled object serving a request, or None."""
        if url is None:
            return None
        memory = self._memory.get()
        if memory is None:
            return None
        return memory.route(key_from_request(host, url))

    def has_synced(self) -> bool:
        """Tell whether the routes have been built at least once."""
        return self._memory.get() is not None

    def health_check(self) -> None:
        if not self.has_synced():
            raise TableNotSyncedError()