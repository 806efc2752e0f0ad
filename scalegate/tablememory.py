"""An immutable routing table: scaled objects by name and by routing key."""

from __future__ import annotations

import copy
from dataclasses import dataclass, field
from typing import Any, Mapping, Optional

from scalegate.key import Key, keys_from_scaled_object

__all__ = ["NamespacedName", "TableMemory"]


@dataclass(frozen=True)
class NamespacedName:
    """The namespace and name that identify an object."""

    namespace: str
    name: str

    def __str__(self) -> str:
        return f"{self.namespace}/{self.name}"

    @classmethod
    def of(cls, obj: Any) -> Optional["NamespacedName"]:
        """Return the name of ``obj``, or None when there is no object."""
        if obj is None:
            return None
        return cls(obj.namespace, obj.name)


def _created_after(obj: Any, other: Any) -> bool:
    mine = getattr(obj, "creation_timestamp", None)
    theirs = getattr(other, "creation_timestamp", None)
    if mine is None:
        return False
    if theirs is None:
        return True
    return mine > theirs


@dataclass(frozen=True)
class TableMemory:
    """Scaled objects indexed by name (``index``) and by routing key (``store``).

    Every change returns a new table and leaves this one untouched.
    """

    index: Mapping[str, Any] = field(default_factory=dict)
    store: Mapping[Key, Any] = field(default_factory=dict)

    def remember(self, obj: Any) -> "TableMemory":
        """Return a table that holds a copy of ``obj``.

        Where another object already owns a routing key, the older of the
        two keeps it.
        """
        if obj is None:
            return self
        obj = copy.deepcopy(obj)
        index = dict(self.index)
        index[str(NamespacedName.of(obj))] = obj
        store = dict(self.store)
        for key in keys_from_scaled_object(obj):
            old = store.get(key)
            if old is not None and _created_after(obj, old):
                continue
            store[key] = obj
        return TableMemory(index, store)

    def recall(self, name: Optional[NamespacedName]) -> Any:
        """Return a copy of the object called ``name``, or None."""
        if name is None:
            return None
        obj = self.index.get(str(name))
        return None if obj is None else copy.deepcopy(obj)

    def forget(self, name: Optional[NamespacedName]) -> "TableMemory":
        """Return a table without the object called ``name``.

        Routing keys owned by other objects are kept.
        """
        if name is None or str(name) not in self.index:
            return self
        index = dict(self.index)
        obj = index.pop(str(name))
        store = dict(self.store)
        for key in keys_from_scaled_object(obj):
            old = store.get(key)
            if old is not None and NamespacedName.of(old) == name:
                del store[key]
        return TableMemory(index, store)

    def route(self, key: Optional[Key]) -> Any:
        """Return the object owning the longest stored prefix of ``key``, or None."""
        if key is None:
            return None
        for end in range(len(key), -1, -1):
            hit = self.store.get(key[:end])
            if hit is not None:
                return hit
        return None