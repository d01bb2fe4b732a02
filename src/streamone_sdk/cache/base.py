"""Key-value cache capability and the in-process backends.

Pattern: Pluggable Cache Strategy
----------------------------------
Both the request layer (response caching) and the actor (role and token
memoisation) talk to a ``Cache`` through the same three operations:

  - ``get(key)``  returns the cached value, or ``None`` on a miss or expiry.
  - ``age(key)``  returns the age in seconds, or ``-1`` on a miss or expiry.
  - ``set(key, value)`` stores a value, overwriting any previous one.

There is no delete.  Staleness is decided by each backend.  Storing a value
does not guarantee it can be read back: ``NoopCache`` stores nothing at all.

Keys starting with ``s1:`` are reserved for the SDK itself.
"""

from __future__ import annotations

import time
from typing import Any, Protocol, runtime_checkable


@runtime_checkable
class Cache(Protocol):
    """Operations every cache backend provides."""

    def get(self, key: str) -> Any | None: ...

    def age(self, key: str) -> float: ...

    def set(self, key: str, value: Any) -> None: ...


class NoopCache:
    """A cache that never stores anything."""

    def get(self, key: str) -> Any | None:
        return None

    def age(self, key: str) -> float:
        return -1

    def set(self, key: str, value: Any) -> None:
        pass


class MemoryCache:
    """Caches values in memory for as long as this object lives."""

    def __init__(self) -> None:
        self._entries: dict[str, tuple[float, Any]] = {}

    def get(self, key: str) -> Any | None:
        entry = self._entries.get(key)
        return entry[1] if entry is not None else None

    def age(self, key: str) -> float:
        entry = self._entries.get(key)
        if entry is None:
            return -1
        return time.time() - entry[0]

    def set(self, key: str, value: Any) -> None:
        self._entries[key] = (time.time(), value)
