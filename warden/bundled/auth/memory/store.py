"""Thread-safe in-memory record store shared by the memory backends."""

import copy
from collections import defaultdict
from collections.abc import Callable, Iterator
from contextlib import contextmanager
from threading import RLock
from typing import Any, Dict, Optional


class MemoryStore:
    """Thread-safe in-memory key-value store with namespaces.

    This store provides:
    - Thread-safe operations using RLock
    - Namespace support for different record types
    - Copy-on-read so callers never hold a reference into the store
    - ``locked()`` for compound read-modify-write operations
    """

    def __init__(self):
        self._data: Dict[str, Dict[str, Any]] = defaultdict(dict)
        self._lock = RLock()

    @contextmanager
    def locked(self) -> Iterator[None]:
        """Hold the store lock across several operations."""
        with self._lock:
            yield

    def set(self, namespace: str, key: str, value: Any) -> None:
        with self._lock:
            self._data[namespace][key] = copy.deepcopy(value)

    def get(self, namespace: str, key: str) -> Optional[Any]:
        """Get a copy of a value from the store.

        Returns:
            Value if found, None otherwise
        """
        with self._lock:
            value = self._data.get(namespace, {}).get(key)
            return copy.deepcopy(value) if value is not None else None

    def exists(self, namespace: str, key: str) -> bool:
        with self._lock:
            return key in self._data.get(namespace, {})

    def find(self, namespace: str, predicate: Callable[[Any], bool]) -> list[Any]:
        """Return copies of every value in ``namespace`` matching ``predicate``."""
        with self._lock:
            return [
                copy.deepcopy(value)
                for value in self._data.get(namespace, {}).values()
                if predicate(value)
            ]

    def find_one(self, namespace: str, predicate: Callable[[Any], bool]) -> Optional[Any]:
        with self._lock:
            for value in self._data.get(namespace, {}).values():
                if predicate(value):
                    return copy.deepcopy(value)
            return None

    def update_where(
        self,
        namespace: str,
        predicate: Callable[[Any], bool],
        mutate: Callable[[Any], None],
    ) -> int:
        """Mutate every matching value in place, atomically.

        Returns:
            Number of values mutated
        """
        with self._lock:
            count = 0
            for value in self._data.get(namespace, {}).values():
                if predicate(value):
                    mutate(value)
                    count += 1
            return count
