"""Thread-safe in-memory repositories backing the ledger store."""

from __future__ import annotations

import threading
from typing import Generic, Iterator, List, MutableMapping, TypeVar

from .errors import DuplicateRecordError, RecordNotFoundError

T = TypeVar("T")


class InMemoryRepository(Generic[T]):
    """Generic repository backed by an insertion-ordered dictionary.

    The internal lock only protects the dictionary itself. Consistency of a
    record across a multi-step update is the job of the per-record locks in
    :class:`shopfloor.ledger.RecordLocks`.
    """

    def __init__(self, label: str = "Record") -> None:
        self._label = label
        self._items: MutableMapping[str, T] = {}
        self._lock = threading.Lock()

    def __contains__(self, item_id: object) -> bool:
        with self._lock:
            return item_id in self._items

    def __len__(self) -> int:
        with self._lock:
            return len(self._items)

    def add(self, item_id: str, item: T) -> None:
        with self._lock:
            if item_id in self._items:
                raise DuplicateRecordError(
                    f"{self._label} with id {item_id!r} already exists"
                )
            self._items[item_id] = item

    def upsert(self, item_id: str, item: T) -> None:
        with self._lock:
            self._items[item_id] = item

    def get(self, item_id: str) -> T:
        with self._lock:
            try:
                return self._items[item_id]
            except KeyError as exc:
                raise RecordNotFoundError(
                    f"{self._label} with id {item_id!r} not found"
                ) from exc

    def list(self) -> List[T]:
        with self._lock:
            return list(self._items.values())

    def __iter__(self) -> Iterator[T]:
        return iter(self.list())


__all__ = ["InMemoryRepository"]
