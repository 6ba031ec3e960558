"""Ledger store bundling the repositories and per-record locks."""

from __future__ import annotations

import threading
from contextlib import ExitStack, contextmanager
from typing import Dict, Iterator, Optional, Tuple

from .domain import Job, Machine, MaintenanceLog, Material, MaterialTransaction, User
from .repository import InMemoryRepository

LockKey = Tuple[str, str]

JOB = "job"
MACHINE = "machine"
MATERIAL = "material"
OPERATOR = "operator"


class RecordLocks:
    """Registry of re-entrant locks, one per (kind, record id).

    Locks are created lazily and never discarded; the set of records only
    grows for the lifetime of the process.
    """

    def __init__(self) -> None:
        self._registry_lock = threading.Lock()
        self._locks: Dict[LockKey, threading.RLock] = {}

    def lock_for(self, kind: str, record_id: str) -> threading.RLock:
        key = (kind, record_id)
        with self._registry_lock:
            lock = self._locks.get(key)
            if lock is None:
                lock = threading.RLock()
                self._locks[key] = lock
            return lock

    @contextmanager
    def hold(self, kind: str, *record_ids: Optional[str]) -> Iterator[None]:
        """Acquire the locks of several records of one kind in sorted order.

        ``None`` ids are skipped so callers can pass optional references
        directly.
        """

        ids = sorted({record_id for record_id in record_ids if record_id})
        with ExitStack() as stack:
            for record_id in ids:
                stack.enter_context(self.lock_for(kind, record_id))
            yield


class LedgerStore:
    """Authoritative in-memory collections of the shop floor.

    The store has no behaviour beyond storage, lookup and locking; all rules
    live in the services that own it. Each service instance gets its own
    store, so independent instances never share state.
    """

    def __init__(self) -> None:
        self.machines: InMemoryRepository[Machine] = InMemoryRepository("Machine")
        self.materials: InMemoryRepository[Material] = InMemoryRepository("Material")
        self.transactions: InMemoryRepository[MaterialTransaction] = InMemoryRepository(
            "Material transaction"
        )
        self.jobs: InMemoryRepository[Job] = InMemoryRepository("Job")
        self.maintenance_logs: InMemoryRepository[MaintenanceLog] = InMemoryRepository(
            "Maintenance log"
        )
        self.users: InMemoryRepository[User] = InMemoryRepository("User")
        self.locks = RecordLocks()


__all__ = [
    "LedgerStore",
    "RecordLocks",
    "JOB",
    "MACHINE",
    "MATERIAL",
    "OPERATOR",
]
