"""
Module: catalog_kernel.db.memory_adapter
Responsibility: In-process StorageAdapter used by tests, tooling and
    single-user deployments.
Architecture position: Kernel > DB.

Atomicity:
    ``transaction()`` works on a staged deep copy of the store and publishes
    it with a single reference swap on success.  On exception the staged copy
    is discarded, so readers never observe a partial approve-and-deprecate.
    The adapter lock is held for the whole transaction (single writer).
    A nested ``transaction()`` snapshots the staged copy and restores it if
    the inner block raises, matching a database SAVEPOINT.
"""

import copy
import threading
from collections.abc import Iterator
from contextlib import contextmanager
from typing import Any

from catalog_kernel.db.adapter import QueryFilter, Record, apply_filter, normalize_value
from catalog_kernel.exceptions import ConcurrencyConflictError
from catalog_kernel.logging_config import get_logger

logger = get_logger("db.memory_adapter")

_Store = dict[str, dict[str, Record]]


class InMemoryStorageAdapter:
    """Dict-backed StorageAdapter with compare-and-swap writes."""

    def __init__(self) -> None:
        self._committed: _Store = {}
        self._staged: _Store | None = None
        self._lock = threading.RLock()

    def _store(self) -> _Store:
        return self._staged if self._staged is not None else self._committed

    def _bucket(self, namespace: str) -> dict[str, Record]:
        return self._store().get(namespace, {})

    # Reads

    def get_all(self, namespace: str) -> list[Record]:
        with self._lock:
            return [copy.deepcopy(r) for r in self._bucket(namespace).values()]

    def get_by_id(self, namespace: str, record_id: Any) -> Record | None:
        with self._lock:
            record = self._bucket(namespace).get(normalize_value(record_id))
            return copy.deepcopy(record) if record is not None else None

    def query(self, namespace: str, query_filter: QueryFilter) -> list[Record]:
        with self._lock:
            selected = apply_filter(list(self._bucket(namespace).values()), query_filter)
            return [copy.deepcopy(r) for r in selected]

    def count(self, namespace: str, query_filter: QueryFilter | None = None) -> int:
        with self._lock:
            if query_filter is None:
                return len(self._bucket(namespace))
            unpaged = QueryFilter(where=query_filter.where)
            return len(apply_filter(list(self._bucket(namespace).values()), unpaged))

    # Writes

    def save(
        self,
        namespace: str,
        record: Record,
        expected_version: int | None = None,
    ) -> Record:
        record_id = normalize_value(record["id"])
        with self._lock:
            bucket = self._store().setdefault(namespace, {})
            existing = bucket.get(record_id)
            actual = existing.get("version", 0) if existing is not None else None

            if expected_version is None and existing is not None:
                raise ConcurrencyConflictError(namespace, record_id, None, actual)
            if expected_version is not None and actual != expected_version:
                raise ConcurrencyConflictError(
                    namespace, record_id, expected_version, actual
                )

            stored = copy.deepcopy(record)
            stored["id"] = record_id
            stored.setdefault("version", 0)
            bucket[record_id] = stored
            return copy.deepcopy(stored)

    def delete(self, namespace: str, record_id: Any) -> bool:
        with self._lock:
            bucket = self._store().get(namespace, {})
            return bucket.pop(normalize_value(record_id), None) is not None

    @contextmanager
    def transaction(self) -> Iterator[None]:
        with self._lock:
            if self._staged is not None:
                savepoint = copy.deepcopy(self._staged)
                try:
                    yield
                except Exception:
                    self._staged = savepoint
                    logger.debug("memory_savepoint_rolled_back")
                    raise
                return

            self._staged = copy.deepcopy(self._committed)
            try:
                yield
            except Exception:
                self._staged = None
                logger.debug("memory_transaction_rolled_back")
                raise
            self._committed, self._staged = self._staged, None

    # Test helpers

    def clear(self) -> None:
        with self._lock:
            self._committed = {}
            self._staged = None

    def namespaces(self) -> tuple[str, ...]:
        with self._lock:
            return tuple(sorted(self._store()))
