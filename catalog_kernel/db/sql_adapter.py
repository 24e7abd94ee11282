"""
Module: catalog_kernel.db.sql_adapter
Responsibility: StorageAdapter over SQLAlchemy.  Every record is one
    ``catalog_records`` row with a JSON payload, so the adapter works on any
    dialect SQLAlchemy supports (SQLite for tests, PostgreSQL in production).
Architecture position: Kernel > DB.  Imports models/catalog_record.py.

Transaction boundaries:
    The adapter flushes within the caller's session and never commits.  The
    caller (``session_scope()`` or a test fixture) owns commit/rollback.
    ``transaction()`` opens a SAVEPOINT (``Session.begin_nested()``) so a
    group of writes is released together or rolled back together.

Compare-and-swap:
    Updates lock the row (SELECT ... FOR UPDATE where the dialect supports
    it), compare ``record_version`` with the expected version and only then
    write.  Inserts run in a savepoint; a primary-key collision is reported
    as a conflict, not as an IntegrityError.

Queries:
    String equality, ORDER BY on numeric fields and LIMIT/OFFSET run in SQL
    when the whole filter can; anything else is loaded and evaluated by
    ``apply_filter`` so both backends return the same rows.
"""

import copy
from collections.abc import Iterator, Sequence
from contextlib import contextmanager
from typing import Any
from uuid import UUID

from sqlalchemy import Select, func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from catalog_kernel.db.adapter import QueryFilter, Record, apply_filter, normalize_value
from catalog_kernel.exceptions import ConcurrencyConflictError
from catalog_kernel.logging_config import get_logger
from catalog_kernel.models.catalog_record import CatalogRecord

logger = get_logger("db.sql_adapter")


def _as_uuid(record_id: Any) -> UUID | None:
    if isinstance(record_id, UUID):
        return record_id
    try:
        return UUID(str(record_id))
    except ValueError:
        return None


class SqlStorageAdapter:
    """SQLAlchemy-backed StorageAdapter."""

    def __init__(self, session: Session):
        self._session = session

    # Reads

    def _select(
        self, namespace: str, where: dict[str, Any] | None = None
    ) -> tuple[Select, bool]:
        """Build the row query; the flag is False when a predicate stayed in Python."""
        stmt = (
            select(CatalogRecord)
            .where(CatalogRecord.namespace == namespace)
            .execution_options(populate_existing=True)
        )
        # String equality is pushed down to the database; other predicates
        # are evaluated on the loaded payloads by apply_filter.
        exact = True
        for key, value in (where or {}).items():
            value = normalize_value(value)
            if isinstance(value, str):
                stmt = stmt.where(CatalogRecord.payload[key].as_string() == value)
            else:
                exact = False
        return stmt, exact

    def _rows(
        self, namespace: str, where: dict[str, Any] | None = None
    ) -> Sequence[CatalogRecord]:
        stmt, _ = self._select(namespace, where)
        return self._session.execute(stmt).scalars().all()

    def _get_row(
        self, namespace: str, record_id: Any, *, for_update: bool = False
    ) -> CatalogRecord | None:
        pk = _as_uuid(record_id)
        if pk is None:
            return None
        stmt = (
            select(CatalogRecord)
            .where(CatalogRecord.namespace == namespace, CatalogRecord.id == pk)
            .execution_options(populate_existing=True)
        )
        if for_update:
            stmt = stmt.with_for_update()
        return self._session.execute(stmt).scalar_one_or_none()

    def get_all(self, namespace: str) -> list[Record]:
        return [copy.deepcopy(row.payload) for row in self._rows(namespace)]

    def get_by_id(self, namespace: str, record_id: Any) -> Record | None:
        row = self._get_row(namespace, record_id)
        return copy.deepcopy(row.payload) if row is not None else None

    def query(self, namespace: str, query_filter: QueryFilter) -> list[Record]:
        stmt, exact = self._select(namespace, dict(query_filter.where))
        order_by = query_filter.order_by
        if exact and order_by and all(order.numeric for order in order_by):
            for order in order_by:
                column = CatalogRecord.payload[order.field].as_integer()
                stmt = stmt.order_by(column.desc() if order.descending else column.asc())
            if query_filter.limit is not None:
                stmt = stmt.limit(query_filter.limit)
            if query_filter.offset:
                stmt = stmt.offset(query_filter.offset)
            rows = self._session.execute(stmt).scalars().all()
            return [copy.deepcopy(row.payload) for row in rows]

        payloads = [row.payload for row in self._session.execute(stmt).scalars()]
        return [copy.deepcopy(p) for p in apply_filter(payloads, query_filter)]

    def count(self, namespace: str, query_filter: QueryFilter | None = None) -> int:
        where = dict(query_filter.where) if query_filter is not None else {}
        stmt, exact = self._select(namespace, where)
        if exact:
            counted = select(func.count()).select_from(stmt.subquery())
            return self._session.execute(counted).scalar_one()
        payloads = [row.payload for row in self._session.execute(stmt).scalars()]
        return len(apply_filter(payloads, QueryFilter(where=where)))

    # Writes

    def save(
        self,
        namespace: str,
        record: Record,
        expected_version: int | None = None,
    ) -> Record:
        pk = _as_uuid(record["id"])
        if pk is None:
            raise ValueError(f"record id must be a UUID, got {record['id']!r}")
        payload = copy.deepcopy(record)
        payload["id"] = str(pk)
        payload.setdefault("version", 0)

        if expected_version is None:
            self._insert(namespace, pk, payload)
        else:
            self._update(namespace, pk, payload, expected_version)
        return copy.deepcopy(payload)

    def _insert(self, namespace: str, pk: UUID, payload: Record) -> None:
        existing = self._session.get(CatalogRecord, pk)
        if existing is not None:
            raise ConcurrencyConflictError(
                namespace, str(pk), None, existing.record_version
            )
        # A concurrent writer can still win between the check and the flush.
        savepoint = self._session.begin_nested()
        try:
            self._session.add(
                CatalogRecord(
                    id=pk,
                    namespace=namespace,
                    record_version=payload["version"],
                    payload=payload,
                )
            )
            self._session.flush()
            savepoint.commit()
        except IntegrityError:
            savepoint.rollback()
            existing = self._get_row(namespace, pk)
            logger.warning(
                "catalog_record_insert_conflict",
                extra={"namespace": namespace, "record_id": str(pk)},
            )
            raise ConcurrencyConflictError(
                namespace,
                str(pk),
                None,
                existing.record_version if existing is not None else None,
            ) from None

    def _update(
        self, namespace: str, pk: UUID, payload: Record, expected_version: int
    ) -> None:
        row = self._get_row(namespace, pk, for_update=True)
        actual = row.record_version if row is not None else None
        if actual != expected_version:
            raise ConcurrencyConflictError(namespace, str(pk), expected_version, actual)
        row.payload = payload
        row.record_version = payload["version"]
        self._session.flush()

    def delete(self, namespace: str, record_id: Any) -> bool:
        row = self._get_row(namespace, record_id, for_update=True)
        if row is None:
            return False
        self._session.delete(row)
        self._session.flush()
        return True

    @contextmanager
    def transaction(self) -> Iterator[None]:
        with self._session.begin_nested():
            yield
