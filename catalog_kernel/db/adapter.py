"""
Module: catalog_kernel.db.adapter
Responsibility: The key-value persistence contract consumed by every catalog
    service, plus the query value types shared by all implementations.
Architecture position: Kernel > DB.  Services depend on StorageAdapter only;
    they never know whether records live in SQL or in memory.

Contract:
    - Records are JSON-compatible dicts with a string ``id`` and an integer
      ``version`` (optimistic-concurrency counter).
    - Reads return copies; mutating a returned dict never affects storage.
    - Read-your-writes within a single logical operation.
    - ``save`` is compare-and-swap:
        expected_version=None  -> insert; an existing id is a conflict.
        expected_version=N     -> update; stored version must equal N.
      A mismatch raises ConcurrencyConflictError.
    - ``transaction()`` makes a group of writes atomic: all are visible or
      none are.  A nested ``transaction()`` is a savepoint: when it raises,
      only its own writes are undone and the enclosing transaction goes on
      with what it had written before.
"""

from collections.abc import Iterator, Mapping
from contextlib import AbstractContextManager
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Protocol
from uuid import UUID

Record = dict[str, Any]


@dataclass(frozen=True)
class OrderBy:
    """
    One sort key.

    ``numeric`` marks a field that is always present and holds an integer
    (sequence and version numbers).  Backends may then sort and page in the
    database instead of loading every row.
    """

    field: str
    descending: bool = False
    numeric: bool = False


@dataclass(frozen=True)
class QueryFilter:
    """
    Equality filter with ordering and paging.

    ``where`` maps payload field names to required values; all must match.
    """

    where: Mapping[str, Any] = field(default_factory=dict)
    order_by: tuple[OrderBy, ...] = ()
    limit: int | None = None
    offset: int = 0


class StorageAdapter(Protocol):
    """Generic namespaced key-value store."""

    def get_all(self, namespace: str) -> list[Record]: ...

    def get_by_id(self, namespace: str, record_id: Any) -> Record | None: ...

    def query(self, namespace: str, query_filter: QueryFilter) -> list[Record]: ...

    def save(
        self,
        namespace: str,
        record: Record,
        expected_version: int | None = None,
    ) -> Record: ...

    def delete(self, namespace: str, record_id: Any) -> bool: ...

    def count(self, namespace: str, query_filter: QueryFilter | None = None) -> int: ...

    def transaction(self) -> AbstractContextManager[None]: ...


# ---------------------------------------------------------------------------
# Shared query evaluation
# ---------------------------------------------------------------------------


def normalize_value(value: Any) -> Any:
    """Map UUIDs and enums to the primitive form stored in records."""
    if isinstance(value, UUID):
        return str(value)
    if isinstance(value, Enum):
        return value.value
    return value


def matches(record: Mapping[str, Any], where: Mapping[str, Any]) -> bool:
    """True when every ``where`` field equals the record's value."""
    return all(
        record.get(key) == normalize_value(value) for key, value in where.items()
    )


class _SortValue:
    """Orders None before any value, and mixed types by their string form."""

    __slots__ = ("value",)

    def __init__(self, value: Any):
        self.value = value

    def __lt__(self, other: "_SortValue") -> bool:
        a, b = self.value, other.value
        if a is None or b is None:
            return a is None and b is not None
        try:
            return a < b
        except TypeError:
            return str(a) < str(b)

    def __eq__(self, other: object) -> bool:
        return isinstance(other, _SortValue) and self.value == other.value


def apply_filter(
    records: Iterator[Record] | list[Record],
    query_filter: QueryFilter,
) -> list[Record]:
    """Filter, order and page records in memory."""
    selected = [r for r in records if matches(r, query_filter.where)]
    # Stable sorts applied from the least significant key backwards.
    for order in reversed(query_filter.order_by):
        selected.sort(
            key=lambda r, f=order.field: _SortValue(r.get(f)),
            reverse=order.descending,
        )
    end = None if query_filter.limit is None else query_filter.offset + query_filter.limit
    return selected[query_filter.offset:end]
