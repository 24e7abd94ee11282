"""Database layer - engine, base classes and the storage contract.

Adapters live in ``catalog_kernel.db.sql_adapter`` and
``catalog_kernel.db.memory_adapter``.
"""

from catalog_kernel.db.adapter import OrderBy, QueryFilter, StorageAdapter
from catalog_kernel.db.base import Base, TrackedBase, UUIDString
from catalog_kernel.db.engine import (
    create_tables,
    get_engine,
    get_session,
    init_engine_from_url,
    session_scope,
)

__all__ = [
    "Base",
    "TrackedBase",
    "UUIDString",
    "StorageAdapter",
    "QueryFilter",
    "OrderBy",
    "init_engine_from_url",
    "get_engine",
    "get_session",
    "session_scope",
    "create_tables",
]
