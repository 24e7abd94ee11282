"""
Module: catalog_kernel.models.catalog_record
Responsibility: ORM persistence for every catalog record kept by the SQL
    storage adapter.  One row per record; the record body is a JSON payload
    keyed by namespace ("library_articles", "library_kit_versions", ...).
Architecture position: Kernel > Models.  May import from db/base.py only.

Invariants enforced:
    - record_version mirrors the entity's optimistic-concurrency counter and
      is compared on every update (compare-and-swap, see SqlStorageAdapter).
    - (namespace, id) identifies a record; ids are globally unique uuid4.
"""

from typing import Any

from sqlalchemy import JSON, BigInteger, Index, String
from sqlalchemy.orm import Mapped, mapped_column

from catalog_kernel.db.base import TrackedBase


class CatalogRecord(TrackedBase):
    """A namespaced JSON record."""

    __tablename__ = "catalog_records"

    __table_args__ = (
        Index("idx_catalog_record_namespace", "namespace"),
    )

    namespace: Mapped[str] = mapped_column(String(100), nullable=False)

    record_version: Mapped[int] = mapped_column(
        BigInteger,
        nullable=False,
        default=0,
    )

    payload: Mapped[dict[str, Any]] = mapped_column(JSON, nullable=False)

    def __repr__(self) -> str:
        return (
            f"<CatalogRecord {self.namespace}/{self.id} v{self.record_version}>"
        )
