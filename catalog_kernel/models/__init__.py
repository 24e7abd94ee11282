"""ORM models for the catalog kernel."""

from catalog_kernel.models.catalog_record import CatalogRecord

__all__ = [
    "CatalogRecord",
]
