"""Services for the catalog kernel (write side and read views)."""

from catalog_kernel.services.article_service import ArticleCatalog
from catalog_kernel.services.audit_service import AuditService, AuditTrace
from catalog_kernel.services.base import BaseService, Namespace, result_boundary
from catalog_kernel.services.boat_model_service import BoatModelCatalog
from catalog_kernel.services.bom_expansion import BOMExpansionEngine
from catalog_kernel.services.bom_service import BOMService
from catalog_kernel.services.kit_service import KitCatalog
from catalog_kernel.services.taxonomy_service import TaxonomyService
from catalog_kernel.services.versioned_store import (
    Approval,
    VersionedEntityStore,
    VersionedKind,
)

__all__ = [
    "Approval",
    "ArticleCatalog",
    "AuditService",
    "AuditTrace",
    "BOMExpansionEngine",
    "BOMService",
    "BaseService",
    "BoatModelCatalog",
    "KitCatalog",
    "Namespace",
    "TaxonomyService",
    "VersionedEntityStore",
    "VersionedKind",
    "result_boundary",
]
