"""
Pure domain layer.

Immutable value types and pure functions with no dependency on storage:
- Library entities (categories, articles, kits, boat models) and inputs
- Version lifecycle rules
- Configuration items and the legacy parts table
- Kit cost rollup, BOM lines, snapshots and analyses
- Result values and the injectable clock
"""

from catalog_kernel.domain.audit import (
    SYSTEM_CONTEXT,
    AuditAction,
    AuditContext,
    AuditEntry,
)
from catalog_kernel.domain.boat_model import (
    BoatModel,
    BoatModelInput,
    BoatModelVersion,
    BoatModelVersionInput,
    DesignCategory,
)
from catalog_kernel.domain.bom import (
    BOMLine,
    BOMSnapshot,
    BOMSummary,
    ExpansionMode,
    SnapshotTrigger,
    aggregate_lines,
)
from catalog_kernel.domain.clock import Clock, DeterministicClock, SystemClock
from catalog_kernel.domain.configuration import (
    ArticleItem,
    ConfigurationItem,
    ConfigurationItemType,
    CustomItem,
    KitItem,
    LegacyItem,
    configuration_item_from_record,
)
from catalog_kernel.domain.cost_rollup import (
    DEFAULT_COST_ESTIMATION_RATIO,
    estimate_unit_cost,
    rollup_kit_cost,
)
from catalog_kernel.domain.legacy_parts import LegacyPartDefinition, LegacyPartsTable
from catalog_kernel.domain.library import (
    Article,
    ArticleInput,
    ArticleTag,
    ArticleVersion,
    ArticleVersionInput,
    Attachment,
    AttachmentInput,
    AttachmentType,
    Category,
    CostRollupMode,
    Kit,
    KitComponent,
    KitCost,
    KitInput,
    KitVersion,
    KitVersionInput,
    Subcategory,
)
from catalog_kernel.domain.result import Err, Ok, Result
from catalog_kernel.domain.versioning import VersionStatus

__all__ = [
    "Article",
    "ArticleInput",
    "ArticleItem",
    "ArticleTag",
    "ArticleVersion",
    "ArticleVersionInput",
    "Attachment",
    "AttachmentInput",
    "AttachmentType",
    "AuditAction",
    "AuditContext",
    "AuditEntry",
    "BOMLine",
    "BOMSnapshot",
    "BOMSummary",
    "BoatModel",
    "BoatModelInput",
    "BoatModelVersion",
    "BoatModelVersionInput",
    "Category",
    "Clock",
    "ConfigurationItem",
    "ConfigurationItemType",
    "CostRollupMode",
    "CustomItem",
    "DEFAULT_COST_ESTIMATION_RATIO",
    "DesignCategory",
    "DeterministicClock",
    "Err",
    "ExpansionMode",
    "Kit",
    "KitComponent",
    "KitCost",
    "KitInput",
    "KitItem",
    "KitVersion",
    "KitVersionInput",
    "LegacyItem",
    "LegacyPartDefinition",
    "LegacyPartsTable",
    "Ok",
    "Result",
    "SYSTEM_CONTEXT",
    "SnapshotTrigger",
    "Subcategory",
    "SystemClock",
    "VersionStatus",
    "aggregate_lines",
    "configuration_item_from_record",
    "estimate_unit_cost",
    "rollup_kit_cost",
]
