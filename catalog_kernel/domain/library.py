"""
Library domain types -- categories, articles, kits and their versions.

Headers (Article, Kit) carry identity and the ``current_version_id``
pointer.  Versions carry everything commercial (prices, costs, components,
attachments) and follow the lifecycle in ``catalog_kernel.domain.versioning``.

Kit components are pinned to an ArticleVersion id, never to the mutable
Article header.

All types are frozen dataclasses; services produce modified copies with
``dataclasses.replace``.  ``to_record()`` / ``from_record()`` convert to the
JSON-compatible dicts stored by the storage adapter.
"""

from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Any, Self
from uuid import UUID

from catalog_kernel.domain.codec import (
    dec_in,
    dec_out,
    dt_in,
    dt_out,
    uuid_in,
    uuid_out,
)
from catalog_kernel.domain.versioning import VersionStatus
from catalog_kernel.exceptions import CatalogValidationError

DEFAULT_VAT_RATE = Decimal("21")


# =============================================================================
# Enums
# =============================================================================


class ArticleTag(str, Enum):
    """Qualitative labels on an article."""

    CE_CRITICAL = "CE_CRITICAL"
    SAFETY_CRITICAL = "SAFETY_CRITICAL"
    OPTIONAL = "OPTIONAL"
    STANDARD = "STANDARD"


class AttachmentType(str, Enum):
    MODEL_3D = "3D"
    CNC = "CNC"
    MANUAL = "MANUAL"
    CERTIFICATE = "CERTIFICATE"
    DRAWING = "DRAWING"
    DATASHEET = "DATASHEET"
    OTHER = "OTHER"


class CostRollupMode(str, Enum):
    """How a kit's cost is derived."""

    SUM_COMPONENTS = "SUM_COMPONENTS"
    MANUAL = "MANUAL"


# =============================================================================
# Taxonomy
# =============================================================================


@dataclass(frozen=True)
class Category:
    id: UUID
    name: str
    sort_order: int
    created_at: datetime
    updated_at: datetime
    version: int = 0

    def to_record(self) -> dict[str, Any]:
        return {
            "id": uuid_out(self.id),
            "name": self.name,
            "sort_order": self.sort_order,
            "created_at": dt_out(self.created_at),
            "updated_at": dt_out(self.updated_at),
            "version": self.version,
        }

    @classmethod
    def from_record(cls, data: dict[str, Any]) -> Self:
        return cls(
            id=uuid_in(data["id"]),
            name=data["name"],
            sort_order=data["sort_order"],
            created_at=dt_in(data["created_at"]),
            updated_at=dt_in(data["updated_at"]),
            version=data["version"],
        )


@dataclass(frozen=True)
class Subcategory:
    id: UUID
    category_id: UUID
    name: str
    sort_order: int
    created_at: datetime
    updated_at: datetime
    version: int = 0

    def to_record(self) -> dict[str, Any]:
        return {
            "id": uuid_out(self.id),
            "category_id": uuid_out(self.category_id),
            "name": self.name,
            "sort_order": self.sort_order,
            "created_at": dt_out(self.created_at),
            "updated_at": dt_out(self.updated_at),
            "version": self.version,
        }

    @classmethod
    def from_record(cls, data: dict[str, Any]) -> Self:
        return cls(
            id=uuid_in(data["id"]),
            category_id=uuid_in(data["category_id"]),
            name=data["name"],
            sort_order=data["sort_order"],
            created_at=dt_in(data["created_at"]),
            updated_at=dt_in(data["updated_at"]),
            version=data["version"],
        )


@dataclass(frozen=True)
class SubcategoryNode:
    """Category tree leaf with usage counts."""

    subcategory: Subcategory
    article_count: int
    kit_count: int


@dataclass(frozen=True)
class CategoryNode:
    category: Category
    subcategories: tuple[SubcategoryNode, ...]


# =============================================================================
# Articles
# =============================================================================


@dataclass(frozen=True)
class Attachment:
    """
    File metadata on an article version.

    Exactly one of ``data_url`` (inline content) or ``url`` (external) is set.
    """

    id: UUID
    type: AttachmentType
    filename: str
    mime_type: str
    size_bytes: int
    uploaded_at: datetime
    uploaded_by: str
    data_url: str | None = None
    url: str | None = None
    notes: str | None = None

    def to_record(self) -> dict[str, Any]:
        return {
            "id": uuid_out(self.id),
            "type": self.type.value,
            "filename": self.filename,
            "mime_type": self.mime_type,
            "size_bytes": self.size_bytes,
            "uploaded_at": dt_out(self.uploaded_at),
            "uploaded_by": self.uploaded_by,
            "data_url": self.data_url,
            "url": self.url,
            "notes": self.notes,
        }

    @classmethod
    def from_record(cls, data: dict[str, Any]) -> Self:
        return cls(
            id=uuid_in(data["id"]),
            type=AttachmentType(data["type"]),
            filename=data["filename"],
            mime_type=data["mime_type"],
            size_bytes=data["size_bytes"],
            uploaded_at=dt_in(data["uploaded_at"]),
            uploaded_by=data["uploaded_by"],
            data_url=data.get("data_url"),
            url=data.get("url"),
            notes=data.get("notes"),
        )


@dataclass(frozen=True)
class Article:
    id: UUID
    code: str
    name: str
    subcategory_id: UUID
    unit: str
    created_at: datetime
    updated_at: datetime
    tags: frozenset[ArticleTag] = frozenset()
    supplier_id: str | None = None
    current_version_id: UUID | None = None
    version: int = 0

    def to_record(self) -> dict[str, Any]:
        return {
            "id": uuid_out(self.id),
            "code": self.code,
            "name": self.name,
            "subcategory_id": uuid_out(self.subcategory_id),
            "unit": self.unit,
            "tags": sorted(t.value for t in self.tags),
            "supplier_id": self.supplier_id,
            "current_version_id": uuid_out(self.current_version_id),
            "created_at": dt_out(self.created_at),
            "updated_at": dt_out(self.updated_at),
            "version": self.version,
        }

    @classmethod
    def from_record(cls, data: dict[str, Any]) -> Self:
        return cls(
            id=uuid_in(data["id"]),
            code=data["code"],
            name=data["name"],
            subcategory_id=uuid_in(data["subcategory_id"]),
            unit=data["unit"],
            tags=frozenset(ArticleTag(t) for t in data.get("tags") or ()),
            supplier_id=data.get("supplier_id"),
            current_version_id=uuid_in(data.get("current_version_id")),
            created_at=dt_in(data["created_at"]),
            updated_at=dt_in(data["updated_at"]),
            version=data["version"],
        )


@dataclass(frozen=True)
class ArticleVersion:
    id: UUID
    article_id: UUID
    version_number: int
    status: VersionStatus
    sell_price: Decimal
    created_at: datetime
    updated_at: datetime
    cost_price: Decimal | None = None
    vat_rate: Decimal = DEFAULT_VAT_RATE
    weight_kg: Decimal | None = None
    lead_time_days: int | None = None
    attachments: tuple[Attachment, ...] = ()
    notes: str | None = None
    specs: dict[str, Any] = field(default_factory=dict)
    approved_at: datetime | None = None
    approved_by: str | None = None
    version: int = 0

    @property
    def has_cost_price(self) -> bool:
        return self.cost_price is not None

    def to_record(self) -> dict[str, Any]:
        return {
            "id": uuid_out(self.id),
            "article_id": uuid_out(self.article_id),
            "version_number": self.version_number,
            "status": self.status.value,
            "sell_price": dec_out(self.sell_price),
            "cost_price": dec_out(self.cost_price),
            "vat_rate": dec_out(self.vat_rate),
            "weight_kg": dec_out(self.weight_kg),
            "lead_time_days": self.lead_time_days,
            "attachments": [a.to_record() for a in self.attachments],
            "notes": self.notes,
            "specs": dict(self.specs),
            "approved_at": dt_out(self.approved_at),
            "approved_by": self.approved_by,
            "created_at": dt_out(self.created_at),
            "updated_at": dt_out(self.updated_at),
            "version": self.version,
        }

    @classmethod
    def from_record(cls, data: dict[str, Any]) -> Self:
        return cls(
            id=uuid_in(data["id"]),
            article_id=uuid_in(data["article_id"]),
            version_number=data["version_number"],
            status=VersionStatus(data["status"]),
            sell_price=dec_in(data["sell_price"]),
            cost_price=dec_in(data.get("cost_price")),
            vat_rate=(
                DEFAULT_VAT_RATE
                if data.get("vat_rate") is None
                else dec_in(data["vat_rate"])
            ),
            weight_kg=dec_in(data.get("weight_kg")),
            lead_time_days=data.get("lead_time_days"),
            attachments=tuple(
                Attachment.from_record(a) for a in data.get("attachments") or ()
            ),
            notes=data.get("notes"),
            specs=dict(data.get("specs") or {}),
            approved_at=dt_in(data.get("approved_at")),
            approved_by=data.get("approved_by"),
            created_at=dt_in(data["created_at"]),
            updated_at=dt_in(data["updated_at"]),
            version=data["version"],
        )


@dataclass(frozen=True)
class ArticleWithVersion:
    """Resolved read view: header, current version and taxonomy."""

    article: Article
    version: ArticleVersion
    subcategory: Subcategory
    category: Category


# =============================================================================
# Kits
# =============================================================================


@dataclass(frozen=True)
class KitComponent:
    """One pinned line of a kit: an ArticleVersion and a quantity."""

    article_version_id: UUID
    qty: Decimal
    notes: str | None = None

    def to_record(self) -> dict[str, Any]:
        return {
            "article_version_id": uuid_out(self.article_version_id),
            "qty": dec_out(self.qty),
            "notes": self.notes,
        }

    @classmethod
    def from_record(cls, data: dict[str, Any]) -> Self:
        return cls(
            article_version_id=uuid_in(data["article_version_id"]),
            qty=dec_in(data["qty"]),
            notes=data.get("notes"),
        )


@dataclass(frozen=True)
class Kit:
    id: UUID
    code: str
    name: str
    subcategory_id: UUID
    created_at: datetime
    updated_at: datetime
    description: str | None = None
    current_version_id: UUID | None = None
    version: int = 0

    def to_record(self) -> dict[str, Any]:
        return {
            "id": uuid_out(self.id),
            "code": self.code,
            "name": self.name,
            "subcategory_id": uuid_out(self.subcategory_id),
            "description": self.description,
            "current_version_id": uuid_out(self.current_version_id),
            "created_at": dt_out(self.created_at),
            "updated_at": dt_out(self.updated_at),
            "version": self.version,
        }

    @classmethod
    def from_record(cls, data: dict[str, Any]) -> Self:
        return cls(
            id=uuid_in(data["id"]),
            code=data["code"],
            name=data["name"],
            subcategory_id=uuid_in(data["subcategory_id"]),
            description=data.get("description"),
            current_version_id=uuid_in(data.get("current_version_id")),
            created_at=dt_in(data["created_at"]),
            updated_at=dt_in(data["updated_at"]),
            version=data["version"],
        )


@dataclass(frozen=True)
class KitVersion:
    """
    A kit version.

    ``explode_in_bom`` and ``sales_only`` are independent flags; either one
    keeps the kit as a single opaque BOM line.
    """

    id: UUID
    kit_id: UUID
    version_number: int
    status: VersionStatus
    sell_price: Decimal
    created_at: datetime
    updated_at: datetime
    cost_rollup_mode: CostRollupMode = CostRollupMode.SUM_COMPONENTS
    manual_cost_price: Decimal | None = None
    components: tuple[KitComponent, ...] = ()
    explode_in_bom: bool = True
    sales_only: bool = False
    notes: str | None = None
    approved_at: datetime | None = None
    approved_by: str | None = None
    version: int = 0

    @property
    def explodes(self) -> bool:
        return self.explode_in_bom and not self.sales_only

    def to_record(self) -> dict[str, Any]:
        return {
            "id": uuid_out(self.id),
            "kit_id": uuid_out(self.kit_id),
            "version_number": self.version_number,
            "status": self.status.value,
            "sell_price": dec_out(self.sell_price),
            "cost_rollup_mode": self.cost_rollup_mode.value,
            "manual_cost_price": dec_out(self.manual_cost_price),
            "components": [c.to_record() for c in self.components],
            "explode_in_bom": self.explode_in_bom,
            "sales_only": self.sales_only,
            "notes": self.notes,
            "approved_at": dt_out(self.approved_at),
            "approved_by": self.approved_by,
            "created_at": dt_out(self.created_at),
            "updated_at": dt_out(self.updated_at),
            "version": self.version,
        }

    @classmethod
    def from_record(cls, data: dict[str, Any]) -> Self:
        return cls(
            id=uuid_in(data["id"]),
            kit_id=uuid_in(data["kit_id"]),
            version_number=data["version_number"],
            status=VersionStatus(data["status"]),
            sell_price=dec_in(data["sell_price"]),
            cost_rollup_mode=CostRollupMode(data["cost_rollup_mode"]),
            manual_cost_price=dec_in(data.get("manual_cost_price")),
            components=tuple(
                KitComponent.from_record(c) for c in data.get("components") or ()
            ),
            explode_in_bom=data.get("explode_in_bom", True),
            sales_only=data.get("sales_only", False),
            notes=data.get("notes"),
            approved_at=dt_in(data.get("approved_at")),
            approved_by=data.get("approved_by"),
            created_at=dt_in(data["created_at"]),
            updated_at=dt_in(data["updated_at"]),
            version=data["version"],
        )


@dataclass(frozen=True)
class KitCost:
    """
    Result of a kit cost rollup.

    A non-empty ``missing_costs`` means ``cost`` is partial: those components
    contributed 0 because their cost is unknown, not because it is zero.
    """

    cost: Decimal
    missing_costs: tuple[str, ...] = ()

    @property
    def is_partial(self) -> bool:
        return bool(self.missing_costs)


@dataclass(frozen=True)
class ResolvedKitComponent:
    article: Article
    article_version: ArticleVersion
    qty: Decimal
    notes: str | None = None


@dataclass(frozen=True)
class KitWithComponents:
    """Resolved read view of a kit version and its pinned components."""

    kit: Kit
    version: KitVersion
    subcategory: Subcategory | None
    category: Category | None
    components: tuple[ResolvedKitComponent, ...]


# =============================================================================
# Inputs
# =============================================================================


@dataclass(frozen=True)
class ArticleVersionInput:
    """Pricing fields for a new article version; nothing is inherited."""

    sell_price: Decimal | None
    cost_price: Decimal | None = None
    vat_rate: Decimal | None = None
    weight_kg: Decimal | None = None
    lead_time_days: int | None = None
    notes: str | None = None
    specs: dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class ArticleInput:
    code: str
    name: str
    subcategory_id: UUID
    unit: str
    sell_price: Decimal | None
    cost_price: Decimal | None = None
    vat_rate: Decimal | None = None
    weight_kg: Decimal | None = None
    lead_time_days: int | None = None
    notes: str | None = None
    specs: dict[str, Any] = field(default_factory=dict)
    tags: frozenset[ArticleTag] = frozenset()
    supplier_id: str | None = None

    def version_input(self) -> ArticleVersionInput:
        return ArticleVersionInput(
            sell_price=self.sell_price,
            cost_price=self.cost_price,
            vat_rate=self.vat_rate,
            weight_kg=self.weight_kg,
            lead_time_days=self.lead_time_days,
            notes=self.notes,
            specs=dict(self.specs),
        )


@dataclass(frozen=True)
class AttachmentInput:
    type: AttachmentType
    filename: str
    mime_type: str
    size_bytes: int
    data_url: str | None = None
    url: str | None = None
    notes: str | None = None


@dataclass(frozen=True)
class KitVersionInput:
    sell_price: Decimal | None
    components: tuple[KitComponent, ...] = ()
    cost_rollup_mode: CostRollupMode = CostRollupMode.SUM_COMPONENTS
    manual_cost_price: Decimal | None = None
    explode_in_bom: bool = True
    sales_only: bool = False
    notes: str | None = None


@dataclass(frozen=True)
class KitInput:
    code: str
    name: str
    subcategory_id: UUID
    sell_price: Decimal | None
    components: tuple[KitComponent, ...] = ()
    cost_rollup_mode: CostRollupMode = CostRollupMode.SUM_COMPONENTS
    manual_cost_price: Decimal | None = None
    explode_in_bom: bool = True
    sales_only: bool = False
    description: str | None = None
    notes: str | None = None

    def version_input(self) -> KitVersionInput:
        return KitVersionInput(
            sell_price=self.sell_price,
            components=tuple(self.components),
            cost_rollup_mode=self.cost_rollup_mode,
            manual_cost_price=self.manual_cost_price,
            explode_in_bom=self.explode_in_bom,
            sales_only=self.sales_only,
            notes=self.notes,
        )


# =============================================================================
# Validation
# =============================================================================


def require_text(field_name: str, value: str | None) -> None:
    if value is None or not value.strip():
        raise CatalogValidationError(field_name, "is required")


def require_price(field_name: str, value: Decimal | None) -> None:
    """A required, non-negative money amount."""
    if value is None:
        raise CatalogValidationError(field_name, "is required")
    if value < 0:
        raise CatalogValidationError(field_name, f"must be >= 0 (got {value})")


def optional_non_negative(field_name: str, value: Decimal | int | None) -> None:
    if value is not None and value < 0:
        raise CatalogValidationError(field_name, f"must be >= 0 (got {value})")


def validate_article_version_input(data: ArticleVersionInput) -> None:
    require_price("sell_price", data.sell_price)
    optional_non_negative("cost_price", data.cost_price)
    optional_non_negative("vat_rate", data.vat_rate)
    optional_non_negative("weight_kg", data.weight_kg)
    optional_non_negative("lead_time_days", data.lead_time_days)


def validate_attachment_input(data: AttachmentInput) -> None:
    require_text("filename", data.filename)
    optional_non_negative("size_bytes", data.size_bytes)
    if (data.data_url is None) == (data.url is None):
        raise CatalogValidationError(
            "attachment", "exactly one of data_url or url must be provided"
        )


def validate_kit_version_input(data: KitVersionInput) -> None:
    require_price("sell_price", data.sell_price)
    optional_non_negative("manual_cost_price", data.manual_cost_price)
    for component in data.components:
        if component.qty <= 0:
            raise CatalogValidationError(
                "components.qty",
                f"must be > 0 (got {component.qty} for {component.article_version_id})",
            )
