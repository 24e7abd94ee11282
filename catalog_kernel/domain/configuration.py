"""
ConfigurationItem -- the line items of a project's equipment configuration.

A tagged union with one variant per item type, each carrying only its own
references:

    ArticleItem  -> article_id / article_version_id
    KitItem      -> kit_id / kit_version_id
    LegacyItem   -> free-text name, resolved through the legacy parts table
    CustomItem   -> free-text name, always costed by estimation

``line_total_excl_vat`` is maintained by the caller and trusted as the
commercial (sell-side) total.  Items with ``is_included=False`` never enter
BOM expansion.
"""

from dataclasses import dataclass, field
from decimal import Decimal
from enum import Enum
from typing import Any
from uuid import UUID, uuid4

from catalog_kernel.domain.codec import dec_in, dec_out, uuid_in, uuid_out


class ConfigurationItemType(str, Enum):
    ARTICLE = "ARTICLE"
    KIT = "KIT"
    LEGACY = "LEGACY"
    CUSTOM = "CUSTOM"


@dataclass(frozen=True, kw_only=True)
class _ConfigurationItemBase:
    name: str
    category: str
    quantity: Decimal
    unit_price_excl_vat: Decimal = Decimal("0")
    unit: str = "pcs"
    id: UUID = field(default_factory=uuid4)
    line_total_excl_vat: Decimal | None = None
    is_included: bool = True
    article_number: str | None = None
    description: str | None = None

    item_type: ConfigurationItemType = field(init=False)

    @property
    def sell_total_excl_vat(self) -> Decimal:
        """Caller-maintained line total, or quantity x unit price when unset."""
        if self.line_total_excl_vat is not None:
            return self.line_total_excl_vat
        return self.quantity * self.unit_price_excl_vat

    def _base_record(self) -> dict[str, Any]:
        return {
            "item_type": self.item_type.value,
            "id": uuid_out(self.id),
            "name": self.name,
            "category": self.category,
            "quantity": dec_out(self.quantity),
            "unit": self.unit,
            "unit_price_excl_vat": dec_out(self.unit_price_excl_vat),
            "line_total_excl_vat": dec_out(self.line_total_excl_vat),
            "is_included": self.is_included,
            "article_number": self.article_number,
            "description": self.description,
        }

    def to_record(self) -> dict[str, Any]:
        return self._base_record()


@dataclass(frozen=True, kw_only=True)
class ArticleItem(_ConfigurationItemBase):
    article_id: UUID | None = None
    article_version_id: UUID | None = None

    item_type: ConfigurationItemType = field(
        default=ConfigurationItemType.ARTICLE, init=False
    )

    def to_record(self) -> dict[str, Any]:
        record = self._base_record()
        record["article_id"] = uuid_out(self.article_id)
        record["article_version_id"] = uuid_out(self.article_version_id)
        return record


@dataclass(frozen=True, kw_only=True)
class KitItem(_ConfigurationItemBase):
    kit_id: UUID | None = None
    kit_version_id: UUID | None = None

    item_type: ConfigurationItemType = field(
        default=ConfigurationItemType.KIT, init=False
    )

    def to_record(self) -> dict[str, Any]:
        record = self._base_record()
        record["kit_id"] = uuid_out(self.kit_id)
        record["kit_version_id"] = uuid_out(self.kit_version_id)
        return record


@dataclass(frozen=True, kw_only=True)
class LegacyItem(_ConfigurationItemBase):
    item_type: ConfigurationItemType = field(
        default=ConfigurationItemType.LEGACY, init=False
    )


@dataclass(frozen=True, kw_only=True)
class CustomItem(_ConfigurationItemBase):
    item_type: ConfigurationItemType = field(
        default=ConfigurationItemType.CUSTOM, init=False
    )


ConfigurationItem = ArticleItem | KitItem | LegacyItem | CustomItem


def configuration_item_from_record(data: dict[str, Any]) -> ConfigurationItem:
    """
    Decode a stored configuration item.

    Records written before item types existed carry no ``item_type`` and are
    read as LEGACY items.
    """
    item_type = ConfigurationItemType(data.get("item_type") or "LEGACY")
    common = dict(
        id=uuid_in(data["id"]) if data.get("id") else uuid4(),
        name=data["name"],
        category=data["category"],
        quantity=dec_in(data["quantity"]),
        unit=data.get("unit") or "pcs",
        unit_price_excl_vat=dec_in(data.get("unit_price_excl_vat")) or Decimal("0"),
        line_total_excl_vat=dec_in(data.get("line_total_excl_vat")),
        is_included=data.get("is_included", True),
        article_number=data.get("article_number"),
        description=data.get("description"),
    )
    if item_type == ConfigurationItemType.ARTICLE:
        return ArticleItem(
            article_id=uuid_in(data.get("article_id")),
            article_version_id=uuid_in(data.get("article_version_id")),
            **common,
        )
    if item_type == ConfigurationItemType.KIT:
        return KitItem(
            kit_id=uuid_in(data.get("kit_id")),
            kit_version_id=uuid_in(data.get("kit_version_id")),
            **common,
        )
    if item_type == ConfigurationItemType.CUSTOM:
        return CustomItem(**common)
    return LegacyItem(**common)
