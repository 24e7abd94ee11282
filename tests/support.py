"""Shared constants and builders for the catalog kernel tests."""

from decimal import Decimal
from uuid import UUID

from catalog_kernel.domain.audit import AuditContext
from catalog_kernel.domain.configuration import (
    ArticleItem,
    CustomItem,
    KitItem,
    LegacyItem,
)

AUDIT_CTX = AuditContext(user_id="u-1", user_name="Test User")


def custom_item(
    name: str,
    unit_price: str,
    quantity: str = "1",
    category: str = "Custom",
    **kwargs,
) -> CustomItem:
    return CustomItem(
        name=name,
        category=category,
        quantity=Decimal(quantity),
        unit_price_excl_vat=Decimal(unit_price),
        **kwargs,
    )


def legacy_item(
    name: str,
    quantity: str = "1",
    unit_price: str = "0",
    category: str = "Legacy",
    **kwargs,
) -> LegacyItem:
    return LegacyItem(
        name=name,
        category=category,
        quantity=Decimal(quantity),
        unit_price_excl_vat=Decimal(unit_price),
        **kwargs,
    )


def article_item(
    name: str,
    article_id: UUID | None,
    article_version_id: UUID | None,
    unit_price: str = "0",
    quantity: str = "1",
    category: str = "Propulsion",
    **kwargs,
) -> ArticleItem:
    return ArticleItem(
        name=name,
        category=category,
        quantity=Decimal(quantity),
        unit_price_excl_vat=Decimal(unit_price),
        article_id=article_id,
        article_version_id=article_version_id,
        **kwargs,
    )


def kit_item(
    name: str,
    kit_id: UUID | None,
    kit_version_id: UUID | None,
    unit_price: str = "0",
    quantity: str = "1",
    category: str = "Propulsion",
    **kwargs,
) -> KitItem:
    return KitItem(
        name=name,
        category=category,
        quantity=Decimal(quantity),
        unit_price_excl_vat=Decimal(unit_price),
        kit_id=kit_id,
        kit_version_id=kit_version_id,
        **kwargs,
    )
