"""
BOMExpansionEngine -- configuration items to a costed, aggregated BOM.

Responsibility:
    Turns the included items of a project configuration into BOM lines,
    choosing for each line either an authoritative cost (article cost price,
    kit rollup, legacy table) or the estimation heuristic
    (``ratio x sell price``), then merges duplicate parts.

Architecture position:
    Kernel > Services.  Reads the catalog through ArticleCatalog and
    KitCatalog in RESOLVED mode; FALLBACK mode performs no catalog reads.
    The legacy parts table and the ratio are injected.

Invariants enforced:
    - Excluded items contribute nothing.
    - Expansion never fails on missing cost data: every included item
      produces at least one line unless it is a kit whose components no
      longer resolve.
    - total_cost == unit_cost x quantity on every emitted line.
    - Every line records the ExpansionMode that produced it.
    - Output is sorted by category, then name.

Failure modes:
    - ValueError when RESOLVED expansion is requested from an engine built
      without catalogs (programmer error).
"""

from collections.abc import Iterable
from decimal import Decimal
from typing import assert_never

from catalog_kernel.domain.bom import (
    BOMLine,
    BOMSummary,
    ExpansionMode,
    aggregate_lines,
    make_line,
)
from catalog_kernel.domain.configuration import (
    ArticleItem,
    ConfigurationItem,
    CustomItem,
    KitItem,
    LegacyItem,
)
from catalog_kernel.domain.cost_rollup import (
    DEFAULT_COST_ESTIMATION_RATIO,
    estimate_unit_cost,
    opaque_kit_unit_cost,
)
from catalog_kernel.domain.legacy_parts import LegacyPartsTable
from catalog_kernel.logging_config import get_logger
from catalog_kernel.services.article_service import ArticleCatalog
from catalog_kernel.services.kit_service import KitCatalog

logger = get_logger("services.bom_expansion")


class BOMExpansionEngine:
    """
    Deterministic expansion of configuration items into BOM lines.

    Args:
        articles: Article catalog (RESOLVED mode only).
        kits: Kit catalog (RESOLVED mode only).
        legacy_parts: Name-to-parts table for LEGACY items.
        ratio: Cost estimation ratio applied to sell prices.
    """

    def __init__(
        self,
        articles: ArticleCatalog | None = None,
        kits: KitCatalog | None = None,
        legacy_parts: LegacyPartsTable | None = None,
        ratio: Decimal = DEFAULT_COST_ESTIMATION_RATIO,
    ):
        self._articles = articles
        self._kits = kits
        self._legacy_parts = legacy_parts or LegacyPartsTable.empty()
        self._ratio = ratio

    @property
    def ratio(self) -> Decimal:
        return self._ratio

    @property
    def legacy_parts(self) -> LegacyPartsTable:
        return self._legacy_parts

    # -------------------------------------------------------------------------
    # Entry points
    # -------------------------------------------------------------------------

    def expand_to_bom_items(
        self,
        items: Iterable[ConfigurationItem],
        mode: ExpansionMode = ExpansionMode.RESOLVED,
    ) -> tuple[BOMLine, ...]:
        """
        Expand included items and aggregate duplicate parts.

        RESOLVED reads pinned article and kit versions from the catalog.
        FALLBACK reads nothing and treats ARTICLE and KIT items as CUSTOM.
        """
        if mode == ExpansionMode.RESOLVED and (
            self._articles is None or self._kits is None
        ):
            raise ValueError("resolved expansion requires article and kit catalogs")

        raw: list[BOMLine] = []
        item_count = 0
        for item in items:
            if not item.is_included:
                continue
            item_count += 1
            raw.extend(self._expand_item(item, mode))

        lines = aggregate_lines(raw)
        for line in lines:
            if line.is_estimated:
                logger.debug(
                    "bom_cost_estimated",
                    extra={
                        "line_name": line.name,
                        "article_number": line.article_number,
                        "unit_cost": str(line.unit_cost),
                        "ratio": str(self._ratio),
                    },
                )
        logger.info(
            "bom_expanded",
            extra={
                "expansion_mode": mode.value,
                "item_count": item_count,
                "line_count": len(lines),
                "estimated_count": sum(1 for line in lines if line.is_estimated),
            },
        )
        return lines

    def expand_fallback(self, items: Iterable[ConfigurationItem]) -> tuple[BOMLine, ...]:
        return self.expand_to_bom_items(items, ExpansionMode.FALLBACK)

    @staticmethod
    def summarize(lines: tuple[BOMLine, ...], mode: ExpansionMode) -> BOMSummary:
        return BOMSummary.from_lines(lines, mode)

    # -------------------------------------------------------------------------
    # Per item type
    # -------------------------------------------------------------------------

    def _expand_item(
        self, item: ConfigurationItem, mode: ExpansionMode
    ) -> list[BOMLine]:
        if isinstance(item, CustomItem):
            return [self._custom_line(item, mode)]
        if isinstance(item, LegacyItem):
            return self._legacy_lines(item, mode)
        if isinstance(item, ArticleItem):
            if mode == ExpansionMode.FALLBACK:
                return [self._custom_line(item, mode)]
            return self._article_lines(item, mode)
        if isinstance(item, KitItem):
            if mode == ExpansionMode.FALLBACK:
                return [self._custom_line(item, mode)]
            return self._kit_lines(item, mode)
        assert_never(item)

    def _custom_line(self, item: ConfigurationItem, mode: ExpansionMode) -> BOMLine:
        return make_line(
            name=item.name,
            category=item.category,
            quantity=item.quantity,
            unit=item.unit,
            unit_cost=estimate_unit_cost(item.unit_price_excl_vat, self._ratio),
            expansion_mode=mode,
            article_number=item.article_number,
            description=item.description,
            is_estimated=True,
            estimation_ratio=self._ratio,
            sell_price=item.unit_price_excl_vat,
        )

    def _legacy_lines(self, item: LegacyItem, mode: ExpansionMode) -> list[BOMLine]:
        parts = self._legacy_parts.lookup(item.name)
        if parts is None:
            return [self._custom_line(item, mode)]
        return [
            make_line(
                name=part.name,
                category=part.category,
                quantity=part.quantity * item.quantity,
                unit=part.unit,
                unit_cost=part.unit_cost,
                expansion_mode=mode,
                article_number=part.article_number,
                description=f"From: {item.name} (legacy)",
                supplier=part.supplier,
                lead_time_days=part.lead_time_days,
            )
            for part in parts
        ]

    def _article_lines(self, item: ArticleItem, mode: ExpansionMode) -> list[BOMLine]:
        resolved = (
            self._articles.resolve_version(item.article_version_id)
            if item.article_version_id is not None
            else None
        )
        if resolved is None:
            logger.warning(
                "bom_reference_unresolved",
                extra={
                    "item_id": str(item.id),
                    "item_type": item.item_type.value,
                    "version_id": str(item.article_version_id),
                },
            )
            return [self._custom_line(item, mode)]

        article, version = resolved
        if version.cost_price is not None:
            unit_cost, estimated = version.cost_price, False
        else:
            unit_cost = estimate_unit_cost(item.unit_price_excl_vat, self._ratio)
            estimated = True

        return [
            make_line(
                name=item.name,
                category=item.category,
                quantity=item.quantity,
                unit=item.unit,
                unit_cost=unit_cost,
                expansion_mode=mode,
                article_number=article.code,
                description=item.description,
                is_estimated=estimated,
                estimation_ratio=self._ratio if estimated else None,
                sell_price=item.unit_price_excl_vat if estimated else None,
                lead_time_days=version.lead_time_days,
                supplier=article.supplier_id,
                article_id=article.id,
                article_version_id=version.id,
            )
        ]

    def _kit_lines(self, item: KitItem, mode: ExpansionMode) -> list[BOMLine]:
        resolved = (
            self._kits.resolve_version(item.kit_version_id)
            if item.kit_version_id is not None
            else None
        )
        if resolved is None:
            logger.warning(
                "bom_reference_unresolved",
                extra={
                    "item_id": str(item.id),
                    "item_type": item.item_type.value,
                    "version_id": str(item.kit_version_id),
                },
            )
            return [self._custom_line(item, mode)]

        kit, version = resolved
        if not version.explodes:
            unit_cost, estimated = opaque_kit_unit_cost(
                version,
                self._kits.rollup(version),
                item.unit_price_excl_vat,
                self._ratio,
            )
            return [
                make_line(
                    name=item.name,
                    category=item.category,
                    quantity=item.quantity,
                    unit="set",
                    unit_cost=unit_cost,
                    expansion_mode=mode,
                    article_number=kit.code,
                    description=f"Kit ({len(version.components)} components)",
                    is_estimated=estimated,
                    estimation_ratio=self._ratio if estimated else None,
                    sell_price=item.unit_price_excl_vat if estimated else None,
                )
            ]

        lines = []
        for component in version.components:
            found = self._articles.resolve_version(component.article_version_id)
            if found is None:
                logger.warning(
                    "kit_component_unresolved",
                    extra={
                        "kit_version_id": str(version.id),
                        "article_version_id": str(component.article_version_id),
                    },
                )
                continue
            article, article_version = found
            if article_version.cost_price is not None:
                unit_cost, estimated = article_version.cost_price, False
            else:
                unit_cost = estimate_unit_cost(article_version.sell_price, self._ratio)
                estimated = True
            lines.append(
                make_line(
                    name=article.name,
                    category=item.category,
                    quantity=component.qty * item.quantity,
                    unit=article.unit,
                    unit_cost=unit_cost,
                    expansion_mode=mode,
                    article_number=article.code,
                    description=component.notes or f"From kit: {item.name}",
                    is_estimated=estimated,
                    estimation_ratio=self._ratio if estimated else None,
                    sell_price=article_version.sell_price if estimated else None,
                    lead_time_days=article_version.lead_time_days,
                    supplier=article.supplier_id,
                    article_id=article.id,
                    article_version_id=article_version.id,
                )
            )
        return lines
