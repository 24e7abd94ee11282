"""
CostRollup -- kit cost strategies and the cost-estimation heuristic.

Pure functions, no I/O.  Article version lookups are passed in as a
callable so the same rollup serves KitCatalog (display) and the BOM
expansion engine (explosion).

Precedence is strict: a real cost price always wins over the heuristic.
The heuristic (``ratio x sell price``) is used only when no authoritative
cost is known, so the commercial workflow is never blocked by missing data.
"""

from collections.abc import Callable
from decimal import ROUND_HALF_UP, Decimal
from uuid import UUID

from catalog_kernel.domain.library import (
    Article,
    ArticleVersion,
    CostRollupMode,
    KitCost,
    KitVersion,
)
from catalog_kernel.logging_config import get_logger

logger = get_logger("domain.cost_rollup")

DEFAULT_COST_ESTIMATION_RATIO = Decimal("0.6")

_CENT = Decimal("0.01")

ComponentResolver = Callable[[UUID], tuple[Article, ArticleVersion] | None]


def estimate_unit_cost(sell_price: Decimal, ratio: Decimal) -> Decimal:
    """``ratio x sell_price`` rounded half-up to cents."""
    return (sell_price * ratio).quantize(_CENT, rounding=ROUND_HALF_UP)


def rollup_kit_cost(version: KitVersion, resolve: ComponentResolver) -> KitCost:
    """
    Compute a kit version's cost.

    MANUAL: ``manual_cost_price`` (0 when unset), never partial.
    SUM_COMPONENTS: sum of ``cost_price x qty`` over pinned components.
    A component without cost contributes 0 and its article code is listed
    in ``missing_costs``.  A component whose pinned version cannot be
    resolved is listed by version id.
    """
    if version.cost_rollup_mode == CostRollupMode.MANUAL:
        return KitCost(cost=version.manual_cost_price or Decimal("0"))

    total = Decimal("0")
    missing: list[str] = []
    for component in version.components:
        resolved = resolve(component.article_version_id)
        if resolved is None:
            logger.warning(
                "kit_component_unresolved",
                extra={
                    "kit_version_id": str(version.id),
                    "article_version_id": str(component.article_version_id),
                },
            )
            missing.append(str(component.article_version_id))
            continue
        article, article_version = resolved
        if article_version.cost_price is None:
            missing.append(article.code)
            continue
        total += article_version.cost_price * component.qty

    return KitCost(cost=total, missing_costs=tuple(missing))


def opaque_kit_unit_cost(
    version: KitVersion,
    kit_cost: KitCost,
    fallback_price: Decimal,
    ratio: Decimal,
) -> tuple[Decimal, bool]:
    """
    Unit cost of a kit kept as a single BOM line.

    Returns ``(unit_cost, is_estimated)``.  The rollup is authoritative when
    it is complete: a MANUAL kit with a manual price, or a SUM_COMPONENTS kit
    with at least one component and no missing costs.  Otherwise the
    heuristic is applied to ``fallback_price`` (the quoted kit price).
    """
    if version.cost_rollup_mode == CostRollupMode.MANUAL:
        authoritative = version.manual_cost_price is not None
    else:
        authoritative = bool(version.components) and not kit_cost.is_partial

    if authoritative:
        return kit_cost.cost, False
    return estimate_unit_cost(fallback_price, ratio), True
