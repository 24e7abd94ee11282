"""
Bill of Materials domain types and pure analyses.

Responsibility:
    BOMLine (engine output), aggregation of duplicate parts, the persisted
    BOMSnapshot, and the read-only analyses run over a snapshot (estimation
    summary, cost by category, critical path, margin).

Invariants enforced:
    - total_cost == unit_cost x quantity on every line, before and after
      aggregation.  Lines merge only when part key, unit cost and
      estimation flag all match, so real and estimated costs of the same
      part stay on separate lines.
    - Output order is deterministic: category, then name.
    - Each line records the expansion mode that produced it, so totals
      from resolved and fallback expansion can be told apart.
"""

from collections.abc import Iterable, Sequence
from dataclasses import dataclass, replace
from datetime import datetime
from decimal import ROUND_HALF_UP, Decimal
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

DEFAULT_HIGH_ESTIMATION_THRESHOLD = Decimal("30")
DEFAULT_CRITICAL_PATH_LIMIT = 5

_ONE = Decimal("1")
_TENTH = Decimal("0.1")


class ExpansionMode(str, Enum):
    """Which expansion path produced a BOM line."""

    RESOLVED = "RESOLVED"  # live catalog reads
    FALLBACK = "FALLBACK"  # no catalog reads; articles and kits estimated


class SnapshotTrigger(str, Enum):
    ORDER_CONFIRMED = "ORDER_CONFIRMED"
    AMENDMENT = "AMENDMENT"
    MANUAL = "MANUAL"


# =============================================================================
# Lines
# =============================================================================


@dataclass(frozen=True)
class BOMLine:
    name: str
    category: str
    quantity: Decimal
    unit: str
    unit_cost: Decimal
    total_cost: Decimal
    expansion_mode: ExpansionMode
    article_number: str | None = None
    description: str | None = None
    is_estimated: bool = False
    estimation_ratio: Decimal | None = None
    sell_price: Decimal | None = None
    lead_time_days: int | None = None
    supplier: str | None = None
    article_id: UUID | None = None
    article_version_id: UUID | None = None

    @property
    def part_key(self) -> tuple[str, str, Decimal, bool]:
        """Aggregation key: article number when traceable, else exact name."""
        if self.article_number:
            return ("article", self.article_number, self.unit_cost, self.is_estimated)
        return ("name", self.name, self.unit_cost, self.is_estimated)

    def to_record(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "category": self.category,
            "quantity": dec_out(self.quantity),
            "unit": self.unit,
            "unit_cost": dec_out(self.unit_cost),
            "total_cost": dec_out(self.total_cost),
            "expansion_mode": self.expansion_mode.value,
            "article_number": self.article_number,
            "description": self.description,
            "is_estimated": self.is_estimated,
            "estimation_ratio": dec_out(self.estimation_ratio),
            "sell_price": dec_out(self.sell_price),
            "lead_time_days": self.lead_time_days,
            "supplier": self.supplier,
            "article_id": uuid_out(self.article_id),
            "article_version_id": uuid_out(self.article_version_id),
        }

    @classmethod
    def from_record(cls, data: dict[str, Any]) -> Self:
        return cls(
            name=data["name"],
            category=data["category"],
            quantity=dec_in(data["quantity"]),
            unit=data["unit"],
            unit_cost=dec_in(data["unit_cost"]),
            total_cost=dec_in(data["total_cost"]),
            expansion_mode=ExpansionMode(data["expansion_mode"]),
            article_number=data.get("article_number"),
            description=data.get("description"),
            is_estimated=data.get("is_estimated", False),
            estimation_ratio=dec_in(data.get("estimation_ratio")),
            sell_price=dec_in(data.get("sell_price")),
            lead_time_days=data.get("lead_time_days"),
            supplier=data.get("supplier"),
            article_id=uuid_in(data.get("article_id")),
            article_version_id=uuid_in(data.get("article_version_id")),
        )


def make_line(
    *,
    name: str,
    category: str,
    quantity: Decimal,
    unit: str,
    unit_cost: Decimal,
    expansion_mode: ExpansionMode,
    **extra: Any,
) -> BOMLine:
    """Build a line with ``total_cost`` derived from unit cost and quantity."""
    return BOMLine(
        name=name,
        category=category,
        quantity=quantity,
        unit=unit,
        unit_cost=unit_cost,
        total_cost=unit_cost * quantity,
        expansion_mode=expansion_mode,
        **extra,
    )


def _sort_key(line: BOMLine) -> tuple[str, str, str, bool]:
    return (
        line.category.casefold(),
        line.name.casefold(),
        line.article_number or "",
        line.is_estimated,
    )


def aggregate_lines(lines: Iterable[BOMLine]) -> tuple[BOMLine, ...]:
    """
    Merge lines that refer to the same part at the same unit cost.

    An estimated line and a line with a known cost price never merge.

    Quantities are summed and ``total_cost`` recomputed as
    ``unit_cost x quantity``.  The first occurrence supplies the descriptive
    fields.  Result is sorted by category, then name.
    """
    merged: dict[tuple[str, str, Decimal, bool], BOMLine] = {}
    for line in lines:
        key = line.part_key
        existing = merged.get(key)
        if existing is None:
            merged[key] = line
            continue
        quantity = existing.quantity + line.quantity
        merged[key] = replace(
            existing,
            quantity=quantity,
            total_cost=existing.unit_cost * quantity,
        )
    return tuple(sorted(merged.values(), key=_sort_key))


# =============================================================================
# Summary and snapshot
# =============================================================================


@dataclass(frozen=True)
class BOMSummary:
    """Totals over a set of BOM lines."""

    line_count: int
    total_parts: Decimal
    total_cost_excl_vat: Decimal
    estimated_cost_count: int
    estimated_cost_total: Decimal
    actual_cost_total: Decimal
    expansion_mode: ExpansionMode

    @classmethod
    def from_lines(
        cls, lines: Sequence[BOMLine], expansion_mode: ExpansionMode
    ) -> Self:
        total_cost = sum((line.total_cost for line in lines), Decimal("0"))
        estimated = [line for line in lines if line.is_estimated]
        estimated_total = sum((line.total_cost for line in estimated), Decimal("0"))
        return cls(
            line_count=len(lines),
            total_parts=sum((line.quantity for line in lines), Decimal("0")),
            total_cost_excl_vat=total_cost,
            estimated_cost_count=len(estimated),
            estimated_cost_total=estimated_total,
            actual_cost_total=total_cost - estimated_total,
            expansion_mode=expansion_mode,
        )


@dataclass(frozen=True)
class BOMSnapshot:
    """A numbered, persisted BOM baseline for a project."""

    id: UUID
    project_id: str
    snapshot_number: int
    lines: tuple[BOMLine, ...]
    total_parts: Decimal
    total_cost_excl_vat: Decimal
    estimated_cost_count: int
    estimated_cost_total: Decimal
    actual_cost_total: Decimal
    cost_estimation_ratio: Decimal
    expansion_mode: ExpansionMode
    trigger: SnapshotTrigger
    configuration_total_excl_vat: Decimal
    created_at: datetime
    created_by: str
    status: str = "BASELINE"
    version: int = 0

    def to_record(self) -> dict[str, Any]:
        return {
            "id": uuid_out(self.id),
            "project_id": self.project_id,
            "snapshot_number": self.snapshot_number,
            "lines": [line.to_record() for line in self.lines],
            "total_parts": dec_out(self.total_parts),
            "total_cost_excl_vat": dec_out(self.total_cost_excl_vat),
            "estimated_cost_count": self.estimated_cost_count,
            "estimated_cost_total": dec_out(self.estimated_cost_total),
            "actual_cost_total": dec_out(self.actual_cost_total),
            "cost_estimation_ratio": dec_out(self.cost_estimation_ratio),
            "expansion_mode": self.expansion_mode.value,
            "trigger": self.trigger.value,
            "configuration_total_excl_vat": dec_out(self.configuration_total_excl_vat),
            "status": self.status,
            "created_at": dt_out(self.created_at),
            "created_by": self.created_by,
            "version": self.version,
        }

    @classmethod
    def from_record(cls, data: dict[str, Any]) -> Self:
        return cls(
            id=uuid_in(data["id"]),
            project_id=data["project_id"],
            snapshot_number=data["snapshot_number"],
            lines=tuple(BOMLine.from_record(line) for line in data["lines"]),
            total_parts=dec_in(data["total_parts"]),
            total_cost_excl_vat=dec_in(data["total_cost_excl_vat"]),
            estimated_cost_count=data["estimated_cost_count"],
            estimated_cost_total=dec_in(data["estimated_cost_total"]),
            actual_cost_total=dec_in(data["actual_cost_total"]),
            cost_estimation_ratio=dec_in(data["cost_estimation_ratio"]),
            expansion_mode=ExpansionMode(data["expansion_mode"]),
            trigger=SnapshotTrigger(data["trigger"]),
            configuration_total_excl_vat=dec_in(data["configuration_total_excl_vat"]),
            status=data.get("status", "BASELINE"),
            created_at=dt_in(data["created_at"]),
            created_by=data["created_by"],
            version=data["version"],
        )


# =============================================================================
# Analyses
# =============================================================================


def _whole_percent(part: Decimal, whole: Decimal) -> int:
    if whole <= 0:
        return 0
    return int((part * 100 / whole).quantize(_ONE, rounding=ROUND_HALF_UP))


def _tenth_percent(part: Decimal, whole: Decimal) -> Decimal:
    if whole <= 0:
        return Decimal("0")
    return (part * 100 / whole).quantize(_TENTH, rounding=ROUND_HALF_UP)


@dataclass(frozen=True)
class EstimationSummary:
    total_items: int
    estimated_count: int
    estimated_percent: int
    estimated_value: Decimal
    estimated_value_percent: int
    actual_value: Decimal
    ratio: Decimal
    is_high_estimation: bool


def estimation_summary(
    snapshot: BOMSnapshot,
    threshold_percent: Decimal = DEFAULT_HIGH_ESTIMATION_THRESHOLD,
) -> EstimationSummary:
    """How much of a BOM's value rests on the estimation heuristic."""
    total_items = len(snapshot.lines)
    value_percent = _whole_percent(
        snapshot.estimated_cost_total, snapshot.total_cost_excl_vat
    )
    return EstimationSummary(
        total_items=total_items,
        estimated_count=snapshot.estimated_cost_count,
        estimated_percent=_whole_percent(
            Decimal(snapshot.estimated_cost_count), Decimal(total_items)
        ),
        estimated_value=snapshot.estimated_cost_total,
        estimated_value_percent=value_percent,
        actual_value=snapshot.actual_cost_total,
        ratio=snapshot.cost_estimation_ratio,
        is_high_estimation=value_percent > threshold_percent,
    )


@dataclass(frozen=True)
class CategoryCost:
    category: str
    cost: Decimal
    percentage: Decimal
    estimated_cost: Decimal


def cost_summary_by_category(snapshot: BOMSnapshot) -> tuple[CategoryCost, ...]:
    """Cost per category, most expensive first."""
    totals: dict[str, tuple[Decimal, Decimal]] = {}
    for line in snapshot.lines:
        cost, estimated = totals.get(line.category, (Decimal("0"), Decimal("0")))
        cost += line.total_cost
        if line.is_estimated:
            estimated += line.total_cost
        totals[line.category] = (cost, estimated)

    rows = [
        CategoryCost(
            category=category,
            cost=cost,
            percentage=_tenth_percent(cost, snapshot.total_cost_excl_vat),
            estimated_cost=estimated,
        )
        for category, (cost, estimated) in totals.items()
    ]
    return tuple(sorted(rows, key=lambda row: (-row.cost, row.category)))


def critical_path_items(
    snapshot: BOMSnapshot, limit: int = DEFAULT_CRITICAL_PATH_LIMIT
) -> tuple[BOMLine, ...]:
    """Lines with the longest lead times."""
    with_lead_time = [
        line for line in snapshot.lines if line.lead_time_days and line.lead_time_days > 0
    ]
    with_lead_time.sort(key=lambda line: -(line.lead_time_days or 0))
    return tuple(with_lead_time[:limit])


@dataclass(frozen=True)
class MarginSummary:
    sell_price: Decimal
    cost: Decimal
    margin: Decimal
    margin_percent: Decimal
    estimated_cost_percent: int


def calculate_margin(
    snapshot: BOMSnapshot, sell_price: Decimal | None = None
) -> MarginSummary:
    """
    Margin of the quoted configuration over its BOM cost.

    ``sell_price`` defaults to the configuration total captured when the
    snapshot was generated.
    """
    price = (
        snapshot.configuration_total_excl_vat if sell_price is None else sell_price
    )
    cost = snapshot.total_cost_excl_vat
    margin = price - cost
    return MarginSummary(
        sell_price=price,
        cost=cost,
        margin=margin,
        margin_percent=_tenth_percent(margin, price),
        estimated_cost_percent=_whole_percent(snapshot.estimated_cost_total, cost),
    )
