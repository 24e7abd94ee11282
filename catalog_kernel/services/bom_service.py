"""
BOMService -- numbered BOM baselines per project and their analyses.

Responsibility:
    Runs the expansion engine over a project's configuration, persists the
    result as an immutable, numbered ``BOMSnapshot`` and exposes the
    read-only analyses procurement and sales look at (estimation share,
    cost per category, long-lead items, margin).

Architecture position:
    Kernel > Services.  Orchestrates BOMExpansionEngine; the analyses
    themselves are pure functions in ``catalog_kernel.domain.bom``.

Invariants enforced:
    - snapshot_number is 1-based and increases by one per project.
    - Snapshots are never rewritten once stored.
    - A snapshot records the ratio and expansion mode it was built with.

Audit relevance:
    Every generated snapshot appends a GENERATE audit entry summarising
    part count, trigger and how many lines were estimated.
"""

from collections.abc import Sequence
from decimal import ROUND_HALF_UP, Decimal
from uuid import UUID, uuid4

from catalog_kernel.db.adapter import OrderBy, QueryFilter, StorageAdapter
from catalog_kernel.domain.audit import AuditAction, AuditContext
from catalog_kernel.domain.bom import (
    DEFAULT_CRITICAL_PATH_LIMIT,
    DEFAULT_HIGH_ESTIMATION_THRESHOLD,
    BOMLine,
    BOMSnapshot,
    BOMSummary,
    CategoryCost,
    EstimationSummary,
    ExpansionMode,
    MarginSummary,
    SnapshotTrigger,
    calculate_margin,
    cost_summary_by_category,
    critical_path_items,
    estimation_summary,
)
from catalog_kernel.domain.clock import Clock
from catalog_kernel.domain.configuration import ConfigurationItem
from catalog_kernel.domain.library import require_text
from catalog_kernel.exceptions import SnapshotNotFoundError
from catalog_kernel.logging_config import LogContext, get_logger
from catalog_kernel.services.audit_service import AuditService
from catalog_kernel.services.base import BaseService, Namespace, result_boundary
from catalog_kernel.services.bom_expansion import BOMExpansionEngine

logger = get_logger("services.bom")


class BOMService(BaseService):
    """
    BOM snapshot generation and analysis.

    Args:
        adapter: Storage adapter.
        engine: Configured expansion engine (ratio and legacy table).
        clock: Time source.
        audit: Audit trail.
        high_estimation_threshold: Percent of estimated value above which a
            BOM is flagged as resting mostly on estimates.
    """

    def __init__(
        self,
        adapter: StorageAdapter,
        engine: BOMExpansionEngine,
        clock: Clock | None = None,
        audit: AuditService | None = None,
        high_estimation_threshold: Decimal = DEFAULT_HIGH_ESTIMATION_THRESHOLD,
    ):
        super().__init__(adapter, clock, audit)
        self._engine = engine
        self._threshold = high_estimation_threshold

    @property
    def engine(self) -> BOMExpansionEngine:
        return self._engine

    @result_boundary("generate_bom_snapshot")
    def generate_snapshot(
        self,
        project_id: str,
        items: Sequence[ConfigurationItem],
        ctx: AuditContext,
        trigger: SnapshotTrigger = SnapshotTrigger.MANUAL,
        mode: ExpansionMode = ExpansionMode.RESOLVED,
    ) -> BOMSnapshot:
        """
        Expand ``items`` and store the result as the project's next baseline.

        The configuration total (sell side, used by ``margin``) is the sum of
        the included items' line totals.
        """
        require_text("project_id", project_id)

        with LogContext.bind(project_id=project_id, actor_id=ctx.user_id):
            lines = self._engine.expand_to_bom_items(items, mode)
            summary = BOMSummary.from_lines(lines, mode)
            configuration_total = sum(
                (item.sell_total_excl_vat for item in items if item.is_included),
                Decimal("0"),
            )

            with self.adapter.transaction():
                snapshot = BOMSnapshot(
                    id=uuid4(),
                    project_id=project_id,
                    snapshot_number=self._snapshot_count(project_id) + 1,
                    lines=lines,
                    total_parts=summary.total_parts,
                    total_cost_excl_vat=summary.total_cost_excl_vat,
                    estimated_cost_count=summary.estimated_cost_count,
                    estimated_cost_total=summary.estimated_cost_total,
                    actual_cost_total=summary.actual_cost_total,
                    cost_estimation_ratio=self._engine.ratio,
                    expansion_mode=mode,
                    trigger=trigger,
                    configuration_total_excl_vat=configuration_total,
                    created_at=self._now(),
                    created_by=ctx.user_id,
                )
                self.adapter.save(Namespace.BOM_SNAPSHOTS, snapshot.to_record())

                ratio_percent = (self._engine.ratio * 100).quantize(
                    Decimal("1"), rounding=ROUND_HALF_UP
                )
                self.audit.record(
                    ctx,
                    AuditAction.GENERATE,
                    "BOMSnapshot",
                    snapshot.id,
                    f"Generated BOM Baseline #{snapshot.snapshot_number} with "
                    f"{snapshot.total_parts} parts ({trigger.value}). "
                    f"{snapshot.estimated_cost_count} items estimated at "
                    f"{ratio_percent}%.",
                    {
                        "project_id": project_id,
                        "snapshot_number": snapshot.snapshot_number,
                        "total_cost_excl_vat": str(snapshot.total_cost_excl_vat),
                        "expansion_mode": mode.value,
                    },
                )

            logger.info(
                "bom_snapshot_generated",
                extra={
                    "entity_id": str(snapshot.id),
                    "snapshot_number": snapshot.snapshot_number,
                    "line_count": len(lines),
                    "total_cost_excl_vat": str(snapshot.total_cost_excl_vat),
                    "trigger": trigger.value,
                },
            )
        return snapshot

    def _snapshot_count(self, project_id: str) -> int:
        return self.adapter.count(
            Namespace.BOM_SNAPSHOTS, QueryFilter(where={"project_id": project_id})
        )

    # -------------------------------------------------------------------------
    # Reads
    # -------------------------------------------------------------------------

    def list_snapshots(self, project_id: str) -> list[BOMSnapshot]:
        rows = self.adapter.query(
            Namespace.BOM_SNAPSHOTS,
            QueryFilter(
                where={"project_id": project_id},
                order_by=(OrderBy("snapshot_number", numeric=True),),
            ),
        )
        return [BOMSnapshot.from_record(r) for r in rows]

    def latest_snapshot(self, project_id: str) -> BOMSnapshot | None:
        rows = self.adapter.query(
            Namespace.BOM_SNAPSHOTS,
            QueryFilter(
                where={"project_id": project_id},
                order_by=(OrderBy("snapshot_number", descending=True, numeric=True),),
                limit=1,
            ),
        )
        return BOMSnapshot.from_record(rows[0]) if rows else None

    @result_boundary("get_bom_snapshot")
    def get_snapshot(self, snapshot_id: UUID) -> BOMSnapshot:
        data = self.adapter.get_by_id(Namespace.BOM_SNAPSHOTS, snapshot_id)
        if data is None:
            raise SnapshotNotFoundError(str(snapshot_id))
        return BOMSnapshot.from_record(data)

    # -------------------------------------------------------------------------
    # Analyses
    # -------------------------------------------------------------------------

    def estimation_summary(self, snapshot: BOMSnapshot) -> EstimationSummary:
        result = estimation_summary(snapshot, self._threshold)
        if result.is_high_estimation:
            logger.warning(
                "bom_high_estimation",
                extra={
                    "entity_id": str(snapshot.id),
                    "estimated_value_percent": result.estimated_value_percent,
                },
            )
        return result

    def cost_by_category(self, snapshot: BOMSnapshot) -> tuple[CategoryCost, ...]:
        return cost_summary_by_category(snapshot)

    def critical_path(
        self, snapshot: BOMSnapshot, limit: int = DEFAULT_CRITICAL_PATH_LIMIT
    ) -> tuple[BOMLine, ...]:
        return critical_path_items(snapshot, limit)

    def margin(
        self, snapshot: BOMSnapshot, sell_price: Decimal | None = None
    ) -> MarginSummary:
        return calculate_margin(snapshot, sell_price)
