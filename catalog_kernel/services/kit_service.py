"""
KitCatalog -- versioned kits composed of pinned article versions.

Responsibility:
    Kit headers and versions, component validation, cost rollup and the
    resolved component view.

Architecture position:
    Kernel > Services.  Built on VersionedEntityStore; reads article
    versions through ArticleCatalog; cost logic lives in
    ``catalog_kernel.domain.cost_rollup``.

Invariants enforced:
    - Every component of a new kit version references an existing,
      APPROVED ArticleVersion.  Pinned ids are never rewritten.
    - Component quantities are > 0.
    - calculate_cost is a pure read: the same stored state always yields
      the same KitCost.

Failure modes (returned as Err):
    - DUPLICATE_CODE, NOT_FOUND (subcategory, kit, version, component),
      COMPONENT_NOT_APPROVED, VALIDATION_ERROR, INVALID_STATE.
"""

from collections.abc import Iterable
from typing import Any
from uuid import UUID, uuid4

from catalog_kernel.db.adapter import QueryFilter, StorageAdapter
from catalog_kernel.domain.audit import AuditAction, AuditContext
from catalog_kernel.domain.clock import Clock
from catalog_kernel.domain.cost_rollup import rollup_kit_cost
from catalog_kernel.domain.library import (
    Kit,
    KitComponent,
    KitCost,
    KitInput,
    KitVersion,
    KitVersionInput,
    KitWithComponents,
    ResolvedKitComponent,
    require_text,
    validate_kit_version_input,
)
from catalog_kernel.domain.versioning import VersionStatus
from catalog_kernel.exceptions import (
    ComponentNotApprovedError,
    DuplicateCodeError,
    KitNotFoundError,
    VersionNotFoundError,
)
from catalog_kernel.logging_config import get_logger
from catalog_kernel.services.article_service import ArticleCatalog
from catalog_kernel.services.audit_service import AuditService
from catalog_kernel.services.base import BaseService, Namespace, result_boundary
from catalog_kernel.services.versioned_store import (
    VersionedEntityStore,
    VersionedKind,
)

logger = get_logger("services.kit")

KIT_KIND: VersionedKind[Kit, KitVersion] = VersionedKind(
    entity_type="Kit",
    header_namespace=Namespace.KITS,
    version_namespace=Namespace.KIT_VERSIONS,
    parent_field="kit_id",
    header_type=Kit,
    version_type=KitVersion,
    header_not_found=KitNotFoundError,
)


class KitCatalog(BaseService):
    """
    Kit master data service.

    Args:
        adapter: Storage adapter.
        articles: Article catalog used to resolve pinned components.
        clock: Time source; defaults to the article catalog's clock.
        audit: Audit trail; defaults to the article catalog's trail.
    """

    def __init__(
        self,
        adapter: StorageAdapter,
        articles: ArticleCatalog,
        clock: Clock | None = None,
        audit: AuditService | None = None,
    ):
        super().__init__(adapter, clock or articles.clock, audit or articles.audit)
        self._articles = articles
        self._store = VersionedEntityStore(KIT_KIND, adapter, self.clock)

    @property
    def store(self) -> VersionedEntityStore[Kit, KitVersion]:
        return self._store

    def _validate_components(self, components: Iterable[KitComponent]) -> None:
        for component in components:
            resolved = self._articles.resolve_version(component.article_version_id)
            if resolved is None:
                raise VersionNotFoundError(str(component.article_version_id))
            _, version = resolved
            if version.status != VersionStatus.APPROVED:
                raise ComponentNotApprovedError(
                    str(component.article_version_id), version.status.value
                )

    def _new_version(self, kit_id: UUID, data: KitVersionInput) -> KitVersion:
        now = self._now()
        return KitVersion(
            id=uuid4(),
            kit_id=kit_id,
            version_number=0,
            status=VersionStatus.DRAFT,
            sell_price=data.sell_price,
            cost_rollup_mode=data.cost_rollup_mode,
            manual_cost_price=data.manual_cost_price,
            components=tuple(data.components),
            explode_in_bom=data.explode_in_bom,
            sales_only=data.sales_only,
            notes=data.notes,
            created_at=now,
            updated_at=now,
        )

    # -------------------------------------------------------------------------
    # Mutations
    # -------------------------------------------------------------------------

    @result_boundary("create_kit")
    def create(self, data: KitInput, ctx: AuditContext) -> KitWithComponents:
        """Create a kit header and its DRAFT version 1."""
        require_text("code", data.code)
        require_text("name", data.name)
        version_input = data.version_input()
        validate_kit_version_input(version_input)

        if self.find_by_code(data.code) is not None:
            raise DuplicateCodeError("Kit", data.code)
        subcategory = self._articles.taxonomy.require_subcategory(data.subcategory_id)
        self._validate_components(version_input.components)

        now = self._now()
        with self.adapter.transaction():
            kit = self._store.create(
                Kit(
                    id=uuid4(),
                    code=data.code,
                    name=data.name,
                    subcategory_id=subcategory.id,
                    description=data.description,
                    created_at=now,
                    updated_at=now,
                )
            )
            version = self._store.create_version(
                kit.id, self._new_version(kit.id, version_input)
            )
            self.audit.record(
                ctx,
                AuditAction.CREATE,
                "Kit",
                kit.id,
                f"Created kit {kit.code}",
                {
                    "code": kit.code,
                    "name": kit.name,
                    "component_count": len(version.components),
                },
            )

        logger.info(
            "kit_created",
            extra={
                "entity_id": str(kit.id),
                "kit_code": kit.code,
                "component_count": len(version.components),
            },
        )
        return self._resolve(kit, version)

    @result_boundary("create_kit_version")
    def create_version(
        self, kit_id: UUID, data: KitVersionInput, ctx: AuditContext
    ) -> KitVersion:
        validate_kit_version_input(data)
        kit = self._store.get_header(kit_id)
        self._validate_components(data.components)
        version = self._store.create_version(kit.id, self._new_version(kit.id, data))
        self.audit.record(
            ctx,
            AuditAction.CREATE,
            "KitVersion",
            version.id,
            f"Created version {version.version_number} for kit {kit.code}",
        )
        return version

    @result_boundary("approve_kit_version")
    def approve_version(self, version_id: UUID, ctx: AuditContext) -> KitVersion:
        approval = self._store.approve_version(version_id, ctx)
        kit = approval.header
        for retired in approval.deprecated:
            self.audit.record(
                ctx,
                AuditAction.DEPRECATE,
                "KitVersion",
                retired.id,
                f"Deprecated version {retired.version_number} of kit {kit.code}",
            )
        self.audit.record(
            ctx,
            AuditAction.APPROVE,
            "KitVersion",
            approval.approved.id,
            f"Approved version {approval.approved.version_number} for kit {kit.code}",
        )
        return approval.approved

    # -------------------------------------------------------------------------
    # Cost
    # -------------------------------------------------------------------------

    @result_boundary("calculate_kit_cost")
    def calculate_cost(self, kit_version_id: UUID) -> KitCost:
        """
        Cost of a kit version from its pinned components or manual price.

        See ``rollup_kit_cost`` for the rules; a partial result lists the
        offending article codes in ``missing_costs``.
        """
        return self.rollup(self._store.get_version(kit_version_id))

    def rollup(self, version: KitVersion) -> KitCost:
        """Non-failing cost rollup of an already loaded version."""
        kit_cost = rollup_kit_cost(version, self._articles.resolve_version)
        if kit_cost.is_partial:
            logger.warning(
                "kit_cost_partial",
                extra={
                    "entity_id": str(version.id),
                    "missing_costs": list(kit_cost.missing_costs),
                },
            )
        return kit_cost

    # -------------------------------------------------------------------------
    # Reads
    # -------------------------------------------------------------------------

    def get_by_id(self, kit_id: Any) -> Kit | None:
        return self._store.find_header(kit_id)

    def find_by_code(self, code: str) -> Kit | None:
        rows = self.adapter.query(
            Namespace.KITS, QueryFilter(where={"code": code}, limit=1)
        )
        return Kit.from_record(rows[0]) if rows else None

    get_by_code = find_by_code

    def list_all(self) -> list[Kit]:
        return sorted(self._store.list_headers(), key=lambda k: k.code)

    def list_by_subcategory(self, subcategory_id: Any) -> list[Kit]:
        kits = self._store.list_headers({"subcategory_id": subcategory_id})
        return sorted(kits, key=lambda k: k.code)

    def search(self, query: str) -> list[Kit]:
        needle = query.strip().casefold()
        return [
            kit
            for kit in self.list_all()
            if needle in kit.code.casefold() or needle in kit.name.casefold()
        ]

    def get_version(self, version_id: Any) -> KitVersion | None:
        return self._store.find_version(version_id)

    def list_versions(self, kit_id: Any) -> list[KitVersion]:
        return self._store.list_versions(kit_id)

    def get_current_version(self, kit_id: Any) -> KitVersion | None:
        return self._store.get_current_version(kit_id)

    def resolve_version(self, version_id: Any) -> tuple[Kit, KitVersion] | None:
        version = self._store.find_version(version_id)
        if version is None:
            return None
        kit = self._store.find_header(version.kit_id)
        if kit is None:
            return None
        return kit, version

    def get_with_components(self, version_id: Any) -> KitWithComponents | None:
        """A kit version with every resolvable component expanded."""
        resolved = self.resolve_version(version_id)
        if resolved is None:
            return None
        return self._resolve(*resolved)

    def get_with_current_version(self, kit_id: Any) -> KitWithComponents | None:
        kit = self._store.find_header(kit_id)
        if kit is None:
            return None
        version = self._store.get_current_version(kit.id)
        return self._resolve(kit, version) if version is not None else None

    def list_with_approved_versions(self) -> list[KitWithComponents]:
        """Every kit whose current version is APPROVED, components resolved."""
        views = []
        for kit in self.list_all():
            view = self.get_with_current_version(kit.id)
            if view is not None and view.version.status == VersionStatus.APPROVED:
                views.append(view)
        return views

    def _resolve(self, kit: Kit, version: KitVersion) -> KitWithComponents:
        taxonomy = self._articles.taxonomy
        subcategory = taxonomy.get_subcategory(kit.subcategory_id)
        category = (
            taxonomy.get_category(subcategory.category_id) if subcategory else None
        )
        components = []
        for component in version.components:
            resolved = self._articles.resolve_version(component.article_version_id)
            if resolved is None:
                continue
            article, article_version = resolved
            components.append(
                ResolvedKitComponent(
                    article=article,
                    article_version=article_version,
                    qty=component.qty,
                    notes=component.notes,
                )
            )
        return KitWithComponents(
            kit=kit,
            version=version,
            subcategory=subcategory,
            category=category,
            components=tuple(components),
        )
