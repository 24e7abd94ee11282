"""
BoatModelCatalog -- versioned boat models and their default configurations.

Responsibility:
    Boat model headers (name, range, description), versions carrying hull
    specifications, base price and default configuration items, and
    building a new project configuration from the approved version.

Architecture position:
    Kernel > Services.  Built on VersionedEntityStore, like articles and
    kits.

Invariants enforced:
    - Default configuration items reference pinned article or kit versions
      only (ArticleItem / KitItem).
    - Default configuration changes only while the version is DRAFT.
    - build_configuration reads the current APPROVED version and gives
      every produced item a fresh id.
"""

from collections.abc import Iterable
from dataclasses import replace
from decimal import Decimal
from typing import Any
from uuid import UUID, uuid4

from catalog_kernel.db.adapter import StorageAdapter
from catalog_kernel.domain.audit import AuditAction, AuditContext
from catalog_kernel.domain.boat_model import (
    BoatModel,
    BoatModelInput,
    BoatModelVersion,
    BoatModelVersionInput,
    DefaultConfigurationItem,
)
from catalog_kernel.domain.clock import Clock
from catalog_kernel.domain.configuration import (
    ArticleItem,
    ConfigurationItem,
    KitItem,
)
from catalog_kernel.domain.library import require_price, require_text
from catalog_kernel.domain.versioning import VersionStatus
from catalog_kernel.exceptions import (
    BoatModelNotFoundError,
    CatalogValidationError,
    InvalidStateError,
)
from catalog_kernel.logging_config import get_logger
from catalog_kernel.services.audit_service import AuditService
from catalog_kernel.services.base import BaseService, Namespace, result_boundary
from catalog_kernel.services.versioned_store import (
    VersionedEntityStore,
    VersionedKind,
)

logger = get_logger("services.boat_model")

BOAT_MODEL_KIND: VersionedKind[BoatModel, BoatModelVersion] = VersionedKind(
    entity_type="BoatModel",
    header_namespace=Namespace.BOAT_MODELS,
    version_namespace=Namespace.BOAT_MODEL_VERSIONS,
    parent_field="model_id",
    header_type=BoatModel,
    version_type=BoatModelVersion,
    header_not_found=BoatModelNotFoundError,
)

INITIAL_VERSION_LABEL = "1.0.0"


def _validate_default_items(items: Iterable[Any]) -> None:
    for item in items:
        if not isinstance(item, (ArticleItem, KitItem)):
            raise CatalogValidationError(
                "default_configuration_items",
                f"only article and kit items are allowed (got {type(item).__name__})",
            )


def _validate_version_input(data: BoatModelVersionInput) -> None:
    for name in ("length_m", "beam_m"):
        value = getattr(data, name)
        if value is None or value <= 0:
            raise CatalogValidationError(name, f"must be > 0 (got {value})")
    require_price("base_price", data.base_price)
    _validate_default_items(data.default_configuration_items)


class BoatModelCatalog(BaseService):
    """Boat model master data service."""

    def __init__(
        self,
        adapter: StorageAdapter,
        clock: Clock | None = None,
        audit: AuditService | None = None,
    ):
        super().__init__(adapter, clock, audit)
        self._store = VersionedEntityStore(BOAT_MODEL_KIND, adapter, self.clock)

    @property
    def store(self) -> VersionedEntityStore[BoatModel, BoatModelVersion]:
        return self._store

    def _new_version(
        self,
        model_id: UUID,
        data: BoatModelVersionInput,
        label: str,
        ctx: AuditContext,
    ) -> BoatModelVersion:
        now = self._now()
        return BoatModelVersion(
            id=uuid4(),
            model_id=model_id,
            version_number=0,
            version_label=label,
            status=VersionStatus.DRAFT,
            length_m=data.length_m,
            beam_m=data.beam_m,
            base_price=data.base_price,
            draft_m=data.draft_m,
            displacement_kg=data.displacement_kg,
            max_passengers=data.max_passengers,
            ce_category=data.ce_category,
            default_configuration_items=tuple(data.default_configuration_items),
            created_at=now,
            updated_at=now,
            created_by=ctx.user_id,
        )

    # -------------------------------------------------------------------------
    # Mutations
    # -------------------------------------------------------------------------

    @result_boundary("create_boat_model")
    def create(self, data: BoatModelInput, ctx: AuditContext) -> BoatModel:
        """Create a model with DRAFT version 1 labelled 1.0.0."""
        require_text("name", data.name)
        require_text("range", data.range)
        version_input = data.version_input()
        _validate_version_input(version_input)

        now = self._now()
        with self.adapter.transaction():
            model = self._store.create(
                BoatModel(
                    id=uuid4(),
                    name=data.name,
                    range=data.range,
                    description=data.description,
                    created_at=now,
                    updated_at=now,
                    created_by=ctx.user_id,
                )
            )
            self._store.create_version(
                model.id,
                self._new_version(
                    model.id,
                    version_input,
                    version_input.version_label or INITIAL_VERSION_LABEL,
                    ctx,
                ),
            )
            self.audit.record(
                ctx,
                AuditAction.CREATE,
                "BoatModel",
                model.id,
                f"Created boat model {model.name}",
                {"name": model.name, "range": model.range},
            )

        logger.info(
            "boat_model_created",
            extra={"entity_id": str(model.id), "model_name": model.name},
        )
        return model

    @result_boundary("update_boat_model")
    def update(
        self,
        model_id: UUID,
        ctx: AuditContext,
        name: str | None = None,
        range: str | None = None,
        description: str | None = None,
    ) -> BoatModel:
        """Update header metadata; version data is untouched."""
        model = self._store.get_header(model_id)
        changes: dict[str, Any] = {}
        if name is not None:
            require_text("name", name)
            changes["name"] = name
        if range is not None:
            require_text("range", range)
            changes["range"] = range
        if description is not None:
            changes["description"] = description

        updated = self._store.update_header(model, **changes)
        self.audit.record(
            ctx,
            AuditAction.UPDATE,
            "BoatModel",
            model.id,
            f"Updated boat model {updated.name}",
            changes,
        )
        return updated

    @result_boundary("create_boat_model_version")
    def create_version(
        self, model_id: UUID, data: BoatModelVersionInput, ctx: AuditContext
    ) -> BoatModelVersion:
        _validate_version_input(data)
        model = self._store.get_header(model_id)
        number = len(self._store.list_versions(model.id)) + 1
        label = data.version_label or f"{number}.0.0"
        version = self._store.create_version(
            model.id, self._new_version(model.id, data, label, ctx)
        )
        self.audit.record(
            ctx,
            AuditAction.CREATE,
            "BoatModelVersion",
            version.id,
            f"Created version {version.version_label} for {model.name}",
        )
        return version

    @result_boundary("approve_boat_model_version")
    def approve_version(self, version_id: UUID, ctx: AuditContext) -> BoatModelVersion:
        approval = self._store.approve_version(version_id, ctx)
        model = approval.header
        for retired in approval.deprecated:
            self.audit.record(
                ctx,
                AuditAction.DEPRECATE,
                "BoatModelVersion",
                retired.id,
                f"Deprecated version {retired.version_label} of {model.name}",
            )
        self.audit.record(
            ctx,
            AuditAction.APPROVE,
            "BoatModelVersion",
            approval.approved.id,
            f"Approved version {approval.approved.version_label} for {model.name}",
        )
        return approval.approved

    @result_boundary("update_default_configuration")
    def update_default_configuration(
        self,
        version_id: UUID,
        items: Iterable[DefaultConfigurationItem],
        ctx: AuditContext,
    ) -> BoatModelVersion:
        """Replace the default items of a DRAFT version."""
        defaults = tuple(items)
        _validate_default_items(defaults)
        version = self._store.update_draft(
            version_id,
            lambda v: replace(v, default_configuration_items=defaults),
        )
        self.audit.record(
            ctx,
            AuditAction.UPDATE,
            "BoatModelVersion",
            version.id,
            f"Updated default configuration ({len(defaults)} items)",
        )
        return version

    @result_boundary("archive_boat_model")
    def archive(self, model_id: UUID, ctx: AuditContext) -> BoatModel:
        model = self._store.get_header(model_id)
        if model.is_archived:
            raise InvalidStateError("BoatModel", str(model.id), "already archived")
        archived = self._store.update_header(model, archived_at=self._now())
        self.audit.record(
            ctx,
            AuditAction.ARCHIVE,
            "BoatModel",
            model.id,
            f"Archived boat model: {model.name}",
        )
        logger.info("boat_model_archived", extra={"entity_id": str(model.id)})
        return archived

    def seed_defaults(
        self, models: Iterable[BoatModelInput], ctx: AuditContext
    ) -> list[BoatModel]:
        """
        Create and approve the given models when the catalog has none.

        Returns the created models; an already populated catalog is left
        untouched and yields an empty list.
        """
        if self._store.list_headers():
            return []
        created = []
        for data in models:
            model = self.create(data, ctx).unwrap()
            (draft,) = self._store.list_versions(model.id)
            self.approve_version(draft.id, ctx).unwrap()
            created.append(self._store.get_header(model.id))
        logger.info("boat_models_seeded", extra={"created_count": len(created)})
        return created

    # -------------------------------------------------------------------------
    # Reads
    # -------------------------------------------------------------------------

    def get_by_id(self, model_id: Any) -> BoatModel | None:
        return self._store.find_header(model_id)

    def list_models(self, include_archived: bool = False) -> list[BoatModel]:
        models = self._store.list_headers()
        if not include_archived:
            models = [m for m in models if not m.is_archived]
        return sorted(models, key=lambda m: m.name)

    def get_version(self, version_id: Any) -> BoatModelVersion | None:
        return self._store.find_version(version_id)

    def list_versions(self, model_id: Any) -> list[BoatModelVersion]:
        return self._store.list_versions(model_id)

    def get_current_version(self, model_id: Any) -> BoatModelVersion | None:
        return self._store.get_current_version(model_id)

    @result_boundary("build_configuration")
    def build_configuration(self, model_id: UUID) -> tuple[ConfigurationItem, ...]:
        """
        Configuration items for a new project from the approved defaults.

        Each item is copied with a fresh id so projects never share items.
        """
        model = self._store.get_header(model_id)
        if model.is_archived:
            raise InvalidStateError("BoatModel", str(model.id), "model is archived")
        version = self._store.get_current_version(model.id)
        if version is None or version.status != VersionStatus.APPROVED:
            raise InvalidStateError(
                "BoatModel", str(model.id), "has no approved version"
            )
        return tuple(
            replace(item, id=uuid4()) for item in version.default_configuration_items
        )

    def base_price(self, model_id: Any) -> Decimal | None:
        version = self.get_current_version(model_id)
        return version.base_price if version is not None else None
