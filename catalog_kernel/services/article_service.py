"""
ArticleCatalog -- versioned article master data.

Responsibility:
    Article headers (code, name, taxonomy placement) and their priced,
    status-tracked versions: creation, new versions, approval, attachments
    and the read views used by kits, the configurator and BOM expansion.

Architecture position:
    Kernel > Services.  Built on VersionedEntityStore; resolves
    subcategories through TaxonomyService.

Invariants enforced:
    - Article codes are unique (exact, case-sensitive match).
    - A new version never inherits pricing from an earlier one.
    - Attachments and weight change only while the version is DRAFT.
    - At most one APPROVED version per article (VersionedEntityStore).

Failure modes (returned as Err):
    - DUPLICATE_CODE, NOT_FOUND (subcategory, article, version, attachment),
      VALIDATION_ERROR, INVALID_STATE (approving a non-DRAFT version),
      IMMUTABLE (mutating an APPROVED or DEPRECATED version).

Audit relevance:
    Every mutation appends an audit entry; approval also records one
    DEPRECATE entry per superseded version.
"""

from dataclasses import replace
from decimal import Decimal
from typing import Any
from uuid import UUID, uuid4

from catalog_kernel.db.adapter import QueryFilter, StorageAdapter
from catalog_kernel.domain.audit import AuditAction, AuditContext
from catalog_kernel.domain.clock import Clock
from catalog_kernel.domain.library import (
    DEFAULT_VAT_RATE,
    Article,
    ArticleInput,
    ArticleVersion,
    ArticleVersionInput,
    ArticleWithVersion,
    Attachment,
    AttachmentInput,
    optional_non_negative,
    require_text,
    validate_article_version_input,
    validate_attachment_input,
)
from catalog_kernel.domain.versioning import VersionStatus
from catalog_kernel.exceptions import (
    ArticleNotFoundError,
    AttachmentNotFoundError,
    DuplicateCodeError,
)
from catalog_kernel.logging_config import get_logger
from catalog_kernel.services.audit_service import AuditService
from catalog_kernel.services.base import BaseService, Namespace, result_boundary
from catalog_kernel.services.taxonomy_service import TaxonomyService
from catalog_kernel.services.versioned_store import (
    VersionedEntityStore,
    VersionedKind,
)

logger = get_logger("services.article")

ARTICLE_KIND: VersionedKind[Article, ArticleVersion] = VersionedKind(
    entity_type="Article",
    header_namespace=Namespace.ARTICLES,
    version_namespace=Namespace.ARTICLE_VERSIONS,
    parent_field="article_id",
    header_type=Article,
    version_type=ArticleVersion,
    header_not_found=ArticleNotFoundError,
)


class ArticleCatalog(BaseService):
    """
    Article master data service.

    Args:
        adapter: Storage adapter.
        clock: Time source.
        audit: Audit trail.
        taxonomy: Subcategory resolver; defaults to one over the same adapter.
        default_vat_rate: VAT applied when a version input leaves it unset.
    """

    def __init__(
        self,
        adapter: StorageAdapter,
        clock: Clock | None = None,
        audit: AuditService | None = None,
        taxonomy: TaxonomyService | None = None,
        default_vat_rate: Decimal = DEFAULT_VAT_RATE,
    ):
        super().__init__(adapter, clock, audit)
        self._store = VersionedEntityStore(ARTICLE_KIND, adapter, self.clock)
        self._taxonomy = taxonomy or TaxonomyService(adapter, self.clock, self.audit)
        self._default_vat_rate = default_vat_rate

    @property
    def store(self) -> VersionedEntityStore[Article, ArticleVersion]:
        return self._store

    @property
    def taxonomy(self) -> TaxonomyService:
        return self._taxonomy

    def _new_version(self, article_id: UUID, data: ArticleVersionInput) -> ArticleVersion:
        now = self._now()
        return ArticleVersion(
            id=uuid4(),
            article_id=article_id,
            version_number=0,
            status=VersionStatus.DRAFT,
            sell_price=data.sell_price,
            cost_price=data.cost_price,
            vat_rate=self._default_vat_rate if data.vat_rate is None else data.vat_rate,
            weight_kg=data.weight_kg,
            lead_time_days=data.lead_time_days,
            notes=data.notes,
            specs=dict(data.specs),
            created_at=now,
            updated_at=now,
        )

    # -------------------------------------------------------------------------
    # Mutations
    # -------------------------------------------------------------------------

    @result_boundary("create_article")
    def create(
        self,
        data: ArticleInput,
        ctx: AuditContext,
        auto_approve: bool = False,
    ) -> ArticleWithVersion:
        """
        Create an article header and its DRAFT version 1.

        With ``auto_approve`` the new version is approved in a second step,
        exactly as a later ``approve_version`` call would.
        """
        require_text("code", data.code)
        require_text("name", data.name)
        require_text("unit", data.unit)
        version_input = data.version_input()
        validate_article_version_input(version_input)

        if self.find_by_code(data.code) is not None:
            raise DuplicateCodeError("Article", data.code)
        subcategory = self._taxonomy.require_subcategory(data.subcategory_id)
        category = self._taxonomy.require_category(subcategory.category_id)

        now = self._now()
        with self.adapter.transaction():
            article = self._store.create(
                Article(
                    id=uuid4(),
                    code=data.code,
                    name=data.name,
                    subcategory_id=subcategory.id,
                    unit=data.unit,
                    tags=frozenset(data.tags),
                    supplier_id=data.supplier_id,
                    created_at=now,
                    updated_at=now,
                )
            )
            version = self._store.create_version(
                article.id, self._new_version(article.id, version_input)
            )
            self.audit.record(
                ctx,
                AuditAction.CREATE,
                "Article",
                article.id,
                f"Created article {article.code}",
                {"code": article.code, "name": article.name},
            )

        logger.info(
            "article_created",
            extra={
                "entity_id": str(article.id),
                "article_code": article.code,
                "version_id": str(version.id),
            },
        )

        if auto_approve:
            version = self._approve(version.id, ctx)
            article = self._store.get_header(article.id)

        return ArticleWithVersion(
            article=article,
            version=version,
            subcategory=subcategory,
            category=category,
        )

    @result_boundary("create_article_version")
    def create_version(
        self, article_id: UUID, data: ArticleVersionInput, ctx: AuditContext
    ) -> ArticleVersion:
        """Create a fresh DRAFT version; nothing is copied from earlier versions."""
        validate_article_version_input(data)
        article = self._store.get_header(article_id)
        version = self._store.create_version(
            article.id, self._new_version(article.id, data)
        )
        self.audit.record(
            ctx,
            AuditAction.CREATE,
            "ArticleVersion",
            version.id,
            f"Created version {version.version_number} for article {article.code}",
        )
        return version

    @result_boundary("approve_article_version")
    def approve_version(self, version_id: UUID, ctx: AuditContext) -> ArticleVersion:
        return self._approve(version_id, ctx)

    def _approve(self, version_id: UUID, ctx: AuditContext) -> ArticleVersion:
        approval = self._store.approve_version(version_id, ctx)
        article = approval.header
        for retired in approval.deprecated:
            self.audit.record(
                ctx,
                AuditAction.DEPRECATE,
                "ArticleVersion",
                retired.id,
                f"Deprecated version {retired.version_number} of article {article.code}",
            )
        self.audit.record(
            ctx,
            AuditAction.APPROVE,
            "ArticleVersion",
            approval.approved.id,
            f"Approved version {approval.approved.version_number} "
            f"for article {article.code}",
        )
        return approval.approved

    @result_boundary("add_article_attachment")
    def add_attachment(
        self, version_id: UUID, data: AttachmentInput, ctx: AuditContext
    ) -> Attachment:
        """Attach a file to a DRAFT version."""
        attachment = Attachment(
            id=uuid4(),
            type=data.type,
            filename=data.filename,
            mime_type=data.mime_type,
            size_bytes=data.size_bytes,
            uploaded_at=self._now(),
            uploaded_by=ctx.user_id,
            data_url=data.data_url,
            url=data.url,
            notes=data.notes,
        )

        def attach(version: ArticleVersion) -> ArticleVersion:
            validate_attachment_input(data)
            return replace(version, attachments=version.attachments + (attachment,))

        version = self._store.update_draft(version_id, attach)
        self.audit.record(
            ctx,
            AuditAction.UPDATE,
            "ArticleVersion",
            version.id,
            f'Added attachment "{attachment.filename}" to {self._label(version)}',
            {"attachment_id": str(attachment.id), "type": attachment.type.value},
        )
        return attachment

    @result_boundary("remove_article_attachment")
    def remove_attachment(
        self, version_id: UUID, attachment_id: UUID, ctx: AuditContext
    ) -> ArticleVersion:
        removed: list[Attachment] = []

        def detach(version: ArticleVersion) -> ArticleVersion:
            kept = []
            for attachment in version.attachments:
                if attachment.id == attachment_id:
                    removed.append(attachment)
                else:
                    kept.append(attachment)
            if not removed:
                raise AttachmentNotFoundError(str(attachment_id))
            return replace(version, attachments=tuple(kept))

        version = self._store.update_draft(version_id, detach)
        self.audit.record(
            ctx,
            AuditAction.UPDATE,
            "ArticleVersion",
            version.id,
            f'Removed attachment "{removed[0].filename}" from {self._label(version)}',
            {"attachment_id": str(attachment_id)},
        )
        return version

    @result_boundary("update_article_weight")
    def update_weight(
        self, version_id: UUID, weight_kg: Decimal | None, ctx: AuditContext
    ) -> ArticleVersion:
        """Set or clear the weight of a DRAFT version."""
        optional_non_negative("weight_kg", weight_kg)
        version = self._store.update_draft(
            version_id, lambda v: replace(v, weight_kg=weight_kg)
        )
        shown = "unset" if weight_kg is None else str(weight_kg)
        self.audit.record(
            ctx,
            AuditAction.UPDATE,
            "ArticleVersion",
            version.id,
            f"Updated weight to {shown} kg for {self._label(version)}",
        )
        return version

    def _label(self, version: ArticleVersion) -> str:
        article = self._store.find_header(version.article_id)
        code = article.code if article is not None else "unknown"
        return f"article {code} v{version.version_number}"

    # -------------------------------------------------------------------------
    # Reads
    # -------------------------------------------------------------------------

    def get_by_id(self, article_id: Any) -> Article | None:
        return self._store.find_header(article_id)

    def find_by_code(self, code: str) -> Article | None:
        rows = self.adapter.query(
            Namespace.ARTICLES, QueryFilter(where={"code": code}, limit=1)
        )
        return Article.from_record(rows[0]) if rows else None

    get_by_code = find_by_code

    def list_all(self) -> list[Article]:
        return sorted(self._store.list_headers(), key=lambda a: a.code)

    def list_by_subcategory(self, subcategory_id: Any) -> list[Article]:
        articles = self._store.list_headers({"subcategory_id": subcategory_id})
        return sorted(articles, key=lambda a: a.code)

    def search(self, query: str) -> list[Article]:
        """Case-insensitive substring match on code and name."""
        needle = query.strip().casefold()
        return [
            article
            for article in self.list_all()
            if needle in article.code.casefold() or needle in article.name.casefold()
        ]

    def get_version(self, version_id: Any) -> ArticleVersion | None:
        return self._store.find_version(version_id)

    def list_versions(self, article_id: Any) -> list[ArticleVersion]:
        return self._store.list_versions(article_id)

    def get_current_version(self, article_id: Any) -> ArticleVersion | None:
        return self._store.get_current_version(article_id)

    def resolve_version(self, version_id: Any) -> tuple[Article, ArticleVersion] | None:
        """A pinned version together with its header, or None."""
        version = self._store.find_version(version_id)
        if version is None:
            return None
        article = self._store.find_header(version.article_id)
        if article is None:
            return None
        return article, version

    def get_with_current_version(self, article_id: Any) -> ArticleWithVersion | None:
        article = self._store.find_header(article_id)
        if article is None or article.current_version_id is None:
            return None
        return self._with_version(article, approved_only=False)

    def list_with_approved_versions(self) -> list[ArticleWithVersion]:
        """Every article whose current version is APPROVED, with taxonomy."""
        views = []
        for article in self.list_all():
            view = self._with_version(article, approved_only=True)
            if view is not None:
                views.append(view)
        return views

    def _with_version(
        self, article: Article, approved_only: bool
    ) -> ArticleWithVersion | None:
        if article.current_version_id is None:
            return None
        version = self._store.find_version(article.current_version_id)
        if version is None:
            return None
        if approved_only and version.status != VersionStatus.APPROVED:
            return None
        subcategory = self._taxonomy.get_subcategory(article.subcategory_id)
        if subcategory is None:
            return None
        category = self._taxonomy.get_category(subcategory.category_id)
        if category is None:
            return None
        return ArticleWithVersion(
            article=article, version=version, subcategory=subcategory, category=category
        )
