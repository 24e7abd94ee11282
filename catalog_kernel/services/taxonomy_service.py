"""
TaxonomyService -- categories and subcategories of the catalog library.

Responsibility:
    Create, rename, reorder and delete the two-level taxonomy that every
    article and kit hangs off, build the category tree with usage counts,
    and seed the initial taxonomy from configuration.

Architecture position:
    Kernel > Services.  ArticleCatalog and KitCatalog resolve subcategories
    through this service before creating headers.

Invariants enforced:
    - A category with subcategories cannot be deleted.
    - A subcategory still referenced by an article or kit cannot be deleted.
    - ``seed`` is idempotent: existing names are reused, never duplicated.

Failure modes:
    - CategoryNotFoundError / SubcategoryNotFoundError on unknown ids.
    - CategoryInUseError when deleting a node that still has children.
    - CatalogValidationError on a blank name.
"""

from collections.abc import Iterable, Sequence
from dataclasses import replace
from typing import Any
from uuid import UUID, uuid4

from catalog_kernel.db.adapter import OrderBy, QueryFilter
from catalog_kernel.domain.audit import AuditAction, AuditContext
from catalog_kernel.domain.library import (
    Category,
    CategoryNode,
    Subcategory,
    SubcategoryNode,
    require_text,
)
from catalog_kernel.exceptions import (
    CategoryInUseError,
    CategoryNotFoundError,
    SubcategoryNotFoundError,
)
from catalog_kernel.logging_config import get_logger
from catalog_kernel.services.base import BaseService, Namespace, result_boundary

logger = get_logger("services.taxonomy")

_BY_SORT_ORDER = (OrderBy("sort_order"), OrderBy("name"))


class TaxonomyService(BaseService):
    """
    Category / subcategory management.

    Mutations return ``Result``; reads return values or ``None``.
    """

    # -------------------------------------------------------------------------
    # Internal lookups (raise)
    # -------------------------------------------------------------------------

    def require_category(self, category_id: Any) -> Category:
        data = self.adapter.get_by_id(Namespace.CATEGORIES, category_id)
        if data is None:
            raise CategoryNotFoundError(str(category_id))
        return Category.from_record(data)

    def require_subcategory(self, subcategory_id: Any) -> Subcategory:
        data = self.adapter.get_by_id(Namespace.SUBCATEGORIES, subcategory_id)
        if data is None:
            raise SubcategoryNotFoundError(str(subcategory_id))
        return Subcategory.from_record(data)

    # -------------------------------------------------------------------------
    # Categories
    # -------------------------------------------------------------------------

    @result_boundary("create_category")
    def create_category(
        self, name: str, ctx: AuditContext, sort_order: int | None = None
    ) -> Category:
        require_text("name", name)
        if sort_order is None:
            sort_order = self.adapter.count(Namespace.CATEGORIES)
        now = self._now()
        category = Category(
            id=uuid4(),
            name=name.strip(),
            sort_order=sort_order,
            created_at=now,
            updated_at=now,
        )
        self.adapter.save(Namespace.CATEGORIES, category.to_record())
        self.audit.record(
            ctx,
            AuditAction.CREATE,
            "Category",
            category.id,
            f"Created category {category.name}",
        )
        logger.info(
            "category_created",
            extra={"entity_id": str(category.id), "category_name": category.name},
        )
        return category

    @result_boundary("update_category")
    def update_category(
        self,
        category_id: UUID,
        ctx: AuditContext,
        name: str | None = None,
        sort_order: int | None = None,
    ) -> Category:
        category = self.require_category(category_id)
        changes: dict[str, Any] = {}
        if name is not None:
            require_text("name", name)
            changes["name"] = name.strip()
        if sort_order is not None:
            changes["sort_order"] = sort_order

        updated = replace(
            category,
            **changes,
            updated_at=self._now(),
            version=category.version + 1,
        )
        self.adapter.save(
            Namespace.CATEGORIES, updated.to_record(), expected_version=category.version
        )
        self.audit.record(
            ctx,
            AuditAction.UPDATE,
            "Category",
            category.id,
            f"Updated category {updated.name}",
            {key: str(value) for key, value in changes.items()},
        )
        return updated

    @result_boundary("delete_category")
    def delete_category(self, category_id: UUID, ctx: AuditContext) -> None:
        category = self.require_category(category_id)
        children = self.adapter.count(
            Namespace.SUBCATEGORIES, QueryFilter(where={"category_id": category.id})
        )
        if children:
            raise CategoryInUseError(
                "Category",
                str(category.id),
                f"has {children} subcategories",
            )
        self.adapter.delete(Namespace.CATEGORIES, category.id)
        self.audit.record(
            ctx,
            AuditAction.DELETE,
            "Category",
            category.id,
            f"Deleted category {category.name}",
        )
        logger.info("category_deleted", extra={"entity_id": str(category.id)})

    def get_category(self, category_id: Any) -> Category | None:
        data = self.adapter.get_by_id(Namespace.CATEGORIES, category_id)
        return Category.from_record(data) if data is not None else None

    def list_categories(self) -> list[Category]:
        rows = self.adapter.query(
            Namespace.CATEGORIES, QueryFilter(order_by=_BY_SORT_ORDER)
        )
        return [Category.from_record(r) for r in rows]

    def find_category_by_name(self, name: str) -> Category | None:
        rows = self.adapter.query(
            Namespace.CATEGORIES, QueryFilter(where={"name": name}, limit=1)
        )
        return Category.from_record(rows[0]) if rows else None

    # -------------------------------------------------------------------------
    # Subcategories
    # -------------------------------------------------------------------------

    @result_boundary("create_subcategory")
    def create_subcategory(
        self,
        category_id: UUID,
        name: str,
        ctx: AuditContext,
        sort_order: int | None = None,
    ) -> Subcategory:
        category = self.require_category(category_id)
        require_text("name", name)
        if sort_order is None:
            sort_order = self.adapter.count(
                Namespace.SUBCATEGORIES,
                QueryFilter(where={"category_id": category.id}),
            )
        now = self._now()
        subcategory = Subcategory(
            id=uuid4(),
            category_id=category.id,
            name=name.strip(),
            sort_order=sort_order,
            created_at=now,
            updated_at=now,
        )
        self.adapter.save(Namespace.SUBCATEGORIES, subcategory.to_record())
        self.audit.record(
            ctx,
            AuditAction.CREATE,
            "Subcategory",
            subcategory.id,
            f"Created subcategory {subcategory.name} in {category.name}",
        )
        logger.info(
            "subcategory_created",
            extra={
                "entity_id": str(subcategory.id),
                "category_id": str(category.id),
            },
        )
        return subcategory

    @result_boundary("update_subcategory")
    def update_subcategory(
        self,
        subcategory_id: UUID,
        ctx: AuditContext,
        name: str | None = None,
        sort_order: int | None = None,
    ) -> Subcategory:
        subcategory = self.require_subcategory(subcategory_id)
        changes: dict[str, Any] = {}
        if name is not None:
            require_text("name", name)
            changes["name"] = name.strip()
        if sort_order is not None:
            changes["sort_order"] = sort_order

        updated = replace(
            subcategory,
            **changes,
            updated_at=self._now(),
            version=subcategory.version + 1,
        )
        self.adapter.save(
            Namespace.SUBCATEGORIES,
            updated.to_record(),
            expected_version=subcategory.version,
        )
        self.audit.record(
            ctx,
            AuditAction.UPDATE,
            "Subcategory",
            subcategory.id,
            f"Updated subcategory {updated.name}",
            {key: str(value) for key, value in changes.items()},
        )
        return updated

    @result_boundary("delete_subcategory")
    def delete_subcategory(self, subcategory_id: UUID, ctx: AuditContext) -> None:
        subcategory = self.require_subcategory(subcategory_id)
        used_by = QueryFilter(where={"subcategory_id": subcategory.id})
        articles = self.adapter.count(Namespace.ARTICLES, used_by)
        kits = self.adapter.count(Namespace.KITS, used_by)
        if articles or kits:
            raise CategoryInUseError(
                "Subcategory",
                str(subcategory.id),
                f"referenced by {articles} articles and {kits} kits",
            )
        self.adapter.delete(Namespace.SUBCATEGORIES, subcategory.id)
        self.audit.record(
            ctx,
            AuditAction.DELETE,
            "Subcategory",
            subcategory.id,
            f"Deleted subcategory {subcategory.name}",
        )
        logger.info("subcategory_deleted", extra={"entity_id": str(subcategory.id)})

    def get_subcategory(self, subcategory_id: Any) -> Subcategory | None:
        data = self.adapter.get_by_id(Namespace.SUBCATEGORIES, subcategory_id)
        return Subcategory.from_record(data) if data is not None else None

    def list_subcategories(self, category_id: Any | None = None) -> list[Subcategory]:
        where = {"category_id": category_id} if category_id is not None else {}
        rows = self.adapter.query(
            Namespace.SUBCATEGORIES, QueryFilter(where=where, order_by=_BY_SORT_ORDER)
        )
        return [Subcategory.from_record(r) for r in rows]

    # -------------------------------------------------------------------------
    # Tree and seeding
    # -------------------------------------------------------------------------

    def category_tree(self) -> tuple[CategoryNode, ...]:
        """All categories with their subcategories and article/kit counts."""
        nodes = []
        for category in self.list_categories():
            children = []
            for subcategory in self.list_subcategories(category.id):
                used_by = QueryFilter(where={"subcategory_id": subcategory.id})
                children.append(
                    SubcategoryNode(
                        subcategory=subcategory,
                        article_count=self.adapter.count(Namespace.ARTICLES, used_by),
                        kit_count=self.adapter.count(Namespace.KITS, used_by),
                    )
                )
            nodes.append(CategoryNode(category=category, subcategories=tuple(children)))
        return tuple(nodes)

    def seed(
        self,
        taxonomy: Iterable[tuple[str, Sequence[str]]],
        ctx: AuditContext,
    ) -> tuple[CategoryNode, ...]:
        """
        Create any missing categories and subcategories.

        Args:
            taxonomy: ``(category name, subcategory names)`` pairs in display
                order, usually ``CatalogSettings.taxonomy``.
            ctx: Audit context for the created records.

        Returns:
            The resulting category tree.
        """
        created = 0
        for category_name, subcategory_names in taxonomy:
            category = self.find_category_by_name(category_name)
            if category is None:
                category = self.create_category(category_name, ctx).unwrap()
                created += 1
            existing = {s.name for s in self.list_subcategories(category.id)}
            for subcategory_name in subcategory_names:
                if subcategory_name in existing:
                    continue
                self.create_subcategory(category.id, subcategory_name, ctx).unwrap()
                existing.add(subcategory_name)
                created += 1

        logger.info("taxonomy_seeded", extra={"created_count": created})
        return self.category_tree()
