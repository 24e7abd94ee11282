"""
Tests for TaxonomyService: categories, subcategories, usage guards and seeding.
"""

from uuid import uuid4

from catalog_kernel.exceptions import ErrorKind
from tests.support import AUDIT_CTX

SEED = (
    ("Propulsion", ("Motors", "Propellers")),
    ("Energy Storage", ("Batteries",)),
)


class TestCategories:
    def test_sort_order_defaults_to_append(self, taxonomy):
        taxonomy.create_category("Hull & Structural", AUDIT_CTX).unwrap()
        taxonomy.create_category("Propulsion", AUDIT_CTX).unwrap()
        assert [c.sort_order for c in taxonomy.list_categories()] == [0, 1]

    def test_listing_follows_sort_order_then_name(self, taxonomy):
        taxonomy.create_category("Safety", AUDIT_CTX, sort_order=2).unwrap()
        taxonomy.create_category("Deck Equipment", AUDIT_CTX, sort_order=1).unwrap()
        taxonomy.create_category("Comfort", AUDIT_CTX, sort_order=1).unwrap()
        assert [c.name for c in taxonomy.list_categories()] == [
            "Comfort",
            "Deck Equipment",
            "Safety",
        ]

    def test_blank_name(self, taxonomy):
        assert taxonomy.create_category("  ", AUDIT_CTX).kind == ErrorKind.VALIDATION_ERROR

    def test_update(self, taxonomy):
        category = taxonomy.create_category("Propulsoin", AUDIT_CTX).unwrap()
        updated = taxonomy.update_category(category.id, AUDIT_CTX, name="Propulsion").unwrap()
        assert updated.version == 1
        assert taxonomy.get_category(category.id).name == "Propulsion"

    def test_update_unknown(self, taxonomy):
        result = taxonomy.update_category(uuid4(), AUDIT_CTX, name="X")
        assert result.code == "CATEGORY_NOT_FOUND"

    def test_delete_empty_category(self, taxonomy, audit_service):
        category = taxonomy.create_category("Propulsion", AUDIT_CTX).unwrap()
        assert taxonomy.delete_category(category.id, AUDIT_CTX).is_ok
        assert taxonomy.get_category(category.id) is None
        assert audit_service.get_trace("Category", category.id).last_action.value == "delete"

    def test_delete_category_with_subcategories_is_refused(self, taxonomy, subcategory):
        result = taxonomy.delete_category(subcategory.category_id, AUDIT_CTX)
        assert result.kind == ErrorKind.INVALID_STATE
        assert result.code == "CATEGORY_IN_USE"
        assert taxonomy.get_category(subcategory.category_id) is not None


class TestSubcategories:
    def test_create_in_unknown_category(self, taxonomy):
        result = taxonomy.create_subcategory(uuid4(), "Motors", AUDIT_CTX)
        assert result.code == "CATEGORY_NOT_FOUND"

    def test_list_per_category(self, taxonomy, subcategory):
        other = taxonomy.create_category("Energy Storage", AUDIT_CTX).unwrap()
        taxonomy.create_subcategory(other.id, "Batteries", AUDIT_CTX).unwrap()

        assert [s.name for s in taxonomy.list_subcategories(subcategory.category_id)] == ["Motors"]
        assert len(taxonomy.list_subcategories()) == 2

    def test_rename(self, taxonomy, subcategory):
        taxonomy.update_subcategory(subcategory.id, AUDIT_CTX, name="Electric Motors").unwrap()
        assert taxonomy.get_subcategory(subcategory.id).name == "Electric Motors"

    def test_delete_unused(self, taxonomy, subcategory):
        assert taxonomy.delete_subcategory(subcategory.id, AUDIT_CTX).is_ok
        assert taxonomy.get_subcategory(subcategory.id) is None

    def test_delete_referenced_by_article_is_refused(
        self, taxonomy, subcategory, create_article
    ):
        create_article("EM-20-001")
        result = taxonomy.delete_subcategory(subcategory.id, AUDIT_CTX)
        assert result.code == "CATEGORY_IN_USE"
        assert taxonomy.get_subcategory(subcategory.id) is not None

    def test_delete_unknown(self, taxonomy):
        assert taxonomy.delete_subcategory(uuid4(), AUDIT_CTX).kind == ErrorKind.NOT_FOUND


class TestTreeAndSeed:
    def test_tree_counts_usage(self, taxonomy, subcategory, create_article):
        create_article("EM-20-001")
        create_article("EM-20-002")

        [node] = taxonomy.category_tree()

        assert node.category.name == "Propulsion"
        [leaf] = node.subcategories
        assert leaf.subcategory.id == subcategory.id
        assert leaf.article_count == 2
        assert leaf.kit_count == 0

    def test_seed_creates_in_order(self, taxonomy, captured_logs):
        tree = taxonomy.seed(SEED, AUDIT_CTX)

        assert [n.category.name for n in tree] == ["Propulsion", "Energy Storage"]
        assert [s.subcategory.name for s in tree[0].subcategories] == ["Motors", "Propellers"]
        seeded = [r for r in captured_logs() if r["message"] == "taxonomy_seeded"]
        assert seeded[-1]["created_count"] == 5

    def test_seed_is_idempotent(self, taxonomy):
        taxonomy.seed(SEED, AUDIT_CTX)
        tree = taxonomy.seed(SEED, AUDIT_CTX)

        assert len(taxonomy.list_categories()) == 2
        assert len(taxonomy.list_subcategories()) == 3
        assert sum(len(n.subcategories) for n in tree) == 3

    def test_seed_fills_gaps(self, taxonomy, subcategory):
        taxonomy.seed(SEED, AUDIT_CTX)
        propulsion = taxonomy.find_category_by_name("Propulsion")
        names = [s.name for s in taxonomy.list_subcategories(propulsion.id)]
        assert names == ["Motors", "Propellers"]
        assert taxonomy.list_subcategories(propulsion.id)[0].id == subcategory.id
