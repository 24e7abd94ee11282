"""
Property-based tests using Hypothesis.

Invariants checked over generated inputs:
- At most one APPROVED version per article, whatever the order of
  version creation and approval; the header points at it
- BOM aggregation preserves quantities and cost, keeps
  total_cost == unit_cost x quantity and yields unique part keys
- The estimation heuristic rounds to cents and stays within half a cent

Services are built inside each example on a fresh in-memory adapter, so no
function-scoped fixture is shared between generated cases.
"""

from decimal import Decimal

import pytest
from hypothesis import given, settings
from hypothesis import strategies as st

from catalog_kernel.db.memory_adapter import InMemoryStorageAdapter
from catalog_kernel.domain.bom import ExpansionMode, aggregate_lines, make_line
from catalog_kernel.domain.clock import DeterministicClock
from catalog_kernel.domain.cost_rollup import estimate_unit_cost
from catalog_kernel.domain.library import ArticleInput, ArticleVersionInput
from catalog_kernel.domain.versioning import VersionStatus
from catalog_kernel.services.article_service import ArticleCatalog
from catalog_kernel.services.taxonomy_service import TaxonomyService
from tests.support import AUDIT_CTX

money = st.decimals(
    min_value=Decimal("0"),
    max_value=Decimal("100000"),
    places=2,
    allow_nan=False,
    allow_infinity=False,
)
quantities = st.decimals(
    min_value=Decimal("0.5"),
    max_value=Decimal("50"),
    places=1,
    allow_nan=False,
    allow_infinity=False,
)

# ("new",) creates a draft version; ("approve", i) approves the i-th version.
operations = st.lists(
    st.one_of(
        st.just(("new", 0)),
        st.tuples(st.just("approve"), st.integers(min_value=0, max_value=9)),
    ),
    min_size=1,
    max_size=12,
)


@pytest.mark.slow
@settings(max_examples=50, deadline=None)
@given(steps=operations)
def test_at_most_one_approved_version(steps):
    adapter = InMemoryStorageAdapter()
    clock = DeterministicClock()
    taxonomy = TaxonomyService(adapter, clock)
    articles = ArticleCatalog(adapter, clock, taxonomy=taxonomy)
    category = taxonomy.create_category("Propulsion", AUDIT_CTX).unwrap()
    subcategory = taxonomy.create_subcategory(category.id, "Motors", AUDIT_CTX).unwrap()
    article = articles.create(
        ArticleInput(
            code="EM-20-001",
            name="Electric Motor 20kW",
            subcategory_id=subcategory.id,
            unit="pcs",
            sell_price=Decimal("20000"),
        ),
        AUDIT_CTX,
    ).unwrap().article

    for action, index in steps:
        if action == "new":
            articles.create_version(
                article.id, ArticleVersionInput(sell_price=Decimal("1")), AUDIT_CTX
            ).unwrap()
        else:
            versions = articles.list_versions(article.id)
            articles.approve_version(versions[index % len(versions)].id, AUDIT_CTX)

        versions = articles.list_versions(article.id)
        approved = [v for v in versions if v.status == VersionStatus.APPROVED]
        assert len(approved) <= 1
        current = articles.get_by_id(article.id).current_version_id
        if approved:
            assert current == approved[0].id
        assert [v.version_number for v in versions] == list(range(1, len(versions) + 1))

    assert articles.audit.validate_chain()


line_specs = st.lists(
    st.tuples(
        st.sampled_from(["Cleat", "Winch", "Anode", "Pump"]),
        st.sampled_from([None, "CL-001", "WI-002"]),
        st.sampled_from([Decimal("12.50"), Decimal("300"), Decimal("0")]),
        quantities,
        st.booleans(),
    ),
    max_size=25,
)


@settings(max_examples=100, deadline=None)
@given(specs=line_specs)
def test_aggregation_preserves_totals(specs):
    raw = [
        make_line(
            name=name,
            category="Deck",
            quantity=quantity,
            unit="pcs",
            unit_cost=unit_cost,
            expansion_mode=ExpansionMode.RESOLVED,
            article_number=article_number,
            is_estimated=estimated,
        )
        for name, article_number, unit_cost, quantity, estimated in specs
    ]

    merged = aggregate_lines(raw)

    assert sum((line.quantity for line in merged), Decimal("0")) == sum(
        (line.quantity for line in raw), Decimal("0")
    )
    assert sum((line.total_cost for line in merged), Decimal("0")) == sum(
        (line.total_cost for line in raw), Decimal("0")
    )
    assert len({line.part_key for line in merged}) == len(merged)
    for line in merged:
        assert line.total_cost == line.unit_cost * line.quantity
    assert sum(1 for line in merged if line.is_estimated) <= sum(
        1 for line in raw if line.is_estimated
    )
    names = [(line.category.casefold(), line.name.casefold()) for line in merged]
    assert names == sorted(names)


@given(
    sell_price=money,
    ratio=st.decimals(min_value=Decimal("0"), max_value=Decimal("1"), places=2),
)
def test_estimate_rounds_to_cents(sell_price, ratio):
    estimate = estimate_unit_cost(sell_price, ratio)

    assert estimate == estimate.quantize(Decimal("0.01"))
    assert abs(estimate - sell_price * ratio) <= Decimal("0.005")
