"""
Pytest fixtures for the catalog kernel test suite.

Provides:
- Structured logging capture
- Storage adapters: in-memory, and SQL over an in-memory SQLite database
- Catalog services wired to a deterministic clock and one audit trail
- Factories for approved articles and kits

Service tests that take the ``adapter`` fixture run once per storage
backend, so both adapters are held to the same contract.
"""

import json
import logging
from decimal import Decimal
from io import StringIO
from typing import Generator

import pytest
from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session
from sqlalchemy.pool import StaticPool

from catalog_kernel.db.base import Base
from catalog_kernel.db.engine import enable_sqlite_savepoints
from catalog_kernel.db.memory_adapter import InMemoryStorageAdapter
from catalog_kernel.db.sql_adapter import SqlStorageAdapter
from catalog_kernel.domain.clock import DeterministicClock
from catalog_kernel.domain.legacy_parts import LegacyPartDefinition, LegacyPartsTable
from catalog_kernel.domain.library import (
    ArticleInput,
    ArticleWithVersion,
    CostRollupMode,
    KitComponent,
    KitInput,
    KitWithComponents,
    Subcategory,
)
from catalog_kernel.logging_config import (
    LogContext,
    StructuredFormatter,
    configure_logging,
    reset_logging,
)
from catalog_kernel.services.article_service import ArticleCatalog
from catalog_kernel.services.audit_service import AuditService
from catalog_kernel.services.boat_model_service import BoatModelCatalog
from catalog_kernel.services.bom_expansion import BOMExpansionEngine
from catalog_kernel.services.bom_service import BOMService
from catalog_kernel.services.kit_service import KitCatalog
from catalog_kernel.services.taxonomy_service import TaxonomyService
from tests.support import AUDIT_CTX


# =============================================================================
# Logging fixtures
# =============================================================================


@pytest.fixture(autouse=True, scope="session")
def _configure_test_logging():
    """Configure structured logging for the test suite."""
    reset_logging()
    configure_logging(level=logging.DEBUG, stream=StringIO())
    yield
    reset_logging()


@pytest.fixture(autouse=True)
def _clear_log_context():
    """Clear LogContext between tests to prevent cross-test contamination."""
    LogContext.clear()
    yield
    LogContext.clear()


@pytest.fixture
def captured_logs():
    """
    Capture catalog_kernel logs as parsed JSON dicts.

    Usage::

        def test_something(captured_logs, articles):
            articles.create(...)
            logs = captured_logs()
            assert any(r["message"] == "article_created" for r in logs)
    """
    stream = StringIO()
    handler = logging.StreamHandler(stream)
    handler.setFormatter(StructuredFormatter())
    root = logging.getLogger("catalog_kernel")
    root.addHandler(handler)

    def _get_records() -> list[dict]:
        lines = stream.getvalue().strip().split("\n")
        return [json.loads(line) for line in lines if line]

    yield _get_records

    root.removeHandler(handler)


# =============================================================================
# Storage
# =============================================================================


@pytest.fixture
def sqlite_engine() -> Generator[Engine, None, None]:
    """A fresh in-memory SQLite database with the catalog tables."""
    import catalog_kernel.models  # noqa: F401  (registers tables on Base.metadata)

    engine = create_engine(
        "sqlite://",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    enable_sqlite_savepoints(engine)
    Base.metadata.create_all(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session(sqlite_engine) -> Generator[Session, None, None]:
    """Session that is rolled back at teardown."""
    sess = Session(bind=sqlite_engine, expire_on_commit=False)
    yield sess
    try:
        sess.rollback()
    finally:
        sess.close()


@pytest.fixture
def memory_adapter() -> InMemoryStorageAdapter:
    return InMemoryStorageAdapter()


@pytest.fixture
def sql_adapter(session) -> SqlStorageAdapter:
    return SqlStorageAdapter(session)


@pytest.fixture(params=["memory", "sql"])
def adapter(request):
    """Each storage backend in turn."""
    return request.getfixturevalue(f"{request.param}_adapter")


# =============================================================================
# Services
# =============================================================================


@pytest.fixture
def deterministic_clock() -> DeterministicClock:
    return DeterministicClock()


@pytest.fixture
def audit_service(adapter, deterministic_clock) -> AuditService:
    return AuditService(adapter, deterministic_clock)


@pytest.fixture
def taxonomy(adapter, deterministic_clock, audit_service) -> TaxonomyService:
    return TaxonomyService(adapter, deterministic_clock, audit_service)


@pytest.fixture
def articles(adapter, deterministic_clock, audit_service, taxonomy) -> ArticleCatalog:
    return ArticleCatalog(adapter, deterministic_clock, audit_service, taxonomy)


@pytest.fixture
def kits(adapter, articles) -> KitCatalog:
    return KitCatalog(adapter, articles)


@pytest.fixture
def legacy_parts() -> LegacyPartsTable:
    """Two legacy entries, one of them exploding into two parts."""
    return LegacyPartsTable(
        {
            "Electric Motor 20kW": (
                LegacyPartDefinition(
                    article_number="EM-20-001",
                    name="Electric Motor 20kW Unit",
                    category="Propulsion",
                    quantity=Decimal("1"),
                    unit="pcs",
                    unit_cost=Decimal("12000"),
                    supplier="Torqeedo",
                    lead_time_days=21,
                ),
                LegacyPartDefinition(
                    article_number="EM-20-002",
                    name="Motor Controller 20kW",
                    category="Electronics",
                    quantity=Decimal("1"),
                    unit="pcs",
                    unit_cost=Decimal("3500"),
                    supplier="Torqeedo",
                    lead_time_days=21,
                ),
            ),
            "Battery Pack 40kWh": (
                LegacyPartDefinition(
                    article_number="BAT-40-001",
                    name="Battery Module 10kWh",
                    category="Energy Storage",
                    quantity=Decimal("4"),
                    unit="pcs",
                    unit_cost=Decimal("4800"),
                    lead_time_days=35,
                ),
            ),
        }
    )


@pytest.fixture
def bom_engine(articles, kits, legacy_parts) -> BOMExpansionEngine:
    return BOMExpansionEngine(articles, kits, legacy_parts=legacy_parts)


@pytest.fixture
def bom_service(adapter, bom_engine, deterministic_clock, audit_service) -> BOMService:
    return BOMService(adapter, bom_engine, deterministic_clock, audit_service)


@pytest.fixture
def boat_models(adapter, deterministic_clock, audit_service) -> BoatModelCatalog:
    return BoatModelCatalog(adapter, deterministic_clock, audit_service)


# =============================================================================
# Data factories
# =============================================================================


@pytest.fixture
def subcategory(taxonomy) -> Subcategory:
    """Propulsion / Motors."""
    category = taxonomy.create_category("Propulsion", AUDIT_CTX).unwrap()
    return taxonomy.create_subcategory(category.id, "Motors", AUDIT_CTX).unwrap()


@pytest.fixture
def create_article(articles, subcategory):
    """Factory for articles; approved unless ``approve=False``."""

    def _create(
        code: str,
        sell_price: str = "100",
        cost_price: str | None = None,
        *,
        name: str | None = None,
        unit: str = "pcs",
        lead_time_days: int | None = None,
        supplier_id: str | None = None,
        approve: bool = True,
    ) -> ArticleWithVersion:
        data = ArticleInput(
            code=code,
            name=name or f"Article {code}",
            subcategory_id=subcategory.id,
            unit=unit,
            sell_price=Decimal(sell_price),
            cost_price=Decimal(cost_price) if cost_price is not None else None,
            lead_time_days=lead_time_days,
            supplier_id=supplier_id,
        )
        return articles.create(data, AUDIT_CTX, auto_approve=approve).unwrap()

    return _create


@pytest.fixture
def create_kit(kits, subcategory):
    """Factory for kits; approved unless ``approve=False``."""

    def _create(
        code: str,
        components: tuple[KitComponent, ...],
        sell_price: str = "1000",
        *,
        name: str | None = None,
        cost_rollup_mode: CostRollupMode = CostRollupMode.SUM_COMPONENTS,
        manual_cost_price: str | None = None,
        explode_in_bom: bool = True,
        sales_only: bool = False,
        approve: bool = True,
    ) -> KitWithComponents:
        data = KitInput(
            code=code,
            name=name or f"Kit {code}",
            subcategory_id=subcategory.id,
            sell_price=Decimal(sell_price),
            components=components,
            cost_rollup_mode=cost_rollup_mode,
            manual_cost_price=(
                Decimal(manual_cost_price) if manual_cost_price is not None else None
            ),
            explode_in_bom=explode_in_bom,
            sales_only=sales_only,
        )
        created = kits.create(data, AUDIT_CTX).unwrap()
        if not approve:
            return created
        kits.approve_version(created.version.id, AUDIT_CTX).unwrap()
        return kits.get_with_components(created.version.id)

    return _create
