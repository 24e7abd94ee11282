"""
SQL adapter specifics: row layout, id handling, session ownership and
which parts of a query run in the database.
"""

from uuid import uuid4

import pytest
from sqlalchemy import event, select

from catalog_kernel.db.adapter import OrderBy, QueryFilter
from catalog_kernel.domain.audit import AuditAction
from catalog_kernel.domain.clock import DeterministicClock
from catalog_kernel.models.catalog_record import CatalogRecord
from catalog_kernel.services.audit_service import AuditService
from tests.support import AUDIT_CTX


class TestRowLayout:
    def test_one_row_per_record_with_version_column(self, sql_adapter, session):
        record_id = str(uuid4())
        sql_adapter.save("library_kits", {"id": record_id, "version": 0, "code": "K"})
        sql_adapter.save(
            "library_kits",
            {"id": record_id, "version": 1, "code": "K2"},
            expected_version=0,
        )

        rows = session.execute(select(CatalogRecord)).scalars().all()
        assert len(rows) == 1
        assert rows[0].namespace == "library_kits"
        assert rows[0].record_version == 1
        assert rows[0].payload["code"] == "K2"

    def test_version_defaults_to_zero(self, sql_adapter):
        stored = sql_adapter.save("library_kits", {"id": str(uuid4()), "code": "K"})
        assert stored["version"] == 0


class TestIds:
    def test_non_uuid_id_is_rejected_on_save(self, sql_adapter):
        with pytest.raises(ValueError, match="UUID"):
            sql_adapter.save("library_kits", {"id": "not-a-uuid", "version": 0})

    def test_non_uuid_id_reads_as_missing(self, sql_adapter):
        assert sql_adapter.get_by_id("library_kits", "not-a-uuid") is None
        assert sql_adapter.delete("library_kits", "not-a-uuid") is False


class TestStringFilters:
    def test_string_filter_with_special_characters(self, sql_adapter):
        sql_adapter.save(
            "library_categories",
            {"id": str(uuid4()), "version": 0, "name": "Hull & Structural"},
        )
        sql_adapter.save(
            "library_categories",
            {"id": str(uuid4()), "version": 0, "name": "AIS / VHF"},
        )
        result = sql_adapter.query(
            "library_categories", QueryFilter(where={"name": "Hull & Structural"})
        )
        assert [r["name"] for r in result] == ["Hull & Structural"]

    def test_filter_on_missing_field_matches_nothing(self, sql_adapter):
        sql_adapter.save("library_categories", {"id": str(uuid4()), "version": 0})
        assert (
            sql_adapter.query("library_categories", QueryFilter(where={"name": "X"}))
            == []
        )


class TestSessionOwnership:
    def test_adapter_never_commits(self, sql_adapter, session):
        sql_adapter.save("library_kits", {"id": str(uuid4()), "version": 0})
        session.rollback()
        assert sql_adapter.get_all("library_kits") == []


class TestQueryPushdown:
    @pytest.fixture
    def loaded_rows(self):
        """CatalogRecord instances materialised by the ORM, new or refreshed."""
        loaded = []

        def on_load(target, context):
            loaded.append(target)

        def on_refresh(target, context, attrs):
            loaded.append(target)

        event.listen(CatalogRecord, "load", on_load)
        event.listen(CatalogRecord, "refresh", on_refresh)
        yield loaded
        event.remove(CatalogRecord, "load", on_load)
        event.remove(CatalogRecord, "refresh", on_refresh)

    @pytest.fixture
    def statements(self, sqlite_engine):
        captured = []

        def before_execute(conn, cursor, statement, parameters, context, executemany):
            captured.append(statement)

        event.listen(sqlite_engine, "before_cursor_execute", before_execute)
        yield captured
        event.remove(sqlite_engine, "before_cursor_execute", before_execute)

    def test_chain_head_is_read_with_limit(self, sql_adapter, loaded_rows, statements):
        audit = AuditService(sql_adapter, DeterministicClock())
        for n in range(30):
            audit.record(
                AUDIT_CTX, AuditAction.CREATE, "Category", f"c-{n}", f"Created {n}"
            )
        loaded_rows.clear()
        statements.clear()

        entry = audit.record(
            AUDIT_CTX, AuditAction.CREATE, "Category", "c-30", "Created 30"
        )

        assert entry.seq == 31
        assert len(loaded_rows) <= 1
        head_query = next(s for s in statements if "ORDER BY" in s)
        assert "LIMIT" in head_query

    def test_numeric_order_is_done_in_sql(self, sql_adapter, statements):
        for number in (3, 1, 2):
            sql_adapter.save(
                "library_kit_versions",
                {"id": str(uuid4()), "version": 0, "version_number": number},
            )
        statements.clear()

        result = sql_adapter.query(
            "library_kit_versions",
            QueryFilter(order_by=(OrderBy("version_number", numeric=True),), limit=2),
        )

        assert [r["version_number"] for r in result] == [1, 2]
        assert any("ORDER BY" in s and "LIMIT" in s for s in statements)

    def test_count_runs_in_sql(self, sql_adapter, loaded_rows):
        for _ in range(5):
            sql_adapter.save("library_kits", {"id": str(uuid4()), "version": 0})
        loaded_rows.clear()

        assert sql_adapter.count("library_kits") == 5
        assert loaded_rows == []
