"""
Tests for the structured logging system (catalog_kernel/logging_config.py).

Covers:
- One JSON object per line with extras and non-JSON values
- LogContext binding, nesting and precedence over extras
- Exception fields
- configure_logging idempotence
"""

import json
import logging
from decimal import Decimal
from io import StringIO
from uuid import uuid4

import pytest

from catalog_kernel.exceptions import VersionNotDraftError
from catalog_kernel.logging_config import (
    LogContext,
    StructuredFormatter,
    configure_logging,
    get_logger,
    reset_logging,
)


@pytest.fixture(autouse=True)
def _clean_logging():
    """Start each test unconfigured; restore the suite's configuration after."""
    reset_logging()
    yield
    reset_logging()
    configure_logging(level=logging.DEBUG, stream=StringIO())


def _configure() -> StringIO:
    stream = StringIO()
    handler = logging.StreamHandler(stream)
    configure_logging(handler=handler)
    return stream


def _parse_all(stream: StringIO) -> list[dict]:
    return [json.loads(line) for line in stream.getvalue().splitlines() if line]


class TestStructuredFormatter:
    def test_basic_json_output(self):
        stream = _configure()
        get_logger("test").info("hello")

        [record] = _parse_all(stream)
        assert record["level"] == "INFO"
        assert record["message"] == "hello"
        assert record["logger"] == "catalog_kernel.test"
        assert "ts" in record

    def test_extras_and_non_json_values(self):
        stream = _configure()
        version_id = uuid4()
        get_logger("test").info(
            "kit_cost_calculated",
            extra={
                "version_id": version_id,
                "cost": Decimal("114.00"),
                "codes": {"CB-001", "AN-002"},
                "missing_costs": ("CB-001",),
            },
        )

        [record] = _parse_all(stream)
        assert record["version_id"] == str(version_id)
        assert record["cost"] == "114.00"
        assert record["codes"] == ["AN-002", "CB-001"]
        assert record["missing_costs"] == ["CB-001"]

    def test_exception_fields(self):
        stream = _configure()
        try:
            raise VersionNotDraftError("ArticleVersion", "v-1", "APPROVED")
        except VersionNotDraftError:
            get_logger("test").warning("approve_failed", exc_info=True)

        [record] = _parse_all(stream)
        assert record["exc_type"] == "VersionNotDraftError"
        assert record["exc_code"] == "VERSION_NOT_DRAFT"
        assert "Traceback" in record["traceback"]

    def test_info_is_filtered_at_warning_level(self):
        stream = StringIO()
        configure_logging(level=logging.WARNING, stream=stream)
        get_logger("test").info("hidden")
        get_logger("test").warning("shown")

        assert [r["message"] for r in _parse_all(stream)] == ["shown"]


class TestLogContext:
    def test_bound_fields_appear_on_every_line(self):
        stream = _configure()
        with LogContext.bind(project_id="P-100", actor_id="u-1"):
            get_logger("test").info("first")
            get_logger("test").info("second")

        for record in _parse_all(stream):
            assert record["project_id"] == "P-100"
            assert record["actor_id"] == "u-1"

    def test_bind_restores_on_exit(self):
        with LogContext.bind(project_id="P-100"):
            with LogContext.bind(project_id="P-200", actor_id="u-2"):
                assert LogContext.get_all() == {
                    "project_id": "P-200",
                    "actor_id": "u-2",
                }
            assert LogContext.get_all() == {"project_id": "P-100"}
        assert LogContext.get_all() == {}

    def test_none_values_are_skipped(self):
        with LogContext.bind(project_id="P-100", actor_id=None):
            assert LogContext.get_all() == {"project_id": "P-100"}

    def test_context_wins_over_extra(self):
        stream = _configure()
        with LogContext.bind(project_id="P-100"):
            get_logger("test").info("x", extra={"project_id": "other"})

        [record] = _parse_all(stream)
        assert record["project_id"] == "P-100"

    def test_unknown_field_rejected(self):
        with pytest.raises(ValueError, match="batch_id"):
            with LogContext.bind(batch_id="B-1"):
                pass

    def test_clear(self):
        with LogContext.bind(actor_id="u-1"):
            LogContext.clear()
            assert LogContext.get_all() == {}


class TestConfiguration:
    def test_configure_is_idempotent(self):
        configure_logging(stream=StringIO())
        configure_logging(stream=StringIO())

        root = logging.getLogger("catalog_kernel")
        assert len(root.handlers) == 1
        assert isinstance(root.handlers[0].formatter, StructuredFormatter)
        assert root.propagate is False
