"""
Tests for the audit hash chain.

Covers:
- Sequence numbers and hash links
- Chain validation and tamper detection
- Per-entity traces and recent entries
"""

import pytest

from catalog_kernel.domain.audit import AuditAction
from catalog_kernel.exceptions import AuditChainBrokenError
from catalog_kernel.services.base import Namespace
from tests.support import AUDIT_CTX


def record_three(audit_service):
    return [
        audit_service.record(AUDIT_CTX, AuditAction.CREATE, "Article", "a-1", "Created A"),
        audit_service.record(AUDIT_CTX, AuditAction.CREATE, "Article", "a-2", "Created B"),
        audit_service.record(
            AUDIT_CTX, AuditAction.UPDATE, "Article", "a-1", "Renamed A", {"name": "A2"}
        ),
    ]


class TestChain:
    def test_sequence_and_links(self, audit_service):
        first, second, third = record_three(audit_service)

        assert [e.seq for e in (first, second, third)] == [1, 2, 3]
        assert first.prev_hash is None
        assert second.prev_hash == first.hash
        assert third.prev_hash == second.hash
        assert len({first.hash, second.hash, third.hash}) == 3

    def test_entries_in_order(self, audit_service):
        record_three(audit_service)
        assert [e.summary for e in audit_service.entries()] == [
            "Created A",
            "Created B",
            "Renamed A",
        ]

    def test_valid_chain(self, audit_service, captured_logs):
        record_three(audit_service)
        assert audit_service.validate_chain() is True
        [valid] = [r for r in captured_logs() if r["message"] == "audit_chain_valid"]
        assert valid["entry_count"] == 3

    def test_empty_chain_is_valid(self, audit_service):
        assert audit_service.validate_chain() is True

    def test_tampered_summary_is_detected(self, adapter, audit_service):
        _, second, _ = record_three(audit_service)
        stored = adapter.get_by_id(Namespace.AUDIT_LOG, second.id)
        stored["summary"] = "Created something else"
        stored["version"] = 1
        adapter.save(Namespace.AUDIT_LOG, stored, expected_version=0)

        with pytest.raises(AuditChainBrokenError) as exc_info:
            audit_service.validate_chain()
        assert exc_info.value.entry_id == str(second.id)

    def test_removed_entry_breaks_the_link(self, adapter, audit_service):
        _, second, third = record_three(audit_service)
        adapter.delete(Namespace.AUDIT_LOG, second.id)

        with pytest.raises(AuditChainBrokenError) as exc_info:
            audit_service.validate_chain()
        assert exc_info.value.entry_id == str(third.id)


class TestQueries:
    def test_trace_for_one_entity(self, audit_service):
        record_three(audit_service)

        trace = audit_service.get_trace("Article", "a-1")

        assert [e.summary for e in trace.entries] == ["Created A", "Renamed A"]
        assert trace.last_action == AuditAction.UPDATE
        assert trace.entries[1].payload == {"name": "A2"}

    def test_empty_trace(self, audit_service):
        trace = audit_service.get_trace("Kit", "k-1")
        assert trace.is_empty
        assert trace.last_action is None

    def test_recent_newest_first(self, audit_service):
        record_three(audit_service)
        assert [e.seq for e in audit_service.recent(limit=2)] == [3, 2]
