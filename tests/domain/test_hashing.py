"""
Tests for deterministic hashing used by the audit chain.
"""

from datetime import datetime, timezone
from decimal import Decimal
from uuid import UUID

import pytest

from catalog_kernel.domain.audit import AuditAction
from catalog_kernel.utils.hashing import (
    canonicalize_json,
    hash_audit_entry,
    hash_payload,
)


class TestCanonicalJson:
    def test_key_order_does_not_matter(self):
        assert canonicalize_json({"b": 1, "a": 2}) == canonicalize_json({"a": 2, "b": 1})

    def test_no_whitespace(self):
        assert canonicalize_json({"a": [1, 2]}) == '{"a":[1,2]}'

    def test_decimal_is_normalized(self):
        assert canonicalize_json({"x": Decimal("12000.00")}) == canonicalize_json(
            {"x": Decimal("12000")}
        )

    def test_rich_types(self):
        uid = UUID("12345678-1234-5678-1234-567812345678")
        rendered = canonicalize_json(
            {
                "id": uid,
                "at": datetime(2024, 1, 1, tzinfo=timezone.utc),
                "action": AuditAction.APPROVE,
            }
        )
        assert str(uid) in rendered
        assert "2024-01-01T00:00:00+00:00" in rendered
        assert '"approve"' in rendered

    def test_unsupported_type_raises(self):
        with pytest.raises(TypeError):
            canonicalize_json({"x": object()})


class TestHashes:
    def test_payload_hash_is_deterministic(self):
        assert hash_payload({"a": 1}) == hash_payload({"a": 1})
        assert hash_payload({"a": 1}) != hash_payload({"a": 2})
        assert len(hash_payload({})) == 64

    def test_entry_hash_links_to_previous(self):
        first = hash_audit_entry("Article", "a-1", "create", "p", None)
        second = hash_audit_entry("Article", "a-1", "create", "p", first)
        assert first != second
        assert hash_audit_entry("Article", "a-1", "create", "p", first) == second
