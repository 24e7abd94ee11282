"""Utility modules for the catalog kernel."""

from catalog_kernel.utils.hashing import (
    canonicalize_json,
    hash_audit_entry,
    hash_payload,
)

__all__ = [
    "canonicalize_json",
    "hash_audit_entry",
    "hash_payload",
]
