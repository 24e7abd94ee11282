"""
Version lifecycle rules shared by every versioned catalog entity.

    DRAFT ──approve──> APPROVED ──(next approval)──> DEPRECATED

DRAFT versions are mutable.  APPROVED and DEPRECATED versions are frozen
forever: a quotation or BOM computed against "v1 pricing" stays
reproducible after the catalog moves on to v2.

At most one APPROVED version exists per parent at any time.
"""

from collections.abc import Iterable
from enum import Enum


class VersionStatus(str, Enum):
    """Lifecycle status of a catalog entity version."""

    DRAFT = "DRAFT"
    APPROVED = "APPROVED"
    DEPRECATED = "DEPRECATED"


_ALLOWED_TRANSITIONS: dict[VersionStatus, frozenset[VersionStatus]] = {
    VersionStatus.DRAFT: frozenset({VersionStatus.APPROVED}),
    VersionStatus.APPROVED: frozenset({VersionStatus.DEPRECATED}),
    VersionStatus.DEPRECATED: frozenset(),
}


def is_mutable(status: VersionStatus) -> bool:
    """Only DRAFT versions may be edited."""
    return status == VersionStatus.DRAFT


def can_transition(current: VersionStatus, target: VersionStatus) -> bool:
    return target in _ALLOWED_TRANSITIONS[current]


def next_version_number(existing: Iterable[int]) -> int:
    """1-based, monotonic: max(existing) + 1, or 1 when there are none."""
    return max(existing, default=0) + 1
