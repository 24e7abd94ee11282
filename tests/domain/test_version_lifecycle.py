"""
Tests for the version lifecycle rules.

Covers:
- Allowed and forbidden status transitions
- Mutability per status
- 1-based monotonic version numbering
"""

import pytest

from catalog_kernel.domain.versioning import (
    VersionStatus,
    can_transition,
    is_mutable,
    next_version_number,
)


class TestTransitions:
    """DRAFT -> APPROVED -> DEPRECATED, nothing else."""

    @pytest.mark.parametrize(
        "current,target",
        [
            (VersionStatus.DRAFT, VersionStatus.APPROVED),
            (VersionStatus.APPROVED, VersionStatus.DEPRECATED),
        ],
    )
    def test_allowed(self, current, target):
        assert can_transition(current, target) is True

    @pytest.mark.parametrize(
        "current,target",
        [
            (VersionStatus.DRAFT, VersionStatus.DEPRECATED),
            (VersionStatus.APPROVED, VersionStatus.APPROVED),
            (VersionStatus.APPROVED, VersionStatus.DRAFT),
            (VersionStatus.DEPRECATED, VersionStatus.APPROVED),
            (VersionStatus.DEPRECATED, VersionStatus.DRAFT),
        ],
    )
    def test_forbidden(self, current, target):
        assert can_transition(current, target) is False

    def test_deprecated_is_terminal(self):
        assert not any(
            can_transition(VersionStatus.DEPRECATED, target) for target in VersionStatus
        )


class TestMutability:
    def test_only_draft_is_mutable(self):
        assert is_mutable(VersionStatus.DRAFT)
        assert not is_mutable(VersionStatus.APPROVED)
        assert not is_mutable(VersionStatus.DEPRECATED)


class TestVersionNumbering:
    def test_first_version_is_one(self):
        assert next_version_number([]) == 1

    def test_next_is_max_plus_one(self):
        assert next_version_number([1, 2, 3]) == 4

    def test_gaps_do_not_reuse_numbers(self):
        """Numbering follows the highest number, not the count."""
        assert next_version_number([1, 5]) == 6
