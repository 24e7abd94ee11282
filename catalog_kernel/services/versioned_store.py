"""
VersionedEntityStore -- one generic implementation of header + versions.

Responsibility:
    Persistence and lifecycle for any entity made of a mutable header and a
    sequence of status-tracked versions (articles, kits, boat models).  The
    entity kind is described by a ``VersionedKind``; the store itself knows
    nothing about prices or components.

Architecture position:
    Kernel > Services.  Used by ArticleCatalog, KitCatalog and
    BoatModelCatalog.  Raises typed errors; the catalogs own the Result
    boundary and the audit trail.

    Other versioned kinds (document templates, procedures) plug in the same
    way: define header and version dataclasses with to_record/from_record,
    add their namespaces to ``Namespace`` and build a ``VersionedKind``
    naming them and the parent field.  No store code changes.

Invariants enforced:
    - version_number is 1-based and monotonic per parent.
    - At most one APPROVED version per parent.  approve_version deprecates
      every other APPROVED version of the parent, approves the target and
      repoints the header inside ONE adapter transaction, so no reader sees
      two APPROVED versions, or none.
    - APPROVED and DEPRECATED versions are never written again except for
      the APPROVED -> DEPRECATED transition.
    - Every write bumps the record's ``version`` counter and is a
      compare-and-swap against the previous value.

Failure modes:
    - kind.header_not_found when the parent id does not resolve.
    - VersionNotFoundError when the version id does not resolve.
    - VersionNotDraftError when approving a non-DRAFT version.
    - ImmutableVersionError when mutating a non-DRAFT version.
    - ConcurrencyConflictError when a concurrent writer got there first.
"""

from collections.abc import Callable
from dataclasses import dataclass, replace
from typing import Any, Generic, TypeVar

from catalog_kernel.db.adapter import OrderBy, QueryFilter, StorageAdapter
from catalog_kernel.domain.audit import AuditContext
from catalog_kernel.domain.clock import Clock
from catalog_kernel.domain.versioning import (
    VersionStatus,
    can_transition,
    is_mutable,
    next_version_number,
)
from catalog_kernel.exceptions import (
    ImmutableVersionError,
    RecordNotFoundError,
    VersionNotDraftError,
    VersionNotFoundError,
)
from catalog_kernel.logging_config import get_logger

logger = get_logger("services.versioned_store")

H = TypeVar("H")
V = TypeVar("V")

# Fields a draft mutation may never change.
_IDENTITY_FIELDS = ("id", "version_number", "status", "approved_at", "approved_by")


@dataclass(frozen=True)
class VersionedKind(Generic[H, V]):
    """
    Describes one versioned entity kind.

    Header and version types must be frozen dataclasses with ``to_record()``
    and ``from_record()``.  Headers carry ``id``, ``current_version_id``,
    ``updated_at`` and ``version``; versions additionally carry the parent
    field, ``version_number``, ``status``, ``approved_at`` and
    ``approved_by``.
    """

    entity_type: str
    header_namespace: str
    version_namespace: str
    parent_field: str
    header_type: type[H]
    version_type: type[V]
    header_not_found: type[RecordNotFoundError]

    @property
    def version_entity_type(self) -> str:
        return f"{self.entity_type}Version"


@dataclass(frozen=True)
class Approval(Generic[H, V]):
    """Outcome of approve_version."""

    approved: V
    deprecated: tuple[V, ...]
    header: H


class VersionedEntityStore(Generic[H, V]):
    """Generic header/version persistence over a StorageAdapter."""

    def __init__(self, kind: VersionedKind[H, V], adapter: StorageAdapter, clock: Clock):
        self._kind = kind
        self._adapter = adapter
        self._clock = clock

    @property
    def kind(self) -> VersionedKind[H, V]:
        return self._kind

    # -------------------------------------------------------------------------
    # Headers
    # -------------------------------------------------------------------------

    def find_header(self, header_id: Any) -> H | None:
        data = self._adapter.get_by_id(self._kind.header_namespace, header_id)
        return self._kind.header_type.from_record(data) if data is not None else None

    def get_header(self, header_id: Any) -> H:
        header = self.find_header(header_id)
        if header is None:
            raise self._kind.header_not_found(str(header_id))
        return header

    def list_headers(self, where: dict[str, Any] | None = None) -> list[H]:
        rows = self._adapter.query(
            self._kind.header_namespace, QueryFilter(where=where or {})
        )
        return [self._kind.header_type.from_record(r) for r in rows]

    def create(self, header: H) -> H:
        """Store a new header with ``version=0`` and no versions."""
        header = replace(header, version=0, current_version_id=None)
        self._adapter.save(self._kind.header_namespace, header.to_record())
        logger.debug(
            "versioned_header_created",
            extra={"entity_type": self._kind.entity_type, "entity_id": str(header.id)},
        )
        return header

    def update_header(self, header: H, **changes: Any) -> H:
        """Compare-and-swap update of header metadata."""
        updated = replace(
            header,
            **changes,
            updated_at=self._clock.now(),
            version=header.version + 1,
        )
        self._adapter.save(
            self._kind.header_namespace,
            updated.to_record(),
            expected_version=header.version,
        )
        return updated

    # -------------------------------------------------------------------------
    # Versions
    # -------------------------------------------------------------------------

    def find_version(self, version_id: Any) -> V | None:
        data = self._adapter.get_by_id(self._kind.version_namespace, version_id)
        return self._kind.version_type.from_record(data) if data is not None else None

    def get_version(self, version_id: Any) -> V:
        version = self.find_version(version_id)
        if version is None:
            raise VersionNotFoundError(str(version_id))
        return version

    def list_versions(self, parent_id: Any) -> list[V]:
        """All versions of a parent, ordered by version_number."""
        rows = self._adapter.query(
            self._kind.version_namespace,
            QueryFilter(
                where={self._kind.parent_field: str(parent_id)},
                order_by=(OrderBy("version_number", numeric=True),),
            ),
        )
        return [self._kind.version_type.from_record(r) for r in rows]

    def create_version(self, parent_id: Any, draft: V) -> V:
        """
        Store ``draft`` as the parent's next DRAFT version.

        The store assigns the parent reference, version_number and status;
        everything else comes from ``draft`` as supplied.
        """
        parent = self.get_header(parent_id)
        number = next_version_number(
            v.version_number for v in self.list_versions(parent.id)
        )
        version = replace(
            draft,
            **{self._kind.parent_field: parent.id},
            version_number=number,
            status=VersionStatus.DRAFT,
            approved_at=None,
            approved_by=None,
            version=0,
        )
        self._adapter.save(self._kind.version_namespace, version.to_record())
        logger.info(
            "version_created",
            extra={
                "entity_type": self._kind.version_entity_type,
                "entity_id": str(version.id),
                "parent_id": str(parent.id),
                "version_number": number,
            },
        )
        return version

    def approve_version(self, version_id: Any, ctx: AuditContext) -> Approval[H, V]:
        """
        Approve a DRAFT version and deprecate the parent's previous approval.

        All writes happen inside one adapter transaction.
        """
        with self._adapter.transaction():
            version = self.get_version(version_id)
            if not can_transition(version.status, VersionStatus.APPROVED):
                raise VersionNotDraftError(
                    self._kind.version_entity_type, str(version.id), version.status.value
                )
            parent_id = getattr(version, self._kind.parent_field)
            header = self.get_header(parent_id)
            now = self._clock.now()

            deprecated: list[V] = []
            for current in self._approved_versions(parent_id):
                if current.id == version.id:
                    continue
                retired = replace(
                    current,
                    status=VersionStatus.DEPRECATED,
                    updated_at=now,
                    version=current.version + 1,
                )
                self._adapter.save(
                    self._kind.version_namespace,
                    retired.to_record(),
                    expected_version=current.version,
                )
                deprecated.append(retired)

            approved = replace(
                version,
                status=VersionStatus.APPROVED,
                approved_at=now,
                approved_by=ctx.user_id,
                updated_at=now,
                version=version.version + 1,
            )
            self._adapter.save(
                self._kind.version_namespace,
                approved.to_record(),
                expected_version=version.version,
            )

            header = self.update_header(header, current_version_id=approved.id)

        logger.info(
            "version_approved",
            extra={
                "entity_type": self._kind.version_entity_type,
                "entity_id": str(approved.id),
                "parent_id": str(parent_id),
                "version_number": approved.version_number,
                "deprecated_count": len(deprecated),
                "actor_id": ctx.user_id,
            },
        )
        return Approval(approved=approved, deprecated=tuple(deprecated), header=header)

    def _approved_versions(self, parent_id: Any) -> list[V]:
        rows = self._adapter.query(
            self._kind.version_namespace,
            QueryFilter(
                where={
                    self._kind.parent_field: str(parent_id),
                    "status": VersionStatus.APPROVED.value,
                }
            ),
        )
        return [self._kind.version_type.from_record(r) for r in rows]

    def get_current_version(self, parent_id: Any) -> V | None:
        """The version the header's current_version_id points at, or None."""
        header = self.find_header(parent_id)
        if header is None or header.current_version_id is None:
            return None
        return self.find_version(header.current_version_id)

    def update_draft(self, version_id: Any, mutate: Callable[[V], V]) -> V:
        """
        Apply a pure mutation to a DRAFT version.

        Raises:
            VersionNotFoundError: The version does not exist.
            ImmutableVersionError: The version is APPROVED or DEPRECATED.
        """
        version = self.get_version(version_id)
        if not is_mutable(version.status):
            raise ImmutableVersionError(
                self._kind.version_entity_type, str(version.id), version.status.value
            )

        mutated = mutate(version)
        for name in (*_IDENTITY_FIELDS, self._kind.parent_field):
            if getattr(mutated, name) != getattr(version, name):
                raise ValueError(f"draft mutation may not change {name}")

        updated = replace(
            mutated,
            updated_at=self._clock.now(),
            version=version.version + 1,
        )
        self._adapter.save(
            self._kind.version_namespace,
            updated.to_record(),
            expected_version=version.version,
        )
        logger.debug(
            "draft_version_updated",
            extra={
                "entity_type": self._kind.version_entity_type,
                "entity_id": str(version.id),
            },
        )
        return updated
