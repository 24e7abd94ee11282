"""
AuditService -- tamper-evident audit trail for catalog mutations.

Responsibility:
    Appends an ``AuditEntry`` for every catalog mutation (create, update,
    approve, deprecate, archive, delete, BOM generation) and validates the
    hash chain on demand.

Architecture position:
    Kernel > Services.  Writes through the same StorageAdapter as the
    mutation it records, so both land in the same unit of work.

Invariants enforced:
    - Entries are append-only; ``seq`` increases by one per entry.
    - hash = H(entity_type | entity_id | action | payload_hash | prev_hash);
      the first entry has no prev_hash.

Failure modes:
    - AuditChainBrokenError from ``validate_chain`` when any stored hash or
      link does not match its recomputed value.
"""

from dataclasses import dataclass
from typing import Any
from uuid import uuid4

from catalog_kernel.db.adapter import OrderBy, QueryFilter, StorageAdapter
from catalog_kernel.domain.audit import AuditAction, AuditContext, AuditEntry
from catalog_kernel.domain.clock import Clock, SystemClock
from catalog_kernel.exceptions import AuditChainBrokenError
from catalog_kernel.logging_config import get_logger
from catalog_kernel.services.base import Namespace
from catalog_kernel.utils.hashing import hash_audit_entry, hash_payload

logger = get_logger("services.audit")

_AUDIT_NAMESPACE = Namespace.AUDIT_LOG
_OLDEST_FIRST = (OrderBy("seq", numeric=True),)
_NEWEST_FIRST = (OrderBy("seq", descending=True, numeric=True),)


@dataclass(frozen=True)
class AuditTrace:
    """All audit entries for one entity, oldest first."""

    entity_type: str
    entity_id: str
    entries: tuple[AuditEntry, ...]

    @property
    def is_empty(self) -> bool:
        return len(self.entries) == 0

    @property
    def last_action(self) -> AuditAction | None:
        return self.entries[-1].action if self.entries else None


class AuditService:
    """
    Hash-chained audit log over a StorageAdapter.

    Contract:
        ``record`` appends one entry and returns it; it never raises for
        business reasons.
    """

    def __init__(self, adapter: StorageAdapter, clock: Clock | None = None):
        self._adapter = adapter
        self._clock = clock or SystemClock()

    def _last_entry(self) -> AuditEntry | None:
        rows = self._adapter.query(
            _AUDIT_NAMESPACE,
            QueryFilter(order_by=_NEWEST_FIRST, limit=1),
        )
        return AuditEntry.from_record(rows[0]) if rows else None

    @staticmethod
    def _payload_hash(
        seq: int,
        ctx_user_id: str,
        occurred_at: str,
        summary: str,
        payload: dict[str, Any],
    ) -> str:
        return hash_payload(
            {
                "seq": seq,
                "user_id": ctx_user_id,
                "occurred_at": occurred_at,
                "summary": summary,
                "payload": payload,
            }
        )

    def record(
        self,
        ctx: AuditContext,
        action: AuditAction,
        entity_type: str,
        entity_id: Any,
        summary: str,
        payload: dict[str, Any] | None = None,
    ) -> AuditEntry:
        """
        Append an entry to the chain.

        Args:
            ctx: Who performed the action.
            action: What kind of action.
            entity_type: e.g. "Article", "KitVersion".
            entity_id: Id of the affected record.
            summary: Human-readable description.
            payload: Structured details (JSON-compatible).

        Returns:
            The stored AuditEntry.
        """
        last = self._last_entry()
        seq = last.seq + 1 if last is not None else 1
        prev_hash = last.hash if last is not None else None
        occurred_at = self._clock.now()
        body = dict(payload or {})

        payload_hash = self._payload_hash(
            seq, ctx.user_id, occurred_at.isoformat(), summary, body
        )
        entry = AuditEntry(
            id=uuid4(),
            seq=seq,
            action=action,
            entity_type=entity_type,
            entity_id=str(entity_id),
            user_id=ctx.user_id,
            user_name=ctx.user_name,
            occurred_at=occurred_at,
            summary=summary,
            payload=body,
            payload_hash=payload_hash,
            prev_hash=prev_hash,
            hash=hash_audit_entry(
                entity_type, str(entity_id), action.value, payload_hash, prev_hash
            ),
        )
        self._adapter.save(_AUDIT_NAMESPACE, entry.to_record())

        logger.info(
            "audit_entry_recorded",
            extra={
                "seq": seq,
                "action": action.value,
                "entity_type": entity_type,
                "entity_id": str(entity_id),
                "actor_id": ctx.user_id,
            },
        )
        return entry

    # Chain validation

    def entries(self) -> list[AuditEntry]:
        rows = self._adapter.query(
            _AUDIT_NAMESPACE, QueryFilter(order_by=_OLDEST_FIRST)
        )
        return [AuditEntry.from_record(r) for r in rows]

    def validate_chain(self) -> bool:
        """
        Validate the entire audit chain.

        Returns True only if every entry's payload hash and hash match the
        recomputed values and every prev_hash matches its predecessor.

        Raises:
            AuditChainBrokenError: At the first entry that fails.
        """
        entries = self.entries()
        previous: AuditEntry | None = None

        for entry in entries:
            expected_prev = previous.hash if previous is not None else None
            if entry.prev_hash != expected_prev:
                logger.critical("audit_chain_broken", extra={"entry_id": str(entry.id)})
                raise AuditChainBrokenError(
                    str(entry.id), expected_prev or "None", entry.prev_hash or "None"
                )

            expected_payload_hash = self._payload_hash(
                entry.seq,
                entry.user_id,
                entry.occurred_at.isoformat(),
                entry.summary,
                entry.payload,
            )
            if entry.payload_hash != expected_payload_hash:
                logger.critical("audit_chain_broken", extra={"entry_id": str(entry.id)})
                raise AuditChainBrokenError(
                    str(entry.id), expected_payload_hash, entry.payload_hash
                )

            expected_hash = hash_audit_entry(
                entry.entity_type,
                entry.entity_id,
                entry.action.value,
                entry.payload_hash,
                entry.prev_hash,
            )
            if entry.hash != expected_hash:
                logger.critical("audit_chain_broken", extra={"entry_id": str(entry.id)})
                raise AuditChainBrokenError(str(entry.id), expected_hash, entry.hash)

            previous = entry

        logger.info("audit_chain_valid", extra={"entry_count": len(entries)})
        return True

    # Queries

    def get_trace(self, entity_type: str, entity_id: Any) -> AuditTrace:
        rows = self._adapter.query(
            _AUDIT_NAMESPACE,
            QueryFilter(
                where={"entity_type": entity_type, "entity_id": str(entity_id)},
                order_by=_OLDEST_FIRST,
            ),
        )
        return AuditTrace(
            entity_type=entity_type,
            entity_id=str(entity_id),
            entries=tuple(AuditEntry.from_record(r) for r in rows),
        )

    def recent(self, limit: int = 100) -> list[AuditEntry]:
        rows = self._adapter.query(
            _AUDIT_NAMESPACE,
            QueryFilter(order_by=_NEWEST_FIRST, limit=limit),
        )
        return [AuditEntry.from_record(r) for r in rows]
