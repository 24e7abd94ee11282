"""
Audit value types.

AuditContext is passed explicitly into every mutating call -- there is no
ambient session state.  AuditEntry is one link of the tamper-evident hash
chain kept by ``AuditService``.
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Self
from uuid import UUID

from catalog_kernel.domain.codec import dt_in, dt_out, uuid_in, uuid_out


@dataclass(frozen=True)
class AuditContext:
    """Who is performing the action."""

    user_id: str
    user_name: str


SYSTEM_CONTEXT = AuditContext(user_id="system", user_name="System")


class AuditAction(str, Enum):
    """Types of auditable catalog actions."""

    CREATE = "create"
    UPDATE = "update"
    APPROVE = "approve"
    DEPRECATE = "deprecate"
    ARCHIVE = "archive"
    DELETE = "delete"
    GENERATE = "generate"


@dataclass(frozen=True)
class AuditEntry:
    """One entry in the audit hash chain."""

    id: UUID
    seq: int
    action: AuditAction
    entity_type: str
    entity_id: str
    user_id: str
    user_name: str
    occurred_at: datetime
    summary: str
    payload: dict[str, Any] = field(default_factory=dict)
    payload_hash: str = ""
    prev_hash: str | None = None
    hash: str = ""

    def to_record(self) -> dict[str, Any]:
        return {
            "id": uuid_out(self.id),
            "seq": self.seq,
            "action": self.action.value,
            "entity_type": self.entity_type,
            "entity_id": self.entity_id,
            "user_id": self.user_id,
            "user_name": self.user_name,
            "occurred_at": dt_out(self.occurred_at),
            "summary": self.summary,
            "payload": dict(self.payload),
            "payload_hash": self.payload_hash,
            "prev_hash": self.prev_hash,
            "hash": self.hash,
        }

    @classmethod
    def from_record(cls, data: dict[str, Any]) -> Self:
        return cls(
            id=uuid_in(data["id"]),
            seq=data["seq"],
            action=AuditAction(data["action"]),
            entity_type=data["entity_type"],
            entity_id=data["entity_id"],
            user_id=data["user_id"],
            user_name=data["user_name"],
            occurred_at=dt_in(data["occurred_at"]),
            summary=data["summary"],
            payload=dict(data.get("payload") or {}),
            payload_hash=data["payload_hash"],
            prev_hash=data.get("prev_hash"),
            hash=data["hash"],
        )
