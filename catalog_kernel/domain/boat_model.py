"""
Boat model domain types.

A boat model is a versioned library entity like articles and kits.  Each
version carries the hull specifications, a base price and the default
configuration items applied when a new-build project is created from it.
Default items reference pinned ArticleVersions or KitVersions.
"""

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Any, Self
from uuid import UUID

from catalog_kernel.domain.codec import (
    dec_in,
    dec_out,
    dt_in,
    dt_out,
    uuid_in,
    uuid_out,
)
from catalog_kernel.domain.configuration import (
    ArticleItem,
    KitItem,
    configuration_item_from_record,
)
from catalog_kernel.domain.versioning import VersionStatus

DefaultConfigurationItem = ArticleItem | KitItem


class DesignCategory(str, Enum):
    """CE design category (ISO 12217)."""

    A = "A"
    B = "B"
    C = "C"
    D = "D"


@dataclass(frozen=True)
class BoatModel:
    id: UUID
    name: str
    range: str
    created_at: datetime
    updated_at: datetime
    created_by: str
    description: str | None = None
    current_version_id: UUID | None = None
    archived_at: datetime | None = None
    version: int = 0

    @property
    def is_archived(self) -> bool:
        return self.archived_at is not None

    def to_record(self) -> dict[str, Any]:
        return {
            "id": uuid_out(self.id),
            "name": self.name,
            "range": self.range,
            "description": self.description,
            "current_version_id": uuid_out(self.current_version_id),
            "archived_at": dt_out(self.archived_at),
            "created_at": dt_out(self.created_at),
            "updated_at": dt_out(self.updated_at),
            "created_by": self.created_by,
            "version": self.version,
        }

    @classmethod
    def from_record(cls, data: dict[str, Any]) -> Self:
        return cls(
            id=uuid_in(data["id"]),
            name=data["name"],
            range=data["range"],
            description=data.get("description"),
            current_version_id=uuid_in(data.get("current_version_id")),
            archived_at=dt_in(data.get("archived_at")),
            created_at=dt_in(data["created_at"]),
            updated_at=dt_in(data["updated_at"]),
            created_by=data["created_by"],
            version=data["version"],
        )


@dataclass(frozen=True)
class BoatModelVersion:
    id: UUID
    model_id: UUID
    version_number: int
    version_label: str
    status: VersionStatus
    length_m: Decimal
    beam_m: Decimal
    base_price: Decimal
    created_at: datetime
    updated_at: datetime
    created_by: str
    draft_m: Decimal | None = None
    displacement_kg: Decimal | None = None
    max_passengers: int | None = None
    ce_category: DesignCategory | None = None
    default_configuration_items: tuple[DefaultConfigurationItem, ...] = ()
    approved_at: datetime | None = None
    approved_by: str | None = None
    version: int = 0

    def to_record(self) -> dict[str, Any]:
        return {
            "id": uuid_out(self.id),
            "model_id": uuid_out(self.model_id),
            "version_number": self.version_number,
            "version_label": self.version_label,
            "status": self.status.value,
            "length_m": dec_out(self.length_m),
            "beam_m": dec_out(self.beam_m),
            "base_price": dec_out(self.base_price),
            "draft_m": dec_out(self.draft_m),
            "displacement_kg": dec_out(self.displacement_kg),
            "max_passengers": self.max_passengers,
            "ce_category": self.ce_category.value if self.ce_category else None,
            "default_configuration_items": [
                item.to_record() for item in self.default_configuration_items
            ],
            "approved_at": dt_out(self.approved_at),
            "approved_by": self.approved_by,
            "created_at": dt_out(self.created_at),
            "updated_at": dt_out(self.updated_at),
            "created_by": self.created_by,
            "version": self.version,
        }

    @classmethod
    def from_record(cls, data: dict[str, Any]) -> Self:
        ce_category = data.get("ce_category")
        return cls(
            id=uuid_in(data["id"]),
            model_id=uuid_in(data["model_id"]),
            version_number=data["version_number"],
            version_label=data["version_label"],
            status=VersionStatus(data["status"]),
            length_m=dec_in(data["length_m"]),
            beam_m=dec_in(data["beam_m"]),
            base_price=dec_in(data["base_price"]),
            draft_m=dec_in(data.get("draft_m")),
            displacement_kg=dec_in(data.get("displacement_kg")),
            max_passengers=data.get("max_passengers"),
            ce_category=DesignCategory(ce_category) if ce_category else None,
            default_configuration_items=tuple(
                configuration_item_from_record(item)
                for item in data.get("default_configuration_items") or ()
            ),
            approved_at=dt_in(data.get("approved_at")),
            approved_by=data.get("approved_by"),
            created_at=dt_in(data["created_at"]),
            updated_at=dt_in(data["updated_at"]),
            created_by=data["created_by"],
            version=data["version"],
        )


@dataclass(frozen=True)
class BoatModelVersionInput:
    length_m: Decimal
    beam_m: Decimal
    base_price: Decimal
    version_label: str | None = None
    draft_m: Decimal | None = None
    displacement_kg: Decimal | None = None
    max_passengers: int | None = None
    ce_category: DesignCategory | None = None
    default_configuration_items: tuple[DefaultConfigurationItem, ...] = ()


@dataclass(frozen=True)
class BoatModelInput:
    name: str
    range: str
    length_m: Decimal
    beam_m: Decimal
    base_price: Decimal
    description: str | None = None
    draft_m: Decimal | None = None
    displacement_kg: Decimal | None = None
    max_passengers: int | None = None
    ce_category: DesignCategory | None = None
    default_configuration_items: tuple[DefaultConfigurationItem, ...] = ()

    def version_input(self) -> BoatModelVersionInput:
        return BoatModelVersionInput(
            length_m=self.length_m,
            beam_m=self.beam_m,
            base_price=self.base_price,
            version_label="1.0.0",
            draft_m=self.draft_m,
            displacement_kg=self.displacement_kg,
            max_passengers=self.max_passengers,
            ce_category=self.ce_category,
            default_configuration_items=tuple(self.default_configuration_items),
        )
