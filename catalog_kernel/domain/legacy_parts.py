"""
Legacy parts table -- free-text configuration names mapped to known parts.

Older configurations reference equipment by display name ("Electric Motor
20kW") rather than by catalog id.  The table maps such names to the parts
they explode into, at known unit cost.  It is supplied from configuration
(see ``catalog_config``) and injected into the BOM expansion engine, so
entries can be migrated into the regular catalog without code changes.
"""

from collections.abc import Iterator, Mapping
from dataclasses import dataclass
from decimal import Decimal
from typing import Any, Self

from catalog_kernel.domain.codec import dec_in, dec_out


@dataclass(frozen=True)
class LegacyPartDefinition:
    """One part produced by a legacy entry, per unit of the entry."""

    article_number: str
    name: str
    category: str
    quantity: Decimal
    unit: str
    unit_cost: Decimal
    supplier: str | None = None
    lead_time_days: int | None = None

    def __post_init__(self) -> None:
        if self.quantity <= 0:
            raise ValueError(
                f"legacy part {self.article_number}: quantity must be > 0"
            )
        if self.unit_cost < 0:
            raise ValueError(
                f"legacy part {self.article_number}: unit_cost must be >= 0"
            )

    def to_dict(self) -> dict[str, Any]:
        return {
            "article_number": self.article_number,
            "name": self.name,
            "category": self.category,
            "quantity": dec_out(self.quantity),
            "unit": self.unit,
            "unit_cost": dec_out(self.unit_cost),
            "supplier": self.supplier,
            "lead_time_days": self.lead_time_days,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Self:
        return cls(
            article_number=str(data["article_number"]),
            name=str(data["name"]),
            category=str(data["category"]),
            quantity=dec_in(data.get("quantity", 1)),
            unit=str(data.get("unit", "pcs")),
            unit_cost=dec_in(data["unit_cost"]),
            supplier=data.get("supplier"),
            lead_time_days=data.get("lead_time_days"),
        )


class LegacyPartsTable:
    """Immutable lookup from legacy entry name to its part definitions."""

    def __init__(
        self,
        entries: Mapping[str, tuple[LegacyPartDefinition, ...]] | None = None,
    ):
        self._entries: dict[str, tuple[LegacyPartDefinition, ...]] = {
            name: tuple(parts) for name, parts in (entries or {}).items()
        }

    @classmethod
    def empty(cls) -> Self:
        return cls()

    @classmethod
    def from_dict(cls, data: Mapping[str, list[dict[str, Any]]]) -> Self:
        """Build from ``{name: [part, ...]}`` as read from YAML."""
        return cls(
            {
                name: tuple(LegacyPartDefinition.from_dict(p) for p in parts)
                for name, parts in data.items()
            }
        )

    def lookup(self, name: str) -> tuple[LegacyPartDefinition, ...] | None:
        """Exact-name lookup; None when the name is not mapped."""
        return self._entries.get(name)

    def to_dict(self) -> dict[str, list[dict[str, Any]]]:
        return {
            name: [p.to_dict() for p in parts]
            for name, parts in sorted(self._entries.items())
        }

    def names(self) -> tuple[str, ...]:
        return tuple(sorted(self._entries))

    def __contains__(self, name: object) -> bool:
        return name in self._entries

    def __iter__(self) -> Iterator[str]:
        return iter(self.names())

    def __len__(self) -> int:
        return len(self._entries)
