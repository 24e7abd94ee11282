"""
CatalogSettings schema.

The typed, frozen form of a catalog configuration set.  YAML fragments are
parsed into these types by ``catalog_config.loader``; services receive the
values they need (ratio, VAT, legacy table, seeds) from here and never read
configuration files themselves.
"""

from dataclasses import dataclass, field
from decimal import Decimal
from typing import NamedTuple

from catalog_kernel.domain.boat_model import BoatModelInput, DesignCategory
from catalog_kernel.domain.legacy_parts import LegacyPartsTable


class TaxonomySeed(NamedTuple):
    """One category and its subcategories, in display order."""

    category: str
    subcategories: tuple[str, ...]


@dataclass(frozen=True)
class BoatModelSeed:
    """A boat model created on first start of an empty catalog."""

    name: str
    range: str
    length_m: Decimal
    beam_m: Decimal
    base_price: Decimal
    ce_category: DesignCategory | None = None
    max_passengers: int | None = None
    description: str | None = None

    def to_input(self) -> BoatModelInput:
        return BoatModelInput(
            name=self.name,
            range=self.range,
            length_m=self.length_m,
            beam_m=self.beam_m,
            base_price=self.base_price,
            ce_category=self.ce_category,
            max_passengers=self.max_passengers,
            description=self.description,
        )


@dataclass(frozen=True)
class CatalogSettings:
    """
    Runtime catalog configuration.

    Raises ValueError on construction when a value is out of range.
    """

    config_id: str
    version: int
    cost_estimation_ratio: Decimal = Decimal("0.6")
    high_estimation_threshold_percent: Decimal = Decimal("30")
    default_vat_rate: Decimal = Decimal("21")
    legacy_parts: LegacyPartsTable = field(default_factory=LegacyPartsTable.empty)
    taxonomy: tuple[TaxonomySeed, ...] = ()
    boat_models: tuple[BoatModelSeed, ...] = ()
    checksum: str = ""

    def __post_init__(self) -> None:
        if not Decimal("0") <= self.cost_estimation_ratio <= Decimal("1"):
            raise ValueError(
                "cost_estimation_ratio must be between 0 and 1 "
                f"(got {self.cost_estimation_ratio})"
            )
        if not Decimal("0") <= self.high_estimation_threshold_percent <= Decimal("100"):
            raise ValueError(
                "high_estimation_threshold_percent must be between 0 and 100 "
                f"(got {self.high_estimation_threshold_percent})"
            )
        if self.default_vat_rate < 0:
            raise ValueError(
                f"default_vat_rate must be >= 0 (got {self.default_vat_rate})"
            )
        categories = [seed.category for seed in self.taxonomy]
        if len(categories) != len(set(categories)):
            raise ValueError("taxonomy contains duplicate category names")

    def boat_model_inputs(self) -> list[BoatModelInput]:
        return [seed.to_input() for seed in self.boat_models]
