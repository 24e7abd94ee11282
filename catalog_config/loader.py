"""
Configuration Loader (``catalog_config.loader``).

Responsibility
--------------
Loads a catalog settings YAML file and parses it into the typed
``catalog_config.schema`` dataclasses.  Runtime callers go through
``catalog_config.get_active_config()`` instead of calling this directly.

Invariants enforced
-------------------
* Decimal settings are parsed from their string form, never via float.
* Parse errors raise ``ValueError`` with the offending key in the message;
  required keys have no silent defaults.
* ``compute_checksum`` is deterministic for identical input.

Failure modes
-------------
* Missing YAML file  -> ``FileNotFoundError`` propagates.
* Malformed YAML  -> ``yaml.YAMLError`` propagates.
* Missing or invalid values  -> ``ValueError``.
"""

import hashlib
import json
from decimal import Decimal, InvalidOperation
from pathlib import Path
from typing import Any

import yaml

from catalog_config.schema import BoatModelSeed, CatalogSettings, TaxonomySeed
from catalog_kernel.domain.boat_model import DesignCategory
from catalog_kernel.domain.legacy_parts import LegacyPartsTable


def load_yaml_file(path: Path) -> dict[str, Any]:
    """
    Load a single YAML file and return its contents as a dict.

    Raises:
        FileNotFoundError: if the file does not exist.
        yaml.YAMLError: if the file contains invalid YAML.
        ValueError: if the document is not a mapping.
    """
    with open(path) as f:
        data = yaml.safe_load(f) or {}
    if not isinstance(data, dict):
        raise ValueError(f"{path}: expected a mapping at the top level")
    return data


def parse_decimal(key: str, value: Any) -> Decimal:
    if isinstance(value, bool) or value is None:
        raise ValueError(f"{key}: expected a number, got {value!r}")
    try:
        return Decimal(str(value))
    except InvalidOperation as exc:
        raise ValueError(f"{key}: cannot parse {value!r} as a decimal") from exc


def parse_legacy_parts(data: Any) -> LegacyPartsTable:
    if not data:
        return LegacyPartsTable.empty()
    if not isinstance(data, dict):
        raise ValueError("legacy_parts: expected a mapping of name to part list")
    try:
        return LegacyPartsTable.from_dict(data)
    except (KeyError, TypeError, InvalidOperation) as exc:
        raise ValueError(f"legacy_parts: invalid entry ({exc})") from exc


def parse_taxonomy(data: Any) -> tuple[TaxonomySeed, ...]:
    seeds = []
    for entry in data or ():
        if "category" not in entry:
            raise ValueError(f"taxonomy: entry without category: {entry!r}")
        seeds.append(
            TaxonomySeed(
                category=str(entry["category"]),
                subcategories=tuple(str(s) for s in entry.get("subcategories") or ()),
            )
        )
    return tuple(seeds)


def parse_boat_model(data: dict[str, Any]) -> BoatModelSeed:
    for key in ("name", "range", "length_m", "beam_m", "base_price"):
        if key not in data:
            raise ValueError(f"boat_models: missing {key} in {data!r}")
    ce_category = data.get("ce_category")
    return BoatModelSeed(
        name=str(data["name"]),
        range=str(data["range"]),
        length_m=parse_decimal("length_m", data["length_m"]),
        beam_m=parse_decimal("beam_m", data["beam_m"]),
        base_price=parse_decimal("base_price", data["base_price"]),
        ce_category=DesignCategory(ce_category) if ce_category else None,
        max_passengers=data.get("max_passengers"),
        description=data.get("description"),
    )


def parse_settings(data: dict[str, Any]) -> CatalogSettings:
    """
    Parse a settings mapping into ``CatalogSettings``.

    ``config_id`` and ``version`` are required; numeric settings fall back
    to the schema defaults when absent.
    """
    if "config_id" not in data or "version" not in data:
        raise ValueError("catalog settings require config_id and version")

    numeric: dict[str, Decimal] = {}
    for key in (
        "cost_estimation_ratio",
        "high_estimation_threshold_percent",
        "default_vat_rate",
    ):
        if key in data:
            numeric[key] = parse_decimal(key, data[key])

    return CatalogSettings(
        config_id=str(data["config_id"]),
        version=int(data["version"]),
        legacy_parts=parse_legacy_parts(data.get("legacy_parts")),
        taxonomy=parse_taxonomy(data.get("taxonomy")),
        boat_models=tuple(parse_boat_model(m) for m in data.get("boat_models") or ()),
        checksum=compute_checksum(data),
        **numeric,
    )


def compute_checksum(data: dict[str, Any]) -> str:
    """SHA-256 of the canonical JSON serialization of ``data``."""
    canonical = json.dumps(data, sort_keys=True, default=str)
    return hashlib.sha256(canonical.encode()).hexdigest()


def load_settings(path: Path) -> CatalogSettings:
    return parse_settings(load_yaml_file(path))
