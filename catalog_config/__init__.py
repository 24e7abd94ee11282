"""
catalog_config -- single public entrypoint for catalog configuration.

Responsibility:
    Provides the way to obtain catalog settings at runtime through
    ``get_active_config()``: the cost estimation ratio, the high-estimation
    threshold, the default VAT rate, the legacy parts table and the seed
    taxonomy and boat models.

Architecture position:
    Configuration -- sits above ``catalog_kernel``.  The kernel never
    imports from ``catalog_config``; callers pass the settings' values
    into the services they construct.

Failure modes:
    - ``FileNotFoundError`` -- the settings file does not exist.
    - ``ValueError`` -- structural or range validation failures.

Audit relevance:
    Every successful ``get_active_config()`` call emits a
    ``catalog_config_trace`` log entry with the config id, version and
    checksum, tying generated BOMs back to the settings that priced them.
"""

import logging
from pathlib import Path

from catalog_config.loader import load_settings
from catalog_config.schema import BoatModelSeed, CatalogSettings, TaxonomySeed

_logger = logging.getLogger("catalog_kernel.config")

_DEFAULT_CONFIG_PATH = Path(__file__).parent / "sets" / "default" / "root.yaml"


def get_active_config(config_path: Path | None = None) -> CatalogSettings:
    """
    Load and validate the active catalog settings.

    Args:
        config_path: Settings file to load.  Defaults to the bundled
            ``sets/default/root.yaml``.

    Returns:
        Frozen CatalogSettings.

    Raises:
        FileNotFoundError: If the file does not exist.
        ValueError: If the settings fail validation.
    """
    path = config_path or _DEFAULT_CONFIG_PATH
    settings = load_settings(path)

    _logger.info(
        "catalog_config_trace",
        extra={
            "trace_type": "catalog_config_trace",
            "config_id": settings.config_id,
            "config_version": settings.version,
            "checksum": settings.checksum,
            "cost_estimation_ratio": str(settings.cost_estimation_ratio),
            "legacy_entry_count": len(settings.legacy_parts),
            "category_count": len(settings.taxonomy),
        },
    )
    return settings


__all__ = [
    "BoatModelSeed",
    "CatalogSettings",
    "TaxonomySeed",
    "get_active_config",
]
