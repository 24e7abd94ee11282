"""
Catalog Kernel - Library Versioning & BOM Expansion

The commercial source of truth for the boat-building ERP:
- Versioned, approvable master data (articles, kits, boat models)
- DRAFT -> APPROVED -> DEPRECATED lifecycle with pinned, immutable versions
- Deterministic BOM expansion of project configurations
- Kit cost rollup and cost-estimation tracking
- Hash-chained audit trail
"""

__version__ = "0.1.0"
