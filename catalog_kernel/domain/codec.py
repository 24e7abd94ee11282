"""
Record codec helpers.

Storage adapters persist plain JSON-compatible dicts.  Domain dataclasses
convert themselves with ``to_record()`` / ``from_record()``; these helpers
keep the scalar conversions identical everywhere.

Decimals travel as strings so no precision is lost in JSON.
"""

from datetime import datetime
from decimal import Decimal
from typing import Any
from uuid import UUID


def dec_out(value: Decimal | None) -> str | None:
    return None if value is None else str(value)


def dec_in(value: Any) -> Decimal | None:
    if value is None:
        return None
    return Decimal(str(value))


def dt_out(value: datetime | None) -> str | None:
    return None if value is None else value.isoformat()


def dt_in(value: str | None) -> datetime | None:
    if value is None:
        return None
    return datetime.fromisoformat(value)


def uuid_out(value: UUID | None) -> str | None:
    return None if value is None else str(value)


def uuid_in(value: str | UUID | None) -> UUID | None:
    if value is None:
        return None
    if isinstance(value, UUID):
        return value
    return UUID(value)
