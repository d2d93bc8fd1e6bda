"""Conversion of store-configured measurements to the carrier's units.

The carrier API expects kilograms and centimetres. Products carry values
in whatever units the store is configured with; these helpers apply the
multiplier tables in ``constants``. Results are not rounded, callers round
to ``MEASUREMENT_PRECISION`` when building payloads.
"""

from __future__ import annotations

from decimal import Decimal, InvalidOperation
from typing import Any, Optional

from django.conf import settings

from modules.shipping.constants import DIMENSION_MULTIPLIERS, WEIGHT_MULTIPLIERS


def as_float(value: Any) -> float:
    """Coerce a stored measurement to float; blank or non-numeric is 0.0."""
    if value is None or isinstance(value, bool):
        return 0.0
    if isinstance(value, (int, float)):
        number = float(value)
    else:
        try:
            number = float(Decimal(str(value).strip()))
        except (InvalidOperation, ValueError):
            return 0.0
    if number != number or number in (float("inf"), float("-inf")):
        return 0.0
    return number


def _convert(value: Any, unit: str, table: dict[str, float]) -> float:
    number = as_float(value)
    if not number:
        return 0.0
    return number * table.get(unit.strip().lower(), 1.0)


def to_kg(value: Any, unit: Optional[str] = None) -> float:
    """Convert a weight in ``unit`` (default: the store's unit) to kg."""
    return _convert(value, unit or settings.STORE_WEIGHT_UNIT, WEIGHT_MULTIPLIERS)


def to_cm(value: Any, unit: Optional[str] = None) -> float:
    """Convert a length in ``unit`` (default: the store's unit) to cm."""
    return _convert(value, unit or settings.STORE_DIMENSION_UNIT, DIMENSION_MULTIPLIERS)
