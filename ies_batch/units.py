# File: ies_batch/units.py
"""Meters <-> feet helpers. IES unitsType: 1 = feet, 2 = meters."""
from __future__ import annotations

from typing import Optional

FEET_PER_METER = 3.28084

UNITS_FEET   = 1
UNITS_METERS = 2

_UNIT_ALIASES = {
    "meters": "meters", "meter": "meters", "m": "meters",
    "feet": "feet", "foot": "feet", "ft": "feet",
}

def meters_to_feet(m: float) -> float:
    return m * FEET_PER_METER

def feet_to_meters(ft: float) -> float:
    return ft / FEET_PER_METER

def unit_name(units_type: int) -> str:
    """'feet' for unitsType 1, 'meters' for anything else."""
    return "feet" if int(units_type) == UNITS_FEET else "meters"

def units_type_for(unit: str) -> int:
    return UNITS_FEET if parse_unit(unit) == "feet" else UNITS_METERS

def parse_unit(raw: Optional[str], default: str = "meters") -> str:
    """Normalize a free-text unit tag; unknown or empty falls back to `default`."""
    key = (raw or "").strip().lower()
    return _UNIT_ALIASES.get(key, default)

def convert_length(value: float, from_unit: str, to_unit: str) -> float:
    src = parse_unit(from_unit); dst = parse_unit(to_unit)
    if src == dst:
        return float(value)
    if src == "feet":
        return feet_to_meters(value)
    return meters_to_feet(value)

def to_native(value: float, unit: str, units_type: int) -> float:
    """Convert `value` given in `unit` into the document's native unit."""
    return convert_length(value, unit, unit_name(units_type))
