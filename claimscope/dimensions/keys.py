"""
dimensions/keys.py - Applicable dimension keys per zone type.

ZONE_TYPE_DIMENSION_KEYS is the single lookup table for which derived
fields a zone ever carries. Keys outside a zone type's tuple are left
unset on the derived record, never zero.
"""

from __future__ import annotations
from typing import Dict, FrozenSet, Tuple

from ..core.enums import ZoneType


ZONE_TYPE_DIMENSION_KEYS: Dict[ZoneType, Tuple[str, ...]] = {
    ZoneType.ROOM: (
        "sf_floor",
        "sy_floor",
        "lf_floor_perim",
        "sf_ceiling",
        "lf_ceiling_perim",
        "sf_walls_gross",
        "sf_openings",
        "sf_walls",
        "sf_walls_ceiling",
        "sf_long_wall",
        "sf_short_wall",
        "sf_total",
        "cf_volume",
    ),
    ZoneType.ELEVATION: (
        "sf_walls_gross",
        "sf_openings",
        "sf_walls",
        "sf_long_wall",
        "lf_width",
        "lf_height",
    ),
    ZoneType.ROOF: (
        "sf_floor",
        "sf_sk_roof",
        "sk_roof_squares",
        "lf_sk_roof_perim",
        "lf_sk_roof_ridge",
        "lf_sk_roof_eave",
        "lf_sk_roof_rake",
    ),
    ZoneType.DECK: (
        "sf_floor",
        "sy_floor",
        "lf_floor_perim",
        "lf_railing",
    ),
    ZoneType.LINEAR: (
        "lf_total",
    ),
    ZoneType.CUSTOM: (
        "sf_floor",
        "sy_floor",
        "lf_floor_perim",
    ),
}

# Raw dimension fields a zone type cannot be derived without
REQUIRED_RAW_DIMENSIONS: Dict[ZoneType, Tuple[str, ...]] = {
    ZoneType.ROOM: ("length_ft", "width_ft"),
    ZoneType.ELEVATION: ("length_ft",),
    ZoneType.ROOF: ("length_ft", "width_ft"),
    ZoneType.DECK: ("length_ft", "width_ft"),
    ZoneType.LINEAR: ("length_ft",),
    ZoneType.CUSTOM: ("length_ft", "width_ft"),
}

# Zone types whose height falls back to the configured default
HEIGHT_ZONE_TYPES: FrozenSet[ZoneType] = frozenset({ZoneType.ROOM, ZoneType.ELEVATION})

# Zone types with wall area that openings are deducted from
WALL_ZONE_TYPES: FrozenSet[ZoneType] = frozenset({ZoneType.ROOM, ZoneType.ELEVATION})

# Zone types whose floor area subrooms add to (or carve out of)
SUBROOM_ZONE_TYPES: FrozenSet[ZoneType] = frozenset({
    ZoneType.ROOM,
    ZoneType.DECK,
    ZoneType.CUSTOM,
})

ALL_DIMENSION_KEYS: FrozenSet[str] = frozenset(
    key for keys in ZONE_TYPE_DIMENSION_KEYS.values() for key in keys
)

_UNIT_PREFIXES = {
    "sf": "SF",
    "sy": "SY",
    "lf": "LF",
    "cf": "CF",
}


def applicable_keys(zone_type: ZoneType) -> Tuple[str, ...]:
    return ZONE_TYPE_DIMENSION_KEYS[ZoneType(zone_type)]


def is_known_key(key: str) -> bool:
    return key in ALL_DIMENSION_KEYS


def unit_for_key(key: str) -> str:
    """Unit of measure a dimension key is expressed in (SF, SY, LF, CF, SQ)."""
    if key == "sk_roof_squares":
        return "SQ"
    if key.startswith("sf_sk_"):
        return "SF"
    return _UNIT_PREFIXES.get(key.split("_", 1)[0], "EA")
