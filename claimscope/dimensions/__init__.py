"""
claimscope.dimensions - Dimension Engine.
"""

from .engine import (
    derive_zone_quantities,
    has_required_dimensions,
    missing_required_dimensions,
    validate_zone_geometry,
)
from .keys import (
    ALL_DIMENSION_KEYS,
    HEIGHT_ZONE_TYPES,
    REQUIRED_RAW_DIMENSIONS,
    ZONE_TYPE_DIMENSION_KEYS,
    applicable_keys,
    is_known_key,
    unit_for_key,
)
from .pitch import parse_pitch, pitch_multiplier

__all__ = [
    "derive_zone_quantities",
    "has_required_dimensions",
    "missing_required_dimensions",
    "validate_zone_geometry",
    "ALL_DIMENSION_KEYS",
    "HEIGHT_ZONE_TYPES",
    "REQUIRED_RAW_DIMENSIONS",
    "ZONE_TYPE_DIMENSION_KEYS",
    "applicable_keys",
    "is_known_key",
    "unit_for_key",
    "parse_pitch",
    "pitch_multiplier",
]
