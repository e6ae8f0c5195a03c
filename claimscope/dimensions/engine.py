"""
dimensions/engine.py - Dimension Engine.

Derives a zone's usable quantities from its raw length/width/height, its
subrooms and its missing walls. The derivation is a pure function of
those inputs; callers re-run it whenever any of them change.

Order of operations:
1. Validate raw dimensions, subrooms and openings
2. Base geometry from length/width/height
3. Subroom contributions (added or carved out)
4. Opening deductions from gross wall area
5. Round every key, keep only keys applicable to the zone type
"""

from __future__ import annotations
from decimal import Decimal
from typing import Dict, List, Optional
import logging

from ..core.config import EngineConfig
from ..core.constants import SQ_FT_PER_ROOF_SQUARE, SQ_FT_PER_SQ_YD
from ..core.enums import ZoneType
from ..core.money import ZERO, quantize
from ..errors.taxonomy import ConsistencyWarning, ErrorCode, ValidationError
from ..hierarchy.derived import DerivedDimensions
from ..hierarchy.models import Zone
from .keys import (
    HEIGHT_ZONE_TYPES,
    REQUIRED_RAW_DIMENSIONS,
    SUBROOM_ZONE_TYPES,
    WALL_ZONE_TYPES,
    ZONE_TYPE_DIMENSION_KEYS,
)
from .pitch import pitch_multiplier

logger = logging.getLogger(__name__)


# =============================================================================
# VALIDATION
# =============================================================================

def missing_required_dimensions(zone: Zone) -> List[str]:
    """Raw dimension fields the zone type needs but the zone lacks."""
    required = REQUIRED_RAW_DIMENSIONS[ZoneType(zone.zone_type)]
    return [name for name in required if getattr(zone, name) is None]


def has_required_dimensions(zone: Zone) -> bool:
    return not missing_required_dimensions(zone)


def validate_zone_geometry(zone: Zone) -> None:
    """
    Check raw dimensions, subrooms and openings.

    Raises:
        ValidationError: on missing or negative dimensions, or malformed
            opening dimensions.
    """
    missing = missing_required_dimensions(zone)
    if missing:
        raise ValidationError(
            f"Zone '{zone.name}' ({zone.zone_type.value}) is missing {', '.join(missing)}",
            code=ErrorCode.VAL_MISSING_DIMENSION,
            recovery_hint="Measure the zone before recalculating dimensions",
            zone_id=zone.id,
            missing=missing,
        )

    for name in ("length_ft", "width_ft", "height_ft"):
        value = getattr(zone, name)
        if value is not None and value < 0:
            raise ValidationError(
                f"Zone '{zone.name}' has negative {name}: {value}",
                code=ErrorCode.VAL_NEGATIVE_DIMENSION,
                zone_id=zone.id,
                field=name,
            )

    for subroom in zone.subrooms:
        for name in ("length_ft", "width_ft", "height_ft"):
            value = getattr(subroom, name)
            if value is not None and value < 0:
                raise ValidationError(
                    f"Subroom '{subroom.name}' has negative {name}: {value}",
                    code=ErrorCode.VAL_NEGATIVE_DIMENSION,
                    subroom_id=subroom.id,
                    field=name,
                )

    for wall in zone.missing_walls:
        if wall.width_ft <= 0 or wall.height_ft <= 0 or wall.quantity < 1:
            raise ValidationError(
                f"Opening {wall.id} needs positive width/height and quantity >= 1",
                code=ErrorCode.VAL_OPENING_DIMENSIONS,
                missing_wall_id=wall.id,
                width_ft=wall.width_ft,
                height_ft=wall.height_ft,
                quantity=wall.quantity,
            )


# =============================================================================
# DERIVATION
# =============================================================================

def derive_zone_quantities(zone: Zone, config: Optional[EngineConfig] = None) -> DerivedDimensions:
    """
    Derive usable quantities for a zone.

    Args:
        zone: Zone with raw dimensions, subrooms and missing walls
        config: Engine configuration (default height, rounding)

    Returns:
        DerivedDimensions holding only the keys applicable to the zone type

    Raises:
        ValidationError: if a required dimension is absent or negative, an
            opening is malformed, or a roof pitch cannot be parsed
    """
    config = config or EngineConfig()
    zone_type = ZoneType(zone.zone_type)
    validate_zone_geometry(zone)

    warnings: List[ConsistencyWarning] = []

    length = zone.length_ft or ZERO
    width = zone.width_ft or ZERO

    height: Optional[Decimal] = None
    default_height_used = False
    if zone_type in HEIGHT_ZONE_TYPES:
        if zone.height_ft is None:
            height = config.default_height_ft
            default_height_used = True
            warnings.append(ConsistencyWarning(
                code=ErrorCode.CON_DEFAULT_HEIGHT_USED,
                message=f"Zone '{zone.name}' has no height; using {height} ft",
                entity_id=zone.id,
                details={"height_ft": height},
            ))
        else:
            height = zone.height_ft

    if zone.subrooms and zone_type not in SUBROOM_ZONE_TYPES:
        warnings.append(ConsistencyWarning(
            code=ErrorCode.CON_SUBROOMS_IGNORED,
            message=f"Subrooms are ignored on {zone_type.value} zone '{zone.name}'",
            entity_id=zone.id,
            details={"subroom_count": len(zone.subrooms)},
        ))

    if zone.missing_walls and zone_type not in WALL_ZONE_TYPES:
        warnings.append(ConsistencyWarning(
            code=ErrorCode.CON_OPENINGS_IGNORED,
            message=f"Openings are ignored on {zone_type.value} zone '{zone.name}'",
            entity_id=zone.id,
            details={"opening_count": len(zone.missing_walls)},
        ))

    multiplier: Optional[Decimal] = None

    if zone_type == ZoneType.ROOM:
        raw = _room_values(zone, length, width, height)
    elif zone_type == ZoneType.ELEVATION:
        raw = {
            "sf_walls_gross": length * height,
            "sf_long_wall": length * height,
            "lf_width": length,
            "lf_height": height,
        }
    elif zone_type == ZoneType.ROOF:
        multiplier = pitch_multiplier(zone.pitch)
        raw = _roof_values(length, width, multiplier)
    elif zone_type == ZoneType.LINEAR:
        raw = {"lf_total": length}
    else:
        raw = _floor_values(zone, length, width)
        if zone_type == ZoneType.DECK:
            raw["lf_railing"] = raw["lf_floor_perim"]

    places = config.quantity_places
    values: Dict[str, Decimal] = {key: quantize(value, places) for key, value in raw.items()}

    opening_count = 0
    if zone_type in WALL_ZONE_TYPES:
        opening_count = sum(wall.quantity for wall in zone.missing_walls)
        _deduct_openings(zone, values, places, warnings)
        if zone_type == ZoneType.ROOM:
            values["sf_walls_ceiling"] = values["sf_walls"] + values["sf_ceiling"]
            values["sf_total"] = values["sf_floor"] + values["sf_ceiling"] + values["sf_walls"]

    applicable = ZONE_TYPE_DIMENSION_KEYS[zone_type]
    values = {key: values[key] for key in applicable if key in values}

    for warning in warnings:
        if warning.code != ErrorCode.CON_DEFAULT_HEIGHT_USED:
            logger.warning(warning.message)

    logger.debug(f"Derived {len(values)} dimensions for zone {zone.id} ({zone_type.value})")

    return DerivedDimensions(
        zone_type=zone_type,
        values=values,
        height_ft=height,
        default_height_used=default_height_used,
        pitch_multiplier=quantize(multiplier, 4) if multiplier is not None else None,
        opening_count=opening_count,
        warnings=warnings,
    )


def _subroom_sign(subroom) -> int:
    return 1 if subroom.is_addition else -1


def _floor_values(zone: Zone, length: Decimal, width: Decimal) -> Dict[str, Decimal]:
    """Floor area and perimeter with subroom contributions."""
    floor = length * width
    perimeter = 2 * (length + width)
    for subroom in zone.subrooms:
        sign = _subroom_sign(subroom)
        floor += sign * subroom.floor_sf
        perimeter += sign * subroom.perimeter_lf

    floor = max(floor, ZERO)
    perimeter = max(perimeter, ZERO)
    return {
        "sf_floor": floor,
        "sy_floor": floor / SQ_FT_PER_SQ_YD,
        "lf_floor_perim": perimeter,
    }


def _room_values(zone: Zone, length: Decimal, width: Decimal, height: Decimal) -> Dict[str, Decimal]:
    values = _floor_values(zone, length, width)

    gross = 2 * (length + width) * height
    for subroom in zone.subrooms:
        sub_height = subroom.height_ft if subroom.height_ft is not None else height
        gross += _subroom_sign(subroom) * subroom.perimeter_lf * sub_height
    gross = max(gross, ZERO)

    values.update({
        "sf_ceiling": values["sf_floor"],
        "lf_ceiling_perim": values["lf_floor_perim"],
        "sf_walls_gross": gross,
        "sf_long_wall": max(length, width) * height,
        "sf_short_wall": min(length, width) * height,
        "cf_volume": values["sf_floor"] * height,
    })
    return values


def _roof_values(length: Decimal, width: Decimal, multiplier: Decimal) -> Dict[str, Decimal]:
    footprint = length * width
    surface = footprint * multiplier
    return {
        "sf_floor": footprint,
        "sf_sk_roof": surface,
        "sk_roof_squares": surface / SQ_FT_PER_ROOF_SQUARE,
        "lf_sk_roof_perim": 2 * (length + width),
        "lf_sk_roof_ridge": max(length, width),
        "lf_sk_roof_eave": 2 * min(length, width),
        "lf_sk_roof_rake": 2 * max(length, width),
    }


def _deduct_openings(
    zone: Zone,
    values: Dict[str, Decimal],
    places: int,
    warnings: List[ConsistencyWarning],
) -> None:
    """Net wall area = rounded gross - rounded openings, floored at zero."""
    gross = values["sf_walls_gross"]
    openings = quantize(sum((wall.deducted_sf for wall in zone.missing_walls), ZERO), places)

    if openings > gross:
        warnings.append(ConsistencyWarning(
            code=ErrorCode.CON_OPENINGS_EXCEED_WALL_AREA,
            message=(
                f"Openings in zone '{zone.name}' total {openings} SF, "
                f"more than the {gross} SF of gross wall area"
            ),
            entity_id=zone.id,
            details={"sf_walls_gross": gross, "sf_openings": openings},
        ))

    values["sf_openings"] = openings
    values["sf_walls"] = max(gross - openings, ZERO)
