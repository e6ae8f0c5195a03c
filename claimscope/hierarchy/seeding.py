"""
hierarchy/seeding.py - Default skeleton for a new estimate.
"""

from __future__ import annotations
from typing import Optional
import logging

from ..core.config import EngineConfig
from ..core.constants import DEFAULT_AREA_NAMES
from ..core.enums import AreaType
from .models import Area, Estimate, Structure

logger = logging.getLogger(__name__)


def initialize_hierarchy(
    estimate: Estimate,
    include_interior: bool = True,
    include_exterior: bool = True,
    include_roofing: bool = True,
    structure_name: Optional[str] = None,
    config: Optional[EngineConfig] = None,
) -> Structure:
    """
    Seed one structure with Interior/Exterior/Roofing areas.

    The new structure is appended to the estimate; existing structures
    are left alone. Areas are created empty.
    """
    config = config or EngineConfig()
    name = structure_name or config.default_structure_name

    structure = Structure(name=name, sort_order=len(estimate.structures))

    flags = (
        (AreaType.INTERIOR, include_interior),
        (AreaType.EXTERIOR, include_exterior),
        (AreaType.ROOFING, include_roofing),
    )
    for area_type, enabled in flags:
        if not enabled:
            continue
        structure.areas.append(Area(
            name=DEFAULT_AREA_NAMES[area_type.value],
            area_type=area_type,
            sort_order=len(structure.areas),
        ))

    estimate.structures.append(structure)
    logger.info(
        f"Seeded structure '{name}' with {len(structure.areas)} areas "
        f"on estimate {estimate.id}"
    )
    return structure
