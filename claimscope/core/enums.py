"""
core/enums.py - Enumerations shared across the estimate engine.
"""

from enum import Enum


class ZoneType(str, Enum):
    """
    Kind of measured zone.

    The zone type decides which raw dimensions are required and which
    derived quantities are populated (see dimensions.keys).
    """
    ROOM = "room"
    ELEVATION = "elevation"
    ROOF = "roof"
    DECK = "deck"
    LINEAR = "linear"
    CUSTOM = "custom"


class ZoneStatus(str, Enum):
    """Workflow label set by the user. Never inferred from zone contents."""
    PENDING = "pending"
    MEASURED = "measured"
    SCOPED = "scoped"
    COMPLETE = "complete"


class AreaType(str, Enum):
    """Organizational grouping of zones within a structure."""
    INTERIOR = "interior"
    EXTERIOR = "exterior"
    ROOFING = "roofing"
    SPECIALTY = "specialty"


class OpeningType(str, Enum):
    """Deduction against a zone's wall area."""
    OPENING = "opening"
    DOORWAY = "doorway"
    ARCHWAY = "archway"
    PASS_THROUGH = "pass_through"
    WINDOW = "window"
    MISSING_WALL = "missing_wall"


class CoverageType(str, Enum):
    """Insurance coverage bucket."""
    DWELLING = "dwelling"                  # Coverage A
    OTHER_STRUCTURES = "other_structures"  # Coverage B
    CONTENTS = "contents"                  # Coverage C
    LOSS_OF_USE = "loss_of_use"            # Coverage D


class DepreciationType(str, Enum):
    """How a line item's depreciation percentage is determined."""
    PERCENT = "percent"  # Explicit depreciation_pct
    AGE = "age"          # age_years / life_expectancy_years
    NONE = "none"        # No depreciation taken


class TreeLevel(str, Enum):
    """Levels of the estimate tree, root first."""
    ESTIMATE = "estimate"
    STRUCTURE = "structure"
    AREA = "area"
    ZONE = "zone"
