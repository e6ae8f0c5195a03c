"""
core/constants.py - Physical and numeric constants for estimate calculations.
"""

from decimal import Decimal

# Ceiling height used when a zone type needs height and none was measured
DEFAULT_HEIGHT_FT = Decimal("8")

SQ_FT_PER_SQ_YD = Decimal("9")
SQ_FT_PER_ROOF_SQUARE = Decimal("100")

# Rounding granularity (decimal places)
MONEY_PLACES = 2
QUANTITY_PLACES = 2

# Depreciation percentage bounds
MIN_DEPRECIATION_PCT = Decimal("0")
MAX_DEPRECIATION_PCT = Decimal("100")

# Default skeleton names for initialize_hierarchy
DEFAULT_STRUCTURE_NAME = "Main Structure"
DEFAULT_AREA_NAMES = {
    "interior": "Interior",
    "exterior": "Exterior",
    "roofing": "Roofing",
}
