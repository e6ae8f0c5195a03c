"""
claimscope.hierarchy - Estimate tree data model.
"""

from .derived import DerivedDimensions, FinancialResult
from .models import (
    Area,
    Coverage,
    Estimate,
    LineItem,
    MissingWall,
    Structure,
    Subroom,
    Zone,
    ZoneLocation,
    new_id,
)
from .seeding import initialize_hierarchy

__all__ = [
    "DerivedDimensions",
    "FinancialResult",
    "Area",
    "Coverage",
    "Estimate",
    "LineItem",
    "MissingWall",
    "Structure",
    "Subroom",
    "Zone",
    "ZoneLocation",
    "new_id",
    "initialize_hierarchy",
]
