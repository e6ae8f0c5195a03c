"""
claimscope.rollup - Tree rollups and coverage allocation.
"""

from .totals import Totals
from .aggregator import EstimateRollup, RollupNode, rollup
from .coverage import (
    CoverageAllocation,
    CoverageBucket,
    UNASSIGNED_NAME,
    allocate_by_coverage,
)

__all__ = [
    "Totals",
    "EstimateRollup",
    "RollupNode",
    "rollup",
    "CoverageAllocation",
    "CoverageBucket",
    "UNASSIGNED_NAME",
    "allocate_by_coverage",
]
