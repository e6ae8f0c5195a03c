"""
claimscope - Estimate hierarchy and financial rollup engine.

Property-damage repair estimates as a tree of structures, areas and
zones; per-zone quantities derived from measured geometry; priced line
items; totals rolled up every level of the tree and grouped by insurance
coverage.
"""

from .core.config import EngineConfig, setup_logging
from .errors.taxonomy import (
    ConsistencyWarning,
    EstimateError,
    NotFoundError,
    ValidationError,
)
from .hierarchy.models import Estimate
from .dimensions.engine import derive_zone_quantities
from .pricing.line_items import price_line_item
from .rollup.aggregator import rollup
from .rollup.coverage import allocate_by_coverage
from .validators.estimate import check_estimate
from .service.operations import EstimateService

__version__ = "1.0.0"

__all__ = [
    "EngineConfig",
    "setup_logging",
    "ConsistencyWarning",
    "EstimateError",
    "NotFoundError",
    "ValidationError",
    "Estimate",
    "derive_zone_quantities",
    "price_line_item",
    "rollup",
    "allocate_by_coverage",
    "check_estimate",
    "EstimateService",
]
