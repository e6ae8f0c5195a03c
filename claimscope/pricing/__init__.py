"""
claimscope.pricing - Catalog resolution and line item financials.
"""

from .catalog import CatalogPrice, CatalogResolver, InMemoryCatalog
from .line_items import (
    age_depreciation_pct,
    effective_depreciation_pct,
    price_line_item,
    validate_line_item,
)

__all__ = [
    "CatalogPrice",
    "CatalogResolver",
    "InMemoryCatalog",
    "age_depreciation_pct",
    "effective_depreciation_pct",
    "price_line_item",
    "validate_line_item",
]
