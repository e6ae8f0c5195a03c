"""
pricing/line_items.py - Line Item Financial Engine.

    subtotal     = quantity x unit_price
    tax_amount   = subtotal x tax_rate
    rcv          = subtotal + tax_amount
    depreciation = rcv x depreciation_pct / 100
    acv          = rcv - depreciation

Subtotal, tax and depreciation are each rounded to cents. RCV and ACV are
exact sums of rounded parts, so rcv - acv == depreciation holds exactly.
"""

from __future__ import annotations
from decimal import Decimal
from typing import Optional
import logging

from ..core.config import EngineConfig
from ..core.constants import MAX_DEPRECIATION_PCT, MIN_DEPRECIATION_PCT
from ..core.enums import DepreciationType
from ..core.money import HUNDRED, ZERO, money, quantize
from ..errors.taxonomy import ErrorCode, ValidationError
from ..hierarchy.derived import FinancialResult
from ..hierarchy.models import LineItem
from .catalog import CatalogPrice

logger = logging.getLogger(__name__)


def age_depreciation_pct(age_years: Optional[Decimal], life_expectancy_years: Optional[Decimal]) -> Decimal:
    """Straight-line depreciation from age over life expectancy, capped at 100%."""
    if age_years is None or not life_expectancy_years:
        return ZERO
    pct = min(age_years / life_expectancy_years * HUNDRED, MAX_DEPRECIATION_PCT)
    return quantize(pct, 2)


def effective_depreciation_pct(item: LineItem) -> Decimal:
    """Depreciation percentage applied to an item given its depreciation type."""
    dep_type = DepreciationType(item.depreciation_type)
    if dep_type == DepreciationType.NONE:
        return ZERO
    if dep_type == DepreciationType.AGE:
        return age_depreciation_pct(item.age_years, item.life_expectancy_years)
    return item.depreciation_pct


def validate_line_item(item: LineItem, unit_price: Optional[Decimal], tax_rate: Decimal) -> None:
    """
    Reject garbage before any total is computed.

    Dimension-driven items may carry quantity 0 (their dimension went to
    zero); everything else needs a positive quantity.
    """
    if item.quantity is None or item.quantity < 0 or (item.quantity == 0 and item.calc_ref is None):
        raise ValidationError(
            f"Line item {item.code} needs a positive quantity, got {item.quantity}",
            code=ErrorCode.VAL_NON_POSITIVE_QUANTITY,
            line_item_id=item.id,
            quantity=item.quantity,
        )
    if unit_price is None:
        raise ValidationError(
            f"Line item {item.code} has no unit price",
            code=ErrorCode.VAL_NEGATIVE_PRICE,
            recovery_hint="Supply a unit price or a catalog entry for the code",
            line_item_id=item.id,
        )
    if unit_price < 0:
        raise ValidationError(
            f"Line item {item.code} has negative unit price {unit_price}",
            code=ErrorCode.VAL_NEGATIVE_PRICE,
            line_item_id=item.id,
            unit_price=unit_price,
        )
    if tax_rate < 0:
        raise ValidationError(
            f"Line item {item.code} has negative tax rate {tax_rate}",
            line_item_id=item.id,
            tax_rate=tax_rate,
        )
    pct = item.depreciation_pct
    if pct is None or not MIN_DEPRECIATION_PCT <= pct <= MAX_DEPRECIATION_PCT:
        raise ValidationError(
            f"Depreciation must be between 0 and 100 percent, got {pct}",
            code=ErrorCode.VAL_DEPRECIATION_RANGE,
            line_item_id=item.id,
            depreciation_pct=pct,
        )
    if item.age_years is not None and item.age_years < 0:
        raise ValidationError(
            f"Age cannot be negative: {item.age_years}",
            code=ErrorCode.VAL_DEPRECIATION_RANGE,
            line_item_id=item.id,
        )
    if item.life_expectancy_years is not None and item.life_expectancy_years <= 0:
        raise ValidationError(
            f"Life expectancy must be positive: {item.life_expectancy_years}",
            code=ErrorCode.VAL_DEPRECIATION_RANGE,
            line_item_id=item.id,
        )


def price_line_item(
    item: LineItem,
    catalog_price: Optional[CatalogPrice] = None,
    config: Optional[EngineConfig] = None,
) -> FinancialResult:
    """
    Compute the financial result for one line item.

    Values set on the item win over the catalog price; the catalog only
    fills a missing unit price or tax rate. The item is not modified.

    Raises:
        ValidationError: non-positive quantity, negative price or tax,
            depreciation outside 0-100
    """
    config = config or EngineConfig()

    unit_price = item.unit_price
    if unit_price is None and catalog_price is not None:
        unit_price = catalog_price.unit_price
    tax_rate = item.tax_rate
    if tax_rate is None:
        tax_rate = catalog_price.tax_rate if catalog_price is not None else ZERO

    validate_line_item(item, unit_price, tax_rate)

    places = config.money_places
    subtotal = money(item.quantity * unit_price, places)
    tax_amount = money(subtotal * tax_rate, places)
    rcv = subtotal + tax_amount

    pct = effective_depreciation_pct(item)
    depreciation = money(rcv * pct / HUNDRED, places)
    acv = rcv - depreciation

    recoverable = depreciation if item.is_recoverable else ZERO

    logger.debug(f"Priced {item.code} ({item.id}): rcv={rcv} acv={acv}")

    return FinancialResult(
        subtotal=subtotal,
        tax_amount=tax_amount,
        rcv=rcv,
        depreciation_pct=pct,
        depreciation_amount=depreciation,
        acv=acv,
        recoverable_depreciation=recoverable,
        non_recoverable_depreciation=depreciation - recoverable,
    )
