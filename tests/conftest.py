"""
Test configuration and shared fixtures.

Provides an in-memory catalog, a service bound to it, and an estimate
seeded with the default skeleton and one measured room.
"""

from decimal import Decimal

import pytest

from claimscope.core.config import EngineConfig
from claimscope.hierarchy.models import LineItem, Zone
from claimscope.pricing.catalog import InMemoryCatalog
from claimscope.pricing.line_items import price_line_item
from claimscope.service.operations import EstimateService


def D(value) -> Decimal:
    """Shorthand for Decimal literals in assertions."""
    return Decimal(str(value))


def make_room(length="10", width="12", height="8", **kwargs) -> Zone:
    """Room zone with raw dimensions set."""
    return Zone(
        name=kwargs.pop("name", "Bedroom"),
        length_ft=D(length) if length is not None else None,
        width_ft=D(width) if width is not None else None,
        height_ft=D(height) if height is not None else None,
        **kwargs,
    )


def make_priced_item(quantity="100", unit_price="2.50", tax_rate="0.08", depreciation_pct="20", **kwargs) -> LineItem:
    """Line item with financials already computed."""
    item = LineItem(
        code=kwargs.pop("code", "DRY1/2"),
        quantity=D(quantity),
        unit=kwargs.pop("unit", "SF"),
        unit_price=D(unit_price),
        tax_rate=D(tax_rate),
        depreciation_pct=D(depreciation_pct),
        **kwargs,
    )
    item.financials = price_line_item(item)
    return item


@pytest.fixture
def config():
    return EngineConfig()


@pytest.fixture
def catalog():
    """Catalog with a few codes plus regional and carrier overrides."""
    cat = InMemoryCatalog()
    cat.add_item("DRY1/2", "2.50", "SF", "0.08", description="1/2\" drywall - hung, taped, floated", trade_code="DRY")
    cat.add_item("PNT", "1.10", "SF", "0.08", description="Paint walls - two coats", trade_code="PNT")
    cat.add_item("CPT", "1.00", "SF", "0", description="Carpet", trade_code="FCC")
    cat.add_item("RFG300", "250.00", "SQ", "0.05", description="Laminated comp shingle", trade_code="RFG")
    cat.add_item("DRY1/2", "2.75", "SF", "0.0825", region_id="TX-DAL")
    cat.add_item("DRY1/2", "2.60", "SF", "0.08", carrier_profile_id="CARRIER-A")
    return cat


@pytest.fixture
def service(catalog):
    return EstimateService(catalog=catalog)


@pytest.fixture
def estimate_id(service):
    return service.create_estimate({"claim_id": "CLM-1001", "name": "Smith residence"}).id


@pytest.fixture
def seeded(service, estimate_id):
    """
    Estimate with the default skeleton and a 10x12x8 bedroom.

    Returns a dict of ids: estimate, structure, interior, exterior,
    roofing, room.
    """
    structure = service.initialize_hierarchy(estimate_id).target
    areas = {area.area_type.value: area.id for area in structure.areas}
    room = service.create_zone(areas["interior"], {
        "name": "Bedroom",
        "zone_type": "room",
        "length_ft": "10",
        "width_ft": "12",
        "height_ft": "8",
    }).target
    return {
        "estimate": estimate_id,
        "structure": structure.id,
        "interior": areas["interior"],
        "exterior": areas["exterior"],
        "roofing": areas["roofing"],
        "room": room.id,
    }
