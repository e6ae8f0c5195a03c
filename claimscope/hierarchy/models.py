"""
hierarchy/models.py - Estimate tree data model.

Estimate -> Structure[] -> Area[] -> Zone[]; each Zone owns MissingWall[],
Subroom[] and LineItem[]. Coverage records hang off the Estimate and are
referenced from line items by id only.

Totals are not stored on any node. They are produced on demand by the
rollup aggregator from the current line item financials.
"""

from __future__ import annotations
from dataclasses import dataclass, field
from decimal import Decimal, InvalidOperation
from typing import Any, Dict, Iterator, List, Optional, Tuple
import uuid

from ..core.enums import (
    AreaType,
    CoverageType,
    DepreciationType,
    OpeningType,
    ZoneStatus,
    ZoneType,
)
from ..core.money import decimal_str, optional_decimal, to_decimal
from ..errors.taxonomy import ErrorCode, NotFoundError, ValidationError
from .derived import DerivedDimensions, FinancialResult


def new_id() -> str:
    """Generate an entity id."""
    return str(uuid.uuid4())


# =============================================================================
# ZONE CHILDREN
# =============================================================================

@dataclass
class MissingWall:
    """
    Opening deducted from a zone's wall area.

    `opens_into` names another zone by id for documentation. It is not an
    ownership edge and is never followed by traversal or deletion.
    """
    width_ft: Decimal
    height_ft: Decimal
    quantity: int = 1
    opening_type: OpeningType = OpeningType.OPENING
    name: Optional[str] = None
    goes_to_floor: bool = True
    goes_to_ceiling: bool = False
    opens_into: Optional[str] = None
    sort_order: int = 0
    id: str = field(default_factory=new_id)

    @property
    def deducted_sf(self) -> Decimal:
        """Wall area removed by this opening (width x height x quantity)."""
        return self.width_ft * self.height_ft * self.quantity

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "opening_type": self.opening_type.value,
            "width_ft": str(self.width_ft),
            "height_ft": str(self.height_ft),
            "quantity": self.quantity,
            "goes_to_floor": self.goes_to_floor,
            "goes_to_ceiling": self.goes_to_ceiling,
            "opens_into": self.opens_into,
            "deducted_sf": str(self.deducted_sf),
            "sort_order": self.sort_order,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "MissingWall":
        return cls(
            id=data.get("id") or new_id(),
            name=data.get("name"),
            opening_type=OpeningType(data.get("opening_type", "opening")),
            width_ft=to_decimal(data["width_ft"], "width_ft"),
            height_ft=to_decimal(data["height_ft"], "height_ft"),
            quantity=int(data.get("quantity", 1)),
            goes_to_floor=data.get("goes_to_floor", True),
            goes_to_ceiling=data.get("goes_to_ceiling", False),
            opens_into=data.get("opens_into"),
            sort_order=data.get("sort_order", 0),
        )


@dataclass
class Subroom:
    """
    Named sub-area nested in a zone (closet, bump-out, bay window).

    Contributes geometry to its parent zone only; it owns no line items.
    """
    name: str
    length_ft: Decimal
    width_ft: Decimal
    height_ft: Optional[Decimal] = None
    subroom_type: Optional[str] = None
    is_addition: bool = True
    sort_order: int = 0
    id: str = field(default_factory=new_id)

    @property
    def floor_sf(self) -> Decimal:
        return self.length_ft * self.width_ft

    @property
    def perimeter_lf(self) -> Decimal:
        return 2 * (self.length_ft + self.width_ft)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "subroom_type": self.subroom_type,
            "length_ft": str(self.length_ft),
            "width_ft": str(self.width_ft),
            "height_ft": decimal_str(self.height_ft),
            "is_addition": self.is_addition,
            "sort_order": self.sort_order,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Subroom":
        return cls(
            id=data.get("id") or new_id(),
            name=data["name"],
            subroom_type=data.get("subroom_type"),
            length_ft=to_decimal(data["length_ft"], "length_ft"),
            width_ft=to_decimal(data["width_ft"], "width_ft"),
            height_ft=optional_decimal(data.get("height_ft")),
            is_addition=data.get("is_addition", True),
            sort_order=data.get("sort_order", 0),
        )


@dataclass
class LineItem:
    """
    Priced repair task scoped to a zone.

    `financials` is derived by the line item financial engine and is
    replaced on every write to quantity, price, tax or depreciation.
    `calc_ref` names the zone dimension that drives `quantity`, if any.
    """
    code: str
    quantity: Decimal
    unit: str
    unit_price: Decimal
    tax_rate: Decimal = Decimal("0")
    depreciation_pct: Decimal = Decimal("0")
    depreciation_type: DepreciationType = DepreciationType.PERCENT
    age_years: Optional[Decimal] = None
    life_expectancy_years: Optional[Decimal] = None
    is_recoverable: bool = True
    coverage_id: Optional[str] = None
    calc_ref: Optional[str] = None
    description: str = ""
    trade_code: Optional[str] = None
    notes: Optional[str] = None
    sort_order: int = 0
    id: str = field(default_factory=new_id)
    financials: Optional[FinancialResult] = None

    @property
    def is_dimension_driven(self) -> bool:
        return self.calc_ref is not None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "code": self.code,
            "description": self.description,
            "quantity": str(self.quantity),
            "unit": self.unit,
            "unit_price": decimal_str(self.unit_price),
            "tax_rate": str(self.tax_rate),
            "depreciation_type": self.depreciation_type.value,
            "depreciation_pct": str(self.depreciation_pct),
            "age_years": decimal_str(self.age_years),
            "life_expectancy_years": decimal_str(self.life_expectancy_years),
            "is_recoverable": self.is_recoverable,
            "coverage_id": self.coverage_id,
            "calc_ref": self.calc_ref,
            "trade_code": self.trade_code,
            "notes": self.notes,
            "sort_order": self.sort_order,
            "financials": self.financials.to_dict() if self.financials else None,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "LineItem":
        financials = data.get("financials")
        return cls(
            id=data.get("id") or new_id(),
            code=data["code"],
            description=data.get("description", ""),
            quantity=to_decimal(data["quantity"], "quantity"),
            unit=data.get("unit", "EA"),
            unit_price=optional_decimal(data.get("unit_price")),
            tax_rate=to_decimal(data.get("tax_rate", "0"), "tax_rate"),
            depreciation_type=DepreciationType(data.get("depreciation_type", "percent")),
            depreciation_pct=to_decimal(data.get("depreciation_pct", "0"), "depreciation_pct"),
            age_years=optional_decimal(data.get("age_years")),
            life_expectancy_years=optional_decimal(data.get("life_expectancy_years")),
            is_recoverable=data.get("is_recoverable", True),
            coverage_id=data.get("coverage_id"),
            calc_ref=data.get("calc_ref"),
            trade_code=data.get("trade_code"),
            notes=data.get("notes"),
            sort_order=data.get("sort_order", 0),
            financials=FinancialResult.from_dict(financials) if financials else None,
        )


# =============================================================================
# TREE NODES
# =============================================================================

@dataclass
class Zone:
    """
    Unit of measurement and scoping: a room, elevation, roof section,
    deck, linear run or custom shape.

    `dimensions` is derived from the raw dimensions, subrooms and missing
    walls. It is None until the zone has the raw dimensions its type
    requires.
    """
    name: str
    zone_type: ZoneType = ZoneType.ROOM
    length_ft: Optional[Decimal] = None
    width_ft: Optional[Decimal] = None
    height_ft: Optional[Decimal] = None
    pitch: Optional[str] = None
    status: ZoneStatus = ZoneStatus.PENDING
    zone_code: Optional[str] = None
    room_type: Optional[str] = None
    floor_level: Optional[str] = None
    notes: Optional[str] = None
    sort_order: int = 0
    id: str = field(default_factory=new_id)

    missing_walls: List[MissingWall] = field(default_factory=list)
    subrooms: List[Subroom] = field(default_factory=list)
    line_items: List[LineItem] = field(default_factory=list)

    dimensions: Optional[DerivedDimensions] = None

    def find_line_item(self, item_id: str) -> LineItem:
        for item in self.line_items:
            if item.id == item_id:
                return item
        raise NotFoundError("line_item", item_id)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "zone_type": self.zone_type.value,
            "status": self.status.value,
            "zone_code": self.zone_code,
            "room_type": self.room_type,
            "floor_level": self.floor_level,
            "length_ft": decimal_str(self.length_ft),
            "width_ft": decimal_str(self.width_ft),
            "height_ft": decimal_str(self.height_ft),
            "pitch": self.pitch,
            "notes": self.notes,
            "sort_order": self.sort_order,
            "dimensions": self.dimensions.to_dict() if self.dimensions else None,
            "missing_walls": [w.to_dict() for w in self.missing_walls],
            "subrooms": [s.to_dict() for s in self.subrooms],
            "line_items": [i.to_dict() for i in self.line_items],
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Zone":
        dimensions = data.get("dimensions")
        return cls(
            id=data.get("id") or new_id(),
            name=data["name"],
            zone_type=ZoneType(data.get("zone_type", "room")),
            status=ZoneStatus(data.get("status", "pending")),
            zone_code=data.get("zone_code"),
            room_type=data.get("room_type"),
            floor_level=data.get("floor_level"),
            length_ft=optional_decimal(data.get("length_ft")),
            width_ft=optional_decimal(data.get("width_ft")),
            height_ft=optional_decimal(data.get("height_ft")),
            pitch=data.get("pitch"),
            notes=data.get("notes"),
            sort_order=data.get("sort_order", 0),
            dimensions=DerivedDimensions.from_dict(dimensions) if dimensions else None,
            missing_walls=[MissingWall.from_dict(w) for w in data.get("missing_walls", [])],
            subrooms=[Subroom.from_dict(s) for s in data.get("subrooms", [])],
            line_items=[LineItem.from_dict(i) for i in data.get("line_items", [])],
        )


@dataclass
class Area:
    """Named subdivision of a structure (Interior, Exterior, Roofing)."""
    name: str
    area_type: AreaType = AreaType.INTERIOR
    sort_order: int = 0
    id: str = field(default_factory=new_id)
    zones: List[Zone] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "area_type": self.area_type.value,
            "sort_order": self.sort_order,
            "zones": [z.to_dict() for z in self.zones],
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Area":
        return cls(
            id=data.get("id") or new_id(),
            name=data["name"],
            area_type=AreaType(data.get("area_type", "interior")),
            sort_order=data.get("sort_order", 0),
            zones=[Zone.from_dict(z) for z in data.get("zones", [])],
        )


@dataclass
class Structure:
    """A building or discrete structure (Main Building, Detached Garage)."""
    name: str
    description: Optional[str] = None
    year_built: Optional[int] = None
    construction_type: Optional[str] = None
    stories: int = 1
    sort_order: int = 0
    id: str = field(default_factory=new_id)
    areas: List[Area] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "year_built": self.year_built,
            "construction_type": self.construction_type,
            "stories": self.stories,
            "sort_order": self.sort_order,
            "areas": [a.to_dict() for a in self.areas],
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Structure":
        return cls(
            id=data.get("id") or new_id(),
            name=data["name"],
            description=data.get("description"),
            year_built=data.get("year_built"),
            construction_type=data.get("construction_type"),
            stories=data.get("stories", 1),
            sort_order=data.get("sort_order", 0),
            areas=[Area.from_dict(a) for a in data.get("areas", [])],
        )


@dataclass
class Coverage:
    """Insurance coverage bucket with policy limit and deductible."""
    coverage_type: CoverageType
    name: str
    policy_limit: Decimal = Decimal("0")
    deductible: Decimal = Decimal("0")
    sort_order: int = 0
    id: str = field(default_factory=new_id)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "coverage_type": self.coverage_type.value,
            "name": self.name,
            "policy_limit": str(self.policy_limit),
            "deductible": str(self.deductible),
            "sort_order": self.sort_order,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Coverage":
        return cls(
            id=data.get("id") or new_id(),
            coverage_type=CoverageType(data["coverage_type"]),
            name=data["name"],
            policy_limit=to_decimal(data.get("policy_limit", "0"), "policy_limit"),
            deductible=to_decimal(data.get("deductible", "0"), "deductible"),
            sort_order=data.get("sort_order", 0),
        )


@dataclass
class ZoneLocation:
    """A zone together with its ancestors."""
    structure: Structure
    area: Area
    zone: Zone


@dataclass
class Estimate:
    """
    Root of the estimate tree.

    Holds claim-level identifiers and the pricing context (region and
    carrier profile) used when resolving catalog prices.
    """
    id: str = field(default_factory=new_id)
    claim_id: Optional[str] = None
    name: Optional[str] = None
    region_id: Optional[str] = None
    carrier_profile_id: Optional[str] = None
    structures: List[Structure] = field(default_factory=list)
    coverages: List[Coverage] = field(default_factory=list)

    # -------------------------------------------------------------------------
    # Traversal
    # -------------------------------------------------------------------------

    def iter_areas(self) -> Iterator[Tuple[Structure, Area]]:
        for structure in self.structures:
            for area in structure.areas:
                yield structure, area

    def iter_zones(self) -> Iterator[ZoneLocation]:
        for structure, area in self.iter_areas():
            for zone in area.zones:
                yield ZoneLocation(structure, area, zone)

    def iter_line_items(self) -> Iterator[Tuple[Zone, LineItem]]:
        for location in self.iter_zones():
            for item in location.zone.line_items:
                yield location.zone, item

    # -------------------------------------------------------------------------
    # Lookup (raise NotFoundError)
    # -------------------------------------------------------------------------

    def find_structure(self, structure_id: str) -> Structure:
        for structure in self.structures:
            if structure.id == structure_id:
                return structure
        raise NotFoundError("structure", structure_id)

    def locate_area(self, area_id: str) -> Tuple[Structure, Area]:
        for structure, area in self.iter_areas():
            if area.id == area_id:
                return structure, area
        raise NotFoundError("area", area_id)

    def find_area(self, area_id: str) -> Area:
        return self.locate_area(area_id)[1]

    def locate_zone(self, zone_id: str) -> ZoneLocation:
        for location in self.iter_zones():
            if location.zone.id == zone_id:
                return location
        raise NotFoundError("zone", zone_id)

    def find_zone(self, zone_id: str) -> Zone:
        return self.locate_zone(zone_id).zone

    def locate_line_item(self, item_id: str) -> Tuple[Zone, LineItem]:
        for zone, item in self.iter_line_items():
            if item.id == item_id:
                return zone, item
        raise NotFoundError("line_item", item_id)

    def locate_missing_wall(self, wall_id: str) -> Tuple[Zone, MissingWall]:
        for location in self.iter_zones():
            for wall in location.zone.missing_walls:
                if wall.id == wall_id:
                    return location.zone, wall
        raise NotFoundError("missing_wall", wall_id)

    def locate_subroom(self, subroom_id: str) -> Tuple[Zone, Subroom]:
        for location in self.iter_zones():
            for subroom in location.zone.subrooms:
                if subroom.id == subroom_id:
                    return location.zone, subroom
        raise NotFoundError("subroom", subroom_id)

    def find_coverage(self, coverage_id: str) -> Coverage:
        for coverage in self.coverages:
            if coverage.id == coverage_id:
                return coverage
        raise NotFoundError("coverage", coverage_id)

    def has_zone(self, zone_id: str) -> bool:
        return any(loc.zone.id == zone_id for loc in self.iter_zones())

    def entity_ids(self) -> List[str]:
        """Every id owned by this estimate (for store indexing)."""
        ids = [c.id for c in self.coverages]
        for structure in self.structures:
            ids.append(structure.id)
            for area in structure.areas:
                ids.append(area.id)
                for zone in area.zones:
                    ids.append(zone.id)
                    ids.extend(w.id for w in zone.missing_walls)
                    ids.extend(s.id for s in zone.subrooms)
                    ids.extend(i.id for i in zone.line_items)
        return ids

    # -------------------------------------------------------------------------
    # Serialization
    # -------------------------------------------------------------------------

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "claim_id": self.claim_id,
            "name": self.name,
            "region_id": self.region_id,
            "carrier_profile_id": self.carrier_profile_id,
            "coverages": [c.to_dict() for c in self.coverages],
            "structures": [s.to_dict() for s in self.structures],
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Estimate":
        """
        Build an estimate tree from its JSON form.

        Raises:
            ValidationError: if a required field is missing or a value has
                the wrong type, including numbers that do not parse.
        """
        try:
            return cls(
                id=data.get("id") or new_id(),
                claim_id=data.get("claim_id"),
                name=data.get("name"),
                region_id=data.get("region_id"),
                carrier_profile_id=data.get("carrier_profile_id"),
                coverages=[Coverage.from_dict(c) for c in data.get("coverages", [])],
                structures=[Structure.from_dict(s) for s in data.get("structures", [])],
            )
        except KeyError as e:
            raise ValidationError(
                f"Estimate data is missing field {e.args[0]!r}",
                code=ErrorCode.VAL_MALFORMED_ESTIMATE,
                field=e.args[0],
            )
        except (AttributeError, InvalidOperation, TypeError, ValueError) as e:
            raise ValidationError(
                f"Estimate data is malformed: {e}",
                code=ErrorCode.VAL_MALFORMED_ESTIMATE,
            )
