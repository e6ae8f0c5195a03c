"""
service/operations.py - Estimate service.

Every mutating operation is an atomic read-modify-write on one estimate:

1. Parse the request (pydantic) into a request model
2. Deep-copy the stored estimate
3. Apply the single change to the copy
4. Re-derive dimensions of touched zones, re-derive dimension-driven
   quantities, re-price touched line items
5. Roll up the whole estimate and allocate coverage
6. Swap the copy into the store

Any EstimateError raised in steps 1-5 leaves the stored estimate as it
was. Results handed back are copies, never live store objects.
"""

from __future__ import annotations
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Optional
import copy
import logging

from ..core.config import EngineConfig
from ..core.money import ZERO
from ..errors.taxonomy import (
    ConsistencyWarning,
    ErrorCode,
    EstimateError,
    NotFoundError,
    ValidationError,
)
from ..dimensions.engine import (
    derive_zone_quantities,
    has_required_dimensions,
)
from ..dimensions.keys import applicable_keys, unit_for_key
from ..hierarchy.models import (
    Area,
    Coverage,
    Estimate,
    LineItem,
    MissingWall,
    Structure,
    Subroom,
    Zone,
)
from ..hierarchy.seeding import initialize_hierarchy as seed_hierarchy
from ..pricing.catalog import CatalogPrice, CatalogResolver
from ..pricing.line_items import price_line_item
from ..rollup.aggregator import EstimateRollup, RollupNode, rollup
from ..rollup.coverage import CoverageAllocation, allocate_by_coverage
from ..validators.estimate import EstimateCheckReport, check_estimate
from .schemas import (
    AreaCreate,
    AreaUpdate,
    CoverageCreate,
    DimensionLineItemCreate,
    EstimateCreate,
    InitializeHierarchyRequest,
    LineItemCoverageUpdate,
    LineItemCreate,
    LineItemUpdate,
    MissingWallCreate,
    MissingWallUpdate,
    StructureCreate,
    StructureUpdate,
    SubroomCreate,
    SubroomUpdate,
    ZoneCreate,
    ZoneUpdate,
    parse_request,
)
from .store import EstimateStore

logger = logging.getLogger(__name__)

# Line item fields that an update may not clear by sending null
_REQUIRED_ITEM_FIELDS = (
    "code",
    "quantity",
    "unit",
    "unit_price",
    "tax_rate",
    "depreciation_pct",
    "depreciation_type",
    "is_recoverable",
    "sort_order",
)


# =============================================================================
# RESULTS
# =============================================================================

@dataclass
class MutationResult:
    """Outcome of a mutating operation."""
    estimate_id: str
    target: Any
    rollup: EstimateRollup
    coverage: CoverageAllocation
    warnings: List[ConsistencyWarning] = field(default_factory=list)

    @property
    def totals(self):
        return self.rollup.totals

    def to_dict(self) -> Dict[str, Any]:
        target = self.target.to_dict() if hasattr(self.target, "to_dict") else self.target
        return {
            "estimate_id": self.estimate_id,
            "target": target,
            "totals": self.rollup.totals.to_dict(),
            "rollup": self.rollup.to_dict(),
            "coverage": self.coverage.to_dict(include_items=False),
            "warnings": [w.to_dict() for w in self.warnings],
        }


@dataclass
class _Edit:
    """Working copy of an estimate inside a transaction."""
    estimate: Estimate
    warnings: List[ConsistencyWarning] = field(default_factory=list)


def _apply(entity: Any, changes: Dict[str, Any], required: Iterable[str] = ()) -> None:
    """Copy changed fields onto an entity; nulls for required fields are ignored."""
    required = set(required)
    for name, value in changes.items():
        if value is None and name in required:
            continue
        setattr(entity, name, value)


def _next_order(siblings: List[Any], requested: Optional[int]) -> int:
    return requested if requested is not None else len(siblings)


# =============================================================================
# SERVICE
# =============================================================================

class EstimateService:
    """
    Operations over estimates held in an EstimateStore.

    Args:
        catalog: price source for line item codes; without one, callers
            must supply unit prices themselves
        store: estimate storage (a fresh in-memory store by default)
        config: engine configuration
    """

    def __init__(
        self,
        catalog: Optional[CatalogResolver] = None,
        store: Optional[EstimateStore] = None,
        config: Optional[EngineConfig] = None,
    ):
        self.catalog = catalog
        self.store = store or EstimateStore()
        self.config = config or EngineConfig()

    # -------------------------------------------------------------------------
    # Transaction plumbing
    # -------------------------------------------------------------------------

    @contextmanager
    def _transaction(self, estimate_id: str, operation: str):
        """Yield a working copy; store it only if the block completes."""
        working = copy.deepcopy(self.store.get(estimate_id))
        edit = _Edit(estimate=working)
        try:
            yield edit
        except EstimateError as e:
            logger.warning(f"{operation} rejected on estimate {estimate_id}: {e}")
            raise
        self.store.put(working)
        logger.info(f"{operation} committed on estimate {estimate_id}")

    def _finish(self, edit: _Edit, target: Any) -> MutationResult:
        tree = rollup(edit.estimate)
        allocation = allocate_by_coverage(edit.estimate)
        return MutationResult(
            estimate_id=edit.estimate.id,
            target=copy.deepcopy(target),
            rollup=tree,
            coverage=copy.deepcopy(allocation),
            warnings=edit.warnings + allocation.warnings,
        )

    # -------------------------------------------------------------------------
    # Derivation helpers
    # -------------------------------------------------------------------------

    def _refresh_zone(self, zone: Zone, edit: _Edit, strict: bool = False) -> None:
        """
        Re-derive a zone's dimensions and its dimension-driven items.

        A zone without its required raw dimensions gets no dimensions,
        unless `strict`, in which case the ValidationError propagates.
        """
        if strict or has_required_dimensions(zone):
            zone.dimensions = derive_zone_quantities(zone, self.config)
            edit.warnings.extend(zone.dimensions.warnings)
        else:
            zone.dimensions = None
        self._rederive_items(zone, edit)

    def _rederive_items(self, zone: Zone, edit: _Edit) -> None:
        for item in zone.line_items:
            if not item.is_dimension_driven:
                continue
            value = zone.dimensions.get(item.calc_ref) if zone.dimensions else None
            quantity = value if value is not None else ZERO
            if quantity == 0:
                edit.warnings.append(ConsistencyWarning(
                    code=ErrorCode.CON_DIMENSION_QUANTITY_ZERO,
                    message=f"Line item {item.code} follows {item.calc_ref}, which is now zero or not applicable",
                    entity_id=item.id,
                    details={"calc_ref": item.calc_ref, "zone_id": zone.id},
                ))
            if quantity != item.quantity or item.financials is None:
                logger.debug(f"Re-derived {item.code} quantity {item.quantity} -> {quantity}")
                item.quantity = quantity
                self._price(item)

    def _recalculate(self, edit: _Edit) -> None:
        for location in edit.estimate.iter_zones():
            self._refresh_zone(location.zone, edit)
            for item in location.zone.line_items:
                self._price(item)

    def _price(self, item: LineItem) -> None:
        item.financials = price_line_item(item, config=self.config)

    def _resolve_catalog(self, estimate: Estimate, code: str) -> Optional[CatalogPrice]:
        """Catalog entry for a code in the estimate's pricing context."""
        if self.catalog is None:
            return None
        region = estimate.region_id or self.config.default_region_id
        carrier = estimate.carrier_profile_id or self.config.default_carrier_profile_id
        return self.catalog.resolve_price(code, region, carrier)

    def _build_line_item(
        self,
        estimate: Estimate,
        zone: Zone,
        request,
        quantity,
        calc_ref: Optional[str] = None,
    ) -> LineItem:
        catalog_price = self._resolve_catalog(estimate, request.code)

        if request.coverage_id is not None:
            estimate.find_coverage(request.coverage_id)

        unit = request.unit
        if unit is None and catalog_price is not None:
            unit = catalog_price.unit
        if unit is None:
            unit = unit_for_key(calc_ref) if calc_ref else "EA"

        unit_price = request.unit_price
        if unit_price is None and catalog_price is not None:
            unit_price = catalog_price.unit_price

        tax_rate = request.tax_rate
        if tax_rate is None:
            tax_rate = catalog_price.tax_rate if catalog_price is not None else ZERO

        description = request.description
        if description is None:
            description = catalog_price.description if catalog_price is not None else ""

        trade_code = request.trade_code
        if trade_code is None and catalog_price is not None:
            trade_code = catalog_price.trade_code

        is_recoverable = request.is_recoverable
        if is_recoverable is None:
            is_recoverable = self.config.recoverable_by_default

        item = LineItem(
            code=request.code,
            quantity=quantity,
            unit=unit,
            unit_price=unit_price,
            tax_rate=tax_rate,
            depreciation_pct=request.depreciation_pct,
            depreciation_type=request.depreciation_type,
            age_years=request.age_years,
            life_expectancy_years=request.life_expectancy_years,
            is_recoverable=is_recoverable,
            coverage_id=request.coverage_id,
            calc_ref=calc_ref,
            description=description,
            trade_code=trade_code,
            notes=request.notes,
            sort_order=_next_order(zone.line_items, request.sort_order),
        )
        self._price(item)
        return item

    def _check_opens_into(self, estimate: Estimate, zone_id: Optional[str]) -> None:
        if zone_id is not None and not estimate.has_zone(zone_id):
            raise NotFoundError("zone", zone_id, message=f"Opening target zone {zone_id} not found")

    # -------------------------------------------------------------------------
    # Estimates
    # -------------------------------------------------------------------------

    def create_estimate(self, payload=None) -> Estimate:
        request = parse_request(EstimateCreate, payload)
        estimate = Estimate(
            claim_id=request.claim_id,
            name=request.name,
            region_id=request.region_id or self.config.default_region_id,
            carrier_profile_id=request.carrier_profile_id or self.config.default_carrier_profile_id,
        )
        self.store.put(estimate)
        logger.info(f"Created estimate {estimate.id} for claim {estimate.claim_id}")
        return copy.deepcopy(estimate)

    def get_estimate(self, estimate_id: str) -> Estimate:
        return copy.deepcopy(self.store.get(estimate_id))

    def import_estimate(self, estimate: Estimate) -> MutationResult:
        """
        Store an externally built estimate with its derived state brought up to date.

        The estimate is recalculated on a copy and only stored once that
        succeeds; a failed import leaves any estimate already stored under
        the same id untouched.

        Raises:
            ValidationError: if the estimate reuses entity ids owned by a
                different stored estimate, or fails recalculation
        """
        edit = _Edit(estimate=copy.deepcopy(estimate))
        try:
            self._recalculate(edit)
            result = self._finish(edit, edit.estimate)
            self.store.put(edit.estimate)
        except EstimateError as e:
            logger.warning(f"import_estimate rejected estimate {estimate.id}: {e}")
            raise
        logger.info(f"import_estimate committed estimate {estimate.id}")
        return result

    def delete_estimate(self, estimate_id: str) -> None:
        self.store.delete(estimate_id)
        logger.info(f"Deleted estimate {estimate_id}")

    def initialize_hierarchy(self, estimate_id: str, payload=None) -> MutationResult:
        """Seed the default structure with Interior/Exterior/Roofing areas."""
        request = parse_request(InitializeHierarchyRequest, payload)
        with self._transaction(estimate_id, "initialize_hierarchy") as edit:
            structure = seed_hierarchy(
                edit.estimate,
                include_interior=request.include_interior,
                include_exterior=request.include_exterior,
                include_roofing=request.include_roofing,
                structure_name=request.structure_name,
                config=self.config,
            )
            result = self._finish(edit, structure)
        return result

    def recalculate_estimate(self, estimate_id: str) -> MutationResult:
        """
        Re-derive every zone and re-price every line item.

        Running it twice with no edit in between yields identical totals.
        """
        with self._transaction(estimate_id, "recalculate_estimate") as edit:
            self._recalculate(edit)
            result = self._finish(edit, edit.estimate)
        return result

    def get_estimate_hierarchy(self, estimate_id: str) -> Dict[str, Any]:
        """Full tree with totals and floor area populated at every node."""
        estimate = self.store.get(estimate_id)
        tree = rollup(estimate)
        return _hierarchy_view(estimate, tree)

    def check_estimate(self, estimate_id: str) -> EstimateCheckReport:
        return check_estimate(self.store.get(estimate_id), self.config)

    # -------------------------------------------------------------------------
    # Structures
    # -------------------------------------------------------------------------

    def create_structure(self, estimate_id: str, payload) -> MutationResult:
        request = parse_request(StructureCreate, payload)
        with self._transaction(estimate_id, "create_structure") as edit:
            fields = request.model_dump(exclude={"sort_order"})
            structure = Structure(
                sort_order=_next_order(edit.estimate.structures, request.sort_order),
                **fields,
            )
            edit.estimate.structures.append(structure)
            result = self._finish(edit, structure)
        return result

    def update_structure(self, structure_id: str, payload) -> MutationResult:
        request = parse_request(StructureUpdate, payload)
        estimate_id = self.store.estimate_id_for("structure", structure_id)
        with self._transaction(estimate_id, "update_structure") as edit:
            structure = edit.estimate.find_structure(structure_id)
            _apply(structure, request.changes(), required=("name", "stories", "sort_order"))
            result = self._finish(edit, structure)
        return result

    def delete_structure(self, structure_id: str) -> MutationResult:
        """Remove a structure with all of its areas, zones and line items."""
        estimate_id = self.store.estimate_id_for("structure", structure_id)
        with self._transaction(estimate_id, "delete_structure") as edit:
            structure = edit.estimate.find_structure(structure_id)
            edit.estimate.structures.remove(structure)
            result = self._finish(edit, None)
        return result

    # -------------------------------------------------------------------------
    # Areas
    # -------------------------------------------------------------------------

    def create_area(self, structure_id: str, payload) -> MutationResult:
        request = parse_request(AreaCreate, payload)
        estimate_id = self.store.estimate_id_for("structure", structure_id)
        with self._transaction(estimate_id, "create_area") as edit:
            structure = edit.estimate.find_structure(structure_id)
            area = Area(
                name=request.name,
                area_type=request.area_type,
                sort_order=_next_order(structure.areas, request.sort_order),
            )
            structure.areas.append(area)
            result = self._finish(edit, area)
        return result

    def update_area(self, area_id: str, payload) -> MutationResult:
        request = parse_request(AreaUpdate, payload)
        estimate_id = self.store.estimate_id_for("area", area_id)
        with self._transaction(estimate_id, "update_area") as edit:
            area = edit.estimate.find_area(area_id)
            _apply(area, request.changes(), required=("name", "area_type", "sort_order"))
            result = self._finish(edit, area)
        return result

    def delete_area(self, area_id: str) -> MutationResult:
        estimate_id = self.store.estimate_id_for("area", area_id)
        with self._transaction(estimate_id, "delete_area") as edit:
            structure, area = edit.estimate.locate_area(area_id)
            structure.areas.remove(area)
            result = self._finish(edit, None)
        return result

    # -------------------------------------------------------------------------
    # Zones
    # -------------------------------------------------------------------------

    def create_zone(self, area_id: str, payload) -> MutationResult:
        """Create a zone; its dimensions are derived as soon as it is measured."""
        request = parse_request(ZoneCreate, payload)
        estimate_id = self.store.estimate_id_for("area", area_id)
        with self._transaction(estimate_id, "create_zone") as edit:
            area = edit.estimate.find_area(area_id)
            fields = request.model_dump(exclude={"sort_order"})
            zone = Zone(sort_order=_next_order(area.zones, request.sort_order), **fields)
            area.zones.append(zone)
            self._refresh_zone(zone, edit)
            result = self._finish(edit, zone)
        return result

    def update_zone(self, zone_id: str, payload) -> MutationResult:
        request = parse_request(ZoneUpdate, payload)
        estimate_id = self.store.estimate_id_for("zone", zone_id)
        with self._transaction(estimate_id, "update_zone") as edit:
            zone = edit.estimate.find_zone(zone_id)
            _apply(zone, request.changes(), required=("name", "zone_type", "status", "sort_order"))
            self._refresh_zone(zone, edit)
            result = self._finish(edit, zone)
        return result

    def delete_zone(self, zone_id: str) -> MutationResult:
        """Remove a zone. Openings elsewhere that open into it are left as they are."""
        estimate_id = self.store.estimate_id_for("zone", zone_id)
        with self._transaction(estimate_id, "delete_zone") as edit:
            location = edit.estimate.locate_zone(zone_id)
            location.area.zones.remove(location.zone)
            result = self._finish(edit, None)
        return result

    def recalc_zone_dimensions(self, zone_id: str) -> MutationResult:
        """
        Explicitly re-derive a zone's dimensions.

        Raises:
            ValidationError: if the zone lacks a required raw dimension
        """
        estimate_id = self.store.estimate_id_for("zone", zone_id)
        with self._transaction(estimate_id, "recalc_zone_dimensions") as edit:
            zone = edit.estimate.find_zone(zone_id)
            self._refresh_zone(zone, edit, strict=True)
            result = self._finish(edit, zone)
        return result

    # -------------------------------------------------------------------------
    # Missing walls
    # -------------------------------------------------------------------------

    def create_missing_wall(self, zone_id: str, payload) -> MutationResult:
        request = parse_request(MissingWallCreate, payload)
        estimate_id = self.store.estimate_id_for("zone", zone_id)
        with self._transaction(estimate_id, "create_missing_wall") as edit:
            zone = edit.estimate.find_zone(zone_id)
            self._check_opens_into(edit.estimate, request.opens_into)
            fields = request.model_dump(exclude={"sort_order"})
            wall = MissingWall(sort_order=_next_order(zone.missing_walls, request.sort_order), **fields)
            zone.missing_walls.append(wall)
            self._refresh_zone(zone, edit)
            result = self._finish(edit, zone)
        return result

    def update_missing_wall(self, wall_id: str, payload) -> MutationResult:
        request = parse_request(MissingWallUpdate, payload)
        estimate_id = self.store.estimate_id_for("missing_wall", wall_id)
        with self._transaction(estimate_id, "update_missing_wall") as edit:
            zone, wall = edit.estimate.locate_missing_wall(wall_id)
            changes = request.changes()
            if "opens_into" in changes:
                self._check_opens_into(edit.estimate, changes["opens_into"])
            _apply(wall, changes, required=(
                "width_ft", "height_ft", "quantity", "opening_type",
                "goes_to_floor", "goes_to_ceiling", "sort_order",
            ))
            self._refresh_zone(zone, edit)
            result = self._finish(edit, zone)
        return result

    def delete_missing_wall(self, wall_id: str) -> MutationResult:
        estimate_id = self.store.estimate_id_for("missing_wall", wall_id)
        with self._transaction(estimate_id, "delete_missing_wall") as edit:
            zone, wall = edit.estimate.locate_missing_wall(wall_id)
            zone.missing_walls.remove(wall)
            self._refresh_zone(zone, edit)
            result = self._finish(edit, zone)
        return result

    # -------------------------------------------------------------------------
    # Subrooms
    # -------------------------------------------------------------------------

    def create_subroom(self, zone_id: str, payload) -> MutationResult:
        request = parse_request(SubroomCreate, payload)
        estimate_id = self.store.estimate_id_for("zone", zone_id)
        with self._transaction(estimate_id, "create_subroom") as edit:
            zone = edit.estimate.find_zone(zone_id)
            fields = request.model_dump(exclude={"sort_order"})
            subroom = Subroom(sort_order=_next_order(zone.subrooms, request.sort_order), **fields)
            zone.subrooms.append(subroom)
            self._refresh_zone(zone, edit)
            result = self._finish(edit, zone)
        return result

    def update_subroom(self, subroom_id: str, payload) -> MutationResult:
        request = parse_request(SubroomUpdate, payload)
        estimate_id = self.store.estimate_id_for("subroom", subroom_id)
        with self._transaction(estimate_id, "update_subroom") as edit:
            zone, subroom = edit.estimate.locate_subroom(subroom_id)
            _apply(subroom, request.changes(), required=(
                "name", "length_ft", "width_ft", "is_addition", "sort_order",
            ))
            self._refresh_zone(zone, edit)
            result = self._finish(edit, zone)
        return result

    def delete_subroom(self, subroom_id: str) -> MutationResult:
        estimate_id = self.store.estimate_id_for("subroom", subroom_id)
        with self._transaction(estimate_id, "delete_subroom") as edit:
            zone, subroom = edit.estimate.locate_subroom(subroom_id)
            zone.subrooms.remove(subroom)
            self._refresh_zone(zone, edit)
            result = self._finish(edit, zone)
        return result

    # -------------------------------------------------------------------------
    # Line items
    # -------------------------------------------------------------------------

    def add_line_item(self, zone_id: str, payload) -> MutationResult:
        """Add a line item with a user-supplied quantity."""
        request = parse_request(LineItemCreate, payload)
        estimate_id = self.store.estimate_id_for("zone", zone_id)
        with self._transaction(estimate_id, "add_line_item") as edit:
            zone = edit.estimate.find_zone(zone_id)
            item = self._build_line_item(edit.estimate, zone, request, request.quantity)
            zone.line_items.append(item)
            result = self._finish(edit, item)
        return result

    def add_line_item_from_dimension(self, zone_id: str, payload) -> MutationResult:
        """
        Add a line item whose quantity follows a derived zone dimension.

        Raises:
            ValidationError: if the zone has no derived dimensions, the key
                does not apply to the zone type, or its value is zero
        """
        request = parse_request(DimensionLineItemCreate, payload)
        estimate_id = self.store.estimate_id_for("zone", zone_id)
        with self._transaction(estimate_id, "add_line_item_from_dimension") as edit:
            zone = edit.estimate.find_zone(zone_id)
            key = request.dimension_key

            if key not in applicable_keys(zone.zone_type):
                raise ValidationError(
                    f"{key} does not apply to {zone.zone_type.value} zones",
                    code=ErrorCode.VAL_UNKNOWN_DIMENSION_KEY,
                    zone_id=zone.id,
                    dimension_key=key,
                )
            if zone.dimensions is None:
                raise ValidationError(
                    f"Zone '{zone.name}' has no derived dimensions yet",
                    code=ErrorCode.VAL_MISSING_DIMENSION,
                    recovery_hint="Measure the zone first",
                    zone_id=zone.id,
                )

            item = self._build_line_item(
                edit.estimate, zone, request, zone.dimensions.get(key), calc_ref=key,
            )
            if item.quantity <= 0:
                raise ValidationError(
                    f"{key} is zero on zone '{zone.name}'",
                    code=ErrorCode.VAL_NON_POSITIVE_QUANTITY,
                    zone_id=zone.id,
                    dimension_key=key,
                )
            zone.line_items.append(item)
            result = self._finish(edit, item)
        return result

    def update_line_item(self, item_id: str, payload) -> MutationResult:
        """
        Change line item fields and re-price.

        Setting quantity detaches a dimension-driven item from its
        dimension. Changing the code re-resolves the catalog entry; values
        sent in the same request still win.
        """
        request = parse_request(LineItemUpdate, payload)
        estimate_id = self.store.estimate_id_for("line_item", item_id)
        with self._transaction(estimate_id, "update_line_item") as edit:
            _, item = edit.estimate.locate_line_item(item_id)
            changes = request.changes()

            code = changes.get("code")
            if code is not None and code != item.code:
                catalog_price = self._resolve_catalog(edit.estimate, code)
                if catalog_price is not None:
                    item.unit = catalog_price.unit
                    item.unit_price = catalog_price.unit_price
                    item.tax_rate = catalog_price.tax_rate
                    item.description = catalog_price.description
                    item.trade_code = catalog_price.trade_code

            if changes.get("quantity") is not None and item.is_dimension_driven:
                logger.debug(f"Line item {item.id} detached from {item.calc_ref}")
                item.calc_ref = None

            if "description" in changes and changes["description"] is None:
                changes["description"] = ""
            _apply(item, changes, required=_REQUIRED_ITEM_FIELDS)
            self._price(item)
            result = self._finish(edit, item)
        return result

    def delete_line_item(self, item_id: str) -> MutationResult:
        estimate_id = self.store.estimate_id_for("line_item", item_id)
        with self._transaction(estimate_id, "delete_line_item") as edit:
            zone, item = edit.estimate.locate_line_item(item_id)
            zone.line_items.remove(item)
            result = self._finish(edit, None)
        return result

    # -------------------------------------------------------------------------
    # Coverage
    # -------------------------------------------------------------------------

    def create_coverage(self, estimate_id: str, payload) -> MutationResult:
        """
        Add a coverage bucket.

        Raises:
            ValidationError: if the estimate already has this coverage type
        """
        request = parse_request(CoverageCreate, payload)
        with self._transaction(estimate_id, "create_coverage") as edit:
            if any(c.coverage_type == request.coverage_type for c in edit.estimate.coverages):
                raise ValidationError(
                    f"Estimate already has a {request.coverage_type.value} coverage",
                    code=ErrorCode.VAL_DUPLICATE_COVERAGE,
                    coverage_type=request.coverage_type,
                )
            coverage = Coverage(
                coverage_type=request.coverage_type,
                name=request.name or request.coverage_type.value.replace("_", " ").title(),
                policy_limit=request.policy_limit,
                deductible=request.deductible,
                sort_order=_next_order(edit.estimate.coverages, request.sort_order),
            )
            edit.estimate.coverages.append(coverage)
            result = self._finish(edit, coverage)
        return result

    def delete_coverage(self, coverage_id: str) -> MutationResult:
        """Remove a coverage; its line items become unassigned."""
        estimate_id = self.store.estimate_id_for("coverage", coverage_id)
        with self._transaction(estimate_id, "delete_coverage") as edit:
            coverage = edit.estimate.find_coverage(coverage_id)
            edit.estimate.coverages.remove(coverage)
            for _, item in edit.estimate.iter_line_items():
                if item.coverage_id == coverage_id:
                    item.coverage_id = None
            result = self._finish(edit, None)
        return result

    def update_line_item_coverage(self, item_id: str, payload) -> MutationResult:
        """Reassign a line item's coverage. Its financials are not touched."""
        request = parse_request(LineItemCoverageUpdate, payload)
        estimate_id = self.store.estimate_id_for("line_item", item_id)
        with self._transaction(estimate_id, "update_line_item_coverage") as edit:
            _, item = edit.estimate.locate_line_item(item_id)
            if request.coverage_id is not None:
                edit.estimate.find_coverage(request.coverage_id)
            item.coverage_id = request.coverage_id
            result = self._finish(edit, item)
        return result

    def get_line_items_by_coverage(self, estimate_id: str) -> CoverageAllocation:
        return copy.deepcopy(allocate_by_coverage(self.store.get(estimate_id)))


# =============================================================================
# HIERARCHY VIEW
# =============================================================================

def _node_fields(node: RollupNode) -> Dict[str, Any]:
    return {
        "floor_sf": str(node.floor_sf),
        "totals": node.totals.to_dict(),
    }


def _hierarchy_view(estimate: Estimate, tree: EstimateRollup) -> Dict[str, Any]:
    """Serialize the estimate with rollup totals merged into every node."""
    view = estimate.to_dict()
    view.update(_node_fields(tree.root))
    view["unpriced_item_ids"] = list(tree.unpriced_item_ids)
    for structure in view["structures"]:
        structure.update(_node_fields(tree.node(structure["id"])))
        for area in structure["areas"]:
            area.update(_node_fields(tree.node(area["id"])))
            for zone in area["zones"]:
                zone.update(_node_fields(tree.node(zone["id"])))
    return view
