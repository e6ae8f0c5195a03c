"""
Integration tests for EstimateService.

Drives the service end to end: hierarchy seeding, zones and openings,
priced and dimension-driven line items, coverage allocation, and the
atomicity of rejected operations.
"""

from decimal import Decimal

import pytest

from claimscope.core.enums import TreeLevel, ZoneType
from claimscope.errors.taxonomy import ErrorCode, NotFoundError, ValidationError
from claimscope.service import EstimateService

from conftest import D


def _dims(service, zone_id):
    location = service.store.get(service.store.estimate_id_for("zone", zone_id)).locate_zone(zone_id)
    return location.zone.dimensions


class TestHierarchyOperations:
    """Tests for structure, area and zone operations."""

    def test_initialize_hierarchy(self, service, estimate_id):
        """Test seeding creates one structure with three areas."""
        result = service.initialize_hierarchy(estimate_id, {"include_roofing": False, "structure_name": "Dwelling"})
        assert result.target.name == "Dwelling"
        assert [a.name for a in result.target.areas] == ["Interior", "Exterior"]
        assert len(service.get_estimate(estimate_id).structures) == 1

    def test_create_zone_derives_dimensions(self, service, seeded):
        """Test a measured zone gets dimensions on creation."""
        dims = _dims(service, seeded["room"])
        assert dims.values["sf_walls_gross"] == D("352")
        assert dims.values["sf_walls"] == D("352")

    def test_unmeasured_zone_has_no_dimensions(self, service, seeded):
        """Test a zone without required dimensions is stored undimensioned."""
        zone = service.create_zone(seeded["interior"], {"name": "Hall"}).target
        assert zone.dimensions is None

    def test_recalc_unmeasured_zone_rejected(self, service, seeded):
        """Test explicit recalculation reports the missing dimension."""
        zone = service.create_zone(seeded["interior"], {"name": "Hall"}).target
        with pytest.raises(ValidationError) as exc_info:
            service.recalc_zone_dimensions(zone.id)
        assert exc_info.value.code == ErrorCode.VAL_MISSING_DIMENSION

    def test_missing_wall_triggers_rederivation(self, service, seeded):
        """Test adding a 3x7 opening updates net wall area to 331."""
        result = service.create_missing_wall(seeded["room"], {"width_ft": 3, "height_ft": 7, "opening_type": "doorway"})
        assert result.target.dimensions.values["sf_walls"] == D("331")
        assert _dims(service, seeded["room"]).values["sf_walls"] == D("331")

    def test_delete_missing_wall_restores_walls(self, service, seeded):
        """Test removing the opening restores gross wall area."""
        zone = service.create_missing_wall(seeded["room"], {"width_ft": 3, "height_ft": 7}).target
        service.delete_missing_wall(zone.missing_walls[0].id)
        assert _dims(service, seeded["room"]).values["sf_walls"] == D("352")

    def test_update_missing_wall(self, service, seeded):
        """Test resizing an opening re-derives walls."""
        zone = service.create_missing_wall(seeded["room"], {"width_ft": 3, "height_ft": 7}).target
        service.update_missing_wall(zone.missing_walls[0].id, {"quantity": 2})
        assert _dims(service, seeded["room"]).values["sf_walls"] == D("310")

    def test_opening_into_unknown_zone_rejected(self, service, seeded):
        """Test opens_into must name an existing zone."""
        with pytest.raises(NotFoundError):
            service.create_missing_wall(seeded["room"], {"width_ft": 3, "height_ft": 7, "opens_into": "nowhere"})

    def test_subroom_operations(self, service, seeded):
        """Test subroom create, update and delete re-derive the zone."""
        zone = service.create_subroom(seeded["room"], {"name": "Closet", "length_ft": 3, "width_ft": 4}).target
        assert zone.dimensions.values["sf_floor"] == D("132")
        subroom_id = zone.subrooms[0].id
        service.update_subroom(subroom_id, {"is_addition": False})
        assert _dims(service, seeded["room"]).values["sf_floor"] == D("108")
        service.delete_subroom(subroom_id)
        assert _dims(service, seeded["room"]).values["sf_floor"] == D("120")

    def test_update_zone_dimensions(self, service, seeded):
        """Test raw dimension edits re-derive immediately."""
        result = service.update_zone(seeded["room"], {"length_ft": "11"})
        assert result.target.dimensions.values["sf_walls_gross"] == D("368")

    def test_zone_status_is_user_set(self, service, seeded):
        """Test status only changes when the caller sets it."""
        assert service.get_estimate(seeded["estimate"]).find_zone(seeded["room"]).status.value == "pending"
        service.add_line_item(seeded["room"], {"code": "DRY1/2", "quantity": 10})
        assert service.get_estimate(seeded["estimate"]).find_zone(seeded["room"]).status.value == "pending"
        service.update_zone(seeded["room"], {"status": "scoped"})
        assert service.get_estimate(seeded["estimate"]).find_zone(seeded["room"]).status.value == "scoped"

    def test_update_structure_and_area(self, service, seeded):
        """Test renaming structure and area."""
        service.update_structure(seeded["structure"], {"name": "House", "year_built": 1988})
        service.update_area(seeded["interior"], {"name": "First Floor"})
        estimate = service.get_estimate(seeded["estimate"])
        assert estimate.structures[0].name == "House"
        assert estimate.structures[0].year_built == 1988
        assert estimate.find_area(seeded["interior"]).name == "First Floor"

    def test_delete_area_removes_zones(self, service, seeded):
        """Test deleting an area removes its zones from lookups."""
        service.delete_area(seeded["interior"])
        with pytest.raises(NotFoundError):
            service.update_zone(seeded["room"], {"name": "Gone"})

    def test_unknown_ids(self, service, seeded):
        """Test operations on unknown ids raise NotFoundError with the entity kind."""
        with pytest.raises(NotFoundError) as exc_info:
            service.create_zone("no-such-area", {"name": "X"})
        assert exc_info.value.entity == "area"
        with pytest.raises(NotFoundError) as exc_info:
            service.get_estimate("no-such-estimate")
        assert exc_info.value.code == ErrorCode.NF_ESTIMATE


class TestLineItemOperations:
    """Tests for line item operations."""

    def test_add_line_item_reference_values(self, service, seeded):
        """Test 100 SF of drywall at 2.50 with 8% tax and 20% depreciation."""
        result = service.add_line_item(seeded["room"], {"code": "DRY1/2", "quantity": 100, "depreciation_pct": 20})
        item = result.target
        assert item.unit == "SF"
        assert item.financials.subtotal == D("250.00")
        assert item.financials.tax_amount == D("20.00")
        assert item.financials.rcv == D("270.00")
        assert item.financials.depreciation_amount == D("54.00")
        assert item.financials.acv == D("216.00")
        assert result.totals.rcv_total == D("270.00")
        assert result.rollup.totals_for(seeded["room"]).rcv_total == D("270.00")

    def test_catalog_description_and_trade(self, service, seeded):
        """Test catalog fields fill in unspecified item fields."""
        item = service.add_line_item(seeded["room"], {"code": "PNT", "quantity": 10}).target
        assert item.description == "Paint walls - two coats"
        assert item.trade_code == "PNT"

    def test_caller_price_overrides_catalog(self, service, seeded):
        """Test a caller-supplied unit price wins."""
        item = service.add_line_item(seeded["room"], {"code": "DRY1/2", "quantity": 10, "unit_price": "3.00", "tax_rate": 0}).target
        assert item.financials.rcv == D("30.00")

    def test_regional_price(self, service):
        """Test the estimate's region selects the regional price."""
        estimate_id = service.create_estimate({"region_id": "TX-DAL"}).id
        structure = service.initialize_hierarchy(estimate_id).target
        zone = service.create_zone(structure.areas[0].id, {"name": "Den", "length_ft": 10, "width_ft": 10}).target
        item = service.add_line_item(zone.id, {"code": "DRY1/2", "quantity": 100}).target
        assert item.unit_price == D("2.75")

    def test_unknown_code(self, service, seeded):
        """Test unknown catalog code is rejected."""
        with pytest.raises(NotFoundError) as exc_info:
            service.add_line_item(seeded["room"], {"code": "NOPE", "quantity": 1})
        assert exc_info.value.code == ErrorCode.NF_CATALOG_ITEM

    def test_without_catalog_price_required(self):
        """Test a service without catalog needs explicit unit prices."""
        service = EstimateService()
        estimate_id = service.create_estimate().id
        area_id = service.initialize_hierarchy(estimate_id).target.areas[0].id
        zone_id = service.create_zone(area_id, {"name": "Den"}).target.id
        with pytest.raises(ValidationError):
            service.add_line_item(zone_id, {"code": "X", "quantity": 1})
        item = service.add_line_item(zone_id, {"code": "X", "quantity": 2, "unit_price": "5"}).target
        assert item.financials.rcv == D("10.00")
        assert item.unit == "EA"

    def test_update_line_item_reprices(self, service, seeded):
        """Test updates recompute financials."""
        item = service.add_line_item(seeded["room"], {"code": "DRY1/2", "quantity": 100, "depreciation_pct": 20}).target
        result = service.update_line_item(item.id, {"quantity": 50, "depreciation_pct": 10})
        assert result.target.financials.subtotal == D("125.00")
        assert result.target.financials.depreciation_amount == D("13.50")
        assert result.totals.rcv_total == D("135.00")

    def test_update_code_reresolves_catalog(self, service, seeded):
        """Test changing the code picks up the new catalog price."""
        item = service.add_line_item(seeded["room"], {"code": "DRY1/2", "quantity": 10}).target
        updated = service.update_line_item(item.id, {"code": "PNT"}).target
        assert updated.unit_price == D("1.10")
        assert updated.financials.subtotal == D("11.00")

    def test_delete_line_item(self, service, seeded):
        """Test deleting an item removes it from totals."""
        item = service.add_line_item(seeded["room"], {"code": "DRY1/2", "quantity": 100}).target
        result = service.delete_line_item(item.id)
        assert result.totals.item_count == 0
        assert result.totals.rcv_total == D("0")


class TestDimensionDrivenItems:
    """Tests for line items whose quantity follows a zone dimension."""

    def test_quantity_follows_dimension(self, service, seeded):
        """Test item quantity starts at the dimension value."""
        item = service.add_line_item_from_dimension(seeded["room"], {"code": "PNT", "dimension_key": "sf_walls"}).target
        assert item.quantity == D("352")
        assert item.calc_ref == "sf_walls"
        assert item.financials.rcv == D("418.18")

    def test_opening_updates_quantity(self, service, seeded):
        """Test adding an opening re-derives quantity and price."""
        item = service.add_line_item_from_dimension(seeded["room"], {"code": "PNT", "dimension_key": "sf_walls"}).target
        service.create_missing_wall(seeded["room"], {"width_ft": 3, "height_ft": 7})
        _, stored = service.get_estimate(seeded["estimate"]).locate_line_item(item.id)
        assert stored.quantity == D("331")
        assert stored.financials.rcv == D("393.23")

    def test_inapplicable_dimension_goes_to_zero(self, service, seeded):
        """Test changing zone type to one without the key zeroes the item with a warning."""
        item = service.add_line_item_from_dimension(seeded["room"], {"code": "PNT", "dimension_key": "sf_walls"}).target
        result = service.update_zone(seeded["room"], {"zone_type": "linear"})
        assert result.target.zone_type == ZoneType.LINEAR
        stored = result.target.find_line_item(item.id)
        assert stored.quantity == 0
        assert stored.financials.rcv == D("0")
        assert ErrorCode.CON_DIMENSION_QUANTITY_ZERO in [w.code for w in result.warnings]

    def test_direct_quantity_detaches(self, service, seeded):
        """Test setting quantity directly stops dimension tracking."""
        item = service.add_line_item_from_dimension(seeded["room"], {"code": "PNT", "dimension_key": "sf_walls"}).target
        service.update_line_item(item.id, {"quantity": 100})
        service.create_missing_wall(seeded["room"], {"width_ft": 3, "height_ft": 7})
        _, stored = service.get_estimate(seeded["estimate"]).locate_line_item(item.id)
        assert stored.calc_ref is None
        assert stored.quantity == D("100")

    def test_undimensioned_zone_rejected(self, service, seeded):
        """Test dimension items need a measured zone."""
        zone = service.create_zone(seeded["interior"], {"name": "Hall"}).target
        with pytest.raises(ValidationError) as exc_info:
            service.add_line_item_from_dimension(zone.id, {"code": "PNT", "dimension_key": "sf_walls"})
        assert exc_info.value.code == ErrorCode.VAL_MISSING_DIMENSION

    def test_inapplicable_key_rejected(self, service, seeded):
        """Test keys outside the zone type are rejected."""
        with pytest.raises(ValidationError) as exc_info:
            service.add_line_item_from_dimension(seeded["room"], {"code": "RFG300", "dimension_key": "sk_roof_squares"})
        assert exc_info.value.code == ErrorCode.VAL_UNKNOWN_DIMENSION_KEY

    def test_roof_squares(self, service, seeded):
        """Test roofing item driven by roof squares."""
        roof = service.create_zone(seeded["roofing"], {
            "name": "Main roof", "zone_type": "roof", "length_ft": 40, "width_ft": 30, "pitch": "6/12",
        }).target
        item = service.add_line_item_from_dimension(roof.id, {"code": "RFG300", "dimension_key": "sk_roof_squares"}).target
        assert item.quantity == D("13.42")
        assert item.unit == "SQ"
        assert item.financials.subtotal == D("3355.00")


class TestCoverage:
    """Tests for coverage operations."""

    def test_dwelling_plus_unassigned(self, service, seeded):
        """Test dwelling 270 and unassigned 100 make 370."""
        coverage = service.create_coverage(seeded["estimate"], {"coverage_type": "dwelling", "policy_limit": 250000}).target
        service.add_line_item(seeded["room"], {
            "code": "DRY1/2", "quantity": 100, "depreciation_pct": 20, "coverage_id": coverage.id,
        })
        result = service.add_line_item(seeded["room"], {"code": "CPT", "quantity": 100})

        allocation = service.get_line_items_by_coverage(seeded["estimate"])
        assert allocation.bucket(coverage.id).totals.rcv_total == D("270.00")
        assert allocation.unassigned.totals.rcv_total == D("100.00")
        assert result.totals.rcv_total == D("370.00")
        assert allocation.total() == result.totals

    def test_coverage_name_defaults_from_type(self, service, seeded):
        """Test coverage name defaults to its type."""
        coverage = service.create_coverage(seeded["estimate"], {"coverage_type": "other_structures"}).target
        assert coverage.name == "Other Structures"

    def test_duplicate_coverage_type(self, service, seeded):
        """Test one coverage per type."""
        service.create_coverage(seeded["estimate"], {"coverage_type": "contents"})
        with pytest.raises(ValidationError) as exc_info:
            service.create_coverage(seeded["estimate"], {"coverage_type": "contents"})
        assert exc_info.value.code == ErrorCode.VAL_DUPLICATE_COVERAGE

    def test_reassign_keeps_financials(self, service, seeded):
        """Test reassigning coverage does not touch item financials."""
        coverage = service.create_coverage(seeded["estimate"], {"coverage_type": "dwelling"}).target
        item = service.add_line_item(seeded["room"], {"code": "DRY1/2", "quantity": 100}).target
        result = service.update_line_item_coverage(item.id, {"coverage_id": coverage.id})
        assert result.target.financials == item.financials
        assert result.coverage.bucket(coverage.id).totals.item_count == 1
        assert result.coverage.unassigned.totals.item_count == 0

    def test_reassign_to_unknown_coverage(self, service, seeded):
        """Test reassignment to a missing coverage is rejected."""
        item = service.add_line_item(seeded["room"], {"code": "DRY1/2", "quantity": 100}).target
        with pytest.raises(NotFoundError):
            service.update_line_item_coverage(item.id, {"coverage_id": "nope"})

    def test_delete_coverage_unassigns_items(self, service, seeded):
        """Test deleting a coverage moves its items to unassigned."""
        coverage = service.create_coverage(seeded["estimate"], {"coverage_type": "dwelling"}).target
        service.add_line_item(seeded["room"], {"code": "DRY1/2", "quantity": 100, "coverage_id": coverage.id})
        result = service.delete_coverage(coverage.id)
        assert set(result.coverage.buckets) == {None}
        assert result.coverage.unassigned.totals.rcv_total == D("270.00")


class TestEstimateProperties:
    """Tests for estimate-wide guarantees."""

    def _populate(self, service, seeded):
        coverage = service.create_coverage(seeded["estimate"], {"coverage_type": "dwelling"}).target
        service.add_line_item(seeded["room"], {"code": "DRY1/2", "quantity": 100, "depreciation_pct": 20, "coverage_id": coverage.id})
        service.add_line_item_from_dimension(seeded["room"], {"code": "PNT", "dimension_key": "sf_walls", "depreciation_pct": 15})
        garage = service.create_structure(seeded["estimate"], {"name": "Detached Garage"}).target
        area = service.create_area(garage.id, {"name": "Interior"}).target
        zone = service.create_zone(area.id, {"name": "Bay", "length_ft": 20, "width_ft": 22, "height_ft": 9}).target
        service.add_line_item_from_dimension(zone.id, {"code": "DRY1/2", "dimension_key": "sf_walls", "coverage_id": coverage.id})
        service.add_line_item(zone.id, {"code": "CPT", "quantity": "33.3", "depreciation_pct": "12.5", "is_recoverable": False})
        return garage.id

    def test_recalculate_is_idempotent(self, service, seeded):
        """Test two recalculations in a row agree exactly."""
        self._populate(service, seeded)
        first = service.recalculate_estimate(seeded["estimate"])
        snapshot = service.get_estimate(seeded["estimate"]).to_dict()
        second = service.recalculate_estimate(seeded["estimate"])
        assert first.totals == second.totals
        assert service.get_estimate(seeded["estimate"]).to_dict() == snapshot

    def test_reconciles_at_every_level(self, service, seeded):
        """Test RCV - ACV == depreciation everywhere and coverage sums match."""
        self._populate(service, seeded)
        result = service.recalculate_estimate(seeded["estimate"])
        assert result.rollup.reconciles()
        assert result.coverage.total() == result.totals
        assert service.check_estimate(seeded["estimate"]).passed

    def test_delete_structure_removes_contribution(self, service, seeded):
        """Test deleting a structure drops exactly its prior totals."""
        garage_id = self._populate(service, seeded)
        before = service.recalculate_estimate(seeded["estimate"])
        garage = before.rollup.totals_for(garage_id)
        assert garage.item_count == 2

        after = service.delete_structure(garage_id)

        assert after.totals + garage == before.totals
        assert after.coverage.total() == after.totals
        assert len(after.rollup.nodes_at(TreeLevel.STRUCTURE)) == 1

    def test_hierarchy_view(self, service, seeded):
        """Test hierarchy view carries totals and floor area per node."""
        self._populate(service, seeded)
        view = service.get_estimate_hierarchy(seeded["estimate"])
        assert Decimal(view["floor_sf"]) == D("560")
        structure = view["structures"][0]
        zone = structure["areas"][0]["zones"][0]
        assert Decimal(zone["floor_sf"]) == D("120")
        assert Decimal(zone["totals"]["rcv_total"]) > 0
        assert Decimal(view["totals"]["rcv_total"]) == sum(
            Decimal(s["totals"]["rcv_total"]) for s in view["structures"]
        )

    def test_import_estimate(self, service, seeded):
        """Test an exported estimate re-imports with the same totals."""
        self._populate(service, seeded)
        original = service.recalculate_estimate(seeded["estimate"])
        exported = service.get_estimate(seeded["estimate"])
        other = EstimateService(catalog=service.catalog)
        imported = other.import_estimate(exported)
        assert imported.totals == original.totals


class TestAtomicity:
    """Tests that rejected operations leave the estimate untouched."""

    def test_invalid_line_item(self, service, seeded):
        """Test negative price leaves state unchanged."""
        before = service.get_estimate(seeded["estimate"]).to_dict()
        with pytest.raises(ValidationError):
            service.add_line_item(seeded["room"], {"code": "DRY1/2", "quantity": 10, "unit_price": "-1"})
        assert service.get_estimate(seeded["estimate"]).to_dict() == before

    def test_invalid_update(self, service, seeded):
        """Test a rejected update keeps the prior item."""
        item = service.add_line_item(seeded["room"], {"code": "DRY1/2", "quantity": 10}).target
        before = service.get_estimate(seeded["estimate"]).to_dict()
        with pytest.raises(ValidationError):
            service.update_line_item(item.id, {"depreciation_pct": 150})
        with pytest.raises(ValidationError):
            service.update_line_item(item.id, {"quantity": 0})
        assert service.get_estimate(seeded["estimate"]).to_dict() == before

    def test_bad_request_payload(self, service, seeded):
        """Test schema failures never reach the store."""
        before = service.get_estimate(seeded["estimate"]).to_dict()
        with pytest.raises(ValidationError):
            service.create_missing_wall(seeded["room"], {"width_ft": -3, "height_ft": 7})
        assert service.get_estimate(seeded["estimate"]).to_dict() == before

    def test_results_are_copies(self, service, seeded):
        """Test mutating a returned object does not leak into the store."""
        zone = service.update_zone(seeded["room"], {"notes": "water line at 2 ft"}).target
        zone.name = "Tampered"
        zone.line_items.append(None)
        stored = service.get_estimate(seeded["estimate"]).find_zone(seeded["room"])
        assert stored.name == "Bedroom"
        assert stored.line_items == []

    def test_failed_import_keeps_stored_estimate(self, service, seeded):
        """Test a rejected re-import leaves the stored estimate in place."""
        item = service.add_line_item(seeded["room"], {"code": "DRY1/2", "quantity": 100}).target
        before = service.get_estimate(seeded["estimate"]).to_dict()

        broken = service.get_estimate(seeded["estimate"])
        broken.locate_line_item(item.id)[1].quantity = D("-5")
        with pytest.raises(ValidationError):
            service.import_estimate(broken)

        assert seeded["estimate"] in service.store
        assert service.get_estimate(seeded["estimate"]).to_dict() == before

    def test_import_with_foreign_ids_rejected(self, service, seeded):
        """Test an import reusing another estimate's entity ids is refused."""
        clone = service.get_estimate(seeded["estimate"])
        clone.id = "copied-estimate"
        with pytest.raises(ValidationError) as exc_info:
            service.import_estimate(clone)
        assert exc_info.value.code == ErrorCode.VAL_DUPLICATE_ID
        assert "copied-estimate" not in service.store
        assert service.store.estimate_id_for("zone", seeded["room"]) == seeded["estimate"]

    def test_oversized_quantity(self, service, seeded):
        """Test a quantity too large to round is a ValidationError."""
        before = service.get_estimate(seeded["estimate"]).to_dict()
        with pytest.raises(ValidationError) as exc_info:
            service.add_line_item(seeded["room"], {"code": "DRY1/2", "quantity": "1e40"})
        assert exc_info.value.code == ErrorCode.VAL_OUT_OF_RANGE
        assert service.get_estimate(seeded["estimate"]).to_dict() == before
