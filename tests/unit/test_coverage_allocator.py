"""
Unit tests for the coverage allocator.
"""

import pytest

from claimscope.core.enums import CoverageType
from claimscope.errors.taxonomy import ErrorCode
from claimscope.hierarchy.models import Area, Coverage, Estimate, Structure, Zone
from claimscope.rollup import allocate_by_coverage, rollup

from conftest import D, make_priced_item


@pytest.fixture
def dwelling():
    return Coverage(coverage_type=CoverageType.DWELLING, name="Dwelling", policy_limit=D("250000"), deductible=D("1000"))


@pytest.fixture
def contents():
    return Coverage(coverage_type=CoverageType.CONTENTS, name="Contents", sort_order=1)


def _estimate(coverages, items):
    zone = Zone(name="Living room", line_items=items)
    return Estimate(
        coverages=coverages,
        structures=[Structure(name="House", areas=[Area(name="Interior", zones=[zone])])],
    )


class TestAllocateByCoverage:
    """Tests for allocate_by_coverage()."""

    def test_dwelling_and_unassigned(self, dwelling):
        """Test dwelling 270 plus unassigned 100 equals estimate 370."""
        assigned = make_priced_item(coverage_id=dwelling.id)
        unassigned = make_priced_item(quantity="100", unit_price="1.00", tax_rate="0", depreciation_pct="0")
        estimate = _estimate([dwelling], [assigned, unassigned])

        allocation = allocate_by_coverage(estimate)

        assert allocation.bucket(dwelling.id).totals.rcv_total == D("270.00")
        assert allocation.unassigned.totals.rcv_total == D("100.00")
        assert rollup(estimate).totals.rcv_total == D("370.00")

    def test_buckets_sum_to_rollup(self, dwelling, contents):
        """Test bucket totals equal the estimate rollup exactly."""
        items = [
            make_priced_item(coverage_id=dwelling.id),
            make_priced_item(quantity="7.5", unit_price="19.99", coverage_id=contents.id, depreciation_pct="35"),
            make_priced_item(quantity="3", unit_price="0.33", tax_rate="0.0725"),
        ]
        estimate = _estimate([dwelling, contents], items)
        assert allocate_by_coverage(estimate).total() == rollup(estimate).totals

    def test_every_coverage_has_bucket(self, dwelling, contents):
        """Test empty coverages still get a bucket."""
        allocation = allocate_by_coverage(_estimate([dwelling, contents], []))
        assert set(allocation.buckets) == {dwelling.id, contents.id, None}
        assert allocation.bucket(contents.id).totals.item_count == 0

    def test_bucket_items(self, dwelling):
        """Test buckets list their line items."""
        item = make_priced_item(coverage_id=dwelling.id)
        allocation = allocate_by_coverage(_estimate([dwelling], [item]))
        assert [i.id for i in allocation.bucket(dwelling.id).items] == [item.id]
        assert allocation.unassigned.items == []

    def test_net_claim(self, dwelling):
        """Test net claim is ACV less deductible."""
        dwelling.deductible = D("50")
        allocation = allocate_by_coverage(_estimate([dwelling], [make_priced_item(coverage_id=dwelling.id)]))
        assert allocation.bucket(dwelling.id).net_claim == D("166.00")

    def test_net_claim_floors_at_zero(self, dwelling):
        """Test deductible above ACV gives zero net claim."""
        allocation = allocate_by_coverage(_estimate([dwelling], [make_priced_item(coverage_id=dwelling.id)]))
        assert allocation.bucket(dwelling.id).net_claim == D("0")

    def test_limit_exceeded(self, dwelling):
        """Test RCV above policy limit is flagged and warned."""
        dwelling.policy_limit = D("200")
        allocation = allocate_by_coverage(_estimate([dwelling], [make_priced_item(coverage_id=dwelling.id)]))
        assert allocation.bucket(dwelling.id).limit_exceeded
        assert [w.code for w in allocation.warnings] == [ErrorCode.CON_COVERAGE_LIMIT_EXCEEDED]

    def test_zero_limit_means_unlimited(self, contents):
        """Test a zero policy limit is never exceeded."""
        allocation = allocate_by_coverage(_estimate([contents], [make_priced_item(coverage_id=contents.id)]))
        assert not allocation.bucket(contents.id).limit_exceeded
        assert allocation.warnings == []

    def test_dangling_coverage_reference(self, dwelling):
        """Test items pointing at a missing coverage keep their own bucket."""
        item = make_priced_item(coverage_id="gone")
        estimate = _estimate([dwelling], [item])
        allocation = allocate_by_coverage(estimate)
        assert allocation.bucket("gone").totals.rcv_total == D("270.00")
        assert ErrorCode.CON_DANGLING_REFERENCE in [w.code for w in allocation.warnings]
        assert allocation.total() == rollup(estimate).totals

    def test_to_dict(self, dwelling):
        """Test serialization with and without items."""
        allocation = allocate_by_coverage(_estimate([dwelling], [make_priced_item(coverage_id=dwelling.id)]))
        data = allocation.to_dict(include_items=False)
        assert data["total"]["rcv_total"] == "270.00"
        assert "items" not in data["buckets"][0]
        assert data["buckets"][-1]["coverage_id"] is None
        assert data["buckets"][-1]["unassigned"] is True
        assert data["buckets"][0]["unassigned"] is False
