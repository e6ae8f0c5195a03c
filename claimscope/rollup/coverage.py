"""
rollup/coverage.py - Coverage Allocator.

Groups the same line items the Rollup Aggregator reads by their coverage
reference instead of their place in the tree. Unassigned items land in
the bucket keyed None. The allocator never touches structural totals or
line item financials.
"""

from __future__ import annotations
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any, Dict, List, Optional
import logging

from ..core.enums import CoverageType
from ..core.money import ZERO
from ..errors.taxonomy import ConsistencyWarning, ErrorCode
from ..hierarchy.models import Coverage, Estimate, LineItem
from .totals import Totals

logger = logging.getLogger(__name__)


@dataclass
class CoverageBucket:
    """Totals for one coverage, or for unassigned items when coverage_id is None."""
    coverage_id: Optional[str]
    name: str
    coverage_type: Optional[CoverageType] = None
    policy_limit: Decimal = ZERO
    deductible: Decimal = ZERO
    totals: Totals = field(default_factory=Totals)
    items: List[LineItem] = field(default_factory=list)

    @property
    def is_unassigned(self) -> bool:
        return self.coverage_id is None

    @property
    def net_claim(self) -> Decimal:
        """ACV less deductible, never below zero."""
        return max(self.totals.acv_total - self.deductible, ZERO)

    @property
    def limit_exceeded(self) -> bool:
        return self.policy_limit > 0 and self.totals.rcv_total > self.policy_limit

    def to_dict(self, include_items: bool = True) -> Dict[str, Any]:
        data = {
            "coverage_id": self.coverage_id,
            "name": self.name,
            "coverage_type": self.coverage_type.value if self.coverage_type else None,
            "unassigned": self.is_unassigned,
            "policy_limit": str(self.policy_limit),
            "deductible": str(self.deductible),
            "net_claim": str(self.net_claim),
            "limit_exceeded": self.limit_exceeded,
            "totals": self.totals.to_dict(),
        }
        if include_items:
            data["items"] = [item.to_dict() for item in self.items]
        return data

    @classmethod
    def for_coverage(cls, coverage: Coverage) -> "CoverageBucket":
        return cls(
            coverage_id=coverage.id,
            name=coverage.name,
            coverage_type=coverage.coverage_type,
            policy_limit=coverage.policy_limit,
            deductible=coverage.deductible,
        )


UNASSIGNED_NAME = "Unassigned"


@dataclass
class CoverageAllocation:
    """Buckets keyed by coverage id, with None for unassigned items."""
    estimate_id: str
    buckets: Dict[Optional[str], CoverageBucket]
    warnings: List[ConsistencyWarning] = field(default_factory=list)

    @property
    def unassigned(self) -> CoverageBucket:
        return self.buckets[None]

    def bucket(self, coverage_id: Optional[str]) -> CoverageBucket:
        return self.buckets[coverage_id]

    def total(self) -> Totals:
        """Sum over every bucket, unassigned included."""
        return Totals.sum(b.totals for b in self.buckets.values())

    def to_dict(self, include_items: bool = True) -> Dict[str, Any]:
        return {
            "estimate_id": self.estimate_id,
            "buckets": [b.to_dict(include_items) for b in self.buckets.values()],
            "total": self.total().to_dict(),
            "warnings": [w.to_dict() for w in self.warnings],
        }


def allocate_by_coverage(estimate: Estimate) -> CoverageAllocation:
    """
    Group priced line items by coverage.

    Every coverage on the estimate gets a bucket, even when empty. Items
    pointing at a coverage id the estimate does not hold keep their own
    bucket (so bucket totals still sum to the estimate total) and raise a
    dangling reference warning.
    """
    buckets: Dict[Optional[str], CoverageBucket] = {}
    for coverage in sorted(estimate.coverages, key=lambda c: c.sort_order):
        buckets[coverage.id] = CoverageBucket.for_coverage(coverage)
    buckets[None] = CoverageBucket(coverage_id=None, name=UNASSIGNED_NAME)

    warnings: List[ConsistencyWarning] = []

    for _, item in estimate.iter_line_items():
        if item.financials is None:
            continue
        bucket = buckets.get(item.coverage_id)
        if bucket is None:
            bucket = CoverageBucket(coverage_id=item.coverage_id, name=f"Unknown coverage {item.coverage_id}")
            buckets[item.coverage_id] = bucket
            warnings.append(ConsistencyWarning(
                code=ErrorCode.CON_DANGLING_REFERENCE,
                message=f"Line items reference missing coverage {item.coverage_id}",
                entity_id=item.coverage_id,
            ))
        bucket.totals.add_result(item.financials)
        bucket.items.append(item)

    for bucket in buckets.values():
        if bucket.limit_exceeded:
            warnings.append(ConsistencyWarning(
                code=ErrorCode.CON_COVERAGE_LIMIT_EXCEEDED,
                message=(
                    f"Coverage '{bucket.name}' RCV {bucket.totals.rcv_total} "
                    f"exceeds policy limit {bucket.policy_limit}"
                ),
                entity_id=bucket.coverage_id,
                details={
                    "rcv_total": bucket.totals.rcv_total,
                    "policy_limit": bucket.policy_limit,
                },
            ))
            logger.warning(warnings[-1].message)

    return CoverageAllocation(estimate_id=estimate.id, buckets=buckets, warnings=warnings)
