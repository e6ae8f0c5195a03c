"""
validators/estimate.py - Whole-estimate consistency checker.

Reads an estimate without mutating it and reports where stored derived
state disagrees with what the engines would produce now:

- zone dimensions stale relative to raw geometry
- line item financials stale relative to their inputs
- dimension-driven quantities that no longer match their dimension
- reconciling identity (RCV - ACV == depreciation) at every level
- coverage buckets not summing to the estimate total
- dangling opens_into / coverage references
- opening and policy limit warnings
"""

from __future__ import annotations
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional
import logging

from ..core.config import EngineConfig
from ..errors.taxonomy import ErrorCode, ErrorSeverity, EstimateError
from ..dimensions.engine import derive_zone_quantities, has_required_dimensions
from ..hierarchy.models import Estimate, LineItem
from ..pricing.line_items import price_line_item
from ..rollup.aggregator import rollup
from ..rollup.coverage import allocate_by_coverage

logger = logging.getLogger(__name__)


@dataclass
class CheckFinding:
    """A single issue found by the checker."""
    check: str
    severity: ErrorSeverity
    message: str
    entity_id: Optional[str] = None
    expected_value: Optional[Any] = None
    actual_value: Optional[Any] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "check": self.check,
            "severity": self.severity.value,
            "message": self.message,
            "entity_id": self.entity_id,
            "expected": str(self.expected_value) if self.expected_value is not None else None,
            "actual": str(self.actual_value) if self.actual_value is not None else None,
        }


@dataclass
class EstimateCheckReport:
    """Outcome of check_estimate()."""
    estimate_id: str
    findings: List[CheckFinding] = field(default_factory=list)

    @property
    def passed(self) -> bool:
        return not any(f.severity == ErrorSeverity.ERROR for f in self.findings)

    @property
    def errors(self) -> List[CheckFinding]:
        return [f for f in self.findings if f.severity == ErrorSeverity.ERROR]

    @property
    def warnings(self) -> List[CheckFinding]:
        return [f for f in self.findings if f.severity == ErrorSeverity.WARNING]

    def by_check(self, check: str) -> List[CheckFinding]:
        return [f for f in self.findings if f.check == check]

    def add(self, check: str, severity: ErrorSeverity, message: str, **kwargs) -> None:
        self.findings.append(CheckFinding(check, severity, message, **kwargs))

    def to_dict(self) -> Dict[str, Any]:
        return {
            "estimate_id": self.estimate_id,
            "passed": self.passed,
            "error_count": len(self.errors),
            "warning_count": len(self.warnings),
            "findings": [f.to_dict() for f in self.findings],
        }


# =============================================================================
# CHECKS
# =============================================================================

def _check_zones(estimate: Estimate, config: EngineConfig, report: EstimateCheckReport) -> None:
    zone_ids = {loc.zone.id for loc in estimate.iter_zones()}

    for location in estimate.iter_zones():
        zone = location.zone

        for wall in zone.missing_walls:
            if wall.opens_into and wall.opens_into not in zone_ids:
                report.add(
                    "dangling_reference", ErrorSeverity.WARNING,
                    f"Opening {wall.id} opens into missing zone {wall.opens_into}",
                    entity_id=wall.id,
                )

        if not has_required_dimensions(zone):
            if zone.dimensions is not None:
                report.add(
                    "stale_dimensions", ErrorSeverity.ERROR,
                    f"Zone '{zone.name}' carries dimensions but lacks required raw dimensions",
                    entity_id=zone.id,
                )
            continue

        try:
            expected = derive_zone_quantities(zone, config)
        except EstimateError as e:
            report.add("invalid_geometry", ErrorSeverity.ERROR, e.message, entity_id=zone.id)
            continue

        for warning in expected.warnings:
            if warning.code == ErrorCode.CON_OPENINGS_EXCEED_WALL_AREA:
                report.add("openings", ErrorSeverity.WARNING, warning.message, entity_id=zone.id)

        if not expected.same_values(zone.dimensions):
            report.add(
                "stale_dimensions", ErrorSeverity.ERROR,
                f"Zone '{zone.name}' dimensions are stale",
                entity_id=zone.id,
                expected_value=expected.to_dict()["values"],
                actual_value=zone.dimensions.to_dict()["values"] if zone.dimensions else None,
            )

        for item in zone.line_items:
            if item.calc_ref is None:
                continue
            wanted = expected.get(item.calc_ref)
            if wanted is None:
                wanted = 0
            if item.quantity != wanted:
                report.add(
                    "dimension_quantity", ErrorSeverity.ERROR,
                    f"Line item {item.code} quantity does not match {item.calc_ref}",
                    entity_id=item.id,
                    expected_value=wanted,
                    actual_value=item.quantity,
                )


def _check_line_items(estimate: Estimate, config: EngineConfig, report: EstimateCheckReport) -> None:
    coverage_ids = {c.id for c in estimate.coverages}

    for _, item in estimate.iter_line_items():
        if item.coverage_id is not None and item.coverage_id not in coverage_ids:
            report.add(
                "dangling_reference", ErrorSeverity.WARNING,
                f"Line item {item.code} references missing coverage {item.coverage_id}",
                entity_id=item.id,
            )
        _check_financials(item, config, report)


def _check_financials(item: LineItem, config: EngineConfig, report: EstimateCheckReport) -> None:
    if item.financials is None:
        report.add(
            "stale_financials", ErrorSeverity.ERROR,
            f"Line item {item.code} has not been priced",
            entity_id=item.id,
        )
        return

    try:
        expected = price_line_item(item, config=config)
    except EstimateError as e:
        report.add("invalid_line_item", ErrorSeverity.ERROR, e.message, entity_id=item.id)
        return

    if expected != item.financials:
        report.add(
            "stale_financials", ErrorSeverity.ERROR,
            f"Line item {item.code} financials are stale",
            entity_id=item.id,
            expected_value=expected.rcv,
            actual_value=item.financials.rcv,
        )

    result = item.financials
    if result.rcv - result.acv != result.depreciation_amount:
        report.add(
            "reconciliation", ErrorSeverity.ERROR,
            f"Line item {item.code}: RCV - ACV != depreciation",
            entity_id=item.id,
        )


def check_estimate(estimate: Estimate, config: Optional[EngineConfig] = None) -> EstimateCheckReport:
    """
    Check an estimate's derived state and cross-checks.

    Returns:
        EstimateCheckReport; `passed` is False when any ERROR finding exists
    """
    config = config or EngineConfig()
    report = EstimateCheckReport(estimate_id=estimate.id)

    _check_zones(estimate, config, report)
    _check_line_items(estimate, config, report)

    tree = rollup(estimate)
    for node in tree.root.iter_nodes():
        if not node.totals.reconciles():
            report.add(
                "reconciliation", ErrorSeverity.ERROR,
                f"{node.level.value} '{node.name}' totals do not reconcile",
                entity_id=node.node_id,
            )

    allocation = allocate_by_coverage(estimate)
    if allocation.total() != tree.totals:
        report.add(
            "coverage_sum", ErrorSeverity.ERROR,
            "Coverage buckets do not sum to the estimate total",
            entity_id=estimate.id,
            expected_value=tree.totals.rcv_total,
            actual_value=allocation.total().rcv_total,
        )
    for warning in allocation.warnings:
        if warning.code == ErrorCode.CON_COVERAGE_LIMIT_EXCEEDED:
            report.add("policy_limit", ErrorSeverity.WARNING, warning.message, entity_id=warning.entity_id)

    logger.info(
        f"Checked estimate {estimate.id}: {len(report.errors)} errors, "
        f"{len(report.warnings)} warnings"
    )
    return report
