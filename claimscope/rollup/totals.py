"""
rollup/totals.py - Financial totals shared by every rollup level.
"""

from __future__ import annotations
from dataclasses import dataclass, fields
from decimal import Decimal
from typing import Any, Dict, Iterable

from ..core.money import ZERO
from ..hierarchy.derived import FinancialResult


@dataclass
class Totals:
    """
    Sums of line item financial results.

    Built by exact Decimal addition of already-rounded item values, so the
    reconciling identity rcv_total - acv_total == depreciation_total holds
    at every level.
    """
    line_item_total: Decimal = ZERO
    tax_total: Decimal = ZERO
    rcv_total: Decimal = ZERO
    depreciation_total: Decimal = ZERO
    recoverable_depreciation: Decimal = ZERO
    non_recoverable_depreciation: Decimal = ZERO
    acv_total: Decimal = ZERO
    item_count: int = 0

    def add_result(self, result: FinancialResult) -> None:
        self.line_item_total += result.subtotal
        self.tax_total += result.tax_amount
        self.rcv_total += result.rcv
        self.depreciation_total += result.depreciation_amount
        self.recoverable_depreciation += result.recoverable_depreciation
        self.non_recoverable_depreciation += result.non_recoverable_depreciation
        self.acv_total += result.acv
        self.item_count += 1

    def add(self, other: "Totals") -> None:
        for f in fields(self):
            setattr(self, f.name, getattr(self, f.name) + getattr(other, f.name))

    def __add__(self, other: "Totals") -> "Totals":
        combined = Totals()
        combined.add(self)
        combined.add(other)
        return combined

    @classmethod
    def from_results(cls, results: Iterable[FinancialResult]) -> "Totals":
        totals = cls()
        for result in results:
            totals.add_result(result)
        return totals

    @classmethod
    def sum(cls, parts: Iterable["Totals"]) -> "Totals":
        totals = cls()
        for part in parts:
            totals.add(part)
        return totals

    def reconciles(self) -> bool:
        """RCV - ACV equals depreciation, and depreciation splits cleanly."""
        return (
            self.rcv_total - self.acv_total == self.depreciation_total
            and self.recoverable_depreciation + self.non_recoverable_depreciation
            == self.depreciation_total
            and self.line_item_total + self.tax_total == self.rcv_total
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "line_item_total": str(self.line_item_total),
            "tax_total": str(self.tax_total),
            "rcv_total": str(self.rcv_total),
            "depreciation_total": str(self.depreciation_total),
            "recoverable_depreciation": str(self.recoverable_depreciation),
            "non_recoverable_depreciation": str(self.non_recoverable_depreciation),
            "acv_total": str(self.acv_total),
            "item_count": self.item_count,
        }
