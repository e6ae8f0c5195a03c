"""
hierarchy/derived.py - Derived state attached to zones and line items.

These records are produced by the dimension engine and the line item
financial engine. They are never edited by hand; the engines replace
them wholesale whenever their inputs change.
"""

from __future__ import annotations
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any, Dict, List, Optional

from ..core.enums import ZoneType
from ..errors.taxonomy import ConsistencyWarning


@dataclass
class DerivedDimensions:
    """
    Usable quantities derived from a zone's raw geometry.

    Only keys applicable to the zone type are present in `values`. A key
    that is absent means "not applicable", which is different from a key
    measured as zero.
    """
    zone_type: ZoneType
    values: Dict[str, Decimal] = field(default_factory=dict)
    height_ft: Optional[Decimal] = None
    default_height_used: bool = False
    pitch_multiplier: Optional[Decimal] = None
    opening_count: int = 0
    warnings: List[ConsistencyWarning] = field(default_factory=list)

    def get(self, key: str) -> Optional[Decimal]:
        """Value for a dimension key, None when not applicable."""
        return self.values.get(key)

    def __contains__(self, key: str) -> bool:
        return key in self.values

    @property
    def floor_sf(self) -> Decimal:
        return self.values.get("sf_floor", Decimal("0"))

    @property
    def gross_wall_sf(self) -> Optional[Decimal]:
        return self.values.get("sf_walls_gross")

    @property
    def opening_sf(self) -> Optional[Decimal]:
        return self.values.get("sf_openings")

    @property
    def net_wall_sf(self) -> Optional[Decimal]:
        return self.values.get("sf_walls")

    def same_values(self, other: Optional["DerivedDimensions"]) -> bool:
        """True when both records carry identical dimension values."""
        if other is None:
            return False
        return self.values == other.values

    def to_dict(self) -> Dict[str, Any]:
        return {
            "zone_type": self.zone_type.value,
            "values": {k: str(v) for k, v in sorted(self.values.items())},
            "height_ft": str(self.height_ft) if self.height_ft is not None else None,
            "default_height_used": self.default_height_used,
            "pitch_multiplier": str(self.pitch_multiplier) if self.pitch_multiplier is not None else None,
            "opening_count": self.opening_count,
            "warnings": [w.to_dict() for w in self.warnings],
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "DerivedDimensions":
        """Deserialize from dictionary. Warnings are recomputed, not restored."""
        height = data.get("height_ft")
        pitch = data.get("pitch_multiplier")
        return cls(
            zone_type=ZoneType(data.get("zone_type", "room")),
            values={k: Decimal(str(v)) for k, v in data.get("values", {}).items()},
            height_ft=Decimal(str(height)) if height is not None else None,
            default_height_used=data.get("default_height_used", False),
            pitch_multiplier=Decimal(str(pitch)) if pitch is not None else None,
            opening_count=data.get("opening_count", 0),
        )


@dataclass(frozen=True)
class FinancialResult:
    """
    Priced result for a single line item.

    rcv = subtotal + tax_amount
    acv = rcv - depreciation_amount
    depreciation_amount = recoverable_depreciation + non_recoverable_depreciation
    """
    subtotal: Decimal
    tax_amount: Decimal
    rcv: Decimal
    depreciation_pct: Decimal
    depreciation_amount: Decimal
    acv: Decimal
    recoverable_depreciation: Decimal
    non_recoverable_depreciation: Decimal

    def to_dict(self) -> Dict[str, Any]:
        return {
            "subtotal": str(self.subtotal),
            "tax_amount": str(self.tax_amount),
            "rcv": str(self.rcv),
            "depreciation_pct": str(self.depreciation_pct),
            "depreciation_amount": str(self.depreciation_amount),
            "acv": str(self.acv),
            "recoverable_depreciation": str(self.recoverable_depreciation),
            "non_recoverable_depreciation": str(self.non_recoverable_depreciation),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "FinancialResult":
        return cls(**{
            name: Decimal(str(data.get(name, "0")))
            for name in (
                "subtotal",
                "tax_amount",
                "rcv",
                "depreciation_pct",
                "depreciation_amount",
                "acv",
                "recoverable_depreciation",
                "non_recoverable_depreciation",
            )
        })
