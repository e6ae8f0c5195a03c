"""
pricing/catalog.py - Catalog Resolver contract and in-memory catalog.

The engine never computes prices. It asks a resolver for the unit price,
unit of measure and tax rate of a repair-item code in a region, with an
optional carrier profile, and treats the answer as given.
"""

from __future__ import annotations
from abc import ABC, abstractmethod
from dataclasses import dataclass
from decimal import Decimal
from pathlib import Path
from typing import Any, Dict, Optional, Tuple
import json
import logging

from ..core.money import to_decimal
from ..errors.taxonomy import NotFoundError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CatalogPrice:
    """Resolved price for one item code."""
    unit_price: Decimal
    unit: str
    tax_rate: Decimal = Decimal("0")
    description: str = ""
    trade_code: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "unit_price": str(self.unit_price),
            "unit": self.unit,
            "tax_rate": str(self.tax_rate),
            "description": self.description,
            "trade_code": self.trade_code,
        }


class CatalogResolver(ABC):
    """Source of unit prices for repair-item codes."""

    @abstractmethod
    def resolve_price(
        self,
        item_code: str,
        region_id: Optional[str],
        carrier_profile_id: Optional[str] = None,
    ) -> CatalogPrice:
        """
        Resolve a price.

        Raises:
            NotFoundError: if the code is unknown to the catalog.
        """


_Key = Tuple[Optional[str], Optional[str], str]


class InMemoryCatalog(CatalogResolver):
    """
    Dictionary-backed catalog with regional and carrier overrides.

    Lookup order for a code: (region, carrier), (any region, carrier),
    (region, any carrier), then the base entry.
    """

    def __init__(self):
        self._entries: Dict[_Key, CatalogPrice] = {}

    def add_item(
        self,
        code: str,
        unit_price: Any,
        unit: str,
        tax_rate: Any = "0",
        description: str = "",
        trade_code: Optional[str] = None,
        region_id: Optional[str] = None,
        carrier_profile_id: Optional[str] = None,
    ) -> CatalogPrice:
        price = CatalogPrice(
            unit_price=to_decimal(unit_price, "unit_price"),
            unit=unit,
            tax_rate=to_decimal(tax_rate, "tax_rate"),
            description=description,
            trade_code=trade_code,
        )
        self._entries[(region_id, carrier_profile_id, code.upper())] = price
        return price

    def resolve_price(
        self,
        item_code: str,
        region_id: Optional[str],
        carrier_profile_id: Optional[str] = None,
    ) -> CatalogPrice:
        code = item_code.upper()
        candidates = (
            (region_id, carrier_profile_id, code),
            (None, carrier_profile_id, code),
            (region_id, None, code),
            (None, None, code),
        )
        for key in candidates:
            price = self._entries.get(key)
            if price is not None:
                logger.debug(f"Resolved {code} via {key[:2]}: {price.unit_price}/{price.unit}")
                return price

        raise NotFoundError(
            "catalog_item",
            item_code,
            recovery_hint="Check the item code or supply a unit price",
            region_id=region_id,
            carrier_profile_id=carrier_profile_id,
        )

    def __contains__(self, code: str) -> bool:
        code = code.upper()
        return any(key[2] == code for key in self._entries)

    def __len__(self) -> int:
        return len({key[2] for key in self._entries})

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "InMemoryCatalog":
        """Build from {"items": [{code, unit_price, unit, ...}, ...]}."""
        catalog = cls()
        for entry in data.get("items", []):
            catalog.add_item(
                code=entry["code"],
                unit_price=entry["unit_price"],
                unit=entry.get("unit", "EA"),
                tax_rate=entry.get("tax_rate", "0"),
                description=entry.get("description", ""),
                trade_code=entry.get("trade_code"),
                region_id=entry.get("region_id"),
                carrier_profile_id=entry.get("carrier_profile_id"),
            )
        return catalog

    @classmethod
    def from_file(cls, filepath: str) -> "InMemoryCatalog":
        with open(Path(filepath)) as f:
            data = json.load(f)
        catalog = cls.from_dict(data)
        logger.info(f"Loaded {len(catalog)} catalog codes from {filepath}")
        return catalog
