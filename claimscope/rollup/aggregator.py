"""
rollup/aggregator.py - Rollup Aggregator.

Pure bottom-up fold over the current tree:

    zone      = sum of its line item financials
    area      = sum of its zones
    structure = sum of its areas
    estimate  = sum of its structures

Nothing is cached between calls. Every rollup is recomputed from the line
item results, so a child edit can never leave a stale ancestor total.
"""

from __future__ import annotations
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any, Dict, Iterator, List, Optional
import logging

from ..core.enums import TreeLevel
from ..core.money import ZERO
from ..errors.taxonomy import NotFoundError
from ..hierarchy.models import Area, Estimate, Structure, Zone
from .totals import Totals

logger = logging.getLogger(__name__)


@dataclass
class RollupNode:
    """Totals for one node of the estimate tree."""
    level: TreeLevel
    node_id: str
    name: Optional[str]
    totals: Totals
    floor_sf: Decimal = ZERO
    children: List["RollupNode"] = field(default_factory=list)

    def iter_nodes(self) -> Iterator["RollupNode"]:
        yield self
        for child in self.children:
            yield from child.iter_nodes()

    def to_dict(self) -> Dict[str, Any]:
        return {
            "level": self.level.value,
            "id": self.node_id,
            "name": self.name,
            "floor_sf": str(self.floor_sf),
            "totals": self.totals.to_dict(),
            "children": [c.to_dict() for c in self.children],
        }


@dataclass
class EstimateRollup:
    """Rollup of an entire estimate with id lookup for every node."""
    root: RollupNode
    unpriced_item_ids: List[str] = field(default_factory=list)

    def __post_init__(self):
        self._index: Dict[str, RollupNode] = {n.node_id: n for n in self.root.iter_nodes()}

    @property
    def estimate_id(self) -> str:
        return self.root.node_id

    @property
    def totals(self) -> Totals:
        return self.root.totals

    def node(self, node_id: str) -> RollupNode:
        node = self._index.get(node_id)
        if node is None:
            raise NotFoundError("node", node_id, message=f"No rollup node {node_id}")
        return node

    def totals_for(self, node_id: str) -> Totals:
        return self.node(node_id).totals

    def nodes_at(self, level: TreeLevel) -> List[RollupNode]:
        return [n for n in self.root.iter_nodes() if n.level == level]

    def reconciles(self) -> bool:
        """Reconciling identity at every level, and every parent equals its children."""
        for node in self.root.iter_nodes():
            if not node.totals.reconciles():
                return False
            if node.children and Totals.sum(c.totals for c in node.children) != node.totals:
                return False
        return True

    def to_dict(self) -> Dict[str, Any]:
        return {
            "estimate_id": self.estimate_id,
            "totals": self.totals.to_dict(),
            "floor_sf": str(self.root.floor_sf),
            "unpriced_item_ids": list(self.unpriced_item_ids),
            "tree": self.root.to_dict(),
        }


def _zone_node(zone: Zone, unpriced: List[str]) -> RollupNode:
    totals = Totals()
    for item in zone.line_items:
        if item.financials is None:
            unpriced.append(item.id)
            continue
        totals.add_result(item.financials)
    floor_sf = zone.dimensions.floor_sf if zone.dimensions is not None else ZERO
    return RollupNode(TreeLevel.ZONE, zone.id, zone.name, totals, floor_sf)


def _parent_node(level: TreeLevel, node_id: str, name: str, children: List[RollupNode]) -> RollupNode:
    return RollupNode(
        level=level,
        node_id=node_id,
        name=name,
        totals=Totals.sum(c.totals for c in children),
        floor_sf=sum((c.floor_sf for c in children), ZERO),
        children=children,
    )


def _area_node(area: Area, unpriced: List[str]) -> RollupNode:
    zones = [_zone_node(z, unpriced) for z in area.zones]
    return _parent_node(TreeLevel.AREA, area.id, area.name, zones)


def _structure_node(structure: Structure, unpriced: List[str]) -> RollupNode:
    areas = [_area_node(a, unpriced) for a in structure.areas]
    return _parent_node(TreeLevel.STRUCTURE, structure.id, structure.name, areas)


def rollup(estimate: Estimate) -> EstimateRollup:
    """
    Aggregate line item financials at every tree level.

    Line items that have not been priced yet are left out of every total
    and listed in `unpriced_item_ids`.
    """
    unpriced: List[str] = []
    structures = [_structure_node(s, unpriced) for s in estimate.structures]
    root = _parent_node(TreeLevel.ESTIMATE, estimate.id, estimate.name, structures)

    if unpriced:
        logger.warning(f"Estimate {estimate.id}: {len(unpriced)} unpriced line items left out of rollup")
    logger.debug(
        f"Rolled up estimate {estimate.id}: rcv={root.totals.rcv_total} "
        f"acv={root.totals.acv_total} items={root.totals.item_count}"
    )
    return EstimateRollup(root=root, unpriced_item_ids=unpriced)
