"""
service/store.py - In-memory estimate store.

Holds whole estimate trees keyed by id, plus an index from every owned
entity id back to its estimate so operations addressed by a zone or line
item id can find their tree.
"""

from __future__ import annotations
from typing import Dict, List
import logging

from ..errors.taxonomy import ErrorCode, NotFoundError, ValidationError
from ..hierarchy.models import Estimate

logger = logging.getLogger(__name__)


class EstimateStore:
    """Dictionary-backed store; callers swap whole estimates in and out."""

    def __init__(self):
        self._estimates: Dict[str, Estimate] = {}
        self._owners: Dict[str, str] = {}

    def get(self, estimate_id: str) -> Estimate:
        estimate = self._estimates.get(estimate_id)
        if estimate is None:
            raise NotFoundError("estimate", estimate_id)
        return estimate

    def put(self, estimate: Estimate) -> None:
        """
        Insert or replace an estimate and re-index its entities.

        Raises:
            ValidationError: if any entity id already belongs to another
                estimate. The store is left unchanged.
        """
        shared = self.foreign_ids(estimate)
        if shared:
            raise ValidationError(
                f"Estimate {estimate.id} reuses {len(shared)} entity id(s) owned by other estimates",
                code=ErrorCode.VAL_DUPLICATE_ID,
                recovery_hint="Assign fresh ids before importing",
                entity_ids=shared,
            )
        self._drop_index(estimate.id)
        self._estimates[estimate.id] = estimate
        for entity_id in estimate.entity_ids():
            self._owners[entity_id] = estimate.id

    def delete(self, estimate_id: str) -> None:
        if estimate_id not in self._estimates:
            raise NotFoundError("estimate", estimate_id)
        self._drop_index(estimate_id)
        del self._estimates[estimate_id]

    def estimate_id_for(self, entity: str, entity_id: str) -> str:
        """
        Estimate owning an entity.

        Raises:
            NotFoundError: tagged with the requested entity kind.
        """
        owner = self._owners.get(entity_id)
        if owner is None:
            raise NotFoundError(entity, entity_id)
        return owner

    def foreign_ids(self, estimate: Estimate) -> List[str]:
        """Entity ids of `estimate` already indexed under a different estimate."""
        return [
            entity_id for entity_id in estimate.entity_ids()
            if self._owners.get(entity_id, estimate.id) != estimate.id
        ]

    def __contains__(self, estimate_id: str) -> bool:
        return estimate_id in self._estimates

    def __len__(self) -> int:
        return len(self._estimates)

    def _drop_index(self, estimate_id: str) -> None:
        stale = [k for k, v in self._owners.items() if v == estimate_id]
        for key in stale:
            del self._owners[key]
