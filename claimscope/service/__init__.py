"""
claimscope.service - Estimate service layer.
"""

from .operations import EstimateService, MutationResult
from .schemas import parse_request
from .store import EstimateStore

__all__ = ["EstimateService", "MutationResult", "EstimateStore", "parse_request"]
