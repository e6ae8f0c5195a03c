"""
claimscope.validators - Estimate consistency checks.
"""

from .estimate import CheckFinding, EstimateCheckReport, check_estimate

__all__ = ["CheckFinding", "EstimateCheckReport", "check_estimate"]
