"""
errors/ - Error taxonomy for the estimate engine.
"""

from .taxonomy import (
    ErrorSeverity,
    ErrorCategory,
    ErrorCode,
    EstimateError,
    ValidationError,
    NotFoundError,
    ConsistencyWarning,
)

__all__ = [
    "ErrorSeverity",
    "ErrorCategory",
    "ErrorCode",
    "EstimateError",
    "ValidationError",
    "NotFoundError",
    "ConsistencyWarning",
]
