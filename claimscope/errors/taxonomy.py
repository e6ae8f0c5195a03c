"""
errors/taxonomy.py - Error classification for the estimate engine.

Two kinds of problems exist:

- Errors (EstimateError subclasses) reject an operation before any state
  is mutated. ValidationError covers bad input, NotFoundError covers
  unknown ids and catalog codes.
- ConsistencyWarning records are not raised. They describe conditions the
  engine tolerates (openings larger than the wall, a dimension-driven
  item pushed to zero) and travel alongside the result.
"""

from __future__ import annotations
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Optional


class ErrorSeverity(Enum):
    """Error severity levels."""
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"


class ErrorCategory(Enum):
    """Error categories."""
    VALIDATION = "validation"
    NOT_FOUND = "not_found"
    CONSISTENCY = "consistency"


class ErrorCode(Enum):
    """Specific error codes."""

    # Validation (1xxx)
    VAL_FAILED = 1001
    VAL_MISSING_DIMENSION = 1002
    VAL_NEGATIVE_DIMENSION = 1003
    VAL_NON_POSITIVE_QUANTITY = 1004
    VAL_NEGATIVE_PRICE = 1005
    VAL_OPENING_DIMENSIONS = 1006
    VAL_DEPRECIATION_RANGE = 1007
    VAL_UNKNOWN_DIMENSION_KEY = 1008
    VAL_DUPLICATE_COVERAGE = 1009
    VAL_BAD_PITCH = 1010
    VAL_OUT_OF_RANGE = 1011
    VAL_MALFORMED_ESTIMATE = 1012
    VAL_DUPLICATE_ID = 1013

    # Not found (2xxx)
    NF_ESTIMATE = 2001
    NF_STRUCTURE = 2002
    NF_AREA = 2003
    NF_ZONE = 2004
    NF_LINE_ITEM = 2005
    NF_MISSING_WALL = 2006
    NF_SUBROOM = 2007
    NF_COVERAGE = 2008
    NF_CATALOG_ITEM = 2009

    # Consistency warnings (3xxx)
    CON_OPENINGS_EXCEED_WALL_AREA = 3001
    CON_OPENINGS_IGNORED = 3002
    CON_SUBROOMS_IGNORED = 3003
    CON_DIMENSION_QUANTITY_ZERO = 3004
    CON_COVERAGE_LIMIT_EXCEEDED = 3005
    CON_DANGLING_REFERENCE = 3006
    CON_DEFAULT_HEIGHT_USED = 3007


# =============================================================================
# EXCEPTIONS
# =============================================================================

class EstimateError(Exception):
    """
    Base class for estimate engine errors.

    Provides structured error information with:
    - Error code for programmatic handling
    - Human-readable message
    - Recovery hint for the caller
    - Detail dictionary for debugging
    """

    code: ErrorCode = ErrorCode.VAL_FAILED
    category: ErrorCategory = ErrorCategory.VALIDATION
    severity: ErrorSeverity = ErrorSeverity.ERROR

    def __init__(
        self,
        message: str = "",
        *,
        code: Optional[ErrorCode] = None,
        recovery_hint: str = "",
        details: Optional[Dict[str, Any]] = None,
        **kwargs,
    ):
        self.message = message or self.__class__.__doc__ or "Estimate error"
        if code is not None:
            self.code = code
        self.recovery_hint = recovery_hint
        self.details = dict(details or {})
        self.details.update(kwargs)

        super().__init__(self.message)

    def to_dict(self) -> Dict[str, Any]:
        """Convert error to dictionary for API responses."""
        return {
            "code": self.code.value,
            "code_name": self.code.name,
            "category": self.category.value,
            "severity": self.severity.value,
            "message": self.message,
            "recovery_hint": self.recovery_hint,
            "details": {k: _jsonable(v) for k, v in self.details.items()},
        }

    def __str__(self) -> str:
        parts = [f"[{self.code.name}] {self.message}"]
        if self.recovery_hint:
            parts.append(f"Hint: {self.recovery_hint}")
        return " ".join(parts)


class ValidationError(EstimateError):
    """Input rejected before any state was mutated."""

    code = ErrorCode.VAL_FAILED
    category = ErrorCategory.VALIDATION


class NotFoundError(EstimateError):
    """Referenced entity or catalog code does not exist."""

    category = ErrorCategory.NOT_FOUND

    _CODES = {
        "estimate": ErrorCode.NF_ESTIMATE,
        "structure": ErrorCode.NF_STRUCTURE,
        "area": ErrorCode.NF_AREA,
        "zone": ErrorCode.NF_ZONE,
        "line_item": ErrorCode.NF_LINE_ITEM,
        "missing_wall": ErrorCode.NF_MISSING_WALL,
        "subroom": ErrorCode.NF_SUBROOM,
        "coverage": ErrorCode.NF_COVERAGE,
        "catalog_item": ErrorCode.NF_CATALOG_ITEM,
    }

    def __init__(self, entity: str, entity_id: Any, message: str = "", **kwargs):
        self.entity = entity
        self.entity_id = entity_id
        message = message or f"{entity.replace('_', ' ').capitalize()} {entity_id} not found"
        super().__init__(
            message,
            code=self._CODES.get(entity, ErrorCode.NF_ESTIMATE),
            entity=entity,
            entity_id=entity_id,
            **kwargs,
        )


# =============================================================================
# WARNINGS
# =============================================================================

@dataclass
class ConsistencyWarning:
    """Non-fatal condition reported alongside a result."""

    code: ErrorCode
    message: str
    entity_id: Optional[str] = None
    details: Dict[str, Any] = field(default_factory=dict)

    @property
    def severity(self) -> ErrorSeverity:
        return ErrorSeverity.WARNING

    def to_dict(self) -> Dict[str, Any]:
        return {
            "code": self.code.value,
            "code_name": self.code.name,
            "category": ErrorCategory.CONSISTENCY.value,
            "severity": self.severity.value,
            "message": self.message,
            "entity_id": self.entity_id,
            "details": {k: _jsonable(v) for k, v in self.details.items()},
        }


def _jsonable(value: Any) -> Any:
    if isinstance(value, (str, int, float, bool, type(None))):
        return value
    if isinstance(value, (list, tuple)):
        return [_jsonable(v) for v in value]
    if isinstance(value, dict):
        return {str(k): _jsonable(v) for k, v in value.items()}
    if isinstance(value, Enum):
        return value.value
    return str(value)
