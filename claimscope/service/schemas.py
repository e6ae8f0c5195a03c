"""
service/schemas.py - Request models for service operations.

Requests arrive as plain dicts (from an HTTP layer, a CLI, a test) and
are parsed into these pydantic models before any state is touched.
Update models are partial: only fields the caller actually sent are
applied (model_dump(exclude_unset=True)).
"""

from __future__ import annotations
from decimal import Decimal
from typing import Any, Dict, Optional, Type, TypeVar, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic import ValidationError as PydanticValidationError

from ..core.enums import (
    AreaType,
    CoverageType,
    DepreciationType,
    OpeningType,
    ZoneStatus,
    ZoneType,
)
from ..dimensions.keys import is_known_key
from ..dimensions.pitch import parse_pitch
from ..errors.taxonomy import ValidationError

ModelT = TypeVar("ModelT", bound=BaseModel)


class RequestModel(BaseModel):
    """Base for all requests: unknown fields are rejected."""
    model_config = ConfigDict(extra="forbid")

    def changes(self) -> Dict[str, Any]:
        """Fields the caller explicitly set."""
        return self.model_dump(exclude_unset=True)


def parse_request(model: Type[ModelT], payload: Union[ModelT, Dict[str, Any], None]) -> ModelT:
    """
    Parse a payload into a request model.

    Raises:
        ValidationError: wrapping the pydantic error list in details["errors"]
    """
    if isinstance(payload, model):
        return payload
    try:
        return model.model_validate(payload or {})
    except PydanticValidationError as e:
        errors = e.errors(include_url=False)
        first = errors[0] if errors else {}
        location = ".".join(str(p) for p in first.get("loc", ()))
        raise ValidationError(
            f"Invalid {model.__name__}: {location} {first.get('msg', '')}".strip(),
            recovery_hint="Correct the listed fields and resend",
            errors=[
                {"loc": list(err.get("loc", ())), "msg": err.get("msg"), "type": err.get("type")}
                for err in errors
            ],
        )


# =============================================================================
# ESTIMATE / HIERARCHY
# =============================================================================

class EstimateCreate(RequestModel):
    claim_id: Optional[str] = None
    name: Optional[str] = None
    region_id: Optional[str] = None
    carrier_profile_id: Optional[str] = None


class InitializeHierarchyRequest(RequestModel):
    """Flags for seeding the default structure skeleton."""
    include_interior: bool = True
    include_exterior: bool = True
    include_roofing: bool = True
    structure_name: Optional[str] = None


class StructureCreate(RequestModel):
    name: str = Field(min_length=1)
    description: Optional[str] = None
    year_built: Optional[int] = None
    construction_type: Optional[str] = None
    stories: int = Field(default=1, ge=1)
    sort_order: Optional[int] = None


class StructureUpdate(RequestModel):
    name: Optional[str] = Field(default=None, min_length=1)
    description: Optional[str] = None
    year_built: Optional[int] = None
    construction_type: Optional[str] = None
    stories: Optional[int] = Field(default=None, ge=1)
    sort_order: Optional[int] = None


class AreaCreate(RequestModel):
    name: str = Field(min_length=1)
    area_type: AreaType = AreaType.INTERIOR
    sort_order: Optional[int] = None


class AreaUpdate(RequestModel):
    name: Optional[str] = Field(default=None, min_length=1)
    area_type: Optional[AreaType] = None
    sort_order: Optional[int] = None


def _check_pitch(value: Optional[str]) -> Optional[str]:
    if value is not None:
        try:
            parse_pitch(value)
        except ValidationError as e:
            raise ValueError(e.message)
    return value


class ZoneCreate(RequestModel):
    """New zone; raw dimensions are optional until the zone is measured."""
    name: str = Field(min_length=1)
    zone_type: ZoneType = ZoneType.ROOM
    length_ft: Optional[Decimal] = Field(default=None, ge=0)
    width_ft: Optional[Decimal] = Field(default=None, ge=0)
    height_ft: Optional[Decimal] = Field(default=None, ge=0)
    pitch: Optional[str] = None
    status: ZoneStatus = ZoneStatus.PENDING
    zone_code: Optional[str] = None
    room_type: Optional[str] = None
    floor_level: Optional[str] = None
    notes: Optional[str] = None
    sort_order: Optional[int] = None

    @field_validator("pitch")
    @classmethod
    def validate_pitch(cls, v):
        return _check_pitch(v)


class ZoneUpdate(RequestModel):
    name: Optional[str] = Field(default=None, min_length=1)
    zone_type: Optional[ZoneType] = None
    length_ft: Optional[Decimal] = Field(default=None, ge=0)
    width_ft: Optional[Decimal] = Field(default=None, ge=0)
    height_ft: Optional[Decimal] = Field(default=None, ge=0)
    pitch: Optional[str] = None
    status: Optional[ZoneStatus] = None
    zone_code: Optional[str] = None
    room_type: Optional[str] = None
    floor_level: Optional[str] = None
    notes: Optional[str] = None
    sort_order: Optional[int] = None

    @field_validator("pitch")
    @classmethod
    def validate_pitch(cls, v):
        return _check_pitch(v)


# =============================================================================
# ZONE CHILDREN
# =============================================================================

class MissingWallCreate(RequestModel):
    width_ft: Decimal = Field(gt=0)
    height_ft: Decimal = Field(gt=0)
    quantity: int = Field(default=1, ge=1)
    opening_type: OpeningType = OpeningType.OPENING
    name: Optional[str] = None
    goes_to_floor: bool = True
    goes_to_ceiling: bool = False
    opens_into: Optional[str] = None
    sort_order: Optional[int] = None


class MissingWallUpdate(RequestModel):
    width_ft: Optional[Decimal] = Field(default=None, gt=0)
    height_ft: Optional[Decimal] = Field(default=None, gt=0)
    quantity: Optional[int] = Field(default=None, ge=1)
    opening_type: Optional[OpeningType] = None
    name: Optional[str] = None
    goes_to_floor: Optional[bool] = None
    goes_to_ceiling: Optional[bool] = None
    opens_into: Optional[str] = None
    sort_order: Optional[int] = None


class SubroomCreate(RequestModel):
    name: str = Field(min_length=1)
    length_ft: Decimal = Field(ge=0)
    width_ft: Decimal = Field(ge=0)
    height_ft: Optional[Decimal] = Field(default=None, ge=0)
    subroom_type: Optional[str] = None
    is_addition: bool = True
    sort_order: Optional[int] = None


class SubroomUpdate(RequestModel):
    name: Optional[str] = Field(default=None, min_length=1)
    length_ft: Optional[Decimal] = Field(default=None, ge=0)
    width_ft: Optional[Decimal] = Field(default=None, ge=0)
    height_ft: Optional[Decimal] = Field(default=None, ge=0)
    subroom_type: Optional[str] = None
    is_addition: Optional[bool] = None
    sort_order: Optional[int] = None


# =============================================================================
# LINE ITEMS
# =============================================================================

class _LineItemFields(RequestModel):
    code: str = Field(min_length=1)
    unit: Optional[str] = None
    unit_price: Optional[Decimal] = None
    tax_rate: Optional[Decimal] = None
    depreciation_pct: Decimal = Decimal("0")
    depreciation_type: DepreciationType = DepreciationType.PERCENT
    age_years: Optional[Decimal] = None
    life_expectancy_years: Optional[Decimal] = None
    is_recoverable: Optional[bool] = None
    coverage_id: Optional[str] = None
    description: Optional[str] = None
    trade_code: Optional[str] = None
    notes: Optional[str] = None
    sort_order: Optional[int] = None


class LineItemCreate(_LineItemFields):
    """Line item with a user-supplied quantity."""
    quantity: Decimal


class DimensionLineItemCreate(_LineItemFields):
    """Line item whose quantity follows a zone dimension."""
    dimension_key: str

    @field_validator("dimension_key")
    @classmethod
    def validate_dimension_key(cls, v):
        if not is_known_key(v):
            raise ValueError(f"unknown dimension key {v!r}")
        return v


class LineItemUpdate(RequestModel):
    code: Optional[str] = Field(default=None, min_length=1)
    quantity: Optional[Decimal] = None
    unit: Optional[str] = None
    unit_price: Optional[Decimal] = None
    tax_rate: Optional[Decimal] = None
    depreciation_pct: Optional[Decimal] = None
    depreciation_type: Optional[DepreciationType] = None
    age_years: Optional[Decimal] = None
    life_expectancy_years: Optional[Decimal] = None
    is_recoverable: Optional[bool] = None
    description: Optional[str] = None
    trade_code: Optional[str] = None
    notes: Optional[str] = None
    sort_order: Optional[int] = None


# =============================================================================
# COVERAGE
# =============================================================================

class CoverageCreate(RequestModel):
    coverage_type: CoverageType
    name: Optional[str] = None
    policy_limit: Decimal = Field(default=Decimal("0"), ge=0)
    deductible: Decimal = Field(default=Decimal("0"), ge=0)
    sort_order: Optional[int] = None


class LineItemCoverageUpdate(RequestModel):
    """Reassign a line item; None moves it to the unassigned bucket."""
    coverage_id: Optional[str] = None

