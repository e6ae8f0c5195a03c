"""
Unit tests for the error taxonomy, numeric helpers and configuration.
"""

import json
from decimal import Decimal

import pytest

from claimscope.core.config import EngineConfig
from claimscope.core.money import money, quantity, to_decimal
from claimscope.errors import (
    ConsistencyWarning,
    ErrorCategory,
    ErrorCode,
    ErrorSeverity,
    EstimateError,
    NotFoundError,
    ValidationError,
)


class TestErrors:
    """Tests for error classes."""

    def test_validation_error_dict(self):
        """Test ValidationError serializes code, category and details."""
        error = ValidationError(
            "Quantity must be positive",
            code=ErrorCode.VAL_NON_POSITIVE_QUANTITY,
            recovery_hint="Enter a quantity above zero",
            quantity=Decimal("0"),
        )
        data = error.to_dict()
        assert data["code"] == 1004
        assert data["code_name"] == "VAL_NON_POSITIVE_QUANTITY"
        assert data["category"] == "validation"
        assert data["severity"] == "error"
        assert data["details"] == {"quantity": "0"}

    def test_str(self):
        """Test string form includes code and hint."""
        error = ValidationError("Bad", recovery_hint="Fix it")
        assert str(error) == "[VAL_FAILED] Bad Hint: Fix it"

    def test_not_found(self):
        """Test NotFoundError message and entity code."""
        error = NotFoundError("line_item", "li-1")
        assert error.message == "Line item li-1 not found"
        assert error.code == ErrorCode.NF_LINE_ITEM
        assert error.category == ErrorCategory.NOT_FOUND
        assert isinstance(error, EstimateError)

    def test_consistency_warning(self):
        """Test warnings serialize as warnings, not errors."""
        warning = ConsistencyWarning(
            code=ErrorCode.CON_OPENINGS_EXCEED_WALL_AREA,
            message="Too many openings",
            entity_id="z-1",
            details={"sf_openings": Decimal("21.00")},
        )
        data = warning.to_dict()
        assert warning.severity == ErrorSeverity.WARNING
        assert data["category"] == "consistency"
        assert data["details"] == {"sf_openings": "21.00"}


class TestMoney:
    """Tests for Decimal helpers."""

    def test_float_goes_through_str(self):
        """Test floats convert without binary noise."""
        assert to_decimal(2.5) == Decimal("2.5")
        assert to_decimal(0.1) == Decimal("0.1")

    @pytest.mark.parametrize("value", [None, True, "abc", [1], "NaN", "Infinity"])
    def test_rejects(self, value):
        """Test non-numeric values are rejected."""
        with pytest.raises(ValidationError):
            to_decimal(value, "unit_price")

    def test_half_up(self):
        """Test money rounds half up to cents."""
        assert money(Decimal("0.125")) == Decimal("0.13")
        assert money(Decimal("0.124")) == Decimal("0.12")
        assert quantity(Decimal("13.3333")) == Decimal("13.33")


class TestEngineConfig:
    """Tests for EngineConfig."""

    def test_defaults(self):
        """Test default values."""
        config = EngineConfig()
        assert config.default_height_ft == Decimal("8")
        assert config.money_places == 2
        assert config.default_structure_name == "Main Structure"
        assert config.recoverable_by_default is True

    def test_from_env(self, monkeypatch):
        """Test environment overrides."""
        monkeypatch.setenv("CLAIMSCOPE_DEFAULT_HEIGHT_FT", "9")
        monkeypatch.setenv("CLAIMSCOPE_DEFAULT_REGION", "TX-DAL")
        monkeypatch.setenv("CLAIMSCOPE_RECOVERABLE_BY_DEFAULT", "false")
        config = EngineConfig.from_env()
        assert config.default_height_ft == Decimal("9")
        assert config.default_region_id == "TX-DAL"
        assert config.recoverable_by_default is False

    def test_from_file(self, tmp_path):
        """Test JSON file overrides."""
        path = tmp_path / "config.json"
        path.write_text(json.dumps({
            "default_height_ft": "10",
            "default_structure_name": "Dwelling",
            "logging": {"level": "DEBUG"},
        }))
        config = EngineConfig.from_file(str(path))
        assert config.default_height_ft == Decimal("10")
        assert config.default_structure_name == "Dwelling"
        assert config.logging.level == "DEBUG"

    def test_missing_file_uses_defaults(self, tmp_path):
        """Test a missing file falls back to environment defaults."""
        config = EngineConfig.from_file(str(tmp_path / "nope.json"))
        assert config.default_height_ft == Decimal("8")

    def test_invalid_height(self):
        """Test non-positive default height is rejected."""
        with pytest.raises(ValueError):
            EngineConfig(default_height_ft=Decimal("0"))

    def test_to_dict(self):
        """Test serialization."""
        data = EngineConfig().to_dict()
        assert data["default_height_ft"] == "8"
        assert data["logging"]["level"] == "WARNING"
