"""
core/config.py - Engine configuration.

Provides configuration loading from JSON files, environment variables,
and defaults, plus logging setup for entry points.
"""

from __future__ import annotations
from dataclasses import dataclass, field
from decimal import Decimal
from pathlib import Path
from typing import Any, Dict, List, Optional
import json
import logging
import os
import sys

from .constants import (
    DEFAULT_HEIGHT_FT,
    DEFAULT_STRUCTURE_NAME,
    MONEY_PLACES,
    QUANTITY_PLACES,
)

logger = logging.getLogger(__name__)

ENV_PREFIX = "CLAIMSCOPE_"
DEFAULT_LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
PACKAGE_LOGGER = "claimscope"


@dataclass
class LoggingConfig:
    """Logging configuration."""

    level: str = "WARNING"
    format: str = DEFAULT_LOG_FORMAT
    log_file: Optional[str] = None
    json_logs: bool = False

    @classmethod
    def from_env(cls) -> "LoggingConfig":
        return cls(
            level=os.getenv(f"{ENV_PREFIX}LOG_LEVEL", "WARNING"),
            format=os.getenv(f"{ENV_PREFIX}LOG_FORMAT", DEFAULT_LOG_FORMAT),
            log_file=os.getenv(f"{ENV_PREFIX}LOG_FILE"),
            json_logs=os.getenv(f"{ENV_PREFIX}JSON_LOGS", "false").lower() == "true",
        )


@dataclass
class EngineConfig:
    """Root configuration for the estimate engine."""

    default_height_ft: Decimal = DEFAULT_HEIGHT_FT
    money_places: int = MONEY_PLACES
    quantity_places: int = QUANTITY_PLACES

    default_structure_name: str = DEFAULT_STRUCTURE_NAME
    default_region_id: Optional[str] = None
    default_carrier_profile_id: Optional[str] = None

    # Line items are recoverable unless the caller says otherwise
    recoverable_by_default: bool = True

    logging: LoggingConfig = field(default_factory=LoggingConfig)

    def __post_init__(self):
        if not isinstance(self.default_height_ft, Decimal):
            self.default_height_ft = Decimal(str(self.default_height_ft))
        if self.default_height_ft <= 0:
            raise ValueError("default_height_ft must be positive")
        if self.money_places < 0 or self.quantity_places < 0:
            raise ValueError("rounding places cannot be negative")

    @classmethod
    def from_env(cls) -> "EngineConfig":
        """Create configuration from environment variables."""
        return cls(
            default_height_ft=Decimal(os.getenv(f"{ENV_PREFIX}DEFAULT_HEIGHT_FT", str(DEFAULT_HEIGHT_FT))),
            money_places=int(os.getenv(f"{ENV_PREFIX}MONEY_PLACES", str(MONEY_PLACES))),
            quantity_places=int(os.getenv(f"{ENV_PREFIX}QUANTITY_PLACES", str(QUANTITY_PLACES))),
            default_structure_name=os.getenv(f"{ENV_PREFIX}DEFAULT_STRUCTURE_NAME", DEFAULT_STRUCTURE_NAME),
            default_region_id=os.getenv(f"{ENV_PREFIX}DEFAULT_REGION"),
            default_carrier_profile_id=os.getenv(f"{ENV_PREFIX}DEFAULT_CARRIER_PROFILE"),
            recoverable_by_default=os.getenv(f"{ENV_PREFIX}RECOVERABLE_BY_DEFAULT", "true").lower() == "true",
            logging=LoggingConfig.from_env(),
        )

    @classmethod
    def from_file(cls, filepath: str) -> "EngineConfig":
        """Load configuration from JSON file, layered over the environment."""
        path = Path(filepath)
        if not path.exists():
            logger.warning(f"Config file not found: {filepath}, using defaults")
            return cls.from_env()

        with open(path) as f:
            data = json.load(f)

        return cls._from_dict(data)

    @classmethod
    def _from_dict(cls, data: Dict[str, Any]) -> "EngineConfig":
        config = cls.from_env()

        if "default_height_ft" in data:
            config.default_height_ft = Decimal(str(data["default_height_ft"]))
        for key in (
            "money_places",
            "quantity_places",
            "default_structure_name",
            "default_region_id",
            "default_carrier_profile_id",
            "recoverable_by_default",
        ):
            if key in data:
                setattr(config, key, data[key])

        if "logging" in data:
            for key, value in data["logging"].items():
                if hasattr(config.logging, key):
                    setattr(config.logging, key, value)

        # Re-run validation on file overrides
        config.__post_init__()
        return config

    def to_dict(self) -> Dict[str, Any]:
        """Serialize config to dictionary."""
        return {
            "default_height_ft": str(self.default_height_ft),
            "money_places": self.money_places,
            "quantity_places": self.quantity_places,
            "default_structure_name": self.default_structure_name,
            "default_region_id": self.default_region_id,
            "default_carrier_profile_id": self.default_carrier_profile_id,
            "recoverable_by_default": self.recoverable_by_default,
            "logging": {
                "level": self.logging.level,
                "format": self.logging.format,
                "log_file": self.logging.log_file,
                "json_logs": self.logging.json_logs,
            },
        }


class JSONFormatter(logging.Formatter):
    """One JSON object per log record, with the traceback when there is one."""

    def format(self, record):
        entry = {
            "timestamp": self.formatTime(record),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        if record.exc_info:
            entry["exception"] = self.formatException(record.exc_info)
        return json.dumps(entry)


def setup_logging(config: Optional[LoggingConfig] = None, level: Optional[str] = None) -> None:
    """
    Attach handlers to the `claimscope` package logger.

    Records go to stderr, plus `config.log_file` when set; stdout is left
    to command output. Handlers from an earlier call are replaced.

    Args:
        config: logging settings (defaults to LoggingConfig())
        level: overrides config.level when given
    """
    config = config or LoggingConfig()
    log_level = getattr(logging, (level or config.level).upper(), logging.WARNING)
    formatter = JSONFormatter() if config.json_logs else logging.Formatter(config.format)

    handlers: List[logging.Handler] = [logging.StreamHandler(sys.stderr)]
    if config.log_file:
        handlers.append(logging.FileHandler(config.log_file))

    package_logger = logging.getLogger(PACKAGE_LOGGER)
    for old in list(package_logger.handlers):
        package_logger.removeHandler(old)
        old.close()

    package_logger.setLevel(log_level)
    for handler in handlers:
        handler.setFormatter(formatter)
        handler.setLevel(log_level)
        package_logger.addHandler(handler)
