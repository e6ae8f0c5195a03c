"""
core/ - Shared enumerations, constants, numeric helpers and configuration.
"""

from .enums import (
    ZoneType,
    ZoneStatus,
    AreaType,
    OpeningType,
    CoverageType,
    DepreciationType,
    TreeLevel,
)

from .config import (
    EngineConfig,
    LoggingConfig,
    setup_logging,
)

from .money import (
    ZERO,
    to_decimal,
    optional_decimal,
    money,
    quantity,
)

__all__ = [
    # Enums
    "ZoneType",
    "ZoneStatus",
    "AreaType",
    "OpeningType",
    "CoverageType",
    "DepreciationType",
    "TreeLevel",
    # Config
    "EngineConfig",
    "LoggingConfig",
    "setup_logging",
    # Numeric helpers
    "ZERO",
    "to_decimal",
    "optional_decimal",
    "money",
    "quantity",
]
