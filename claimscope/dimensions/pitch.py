"""
dimensions/pitch.py - Roof pitch parsing.

Pitch is written as rise over run in inches ("6/12"). The slope
multiplier converts a horizontal footprint into true roof surface area:

    multiplier = sqrt(1 + (rise / run)^2)
"""

from __future__ import annotations
from decimal import Decimal, InvalidOperation
from typing import Optional, Tuple

from ..errors.taxonomy import ErrorCode, ValidationError

FLAT_PITCHES = ("", "flat", "0", "0/12")


def parse_pitch(pitch: Optional[str]) -> Tuple[Decimal, Decimal]:
    """
    Split a pitch string into (rise, run).

    Raises:
        ValidationError: malformed pitch, zero run, or negative rise.
    """
    text = (pitch or "").strip().lower()
    if text in FLAT_PITCHES:
        return Decimal("0"), Decimal("12")

    parts = text.replace(":", "/").split("/")
    if len(parts) != 2:
        raise ValidationError(
            f"Pitch must look like 'rise/run', got {pitch!r}",
            code=ErrorCode.VAL_BAD_PITCH,
            recovery_hint="Use a value such as '6/12' or 'flat'",
            pitch=pitch,
        )

    try:
        rise = Decimal(parts[0].strip())
        run = Decimal(parts[1].strip())
    except InvalidOperation:
        raise ValidationError(
            f"Pitch is not numeric: {pitch!r}",
            code=ErrorCode.VAL_BAD_PITCH,
            pitch=pitch,
        )

    if not rise.is_finite() or not run.is_finite() or run <= 0 or rise < 0:
        raise ValidationError(
            f"Pitch needs a positive run and a non-negative rise: {pitch!r}",
            code=ErrorCode.VAL_BAD_PITCH,
            pitch=pitch,
        )
    return rise, run


def pitch_multiplier(pitch: Optional[str]) -> Decimal:
    """Slope factor for a pitch string; 1 for flat or unset."""
    rise, run = parse_pitch(pitch)
    if rise == 0:
        return Decimal("1")
    ratio = rise / run
    return (1 + ratio * ratio).sqrt()
