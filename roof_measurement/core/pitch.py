"""Roof pitch conversions.

Pitch is carried as the roofing-trade string ``"<rise>/12"`` (inches of
rise per 12 inches of run) or ``"flat"``.  Areas are scaled from plan to
sloped with ``1 / cos(pitch_angle)``.
"""

from __future__ import annotations

import logging
import math
import re

logger = logging.getLogger("roof_measurement.core.pitch")

FLAT_PITCH = "flat"
PITCH_RUN_IN = 12.0

#: Below this angle a roof is reported as flat.
FLAT_THRESHOLD_DEG = 2.0

#: Angle assumed when a pitch string cannot be parsed (≈ 4.4/12).
FALLBACK_PITCH_DEG = 20.0

_PITCH_RE = re.compile(r"^\s*(\d+(?:\.\d+)?)\s*/\s*12\s*$")

_DIRECTIONS = ("N", "NE", "E", "SE", "S", "SW", "W", "NW")


def parse_pitch(pitch: str) -> float | None:
    """Return the rise (inches per 12) for *pitch*, or ``None`` if unparseable."""
    if pitch.strip().lower() == FLAT_PITCH:
        return 0.0
    match = _PITCH_RE.match(pitch)
    if match is None:
        return None
    return float(match.group(1))


def degrees_to_pitch(degrees: float) -> str:
    """Convert a slope angle to a ``"<rise>/12"`` string (``"flat"`` below 2°)."""
    if degrees < FLAT_THRESHOLD_DEG:
        return FLAT_PITCH
    rise = round(math.tan(math.radians(degrees)) * PITCH_RUN_IN)
    return f"{rise}/12"


def pitch_to_degrees(pitch: str) -> float:
    """Convert a pitch string to degrees, falling back to 20° when unparseable."""
    rise = parse_pitch(pitch)
    if rise is None:
        logger.warning("Unparseable pitch | pitch=%r | fallback_deg=%.1f", pitch, FALLBACK_PITCH_DEG)
        return FALLBACK_PITCH_DEG
    return math.degrees(math.atan2(rise, PITCH_RUN_IN))


def slope_factor(pitch: str) -> float:
    """Return the plan-to-sloped area multiplier ``1 / cos(angle)``."""
    return 1.0 / math.cos(math.radians(pitch_to_degrees(pitch)))


def cardinal_direction(azimuth_degrees: float) -> str:
    """Map an azimuth (0° = north, clockwise) to one of eight compass sectors."""
    index = round((azimuth_degrees % 360.0) / 45.0) % len(_DIRECTIONS)
    return _DIRECTIONS[index]
