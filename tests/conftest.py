"""Shared pytest fixtures for the roof measurement test suite."""

from __future__ import annotations

import pytest

from roof_measurement.core.geometry import Coordinate
from tests.builders import ORIGIN_LAT, ORIGIN_LNG, rectangle_feet, ring_from_feet

# ---------------------------------------------------------------------------
# Footprint fixtures
# ---------------------------------------------------------------------------


@pytest.fixture()
def rectangle_ring() -> list[Coordinate]:
    """60 ft x 30 ft rectangle (1800 sq ft), long side east-west."""
    return ring_from_feet(rectangle_feet(60.0, 30.0))


@pytest.fixture()
def square_ring() -> list[Coordinate]:
    """40 ft x 40 ft square."""
    return ring_from_feet(rectangle_feet(40.0, 40.0))


@pytest.fixture()
def l_shape_ring() -> list[Coordinate]:
    """L-shaped outline: 60 x 30 main wing plus a 25 x 25 wing (2425 sq ft)."""
    return ring_from_feet([(0, 0), (60, 0), (60, 30), (25, 30), (25, 55), (0, 55)])


@pytest.fixture()
def origin() -> tuple[float, float]:
    """``(lat, lng)`` of the fixture rings' origin."""
    return (ORIGIN_LAT, ORIGIN_LNG)
