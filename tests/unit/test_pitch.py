"""Tests for pitch conversions."""

from __future__ import annotations

import math

import pytest

from roof_measurement.core.pitch import (
    FALLBACK_PITCH_DEG,
    cardinal_direction,
    degrees_to_pitch,
    parse_pitch,
    pitch_to_degrees,
    slope_factor,
)


class TestParsePitch:
    def test_rise_over_twelve(self) -> None:
        assert parse_pitch("6/12") == 6.0
        assert parse_pitch(" 7.5 / 12 ") == 7.5

    def test_flat(self) -> None:
        assert parse_pitch("flat") == 0.0
        assert parse_pitch("FLAT") == 0.0

    def test_unparseable(self) -> None:
        assert parse_pitch("steep") is None
        assert parse_pitch("6/10") is None


class TestConversions:
    def test_degrees_to_pitch(self) -> None:
        assert degrees_to_pitch(26.565) == "6/12"
        assert degrees_to_pitch(45.0) == "12/12"

    def test_flat_below_threshold(self) -> None:
        assert degrees_to_pitch(1.5) == "flat"

    def test_pitch_to_degrees(self) -> None:
        assert pitch_to_degrees("12/12") == pytest.approx(45.0)
        assert pitch_to_degrees("flat") == 0.0

    def test_unparseable_falls_back(self) -> None:
        assert pitch_to_degrees("unknown") == FALLBACK_PITCH_DEG

    def test_slope_factor(self) -> None:
        assert slope_factor("12/12") == pytest.approx(math.sqrt(2.0))
        assert slope_factor("flat") == pytest.approx(1.0)


class TestCardinalDirection:
    @pytest.mark.parametrize(
        "azimuth, expected",
        [(0, "N"), (44, "NE"), (90, "E"), (180, "S"), (225, "SW"), (270, "W"), (337.6, "N"), (-90, "W")],
    )
    def test_sectors(self, azimuth: float, expected: str) -> None:
        assert cardinal_direction(azimuth) == expected
