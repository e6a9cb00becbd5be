"""Tests for footprint resolution.

Covers:
- Candidate extraction from Polygon / MultiPolygon features
- Confidence penalties and clamping
- Selection policy (containment, distance noise, plausibility, priority)
- Provider failure statuses and the never-raise contract
"""

from __future__ import annotations

import unittest
from typing import Any

import pytest

from roof_measurement.activities.resolve_footprint import (
    FootprintResolver,
    candidate_confidence,
    compare_candidates,
    extract_rings,
    rank_candidates,
    validate_footprint,
)
from roof_measurement.models.footprint import FootprintCandidate
from roof_measurement.providers.base import ProviderAuthError, ProviderUnavailableError
from tests.builders import ORIGIN_LAT, ORIGIN_LNG, rectangle_feet, ring_from_feet

FT = 3.28084


def _ring_m(x0: float, y0: float, x1: float, y1: float) -> list[tuple[float, float]]:
    """Closed ring for a rectangle given in metres east/north of the query point."""
    return ring_from_feet([(x0 * FT, y0 * FT), (x1 * FT, y0 * FT), (x1 * FT, y1 * FT), (x0 * FT, y1 * FT)])


def _feature(ring: list[tuple[float, float]], geom_type: str = "Polygon") -> dict[str, Any]:
    coords: Any = [[list(c) for c in ring]]
    if geom_type == "MultiPolygon":
        coords = [coords]
    return {"type": "Feature", "geometry": {"type": geom_type, "coordinates": coords}, "properties": {}}


class _FakeProvider:
    """Minimal footprint provider returning canned features or raising."""

    def __init__(self, name: str, result: Any, baseline: float = 0.88) -> None:
        self.name = name
        self.confidence_baseline = baseline
        self._result = result
        self.calls: list[tuple[float, float, float]] = []

    def fetch_features(self, lat: float, lng: float, radius_m: float) -> list[dict[str, Any]]:
        self.calls.append((lat, lng, radius_m))
        if isinstance(self._result, Exception):
            raise self._result
        return self._result


def _candidate(**overrides: Any) -> FootprintCandidate:
    values: dict[str, Any] = {
        "coords": ring_from_feet(rectangle_feet(50.0, 40.0)),
        "source": "osm_buildings",
        "priority": 0,
        "area_sq_m": 200.0,
        "distance_m": 3.0,
        "contains_point": True,
        "confidence": 0.85,
    }
    values.update(overrides)
    return FootprintCandidate(**values)


class TestExtractRings(unittest.TestCase):
    def test_polygon(self) -> None:
        rings = extract_rings([_feature(_ring_m(-5, -5, 5, 5))])
        assert len(rings) == 1
        assert rings[0][0] == rings[0][-1]

    def test_multipolygon_outer_rings(self) -> None:
        feature = _feature(_ring_m(-5, -5, 5, 5), "MultiPolygon")
        feature["geometry"]["coordinates"].append([[list(c) for c in _ring_m(20, 20, 30, 30)]])
        assert len(extract_rings([feature])) == 2

    def test_non_polygon_ignored(self) -> None:
        line = {"geometry": {"type": "LineString", "coordinates": [[0, 0], [1, 1]]}}
        assert extract_rings([line]) == []

    def test_short_ring_dropped(self) -> None:
        feature = {"geometry": {"type": "Polygon", "coordinates": [[[0, 0], [1, 0], [0, 0]]]}}
        assert extract_rings([feature]) == []


class TestCandidateConfidence(unittest.TestCase):
    def test_no_penalties(self) -> None:
        assert candidate_confidence(0.88, contains_point=True, distance_m=3, area_sq_m=200) == 0.88

    def test_not_contained(self) -> None:
        value = candidate_confidence(0.88, contains_point=False, distance_m=3, area_sq_m=200)
        assert value == pytest.approx(0.78)

    def test_distance_penalties_stack(self) -> None:
        near = candidate_confidence(0.88, contains_point=True, distance_m=20, area_sq_m=200)
        far = candidate_confidence(0.88, contains_point=True, distance_m=35, area_sq_m=200)
        assert near == pytest.approx(0.78)
        assert far == pytest.approx(0.68)

    def test_tiny_area(self) -> None:
        value = candidate_confidence(0.88, contains_point=True, distance_m=3, area_sq_m=40)
        assert value == pytest.approx(0.73)

    def test_clamped(self) -> None:
        assert candidate_confidence(0.99, contains_point=True, distance_m=0, area_sq_m=200) == 0.95
        assert candidate_confidence(0.6, contains_point=False, distance_m=40, area_sq_m=10) == 0.5


class TestSelectionPolicy(unittest.TestCase):
    def test_containing_beats_nearer(self) -> None:
        containing = _candidate(contains_point=True, distance_m=40.0, area_sq_m=2000.0)
        nearer = _candidate(contains_point=False, distance_m=5.0)
        assert rank_candidates([nearer, containing])[0] is containing

    def test_plausible_area_within_distance_noise(self) -> None:
        outlier = _candidate(distance_m=2.0, area_sq_m=900.0)
        plausible = _candidate(distance_m=5.5, area_sq_m=250.0)
        assert compare_candidates(plausible, outlier) < 0

    def test_distance_beyond_noise_wins(self) -> None:
        outlier = _candidate(distance_m=2.0, area_sq_m=900.0)
        plausible = _candidate(distance_m=12.0, area_sq_m=250.0)
        assert compare_candidates(outlier, plausible) < 0

    def test_priority_breaks_exact_ties(self) -> None:
        first = _candidate(priority=0)
        second = _candidate(priority=1)
        assert rank_candidates([second, first])[0] is first


class TestFootprintResolver(unittest.TestCase):
    def test_selects_containing_polygon(self) -> None:
        """A containing polygon 40 m away beats a non-containing one 5 m away."""
        containing = _FakeProvider("microsoft_buildings", [_feature(_ring_m(-10, -10, 90, 10))])
        nearby = _FakeProvider("osm_buildings", [_feature(_ring_m(1, -4, 9, 4))], baseline=0.85)
        resolver = FootprintResolver([nearby, containing], search_radius_m=50)

        result = resolver.resolve(ORIGIN_LAT, ORIGIN_LNG)

        assert result.found
        assert result.footprint is not None
        assert result.footprint.source == "microsoft_buildings"
        assert result.footprint.contains_point is True
        assert result.footprint.distance_m == pytest.approx(40.0, abs=0.5)
        assert result.fallback_reason is None
        assert result.candidates_considered == 2
        assert [a.status for a in result.attempts] == ["ok", "ok"]

    def test_passes_search_radius(self) -> None:
        provider = _FakeProvider("osm_buildings", [])
        FootprintResolver([provider], search_radius_m=75).resolve(ORIGIN_LAT, ORIGIN_LNG)
        assert provider.calls == [(ORIGIN_LAT, ORIGIN_LNG, 75)]

    def test_all_providers_fail(self) -> None:
        providers = [
            _FakeProvider("osm_buildings", ProviderUnavailableError("osm_buildings", "HTTP 503", status_code=503)),
            _FakeProvider("microsoft_buildings", ProviderUnavailableError("microsoft_buildings", "timed out")),
            _FakeProvider("mapbox_vector", ProviderAuthError("mapbox_vector", "HTTP 401")),
            _FakeProvider("regrid_parcel", RuntimeError("boom")),
        ]
        result = FootprintResolver(providers).resolve(ORIGIN_LAT, ORIGIN_LNG)

        assert result.footprint is None
        assert result.fallback_reason == "api_error"
        assert [a.status for a in result.attempts] == ["api_error", "fetch_error", "api_error", "fetch_error"]
        assert "regrid_parcel: boom" in result.diagnostics

    def test_no_buildings(self) -> None:
        result = FootprintResolver([_FakeProvider("osm_buildings", [])]).resolve(ORIGIN_LAT, ORIGIN_LNG)
        assert result.fallback_reason == "no_buildings_found"

    def test_no_polygon_buildings(self) -> None:
        line = {"geometry": {"type": "Point", "coordinates": [ORIGIN_LNG, ORIGIN_LAT]}}
        result = FootprintResolver([_FakeProvider("osm_buildings", [line])]).resolve(ORIGIN_LAT, ORIGIN_LNG)
        assert result.fallback_reason == "no_polygon_buildings"

    def test_no_providers(self) -> None:
        result = FootprintResolver([]).resolve(ORIGIN_LAT, ORIGIN_LNG)
        assert result.footprint is None
        assert result.fallback_reason == "no_providers"

    def test_one_failure_does_not_block_others(self) -> None:
        providers = [
            _FakeProvider("osm_buildings", RuntimeError("boom")),
            _FakeProvider("microsoft_buildings", [_feature(_ring_m(-8, -6, 8, 6))]),
        ]
        result = FootprintResolver(providers).resolve(ORIGIN_LAT, ORIGIN_LNG)
        assert result.footprint is not None
        assert result.footprint.source == "microsoft_buildings"
        assert result.attempts[0].status == "fetch_error"


class TestValidateFootprint(unittest.TestCase):
    def test_clean_footprint(self) -> None:
        assert validate_footprint(ring_from_feet(rectangle_feet(50.0, 40.0))) == []

    def test_small_area(self) -> None:
        warnings = validate_footprint(ring_from_feet(rectangle_feet(10.0, 10.0)))
        assert any("below" in w for w in warnings)

    def test_long_edge(self) -> None:
        warnings = validate_footprint(ring_from_feet(rectangle_feet(320.0, 20.0)))
        assert any("edge" in w for w in warnings)

    def test_triangle_has_too_few_vertices(self) -> None:
        warnings = validate_footprint(ring_from_feet([(0, 0), (40, 0), (0, 40)]))
        assert any("vertices" in w for w in warnings)
