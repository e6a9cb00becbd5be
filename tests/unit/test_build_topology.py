"""Tests for the roof topology builder.

Covers:
- Outline cleaning and shape classification
- Ridge source selection in priority order
- Exact gable / hip skeletons for rectangles
- Simplified skeletons for wing shapes (complex flag and warnings)
- Eave offset
"""

from __future__ import annotations

import unittest

import pytest
from shapely.geometry import LineString, Polygon

from roof_measurement.activities.build_topology import (
    SHAPE_COMPLEX,
    SHAPE_L,
    SHAPE_MULTI_WING,
    SHAPE_RECTANGLE,
    SHAPE_T,
    SHAPE_U,
    WARNING_COMPLEX,
    build_topology,
    classify_shape,
    clean_outline,
)
from roof_measurement.core.geometry import GeometryError, LocalFrame, distance, polygon_area_sq_ft, signed_area
from roof_measurement.models.footprint import Footprint
from roof_measurement.models.solar import RoofSegment, SolarData
from roof_measurement.models.topology import EdgeType, LinearFeature
from tests.builders import FRAME, rectangle_feet, ring_from_feet

L_SHAPE = [(0, 0), (60, 0), (60, 30), (25, 30), (25, 55), (0, 55)]
T_SHAPE = [(0, 0), (60, 0), (60, 20), (40, 20), (40, 50), (20, 50), (20, 20), (0, 20)]
U_SHAPE = [(0, 0), (60, 0), (60, 40), (45, 40), (45, 15), (15, 15), (15, 40), (0, 40)]


def _length(frame: LocalFrame, e) -> float:
    return distance(frame.to_local(e.start), frame.to_local(e.end))


def _solar(*azimuths: float) -> SolarData:
    return SolarData(
        available=True,
        segments=[RoofSegment(pitch_degrees=26.57, azimuth_degrees=a, area_sq_m=50.0) for a in azimuths],
    )


class TestOutline(unittest.TestCase):
    def test_collinear_vertex_removed(self) -> None:
        points = [(-30.0, -15.0), (0.0, -15.0), (30.0, -15.0), (30.0, 15.0), (-30.0, 15.0)]
        cleaned = clean_outline(points)
        assert len(cleaned) == 4
        assert signed_area(cleaned) > 0

    def test_clockwise_reoriented(self) -> None:
        cleaned = clean_outline(list(reversed(rectangle_feet(20.0, 10.0))))
        assert signed_area(cleaned) > 0

    def test_shape_classes(self) -> None:
        assert classify_shape(rectangle_feet(60.0, 30.0)) == SHAPE_RECTANGLE
        assert classify_shape(clean_outline(L_SHAPE)) == SHAPE_L
        assert classify_shape(clean_outline(T_SHAPE)) == SHAPE_T
        assert classify_shape(clean_outline(U_SHAPE)) == SHAPE_U

    def test_non_rectilinear_is_complex(self) -> None:
        assert classify_shape([(0.0, 0.0), (40.0, 0.0), (20.0, 30.0)]) == SHAPE_COMPLEX

    def test_multi_wing(self) -> None:
        plus = [
            (10, 0), (20, 0), (20, 10), (30, 10), (30, 20), (20, 20),
            (20, 30), (10, 30), (10, 20), (0, 20), (0, 10), (10, 10),
        ]
        assert classify_shape(clean_outline(plus)) == SHAPE_MULTI_WING


class TestRectangleTopology(unittest.TestCase):
    def setUp(self) -> None:
        self.ring = ring_from_feet(rectangle_feet(60.0, 30.0))
        self.frame = LocalFrame.for_ring(self.ring)

    def test_geometric_default_is_hip(self) -> None:
        topology = build_topology(self.ring)
        assert topology.ridge_source == "geometric"
        assert topology.shape_type == "rectangle"
        assert topology.roof_style == "hip"
        assert topology.is_complex_shape is False
        assert topology.warnings == []
        assert len(topology.edges_of(EdgeType.EAVE)) == 4
        assert len(topology.edges_of(EdgeType.HIP)) == 4
        ridges = topology.edges_of(EdgeType.RIDGE)
        assert len(ridges) == 1
        assert _length(self.frame, ridges[0]) == pytest.approx(30.0, abs=1e-6)

    def test_ridge_parallel_to_long_side(self) -> None:
        ridge = build_topology(self.ring).edges_of(EdgeType.RIDGE)[0]
        start, end = self.frame.to_local(ridge.start), self.frame.to_local(ridge.end)
        assert start[1] == pytest.approx(0.0, abs=1e-6)
        assert end[1] == pytest.approx(0.0, abs=1e-6)

    def test_external_segments_two_sides_gable(self) -> None:
        topology = build_topology(self.ring, solar_data=_solar(0.0, 180.0))
        assert topology.ridge_source == "external_segments"
        assert topology.roof_style == "gable"
        ridge = topology.edges_of(EdgeType.RIDGE)[0]
        assert _length(self.frame, ridge) == pytest.approx(60.0, abs=1e-6)
        assert len(topology.edges_of(EdgeType.RAKE)) == 2
        assert len(topology.edges_of(EdgeType.EAVE)) == 2
        assert topology.edges_of(EdgeType.HIP) == []

    def test_external_segments_four_sides_hip(self) -> None:
        topology = build_topology(self.ring, solar_data=_solar(0.0, 90.0, 180.0, 270.0))
        assert topology.ridge_source == "external_segments"
        assert topology.roof_style == "hip"

    def test_single_segment_not_trusted(self) -> None:
        topology = build_topology(self.ring, solar_data=_solar(180.0))
        assert topology.ridge_source == "geometric"

    def test_ai_ridge_sets_direction(self) -> None:
        ai_ridge = LinearFeature(
            start=FRAME.to_lnglat((0.0, -10.0)),
            end=FRAME.to_lnglat((0.0, 10.0)),
            type=EdgeType.RIDGE,
            confidence=0.9,
            source="model-a",
        )
        topology = build_topology(self.ring, ai_features=[ai_ridge])
        assert topology.ridge_source == "ai_detected"
        assert topology.roof_style == "gable"
        ridge = topology.edges_of(EdgeType.RIDGE)[0]
        start, end = self.frame.to_local(ridge.start), self.frame.to_local(ridge.end)
        assert start[0] == pytest.approx(0.0, abs=1e-6)
        assert abs(end[1] - start[1]) == pytest.approx(30.0, abs=1e-6)

    def test_priority_order_respected(self) -> None:
        topology = build_topology(
            self.ring,
            solar_data=_solar(0.0, 180.0),
            ridge_source_priority=("geometric", "external_segments"),
        )
        assert topology.ridge_source == "geometric"

    def test_no_source_with_data_warns(self) -> None:
        topology = build_topology(self.ring, ridge_source_priority=("ai_detected",))
        assert topology.ridge_source == "geometric"
        assert any("No configured ridge source" in w for w in topology.warnings)

    def test_square_hip_collapses_to_pyramid(self) -> None:
        topology = build_topology(ring_from_feet(rectangle_feet(40.0, 40.0)))
        assert topology.edges_of(EdgeType.RIDGE) == []
        assert len(topology.edges_of(EdgeType.HIP)) == 4

    def test_hip_ridge_across_short_side_uses_long_axis(self) -> None:
        ai_ridge = LinearFeature(
            start=FRAME.to_lnglat((0.0, -10.0)),
            end=FRAME.to_lnglat((0.0, 10.0)),
            type=EdgeType.RIDGE,
            confidence=0.9,
            source="model-a",
        )
        ai_hip = LinearFeature(
            start=FRAME.to_lnglat((-30.0, -15.0)),
            end=FRAME.to_lnglat((-15.0, 0.0)),
            type=EdgeType.HIP,
            confidence=0.9,
            source="model-a",
        )
        topology = build_topology(self.ring, ai_features=[ai_ridge, ai_hip])
        assert topology.roof_style == "hip"
        ridges = topology.edges_of(EdgeType.RIDGE)
        assert len(ridges) == 1
        start, end = self.frame.to_local(ridges[0].start), self.frame.to_local(ridges[0].end)
        assert start[1] == pytest.approx(0.0, abs=1e-6)
        assert end[1] == pytest.approx(0.0, abs=1e-6)
        assert _length(self.frame, ridges[0]) == pytest.approx(30.0, abs=1e-6)
        assert len(topology.edges_of(EdgeType.HIP)) == 4
        assert any("long axis" in w for w in topology.warnings)

    def test_diagonal_segment_azimuths_hip(self) -> None:
        topology = build_topology(self.ring, solar_data=_solar(45.0, 135.0, 225.0, 315.0))
        assert topology.ridge_source == "external_segments"
        assert topology.roof_style == "hip"

    def test_accepts_footprint(self) -> None:
        footprint = Footprint(coords=self.ring, source="osm_buildings", confidence=0.85)
        assert build_topology(footprint).shape_type == "rectangle"

    def test_eave_offset_grows_outline(self) -> None:
        topology = build_topology(self.ring, eave_offset_ft=1.0)
        assert polygon_area_sq_ft(topology.footprint_coords) == pytest.approx(62.0 * 32.0, rel=1e-4)

    def test_footprint_closed(self) -> None:
        topology = build_topology(self.ring)
        assert topology.footprint_coords[0] == topology.footprint_coords[-1]

    def test_vertices_classified(self) -> None:
        topology = build_topology(self.ring)
        assert topology.vertices
        assert topology.disconnected_clusters == []
        assert "P0" in topology.adjacency


class TestWingTopology(unittest.TestCase):
    def test_l_shape_simplified(self) -> None:
        topology = build_topology(ring_from_feet(L_SHAPE))
        assert topology.shape_type == "l_shape"
        assert topology.is_complex_shape is True
        assert WARNING_COMPLEX in topology.warnings
        assert topology.roof_style == "hip"
        assert len(topology.edges_of(EdgeType.EAVE)) == 6
        assert len(topology.edges_of(EdgeType.RIDGE)) == 1

    def test_skeleton_stays_inside_footprint(self) -> None:
        ring = ring_from_feet(U_SHAPE)
        topology = build_topology(ring)
        frame = LocalFrame.for_ring(ring)
        outline = Polygon(frame.ring_to_local(topology.footprint_coords)).buffer(0.05)
        for e in topology.interior_edges:
            assert outline.contains(LineString([frame.to_local(e.start), frame.to_local(e.end)]))


class TestDegenerateInput(unittest.TestCase):
    def test_too_few_vertices(self) -> None:
        with pytest.raises(GeometryError):
            build_topology([(0.0, 0.0), (1.0, 1.0), (0.0, 0.0)])
