"""Tests for the geometry primitives and ring measurements.

Covers:
- Segment crossing (disjoint, shared endpoint, parallel, interior crossing)
- Distance to segment (clamping, degenerate segments)
- Point-in-polygon with boundary tolerance
- Area, perimeter, bounding dimensions in feet
- Haversine distance
"""

from __future__ import annotations

import math

import pytest

from roof_measurement.core.geometry import (
    GeometryError,
    LocalFrame,
    bounding_box_dimensions_ft,
    centroid,
    close_ring,
    distance,
    distance_to_segment,
    haversine_distance_ft,
    max_dimension_ft,
    open_ring,
    perimeter_ft,
    point_in_or_near_polygon,
    point_in_polygon,
    polygon_area_sq_ft,
    polygon_area_sq_m,
    segments_intersect,
    signed_area,
    validate_ring,
)
from tests.builders import rectangle_feet, ring_from_feet


class TestSegmentsIntersect:
    def test_crossing_in_interior(self) -> None:
        assert segments_intersect((0, 0), (10, 10), (0, 10), (10, 0)) is True

    def test_disjoint(self) -> None:
        assert segments_intersect((0, 0), (1, 1), (5, 5), (6, 7)) is False

    def test_shared_endpoint(self) -> None:
        assert segments_intersect((0, 0), (5, 5), (5, 5), (10, 0)) is False

    def test_t_junction_at_endpoint(self) -> None:
        # b ends exactly on the middle of a
        assert segments_intersect((0, 0), (10, 0), (5, 5), (5, 0)) is False

    def test_parallel(self) -> None:
        assert segments_intersect((0, 0), (10, 0), (0, 1), (10, 1)) is False

    def test_collinear_overlap(self) -> None:
        assert segments_intersect((0, 0), (10, 0), (5, 0), (15, 0)) is False

    def test_lines_would_cross_beyond_segments(self) -> None:
        assert segments_intersect((0, 0), (1, 1), (0, 10), (10, 0)) is False


class TestDistanceToSegment:
    def test_perpendicular_projection(self) -> None:
        assert distance_to_segment((5, 3), (0, 0), (10, 0)) == pytest.approx(3.0)

    def test_clamped_to_start(self) -> None:
        assert distance_to_segment((-3, 4), (0, 0), (10, 0)) == pytest.approx(5.0)

    def test_clamped_to_end(self) -> None:
        assert distance_to_segment((13, 4), (0, 0), (10, 0)) == pytest.approx(5.0)

    def test_degenerate_segment(self) -> None:
        assert distance_to_segment((3, 4), (0, 0), (0, 0)) == pytest.approx(5.0)

    def test_distance(self) -> None:
        assert distance((0, 0), (3, 4)) == 5.0


class TestPointInPolygon:
    square = [(0.0, 0.0), (10.0, 0.0), (10.0, 10.0), (0.0, 10.0)]

    def test_interior(self) -> None:
        assert point_in_polygon((5, 5), self.square) is True

    def test_exterior(self) -> None:
        assert point_in_polygon((15, 5), self.square) is False

    def test_closed_ring_accepted(self) -> None:
        assert point_in_polygon((5, 5), close_ring(self.square)) is True

    def test_near_boundary_within_tolerance(self) -> None:
        assert point_in_or_near_polygon((10.5, 5), self.square, 1.0) is True

    def test_near_boundary_outside_tolerance(self) -> None:
        assert point_in_or_near_polygon((12, 5), self.square, 1.0) is False


class TestRings:
    def test_open_and_close(self) -> None:
        ring = [(0.0, 0.0), (1.0, 0.0), (1.0, 1.0)]
        closed = close_ring(ring)
        assert closed[0] == closed[-1]
        assert open_ring(closed) == ring
        assert close_ring(closed) == closed

    def test_validate_ring_rejects_degenerate(self) -> None:
        with pytest.raises(GeometryError):
            validate_ring([(0.0, 0.0), (1.0, 1.0), (0.0, 0.0)])

    def test_signed_area_orientation(self) -> None:
        ccw = [(0.0, 0.0), (4.0, 0.0), (4.0, 3.0), (0.0, 3.0)]
        assert signed_area(ccw) == pytest.approx(12.0)
        assert signed_area(list(reversed(ccw))) == pytest.approx(-12.0)


class TestRingMeasurements:
    def test_rectangle_area(self, rectangle_ring: list) -> None:
        assert polygon_area_sq_ft(rectangle_ring) == pytest.approx(1800.0, rel=1e-6)

    def test_area_square_metres(self, rectangle_ring: list) -> None:
        assert polygon_area_sq_m(rectangle_ring) == pytest.approx(1800.0 / 3.28084**2, rel=1e-6)

    def test_area_independent_of_orientation(self, rectangle_ring: list) -> None:
        assert polygon_area_sq_ft(list(reversed(rectangle_ring))) == pytest.approx(
            polygon_area_sq_ft(rectangle_ring)
        )

    def test_perimeter(self, rectangle_ring: list) -> None:
        assert perimeter_ft(rectangle_ring) == pytest.approx(180.0, rel=1e-6)

    def test_perimeter_open_and_closed_agree(self, rectangle_ring: list) -> None:
        assert perimeter_ft(open_ring(rectangle_ring)) == pytest.approx(perimeter_ft(rectangle_ring))

    def test_bounding_dimensions(self, rectangle_ring: list) -> None:
        width, height = bounding_box_dimensions_ft(rectangle_ring)
        assert width == pytest.approx(60.0, rel=1e-6)
        assert height == pytest.approx(30.0, rel=1e-6)
        assert max_dimension_ft(rectangle_ring) == pytest.approx(60.0, rel=1e-6)

    def test_degenerate_area_is_zero(self) -> None:
        assert polygon_area_sq_m([(0.0, 0.0), (1.0, 1.0)]) == 0.0

    def test_centroid(self) -> None:
        ring = ring_from_feet(rectangle_feet(20.0, 10.0))
        cx, cy = LocalFrame.for_ring(ring).to_local(centroid(ring))
        assert cx == pytest.approx(0.0, abs=1e-6)
        assert cy == pytest.approx(0.0, abs=1e-6)


class TestLocalFrame:
    def test_round_trip(self) -> None:
        frame = LocalFrame(origin_lng=-97.0, origin_lat=30.0)
        point = (-96.9995, 30.0004)
        back = frame.to_lnglat(frame.to_local(point))
        assert back[0] == pytest.approx(point[0])
        assert back[1] == pytest.approx(point[1])

    def test_longitude_scaled_by_latitude(self) -> None:
        frame = LocalFrame(origin_lng=0.0, origin_lat=60.0)
        assert frame.feet_per_degree_lng == pytest.approx(frame.feet_per_degree_lat * 0.5)


class TestHaversine:
    def test_one_degree_latitude(self) -> None:
        expected = 20902231 * math.radians(1.0)
        assert haversine_distance_ft(30.0, -97.0, 31.0, -97.0) == pytest.approx(expected)

    def test_zero_distance(self) -> None:
        assert haversine_distance_ft(30.0, -97.0, 30.0, -97.0) == 0.0
