"""Geometry primitives for footprint rings and roof skeleton segments.

Coordinates are ``(longitude, latitude)`` tuples in degrees.  Distances
and areas in feet or metres are derived through a local equirectangular
frame (metres-per-degree scaled by ``cos(latitude)``) anchored at the
ring's mean latitude; every helper that measures a ring goes through the
same ``LocalFrame`` so that perimeter, area, and bounding dimensions of
one footprint never mix approximations.

``haversine_distance_ft`` is provided for point-to-point distances
between unrelated coordinates (e.g. a query point and a candidate
centroid).

All functions are pure.
"""

from __future__ import annotations

import math
from dataclasses import dataclass

from shapely.geometry import Polygon

from roof_measurement.core.constants import (
    EARTH_RADIUS_FT,
    FEET_PER_METER,
    INTERSECTION_EPSILON,
    METERS_PER_DEGREE,
    PARALLEL_TOLERANCE,
)
from roof_measurement.core.exceptions import ValidationError

Coordinate = tuple[float, float]

MIN_DISTINCT_VERTICES = 3


class GeometryError(ValidationError):
    """Raised when a ring cannot form a polygon."""

    default_stage = "geometry"
    default_code = "INVALID_GEOMETRY"


# ---------------------------------------------------------------------------
# Ring handling
# ---------------------------------------------------------------------------


def open_ring(ring: list[Coordinate]) -> list[Coordinate]:
    """Return the ring without its closing vertex and without consecutive duplicates."""
    points: list[Coordinate] = []
    for coord in ring:
        point = (float(coord[0]), float(coord[1]))
        if not points or points[-1] != point:
            points.append(point)
    if len(points) > 1 and points[0] == points[-1]:
        points.pop()
    return points


def close_ring(ring: list[Coordinate]) -> list[Coordinate]:
    """Return the ring with first == last."""
    points = open_ring(ring)
    if points:
        points.append(points[0])
    return points


def validate_ring(ring: list[Coordinate], context: str = "ring") -> list[Coordinate]:
    """Return the open ring, raising ``GeometryError`` if it has < 3 distinct vertices."""
    points = open_ring(ring)
    if len(set(points)) < MIN_DISTINCT_VERTICES:
        msg = f"{context} has {len(set(points))} distinct vertices (need >= {MIN_DISTINCT_VERTICES})"
        raise GeometryError(msg)
    return points


# ---------------------------------------------------------------------------
# Local equirectangular frame
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class LocalFrame:
    """Equirectangular projection to feet around an origin.

    Attributes:
        origin_lng: Longitude mapped to ``x = 0``.
        origin_lat: Latitude mapped to ``y = 0``; also sets the
            longitude scale ``cos(origin_lat)``.
    """

    origin_lng: float
    origin_lat: float

    @classmethod
    def for_ring(cls, ring: list[Coordinate]) -> LocalFrame:
        """Frame anchored at the mean vertex of *ring*."""
        points = open_ring(ring)
        if not points:
            raise GeometryError("cannot build a local frame for an empty ring")
        return cls(
            origin_lng=sum(p[0] for p in points) / len(points),
            origin_lat=sum(p[1] for p in points) / len(points),
        )

    @property
    def feet_per_degree_lat(self) -> float:
        return METERS_PER_DEGREE * FEET_PER_METER

    @property
    def feet_per_degree_lng(self) -> float:
        return METERS_PER_DEGREE * math.cos(math.radians(self.origin_lat)) * FEET_PER_METER

    def to_local(self, coord: Coordinate) -> Coordinate:
        """Project a ``(lng, lat)`` coordinate to ``(x_ft, y_ft)``."""
        return (
            (coord[0] - self.origin_lng) * self.feet_per_degree_lng,
            (coord[1] - self.origin_lat) * self.feet_per_degree_lat,
        )

    def to_lnglat(self, point: Coordinate) -> Coordinate:
        """Inverse of ``to_local``."""
        return (
            self.origin_lng + point[0] / self.feet_per_degree_lng,
            self.origin_lat + point[1] / self.feet_per_degree_lat,
        )

    def ring_to_local(self, ring: list[Coordinate]) -> list[Coordinate]:
        return [self.to_local(c) for c in ring]

    def ring_to_lnglat(self, points: list[Coordinate]) -> list[Coordinate]:
        return [self.to_lnglat(p) for p in points]


# ---------------------------------------------------------------------------
# Planar primitives
# ---------------------------------------------------------------------------


def distance(p1: Coordinate, p2: Coordinate) -> float:
    """Euclidean distance in whatever space the points are expressed in."""
    return math.hypot(p2[0] - p1[0], p2[1] - p1[1])


def distance_to_segment(point: Coordinate, p1: Coordinate, p2: Coordinate) -> float:
    """Distance from *point* to the closed segment ``p1-p2``.

    The projection parameter is clamped to ``[0, 1]``; a degenerate segment
    (``p1 == p2``) falls back to point-to-point distance.
    """
    dx = p2[0] - p1[0]
    dy = p2[1] - p1[1]
    length_sq = dx * dx + dy * dy
    if length_sq == 0.0:
        return distance(point, p1)
    t = ((point[0] - p1[0]) * dx + (point[1] - p1[1]) * dy) / length_sq
    t = max(0.0, min(1.0, t))
    return distance(point, (p1[0] + t * dx, p1[1] + t * dy))


def distance_to_ring(point: Coordinate, ring: list[Coordinate]) -> float:
    """Distance from *point* to the nearest edge of *ring*."""
    points = open_ring(ring)
    n = len(points)
    if n == 0:
        return math.inf
    if n == 1:
        return distance(point, points[0])
    return min(distance_to_segment(point, points[i], points[(i + 1) % n]) for i in range(n))


def segments_intersect(
    a1: Coordinate,
    a2: Coordinate,
    b1: Coordinate,
    b2: Coordinate,
) -> bool:
    """Return True only when two segments cross strictly inside both.

    Parallel or collinear segments never intersect.  Intersection
    parameters within ``INTERSECTION_EPSILON`` of either end are treated as
    endpoint contact, so segments that share or touch at an endpoint are
    not reported.
    """
    d1x, d1y = a2[0] - a1[0], a2[1] - a1[1]
    d2x, d2y = b2[0] - b1[0], b2[1] - b1[1]
    det = d1x * d2y - d1y * d2x
    if abs(det) < PARALLEL_TOLERANCE:
        return False
    ox, oy = b1[0] - a1[0], b1[1] - a1[1]
    t = (ox * d2y - oy * d2x) / det
    u = (ox * d1y - oy * d1x) / det
    low, high = INTERSECTION_EPSILON, 1.0 - INTERSECTION_EPSILON
    return low < t < high and low < u < high


def point_in_polygon(point: Coordinate, polygon: list[Coordinate]) -> bool:
    """Ray-casting containment test (boundary behaviour is unspecified)."""
    points = open_ring(polygon)
    x, y = point
    inside = False
    j = len(points) - 1
    for i, (xi, yi) in enumerate(points):
        xj, yj = points[j]
        if (yi > y) != (yj > y):
            x_cross = (xj - xi) * (y - yi) / (yj - yi) + xi
            if x < x_cross:
                inside = not inside
        j = i
    return inside


def point_in_or_near_polygon(
    point: Coordinate,
    polygon: list[Coordinate],
    tolerance: float,
) -> bool:
    """True if *point* is inside *polygon* or within *tolerance* of its boundary.

    *tolerance* is in the same units as the coordinates (degrees for
    ``(lng, lat)`` rings).
    """
    if point_in_polygon(point, polygon):
        return True
    return distance_to_ring(point, polygon) <= tolerance


def signed_area(points: list[Coordinate]) -> float:
    """Shoelace signed area of an open ring (positive when counter-clockwise)."""
    n = len(points)
    total = 0.0
    for i in range(n):
        x1, y1 = points[i]
        x2, y2 = points[(i + 1) % n]
        total += x1 * y2 - x2 * y1
    return total / 2.0


# ---------------------------------------------------------------------------
# Ring measurements
# ---------------------------------------------------------------------------


def polygon_area_sq_m(ring: list[Coordinate]) -> float:
    """Shoelace area of a ``(lng, lat)`` ring in square metres."""
    points = open_ring(ring)
    if len(points) < MIN_DISTINCT_VERTICES:
        return 0.0
    frame = LocalFrame.for_ring(points)
    area_sq_ft = abs(signed_area(frame.ring_to_local(points)))
    return area_sq_ft / (FEET_PER_METER * FEET_PER_METER)


def polygon_area_sq_ft(ring: list[Coordinate]) -> float:
    """Shoelace area of a ``(lng, lat)`` ring in square feet."""
    return polygon_area_sq_m(ring) * FEET_PER_METER * FEET_PER_METER


def perimeter_ft(ring: list[Coordinate]) -> float:
    """Perimeter of a ``(lng, lat)`` ring in feet; edge ``i`` joins ``i`` and ``(i+1) % n``."""
    points = open_ring(ring)
    n = len(points)
    if n < 2:
        return 0.0
    frame = LocalFrame.for_ring(points)
    local = frame.ring_to_local(points)
    return sum(distance(local[i], local[(i + 1) % n]) for i in range(n))


def bounding_box_dimensions_ft(ring: list[Coordinate]) -> tuple[float, float]:
    """Return ``(width_ft, height_ft)`` of the ring's lat/lng extrema."""
    points = open_ring(ring)
    if not points:
        return (0.0, 0.0)
    frame = LocalFrame.for_ring(points)
    lngs = [p[0] for p in points]
    lats = [p[1] for p in points]
    width = (max(lngs) - min(lngs)) * frame.feet_per_degree_lng
    height = (max(lats) - min(lats)) * frame.feet_per_degree_lat
    return (width, height)


def max_dimension_ft(ring: list[Coordinate]) -> float:
    return max(bounding_box_dimensions_ft(ring))


def centroid(ring: list[Coordinate]) -> Coordinate:
    """Area centroid of the ring (vertex mean for degenerate rings)."""
    points = open_ring(ring)
    if not points:
        raise GeometryError("cannot compute the centroid of an empty ring")
    if len(points) >= MIN_DISTINCT_VERTICES:
        polygon = Polygon(points)
        if polygon.area > 0:
            c = polygon.centroid
            return (c.x, c.y)
    return (
        sum(p[0] for p in points) / len(points),
        sum(p[1] for p in points) / len(points),
    )


def haversine_distance_ft(lat1: float, lng1: float, lat2: float, lng2: float) -> float:
    """Great-circle distance in feet (Earth radius 20,902,231 ft)."""
    phi1 = math.radians(lat1)
    phi2 = math.radians(lat2)
    d_phi = math.radians(lat2 - lat1)
    d_lambda = math.radians(lng2 - lng1)
    a = math.sin(d_phi / 2) ** 2 + math.cos(phi1) * math.cos(phi2) * math.sin(d_lambda / 2) ** 2
    return 2 * EARTH_RADIUS_FT * math.asin(math.sqrt(min(1.0, a)))


def haversine_distance_m(lat1: float, lng1: float, lat2: float, lng2: float) -> float:
    return haversine_distance_ft(lat1, lng1, lat2, lng2) / FEET_PER_METER
