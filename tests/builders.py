"""Geometry builders shared by the unit tests."""

from __future__ import annotations

from roof_measurement.core.geometry import Coordinate, LocalFrame, close_ring
from roof_measurement.models.topology import EdgeType, RoofTopology, SkeletonEdge

ORIGIN_LNG = -97.7431
ORIGIN_LAT = 30.2672

FRAME = LocalFrame(origin_lng=ORIGIN_LNG, origin_lat=ORIGIN_LAT)


def ring_from_feet(points: list[Coordinate], lng: float = ORIGIN_LNG, lat: float = ORIGIN_LAT) -> list[Coordinate]:
    """Closed ``(lng, lat)`` ring from local ``(x_ft, y_ft)`` points."""
    frame = LocalFrame(origin_lng=lng, origin_lat=lat)
    return close_ring(frame.ring_to_lnglat(points))


def rectangle_feet(width: float, depth: float) -> list[Coordinate]:
    """Counter-clockwise rectangle centred on the origin."""
    hw, hd = width / 2.0, depth / 2.0
    return [(-hw, -hd), (hw, -hd), (hw, hd), (-hw, hd)]


def edge(start: Coordinate, end: Coordinate, edge_type: EdgeType) -> SkeletonEdge:
    """Skeleton edge from local feet."""
    return SkeletonEdge(start=FRAME.to_lnglat(start), end=FRAME.to_lnglat(end), type=edge_type)


def gable_rectangle_topology(width: float = 60.0, depth: float = 30.0) -> RoofTopology:
    """Rectangle with one straight ridge, eaves on the long sides, rakes on the ends."""
    c = rectangle_feet(width, depth)
    hw = width / 2.0
    skeleton = [
        edge(c[0], c[1], EdgeType.EAVE),
        edge(c[1], c[2], EdgeType.RAKE),
        edge(c[2], c[3], EdgeType.EAVE),
        edge(c[3], c[0], EdgeType.RAKE),
        edge((-hw, 0.0), (hw, 0.0), EdgeType.RIDGE),
    ]
    return RoofTopology(
        footprint_coords=ring_from_feet(c),
        skeleton=skeleton,
        ridge_source="geometric",
        shape_type="rectangle",
        roof_style="gable",
    )
