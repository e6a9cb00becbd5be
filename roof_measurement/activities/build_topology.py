"""Roof topology builder.

Builds a typed roof skeleton (ridge / hip / valley / eave / rake edges)
on top of a resolved footprint.

Steps:

1. Clean the ring (drop near-collinear vertices, orient counter-clockwise)
   and apply the optional eave offset (mitred outward offset).
2. Pick the ridge direction from the first available source in the
   configured priority order:
   ``external_segments`` (roof-segment azimuths), ``ai_detected``
   (AI ridge lines), ``geometric`` (longest footprint edge).
3. Classify the outline (rectangle, L / T / U, multi-wing, complex) by
   vertex count, right angles, and reflex corners.
4. Rectangles get an exact gable or hip skeleton.  Every other outline
   gets a simplified hip-style skeleton (one main ridge, hips from convex
   corners, valleys from reflex corners) and is flagged complex.
5. Classify the skeleton's vertices and record connectivity problems.

The builder tolerates anomalies and reports them as warnings; rejecting
a topology is the QA gate's job.

Geometry is built in feet in a local equirectangular frame and converted
back to ``(lng, lat)`` for the output.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from typing import TYPE_CHECKING

from shapely.geometry import LineString, Polygon

from roof_measurement.activities.detect_vertices import detect_vertices
from roof_measurement.core.constants import (
    DEFAULT_SNAP_TOLERANCE_FT,
    RIDGE_SOURCE_AI,
    RIDGE_SOURCE_EXTERNAL,
    RIDGE_SOURCE_GEOMETRIC,
    RIDGE_SOURCES,
)
from roof_measurement.core.geometry import (
    GeometryError,
    LocalFrame,
    distance,
    distance_to_segment,
    open_ring,
    signed_area,
    validate_ring,
)
from roof_measurement.models.topology import EdgeType, RoofTopology, SkeletonEdge

if TYPE_CHECKING:
    from collections.abc import Sequence

    from roof_measurement.core.geometry import Coordinate
    from roof_measurement.models.footprint import Footprint
    from roof_measurement.models.solar import SolarData
    from roof_measurement.models.topology import LinearFeature

logger = logging.getLogger("roof_measurement.activities.build_topology")

# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

#: Vertices closer than this to the line through their neighbours are dropped.
COLLINEAR_TOLERANCE_FT = 0.25

#: Mitre length cap for the eave offset, as a multiple of the offset.
EAVE_MITRE_LIMIT = 2.0

#: Interior angles within this many degrees of 90/270 count as square.
RIGHT_ANGLE_TOLERANCE_DEG = 10.0

MAX_WING_SHAPE_VERTICES = 12
MAX_WING_SHAPE_REFLEX = 4

#: Segments needed before roof-segment azimuths are trusted for direction.
MIN_EXTERNAL_SEGMENTS = 2

#: Fraction of the clipped ridge trimmed from each end on complex outlines.
COMPLEX_RIDGE_INSET = 0.25

#: Shorter ridges collapse to a single apex point.
MIN_RIDGE_LENGTH_FT = 0.5

SHAPE_RECTANGLE = "rectangle"
SHAPE_L = "l_shape"
SHAPE_T = "t_shape"
SHAPE_U = "u_shape"
SHAPE_MULTI_WING = "multi_wing"
SHAPE_COMPLEX = "complex"

STYLE_GABLE = "gable"
STYLE_HIP = "hip"

WARNING_COMPLEX = "Complex roof - simplified geometry"

Vector = tuple[float, float]


@dataclass(frozen=True, slots=True)
class RidgeDirection:
    """Chosen ridge direction.

    Attributes:
        source: Ridge source tag.
        vector: Unit vector (x east, y north) in the local frame.
        hip_layout: True / False when the source implies hip / gable,
            ``None`` when it says nothing about roof style.
    """

    source: str
    vector: Vector
    hip_layout: bool | None = None


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def build_topology(
    footprint: Footprint | list[Coordinate],
    *,
    solar_data: SolarData | None = None,
    ai_features: Sequence[LinearFeature] = (),
    eave_offset_ft: float = 0.0,
    ridge_source_priority: Sequence[str] = RIDGE_SOURCES,
    snap_tolerance_ft: float = DEFAULT_SNAP_TOLERANCE_FT,
) -> RoofTopology:
    """Assemble a roof skeleton anchored to *footprint*.

    Args:
        footprint: Resolved footprint or a bare ``(lng, lat)`` ring.
        solar_data: External roof-segment data, if fetched.
        ai_features: AI-detected roof lines (ridge lines set direction,
            hip lines imply a hip roof).
        eave_offset_ft: Outward offset applied before building.
        ridge_source_priority: Ridge sources to try, in order.
        snap_tolerance_ft: Snap tolerance for vertex classification.

    Raises:
        GeometryError: If the ring cannot form a polygon.
    """
    ring = footprint if isinstance(footprint, list) else footprint.coords
    ring = validate_ring(ring, "footprint")
    frame = LocalFrame.for_ring(ring)
    warnings: list[str] = []

    points = clean_outline(frame.ring_to_local(ring))
    if eave_offset_ft > 0:
        points = offset_outline(points, eave_offset_ft)

    direction = select_ridge_direction(
        points,
        frame,
        solar_data=solar_data,
        ai_features=ai_features,
        priority=ridge_source_priority,
        warnings=warnings,
    )
    shape = classify_shape(points)

    if shape == SHAPE_RECTANGLE:
        style = STYLE_GABLE if direction.hip_layout is False else STYLE_HIP
        boundary, interior = rectangle_skeleton(points, direction.vector, style, warnings)
        is_complex = False
    else:
        style = STYLE_HIP
        boundary, interior = simplified_skeleton(points, direction.vector, warnings)
        is_complex = True
        warnings.append(WARNING_COMPLEX)

    skeleton = [_to_lnglat(frame, start, end, edge_type) for start, end, edge_type in boundary + interior]
    footprint_coords = frame.ring_to_lnglat(points)
    footprint_coords.append(footprint_coords[0])

    detection = detect_vertices(
        footprint_coords,
        [e for e in skeleton if not e.type.is_boundary],
        snap_tolerance_ft=snap_tolerance_ft,
    )
    warnings.extend(detection.warnings)
    if detection.disconnected_clusters:
        is_complex = True

    logger.info(
        "Topology built | shape=%s | style=%s | ridge_source=%s | edges=%d | complex=%s | warnings=%d",
        shape,
        style,
        direction.source,
        len(skeleton),
        is_complex,
        len(warnings),
    )
    return RoofTopology(
        footprint_coords=footprint_coords,
        skeleton=skeleton,
        ridge_source=direction.source,
        is_complex_shape=is_complex,
        warnings=warnings,
        shape_type=shape,
        roof_style=style,
        vertices=detection.vertices,
        adjacency=detection.adjacency,
        disconnected_clusters=detection.disconnected_clusters,
    )


# ---------------------------------------------------------------------------
# Outline preparation
# ---------------------------------------------------------------------------


def clean_outline(points: list[Coordinate]) -> list[Coordinate]:
    """Drop near-collinear vertices and return an open counter-clockwise ring.

    Self-intersecting rings are repaired first (largest part kept).
    """
    polygon = Polygon(points)
    if not polygon.is_valid:
        repaired = polygon.buffer(0)
        if repaired.geom_type != "Polygon":
            repaired = max(repaired.geoms, key=lambda g: g.area)
        points = list(repaired.exterior.coords)

    cleaned = open_ring(points)
    changed = True
    while changed and len(cleaned) > 3:
        changed = False
        for i in range(len(cleaned)):
            prev_pt, cur, next_pt = cleaned[i - 1], cleaned[i], cleaned[(i + 1) % len(cleaned)]
            if distance_to_segment(cur, prev_pt, next_pt) < COLLINEAR_TOLERANCE_FT:
                del cleaned[i]
                changed = True
                break

    if len(set(cleaned)) < 3:
        raise GeometryError("footprint collapses to fewer than 3 vertices after cleaning")
    if signed_area(cleaned) < 0:
        cleaned.reverse()
    return cleaned


def offset_outline(points: list[Coordinate], offset_ft: float) -> list[Coordinate]:
    """Offset an open CCW ring outward by *offset_ft* with mitred corners."""
    grown = Polygon(points).buffer(offset_ft, join_style="mitre", mitre_limit=EAVE_MITRE_LIMIT)
    result = open_ring(list(grown.exterior.coords))
    if signed_area(result) < 0:
        result.reverse()
    return result


def interior_angles(points: list[Coordinate]) -> list[float]:
    """Interior angle in degrees at each vertex of an open CCW ring (> 180 is reflex)."""
    n = len(points)
    angles = []
    for i in range(n):
        prev_pt, cur, next_pt = points[i - 1], points[i], points[(i + 1) % n]
        a = (prev_pt[0] - cur[0], prev_pt[1] - cur[1])
        b = (next_pt[0] - cur[0], next_pt[1] - cur[1])
        turn = math.degrees(math.atan2(a[0] * b[1] - a[1] * b[0], a[0] * b[0] + a[1] * b[1]))
        # Measured from the next edge back to the previous one, counter-clockwise
        angles.append((-turn) % 360.0)
    return angles


def reflex_indices(points: list[Coordinate]) -> list[int]:
    """Indices of reflex corners (cross product < 0 on a CCW ring)."""
    n = len(points)
    result = []
    for i in range(n):
        prev_pt, cur, next_pt = points[i - 1], points[i], points[(i + 1) % n]
        cross = (cur[0] - prev_pt[0]) * (next_pt[1] - cur[1]) - (cur[1] - prev_pt[1]) * (next_pt[0] - cur[0])
        if cross < 0:
            result.append(i)
    return result


def classify_shape(points: list[Coordinate]) -> str:
    """Label an open CCW outline by vertex count, squareness, and reflex corners."""
    n = len(points)
    angles = interior_angles(points)
    rectilinear = all(
        min(abs(a - 90.0), abs(a - 270.0)) <= RIGHT_ANGLE_TOLERANCE_DEG for a in angles
    )
    if not rectilinear:
        return SHAPE_COMPLEX
    if n == 4:
        return SHAPE_RECTANGLE

    reflex = reflex_indices(points)
    if n > MAX_WING_SHAPE_VERTICES or len(reflex) > MAX_WING_SHAPE_REFLEX:
        return SHAPE_COMPLEX
    if n == 6 and len(reflex) == 1:
        return SHAPE_L
    if n == 8 and len(reflex) == 2:
        adjacent = (reflex[1] - reflex[0]) % n in (1, n - 1)
        return SHAPE_U if adjacent else SHAPE_T
    return SHAPE_MULTI_WING


# ---------------------------------------------------------------------------
# Ridge direction
# ---------------------------------------------------------------------------


def select_ridge_direction(
    points: list[Coordinate],
    frame: LocalFrame,
    *,
    solar_data: SolarData | None,
    ai_features: Sequence[LinearFeature],
    priority: Sequence[str],
    warnings: list[str],
) -> RidgeDirection:
    """Return the direction from the first source in *priority* that has data."""
    for source in priority:
        if source == RIDGE_SOURCE_EXTERNAL:
            choice = _external_direction(solar_data)
        elif source == RIDGE_SOURCE_AI:
            choice = _ai_direction(ai_features, frame)
        elif source == RIDGE_SOURCE_GEOMETRIC:
            choice = _geometric_direction(points)
        else:
            choice = None
        if choice is not None:
            return choice

    warnings.append("No configured ridge source had data; using geometric default")
    return _geometric_direction(points)


def _external_direction(solar_data: SolarData | None) -> RidgeDirection | None:
    if solar_data is None or not solar_data.available or len(solar_data.segments) < MIN_EXTERNAL_SEGMENTS:
        return None

    # Area-weighted mean of the downslope axis (azimuths folded mod 180°)
    sum_cos = sum_sin = 0.0
    quadrants = set()
    for segment in solar_data.segments:
        weight = segment.area_sq_m or 1.0
        doubled = math.radians(2.0 * segment.azimuth_degrees)
        sum_cos += weight * math.cos(doubled)
        sum_sin += weight * math.sin(doubled)
        quadrants.add(int(((segment.azimuth_degrees + 45.0) % 360.0) // 90.0))
    slope_axis = math.degrees(math.atan2(sum_sin, sum_cos)) / 2.0
    ridge_bearing = math.radians(slope_axis + 90.0)

    # Facing all four cardinal directions means hips; two opposite means gable
    hip_layout: bool | None = None
    if len(quadrants) == 4:
        hip_layout = True
    elif quadrants in ({0, 2}, {1, 3}):
        hip_layout = False

    return RidgeDirection(
        source=RIDGE_SOURCE_EXTERNAL,
        vector=(math.sin(ridge_bearing), math.cos(ridge_bearing)),
        hip_layout=hip_layout,
    )


def _ai_direction(ai_features: Sequence[LinearFeature], frame: LocalFrame) -> RidgeDirection | None:
    ridges = [f for f in ai_features if f.type is EdgeType.RIDGE]
    if not ridges:
        return None
    longest = max(ridges, key=lambda f: distance(frame.to_local(f.start), frame.to_local(f.end)))
    vector = _unit(frame.to_local(longest.start), frame.to_local(longest.end))
    if vector is None:
        return None
    has_hips = any(f.type is EdgeType.HIP for f in ai_features)
    return RidgeDirection(source=RIDGE_SOURCE_AI, vector=vector, hip_layout=has_hips)


def _geometric_direction(points: list[Coordinate]) -> RidgeDirection:
    n = len(points)
    i = max(range(n), key=lambda k: distance(points[k], points[(k + 1) % n]))
    vector = _unit(points[i], points[(i + 1) % n]) or (1.0, 0.0)
    return RidgeDirection(source=RIDGE_SOURCE_GEOMETRIC, vector=vector)


# ---------------------------------------------------------------------------
# Skeletons
# ---------------------------------------------------------------------------

_Edge = tuple[Vector, Vector, EdgeType]


def rectangle_skeleton(
    points: list[Coordinate],
    ridge_vector: Vector,
    style: str,
    warnings: list[str] | None = None,
) -> tuple[list[_Edge], list[_Edge]]:
    """Exact skeleton for a four-corner square-cornered outline.

    Gable: the ridge runs along the rectangle axis closest to
    *ridge_vector*, between the midpoints of the end edges, and the end
    edges are rakes.  Hip: the ridge always runs along the long axis,
    inset by half the short side from each end, with four hips and all
    boundary edges eaves; a square collapses to a pyramid apex.  A hip
    direction across the short side is overridden with a warning.
    """
    c = points
    # Rotate the corner order so that c0->c1 is parallel to the ridge
    if abs(_dot(_unit(c[0], c[1]) or (1.0, 0.0), ridge_vector)) < abs(
        _dot(_unit(c[1], c[2]) or (0.0, 1.0), ridge_vector)
    ):
        c = c[1:] + c[:1]

    if style == STYLE_GABLE:
        boundary = [
            (c[0], c[1], EdgeType.EAVE),
            (c[1], c[2], EdgeType.RAKE),
            (c[2], c[3], EdgeType.EAVE),
            (c[3], c[0], EdgeType.RAKE),
        ]
        return boundary, [(_midpoint(c[3], c[0]), _midpoint(c[1], c[2]), EdgeType.RIDGE)]

    along, across = distance(c[0], c[1]), distance(c[1], c[2])
    if along < across:
        c = c[1:] + c[:1]
        if across - along > MIN_RIDGE_LENGTH_FT and warnings is not None:
            warnings.append("Ridge direction crosses the short side; hip ridge placed along the long axis")
        along, across = across, along

    end_start = _midpoint(c[3], c[0])
    end_finish = _midpoint(c[1], c[2])
    boundary = [(c[i], c[(i + 1) % 4], EdgeType.EAVE) for i in range(4)]
    half_width = across / 2.0

    if along - across <= MIN_RIDGE_LENGTH_FT:
        apex = _midpoint(end_start, end_finish)
        return boundary, [(corner, apex, EdgeType.HIP) for corner in c]

    axis = _unit(end_start, end_finish) or ridge_vector
    ridge_a = (end_start[0] + axis[0] * half_width, end_start[1] + axis[1] * half_width)
    ridge_b = (end_finish[0] - axis[0] * half_width, end_finish[1] - axis[1] * half_width)
    interior = [
        (ridge_a, ridge_b, EdgeType.RIDGE),
        (c[3], ridge_a, EdgeType.HIP),
        (c[0], ridge_a, EdgeType.HIP),
        (c[1], ridge_b, EdgeType.HIP),
        (c[2], ridge_b, EdgeType.HIP),
    ]
    return boundary, interior


def simplified_skeleton(
    points: list[Coordinate],
    ridge_vector: Vector,
    warnings: list[str],
) -> tuple[list[_Edge], list[_Edge]]:
    """Hip-style approximation for non-rectangular outlines.

    One main ridge along the minimum rotated rectangle's axis closest to
    *ridge_vector*, clipped to the outline and trimmed at both ends.
    Convex corners get hips and reflex corners get valleys, each drawn to
    the nearest ridge end.  Lines that would leave the outline are
    skipped with a warning.
    """
    polygon = Polygon(points)
    n = len(points)
    boundary = [(points[i], points[(i + 1) % n], EdgeType.EAVE) for i in range(n)]

    ridge = _main_ridge(polygon, ridge_vector)
    if ridge is None:
        warnings.append("Could not place a ridge inside the footprint; skeleton has eaves only")
        return boundary, []

    ridge_a, ridge_b = ridge
    interior: list[_Edge] = []
    collapsed = distance(ridge_a, ridge_b) <= MIN_RIDGE_LENGTH_FT
    if not collapsed:
        interior.append((ridge_a, ridge_b, EdgeType.RIDGE))

    reflex = set(reflex_indices(points))
    container = polygon.buffer(0.01)
    for i, corner in enumerate(points):
        target = ridge_a if distance(corner, ridge_a) <= distance(corner, ridge_b) else ridge_b
        edge_type = EdgeType.VALLEY if i in reflex else EdgeType.HIP
        if not container.contains(LineString([corner, target])):
            warnings.append(f"Skipped {edge_type.value} from corner {i}: line leaves footprint")
            continue
        interior.append((corner, target, edge_type))

    return boundary, interior


def _main_ridge(polygon: Polygon, ridge_vector: Vector) -> tuple[Vector, Vector] | None:
    mrr = polygon.minimum_rotated_rectangle
    corners = open_ring(list(mrr.exterior.coords))
    if len(corners) < 4:
        return None

    side_a = _unit(corners[0], corners[1])
    side_b = _unit(corners[1], corners[2])
    if side_a is None or side_b is None:
        return None
    axis = side_a if abs(_dot(side_a, ridge_vector)) >= abs(_dot(side_b, ridge_vector)) else side_b
    span = distance(corners[0], corners[1]) + distance(corners[1], corners[2])

    anchor_point = polygon.centroid
    if not polygon.contains(anchor_point):
        anchor_point = polygon.representative_point()
    anchor = (anchor_point.x, anchor_point.y)

    line = LineString(
        [
            (anchor[0] - axis[0] * span, anchor[1] - axis[1] * span),
            (anchor[0] + axis[0] * span, anchor[1] + axis[1] * span),
        ]
    )
    clipped = line.intersection(polygon)
    pieces = [g for g in getattr(clipped, "geoms", [clipped]) if g.geom_type == "LineString" and not g.is_empty]
    if not pieces:
        return None
    piece = min(pieces, key=lambda g: g.distance(anchor_point))

    start, end = piece.coords[0], piece.coords[-1]
    trim = COMPLEX_RIDGE_INSET * piece.length
    direction = _unit(start, end)
    if direction is None:
        return None
    return (
        (start[0] + direction[0] * trim, start[1] + direction[1] * trim),
        (end[0] - direction[0] * trim, end[1] - direction[1] * trim),
    )


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _unit(a: Coordinate, b: Coordinate) -> Vector | None:
    length = distance(a, b)
    if length == 0.0:
        return None
    return ((b[0] - a[0]) / length, (b[1] - a[1]) / length)


def _dot(a: Vector, b: Vector) -> float:
    return a[0] * b[0] + a[1] * b[1]


def _midpoint(a: Coordinate, b: Coordinate) -> Coordinate:
    return ((a[0] + b[0]) / 2.0, (a[1] + b[1]) / 2.0)


def _to_lnglat(frame: LocalFrame, start: Coordinate, end: Coordinate, edge_type: EdgeType) -> SkeletonEdge:
    return SkeletonEdge(start=frame.to_lnglat(start), end=frame.to_lnglat(end), type=edge_type)
