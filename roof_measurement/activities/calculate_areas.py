"""Facet and area calculation activity.

Partitions a roof topology into closed facets and computes plan area,
pitch-adjusted (sloped) area, and linear totals.

Facets are the faces of the planar arrangement formed by the footprint
ring and the interior skeleton lines (``shapely.ops.polygonize`` over the
noded union).  Skeleton endpoints that sit on a footprint edge are
inserted into that edge first so the arrangement is properly noded.

Pitch per facet, highest priority first: explicit override, the external
roof segment whose bounding box holds the facet centroid, the external
predominant pitch, the configured default.  Sloped area is
``plan_area / cos(pitch_angle)`` per facet, summed.

When the faces do not cover the footprint (within 1%) the calculator
falls back to a single footprint-sized facet and flags manual review.
"""

from __future__ import annotations

import logging
import math
import string
from collections import defaultdict
from typing import TYPE_CHECKING

from shapely.geometry import LineString, Polygon
from shapely.ops import polygonize, unary_union

from roof_measurement.core.constants import DEFAULT_PITCH
from roof_measurement.core.geometry import (
    LocalFrame,
    centroid,
    close_ring,
    distance,
    distance_to_ring,
    distance_to_segment,
    open_ring,
    signed_area,
    validate_ring,
)
from roof_measurement.core.pitch import cardinal_direction, degrees_to_pitch, pitch_to_degrees, slope_factor
from roof_measurement.models.areas import AreaCalculationResult, AreaTotals, Facet, LinearTotals
from roof_measurement.models.topology import EdgeType

if TYPE_CHECKING:
    from roof_measurement.core.geometry import Coordinate
    from roof_measurement.models.solar import RoofSegment, SolarData
    from roof_measurement.models.topology import RoofTopology

logger = logging.getLogger("roof_measurement.activities.calculate_areas")

# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

COVERAGE_TOLERANCE = 0.01
MIN_FACET_AREA_SQFT = 1.0

#: Endpoints this close to a footprint edge are inserted into it.
BOUNDARY_NODE_TOLERANCE_FT = 0.5

#: A facet edge this close to the footprint boundary is an eave/rake edge.
BOUNDARY_EDGE_TOLERANCE_FT = 0.1

PITCH_SOURCE_OVERRIDE = "override"
PITCH_SOURCE_SEGMENT = "segment"
PITCH_SOURCE_PREDOMINANT = "predominant"
PITCH_SOURCE_DEFAULT = "default"

REASON_NOT_CLOSED = "Facet construction could not close polygon"
REASON_SINGLE_FACET = "Only one facet identified"
REASON_COMPLEX = "Complex roof shape - low topology confidence"
REASON_TOPOLOGY_WARNINGS = "Topology reported {count} warning(s)"


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def calculate_areas(
    topology: RoofTopology,
    *,
    solar_data: SolarData | None = None,
    pitch_override: str | None = None,
    default_pitch: str = DEFAULT_PITCH,
) -> AreaCalculationResult:
    """Compute facets, totals, and linear totals for *topology*.

    Raises:
        GeometryError: If the topology's footprint ring is degenerate.
    """
    ring = validate_ring(topology.footprint_coords, "topology footprint")
    frame = LocalFrame.for_ring(ring)
    outline = frame.ring_to_local(ring)
    footprint_area = abs(signed_area(outline))
    outward_sign = 1.0 if signed_area(outline) > 0 else -1.0

    interior = [
        (frame.to_local(e.start), frame.to_local(e.end))
        for e in topology.skeleton
        if not e.type.is_boundary
    ]
    faces = build_faces(outline, interior)
    covered = sum(f.area for f in faces)
    closed = bool(faces) and abs(covered - footprint_area) <= COVERAGE_TOLERANCE * footprint_area

    reasons: list[str] = []
    if not closed:
        reasons.append(REASON_NOT_CLOSED)
        logger.warning(
            "Facets do not cover footprint | covered=%.1f sqft | footprint=%.1f sqft | faces=%d",
            covered,
            footprint_area,
            len(faces),
        )
        faces = [Polygon(outline)]

    segments = list(solar_data.segments) if solar_data is not None and solar_data.available else []
    predominant = solar_data.predominant_pitch if solar_data is not None and solar_data.available else None

    faces.sort(key=lambda f: f.area, reverse=True)
    facets: list[Facet] = []
    for index, face in enumerate(faces):
        polygon_lnglat = close_ring(frame.ring_to_lnglat(open_ring(list(face.exterior.coords))))
        pitch, pitch_source, segment = _facet_pitch(
            centroid(polygon_lnglat), segments, pitch_override, predominant, default_pitch
        )
        pitch_degrees = pitch_to_degrees(pitch)
        azimuth = segment.azimuth_degrees if segment is not None else _eave_azimuth(face, outline, outward_sign)
        plan = face.area
        facets.append(
            Facet(
                id=facet_label(index),
                polygon=polygon_lnglat,
                plan_area_sqft=plan,
                sloped_area_sqft=plan * slope_factor(pitch),
                pitch=pitch,
                pitch_degrees=pitch_degrees,
                azimuth_degrees=azimuth,
                direction=cardinal_direction(azimuth),
                pitch_source=pitch_source,
            )
        )

    if len(facets) <= 1:
        reasons.append(REASON_SINGLE_FACET)
    if topology.is_complex_shape:
        reasons.append(REASON_COMPLEX)
    if topology.warnings:
        reasons.append(REASON_TOPOLOGY_WARNINGS.format(count=len(topology.warnings)))

    totals = AreaTotals(
        plan_area_sqft=sum(f.plan_area_sqft for f in facets),
        sloped_area_sqft=sum(f.sloped_area_sqft for f in facets),
        predominant_pitch=predominant_facet_pitch(facets) or default_pitch,
    )
    linear = linear_totals(topology, frame)
    method = f"{'polygonize' if closed else 'footprint_fallback'}_{topology.ridge_source}"

    logger.info(
        "Areas calculated | method=%s | facets=%d | plan=%.0f sqft | sloped=%.0f sqft | "
        "pitch=%s | review=%s",
        method,
        len(facets),
        totals.plan_area_sqft,
        totals.sloped_area_sqft,
        totals.predominant_pitch,
        bool(reasons),
    )
    return AreaCalculationResult(
        facets=facets,
        totals=totals,
        linear_totals=linear,
        calculation_method=method,
        requires_manual_review=bool(reasons),
        review_reasons=reasons,
    )


# ---------------------------------------------------------------------------
# Faces
# ---------------------------------------------------------------------------


def build_faces(
    outline: list[Coordinate],
    interior: list[tuple[Coordinate, Coordinate]],
) -> list[Polygon]:
    """Faces of the arrangement of *outline* and *interior* lines (local feet).

    Faces smaller than 1 sq ft or lying outside the outline are dropped.
    """
    footprint = Polygon(outline)
    boundary = _noded_boundary(outline, [p for line in interior for p in line])
    lines = [LineString(boundary + boundary[:1])]
    lines.extend(LineString([a, b]) for a, b in interior if distance(a, b) > 0)

    faces = []
    for face in polygonize(unary_union(lines)):
        if face.area < MIN_FACET_AREA_SQFT:
            continue
        if not footprint.buffer(BOUNDARY_NODE_TOLERANCE_FT).contains(face.representative_point()):
            continue
        faces.append(face)
    return faces


def _noded_boundary(outline: list[Coordinate], endpoints: list[Coordinate]) -> list[Coordinate]:
    """Insert endpoints that touch a footprint edge into that edge, in order."""
    n = len(outline)
    noded: list[Coordinate] = []
    for i in range(n):
        a, b = outline[i], outline[(i + 1) % n]
        noded.append(a)
        length_sq = (b[0] - a[0]) ** 2 + (b[1] - a[1]) ** 2
        if length_sq == 0:
            continue
        on_edge = []
        for p in endpoints:
            if distance(p, a) <= BOUNDARY_NODE_TOLERANCE_FT or distance(p, b) <= BOUNDARY_NODE_TOLERANCE_FT:
                continue
            if distance_to_segment(p, a, b) <= BOUNDARY_NODE_TOLERANCE_FT:
                t = ((p[0] - a[0]) * (b[0] - a[0]) + (p[1] - a[1]) * (b[1] - a[1])) / length_sq
                on_edge.append((t, p))
        for _, p in sorted(set(on_edge)):
            noded.append(p)
    return noded


# ---------------------------------------------------------------------------
# Pitch and orientation
# ---------------------------------------------------------------------------


def _facet_pitch(
    facet_center: Coordinate,
    segments: list[RoofSegment],
    pitch_override: str | None,
    predominant: str | None,
    default_pitch: str,
) -> tuple[str, str, RoofSegment | None]:
    if pitch_override:
        return pitch_override, PITCH_SOURCE_OVERRIDE, None

    holding = [s for s in segments if s.contains(facet_center)]
    if holding:
        best = min(
            holding,
            key=lambda s: distance(s.center, facet_center) if s.center else math.inf,
        )
        return degrees_to_pitch(best.pitch_degrees), PITCH_SOURCE_SEGMENT, best

    if predominant:
        return predominant, PITCH_SOURCE_PREDOMINANT, None
    return default_pitch, PITCH_SOURCE_DEFAULT, None


def _eave_azimuth(face: Polygon, outline: list[Coordinate], outward_sign: float) -> float:
    """Bearing of the outward normal of the facet's longest boundary edge (0 if none)."""
    coords = open_ring(list(face.exterior.coords))
    best_length = 0.0
    bearing = 0.0
    n = len(coords)
    for i in range(n):
        a, b = coords[i], coords[(i + 1) % n]
        mid = ((a[0] + b[0]) / 2.0, (a[1] + b[1]) / 2.0)
        length = distance(a, b)
        if length <= best_length or distance_to_ring(mid, outline) > BOUNDARY_EDGE_TOLERANCE_FT:
            continue
        # Outward normal of the footprint edge this facet edge lies on
        j = min(range(len(outline)), key=lambda k: distance_to_segment(mid, outline[k], outline[(k + 1) % len(outline)]))
        p, q = outline[j], outline[(j + 1) % len(outline)]
        normal = (outward_sign * (q[1] - p[1]), -outward_sign * (q[0] - p[0]))
        bearing = math.degrees(math.atan2(normal[0], normal[1])) % 360.0
        best_length = length
    return bearing


def facet_label(index: int) -> str:
    """``A``..``Z`` then ``F27``, ``F28``, ..."""
    if index < len(string.ascii_uppercase):
        return string.ascii_uppercase[index]
    return f"F{index + 1}"


def predominant_facet_pitch(facets: list[Facet]) -> str | None:
    """Pitch carrying the most plan area."""
    if not facets:
        return None
    weights: dict[str, float] = defaultdict(float)
    for facet in facets:
        weights[facet.pitch] += facet.plan_area_sqft
    return max(weights, key=lambda k: weights[k])


# ---------------------------------------------------------------------------
# Linear totals
# ---------------------------------------------------------------------------


def linear_totals(topology: RoofTopology, frame: LocalFrame | None = None) -> LinearTotals:
    """Sum skeleton edge lengths (feet) per edge type."""
    frame = frame or LocalFrame.for_ring(topology.footprint_coords)
    lengths: dict[EdgeType, float] = defaultdict(float)
    for edge in topology.skeleton:
        lengths[edge.type] += distance(frame.to_local(edge.start), frame.to_local(edge.end))
    return LinearTotals(
        ridge_ft=lengths[EdgeType.RIDGE],
        hip_ft=lengths[EdgeType.HIP],
        valley_ft=lengths[EdgeType.VALLEY],
        eave_ft=lengths[EdgeType.EAVE],
        rake_ft=lengths[EdgeType.RAKE],
    )
