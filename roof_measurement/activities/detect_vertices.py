"""Vertex detection and classification.

Turns a perimeter ring plus typed roof lines (ridge / hip / valley) into a
flat list of classified vertices with an id-based adjacency map.

- Every perimeter corner becomes a ``perimeter_corner`` vertex (0.95).
- Line endpoints within the snap tolerance are one junction; each
  junction is processed once.
- A junction is classified from the set of line types that terminate at
  it, and snapped onto a perimeter corner when one is within tolerance
  (the pre-snap coordinate is kept for audit).
- Connectivity: non-perimeter vertices without connections are orphans,
  and connected components that touch neither a corner nor the
  footprint boundary are reported as disconnected clusters.  Both are
  warnings, not failures.

All distances are evaluated in feet in a local frame anchored on the ring.
"""

from __future__ import annotations

import logging
from collections import deque
from dataclasses import dataclass, field, replace
from typing import TYPE_CHECKING

from roof_measurement.core.constants import DEFAULT_SNAP_TOLERANCE_FT
from roof_measurement.core.geometry import LocalFrame, distance, distance_to_ring, validate_ring
from roof_measurement.models.topology import EdgeType, Vertex, VertexType

if TYPE_CHECKING:
    from collections.abc import Callable, Iterable, Sequence

    from roof_measurement.core.geometry import Coordinate
    from roof_measurement.models.topology import LinearFeature, SkeletonEdge

logger = logging.getLogger("roof_measurement.activities.detect_vertices")

# ---------------------------------------------------------------------------
# Confidence constants
# ---------------------------------------------------------------------------

PERIMETER_CONFIDENCE = 0.95
SNAPPED_MULTI_LINE_CONFIDENCE = 0.85
SNAPPED_SINGLE_LINE_CONFIDENCE = 0.75
FREE_MULTI_LINE_CONFIDENCE = 0.80
FREE_SINGLE_LINE_CONFIDENCE = 0.65

COMPLEX_JUNCTION_MIN_LINES = 4

# Rounding (feet) for the processed-junction key
_KEY_DECIMALS = 3


@dataclass(frozen=True, slots=True)
class VertexDetection:
    """Output of ``detect_vertices``.

    Attributes:
        vertices: Perimeter corners (``P<n>``) followed by junctions (``J<n>``).
        adjacency: Vertex id → sorted neighbour ids.
        warnings: Orphan and disconnected-section warnings.
        disconnected_clusters: Unanchored vertex-id groups.
    """

    vertices: list[Vertex]
    adjacency: dict[str, tuple[str, ...]]
    warnings: list[str] = field(default_factory=list)
    disconnected_clusters: list[list[str]] = field(default_factory=list)

    @property
    def orphans(self) -> list[Vertex]:
        return [v for v in self.vertices if v.is_orphan]

    def of_type(self, vertex_type: VertexType) -> list[Vertex]:
        return [v for v in self.vertices if v.type is vertex_type]


# ---------------------------------------------------------------------------
# Classification
# ---------------------------------------------------------------------------


def classify_junction(line_types: Iterable[EdgeType]) -> VertexType:
    """Classify a junction from the types of the lines that end at it.

    Precedence: ridge+hip (no valley) → hip_ridge_junction; ridge+valley →
    valley_ridge_junction; ridge only → ridge_end; hip only → hip_junction;
    valley without ridge → valley_intersection; four or more other lines →
    complex_junction; otherwise perimeter_corner.
    """
    types = list(line_types)
    kinds = set(types)
    has_ridge = EdgeType.RIDGE in kinds
    has_hip = EdgeType.HIP in kinds
    has_valley = EdgeType.VALLEY in kinds

    if has_ridge and has_hip and not has_valley:
        return VertexType.HIP_RIDGE_JUNCTION
    if has_ridge and has_valley:
        return VertexType.VALLEY_RIDGE_JUNCTION
    if has_ridge:
        return VertexType.RIDGE_END
    if has_hip and not has_valley:
        return VertexType.HIP_JUNCTION
    if has_valley:
        return VertexType.VALLEY_INTERSECTION
    if len(types) >= COMPLEX_JUNCTION_MIN_LINES:
        return VertexType.COMPLEX_JUNCTION
    return VertexType.PERIMETER_CORNER


# ---------------------------------------------------------------------------
# Detection
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class _Line:
    start: Coordinate
    end: Coordinate
    type: EdgeType


def detect_vertices(
    perimeter: list[Coordinate],
    lines: Sequence[LinearFeature | SkeletonEdge],
    *,
    snap_tolerance_ft: float = DEFAULT_SNAP_TOLERANCE_FT,
    pixel_transform: Callable[[Coordinate], tuple[float, float]] | None = None,
) -> VertexDetection:
    """Extract and classify vertices from a ring and typed roof lines.

    Args:
        perimeter: Footprint ring in ``(lng, lat)``.
        lines: Ridge / hip / valley lines (other types are ignored).
        snap_tolerance_ft: Junction merge and corner snap distance.
        pixel_transform: Optional ``(lng, lat) → (x, y)`` image mapping.

    Raises:
        GeometryError: If the ring has fewer than 3 distinct vertices.
    """
    ring = validate_ring(perimeter, "perimeter")
    frame = LocalFrame.for_ring(ring)
    corners = frame.ring_to_local(ring)

    local_lines = [
        _Line(frame.to_local(line.start), frame.to_local(line.end), line.type)
        for line in lines
        if not line.type.is_boundary
    ]

    vertices: list[Vertex] = []
    neighbours: dict[str, set[str]] = {}

    def pixel(coord: Coordinate) -> tuple[float, float] | None:
        return pixel_transform(coord) if pixel_transform else None

    # Perimeter corners
    n = len(ring)
    for i, coord in enumerate(ring):
        vid = f"P{i}"
        neighbours[vid] = {f"P{(i - 1) % n}", f"P{(i + 1) % n}"}
        vertices.append(
            Vertex(
                id=vid,
                coordinate=coord,
                type=VertexType.PERIMETER_CORNER,
                confidence=PERIMETER_CONFIDENCE,
                source="footprint",
                detection_method="footprint_ring",
                pixel_coordinate=pixel(coord),
                on_boundary=True,
            )
        )

    # Junction points, first-seen wins within the snap tolerance
    junction_points: list[Coordinate] = []
    seen_keys: set[tuple[float, float]] = set()
    for line in local_lines:
        for point in (line.start, line.end):
            key = (round(point[0], _KEY_DECIMALS), round(point[1], _KEY_DECIMALS))
            if key in seen_keys:
                continue
            seen_keys.add(key)
            if any(distance(point, j) <= snap_tolerance_ft for j in junction_points):
                continue
            junction_points.append(point)

    for index, point in enumerate(junction_points):
        vid = f"J{index}"
        neighbours[vid] = set()
        connected = [
            line
            for line in local_lines
            if distance(point, line.start) <= snap_tolerance_ft or distance(point, line.end) <= snap_tolerance_ft
        ]
        vertex_type = classify_junction(line.type for line in connected)
        multi = len(connected) >= 2

        nearest = min(range(n), key=lambda i: distance(point, corners[i]))
        snapped = distance(point, corners[nearest]) <= snap_tolerance_ft
        original = frame.to_lnglat(point)
        if snapped:
            coordinate = ring[nearest]
            confidence = SNAPPED_MULTI_LINE_CONFIDENCE if multi else SNAPPED_SINGLE_LINE_CONFIDENCE
            neighbours[vid].add(f"P{nearest}")
            neighbours[f"P{nearest}"].add(vid)
        else:
            coordinate = original
            confidence = FREE_MULTI_LINE_CONFIDENCE if multi else FREE_SINGLE_LINE_CONFIDENCE

        vertices.append(
            Vertex(
                id=vid,
                coordinate=coordinate,
                type=vertex_type,
                confidence=confidence,
                source="linear_feature",
                detection_method="line_endpoint",
                snap_applied=snapped,
                original_coordinate=original if snapped else None,
                pixel_coordinate=pixel(coordinate),
                on_boundary=snapped or distance_to_ring(point, corners) <= snap_tolerance_ft,
            )
        )

    # Line connectivity between junctions
    def junction_for(point: Coordinate) -> str:
        index = min(range(len(junction_points)), key=lambda i: distance(point, junction_points[i]))
        return f"J{index}"

    for line in local_lines:
        a, b = junction_for(line.start), junction_for(line.end)
        if a != b:
            neighbours[a].add(b)
            neighbours[b].add(a)

    adjacency = {vid: tuple(sorted(ids)) for vid, ids in neighbours.items()}
    vertices = [_with_connections(v, adjacency[v.id]) for v in vertices]

    warnings: list[str] = []
    for vertex in vertices:
        if vertex.is_orphan:
            warnings.append(f"Orphan vertex {vertex.id} ({vertex.type.value}) has no connections")

    anchored = {v.id for v in vertices if v.on_boundary}
    clusters = [c for c in connected_components(adjacency) if not anchored.intersection(c)]
    for cluster in clusters:
        warnings.append(f"Disconnected roof section not anchored to footprint: {', '.join(cluster)}")

    for warning in warnings:
        logger.warning("Vertex connectivity | %s", warning)
    logger.info(
        "Vertices detected | corners=%d | junctions=%d | orphans=%d | disconnected_clusters=%d",
        n,
        len(junction_points),
        sum(1 for v in vertices if v.is_orphan),
        len(clusters),
    )
    return VertexDetection(
        vertices=vertices,
        adjacency=adjacency,
        warnings=warnings,
        disconnected_clusters=clusters,
    )


def connected_components(adjacency: dict[str, tuple[str, ...]]) -> list[list[str]]:
    """Breadth-first connected components, each sorted, in first-seen order."""
    visited: set[str] = set()
    components: list[list[str]] = []
    for start in adjacency:
        if start in visited:
            continue
        visited.add(start)
        queue = deque([start])
        component = []
        while queue:
            node = queue.popleft()
            component.append(node)
            for neighbour in adjacency.get(node, ()):
                if neighbour not in visited:
                    visited.add(neighbour)
                    queue.append(neighbour)
        components.append(sorted(component))
    return components


def _with_connections(vertex: Vertex, connections: tuple[str, ...]) -> Vertex:
    return replace(vertex, connected_vertices=connections)
