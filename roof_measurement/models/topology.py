"""Roof topology models.

- ``EdgeType``: ridge / hip / valley / eave / rake.
- ``LinearFeature``: a detected roof line (AI or external) before assembly.
- ``SkeletonEdge``: a typed segment of the assembled roof skeleton.
- ``VertexType`` / ``Vertex``: classified junctions and perimeter corners.
- ``RoofTopology``: footprint ring + skeleton + classification output.

Vertex connectivity is stored once, as an id → neighbour-ids adjacency
map on ``RoofTopology`` (and mirrored into ``Vertex.connected_vertices``),
never as object references.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass, field

from roof_measurement.core.geometry import Coordinate
from roof_measurement.models.validation import _check_non_empty, _check_range, _coord


class EdgeType(enum.Enum):
    """Roof edge classification."""

    RIDGE = "ridge"
    HIP = "hip"
    VALLEY = "valley"
    EAVE = "eave"
    RAKE = "rake"

    @property
    def is_boundary(self) -> bool:
        """Eaves and rakes lie on the footprint; the rest are interior."""
        return self in (EdgeType.EAVE, EdgeType.RAKE)


class VertexType(enum.Enum):
    PERIMETER_CORNER = "perimeter_corner"
    RIDGE_END = "ridge_end"
    HIP_JUNCTION = "hip_junction"
    VALLEY_INTERSECTION = "valley_intersection"
    HIP_RIDGE_JUNCTION = "hip_ridge_junction"
    VALLEY_RIDGE_JUNCTION = "valley_ridge_junction"
    COMPLEX_JUNCTION = "complex_junction"


@dataclass(frozen=True, slots=True)
class LinearFeature:
    """A roof line reported by a detector.

    Attributes:
        start: ``(lng, lat)`` start point.
        end: ``(lng, lat)`` end point.
        type: Ridge, hip, or valley.
        confidence: Detector confidence in ``[0, 1]``.
        source: Detector name.
        support: Number of ensemble branches that reported the line.
    """

    start: Coordinate
    end: Coordinate
    type: EdgeType
    confidence: float = 1.0
    source: str = ""
    support: int = 1

    def __post_init__(self) -> None:
        _check_range("LinearFeature", "confidence", self.confidence, 0.0, 1.0)

    def to_dict(self) -> dict[str, object]:
        return {
            "start": list(self.start),
            "end": list(self.end),
            "type": self.type.value,
            "confidence": self.confidence,
            "source": self.source,
            "support": self.support,
        }

    @classmethod
    def from_dict(cls, data: dict[str, object]) -> LinearFeature:
        return cls(
            start=_coord(data["start"]),
            end=_coord(data["end"]),
            type=EdgeType(str(data["type"])),
            confidence=float(data.get("confidence", 1.0)),  # type: ignore[arg-type]
            source=str(data.get("source", "")),
            support=int(data.get("support", 1)),  # type: ignore[call-overload]
        )


@dataclass(frozen=True, slots=True)
class SkeletonEdge:
    """One typed segment of the roof skeleton, in ``(lng, lat)``."""

    start: Coordinate
    end: Coordinate
    type: EdgeType

    def to_dict(self) -> dict[str, object]:
        return {"start": list(self.start), "end": list(self.end), "type": self.type.value}

    @classmethod
    def from_dict(cls, data: dict[str, object]) -> SkeletonEdge:
        return cls(
            start=_coord(data["start"]),
            end=_coord(data["end"]),
            type=EdgeType(str(data["type"])),
        )


@dataclass(frozen=True, slots=True)
class Vertex:
    """A classified roof vertex.

    Attributes:
        id: Stable identifier (``P<n>`` perimeter corners, ``J<n>`` junctions).
        coordinate: ``(lng, lat)`` after snapping.
        type: Junction classification.
        confidence: Classification confidence in ``[0, 1]``.
        connected_vertices: Neighbour ids (mirror of the adjacency map).
        source: ``"footprint"`` or ``"linear_feature"``.
        detection_method: How the point was found.
        snap_applied: True if the coordinate was snapped to a perimeter corner.
        original_coordinate: Pre-snap coordinate, kept for audit.
        pixel_coordinate: Image-space position, when a transform was supplied.
        on_boundary: Whether the point lies on the footprint boundary.
    """

    id: str
    coordinate: Coordinate
    type: VertexType
    confidence: float
    connected_vertices: tuple[str, ...] = ()
    source: str = ""
    detection_method: str = ""
    snap_applied: bool = False
    original_coordinate: Coordinate | None = None
    pixel_coordinate: tuple[float, float] | None = None
    on_boundary: bool = False

    def __post_init__(self) -> None:
        _check_non_empty("Vertex", "id", self.id)
        _check_range("Vertex", "confidence", self.confidence, 0.0, 1.0)

    @property
    def is_orphan(self) -> bool:
        """Non-perimeter vertex with no recorded connections."""
        return self.type is not VertexType.PERIMETER_CORNER and not self.connected_vertices

    def to_dict(self) -> dict[str, object]:
        return {
            "id": self.id,
            "coordinate": list(self.coordinate),
            "type": self.type.value,
            "confidence": self.confidence,
            "connected_vertices": list(self.connected_vertices),
            "source": self.source,
            "detection_method": self.detection_method,
            "snap_applied": self.snap_applied,
            "original_coordinate": list(self.original_coordinate) if self.original_coordinate else None,
            "pixel_coordinate": list(self.pixel_coordinate) if self.pixel_coordinate else None,
            "on_boundary": self.on_boundary,
        }


@dataclass(frozen=True, slots=True)
class RoofTopology:
    """Skeleton anchored to a footprint ring.

    Attributes:
        footprint_coords: Closed ``(lng, lat)`` ring the skeleton is built on
            (after any eave offset).
        skeleton: Typed skeleton edges, boundary edges included.
        ridge_source: Which source set the ridge direction.
        is_complex_shape: True when simplified geometry was used or the
            skeleton splits into unanchored sections.
        warnings: Tolerated anomalies, in the order they were found.
        shape_type: ``rectangle``, ``l_shape``, ``t_shape``, ``u_shape``, ``complex``.
        roof_style: ``gable`` or ``hip``.
        vertices: Classified vertices.
        adjacency: Vertex id → neighbour ids.
        disconnected_clusters: Vertex-id groups not anchored to the footprint.
    """

    footprint_coords: list[Coordinate]
    skeleton: list[SkeletonEdge]
    ridge_source: str
    is_complex_shape: bool = False
    warnings: list[str] = field(default_factory=list)
    shape_type: str = "complex"
    roof_style: str = "hip"
    vertices: list[Vertex] = field(default_factory=list)
    adjacency: dict[str, tuple[str, ...]] = field(default_factory=dict)
    disconnected_clusters: list[list[str]] = field(default_factory=list)

    def edges_of(self, edge_type: EdgeType) -> list[SkeletonEdge]:
        return [e for e in self.skeleton if e.type is edge_type]

    @property
    def interior_edges(self) -> list[SkeletonEdge]:
        """Ridge, hip, and valley edges."""
        return [e for e in self.skeleton if not e.type.is_boundary]

    def to_dict(self) -> dict[str, object]:
        return {
            "footprint_coords": [list(c) for c in self.footprint_coords],
            "skeleton": [e.to_dict() for e in self.skeleton],
            "ridge_source": self.ridge_source,
            "is_complex_shape": self.is_complex_shape,
            "warnings": list(self.warnings),
            "shape_type": self.shape_type,
            "roof_style": self.roof_style,
            "vertices": [v.to_dict() for v in self.vertices],
            "adjacency": {k: list(v) for k, v in self.adjacency.items()},
            "disconnected_clusters": [list(c) for c in self.disconnected_clusters],
        }
