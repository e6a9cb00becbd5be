"""Footprint models: the resolved building polygon and resolver diagnostics.

- ``Footprint``: the winning polygon with its source and confidence.
- ``FootprintCandidate``: one polygon offered by a provider, scored.
- ``ProviderAttempt``: what happened when one provider was queried.
- ``FootprintResolution``: the resolver's typed result (never an exception).
"""

from __future__ import annotations

from dataclasses import dataclass, field

from roof_measurement.core.geometry import (
    MIN_DISTINCT_VERTICES,
    Coordinate,
    close_ring,
    open_ring,
    perimeter_ft,
    polygon_area_sq_ft,
)
from roof_measurement.models.validation import (
    ModelValidationError,
    _check_min,
    _check_non_empty,
    _check_range,
    _coord,
)

# Fallback reasons reported by the resolver.
REASON_API_ERROR = "api_error"
REASON_NO_BUILDINGS = "no_buildings_found"
REASON_NO_POLYGONS = "no_polygon_buildings"
REASON_FETCH_ERROR = "fetch_error"
REASON_NO_PROVIDERS = "no_providers"

ATTEMPT_OK = "ok"


@dataclass(frozen=True, slots=True)
class Footprint:
    """A building footprint ring chosen for measurement.

    Attributes:
        coords: Closed ring of ``(lng, lat)`` tuples (first == last).
        source: Provider tag (e.g. ``"osm_buildings"``).
        confidence: Selection confidence in ``[0, 1]``.
        distance_m: Centroid distance from the query point in metres.
        contains_point: Whether the ring contains the query point.
        warnings: Plausibility warnings raised during validation.
    """

    coords: list[Coordinate]
    source: str
    confidence: float
    distance_m: float = 0.0
    contains_point: bool = True
    warnings: list[str] = field(default_factory=list)

    def __post_init__(self) -> None:
        _check_non_empty("Footprint", "source", self.source)
        _check_range("Footprint", "confidence", self.confidence, 0.0, 1.0)
        _check_min("Footprint", "distance_m", self.distance_m, 0.0)
        distinct = len(set(open_ring(self.coords)))
        if distinct < MIN_DISTINCT_VERTICES:
            raise ModelValidationError(
                "Footprint",
                "coords",
                distinct,
                f"needs at least {MIN_DISTINCT_VERTICES} distinct vertices",
            )
        object.__setattr__(self, "coords", close_ring(self.coords))

    @property
    def vertex_count(self) -> int:
        """Number of distinct ring vertices (closing vertex excluded)."""
        return len(open_ring(self.coords))

    @property
    def area_sq_ft(self) -> float:
        return polygon_area_sq_ft(self.coords)

    @property
    def perimeter_ft(self) -> float:
        return perimeter_ft(self.coords)

    def to_dict(self) -> dict[str, object]:
        return {
            "coords": [list(c) for c in self.coords],
            "source": self.source,
            "confidence": self.confidence,
            "distance_m": self.distance_m,
            "contains_point": self.contains_point,
            "area_sq_ft": round(self.area_sq_ft, 2),
            "vertex_count": self.vertex_count,
            "warnings": list(self.warnings),
        }

    @classmethod
    def from_dict(cls, data: dict[str, object]) -> Footprint:
        raw_coords = data.get("coords", [])
        return cls(
            coords=[_coord(c) for c in raw_coords],  # type: ignore[union-attr]
            source=str(data.get("source", "")),
            confidence=float(data.get("confidence", 0.0)),  # type: ignore[arg-type]
            distance_m=float(data.get("distance_m", 0.0)),  # type: ignore[arg-type]
            contains_point=bool(data.get("contains_point", True)),
            warnings=[str(w) for w in data.get("warnings", [])],  # type: ignore[union-attr]
        )


@dataclass(frozen=True, slots=True)
class FootprintCandidate:
    """A provider polygon with the measurements used to rank it.

    Attributes:
        coords: Closed ring of ``(lng, lat)`` tuples.
        source: Provider tag.
        priority: Provider position in the configured order (0 = first).
        area_sq_m: Polygon area.
        distance_m: Centroid distance to the query point.
        contains_point: Point-in-polygon result for the query point.
        confidence: Baseline confidence after penalties.
    """

    coords: list[Coordinate]
    source: str
    priority: int
    area_sq_m: float
    distance_m: float
    contains_point: bool
    confidence: float

    def to_footprint(self, warnings: list[str] | None = None) -> Footprint:
        return Footprint(
            coords=self.coords,
            source=self.source,
            confidence=self.confidence,
            distance_m=self.distance_m,
            contains_point=self.contains_point,
            warnings=list(warnings or []),
        )


@dataclass(frozen=True, slots=True)
class ProviderAttempt:
    """Outcome of querying one footprint provider.

    ``status`` is ``"ok"`` or one of the fallback reasons.
    """

    provider: str
    status: str
    candidate_count: int = 0
    error: str = ""
    duration_ms: float = 0.0

    @property
    def succeeded(self) -> bool:
        return self.status == ATTEMPT_OK

    def to_dict(self) -> dict[str, object]:
        return {
            "provider": self.provider,
            "status": self.status,
            "candidate_count": self.candidate_count,
            "error": self.error,
            "duration_ms": round(self.duration_ms, 1),
        }


@dataclass(frozen=True, slots=True)
class FootprintResolution:
    """Typed resolver result.

    Exactly one of ``footprint`` / ``fallback_reason`` is set.
    """

    footprint: Footprint | None
    fallback_reason: str | None = None
    attempts: list[ProviderAttempt] = field(default_factory=list)
    candidates_considered: int = 0

    @property
    def found(self) -> bool:
        return self.footprint is not None

    @property
    def diagnostics(self) -> list[str]:
        """Provider error texts, preserved verbatim."""
        return [f"{a.provider}: {a.error}" for a in self.attempts if a.error]

    def to_dict(self) -> dict[str, object]:
        return {
            "footprint": self.footprint.to_dict() if self.footprint else None,
            "fallback_reason": self.fallback_reason,
            "attempts": [a.to_dict() for a in self.attempts],
            "candidates_considered": self.candidates_considered,
        }
