"""External roof-segment data (solar irradiance building insights)."""

from __future__ import annotations

from collections import defaultdict
from dataclasses import dataclass, field

from roof_measurement.core.geometry import Coordinate
from roof_measurement.core.pitch import degrees_to_pitch
from roof_measurement.models.validation import _check_min, _check_range

BoundingBox = tuple[float, float, float, float]


@dataclass(frozen=True, slots=True)
class RoofSegment:
    """One planar roof segment reported by the external source.

    Attributes:
        pitch_degrees: Slope angle.
        azimuth_degrees: Downslope direction, 0° = north, clockwise.
        area_sq_m: Sloped segment area.
        center: Segment centre ``(lng, lat)``.
        bounding_box: ``(min_lng, min_lat, max_lng, max_lat)``.
    """

    pitch_degrees: float
    azimuth_degrees: float
    area_sq_m: float = 0.0
    center: Coordinate | None = None
    bounding_box: BoundingBox | None = None

    def __post_init__(self) -> None:
        _check_range("RoofSegment", "pitch_degrees", self.pitch_degrees, 0.0, 90.0)
        _check_min("RoofSegment", "area_sq_m", self.area_sq_m, 0.0)

    def contains(self, point: Coordinate) -> bool:
        if self.bounding_box is None:
            return False
        min_lng, min_lat, max_lng, max_lat = self.bounding_box
        return min_lng <= point[0] <= max_lng and min_lat <= point[1] <= max_lat

    def to_dict(self) -> dict[str, object]:
        return {
            "pitch_degrees": self.pitch_degrees,
            "azimuth_degrees": self.azimuth_degrees,
            "area_sq_m": self.area_sq_m,
            "center": list(self.center) if self.center else None,
            "bounding_box": list(self.bounding_box) if self.bounding_box else None,
        }


@dataclass(frozen=True, slots=True)
class SolarData:
    """Result of an external roof-segment fetch.

    ``available`` is False when the source was disabled, unreachable, or
    had no data; ``error`` then says why.
    """

    available: bool
    segments: list[RoofSegment] = field(default_factory=list)
    building_footprint_sqft: float | None = None
    bounding_box: BoundingBox | None = None
    error: str = ""

    @property
    def predominant_pitch_degrees(self) -> float | None:
        """Pitch of the pitch bucket carrying the most segment area."""
        if not self.segments:
            return None
        weights: dict[str, float] = defaultdict(float)
        degrees: dict[str, list[float]] = defaultdict(list)
        for segment in self.segments:
            key = degrees_to_pitch(segment.pitch_degrees)
            weights[key] += segment.area_sq_m or 1.0
            degrees[key].append(segment.pitch_degrees)
        best = max(weights, key=lambda k: weights[k])
        return sum(degrees[best]) / len(degrees[best])

    @property
    def predominant_pitch(self) -> str | None:
        pitch_deg = self.predominant_pitch_degrees
        return None if pitch_deg is None else degrees_to_pitch(pitch_deg)

    @classmethod
    def unavailable(cls, reason: str) -> SolarData:
        return cls(available=False, error=reason)

    def to_dict(self) -> dict[str, object]:
        return {
            "available": self.available,
            "segments": [s.to_dict() for s in self.segments],
            "predominant_pitch": self.predominant_pitch,
            "predominant_pitch_degrees": self.predominant_pitch_degrees,
            "building_footprint_sqft": self.building_footprint_sqft,
            "bounding_box": list(self.bounding_box) if self.bounding_box else None,
            "error": self.error,
        }
