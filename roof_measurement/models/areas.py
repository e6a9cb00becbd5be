"""Facet and area models produced by the area calculator."""

from __future__ import annotations

from dataclasses import dataclass, field

from roof_measurement.core.geometry import Coordinate

SQ_FT_PER_SQUARE = 100.0


@dataclass(frozen=True, slots=True)
class Facet:
    """One planar roof surface.

    Attributes:
        id: Letter label (``A``, ``B``, ...) in decreasing plan-area order.
        polygon: Closed ``(lng, lat)`` ring.
        plan_area_sqft: Projected (flat) area.
        sloped_area_sqft: Pitch-adjusted area.
        pitch: ``"<rise>/12"`` or ``"flat"``.
        pitch_degrees: Slope angle.
        azimuth_degrees: Downslope direction, 0° = north, clockwise.
        direction: Eight-sector compass label for the azimuth.
        pitch_source: ``override``, ``segment``, ``predominant``, or ``default``.
    """

    id: str
    polygon: list[Coordinate]
    plan_area_sqft: float
    sloped_area_sqft: float
    pitch: str
    pitch_degrees: float
    azimuth_degrees: float
    direction: str
    pitch_source: str = "default"

    def to_dict(self) -> dict[str, object]:
        return {
            "id": self.id,
            "polygon": [list(c) for c in self.polygon],
            "plan_area_sqft": round(self.plan_area_sqft, 2),
            "sloped_area_sqft": round(self.sloped_area_sqft, 2),
            "pitch": self.pitch,
            "pitch_degrees": round(self.pitch_degrees, 2),
            "azimuth_degrees": round(self.azimuth_degrees, 1),
            "direction": self.direction,
            "pitch_source": self.pitch_source,
        }


@dataclass(frozen=True, slots=True)
class AreaTotals:
    plan_area_sqft: float
    sloped_area_sqft: float
    predominant_pitch: str

    @property
    def squares(self) -> float:
        """Roofing squares (100 sq ft of sloped area)."""
        return self.sloped_area_sqft / SQ_FT_PER_SQUARE

    def to_dict(self) -> dict[str, object]:
        return {
            "plan_area_sqft": round(self.plan_area_sqft, 2),
            "sloped_area_sqft": round(self.sloped_area_sqft, 2),
            "squares": round(self.squares, 2),
            "predominant_pitch": self.predominant_pitch,
        }


@dataclass(frozen=True, slots=True)
class LinearTotals:
    """Edge lengths in feet; ``perimeter_ft`` is ``eave_ft + rake_ft``."""

    ridge_ft: float = 0.0
    hip_ft: float = 0.0
    valley_ft: float = 0.0
    eave_ft: float = 0.0
    rake_ft: float = 0.0

    @property
    def perimeter_ft(self) -> float:
        return self.eave_ft + self.rake_ft

    def to_dict(self) -> dict[str, float]:
        return {
            "ridge_ft": round(self.ridge_ft, 2),
            "hip_ft": round(self.hip_ft, 2),
            "valley_ft": round(self.valley_ft, 2),
            "eave_ft": round(self.eave_ft, 2),
            "rake_ft": round(self.rake_ft, 2),
            "perimeter_ft": round(self.perimeter_ft, 2),
        }


@dataclass(frozen=True, slots=True)
class AreaCalculationResult:
    """Facets, totals, and the area stage's review verdict."""

    facets: list[Facet]
    totals: AreaTotals
    linear_totals: LinearTotals
    calculation_method: str
    requires_manual_review: bool = False
    review_reasons: list[str] = field(default_factory=list)

    def to_dict(self) -> dict[str, object]:
        return {
            "facets": [f.to_dict() for f in self.facets],
            "totals": self.totals.to_dict(),
            "linear_totals": self.linear_totals.to_dict(),
            "calculation_method": self.calculation_method,
            "requires_manual_review": self.requires_manual_review,
            "review_reasons": list(self.review_reasons),
        }
