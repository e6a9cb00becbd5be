"""Request and result contracts of the measurement pipeline.

``MeasurementResult`` is the system's externally visible contract: one
object carrying success, every stage output (or ``None`` for stages that
did not run), which source won at each stage, per-stage timing, and the
merged errors and warnings.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from roof_measurement.core.constants import FOOTPRINT_SOURCE_NONE
from roof_measurement.models.topology import EdgeType, LinearFeature
from roof_measurement.models.validation import _check_range

if TYPE_CHECKING:
    from roof_measurement.models.areas import AreaCalculationResult
    from roof_measurement.models.footprint import Footprint
    from roof_measurement.models.qa import QAGateResult
    from roof_measurement.models.record import MeasurementRecord
    from roof_measurement.models.solar import SolarData
    from roof_measurement.models.topology import RoofTopology


@dataclass(frozen=True, slots=True)
class MeasurementRequest:
    """Inputs for one measurement.

    Attributes:
        lat: Query latitude.
        lng: Query longitude.
        pitch_override: Explicit pitch (``"<rise>/12"``) applied to every facet.
        ai_linear_features: Roof lines from upstream AI detection.
        correlation_id: Caller-supplied request id, echoed in logs and errors.
    """

    lat: float
    lng: float
    pitch_override: str | None = None
    ai_linear_features: list[LinearFeature] = field(default_factory=list)
    correlation_id: str = ""

    def __post_init__(self) -> None:
        _check_range("MeasurementRequest", "lat", self.lat, -90.0, 90.0)
        _check_range("MeasurementRequest", "lng", self.lng, -180.0, 180.0)

    @property
    def ai_ridge_lines(self) -> list[LinearFeature]:
        return [f for f in self.ai_linear_features if f.type is EdgeType.RIDGE]


@dataclass(frozen=True, slots=True)
class ApiSources:
    """Which source won at each stage."""

    footprint: str = FOOTPRINT_SOURCE_NONE
    ridge: str = ""
    pitch: str = ""
    solar: str = ""

    def to_dict(self) -> dict[str, str]:
        return {
            "footprint": self.footprint,
            "ridge": self.ridge,
            "pitch": self.pitch,
            "solar": self.solar,
        }


@dataclass(frozen=True, slots=True)
class MeasurementResult:
    """Outcome of one pipeline run (partial when ``success`` is False).

    ``errors`` holds messages (QA errors and stage failures);
    ``error_details`` holds the structured payloads of stage failures.
    """

    success: bool
    footprint: Footprint | None = None
    topology: RoofTopology | None = None
    areas: AreaCalculationResult | None = None
    qa: QAGateResult | None = None
    solar_data: SolarData | None = None
    api_sources: ApiSources = field(default_factory=ApiSources)
    timing: dict[str, float] = field(default_factory=dict)
    errors: list[str] = field(default_factory=list)
    error_details: list[dict[str, object]] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)
    correlation_id: str = ""

    def to_dict(self) -> dict[str, object]:
        return {
            "success": self.success,
            "footprint": self.footprint.to_dict() if self.footprint else None,
            "topology": self.topology.to_dict() if self.topology else None,
            "areas": self.areas.to_dict() if self.areas else None,
            "qa": self.qa.to_dict() if self.qa else None,
            "solar_data": self.solar_data.to_dict() if self.solar_data else None,
            "api_sources": self.api_sources.to_dict(),
            "timing": {k: round(v, 1) for k, v in self.timing.items()},
            "errors": list(self.errors),
            "error_details": [dict(d) for d in self.error_details],
            "warnings": list(self.warnings),
            "correlation_id": self.correlation_id,
        }

    def to_record(self) -> MeasurementRecord:
        """Render the persistence record handed to the storage layer."""
        from roof_measurement.models.record import build_measurement_record

        return build_measurement_record(self)
