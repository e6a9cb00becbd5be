"""Pydantic persistence record for a completed measurement.

The pipeline never writes storage itself; ``MeasurementRecord`` is the
schema the external persistence layer receives.  It flattens the
dataclass result into JSON-ready sections:

- **footprint**: ring, source, confidence, area
- **measurements**: totals, linear totals, facets
- **quality**: QA checks, score, review routing
- **processing**: sources, timing, warnings, errors
"""

from __future__ import annotations

from datetime import UTC, datetime
from typing import TYPE_CHECKING, Any

from pydantic import BaseModel, Field

if TYPE_CHECKING:
    from roof_measurement.models.measurement import MeasurementResult

SCHEMA_VERSION = "roof-measurement-v1"


class FootprintSection(BaseModel):
    """Footprint section of the record.

    Attributes:
        type: GeoJSON geometry type, always ``"Polygon"``.
        coordinates: ``[exterior_ring]`` as ``[lng, lat]`` pairs.
        source: Provider tag.
        confidence: Selection confidence.
        area_sq_ft: Plan area of the ring.
    """

    type: str = "Polygon"
    coordinates: list[list[list[float]]] = Field(default_factory=list)
    source: str = ""
    confidence: float = 0.0
    area_sq_ft: float = 0.0


class MeasurementSection(BaseModel):
    plan_area_sqft: float = 0.0
    sloped_area_sqft: float = 0.0
    squares: float = 0.0
    predominant_pitch: str = ""
    linear_totals: dict[str, float] = Field(default_factory=dict)
    facets: list[dict[str, Any]] = Field(default_factory=list)
    calculation_method: str = ""


class QualitySection(BaseModel):
    passed: bool = False
    overall_score: float = 0.0
    checks: dict[str, bool] = Field(default_factory=dict)
    requires_manual_review: bool = True
    calibrated_confidence: float | None = None


class ProcessingSection(BaseModel):
    """Processing details.

    Attributes:
        success: Whether every stage completed.
        api_sources: Winning source per stage.
        timing_ms: Per-stage wall-clock milliseconds.
        warnings: Merged warnings.
        errors: Error messages.
        error_details: Structured stage-failure payloads.
        recorded_at: Record creation timestamp (UTC).
    """

    success: bool = False
    api_sources: dict[str, str] = Field(default_factory=dict)
    timing_ms: dict[str, float] = Field(default_factory=dict)
    warnings: list[str] = Field(default_factory=list)
    errors: list[str] = Field(default_factory=list)
    error_details: list[dict[str, Any]] = Field(default_factory=list)
    recorded_at: datetime = Field(default_factory=lambda: datetime.now(UTC))


class MeasurementRecord(BaseModel):
    schema_version: str = SCHEMA_VERSION
    correlation_id: str = ""
    footprint: FootprintSection | None = None
    measurements: MeasurementSection | None = None
    quality: QualitySection | None = None
    processing: ProcessingSection = Field(default_factory=ProcessingSection)


def build_measurement_record(result: MeasurementResult) -> MeasurementRecord:
    """Build a ``MeasurementRecord`` from a pipeline result."""
    footprint = None
    if result.footprint is not None:
        footprint = FootprintSection(
            coordinates=[[list(c) for c in result.footprint.coords]],
            source=result.footprint.source,
            confidence=result.footprint.confidence,
            area_sq_ft=round(result.footprint.area_sq_ft, 2),
        )

    measurements = None
    if result.areas is not None:
        measurements = MeasurementSection(
            plan_area_sqft=round(result.areas.totals.plan_area_sqft, 2),
            sloped_area_sqft=round(result.areas.totals.sloped_area_sqft, 2),
            squares=round(result.areas.totals.squares, 2),
            predominant_pitch=result.areas.totals.predominant_pitch,
            linear_totals=result.areas.linear_totals.to_dict(),
            facets=[f.to_dict() for f in result.areas.facets],
            calculation_method=result.areas.calculation_method,
        )

    quality = None
    if result.qa is not None:
        quality = QualitySection(
            passed=result.qa.passed,
            overall_score=round(result.qa.overall_score, 4),
            checks=result.qa.checks.to_dict(),
            requires_manual_review=result.qa.requires_manual_review,
            calibrated_confidence=result.qa.calibrated_confidence,
        )

    return MeasurementRecord(
        correlation_id=result.correlation_id,
        footprint=footprint,
        measurements=measurements,
        quality=quality,
        processing=ProcessingSection(
            success=result.success,
            api_sources=result.api_sources.to_dict(),
            timing_ms={k: round(v, 1) for k, v in result.timing.items()},
            warnings=list(result.warnings),
            errors=list(result.errors),
            error_details=[dict(d) for d in result.error_details],
        ),
    )
