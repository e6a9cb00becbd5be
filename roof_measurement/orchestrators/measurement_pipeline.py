"""Unified measurement pipeline.

One request runs a single logical sequence:

1. **Footprint**: resolve the best building footprint.  The roof-segment
   fetch and any configured roof-line detectors run concurrently with it.
2. **Topology**: build the roof skeleton on the footprint.
3. **Areas**: facets, plan / sloped area, linear totals.
4. **QA**: geometric consistency score and review routing.

Each stage needs its predecessor's output; when a stage cannot produce
it the run stops and returns a partial ``MeasurementResult`` with
``success=False``.  Provider outages never escape as exceptions, and QA
failures never stop the run (they lower trust instead).

Per-stage wall-clock timing is recorded for every stage that started,
including failed ones.
"""

from __future__ import annotations

import logging
import time
from concurrent.futures import ThreadPoolExecutor
from dataclasses import replace
from typing import TYPE_CHECKING, Any

from roof_measurement.activities.build_topology import build_topology
from roof_measurement.activities.calculate_areas import (
    PITCH_SOURCE_PREDOMINANT,
    PITCH_SOURCE_SEGMENT,
    calculate_areas,
)
from roof_measurement.activities.ensemble import run_ensemble
from roof_measurement.activities.qa_gate import run_qa_gate
from roof_measurement.activities.resolve_footprint import FootprintResolver
from roof_measurement.core.calibration import COMPONENT_MEASUREMENT, IdentityCalibrator, calibrate
from roof_measurement.core.constants import FOOTPRINT_SOURCE_NONE, RIDGE_SOURCE_EXTERNAL
from roof_measurement.core.exceptions import NoUsableDataError, PipelineError, StageFaultError
from roof_measurement.models.measurement import ApiSources, MeasurementResult
from roof_measurement.models.solar import SolarData
from roof_measurement.providers.google_solar import GOOGLE_SOLAR

if TYPE_CHECKING:
    from collections.abc import Callable, Mapping

    import httpx

    from roof_measurement.activities.ensemble import RoofFeatureDetector
    from roof_measurement.core.calibration import ConfidenceCalibrator
    from roof_measurement.core.config import PipelineConfig
    from roof_measurement.models.measurement import MeasurementRequest
    from roof_measurement.models.topology import LinearFeature
    from roof_measurement.providers.base import RoofSegmentProvider

logger = logging.getLogger("roof_measurement.orchestrators.measurement_pipeline")

# ---------------------------------------------------------------------------
# Stage names (keys of MeasurementResult.timing)
# ---------------------------------------------------------------------------

STAGE_FOOTPRINT = "footprint"
STAGE_SOLAR = "solar_segments"
STAGE_AI = "ai_detection"
STAGE_TOPOLOGY = "topology"
STAGE_AREAS = "areas"
STAGE_QA = "qa"
TIMING_TOTAL = "total"

SOLAR_UNAVAILABLE = "unavailable"
SOLAR_DISABLED = "disabled"

PITCH_FROM_OVERRIDE = "override"
PITCH_FROM_DEFAULT = "default"


class MeasurementPipeline:
    """Run the measurement stages for one coordinate at a time.

    Args:
        config: Validated pipeline configuration.
        resolver: Footprint resolver; built from *config* when omitted.
        segment_provider: Roof-segment source; built from *config* when
            omitted (``None`` if segments are disabled).
        calibrator: Confidence calibrator; identity when omitted.
        detectors: Named roof-line detectors run as a concurrent ensemble.
        client: Shared HTTP client for the built providers.

    Raises:
        ConfigValidationError: If *config* is invalid.
    """

    def __init__(
        self,
        config: PipelineConfig,
        *,
        resolver: FootprintResolver | None = None,
        segment_provider: RoofSegmentProvider | None = None,
        calibrator: ConfidenceCalibrator | None = None,
        detectors: Mapping[str, RoofFeatureDetector] | None = None,
        client: httpx.Client | None = None,
    ) -> None:
        config.validate()
        self._config = config
        self._resolver = resolver or FootprintResolver.from_config(config, client=client)
        if segment_provider is None and config.solar_segments_enabled:
            from roof_measurement.providers.factory import build_segment_provider

            segment_provider = build_segment_provider(config, client=client)
        self._segment_provider = segment_provider
        self._calibrator = calibrator or IdentityCalibrator()
        self._detectors = dict(detectors or {})

    @property
    def config(self) -> PipelineConfig:
        return self._config

    def run(self, request: MeasurementRequest) -> MeasurementResult:
        """Measure the roof at ``(request.lat, request.lng)``.

        Never raises for provider or stage failures; they are reported
        in the result's ``errors`` / ``error_details``.
        """
        run = _RunState(request)
        started = time.perf_counter()
        logger.info(
            "Measurement started | correlation_id=%s | lat=%.6f | lng=%.6f",
            request.correlation_id,
            request.lat,
            request.lng,
        )

        with ThreadPoolExecutor(max_workers=3) as pool:
            solar_future = (
                pool.submit(
                    self._timed,
                    STAGE_SOLAR,
                    request,
                    self._segment_provider.fetch_roof_segments,
                    request.lat,
                    request.lng,
                )
                if self._segment_provider is not None
                else None
            )
            ai_future = (
                pool.submit(self._timed, STAGE_AI, request, self._detect_lines, request)
                if self._detectors
                else None
            )
            resolution, fault, elapsed = self._timed(
                STAGE_FOOTPRINT, request, self._resolver.resolve, request.lat, request.lng
            )
            run.timing[STAGE_FOOTPRINT] = elapsed

            solar_data = self._collect_segments(solar_future, run)
            ai_features = self._collect_lines(ai_future, run)

        if fault is not None:
            return run.fail(STAGE_FOOTPRINT, fault, started)
        if not resolution.found:
            run.warnings.extend(resolution.diagnostics)
            return run.fail(
                STAGE_FOOTPRINT,
                NoUsableDataError(
                    f"no building footprint found ({resolution.fallback_reason})",
                    stage=STAGE_FOOTPRINT,
                    correlation_id=request.correlation_id,
                ),
                started,
            )
        run.footprint = resolution.footprint
        run.api_sources = replace(run.api_sources, footprint=resolution.footprint.source)
        run.warnings.extend(resolution.footprint.warnings)

        topology, fault, run.timing[STAGE_TOPOLOGY] = self._timed(
            STAGE_TOPOLOGY,
            request,
            build_topology,
            resolution.footprint,
            solar_data=solar_data,
            ai_features=ai_features,
            eave_offset_ft=self._config.eave_offset_ft,
            ridge_source_priority=self._config.ridge_source_priority,
            snap_tolerance_ft=self._config.snap_tolerance_ft,
        )
        if fault is not None:
            return run.fail(STAGE_TOPOLOGY, fault, started)
        run.topology = topology
        run.api_sources = replace(run.api_sources, ridge=topology.ridge_source)

        areas, fault, run.timing[STAGE_AREAS] = self._timed(
            STAGE_AREAS,
            request,
            calculate_areas,
            topology,
            solar_data=solar_data,
            pitch_override=request.pitch_override,
            default_pitch=self._config.default_pitch,
        )
        if fault is not None:
            return run.fail(STAGE_AREAS, fault, started)
        run.areas = areas
        run.api_sources = replace(run.api_sources, pitch=_pitch_source(request, areas))

        qa, fault, run.timing[STAGE_QA] = self._timed(
            STAGE_QA,
            request,
            run_qa_gate,
            topology,
            areas,
            solar_data,
            area_tolerance=self._config.area_tolerance,
            connectivity_tolerance_ft=self._config.connectivity_tolerance_ft,
        )
        if fault is not None:
            return run.fail(STAGE_QA, fault, started)

        raw_confidence = resolution.footprint.confidence * qa.overall_score
        run.qa = replace(
            qa,
            calibrated_confidence=calibrate(self._calibrator, raw_confidence, COMPONENT_MEASUREMENT),
            requires_manual_review=qa.requires_manual_review or bool(resolution.footprint.warnings),
        )
        run.warnings.extend(qa.warnings)
        run.errors.extend(qa.errors)
        return run.finish(True, started)

    # ------------------------------------------------------------------
    # Stage helpers
    # ------------------------------------------------------------------

    @staticmethod
    def _timed(
        stage: str,
        request: MeasurementRequest,
        func: Callable[..., Any],
        *args: Any,
        **kwargs: Any,
    ) -> tuple[Any, PipelineError | None, float]:
        """Run one stage, returning ``(value, fault, duration_ms)``."""
        start = time.perf_counter()
        try:
            value = func(*args, **kwargs)
        except PipelineError as exc:
            elapsed = (time.perf_counter() - start) * 1000
            exc.correlation_id = exc.correlation_id or request.correlation_id
            exc.stage = exc.stage or stage
            logger.exception(
                "stage=%s failed | correlation_id=%s | code=%s | duration_ms=%.1f",
                stage,
                request.correlation_id,
                exc.code,
                elapsed,
            )
            return None, exc, elapsed
        except Exception as exc:
            elapsed = (time.perf_counter() - start) * 1000
            fault = StageFaultError(stage, exc)
            fault.correlation_id = request.correlation_id
            logger.exception(
                "stage=%s failed | correlation_id=%s | error=%s | duration_ms=%.1f",
                stage,
                request.correlation_id,
                fault.message,
                elapsed,
            )
            return None, fault, elapsed

        elapsed = (time.perf_counter() - start) * 1000
        logger.info(
            "stage=%s completed | correlation_id=%s | duration_ms=%.1f",
            stage,
            request.correlation_id,
            elapsed,
        )
        return value, None, elapsed

    def _detect_lines(self, request: MeasurementRequest) -> list[LinearFeature]:
        result = run_ensemble(self._detectors, request, snap_tolerance_ft=self._config.snap_tolerance_ft)
        return result.features

    def _collect_segments(self, future: Any, run: _RunState) -> SolarData | None:
        if future is None:
            run.api_sources = replace(run.api_sources, solar=SOLAR_DISABLED)
            return None
        solar_data, fault, run.timing[STAGE_SOLAR] = future.result()
        if fault is not None:
            run.warnings.append(f"Roof segment data unavailable: {fault.message}")
            solar_data = SolarData.unavailable(fault.message)
        elif not solar_data.available:
            run.warnings.append(f"Roof segment data unavailable: {solar_data.error}")
        run.solar_data = solar_data
        run.api_sources = replace(
            run.api_sources,
            solar=GOOGLE_SOLAR if solar_data.available else SOLAR_UNAVAILABLE,
        )
        return solar_data

    def _collect_lines(self, future: Any, run: _RunState) -> list[LinearFeature]:
        lines = list(run.request.ai_linear_features)
        if future is None:
            return lines
        detected, fault, run.timing[STAGE_AI] = future.result()
        if fault is not None:
            run.warnings.append(f"Roof-line detection failed: {fault.message}")
            return lines
        return lines + detected


def _pitch_source(request: MeasurementRequest, areas: Any) -> str:
    if request.pitch_override:
        return PITCH_FROM_OVERRIDE
    if any(f.pitch_source in (PITCH_SOURCE_SEGMENT, PITCH_SOURCE_PREDOMINANT) for f in areas.facets):
        return RIDGE_SOURCE_EXTERNAL
    return PITCH_FROM_DEFAULT


class _RunState:
    """Request-scoped accumulator for one pipeline run."""

    def __init__(self, request: MeasurementRequest) -> None:
        self.request = request
        self.footprint = None
        self.topology = None
        self.areas = None
        self.qa = None
        self.solar_data: SolarData | None = None
        self.api_sources = ApiSources(footprint=FOOTPRINT_SOURCE_NONE)
        self.timing: dict[str, float] = {}
        self.errors: list[str] = []
        self.error_details: list[dict[str, object]] = []
        self.warnings: list[str] = []

    def fail(self, stage: str, error: PipelineError, started: float) -> MeasurementResult:
        self.errors.append(f"{stage}: {error.message}")
        self.error_details.append(error.to_error_dict())
        return self.finish(False, started)

    def finish(self, success: bool, started: float) -> MeasurementResult:
        self.timing[TIMING_TOTAL] = (time.perf_counter() - started) * 1000
        logger.info(
            "Measurement finished | correlation_id=%s | success=%s | footprint=%s | errors=%d | "
            "warnings=%d | duration_ms=%.1f",
            self.request.correlation_id,
            success,
            self.api_sources.footprint,
            len(self.errors),
            len(self.warnings),
            self.timing[TIMING_TOTAL],
        )
        return MeasurementResult(
            success=success,
            footprint=self.footprint,
            topology=self.topology,
            areas=self.areas,
            qa=self.qa,
            solar_data=self.solar_data,
            api_sources=self.api_sources,
            timing=dict(self.timing),
            errors=list(self.errors),
            error_details=list(self.error_details),
            warnings=list(self.warnings),
            correlation_id=self.request.correlation_id,
        )
