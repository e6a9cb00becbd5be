"""Concurrent ensemble of roof-line detectors.

Each detector is called on its own worker thread.  A failing branch never
aborts the others: every outcome is collected, then the successful
branches' lines are merged.  Lines of the same type whose endpoints
agree within the snap tolerance (in either orientation) are averaged
into one line with ``support`` equal to the number of branches that
reported it.
"""

from __future__ import annotations

import logging
import time
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Protocol

from roof_measurement.core.constants import DEFAULT_SNAP_TOLERANCE_FT
from roof_measurement.core.exceptions import PermanentError
from roof_measurement.core.geometry import LocalFrame, distance
from roof_measurement.models.topology import LinearFeature

if TYPE_CHECKING:
    from collections.abc import Mapping

    from roof_measurement.models.measurement import MeasurementRequest

logger = logging.getLogger("roof_measurement.activities.ensemble")

MAX_WORKERS = 8


class RoofFeatureDetector(Protocol):
    """Anything that turns a measurement request into roof lines."""

    def __call__(self, request: MeasurementRequest) -> list[LinearFeature]: ...


class EnsembleError(PermanentError):
    """Every ensemble branch failed (or none was configured)."""

    default_stage = "ai_detection"
    default_code = "ENSEMBLE_FAILED"


@dataclass(frozen=True, slots=True)
class BranchOutcome:
    name: str
    features: list[LinearFeature] = field(default_factory=list)
    error: str = ""
    duration_ms: float = 0.0

    @property
    def succeeded(self) -> bool:
        return not self.error

    def to_dict(self) -> dict[str, object]:
        return {
            "name": self.name,
            "feature_count": len(self.features),
            "error": self.error,
            "duration_ms": round(self.duration_ms, 1),
        }


@dataclass(frozen=True, slots=True)
class EnsembleResult:
    features: list[LinearFeature]
    outcomes: list[BranchOutcome]

    @property
    def failed_branches(self) -> list[BranchOutcome]:
        return [o for o in self.outcomes if not o.succeeded]


def run_ensemble(
    detectors: Mapping[str, RoofFeatureDetector],
    request: MeasurementRequest,
    *,
    snap_tolerance_ft: float = DEFAULT_SNAP_TOLERANCE_FT,
) -> EnsembleResult:
    """Run *detectors* concurrently and merge what the successful ones found.

    Raises:
        EnsembleError: If there are no detectors or every one failed.
    """
    if not detectors:
        raise EnsembleError("no roof-line detectors configured")

    with ThreadPoolExecutor(max_workers=min(MAX_WORKERS, len(detectors))) as pool:
        futures = {name: pool.submit(_run_branch, name, detector, request) for name, detector in detectors.items()}
        outcomes = [futures[name].result() for name in detectors]

    successes = [o for o in outcomes if o.succeeded]
    if not successes:
        raise EnsembleError(
            "all detectors failed: " + "; ".join(f"{o.name}: {o.error}" for o in outcomes),
            correlation_id=request.correlation_id,
        )

    features = merge_features(
        [(o.name, f) for o in successes for f in o.features],
        snap_tolerance_ft=snap_tolerance_ft,
    )
    logger.info(
        "Ensemble combined | branches=%d | succeeded=%d | features=%d",
        len(outcomes),
        len(successes),
        len(features),
    )
    return EnsembleResult(features=features, outcomes=outcomes)


def _run_branch(name: str, detector: RoofFeatureDetector, request: MeasurementRequest) -> BranchOutcome:
    started = time.monotonic()
    try:
        features = list(detector(request))
    except Exception as exc:
        elapsed = (time.monotonic() - started) * 1000.0
        logger.warning("Detector failed | detector=%s | error=%s", name, exc)
        return BranchOutcome(name=name, error=f"{type(exc).__name__}: {exc}", duration_ms=elapsed)
    return BranchOutcome(name=name, features=features, duration_ms=(time.monotonic() - started) * 1000.0)


def merge_features(
    tagged: list[tuple[str, LinearFeature]],
    *,
    snap_tolerance_ft: float = DEFAULT_SNAP_TOLERANCE_FT,
) -> list[LinearFeature]:
    """Merge ``(branch, feature)`` pairs that describe the same roof line."""
    if not tagged:
        return []
    frame = LocalFrame.for_ring([p for _, f in tagged for p in (f.start, f.end)])

    groups: list[list[tuple[str, LinearFeature, bool]]] = []
    for name, feature in tagged:
        start, end = frame.to_local(feature.start), frame.to_local(feature.end)
        for group in groups:
            _, head, _ = group[0]
            if head.type is not feature.type:
                continue
            h_start, h_end = frame.to_local(head.start), frame.to_local(head.end)
            if distance(start, h_start) <= snap_tolerance_ft and distance(end, h_end) <= snap_tolerance_ft:
                group.append((name, feature, False))
                break
            if distance(start, h_end) <= snap_tolerance_ft and distance(end, h_start) <= snap_tolerance_ft:
                group.append((name, feature, True))
                break
        else:
            groups.append([(name, feature, False)])

    return [_average(group) for group in groups]


def _average(group: list[tuple[str, LinearFeature, bool]]) -> LinearFeature:
    head = group[0][1]
    if len(group) == 1:
        return head
    starts = [f.end if flipped else f.start for _, f, flipped in group]
    ends = [f.start if flipped else f.end for _, f, flipped in group]
    branches = sorted({name for name, _, _ in group})
    return LinearFeature(
        start=(sum(p[0] for p in starts) / len(starts), sum(p[1] for p in starts) / len(starts)),
        end=(sum(p[0] for p in ends) / len(ends), sum(p[1] for p in ends) / len(ends)),
        type=head.type,
        confidence=sum(f.confidence for _, f, _ in group) / len(group),
        source="+".join(branches),
        support=len(branches),
    )
