"""QA gate result model (derived, read-only, rebuilt on every run)."""

from __future__ import annotations

from dataclasses import dataclass, field


@dataclass(frozen=True, slots=True)
class QAChecks:
    """The six independent QA checks; True means the check passed."""

    area_within_tolerance: bool = True
    perimeter_matches: bool = True
    no_floating_endpoints: bool = True
    no_crossing_hips: bool = True
    ridge_length_sane: bool = True
    facets_closed: bool = True

    def to_dict(self) -> dict[str, bool]:
        return {
            "area_within_tolerance": self.area_within_tolerance,
            "perimeter_matches": self.perimeter_matches,
            "no_floating_endpoints": self.no_floating_endpoints,
            "no_crossing_hips": self.no_crossing_hips,
            "ridge_length_sane": self.ridge_length_sane,
            "facets_closed": self.facets_closed,
        }


@dataclass(frozen=True, slots=True)
class QAGateResult:
    """Verdict of the QA gate.

    Attributes:
        checks: Per-check pass flags.
        overall_score: 1.0 minus penalties, clamped to >= 0.
        passed: True when no errors were recorded.
        warnings: Upstream warnings followed by the gate's own.
        errors: Upstream errors followed by the gate's own.
        requires_manual_review: Any error, score < 0.7, the area stage's
            review flag, or a complex topology.
        metrics: Measured quantities behind each check.
        calibrated_confidence: Confidence after external calibration; set
            by the pipeline, ``None`` when the gate runs on its own.
    """

    checks: QAChecks
    overall_score: float
    passed: bool
    warnings: list[str] = field(default_factory=list)
    errors: list[str] = field(default_factory=list)
    requires_manual_review: bool = False
    metrics: dict[str, float] = field(default_factory=dict)
    calibrated_confidence: float | None = None

    def to_dict(self) -> dict[str, object]:
        return {
            "checks": self.checks.to_dict(),
            "overall_score": round(self.overall_score, 4),
            "passed": self.passed,
            "warnings": list(self.warnings),
            "errors": list(self.errors),
            "requires_manual_review": self.requires_manual_review,
            "metrics": {k: round(v, 4) for k, v in self.metrics.items()},
            "calibrated_confidence": self.calibrated_confidence,
        }
