"""Confidence calibration hook.

Calibration models live outside the pipeline.  The pipeline only needs a
callable mapping a raw confidence and a component type to a calibrated
probability; ``IdentityCalibrator`` is used when none is supplied.
"""

from __future__ import annotations

from typing import Protocol

COMPONENT_MEASUREMENT = "measurement"


class ConfidenceCalibrator(Protocol):
    def __call__(self, raw_confidence: float, component_type: str) -> float: ...


class IdentityCalibrator:
    """Returns the raw confidence unchanged."""

    def __call__(self, raw_confidence: float, component_type: str) -> float:
        return raw_confidence


def calibrate(calibrator: ConfidenceCalibrator, raw_confidence: float, component_type: str) -> float:
    """Apply *calibrator* and clamp the result to ``[0, 1]``."""
    return min(1.0, max(0.0, float(calibrator(raw_confidence, component_type))))
