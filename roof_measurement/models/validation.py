"""Field-level validation shared by the frozen domain models."""

from __future__ import annotations

from roof_measurement.core.exceptions import PipelineError


class ModelValidationError(ValueError, PipelineError):
    """Raised when a domain model is constructed with invalid field values.

    Attributes:
        model: Name of the model class that failed validation.
        field_name: The field that violated the invariant.
        value: The invalid value.
    """

    default_stage = "model_validation"
    default_code = "MODEL_VALIDATION_FAILED"

    def __init__(self, model: str, field_name: str, value: object, message: str) -> None:
        self.model = model
        self.field_name = field_name
        self.value = value
        formatted = f"{model}.{field_name}={value!r}: {message}"
        PipelineError.__init__(self, formatted)


def _check_range(model: str, name: str, value: float, lo: float, hi: float) -> None:
    if not lo <= value <= hi:
        raise ModelValidationError(model, name, value, f"must be between {lo} and {hi}")


def _check_min(model: str, name: str, value: float, lo: float) -> None:
    if value < lo:
        raise ModelValidationError(model, name, value, f"must be >= {lo}")


def _check_non_empty(model: str, name: str, value: str) -> None:
    if not value:
        raise ModelValidationError(model, name, value, "must not be empty")


def _coord(value: object) -> tuple[float, float]:
    """Coerce a ``[lng, lat]`` pair (list or tuple) into a float tuple."""
    pair = list(value)  # type: ignore[call-overload]
    return (float(pair[0]), float(pair[1]))
