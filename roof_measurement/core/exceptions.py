"""Unified pipeline exception taxonomy.

Every domain exception inherits from ``PipelineError`` and carries
structured context fields so that stage failures can be folded into a
measurement result's ``errors`` list without losing detail.

Taxonomy categories
-------------------
- ``ValidationError``: malformed input (bad ring, bad model field), never retryable.
- ``TransientError``: provider outages, timeouts, throttling; retryable.
- ``PermanentError``: unrecoverable domain failures, not retryable.
- ``ContractError``: unexpected payload shape from an external source.

Two domain failures from the measurement flow get their own classes:

- ``NoUsableDataError``: every source was exhausted (e.g. no footprint).
  Fatal to the run; the pipeline reports it as ``success=False``.
- ``StageFaultError``: an internal computation fault caught at a stage
  boundary.

Geometric inconsistencies are *not* exceptions: the QA gate reports them
as warnings/errors on its result.
"""

from __future__ import annotations


class PipelineError(Exception):
    """Base exception for all pipeline-domain errors.

    Attributes:
        message: Human-readable error description.
        stage: Pipeline stage where the error occurred
            (e.g. ``"footprint"``, ``"topology"``).
        code: Machine-readable error code (e.g. ``"FOOTPRINT_NOT_FOUND"``).
        retryable: Whether a caller could reasonably retry the request.
        correlation_id: Request correlation identifier.
    """

    #: Default stage for subclasses (override via class attribute or kwarg).
    default_stage: str = ""
    #: Default code for subclasses (override via class attribute or kwarg).
    default_code: str = ""

    def __init__(
        self,
        message: str = "",
        *,
        stage: str = "",
        code: str = "",
        retryable: bool = False,
        correlation_id: str = "",
    ) -> None:
        self.message = message
        self.stage = stage or self.default_stage
        self.code = code or self.default_code
        self.retryable = retryable
        self.correlation_id = correlation_id
        super().__init__(message)

    @property
    def category(self) -> str:
        """Return the error category based on concrete class."""
        if isinstance(self, ContractError):
            return "contract"
        if isinstance(self, ValidationError):
            return "validation"
        if isinstance(self, TransientError):
            return "transient"
        if isinstance(self, PermanentError):
            return "permanent"
        return "transient" if self.retryable else "permanent"

    def to_error_dict(self) -> dict[str, object]:
        """Return a structured error payload with stable keys."""
        return {
            "category": self.category,
            "code": self.code,
            "stage": self.stage,
            "message": self.message,
            "retryable": self.retryable,
            "correlation_id": self.correlation_id,
        }


# ---------------------------------------------------------------------------
# Category base classes
# ---------------------------------------------------------------------------


class ValidationError(PipelineError):
    """Input or domain-model validation failure. Never retryable."""

    def __init__(self, message: str = "", **kwargs: object) -> None:
        kwargs.setdefault("retryable", False)
        super().__init__(message, **kwargs)  # type: ignore[arg-type]


class TransientError(PipelineError):
    """Temporary failure that may succeed on retry."""

    def __init__(self, message: str = "", **kwargs: object) -> None:
        kwargs.setdefault("retryable", True)
        super().__init__(message, **kwargs)  # type: ignore[arg-type]


class PermanentError(PipelineError):
    """Unrecoverable domain failure. Not retryable."""

    def __init__(self, message: str = "", **kwargs: object) -> None:
        kwargs.setdefault("retryable", False)
        super().__init__(message, **kwargs)  # type: ignore[arg-type]


class ContractError(PipelineError):
    """External payload did not have the expected shape. Never retryable."""

    def __init__(self, message: str = "", **kwargs: object) -> None:
        kwargs.setdefault("retryable", False)
        super().__init__(message, **kwargs)  # type: ignore[arg-type]


# ---------------------------------------------------------------------------
# Measurement-flow failures
# ---------------------------------------------------------------------------


class NoUsableDataError(PermanentError):
    """All data sources for a stage were exhausted without a usable result."""

    default_code = "NO_USABLE_DATA"


class StageFaultError(PermanentError):
    """Internal computation fault caught at a stage boundary.

    Wraps the original exception so the pipeline can report a stable
    error payload while keeping the cause chained for logging.
    """

    default_code = "STAGE_FAULT"

    def __init__(self, stage: str, cause: BaseException) -> None:
        self.cause = cause
        super().__init__(
            f"{type(cause).__name__}: {cause}",
            stage=stage,
        )
