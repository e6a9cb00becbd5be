"""Tests for the exception taxonomy.

Validates:
- PipelineError hierarchy and structured attributes
- Category classification (validation, transient, permanent, contract)
- ``to_error_dict()`` produces stable payload keys
- Domain exceptions are PipelineError subclasses
"""

from __future__ import annotations

from roof_measurement.activities.ensemble import EnsembleError
from roof_measurement.core.config import ConfigValidationError, MissingConfigError
from roof_measurement.core.exceptions import (
    ContractError,
    NoUsableDataError,
    PermanentError,
    PipelineError,
    StageFaultError,
    TransientError,
    ValidationError,
)
from roof_measurement.core.geometry import GeometryError
from roof_measurement.models.validation import ModelValidationError
from roof_measurement.providers.base import (
    ProviderAuthError,
    ProviderError,
    ProviderResponseError,
    ProviderUnavailableError,
)


class TestPipelineErrorBase:
    """PipelineError base class behaviour."""

    def test_default_attributes(self) -> None:
        err = PipelineError("boom")
        assert err.message == "boom"
        assert err.stage == ""
        assert err.code == ""
        assert err.retryable is False
        assert err.correlation_id == ""

    def test_custom_attributes(self) -> None:
        err = PipelineError("fail", stage="topology", code="X", retryable=True, correlation_id="req-1")
        assert err.stage == "topology"
        assert err.code == "X"
        assert err.retryable is True
        assert err.correlation_id == "req-1"

    def test_error_dict_keys(self) -> None:
        payload = PipelineError("fail", stage="areas").to_error_dict()
        assert set(payload) == {"category", "code", "stage", "message", "retryable", "correlation_id"}
        assert payload["message"] == "fail"


class TestCategories:
    def test_validation(self) -> None:
        assert ValidationError("x").category == "validation"

    def test_transient(self) -> None:
        assert TransientError("x").category == "transient"

    def test_permanent(self) -> None:
        assert PermanentError("x").category == "permanent"

    def test_contract(self) -> None:
        assert ContractError("x").category == "contract"

    def test_bare_error_uses_retryable(self) -> None:
        assert PipelineError("x", retryable=True).category == "transient"
        assert PipelineError("x").category == "permanent"


class TestMeasurementFlowErrors:
    def test_no_usable_data(self) -> None:
        err = NoUsableDataError("nothing", stage="footprint")
        assert err.code == "NO_USABLE_DATA"
        assert err.category == "permanent"
        assert err.stage == "footprint"

    def test_stage_fault_wraps_cause(self) -> None:
        cause = ZeroDivisionError("division by zero")
        err = StageFaultError("areas", cause)
        assert err.cause is cause
        assert err.stage == "areas"
        assert err.code == "STAGE_FAULT"
        assert err.message == "ZeroDivisionError: division by zero"


class TestDomainExceptionsInTaxonomy:
    def test_all_are_pipeline_errors(self) -> None:
        for exc_type in (
            ConfigValidationError,
            MissingConfigError,
            GeometryError,
            ModelValidationError,
            ProviderError,
            ProviderAuthError,
            ProviderUnavailableError,
            ProviderResponseError,
            EnsembleError,
        ):
            assert issubclass(exc_type, PipelineError), exc_type

    def test_model_validation_error_is_value_error(self) -> None:
        assert issubclass(ModelValidationError, ValueError)

    def test_provider_unavailable_is_retryable(self) -> None:
        err = ProviderUnavailableError("osm_buildings", "timeout")
        assert err.retryable is True
        assert err.status_code is None
        assert str(err) == "[osm_buildings] timeout"

    def test_provider_auth_not_retryable(self) -> None:
        assert ProviderAuthError("mapbox_vector", "401").retryable is False
