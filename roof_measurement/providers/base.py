"""Provider abstract base classes and exceptions.

Defines the contracts every external data source must implement.  The
footprint resolver and the measurement pipeline interact exclusively
with these interfaces; they never know which concrete provider is behind
them.

- ``FootprintProvider.fetch_features(lat, lng, radius_m)`` returns raw
  GeoJSON-like building features near a point.  Adapters raise
  ``ProviderError`` subclasses; the resolver turns them into typed
  fallback reasons.
- ``RoofSegmentProvider.fetch_roof_segments(lat, lng)`` returns
  ``SolarData`` and never raises: an unreachable source yields
  ``SolarData(available=False)``.

Every adapter accepts an optional ``httpx.Client`` so callers and tests
can share connection pools or inject a mock transport.
"""

from __future__ import annotations

import abc
import logging
from typing import TYPE_CHECKING, Any

import httpx

from roof_measurement.core.exceptions import PipelineError

if TYPE_CHECKING:
    from roof_measurement.models.provider import ProviderConfig
    from roof_measurement.models.solar import SolarData

logger = logging.getLogger("roof_measurement.providers.base")

Feature = dict[str, Any]


class _HttpProvider:
    """Shared config and HTTP plumbing for provider adapters."""

    def __init__(self, config: ProviderConfig, *, client: httpx.Client | None = None) -> None:
        self._config = config
        self._client = client

    @property
    def name(self) -> str:
        """Return the provider name from configuration."""
        return self._config.name

    @property
    def config(self) -> ProviderConfig:
        """Return the provider configuration (read-only)."""
        return self._config

    def _request_json(
        self,
        method: str,
        url: str,
        *,
        params: dict[str, Any] | None = None,
        data: dict[str, Any] | None = None,
    ) -> Any:
        """Issue one HTTP request and decode the JSON body.

        Raises:
            ProviderUnavailableError: On timeout, transport failure, or a
                non-2xx status (``status_code`` set for the latter).
            ProviderAuthError: On 401 / 403.
            ProviderResponseError: If the body is not JSON.
        """
        try:
            if self._client is not None:
                response = self._client.request(method, url, params=params, data=data)
            else:
                with httpx.Client(timeout=self._config.timeout_s, follow_redirects=True) as client:
                    response = client.request(method, url, params=params, data=data)
            response.raise_for_status()
        except httpx.TimeoutException as exc:
            msg = f"request timed out after {self._config.timeout_s:.0f}s"
            raise ProviderUnavailableError(self.name, msg) from exc
        except httpx.HTTPStatusError as exc:
            status = exc.response.status_code
            if status in (401, 403):
                raise ProviderAuthError(self.name, f"HTTP {status}: credentials rejected") from exc
            raise ProviderUnavailableError(self.name, f"HTTP {status}", status_code=status) from exc
        except httpx.HTTPError as exc:
            raise ProviderUnavailableError(self.name, f"transport error: {exc}") from exc

        try:
            return response.json()
        except ValueError as exc:
            raise ProviderResponseError(self.name, "response body is not valid JSON") from exc


class FootprintProvider(_HttpProvider, abc.ABC):
    """Abstract base class for building-footprint sources.

    Example usage::

        provider = get_provider("osm_buildings")
        features = provider.fetch_features(40.0, -75.0, 50.0)
    """

    #: Confidence assigned to a containing, nearby, plausible candidate.
    default_confidence_baseline: float = 0.85

    @property
    def confidence_baseline(self) -> float:
        if self._config.confidence_baseline is not None:
            return self._config.confidence_baseline
        return self.default_confidence_baseline

    @abc.abstractmethod
    def fetch_features(self, lat: float, lng: float, radius_m: float) -> list[Feature]:
        """Return building features within *radius_m* of the point.

        Each feature is a GeoJSON-like dict with a ``geometry`` member
        (``{"type": ..., "coordinates": ...}``) and optional ``properties``.
        Non-polygon geometries may be returned; the resolver filters them.

        Returns:
            Possibly empty list of features.

        Raises:
            ProviderError: On transport, auth, or payload errors.
        """


class RoofSegmentProvider(_HttpProvider, abc.ABC):
    """Abstract base class for external roof-segment sources."""

    @abc.abstractmethod
    def fetch_roof_segments(self, lat: float, lng: float) -> SolarData:
        """Return roof segments for the building nearest the point.

        Must not raise: failures are reported as ``SolarData.unavailable``.
        """


# ---------------------------------------------------------------------------
# Provider exceptions
# ---------------------------------------------------------------------------


class ProviderError(PipelineError):
    """Base exception for provider adapter errors.

    Attributes:
        provider: Name of the provider that raised the error.
        message: Human-readable error description.
        retryable: Whether the caller should retry the operation.
    """

    default_stage = "provider"
    default_code = "PROVIDER_ERROR"

    def __init__(
        self,
        provider: str,
        message: str,
        *,
        retryable: bool = False,
    ) -> None:
        self.provider = provider
        super().__init__(
            message,
            retryable=retryable,
            code=self.default_code,
            stage=self.default_stage,
        )

    def __str__(self) -> str:
        return f"[{self.provider}] {self.message}"


class ProviderAuthError(ProviderError):
    """Authentication or authorisation failure with the provider API."""

    default_code = "PROVIDER_AUTH_FAILED"

    def __init__(self, provider: str, message: str) -> None:
        super().__init__(provider, message, retryable=False)


class ProviderUnavailableError(ProviderError):
    """Network failure, timeout, or HTTP error status from the provider.

    Attributes:
        status_code: HTTP status when the server answered, else ``None``.
    """

    default_code = "PROVIDER_UNAVAILABLE"

    def __init__(self, provider: str, message: str, *, status_code: int | None = None) -> None:
        self.status_code = status_code
        super().__init__(provider, message, retryable=True)


class ProviderResponseError(ProviderError):
    """The provider answered but the payload could not be interpreted."""

    default_code = "PROVIDER_BAD_RESPONSE"
