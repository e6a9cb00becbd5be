"""Provider adapter configuration."""

from __future__ import annotations

from dataclasses import dataclass, field

from roof_measurement.core.constants import DEFAULT_PROVIDER_TIMEOUT_S
from roof_measurement.models.validation import _check_min, _check_non_empty


@dataclass(frozen=True, slots=True)
class ProviderConfig:
    """Configuration for one external data provider.

    Attributes:
        name: Provider identifier (e.g. ``"osm_buildings"``).
        api_base_url: Endpoint override; empty means the adapter default.
        api_key: Credential (token / key), empty for keyless sources.
        timeout_s: HTTP timeout for every request.
        confidence_baseline: Override for the adapter's baseline
            confidence; ``None`` keeps the adapter default.
        extra_params: Provider-specific query parameters.
    """

    name: str
    api_base_url: str = ""
    api_key: str = ""
    timeout_s: float = DEFAULT_PROVIDER_TIMEOUT_S
    confidence_baseline: float | None = None
    extra_params: dict[str, str] = field(default_factory=dict)

    def __post_init__(self) -> None:
        _check_non_empty("ProviderConfig", "name", self.name)
        _check_min("ProviderConfig", "timeout_s", self.timeout_s, 0.001)
