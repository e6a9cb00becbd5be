"""Pipeline configuration loaded from environment variables.

Provider credentials and geometric tolerances are read once at startup
and passed explicitly into the footprint resolver and the measurement
pipeline.  No other module reads the environment.

Fail-fast validation:
    ``from_env()`` raises ``MissingConfigError`` when an enabled provider
    lacks its credential and ``ConfigValidationError`` for any other
    out-of-range value, so a misconfigured deployment fails at startup
    instead of degrading silently mid-pipeline.
"""

from __future__ import annotations

import os
from dataclasses import dataclass

from roof_measurement.core.constants import (
    DEFAULT_AREA_TOLERANCE,
    DEFAULT_CONNECTIVITY_TOLERANCE_FT,
    DEFAULT_PITCH,
    DEFAULT_PROVIDER_TIMEOUT_S,
    DEFAULT_SEARCH_RADIUS_M,
    DEFAULT_SNAP_TOLERANCE_FT,
    RIDGE_SOURCES,
    SOURCE_MAPBOX_VECTOR,
    SOURCE_MICROSOFT_BUILDINGS,
    SOURCE_OSM_BUILDINGS,
    SOURCE_REGRID_PARCEL,
)
from roof_measurement.core.exceptions import PipelineError
from roof_measurement.core.pitch import parse_pitch

#: Footprint providers that can be listed in ``FOOTPRINT_PROVIDERS``.
KNOWN_FOOTPRINT_PROVIDERS: tuple[str, ...] = (
    SOURCE_MAPBOX_VECTOR,
    SOURCE_MICROSOFT_BUILDINGS,
    SOURCE_OSM_BUILDINGS,
    SOURCE_REGRID_PARCEL,
)

#: Provider name → environment variable holding its credential.
_PROVIDER_CREDENTIALS: dict[str, str] = {
    SOURCE_MAPBOX_VECTOR: "MAPBOX_ACCESS_TOKEN",
    SOURCE_REGRID_PARCEL: "REGRID_API_KEY",
}

_DEFAULT_FOOTPRINT_PROVIDERS = f"{SOURCE_OSM_BUILDINGS},{SOURCE_MICROSOFT_BUILDINGS}"
_TRUE_VALUES = frozenset({"1", "true", "yes", "on"})


class ConfigValidationError(PipelineError):
    """Raised when configuration values are out of valid range.

    Attributes:
        key: The configuration key that failed validation.
        value: The invalid value.
        message: Human-readable description of the valid range.
    """

    default_stage = "config"
    default_code = "CONFIG_VALIDATION_FAILED"

    def __init__(self, key: str, value: object, message: str) -> None:
        self.key = key
        self.value = value
        super().__init__(f"Invalid configuration {key}={value!r}: {message}")


class MissingConfigError(ConfigValidationError):
    """A required configuration value (usually a credential) is absent."""

    default_code = "CONFIG_MISSING"

    def __init__(self, key: str, reason: str = "") -> None:
        detail = f"missing required config ({reason})" if reason else "missing required config"
        super().__init__(key, "", detail)


@dataclass(frozen=True, slots=True)
class PipelineConfig:
    """Immutable pipeline configuration.

    Attributes:
        mapbox_access_token: Mapbox token for the vector-tile footprint source.
        regrid_api_key: Regrid parcel API key.
        google_solar_api_key: Google Solar API key for roof segments.
        footprint_providers: Footprint providers in priority order.
        search_radius_m: Footprint search radius around the query point.
        provider_timeout_s: Timeout applied to every provider HTTP call.
        eave_offset_ft: Outward offset applied to the footprint before
            building the skeleton (0 disables it).
        snap_tolerance_ft: Distance within which line endpoints merge.
        connectivity_tolerance_ft: Distance within which a skeleton endpoint
            counts as connected.
        area_tolerance: Relative area mismatch tolerated by the QA gate.
        default_pitch: Pitch used when no override or segment data exists.
        ridge_source_priority: Order in which ridge-direction sources are tried.
        solar_segments_enabled: Whether the external roof-segment fetch runs.
    """

    mapbox_access_token: str = ""
    regrid_api_key: str = ""
    google_solar_api_key: str = ""
    footprint_providers: tuple[str, ...] = (SOURCE_OSM_BUILDINGS, SOURCE_MICROSOFT_BUILDINGS)
    search_radius_m: float = DEFAULT_SEARCH_RADIUS_M
    provider_timeout_s: float = DEFAULT_PROVIDER_TIMEOUT_S
    eave_offset_ft: float = 0.0
    snap_tolerance_ft: float = DEFAULT_SNAP_TOLERANCE_FT
    connectivity_tolerance_ft: float = DEFAULT_CONNECTIVITY_TOLERANCE_FT
    area_tolerance: float = DEFAULT_AREA_TOLERANCE
    default_pitch: str = DEFAULT_PITCH
    ridge_source_priority: tuple[str, ...] = RIDGE_SOURCES
    solar_segments_enabled: bool = False

    def credential_for(self, provider: str) -> str:
        """Return the configured credential for *provider* (empty if none)."""
        if provider == SOURCE_MAPBOX_VECTOR:
            return self.mapbox_access_token
        if provider == SOURCE_REGRID_PARCEL:
            return self.regrid_api_key
        return ""

    @classmethod
    def from_env(cls) -> PipelineConfig:
        """Load and validate configuration from environment variables.

        ``SOLAR_SEGMENTS_ENABLED`` defaults to "enabled when
        ``GOOGLE_SOLAR_API_KEY`` is set"; setting it to true without a key
        is a ``MissingConfigError``.

        Raises:
            ConfigValidationError: If a value is out of range.
            MissingConfigError: If an enabled provider has no credential.
            ValueError: If a numeric environment variable cannot be
                parsed (e.g. ``SNAP_TOLERANCE_FT=abc``).
        """
        solar_key = os.getenv("GOOGLE_SOLAR_API_KEY", "")
        solar_flag = os.getenv("SOLAR_SEGMENTS_ENABLED")
        solar_enabled = bool(solar_key) if solar_flag is None else solar_flag.strip().lower() in _TRUE_VALUES

        config = cls(
            mapbox_access_token=os.getenv("MAPBOX_ACCESS_TOKEN", ""),
            regrid_api_key=os.getenv("REGRID_API_KEY", ""),
            google_solar_api_key=solar_key,
            footprint_providers=_split_list(
                os.getenv("FOOTPRINT_PROVIDERS", _DEFAULT_FOOTPRINT_PROVIDERS)
            ),
            search_radius_m=float(os.getenv("FOOTPRINT_SEARCH_RADIUS_M", str(DEFAULT_SEARCH_RADIUS_M))),
            provider_timeout_s=float(os.getenv("PROVIDER_TIMEOUT_S", str(DEFAULT_PROVIDER_TIMEOUT_S))),
            eave_offset_ft=float(os.getenv("EAVE_OFFSET_FT", "0")),
            snap_tolerance_ft=float(os.getenv("SNAP_TOLERANCE_FT", str(DEFAULT_SNAP_TOLERANCE_FT))),
            connectivity_tolerance_ft=float(
                os.getenv("CONNECTIVITY_TOLERANCE_FT", str(DEFAULT_CONNECTIVITY_TOLERANCE_FT))
            ),
            area_tolerance=float(os.getenv("AREA_TOLERANCE", str(DEFAULT_AREA_TOLERANCE))),
            default_pitch=os.getenv("DEFAULT_PITCH", DEFAULT_PITCH),
            ridge_source_priority=_split_list(
                os.getenv("RIDGE_SOURCE_PRIORITY", ",".join(RIDGE_SOURCES))
            ),
            solar_segments_enabled=solar_enabled,
        )
        config.validate()
        return config

    def validate(self) -> None:
        """Validate ranges and credentials.  Raises ``ConfigValidationError``."""
        _validate(self)


def _split_list(raw: str) -> tuple[str, ...]:
    return tuple(item.strip() for item in raw.split(",") if item.strip())


def _validate(config: PipelineConfig) -> None:
    if not config.footprint_providers:
        raise ConfigValidationError(
            "FOOTPRINT_PROVIDERS",
            config.footprint_providers,
            "must list at least one provider",
        )

    for provider in config.footprint_providers:
        if provider not in KNOWN_FOOTPRINT_PROVIDERS:
            raise ConfigValidationError(
                "FOOTPRINT_PROVIDERS",
                provider,
                f"unknown provider; expected one of {', '.join(KNOWN_FOOTPRINT_PROVIDERS)}",
            )
        credential_key = _PROVIDER_CREDENTIALS.get(provider)
        if credential_key and not config.credential_for(provider):
            raise MissingConfigError(credential_key, f"required by provider {provider}")

    if config.solar_segments_enabled and not config.google_solar_api_key:
        raise MissingConfigError("GOOGLE_SOLAR_API_KEY", "required when SOLAR_SEGMENTS_ENABLED is true")

    if not config.ridge_source_priority:
        raise ConfigValidationError(
            "RIDGE_SOURCE_PRIORITY",
            config.ridge_source_priority,
            "must list at least one ridge source",
        )
    for source in config.ridge_source_priority:
        if source not in RIDGE_SOURCES:
            raise ConfigValidationError(
                "RIDGE_SOURCE_PRIORITY",
                source,
                f"unknown ridge source; expected one of {', '.join(RIDGE_SOURCES)}",
            )

    if config.search_radius_m <= 0:
        raise ConfigValidationError(
            "FOOTPRINT_SEARCH_RADIUS_M",
            config.search_radius_m,
            "must be > 0 (metres)",
        )

    if config.provider_timeout_s <= 0:
        raise ConfigValidationError(
            "PROVIDER_TIMEOUT_S",
            config.provider_timeout_s,
            "must be > 0 (seconds)",
        )

    if config.eave_offset_ft < 0:
        raise ConfigValidationError(
            "EAVE_OFFSET_FT",
            config.eave_offset_ft,
            "must be >= 0 (feet)",
        )

    if config.snap_tolerance_ft <= 0:
        raise ConfigValidationError(
            "SNAP_TOLERANCE_FT",
            config.snap_tolerance_ft,
            "must be > 0 (feet)",
        )

    if config.connectivity_tolerance_ft <= 0:
        raise ConfigValidationError(
            "CONNECTIVITY_TOLERANCE_FT",
            config.connectivity_tolerance_ft,
            "must be > 0 (feet)",
        )

    if not 0.0 < config.area_tolerance < 1.0:
        raise ConfigValidationError(
            "AREA_TOLERANCE",
            config.area_tolerance,
            "must be between 0 and 1 (exclusive fraction)",
        )

    if parse_pitch(config.default_pitch) is None:
        raise ConfigValidationError(
            "DEFAULT_PITCH",
            config.default_pitch,
            "must be 'flat' or '<rise>/12'",
        )
