"""Provider factory: builds footprint and roof-segment adapters by name.

The factory keeps a registry of known adapters.  Each entry is a lazy
import thunk so an adapter module is only loaded when selected.

Usage::

    from roof_measurement.providers.factory import get_provider

    provider = get_provider("osm_buildings")
    features = provider.fetch_features(lat, lng, 50.0)

Provider names and their order come from
``PipelineConfig.footprint_providers``.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from roof_measurement.core.constants import (
    SOURCE_MAPBOX_VECTOR,
    SOURCE_MICROSOFT_BUILDINGS,
    SOURCE_OSM_BUILDINGS,
    SOURCE_REGRID_PARCEL,
)
from roof_measurement.models.provider import ProviderConfig
from roof_measurement.providers.base import FootprintProvider, ProviderError, RoofSegmentProvider
from roof_measurement.providers.google_solar import GOOGLE_SOLAR

if TYPE_CHECKING:
    from collections.abc import Callable

    import httpx

    from roof_measurement.core.config import PipelineConfig

logger = logging.getLogger(__name__)

AdapterClass = type[FootprintProvider] | type[RoofSegmentProvider]

# ---------------------------------------------------------------------------
# Lazy-import adapter registry
# ---------------------------------------------------------------------------

_ADAPTER_REGISTRY: dict[str, Callable[[], AdapterClass]] = {}


def _register_builtin_adapters() -> None:
    """Register the built-in provider adapters (lazy import thunks)."""

    def _mapbox() -> AdapterClass:
        from roof_measurement.providers.mapbox import MapboxVectorAdapter

        return MapboxVectorAdapter

    def _microsoft() -> AdapterClass:
        from roof_measurement.providers.microsoft_buildings import MicrosoftBuildingsAdapter

        return MicrosoftBuildingsAdapter

    def _osm() -> AdapterClass:
        from roof_measurement.providers.osm import OSMBuildingsAdapter

        return OSMBuildingsAdapter

    def _regrid() -> AdapterClass:
        from roof_measurement.providers.regrid import RegridParcelAdapter

        return RegridParcelAdapter

    def _google_solar() -> AdapterClass:
        from roof_measurement.providers.google_solar import GoogleSolarAdapter

        return GoogleSolarAdapter

    _ADAPTER_REGISTRY[SOURCE_MAPBOX_VECTOR] = _mapbox
    _ADAPTER_REGISTRY[SOURCE_MICROSOFT_BUILDINGS] = _microsoft
    _ADAPTER_REGISTRY[SOURCE_OSM_BUILDINGS] = _osm
    _ADAPTER_REGISTRY[SOURCE_REGRID_PARCEL] = _regrid
    _ADAPTER_REGISTRY[GOOGLE_SOLAR] = _google_solar


def _ensure_registry() -> None:
    """Initialise the adapter registry once (idempotent)."""
    if not _ADAPTER_REGISTRY:
        _register_builtin_adapters()


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def register_provider(name: str, loader: Callable[[], AdapterClass]) -> None:
    """Register a custom provider adapter.

    Args:
        name: Provider name (e.g. ``"county_gis"``).
        loader: A zero-argument callable that returns the adapter class.

    Raises:
        ValueError: If the name is empty.
    """
    if not name:
        msg = "Provider name must be non-empty"
        raise ValueError(msg)
    _ensure_registry()
    _ADAPTER_REGISTRY[name] = loader
    logger.debug("Registered provider adapter: %s", name)


def get_provider(
    name: str,
    config: ProviderConfig | None = None,
    *,
    client: httpx.Client | None = None,
) -> FootprintProvider | RoofSegmentProvider:
    """Create and return a provider instance.

    Args:
        name: Provider identifier (e.g. ``"osm_buildings"``).
        config: Optional ``ProviderConfig``. If ``None``, a default config
                with just the provider name is used.
        client: Optional shared ``httpx.Client``.

    Raises:
        ProviderError: If the name is not registered or the config
            belongs to another provider.
    """
    _ensure_registry()

    loader = _ADAPTER_REGISTRY.get(name)
    if loader is None:
        available = ", ".join(sorted(_ADAPTER_REGISTRY))
        msg = f"Unknown provider: {name!r}. Available: {available}"
        raise ProviderError(provider=name, message=msg)

    adapter_cls = loader()

    if config is None:
        config = ProviderConfig(name=name)
    elif config.name != name:
        msg = f"ProviderConfig.name {config.name!r} does not match requested provider {name!r}"
        raise ProviderError(provider=name, message=msg)

    logger.debug("Creating provider: %s", name)
    return adapter_cls(config, client=client)


def list_providers() -> list[str]:
    """Return the names of all registered provider adapters."""
    _ensure_registry()
    return sorted(_ADAPTER_REGISTRY)


def build_provider_config(name: str, pipeline_config: PipelineConfig) -> ProviderConfig:
    """Derive a ``ProviderConfig`` for *name* from the pipeline configuration."""
    api_key = (
        pipeline_config.google_solar_api_key
        if name == GOOGLE_SOLAR
        else pipeline_config.credential_for(name)
    )
    return ProviderConfig(name=name, api_key=api_key, timeout_s=pipeline_config.provider_timeout_s)


def build_footprint_providers(
    pipeline_config: PipelineConfig,
    *,
    client: httpx.Client | None = None,
) -> list[FootprintProvider]:
    """Instantiate the configured footprint providers in priority order."""
    providers: list[FootprintProvider] = []
    for name in pipeline_config.footprint_providers:
        provider = get_provider(name, build_provider_config(name, pipeline_config), client=client)
        if not isinstance(provider, FootprintProvider):
            raise ProviderError(provider=name, message="not a footprint provider")
        providers.append(provider)
    return providers


def build_segment_provider(
    pipeline_config: PipelineConfig,
    *,
    client: httpx.Client | None = None,
) -> RoofSegmentProvider | None:
    """Return the roof-segment provider, or ``None`` when segments are disabled."""
    if not pipeline_config.solar_segments_enabled:
        return None
    provider = get_provider(GOOGLE_SOLAR, build_provider_config(GOOGLE_SOLAR, pipeline_config), client=client)
    if not isinstance(provider, RoofSegmentProvider):
        raise ProviderError(provider=GOOGLE_SOLAR, message="not a roof-segment provider")
    return provider
