"""External data provider adapters.

Implements the provider-agnostic adapter pattern (Strategy pattern):
- FootprintProvider: building-footprint source interface
  (Mapbox vector tiles, Microsoft buildings, OSM Overpass, Regrid parcels)
- RoofSegmentProvider: roof-segment source interface (Google Solar)

Active providers and their priority are selected via configuration.
"""

from roof_measurement.providers.base import (
    FootprintProvider,
    ProviderAuthError,
    ProviderError,
    ProviderResponseError,
    ProviderUnavailableError,
    RoofSegmentProvider,
)
from roof_measurement.providers.factory import (
    build_footprint_providers,
    build_provider_config,
    build_segment_provider,
    get_provider,
    list_providers,
    register_provider,
)
from roof_measurement.providers.google_solar import GOOGLE_SOLAR

__all__ = [
    "GOOGLE_SOLAR",
    "FootprintProvider",
    "ProviderAuthError",
    "ProviderError",
    "ProviderResponseError",
    "ProviderUnavailableError",
    "RoofSegmentProvider",
    "build_footprint_providers",
    "build_provider_config",
    "build_segment_provider",
    "get_provider",
    "list_providers",
    "register_provider",
]
