"""Mapbox vector-tile footprint adapter (Tilequery API).

Queries the ``building`` layer of ``mapbox.mapbox-streets-v8`` around a
point.  Tilequery reports the distance from the query point in
``properties.tilequery.distance``; polygons that contain the point have
distance 0.

References:
    https://docs.mapbox.com/api/maps/tilequery/
"""

from __future__ import annotations

import logging

from roof_measurement.core.constants import SOURCE_MAPBOX_VECTOR
from roof_measurement.providers.base import Feature, FootprintProvider, ProviderResponseError

logger = logging.getLogger("roof_measurement.providers.mapbox")

_DEFAULT_TILEQUERY_URL = "https://api.mapbox.com/v4/mapbox.mapbox-streets-v8/tilequery"
_FEATURE_LIMIT = 25


class MapboxVectorAdapter(FootprintProvider):
    """Mapbox Streets building layer via Tilequery."""

    default_confidence_baseline = 0.92

    def fetch_features(self, lat: float, lng: float, radius_m: float) -> list[Feature]:
        base = self._config.api_base_url or _DEFAULT_TILEQUERY_URL
        url = f"{base.rstrip('/')}/{lng},{lat}.json"
        params = {
            "radius": int(round(radius_m)),
            "layers": "building",
            "limit": _FEATURE_LIMIT,
            "access_token": self._config.api_key,
        }
        payload = self._request_json("GET", url, params=params)
        if not isinstance(payload, dict) or not isinstance(payload.get("features", []), list):
            raise ProviderResponseError(self.name, "expected a GeoJSON FeatureCollection")

        features: list[Feature] = payload.get("features", [])
        logger.info(
            "%s tilequery: %d features within %.0f m of (%.6f, %.6f)",
            SOURCE_MAPBOX_VECTOR,
            len(features),
            radius_m,
            lat,
            lng,
        )
        return features
