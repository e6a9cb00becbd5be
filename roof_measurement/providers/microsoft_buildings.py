"""Microsoft Building Footprints adapter (ArcGIS feature service).

The footprints are served as an ArcGIS feature layer; the adapter issues
an envelope ``query`` over the metric search window and asks for GeoJSON
output in WGS 84.  Point a deployment at a different layer with
``ProviderConfig.api_base_url``.

References:
    https://github.com/microsoft/USBuildingFootprints
    https://developers.arcgis.com/rest/services-reference/enterprise/query-feature-service-layer/
"""

from __future__ import annotations

import logging

from roof_measurement.core.projection import search_bbox
from roof_measurement.providers.base import Feature, FootprintProvider, ProviderResponseError

logger = logging.getLogger("roof_measurement.providers.microsoft_buildings")

_DEFAULT_QUERY_URL = (
    "https://services.arcgis.com/P3ePLMYs2RVChkJx/arcgis/rest/services/MSBFP2/FeatureServer/0/query"
)


class MicrosoftBuildingsAdapter(FootprintProvider):
    """ML-derived building polygons from the Microsoft dataset."""

    default_confidence_baseline = 0.88

    def fetch_features(self, lat: float, lng: float, radius_m: float) -> list[Feature]:
        min_lng, min_lat, max_lng, max_lat = search_bbox(lat, lng, radius_m)
        params = {
            "geometry": f"{min_lng},{min_lat},{max_lng},{max_lat}",
            "geometryType": "esriGeometryEnvelope",
            "inSR": "4326",
            "spatialRel": "esriSpatialRelIntersects",
            "outFields": "*",
            "outSR": "4326",
            "f": "geojson",
        }
        params.update(self._config.extra_params)
        payload = self._request_json("GET", self._config.api_base_url or _DEFAULT_QUERY_URL, params=params)

        if isinstance(payload, dict) and "error" in payload:
            error = payload["error"]
            detail = error.get("message", error) if isinstance(error, dict) else error
            raise ProviderResponseError(self.name, f"feature service error: {detail}")
        if not isinstance(payload, dict) or not isinstance(payload.get("features", []), list):
            raise ProviderResponseError(self.name, "expected a GeoJSON FeatureCollection")

        features: list[Feature] = payload.get("features", [])
        logger.info(
            "%s query: %d features for bbox=[%.6f, %.6f, %.6f, %.6f]",
            self.name,
            len(features),
            min_lng,
            min_lat,
            max_lng,
            max_lat,
        )
        return features
