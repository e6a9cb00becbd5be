"""Regrid parcel adapter.

Looks up the parcel under the query point.  The parcel outline is a
coarse structure proxy, so this source has the lowest baseline
confidence and sits last in the default priority order.

References:
    https://support.regrid.com/api/parcel-api-endpoints
"""

from __future__ import annotations

import logging

from roof_measurement.providers.base import Feature, FootprintProvider, ProviderResponseError

logger = logging.getLogger("roof_measurement.providers.regrid")

_DEFAULT_POINT_URL = "https://app.regrid.com/api/v2/parcels/point.json"


class RegridParcelAdapter(FootprintProvider):
    """Parcel polygons from the Regrid API."""

    default_confidence_baseline = 0.80

    def fetch_features(self, lat: float, lng: float, radius_m: float) -> list[Feature]:
        params = {
            "lat": lat,
            "lon": lng,
            "radius": int(round(radius_m)),
            "token": self._config.api_key,
        }
        payload = self._request_json("GET", self._config.api_base_url or _DEFAULT_POINT_URL, params=params)
        if not isinstance(payload, dict):
            raise ProviderResponseError(self.name, "expected a JSON object")

        parcels = payload.get("parcels", [])
        # v2 wraps parcels in a FeatureCollection; older responses return a bare list
        if isinstance(parcels, dict):
            parcels = parcels.get("features", [])
        if not isinstance(parcels, list):
            raise ProviderResponseError(self.name, "unexpected 'parcels' member")

        logger.info("%s point lookup: %d parcels at (%.6f, %.6f)", self.name, len(parcels), lat, lng)
        return parcels
