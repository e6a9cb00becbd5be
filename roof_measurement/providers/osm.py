"""OpenStreetMap building adapter (Overpass API).

Overpass returns ways and multipolygon relations with inline node
geometry (``out geom``).  They are converted to GeoJSON polygons here so
the resolver sees the same feature shape from every provider.

References:
    https://wiki.openstreetmap.org/wiki/Overpass_API
"""

from __future__ import annotations

import logging
from typing import Any

from roof_measurement.providers.base import Feature, FootprintProvider, ProviderResponseError

logger = logging.getLogger("roof_measurement.providers.osm")

_DEFAULT_OVERPASS_URL = "https://overpass-api.de/api/interpreter"

# A closed way needs 3 distinct nodes plus the repeated first node.
_MIN_RING_NODES = 4


def build_overpass_query(lat: float, lng: float, radius_m: float, timeout_s: float) -> str:
    """Return the Overpass QL query for buildings around a point."""
    radius = int(round(radius_m))
    return (
        f"[out:json][timeout:{int(timeout_s)}];"
        f'(way["building"](around:{radius},{lat},{lng});'
        f'relation["building"](around:{radius},{lat},{lng}););'
        "out geom;"
    )


def element_to_feature(element: dict[str, Any]) -> Feature | None:
    """Convert an Overpass way/relation with geometry into a GeoJSON feature.

    Returns ``None`` for elements without a usable ring.
    """
    properties = {"osm_id": element.get("id"), "osm_type": element.get("type"), **element.get("tags", {})}

    if element.get("type") == "way":
        ring = _ring(element.get("geometry", []))
        if ring is None:
            return None
        return {"type": "Feature", "geometry": {"type": "Polygon", "coordinates": [ring]}, "properties": properties}

    if element.get("type") == "relation":
        polygons = []
        for member in element.get("members", []):
            if member.get("role", "outer") != "outer":
                continue
            ring = _ring(member.get("geometry", []))
            if ring is not None:
                polygons.append([ring])
        if not polygons:
            return None
        return {
            "type": "Feature",
            "geometry": {"type": "MultiPolygon", "coordinates": polygons},
            "properties": properties,
        }

    return None


def _ring(nodes: list[dict[str, Any]]) -> list[list[float]] | None:
    ring = [[float(n["lon"]), float(n["lat"])] for n in nodes if "lon" in n and "lat" in n]
    if len(ring) < _MIN_RING_NODES:
        return None
    if ring[0] != ring[-1]:
        ring.append(ring[0])
    return ring


class OSMBuildingsAdapter(FootprintProvider):
    """Community-mapped OSM building outlines."""

    default_confidence_baseline = 0.85

    def fetch_features(self, lat: float, lng: float, radius_m: float) -> list[Feature]:
        query = build_overpass_query(lat, lng, radius_m, self._config.timeout_s)
        payload = self._request_json(
            "POST",
            self._config.api_base_url or _DEFAULT_OVERPASS_URL,
            data={"data": query},
        )
        if not isinstance(payload, dict) or not isinstance(payload.get("elements", []), list):
            raise ProviderResponseError(self.name, "expected an Overpass JSON document")

        elements = payload.get("elements", [])
        features = [f for f in (element_to_feature(e) for e in elements) if f is not None]
        logger.info(
            "%s overpass: %d elements, %d polygon features within %.0f m",
            self.name,
            len(elements),
            len(features),
            radius_m,
        )
        return features
