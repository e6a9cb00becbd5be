"""Google Solar API adapter (buildingInsights:findClosest).

Maps ``solarPotential.roofSegmentStats`` to ``RoofSegment`` records and
``wholeRoofStats.groundAreaMeters2`` to the reference footprint area used
by the QA gate.

References:
    https://developers.google.com/maps/documentation/solar/reference/rest/v1/buildingInsights/findClosest
"""

from __future__ import annotations

import logging
from typing import Any

from roof_measurement.core.constants import SQ_FEET_PER_SQ_METER
from roof_measurement.models.solar import BoundingBox, RoofSegment, SolarData
from roof_measurement.providers.base import ProviderError, RoofSegmentProvider

logger = logging.getLogger("roof_measurement.providers.google_solar")

GOOGLE_SOLAR = "google_solar"

_DEFAULT_FIND_CLOSEST_URL = "https://solar.googleapis.com/v1/buildingInsights:findClosest"


class GoogleSolarAdapter(RoofSegmentProvider):
    """Roof segments from Google's building insights."""

    def fetch_roof_segments(self, lat: float, lng: float) -> SolarData:
        params = {
            "location.latitude": lat,
            "location.longitude": lng,
            "key": self._config.api_key,
        }
        params.update(self._config.extra_params)
        try:
            payload = self._request_json(
                "GET",
                self._config.api_base_url or _DEFAULT_FIND_CLOSEST_URL,
                params=params,
            )
            solar = parse_building_insights(payload)
        except ProviderError as exc:
            logger.warning("Roof segments unavailable | provider=%s | error=%s", self.name, exc)
            return SolarData.unavailable(str(exc))
        except (KeyError, TypeError, ValueError) as exc:
            logger.warning("Roof segments unparseable | provider=%s | error=%s", self.name, exc)
            return SolarData.unavailable(f"[{self.name}] malformed payload: {exc}")

        logger.info(
            "Roof segments fetched | provider=%s | segments=%d | predominant_pitch=%s",
            self.name,
            len(solar.segments),
            solar.predominant_pitch,
        )
        return solar


def parse_building_insights(payload: dict[str, Any]) -> SolarData:
    """Convert a buildingInsights document into ``SolarData``.

    Raises:
        KeyError / TypeError / ValueError: On malformed members.
    """
    potential = payload.get("solarPotential") or {}
    segments = [_segment(raw) for raw in potential.get("roofSegmentStats", [])]
    if not segments:
        return SolarData.unavailable("no roof segments in building insights")

    ground_area_m2 = (potential.get("wholeRoofStats") or {}).get("groundAreaMeters2")
    return SolarData(
        available=True,
        segments=segments,
        building_footprint_sqft=float(ground_area_m2) * SQ_FEET_PER_SQ_METER if ground_area_m2 else None,
        bounding_box=_bbox(payload.get("boundingBox")),
    )


def _segment(raw: dict[str, Any]) -> RoofSegment:
    center = raw.get("center")
    return RoofSegment(
        pitch_degrees=min(90.0, max(0.0, float(raw.get("pitchDegrees", 0.0)))),
        azimuth_degrees=float(raw.get("azimuthDegrees", 0.0)) % 360.0,
        area_sq_m=float((raw.get("stats") or {}).get("areaMeters2", 0.0)),
        center=(float(center["longitude"]), float(center["latitude"])) if center else None,
        bounding_box=_bbox(raw.get("boundingBox")),
    )


def _bbox(raw: dict[str, Any] | None) -> BoundingBox | None:
    if not raw:
        return None
    sw, ne = raw["sw"], raw["ne"]
    return (float(sw["longitude"]), float(sw["latitude"]), float(ne["longitude"]), float(ne["latitude"]))
