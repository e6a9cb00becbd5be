"""Metric search windows around a query point.

Radii are applied in a local UTM projection and projected back to WGS 84,
never by adding degrees.
"""

from __future__ import annotations

from pyproj import Transformer

from roof_measurement.core.exceptions import ValidationError


def search_bbox(lat: float, lng: float, radius_m: float) -> tuple[float, float, float, float]:
    """Return ``(min_lng, min_lat, max_lng, max_lat)`` covering *radius_m* around the point.

    Raises:
        ValidationError: If the radius is not positive.
    """
    if radius_m <= 0:
        msg = f"Search radius {radius_m} m must be > 0"
        raise ValidationError(msg, stage="footprint", code="INVALID_SEARCH_RADIUS")

    utm_crs = get_utm_crs(lng, lat)
    to_utm = Transformer.from_crs("EPSG:4326", utm_crs, always_xy=True)
    to_wgs = Transformer.from_crs(utm_crs, "EPSG:4326", always_xy=True)

    x, y = to_utm.transform(lng, lat)

    # Project all four corners back; grid convergence can shift the extrema
    corners = [
        to_wgs.transform(x - radius_m, y - radius_m),
        to_wgs.transform(x - radius_m, y + radius_m),
        to_wgs.transform(x + radius_m, y - radius_m),
        to_wgs.transform(x + radius_m, y + radius_m),
    ]
    lngs = [c[0] for c in corners]
    lats = [c[1] for c in corners]
    return (min(lngs), min(lats), max(lngs), max(lats))


def get_utm_crs(lng: float, lat: float) -> str:
    """Return the UTM EPSG code (``"EPSG:326xx"`` / ``"EPSG:327xx"``) for a coordinate."""
    # 6° zones starting at -180°, clamped to 1-60
    zone_number = int((lng + 180) / 6) + 1
    zone_number = max(1, min(60, zone_number))

    if lat >= 0:
        return f"EPSG:{32600 + zone_number}"
    return f"EPSG:{32700 + zone_number}"
