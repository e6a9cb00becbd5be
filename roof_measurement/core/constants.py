"""Shared pipeline constants: single source of truth.

Unit conversions, geometric tolerances, and the string tags used for
footprint sources, ridge sources, and skeleton edge types.
"""

from __future__ import annotations

# ---------------------------------------------------------------------------
# Unit conversions
# ---------------------------------------------------------------------------

METERS_PER_DEGREE: float = 111_320.0
"""Metres per degree of latitude (equirectangular approximation)."""

FEET_PER_METER: float = 3.28084

SQ_FEET_PER_SQ_METER: float = 10.7639

EARTH_RADIUS_FT: float = 20_902_231.0
"""Mean Earth radius in feet, used by the haversine formula."""

# ---------------------------------------------------------------------------
# Geometry tolerances
# ---------------------------------------------------------------------------

INTERSECTION_EPSILON: float = 0.001
"""Segment parameters within this distance of 0 or 1 count as endpoint contact."""

PARALLEL_TOLERANCE: float = 1e-12

DEFAULT_SNAP_TOLERANCE_FT: float = 2.0
DEFAULT_CONNECTIVITY_TOLERANCE_FT: float = 3.0
DEFAULT_AREA_TOLERANCE: float = 0.03

# ---------------------------------------------------------------------------
# Footprint search
# ---------------------------------------------------------------------------

DEFAULT_SEARCH_RADIUS_M: float = 50.0
DEFAULT_PROVIDER_TIMEOUT_S: float = 15.0

# ---------------------------------------------------------------------------
# Footprint sources
# ---------------------------------------------------------------------------

SOURCE_MAPBOX_VECTOR: str = "mapbox_vector"
SOURCE_MICROSOFT_BUILDINGS: str = "microsoft_buildings"
SOURCE_OSM_BUILDINGS: str = "osm_buildings"
SOURCE_REGRID_PARCEL: str = "regrid_parcel"

FOOTPRINT_SOURCE_NONE: str = "none"
"""``api_sources.footprint`` value when no footprint could be resolved."""

# ---------------------------------------------------------------------------
# Ridge-direction sources
# ---------------------------------------------------------------------------

RIDGE_SOURCE_EXTERNAL: str = "external_segments"
RIDGE_SOURCE_AI: str = "ai_detected"
RIDGE_SOURCE_GEOMETRIC: str = "geometric"

RIDGE_SOURCES: tuple[str, ...] = (
    RIDGE_SOURCE_EXTERNAL,
    RIDGE_SOURCE_AI,
    RIDGE_SOURCE_GEOMETRIC,
)

DEFAULT_PITCH: str = "6/12"
