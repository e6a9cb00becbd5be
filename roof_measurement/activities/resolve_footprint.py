"""Footprint resolution activity.

Queries every configured footprint provider concurrently, turns their
features into scored candidate polygons, and picks the single best
candidate for the query coordinate.

Selection policy, in order:

1. Candidates containing the query point rank above those that do not.
2. When centroid distances differ by less than 5 m (noise), a plausible
   single-family footprint (100-500 m²) beats an outlier.
3. Otherwise the smaller centroid distance wins.
4. Remaining ties go to the provider listed first.

The resolver never raises to its caller: provider failures become
``ProviderAttempt`` diagnostics and, when nothing usable is found, a
``FootprintResolution`` with a ``fallback_reason``.
"""

from __future__ import annotations

import functools
import logging
import time
from concurrent.futures import ThreadPoolExecutor
from typing import TYPE_CHECKING, Any

from roof_measurement.core.constants import DEFAULT_SEARCH_RADIUS_M
from roof_measurement.core.geometry import (
    MIN_DISTINCT_VERTICES,
    LocalFrame,
    centroid,
    close_ring,
    distance,
    haversine_distance_m,
    open_ring,
    point_in_polygon,
    polygon_area_sq_ft,
    polygon_area_sq_m,
)
from roof_measurement.models.footprint import (
    ATTEMPT_OK,
    REASON_API_ERROR,
    REASON_FETCH_ERROR,
    REASON_NO_BUILDINGS,
    REASON_NO_POLYGONS,
    REASON_NO_PROVIDERS,
    FootprintCandidate,
    FootprintResolution,
    ProviderAttempt,
)
from roof_measurement.providers.base import ProviderAuthError, ProviderUnavailableError

if TYPE_CHECKING:
    from collections.abc import Sequence

    import httpx

    from roof_measurement.core.config import PipelineConfig
    from roof_measurement.core.geometry import Coordinate
    from roof_measurement.providers.base import Feature, FootprintProvider

logger = logging.getLogger("roof_measurement.activities.resolve_footprint")

# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

DISTANCE_NOISE_M = 5.0

SFR_MIN_AREA_SQ_M = 100.0
SFR_MAX_AREA_SQ_M = 500.0

NOT_CONTAINED_PENALTY = 0.10
NEAR_DISTANCE_M = 15.0
NEAR_DISTANCE_PENALTY = 0.10
FAR_DISTANCE_M = 30.0
FAR_DISTANCE_PENALTY = 0.10
TINY_AREA_SQ_M = 50.0
TINY_AREA_PENALTY = 0.15

MIN_CONFIDENCE = 0.5
MAX_CONFIDENCE = 0.95

# A GeoJSON ring needs 3 distinct points plus closure.
MIN_RING_POINTS = 4

# Footprint plausibility (warnings only)
MIN_FOOTPRINT_VERTICES = 4
MIN_PLAUSIBLE_AREA_SQFT = 200.0
MAX_PLAUSIBLE_AREA_SQFT = 50_000.0
MAX_PLAUSIBLE_EDGE_FT = 300.0


# ---------------------------------------------------------------------------
# Resolver
# ---------------------------------------------------------------------------


class FootprintResolver:
    """Resolve the best building footprint for a coordinate.

    Args:
        providers: Footprint providers in priority order.
        search_radius_m: Radius of the search window around the point.
    """

    def __init__(
        self,
        providers: Sequence[FootprintProvider],
        *,
        search_radius_m: float = DEFAULT_SEARCH_RADIUS_M,
    ) -> None:
        self._providers = list(providers)
        self._search_radius_m = search_radius_m

    @classmethod
    def from_config(
        cls,
        config: PipelineConfig,
        *,
        client: httpx.Client | None = None,
    ) -> FootprintResolver:
        from roof_measurement.providers.factory import build_footprint_providers

        return cls(build_footprint_providers(config, client=client), search_radius_m=config.search_radius_m)

    @property
    def providers(self) -> list[FootprintProvider]:
        return list(self._providers)

    def resolve(self, lat: float, lng: float) -> FootprintResolution:
        """Query all providers and return the best candidate (or a fallback reason)."""
        if not self._providers:
            return FootprintResolution(footprint=None, fallback_reason=REASON_NO_PROVIDERS)

        with ThreadPoolExecutor(max_workers=len(self._providers)) as pool:
            futures = [
                pool.submit(self._query_provider, provider, priority, lat, lng)
                for priority, provider in enumerate(self._providers)
            ]
            outcomes = [f.result() for f in futures]

        attempts = [attempt for attempt, _ in outcomes]
        candidates = [c for _, found in outcomes for c in found]

        if not candidates:
            reason = attempts[0].status
            logger.warning(
                "No footprint found | lat=%.6f | lng=%.6f | reason=%s | attempts=%s",
                lat,
                lng,
                reason,
                ", ".join(f"{a.provider}={a.status}" for a in attempts),
            )
            return FootprintResolution(footprint=None, fallback_reason=reason, attempts=attempts)

        best = rank_candidates(candidates)[0]
        footprint = best.to_footprint(validate_footprint(best.coords))
        for warning in footprint.warnings:
            logger.warning("Footprint plausibility | source=%s | %s", best.source, warning)
        logger.info(
            "Footprint resolved | source=%s | confidence=%.2f | vertices=%d | area=%.0f sqft | "
            "distance=%.1f m | contains=%s | candidates=%d",
            footprint.source,
            footprint.confidence,
            footprint.vertex_count,
            footprint.area_sq_ft,
            footprint.distance_m,
            footprint.contains_point,
            len(candidates),
        )
        return FootprintResolution(
            footprint=footprint,
            attempts=attempts,
            candidates_considered=len(candidates),
        )

    def _query_provider(
        self,
        provider: FootprintProvider,
        priority: int,
        lat: float,
        lng: float,
    ) -> tuple[ProviderAttempt, list[FootprintCandidate]]:
        """Run one provider branch; every failure is captured, never raised."""
        start = time.perf_counter()
        try:
            features = provider.fetch_features(lat, lng, self._search_radius_m)
            rings = extract_rings(features)
            candidates = [
                score_candidate(ring, provider.name, priority, provider.confidence_baseline, lat, lng)
                for ring in rings
            ]
        except (ProviderUnavailableError, ProviderAuthError) as exc:
            status = REASON_API_ERROR
            if isinstance(exc, ProviderUnavailableError) and exc.status_code is None:
                status = REASON_FETCH_ERROR
            return self._failed(provider.name, status, exc, start), []
        except Exception as exc:
            return self._failed(provider.name, REASON_FETCH_ERROR, exc, start), []

        elapsed_ms = (time.perf_counter() - start) * 1000
        if not features:
            status = REASON_NO_BUILDINGS
        elif not candidates:
            status = REASON_NO_POLYGONS
        else:
            status = ATTEMPT_OK
        logger.info(
            "Provider queried | provider=%s | features=%d | candidates=%d | status=%s | duration_ms=%.1f",
            provider.name,
            len(features),
            len(candidates),
            status,
            elapsed_ms,
        )
        return (
            ProviderAttempt(
                provider=provider.name,
                status=status,
                candidate_count=len(candidates),
                duration_ms=elapsed_ms,
            ),
            candidates,
        )

    @staticmethod
    def _failed(name: str, status: str, exc: Exception, start: float) -> ProviderAttempt:
        logger.warning("Provider failed | provider=%s | status=%s | error=%s", name, status, exc)
        return ProviderAttempt(
            provider=name,
            status=status,
            error=str(exc),
            duration_ms=(time.perf_counter() - start) * 1000,
        )


# ---------------------------------------------------------------------------
# Candidate extraction and scoring
# ---------------------------------------------------------------------------


def extract_rings(features: list[Feature]) -> list[list[Coordinate]]:
    """Return the outer rings of every Polygon / MultiPolygon feature.

    Rings with fewer than 4 points (3 + closure) or fewer than 3 distinct
    vertices are dropped.
    """
    rings: list[list[Coordinate]] = []
    for feature in features:
        geometry: dict[str, Any] = feature.get("geometry") or {}
        geom_type = geometry.get("type")
        coords = geometry.get("coordinates") or []
        if geom_type == "Polygon":
            polygons = [coords]
        elif geom_type == "MultiPolygon":
            polygons = coords
        else:
            continue
        for polygon in polygons:
            if not polygon or len(polygon[0]) < MIN_RING_POINTS:
                continue
            ring = [(float(p[0]), float(p[1])) for p in polygon[0]]
            if len(set(open_ring(ring))) >= MIN_DISTINCT_VERTICES:
                rings.append(close_ring(ring))
    return rings


def candidate_confidence(
    baseline: float,
    *,
    contains_point: bool,
    distance_m: float,
    area_sq_m: float,
) -> float:
    """Apply the containment, distance, and size penalties to *baseline*."""
    confidence = baseline
    if not contains_point:
        confidence -= NOT_CONTAINED_PENALTY
    if distance_m > NEAR_DISTANCE_M:
        confidence -= NEAR_DISTANCE_PENALTY
    if distance_m > FAR_DISTANCE_M:
        confidence -= FAR_DISTANCE_PENALTY
    if area_sq_m < TINY_AREA_SQ_M:
        confidence -= TINY_AREA_PENALTY
    return max(MIN_CONFIDENCE, min(MAX_CONFIDENCE, confidence))


def score_candidate(
    ring: list[Coordinate],
    source: str,
    priority: int,
    baseline: float,
    lat: float,
    lng: float,
) -> FootprintCandidate:
    closed = close_ring(ring)
    center = centroid(closed)
    area_sq_m = polygon_area_sq_m(closed)
    distance_m = haversine_distance_m(lat, lng, center[1], center[0])
    contains = point_in_polygon((lng, lat), closed)
    return FootprintCandidate(
        coords=closed,
        source=source,
        priority=priority,
        area_sq_m=area_sq_m,
        distance_m=distance_m,
        contains_point=contains,
        confidence=candidate_confidence(
            baseline,
            contains_point=contains,
            distance_m=distance_m,
            area_sq_m=area_sq_m,
        ),
    )


def is_plausible_residential(area_sq_m: float) -> bool:
    return SFR_MIN_AREA_SQ_M <= area_sq_m <= SFR_MAX_AREA_SQ_M


def compare_candidates(a: FootprintCandidate, b: FootprintCandidate) -> int:
    """Ordering function for ``rank_candidates`` (negative: *a* ranks first)."""
    if a.contains_point != b.contains_point:
        return -1 if a.contains_point else 1

    if abs(a.distance_m - b.distance_m) >= DISTANCE_NOISE_M:
        return -1 if a.distance_m < b.distance_m else 1

    a_plausible = is_plausible_residential(a.area_sq_m)
    b_plausible = is_plausible_residential(b.area_sq_m)
    if a_plausible != b_plausible:
        return -1 if a_plausible else 1

    if a.distance_m != b.distance_m:
        return -1 if a.distance_m < b.distance_m else 1
    return a.priority - b.priority


def rank_candidates(candidates: list[FootprintCandidate]) -> list[FootprintCandidate]:
    """Return candidates best-first."""
    return sorted(candidates, key=functools.cmp_to_key(compare_candidates))


# ---------------------------------------------------------------------------
# Plausibility
# ---------------------------------------------------------------------------


def validate_footprint(ring: list[Coordinate]) -> list[str]:
    """Return plausibility warnings for a footprint ring (empty when clean)."""
    warnings: list[str] = []
    points = open_ring(ring)

    if len(points) < MIN_FOOTPRINT_VERTICES:
        warnings.append(f"Footprint has only {len(points)} vertices (expected >= {MIN_FOOTPRINT_VERTICES})")

    area_sqft = polygon_area_sq_ft(points)
    if area_sqft < MIN_PLAUSIBLE_AREA_SQFT:
        warnings.append(f"Footprint area {area_sqft:.0f} sqft is below {MIN_PLAUSIBLE_AREA_SQFT:.0f} sqft")
    elif area_sqft > MAX_PLAUSIBLE_AREA_SQFT:
        warnings.append(f"Footprint area {area_sqft:.0f} sqft exceeds {MAX_PLAUSIBLE_AREA_SQFT:.0f} sqft")

    frame = LocalFrame.for_ring(points)
    local = frame.ring_to_local(points)
    n = len(local)
    longest = max(distance(local[i], local[(i + 1) % n]) for i in range(n))
    if longest > MAX_PLAUSIBLE_EDGE_FT:
        warnings.append(f"Footprint edge of {longest:.0f} ft exceeds {MAX_PLAUSIBLE_EDGE_FT:.0f} ft")

    return warnings
