"""QA gate: geometric consistency checks on a finished measurement.

``run_qa_gate`` is a pure function.  It runs six independent checks,
starts the score at 1.0 and subtracts a penalty per failed (or nearly
failed) check:

======================  =====================================  =======  ========
Check                   Fails when                             Penalty  Severity
======================  =====================================  =======  ========
area_within_tolerance   relative area diff > tolerance         0.20     error
                        (> 2/3 of tolerance)                   0.05     warning
perimeter_matches       eave + rake vs. footprint > 1%         0.10     warning
no_floating_endpoints   interior endpoint attached to nothing  0.15     error
no_crossing_hips        two hips cross mid-segment             0.25     error
ridge_length_sane       ridge > 2 x max dimension              0.20     error
                        (> 1.5 x)                              0.05     warning
facets_closed           facet with < 3 distinct vertices       0.10     error
======================  =====================================  =======  ========

Upstream warnings (topology builder, area calculator) are carried into
the result verbatim ahead of the gate's own.
"""

from __future__ import annotations

import logging
from itertools import combinations
from typing import TYPE_CHECKING

from roof_measurement.core.constants import DEFAULT_AREA_TOLERANCE, DEFAULT_CONNECTIVITY_TOLERANCE_FT
from roof_measurement.core.geometry import (
    LocalFrame,
    distance,
    distance_to_ring,
    max_dimension_ft,
    open_ring,
    perimeter_ft,
    polygon_area_sq_ft,
    segments_intersect,
)
from roof_measurement.models.qa import QAChecks, QAGateResult
from roof_measurement.models.topology import EdgeType

if TYPE_CHECKING:
    from roof_measurement.models.areas import AreaCalculationResult
    from roof_measurement.models.solar import SolarData
    from roof_measurement.models.topology import RoofTopology

logger = logging.getLogger("roof_measurement.activities.qa_gate")

# ---------------------------------------------------------------------------
# Thresholds and penalties
# ---------------------------------------------------------------------------

AREA_WARNING_FRACTION = 2.0 / 3.0
PERIMETER_TOLERANCE = 0.01
RIDGE_ERROR_RATIO = 2.0
RIDGE_WARNING_RATIO = 1.5
MANUAL_REVIEW_SCORE = 0.7

PENALTY_AREA_ERROR = 0.20
PENALTY_AREA_WARNING = 0.05
PENALTY_PERIMETER = 0.10
PENALTY_FLOATING = 0.15
PENALTY_CROSSING_HIPS = 0.25
PENALTY_RIDGE_ERROR = 0.20
PENALTY_RIDGE_WARNING = 0.05
PENALTY_FACETS_OPEN = 0.10

# Check outcomes
PASS = "pass"
WARN = "warning"
FAIL = "error"


# ---------------------------------------------------------------------------
# Individual checks
# ---------------------------------------------------------------------------


def check_area(computed: float, reference: float, tolerance: float = DEFAULT_AREA_TOLERANCE) -> tuple[str, float]:
    """Classify the relative difference between *computed* and *reference* area.

    Returns ``(outcome, relative_diff)``.  The tolerance boundary itself
    passes: 2060 against 2000 at 3% is within tolerance.
    """
    if reference <= 0:
        return FAIL, float("inf")
    diff = abs(computed - reference) / reference
    # Round away representation noise so the exact boundary stays inclusive
    diff_cmp = round(diff, 9)
    if diff_cmp > tolerance:
        return FAIL, diff
    if diff_cmp > tolerance * AREA_WARNING_FRACTION:
        return WARN, diff
    return PASS, diff


def check_ridge_length(total_ridge_ft: float, max_dimension: float) -> tuple[str, float]:
    """Classify total ridge length against the footprint's largest dimension.

    Exactly 2x passes; only exceeding it fails.
    """
    if max_dimension <= 0:
        return (FAIL, float("inf")) if total_ridge_ft > 0 else (PASS, 0.0)
    ratio = total_ridge_ft / max_dimension
    ratio_cmp = round(ratio, 9)
    if ratio_cmp > RIDGE_ERROR_RATIO:
        return FAIL, ratio
    if ratio_cmp > RIDGE_WARNING_RATIO:
        return WARN, ratio
    return PASS, ratio


def floating_endpoints(
    topology: RoofTopology,
    frame: LocalFrame,
    tolerance_ft: float = DEFAULT_CONNECTIVITY_TOLERANCE_FT,
) -> list[tuple[float, float]]:
    """Interior-edge endpoints attached neither to another edge nor the footprint."""
    outline = frame.ring_to_local(open_ring(topology.footprint_coords))
    interior = [
        (frame.to_local(e.start), frame.to_local(e.end)) for e in topology.skeleton if not e.type.is_boundary
    ]
    floating = []
    for index, (start, end) in enumerate(interior):
        for point in (start, end):
            if distance_to_ring(point, outline) <= tolerance_ft:
                continue
            attached = any(
                distance(point, other) <= tolerance_ft
                for j, edge in enumerate(interior)
                if j != index
                for other in edge
            )
            if not attached:
                floating.append(frame.to_lnglat(point))
    return floating


def crossing_hip_pairs(topology: RoofTopology, frame: LocalFrame) -> list[tuple[int, int]]:
    """Index pairs of hip edges that cross strictly inside both segments."""
    hips = [(frame.to_local(e.start), frame.to_local(e.end)) for e in topology.edges_of(EdgeType.HIP)]
    return [
        (i, j)
        for (i, a), (j, b) in combinations(enumerate(hips), 2)
        if segments_intersect(a[0], a[1], b[0], b[1])
    ]


# ---------------------------------------------------------------------------
# Gate
# ---------------------------------------------------------------------------


def run_qa_gate(
    topology: RoofTopology,
    area_result: AreaCalculationResult,
    solar_data: SolarData | None = None,
    *,
    area_tolerance: float = DEFAULT_AREA_TOLERANCE,
    connectivity_tolerance_ft: float = DEFAULT_CONNECTIVITY_TOLERANCE_FT,
) -> QAGateResult:
    """Validate *topology* and *area_result* and score the measurement.

    The area reference is the external building footprint area when the
    segment data carries one, otherwise the topology's own footprint area.
    """
    frame = LocalFrame.for_ring(topology.footprint_coords)
    warnings: list[str] = list(topology.warnings) + list(area_result.review_reasons)
    errors: list[str] = []
    penalty = 0.0
    metrics: dict[str, float] = {}

    # Area
    footprint_area = polygon_area_sq_ft(topology.footprint_coords)
    reference = footprint_area
    if solar_data is not None and solar_data.available and solar_data.building_footprint_sqft:
        reference = solar_data.building_footprint_sqft
    computed = area_result.totals.plan_area_sqft
    outcome, area_diff = check_area(computed, reference, area_tolerance)
    metrics["area_reference_sqft"] = reference
    metrics["area_diff_ratio"] = area_diff
    area_ok = outcome != FAIL
    if outcome == FAIL:
        errors.append(
            f"Area {computed:.0f} sqft differs from reference {reference:.0f} sqft by {area_diff:.1%} "
            f"(tolerance {area_tolerance:.0%})"
        )
        penalty += PENALTY_AREA_ERROR
    elif outcome == WARN:
        warnings.append(f"Area differs from reference by {area_diff:.1%}")
        penalty += PENALTY_AREA_WARNING

    # Perimeter
    footprint_perimeter = perimeter_ft(topology.footprint_coords)
    edge_perimeter = area_result.linear_totals.perimeter_ft
    perimeter_diff = abs(edge_perimeter - footprint_perimeter) / footprint_perimeter if footprint_perimeter else 1.0
    metrics["perimeter_diff_ratio"] = perimeter_diff
    perimeter_ok = round(perimeter_diff, 9) <= PERIMETER_TOLERANCE
    if not perimeter_ok:
        warnings.append(
            f"Eave + rake length {edge_perimeter:.1f} ft differs from footprint perimeter "
            f"{footprint_perimeter:.1f} ft by {perimeter_diff:.1%}"
        )
        penalty += PENALTY_PERIMETER

    # Floating endpoints
    floating = floating_endpoints(topology, frame, connectivity_tolerance_ft)
    metrics["floating_endpoints"] = float(len(floating))
    if floating:
        errors.append(f"{len(floating)} skeleton endpoint(s) not connected to another edge or the footprint")
        penalty += PENALTY_FLOATING

    # Crossing hips
    crossings = crossing_hip_pairs(topology, frame)
    metrics["crossing_hip_pairs"] = float(len(crossings))
    if crossings:
        errors.append(f"{len(crossings)} pair(s) of hip lines cross")
        penalty += PENALTY_CROSSING_HIPS

    # Ridge length
    ridge_total = area_result.linear_totals.ridge_ft
    max_dimension = max_dimension_ft(topology.footprint_coords)
    ridge_outcome, ridge_ratio = check_ridge_length(ridge_total, max_dimension)
    metrics["ridge_to_max_dimension"] = ridge_ratio
    if ridge_outcome == FAIL:
        errors.append(
            f"Total ridge length {ridge_total:.1f} ft exceeds {RIDGE_ERROR_RATIO:g}x "
            f"the footprint's max dimension ({max_dimension:.1f} ft)"
        )
        penalty += PENALTY_RIDGE_ERROR
    elif ridge_outcome == WARN:
        warnings.append(f"Total ridge length is {ridge_ratio:.2f}x the footprint's max dimension")
        penalty += PENALTY_RIDGE_WARNING

    # Facets closed
    open_facets = [f.id for f in area_result.facets if len(set(open_ring(f.polygon))) < 3]
    if open_facets:
        errors.append(f"Facet(s) not closed: {', '.join(open_facets)}")
        penalty += PENALTY_FACETS_OPEN

    checks = QAChecks(
        area_within_tolerance=area_ok,
        perimeter_matches=perimeter_ok,
        no_floating_endpoints=not floating,
        no_crossing_hips=not crossings,
        ridge_length_sane=ridge_outcome != FAIL,
        facets_closed=not open_facets,
    )
    score = max(0.0, 1.0 - penalty)
    passed = not errors
    requires_review = (
        bool(errors)
        or score < MANUAL_REVIEW_SCORE
        or area_result.requires_manual_review
        or topology.is_complex_shape
    )

    logger.info(
        "QA gate | passed=%s | score=%.2f | errors=%d | warnings=%d | review=%s",
        passed,
        score,
        len(errors),
        len(warnings),
        requires_review,
    )
    return QAGateResult(
        checks=checks,
        overall_score=score,
        passed=passed,
        warnings=warnings,
        errors=errors,
        requires_manual_review=requires_review,
        metrics=metrics,
    )
