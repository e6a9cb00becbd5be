"""Data models and schemas.

Defines the data structures passed between pipeline stages:
- Footprint / FootprintResolution: resolved building polygon and diagnostics
- RoofTopology / SkeletonEdge / Vertex: assembled roof skeleton
- AreaCalculationResult / Facet: facet areas and linear totals
- QAGateResult: quality verdict
- SolarData / RoofSegment: external roof-segment data
- MeasurementRequest / MeasurementResult: pipeline contract
- MeasurementRecord: pydantic persistence schema
"""

from roof_measurement.models.areas import AreaCalculationResult, AreaTotals, Facet, LinearTotals
from roof_measurement.models.footprint import (
    Footprint,
    FootprintCandidate,
    FootprintResolution,
    ProviderAttempt,
)
from roof_measurement.models.measurement import ApiSources, MeasurementRequest, MeasurementResult
from roof_measurement.models.provider import ProviderConfig
from roof_measurement.models.qa import QAChecks, QAGateResult
from roof_measurement.models.solar import RoofSegment, SolarData
from roof_measurement.models.topology import (
    EdgeType,
    LinearFeature,
    RoofTopology,
    SkeletonEdge,
    Vertex,
    VertexType,
)
from roof_measurement.models.validation import ModelValidationError

__all__ = [
    "ApiSources",
    "AreaCalculationResult",
    "AreaTotals",
    "EdgeType",
    "Facet",
    "Footprint",
    "FootprintCandidate",
    "FootprintResolution",
    "LinearFeature",
    "LinearTotals",
    "MeasurementRequest",
    "MeasurementResult",
    "ModelValidationError",
    "ProviderAttempt",
    "ProviderConfig",
    "QAChecks",
    "QAGateResult",
    "RoofSegment",
    "RoofTopology",
    "SkeletonEdge",
    "SolarData",
    "Vertex",
    "VertexType",
]
