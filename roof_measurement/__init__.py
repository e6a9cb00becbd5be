"""Roof Measurement Pipeline.

Resolves a building footprint for a coordinate, reconciles it with
external roof-segment data and AI-detected roof lines into a single
roof topology, computes facet areas and linear totals, and runs a
geometric QA gate that decides whether the measurement can be trusted
without manual review.
"""

__version__ = "0.1.0"
