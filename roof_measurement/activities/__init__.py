"""Measurement stages.

Each stage is a pure or near-pure transformation over immutable inputs:
- resolve_footprint: Pick the best building footprint from the providers
- detect_vertices: Classify skeleton junctions and check connectivity
- build_topology: Build the typed roof skeleton on the footprint
- calculate_areas: Split the roof into facets and total the areas
- qa_gate: Score geometric consistency and route to manual review
- ensemble: Run roof-line detectors concurrently and merge their output
"""
