"""Core utilities and shared infrastructure.

- config: Configuration loading and validation
- constants: Unit conversions, tolerances, provider and source names
- exceptions: Pipeline exception hierarchy
- geometry: Planar and geodesic geometry primitives
- pitch: Roof pitch conversions
- projection: UTM search windows
- calibration: Confidence calibration hook
"""
