"""Measurement pipeline orchestration.

Runs the stages for one coordinate:
1. Resolve footprint (concurrently with the roof-segment fetch and any detectors)
2. Build topology → calculate areas → QA gate
3. Assemble the ``MeasurementResult``
"""
