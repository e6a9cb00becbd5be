"""Tests for vertex detection and classification."""

from __future__ import annotations

import unittest

import pytest

from roof_measurement.activities.detect_vertices import (
    classify_junction,
    connected_components,
    detect_vertices,
)
from roof_measurement.models.topology import EdgeType, VertexType
from tests.builders import FRAME, edge, rectangle_feet, ring_from_feet


def _hip_roof_lines(width: float = 60.0, depth: float = 30.0, corner_offset: float = 0.0):
    c = rectangle_feet(width, depth)
    inset = width / 2.0 - depth / 2.0
    a, b = (-inset, 0.0), (inset, 0.0)
    return [
        edge(a, b, EdgeType.RIDGE),
        edge((c[0][0] + corner_offset, c[0][1]), a, EdgeType.HIP),
        edge(c[3], a, EdgeType.HIP),
        edge(c[1], b, EdgeType.HIP),
        edge(c[2], b, EdgeType.HIP),
    ]


class TestClassifyJunction(unittest.TestCase):
    def test_ridge_and_hip(self) -> None:
        types = [EdgeType.RIDGE, EdgeType.HIP, EdgeType.HIP]
        assert classify_junction(types) is VertexType.HIP_RIDGE_JUNCTION

    def test_ridge_and_valley(self) -> None:
        assert classify_junction([EdgeType.RIDGE, EdgeType.VALLEY]) is VertexType.VALLEY_RIDGE_JUNCTION

    def test_ridge_valley_and_hip(self) -> None:
        types = [EdgeType.RIDGE, EdgeType.VALLEY, EdgeType.HIP]
        assert classify_junction(types) is VertexType.VALLEY_RIDGE_JUNCTION

    def test_ridge_only(self) -> None:
        assert classify_junction([EdgeType.RIDGE]) is VertexType.RIDGE_END

    def test_hip_only(self) -> None:
        assert classify_junction([EdgeType.HIP, EdgeType.HIP]) is VertexType.HIP_JUNCTION

    def test_valley_without_ridge(self) -> None:
        assert classify_junction([EdgeType.VALLEY, EdgeType.HIP]) is VertexType.VALLEY_INTERSECTION

    def test_many_other_lines(self) -> None:
        assert classify_junction([EdgeType.EAVE] * 4) is VertexType.COMPLEX_JUNCTION

    def test_fallback(self) -> None:
        assert classify_junction([]) is VertexType.PERIMETER_CORNER


class TestDetectVertices(unittest.TestCase):
    def setUp(self) -> None:
        self.ring = ring_from_feet(rectangle_feet(60.0, 30.0))

    def test_perimeter_corners(self) -> None:
        result = detect_vertices(self.ring, [])
        corners = result.of_type(VertexType.PERIMETER_CORNER)
        assert [v.id for v in corners] == ["P0", "P1", "P2", "P3"]
        assert all(v.confidence == 0.95 for v in corners)
        assert result.adjacency["P0"] == ("P1", "P3")
        assert result.warnings == []

    def test_hip_roof_classification(self) -> None:
        result = detect_vertices(self.ring, _hip_roof_lines())
        ridge_junctions = result.of_type(VertexType.HIP_RIDGE_JUNCTION)
        assert len(ridge_junctions) == 2
        assert all(v.confidence == 0.80 for v in ridge_junctions)
        hip_ends = result.of_type(VertexType.HIP_JUNCTION)
        assert len(hip_ends) == 4
        assert all(v.snap_applied for v in hip_ends)
        assert all(v.confidence == 0.75 for v in hip_ends)
        assert result.orphans == []
        assert result.disconnected_clusters == []

    def test_snap_keeps_original_coordinate(self) -> None:
        result = detect_vertices(self.ring, _hip_roof_lines(corner_offset=1.0))
        snapped = next(v for v in result.vertices if v.snap_applied and "P0" in v.connected_vertices)
        assert snapped.coordinate == result.vertices[0].coordinate
        assert snapped.original_coordinate is not None
        x, _ = FRAME.to_local(snapped.original_coordinate)
        assert x == pytest.approx(-29.0, abs=1e-6)

    def test_nearby_endpoints_merge(self) -> None:
        lines = [
            edge((-10.0, 0.0), (10.0, 0.0), EdgeType.RIDGE),
            edge((10.5, 0.3), (20.0, 10.0), EdgeType.HIP),
        ]
        result = detect_vertices(self.ring, lines, snap_tolerance_ft=2.0)
        junctions = [v for v in result.vertices if v.id.startswith("J")]
        assert len(junctions) == 3
        assert len(result.of_type(VertexType.HIP_RIDGE_JUNCTION)) == 1

    def test_orphan_vertex_warning(self) -> None:
        lines = [edge((0.0, 0.0), (0.0, 0.0), EdgeType.VALLEY)]
        result = detect_vertices(self.ring, lines)
        assert [v.id for v in result.orphans] == ["J0"]
        assert "Orphan vertex J0 (valley_intersection) has no connections" in result.warnings

    def test_disconnected_cluster(self) -> None:
        lines = [edge((-5.0, 0.0), (5.0, 0.0), EdgeType.RIDGE)]
        result = detect_vertices(self.ring, lines)
        assert result.disconnected_clusters == [["J0", "J1"]]
        assert any("Disconnected roof section" in w for w in result.warnings)

    def test_boundary_lines_ignored(self) -> None:
        c = rectangle_feet(60.0, 30.0)
        result = detect_vertices(self.ring, [edge(c[0], c[1], EdgeType.EAVE)])
        assert len(result.vertices) == 4

    def test_pixel_transform(self) -> None:
        result = detect_vertices(self.ring, [], pixel_transform=lambda c: (1.0, 2.0))
        assert result.vertices[0].pixel_coordinate == (1.0, 2.0)


class TestConnectedComponents(unittest.TestCase):
    def test_components(self) -> None:
        adjacency = {"A": ("B",), "B": ("A",), "C": ()}
        assert connected_components(adjacency) == [["A", "B"], ["C"]]
