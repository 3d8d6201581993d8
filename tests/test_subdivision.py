"""Tests for edge subdivision."""

import numpy as np
import pytest

from edge_bundling.fdeb.subdivision import (
    initial_paths,
    polyline_length,
    subdivide_path,
    update_subdivisions,
)


def create_l_path():
    """Two-segment L-shaped path of total length 20."""
    return np.array([[0.0, 0.0, 0.0], [10.0, 0.0, 0.0], [10.0, 10.0, 0.0]])


class TestInitialPaths:
    """Tests for straight-line initial paths."""

    def test_single_subdivision_is_midpoint(self):
        """One subdivision gives [source, midpoint, target]."""
        sources = np.array([[0.0, 0.0, 0.0]])
        targets = np.array([[10.0, 4.0, 2.0]])
        paths = initial_paths(sources, targets, 1)
        assert paths.shape == (1, 3, 3)
        np.testing.assert_allclose(paths[0, 1], [5.0, 2.0, 1.0])

    def test_endpoints_exact(self):
        """Endpoints equal the inputs exactly."""
        sources = np.array([[0.1, 0.2, 0.3], [7.7, 1.1, 0.0]])
        targets = np.array([[3.3, 9.9, 0.0], [0.0, 0.7, 5.5]])
        paths = initial_paths(sources, targets, 7)
        np.testing.assert_array_equal(paths[:, 0], sources)
        np.testing.assert_array_equal(paths[:, -1], targets)

    def test_uniform_spacing(self):
        """Interior points are evenly spaced."""
        paths = initial_paths(np.array([[0.0, 0.0, 0.0]]), np.array([[12.0, 0.0, 0.0]]), 3)
        np.testing.assert_allclose(paths[0, :, 0], [0.0, 3.0, 6.0, 9.0, 12.0])

    def test_empty(self):
        """No edges give an empty array of the right trailing shape."""
        empty = np.zeros((0, 3))
        assert initial_paths(empty, empty, 2).shape == (0, 4, 3)


class TestSubdividePath:
    """Tests for arc-length re-sampling."""

    def test_point_count(self):
        """Result has subdivisions + 2 points."""
        result = subdivide_path(create_l_path(), 5)
        assert result.shape == (7, 3)

    def test_endpoints_exact(self):
        """Endpoints are copied unchanged."""
        path = create_l_path()
        result = subdivide_path(path, 5)
        np.testing.assert_array_equal(result[0], path[0])
        np.testing.assert_array_equal(result[-1], path[-1])

    def test_l_path_samples(self):
        """Samples follow the polyline, including its corner."""
        result = subdivide_path(create_l_path(), 3)
        np.testing.assert_allclose(
            result[1:-1], [[5.0, 0.0, 0.0], [10.0, 0.0, 0.0], [10.0, 5.0, 0.0]], atol=1e-12
        )

    def test_uniform_arc_length(self):
        """Consecutive samples are equally spaced along the path."""
        path = np.array([[0.0, 0.0, 0.0], [3.0, 0.0, 0.0], [3.0, 4.0, 0.0], [9.0, 4.0, 0.0]])
        result = subdivide_path(path, 12)
        # Every old vertex lies on a sample boundary here, so chord == arc
        steps = np.linalg.norm(np.diff(result, axis=0), axis=-1)
        np.testing.assert_allclose(steps, polyline_length(path) / 13, atol=1e-9)

    def test_long_segment_receives_many_points(self):
        """One old segment may hold several new points."""
        path = np.array([[0.0, 0.0, 0.0], [1.0, 0.0, 0.0], [100.0, 0.0, 0.0]])
        result = subdivide_path(path, 4)
        np.testing.assert_allclose(result[1:-1, 0], [20.0, 40.0, 60.0, 80.0])

    def test_short_segment_receives_none(self):
        """A segment shorter than the sample spacing may hold no new point."""
        path = np.array([[0.0, 0.0, 0.0], [49.0, 0.0, 0.0], [51.0, 0.0, 0.0], [100.0, 0.0, 0.0]])
        result = subdivide_path(path, 3)
        np.testing.assert_allclose(result[1:-1, 0], [25.0, 50.0, 75.0])

    def test_preserves_length_of_straight_path(self):
        """Re-sampling a straight path keeps it straight."""
        path = initial_paths(np.array([[0.0, 0.0, 0.0]]), np.array([[10.0, 10.0, 0.0]]), 3)[0]
        result = subdivide_path(path, 8)
        np.testing.assert_allclose(result[:, 0], result[:, 1], atol=1e-12)

    def test_collapsed_path(self):
        """A path of zero length puts every sample on the source."""
        path = np.array([[2.0, 2.0, 0.0], [2.0, 2.0, 0.0], [2.0, 2.0, 0.0]])
        result = subdivide_path(path, 4)
        np.testing.assert_array_equal(result, np.tile([2.0, 2.0, 0.0], (6, 1)))

    def test_zero_subdivisions(self):
        """Zero subdivisions keep only the endpoints."""
        result = subdivide_path(create_l_path(), 0)
        np.testing.assert_array_equal(result, [[0.0, 0.0, 0.0], [10.0, 10.0, 0.0]])


class TestUpdateSubdivisions:
    """Tests for batch re-sampling."""

    def test_shape(self):
        """All paths are re-sampled to the same count."""
        paths = initial_paths(np.zeros((3, 3)), np.ones((3, 3)) * 10, 1)
        result = update_subdivisions(paths, 4)
        assert result.shape == (3, 6, 3)

    def test_does_not_modify_input(self):
        """The input array is left untouched."""
        paths = initial_paths(np.zeros((2, 3)), np.ones((2, 3)) * 10, 2)
        before = paths.copy()
        update_subdivisions(paths, 4)
        np.testing.assert_array_equal(paths, before)

    def test_matches_subdivide_path(self):
        """Batch result equals per-path re-sampling."""
        rng = np.random.default_rng(5)
        paths = rng.uniform(0, 50, size=(4, 5, 3))
        result = update_subdivisions(paths, 6)
        for e in range(4):
            np.testing.assert_array_equal(result[e], subdivide_path(paths[e], 6))


class TestPolylineLength:
    """Tests for polyline length."""

    def test_l_path(self):
        """L path has length 20."""
        assert polyline_length(create_l_path()) == pytest.approx(20.0)
