"""Tests for input validation module."""

import pytest

from edge_bundling import Edge
from edge_bundling.validation import (
    CompatibilityCapacityError,
    InvalidEdgeError,
    InvalidParameterError,
    ProblemTooLargeError,
    ValidationError,
    validate_count,
    validate_edge_references,
    validate_non_negative,
    validate_positive,
    validate_problem_shape,
    validate_threshold,
)


class TestNumberValidation:
    """Tests for numeric parameter validation."""

    def test_positive(self):
        """Positive values pass through as floats."""
        assert validate_positive("eps", 2) == 2.0

    def test_positive_rejects_zero(self):
        """Zero is not positive."""
        with pytest.raises(InvalidParameterError, match="eps must be positive"):
            validate_positive("eps", 0)

    def test_positive_rejects_infinity(self):
        """Infinite values are rejected."""
        with pytest.raises(InvalidParameterError):
            validate_positive("eps", float("inf"))

    def test_non_negative_accepts_zero(self):
        """Zero is non-negative."""
        assert validate_non_negative("S_initial", 0) == 0.0

    def test_non_negative_rejects_negative(self):
        """Negative values raise."""
        with pytest.raises(InvalidParameterError, match="K must be >= 0"):
            validate_non_negative("K", -1)

    def test_count(self):
        """Integral values become ints."""
        assert validate_count("C", 4.0) == 4

    def test_count_minimum(self):
        """Counts below the minimum raise."""
        with pytest.raises(InvalidParameterError, match="C must be >= 0"):
            validate_count("C", -1, minimum=0)

    def test_count_rejects_bool(self):
        """Booleans are not counts."""
        with pytest.raises(InvalidParameterError, match="integer"):
            validate_count("C", True)

    def test_threshold_bounds(self):
        """Thresholds 0 and 1 are both accepted."""
        assert validate_threshold(0) == 0.0
        assert validate_threshold(1) == 1.0

    def test_threshold_out_of_range(self):
        """Thresholds outside [0, 1] raise."""
        with pytest.raises(InvalidParameterError, match="compatibility_threshold"):
            validate_threshold(1.01)


class TestEdgeReferences:
    """Tests for edge reference validation."""

    def test_valid_edges(self):
        """Known ids produce no issues."""
        edges = [Edge("a", "b"), Edge("b", "c")]
        assert validate_edge_references(edges, {"a": 0, "b": 1, "c": 2}) == []

    def test_unknown_source_raises(self):
        """Unknown source id raises InvalidEdgeError."""
        with pytest.raises(InvalidEdgeError, match="unknown source node 'x'"):
            validate_edge_references([Edge("x", "a")], {"a": 0})

    def test_unknown_target_raises(self):
        """Unknown target id raises InvalidEdgeError."""
        with pytest.raises(InvalidEdgeError, match="unknown target node 'y'"):
            validate_edge_references([Edge("a", "y")], {"a": 0})

    def test_non_strict_returns_issues(self):
        """strict=False collects every issue instead of raising."""
        edges = [Edge("a", "b"), Edge("x", "y")]
        issues = validate_edge_references(edges, {"a": 0, "b": 1}, strict=False)
        assert len(issues) == 2
        assert all(index == 1 for index, _ in issues)


class TestProblemShape:
    """Tests for tiled buffer shape validation."""

    def test_fits(self):
        """Shapes within the extent pass."""
        validate_problem_shape(64, 500, 4096, 1)

    def test_point_buffer_too_wide(self):
        """Too many point columns raise ProblemTooLargeError."""
        with pytest.raises(ProblemTooLargeError, match="Point buffer needs 130 columns"):
            validate_problem_shape(130, 10, 128, 2)

    def test_compat_buffer_too_wide(self):
        """Too many compatibility columns raise ProblemTooLargeError."""
        with pytest.raises(ProblemTooLargeError, match="Compatibility buffer"):
            validate_problem_shape(10, 1000, 128, 2)


class TestErrorHierarchy:
    """Tests for the exception hierarchy."""

    @pytest.mark.parametrize(
        "error",
        [InvalidEdgeError, InvalidParameterError, ProblemTooLargeError, CompatibilityCapacityError],
    )
    def test_subclasses(self, error):
        """All validation errors share a ValueError base."""
        assert issubclass(error, ValidationError)
        assert issubclass(error, ValueError)
