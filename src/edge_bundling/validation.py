"""
Input validation utilities for edge bundling.

Provides centralized validation functions for nodes, edges, simulation
parameters and problem shapes. Raises descriptive exceptions on invalid input.
"""

from __future__ import annotations

import math
from typing import Any, Hashable, Mapping, Optional, Sequence


class ValidationError(ValueError):
    """Base exception for bundling validation errors."""

    pass


class InvalidNodeError(ValidationError):
    """Raised when a node is malformed."""

    pass


class InvalidEdgeError(ValidationError):
    """Raised when an edge references unknown nodes."""

    pass


class InvalidParameterError(ValidationError):
    """Raised when a simulation parameter is out of range."""

    pass


class ProblemTooLargeError(ValidationError):
    """Raised when the problem does not fit the compute substrate, even tiled."""

    pass


class CompatibilityCapacityError(ValidationError):
    """Raised when an edge has more compatible edges than the buffer can hold."""

    pass


def validate_positive(name: str, value: float) -> float:
    """
    Validate a strictly positive finite number.

    Raises:
        InvalidParameterError: If value <= 0 or not finite
    """
    value = float(value)
    if not math.isfinite(value) or value <= 0:
        raise InvalidParameterError(f"{name} must be positive, got {value}")
    return value


def validate_non_negative(name: str, value: float) -> float:
    """
    Validate a non-negative finite number.

    Raises:
        InvalidParameterError: If value < 0 or not finite
    """
    value = float(value)
    if not math.isfinite(value) or value < 0:
        raise InvalidParameterError(f"{name} must be >= 0, got {value}")
    return value


def validate_count(name: str, value: int, minimum: int = 1) -> int:
    """
    Validate an integer count.

    Raises:
        InvalidParameterError: If value is not an integer or is below minimum
    """
    if isinstance(value, bool) or int(value) != value:
        raise InvalidParameterError(f"{name} must be an integer, got {value!r}")
    if value < minimum:
        raise InvalidParameterError(f"{name} must be >= {minimum}, got {value}")
    return int(value)


def validate_threshold(value: float) -> float:
    """
    Validate a compatibility threshold.

    Raises:
        InvalidParameterError: If threshold not in [0, 1]
    """
    value = float(value)
    if not 0.0 <= value <= 1.0:
        raise InvalidParameterError(f"compatibility_threshold must be in [0, 1], got {value}")
    return value


def validate_edge_references(
    edges: Sequence[Any],
    node_ids: Mapping[Hashable, int],
    strict: bool = True,
) -> list[tuple[int, str]]:
    """
    Validate that all edge source/target ids refer to known nodes.

    Args:
        edges: Sequence of Edge objects
        node_ids: Mapping from node id to node row
        strict: If True, raises on invalid. If False, returns list of issues.

    Returns:
        List of (edge_index, issue_description) tuples

    Raises:
        InvalidEdgeError: If strict=True and invalid edges found
    """
    issues: list[tuple[int, str]] = []

    for i, edge in enumerate(edges):
        src = getattr(edge, "source", None)
        tgt = getattr(edge, "target", None)

        if src is None:
            issues.append((i, f"Edge {i}: source is None"))
        elif src not in node_ids:
            issues.append((i, f"Edge {i}: unknown source node {src!r}"))

        if tgt is None:
            issues.append((i, f"Edge {i}: target is None"))
        elif tgt not in node_ids:
            issues.append((i, f"Edge {i}: unknown target node {tgt!r}"))

    if strict and issues:
        msg = "Invalid edge references:\n" + "\n".join(issue[1] for issue in issues)
        raise InvalidEdgeError(msg)

    return issues


def validate_problem_shape(
    n_columns: int,
    n_compat_columns: int,
    max_extent: int,
    n_tiles: Optional[int] = None,
) -> None:
    """
    Validate that a tiled problem fits into buffers of the given extent.

    Raises:
        ProblemTooLargeError: If either buffer is wider than max_extent
    """
    tiles = f" using {n_tiles} tiles" if n_tiles else ""
    if n_columns > max_extent:
        raise ProblemTooLargeError(
            f"Point buffer needs {n_columns} columns{tiles}, "
            f"but the substrate supports at most {max_extent}"
        )
    if n_compat_columns > max_extent:
        raise ProblemTooLargeError(
            f"Compatibility buffer needs {n_compat_columns} columns{tiles}, "
            f"but the substrate supports at most {max_extent}"
        )


__all__ = [
    "ValidationError",
    "InvalidNodeError",
    "InvalidEdgeError",
    "InvalidParameterError",
    "ProblemTooLargeError",
    "CompatibilityCapacityError",
    "validate_positive",
    "validate_non_negative",
    "validate_count",
    "validate_threshold",
    "validate_edge_references",
    "validate_problem_shape",
]
