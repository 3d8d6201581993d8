"""
Bundling quality metrics.

Provides quantitative measures of a bundled drawing:
- Ink: Total drawn length of all paths, and its ratio to straight edges
- Deviation: How far a path strays from its straight chord
- Separation: Mean distance between corresponding points of two paths

All metrics work with the paths returned by either bundling strategy.
"""

from __future__ import annotations

from typing import Any, Sequence

import numpy as np


def path_length(path: np.ndarray) -> float:
    """
    Arc length of a single path.

    Args:
        path: (n, d) array of points

    Returns:
        Sum of segment lengths
    """
    path = np.asarray(path, dtype=np.float64)
    if len(path) < 2:
        return 0.0
    return float(np.sum(np.linalg.norm(np.diff(path, axis=0), axis=-1)))


def total_ink(paths: Sequence[np.ndarray]) -> float:
    """Total drawn length of all paths."""
    return float(sum(path_length(p) for p in paths))


def ink_ratio(paths: Sequence[np.ndarray]) -> float:
    """
    Ratio of bundled ink to the ink of the straight edges.

    Bundling bends edges, so the ratio is >= 1; values close to 1 mean
    the edges barely moved.

    Returns:
        Bundled length / straight length (1.0 for no paths)
    """
    straight = sum(float(np.linalg.norm(p[-1] - p[0])) for p in paths)
    if straight == 0:
        return 1.0
    return total_ink(paths) / straight


def max_deviation(path: np.ndarray) -> float:
    """
    Largest distance of any point of a path from its chord (first to last point).

    Returns:
        0.0 for straight paths
    """
    path = np.asarray(path, dtype=np.float64)
    start, end = path[0], path[-1]
    chord = end - start
    sq_len = float(np.dot(chord, chord))
    if sq_len == 0:
        return float(np.max(np.linalg.norm(path - start, axis=-1)))

    t = np.clip((path - start) @ chord / sq_len, 0.0, 1.0)
    closest = start + t[:, None] * chord
    return float(np.max(np.linalg.norm(path - closest, axis=-1)))


def mean_separation(path_a: np.ndarray, path_b: np.ndarray, interior_only: bool = True) -> float:
    """
    Mean distance between corresponding points of two paths.

    Args:
        path_a: (n, d) array
        path_b: (n, d) array with the same number of points
        interior_only: Ignore the fixed endpoints

    Raises:
        ValueError: If the paths have different point counts
    """
    a = np.asarray(path_a, dtype=np.float64)
    b = np.asarray(path_b, dtype=np.float64)
    if a.shape != b.shape:
        raise ValueError(f"Paths must have the same shape, got {a.shape} and {b.shape}")
    if interior_only and len(a) > 2:
        a, b = a[1:-1], b[1:-1]
    return float(np.mean(np.linalg.norm(a - b, axis=-1)))


def bundling_summary(paths: Sequence[np.ndarray]) -> dict[str, Any]:
    """
    Compute a summary of bundling quality metrics.

    Returns:
        Dictionary with edge_count, point_count, total_ink, ink_ratio,
        mean_deviation and max_deviation
    """
    deviations = [max_deviation(p) for p in paths]
    return {
        "edge_count": len(paths),
        "point_count": int(len(paths[0])) if len(paths) else 0,
        "total_ink": total_ink(paths),
        "ink_ratio": ink_ratio(paths),
        "mean_deviation": float(np.mean(deviations)) if deviations else 0.0,
        "max_deviation": max(deviations) if deviations else 0.0,
    }


__all__ = [
    "path_length",
    "total_ink",
    "ink_ratio",
    "max_deviation",
    "mean_separation",
    "bundling_summary",
]
