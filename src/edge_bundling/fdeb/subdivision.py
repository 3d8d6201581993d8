"""
Edge subdivision.

Each edge is approximated by a polyline with fixed endpoints and P interior
points. Between cycles P grows, and every path is re-sampled so that its new
points are spread at uniform arc length along the old polyline.
"""

from __future__ import annotations

import numpy as np


def polyline_length(path: np.ndarray) -> float:
    """Total arc length of a polyline."""
    return float(np.sum(np.linalg.norm(np.diff(path, axis=0), axis=-1)))


def subdivide_path(path: np.ndarray, subdivisions: int, eps: float = 1e-6) -> np.ndarray:
    """
    Re-sample a polyline to a given number of interior points.

    Walks the old segments, carrying the length still needed to reach the
    next sample across segment boundaries, so an old segment may receive any
    number of new points (including none).

    Args:
        path: (n, 3) array of points, endpoints first and last
        subdivisions: Number of interior points in the result
        eps: Segments shorter than this contribute no samples

    Returns:
        (subdivisions + 2, 3) array; endpoints are copied exactly
    """
    path = np.asarray(path, dtype=np.float64)
    result = np.empty((subdivisions + 2, path.shape[1]), dtype=np.float64)
    result[0] = path[0]
    result[-1] = path[-1]

    segment_length = polyline_length(path) / (subdivisions + 1)
    if subdivisions == 0:
        return result
    if segment_length < eps:
        # Collapsed path: every sample sits on the source
        result[1:-1] = path[0]
        return result

    remaining = segment_length
    k = 1
    for i in range(1, len(path)):
        start = path[i - 1]
        old_length = float(np.linalg.norm(path[i] - start))
        travelled = 0.0
        while k <= subdivisions and travelled + remaining <= old_length:
            travelled += remaining
            t = min(max(travelled / old_length, 0.0), 1.0) if old_length > 0 else 0.0
            result[k] = start + (path[i] - start) * t
            k += 1
            remaining = segment_length
        remaining -= old_length - travelled
        if k > subdivisions:
            break

    # Rounding can leave the last sample unplaced when it lands on the target
    while k <= subdivisions:
        result[k] = path[-1]
        k += 1
    return result


def initial_paths(sources: np.ndarray, targets: np.ndarray, subdivisions: int = 1) -> np.ndarray:
    """
    Straight-line paths with uniformly spaced interior points.

    For one subdivision this is [source, midpoint, target].

    Returns:
        (E, subdivisions + 2, 3) array
    """
    sources = np.asarray(sources, dtype=np.float64)
    targets = np.asarray(targets, dtype=np.float64)
    t = np.arange(subdivisions + 2, dtype=np.float64) / (subdivisions + 1)
    paths = sources[:, None, :] + t[None, :, None] * (targets - sources)[:, None, :]
    if len(paths):
        paths[:, 0] = sources
        paths[:, -1] = targets
    return paths


def update_subdivisions(paths: np.ndarray, subdivisions: int, eps: float = 1e-6) -> np.ndarray:
    """
    Re-sample every path to the given number of interior points.

    Args:
        paths: (E, n, 3) array of current paths
        subdivisions: Interior points per path after re-sampling

    Returns:
        New (E, subdivisions + 2, 3) array
    """
    out = np.empty((len(paths), subdivisions + 2, paths.shape[-1]), dtype=np.float64)
    for e, path in enumerate(paths):
        out[e] = subdivide_path(path, subdivisions, eps)
    return out


__all__ = [
    "polyline_length",
    "subdivide_path",
    "initial_paths",
    "update_subdivisions",
]
