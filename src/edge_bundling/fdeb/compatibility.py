"""
Edge compatibility measures.

Based on the paper:
"Force-Directed Edge Bundling for Graph Visualization" by Holten and van Wijk (2009)

Two edges P and Q attract each other only if they are compatible. The
compatibility score is the product of four measures, each in [0, 1]:
- angle: edges point in similar (or opposite) directions
- scale: edges have similar lengths
- position: edge midpoints are close relative to the edge lengths
- visibility: each edge "sees" the other when projected onto its line

All functions operate on numpy arrays whose last axis holds (x, y, z)
coordinates and broadcast over any leading axes, so the same code scores a
single pair or a whole block of the pair matrix.
"""

from __future__ import annotations

from typing import Iterator

import numpy as np
from scipy.spatial.distance import cdist

# Number of pair scores evaluated per block of the pair matrix.
_BLOCK_ELEMENTS = 1 << 20


def edge_lengths(sources: np.ndarray, targets: np.ndarray, eps: float = 1e-6) -> np.ndarray:
    """Edge lengths, floored at eps so coincident endpoints never divide by zero."""
    lengths = np.linalg.norm(targets - sources, axis=-1)
    return np.maximum(lengths, eps)


def edge_midpoints(sources: np.ndarray, targets: np.ndarray) -> np.ndarray:
    """Midpoint of each edge."""
    return (sources + targets) / 2.0


def angle_compatibility(
    p_vec: np.ndarray, q_vec: np.ndarray, p_len: np.ndarray, q_len: np.ndarray
) -> np.ndarray:
    """Absolute cosine of the angle between edge vectors."""
    dot = np.sum(p_vec * q_vec, axis=-1)
    return np.abs(dot / (p_len * q_len))


def scale_compatibility(p_len: np.ndarray, q_len: np.ndarray) -> np.ndarray:
    """Penalize edges of very different length."""
    l_avg = (p_len + q_len) / 2.0
    return 2.0 / (l_avg / np.minimum(p_len, q_len) + np.maximum(p_len, q_len) / l_avg)


def position_compatibility(
    p_len: np.ndarray, q_len: np.ndarray, midpoint_distance: np.ndarray
) -> np.ndarray:
    """Penalize edges whose midpoints are far apart."""
    l_avg = (p_len + q_len) / 2.0
    return l_avg / (l_avg + midpoint_distance)


def edge_visibility(
    p_src: np.ndarray,
    p_tgt: np.ndarray,
    q_src: np.ndarray,
    q_tgt: np.ndarray,
    eps: float = 1e-6,
) -> np.ndarray:
    """
    Visibility of edge Q from edge P.

    Q's endpoints are projected onto the infinite line through P, giving
    I0 and I1. The visibility is 1 when P's midpoint coincides with the
    midpoint of I0-I1, and falls to 0 when it lies at (or beyond) one end.
    A projected span shorter than eps (Q perpendicular to P) is invisible.
    """
    p_vec = p_tgt - p_src
    sq_len = np.maximum(np.sum(p_vec * p_vec, axis=-1), eps * eps)

    r0 = np.sum((q_src - p_src) * p_vec, axis=-1) / sq_len
    r1 = np.sum((q_tgt - p_src) * p_vec, axis=-1) / sq_len
    i0 = p_src + r0[..., None] * p_vec
    i1 = p_src + r1[..., None] * p_vec

    mid_i = (i0 + i1) / 2.0
    mid_p = (p_src + p_tgt) / 2.0
    span = np.linalg.norm(i0 - i1, axis=-1)
    offset = np.linalg.norm(mid_p - mid_i, axis=-1)

    visibility = np.maximum(0.0, 1.0 - 2.0 * offset / np.maximum(span, eps))
    return np.where(span < eps, 0.0, visibility)


def visibility_compatibility(
    p_src: np.ndarray,
    p_tgt: np.ndarray,
    q_src: np.ndarray,
    q_tgt: np.ndarray,
    eps: float = 1e-6,
) -> np.ndarray:
    """Symmetric visibility: the smaller of vis(P, Q) and vis(Q, P)."""
    return np.minimum(
        edge_visibility(p_src, p_tgt, q_src, q_tgt, eps),
        edge_visibility(q_src, q_tgt, p_src, p_tgt, eps),
    )


def compatibility_score(
    p_src: np.ndarray,
    p_tgt: np.ndarray,
    q_src: np.ndarray,
    q_tgt: np.ndarray,
    eps: float = 1e-6,
) -> np.ndarray:
    """
    Combined compatibility of edge pairs.

    Example:
        Two parallel edges of length 10, one unit apart, score 10 / 11:

        score = compatibility_score(
            np.array([0.0, 0.0, 0.0]), np.array([10.0, 0.0, 0.0]),
            np.array([0.0, 1.0, 0.0]), np.array([10.0, 1.0, 0.0]),
        )
    """
    p_src, p_tgt = np.asarray(p_src, dtype=np.float64), np.asarray(p_tgt, dtype=np.float64)
    q_src, q_tgt = np.asarray(q_src, dtype=np.float64), np.asarray(q_tgt, dtype=np.float64)

    p_len = edge_lengths(p_src, p_tgt, eps)
    q_len = edge_lengths(q_src, q_tgt, eps)
    midpoint_distance = np.linalg.norm(
        edge_midpoints(p_src, p_tgt) - edge_midpoints(q_src, q_tgt), axis=-1
    )

    return (
        angle_compatibility(p_tgt - p_src, q_tgt - q_src, p_len, q_len)
        * scale_compatibility(p_len, q_len)
        * position_compatibility(p_len, q_len, midpoint_distance)
        * visibility_compatibility(p_src, p_tgt, q_src, q_tgt, eps)
    )


def compatibility_blocks(
    sources: np.ndarray, targets: np.ndarray, eps: float = 1e-6
) -> Iterator[tuple[int, np.ndarray]]:
    """
    Yield (first_row, scores) for consecutive row blocks of the pair matrix.

    Blocks are sized to keep roughly a million scores in memory at a time;
    each block has the diagonal entries of its rows zeroed.
    """
    sources = np.asarray(sources, dtype=np.float64)
    targets = np.asarray(targets, dtype=np.float64)
    n = len(sources)
    lengths = edge_lengths(sources, targets, eps)
    vectors = targets - sources
    midpoints = edge_midpoints(sources, targets)
    block = max(1, min(n, _BLOCK_ELEMENTS // max(n, 1)))

    for start in range(0, n, block):
        stop = min(n, start + block)
        p_len = lengths[start:stop, None]
        q_len = lengths[None, :]
        p_src, p_tgt = sources[start:stop, None, :], targets[start:stop, None, :]
        q_src, q_tgt = sources[None, :, :], targets[None, :, :]

        scores = (
            angle_compatibility(vectors[start:stop, None, :], vectors[None, :, :], p_len, q_len)
            * scale_compatibility(p_len, q_len)
            * position_compatibility(p_len, q_len, cdist(midpoints[start:stop], midpoints))
            * visibility_compatibility(p_src, p_tgt, q_src, q_tgt, eps)
        )
        rows = np.arange(start, stop)
        scores[rows - start, rows] = 0.0
        yield start, scores


def compatibility_matrix(
    sources: np.ndarray, targets: np.ndarray, eps: float = 1e-6
) -> np.ndarray:
    """
    Full (E, E) matrix of pairwise compatibility scores.

    The diagonal is zero: an edge is never compatible with itself.
    Memory grows as E^2; prefer compute_compatibility_lists() for large graphs.
    """
    sources = np.asarray(sources, dtype=np.float64)
    targets = np.asarray(targets, dtype=np.float64)
    n = len(sources)
    matrix = np.zeros((n, n), dtype=np.float64)
    for start, scores in compatibility_blocks(sources, targets, eps):
        matrix[start : start + len(scores)] = scores
    return matrix


def compute_compatibility_lists(
    sources: np.ndarray,
    targets: np.ndarray,
    threshold: float = 0.6,
    eps: float = 1e-6,
) -> list[list[int]]:
    """
    Compute, for every edge, the ascending list of compatible edge indices.

    Each unordered pair is decided once (on the upper triangle) and recorded
    in both lists, so the relation is symmetric by construction.

    Args:
        sources: (E, 3) array of source positions
        targets: (E, 3) array of target positions
        threshold: Minimum compatibility score
        eps: Numerical floor for lengths

    Returns:
        List of E lists of edge indices
    """
    sources = np.asarray(sources, dtype=np.float64)
    targets = np.asarray(targets, dtype=np.float64)
    n = len(sources)
    if n == 0:
        return []

    first: list[np.ndarray] = []
    second: list[np.ndarray] = []
    for start, scores in compatibility_blocks(sources, targets, eps):
        rows, cols = np.nonzero(scores >= threshold)
        rows = rows + start
        upper = cols > rows
        first.append(rows[upper])
        second.append(cols[upper])

    i = np.concatenate(first)
    j = np.concatenate(second)
    owners = np.concatenate([i, j])
    members = np.concatenate([j, i])
    order = np.lexsort((members, owners))
    owners, members = owners[order], members[order]

    counts = np.bincount(owners, minlength=n)
    split = np.split(members, np.cumsum(counts)[:-1])
    return [part.tolist() for part in split]


__all__ = [
    "edge_lengths",
    "edge_midpoints",
    "angle_compatibility",
    "scale_compatibility",
    "position_compatibility",
    "edge_visibility",
    "visibility_compatibility",
    "compatibility_score",
    "compatibility_blocks",
    "compatibility_matrix",
    "compute_compatibility_lists",
]
