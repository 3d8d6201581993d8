"""
Data-parallel kernels for edge bundling.

Each kernel computes its whole output domain at once: conceptually one lane
per buffer cell, evaluated with numpy over the (row, tile, column) grid.
Kernels only read their inputs and return a fresh output image, so the
substrate can enforce that no pass reads the buffer it writes.

Point buffer cells hold (x, y, z, 0). Compatibility buffer cells hold the
index of a compatible edge in channel 0 (-1 for an empty slot); channel 1 of
each edge's first slot holds its true compatible count.
"""

from __future__ import annotations

from typing import Sequence

import numpy as np

from ..fdeb.compatibility import compatibility_blocks
from .layout import CHANNELS


def _tiled(image: np.ndarray, columns_per_tile: int) -> np.ndarray:
    """View a (rows, tiles * k, 4) image as (rows, tiles, k, 4)."""
    rows, width, channels = image.shape
    return image.reshape(rows, width // columns_per_tile, columns_per_tile, channels)


def _edge_endpoints(
    points: np.ndarray, n_edges: int, last_column: int
) -> tuple[np.ndarray, np.ndarray]:
    """(E, 3) sources and targets read from columns 0 and last_column of each tile."""
    n_rows = points.shape[0]
    edges = np.arange(n_edges)
    rows, tiles = edges % n_rows, edges // n_rows
    return points[rows, tiles, 0, :3], points[rows, tiles, last_column, :3]


def compatibility_kernel(
    inputs: Sequence[np.ndarray],
    *,
    n_edges: int,
    n_points: int,
    capacity: int,
    last_column: int,
    threshold: float,
    eps: float,
) -> np.ndarray:
    """
    Write, for every edge, the indices of its compatible edges.

    Inputs:
        0: point buffer holding each edge's endpoints in columns 0 and
           last_column of its tile

    Slots beyond `capacity` are not written; the count channel still holds
    the full number so the host can detect the overflow.
    """
    points = _tiled(inputs[0], n_points)
    n_rows, n_tiles = points.shape[0], points.shape[1]
    sources, targets = _edge_endpoints(points, n_edges, last_column)

    out = np.zeros((n_rows, n_tiles, capacity, CHANNELS), dtype=inputs[0].dtype)
    out[..., 0] = -1.0

    for start, scores in compatibility_blocks(sources, targets, eps):
        block_edges = np.arange(start, start + len(scores))
        mask = scores >= threshold
        mask[block_edges - start, block_edges] = False
        counts = mask.sum(axis=1)
        out[block_edges % n_rows, block_edges // n_rows, 0, 1] = counts

        rows, cols = np.nonzero(mask)
        first = np.concatenate([[0], np.cumsum(counts)[:-1]])
        slots = np.arange(len(rows)) - first[rows]
        keep = slots < capacity
        edges = rows[keep] + start
        out[edges % n_rows, edges // n_rows, slots[keep], 0] = cols[keep]

    return out.reshape(n_rows, n_tiles * capacity, CHANNELS)


def subdivision_kernel(
    inputs: Sequence[np.ndarray],
    *,
    n_points: int,
    subdivisions: int,
    old_subdivisions: int,
    eps: float,
) -> np.ndarray:
    """
    Re-sample every path from old_subdivisions to subdivisions interior points.

    Inputs:
        0: point buffer with paths of old_subdivisions + 2 points

    Each output point is evaluated independently: its arc length along the
    old path is j * length / (P + 1), and it is interpolated on the old
    segment containing that arc length.
    """
    points = _tiled(inputs[0], n_points)
    old = points[..., : old_subdivisions + 2, :3]

    seg = np.linalg.norm(np.diff(old, axis=2), axis=-1)
    cum = np.concatenate([np.zeros(seg.shape[:2] + (1,)), np.cumsum(seg, axis=-1)], axis=-1)
    total = cum[..., -1]

    j = np.arange(1, subdivisions + 1, dtype=np.float64)
    wanted = total[..., None] * (j / (subdivisions + 1))

    # Segment index: number of old breakpoints strictly before the wanted length
    k = np.sum(cum[..., None, 1:] < wanted[..., None], axis=-1)
    k = np.minimum(k, old_subdivisions)
    # Collapsed paths put every sample on the source
    collapsed_path = (total / (subdivisions + 1) < eps)[..., None]
    k = np.where(collapsed_path, 0, k)

    seg_start = np.take_along_axis(cum, k, axis=-1)
    seg_len = np.take_along_axis(seg, k, axis=-1)
    collapsed = collapsed_path | (seg_len <= 0)
    t = np.where(collapsed, 0.0, (wanted - seg_start) / np.where(seg_len > 0, seg_len, 1.0))
    t = np.clip(t, 0.0, 1.0)

    a = np.take_along_axis(old, k[..., None], axis=2)
    b = np.take_along_axis(old, (k + 1)[..., None], axis=2)

    out = np.zeros_like(points)
    out[..., 0, :] = points[..., 0, :]
    out[..., 1 : subdivisions + 1, :3] = a + (b - a) * t[..., None]
    out[..., subdivisions + 1, :] = points[..., old_subdivisions + 1, :]
    return out.reshape(inputs[0].shape)


def update_kernel(
    inputs: Sequence[np.ndarray],
    *,
    n_points: int,
    capacity: int,
    subdivisions: int,
    K: float,
    S: float,
    eps: float,
) -> np.ndarray:
    """
    Apply one force iteration to every interior point.

    Inputs:
        0: point buffer with paths of subdivisions + 2 points
        1: compatibility buffer
    """
    points = _tiled(inputs[0], n_points)
    compat = _tiled(inputs[1], capacity)
    n_rows = points.shape[0]
    last = subdivisions + 1

    current = points[..., 1:last, :3]
    source = points[..., 0, :3]
    target = points[..., last, :3]
    length = np.maximum(np.linalg.norm(target - source, axis=-1), eps)
    spring_constants = K / (length * (subdivisions + 1))

    spring = spring_constants[..., None, None] * (
        (points[..., 0 : last - 1, :3] - current) + (points[..., 2 : last + 1, :3] - current)
    )

    electrostatic = np.zeros_like(current)
    for slot in range(capacity):
        neighbor = compat[..., slot, 0]
        active = neighbor >= 0
        if not active.any():
            break
        idx = np.where(active, np.rint(neighbor), 0).astype(np.intp)
        other = points[idx % n_rows, idx // n_rows, 1:last, :3]

        diff = other - current
        skip = np.all(np.abs(diff) <= eps, axis=-1) | ~active[..., None]
        dist = np.where(skip, 1.0, np.linalg.norm(diff, axis=-1))
        contrib = diff / dist[..., None]
        contrib[skip] = 0.0
        electrostatic += contrib

    out = points.copy()
    out[..., 1:last, :3] = current + S * (spring + electrostatic)
    return out.reshape(inputs[0].shape)


KERNELS = {
    "compatibility": compatibility_kernel,
    "subdivision": subdivision_kernel,
    "update": update_kernel,
}


__all__ = [
    "compatibility_kernel",
    "subdivision_kernel",
    "update_kernel",
    "KERNELS",
]
