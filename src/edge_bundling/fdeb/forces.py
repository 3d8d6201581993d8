"""
Force computation for edge bundling.

Every interior subdivision point feels two forces:
- a spring force pulling it toward its neighbours on the same edge
- an electrostatic force pulling it toward the point with the same index
  on every compatible edge

An iteration computes all forces from the current paths and only then
moves the points, so the result does not depend on the order edges are
visited in.
"""

from __future__ import annotations

from typing import Sequence

import numpy as np

from .compatibility import edge_lengths


def edge_spring_constants(
    sources: np.ndarray,
    targets: np.ndarray,
    stiffness: float,
    subdivisions: int,
    eps: float = 1e-6,
) -> np.ndarray:
    """
    Per-edge spring constant kP = K / (|edge| * (P + 1)).

    Scaling by the segment count keeps stiffness independent of resolution.

    The integration step is explicit, so it only converges while
    step_size * kP <= 0.5. With the default K = S = 0.1 that excludes edges
    shorter than about 0.02 / (P + 1); scale tiny drawings up before
    bundling. The drivers warn with StabilityWarning in that case.
    """
    return stiffness / (edge_lengths(sources, targets, eps) * (subdivisions + 1))


def spring_forces(paths: np.ndarray, spring_constants: np.ndarray) -> np.ndarray:
    """
    Spring force on every point; endpoints receive zero force.

    Args:
        paths: (E, n, 3) array of paths
        spring_constants: (E,) array of kP values

    Returns:
        (E, n, 3) array of forces
    """
    forces = np.zeros_like(paths)
    current = paths[:, 1:-1]
    forces[:, 1:-1] = spring_constants[:, None, None] * (
        (paths[:, :-2] - current) + (paths[:, 2:] - current)
    )
    return forces


def electrostatic_forces(
    paths: np.ndarray,
    compatibility: Sequence[Sequence[int]],
    eps: float = 1e-6,
) -> np.ndarray:
    """
    Inverse-distance attraction toward corresponding points of compatible edges.

    Point pairs that coincide within eps in every coordinate are skipped.

    Args:
        paths: (E, n, 3) array of paths
        compatibility: Per-edge lists of compatible edge indices
        eps: Coincidence tolerance

    Returns:
        (E, n, 3) array of forces; endpoints receive zero force
    """
    forces = np.zeros_like(paths)
    for e, neighbors in enumerate(compatibility):
        if not neighbors:
            continue
        current = paths[e, 1:-1]
        diff = paths[np.asarray(neighbors), 1:-1] - current[None, :, :]
        coincide = np.all(np.abs(diff) <= eps, axis=-1)
        dist = np.where(coincide, 1.0, np.linalg.norm(diff, axis=-1))
        contrib = diff / dist[..., None]
        contrib[coincide] = 0.0
        forces[e, 1:-1] = np.sum(contrib, axis=0)
    return forces


def integrate(
    paths: np.ndarray,
    compatibility: Sequence[Sequence[int]],
    spring_constants: np.ndarray,
    step_size: float,
    eps: float = 1e-6,
) -> np.ndarray:
    """
    Run one force iteration and return the new paths.

    The input array is not modified; endpoints are copied unchanged.
    """
    spring = spring_forces(paths, spring_constants)
    electrostatic = electrostatic_forces(paths, compatibility, eps)

    moved = paths.copy()
    moved[:, 1:-1] = paths[:, 1:-1] + step_size * (spring[:, 1:-1] + electrostatic[:, 1:-1])
    return moved


__all__ = [
    "edge_spring_constants",
    "spring_forces",
    "electrostatic_forces",
    "integrate",
]
