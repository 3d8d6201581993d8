"""
Functional entry point for edge bundling.
"""

from __future__ import annotations

from typing import Any, Literal, Optional, Sequence

import numpy as np

from .base import BaseBundling
from .config import BundlingConfig
from .fdeb.bundling import ForceEdgeBundling
from .parallel.bundling import ParallelForceEdgeBundling
from .parallel.substrate import ComputeSubstrate
from .types import EdgeLike, NodesInput

Strategy = Literal["sequential", "parallel"]


def bundle_edges(
    nodes: NodesInput,
    edges: Sequence[EdgeLike],
    config: Optional[BundlingConfig] = None,
    *,
    strategy: Strategy = "sequential",
    substrate: Optional[ComputeSubstrate] = None,
    **overrides: Any,
) -> list[np.ndarray]:
    """
    Bundle edges and return one path per non-self-loop edge.

    Args:
        nodes: Nodes keyed by id, or a sequence of nodes
        edges: Edges as (source, target) pairs, dicts, or Edge objects
        config: Simulation parameters. Defaults to BundlingConfig().
        strategy: "sequential" or "parallel"
        substrate: Compute substrate for the parallel strategy
        **overrides: Config fields to change, e.g. C=4 or K=0.05

    Returns:
        List of (n_points, 3) arrays, in input edge order with self-loops removed

    Example:
        paths = bundle_edges(
            {"a": (0, 0), "b": (100, 0), "c": (0, 5), "d": (100, 5)},
            [("a", "b"), ("c", "d")],
            C=3,
        )
    """
    config = config if config is not None else BundlingConfig()
    if overrides:
        config = config.replace(**overrides)

    bundling: BaseBundling
    if strategy == "sequential":
        if substrate is not None:
            raise ValueError("substrate is only used by the parallel strategy")
        bundling = ForceEdgeBundling(nodes=nodes, edges=edges, config=config)
    elif strategy == "parallel":
        bundling = ParallelForceEdgeBundling(
            nodes=nodes, edges=edges, config=config, substrate=substrate
        )
    else:
        raise ValueError(f"strategy must be 'sequential' or 'parallel', got {strategy!r}")

    return bundling.run().paths


__all__ = ["bundle_edges", "Strategy"]
