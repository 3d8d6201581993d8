"""
Sequential force-directed edge bundling.

Based on the paper:
"Force-Directed Edge Bundling for Graph Visualization" by Holten and van Wijk (2009)

The algorithm simulates a physical system where:
- Each edge is a chain of springs between its subdivision points
- Subdivision points of compatible edges attract each other
- Step size, subdivision count and iteration count follow a cooling schedule
"""

from __future__ import annotations

import warnings
from typing import Any, Callable, Optional, Sequence

import numpy as np

from ..base import BaseBundling
from ..config import BundlingConfig
from ..types import EdgeLike, Event, EventType, NodesInput
from .compatibility import compute_compatibility_lists
from .forces import edge_spring_constants, integrate
from .subdivision import initial_paths, update_subdivisions

# Above this many edges the O(E^2) sequential solver gets slow enough to warn.
SEQUENTIAL_EDGE_WARNING_THRESHOLD = 5000


class PerformanceWarning(UserWarning):
    """Warning about performance-related issues."""

    pass


class ForceEdgeBundling(BaseBundling):
    """
    Sequential reference implementation of FDEB.

    Example:
        bundling = ForceEdgeBundling(
            nodes={0: (0, 0), 1: (100, 0), 2: (0, 5), 3: (100, 5)},
            edges=[(0, 1), (2, 3)],
            config=BundlingConfig(C=4),
        )
        bundling.run()

        for path in bundling.paths:
            print(path.shape)  # (18, 3)
    """

    def __init__(
        self,
        *,
        nodes: Optional[NodesInput] = None,
        edges: Optional[Sequence[EdgeLike]] = None,
        config: Optional[BundlingConfig] = None,
        on_start: Optional[Callable[[Optional[Event]], None]] = None,
        on_tick: Optional[Callable[[Optional[Event]], None]] = None,
        on_end: Optional[Callable[[Optional[Event]], None]] = None,
    ) -> None:
        super().__init__(
            nodes=nodes,
            edges=edges,
            config=config,
            on_start=on_start,
            on_tick=on_tick,
            on_end=on_end,
        )

    def run(self, **kwargs: Any) -> "ForceEdgeBundling":
        """
        Run the bundling algorithm.

        Keyword Args:
            Config fields to change before running, e.g. run(C=4)

        Returns:
            self for chaining
        """
        sources, targets = self._prepare(**kwargs)
        config = self._config
        eps = config.eps

        if len(sources) > SEQUENTIAL_EDGE_WARNING_THRESHOLD:
            warnings.warn(
                f"Sequential bundling of {len(sources)} edges is quadratic in the edge "
                "count. Consider ParallelForceEdgeBundling for large graphs.",
                PerformanceWarning,
                stacklevel=2,
            )

        # Initializing: compatibility is computed once and read-only afterwards
        compatibility = compute_compatibility_lists(
            sources, targets, config.compatibility_threshold, eps
        )
        self._compatibility = compatibility
        paths = initial_paths(sources, targets, config.P_initial)

        self.trigger(self._start_event())

        for params in self._scheduler:
            paths = update_subdivisions(paths, params.subdivisions, eps)
            spring_constants = edge_spring_constants(
                sources, targets, config.K, params.subdivisions, eps
            )
            for _ in range(params.iterations):
                paths = integrate(paths, compatibility, spring_constants, params.step_size, eps)

            self.trigger(
                self._tick_event(
                    params.cycle, params.subdivisions, params.step_size, params.iterations
                )
            )

        self._paths = [np.array(path) for path in paths]
        self.trigger({"type": EventType.end, "cycle": config.C})
        return self


__all__ = ["ForceEdgeBundling", "PerformanceWarning", "SEQUENTIAL_EDGE_WARNING_THRESHOLD"]
