"""
Data-parallel force-directed edge bundling.

Based on the paper:
"Texture-Based Edge Bundling: A Web-Based Approach for Interactively
Visualizing Large Graphs" by Wu et al. (2015)

The FDEB simulation is re-expressed as three passes over fixed-shape 2D
buffers (compatibility, subdivision, update). Two point buffers are used
alternately as input and output, and edges are tiled into column blocks
when there are more edges than the substrate allows rows.
"""

from __future__ import annotations

import warnings
from dataclasses import dataclass
from typing import Any, Callable, Optional, Sequence

import numpy as np

from ..base import BaseBundling
from ..config import BundlingConfig
from ..fdeb.subdivision import initial_paths
from ..types import EdgeLike, Event, EventType, NodesInput
from ..validation import CompatibilityCapacityError
from .kernels import KERNELS
from .layout import CHANNELS, BufferLayout, PingPongBuffers
from .substrate import Buffer, ComputeSubstrate, Kernel, NumpySubstrate


class TilingWarning(UserWarning):
    """Warning that the edges were split over several buffer tiles."""

    pass


class CompatibilityCapacityWarning(UserWarning):
    """Warning that compatible edges beyond the buffer capacity were dropped."""

    pass


@dataclass
class KernelSet:
    """The three compiled kernels of a run."""

    compatibility: Kernel
    subdivision: Kernel
    update: Kernel

    def all(self) -> tuple[Kernel, Kernel, Kernel]:
        return (self.compatibility, self.subdivision, self.update)


class ParallelForceEdgeBundling(BaseBundling):
    """
    FDEB evaluated as data-parallel passes on a compute substrate.

    Produces the same paths as ForceEdgeBundling (within floating point
    tolerance) as long as max_compatible_edges holds every compatible edge.

    Example:
        bundling = ParallelForceEdgeBundling(
            nodes=nodes,
            edges=edges,
            config=BundlingConfig(max_compatible_edges=64),
            substrate=NumpySubstrate(max_buffer_extent=2048),
        )
        bundling.run()
    """

    def __init__(
        self,
        *,
        nodes: Optional[NodesInput] = None,
        edges: Optional[Sequence[EdgeLike]] = None,
        config: Optional[BundlingConfig] = None,
        substrate: Optional[ComputeSubstrate] = None,
        dtype: Any = np.float64,
        on_start: Optional[Callable[[Optional[Event]], None]] = None,
        on_tick: Optional[Callable[[Optional[Event]], None]] = None,
        on_end: Optional[Callable[[Optional[Event]], None]] = None,
    ) -> None:
        """
        Initialize parallel bundling.

        Args:
            nodes: Nodes keyed by id, or a sequence of nodes
            edges: Edges as (source, target) pairs
            config: Simulation parameters
            substrate: Compute substrate. Defaults to a NumpySubstrate.
            dtype: Floating point element type of the buffers
            on_start: Callback for start event
            on_tick: Callback for tick event (once per cycle)
            on_end: Callback for end event
        """
        super().__init__(
            nodes=nodes,
            edges=edges,
            config=config,
            on_start=on_start,
            on_tick=on_tick,
            on_end=on_end,
        )
        self._substrate: ComputeSubstrate = substrate if substrate is not None else NumpySubstrate()
        self._dtype = np.dtype(dtype)
        self._layout: Optional[BufferLayout] = None

        # Kernels kept between runs when config.keep_kernels is set
        self._kernels: Optional[KernelSet] = None
        self._kernel_shape: Optional[tuple[int, int, int]] = None

    # -------------------------------------------------------------------------
    # Properties
    # -------------------------------------------------------------------------

    @property
    def substrate(self) -> ComputeSubstrate:
        """Get the compute substrate."""
        return self._substrate

    @property
    def layout(self) -> Optional[BufferLayout]:
        """Buffer layout of the last run."""
        return self._layout

    @property
    def max_extent(self) -> int:
        """Effective maximum buffer extent."""
        extent = self._substrate.max_buffer_extent
        if self._config.max_buffer_extent is not None:
            extent = min(extent, self._config.max_buffer_extent)
        return extent

    # -------------------------------------------------------------------------
    # Layout Implementation
    # -------------------------------------------------------------------------

    def run(self, **kwargs: Any) -> "ParallelForceEdgeBundling":
        """
        Run the bundling passes.

        Keyword Args:
            Config fields to change before running, e.g. run(C=4)

        Returns:
            self for chaining

        Raises:
            ProblemTooLargeError: If the edges do not fit even after tiling
            CompatibilityCapacityError: If an edge has more compatible edges
                than slots and capacity_policy is "error"
            SubstrateError: If the substrate fails; all buffers are released
        """
        sources, targets = self._prepare(**kwargs)
        config = self._config

        if len(sources) == 0:
            self._layout = None
            self.trigger(self._start_event())
            for params in self._scheduler:
                self.trigger(
                    self._tick_event(
                        params.cycle, params.subdivisions, params.step_size, params.iterations
                    )
                )
            self.trigger({"type": EventType.end, "cycle": config.C})
            return self

        layout = BufferLayout(
            n_edges=len(sources),
            n_points=config.output_point_count,
            capacity=config.max_compatible_edges,
            max_extent=self.max_extent,
        )
        self._layout = layout
        if layout.n_tiles > 1:
            warnings.warn(
                f"{layout.n_edges} edges exceed the maximum buffer extent of "
                f"{layout.max_extent}; using {layout.n_tiles} tiles.",
                TilingWarning,
                stacklevel=2,
            )

        buffers: list[Buffer] = []
        completed = False
        try:
            kernels = self._acquire_kernels(layout)
            paths = self._execute(layout, kernels, sources, targets, buffers)
            completed = True
        finally:
            for buffer in buffers:
                self._substrate.release_buffer(buffer)
            # Kernels survive only a successful run with keep_kernels set
            if not (completed and config.keep_kernels):
                self.release()

        self._paths = [path for path in paths]
        self.trigger({"type": EventType.end, "cycle": config.C})
        return self

    def release(self) -> None:
        """Release kernels kept from a previous run."""
        if self._kernels is not None:
            for kernel in self._kernels.all():
                self._substrate.release_kernel(kernel)
        self._kernels = None
        self._kernel_shape = None

    def _acquire_kernels(self, layout: BufferLayout) -> KernelSet:
        """Compile the kernel set, or reuse the kept one if the shape is unchanged."""
        shape = (layout.n_rows, layout.n_columns, layout.compat_columns)
        if self._kernels is not None and self._kernel_shape == shape:
            return self._kernels

        self.release()
        compile_kernel = self._substrate.compile_kernel
        self._kernels = KernelSet(
            compatibility=compile_kernel("compatibility", KERNELS["compatibility"]),
            subdivision=compile_kernel("subdivision", KERNELS["subdivision"]),
            update=compile_kernel("update", KERNELS["update"]),
        )
        self._kernel_shape = shape
        return self._kernels

    def _allocate(self, buffers: list[Buffer], width: int, height: int) -> Buffer:
        buffer = self._substrate.allocate_buffer(width, height, CHANNELS, self._dtype)
        buffers.append(buffer)
        return buffer

    def _execute(
        self,
        layout: BufferLayout,
        kernels: KernelSet,
        sources: np.ndarray,
        targets: np.ndarray,
        buffers: list[Buffer],
    ) -> np.ndarray:
        """Upload, run all passes and read back; every allocation goes into buffers."""
        substrate = self._substrate
        config = self._config
        eps = config.eps

        # Upload initial paths tile by tile
        image = layout.pack_points(initial_paths(sources, targets, config.P_initial), self._dtype)
        state = PingPongBuffers(
            self._allocate(buffers, layout.n_columns, layout.n_rows),
            self._allocate(buffers, layout.n_columns, layout.n_rows),
        )
        for tile in range(layout.n_tiles):
            x, region = layout.tile_region(image, tile)
            substrate.write_subregion(state.read, x, 0, region)

        # Compatibility pass
        compat = self._allocate(buffers, layout.compat_columns, layout.n_rows)
        substrate.bind_target(compat)
        substrate.run_kernel(
            kernels.compatibility,
            compat,
            [state.read],
            {
                "n_edges": layout.n_edges,
                "n_points": layout.n_points,
                "capacity": layout.capacity,
                "last_column": config.P_initial + 1,
                "threshold": config.compatibility_threshold,
                "eps": eps,
            },
        )
        self._compatibility = self._check_capacity(layout, substrate.read_buffer(compat))

        self.trigger(self._start_event())

        old_subdivisions = config.P_initial
        for params in self._scheduler:
            substrate.bind_target(state.write)
            substrate.run_kernel(
                kernels.subdivision,
                state.write,
                [state.read],
                {
                    "n_points": layout.n_points,
                    "subdivisions": params.subdivisions,
                    "old_subdivisions": old_subdivisions,
                    "eps": eps,
                },
            )
            state.swap()

            for _ in range(params.iterations):
                substrate.bind_target(state.write)
                substrate.run_kernel(
                    kernels.update,
                    state.write,
                    [state.read, compat],
                    {
                        "n_points": layout.n_points,
                        "capacity": layout.capacity,
                        "subdivisions": params.subdivisions,
                        "K": config.K,
                        "S": params.step_size,
                        "eps": eps,
                    },
                )
                state.swap()

            old_subdivisions = params.subdivisions
            self.trigger(
                self._tick_event(
                    params.cycle, params.subdivisions, params.step_size, params.iterations
                )
            )

        paths = layout.unpack_points(substrate.read_buffer(state.read))
        # Buffers may hold a narrower dtype; endpoints come from the host copies
        paths[:, 0] = sources
        paths[:, -1] = targets
        return paths

    def _check_capacity(self, layout: BufferLayout, image: np.ndarray) -> list[list[int]]:
        """Apply the capacity policy to the compatibility pass result."""
        lists, counts = layout.unpack_compatibility(image)
        overflow = np.flatnonzero(counts > layout.capacity)
        if len(overflow) == 0:
            return lists

        worst = int(counts.max())
        if self._config.capacity_policy == "error":
            raise CompatibilityCapacityError(
                f"{len(overflow)} edge(s) have more than {layout.capacity} compatible edges "
                f"(up to {worst}); increase max_compatible_edges or use capacity_policy='drop'"
            )
        warnings.warn(
            f"{len(overflow)} edge(s) have more than {layout.capacity} compatible edges "
            f"(up to {worst}); the excess is ignored.",
            CompatibilityCapacityWarning,
            stacklevel=4,
        )
        return lists


__all__ = [
    "ParallelForceEdgeBundling",
    "KernelSet",
    "TilingWarning",
    "CompatibilityCapacityWarning",
]
