"""
Buffer layout for the data-parallel bundler.

Edge state is stored as a 2D buffer of 4-channel cells (x, y, z, unused):
one row per edge, one column per subdivision point. When there are more
edges than the substrate allows rows, the edges are tiled into column
blocks of a single wider buffer: edge e lives in row e % n_rows of tile
e // n_rows, and each tile spans n_points columns.

The compatibility buffer uses the same rows and tiles, with `capacity`
columns per tile.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Any

import numpy as np

from ..validation import validate_count, validate_problem_shape

CHANNELS = 4


@dataclass(frozen=True)
class BufferLayout:
    """
    Shape arithmetic for the point and compatibility buffers.

    Attributes:
        n_edges: Number of edges (rows before tiling)
        n_points: Columns per edge (final subdivision count + 2)
        capacity: Compatibility slots per edge
        max_extent: Largest width/height a buffer may have

    Raises:
        ProblemTooLargeError: If the tiled buffers are wider than max_extent
    """

    n_edges: int
    n_points: int
    capacity: int
    max_extent: int

    def __post_init__(self) -> None:
        validate_count("n_edges", self.n_edges)
        validate_count("n_points", self.n_points, minimum=2)
        validate_count("capacity", self.capacity)
        validate_count("max_extent", self.max_extent, minimum=2)
        validate_problem_shape(
            self.n_columns, self.compat_columns, self.max_extent, self.n_tiles
        )

    @property
    def n_tiles(self) -> int:
        return math.ceil(self.n_edges / self.max_extent)

    @property
    def n_rows(self) -> int:
        return min(self.n_edges, self.max_extent)

    @property
    def n_columns(self) -> int:
        return self.n_points * self.n_tiles

    @property
    def compat_columns(self) -> int:
        return self.capacity * self.n_tiles

    @property
    def shape(self) -> tuple[int, int, int]:
        """Point buffer shape as (height, width, channels)."""
        return (self.n_rows, self.n_columns, CHANNELS)

    @property
    def compat_shape(self) -> tuple[int, int, int]:
        """Compatibility buffer shape as (height, width, channels)."""
        return (self.n_rows, self.compat_columns, CHANNELS)

    def edge_cell(self, edge: int) -> tuple[int, int]:
        """(row, first column) of an edge in the point buffer."""
        return edge % self.n_rows, (edge // self.n_rows) * self.n_points

    def edge_cells(self) -> tuple[np.ndarray, np.ndarray]:
        """(rows, tiles) of every edge, as arrays."""
        edges = np.arange(self.n_edges)
        return edges % self.n_rows, edges // self.n_rows

    def cell_edges(self) -> np.ndarray:
        """(n_rows, n_tiles) array of the edge stored in each row/tile, -1 for padding."""
        rows = np.arange(self.n_rows)[:, None]
        tiles = np.arange(self.n_tiles)[None, :]
        edges = tiles * self.n_rows + rows
        return np.where(edges < self.n_edges, edges, -1)

    def pack_points(self, paths: np.ndarray, dtype: Any = np.float64) -> np.ndarray:
        """
        Pack (E, k, 3) paths into a point buffer image, k <= n_points.

        Unused columns and padding rows are zero.
        """
        k = paths.shape[1]
        if k > self.n_points:
            raise ValueError(f"Paths have {k} points, layout holds {self.n_points}")
        image = np.zeros((self.n_rows, self.n_tiles, self.n_points, CHANNELS), dtype=dtype)
        rows, tiles = self.edge_cells()
        image[rows, tiles, :k, :3] = paths
        return image.reshape(self.shape)

    def unpack_points(self, image: np.ndarray, count: int | None = None) -> np.ndarray:
        """Extract (E, count, 3) paths from a point buffer image."""
        count = self.n_points if count is None else count
        tiled = np.asarray(image).reshape(self.n_rows, self.n_tiles, self.n_points, CHANNELS)
        rows, tiles = self.edge_cells()
        return np.array(tiled[rows, tiles, :count, :3], dtype=np.float64)

    def tile_region(self, image: np.ndarray, tile: int) -> tuple[int, np.ndarray]:
        """(first column, data) of one tile of a point buffer image."""
        x = tile * self.n_points
        return x, image[:, x : x + self.n_points]

    def unpack_compatibility(self, image: np.ndarray) -> tuple[list[list[int]], np.ndarray]:
        """
        Decode a compatibility buffer image.

        Returns:
            (lists, counts): the stored neighbor lists and each edge's true
            compatible count, which exceeds the list length when the
            capacity was too small
        """
        tiled = np.asarray(image).reshape(self.n_rows, self.n_tiles, self.capacity, CHANNELS)
        rows, tiles = self.edge_cells()
        slots = tiled[rows, tiles, :, 0]
        counts = np.rint(tiled[rows, tiles, 0, 1]).astype(np.int64)
        lists = [[int(v) for v in row if v >= 0] for row in np.rint(slots).astype(np.int64)]
        return lists, counts


class PingPongBuffers:
    """
    Two state slots used alternately as kernel input and output.

    The parity is a single integer flipped once per pass; `read` is the
    slot holding the latest state, `write` is the slot the next pass fills.
    """

    def __init__(self, a: Any, b: Any) -> None:
        self._slots = (a, b)
        self._parity = 0

    @property
    def parity(self) -> int:
        return self._parity

    @property
    def read(self) -> Any:
        return self._slots[self._parity]

    @property
    def write(self) -> Any:
        return self._slots[1 - self._parity]

    @property
    def slots(self) -> tuple[Any, Any]:
        """Both buffers, in construction order."""
        return self._slots

    def swap(self) -> None:
        """Make the slot just written the new read slot."""
        self._parity = 1 - self._parity


__all__ = ["BufferLayout", "PingPongBuffers", "CHANNELS"]
