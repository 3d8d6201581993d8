"""
Compute substrate interface for the data-parallel bundler.

The bundler never talks to a GPU API directly. It needs only a handful of
operations: allocate 2D multi-channel buffers, write sub-regions, bind a
target, run a named kernel over the target's 2D domain, read results back,
and release everything. ComputeSubstrate captures that contract.

NumpySubstrate is a host-memory implementation. A kernel is a function that
computes every cell of its output domain at once with numpy; like a fragment
shader it sees its inputs read-only and must not read the target it writes.
"""

from __future__ import annotations

import itertools
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Callable, Mapping, Optional, Sequence

import numpy as np

KernelFunction = Callable[..., np.ndarray]
"""Kernel signature: fn(inputs, **uniforms) -> (height, width, channels) array."""


class SubstrateError(RuntimeError):
    """Base exception for compute substrate failures."""

    pass


class TargetNotReadyError(SubstrateError):
    """Raised when a buffer cannot be used as a render/compute target."""

    pass


class KernelNotLinkedError(SubstrateError):
    """Raised when running a kernel that is not compiled or was released."""

    pass


class BufferAliasingError(SubstrateError):
    """Raised when a kernel would read the buffer it is writing."""

    pass


_ids = itertools.count(1)


@dataclass(eq=False)
class Buffer:
    """A 2D buffer of width x height cells with a fixed channel depth."""

    width: int
    height: int
    channels: int
    dtype: np.dtype
    data: np.ndarray = field(repr=False)
    id: int = field(default_factory=lambda: next(_ids))
    released: bool = False


@dataclass(eq=False)
class Kernel:
    """A compiled computation."""

    name: str
    function: KernelFunction = field(repr=False)
    id: int = field(default_factory=lambda: next(_ids))
    linked: bool = True


class ComputeSubstrate(ABC):
    """Operations the parallel bundler requires from its execution substrate."""

    @property
    @abstractmethod
    def max_buffer_extent(self) -> int:
        """Largest width or height a buffer may have."""

    @abstractmethod
    def allocate_buffer(
        self,
        width: int,
        height: int,
        channels: int = 4,
        dtype: Any = np.float32,
        data: Optional[np.ndarray] = None,
    ) -> Buffer:
        """Allocate a buffer, uninitialized (zeroed) or from (height, width, channels) data."""

    @abstractmethod
    def write_subregion(self, buffer: Buffer, x: int, y: int, data: np.ndarray) -> None:
        """Write (h, w, channels) data at column x, row y without reallocating."""

    @abstractmethod
    def bind_target(self, buffer: Buffer) -> None:
        """Bind a buffer as the output of the next kernel run and check it is ready."""

    @abstractmethod
    def compile_kernel(self, name: str, function: KernelFunction) -> Kernel:
        """Compile and link a kernel."""

    @abstractmethod
    def run_kernel(
        self,
        kernel: Kernel,
        target: Buffer,
        inputs: Sequence[Buffer],
        uniforms: Mapping[str, Any],
    ) -> None:
        """Run a kernel over the target's domain, writing into the bound target."""

    @abstractmethod
    def read_buffer(self, buffer: Buffer) -> np.ndarray:
        """Read a buffer back into a host (height, width, channels) array."""

    @abstractmethod
    def release_buffer(self, buffer: Buffer) -> None:
        """Free a buffer."""

    @abstractmethod
    def release_kernel(self, kernel: Kernel) -> None:
        """Free a kernel."""


class NumpySubstrate(ComputeSubstrate):
    """
    Host-memory compute substrate backed by numpy arrays.

    Example:
        substrate = NumpySubstrate(max_buffer_extent=1024)
        bundling = ParallelForceEdgeBundling(
            nodes=nodes, edges=edges, substrate=substrate
        )
        bundling.run()
        assert substrate.live_buffers == 0
    """

    def __init__(self, max_buffer_extent: int = 4096) -> None:
        if max_buffer_extent < 2:
            raise ValueError(f"max_buffer_extent must be >= 2, got {max_buffer_extent}")
        self._max_extent = int(max_buffer_extent)
        self._buffers: dict[int, Buffer] = {}
        self._kernels: dict[int, Kernel] = {}
        self._bound: Optional[Buffer] = None
        self.kernel_runs: int = 0
        self.compilations: int = 0

    @property
    def max_buffer_extent(self) -> int:
        return self._max_extent

    @property
    def live_buffers(self) -> int:
        """Number of allocated, unreleased buffers."""
        return len(self._buffers)

    @property
    def live_kernels(self) -> int:
        """Number of compiled, unreleased kernels."""
        return len(self._kernels)

    def allocate_buffer(
        self,
        width: int,
        height: int,
        channels: int = 4,
        dtype: Any = np.float32,
        data: Optional[np.ndarray] = None,
    ) -> Buffer:
        if width < 1 or height < 1:
            raise TargetNotReadyError(f"Buffer must be at least 1x1, got {width}x{height}")
        if width > self._max_extent or height > self._max_extent:
            raise TargetNotReadyError(
                f"Buffer {width}x{height} exceeds max extent {self._max_extent}"
            )
        dtype = np.dtype(dtype)
        if data is None:
            array = np.zeros((height, width, channels), dtype=dtype)
        else:
            array = np.array(data, dtype=dtype, copy=True)
            if array.shape != (height, width, channels):
                raise TargetNotReadyError(
                    f"Initial data has shape {array.shape}, expected {(height, width, channels)}"
                )
        buffer = Buffer(width, height, channels, dtype, array)
        self._buffers[buffer.id] = buffer
        return buffer

    def write_subregion(self, buffer: Buffer, x: int, y: int, data: np.ndarray) -> None:
        self._check_live(buffer)
        h, w = data.shape[0], data.shape[1]
        if x < 0 or y < 0 or x + w > buffer.width or y + h > buffer.height:
            raise TargetNotReadyError(
                f"Region {w}x{h} at ({x}, {y}) does not fit buffer {buffer.width}x{buffer.height}"
            )
        buffer.data[y : y + h, x : x + w] = data

    def bind_target(self, buffer: Buffer) -> None:
        self._check_live(buffer)
        if not np.issubdtype(buffer.dtype, np.floating):
            raise TargetNotReadyError(f"Target buffer must be floating point, got {buffer.dtype}")
        self._bound = buffer

    def unbind_target(self) -> None:
        """Clear the bound target."""
        self._bound = None

    def compile_kernel(self, name: str, function: KernelFunction) -> Kernel:
        if not callable(function):
            raise KernelNotLinkedError(f"Kernel {name!r} is not callable")
        kernel = Kernel(name, function)
        self._kernels[kernel.id] = kernel
        self.compilations += 1
        return kernel

    def run_kernel(
        self,
        kernel: Kernel,
        target: Buffer,
        inputs: Sequence[Buffer],
        uniforms: Mapping[str, Any],
    ) -> None:
        if not kernel.linked or kernel.id not in self._kernels:
            raise KernelNotLinkedError(f"Kernel {kernel.name!r} is not linked")
        if self._bound is not target:
            raise TargetNotReadyError(f"Buffer {target.id} is not the bound target")
        self._check_live(target)
        for buffer in inputs:
            self._check_live(buffer)
            if buffer is target:
                raise BufferAliasingError(
                    f"Kernel {kernel.name!r} reads buffer {target.id} while writing it"
                )

        views = []
        for buffer in inputs:
            view = buffer.data.view()
            view.flags.writeable = False
            views.append(view)

        result = kernel.function(views, **uniforms)
        if result.shape != target.data.shape:
            raise SubstrateError(
                f"Kernel {kernel.name!r} produced shape {result.shape}, "
                f"target is {target.data.shape}"
            )
        target.data[...] = result
        self.kernel_runs += 1

    def read_buffer(self, buffer: Buffer) -> np.ndarray:
        self._check_live(buffer)
        return buffer.data.copy()

    def release_buffer(self, buffer: Buffer) -> None:
        if self._bound is buffer:
            self._bound = None
        buffer.released = True
        self._buffers.pop(buffer.id, None)

    def release_kernel(self, kernel: Kernel) -> None:
        kernel.linked = False
        self._kernels.pop(kernel.id, None)

    def _check_live(self, buffer: Buffer) -> None:
        if buffer.released or buffer.id not in self._buffers:
            raise TargetNotReadyError(f"Buffer {buffer.id} has been released")


__all__ = [
    "Buffer",
    "Kernel",
    "KernelFunction",
    "ComputeSubstrate",
    "NumpySubstrate",
    "SubstrateError",
    "TargetNotReadyError",
    "KernelNotLinkedError",
    "BufferAliasingError",
]
