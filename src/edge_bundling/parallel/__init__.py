"""
Data-parallel edge bundling.

This module provides the buffer-based formulation of FDEB:
- ParallelForceEdgeBundling: Driver running the three passes
- BufferLayout / PingPongBuffers: Tiled buffer layout and double buffering
- ComputeSubstrate / NumpySubstrate: Execution substrate interface and a
  host-memory implementation
"""

from .bundling import (
    CompatibilityCapacityWarning,
    KernelSet,
    ParallelForceEdgeBundling,
    TilingWarning,
)
from .kernels import compatibility_kernel, subdivision_kernel, update_kernel
from .layout import BufferLayout, PingPongBuffers
from .substrate import (
    Buffer,
    BufferAliasingError,
    ComputeSubstrate,
    Kernel,
    KernelNotLinkedError,
    NumpySubstrate,
    SubstrateError,
    TargetNotReadyError,
)

__all__ = [
    "ParallelForceEdgeBundling",
    "KernelSet",
    "TilingWarning",
    "CompatibilityCapacityWarning",
    "BufferLayout",
    "PingPongBuffers",
    "compatibility_kernel",
    "subdivision_kernel",
    "update_kernel",
    "Buffer",
    "Kernel",
    "ComputeSubstrate",
    "NumpySubstrate",
    "SubstrateError",
    "TargetNotReadyError",
    "KernelNotLinkedError",
    "BufferAliasingError",
]
