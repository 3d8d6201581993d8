"""
edge-bundling: Force-directed edge bundling in Python.

This package bundles the edges of a graph drawing: edges with similar
trajectories are bent toward each other, reducing visual clutter.

Available strategies:
- ForceEdgeBundling: Sequential reference implementation
- ParallelForceEdgeBundling: Data-parallel passes over tiled 2D buffers,
  run on a pluggable compute substrate
"""

__version__ = "0.1.0"

# Shared types and configuration
from .base import BaseBundling, StabilityWarning
from .bundling import bundle_edges
from .config import BundlingConfig

# Sequential strategy
from .fdeb import (
    ForceEdgeBundling,
    PerformanceWarning,
    compatibility_score,
    compute_compatibility_lists,
)

# Metrics for bundling quality evaluation
from .metrics import (
    bundling_summary,
    ink_ratio,
    max_deviation,
    mean_separation,
    path_length,
    total_ink,
)

# Data-parallel strategy
from .parallel import (
    BufferLayout,
    CompatibilityCapacityWarning,
    ComputeSubstrate,
    NumpySubstrate,
    ParallelForceEdgeBundling,
    PingPongBuffers,
    SubstrateError,
    TilingWarning,
)
from .schedule import CycleParameters, CycleScheduler
from .types import (
    BundlingState,
    Edge,
    EdgeLike,
    Event,
    EventType,
    Node,
    NodeLike,
    NodesInput,
)

# Validation utilities
from .validation import (
    CompatibilityCapacityError,
    InvalidEdgeError,
    InvalidNodeError,
    InvalidParameterError,
    ProblemTooLargeError,
    ValidationError,
)

__all__ = [
    # Version
    "__version__",
    # Shared types
    "Node",
    "Edge",
    "EventType",
    "Event",
    "BundlingState",
    "NodeLike",
    "EdgeLike",
    "NodesInput",
    # Configuration and scheduling
    "BundlingConfig",
    "CycleScheduler",
    "CycleParameters",
    # Strategies
    "BaseBundling",
    "ForceEdgeBundling",
    "ParallelForceEdgeBundling",
    "bundle_edges",
    # Compatibility
    "compatibility_score",
    "compute_compatibility_lists",
    # Parallel mapping
    "BufferLayout",
    "PingPongBuffers",
    "ComputeSubstrate",
    "NumpySubstrate",
    # Metrics
    "path_length",
    "total_ink",
    "ink_ratio",
    "max_deviation",
    "mean_separation",
    "bundling_summary",
    # Errors and warnings
    "ValidationError",
    "InvalidNodeError",
    "InvalidEdgeError",
    "InvalidParameterError",
    "ProblemTooLargeError",
    "CompatibilityCapacityError",
    "SubstrateError",
    "PerformanceWarning",
    "StabilityWarning",
    "TilingWarning",
    "CompatibilityCapacityWarning",
]
