"""
Common types for edge bundling.

This module provides the fundamental types used by both bundling strategies:
- Node: Graph vertex with a fixed 2D or 3D position
- Edge: Directed pair of node ids
- EventType: Bundling lifecycle events
- Event: Event payload for callbacks
- BundlingState: Cycle scheduler state machine
"""

from __future__ import annotations

from enum import IntEnum
from typing import Any, Hashable, Mapping, Optional, Sequence, TypedDict, Union


class EventType(IntEnum):
    """
    Bundling lifecycle events.

    - start: Compatibility lists are built, cycling is about to begin
    - tick: Fired once per completed cycle
    - end: All cycles have completed
    """

    start = 0
    tick = 1
    end = 2


class Event(TypedDict, total=False):
    """Event payload passed to event listeners."""

    type: EventType
    cycle: int
    subdivisions: int
    step_size: float
    iterations: int


class BundlingState(IntEnum):
    """States of a bundling run."""

    initializing = 0
    cycling = 1
    done = 2


class Node:
    """
    Graph node with a position.

    Attributes:
        id: Node identifier (any hashable value)
        x: X coordinate
        y: Y coordinate
        z: Z coordinate (0.0 for planar graphs)
    """

    def __init__(self, **kwargs: Any) -> None:
        """Initialize node with optional properties."""
        self.id: Optional[Hashable] = kwargs.get("id")
        self.x: float = float(kwargs.get("x", 0.0))
        self.y: float = float(kwargs.get("y", 0.0))
        self.z: float = float(kwargs.get("z", 0.0))

        # Copy any additional custom properties
        for key, value in kwargs.items():
            if not hasattr(self, key):
                setattr(self, key, value)

    @property
    def position(self) -> tuple[float, float, float]:
        """Position as an (x, y, z) tuple."""
        return (self.x, self.y, self.z)

    def __repr__(self) -> str:
        return f"Node(id={self.id!r}, x={self.x:.2f}, y={self.y:.2f}, z={self.z:.2f})"


class Edge:
    """
    Edge connecting two nodes by id.

    Attributes:
        source: Source node id
        target: Target node id
    """

    def __init__(self, source: Hashable, target: Hashable, **kwargs: Any) -> None:
        """
        Initialize edge between two nodes.

        Args:
            source: Source node id (required)
            target: Target node id (required)

        Raises:
            ValueError: If source or target is None
        """
        if source is None:
            raise ValueError("Edge source cannot be None")
        if target is None:
            raise ValueError("Edge target cannot be None")

        self.source = source
        self.target = target

        for key, value in kwargs.items():
            if not hasattr(self, key):
                setattr(self, key, value)

    def __repr__(self) -> str:
        return f"Edge({self.source!r} -> {self.target!r})"


# Type aliases for Pythonic API
NodeLike = Union[Node, dict[str, Any], Sequence[float], Any]
"""Input type for nodes: Node objects, dicts, (x, y[, z]) tuples, or objects with x/y."""

EdgeLike = Union[Edge, dict[str, Any], tuple[Hashable, Hashable], Any]
"""Input type for edges: Edge objects, dicts, (source, target) tuples, or objects."""

NodesInput = Union[Mapping[Hashable, NodeLike], Sequence[NodeLike]]
"""Nodes keyed by id, or a sequence where the position is the default id."""


__all__ = [
    "EventType",
    "Event",
    "BundlingState",
    "Node",
    "Edge",
    "NodeLike",
    "EdgeLike",
    "NodesInput",
]
