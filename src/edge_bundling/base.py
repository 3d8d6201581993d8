"""
Base class for edge bundling strategies.

This module provides the abstract base that defines the common interface
and shared functionality of the sequential and data-parallel bundlers:

- Node/edge normalization from flexible input types
- Self-loop filtering
- Event system (start/tick/end events)
- Configuration and result access
"""

from __future__ import annotations

import math
import warnings
from abc import ABC, abstractmethod
from collections.abc import Mapping
from typing import TYPE_CHECKING, Any, Callable, Hashable, Optional, Sequence

import numpy as np

if TYPE_CHECKING:
    from typing_extensions import Self

from .config import BundlingConfig
from .schedule import CycleScheduler
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
from .validation import InvalidEdgeError, InvalidNodeError, validate_edge_references


# Largest S * kP for which the spring update does not oscillate apart.
STABLE_SPRING_STEP = 0.5


class StabilityWarning(UserWarning):
    """Warning that the simulation parameters may make paths diverge."""

    pass


class BaseBundling(ABC):
    """
    Abstract base class for edge bundling strategies.

    Example:
        bundling = SomeBundling(
            nodes={"a": (0, 0), "b": (100, 0), "c": (0, 10), "d": (100, 10)},
            edges=[("a", "b"), ("c", "d")],
        )
        bundling.run()

        for edge, path in zip(bundling.edges, bundling.paths):
            print(edge, path[0], path[-1])
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
        """
        Initialize bundling with input data and configuration.

        Args:
            nodes: Mapping of id -> node, or a sequence of nodes (Node
                objects, dicts, (x, y[, z]) tuples, or objects with x/y)
            edges: Edges (Edge objects, dicts, (source, target) tuples)
            config: Simulation parameters. Defaults to BundlingConfig().
            on_start: Callback for start event
            on_tick: Callback for tick event (once per cycle)
            on_end: Callback for end event
        """
        self._nodes: list[Node] = []
        self._node_rows: dict[Hashable, int] = {}
        self._positions: np.ndarray = np.zeros((0, 3), dtype=np.float64)
        self._edges: list[Edge] = []
        self._config: BundlingConfig = config if config is not None else BundlingConfig()
        self._events: dict[EventType, Callable[[Optional[Event]], None]] = {}

        # Results of the last run
        self._edge_indices: list[int] = []
        self._paths: list[np.ndarray] = []
        self._compatibility: list[list[int]] = []
        self._scheduler: CycleScheduler = CycleScheduler(self._config)

        if nodes is not None:
            self.nodes = nodes
        if edges is not None:
            self.edges = edges

        if on_start:
            self._events[EventType.start] = on_start
        if on_tick:
            self._events[EventType.tick] = on_tick
        if on_end:
            self._events[EventType.end] = on_end

    # -------------------------------------------------------------------------
    # Properties
    # -------------------------------------------------------------------------

    @property
    def nodes(self) -> list[Node]:
        """Get the normalized list of nodes."""
        return self._nodes

    @nodes.setter
    def nodes(self, value: NodesInput) -> None:
        """Set nodes from a mapping of id -> node or a sequence of nodes."""
        if isinstance(value, Mapping):
            items = [(key, data, True) for key, data in value.items()]
        else:
            items = [(i, data, False) for i, data in enumerate(value)]

        nodes: list[Node] = []
        rows: dict[Hashable, int] = {}
        for key, data, keyed in items:
            node = _coerce_node(data, key, keyed)
            if node.id in rows:
                raise InvalidNodeError(f"Duplicate node id {node.id!r}")
            rows[node.id] = len(nodes)
            nodes.append(node)

        self._nodes = nodes
        self._node_rows = rows
        if nodes:
            self._positions = np.array([n.position for n in nodes], dtype=np.float64)
        else:
            self._positions = np.zeros((0, 3), dtype=np.float64)

    @property
    def edges(self) -> list[Edge]:
        """Get the list of input edges (self-loops included)."""
        return self._edges

    @edges.setter
    def edges(self, value: Sequence[EdgeLike]) -> None:
        """Set edges from Edge objects, dicts, tuples, or objects."""
        self._edges = [_coerce_edge(data, i) for i, data in enumerate(value)]

    @property
    def config(self) -> BundlingConfig:
        """Get the (immutable) configuration."""
        return self._config

    @property
    def state(self) -> BundlingState:
        """State of the current or last run."""
        return self._scheduler.state

    @property
    def edge_indices(self) -> list[int]:
        """Input edge index of each output path (self-loops are skipped)."""
        return self._edge_indices

    @property
    def bundled_edges(self) -> list[Edge]:
        """Edges that were bundled, in output order."""
        return [self._edges[i] for i in self._edge_indices]

    @property
    def paths(self) -> list[np.ndarray]:
        """Bundled paths of the last run, one (n_points, 3) array per edge."""
        return self._paths

    @property
    def compatibility(self) -> list[list[int]]:
        """Compatibility lists of the last run, indexed like paths."""
        return self._compatibility

    def configure(self, **changes: Any) -> Self:
        """
        Replace the configuration with a modified copy.

        Returns:
            self (for chaining)
        """
        self._config = self._config.replace(**changes)
        return self

    def to_polylines(self) -> list[list[tuple[float, float, float]]]:
        """Bundled paths as lists of (x, y, z) tuples."""
        return [[tuple(float(c) for c in point) for point in path] for path in self._paths]  # type: ignore[misc]

    # -------------------------------------------------------------------------
    # Event System
    # -------------------------------------------------------------------------

    def on(self, event: EventType | str, callback: Callable[[Optional[Event]], None]) -> Self:
        """
        Subscribe to a bundling event.

        Args:
            event: Event type (EventType enum or string name)
            callback: Function to call when event fires

        Returns:
            self (for chaining)
        """
        if isinstance(event, str):
            event = EventType[event]
        self._events[event] = callback
        return self

    def trigger(self, event: Event) -> None:
        """Trigger an event, calling the registered callback."""
        event_type = event.get("type")
        if event_type is not None and event_type in self._events:
            self._events[event_type](event)

    # -------------------------------------------------------------------------
    # Validation
    # -------------------------------------------------------------------------

    def validate(self) -> Self:
        """
        Validate current configuration.

        Called automatically by run() but can be called early for fail-fast
        behavior.

        Returns:
            self (for chaining)

        Raises:
            InvalidEdgeError: If any edge references an unknown node id.
        """
        if self._edges:
            validate_edge_references(self._edges, self._node_rows, strict=True)
        return self

    # -------------------------------------------------------------------------
    # Lifecycle Methods
    # -------------------------------------------------------------------------

    @abstractmethod
    def run(self, **kwargs: Any) -> Self:
        """
        Run the bundling algorithm.

        Keyword Args:
            Any BundlingConfig field, applied through configure() before
            the run and kept for later runs

        Returns:
            self (for chaining)

        Raises:
            InvalidParameterError: If a keyword is not a BundlingConfig field
        """
        pass

    def _prepare(self, **overrides: Any) -> tuple[np.ndarray, np.ndarray]:
        """
        Apply run overrides, validate input, drop self-loops and reset run state.

        Returns:
            (sources, targets) as (E, 3) arrays owned by the run
        """
        if overrides:
            self.configure(**overrides)
        self.validate()
        self._scheduler = CycleScheduler(self._config)
        self._paths = []
        self._compatibility = []

        src_rows = np.array([self._node_rows[e.source] for e in self._edges], dtype=np.intp)
        tgt_rows = np.array([self._node_rows[e.target] for e in self._edges], dtype=np.intp)
        sources = self._positions[src_rows].reshape(-1, 3)
        targets = self._positions[tgt_rows].reshape(-1, 3)

        keep = np.any(sources != targets, axis=-1)
        self._edge_indices = np.flatnonzero(keep).tolist()
        sources, targets = sources[keep].copy(), targets[keep].copy()
        self._check_stability(sources, targets)
        return sources, targets

    def _check_stability(self, sources: np.ndarray, targets: np.ndarray) -> None:
        """
        Warn when the first cycle's spring step is too stiff for the shortest edge.

        The spring update of an interior point is stable while
        S * kP <= 0.5, with kP = K / (|e| * (P + 1)). Later cycles only
        lower S * kP, so checking the first cycle is enough.
        """
        if len(sources) == 0:
            return
        config = self._config
        shortest = float(np.min(np.linalg.norm(targets - sources, axis=-1)))
        shortest = max(shortest, config.eps)
        step = config.S_initial * config.K / (shortest * (config.P_initial + 1))
        if step > STABLE_SPRING_STEP:
            warnings.warn(
                f"Shortest edge has length {shortest:.3g}; with K={config.K} and "
                f"S_initial={config.S_initial} the spring step {step:.3g} exceeds "
                f"{STABLE_SPRING_STEP} and paths may diverge. Rescale the node "
                "positions or lower K or S_initial.",
                StabilityWarning,
                stacklevel=4,
            )

    def _start_event(self) -> Event:
        return {"type": EventType.start, "cycle": 0}

    def _tick_event(self, cycle: int, subdivisions: int, step_size: float, iterations: int) -> Event:
        return {
            "type": EventType.tick,
            "cycle": cycle,
            "subdivisions": subdivisions,
            "step_size": step_size,
            "iterations": iterations,
        }


def _coerce_node(data: NodeLike, key: Hashable, keyed: bool) -> Node:
    """Build an owned Node from any supported node input."""
    if isinstance(data, Node):
        node_id = key if keyed or data.id is None else data.id
        node = Node(id=node_id, x=data.x, y=data.y, z=data.z)
    elif isinstance(data, dict):
        fields = dict(data)
        if keyed or fields.get("id") is None:
            fields["id"] = key
        node = Node(**fields)
    elif isinstance(data, (tuple, list, np.ndarray)):
        if len(data) not in (2, 3):
            raise InvalidNodeError(f"Node {key!r}: expected 2 or 3 coordinates, got {len(data)}")
        z = data[2] if len(data) == 3 else 0.0
        node = Node(id=key, x=data[0], y=data[1], z=z)
    elif hasattr(data, "x") and hasattr(data, "y"):
        node_id = getattr(data, "id", None)
        if keyed or node_id is None:
            node_id = key
        node = Node(id=node_id, x=data.x, y=data.y, z=getattr(data, "z", 0.0))
    else:
        raise InvalidNodeError(f"Node {key!r}: unsupported node type {type(data).__name__}")

    if not all(math.isfinite(c) for c in node.position):
        raise InvalidNodeError(f"Node {node.id!r}: coordinates must be finite, got {node.position}")
    return node


def _coerce_edge(data: EdgeLike, index: int) -> Edge:
    """Build an Edge from any supported edge input."""
    if isinstance(data, Edge):
        return data
    if isinstance(data, dict):
        if "source" not in data or "target" not in data:
            raise InvalidEdgeError(f"Edge {index}: dict must have 'source' and 'target'")
        return Edge(**data)
    if isinstance(data, (tuple, list)):
        if len(data) != 2:
            raise InvalidEdgeError(f"Edge {index}: expected (source, target), got {data!r}")
        return Edge(data[0], data[1])
    if hasattr(data, "source") and hasattr(data, "target"):
        return Edge(data.source, data.target)
    raise InvalidEdgeError(f"Edge {index}: unsupported edge type {type(data).__name__}")


__all__ = ["BaseBundling", "StabilityWarning", "STABLE_SPRING_STEP"]
