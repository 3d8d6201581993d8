"""
Immutable bundling configuration.

All tunable parameters of a bundling run live in a single frozen
BundlingConfig value. Drivers receive it at construction time and never
mutate it; use BundlingConfig.replace() to derive a modified copy.
"""

from __future__ import annotations

import dataclasses
from dataclasses import dataclass
from typing import Any, Literal, Optional

from .validation import (
    InvalidParameterError,
    validate_count,
    validate_non_negative,
    validate_positive,
    validate_threshold,
)

CapacityPolicy = Literal["error", "drop"]


@dataclass(frozen=True)
class BundlingConfig:
    """
    Parameters of the FDEB simulation.

    Attributes:
        K: Global bundling stiffness (spring constant numerator)
        S_initial: Initial step size, halved after each cycle
        P_initial: Initial number of interior subdivision points
        P_rate: Subdivision growth factor per cycle
        C: Number of cycles after the first (C + 1 cycles run in total)
        I_initial: Initial number of iterations per cycle
        I_rate: Iteration decay factor per cycle
        compatibility_threshold: Minimum compatibility score for two edges
            to attract each other
        eps: Numerical floor for lengths and coincidence tests
        max_compatible_edges: Compatibility slots per edge (parallel only)
        capacity_policy: What to do when an edge has more compatible edges
            than slots: "error" raises, "drop" keeps the first slots and warns
        max_buffer_extent: Override of the substrate's maximum buffer
            width/height (parallel only)
        keep_kernels: Keep compiled kernels alive between parallel runs
    """

    K: float = 0.1
    S_initial: float = 0.1
    P_initial: int = 1
    P_rate: int = 2
    C: int = 6
    I_initial: float = 90
    I_rate: float = 2.0 / 3.0
    compatibility_threshold: float = 0.6
    eps: float = 1e-6
    max_compatible_edges: int = 500
    capacity_policy: CapacityPolicy = "error"
    max_buffer_extent: Optional[int] = None
    keep_kernels: bool = False

    def __post_init__(self) -> None:
        # Normalize through object.__setattr__ since the dataclass is frozen
        set_ = object.__setattr__
        set_(self, "K", validate_non_negative("K", self.K))
        set_(self, "S_initial", validate_non_negative("S_initial", self.S_initial))
        set_(self, "P_initial", validate_count("P_initial", self.P_initial))
        set_(self, "P_rate", validate_count("P_rate", self.P_rate))
        set_(self, "C", validate_count("C", self.C, minimum=0))
        set_(self, "I_initial", validate_non_negative("I_initial", self.I_initial))
        set_(self, "I_rate", validate_non_negative("I_rate", self.I_rate))
        set_(
            self,
            "compatibility_threshold",
            validate_threshold(self.compatibility_threshold),
        )
        set_(self, "eps", validate_positive("eps", self.eps))
        set_(
            self,
            "max_compatible_edges",
            validate_count("max_compatible_edges", self.max_compatible_edges),
        )
        if self.capacity_policy not in ("error", "drop"):
            raise InvalidParameterError(
                f"capacity_policy must be 'error' or 'drop', got {self.capacity_policy!r}"
            )
        if self.max_buffer_extent is not None:
            set_(
                self,
                "max_buffer_extent",
                validate_count("max_buffer_extent", self.max_buffer_extent, minimum=2),
            )
        set_(self, "keep_kernels", bool(self.keep_kernels))

    @property
    def output_point_count(self) -> int:
        """Points per edge in the final result: P_initial * P_rate^C + 2."""
        return self.P_initial * self.P_rate**self.C + 2

    def replace(self, **changes: Any) -> BundlingConfig:
        """
        Return a validated copy with the given fields changed.

        Raises:
            InvalidParameterError: If a name is not a config field or a value
                is out of range
        """
        known = {f.name for f in dataclasses.fields(self)}
        unknown = sorted(set(changes) - known)
        if unknown:
            raise InvalidParameterError(f"Unknown config field(s): {', '.join(unknown)}")
        return dataclasses.replace(self, **changes)


DEFAULT_CONFIG = BundlingConfig()


__all__ = ["BundlingConfig", "CapacityPolicy", "DEFAULT_CONFIG"]
