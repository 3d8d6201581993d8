"""
Cycle scheduling (the cooling schedule).

A bundling run performs C + 1 cycles. Each cycle re-subdivides the paths
and runs a number of force iterations. After every cycle the step size is
halved, the subdivision count grows by P_rate and the iteration count
decays by I_rate.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Iterator

from .config import BundlingConfig
from .types import BundlingState

# Absorbs float noise when the decayed iteration count is a whole number
# (90 * 2/3 must run 60 iterations, not 61).
_ITERATION_TOLERANCE = 1e-9


@dataclass(frozen=True)
class CycleParameters:
    """Parameters of a single cycle."""

    cycle: int
    subdivisions: int
    step_size: float
    iterations: int


def iteration_count(iterations: float) -> int:
    """Whole iterations for a (possibly fractional) iteration budget."""
    return max(0, math.ceil(iterations - _ITERATION_TOLERANCE))


class CycleScheduler:
    """
    Iterates the cooling schedule of a bundling run.

    The scheduler is a small state machine: initializing until iteration
    starts, cycling while cycles are handed out, done once the last cycle
    has completed. Iterating again restarts the schedule from the config.

    Example:
        scheduler = CycleScheduler(BundlingConfig(C=2))
        for params in scheduler:
            print(params.cycle, params.subdivisions, params.iterations)
        # 0 1 90
        # 1 2 60
        # 2 4 40
    """

    def __init__(self, config: BundlingConfig) -> None:
        self._config = config
        self._state = BundlingState.initializing
        self._completed = 0

    @property
    def state(self) -> BundlingState:
        """Current scheduler state."""
        return self._state

    @property
    def completed_cycles(self) -> int:
        """Number of cycles fully completed in the current schedule."""
        return self._completed

    @property
    def total_cycles(self) -> int:
        """Number of cycles in a full schedule (C + 1)."""
        return self._config.C + 1

    def __len__(self) -> int:
        return self.total_cycles

    def __iter__(self) -> Iterator[CycleParameters]:
        config = self._config
        step_size = config.S_initial
        subdivisions = config.P_initial
        iterations = config.I_initial

        self._completed = 0
        self._state = BundlingState.cycling
        for cycle in range(config.C + 1):
            yield CycleParameters(
                cycle=cycle,
                subdivisions=subdivisions,
                step_size=step_size,
                iterations=iteration_count(iterations),
            )
            self._completed += 1

            step_size = step_size / 2
            subdivisions = subdivisions * config.P_rate
            iterations = iterations * config.I_rate
        self._state = BundlingState.done


__all__ = ["CycleParameters", "CycleScheduler", "iteration_count"]
