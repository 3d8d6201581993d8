"""
Force-directed edge bundling (sequential reference implementation).

This module provides the building blocks of FDEB:
- compatibility: Pairwise edge compatibility scores and lists
- subdivision: Arc-length re-sampling of edge paths
- forces: Spring and electrostatic forces, one iteration at a time
- ForceEdgeBundling: Driver running the full cooling schedule
"""

from .bundling import PerformanceWarning, ForceEdgeBundling
from .compatibility import (
    angle_compatibility,
    compatibility_matrix,
    compatibility_score,
    compute_compatibility_lists,
    position_compatibility,
    scale_compatibility,
    visibility_compatibility,
)
from .forces import edge_spring_constants, electrostatic_forces, integrate, spring_forces
from .subdivision import initial_paths, subdivide_path, update_subdivisions

__all__ = [
    "ForceEdgeBundling",
    "PerformanceWarning",
    "angle_compatibility",
    "scale_compatibility",
    "position_compatibility",
    "visibility_compatibility",
    "compatibility_score",
    "compatibility_matrix",
    "compute_compatibility_lists",
    "edge_spring_constants",
    "spring_forces",
    "electrostatic_forces",
    "integrate",
    "initial_paths",
    "subdivide_path",
    "update_subdivisions",
]
