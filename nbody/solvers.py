"""
Approximate solver entry point.

The benchmark harness and the integrator reach the tree codes only through
run_approximate_solver(), which writes into a caller-owned acceleration
buffer instead of a shared global one.
"""

from enum import IntEnum
from typing import Dict
import numpy as np

from .barnes_hut import BarnesHutTree
from .barnes_hut_numba import NumbaBarnesHutTree
from .constants import PhysicalConstants


class AlgorithmVariant(IntEnum):
    """Which approximate force algorithm to run"""
    OCTREE = 0        # pure-Python recursive Barnes-Hut
    OCTREE_NUMBA = 1  # numba flat-array Barnes-Hut


class SolverError(RuntimeError):
    """The approximate solver could not produce accelerations"""


def make_solver(variant: AlgorithmVariant, theta: float = 0.5,
                softening: float = PhysicalConstants.softening,
                G: float = PhysicalConstants.G_force):
    """Construct the tree solver for a variant."""
    variant = AlgorithmVariant(variant)
    if variant is AlgorithmVariant.OCTREE:
        return BarnesHutTree(theta=theta, softening=softening, G=G)
    return NumbaBarnesHutTree(theta=theta, softening=softening, G=G)


def run_approximate_solver(bodies: np.ndarray, n: int, variant: AlgorithmVariant,
                           out: np.ndarray, theta: float = 0.5,
                           softening: float = PhysicalConstants.softening,
                           G: float = PhysicalConstants.G_force) -> Dict[str, float]:
    """
    Approximate accelerations for the first n bodies, written into out[:n].

    Args:
        bodies: (>=n, 4) rows of x, y, z, mass
        n: body count
        variant: AlgorithmVariant (or its integer value)
        out: caller-owned (>=n, 3) buffer
        theta, softening, G: solver parameters

    Returns:
        Stage timings {'build_s', 'traverse_s'} in seconds

    Raises:
        SolverError: for an unknown variant, an undersized buffer, or any
            failure inside the solver
    """
    try:
        variant = AlgorithmVariant(variant)
    except ValueError as exc:
        raise SolverError(f"Unknown algorithm variant {variant!r}") from exc
    if n < 0 or n > len(bodies) or n > len(out):
        raise SolverError(f"Body count {n} does not fit bodies[{len(bodies)}] / out[{len(out)}]")

    solver = make_solver(variant, theta=theta, softening=softening, G=G)
    try:
        solver.build_tree(bodies[:n])
        solver.calculate_all_accelerations(out=out[:n])
    except Exception as exc:
        raise SolverError(f"{variant.name} solver failed for N={n}: {exc}") from exc

    return dict(solver.timings)
