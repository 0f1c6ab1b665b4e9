"""
Direct O(N²) gravitational acceleration with Plummer softening.

This is the reference every approximate solver is checked against: exact
pairwise summation, no approximation. The numba kernels are the production
path; the NumPy broadcast version is kept for small N and cross-checks.
"""

from typing import Optional
import numpy as np
from numba import jit, prange

from .constants import PhysicalConstants


@jit(nopython=True, cache=True)
def calculate_forces_direct_numba(bodies, n, softening, G, out):
    """
    Direct O(N²) acceleration with numba JIT.

    Args:
        bodies: (>=n, 4) rows of x, y, z, mass
        n: number of leading bodies to use
        softening: softening length
        G: gravitational constant
        out: (>=n, 3) buffer, overwritten for the first n rows
    """
    eps2 = softening * softening

    for i in range(n):
        out[i, 0] = 0.0
        out[i, 1] = 0.0
        out[i, 2] = 0.0

    for i in range(n):
        ax = 0.0
        ay = 0.0
        az = 0.0
        for j in range(n):
            if i == j:
                continue

            dx = bodies[j, 0] - bodies[i, 0]
            dy = bodies[j, 1] - bodies[i, 1]
            dz = bodies[j, 2] - bodies[i, 2]

            r2 = dx*dx + dy*dy + dz*dz + eps2
            inv_r = 1.0 / np.sqrt(r2)
            s = G * bodies[j, 3] * inv_r * inv_r * inv_r

            ax += dx * s
            ay += dy * s
            az += dz * s

        out[i, 0] = ax
        out[i, 1] = ay
        out[i, 2] = az

    return out


@jit(nopython=True, parallel=True, cache=True)
def calculate_forces_direct_numba_parallel(bodies, n, softening, G, out):
    """
    Same kernel with the outer loop split across threads.

    Body i only writes row i and sums j in index order, so the result is
    identical to the serial kernel.
    """
    eps2 = softening * softening

    for i in prange(n):
        ax = 0.0
        ay = 0.0
        az = 0.0
        for j in range(n):
            if i == j:
                continue

            dx = bodies[j, 0] - bodies[i, 0]
            dy = bodies[j, 1] - bodies[i, 1]
            dz = bodies[j, 2] - bodies[i, 2]

            r2 = dx*dx + dy*dy + dz*dz + eps2
            inv_r = 1.0 / np.sqrt(r2)
            s = G * bodies[j, 3] * inv_r * inv_r * inv_r

            ax += dx * s
            ay += dy * s
            az += dz * s

        out[i, 0] = ax
        out[i, 1] = ay
        out[i, 2] = az

    return out


def _check_softening(softening: float) -> None:
    if not softening > 0:
        raise ValueError(f"Softening must be positive, got {softening}")


def direct_accelerations(bodies: np.ndarray, n: Optional[int] = None, out: Optional[np.ndarray] = None,
                         softening: float = PhysicalConstants.softening,
                         G: float = PhysicalConstants.G_force, parallel: bool = False) -> np.ndarray:
    """
    Brute-force accelerations for the first n bodies.

    Args:
        bodies: (N, 4) array of x, y, z, mass
        n: number of bodies to use (default: all rows)
        out: caller-owned (>=n, 3) buffer; a new one is allocated if None
        softening: softening length (must be > 0)
        G: gravitational constant of the force law
        parallel: split the outer loop across threads

    Returns:
        View of out[:n] with shape (n, 3)
    """
    _check_softening(softening)
    if n is None:
        n = len(bodies)
    if n > len(bodies):
        raise ValueError(f"Requested {n} bodies from an array of {len(bodies)}")
    if out is None:
        out = np.zeros((n, 3), dtype=np.float64)
    elif len(out) < n:
        raise ValueError(f"Output buffer holds {len(out)} rows, need {n}")

    bodies = np.ascontiguousarray(bodies, dtype=np.float64)
    kernel = calculate_forces_direct_numba_parallel if parallel else calculate_forces_direct_numba
    kernel(bodies, n, float(softening), float(G), out)
    return out[:n]


def direct_accelerations_numpy(bodies: np.ndarray, n: Optional[int] = None,
                               softening: float = PhysicalConstants.softening,
                               G: float = PhysicalConstants.G_force) -> np.ndarray:
    """
    Vectorized O(N²) accelerations using NumPy broadcasting.

    Builds (n, n, 3) intermediates, so only suitable for small n.

    Returns accelerations array with shape (n, 3).
    """
    _check_softening(softening)
    if n is None:
        n = len(bodies)
    positions = bodies[:n, :3]
    masses = bodies[:n, 3]

    # r_vec[i, j] points from body i to body j
    r_vec = positions[np.newaxis, :, :] - positions[:, np.newaxis, :]  # Shape: (n, n, 3)
    r2_soft = np.sum(r_vec**2, axis=2) + softening**2  # Shape: (n, n)
    inv_r3 = r2_soft ** -1.5

    # Drop self-interaction
    np.fill_diagonal(inv_r3, 0.0)

    weights = G * masses[np.newaxis, :] * inv_r3  # Shape: (n, n)
    return np.sum(weights[:, :, np.newaxis] * r_vec, axis=1)


class DirectSolver:
    """
    Direct O(N²) gravity solver with the same interface as the tree solvers.

    Exact results (no approximation).
    """

    def __init__(self, softening: float = PhysicalConstants.softening,
                 G: float = PhysicalConstants.G_force, parallel: bool = False):
        self.softening = softening
        self.G = G
        self.parallel = parallel
        self.bodies = None

    def build_tree(self, bodies: np.ndarray) -> None:
        """Store bodies (API compatible with tree solvers)."""
        self.bodies = np.ascontiguousarray(bodies, dtype=np.float64)

    def calculate_all_accelerations(self, out: Optional[np.ndarray] = None) -> np.ndarray:
        """Calculate accelerations using numba-compiled direct summation."""
        return direct_accelerations(self.bodies, out=out, softening=self.softening,
                                    G=self.G, parallel=self.parallel)
