"""
Body Storage
Holds the position/mass, velocity and acceleration of every body in
index-aligned numpy buffers
"""

from typing import Dict, Optional, Tuple
import numpy as np

from .vectors import Vec3, Vec4


class CapacityError(ValueError):
    """Requested body count does not fit the preallocated buffers"""


class BodyArena:
    """
    Parallel typed buffers for N bodies.

    Body i is row i of every buffer:
        bodies:        (capacity, 4) -> x, y, z, mass
        velocities:    (capacity, 3)
        accelerations: (capacity, 3)

    Buffers are allocated once and never resized, so views handed out by the
    accessors stay valid for the lifetime of the arena.
    """

    def __init__(self, capacity: int):
        if capacity < 1:
            raise CapacityError(f"Arena capacity must be >= 1, got {capacity}")

        self.capacity = int(capacity)
        self.bodies = np.zeros((self.capacity, 4), dtype=np.float64)
        self.velocities = np.zeros((self.capacity, 3), dtype=np.float64)
        self.accelerations = np.zeros((self.capacity, 3), dtype=np.float64)

        # Number of bodies currently populated
        self.count = 0

        assert len(self.bodies) == len(self.velocities) == len(self.accelerations)

    def require(self, n: Optional[int] = None) -> int:
        """
        Validate a body count against the arena.

        None means the populated count. Raises CapacityError before any
        buffer is touched.
        """
        if n is None:
            n = self.count
        if n < 0 or n > self.capacity:
            raise CapacityError(f"Body count {n} outside arena capacity {self.capacity}")
        return int(n)

    def _check_index(self, i: int) -> None:
        if i < 0 or i >= self.capacity:
            raise CapacityError(f"Body index {i} outside arena capacity {self.capacity}")

    def positions(self, n: Optional[int] = None) -> np.ndarray:
        """View of body positions, shape (n, 3)."""
        n = self.require(n)
        return self.bodies[:n, :3]

    def masses(self, n: Optional[int] = None) -> np.ndarray:
        """View of body masses, shape (n,)."""
        n = self.require(n)
        return self.bodies[:n, 3]

    def body(self, i: int) -> Vec4:
        """Position and mass of body i."""
        self._check_index(i)
        return Vec4.from_array(self.bodies[i])

    def velocity(self, i: int) -> Vec3:
        self._check_index(i)
        return Vec3.from_array(self.velocities[i])

    def set_body(self, i: int, body: Vec4, velocity: Vec3) -> None:
        """Overwrite position, mass and velocity of body i."""
        self._check_index(i)
        if body.mass < 0:
            raise ValueError(f"Body {i} has negative mass {body.mass}")
        self.bodies[i] = body.as_array()
        self.velocities[i] = velocity.as_array()

    def snapshot(self, n: Optional[int] = None) -> Dict:
        """Copy of the current state."""
        n = self.require(n)
        return {
            'n_bodies': n,
            'bodies': self.bodies[:n].copy(),
            'velocities': self.velocities[:n].copy(),
            'accelerations': self.accelerations[:n].copy(),
        }

    def total_momentum(self, n: Optional[int] = None) -> np.ndarray:
        """Sum of m*v over the first n bodies, shape (3,)."""
        n = self.require(n)
        return np.sum(self.masses(n)[:, np.newaxis] * self.velocities[:n], axis=0)

    def kinetic_energy(self, n: Optional[int] = None) -> float:
        """Total kinetic energy of the first n bodies."""
        n = self.require(n)
        v2 = np.sum(self.velocities[:n]**2, axis=1)
        return float(0.5 * np.sum(self.masses(n) * v2))

    def center_of_mass(self, n: Optional[int] = None) -> np.ndarray:
        """Mass-weighted mean position; geometric mean if all masses are zero."""
        n = self.require(n)
        masses = self.masses(n)
        total = np.sum(masses)
        if total > 0:
            return np.sum(self.positions(n) * masses[:, np.newaxis], axis=0) / total
        return np.mean(self.positions(n), axis=0)

    @staticmethod
    def calculate_system_size(positions: np.ndarray) -> Tuple[float, float]:
        """Return (rms_radius, max_radius) of positions about their mean."""
        com = np.mean(positions, axis=0)
        r = np.linalg.norm(positions - com, axis=1)
        return float(np.sqrt(np.mean(r**2))), float(np.max(r))

    def __len__(self):
        return self.count

    def __repr__(self):
        return f"BodyArena(count={self.count}, capacity={self.capacity})"
