"""
Small fixed-size vector containers for single bodies.

Bulk state lives in numpy buffers (see bodies.BodyArena); these types are the
per-body view handed out and accepted by the arena.
"""

from dataclasses import dataclass

import numpy as np


@dataclass
class Vec3:
    """Three floating-point components (velocity, acceleration)"""
    x: float = 0.0
    y: float = 0.0
    z: float = 0.0

    @classmethod
    def from_array(cls, values) -> 'Vec3':
        return cls(float(values[0]), float(values[1]), float(values[2]))

    def as_array(self) -> np.ndarray:
        return np.array([self.x, self.y, self.z], dtype=np.float64)


@dataclass
class Vec4:
    """Position plus a fourth component; for bodies w is the mass"""
    x: float = 0.0
    y: float = 0.0
    z: float = 0.0
    w: float = 0.0

    @property
    def mass(self) -> float:
        return self.w

    @classmethod
    def from_array(cls, values) -> 'Vec4':
        return cls(float(values[0]), float(values[1]), float(values[2]), float(values[3]))

    def as_array(self) -> np.ndarray:
        return np.array([self.x, self.y, self.z, self.w], dtype=np.float64)
