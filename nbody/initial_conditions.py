"""
Initial Conditions
Places bodies into one of the named starting configurations
"""

from typing import Optional
import numpy as np

from .bodies import BodyArena, CapacityError
from .constants import PhysicalConstants, SimulationType
from .vectors import Vec3, Vec4


# Solar-system slots 1-9: approximate orbital radii and masses relative to Earth
PLANET_RADII = np.array([0.4, 0.7, 1.0, 1.5, 5.2, 9.5, 19.2, 30.1, 39.5])
PLANET_MASSES = np.array([0.055, 0.815, 1.0, 0.107, 317.8, 95.2, 14.5, 17.1, 0.002])

SPIRAL_CENTER_MASS = 100.0
BINARY_STAR_MASS = 50.0
SUN_MASS = 50.0


def _tangential_velocities(angles: np.ndarray, speeds: np.ndarray) -> np.ndarray:
    """Counter-clockwise in-plane velocity perpendicular to the radius vector."""
    velocities = np.zeros((len(angles), 3))
    velocities[:, 0] = -speeds * np.sin(angles)
    velocities[:, 1] = speeds * np.cos(angles)
    return velocities


def _random_cloud(arena: BodyArena, n: int, rng: np.random.Generator) -> None:
    """Uniform cube of half-width 10 with small random velocities."""
    arena.bodies[:n, :3] = rng.uniform(-10.0, 10.0, size=(n, 3))
    arena.bodies[:n, 3] = rng.uniform(0.1, 1.0, size=n)
    arena.velocities[:n] = rng.uniform(-10.0, 10.0, size=(n, 3)) * 0.1


def _spiral_galaxy(arena: BodyArena, n: int, rng: np.random.Generator, G: float) -> None:
    """
    Massive center plus a thin disk with logarithmic-looking spiral arms.

    The arm pattern comes from rotating each body by an extra angle/10, and
    the disk gets thinner toward the center (height scales with radius).
    """
    arena.set_body(0, Vec4(0.0, 0.0, 0.0, SPIRAL_CENTER_MASS), Vec3())

    m = n - 1
    if m == 0:
        return

    angles = rng.uniform(0.0, 2.0 * np.pi, size=m)
    radii = rng.uniform(0.1, 10.0, size=m)
    heights = rng.uniform(-0.5, 0.5, size=m)
    masses = rng.uniform(0.1, 1.0, size=m)

    arm_angles = angles + angles / 10.0

    arena.bodies[1:n, 0] = radii * np.cos(arm_angles)
    arena.bodies[1:n, 1] = radii * np.sin(arm_angles)
    arena.bodies[1:n, 2] = heights * (radii / 10.0)
    arena.bodies[1:n, 3] = masses

    # Circular orbit about the central mass
    speeds = np.sqrt(G * SPIRAL_CENTER_MASS / radii)
    arena.velocities[1:n] = _tangential_velocities(arm_angles, speeds)


def _binary_system(arena: BodyArena, n: int, rng: np.random.Generator, G: float) -> None:
    """Two equal stars in mutual orbit with planets on deliberately sub-circular orbits."""
    arena.set_body(0, Vec4(-2.0, 0.0, 0.0, BINARY_STAR_MASS), Vec3(0.0, -1.0, 0.0))
    arena.set_body(1, Vec4(2.0, 0.0, 0.0, BINARY_STAR_MASS), Vec3(0.0, 1.0, 0.0))

    m = n - 2
    if m == 0:
        return

    angles = rng.uniform(0.0, 2.0 * np.pi, size=m)
    radii = rng.uniform(3.0, 10.0, size=m)
    tilt_angles = rng.uniform(0.0, 2.0 * np.pi, size=m)
    masses = rng.uniform(0.1, 0.5, size=m)

    arena.bodies[2:n, 0] = radii * np.cos(angles)
    arena.bodies[2:n, 1] = radii * np.sin(angles)
    arena.bodies[2:n, 2] = (tilt_angles - np.pi) * 0.1
    arena.bodies[2:n, 3] = masses

    # 0.7 of the circular speed about the combined stellar mass
    center_mass = 2.0 * BINARY_STAR_MASS
    speeds = np.sqrt(G * center_mass / radii) * 0.7
    arena.velocities[2:n] = _tangential_velocities(angles, speeds)


def _solar_system(arena: BodyArena, n: int, rng: np.random.Generator, G: float) -> None:
    """Sun, nine planets at fixed radii, and randomized debris."""
    arena.set_body(0, Vec4(0.0, 0.0, 0.0, SUN_MASS), Vec3())

    # Planets spread evenly in angle
    angles = 2.0 * np.pi * np.arange(9) / 9.0
    arena.bodies[1:10, 0] = PLANET_RADII * np.cos(angles)
    arena.bodies[1:10, 1] = PLANET_RADII * np.sin(angles)
    arena.bodies[1:10, 2] = 0.0
    arena.bodies[1:10, 3] = 0.5 + PLANET_MASSES * 0.1  # scaled for visualization

    speeds = np.sqrt(G * SUN_MASS / PLANET_RADII) * 0.5
    arena.velocities[1:10] = _tangential_velocities(angles, speeds)

    m = n - 10
    if m == 0:
        return

    angles = rng.uniform(0.0, 2.0 * np.pi, size=m)
    radii = rng.uniform(0.3, 40.0, size=m)
    heights = rng.uniform(-0.5, 0.5, size=m)
    masses = rng.uniform(0.01, 0.1, size=m)

    arena.bodies[10:n, 0] = radii * np.cos(angles)
    arena.bodies[10:n, 1] = radii * np.sin(angles)
    arena.bodies[10:n, 2] = heights
    arena.bodies[10:n, 3] = masses

    speeds = np.sqrt(G * SUN_MASS / radii) * 0.5
    arena.velocities[10:n] = _tangential_velocities(angles, speeds)


def generate(configuration: SimulationType, capacity: int, seed: Optional[int] = None,
             G: float = PhysicalConstants.G, arena: Optional[BodyArena] = None) -> BodyArena:
    """
    Populate bodies for a configuration.

    Args:
        configuration: SimulationType (or its string value)
        capacity: Number of bodies to generate
        seed: Seed for the random subset (None = nondeterministic)
        G: Gravitational constant used for orbital speeds
        arena: Existing arena to fill; a new one of size `capacity` if None

    Returns:
        The populated BodyArena with count == capacity. Rows beyond
        `capacity` in a larger arena are left untouched.
    """
    if isinstance(configuration, str):
        configuration = SimulationType(configuration)

    if capacity < configuration.min_capacity:
        raise CapacityError(
            f"{configuration.value} needs at least {configuration.min_capacity} bodies, got {capacity}"
        )
    if arena is None:
        arena = BodyArena(capacity)
    elif arena.capacity < capacity:
        raise CapacityError(f"Cannot generate {capacity} bodies into arena of capacity {arena.capacity}")

    rng = np.random.default_rng(seed)

    if configuration is SimulationType.RANDOM:
        _random_cloud(arena, capacity, rng)
    elif configuration is SimulationType.SPIRAL_GALAXY:
        _spiral_galaxy(arena, capacity, rng, G)
    elif configuration is SimulationType.BINARY_SYSTEM:
        _binary_system(arena, capacity, rng, G)
    elif configuration is SimulationType.SOLAR_SYSTEM:
        _solar_system(arena, capacity, rng, G)

    arena.accelerations[:capacity] = 0.0
    arena.count = capacity

    print(f"[InitialConditions] {configuration.value}: {capacity} bodies, "
          f"total mass {np.sum(arena.masses(capacity)):.3f}")

    return arena
