"""
Physical Constants and Simulation Parameters
Handles the numerical constants shared by the generators, solvers and drivers
"""

from enum import Enum


class PhysicalConstants:
    """Physical and numerical constants in simulation units"""

    # Gravitational constant used by the initial-condition generators [m^3 kg^-1 s^-2]
    G = 6.67430e-11

    # Force law is evaluated in natural units (G = 1)
    G_force = 1.0

    # Plummer softening length (length units)
    softening = 0.1

    # Fixed integration timestep and frame count of the continuous simulation
    time_step = 0.01
    n_frames = 300

    # Default body count for a continuous simulation run
    n_particles = 1000


class SimulationType(Enum):
    """Initial-condition configurations"""
    RANDOM = "random"
    SPIRAL_GALAXY = "spiral_galaxy"
    BINARY_SYSTEM = "binary_system"
    SOLAR_SYSTEM = "solar_system"

    @property
    def min_capacity(self) -> int:
        """Smallest body count the configuration can be generated into."""
        if self is SimulationType.BINARY_SYSTEM:
            return 2
        if self is SimulationType.SOLAR_SYSTEM:
            return 10
        return 1


FORCE_METHODS = ('auto', 'direct', 'direct_parallel', 'direct_numpy',
                 'barnes_hut', 'barnes_hut_python')


class SimulationParameters:
    """Parameters for running an N-body simulation"""

    def __init__(self, n_particles: int = PhysicalConstants.n_particles,
                 configuration: SimulationType = SimulationType.SPIRAL_GALAXY,
                 seed: int = None, n_frames: int = PhysicalConstants.n_frames,
                 dt: float = PhysicalConstants.time_step, force_method: str = 'auto',
                 barnes_hut_theta: float = 0.5, softening: float = PhysicalConstants.softening,
                 G: float = PhysicalConstants.G, output_path: str = None):
        """
        Initialize simulation parameters.

        Args:
            n_particles: Number of bodies
            configuration: Initial-condition configuration
            seed: Random seed (None = nondeterministic)
            n_frames: Number of frames (integration steps)
            dt: Fixed timestep
            force_method: One of FORCE_METHODS
            barnes_hut_theta: Opening angle for the tree solvers
            softening: Softening length for every force evaluation
            G: Gravitational constant used to set orbital speeds
            output_path: Animation output file (None = derived from configuration)
        """
        if isinstance(configuration, str):
            configuration = SimulationType(configuration)
        if force_method not in FORCE_METHODS:
            raise ValueError(f"Unknown force method '{force_method}', expected one of {FORCE_METHODS}")
        if dt <= 0:
            raise ValueError(f"Timestep must be positive, got {dt}")

        self.n_particles = n_particles
        self.configuration = configuration
        self.seed = seed
        self.n_frames = n_frames
        self.dt = dt
        self.force_method = force_method
        self.barnes_hut_theta = barnes_hut_theta
        self.softening = softening
        self.G = G
        self.output_path = output_path

        # Calculate derived quantities
        self._calculate_derived()

    def _calculate_derived(self) -> None:
        """Calculate derived quantities."""
        self.t_end = self.n_frames * self.dt
        if self.output_path is None:
            self.output_path = f"{self.configuration.value}_simulation.gif"

    def __str__(self):
        return (f"Simulation Parameters:\n"
                f"  Configuration = {self.configuration.value}\n"
                f"  Particles = {self.n_particles}\n"
                f"  Seed = {self.seed}\n"
                f"  Frames = {self.n_frames} (dt = {self.dt}, t_end = {self.t_end:.3f})\n"
                f"  Force method = {self.force_method} (theta = {self.barnes_hut_theta})\n"
                f"  Softening = {self.softening}\n"
                f"  G = {self.G:.5e}")
