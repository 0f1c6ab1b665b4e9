"""
N-Body Integrator
Handles force calculation and time evolution of the body arena
"""

from typing import Dict, List, Optional
import numpy as np
from tqdm import tqdm

from .bodies import BodyArena
from .constants import PhysicalConstants
from .direct import direct_accelerations, direct_accelerations_numpy
from .solvers import AlgorithmVariant, run_approximate_solver

# Potential energy builds (N, N, 3) intermediates; skip it above this size
MAX_ENERGY_BODIES = 2000


def semi_implicit_euler_step(bodies: np.ndarray, velocities: np.ndarray, accelerations: np.ndarray,
                             dt: float, n: Optional[int] = None) -> None:
    """
    Advance the first n bodies by one semi-implicit (symplectic) Euler step, in place.

    Velocity is kicked with the current acceleration first, then position
    drifts with the updated velocity. The mass column of `bodies` is not
    written.
    """
    if dt <= 0:
        raise ValueError(f"Timestep must be positive, got {dt}")
    if n is None:
        n = len(bodies)

    velocities[:n] += accelerations[:n] * dt
    bodies[:n, :3] += velocities[:n] * dt


class Integrator:
    """Fixed-step N-body integrator over a BodyArena"""

    def __init__(self, arena: BodyArena, dt: float = PhysicalConstants.time_step,
                 force_method: str = 'auto', softening: float = PhysicalConstants.softening,
                 barnes_hut_theta: float = 0.5, G: float = PhysicalConstants.G_force):
        """
        Initialize integrator.

        Args:
            arena: Populated bodies (arena.count bodies are integrated)
            dt: Fixed timestep
            force_method: 'auto' (barnes_hut for N>=5000, direct for N>=100,
                          direct_numpy otherwise), 'direct', 'direct_parallel',
                          'direct_numpy', 'barnes_hut' or 'barnes_hut_python'
            softening: Softening length
            barnes_hut_theta: Opening angle for the tree methods
            G: Gravitational constant of the force law
        """
        if dt <= 0:
            raise ValueError(f"Timestep must be positive, got {dt}")

        self.arena = arena
        self.n = arena.require()
        self.dt = dt
        self.force_method = force_method
        self.softening = softening
        self.barnes_hut_theta = barnes_hut_theta
        self.G = G
        self.time = 0.0

        # Determine actual method to use
        if force_method == 'auto':
            if self.n >= 5000:
                self._active_force_method = 'barnes_hut'
            elif self.n >= 100:
                self._active_force_method = 'direct'
            else:
                self._active_force_method = 'direct_numpy'
        else:
            self._active_force_method = force_method

        print(f"[Integrator] N = {self.n}, dt = {self.dt}, force method = {self._active_force_method}")

        # History tracking
        self.time_history = []
        self.momentum_history = []
        self.energy_history = []

    def calculate_accelerations(self) -> np.ndarray:
        """
        Recompute accelerations of every body into the arena buffer.

        Returns the (N, 3) view of arena.accelerations.
        """
        bodies = self.arena.bodies
        out = self.arena.accelerations
        method = self._active_force_method

        if method == 'direct':
            direct_accelerations(bodies, self.n, out, softening=self.softening, G=self.G)
        elif method == 'direct_parallel':
            direct_accelerations(bodies, self.n, out, softening=self.softening, G=self.G, parallel=True)
        elif method == 'direct_numpy':
            out[:self.n] = direct_accelerations_numpy(bodies, self.n, softening=self.softening, G=self.G)
        elif method == 'barnes_hut':
            run_approximate_solver(bodies, self.n, AlgorithmVariant.OCTREE_NUMBA, out,
                                   theta=self.barnes_hut_theta, softening=self.softening, G=self.G)
        elif method == 'barnes_hut_python':
            run_approximate_solver(bodies, self.n, AlgorithmVariant.OCTREE, out,
                                   theta=self.barnes_hut_theta, softening=self.softening, G=self.G)
        else:
            raise ValueError(f"Unknown force method '{method}'")

        return out[:self.n]

    def step(self) -> None:
        """Recompute accelerations, then take one semi-implicit Euler step."""
        self.calculate_accelerations()
        self.advance()

    def advance(self) -> None:
        """Kick-then-drift with the accelerations already in the arena."""
        semi_implicit_euler_step(self.arena.bodies, self.arena.velocities,
                                 self.arena.accelerations, self.dt, self.n)
        self.time += self.dt

    def evolve(self, n_frames: int, renderer=None, save_interval: int = 10) -> List[Dict]:
        """
        Run n_frames steps, handing each frame to the renderer before it is advanced.

        Renderer failures are reported and the integration continues.
        Returns snapshots taken every save_interval frames plus the final state.
        """
        print(f"Running semi-implicit Euler integration...")
        print(f"  dt = {self.dt}")
        print(f"  Total frames = {n_frames}")
        print(f"  Save interval = {save_interval}")

        snapshots = [self._save_snapshot()]
        diagnostics_interval = max(1, n_frames // 10)
        render_ok = renderer is not None

        for frame in tqdm(range(n_frames), mininterval=0.5 if self.n > 1000 else 0.1,
                          desc="Integrating", unit="frame"):
            self.calculate_accelerations()

            if render_ok:
                render_ok = self._render(renderer, frame)

            self.advance()

            if (frame + 1) % save_interval == 0:
                snapshots.append(self._save_snapshot())

            if (frame + 1) % diagnostics_interval == 0:
                self.time_history.append(self.time)
                self.momentum_history.append(self.arena.total_momentum(self.n))
                if self.n <= MAX_ENERGY_BODIES:
                    self.energy_history.append(self.total_energy())

        if n_frames % save_interval != 0:
            snapshots.append(self._save_snapshot())

        if renderer is not None:
            try:
                renderer.finalize()
            except Exception as exc:
                print(f"[Integrator] WARNING: renderer finalize failed: {exc}")

        print(f"Integration complete. Time = {self.time:.3f}")

        return snapshots

    def _render(self, renderer, frame: int) -> bool:
        """Render one frame; returns False once rendering is abandoned."""
        try:
            renderer.render_frame(self.arena.bodies, self.n, frame)
            return True
        except Exception as exc:
            print(f"[Integrator] WARNING: rendering frame {frame} failed ({exc}); "
                  f"continuing without rendering")
            return False

    def potential_energy(self) -> float:
        """Softened gravitational potential energy, summed over unique pairs."""
        positions = self.arena.positions(self.n)
        masses = self.arena.masses(self.n)

        r_vec = positions[np.newaxis, :, :] - positions[:, np.newaxis, :]  # Shape: (N, N, 3)
        r_soft = np.sqrt(np.sum(r_vec**2, axis=2) + self.softening**2)  # Shape: (N, N)
        mass_products = masses[:, np.newaxis] * masses[np.newaxis, :]  # Shape: (N, N)

        PE_matrix = -self.G * mass_products / r_soft

        # Upper triangle only to avoid double counting (and self terms)
        return float(np.sum(np.triu(PE_matrix, k=1)))

    def total_energy(self) -> float:
        """Kinetic + potential energy."""
        return self.arena.kinetic_energy(self.n) + self.potential_energy()

    def _save_snapshot(self) -> Dict:
        """Save current state."""
        snapshot = self.arena.snapshot(self.n)
        snapshot['time'] = self.time
        return snapshot
