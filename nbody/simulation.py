"""
Main Simulation Runner
Generates a configuration and evolves it frame by frame
"""

from typing import Dict, List, Optional

from .constants import PhysicalConstants, SimulationParameters
from .initial_conditions import generate
from .integrator import Integrator


class NBodySimulation:
    """Main class for running a continuous N-body simulation"""

    def __init__(self, sim_params: SimulationParameters):
        self.params = sim_params

        print(f"Initializing {sim_params.n_particles} bodies ({sim_params.configuration.value})...")
        self.arena = generate(sim_params.configuration, sim_params.n_particles,
                              seed=sim_params.seed, G=sim_params.G)

        self.integrator = Integrator(
            self.arena,
            dt=sim_params.dt,
            force_method=sim_params.force_method,
            softening=sim_params.softening,
            barnes_hut_theta=sim_params.barnes_hut_theta,
            G=PhysicalConstants.G_force,
        )

        self.snapshots: List[Dict] = []

    def run(self, renderer=None, save_interval: int = 10) -> List[Dict]:
        """
        Run the configured number of frames.

        Args:
            renderer: Optional Renderer receiving every frame
            save_interval: Frames between stored snapshots

        Returns:
            List of snapshots (see Integrator.evolve)
        """
        print("=" * 70)
        print(f"SIMULATION - {self.params.configuration.value}, {self.arena.count} bodies, "
              f"{self.params.n_frames} frames")
        print("=" * 70)

        self.snapshots = self.integrator.evolve(self.params.n_frames, renderer=renderer,
                                                save_interval=save_interval)
        self._print_diagnostics()

        return self.snapshots

    def _print_diagnostics(self) -> None:
        momentum = self.integrator.momentum_history
        if momentum:
            drift = abs(momentum[-1] - momentum[0]).max()
            print(f"Momentum drift: {drift:.3e}")

        energy = self.integrator.energy_history
        if len(energy) > 1 and energy[0] != 0:
            print(f"Relative energy change: {(energy[-1] - energy[0]) / abs(energy[0]):+.3e}")

        rms, max_r = self.arena.calculate_system_size(self.arena.positions(self.arena.count))
        print(f"System size: RMS = {rms:.3f}, max = {max_r:.3f}")

    def final_state(self) -> Optional[Dict]:
        return self.snapshots[-1] if self.snapshots else None
