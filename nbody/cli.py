"""
Command-line interface utilities for N-body runs.
Provides shared argument parsing for run_simulation.py and run_benchmark.py.
"""

import argparse
from typing import List, Optional

from .constants import FORCE_METHODS, PhysicalConstants, SimulationParameters, SimulationType
from .solvers import AlgorithmVariant


CONFIG_CHOICES = [t.value for t in SimulationType]
VARIANT_CHOICES = [v.name.lower() for v in AlgorithmVariant]


def add_common_arguments(parser: argparse.ArgumentParser) -> None:
    """
    Add arguments shared across all CLI scripts.

    Arguments added:
    - --particles: Number of bodies
    - --config: Initial-condition configuration
    - --seed: Random seed
    - --theta: Barnes-Hut opening angle
    - --softening: Softening length
    - --G: Gravitational constant used to set orbital speeds
    - --output: Animation output file
    - --max-scale: Renderer pixels-per-unit cap
    """
    parser.add_argument('--particles', type=int, default=PhysicalConstants.n_particles,
                        help='Number of bodies')
    parser.add_argument('--config', type=str, default=SimulationType.SPIRAL_GALAXY.value,
                        choices=CONFIG_CHOICES,
                        help='Initial-condition configuration')
    parser.add_argument('--seed', type=int, default=None,
                        help='Random seed (omit for a nondeterministic run)')

    parser.add_argument('--theta', type=float, default=0.5,
                        help='Barnes-Hut opening angle (0 = exact)')
    parser.add_argument('--softening', type=float, default=PhysicalConstants.softening,
                        help='Softening length')
    parser.add_argument('--G', type=float, default=PhysicalConstants.G,
                        help='Gravitational constant used for initial orbital speeds')

    parser.add_argument('--output', type=str, default=None,
                        help='Animation output file (default: <config>_simulation.gif)')
    parser.add_argument('--max-scale', type=float, default=1.0,
                        help='Upper bound on renderer pixels per length unit')


def add_simulation_arguments(parser: argparse.ArgumentParser) -> None:
    """Arguments for the continuous simulation driver."""
    parser.add_argument('--frames', type=int, default=PhysicalConstants.n_frames,
                        help='Number of frames (integration steps)')
    parser.add_argument('--dt', type=float, default=PhysicalConstants.time_step,
                        help='Fixed timestep')
    parser.add_argument('--force-method', type=str, default='auto', choices=FORCE_METHODS,
                        help='Force calculation method')
    parser.add_argument('--no-render', action='store_true',
                        help='Skip writing the animation')


def add_benchmark_arguments(parser: argparse.ArgumentParser) -> None:
    """Arguments for the accuracy/timing benchmark driver."""
    parser.add_argument('--iterations', type=int, default=3,
                        help='Number of body counts in the schedule N_k = 10^((k+32)/8)')
    parser.add_argument('--sizes', type=int, nargs='+', default=None,
                        help='Explicit body counts (overrides --iterations)')
    parser.add_argument('--variant', type=str, default='octree_numba', choices=VARIANT_CHOICES,
                        help='Approximate solver variant')
    parser.add_argument('--parallel-direct', action='store_true',
                        help='Use the threaded direct kernel for the reference')
    parser.add_argument('--timing-log', type=str, default='timing.txt',
                        help='Timing log file (empty string disables)')
    parser.add_argument('--render', action='store_true',
                        help='Render the bodies before and after each solve')
    parser.add_argument('--no-warmup', action='store_true',
                        help='Charge JIT compilation to the first iteration')


def parse_arguments(description: str = 'Run N-Body Simulation', benchmark: bool = False,
                    argv: Optional[List[str]] = None) -> argparse.Namespace:
    """
    Create parser with common arguments and parse command line.

    Args:
        description: Help text description for the parser
        benchmark: If True, adds the benchmark arguments instead of the simulation ones
        argv: Argument list (None = sys.argv)

    Returns:
        Parsed arguments namespace
    """
    parser = argparse.ArgumentParser(
        description=description,
        formatter_class=argparse.ArgumentDefaultsHelpFormatter
    )

    add_common_arguments(parser)
    if benchmark:
        add_benchmark_arguments(parser)
    else:
        add_simulation_arguments(parser)

    return parser.parse_args(argv)


def args_to_sim_params(args: argparse.Namespace) -> SimulationParameters:
    """
    Convert parsed simulation arguments to SimulationParameters.

    Args:
        args: Parsed argument namespace from argparse

    Returns:
        SimulationParameters configured from CLI args
    """
    return SimulationParameters(
        n_particles=args.particles,
        configuration=SimulationType(args.config),
        seed=args.seed,
        n_frames=args.frames,
        dt=args.dt,
        force_method=args.force_method,
        barnes_hut_theta=args.theta,
        softening=args.softening,
        G=args.G,
        output_path=args.output
    )


def args_to_variant(args: argparse.Namespace) -> AlgorithmVariant:
    return AlgorithmVariant[args.variant.upper()]
