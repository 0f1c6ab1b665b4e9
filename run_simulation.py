#!/usr/bin/env python3
"""
N-Body Simulation
Main script to generate a configuration, evolve it and write the animation.
"""

import os
import sys

from nbody.cli import args_to_sim_params, parse_arguments
from nbody.renderer import FrameRenderer
from nbody.simulation import NBodySimulation


def run_simulation(sim_params, render=True, max_scale=1.0):
    """Run a continuous simulation

    Parameters:
    -----------
    sim_params : SimulationParameters
        Simulation configuration parameters
    render : bool
        Write an animation of every frame to sim_params.output_path
    max_scale : float
        Renderer pixels-per-unit cap

    Returns:
    --------
    NBodySimulation
        The finished simulation (snapshots and histories attached)
    """
    print(sim_params)

    sim = NBodySimulation(sim_params)
    renderer = FrameRenderer(sim_params.output_path, max_scale=max_scale) if render else None
    sim.run(renderer=renderer)

    if render and os.path.exists(sim_params.output_path):
        print(f"\nAnimation: {os.path.abspath(sim_params.output_path)}")

    return sim


def main(argv=None):
    args = parse_arguments('Run N-Body Simulation', argv=argv)
    sim_params = args_to_sim_params(args)

    run_simulation(sim_params, render=not args.no_render, max_scale=args.max_scale)

    print("\nSimulation complete!")
    return 0


if __name__ == "__main__":
    sys.exit(main())
