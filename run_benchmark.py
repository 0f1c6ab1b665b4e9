#!/usr/bin/env python3
"""
Accuracy/scaling benchmark: approximate solver vs direct summation.

For each body count, runs the selected tree variant and the O(N²) direct
evaluator on the same bodies, and reports both timings and the relative
L2 error of the approximate accelerations.
"""

import sys

from nbody.cli import args_to_variant, parse_arguments
from nbody.constants import SimulationType
from nbody.initial_conditions import generate
from nbody.harness import BenchmarkHarness, benchmark_body_counts
from nbody.renderer import FrameRenderer
from nbody.timing_log import TimingLog


def main(argv=None):
    args = parse_arguments('Benchmark approximate N-body solvers against direct summation',
                           benchmark=True, argv=argv)

    body_counts = args.sizes if args.sizes else benchmark_body_counts(args.iterations)
    configuration = SimulationType(args.config)

    renderer = None
    if args.render:
        output = args.output or f"{configuration.value}_benchmark.gif"
        renderer = FrameRenderer(output, max_scale=args.max_scale)

    timing_log = TimingLog(args.timing_log) if args.timing_log else None

    print("=" * 70)
    print(f"BENCHMARK - {configuration.value}, variant={args.variant}, theta={args.theta}")
    print(f"Body counts: {body_counts}")
    print("=" * 70)

    arena = generate(configuration, max(body_counts), seed=args.seed, G=args.G)

    harness = BenchmarkHarness(
        arena.capacity,
        arena=arena,
        variant=args_to_variant(args),
        theta=args.theta,
        softening=args.softening,
        parallel_direct=args.parallel_direct,
        renderer=renderer,
        timing_log=timing_log,
    )
    harness.run(body_counts, warmup=not args.no_warmup)

    if timing_log is not None:
        print(f"\n{timing_log.rows_written} rows written to {timing_log.filepath}")

    return 0


if __name__ == '__main__':
    sys.exit(main())
