"""
Accuracy and timing harness for approximate solvers.

Each iteration runs the approximate solver and the direct O(N²) reference on
the same bodies, times both, and reduces the difference to one relative L2
error:

    L2 = sqrt( sum_i |a_approx_i - a_ref_i|² / |a_ref_i|² / N )
"""

import dataclasses
import time
from dataclasses import dataclass
from typing import Iterable, List, Optional, Tuple
import numpy as np

from .bodies import BodyArena, CapacityError
from .constants import PhysicalConstants, SimulationType
from .direct import direct_accelerations
from .initial_conditions import generate
from .solvers import AlgorithmVariant, run_approximate_solver
from .timing_log import TimingLog


@dataclass(frozen=True)
class ErrorTimingRecord:
    """Result of one benchmark iteration"""
    n: int
    approx_s: float
    direct_s: float
    l2_error: float
    build_s: float = 0.0
    traverse_s: float = 0.0
    n_degenerate: int = 0

    @property
    def speedup(self) -> float:
        return self.direct_s / self.approx_s if self.approx_s > 0 else float('inf')

    def as_dict(self) -> dict:
        return dataclasses.asdict(self)


def benchmark_body_counts(n_iterations: int, start: int = 0) -> List[int]:
    """Geometric schedule N_k = int(10^((k + 32) / 8)): 10000, 13335, 17782, ..."""
    return [int(10 ** ((k + 32) / 8.0)) for k in range(start, start + n_iterations)]


def relative_l2_error(approx: np.ndarray, reference: np.ndarray) -> float:
    """
    Relative L2 error of approximate accelerations against the reference.

    Bodies whose reference acceleration is exactly zero have no relative
    scale; they contribute their absolute squared difference instead (zero
    when the approximation is zero too), so the result is always finite.
    """
    n = len(reference)
    if n == 0:
        return 0.0

    difference = np.sum((approx[:n] - reference) ** 2, axis=1)
    normalizer = np.sum(reference ** 2, axis=1)
    terms = np.divide(difference, normalizer, out=difference.copy(), where=normalizer > 0)

    return float(np.sqrt(np.sum(terms / n)))


class BenchmarkHarness:
    """
    Runs approximate-vs-direct comparisons over a series of body counts.

    Bodies are generated once at max_bodies; iteration N uses the first N.
    """

    def __init__(self, max_bodies: int, configuration: SimulationType = SimulationType.RANDOM,
                 variant: AlgorithmVariant = AlgorithmVariant.OCTREE_NUMBA, seed: Optional[int] = None,
                 theta: float = 0.5, softening: float = PhysicalConstants.softening,
                 G: float = PhysicalConstants.G_force, parallel_direct: bool = False,
                 renderer=None, timing_log: Optional[TimingLog] = None,
                 arena: Optional[BodyArena] = None):
        """
        Args:
            max_bodies: Largest N any iteration will use
            configuration: Initial-condition configuration for the bodies
            variant: Approximate solver variant
            seed: Seed for body generation
            theta: Opening angle for the approximate solver
            softening: Softening length shared by both solvers
            G: Gravitational constant of the force law
            parallel_direct: Use the threaded direct kernel for the reference
            renderer: Optional Renderer receiving the bodies before/after each solve
            timing_log: Optional TimingLog receiving one row per iteration
            arena: Pre-populated bodies to use instead of generating them
        """
        self.variant = AlgorithmVariant(variant)
        self.theta = theta
        self.softening = softening
        self.G = G
        self.parallel_direct = parallel_direct
        self.renderer = renderer
        self.timing_log = timing_log

        if arena is None:
            arena = generate(configuration, max_bodies, seed=seed)
        self.arena = arena
        self.max_bodies = arena.capacity

        # Approximate result is copied here before the reference overwrites the shared buffer
        self.approx_accelerations = np.zeros((self.max_bodies, 3), dtype=np.float64)
        self._records: List[ErrorTimingRecord] = []

    @property
    def records(self) -> Tuple[ErrorTimingRecord, ...]:
        return tuple(self._records)

    def warmup(self, n: int = 64) -> None:
        """Compile the JIT kernels on a small prefix so the first timed run excludes compilation."""
        n = min(n, self.arena.count)
        scratch = np.zeros((n, 3), dtype=np.float64)
        run_approximate_solver(self.arena.bodies, n, self.variant, scratch,
                               theta=self.theta, softening=self.softening, G=self.G)
        direct_accelerations(self.arena.bodies, n, scratch, softening=self.softening,
                             G=self.G, parallel=self.parallel_direct)

    def _render(self, n: int, frame_index: int) -> None:
        if self.renderer is None:
            return
        try:
            self.renderer.render_frame(self.arena.bodies, n, frame_index)
            if frame_index > 0:
                self.renderer.finalize()
        except Exception as exc:
            print(f"[Harness] WARNING: rendering failed for N={n}: {exc}")

    def _require(self, n: int) -> int:
        n = self.arena.require(n)
        if n > self.arena.count:
            raise CapacityError(f"Only {self.arena.count} bodies populated, {n} requested")
        return n

    def run_iteration(self, n: int) -> ErrorTimingRecord:
        """
        Compare solvers on the first n bodies.

        Raises CapacityError if n exceeds the arena, SolverError if the
        approximate solver fails. Neither is retried.
        """
        n = self._require(n)
        bodies = self.arena.bodies
        shared = self.arena.accelerations

        print(f"N = {n}")
        self._render(n, 0)

        t0 = time.perf_counter()
        stages = run_approximate_solver(bodies, n, self.variant, shared,
                                        theta=self.theta, softening=self.softening, G=self.G)
        approx_s = time.perf_counter() - t0
        print(f"approx : {approx_s:g}")

        self.approx_accelerations[:n] = shared[:n]

        self._render(n, 1)

        t0 = time.perf_counter()
        reference = direct_accelerations(bodies, n, shared, softening=self.softening,
                                         G=self.G, parallel=self.parallel_direct)
        direct_s = time.perf_counter() - t0
        print(f"direct : {direct_s:g}")

        l2_error = relative_l2_error(self.approx_accelerations[:n], reference)
        n_degenerate = int(np.count_nonzero(np.sum(reference ** 2, axis=1) == 0.0))
        print(f"error  : {l2_error:g}\n")

        record = ErrorTimingRecord(
            n=n,
            approx_s=approx_s,
            direct_s=direct_s,
            l2_error=l2_error,
            build_s=stages.get('build_s', 0.0),
            traverse_s=stages.get('traverse_s', 0.0),
            n_degenerate=n_degenerate,
        )
        self._records.append(record)

        if self.timing_log is not None:
            self.timing_log.append(record.as_dict())

        return record

    def run(self, body_counts: Iterable[int], warmup: bool = True) -> List[ErrorTimingRecord]:
        """Run one iteration per body count and print a summary."""
        body_counts = list(body_counts)
        for n in body_counts:
            self._require(n)

        if warmup and body_counts:
            self.warmup()

        results = [self.run_iteration(n) for n in body_counts]

        print("=" * 70)
        print(f"BENCHMARK SUMMARY ({self.variant.name}, theta={self.theta})")
        print("=" * 70)
        for record in results:
            print(f"  N={record.n:7d}: approx={record.approx_s*1000:9.2f} ms, "
                  f"direct={record.direct_s*1000:9.2f} ms, "
                  f"speedup={record.speedup:6.1f}x, L2={record.l2_error:.3e}")
        print("=" * 70)

        return results
