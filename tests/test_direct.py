"""
Unit tests for direct force calculations
Testing the softened pairwise gravity every other solver is checked against
"""

import unittest
import numpy as np
from nbody.direct import (
    DirectSolver,
    direct_accelerations,
    direct_accelerations_numpy,
)


def make_bodies(n, seed=0):
    rng = np.random.default_rng(seed)
    bodies = np.empty((n, 4))
    bodies[:, :3] = rng.uniform(-10.0, 10.0, size=(n, 3))
    bodies[:, 3] = rng.uniform(0.1, 1.0, size=n)
    return bodies


class TestGravitationalForces(unittest.TestCase):
    """Test basic gravitational force calculations"""

    def test_two_body_attraction(self):
        """Two bodies accelerate toward each other"""
        bodies = np.array([
            [0.0, 0.0, 0.0, 1.0],
            [1.0, 0.0, 0.0, 1.0],
        ])
        a = direct_accelerations(bodies)

        self.assertGreater(a[0, 0], 0)
        self.assertLess(a[1, 0], 0)
        np.testing.assert_array_equal(a[:, 1:], 0.0)

    def test_softened_magnitude(self):
        """|a| = m * d / (d^2 + eps^2)^1.5"""
        bodies = np.array([
            [0.0, 0.0, 0.0, 1.0],
            [2.0, 0.0, 0.0, 3.0],
        ])
        a = direct_accelerations(bodies, softening=0.1)
        expected = 3.0 * 2.0 / (4.0 + 0.01) ** 1.5
        self.assertAlmostEqual(a[0, 0], expected, places=14)

    def test_newtons_third_law(self):
        """m0 * a0 = -m1 * a1 for a pair"""
        bodies = np.array([
            [0.3, -1.0, 2.0, 2.5],
            [-1.2, 0.7, 0.4, 0.4],
        ])
        a = direct_accelerations(bodies)
        np.testing.assert_allclose(bodies[0, 3] * a[0], -bodies[1, 3] * a[1], rtol=1e-12)

    def test_colinear_three_body(self):
        """Centre of a symmetric line feels nothing; the ends are pulled inward"""
        bodies = np.array([
            [-1.0, 0.0, 0.0, 1.0],
            [0.0, 0.0, 0.0, 1.0],
            [1.0, 0.0, 0.0, 1.0],
        ])
        for a in (direct_accelerations(bodies), direct_accelerations_numpy(bodies)):
            np.testing.assert_array_equal(a[1], [0.0, 0.0, 0.0])
            self.assertGreater(a[0, 0], 0)
            self.assertLess(a[2, 0], 0)

    def test_coincident_bodies_finite(self):
        """Softening keeps coincident bodies finite (they exert zero force on each other)"""
        bodies = np.array([
            [1.0, 1.0, 1.0, 1.0],
            [1.0, 1.0, 1.0, 1.0],
        ])
        a = direct_accelerations(bodies)
        self.assertTrue(np.all(np.isfinite(a)))
        np.testing.assert_array_equal(a, 0.0)

    def test_zero_mass_body(self):
        """A massless body exerts nothing but is still accelerated"""
        bodies = np.array([
            [0.0, 0.0, 0.0, 0.0],
            [1.0, 0.0, 0.0, 1.0],
        ])
        a = direct_accelerations(bodies)
        self.assertGreater(a[0, 0], 0)
        np.testing.assert_array_equal(a[1], 0.0)

    def test_single_body(self):
        a = direct_accelerations(np.array([[1.0, 2.0, 3.0, 5.0]]))
        np.testing.assert_array_equal(a, [[0.0, 0.0, 0.0]])

    def test_output_finite(self):
        a = direct_accelerations(make_bodies(300))
        self.assertTrue(np.all(np.isfinite(a)))

    def test_gravitational_constant_scales(self):
        bodies = make_bodies(20)
        np.testing.assert_allclose(direct_accelerations(bodies, G=2.5),
                                   2.5 * direct_accelerations(bodies), rtol=1e-12)


class TestImplementationsAgree(unittest.TestCase):

    def setUp(self):
        self.bodies = make_bodies(150, seed=3)

    def test_numba_vs_numpy(self):
        np.testing.assert_allclose(direct_accelerations(self.bodies),
                                   direct_accelerations_numpy(self.bodies),
                                   rtol=1e-10, atol=1e-12)

    def test_serial_vs_parallel(self):
        np.testing.assert_allclose(direct_accelerations(self.bodies),
                                   direct_accelerations(self.bodies, parallel=True),
                                   rtol=1e-14, atol=0)

    def test_direct_solver_api(self):
        solver = DirectSolver()
        solver.build_tree(self.bodies)
        np.testing.assert_allclose(solver.calculate_all_accelerations(),
                                   direct_accelerations(self.bodies), rtol=1e-14)


class TestBuffers(unittest.TestCase):
    """Caller-owned output buffer and body count handling"""

    def test_writes_into_out(self):
        bodies = make_bodies(10)
        out = np.full((16, 3), 99.0)
        a = direct_accelerations(bodies, 10, out)

        self.assertTrue(np.shares_memory(a, out))
        self.assertEqual(a.shape, (10, 3))
        np.testing.assert_array_equal(out[10:], 99.0)

    def test_prefix_only(self):
        """n limits which bodies take part"""
        bodies = make_bodies(10)
        np.testing.assert_allclose(direct_accelerations(bodies, 4),
                                   direct_accelerations(bodies[:4].copy()), rtol=1e-14)

    def test_out_too_small(self):
        with self.assertRaises(ValueError):
            direct_accelerations(make_bodies(10), 10, np.zeros((5, 3)))

    def test_n_too_large(self):
        with self.assertRaises(ValueError):
            direct_accelerations(make_bodies(10), 11)

    def test_non_positive_softening(self):
        with self.assertRaises(ValueError):
            direct_accelerations(make_bodies(3), softening=0.0)
        with self.assertRaises(ValueError):
            direct_accelerations_numpy(make_bodies(3), softening=-1.0)

    def test_stale_output_overwritten(self):
        bodies = make_bodies(8)
        out = np.full((8, 3), 1e9)
        direct_accelerations(bodies, out=out)
        np.testing.assert_allclose(out, direct_accelerations(bodies), rtol=1e-14)


if __name__ == '__main__':
    unittest.main()
