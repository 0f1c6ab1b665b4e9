"""
Unit tests for Barnes-Hut octree force calculation.

Tests tree construction, COM calculations, force accuracy, and comparison
with the direct O(N²) method, for both the recursive and the numba tree.
"""

import unittest
import numpy as np
from nbody.barnes_hut import OctreeNode, BarnesHutTree
from nbody.barnes_hut_numba import NumbaBarnesHutTree, build_octree
from nbody.direct import direct_accelerations
from nbody.harness import relative_l2_error


def random_bodies(n, seed=42):
    rng = np.random.default_rng(seed)
    bodies = np.empty((n, 4))
    bodies[:, :3] = rng.uniform(-10.0, 10.0, size=(n, 3))
    bodies[:, 3] = rng.uniform(0.1, 1.0, size=n)
    return bodies


class TestOctreeNode(unittest.TestCase):

    def setUp(self):
        self.node = OctreeNode((np.array([-1.0, -1.0, -1.0]), np.array([1.0, 1.0, 1.0])))

    def test_new_node_is_empty(self):
        self.assertTrue(self.node.is_empty())
        self.assertFalse(self.node.is_leaf())
        self.assertEqual(self.node.size, 2.0)

    def test_octant_numbering(self):
        self.assertEqual(self.node.get_octant(np.array([-0.5, -0.5, -0.5])), 0)
        self.assertEqual(self.node.get_octant(np.array([0.5, -0.5, -0.5])), 1)
        self.assertEqual(self.node.get_octant(np.array([-0.5, 0.5, -0.5])), 2)
        self.assertEqual(self.node.get_octant(np.array([0.5, 0.5, 0.5])), 7)

    def test_octant_bounds(self):
        lo, hi = self.node.get_octant_bounds(7)
        np.testing.assert_array_equal(lo, [0.0, 0.0, 0.0])
        np.testing.assert_array_equal(hi, [1.0, 1.0, 1.0])
        lo, hi = self.node.get_octant_bounds(0)
        np.testing.assert_array_equal(lo, [-1.0, -1.0, -1.0])
        np.testing.assert_array_equal(hi, [0.0, 0.0, 0.0])

    def test_add_mass_weighted(self):
        self.node.add_mass(np.array([0.0, 0.0, 0.0]), 1.0)
        self.node.add_mass(np.array([0.9, 0.0, 0.0]), 2.0)
        np.testing.assert_array_almost_equal(self.node.center_of_mass, [0.6, 0.0, 0.0])
        self.assertAlmostEqual(self.node.total_mass, 3.0)
        self.assertEqual(self.node.n_bodies, 2)

    def test_add_mass_massless(self):
        self.node.add_mass(np.array([0.0, 0.0, 0.0]), 0.0)
        self.node.add_mass(np.array([0.5, 0.5, 0.0]), 0.0)
        np.testing.assert_array_almost_equal(self.node.center_of_mass, [0.25, 0.25, 0.0])


class TestOctreeConstruction(unittest.TestCase):
    """Test octree data structure and tree construction"""

    def test_single_body_tree(self):
        """Single body should create root-only tree"""
        bodies = np.array([[0.0, 0.0, 0.0, 1.0]])

        tree = BarnesHutTree(theta=0.5)
        tree.build_tree(bodies)

        self.assertTrue(tree.root.is_leaf())
        self.assertEqual(tree.root.body_indices, [0])
        self.assertAlmostEqual(tree.root.total_mass, 1.0)

    def test_two_body_tree(self):
        """Two bodies should create root with child leaves"""
        bodies = np.array([
            [0.0, 0.0, 0.0, 1.0],
            [1.0, 0.0, 0.0, 2.0],
        ])

        tree = BarnesHutTree(theta=0.5)
        tree.build_tree(bodies)

        self.assertFalse(tree.root.is_leaf())
        self.assertIsNotNone(tree.root.children)

        # Root's COM should be weighted average
        np.testing.assert_array_almost_equal(tree.root.center_of_mass, [2.0 / 3.0, 0.0, 0.0])
        self.assertAlmostEqual(tree.root.total_mass, 3.0)

    def test_center_of_mass_calculation(self):
        """Verify COM = Σ(m_i × r_i) / Σm_i"""
        bodies = random_bodies(50)

        tree = BarnesHutTree(theta=0.5)
        tree.build_tree(bodies)

        expected_com = np.sum(bodies[:, :3] * bodies[:, 3:], axis=0) / np.sum(bodies[:, 3])
        np.testing.assert_array_almost_equal(tree.root.center_of_mass, expected_com)
        self.assertEqual(tree.root.n_bodies, 50)

    def test_coincident_bodies(self):
        """Identical positions end up sharing one leaf"""
        bodies = np.array([
            [1.0, 1.0, 1.0, 1.0],
            [1.0, 1.0, 1.0, 2.0],
            [-1.0, 0.0, 0.0, 1.0],
        ])
        tree = BarnesHutTree(theta=0.5)
        tree.build_tree(bodies)
        np.testing.assert_allclose(tree.calculate_all_accelerations(),
                                   direct_accelerations(bodies), rtol=1e-12)

    def test_empty_tree(self):
        tree = BarnesHutTree()
        tree.build_tree(np.zeros((0, 4)))
        self.assertEqual(tree.calculate_all_accelerations().shape, (0, 3))


class TestNumbaOctree(unittest.TestCase):

    def test_two_body_structure(self):
        bodies = np.array([
            [0.0, 0.0, 0.0, 1.0],
            [1.0, 0.0, 0.0, 2.0],
        ])
        (node_com, node_mass, _, _, node_children,
         node_is_leaf, node_body, _, n_nodes) = build_octree(bodies, 2, 100)

        self.assertEqual(n_nodes, 3)
        self.assertFalse(node_is_leaf[0])
        self.assertAlmostEqual(node_mass[0], 3.0)
        np.testing.assert_array_almost_equal(node_com[0], [2.0 / 3.0, 0.0, 0.0])
        leaves = [c for c in node_children[0] if c >= 0]
        self.assertEqual(sorted(node_body[c] for c in leaves), [0, 1])

    def test_root_mass(self):
        bodies = random_bodies(200)
        node_mass = build_octree(bodies, 200, 10000)[1]
        self.assertAlmostEqual(node_mass[0], np.sum(bodies[:, 3]))

    def test_coincident_bodies(self):
        bodies = np.array([
            [1.0, 1.0, 1.0, 1.0],
            [1.0, 1.0, 1.0, 2.0],
            [1.0, 1.0, 1.0, 0.5],
            [-1.0, 0.0, 0.0, 1.0],
        ])
        tree = NumbaBarnesHutTree(theta=0.5)
        tree.build_tree(bodies)
        np.testing.assert_allclose(tree.calculate_all_accelerations(),
                                   direct_accelerations(bodies), rtol=1e-12)

    def test_empty_tree(self):
        tree = NumbaBarnesHutTree()
        tree.build_tree(np.zeros((0, 4)))
        self.assertEqual(tree.calculate_all_accelerations().shape, (0, 3))


class TestBarnesHutAccuracy(unittest.TestCase):
    """Both tree variants against the direct sum"""

    def setUp(self):
        self.bodies = random_bodies(300, seed=7)
        self.reference = direct_accelerations(self.bodies)

    def _solve(self, tree_cls, theta):
        tree = tree_cls(theta=theta)
        tree.build_tree(self.bodies)
        return tree.calculate_all_accelerations()

    def test_theta_zero_is_exact(self):
        for tree_cls in (BarnesHutTree, NumbaBarnesHutTree):
            np.testing.assert_allclose(self._solve(tree_cls, 0.0), self.reference,
                                       rtol=1e-9, atol=1e-12, err_msg=tree_cls.__name__)

    def test_standard_theta_accuracy(self):
        for tree_cls in (BarnesHutTree, NumbaBarnesHutTree):
            error = relative_l2_error(self._solve(tree_cls, 0.5), self.reference)
            self.assertLess(error, 0.05, msg=tree_cls.__name__)

    def test_error_shrinks_with_theta(self):
        coarse = relative_l2_error(self._solve(NumbaBarnesHutTree, 1.0), self.reference)
        fine = relative_l2_error(self._solve(NumbaBarnesHutTree, 0.3), self.reference)
        self.assertLess(fine, coarse)

    def test_writes_into_out(self):
        tree = NumbaBarnesHutTree(theta=0.5)
        tree.build_tree(self.bodies)
        out = np.zeros((300, 3))
        result = tree.calculate_all_accelerations(out=out)
        self.assertTrue(np.shares_memory(result, out))

    def test_timings_recorded(self):
        for tree_cls in (BarnesHutTree, NumbaBarnesHutTree):
            tree = tree_cls(theta=0.5)
            tree.build_tree(self.bodies)
            tree.calculate_all_accelerations()
            self.assertGreaterEqual(tree.timings['build_s'], 0.0)
            self.assertGreater(tree.timings['traverse_s'], 0.0)


if __name__ == '__main__':
    unittest.main()
