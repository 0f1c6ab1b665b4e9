"""
Barnes-Hut octree implementation for O(N log N) gravitational acceleration.

The Barnes-Hut algorithm uses a hierarchical octree to approximate distant
groups of bodies as single point masses (center of mass), reducing O(N²)
pairwise interactions to O(N log N).

Key idea: If a cubic cell's width divided by distance to a body is small
(< theta), treat all bodies in that cell as a single mass at the center
of mass position. Otherwise, recursively descend into child cells.

This is the readable pure-Python reference; barnes_hut_numba holds the
compiled flat-array version.
"""

import time
from typing import Dict, List, Optional, Tuple
import numpy as np

from .constants import PhysicalConstants

# Cells at this depth stop subdividing and hold every body that reaches them
MAX_DEPTH = 64


class OctreeNode:
    """
    Single node in Barnes-Hut octree representing a cubic region of space.

    Each node either:
    - Is a leaf holding one body (several only for coincident bodies at MAX_DEPTH)
    - Is internal with 8 child octants (children is set)
    - Is empty (neither)

    Attributes:
        center_of_mass: COM position (3,)
        total_mass: Total mass of all bodies in this node
        bounds: (min_corner, max_corner) defining cubic region
        children: List of 8 child nodes (internal) or None (leaf/empty)
        body_indices: Bodies held directly by a leaf
        size: Width of cubic cell
        depth: Distance from the root
    """

    def __init__(self, bounds: Tuple[np.ndarray, np.ndarray], depth: int = 0):
        self.bounds = bounds
        self.min_corner = bounds[0]
        self.max_corner = bounds[1]
        self.size = float(np.max(self.max_corner - self.min_corner))
        self.depth = depth

        self.center_of_mass: Optional[np.ndarray] = None
        self.total_mass: float = 0.0
        self.n_bodies: int = 0

        # Either children OR body_indices is set (not both)
        self.children: Optional[List['OctreeNode']] = None
        self.body_indices: List[int] = []

    def is_leaf(self) -> bool:
        """Check if this node holds bodies directly."""
        return len(self.body_indices) > 0

    def is_empty(self) -> bool:
        """Check if this node contains no bodies."""
        return self.n_bodies == 0

    def get_octant(self, position: np.ndarray) -> int:
        """
        Determine which of 8 octants a position falls into.

        Octant numbering:
        0: (-, -, -)  1: (+, -, -)  2: (-, +, -)  3: (+, +, -)
        4: (-, -, +)  5: (+, -, +)  6: (-, +, +)  7: (+, +, +)
        """
        center = (self.min_corner + self.max_corner) / 2.0
        octant = 0
        if position[0] >= center[0]:
            octant |= 1
        if position[1] >= center[1]:
            octant |= 2
        if position[2] >= center[2]:
            octant |= 4
        return octant

    def get_octant_bounds(self, octant: int) -> Tuple[np.ndarray, np.ndarray]:
        """Get (min_corner, max_corner) for a specific octant."""
        center = (self.min_corner + self.max_corner) / 2.0

        min_corner = np.copy(self.min_corner)
        max_corner = np.copy(self.max_corner)

        for axis, bit in enumerate((1, 2, 4)):
            if octant & bit:
                min_corner[axis] = center[axis]
            else:
                max_corner[axis] = center[axis]

        return (min_corner, max_corner)

    def add_mass(self, position: np.ndarray, mass: float) -> None:
        """Fold a body into the center of mass (geometric mean while massless)."""
        if self.center_of_mass is None:
            self.center_of_mass = np.array(position, dtype=np.float64)
        else:
            total = self.total_mass + mass
            if total > 0:
                self.center_of_mass = (self.center_of_mass * self.total_mass + position * mass) / total
            else:
                self.center_of_mass = (self.center_of_mass * self.n_bodies + position) / (self.n_bodies + 1)
        self.total_mass += mass
        self.n_bodies += 1


class BarnesHutTree:
    """
    Barnes-Hut octree for O(N log N) gravitational force approximation.

    Usage:
        tree = BarnesHutTree(theta=0.5, softening=0.1)
        tree.build_tree(bodies)
        accelerations = tree.calculate_all_accelerations()

    Attributes:
        theta: Opening angle criterion (width/distance threshold)
        softening: Softening length
        G: Gravitational constant of the force law
        root: Root node of octree
        bodies: Body rows (N, 4) of x, y, z, mass
    """

    def __init__(self, theta: float = 0.5, softening: float = PhysicalConstants.softening,
                 G: float = PhysicalConstants.G_force):
        """
        Initialize Barnes-Hut tree.

        Args:
            theta: Opening angle criterion (0.0 = exact, 1.0 = fast/approximate)
                   Typical values: 0.3 (accurate), 0.5 (standard), 0.7 (fast)
            softening: Softening length
            G: Gravitational constant of the force law
        """
        self.theta = theta
        self.softening = softening
        self.G = G

        self.root: Optional[OctreeNode] = None
        self.bodies: Optional[np.ndarray] = None
        self.timings: Dict[str, float] = {'build_s': 0.0, 'traverse_s': 0.0}

    def build_tree(self, bodies: np.ndarray) -> None:
        """Construct octree from (N, 4) body rows."""
        t0 = time.perf_counter()
        self.bodies = np.asarray(bodies, dtype=np.float64)
        positions = self.bodies[:, :3]

        if len(positions) == 0:
            self.root = OctreeNode((np.zeros(3), np.zeros(3)))
            self.timings['build_s'] = time.perf_counter() - t0
            return

        # Bounding cube around all bodies
        min_corner = np.min(positions, axis=0)
        max_corner = np.max(positions, axis=0)
        center = (min_corner + max_corner) / 2.0
        half = np.max(max_corner - min_corner) / 2.0

        # Expand slightly to ensure all bodies are strictly inside
        half = half * (1.0 + 1e-6) + 1e-12
        self.root = OctreeNode((center - half, center + half))

        for i in range(len(positions)):
            self._insert_body(self.root, i)

        self.timings['build_s'] = time.perf_counter() - t0

    def _insert_body(self, node: OctreeNode, body_idx: int) -> None:
        """Recursively insert a body, updating COM along the way."""
        pos = self.bodies[body_idx, :3]
        mass = self.bodies[body_idx, 3]

        if node.is_empty():
            node.add_mass(pos, mass)
            node.body_indices.append(body_idx)
            return

        node.add_mass(pos, mass)

        if node.is_leaf():
            if node.depth >= MAX_DEPTH:
                node.body_indices.append(body_idx)
                return

            # Leaf becomes internal: push the resident body down
            old_idx = node.body_indices.pop()
            node.children = [
                OctreeNode(node.get_octant_bounds(i), node.depth + 1) for i in range(8)
            ]
            old_pos = self.bodies[old_idx, :3]
            self._insert_body(node.children[node.get_octant(old_pos)], old_idx)

        self._insert_body(node.children[node.get_octant(pos)], body_idx)

    def calculate_acceleration(self, body_idx: int) -> np.ndarray:
        """Acceleration vector (3,) on a single body."""
        pos = self.bodies[body_idx, :3]
        acceleration = np.zeros(3)
        self._calculate_node_force(self.root, pos, body_idx, acceleration)
        return acceleration

    def _point_mass(self, r_vec: np.ndarray, mass: float, acceleration: np.ndarray) -> None:
        r2_soft = np.dot(r_vec, r_vec) + self.softening**2
        acceleration += self.G * mass * r_vec / r2_soft**1.5

    def _calculate_node_force(
        self,
        node: OctreeNode,
        body_pos: np.ndarray,
        body_idx: int,
        acceleration: np.ndarray
    ) -> None:
        """Recursively accumulate the force contribution of a node (in-place)."""
        if node.is_empty():
            return

        if node.is_leaf():
            for j in node.body_indices:
                if j != body_idx:
                    self._point_mass(self.bodies[j, :3] - body_pos, self.bodies[j, 3], acceleration)
            return

        # Vector from body to node's COM
        r_vec = node.center_of_mass - body_pos
        r = np.linalg.norm(r_vec)

        # Opening angle criterion: width/distance < theta?
        if r > 0 and node.size < self.theta * r:
            self._point_mass(r_vec, node.total_mass, acceleration)
        else:
            for child in node.children:
                self._calculate_node_force(child, body_pos, body_idx, acceleration)

    def calculate_all_accelerations(self, out: Optional[np.ndarray] = None) -> np.ndarray:
        """
        Calculate accelerations on all bodies.

        Returns:
            Accelerations array, shape (N, 3), a view of `out` when given
        """
        n = len(self.bodies)
        if out is None:
            out = np.zeros((n, 3))

        t0 = time.perf_counter()
        for i in range(n):
            out[i] = self.calculate_acceleration(i)
        self.timings['traverse_s'] = time.perf_counter() - t0

        return out[:n]
