"""
Numba JIT-compiled Barnes-Hut octree for O(N log N) gravitational acceleration.

Flat-array octree: recursively subdivides space into octants, groups distant
bodies into single center-of-mass nodes, and uses the opening angle theta to
decide when the approximation is valid.

For theta=0 -> exact (equivalent to direct), theta=0.5 -> typical, theta=1.0 -> aggressive.
"""

import time
from typing import Dict, Optional
import numpy as np
from numba import jit, float64, int32, boolean

from .constants import PhysicalConstants

# Coincident bodies stop subdividing at this depth
MAX_DEPTH = 64
STACK_SIZE = 8 * MAX_DEPTH + 8


@jit(nopython=True, cache=True)
def _get_octant(x, y, z, center):
    """Return octant index (0-7) for position relative to center."""
    ix = 1 if x > center[0] else 0
    iy = 1 if y > center[1] else 0
    iz = 1 if z > center[2] else 0
    return ix * 4 + iy * 2 + iz


@jit(nopython=True, cache=True)
def _new_child(parent, octant, n_nodes, node_center, node_half_size, node_children):
    """Create the child cell of parent in octant; returns the new node count."""
    child = n_nodes
    h = node_half_size[parent]
    node_center[child, 0] = node_center[parent, 0] + h * (0.5 if octant // 4 == 1 else -0.5)
    node_center[child, 1] = node_center[parent, 1] + h * (0.5 if (octant // 2) % 2 == 1 else -0.5)
    node_center[child, 2] = node_center[parent, 2] + h * (0.5 if octant % 2 == 1 else -0.5)
    node_half_size[child] = h / 2.0
    node_children[parent, octant] = child
    return n_nodes + 1


@jit(nopython=True, cache=True)
def _add_mass(node, x, y, z, m, node_com, node_mass, node_n_bodies):
    """Fold a body into a node's center of mass; zero-mass nodes track the geometric mean."""
    old_total = node_mass[node]
    new_total = old_total + m
    count = node_n_bodies[node]
    if new_total > 0.0:
        node_com[node, 0] = (node_com[node, 0] * old_total + x * m) / new_total
        node_com[node, 1] = (node_com[node, 1] * old_total + y * m) / new_total
        node_com[node, 2] = (node_com[node, 2] * old_total + z * m) / new_total
    else:
        node_com[node, 0] = (node_com[node, 0] * count + x) / (count + 1)
        node_com[node, 1] = (node_com[node, 1] * count + y) / (count + 1)
        node_com[node, 2] = (node_com[node, 2] * count + z) / (count + 1)
    node_mass[node] = new_total
    node_n_bodies[node] = count + 1


@jit(nopython=True, cache=True)
def build_octree(bodies, n, max_nodes):
    """
    Build Barnes-Hut octree by iterative insertion.

    Each node stores:
        - center_of_mass (3,): mass-weighted position
        - total_mass: sum of contained masses
        - center (3,): geometric center of cell
        - half_size: half the cell width
        - children (8,): indices of child nodes (-1 if empty)
        - is_leaf: whether node holds bodies directly
        - body_idx: first body of the leaf (-1 otherwise)
        - next_body: chain of further bodies sharing a leaf at MAX_DEPTH
        - n_bodies: number of bodies in subtree

    Returns flat arrays for all node properties and the node count.
    """
    node_com = np.zeros((max_nodes, 3), dtype=float64)
    node_mass = np.zeros(max_nodes, dtype=float64)
    node_center = np.zeros((max_nodes, 3), dtype=float64)
    node_half_size = np.zeros(max_nodes, dtype=float64)
    node_children = np.full((max_nodes, 8), -1, dtype=int32)
    node_is_leaf = np.zeros(max_nodes, dtype=boolean)
    node_body = np.full(max_nodes, -1, dtype=int32)
    node_n_bodies = np.zeros(max_nodes, dtype=int32)
    next_body = np.full(max(n, 1), -1, dtype=int32)

    if n == 0:
        return (node_com, node_mass, node_center, node_half_size,
                node_children, node_is_leaf, node_body, next_body, 1)

    # Root node: bounding cube
    min_pos = np.empty(3)
    max_pos = np.empty(3)
    for d in range(3):
        min_pos[d] = bodies[0, d]
        max_pos[d] = bodies[0, d]
        for i in range(1, n):
            if bodies[i, d] < min_pos[d]:
                min_pos[d] = bodies[i, d]
            if bodies[i, d] > max_pos[d]:
                max_pos[d] = bodies[i, d]

    root_half = 0.0
    for d in range(3):
        node_center[0, d] = 0.5 * (min_pos[d] + max_pos[d])
        root_half = max(root_half, 0.5 * (max_pos[d] - min_pos[d]))
    # Pad so bodies on the boundary are strictly inside
    root_half = root_half * (1.0 + 1e-6) + 1e-12
    node_half_size[0] = root_half
    n_nodes = 1

    for p in range(n):
        x = bodies[p, 0]
        y = bodies[p, 1]
        z = bodies[p, 2]
        m = bodies[p, 3]

        current = 0
        depth = 0

        while True:
            depth += 1

            if node_n_bodies[current] == 0:
                # Empty cell: body becomes a leaf
                node_com[current, 0] = x
                node_com[current, 1] = y
                node_com[current, 2] = z
                node_mass[current] = m
                node_is_leaf[current] = True
                node_body[current] = p
                node_n_bodies[current] = 1
                break

            if node_is_leaf[current] and (depth >= MAX_DEPTH or n_nodes + 2 > max_nodes):
                # Coincident bodies (or node pool exhausted): chain into the leaf
                _add_mass(current, x, y, z, m, node_com, node_mass, node_n_bodies)
                next_body[p] = node_body[current]
                node_body[current] = p
                break

            if node_is_leaf[current]:
                # Split: push the resident body one level down
                old_p = node_body[current]
                node_is_leaf[current] = False
                node_body[current] = -1

                oct_old = _get_octant(bodies[old_p, 0], bodies[old_p, 1], bodies[old_p, 2],
                                      node_center[current])
                n_nodes = _new_child(current, oct_old, n_nodes,
                                     node_center, node_half_size, node_children)
                child = node_children[current, oct_old]
                node_com[child, 0] = bodies[old_p, 0]
                node_com[child, 1] = bodies[old_p, 1]
                node_com[child, 2] = bodies[old_p, 2]
                node_mass[child] = bodies[old_p, 3]
                node_is_leaf[child] = True
                node_body[child] = old_p
                node_n_bodies[child] = 1

            # Internal node: update COM and descend
            _add_mass(current, x, y, z, m, node_com, node_mass, node_n_bodies)

            octant = _get_octant(x, y, z, node_center[current])
            if node_children[current, octant] == -1:
                if n_nodes >= max_nodes:
                    raise RuntimeError("octree node pool exhausted")
                n_nodes = _new_child(current, octant, n_nodes,
                                     node_center, node_half_size, node_children)
            current = node_children[current, octant]

    return (node_com, node_mass, node_center, node_half_size,
            node_children, node_is_leaf, node_body, next_body, n_nodes)


@jit(nopython=True, cache=True)
def calculate_forces_barnes_hut(
    bodies, n, softening, theta, G,
    node_com, node_mass, node_half_size,
    node_children, node_is_leaf, node_body, next_body, n_nodes, out
):
    """
    Accelerations by Barnes-Hut tree traversal, written into out[:n].

    For each body, walk the tree. At each node:
    - Leaves interact body-by-body (skipping the body itself)
    - If cell size / distance < theta, use the node's center of mass
    - Otherwise, push the children
    """
    eps2 = softening * softening
    stack = np.zeros(STACK_SIZE, dtype=int32)

    for i in range(n):
        px = bodies[i, 0]
        py = bodies[i, 1]
        pz = bodies[i, 2]
        ax = 0.0
        ay = 0.0
        az = 0.0

        stack[0] = 0
        stack_top = 1

        while stack_top > 0:
            stack_top -= 1
            node = stack[stack_top]

            if node_is_leaf[node]:
                b = node_body[node]
                while b >= 0:
                    if b != i:
                        dx = bodies[b, 0] - px
                        dy = bodies[b, 1] - py
                        dz = bodies[b, 2] - pz
                        inv_r = 1.0 / np.sqrt(dx*dx + dy*dy + dz*dz + eps2)
                        f = G * bodies[b, 3] * inv_r * inv_r * inv_r
                        ax += f * dx
                        ay += f * dy
                        az += f * dz
                    b = next_body[b]
                continue

            dx = node_com[node, 0] - px
            dy = node_com[node, 1] - py
            dz = node_com[node, 2] - pz
            r2 = dx*dx + dy*dy + dz*dz
            r = np.sqrt(r2)

            # Opening angle criterion: s/d < theta
            s = 2.0 * node_half_size[node]

            if r > 0.0 and s < theta * r:
                inv_r = 1.0 / np.sqrt(r2 + eps2)
                f = G * node_mass[node] * inv_r * inv_r * inv_r
                ax += f * dx
                ay += f * dy
                az += f * dz
            else:
                for c in range(8):
                    child = node_children[node, c]
                    if child >= 0:
                        stack[stack_top] = child
                        stack_top += 1

        out[i, 0] = ax
        out[i, 1] = ay
        out[i, 2] = az

    return out


class NumbaBarnesHutTree:
    """
    Barnes-Hut octree solver using numba JIT compilation.

    O(N log N) force calculation with configurable accuracy via opening angle theta.
    theta=0 -> exact (equivalent to O(N^2) direct)
    theta=0.5 -> standard accuracy
    theta=1.0 -> fast/approximate
    """

    def __init__(self, theta: float = 0.5, softening: float = PhysicalConstants.softening,
                 G: float = PhysicalConstants.G_force):
        self.theta = theta
        self.softening = softening
        self.G = G

        self._tree = None
        self.bodies = None
        self.timings: Dict[str, float] = {'build_s': 0.0, 'traverse_s': 0.0}

    def build_tree(self, bodies: np.ndarray) -> None:
        """Build octree from (N, 4) body rows."""
        self.bodies = np.ascontiguousarray(bodies, dtype=np.float64)

        # Scale max_nodes with body count (typically a few nodes per body)
        max_nodes = max(10000, len(self.bodies) * 10)
        t0 = time.perf_counter()
        self._tree = build_octree(self.bodies, len(self.bodies), max_nodes)
        self.timings['build_s'] = time.perf_counter() - t0

    def calculate_all_accelerations(self, out: Optional[np.ndarray] = None) -> np.ndarray:
        """
        Calculate accelerations using Barnes-Hut tree traversal.

        Returns:
            (N, 3) accelerations, a view of `out` when one is given
        """
        (node_com, node_mass, node_center, node_half_size,
         node_children, node_is_leaf, node_body, next_body, n_nodes) = self._tree

        n = len(self.bodies)
        if out is None:
            out = np.zeros((n, 3), dtype=np.float64)

        t0 = time.perf_counter()
        calculate_forces_barnes_hut(
            self.bodies, n, float(self.softening), float(self.theta), float(self.G),
            node_com, node_mass, node_half_size,
            node_children, node_is_leaf, node_body, next_body, n_nodes, out
        )
        self.timings['traverse_s'] = time.perf_counter() - t0
        return out[:n]
