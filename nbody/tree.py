"""
Barnes-Hut tree accelerator.

Reference implementation of the accelerated solver interface: builds an
octree over the first ``body_count`` bodies and approximates distant groups
by their centre of mass.

Key points:
- Flattened array-based octree (no Python objects)
- Numba JIT compilation with parallel force walk
- Same softened force law as the direct sum
"""

import math
import time

import numpy as np
from numba import njit, prange

from config import nbody as config
from .forces import ForceMode
from .store import BodyStore


# ============================================================================
# BARNES-HUT OCTREE - FLATTENED ARRAY IMPLEMENTATION
# ============================================================================

# Octree node structure (stored in flat arrays):
# - node_centers[k]: geometric centre of the cell
# - node_half_sizes[k]: half the width of the cell
# - node_masses[k], node_com[k]: total mass and centre of mass
# - node_children[k, 8]: child node indices (-1 if none)
# - node_body_idx[k]: body stored in a leaf (-1 if internal or empty)
# - node_is_leaf[k]

WALK_STACK_SIZE = 512
MIN_HALF_SIZE_RATIO = 1e-12  # Coincident bodies share a leaf below this cell size
MAX_GROWTH_RETRIES = 6


@njit(cache=True)
def get_octant(px: float, py: float, pz: float,
               cx: float, cy: float, cz: float) -> int:
    """Determine which octant a point falls into relative to center."""
    octant = 0
    if px >= cx:
        octant |= 1
    if py >= cy:
        octant |= 2
    if pz >= cz:
        octant |= 4
    return octant


@njit(cache=True)
def get_octant_center(octant: int, cx: float, cy: float, cz: float,
                      half_size: float) -> tuple:
    """Get the center of a child octant."""
    quarter = half_size * 0.5
    new_cx = cx + quarter if (octant & 1) else cx - quarter
    new_cy = cy + quarter if (octant & 2) else cy - quarter
    new_cz = cz + quarter if (octant & 4) else cz - quarter
    return new_cx, new_cy, new_cz


@njit(cache=True)
def _init_leaf(k, cx, cy, cz, half_size, mass, px, py, pz, body,
               node_centers, node_half_sizes, node_masses, node_com,
               node_children, node_body_idx, node_is_leaf):
    node_centers[k, 0] = cx
    node_centers[k, 1] = cy
    node_centers[k, 2] = cz
    node_half_sizes[k] = half_size
    node_masses[k] = mass
    node_com[k, 0] = px
    node_com[k, 1] = py
    node_com[k, 2] = pz
    node_body_idx[k] = body
    node_is_leaf[k] = True
    for c in range(8):
        node_children[k, c] = -1


@njit(cache=True)
def compute_bounds(positions: np.ndarray, num_bodies: int) -> float:
    """Half-width of a cube centred on the origin that holds every body."""
    max_extent = 0.0
    for i in range(num_bodies):
        for dim in range(3):
            ext = abs(positions[i, dim])
            if ext > max_extent:
                max_extent = ext
    return max_extent * 1.01 + 1e-6


@njit(cache=True)
def build_octree(
    positions: np.ndarray,
    masses: np.ndarray,
    num_bodies: int,
    bounds: float,
    node_centers: np.ndarray,      # (max_nodes, 3)
    node_half_sizes: np.ndarray,   # (max_nodes,)
    node_masses: np.ndarray,       # (max_nodes,)
    node_com: np.ndarray,          # (max_nodes, 3)
    node_children: np.ndarray,     # (max_nodes, 8)
    node_body_idx: np.ndarray,     # (max_nodes,)
    node_is_leaf: np.ndarray,      # (max_nodes,)
) -> int:
    """
    Build the octree from the first num_bodies bodies.
    Returns number of nodes created, or -1 if the node arrays are too small.
    """
    max_nodes = node_masses.shape[0]
    min_half_size = bounds * MIN_HALF_SIZE_RATIO

    _init_leaf(0, 0.0, 0.0, 0.0, bounds, 0.0, 0.0, 0.0, 0.0, -1,
               node_centers, node_half_sizes, node_masses, node_com,
               node_children, node_body_idx, node_is_leaf)
    num_nodes = 1

    for i in range(num_bodies):
        px, py, pz = positions[i, 0], positions[i, 1], positions[i, 2]
        m = masses[i]
        current = 0

        while True:
            cx = node_centers[current, 0]
            cy = node_centers[current, 1]
            cz = node_centers[current, 2]
            hs = node_half_sizes[current]

            if node_is_leaf[current]:
                if node_body_idx[current] == -1:
                    # Empty leaf - insert body here
                    node_body_idx[current] = i
                    node_masses[current] = m
                    node_com[current, 0] = px
                    node_com[current, 1] = py
                    node_com[current, 2] = pz
                    break

                if hs < min_half_size:
                    # Bodies too close to separate - merge into this leaf
                    total_mass = node_masses[current] + m
                    node_com[current, 0] = (node_com[current, 0] * node_masses[current] + px * m) / total_mass
                    node_com[current, 1] = (node_com[current, 1] * node_masses[current] + py * m) / total_mass
                    node_com[current, 2] = (node_com[current, 2] * node_masses[current] + pz * m) / total_mass
                    node_masses[current] = total_mass
                    break

                # Occupied leaf - push the resident body one level down
                old_body = node_body_idx[current]
                node_is_leaf[current] = False
                node_body_idx[current] = -1

                octant = get_octant(node_com[current, 0], node_com[current, 1],
                                    node_com[current, 2], cx, cy, cz)
                if num_nodes >= max_nodes:
                    return -1
                child = num_nodes
                num_nodes += 1
                node_children[current, octant] = child
                ncx, ncy, ncz = get_octant_center(octant, cx, cy, cz, hs)
                _init_leaf(child, ncx, ncy, ncz, hs * 0.5, node_masses[current],
                           node_com[current, 0], node_com[current, 1], node_com[current, 2],
                           old_body, node_centers, node_half_sizes, node_masses,
                           node_com, node_children, node_body_idx, node_is_leaf)
                # Loop again: current is now internal and takes the new body
            else:
                # Internal node - update mass and COM
                total_mass = node_masses[current] + m
                if total_mass > 0:
                    node_com[current, 0] = (node_com[current, 0] * node_masses[current] + px * m) / total_mass
                    node_com[current, 1] = (node_com[current, 1] * node_masses[current] + py * m) / total_mass
                    node_com[current, 2] = (node_com[current, 2] * node_masses[current] + pz * m) / total_mass
                node_masses[current] = total_mass

                octant = get_octant(px, py, pz, cx, cy, cz)
                if node_children[current, octant] == -1:
                    if num_nodes >= max_nodes:
                        return -1
                    child = num_nodes
                    num_nodes += 1
                    node_children[current, octant] = child
                    ncx, ncy, ncz = get_octant_center(octant, cx, cy, cz, hs)
                    _init_leaf(child, ncx, ncy, ncz, hs * 0.5, m, px, py, pz, i,
                               node_centers, node_half_sizes, node_masses, node_com,
                               node_children, node_body_idx, node_is_leaf)
                    break
                current = node_children[current, octant]

    return num_nodes


@njit(parallel=True, cache=True)
def compute_forces_barnes_hut(
    positions: np.ndarray,
    accelerations: np.ndarray,
    node_half_sizes: np.ndarray,
    node_masses: np.ndarray,
    node_com: np.ndarray,
    node_children: np.ndarray,
    node_body_idx: np.ndarray,
    node_is_leaf: np.ndarray,
    num_nodes: int,
    num_bodies: int,
    theta: float,
    G: float,
    softening: float
):
    """
    Tree walk for each body. A cell is accepted as a point mass when it is a
    leaf or when size / distance < theta; otherwise its children are visited.
    """
    softening_sq = softening * softening

    for i in prange(num_bodies):
        px = positions[i, 0]
        py = positions[i, 1]
        pz = positions[i, 2]

        ax, ay, az = 0.0, 0.0, 0.0

        stack = np.zeros(WALK_STACK_SIZE, dtype=np.int32)
        stack[0] = 0
        stack_ptr = 1

        while stack_ptr > 0:
            stack_ptr -= 1
            node = stack[stack_ptr]

            if node < 0 or node >= num_nodes:
                continue

            # Skip the leaf holding this body
            if node_is_leaf[node] and node_body_idx[node] == i:
                continue

            dx = node_com[node, 0] - px
            dy = node_com[node, 1] - py
            dz = node_com[node, 2] - pz
            r_sq = dx * dx + dy * dy + dz * dz
            dist_sq = r_sq + softening_sq
            dist = math.sqrt(dist_sq)

            node_size = node_half_sizes[node] * 2.0

            if node_is_leaf[node] or node_size < theta * math.sqrt(r_sq):
                if node_masses[node] > 0:
                    s = G * node_masses[node] / (dist * dist_sq)
                    ax += dx * s
                    ay += dy * s
                    az += dz * s
            else:
                for c in range(8):
                    child = node_children[node, c]
                    if child >= 0 and stack_ptr < WALK_STACK_SIZE:
                        stack[stack_ptr] = child
                        stack_ptr += 1

        accelerations[i, 0] = ax
        accelerations[i, 1] = ay
        accelerations[i, 2] = az


# ============================================================================
# SOLVER
# ============================================================================

class BarnesHutSolver:
    """
    Accelerated force solver.

    ``solve(store, body_count, mode)`` fills store.accelerations for rows
    [0, body_count). TREE mode uses ``theta``; FMM mode uses the stricter
    ``fmm_theta``. theta = 0 opens every internal cell and reproduces the
    direct sum.
    """

    def __init__(self, theta: float = None, fmm_theta: float = None,
                 G: float = None, softening: float = None):
        acc_cfg = config.ACCELERATOR
        self.theta = float(acc_cfg["theta"] if theta is None else theta)
        self.fmm_theta = float(acc_cfg["fmm_theta"] if fmm_theta is None else fmm_theta)
        self.G = float(config.SIMULATION["G"] if G is None else G)
        self.softening = float(config.SIMULATION["softening"] if softening is None else softening)

        if self.theta < 0 or self.fmm_theta < 0:
            raise ValueError("Opening angles must be non-negative")

        self._capacity = 0
        self.last_timings = {"bounds": 0.0, "build": 0.0, "walk": 0.0, "nodes": 0}

    def _allocate(self, max_nodes: int):
        self._capacity = max_nodes
        self._node_centers = np.zeros((max_nodes, 3), dtype=np.float64)
        self._node_half_sizes = np.zeros(max_nodes, dtype=np.float64)
        self._node_masses = np.zeros(max_nodes, dtype=np.float64)
        self._node_com = np.zeros((max_nodes, 3), dtype=np.float64)
        self._node_children = np.full((max_nodes, 8), -1, dtype=np.int32)
        self._node_body_idx = np.full(max_nodes, -1, dtype=np.int32)
        self._node_is_leaf = np.ones(max_nodes, dtype=np.bool_)

    def theta_for(self, mode) -> float:
        return self.fmm_theta if ForceMode(mode) == ForceMode.FMM else self.theta

    def solve(self, store: BodyStore, body_count: int, mode=ForceMode.TREE):
        if not 0 <= body_count <= store.num_bodies:
            raise ValueError(f"body_count {body_count} outside store of {store.num_bodies}")
        theta = self.theta_for(mode)

        t0 = time.time()
        bounds = compute_bounds(store.positions, body_count)
        t1 = time.time()

        if self._capacity < body_count * 4 + 16:
            self._allocate(body_count * 4 + 16)

        num_nodes = -1
        for _ in range(MAX_GROWTH_RETRIES):
            num_nodes = build_octree(
                store.positions,
                store.masses,
                body_count,
                bounds,
                self._node_centers,
                self._node_half_sizes,
                self._node_masses,
                self._node_com,
                self._node_children,
                self._node_body_idx,
                self._node_is_leaf
            )
            if num_nodes >= 0:
                break
            self._allocate(self._capacity * 2)
        if num_nodes < 0:
            raise RuntimeError(f"Octree exceeded {self._capacity:,} nodes for {body_count:,} bodies")
        t2 = time.time()

        compute_forces_barnes_hut(
            store.positions,
            store.accelerations,
            self._node_half_sizes,
            self._node_masses,
            self._node_com,
            self._node_children,
            self._node_body_idx,
            self._node_is_leaf,
            num_nodes,
            body_count,
            theta,
            self.G,
            self.softening
        )
        t3 = time.time()

        self.last_timings = {
            "bounds": t1 - t0,
            "build": t2 - t1,
            "walk": t3 - t2,
            "nodes": num_nodes,
        }
