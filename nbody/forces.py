"""
Gravitational force evaluation.

The direct O(n²) sum is always available and is the reference every
accelerated solver is measured against. Tree/FMM evaluation is delegated
to an accelerator object that writes into the same caller-owned buffer.
"""

import math
from enum import Enum
from typing import Optional, Protocol

import numpy as np
from numba import njit, prange

from config import nbody as config
from .store import BodyStore


class ForceMode(Enum):
    DIRECT = "direct"
    TREE = "tree"
    FMM = "fmm"


class NumericInstability(FloatingPointError):
    """Force evaluation produced non-finite accelerations."""


class Accelerator(Protocol):
    def solve(self, store: BodyStore, body_count: int, mode: ForceMode) -> None:
        """Fill store.accelerations[:body_count]; leave later rows untouched."""


@njit(parallel=True, cache=True)
def compute_forces_direct(
    positions: np.ndarray,
    masses: np.ndarray,
    accelerations: np.ndarray,
    num_bodies: int,
    G: float,
    softening: float
):
    """
    Softened direct summation over all ordered pairs (i, j), i != j.

    a_i = sum_j G * m_j * (p_j - p_i) / (|p_j - p_i|^2 + eps^2)^(3/2)

    Rows >= num_bodies are not touched.
    """
    softening_sq = softening * softening

    for i in prange(num_bodies):
        px = positions[i, 0]
        py = positions[i, 1]
        pz = positions[i, 2]

        ax, ay, az = 0.0, 0.0, 0.0

        for j in range(num_bodies):
            if i == j:
                continue

            dx = positions[j, 0] - px
            dy = positions[j, 1] - py
            dz = positions[j, 2] - pz

            dist_sq = dx * dx + dy * dy + dz * dz + softening_sq
            inv_dist = 1.0 / math.sqrt(dist_sq)
            inv_dist3 = inv_dist * inv_dist * inv_dist

            s = G * masses[j] * inv_dist3
            ax += dx * s
            ay += dy * s
            az += dz * s

        accelerations[i, 0] = ax
        accelerations[i, 1] = ay
        accelerations[i, 2] = az


def direct_solve(store: BodyStore, body_count: Optional[int] = None,
                 G: Optional[float] = None, softening: Optional[float] = None):
    """Run the direct kernel on the first body_count bodies of the store."""
    if body_count is None:
        body_count = store.num_bodies
    if not 0 <= body_count <= store.num_bodies:
        raise ValueError(f"body_count {body_count} outside store of {store.num_bodies}")
    if G is None:
        G = float(config.SIMULATION["G"])
    if softening is None:
        softening = float(config.SIMULATION["softening"])

    compute_forces_direct(
        store.positions,
        store.masses,
        store.accelerations,
        body_count,
        G,
        softening
    )


class ForceEvaluator:
    """Fills the acceleration buffer of a Body Store once per frame."""

    def __init__(self, G: Optional[float] = None, softening: Optional[float] = None,
                 mode=ForceMode.DIRECT, accelerator: Optional[Accelerator] = None):
        self.G = float(config.SIMULATION["G"] if G is None else G)
        self.softening = float(config.SIMULATION["softening"] if softening is None else softening)
        self.mode = ForceMode(mode)
        self.accelerator = accelerator

        if self.mode != ForceMode.DIRECT and accelerator is None:
            raise ValueError(f"Force mode '{self.mode.value}' needs an accelerator")

    def evaluate(self, store: BodyStore):
        """Overwrite store.accelerations for every body."""
        n = store.num_bodies

        if self.mode == ForceMode.DIRECT:
            direct_solve(store, n, self.G, self.softening)
        else:
            self.accelerator.solve(store, n, self.mode)

        if not np.isfinite(store.accelerations[:n]).all():
            bad = int(np.count_nonzero(~np.isfinite(store.accelerations[:n]).all(axis=1)))
            raise NumericInstability(
                f"{bad} bodies have non-finite acceleration ({self.mode.value} solver)"
            )
