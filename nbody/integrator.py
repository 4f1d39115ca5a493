"""Fixed-step semi-implicit (symplectic) Euler integration."""

import numpy as np
from numba import njit, prange

from .store import BodyStore


@njit(parallel=True, cache=True)
def semi_implicit_euler(
    positions: np.ndarray,
    velocities: np.ndarray,
    accelerations: np.ndarray,
    dt: float,
    num_bodies: int
):
    """Velocity first, then position from the updated velocity. No boundaries."""
    for i in prange(num_bodies):
        velocities[i, 0] += accelerations[i, 0] * dt
        velocities[i, 1] += accelerations[i, 1] * dt
        velocities[i, 2] += accelerations[i, 2] * dt

        positions[i, 0] += velocities[i, 0] * dt
        positions[i, 1] += velocities[i, 1] * dt
        positions[i, 2] += velocities[i, 2] * dt


def step(store: BodyStore, dt: float):
    """Advance every body by one time step using its current acceleration."""
    if not dt > 0:
        raise ValueError(f"Time step must be positive, got {dt}")
    semi_implicit_euler(
        store.positions,
        store.velocities,
        store.accelerations,
        float(dt),
        store.num_bodies
    )
