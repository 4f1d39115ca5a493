"""Body Store: per-body state kept in parallel fixed-size arrays."""

from dataclasses import dataclass

import numpy as np


@dataclass
class BodyStore:
    """
    State of N point masses, indexed 0..N-1.

    The index is the only identity a body has. N never changes once the
    store exists: scene generation writes every row once, the force
    evaluator owns ``accelerations`` and the integrator owns
    ``positions``/``velocities`` afterwards.
    """

    positions: np.ndarray       # (n, 3)
    masses: np.ndarray          # (n,)
    velocities: np.ndarray      # (n, 3)
    accelerations: np.ndarray   # (n, 3)

    def __post_init__(self):
        n = len(self.masses)
        for name in ("positions", "velocities", "accelerations"):
            arr = getattr(self, name)
            if arr.shape != (n, 3):
                raise ValueError(f"{name} must have shape ({n}, 3), got {arr.shape}")

    @classmethod
    def empty(cls, n: int) -> "BodyStore":
        """Allocate a zeroed store for n bodies (masses are left at zero)."""
        if n < 0:
            raise ValueError(f"Body count must be non-negative, got {n}")
        return cls(
            positions=np.zeros((n, 3), dtype=np.float64),
            masses=np.zeros(n, dtype=np.float64),
            velocities=np.zeros((n, 3), dtype=np.float64),
            accelerations=np.zeros((n, 3), dtype=np.float64),
        )

    @classmethod
    def from_arrays(cls, positions, masses, velocities=None) -> "BodyStore":
        positions = np.ascontiguousarray(positions, dtype=np.float64).reshape(-1, 3)
        masses = np.ascontiguousarray(masses, dtype=np.float64).reshape(-1)
        if velocities is None:
            velocities = np.zeros_like(positions)
        else:
            velocities = np.ascontiguousarray(velocities, dtype=np.float64).reshape(-1, 3)
        return cls(
            positions=positions,
            masses=masses,
            velocities=velocities,
            accelerations=np.zeros_like(positions),
        )

    @property
    def num_bodies(self) -> int:
        return len(self.masses)

    def copy(self) -> "BodyStore":
        return BodyStore(
            positions=self.positions.copy(),
            masses=self.masses.copy(),
            velocities=self.velocities.copy(),
            accelerations=self.accelerations.copy(),
        )

    def is_finite(self) -> bool:
        """True when every position, velocity, acceleration and mass is finite."""
        return bool(
            np.isfinite(self.positions).all()
            and np.isfinite(self.velocities).all()
            and np.isfinite(self.accelerations).all()
            and np.isfinite(self.masses).all()
        )
