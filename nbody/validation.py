"""
Accuracy and timing harness for accelerated solvers.

For a schedule of growing body counts, the accelerator and the direct sum
run on the same initial state; both are timed and the accelerator's output
is scored by a normalised L2 discrepancy against the direct result.
"""

import time
from dataclasses import astuple, dataclass
from pathlib import Path
from typing import Iterable, List, Optional

import numpy as np

from config import nbody as config
from .forces import ForceMode, direct_solve
from .store import BodyStore

TINY_REFERENCE = 1e-300


@dataclass
class ValidationLevel:
    """One line of the timings file (9 numeric fields)."""
    level: int
    bodies: int
    accel_seconds: float
    direct_seconds: float
    speedup: float
    error: float
    build_seconds: float
    walk_seconds: float
    tree_nodes: int

    def to_line(self) -> str:
        return " ".join(str(value) if isinstance(value, int) else f"{value:g}"
                        for value in astuple(self))


def body_count_schedule(levels: Optional[int] = None, offset: Optional[float] = None,
                        divisor: Optional[float] = None) -> List[int]:
    """n_k = round(10 ** ((k + offset) / divisor)) for k = 0..levels-1."""
    cfg = config.VALIDATION
    levels = cfg["levels"] if levels is None else levels
    offset = cfg["offset"] if offset is None else offset
    divisor = cfg["divisor"] if divisor is None else divisor
    return [int(round(10 ** ((k + offset) / divisor))) for k in range(levels)]


def relative_l2_error(reference: np.ndarray, approx: np.ndarray) -> float:
    """
    sqrt( sum_i |ref_i - approx_i|^2 / |ref_i|^2 / n )

    Bodies whose reference acceleration is (numerically) zero are left out of
    the sum but still counted in n.
    """
    reference = np.asarray(reference, dtype=np.float64)
    approx = np.asarray(approx, dtype=np.float64)
    if reference.shape != approx.shape:
        raise ValueError(f"Shape mismatch: {reference.shape} vs {approx.shape}")
    n = len(reference)
    if n == 0:
        return 0.0

    difference = ((reference - approx) ** 2).sum(axis=1)
    normalizer = (reference ** 2).sum(axis=1)
    usable = normalizer > TINY_REFERENCE
    return float(np.sqrt((difference[usable] / normalizer[usable]).sum() / n))


def validation_bodies(n: int, seed: Optional[int] = None) -> BodyStore:
    """Bodies uniform in [-pi, pi]^3 with masses in (0, 1], at rest."""
    rng = np.random.default_rng(seed)
    positions = rng.uniform(-np.pi, np.pi, (n, 3))
    masses = 1.0 - rng.random(n)
    return BodyStore.from_arrays(positions, masses)


def _warmup(accelerator, mode, G: float, softening: float):
    """Compile the numba kernels before anything is timed."""
    store = validation_bodies(64, seed=0)
    accelerator.solve(store, store.num_bodies, mode)
    direct_solve(store, store.num_bodies, G, softening)


def run_validation(accelerator, counts: Iterable[int], mode=ForceMode.FMM,
                   G: Optional[float] = None, softening: Optional[float] = None,
                   seed: Optional[int] = None, warmup: bool = True) -> List[ValidationLevel]:
    """Time and score the accelerator against the direct sum for each body count."""
    counts = list(counts)
    G = float(config.SIMULATION["G"] if G is None else G)
    softening = float(config.SIMULATION["softening"] if softening is None else softening)
    mode = ForceMode(mode)
    if not counts:
        return []

    if warmup:
        _warmup(accelerator, mode, G, softening)

    store = validation_bodies(max(counts), seed)
    results = []

    for level, n in enumerate(counts):
        print(f"[Validate] N = {n:,}")

        tic = time.time()
        accelerator.solve(store, n, mode)
        accel_seconds = time.time() - tic
        accelerated = store.accelerations[:n].copy()
        print(f"[Validate]   {mode.value:6s} : {accel_seconds:g}")

        tic = time.time()
        direct_solve(store, n, G, softening)
        direct_seconds = time.time() - tic
        print(f"[Validate]   direct : {direct_seconds:g}")

        error = relative_l2_error(store.accelerations[:n], accelerated)
        print(f"[Validate]   error  : {error:g}")

        timings = getattr(accelerator, "last_timings", {})
        results.append(ValidationLevel(
            level=level,
            bodies=n,
            accel_seconds=accel_seconds,
            direct_seconds=direct_seconds,
            speedup=direct_seconds / accel_seconds if accel_seconds > 0 else 0.0,
            error=error,
            build_seconds=float(timings.get("build", 0.0)),
            walk_seconds=float(timings.get("walk", 0.0)),
            tree_nodes=int(timings.get("nodes", 0)),
        ))

    return results


def write_timings(path, levels: Iterable[ValidationLevel]) -> Path:
    """One line per level, space separated."""
    path = Path(path)
    with open(path, "w") as f:
        for row in levels:
            f.write(row.to_line() + "\n")
    return path
