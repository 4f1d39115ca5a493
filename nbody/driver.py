"""
Simulation driver.

Per frame, strictly in order:
    1. evaluate forces for the current positions
    2. render the current positions and hand the frame to the emitter
    3. integrate velocities and positions with the fresh accelerations
"""

import time
from dataclasses import dataclass
from datetime import timedelta
from typing import Optional

from config import nbody as config
from . import integrator
from .forces import ForceEvaluator
from .snapshot import CheckpointPolicy, save_state, snapshot_path
from .store import BodyStore


def format_time(seconds: float, short: bool = False) -> str:
    """Format seconds as human-readable time.

    Args:
        seconds: Time in seconds
        short: If True, format for frame time (show ms for <1s)
    """
    if short and seconds < 1.0:
        return f"{seconds*1000:.0f}ms"
    if seconds < 90:
        return f"{seconds:.1f}s" if short else f"{seconds:.0f}s"
    elif seconds < 3600:
        return f"{seconds/60:.1f}m"
    else:
        return f"{seconds/3600:.1f}h"


def format_eta(seconds: float) -> str:
    """Format ETA - stays in seconds until 90s, then switches to hh:mm:ss."""
    if seconds < 0:
        return "calculating..."
    if seconds < 90:
        return f"{seconds:.0f}s"
    return str(timedelta(seconds=int(seconds)))


@dataclass
class RunSummary:
    frames: int
    emitted: int
    elapsed: float


class Simulation:
    """Owns the Body Store for a run and advances it frame by frame."""

    def __init__(self, store: BodyStore, evaluator: ForceEvaluator, dt: float,
                 scene: Optional[str] = None):
        if not dt > 0:
            raise ValueError(f"Time step must be positive, got {dt}")
        self.store = store
        self.evaluator = evaluator
        self.dt = float(dt)
        self.scene = scene

    @property
    def num_bodies(self) -> int:
        return self.store.num_bodies

    def step(self, frame_idx: int, projector=None, emitter=None) -> bool:
        """Run one frame. Returns True when a frame was emitted."""
        self.evaluator.evaluate(self.store)

        emitted = False
        if projector is not None:
            frame = projector.render(self.store, frame_idx)
            if emitter is not None:
                emitted = emitter.emit(frame)

        integrator.step(self.store, self.dt)
        return emitted

    def _checkpoint(self, policy: CheckpointPolicy, frame_idx: int):
        metadata = {
            "scene": self.scene,
            "dt": self.dt,
            "G": self.evaluator.G,
            "softening": self.evaluator.softening,
        }
        path = save_state(snapshot_path(policy.directory, frame_idx), self.store,
                          frame_idx, metadata)
        print(f"[Checkpoint] Saved frame {frame_idx} -> {path}")

    def run(self, frames: int, projector=None, emitter=None, start_frame: int = 0,
            progress_every: Optional[int] = None,
            checkpoint: Optional[CheckpointPolicy] = None) -> RunSummary:
        """Simulate frames [start_frame, frames)."""
        if progress_every is None:
            progress_every = int(config.SIMULATION["progress_every"])

        total = frames - start_frame
        emitted = 0
        start_time = time.time()

        for frame_idx in range(start_frame, frames):
            frame_start = time.time()
            if self.step(frame_idx, projector, emitter):
                emitted += 1

            if checkpoint is not None and checkpoint.due(frame_idx):
                self._checkpoint(checkpoint, frame_idx)

            done = frame_idx - start_frame + 1
            if progress_every > 0 and (done % progress_every == 0 or frame_idx == frames - 1):
                elapsed = time.time() - start_time
                eta = elapsed / done * (total - done)
                print(f"[Sim] Frame {frame_idx + 1}/{frames} | "
                      f"Time: {format_time(time.time() - frame_start, short=True)} | "
                      f"Elapsed: {format_time(elapsed)} | ETA: {format_eta(eta)}")

        return RunSummary(frames=max(total, 0), emitted=emitted, elapsed=time.time() - start_time)
