"""
Compressed Body Store checkpoints.

Layout of a ``state_<frame>.zst`` file:
- 1 byte: format (1 = zstd float64 arrays)
- 4 bytes: header size, then a JSON header (frame, scene, dt, G, softening, num_bodies)
- for positions, masses, velocities: 4 bytes size + zstd-compressed float64 bytes

Accelerations are not stored; they are recomputed on the next frame.
"""

import json
import struct
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Tuple

import numpy as np
import zstandard as zstd

from config import nbody as config
from .store import BodyStore

SNAPSHOT_FORMAT = 1


@dataclass
class CheckpointPolicy:
    """Write a checkpoint after every ``every`` frames into ``directory``."""
    directory: Path
    every: int

    def due(self, frame_idx: int) -> bool:
        return self.every > 0 and (frame_idx + 1) % self.every == 0


def snapshot_path(directory: Path, frame_idx: int) -> Path:
    return Path(directory) / f"state_{frame_idx:04d}.zst"


def save_state(path, store: BodyStore, frame_idx: int, metadata: Optional[dict] = None,
               level: Optional[int] = None) -> Path:
    """Write the store (state after frame_idx was integrated) to path."""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    if level is None:
        level = int(config.CHECKPOINT["compression_level"])

    header = {
        **(metadata or {}),
        "frame": int(frame_idx),
        "num_bodies": store.num_bodies,
    }
    header_data = json.dumps(header).encode("utf-8")

    cctx = zstd.ZstdCompressor(level=level)
    result = struct.pack('B', SNAPSHOT_FORMAT)
    result += struct.pack('I', len(header_data))
    result += header_data
    for arr in (store.positions, store.masses, store.velocities):
        compressed = cctx.compress(np.ascontiguousarray(arr, dtype=np.float64).tobytes())
        result += struct.pack('I', len(compressed))
        result += compressed

    with open(path, 'wb') as f:
        f.write(result)
    return path


def load_state(path) -> Tuple[BodyStore, dict]:
    """Read a checkpoint. Returns (store, header)."""
    with open(path, 'rb') as f:
        data = f.read()

    if len(data) < 5:
        raise ValueError(f"Checkpoint too short: {path}")

    fmt = struct.unpack('B', data[0:1])[0]
    if fmt != SNAPSHOT_FORMAT:
        raise ValueError(f"Unknown checkpoint format: {fmt}")
    offset = 1

    header_size = struct.unpack('I', data[offset:offset + 4])[0]
    offset += 4
    header = json.loads(data[offset:offset + header_size].decode("utf-8"))
    offset += header_size

    n = int(header["num_bodies"])
    dctx = zstd.ZstdDecompressor()
    arrays = []
    for shape in ((n, 3), (n,), (n, 3)):
        size = struct.unpack('I', data[offset:offset + 4])[0]
        offset += 4
        raw = dctx.decompress(data[offset:offset + size])
        offset += size
        arrays.append(np.frombuffer(raw, dtype=np.float64).reshape(shape).copy())

    positions, masses, velocities = arrays
    return BodyStore.from_arrays(positions, masses, velocities), header


def find_latest_state(directory) -> Tuple[Optional[Path], int]:
    """Find the most recent checkpoint in directory and its frame number."""
    directory = Path(directory)
    if not directory.exists():
        return None, -1

    latest, latest_frame = None, -1
    for state_file in directory.glob("state_*.zst"):
        try:
            frame = int(state_file.stem.split("_", 1)[1])
        except ValueError:
            continue
        if frame > latest_frame:
            latest, latest_frame = state_file, frame
    return latest, latest_frame
