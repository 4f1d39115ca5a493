import os

# pygame draws off-screen; no window or audio device is needed
os.environ.setdefault("SDL_VIDEODRIVER", "dummy")
os.environ.setdefault("SDL_AUDIODRIVER", "dummy")
os.environ.setdefault("PYGAME_HIDE_SUPPORT_PROMPT", "1")

import numpy as np
import pytest

from nbody.store import BodyStore


@pytest.fixture
def two_stars():
    """Two equal masses at rest on the x-axis."""
    return BodyStore.from_arrays(
        positions=[[-2.0, 0.0, 0.0], [2.0, 0.0, 0.0]],
        masses=[50.0, 50.0],
    )


@pytest.fixture
def cloud():
    rng = np.random.default_rng(42)
    return BodyStore.from_arrays(
        positions=rng.uniform(-5.0, 5.0, (40, 3)),
        masses=rng.uniform(0.1, 1.0, 40),
        velocities=rng.uniform(-0.5, 0.5, (40, 3)),
    )
