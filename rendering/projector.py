"""
Frame projection: 3D body state to a 2D RGB raster.

Each frame is scaled to fit the current extent of the system (the view
auto-zooms), projected orthographically onto the xy-plane, and drawn as
filled circles whose radius and colour depend on mass.
"""

import math
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

import numpy as np
import pygame

from config import nbody as config
from nbody.store import BodyStore
from .text import TextRenderer

EDGE_MARGIN = 20          # Off-canvas tolerance for large circles, in pixels
MIN_DISTANCE = 1e-10
SCREEN_FILL = 0.4         # Fit the system in 80% of the smaller dimension
OUTLINE_MIN_RADIUS = 3
LABEL_POSITION = (10, 10)

CODEC_EXTENSIONS = {
    "mjpeg": ".avi",
    "h264": ".mp4",
    "h265": ".mp4",
    "vp9": ".webm",
}


@dataclass(frozen=True)
class RenderConfig:
    """Render settings, fixed for a run."""
    width: int = 1280
    height: int = 720
    fps: int = 30
    max_scale: float = 1.0
    output_target: Optional[str] = None  # None = "<scene>_simulation"
    codec: str = "mjpeg"

    def __post_init__(self):
        if self.width <= 0 or self.height <= 0:
            raise ValueError(f"Frame size must be positive, got {self.width}x{self.height}")
        if self.fps <= 0:
            raise ValueError(f"FPS must be positive, got {self.fps}")
        if not self.max_scale > 0:
            raise ValueError(f"max_scale must be positive, got {self.max_scale}")

    @classmethod
    def from_config(cls, **overrides) -> "RenderConfig":
        cfg = config.RENDER
        values = {
            "width": cfg["width"],
            "height": cfg["height"],
            "fps": cfg["fps"],
            "max_scale": cfg["max_scale"],
            "output_target": cfg["output"],
            "codec": cfg["codec"],
        }
        values.update({k: v for k, v in overrides.items() if v is not None})
        return cls(**values)

    def output_path(self, scene_name: str) -> Path:
        """Resolve the output target, adding the codec's container extension if missing."""
        target = self.output_target or f"{scene_name}_simulation"
        path = Path(target)
        if not path.suffix:
            path = path.with_suffix(CODEC_EXTENSIONS.get(self.codec, ".avi"))
        return path


@dataclass
class Frame:
    index: int
    pixels: np.ndarray   # (height, width, 3) uint8 RGB
    scale: float
    drawn: int           # Bodies actually drawn


# =============================================================================
# MAPPINGS
# =============================================================================

def compute_scale(positions: np.ndarray, width: int, height: int, max_scale: float) -> float:
    """Pixels per simulation unit that fit every body on screen, capped at max_scale."""
    if len(positions):
        max_distance = float(np.sqrt((positions * positions).sum(axis=1)).max())
    else:
        max_distance = 0.0

    # Degenerate scale: everything sits at the origin
    if max_distance < MIN_DISTANCE:
        max_distance = 1.0

    screen_radius = min(width, height) * SCREEN_FILL
    return min(screen_radius / max_distance, max_scale)


def project(positions: np.ndarray, scale: float, width: int, height: int) -> np.ndarray:
    """Orthographic xy projection to integer pixel coordinates, shape (n, 2)."""
    screen = np.trunc(positions[:, :2] * scale).astype(np.int64)
    screen[:, 0] += width // 2
    screen[:, 1] += height // 2
    return screen


def is_on_canvas(x: int, y: int, width: int, height: int) -> bool:
    return (-EDGE_MARGIN <= x <= width + EDGE_MARGIN
            and -EDGE_MARGIN <= y <= height + EDGE_MARGIN)


def body_radius(mass: float) -> int:
    """Logarithmic radius in pixels, clamped to [1, 20]."""
    return max(1, min(20, int(round(3.0 * math.log10(mass * 100 + 1)))))


def body_color(mass: float) -> tuple:
    """
    Temperature-like RGB colour for a mass.

    Normalised mass m = min(1, mass / 10):
    - m < 0.3:        blue -> purple (red ramps up)
    - 0.3 <= m < 0.6: purple -> white (green ramps up)
    - m >= 0.6:       white -> yellow -> red (green and blue ramp down)
    """
    m = min(1.0, mass / 10.0)

    if m < 0.3:
        red = round(255 * (m / 0.3))
        return (red, 0, 255)
    elif m < 0.6:
        green = round(255 * ((m - 0.3) / 0.3))
        return (255, green, 255)
    else:
        fade = round(255 * (1.0 - (m - 0.6) / 0.4))
        return (255, fade, fade)


# =============================================================================
# PROJECTOR
# =============================================================================

class FrameProjector:
    """Builds one RGB frame per call from the current Body Store."""

    def __init__(self, render_config: RenderConfig, text_renderer: TextRenderer = None):
        self.config = render_config
        self.text_renderer = text_renderer or TextRenderer(
            font_size=config.RENDER["label_font_size"],
            color=config.COLORS["text"]
        )
        self._surface = pygame.Surface((render_config.width, render_config.height))

    def render(self, store: BodyStore, frame_index: int) -> Frame:
        cfg = self.config
        surface = self._surface
        surface.fill(config.COLORS["background"])

        scale = compute_scale(store.positions, cfg.width, cfg.height, cfg.max_scale)
        screen = project(store.positions, scale, cfg.width, cfg.height)

        drawn = 0
        for i in range(store.num_bodies):
            x, y = int(screen[i, 0]), int(screen[i, 1])
            if not is_on_canvas(x, y, cfg.width, cfg.height):
                continue

            mass = float(store.masses[i])
            radius = body_radius(mass)
            pygame.draw.circle(surface, body_color(mass), (x, y), radius)
            if radius > OUTLINE_MIN_RADIUS:
                pygame.draw.circle(surface, config.COLORS["outline"], (x, y), radius, 1)
            drawn += 1

        self.text_renderer.draw_text(surface, f"Frame: {frame_index}", *LABEL_POSITION)

        # surfarray is (width, height, 3); frames are row-major (height, width, 3)
        pixels = np.ascontiguousarray(pygame.surfarray.array3d(surface).swapaxes(0, 1))
        return Frame(index=frame_index, pixels=pixels, scale=scale, drawn=drawn)
