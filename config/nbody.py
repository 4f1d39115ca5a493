"""Configuration for N-body gravitational simulation."""

# =============================================================================
# PERFORMANCE PRESETS - Choose one by uncommenting
# =============================================================================

# PRESET: LARGE (5K bodies, direct sum is slow) - use --solver tree
# BODY_COUNT = 5_000
# SOLVER = "tree"

# PRESET: DEFAULT (1K bodies, direct sum)
BODY_COUNT = 1_000
SOLVER = "direct"

# PRESET: QUICK (200 bodies) - smoke runs
# BODY_COUNT = 200
# SOLVER = "direct"

# =============================================================================

SIMULATION = {
    "count": BODY_COUNT,           # Number of bodies
    "frames": 300,                 # Frames to simulate (one integration step each)
    "dt": 0.01,                    # Fixed time step
    "scene": "spiral_galaxy",      # random, spiral_galaxy, binary_system, solar_system
    "seed": None,                  # None = fresh entropy

    # Physics parameters
    "G": 1.0,                      # Gravitational constant (simulation units)
    "softening": 0.1,              # Softening length, bounds acceleration at small separations
    "solver": SOLVER,              # direct, tree, fmm

    "progress_every": 100,         # Print progress every N frames
}

RENDER = {
    "width": 1280,
    "height": 720,
    "fps": 30,
    "max_scale": 1.0,              # Upper bound on pixels per simulation unit
    "codec": "mjpeg",              # mjpeg (.avi), h264, h265 (.mp4), vp9 (.webm)
    "output": None,                # None = "<scene>_simulation"
    "label_font_size": 24,
}

# Tree accelerator parameters
ACCELERATOR = {
    "theta": 0.5,                  # Opening angle for tree mode
    "fmm_theta": 0.25,             # Stricter opening angle for fmm mode
}

# Accuracy/timing harness: n_k = round(10 ** ((k + offset) / divisor))
VALIDATION = {
    "levels": 25,
    "offset": 32,
    "divisor": 8,
    "max_bodies": 20_000,          # Levels above this are skipped (direct sum is O(n²))
    "mode": "fmm",
    "tolerance": 1e-2,
    "timings_file": "time2.dat",
    "seed": 1,
}

CHECKPOINT = {
    "directory": "checkpoints",
    "every": 0,                    # 0 = no checkpoints
    "compression_level": 19,
}

COLORS = {
    "background": (0, 0, 0),
    "text": (255, 255, 255),
    "outline": (255, 255, 255),
}
