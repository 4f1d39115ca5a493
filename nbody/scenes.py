"""
Initial conditions for the four built-in scenes.

Each generator writes every body of a fresh BodyStore exactly once:
fixed bodies (central mass, binary stars, sun and planets) first, then the
randomised population. Fixed bodies that do not fit in ``n`` are dropped.
"""

from enum import Enum
from typing import Optional

import numpy as np

from config import nbody as config
from .store import BodyStore


class Scene(Enum):
    RANDOM = "random"
    SPIRAL_GALAXY = "spiral_galaxy"
    BINARY_SYSTEM = "binary_system"
    SOLAR_SYSTEM = "solar_system"

    @classmethod
    def parse(cls, value) -> "Scene":
        """Resolve a scene name, falling back to RANDOM for anything unknown."""
        if isinstance(value, cls):
            return value
        key = str(value).strip().lower().replace("-", "_")
        for scene in cls:
            if scene.value == key:
                return scene
        print(f"[Scene] Unknown scene '{value}', using random")
        return cls.RANDOM


# Spiral galaxy
GALAXY_CENTER_MASS = 100.0

# Binary system
STAR_MASS = 50.0
STAR_POSITIONS = ((-2.0, 0.0, 0.0), (2.0, 0.0, 0.0))
STAR_VELOCITIES = ((0.0, -1.0, 0.0), (0.0, 1.0, 0.0))
BINARY_ORBIT_FACTOR = 0.7  # Under-circular, orbits drift

# Solar system (radii in AU-like units, masses relative to Earth)
SUN_MASS = 50.0
PLANET_RADII = (0.4, 0.7, 1.0, 1.5, 5.2, 9.5, 19.2, 30.1, 39.5)
PLANET_MASSES = (0.055, 0.815, 1.0, 0.107, 317.8, 95.2, 14.5, 17.1, 0.002)
SOLAR_ORBIT_FACTOR = 0.5


def _tangential(speed: np.ndarray, angle: np.ndarray, velocities: np.ndarray):
    """Write a counter-clockwise tangential velocity in the xy-plane."""
    velocities[:, 0] = -speed * np.sin(angle)
    velocities[:, 1] = speed * np.cos(angle)
    velocities[:, 2] = 0.0


def _generate_random(store: BodyStore, rng: np.random.Generator, G: float):
    n = store.num_bodies
    store.positions[:] = rng.uniform(-10.0, 10.0, (n, 3))
    store.masses[:] = rng.uniform(0.1, 1.0, n)
    store.velocities[:] = rng.uniform(-10.0, 10.0, (n, 3)) * 0.1


def _generate_spiral_galaxy(store: BodyStore, rng: np.random.Generator, G: float):
    n = store.num_bodies
    if n == 0:
        return

    # Central black hole
    store.positions[0] = (0.0, 0.0, 0.0)
    store.masses[0] = GALAXY_CENTER_MASS
    store.velocities[0] = (0.0, 0.0, 0.0)

    count = n - 1
    angle = rng.uniform(0.0, 2.0 * np.pi, count)
    radius = rng.uniform(0.1, 10.0, count)
    height = rng.uniform(-0.5, 0.5, count)
    mass = rng.uniform(0.1, 1.0, count)

    # angle / 10 winds the disk into arms
    arm_angle = angle + angle / 10.0

    store.positions[1:, 0] = radius * np.cos(arm_angle)
    store.positions[1:, 1] = radius * np.sin(arm_angle)
    store.positions[1:, 2] = height * (radius / 10.0)  # Thinner at larger radii
    store.masses[1:] = mass

    orbital_speed = np.sqrt(G * GALAXY_CENTER_MASS / radius)
    _tangential(orbital_speed, arm_angle, store.velocities[1:])


def _generate_binary_system(store: BodyStore, rng: np.random.Generator, G: float):
    n = store.num_bodies
    stars = min(n, 2)
    for i in range(stars):
        store.positions[i] = STAR_POSITIONS[i]
        store.masses[i] = STAR_MASS
        store.velocities[i] = STAR_VELOCITIES[i]

    count = n - stars
    if count <= 0:
        return

    angle = rng.uniform(0.0, 2.0 * np.pi, count)
    radius = rng.uniform(3.0, 10.0, count)
    mass = rng.uniform(0.1, 0.5, count)
    jitter = (rng.uniform(0.0, 2.0 * np.pi, count) - np.pi) * 0.1

    store.positions[2:, 0] = radius * np.cos(angle)
    store.positions[2:, 1] = radius * np.sin(angle)
    store.positions[2:, 2] = jitter
    store.masses[2:] = mass

    center_mass = 2 * STAR_MASS
    orbital_speed = np.sqrt(G * center_mass / radius) * BINARY_ORBIT_FACTOR
    _tangential(orbital_speed, angle, store.velocities[2:])


def _generate_solar_system(store: BodyStore, rng: np.random.Generator, G: float):
    n = store.num_bodies
    if n == 0:
        return

    # Sun
    store.positions[0] = (0.0, 0.0, 0.0)
    store.masses[0] = SUN_MASS
    store.velocities[0] = (0.0, 0.0, 0.0)

    # Planets, evenly spread in angle
    planets = min(n - 1, len(PLANET_RADII))
    if planets > 0:
        radius = np.asarray(PLANET_RADII[:planets])
        relative_mass = np.asarray(PLANET_MASSES[:planets])
        angle = 2.0 * np.pi * np.arange(planets) / len(PLANET_RADII)

        end = planets + 1
        store.positions[1:end, 0] = radius * np.cos(angle)
        store.positions[1:end, 1] = radius * np.sin(angle)
        store.positions[1:end, 2] = 0.0
        store.masses[1:end] = 0.5 + relative_mass * 0.1

        orbital_speed = np.sqrt(G * SUN_MASS / radius) * SOLAR_ORBIT_FACTOR
        _tangential(orbital_speed, angle, store.velocities[1:end])

    # Debris / asteroids
    start = 1 + len(PLANET_RADII)
    count = n - start
    if count <= 0:
        return

    angle = rng.uniform(0.0, 2.0 * np.pi, count)
    radius = rng.uniform(0.3, 40.0, count)
    height = rng.uniform(-0.5, 0.5, count)
    mass = rng.uniform(0.01, 0.1, count)

    store.positions[start:, 0] = radius * np.cos(angle)
    store.positions[start:, 1] = radius * np.sin(angle)
    store.positions[start:, 2] = height
    store.masses[start:] = mass

    orbital_speed = np.sqrt(G * SUN_MASS / radius) * SOLAR_ORBIT_FACTOR
    _tangential(orbital_speed, angle, store.velocities[start:])


_GENERATORS = {
    Scene.RANDOM: _generate_random,
    Scene.SPIRAL_GALAXY: _generate_spiral_galaxy,
    Scene.BINARY_SYSTEM: _generate_binary_system,
    Scene.SOLAR_SYSTEM: _generate_solar_system,
}


def generate(scene, n: int, G: Optional[float] = None,
             seed: Optional[int] = None) -> BodyStore:
    """
    Build the initial Body Store for a scene.

    Args:
        scene: Scene member or name (unknown names fall back to RANDOM)
        n: Number of bodies
        G: Gravitational constant used for orbital speeds (config default if None)
        seed: Seed for the uniform random source (None = fresh entropy)
    """
    scene = Scene.parse(scene)
    if G is None:
        G = float(config.SIMULATION["G"])

    store = BodyStore.empty(n)
    rng = np.random.default_rng(seed)
    _GENERATORS.get(scene, _generate_random)(store, rng, G)
    return store
