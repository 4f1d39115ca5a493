import numpy as np
import pytest

from nbody.scenes import PLANET_MASSES, PLANET_RADII, Scene, generate


@pytest.mark.parametrize("scene", list(Scene))
@pytest.mark.parametrize("n", [0, 1, 2, 5, 10, 200])
def test_masses_positive_and_state_finite(scene, n):
    store = generate(scene, n, G=1.0, seed=7)

    assert store.num_bodies == n
    assert (store.masses > 0).all()
    assert np.isfinite(store.positions).all()
    assert np.isfinite(store.velocities).all()


def test_same_seed_gives_same_scene():
    a = generate(Scene.SPIRAL_GALAXY, 100, seed=3)
    b = generate(Scene.SPIRAL_GALAXY, 100, seed=3)

    np.testing.assert_array_equal(a.positions, b.positions)
    np.testing.assert_array_equal(a.velocities, b.velocities)
    np.testing.assert_array_equal(a.masses, b.masses)


def test_unknown_scene_falls_back_to_random(capsys):
    assert Scene.parse("wormhole") is Scene.RANDOM
    assert "Unknown scene" in capsys.readouterr().out

    store = generate("wormhole", 50, seed=1)
    assert (np.abs(store.positions) <= 10.0).all()


def test_scene_names_are_forgiving():
    assert Scene.parse("Solar-System") is Scene.SOLAR_SYSTEM
    assert Scene.parse(Scene.BINARY_SYSTEM) is Scene.BINARY_SYSTEM


def test_negative_body_count_rejected():
    with pytest.raises(ValueError):
        generate(Scene.RANDOM, -1)


def test_random_ranges():
    store = generate(Scene.RANDOM, 500, seed=11)

    assert (np.abs(store.positions) <= 10.0).all()
    assert (store.masses >= 0.1).all() and (store.masses <= 1.0).all()
    assert (np.abs(store.velocities) <= 1.0).all()


def test_spiral_galaxy_circular_orbits():
    G = 2.0
    store = generate(Scene.SPIRAL_GALAXY, 300, G=G, seed=5)

    assert store.masses[0] == 100.0
    np.testing.assert_array_equal(store.positions[0], 0.0)
    np.testing.assert_array_equal(store.velocities[0], 0.0)

    radius = np.hypot(store.positions[1:, 0], store.positions[1:, 1])
    assert (radius >= 0.1 - 1e-12).all() and (radius <= 10.0 + 1e-12).all()
    # Disk thins with radius
    assert (np.abs(store.positions[1:, 2]) <= 0.5 * radius / 10.0 + 1e-12).all()

    speed = np.linalg.norm(store.velocities[1:], axis=1)
    np.testing.assert_allclose(speed, np.sqrt(G * 100.0 / radius))
    np.testing.assert_array_equal(store.velocities[1:, 2], 0.0)

    radial = (store.positions[1:, :2] * store.velocities[1:, :2]).sum(axis=1)
    np.testing.assert_allclose(radial, 0.0, atol=1e-9)


def test_binary_system_stars_and_under_circular_planets():
    store = generate(Scene.BINARY_SYSTEM, 100, G=1.0, seed=2)

    np.testing.assert_array_equal(store.positions[0], [-2.0, 0.0, 0.0])
    np.testing.assert_array_equal(store.positions[1], [2.0, 0.0, 0.0])
    np.testing.assert_array_equal(store.velocities[0], [0.0, -1.0, 0.0])
    np.testing.assert_array_equal(store.velocities[1], [0.0, 1.0, 0.0])
    assert store.masses[0] == store.masses[1] == 50.0

    radius = np.hypot(store.positions[2:, 0], store.positions[2:, 1])
    assert (radius >= 3.0 - 1e-12).all() and (radius <= 10.0 + 1e-12).all()
    assert (store.masses[2:] <= 0.5).all()
    assert (np.abs(store.positions[2:, 2]) <= 0.1 * np.pi + 1e-12).all()

    speed = np.linalg.norm(store.velocities[2:], axis=1)
    np.testing.assert_allclose(speed, np.sqrt(100.0 / radius) * 0.7)


def test_solar_system_planets():
    store = generate(Scene.SOLAR_SYSTEM, 10, G=1.0, seed=0)

    np.testing.assert_array_equal(store.positions[0], 0.0)
    np.testing.assert_array_equal(store.velocities[0], 0.0)
    assert store.masses[0] == 50.0

    planets = store.positions[1:10]
    radius = np.linalg.norm(planets, axis=1)
    np.testing.assert_allclose(radius, PLANET_RADII)
    np.testing.assert_allclose(store.masses[1:10], 0.5 + np.asarray(PLANET_MASSES) * 0.1)

    angles = np.arctan2(planets[:, 1], planets[:, 0]) % (2 * np.pi)
    np.testing.assert_allclose(angles, 2 * np.pi * np.arange(9) / 9, atol=1e-12)

    velocities = store.velocities[1:10]
    speed = np.linalg.norm(velocities, axis=1)
    assert (speed > 0).all()
    np.testing.assert_allclose(speed, np.sqrt(50.0 / np.asarray(PLANET_RADII)) * 0.5)

    radial = (planets * velocities).sum(axis=1)
    np.testing.assert_allclose(radial, 0.0, atol=1e-12)


def test_solar_system_debris_and_truncation():
    store = generate(Scene.SOLAR_SYSTEM, 300, seed=9)
    debris = store.positions[10:]
    radius = np.hypot(debris[:, 0], debris[:, 1])
    assert (radius >= 0.3 - 1e-12).all() and (radius <= 40.0 + 1e-12).all()
    assert (store.masses[10:] >= 0.01).all() and (store.masses[10:] <= 0.1).all()

    small = generate(Scene.SOLAR_SYSTEM, 4, seed=9)
    np.testing.assert_allclose(np.linalg.norm(small.positions[1:], axis=1), PLANET_RADII[:3])
