import numpy as np
import pytest

from nbody.forces import ForceMode, direct_solve
from nbody.store import BodyStore
from nbody.tree import BarnesHutSolver
from nbody.validation import relative_l2_error, validation_bodies


def _direct_reference(store, n):
    reference = store.copy()
    direct_solve(reference, n, G=1.0, softening=0.1)
    return reference.accelerations[:n]


def test_theta_zero_matches_direct_sum(cloud):
    solver = BarnesHutSolver(theta=0.0, G=1.0, softening=0.1)

    solver.solve(cloud, cloud.num_bodies, ForceMode.TREE)

    np.testing.assert_allclose(cloud.accelerations, _direct_reference(cloud, cloud.num_bodies),
                               rtol=1e-9, atol=1e-12)


def test_small_system_within_tolerance():
    """Ten bodies, error well under 1e-2."""
    store = validation_bodies(10, seed=4)
    solver = BarnesHutSolver(theta=0.1, G=1.0, softening=0.1)

    solver.solve(store, 10, ForceMode.TREE)

    assert relative_l2_error(_direct_reference(store, 10), store.accelerations) < 1e-2


@pytest.mark.parametrize("n", [10, 3000])
def test_default_angles_meet_tolerance(n):
    store = validation_bodies(n, seed=4)
    solver = BarnesHutSolver()

    solver.solve(store, n, ForceMode.FMM)

    assert relative_l2_error(_direct_reference(store, n), store.accelerations) < 1e-2


def test_fmm_mode_uses_stricter_angle():
    solver = BarnesHutSolver(theta=0.7, fmm_theta=0.2)
    assert solver.theta_for(ForceMode.TREE) == 0.7
    assert solver.theta_for(ForceMode.FMM) == 0.2
    assert solver.theta_for("fmm") == 0.2


def test_larger_system_is_close_to_direct():
    store = validation_bodies(2000, seed=8)
    solver = BarnesHutSolver(theta=0.5, fmm_theta=0.25, G=1.0, softening=0.1)
    reference = _direct_reference(store, 2000)

    solver.solve(store, 2000, ForceMode.TREE)
    tree_error = relative_l2_error(reference, store.accelerations)

    solver.solve(store, 2000, ForceMode.FMM)
    fmm_error = relative_l2_error(reference, store.accelerations)

    assert fmm_error < tree_error < 0.1
    assert solver.last_timings["nodes"] >= 2000


def test_rows_beyond_body_count_untouched():
    store = validation_bodies(30, seed=1)
    store.accelerations[:] = 123.0

    BarnesHutSolver(theta=0.5).solve(store, 12, ForceMode.TREE)

    assert not (store.accelerations[:12] == 123.0).all()
    np.testing.assert_array_equal(store.accelerations[12:], 123.0)


def test_coincident_bodies_do_not_blow_up():
    store = BodyStore.from_arrays(
        [[1.0, 1.0, 1.0], [1.0, 1.0, 1.0], [-1.0, 0.5, 0.0]],
        [1.0, 2.0, 3.0],
    )
    solver = BarnesHutSolver(theta=0.0, G=1.0, softening=0.1)

    solver.solve(store, 3, ForceMode.TREE)

    assert np.isfinite(store.accelerations).all()
    np.testing.assert_allclose(store.accelerations, _direct_reference(store, 3), rtol=1e-9)


def test_node_pool_grows_when_exhausted():
    # Tight pairs need deep subdivision, far more nodes than the initial pool
    rng = np.random.default_rng(3)
    centers = rng.uniform(-5.0, 5.0, (20, 3))
    positions = np.concatenate([centers, centers + 1e-6])
    store = BodyStore.from_arrays(positions, rng.uniform(0.1, 1.0, 40))
    solver = BarnesHutSolver(theta=0.0, G=1.0, softening=0.1)

    solver.solve(store, 40, ForceMode.TREE)

    assert solver.last_timings["nodes"] > 40 * 4 + 16
    np.testing.assert_allclose(store.accelerations, _direct_reference(store, 40),
                               rtol=1e-9, atol=1e-12)


def test_empty_and_negative_angles():
    store = BodyStore.empty(0)
    BarnesHutSolver().solve(store, 0, ForceMode.TREE)

    with pytest.raises(ValueError):
        BarnesHutSolver(theta=-1.0)
