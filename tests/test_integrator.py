from __future__ import annotations

import sys

sys.path.insert(0, "src")

import numpy as np
import pytest

from seismic_simulator.core.integrator import ExplicitShearIntegrator, FloorState

SEED_MASSES = np.array([50_000.0, 48_000.0, 46_000.0, 44_000.0, 40_000.0])
SEED_STIFFNESSES = np.array([8.0e6, 7.5e6, 7.0e6, 6.5e6, 6.0e6])
SEED_DAMPINGS = np.array([20_000.0, 18_000.0, 16_000.0, 14_000.0, 12_000.0])


def test_state_lengths_preserved_over_many_steps() -> None:
    integ = ExplicitShearIntegrator(0.02)
    rng = np.random.default_rng(0)
    state = FloorState.at_rest(5)
    for ag in rng.uniform(-3.0, 3.0, size=200):
        state = integ.step(SEED_MASSES, SEED_STIFFNESSES, SEED_DAMPINGS, state, float(ag))
        assert len(state.displacements) == 5
        assert len(state.velocities) == 5
        assert len(state.accelerations) == 5
    assert integ.n_steps == 200
    assert state.is_finite()


def test_first_step_from_rest() -> None:
    dt = 0.02
    integ = ExplicitShearIntegrator(dt)
    state = integ.step(
        np.array([1000.0, 1000.0]),
        np.array([1.0e6, 1.0e6]),
        np.array([0.0, 0.0]),
        FloorState.at_rest(2),
        1.0,
    )
    np.testing.assert_allclose(state.accelerations, [-1.0, -1.0])
    np.testing.assert_allclose(state.velocities, [-dt, -dt])
    # displacement uses the updated velocity
    np.testing.assert_allclose(state.displacements, [-dt * dt, -dt * dt])


def test_story_coupling() -> None:
    dt = 0.01
    integ = ExplicitShearIntegrator(dt)
    m = np.array([2.0, 1.0])
    k = np.array([10.0, 4.0])
    c = np.array([1.0, 0.5])
    prev = FloorState(np.array([0.1, 0.3]), np.array([0.0, 0.2]), np.zeros(2))
    new = integ.step(m, k, c, prev, 0.0)

    fs0 = 10.0 * 0.1 + 1.0 * 0.0
    fs1 = 4.0 * 0.2 + 0.5 * 0.2
    expected_acc = np.array([(-fs0 + fs1) / 2.0, -fs1 / 1.0])
    np.testing.assert_allclose(new.accelerations, expected_acc)
    np.testing.assert_allclose(new.velocities, prev.velocities + expected_acc * dt)
    np.testing.assert_allclose(new.displacements, prev.displacements + new.velocities * dt)


def test_single_floor_has_no_floor_above() -> None:
    integ = ExplicitShearIntegrator(0.02)
    prev = FloorState(np.array([0.01]), np.array([0.0]), np.array([0.0]))
    new = integ.step(np.array([100.0]), np.array([1.0e4]), np.array([0.0]), prev, 0.0)
    assert new.accelerations[0] == pytest.approx(-1.0e4 * 0.01 / 100.0)


def test_input_state_not_modified() -> None:
    integ = ExplicitShearIntegrator(0.02)
    prev = FloorState.at_rest(5)
    integ.step(SEED_MASSES, SEED_STIFFNESSES, SEED_DAMPINGS, prev, 2.0)
    assert np.all(prev.displacements == 0.0)
    assert np.all(prev.velocities == 0.0)


def test_floor_state_rejects_mismatched_lengths() -> None:
    with pytest.raises(ValueError):
        FloorState(np.zeros(3), np.zeros(2), np.zeros(3))


def test_nonpositive_dt_rejected() -> None:
    with pytest.raises(ValueError):
        ExplicitShearIntegrator(0.0)


def test_stability_info_for_seed_building() -> None:
    integ = ExplicitShearIntegrator(0.02)
    info = integ.get_stability_info(SEED_MASSES, SEED_STIFFNESSES)
    assert info["is_stable"] is True
    assert info["critical_dt"] > 0.02
    assert info["fundamental_period_s"] > 0.5
    omegas = integ.natural_frequencies(SEED_MASSES, SEED_STIFFNESSES)
    assert np.all(np.diff(omegas) > 0.0)
    assert info["omega_max"] == pytest.approx(omegas[-1])


def test_single_floor_frequency_matches_closed_form() -> None:
    omegas = ExplicitShearIntegrator.natural_frequencies([100.0], [1.0e4])
    assert omegas[0] == pytest.approx(10.0)


def test_check_stability_warns_for_stiff_building(caplog) -> None:
    integ = ExplicitShearIntegrator(0.02)
    with caplog.at_level("WARNING"):
        info = integ.check_stability([1.0], [1.0e12])
    assert info["is_stable"] is False
    assert "stability limit" in caplog.text
