from __future__ import annotations

import sys

sys.path.insert(0, "src")

import numpy as np
import pytest

from seismic_simulator.core.ground_motion import (
    DT,
    SoilClass,
    envelope,
    generate_ground_motion,
    peak_ground_acceleration,
    step_count_for,
)


def test_step_count_matches_duration() -> None:
    assert step_count_for(20.0) == 1000
    assert step_count_for(60.0) == 3000
    assert step_count_for(10.0) == 500
    assert step_count_for(10.01) == 501


def test_record_length_at_duration_ceiling() -> None:
    n = step_count_for(60.0, DT)
    record = generate_ground_motion(7.0, 60.0, "medium", n, rng=0)
    assert record.shape == (3000,)
    assert np.all(np.isfinite(record))


def test_seeded_records_are_reproducible() -> None:
    a = generate_ground_motion(6.5, 20.0, SoilClass.SOFT, 1000, rng=123)
    b = generate_ground_motion(6.5, 20.0, SoilClass.SOFT, 1000, rng=123)
    c = generate_ground_motion(6.5, 20.0, SoilClass.SOFT, 1000, rng=124)
    np.testing.assert_array_equal(a, b)
    assert not np.array_equal(a, c)


def test_record_is_bounded_by_pga() -> None:
    pga = peak_ground_acceleration(8.0)
    record = generate_ground_motion(8.0, 30.0, "rock", 1500, rng=5)
    assert np.max(np.abs(record)) <= 1.75 * pga + 1e-9


def test_pga_scaling() -> None:
    assert peak_ground_acceleration(5.0) == pytest.approx(0.1 * 9.81, rel=1e-12)
    assert peak_ground_acceleration(7.0) == pytest.approx(0.1 * 10.0 * 9.81, rel=1e-12)
    assert peak_ground_acceleration(7.0) / peak_ground_acceleration(5.0) == pytest.approx(10.0)


def test_seeded_record_matches_closed_form() -> None:
    magnitude, duration, n = 6.0, 10.0, 500
    record = generate_ground_motion(magnitude, duration, "medium", n, rng=7)

    noise = np.random.default_rng(7).uniform(-0.25, 0.25, size=n)
    pga = 0.1 * 10.0 ** (0.5 * (magnitude - 5.0)) * 9.81
    omega = 2.0 * np.pi
    expected = np.empty(n)
    for i in range(n):
        t = i * 0.02
        if t < 0.2 * duration:
            env = (t / (0.2 * duration)) ** 2
        elif t < 0.8 * duration:
            env = 1.0
        else:
            env = np.exp(-2.0 * (t - 0.8 * duration))
        signal = np.sin(omega * t) + 0.5 * np.sin(1.5 * omega * t) + noise[i]
        expected[i] = signal * env * pga
    np.testing.assert_allclose(record, expected, rtol=1e-12, atol=1e-12)


def test_envelope_shape() -> None:
    duration = 10.0
    t = np.array([0.0, 1.0, 2.0, 5.0, 7.99, 9.0, 10.0, 12.0])
    env = envelope(t, duration)
    assert env[0] == 0.0
    assert env[1] == pytest.approx(0.25)
    assert env[3] == 1.0
    assert env[4] == 1.0
    assert env[5] == pytest.approx(np.exp(-2.0))
    assert env[6] == 0.0
    assert env[7] == 0.0


def test_record_is_zero_beyond_duration() -> None:
    record = generate_ground_motion(7.0, 10.0, "medium", 700, rng=1)
    assert np.all(record[501:] == 0.0)
    assert record[0] == 0.0


def test_unknown_soil_rejected() -> None:
    with pytest.raises(ValueError):
        generate_ground_motion(7.0, 20.0, "clay", 1000, rng=0)


def test_soil_parsing_is_case_insensitive() -> None:
    assert SoilClass.parse(" Rock ") is SoilClass.ROCK
    assert SoilClass.parse(SoilClass.SOFT) is SoilClass.SOFT
