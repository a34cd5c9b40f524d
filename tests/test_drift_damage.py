from __future__ import annotations

import sys

sys.path.insert(0, "src")

import numpy as np
import pytest

from seismic_simulator.core.drift import (
    DamageLevel,
    OverallDamage,
    calculate_drift,
    classify_damage,
    classify_floors,
    overall_damage_level,
    status_label,
)


def test_drift_is_relative_to_floor_below() -> None:
    drift = calculate_drift([0.035, 0.0, 0.07], floor_height=3.5)
    np.testing.assert_allclose(drift, [1.0, 1.0, 2.0])


def test_drift_is_non_negative() -> None:
    rng = np.random.default_rng(3)
    for _ in range(50):
        u = rng.normal(0.0, 0.2, size=6)
        assert np.all(calculate_drift(u) >= 0.0)


def test_lowest_floor_depends_only_on_its_displacement() -> None:
    a = calculate_drift([0.02, 0.5, -0.3])
    b = calculate_drift([0.02, -1.0, 4.0])
    assert a[0] == b[0] == pytest.approx(0.02 / 3.5 * 100.0)


def test_empty_building_gives_empty_drift() -> None:
    assert calculate_drift([]).size == 0


def test_bad_floor_height_rejected() -> None:
    with pytest.raises(ValueError):
        calculate_drift([0.01], floor_height=0.0)


@pytest.mark.parametrize(
    "drift,level",
    [
        (0.0, DamageLevel.SAFE),
        (1.0, DamageLevel.SAFE),
        (1.01, DamageLevel.MODERATE),
        (2.5, DamageLevel.MODERATE),
        (2.51, DamageLevel.CRITICAL),
        (10.0, DamageLevel.CRITICAL),
    ],
)
def test_floor_classification(drift: float, level: DamageLevel) -> None:
    assert classify_damage(drift) is level


def test_overall_level_has_collapse_band() -> None:
    assert overall_damage_level(0.5) is OverallDamage.SAFE
    assert overall_damage_level(2.0) is OverallDamage.MODERATE
    assert overall_damage_level(4.0) is OverallDamage.CRITICAL
    assert overall_damage_level(4.01) is OverallDamage.COLLAPSE


def test_classify_floors_and_status() -> None:
    assert classify_floors([0.2, 1.5, 3.0]) == [
        DamageLevel.SAFE,
        DamageLevel.MODERATE,
        DamageLevel.CRITICAL,
    ]
    assert status_label(0.3) == "Safe"
    assert status_label(1.8) == "Warning"
    assert status_label(2.6) == "Critical"
