from __future__ import annotations

import sys

sys.path.insert(0, "src")

import numpy as np
import pytest

from seismic_simulator.analytics import (
    BuildingStatus,
    CityBuilding,
    create_initial_disaster_state,
    simulate_city_cascade,
    simulate_disaster_timeline,
    update_disaster_state,
)
from seismic_simulator.analytics.disaster import (
    DisasterState,
    FireState,
    GasLeakState,
    compound_risk,
    set_earthquake,
    set_fire,
    set_gas_leak,
)


# ----------------------------------------------------------------------
# multi-hazard state
# ----------------------------------------------------------------------

def test_initial_state_is_quiet() -> None:
    state = create_initial_disaster_state()
    assert not state.quake_active
    assert not state.fire.active and state.fire.floors == ()
    assert not state.gas_leak.active
    assert state.compound_risk == 0.0
    assert update_disaster_state(state, 0.02, 100.0, rng=0) == state


def test_ignition_and_leak_start_values() -> None:
    state = set_gas_leak(set_fire(create_initial_disaster_state(), True), True)
    assert state.fire.floors == (1,)
    assert state.fire.intensity == 20.0
    assert state.gas_leak.floor == 2
    assert state.gas_leak.concentration_ppm == 500.0

    off = set_gas_leak(set_fire(state, False), False)
    assert off.fire.floors == () and off.fire.intensity == 0.0
    assert off.gas_leak.concentration_ppm == 0.0


def test_fire_without_damage_grows_but_does_not_spread() -> None:
    state = set_fire(create_initial_disaster_state(), True)
    for _ in range(100):
        state = update_disaster_state(state, 0.1, 0.0, rng=3)
    assert state.fire.floors == (1,)
    assert state.fire.intensity == pytest.approx(40.0)
    assert state.compound_risk == pytest.approx(30.0 * 0.4)


def test_fire_spreads_upward_and_stops_at_floor_cap() -> None:
    state = set_fire(create_initial_disaster_state(), True)
    # spread chance 0.2 · 500/50 · 1 >= 1
    state = update_disaster_state(state, 1.0, 500.0, rng=0)
    assert state.fire.floors == (1, 2)

    rng = np.random.default_rng(1)
    for _ in range(200):
        state = update_disaster_state(state, 1.0, 500.0, rng=rng, max_fire_floors=3)
    assert state.fire.floors == (1, 2, 3)
    assert state.fire.intensity == 100.0


def test_explosion_risk_uses_concentration_before_the_step() -> None:
    state = set_gas_leak(create_initial_disaster_state(), True)
    state = update_disaster_state(state, 1.0, 0.0)
    assert state.gas_leak.concentration_ppm == 550.0
    assert state.gas_leak.explosion_risk == pytest.approx(5.0)

    # fire reaching the leak floor doubles the risk scale and lifts the cap
    burning = DisasterState(
        fire=FireState(True, (1, 2), 50.0),
        gas_leak=GasLeakState(True, 2, 9_000.0, 0.0),
    )
    after = update_disaster_state(burning, 0.0, 0.0)
    assert after.gas_leak.explosion_risk == 100.0


def test_gas_concentration_is_capped() -> None:
    state = set_gas_leak(create_initial_disaster_state(), True)
    for _ in range(300):
        state = update_disaster_state(state, 1.0, 0.0)
    assert state.gas_leak.concentration_ppm == 10_000.0
    assert state.gas_leak.explosion_risk == 50.0


def test_compound_risk_weights() -> None:
    state = set_earthquake(create_initial_disaster_state(), True, 9.0)
    assert compound_risk(state) == pytest.approx(40.0)
    state = set_fire(state, True)
    assert compound_risk(state) == pytest.approx(40.0 + 30.0 * 0.2)
    assert set_earthquake(state, False).quake_magnitude == 0.0


def test_timeline_replays_drift_history() -> None:
    drift = np.full(500, 3.0)
    state, risk = simulate_disaster_timeline(drift, 0.02, 7.0, fire=True, gas_leak=True, rng=11)
    assert risk.shape == (500,)
    assert np.all(np.diff(risk) >= 0.0)
    assert risk[0] >= 40.0 * 7.0 / 9.0 + 6.0
    assert not state.quake_active
    assert state.fire.intensity == pytest.approx(40.0)

    again, risk_again = simulate_disaster_timeline(drift, 0.02, 7.0, fire=True, gas_leak=True, rng=11)
    assert again == state
    np.testing.assert_array_equal(risk, risk_again)


def test_timeline_ignores_non_finite_drift() -> None:
    drift = np.array([1.0, np.nan, 2.0])
    state, risk = simulate_disaster_timeline(drift, 0.02, 6.0, fire=True, rng=0)
    assert np.all(np.isfinite(risk))
    assert state.to_dict()["fire"]["floors"][0] == 1


# ----------------------------------------------------------------------
# city cascade
# ----------------------------------------------------------------------

def _block() -> list[CityBuilding]:
    return [
        CityBuilding("a", "Tower", 0.0, 0.0, 10),
        CityBuilding("b", "Close", 6.0, 0.0, 4),
        CityBuilding("c", "Far", 30.0, 0.0, 4),
        CityBuilding("d", "Weak", 0.0, 3.0, 3, BuildingStatus.DAMAGED, 60.0),
        CityBuilding("e", "Edge", 0.0, 24.0, 2),
    ]


def test_collapse_damages_neighbours_by_distance() -> None:
    result = {b.id: b for b in simulate_city_cascade(_block(), "a")}

    assert result["a"].status is BuildingStatus.COLLAPSED
    assert result["a"].damage_percent == 100.0
    # radius 30 m: (1 - 6/30)·50 = 40
    assert result["b"].damage_percent == pytest.approx(40.0)
    assert result["b"].status is BuildingStatus.DAMAGED
    # on the radius: untouched
    assert result["c"] == _block()[2]
    assert result["d"].damage_percent == pytest.approx(100.0)
    assert result["d"].status is BuildingStatus.COLLAPSED
    # (1 - 24/30)·50 = 10: damage grows, status stays
    assert result["e"].damage_percent == pytest.approx(10.0)
    assert result["e"].status is BuildingStatus.INTACT


def test_unknown_collapse_id_leaves_block_unchanged() -> None:
    block = _block()
    assert simulate_city_cascade(block, "zz") == block


def test_city_building_dict_round_trip() -> None:
    b = CityBuilding.from_dict({"id": 7, "x": "1.5", "y": 2, "floors": 3})
    assert b.id == "7" and b.name == "7"
    assert b.status is BuildingStatus.INTACT
    assert b.to_dict()["status"] == "intact"
    with pytest.raises(ValueError):
        CityBuilding.from_dict({"id": "x", "x": 0, "y": 0, "floors": 1, "status": "burning"})
