"""
Compound hazards during an earthquake: a spreading fire and a gas leak.

The state is advanced once per time step. Structural damage drives the fire
spread; a fire on the leak floor raises the explosion risk. The compound risk
[0-100] combines the three hazards with weights 40 (quake, scaled by M/9),
30 (fire intensity) and 30 (explosion risk).
"""

from __future__ import annotations

import logging
from dataclasses import asdict, dataclass, field, replace
from typing import Any, Dict, Sequence, Tuple

import numpy as np

from ..core.ground_motion import RngLike, make_rng

logger = logging.getLogger(__name__)

FIRE_START_FLOOR = 1
FIRE_START_INTENSITY = 20.0
FIRE_GROWTH_PER_S = 2.0
MAX_FIRE_FLOORS = 5

GAS_LEAK_FLOOR = 2
GAS_START_PPM = 500.0
GAS_GROWTH_PPM_PER_S = 50.0
MAX_GAS_PPM = 10_000.0

QUAKE_RISK_WEIGHT = 40.0
FIRE_RISK_WEIGHT = 30.0
GAS_RISK_WEIGHT = 30.0


@dataclass(frozen=True)
class FireState:
    active: bool = False
    floors: Tuple[int, ...] = ()
    intensity: float = 0.0    # 0-100


@dataclass(frozen=True)
class GasLeakState:
    active: bool = False
    floor: int = 0
    concentration_ppm: float = 0.0
    explosion_risk: float = 0.0    # 0-100


@dataclass(frozen=True)
class DisasterState:
    quake_active: bool = False
    quake_magnitude: float = 0.0
    fire: FireState = field(default_factory=FireState)
    gas_leak: GasLeakState = field(default_factory=GasLeakState)
    compound_risk: float = 0.0    # 0-100

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["fire"]["floors"] = list(self.fire.floors)
        return data


def create_initial_disaster_state() -> DisasterState:
    """No quake, no fire, no leak."""
    return DisasterState()


def set_earthquake(state: DisasterState, active: bool, magnitude: float = 0.0) -> DisasterState:
    return replace(state, quake_active=active, quake_magnitude=magnitude if active else 0.0)


def set_fire(state: DisasterState, active: bool) -> DisasterState:
    """An ignited fire starts on the first floor at intensity 20."""
    if active:
        fire = FireState(True, (FIRE_START_FLOOR,), FIRE_START_INTENSITY)
    else:
        fire = FireState()
    return replace(state, fire=fire)


def set_gas_leak(state: DisasterState, active: bool) -> DisasterState:
    """A leak sits on the second floor, starting at 500 ppm."""
    gas = replace(
        state.gas_leak,
        active=active,
        floor=GAS_LEAK_FLOOR,
        concentration_ppm=GAS_START_PPM if active else 0.0,
    )
    return replace(state, gas_leak=gas)


def compound_risk(state: DisasterState) -> float:
    risk = 0.0
    if state.quake_active:
        risk += QUAKE_RISK_WEIGHT * (state.quake_magnitude / 9.0)
    if state.fire.active:
        risk += FIRE_RISK_WEIGHT * (state.fire.intensity / 100.0)
    if state.gas_leak.active:
        risk += GAS_RISK_WEIGHT * (state.gas_leak.explosion_risk / 100.0)
    return min(100.0, risk)


def update_disaster_state(
    state: DisasterState,
    dt: float,
    structural_damage: float,
    rng: RngLike = None,
    max_fire_floors: int = MAX_FIRE_FLOORS,
) -> DisasterState:
    """
    Advance the hazards by ``dt`` seconds.

    ``structural_damage`` is the peak drift of the step times 10. An active
    fire spreads one floor up with probability
    ``intensity/100 · damage/50 · dt`` while it covers fewer than
    ``max_fire_floors`` floors, and its intensity grows by 2 per second. The
    explosion risk is read from the concentration before this step's growth.
    """
    generator = make_rng(rng)
    fire = state.fire
    gas = state.gas_leak

    if fire.active:
        spread_chance = (fire.intensity / 100.0) * (structural_damage / 50.0) * dt
        floors = fire.floors
        if generator.random() < spread_chance and len(floors) < max_fire_floors:
            floors = floors + (floors[-1] + 1,)
        fire = replace(fire, floors=floors, intensity=min(100.0, fire.intensity + dt * FIRE_GROWTH_PER_S))

    if gas.active:
        if gas.floor in state.fire.floors:
            risk = min(100.0, gas.concentration_ppm / 50.0)
        else:
            risk = min(50.0, gas.concentration_ppm / 100.0)
        gas = replace(
            gas,
            concentration_ppm=min(MAX_GAS_PPM, gas.concentration_ppm + dt * GAS_GROWTH_PPM_PER_S),
            explosion_risk=risk,
        )

    new = replace(state, fire=fire, gas_leak=gas)
    return replace(new, compound_risk=compound_risk(new))


def simulate_disaster_timeline(
    drift_pct: Sequence[float],
    dt: float,
    magnitude: float,
    fire: bool = False,
    gas_leak: bool = False,
    rng: RngLike = None,
    max_fire_floors: int = MAX_FIRE_FLOORS,
) -> Tuple[DisasterState, np.ndarray]:
    """
    Replay a run's peak-drift history [%] through the hazard model.

    The quake is active for the whole history and switched off at the end.
    Returns the final state and the compound risk after every step.
    """
    generator = make_rng(rng)
    state = set_earthquake(create_initial_disaster_state(), True, magnitude)
    if fire:
        state = set_fire(state, True)
    if gas_leak:
        state = set_gas_leak(state, True)

    drift = np.asarray(drift_pct, dtype=float)
    risk = np.empty(drift.size)
    for i, d in enumerate(drift):
        damage = max(float(d), 0.0) * 10.0 if np.isfinite(d) else 0.0
        state = update_disaster_state(state, dt, damage, rng=generator, max_fire_floors=max_fire_floors)
        risk[i] = state.compound_risk

    state = set_earthquake(state, False)
    logger.debug(
        "Disaster timeline: %d steps, fire on floors %s, peak compound risk %.1f.",
        drift.size,
        list(state.fire.floors),
        float(risk.max()) if risk.size else 0.0,
    )
    return state, risk
