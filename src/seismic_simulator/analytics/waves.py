"""Seismic wave arrival at the building site."""

from __future__ import annotations

from dataclasses import dataclass

# Propagation speeds [km/s]
P_WAVE_SPEED = 6.0
S_WAVE_SPEED = 3.5
SURFACE_WAVE_SPEED = 2.5

# Relative amplitudes of the three phases
P_WAVE_WEIGHT = 0.3
S_WAVE_WEIGHT = 0.8
SURFACE_WAVE_WEIGHT = 1.0


@dataclass(frozen=True)
class WaveFront:
    position: float   # fraction of the epicentral distance covered, 0-1
    amplitude: float


@dataclass(frozen=True)
class WaveState:
    p_wave: WaveFront
    s_wave: WaveFront
    surface_wave: WaveFront
    building_reached: bool


def arrival_times(epicenter_distance_km: float) -> dict:
    """Arrival time [s] of each phase at the site."""
    return {
        "p_wave": epicenter_distance_km / P_WAVE_SPEED,
        "s_wave": epicenter_distance_km / S_WAVE_SPEED,
        "surface_wave": epicenter_distance_km / SURFACE_WAVE_SPEED,
    }


def calculate_wave_progression(
    time: float,
    magnitude: float,
    epicenter_distance_km: float = 30.0,
) -> WaveState:
    """Front positions and amplitudes ``time`` seconds after rupture.

    The amplitude factor is ``0.1 · 10^(0.3·(M-5))``; the building is reached
    once the P-wave front covers the epicentral distance.
    """
    if epicenter_distance_km <= 0.0:
        raise ValueError("epicenter_distance_km must be > 0")

    amplitude = 0.1 * 10.0 ** (0.3 * (magnitude - 5.0))
    t = max(0.0, time)

    def front(speed: float, weight: float) -> WaveFront:
        return WaveFront(
            position=min(t * speed / epicenter_distance_km, 1.0),
            amplitude=amplitude * weight,
        )

    return WaveState(
        p_wave=front(P_WAVE_SPEED, P_WAVE_WEIGHT),
        s_wave=front(S_WAVE_SPEED, S_WAVE_WEIGHT),
        surface_wave=front(SURFACE_WAVE_SPEED, SURFACE_WAVE_WEIGHT),
        building_reached=t * P_WAVE_SPEED >= epicenter_distance_km,
    )
