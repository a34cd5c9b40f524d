"""Synthetic ground-motion records.

The record is procedural, not derived from real seismograms: a soil-dependent
dominant frequency plus its 1.5x harmonic, uniform phase noise, and a
trapezoidal envelope scaled by a magnitude-dependent peak ground acceleration.

Each call draws fresh noise from the random generator, so two records with the
same inputs differ unless the caller passes the same seed. That is inherent to
the model; pass ``rng`` (a seed or ``numpy.random.Generator``) for
reproducible records.
"""

from __future__ import annotations

import math
from enum import Enum
from typing import Union

import numpy as np


# Gravity used by the PGA attenuation law [m/s²]
GRAVITY = 9.81

# Fixed integration/sampling step of the record [s] (50 Hz)
DT = 0.02

RngLike = Union[None, int, np.random.Generator]


class SoilClass(str, Enum):
    """Site soil class; stiffer soil transmits higher-frequency content."""

    ROCK = "rock"
    MEDIUM = "medium"
    SOFT = "soft"

    @classmethod
    def parse(cls, value: "SoilClass | str") -> "SoilClass":
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).strip().lower())
        except ValueError as exc:
            allowed = ", ".join(s.value for s in cls)
            raise ValueError(f"Unknown soil class {value!r}; expected one of: {allowed}") from exc


# Dominant angular frequency per soil class [rad/s]
DOMINANT_OMEGA = {
    SoilClass.ROCK: 10.0,
    SoilClass.MEDIUM: 2.0 * math.pi,
    SoilClass.SOFT: 2.0,
}

# Envelope breakpoints as fractions of the duration
RISE_FRACTION = 0.2
DECAY_FRACTION = 0.8
DECAY_RATE = 2.0  # 1/s

NOISE_HALF_WIDTH = 0.25
SECOND_HARMONIC_RATIO = 1.5
SECOND_HARMONIC_WEIGHT = 0.5


def make_rng(rng: RngLike = None) -> np.random.Generator:
    """Return a numpy Generator from a seed, an existing Generator or None."""
    if isinstance(rng, np.random.Generator):
        return rng
    return np.random.default_rng(rng)


def step_count_for(duration: float, dt: float = DT) -> int:
    """Number of samples ``ceil(duration / dt)``.

    A small tolerance absorbs the binary representation of dt, so that
    60 s at 0.02 s gives exactly 3000 samples.
    """
    if duration <= 0.0 or dt <= 0.0:
        raise ValueError("duration and dt must be > 0")
    return int(math.ceil(duration / dt - 1e-9))


def peak_ground_acceleration(magnitude: float) -> float:
    """PGA [m/s²] = 0.1 · 10^(0.5·(M-5)) · 9.81."""
    return 0.1 * 10.0 ** (0.5 * (magnitude - 5.0)) * GRAVITY


def envelope(t: np.ndarray, duration: float) -> np.ndarray:
    """Trapezoidal envelope: quadratic rise, plateau, exponential decay, zero after."""
    t = np.asarray(t, dtype=float)
    t1 = duration * RISE_FRACTION
    t2 = duration * DECAY_FRACTION
    return np.select(
        [t < t1, t < t2, t < duration],
        [(t / t1) ** 2, np.ones_like(t), np.exp(-DECAY_RATE * (t - t2))],
        default=0.0,
    )


def generate_ground_motion(
    magnitude: float,
    duration: float,
    soil_class: SoilClass | str,
    step_count: int,
    rng: RngLike = None,
    dt: float = DT,
) -> np.ndarray:
    """
    Generate a synthetic ground acceleration record.

    Parameters
    ----------
    magnitude : float
        Moment magnitude, 5.0 to 9.0.
    duration : float
        Strong-motion duration [s]; the envelope is zero beyond it.
    soil_class : SoilClass or str
        ``rock``, ``medium`` or ``soft``.
    step_count : int
        Number of samples, normally ``step_count_for(duration, dt)``.
    rng : int, numpy.random.Generator or None
        Source of the phase noise. ``None`` draws from fresh OS entropy.
    dt : float
        Sample spacing [s].

    Returns
    -------
    np.ndarray
        Ground acceleration [m/s²], shape (step_count,).
    """
    if step_count <= 0:
        raise ValueError("step_count must be > 0")
    soil = SoilClass.parse(soil_class)
    generator = make_rng(rng)

    pga = peak_ground_acceleration(magnitude)
    omega = DOMINANT_OMEGA[soil]

    t = np.arange(step_count, dtype=float) * dt
    noise = generator.uniform(-NOISE_HALF_WIDTH, NOISE_HALF_WIDTH, size=step_count)
    signal = (
        np.sin(omega * t)
        + SECOND_HARMONIC_WEIGHT * np.sin(omega * SECOND_HARMONIC_RATIO * t)
        + noise
    )
    return signal * envelope(t, duration) * pga
