"""Structural DNA: a coarse dynamic profile of a building."""

from __future__ import annotations

import math
from dataclasses import asdict, dataclass
from enum import Enum
from typing import Any, Dict, Sequence

import numpy as np


class FragilityType(str, Enum):
    BRITTLE = "brittle"
    SEMI_DUCTILE = "semi-ductile"
    DUCTILE = "ductile"


FAILURE_PERSONALITIES = {
    FragilityType.BRITTLE: "Brittle profile: Sudden failure risk due to aging or stiffness irregularities.",
    FragilityType.DUCTILE: "Ductile profile: High energy dissipation. Visible warnings before failure.",
    FragilityType.SEMI_DUCTILE: "Semi-ductile: Mixed response. Some elements may fail abruptly.",
}

# Normalized stiffness variance above which a building counts as irregular
IRREGULARITY_THRESHOLD = 0.4


@dataclass(frozen=True)
class StructuralDNA:
    flexibility_index: int          # 0-100, higher = more flexible
    fragility_type: FragilityType
    resonance_hz: float
    natural_period_s: float
    failure_personality: str

    def to_dict(self) -> Dict[str, Any]:
        d = asdict(self)
        d["fragility_type"] = self.fragility_type.value
        return d


def normalized_variance(values: Sequence[float]) -> float:
    """Population variance divided by the squared mean."""
    arr = np.asarray(values, dtype=float)
    mean = float(arr.mean())
    return float(arr.var() / (mean * mean))


def calculate_structural_dna(
    masses: Sequence[float],
    stiffnesses: Sequence[float],
    age: float,
) -> StructuralDNA:
    """
    Single-oscillator approximation of the building.

    ω = sqrt(mean(k) / mean(m)), T = 2π/ω. Buildings older than 50 years or
    with a normalized stiffness variance above 0.4 are brittle, older than 25
    years semi-ductile, otherwise ductile. Pass the aging-adjusted masses and
    stiffnesses to profile the building as it responds today.
    """
    m = np.asarray(masses, dtype=float)
    k = np.asarray(stiffnesses, dtype=float)
    if m.size == 0 or m.size != k.size:
        raise ValueError("masses and stiffnesses must be non-empty and of equal length")

    omega = math.sqrt(float(k.mean()) / float(m.mean()))
    period = 2.0 * math.pi / omega
    flexibility = min(100.0, period * 30.0)

    age_factor = min(1.0, age / 100.0)
    if age_factor > 0.5 or normalized_variance(k) > IRREGULARITY_THRESHOLD:
        fragility = FragilityType.BRITTLE
    elif age_factor > 0.25:
        fragility = FragilityType.SEMI_DUCTILE
    else:
        fragility = FragilityType.DUCTILE

    return StructuralDNA(
        flexibility_index=int(round(flexibility)),
        fragility_type=fragility,
        resonance_hz=round(1.0 / period, 2),
        natural_period_s=round(period, 2),
        failure_personality=FAILURE_PERSONALITIES[fragility],
    )
