"""
Age-dependent degradation factors.

Age reduces strength and stiffness and loosens joints (more damping):

    a_n       = min(age / 100, 1)
    strength  = max(0.4, 1 - 0.50 a_n)
    stiffness = max(0.4, 1 - 0.45 a_n)
    damping   = 1 + 0.8 a_n

Corrosion classes follow fixed age thresholds (15 / 40 / 70 years).
All functions are pure; repeated calls with the same age return identical values.
"""
from __future__ import annotations

from dataclasses import asdict, dataclass
from enum import Enum
from typing import Dict, Sequence, Tuple

import numpy as np

REFERENCE_AGE_YEARS = 100.0
MIN_RETAINED_FRACTION = 0.4


class CorrosionLevel(str, Enum):
    NONE = "none"
    MILD = "mild"
    MODERATE = "moderate"
    SEVERE = "severe"


# (upper age bound [years], level, description); last row catches everything else
_CORROSION_TABLE: Tuple[Tuple[float, CorrosionLevel, str], ...] = (
    (15.0, CorrosionLevel.NONE, "Modern structure. Nominal performance."),
    (40.0, CorrosionLevel.MILD, "Mature structure. Secondary components aging."),
    (70.0, CorrosionLevel.MODERATE, "Significant aging. Critical strength reduction."),
    (float("inf"), CorrosionLevel.SEVERE, "Heritage structure. Extreme fragility. Retrofit essential."),
)


@dataclass(frozen=True)
class AgingFactors:
    strength_reduction: float   # 0-1, 1 = full strength
    stiffness_reduction: float  # 0-1
    damping_increase: float     # >= 1
    corrosion_level: CorrosionLevel
    description: str

    def to_dict(self) -> Dict[str, object]:
        data = asdict(self)
        data["corrosion_level"] = self.corrosion_level.value
        return data


def normalized_age(age_years: float) -> float:
    return min(float(age_years) / REFERENCE_AGE_YEARS, 1.0)


def corrosion_for_age(age_years: float) -> Tuple[CorrosionLevel, str]:
    for upper, level, description in _CORROSION_TABLE:
        if age_years < upper:
            return level, description
    return _CORROSION_TABLE[-1][1], _CORROSION_TABLE[-1][2]


def compute_aging_factors(age_years: float) -> AgingFactors:
    """
    Degradation factors for a building of the given age.

    Total over all ages >= 0; a negative age is a configuration error.
    """
    age = float(age_years)
    if age < 0.0 or not np.isfinite(age):
        raise ValueError(f"age_years must be a finite value >= 0, got {age_years!r}")

    a_n = normalized_age(age)
    level, description = corrosion_for_age(age)
    return AgingFactors(
        strength_reduction=max(MIN_RETAINED_FRACTION, 1.0 - 0.5 * a_n),
        stiffness_reduction=max(MIN_RETAINED_FRACTION, 1.0 - 0.45 * a_n),
        damping_increase=1.0 + 0.8 * a_n,
        corrosion_level=level,
        description=description,
    )


def apply_aging(
    masses: Sequence[float],
    stiffnesses: Sequence[float],
    dampings: Sequence[float],
    factors: AgingFactors,
) -> Tuple[np.ndarray, np.ndarray, np.ndarray]:
    """
    Scale floor properties once at run start.

    Mass is scaled by the strength factor, stiffness by the stiffness factor
    and damping by the damping increase. The scaled arrays stay fixed for the
    whole run.
    """
    m = np.asarray(masses, dtype=float) * factors.strength_reduction
    k = np.asarray(stiffnesses, dtype=float) * factors.stiffness_reduction
    c = np.asarray(dampings, dtype=float) * factors.damping_increase
    return m, k, c
