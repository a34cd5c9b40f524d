"""
Inter-story drift and drift-based damage classification.
"""
from __future__ import annotations

from enum import Enum
from typing import List, Sequence

import numpy as np

DEFAULT_FLOOR_HEIGHT_M = 3.5

# Drift thresholds [%]
MODERATE_DRIFT_PCT = 1.0
CRITICAL_DRIFT_PCT = 2.5
COLLAPSE_DRIFT_PCT = 4.0


class DamageLevel(str, Enum):
    """Per-floor damage state, recomputed from drift on demand."""

    SAFE = "safe"
    MODERATE = "moderate"
    CRITICAL = "critical"


class OverallDamage(str, Enum):
    """Run-level damage used in summaries; adds a collapse band above 4 %."""

    SAFE = "safe"
    MODERATE = "moderate"
    CRITICAL = "critical"
    COLLAPSE = "collapse"


def calculate_drift(
    displacements: Sequence[float],
    floor_height: float = DEFAULT_FLOOR_HEIGHT_M,
) -> np.ndarray:
    """
    Inter-story drift in percent of the story height.

        drift[i] = |u[i] - u[i-1]| / h * 100,   u[-1] = 0 (ground)

    Args:
        displacements: Floor displacements [m], bottom to top.
        floor_height: Story height [m].

    Returns:
        Non-negative drift array [%], same length as ``displacements``.
    """
    if floor_height <= 0.0:
        raise ValueError("floor_height must be > 0")
    u = np.asarray(displacements, dtype=float)
    if u.size == 0:
        return np.zeros(0)
    below = np.concatenate(([0.0], u[:-1]))
    return np.abs(u - below) / floor_height * 100.0


def classify_damage(drift_pct: float) -> DamageLevel:
    if drift_pct > CRITICAL_DRIFT_PCT:
        return DamageLevel.CRITICAL
    if drift_pct > MODERATE_DRIFT_PCT:
        return DamageLevel.MODERATE
    return DamageLevel.SAFE


def classify_floors(drifts_pct: Sequence[float]) -> List[DamageLevel]:
    return [classify_damage(float(d)) for d in drifts_pct]


def overall_damage_level(peak_drift_pct: float) -> OverallDamage:
    """Damage label for a whole run from its peak drift."""
    if peak_drift_pct > COLLAPSE_DRIFT_PCT:
        return OverallDamage.COLLAPSE
    if peak_drift_pct > CRITICAL_DRIFT_PCT:
        return OverallDamage.CRITICAL
    if peak_drift_pct > MODERATE_DRIFT_PCT:
        return OverallDamage.MODERATE
    return OverallDamage.SAFE


def status_label(peak_drift_pct: float) -> str:
    """Dashboard status text: 'Critical', 'Warning' or 'Safe'."""
    if peak_drift_pct > CRITICAL_DRIFT_PCT:
        return "Critical"
    if peak_drift_pct > MODERATE_DRIFT_PCT:
        return "Warning"
    return "Safe"
