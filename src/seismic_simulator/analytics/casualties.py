"""Occupant risk estimate from peak drift and building age."""

from __future__ import annotations

import math
from dataclasses import asdict, dataclass
from enum import Enum
from typing import Any, Dict


class Severity(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


@dataclass(frozen=True)
class CasualtyEstimate:
    casualty_risk_pct: int
    rescue_window_min: int
    collapse_time_s: float       # inf when no collapse is expected
    occupancy_at_risk: int
    severity: Severity

    def to_dict(self) -> Dict[str, Any]:
        d = asdict(self)
        d["severity"] = self.severity.value
        return d


def _collapse_time(max_drift: float) -> float:
    if max_drift > 4.0:
        return 15.0
    if max_drift > 3.0:
        return 60.0
    if max_drift > 2.5:
        return 180.0
    return math.inf


def _base_risk(max_drift: float, age_factor: float) -> float:
    if max_drift < 1.0:
        return 0.0
    if max_drift < 2.5:
        return 10.0 + age_factor * 20.0
    if max_drift < 4.0:
        return 40.0 + age_factor * 40.0
    return 85.0 + age_factor * 15.0


def _severity(risk: float) -> Severity:
    if risk > 75.0:
        return Severity.CRITICAL
    if risk > 45.0:
        return Severity.HIGH
    if risk > 15.0:
        return Severity.MEDIUM
    return Severity.LOW


def estimate_casualties(
    max_drift: float,
    n_floors: int,
    occupancy_per_floor: int = 20,
    age: float = 0.0,
) -> CasualtyEstimate:
    """
    Risk grows with peak drift and with age. The rescue window shrinks once
    drift exceeds 2.5 % (never below 2 min) and is 60 min otherwise.
    """
    age_factor = age / 100.0
    risk = min(100.0, _base_risk(max_drift, age_factor))
    if max_drift > 2.5:
        rescue = max(2.0, 20.0 - max_drift * 3.0 - age_factor * 10.0)
    else:
        rescue = 60.0

    return CasualtyEstimate(
        casualty_risk_pct=int(round(risk)),
        rescue_window_min=int(round(rescue)),
        collapse_time_s=_collapse_time(max_drift),
        occupancy_at_risk=int(round(n_floors * occupancy_per_floor * risk / 100.0)),
        severity=_severity(risk),
    )
