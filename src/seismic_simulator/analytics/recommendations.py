"""Post-event decision support."""

from __future__ import annotations

from dataclasses import dataclass
from typing import List

from ..core.memory import StructuralMemory
from ..materials.aging import AgingFactors, CorrosionLevel


@dataclass(frozen=True)
class Recommendation:
    priority: str     # low, medium, high or critical
    action: str
    reasoning: str
    timeframe: str
    icon: str


def generate_recommendations(
    max_drift: float,
    safety_score: float,
    memory: StructuralMemory,
    aging: AgingFactors,
) -> List[Recommendation]:
    """Rules are independent; several can fire for the same event."""
    recs: List[Recommendation] = []

    if max_drift > 3.0 or safety_score < 30.0:
        recs.append(Recommendation(
            "critical", "EVACUATE IMMEDIATELY",
            "Structural integrity compromised. Collapse risk is high.",
            "NOW", "evacuate",
        ))

    if max_drift > 2.0 and memory.fatigue_multiplier > 1.2:
        recs.append(Recommendation(
            "high", "AFTERSHOCK WARNING",
            "Structure has accumulated damage. Cannot withstand another significant event.",
            "Next 24 hours", "alert",
        ))

    if aging.corrosion_level is CorrosionLevel.SEVERE or memory.total_damage_history > 40.0:
        recs.append(Recommendation(
            "high", "RETROFITTING REQUIRED",
            "Structural capacity has degraded. Seismic strengthening is necessary.",
            "Within 6 months", "repair",
        ))

    if max_drift < 1.5 and safety_score > 70.0:
        recs.append(Recommendation(
            "low", "SAFE FOR MINOR AFTERSHOCKS",
            "Structure is within acceptable damage limits. Monitor for changes.",
            "Continuous monitoring", "shield",
        ))

    if 1.0 < max_drift < 2.5:
        recs.append(Recommendation(
            "medium", "STRUCTURAL INSPECTION REQUIRED",
            "Moderate damage detected. Professional assessment needed before reoccupancy.",
            "Within 48 hours", "inspect",
        ))

    return recs
