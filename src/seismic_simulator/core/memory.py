"""
Cross-run structural memory: cumulative damage, fatigue and residual drift.

A memory record is created fresh per building and replaced exactly once per
finished run. Records are immutable; ``update_structural_memory`` returns a
new one.
"""
from __future__ import annotations

from dataclasses import asdict, dataclass
from typing import Any, Dict

MAX_TOTAL_DAMAGE = 100.0
MAX_FATIGUE_MULTIPLIER = 3.0
HEAL_RATE_PER_HOUR = 0.001
MAX_HEAL_HOURS = 1000.0
RESIDUAL_DRIFT_PER_DAMAGE = 0.1


@dataclass(frozen=True)
class StructuralMemory:
    total_damage_history: float = 0.0  # cumulative damage, 0-100
    fatigue_multiplier: float = 1.0    # 1.0-3.0
    previous_quakes: int = 0
    residual_drift: float = 0.0        # permanent deformation [%], not capped
    healing_factor: float = 0.0        # heal rate applied by the last update

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "StructuralMemory":
        return cls(
            total_damage_history=float(data.get("total_damage_history", 0.0)),
            fatigue_multiplier=float(data.get("fatigue_multiplier", 1.0)),
            previous_quakes=int(data.get("previous_quakes", 0)),
            residual_drift=float(data.get("residual_drift", 0.0)),
            healing_factor=float(data.get("healing_factor", 0.0)),
        )


def create_fresh_memory() -> StructuralMemory:
    return StructuralMemory()


def update_structural_memory(
    memory: StructuralMemory,
    new_damage_percent: float,
    hours_since_last: float = 0.0,
) -> StructuralMemory:
    """
    Fold one finished earthquake into the memory.

    Existing damage heals slowly with the time since the last quake (capped at
    1000 h), new damage is amplified by the current fatigue, fatigue grows with
    the new damage and is capped at 3.0. Residual drift only accumulates.
    """
    if new_damage_percent < 0.0:
        raise ValueError("new_damage_percent must be >= 0")
    if hours_since_last < 0.0:
        raise ValueError("hours_since_last must be >= 0")

    heal_rate = HEAL_RATE_PER_HOUR * min(hours_since_last, MAX_HEAL_HOURS)
    healed = memory.total_damage_history * (1.0 - heal_rate)

    total = min(MAX_TOTAL_DAMAGE, healed + new_damage_percent * memory.fatigue_multiplier)
    fatigue = min(
        memory.fatigue_multiplier * (1.0 + new_damage_percent / 100.0),
        MAX_FATIGUE_MULTIPLIER,
    )

    return StructuralMemory(
        total_damage_history=total,
        fatigue_multiplier=fatigue,
        previous_quakes=memory.previous_quakes + 1,
        residual_drift=memory.residual_drift + new_damage_percent * RESIDUAL_DRIFT_PER_DAMAGE,
        healing_factor=heal_rate,
    )
