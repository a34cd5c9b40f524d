"""Retrofit cost and seismic rating for a set of floor upgrades."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Dict, List, Sequence


class Reinforcement(str, Enum):
    NONE = "none"
    BRACING = "bracing"
    DAMPER = "damper"
    CONCRETE_CORE = "concrete-core"


REINFORCEMENT_COST = {
    Reinforcement.NONE: 0.0,
    Reinforcement.BRACING: 15_000.0,
    Reinforcement.DAMPER: 35_000.0,
    Reinforcement.CONCRETE_CORE: 75_000.0,
}

COST_PER_MN_PER_M = 1000.0
RATING_STIFFNESS_REF = 1.0e8   # N/m
RATING_STIFFNESS_WEIGHT = 40.0
RATING_REINFORCEMENT_WEIGHT = 60.0

# (exclusive lower score bound, grade), checked top down
RATING_BANDS = ((90.0, "A+"), (80.0, "A"), (70.0, "B"), (60.0, "C"))


@dataclass(frozen=True)
class FloorRetrofit:
    stiffness: float                                 # N/m after retrofit
    reinforcement: Reinforcement = Reinforcement.NONE


@dataclass(frozen=True)
class RetrofitAssessment:
    cost: float
    score: float
    rating: str

    def to_dict(self) -> Dict[str, object]:
        return {"cost": self.cost, "score": self.score, "rating": self.rating}


def retrofit_cost(floors: Sequence[FloorRetrofit]) -> float:
    return float(
        sum(f.stiffness / 1.0e6 * COST_PER_MN_PER_M + REINFORCEMENT_COST[f.reinforcement] for f in floors)
    )


def rating_score(floors: Sequence[FloorRetrofit]) -> float:
    if not floors:
        raise ValueError("at least one floor is required")
    mean_k = sum(f.stiffness for f in floors) / len(floors)
    reinforced = sum(1 for f in floors if f.reinforcement is not Reinforcement.NONE)
    base = min(100.0, mean_k / RATING_STIFFNESS_REF * RATING_STIFFNESS_WEIGHT)
    return base + reinforced / len(floors) * RATING_REINFORCEMENT_WEIGHT


def rating_label(score: float) -> str:
    for bound, label in RATING_BANDS:
        if score > bound:
            return label
    return "D"


def assess_retrofit(floors: Sequence[FloorRetrofit]) -> RetrofitAssessment:
    score = rating_score(floors)
    return RetrofitAssessment(cost=retrofit_cost(floors), score=score, rating=rating_label(score))


def floors_from_config(stiffnesses: Sequence[float], reinforcements: Sequence[str] | None = None) -> List[FloorRetrofit]:
    """Pair per-floor stiffness with reinforcement names (default: none)."""
    names = list(reinforcements) if reinforcements is not None else ["none"] * len(stiffnesses)
    if len(names) != len(stiffnesses):
        raise ValueError("one reinforcement entry per floor is required")
    return [FloorRetrofit(float(k), Reinforcement(str(r).strip().lower())) for k, r in zip(stiffnesses, names)]
