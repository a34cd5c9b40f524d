"""Collapse cascade through a block of neighbouring buildings."""

from __future__ import annotations

import math
from dataclasses import asdict, dataclass, replace
from enum import Enum
from typing import Any, Dict, Iterable, List

# Debris reach per storey of the collapsing building [m]
IMPACT_RADIUS_PER_FLOOR = 3.0
MAX_ADDED_DAMAGE = 50.0
COLLAPSE_DAMAGE = 80.0
DAMAGED_DAMAGE = 30.0


class BuildingStatus(str, Enum):
    INTACT = "intact"
    DAMAGED = "damaged"
    COLLAPSED = "collapsed"


@dataclass(frozen=True)
class CityBuilding:
    id: str
    name: str
    x: float    # [m]
    y: float    # [m]
    floors: int
    status: BuildingStatus = BuildingStatus.INTACT
    damage_percent: float = 0.0

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "CityBuilding":
        return cls(
            id=str(data["id"]),
            name=str(data.get("name", data["id"])),
            x=float(data["x"]),
            y=float(data["y"]),
            floors=int(data["floors"]),
            status=BuildingStatus(data.get("status", "intact")),
            damage_percent=float(data.get("damage_percent", 0.0)),
        )

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["status"] = self.status.value
        return data


def simulate_city_cascade(buildings: Iterable[CityBuilding], collapsing_id: str) -> List[CityBuilding]:
    """
    Collapse ``collapsing_id`` and damage its neighbours.

    A building at distance ``d`` inside the impact radius ``r = 3·floors`` of
    the collapsing one gains ``(1 - d/r)·50`` percent damage (capped at 100).
    Above 80 % it collapses, above 30 % it is damaged; otherwise its status is
    unchanged. An unknown ``collapsing_id`` leaves the block as it is.
    """
    block = list(buildings)
    source = next((b for b in block if b.id == collapsing_id), None)
    if source is None:
        return block

    radius = source.floors * IMPACT_RADIUS_PER_FLOOR
    result = []
    for b in block:
        if b.id == collapsing_id:
            result.append(replace(b, status=BuildingStatus.COLLAPSED, damage_percent=100.0))
            continue
        dist = math.hypot(b.x - source.x, b.y - source.y)
        if dist >= radius:
            result.append(b)
            continue
        damage = min(100.0, b.damage_percent + (1.0 - dist / radius) * MAX_ADDED_DAMAGE)
        if damage > COLLAPSE_DAMAGE:
            status = BuildingStatus.COLLAPSED
        elif damage > DAMAGED_DAMAGE:
            status = BuildingStatus.DAMAGED
        else:
            status = b.status
        result.append(replace(b, status=status, damage_percent=damage))
    return result
