"""Virtual sensor readings synthesized from the floor state."""

from __future__ import annotations

from dataclasses import dataclass
from typing import List, Sequence


@dataclass(frozen=True)
class SensorReading:
    id: str
    type: str        # strain, acceleration or crack
    floor: int       # 1-based
    value: float
    unit: str
    status: str      # normal, warning or critical
    timestamp: float


def _status(value: float, warning: float, critical: float) -> str:
    if value > critical:
        return "critical"
    if value > warning:
        return "warning"
    return "normal"


def generate_sensor_readings(
    displacements: Sequence[float],
    accelerations: Sequence[float],
    time: float,
) -> List[SensorReading]:
    """Three readings per floor: strain, acceleration and crack width."""
    readings: List[SensorReading] = []
    for i, d in enumerate(displacements):
        floor = i + 1
        acc = abs(accelerations[i]) if i < len(accelerations) else 0.0
        strain = abs(d) * 1000.0                      # micro-strain
        crack = max(0.0, (abs(d) - 0.01) * 50.0)      # mm

        readings.append(
            SensorReading(f"STR-F{floor}", "strain", floor, round(strain, 2), "με",
                          _status(strain, 1000.0, 2000.0), time)
        )
        readings.append(
            SensorReading(f"ACC-F{floor}", "acceleration", floor, round(acc, 2), "m/s²",
                          _status(acc, 2.0, 5.0), time)
        )
        readings.append(
            SensorReading(f"CRK-F{floor}", "crack", floor, round(crack, 2), "mm",
                          _status(crack, 1.0, 3.0), time)
        )
    return readings
