from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml

PRESET_FILE = Path(__file__).resolve().parent / "buildings.yaml"


@dataclass(frozen=True)
class BuildingPreset:
    key: str
    name: str
    floors: List[Dict[str, Any]]
    default_floors: int

    def expand(self, n_floors: Optional[int] = None) -> List[Dict[str, Any]]:
        """Floor dicts for this preset; templated presets repeat their floor n times."""
        if n_floors is None or n_floors == len(self.floors):
            return [dict(f) for f in self.floors]
        if len(self.floors) != 1:
            raise ValueError(f"preset '{self.key}' has a fixed floor count of {len(self.floors)}")
        return [dict(self.floors[0]) for _ in range(n_floors)]


def load_building_presets(path: Path = PRESET_FILE) -> Dict[str, BuildingPreset]:
    data = _load_yaml(path).get("buildings", {})
    presets: Dict[str, BuildingPreset] = {}
    for key, entry in data.items():
        if "floor_template" in entry:
            n = int(entry.get("default_floors", 5))
            floors = [dict(entry["floor_template"])]
        else:
            floors = [dict(f) for f in entry.get("floors", [])]
            n = len(floors)
        presets[key] = BuildingPreset(key=key, name=entry.get("name", key), floors=floors, default_floors=n)
    return presets


def resolve_building_preset(
    presets: Dict[str, BuildingPreset],
    preset_id: str,
    n_floors: Optional[int] = None,
) -> Optional[List[Dict[str, Any]]]:
    preset = presets.get(preset_id)
    if preset is None:
        return None
    return preset.expand(n_floors if n_floors is not None else preset.default_floors)


def _load_yaml(path: Path) -> Dict[str, Any]:
    if not path.is_file():
        return {}
    return yaml.safe_load(path.read_text(encoding="utf-8")) or {}
