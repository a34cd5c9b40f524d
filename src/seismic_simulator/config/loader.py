from __future__ import annotations

from pathlib import Path
from typing import Any, Dict

import yaml
from pydantic import ValidationError

from ..core.engine import ConfigurationError, SimulationConstants
from .models import SimulationConfig, format_validation_error
from .presets import load_building_presets, resolve_building_preset


class ConfigError(ConfigurationError):
    pass


def load_simulation_config(path: Path) -> Dict[str, Any]:
    raw = _load_raw_config(path)
    return normalize_config_dict(raw, filename=path.name)


def load_simulation_params(path: Path) -> Dict[str, Any]:
    """Load, validate and flatten a config file into engine parameters."""
    return config_to_params(load_simulation_config(path), filename=path.name)


def _load_raw_config(path: Path) -> Dict[str, Any]:
    if not path.is_file():
        raise ConfigError(f"Config file not found: {path}")
    text = path.read_text(encoding="utf-8")
    if path.suffix.lower() in {".yaml", ".yml", ".json"}:
        try:
            data = yaml.safe_load(text)
        except yaml.YAMLError as exc:
            raise ConfigError(f"{path.name}: could not parse file: {exc}") from exc
    else:
        raise ConfigError(f"Unsupported config extension '{path.suffix}'.")
    if not isinstance(data, dict):
        raise ConfigError(f"{path.name}: configuration must be a mapping")
    return data


def normalize_config_dict(config: Dict[str, Any], *, filename: str) -> Dict[str, Any]:
    """Validate a raw config mapping and return it with all defaults filled in."""
    try:
        cfg = SimulationConfig.model_validate(config)
    except ValidationError as exc:
        raise ConfigError(format_validation_error(exc, filename=filename)) from exc

    if cfg.building.preset is not None:
        presets = load_building_presets()
        if cfg.building.preset not in presets:
            known = ", ".join(sorted(presets))
            raise ConfigError(
                f"{filename}: unknown building preset '{cfg.building.preset}' (known: {known})"
            )
    return cfg.model_dump()


def config_to_params(config: Dict[str, Any], *, filename: str = "<config>") -> Dict[str, Any]:
    """Flatten a normalized config into the parameter dict of ``run_simulation``."""
    building = config["building"]
    quake = config["earthquake"]

    floors = building.get("floors")
    if floors is None:
        floors = resolve_building_preset(
            load_building_presets(), building["preset"], building.get("n_floors")
        )
        if floors is None:
            raise ConfigError(f"{filename}: unknown building preset '{building['preset']}'")

    default_c = SimulationConstants.DEFAULT_FLOOR_DAMPING
    return {
        "building_name": building["name"],
        "building_age": building["age_years"],
        "floor_height": building["floor_height_m"],
        "occupancy_per_floor": building["occupancy_per_floor"],
        "masses": [float(f["mass_kg"]) for f in floors],
        "stiffnesses": [float(f["stiffness_N_per_m"]) for f in floors],
        "dampings": [
            default_c if f.get("damping_Ns_per_m") is None else float(f["damping_Ns_per_m"])
            for f in floors
        ],
        "reinforcements": [f.get("reinforcement", "none") for f in floors],
        "magnitude": quake["magnitude"],
        "duration": quake["duration_s"],
        "soil_type": quake["soil_type"],
        "seed": quake["seed"],
        "epicenter_distance_km": quake["epicenter_distance_km"],
        "hours_since_last_quake": config["hours_since_last_quake"],
        "instability_policy": config["instability_policy"],
        "case_name": config.get("case_name"),
    }
