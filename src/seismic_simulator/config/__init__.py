"""Configuration loading and validation utilities."""

from .loader import (
    ConfigError,
    config_to_params,
    load_simulation_config,
    load_simulation_params,
    normalize_config_dict,
)
from .presets import load_building_presets, resolve_building_preset

__all__ = [
    "ConfigError",
    "config_to_params",
    "load_building_presets",
    "load_simulation_config",
    "load_simulation_params",
    "normalize_config_dict",
    "resolve_building_preset",
]
