from __future__ import annotations

from typing import List, Literal, Optional

from pydantic import BaseModel, Field, ValidationError, field_validator, model_validator

SoilType = Literal["rock", "medium", "soft"]
ReinforcementType = Literal["none", "bracing", "damper", "concrete-core"]


class ConfigBase(BaseModel):
    model_config = {"extra": "forbid"}


class FloorSpec(ConfigBase):
    mass_kg: float
    stiffness_N_per_m: float
    damping_Ns_per_m: Optional[float] = None
    reinforcement: ReinforcementType = "none"

    @field_validator("mass_kg")
    @classmethod
    def _mass_positive(cls, value: float) -> float:
        if value <= 0.0:
            raise ValueError("mass_kg must be > 0")
        return value

    @field_validator("stiffness_N_per_m")
    @classmethod
    def _stiffness_positive(cls, value: float) -> float:
        if value <= 0.0:
            raise ValueError("stiffness_N_per_m must be > 0")
        return value

    @field_validator("damping_Ns_per_m")
    @classmethod
    def _damping_nonneg(cls, value: Optional[float]) -> Optional[float]:
        if value is not None and value < 0.0:
            raise ValueError("damping_Ns_per_m must be >= 0")
        return value


class BuildingSpec(ConfigBase):
    name: str = "Default 5-Storey Frame"
    age_years: float = 10.0
    floor_height_m: float = 3.5
    occupancy_per_floor: int = 20
    preset: Optional[str] = None
    n_floors: Optional[int] = None
    floors: Optional[List[FloorSpec]] = None

    @field_validator("age_years")
    @classmethod
    def _age_range(cls, value: float) -> float:
        if not (0.0 <= value <= 100.0):
            raise ValueError("age_years must be in [0, 100]")
        return value

    @field_validator("floor_height_m")
    @classmethod
    def _height_positive(cls, value: float) -> float:
        if value <= 0.0:
            raise ValueError("floor_height_m must be > 0")
        return value

    @field_validator("occupancy_per_floor")
    @classmethod
    def _occupancy_nonneg(cls, value: int) -> int:
        if value < 0:
            raise ValueError("occupancy_per_floor must be >= 0")
        return value

    @field_validator("n_floors")
    @classmethod
    def _n_floors_positive(cls, value: Optional[int]) -> Optional[int]:
        if value is not None and value <= 0:
            raise ValueError("n_floors must be > 0")
        return value

    @model_validator(mode="after")
    def _preset_or_floors(self) -> "BuildingSpec":
        if self.preset is not None and self.floors is not None:
            raise ValueError("give either 'preset' or 'floors', not both")
        if self.preset is None and self.floors is None:
            self.preset = "seed_five_storey"
        if self.floors is not None and not self.floors:
            raise ValueError("floors must not be empty")
        if self.floors is not None and self.n_floors is not None:
            raise ValueError("n_floors only applies to presets")
        return self


class EarthquakeSpec(ConfigBase):
    magnitude: float = 7.0
    duration_s: float = 20.0
    soil_type: SoilType = "medium"
    seed: Optional[int] = None
    epicenter_distance_km: float = 30.0

    @field_validator("soil_type", mode="before")
    @classmethod
    def _soil_lower(cls, value):
        return value.strip().lower() if isinstance(value, str) else value

    @field_validator("magnitude")
    @classmethod
    def _magnitude_range(cls, value: float) -> float:
        if not (5.0 <= value <= 9.0):
            raise ValueError("magnitude must be in [5.0, 9.0]")
        return value

    @field_validator("duration_s")
    @classmethod
    def _duration_range(cls, value: float) -> float:
        if not (10.0 <= value <= 60.0):
            raise ValueError("duration_s must be in [10, 60]")
        return value

    @field_validator("epicenter_distance_km")
    @classmethod
    def _distance_positive(cls, value: float) -> float:
        if value <= 0.0:
            raise ValueError("epicenter_distance_km must be > 0")
        return value


class SimulationConfig(ConfigBase):
    units: str = "SI"
    case_name: Optional[str] = None
    notes: Optional[str] = None
    building: BuildingSpec = Field(default_factory=BuildingSpec)
    earthquake: EarthquakeSpec = Field(default_factory=EarthquakeSpec)
    hours_since_last_quake: float = 0.0
    instability_policy: Literal["raise", "stop"] = "raise"

    @field_validator("units")
    @classmethod
    def _units_si(cls, value: str) -> str:
        if value != "SI":
            raise ValueError("Only SI units are supported currently")
        return value

    @field_validator("hours_since_last_quake")
    @classmethod
    def _hours_nonneg(cls, value: float) -> float:
        if value < 0.0:
            raise ValueError("hours_since_last_quake must be >= 0")
        return value


def format_validation_error(exc: ValidationError, *, filename: str) -> str:
    parts = []
    for error in exc.errors():
        loc = ".".join(str(item) for item in error.get("loc", []))
        msg = error.get("msg", "invalid value")
        parts.append(f"{loc}: {msg}")
    details = "; ".join(parts) if parts else str(exc)
    return f"{filename}: invalid configuration: {details}"
