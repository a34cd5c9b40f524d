from __future__ import annotations

from pathlib import Path
import json
import sys

sys.path.insert(0, "src")

import numpy as np
import pytest
import yaml

from seismic_simulator.config.loader import (
    ConfigError,
    config_to_params,
    load_simulation_params,
    normalize_config_dict,
)
from seismic_simulator.config.presets import load_building_presets, resolve_building_preset
from seismic_simulator.core.engine import ConfigurationError, run_simulation


def _expect_config_error(cfg: dict, fragment: str) -> None:
    try:
        normalize_config_dict(cfg, filename="bad.yml")
    except ConfigError as exc:
        assert "bad.yml" in str(exc)
        assert fragment in str(exc)
    else:
        raise AssertionError(f"Expected ConfigError mentioning {fragment!r}")


def test_empty_config_uses_seed_building() -> None:
    cfg = normalize_config_dict({}, filename="empty.yml")
    assert cfg["building"]["preset"] == "seed_five_storey"
    params = config_to_params(cfg)
    assert len(params["masses"]) == 5
    assert params["stiffnesses"][0] == 8.0e6
    assert params["magnitude"] == 7.0
    assert params["duration"] == 20.0


def test_magnitude_out_of_range() -> None:
    _expect_config_error({"earthquake": {"magnitude": 9.5}}, "earthquake.magnitude")


def test_duration_below_configurable_range() -> None:
    _expect_config_error({"earthquake": {"duration_s": 5}}, "duration_s")


def test_age_above_configurable_range() -> None:
    _expect_config_error({"building": {"age_years": 120}}, "age_years")


def test_unknown_soil_type() -> None:
    _expect_config_error({"earthquake": {"soil_type": "clay"}}, "soil_type")


def test_soil_type_is_case_insensitive() -> None:
    cfg = normalize_config_dict({"earthquake": {"soil_type": "Soft"}}, filename="x.yml")
    assert cfg["earthquake"]["soil_type"] == "soft"


def test_extra_keys_are_rejected() -> None:
    _expect_config_error({"earthquake": {"intensity": 3}}, "intensity")


def test_flat_engine_keys_are_rejected() -> None:
    _expect_config_error({"magnitude": 6.0, "building_age": 40}, "magnitude")


def test_only_si_units() -> None:
    _expect_config_error({"units": "imperial"}, "units")


def test_preset_and_floors_together() -> None:
    cfg = {
        "building": {
            "preset": "generic",
            "floors": [{"mass_kg": 1.0e4, "stiffness_N_per_m": 1.0e6}],
        }
    }
    _expect_config_error(cfg, "not both")


def test_unknown_preset() -> None:
    _expect_config_error({"building": {"preset": "skyscraper"}}, "skyscraper")


def test_nonpositive_floor_mass() -> None:
    cfg = {"building": {"floors": [{"mass_kg": 0.0, "stiffness_N_per_m": 1.0e6}]}}
    _expect_config_error(cfg, "mass_kg")


def test_missing_floor_damping_defaults() -> None:
    cfg = normalize_config_dict(
        {
            "building": {
                "floors": [
                    {"mass_kg": 3.0e4, "stiffness_N_per_m": 5.0e6},
                    {"mass_kg": 3.0e4, "stiffness_N_per_m": 5.0e6, "damping_Ns_per_m": 2500},
                ]
            }
        },
        filename="two.yml",
    )
    params = config_to_params(cfg)
    assert params["dampings"] == [1.0e4, 2500.0]
    assert params["reinforcements"] == ["none", "none"]


def test_generic_preset_floor_count() -> None:
    cfg = normalize_config_dict(
        {"building": {"preset": "generic", "n_floors": 8}}, filename="generic.yml"
    )
    params = config_to_params(cfg)
    assert len(params["masses"]) == 8
    assert len(set(params["stiffnesses"])) == 1


def test_n_floors_with_explicit_floors_rejected() -> None:
    cfg = {
        "building": {
            "n_floors": 3,
            "floors": [{"mass_kg": 1.0e4, "stiffness_N_per_m": 1.0e6}],
        }
    }
    _expect_config_error(cfg, "n_floors")


def test_fixed_preset_cannot_be_resized() -> None:
    presets = load_building_presets()
    assert "seed_five_storey" in presets
    assert len(resolve_building_preset(presets, "seed_five_storey")) == 5
    assert resolve_building_preset(presets, "nope") is None
    with pytest.raises(ValueError):
        resolve_building_preset(presets, "seed_five_storey", 7)


def test_yaml_and_json_files_give_same_params(tmp_path: Path) -> None:
    cfg = {
        "case_name": "twin",
        "building": {"age_years": 25, "preset": "seed_five_storey"},
        "earthquake": {"magnitude": 6.5, "duration_s": 12, "soil_type": "soft", "seed": 3},
    }
    yml = tmp_path / "case.yml"
    yml.write_text(yaml.safe_dump(cfg), encoding="utf-8")
    js = tmp_path / "case.json"
    js.write_text(json.dumps(cfg), encoding="utf-8")

    a = load_simulation_params(yml)
    b = load_simulation_params(js)
    assert a == b
    assert a["case_name"] == "twin"
    assert a["seed"] == 3


def test_missing_and_unsupported_files(tmp_path: Path) -> None:
    with pytest.raises(ConfigError):
        load_simulation_params(tmp_path / "missing.yml")

    txt = tmp_path / "case.txt"
    txt.write_text("magnitude: 6", encoding="utf-8")
    with pytest.raises(ConfigError):
        load_simulation_params(txt)

    scalar = tmp_path / "scalar.yml"
    scalar.write_text("42\n", encoding="utf-8")
    with pytest.raises(ConfigError):
        load_simulation_params(scalar)


def test_config_error_is_a_configuration_error() -> None:
    assert issubclass(ConfigError, ConfigurationError)


@pytest.mark.parametrize("name", ["seed_five_storey.yml", "heritage_soft_storey.yml"])
def test_bundled_configs_run(name: str) -> None:
    params = load_simulation_params(Path("configs") / name)
    params["duration"] = 10.0
    df = run_simulation(params)
    assert len(df) == 500
    assert np.isfinite(df["Max_Drift_pct"]).all()
    assert df.attrs["n_floors"] == len(params["masses"])
