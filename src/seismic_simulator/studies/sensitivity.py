"""
Single-parameter sensitivity study.

Typical sweeps: ``building_age`` (aging), ``magnitude`` or per-storey
properties such as ``stiffnesses[0]`` (soft ground storey) or
``dampings[2]``.
"""
from __future__ import annotations

import re
from pathlib import Path
from typing import Any, Callable, Dict, Iterable, List, Optional

import numpy as np
import pandas as pd
import yaml

from . import (
    _json_default,
    get_by_path,
    harmonize_time_grid,
    merge_with_engine_defaults,
    save_study_metadata,
    set_by_path,
)

SimFunc = Callable[[Dict[str, Any]], pd.DataFrame]


def _default_simulate_func() -> SimFunc:
    from seismic_simulator.core.engine import run_simulation

    return run_simulation


def summarize_response(df: pd.DataFrame, quantity: str = "Max_Drift_pct") -> Dict[str, Any]:
    """Peak/RMS of one result column plus the frozen run metrics from ``df.attrs``."""
    y = df[quantity].to_numpy(dtype=float)
    attrs = getattr(df, "attrs", {})

    peak = t_peak = rms = float("nan")
    if len(y):
        i_peak = int(np.nanargmax(y))
        peak = float(y[i_peak])
        t_peak = float(df["Time_s"].iloc[i_peak])
        rms = float(np.sqrt(np.nanmean(np.square(y))))

    ground = df["Ground_Accel_g"].to_numpy(dtype=float) if "Ground_Accel_g" in df else np.array([np.nan])
    return {
        "peak_value": peak,
        "time_of_peak_s": t_peak,
        "rms_value": rms,
        "max_ground_accel_g": float(np.nanmax(np.abs(ground))) if ground.size else float("nan"),
        "safety_score": float(attrs.get("safety_score", np.nan)),
        "damage_level": attrs.get("damage_level", ""),
        "peak_drift_floor": int(attrs.get("peak_drift_floor", 0)),
        "run_state": attrs.get("run_state", ""),
    }


def write_study_outputs(
    out_dir: Path,
    summary: pd.DataFrame,
    *,
    summary_name: str,
    cfg_overrides: Dict[str, Any],
    metadata: Dict[str, Any],
) -> None:
    """Summary CSV, the caller's overrides as YAML and ``run_metadata.json``."""
    out_dir.mkdir(parents=True, exist_ok=True)
    summary.to_csv(out_dir / summary_name, index=False)
    (out_dir / "config_overrides.yml").write_text(
        yaml.safe_dump(_plain(cfg_overrides), sort_keys=False), encoding="utf-8"
    )
    save_study_metadata(out_dir, metadata=metadata)


def run_sensitivity_study(
    cfg_overrides: Dict[str, Any],
    *,
    param_path: str,
    values: Iterable[float],
    quantity: str = "Max_Drift_pct",
    out_dir: Optional[Path] = None,
    save_timeseries: bool = False,
    simulate_func: Optional[SimFunc] = None,
) -> pd.DataFrame:
    """
    Run once per value of ``param_path`` and summarize ``quantity``.

    Every run starts from a fresh structural memory and the same ground-motion
    seed (see `harmonize_time_grid`).
    """
    simulate = simulate_func or _default_simulate_func()
    values = [float(v) for v in values]
    base = harmonize_time_grid(merge_with_engine_defaults(cfg_overrides))
    base_value = float(get_by_path(base, param_path))
    path_tag = re_sub_for_filename(param_path)

    rows: List[Dict[str, Any]] = []
    for value in values:
        df = simulate(harmonize_time_grid(set_by_path(base, param_path, value)))
        rows.append(
            {
                "param_path": param_path,
                "base_value": base_value,
                "param_value": value,
                **summarize_response(df, quantity=quantity),
            }
        )
        if out_dir and save_timeseries:
            out_dir.mkdir(parents=True, exist_ok=True)
            df.to_csv(out_dir / f"timeseries_{path_tag}_{re_sub_for_filename(str(value))}.csv", index=False)

    summary = pd.DataFrame(rows)
    if out_dir:
        write_study_outputs(
            out_dir,
            summary,
            summary_name="sensitivity_summary.csv",
            cfg_overrides=cfg_overrides,
            metadata={
                "study_type": "sensitivity",
                "param_path": param_path,
                "values": values,
                "quantity": quantity,
                "seed": base["seed"],
                "save_timeseries": bool(save_timeseries),
            },
        )
    return summary


def re_sub_for_filename(s: str) -> str:
    return re.sub(r"[^0-9A-Za-z_.-]+", "_", s)


def _plain(cfg: Dict[str, Any]) -> Dict[str, Any]:
    """YAML-safe copy: numpy arrays and scalars become lists and floats."""
    out: Dict[str, Any] = {}
    for key, value in cfg.items():
        if isinstance(value, dict):
            out[key] = _plain(value)
        elif isinstance(value, (np.ndarray, np.generic)):
            out[key] = _json_default(value)
        else:
            out[key] = value
    return out
