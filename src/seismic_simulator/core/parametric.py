"""
Multi-scenario drift envelopes.

A family of earthquakes on the same building (typically a weighted magnitude
mix) is run on one shared time grid; the envelope is the pointwise maximum
and the weighted mean is the hazard-weighted average history.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, List, Sequence, Tuple

import numpy as np
import pandas as pd

from .drift import CRITICAL_DRIFT_PCT, MODERATE_DRIFT_PCT
from .engine import run_simulation

# Seed given to unseeded magnitude mixes, so every scenario sees one noise draw
SCENARIO_SEED = 0


@dataclass
class ScenarioDefinition:
    """
    One earthquake scenario of an envelope run.

    Attributes
    ----------
    name : str
        Scenario identifier (e.g. 'M7.5').
    params : dict
        Flat engine parameters passed to `run_simulation`.
    weight : float, optional
        Non-negative weight for the weighted-mean history.
    meta : dict, optional
        Extra columns for the summary table (e.g. magnitude).
    """
    name: str
    params: Dict[str, Any]
    weight: float = 1.0
    meta: Dict[str, Any] | None = None


def _normalised_weights(weights: Sequence[float]) -> np.ndarray:
    w = np.asarray(weights, dtype=float)
    if np.any(w < 0.0):
        raise ValueError("Scenario weights must be non-negative.")
    total = w.sum()
    return w / total if total > 0.0 else np.full(w.shape, 1.0 / len(w))


def _run_on_shared_grid(
    scenarios: Sequence[ScenarioDefinition],
) -> Tuple[np.ndarray, List[pd.DataFrame]]:
    """Run every scenario; all results must have the same ``Time_s`` column."""
    frames: List[pd.DataFrame] = []
    time_ref: np.ndarray | None = None
    for scen in scenarios:
        df = run_simulation(scen.params)
        t = df["Time_s"].to_numpy()
        if time_ref is None:
            time_ref = t
        elif t.shape != time_ref.shape or not np.allclose(t, time_ref):
            raise ValueError(
                f"Scenario '{scen.name}' has a different time grid; envelope scenarios "
                "need the same duration and dt."
            )
        frames.append(df)
    assert time_ref is not None
    return time_ref, frames


def _scenario_row(scen: ScenarioDefinition, df: pd.DataFrame, quantity: str, weight: float) -> Dict[str, Any]:
    q = df[quantity].to_numpy(dtype=float)
    i_peak = int(np.nanargmax(q))
    row: Dict[str, Any] = {
        "scenario": scen.name,
        "weight": float(weight),
        "peak": float(q[i_peak]),
        "time_of_peak_s": float(df["Time_s"].iloc[i_peak]),
        "pga_g": float(np.abs(df["Ground_Accel_g"].to_numpy()).max()),
        "safety_score": float(df.attrs.get("safety_score", np.nan)),
        "damage_level": df.attrs.get("damage_level", ""),
        "peak_drift_floor": df.attrs.get("peak_drift_floor", 0),
    }
    for key, value in (scen.meta or {}).items():
        row.setdefault(key, value)
    return row


def run_parametric_envelope(
    scenarios: List[ScenarioDefinition],
    quantity: str = "Max_Drift_pct",
) -> Tuple[pd.DataFrame, pd.DataFrame, Dict[str, Any]]:
    """
    Run a family of earthquakes and envelope one result column.

    Every scenario starts from a fresh structural memory, so scenarios do
    not influence each other.

    Returns
    -------
    envelope_df :
        'Time_s', f'{quantity}_envelope', f'{quantity}_weighted_mean'.
    summary_df :
        One row per scenario: 'scenario', 'weight', 'peak', 'time_of_peak_s',
        'pga_g', 'safety_score', 'damage_level', 'peak_drift_floor', plus the
        scenario's `meta` keys.
    meta :
        'n_scenarios' and 'quantity'.
    """
    if not scenarios:
        raise ValueError("run_parametric_envelope: no scenarios provided.")
    weights = _normalised_weights([s.weight for s in scenarios])

    time_s, frames = _run_on_shared_grid(scenarios)
    for scen, df in zip(scenarios, frames):
        if quantity not in df.columns:
            raise KeyError(f"Column '{quantity}' not found in results for scenario '{scen.name}'.")

    stacked = np.vstack([df[quantity].to_numpy(dtype=float) for df in frames])
    envelope_df = pd.DataFrame(
        {
            "Time_s": time_s,
            f"{quantity}_envelope": np.nanmax(stacked, axis=0),
            f"{quantity}_weighted_mean": np.average(stacked, axis=0, weights=weights),
        }
    )
    summary_df = pd.DataFrame(
        [_scenario_row(s, df, quantity, w) for s, df, w in zip(scenarios, frames, weights)]
    )
    return envelope_df, summary_df, {"n_scenarios": len(scenarios), "quantity": quantity}


def build_magnitude_scenarios(
    base_params: Dict[str, Any],
    magnitudes: List[float],
    weights: List[float] | None = None,
    prefix: str = "M",
) -> List[ScenarioDefinition]:
    """
    One scenario per magnitude on the base building, weights normalised to 1.

    An unseeded base gets SCENARIO_SEED so the scenarios differ only in
    magnitude.
    """
    if not magnitudes:
        raise ValueError("At least one magnitude is required.")
    if weights is None:
        weights = [1.0] * len(magnitudes)
    elif len(weights) != len(magnitudes):
        raise ValueError("Length of weights must match length of magnitudes.")
    if sum(weights) <= 0.0:
        raise ValueError("Sum of weights must be positive.")
    norm = _normalised_weights(weights)

    seed = base_params.get("seed")
    scenarios = []
    for mag, w in zip(magnitudes, norm):
        params = {
            **base_params,
            "magnitude": float(mag),
            "seed": SCENARIO_SEED if seed is None else seed,
        }
        scenarios.append(
            ScenarioDefinition(
                name=f"{prefix}{mag:g}",
                params=params,
                weight=float(w),
                meta={"magnitude": float(mag)},
            )
        )
    return scenarios


def make_envelope_figure(
    envelope_df: pd.DataFrame,
    quantity: str,
    title: str = "Envelope",
):
    """
    matplotlib figure of the envelope and weighted mean. Drift quantities get
    the moderate and critical damage thresholds as reference lines.
    """
    import matplotlib.pyplot as plt

    env_col = f"{quantity}_envelope"
    mean_col = f"{quantity}_weighted_mean"
    if env_col not in envelope_df.columns:
        raise RuntimeError(f"Could not find column '{env_col}' in envelope_df.")

    t = envelope_df["Time_s"]
    fig, ax = plt.subplots(figsize=(8, 4.5))
    ax.plot(t, envelope_df[env_col], lw=2, label="Envelope")
    if mean_col in envelope_df.columns:
        ax.plot(t, envelope_df[mean_col], lw=1.2, ls="--", label="Weighted mean")
    if quantity.endswith("Drift_pct"):
        ax.axhline(MODERATE_DRIFT_PCT, color="orange", lw=0.8, ls=":", label="moderate")
        ax.axhline(CRITICAL_DRIFT_PCT, color="red", lw=0.8, ls=":", label="critical")
    ax.set_title(title)
    ax.set_xlabel("Time [s]")
    ax.set_ylabel(quantity)
    ax.set_xlim(left=0.0)
    ax.set_ylim(bottom=0.0)
    ax.grid(True, alpha=0.3)
    ax.legend()
    fig.tight_layout()
    return fig
