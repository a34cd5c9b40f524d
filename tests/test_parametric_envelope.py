from __future__ import annotations

import sys

sys.path.insert(0, "src")

import matplotlib

matplotlib.use("Agg")

import numpy as np
import pytest

from seismic_simulator.core.parametric import (
    ScenarioDefinition,
    build_magnitude_scenarios,
    make_envelope_figure,
    run_parametric_envelope,
)

BASE = {"duration": 10.0, "soil_type": "medium"}


def test_magnitude_scenarios_share_seed_and_normalise_weights() -> None:
    scenarios = build_magnitude_scenarios(BASE, [6.0, 6.5, 7.0], weights=[1.0, 2.0, 1.0])
    assert [s.name for s in scenarios] == ["M6", "M6.5", "M7"]
    assert [s.weight for s in scenarios] == pytest.approx([0.25, 0.5, 0.25])
    assert {s.params["seed"] for s in scenarios} == {0}
    assert scenarios[1].meta == {"magnitude": 6.5}
    assert "magnitude" not in BASE


def test_magnitude_scenarios_keep_explicit_seed() -> None:
    scenarios = build_magnitude_scenarios({**BASE, "seed": 17}, [6.0, 7.0])
    assert all(s.params["seed"] == 17 for s in scenarios)
    assert [s.weight for s in scenarios] == pytest.approx([0.5, 0.5])


@pytest.mark.parametrize(
    "mags,weights",
    [([], None), ([6.0, 7.0], [1.0]), ([6.0, 7.0], [0.0, 0.0])],
)
def test_magnitude_scenarios_reject_bad_input(mags, weights) -> None:
    with pytest.raises(ValueError):
        build_magnitude_scenarios(BASE, mags, weights)


def test_envelope_bounds_every_scenario() -> None:
    scenarios = build_magnitude_scenarios(BASE, [6.0, 7.0])
    env, summary, meta = run_parametric_envelope(scenarios)

    assert meta == {"n_scenarios": 2, "quantity": "Max_Drift_pct"}
    assert len(env) == 500
    assert list(summary["scenario"]) == ["M6", "M7"]

    envelope = env["Max_Drift_pct_envelope"].to_numpy()
    mean = env["Max_Drift_pct_weighted_mean"].to_numpy()
    assert np.all(envelope >= mean - 1e-12)
    assert summary["peak"].max() == pytest.approx(envelope.max())
    # same noise draw, linear model: drift scales with PGA
    assert summary.loc[1, "peak"] > summary.loc[0, "peak"]
    assert set(summary.columns) >= {
        "weight", "time_of_peak_s", "safety_score", "damage_level", "peak_drift_floor", "magnitude"
    }


def test_envelope_requires_common_time_grid() -> None:
    scenarios = [
        ScenarioDefinition("short", {"duration": 10.0, "seed": 1}),
        ScenarioDefinition("long", {"duration": 12.0, "seed": 1}),
    ]
    with pytest.raises(ValueError):
        run_parametric_envelope(scenarios)


def test_envelope_input_errors() -> None:
    with pytest.raises(ValueError):
        run_parametric_envelope([])
    with pytest.raises(KeyError):
        run_parametric_envelope(
            [ScenarioDefinition("a", {"duration": 10.0, "seed": 1})], quantity="Not_A_Column"
        )
    with pytest.raises(ValueError):
        run_parametric_envelope(
            [ScenarioDefinition("a", {"duration": 10.0, "seed": 1}, weight=-1.0)]
        )


def test_floor_quantity_and_figure() -> None:
    scenarios = build_magnitude_scenarios(BASE, [5.5])
    env, _, _ = run_parametric_envelope(scenarios, quantity="Floor1_Drift_pct")
    fig = make_envelope_figure(env, "Floor1_Drift_pct", title="Ground storey")
    assert fig.axes[0].get_title() == "Ground storey"
    with pytest.raises(RuntimeError):
        make_envelope_figure(env, "Max_Drift_pct")
