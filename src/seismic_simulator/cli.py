# src/seismic_simulator/cli.py

from __future__ import annotations

import json
import logging
import time
from dataclasses import asdict
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

import matplotlib.pyplot as plt
import numpy as np
import pandas as pd
import typer
import yaml

from .analytics import (
    arrival_times,
    assess_retrofit,
    calculate_structural_dna,
    estimate_casualties,
    generate_aftershock_sequence,
    generate_recommendations,
    simulate_city_cascade,
    simulate_disaster_timeline,
)
from .analytics.cascade import CityBuilding
from .analytics.retrofit import floors_from_config
from .config.loader import ConfigError, load_simulation_params
from .config.presets import load_building_presets
from .core.drift import status_label
from .core.engine import (
    ConfigurationError,
    NumericalInstabilityError,
    get_default_simulation_params,
    run_simulation,
)
from .core.memory import StructuralMemory, create_fresh_memory
from .core.parametric import build_magnitude_scenarios, run_parametric_envelope
from .materials.aging import apply_aging, compute_aging_factors

app = typer.Typer(
    add_completion=False,
    help=(
        "Seismic twin simulator CLI\n\n"
        "Explicit shear-building response of a multi-storey frame under a\n"
        "synthetic earthquake record, with aging and cumulative fatigue.\n"
        "Use 'run' for a single event, 'parametric' for magnitude mixes,\n"
        "'aftershocks' for an Omori aftershock sequence and 'cascade' for\n"
        "collapse propagation through a city block."
    ),
)

# Studies commands (convergence / sensitivity)
from .studies.cli import register_study_commands
register_study_commands(app)


# ----------------------------------------------------------------------
# Helpers
# ----------------------------------------------------------------------


def _load_config(path: Optional[Path]) -> Dict[str, Any]:
    """Flat engine parameters from a YAML/JSON config, or the built-in defaults."""
    if path is None:
        return get_default_simulation_params()
    try:
        return load_simulation_params(path)
    except ConfigError as exc:
        raise typer.BadParameter(str(exc)) from exc


def _apply_overrides(params: Dict[str, Any], overrides: Dict[str, Any], logger: logging.Logger) -> None:
    for key, value in overrides.items():
        if value is None:
            continue
        logger.info("CLI override: %s = %r (config had %r)", key, value, params.get(key))
        params[key] = value


def _parse_magnitudes_spec(spec: str) -> Tuple[List[float], List[float]]:
    """
    Parse a string like

        "6.5:0.2,7.0:0.5,7.5:0.3"

    into lists magnitudes=[6.5,7.0,7.5] and weights=[0.2,0.5,0.3].

    If weights are omitted (e.g. "6,7,8"), all weights = 1.0.
    """
    spec = spec.strip()
    if not spec:
        raise typer.BadParameter("Empty --magnitudes specification.")

    mags: List[float] = []
    weights: List[float] = []

    tokens = [t.strip() for t in spec.split(",") if t.strip()]
    has_colon = any(":" in t for t in tokens)

    for tok in tokens:
        try:
            if ":" in tok:
                m_str, w_str = tok.split(":", 1)
                m, w = float(m_str), float(w_str)
            else:
                m, w = float(tok), 1.0
        except ValueError as exc:
            raise typer.BadParameter(f"Could not parse magnitude token {tok!r}.") from exc
        mags.append(m)
        weights.append(w)

    if has_colon:
        total_w = sum(weights)
        if total_w <= 0.0:
            raise typer.BadParameter("Sum of weights must be > 0.")
        weights = [w / total_w for w in weights]

    return mags, weights


def _ensure_output_dir(path: Path) -> None:
    path.mkdir(parents=True, exist_ok=True)


def _setup_logger(output_dir: Path, log_stem: str) -> logging.Logger:
    """
    Set up a per-run logger writing to <output_dir>/<log_stem>.log.

    Library loggers under ``seismic_simulator`` are routed to the same file.
    """
    _ensure_output_dir(output_dir)
    logger = logging.getLogger(f"seismic_simulator.cli.{log_stem}")
    logger.setLevel(logging.INFO)
    logger.handlers.clear()

    log_file = output_dir / f"{log_stem}.log"
    handler = logging.FileHandler(log_file, mode="w", encoding="utf-8")
    formatter = logging.Formatter("%(asctime)s [%(levelname)s] %(message)s")
    handler.setFormatter(formatter)
    logger.addHandler(handler)
    logger.propagate = False

    pkg_logger = logging.getLogger("seismic_simulator")
    pkg_logger.setLevel(logging.INFO)
    for h in list(pkg_logger.handlers):
        if isinstance(h, logging.FileHandler):
            pkg_logger.removeHandler(h)
            h.close()
    pkg_logger.addHandler(handler)

    return logger


def _print_and_log(logger: logging.Logger, msg: str) -> None:
    typer.echo(msg)
    logger.info(msg)


def _ascii_plot(
    x: np.ndarray,
    y: np.ndarray,
    y_label: str,
    x_label: str,
    width: int = 70,
    height: int = 20,
) -> str:
    """Character plot of y >= 0 against x: one '*' per sample cell."""
    x = np.asarray(x, dtype=float)
    y = np.asarray(y, dtype=float)
    if x.size == 0 or y.size == 0:
        return ""

    x_min, x_max = float(x.min()), float(x.max())
    if x_max <= x_min:
        x_min, x_max = 0.0, 1.0
    y_max = float(np.nanmax(y))
    if not np.isfinite(y_max) or y_max <= 0.0:
        y_max = 1.0

    keep = np.isfinite(y) & (y >= 0.0)
    cols = ((x[keep] - x_min) / (x_max - x_min + 1e-12) * (width - 1)).astype(int)
    rows = (height - 1) - (y[keep] / (y_max + 1e-12) * (height - 1)).astype(int)

    canvas = np.full((height, width), " ")
    canvas[rows, cols] = "*"

    body = ["".join(line).rstrip() for line in canvas]
    return "\n".join([f"# {y_label} (max {y_max:.3g})", *body, f"# {x_label} ({x_min:g} - {x_max:g})"])


def _load_memory(path: Optional[Path], logger: logging.Logger) -> StructuralMemory:
    if path is None or not path.is_file():
        return create_fresh_memory()
    data = json.loads(path.read_text(encoding="utf-8"))
    memory = StructuralMemory.from_dict(data)
    logger.info("Loaded structural memory from %s: %s", path, memory.to_dict())
    return memory


def _build_run_report(
    df: pd.DataFrame,
    params: Dict[str, Any],
    fire: bool = False,
    gas_leak: bool = False,
) -> Dict[str, Any]:
    """Run summary plus secondary analytics for summary.json."""
    attrs = df.attrs
    aging = compute_aging_factors(params["building_age"])
    masses, stiffnesses, _ = apply_aging(params["masses"], params["stiffnesses"], params["dampings"], aging)
    memory = StructuralMemory.from_dict(attrs["memory"])
    peak = float(attrs.get("peak_drift_pct", 0.0))
    score = float(attrs.get("safety_score", 0.0))

    retrofit = assess_retrofit(floors_from_config(params["stiffnesses"], params.get("reinforcements")))
    disaster, risk = simulate_disaster_timeline(
        df["Max_Drift_pct"].to_numpy(),
        attrs["dt"],
        params["magnitude"],
        fire=fire,
        gas_leak=gas_leak,
        rng=params.get("seed"),
        max_fire_floors=len(params["masses"]),
    )
    return {
        "summary": attrs.get("summary"),
        "status": status_label(peak) if "peak_drift_pct" in attrs else None,
        "wave_arrivals_s": arrival_times(params.get("epicenter_distance_km", 30.0)),
        "run_state": attrs["run_state"],
        "steps_taken": attrs["steps_taken"],
        "n_steps": attrs["n_steps"],
        "critical_dt": attrs.get("critical_dt"),
        "aging": aging.to_dict(),
        "memory": memory.to_dict(),
        "structural_dna": calculate_structural_dna(masses, stiffnesses, params["building_age"]).to_dict(),
        "casualties": estimate_casualties(
            peak, len(params["masses"]), params.get("occupancy_per_floor", 20), params["building_age"]
        ).to_dict(),
        "recommendations": [asdict(r) for r in generate_recommendations(peak, score, memory, aging)],
        "retrofit": retrofit.to_dict(),
        "disaster": {**disaster.to_dict(), "peak_compound_risk": float(risk.max()) if risk.size else 0.0},
        "instability": attrs.get("instability"),
    }


def _show_ascii_plot(df: pd.DataFrame, column: str, title: str, logger: logging.Logger) -> None:
    text = _ascii_plot(df["Time_s"].to_numpy(), df[column].to_numpy(), column, "Time [s]")
    typer.echo(f"\n{title} ({column} vs Time_s):\n{text}")
    logger.info("%s (%s):\n%s", title, column, text)


def _show_matplotlib_plot(results_df: pd.DataFrame) -> None:
    """Ground acceleration and per-floor drift vs time."""
    t = results_df["Time_s"].to_numpy()
    fig, (ax_g, ax_d) = plt.subplots(2, 1, sharex=True, figsize=(9, 6))
    ax_g.plot(t, results_df["Ground_Accel_g"].to_numpy(), lw=0.8, color="0.3")
    ax_g.set_ylabel("Ground accel. [g]")
    ax_g.grid(True)

    drift_cols = [c for c in results_df.columns if c.endswith("_Drift_pct") and c.startswith("Floor")]
    for col in drift_cols:
        ax_d.plot(t, results_df[col].to_numpy(), lw=1.0, label=col.replace("_Drift_pct", ""))
    ax_d.axhline(1.0, ls="--", lw=0.8, color="orange")
    ax_d.axhline(2.5, ls="--", lw=0.8, color="red")
    ax_d.set_xlabel("Time [s]")
    ax_d.set_ylabel("Inter-story drift [%]")
    ax_d.set_xlim(left=0)
    ax_d.set_ylim(bottom=0)
    ax_d.grid(True)
    ax_d.legend(ncol=min(len(drift_cols), 5), fontsize="small")
    fig.tight_layout()
    plt.show()


def _event_metrics(df: pd.DataFrame, memory: StructuralMemory) -> str:
    # a run stopped by divergence carries no frozen metrics
    drift = df.attrs.get("peak_drift_pct", float("nan"))
    score = df.attrs.get("safety_score", float("nan"))
    return f"drift {drift:.3f}%  safety {score:5.1f}  fatigue {memory.fatigue_multiplier:.3f}x"


def _run_or_exit(params: Dict[str, Any], memory: StructuralMemory, logger: logging.Logger) -> pd.DataFrame:
    try:
        return run_simulation(params, memory=memory)
    except (ConfigurationError, NumericalInstabilityError) as exc:
        logger.error("%s", exc)
        typer.echo(f"Error: {exc}", err=True)
        raise typer.Exit(code=1) from exc


# ----------------------------------------------------------------------
# Commands
# ----------------------------------------------------------------------


@app.command()
def run(
    config: Optional[Path] = typer.Option(
        None,
        "--config",
        "-c",
        exists=True,
        readable=True,
        help="YAML/JSON configuration file (building, earthquake). Defaults to the seed building.",
    ),
    output_dir: Path = typer.Option(
        Path("results"),
        "--output-dir",
        "-o",
        help="Directory for result files.",
    ),
    prefix: str = typer.Option(
        "",
        "--prefix",
        "-p",
        help="Optional filename prefix for output files.",
    ),
    magnitude: Optional[float] = typer.Option(None, "--magnitude", "-m", min=5.0, max=9.0, help="Override magnitude."),
    duration: Optional[float] = typer.Option(None, "--duration", "-d", min=10.0, max=60.0, help="Override duration [s]."),
    soil: Optional[str] = typer.Option(None, "--soil", help="Override soil class (rock, medium, soft)."),
    age: Optional[float] = typer.Option(None, "--age", min=0.0, max=100.0, help="Override building age [years]."),
    seed: Optional[int] = typer.Option(None, "--seed", help="Seed for the ground-motion noise."),
    memory_file: Optional[Path] = typer.Option(
        None,
        "--memory",
        help="Structural memory JSON; read before the run (if present) and updated after it.",
    ),
    ascii_plot: bool = typer.Option(
        False,
        "--ascii-plot",
        help="Print an ASCII plot of peak inter-story drift vs time to the console.",
    ),
    plot: bool = typer.Option(
        False,
        "--plot",
        help="Show a matplotlib window with ground motion and drift histories.",
    ),
    fire: bool = typer.Option(False, "--fire", help="Ignite a fire on the first floor at the start of the quake."),
    gas_leak: bool = typer.Option(
        False, "--gas-leak", help="Open a gas leak on the second floor at the start of the quake."
    ),
) -> None:
    """
    Run a single earthquake on one building.

    Examples
    --------
    Seed building, M7.5 on soft soil, reproducible record:

        seismic-sim run --magnitude 7.5 --soil soft --seed 1 -o results/m75

    Two consecutive quakes on the same building (fatigue carries over):

        seismic-sim run -c configs/seed_five_storey.yml --memory results/memory.json
        seismic-sim run -c configs/seed_five_storey.yml --memory results/memory.json
    """
    _ensure_output_dir(output_dir)

    filename_prefix = f"{prefix}_" if prefix else ""
    log_stem = f"{filename_prefix}run"
    logger = _setup_logger(output_dir, log_stem)

    if config is not None:
        _print_and_log(logger, f"Loading config: {config}")
    params = _load_config(config)
    _apply_overrides(
        params,
        {"magnitude": magnitude, "duration": duration, "soil_type": soil, "building_age": age, "seed": seed},
        logger,
    )
    memory = _load_memory(memory_file, logger)

    _print_and_log(
        logger,
        f"Running M{params['magnitude']:g}, {params['duration']:g} s on {params['soil_type']} soil, "
        f"{len(params['masses'])} floors, age {params['building_age']:g} yrs ...",
    )
    t0 = time.perf_counter()
    results_df = _run_or_exit(params, memory, logger)
    wall_time = time.perf_counter() - t0

    csv_path = output_dir / f"{filename_prefix}results.csv"
    _print_and_log(logger, f"Writing time history to {csv_path}")
    results_df.to_csv(csv_path, index=False)

    report = _build_run_report(results_df, params, fire=fire, gas_leak=gas_leak)
    report["wall_time_s"] = wall_time
    summary_path = output_dir / f"{filename_prefix}summary.json"
    summary_path.write_text(json.dumps(report, indent=2, default=str), encoding="utf-8")
    _print_and_log(logger, f"Writing summary to {summary_path}")

    if memory_file is not None:
        memory_file.parent.mkdir(parents=True, exist_ok=True)
        memory_file.write_text(json.dumps(results_df.attrs["memory"], indent=2), encoding="utf-8")
        _print_and_log(logger, f"Structural memory saved to {memory_file}")

    summary = report["summary"]
    if summary is not None:
        _print_and_log(logger, summary["report"])
        _print_and_log(
            logger,
            f"Safety score: {summary['safety_score']:.1f} | damage: {summary['damage_level']} "
            f"| peak floor: {results_df.attrs['peak_drift_floor']}",
        )
        _print_and_log(logger, f"Status: {report['status']}")
    arrivals = report["wave_arrivals_s"]
    _print_and_log(
        logger,
        f"Wave arrivals: P {arrivals['p_wave']:.1f} s, S {arrivals['s_wave']:.1f} s, "
        f"surface {arrivals['surface_wave']:.1f} s",
    )
    if fire or gas_leak:
        disaster = report["disaster"]
        _print_and_log(
            logger,
            f"Compound risk: peak {disaster['peak_compound_risk']:.1f} "
            f"| fire floors: {disaster['fire']['floors']} | explosion risk: {disaster['gas_leak']['explosion_risk']:.1f}",
        )
    for rec in report["recommendations"]:
        _print_and_log(logger, f"[{rec['priority'].upper()}] {rec['action']} ({rec['timeframe']})")
    _print_and_log(logger, f"Wall time: {wall_time:.3f} s")

    if ascii_plot:
        _show_ascii_plot(results_df, "Max_Drift_pct", "ASCII drift plot", logger)

    if plot:
        _show_matplotlib_plot(results_df)

    log_file = output_dir / f"{log_stem}.log"
    typer.echo(f"\nDetailed log written to {log_file}")
    logger.info("Run completed.")


@app.command()
def parametric(
    base_config: Optional[Path] = typer.Option(
        None,
        "--base-config",
        "-b",
        exists=True,
        readable=True,
        help="Base YAML/JSON configuration file. Defaults to the seed building.",
    ),
    magnitudes: str = typer.Option(
        ...,
        "--magnitudes",
        "-M",
        help=(
            'Magnitude/weight specification. Examples:\n'
            '  "6.5:0.5,7.0:0.3,7.5:0.2"  (weighted hazard mix)\n'
            '  "6,7,8"                    (equal weights)'
        ),
    ),
    quantity: str = typer.Option(
        "Max_Drift_pct",
        "--quantity",
        "-q",
        help="Result column to envelope (e.g. Max_Drift_pct, Floor1_Drift_pct, ...).",
    ),
    output_dir: Path = typer.Option(
        Path("results_parametric"),
        "--output-dir",
        "-o",
        help="Directory for envelope result files.",
    ),
    prefix: str = typer.Option(
        "mix",
        "--prefix",
        "-p",
        help="Filename prefix for parametric output.",
    ),
    ascii_plot: bool = typer.Option(
        False,
        "--ascii-plot",
        help="Print an ASCII plot of the envelope to the console.",
    ),
    plot: bool = typer.Option(
        False,
        "--plot",
        help="Show a matplotlib window with the envelope.",
    ),
) -> None:
    """
    Run a magnitude-based parametric study and compute a drift envelope
    and a weighted mean history. All scenarios share one noise seed.
    """
    from .core.parametric import make_envelope_figure

    _ensure_output_dir(output_dir)

    base_name = f"{prefix}_{quantity}" if prefix else quantity
    log_stem = f"{base_name}_parametric"
    logger = _setup_logger(output_dir, log_stem)

    if base_config is not None:
        _print_and_log(logger, f"Loading base config: {base_config}")
    base_params = _load_config(base_config)

    _print_and_log(logger, f"Parsing magnitudes specification: {magnitudes}")
    mags, weights = _parse_magnitudes_spec(magnitudes)
    scenarios = build_magnitude_scenarios(base_params, mags, weights)
    for scen in scenarios:
        logger.info("Scenario %s: weight %.3f", scen.name, scen.weight)

    _print_and_log(logger, f"Running parametric envelope over {len(scenarios)} scenarios ...")
    t0 = time.perf_counter()
    try:
        envelope_df, summary_df, _ = run_parametric_envelope(scenarios, quantity=quantity)
    except (ConfigurationError, NumericalInstabilityError, KeyError) as exc:
        logger.error("%s", exc)
        typer.echo(f"Error: {exc}", err=True)
        raise typer.Exit(code=1) from exc
    wall_time = time.perf_counter() - t0

    env_path = output_dir / f"{base_name}_envelope.csv"
    summary_path = output_dir / f"{base_name}_scenarios.csv"
    envelope_df.to_csv(env_path, index=False)
    summary_df.to_csv(summary_path, index=False)
    _print_and_log(logger, f"Envelope written to {env_path}")
    _print_and_log(logger, f"Scenario summary written to {summary_path}")
    _print_and_log(logger, summary_df.to_string(index=False))
    _print_and_log(logger, f"Wall time: {wall_time:.3f} s")

    if ascii_plot:
        _show_ascii_plot(envelope_df, f"{quantity}_envelope", "ASCII envelope plot", logger)

    if plot:
        make_envelope_figure(envelope_df, quantity, title=f"{quantity} envelope vs time")
        plt.show()


@app.command()
def aftershocks(
    magnitude: float = typer.Option(7.0, "--magnitude", "-m", min=5.0, max=9.0, help="Main shock magnitude."),
    hours: float = typer.Option(24.0, "--hours", min=0.1, help="Window after the main shock [h]."),
    seed: Optional[int] = typer.Option(None, "--seed", help="Seed for the aftershock scatter."),
    simulate: bool = typer.Option(
        False,
        "--simulate",
        help="Run the main shock and every aftershock of M5.0 or more on the building, carrying memory.",
    ),
    config: Optional[Path] = typer.Option(
        None, "--config", "-c", exists=True, readable=True, help="Building config for --simulate."
    ),
) -> None:
    """Print a modified-Omori aftershock sequence, optionally simulating it."""
    events = generate_aftershock_sequence(magnitude, hours=hours, rng=seed)
    typer.echo(f"{len(events)} aftershocks within {hours:g} h of a M{magnitude:g} main shock:")
    for i, ev in enumerate(events, start=1):
        typer.echo(f"  #{i:2d}  t={ev.time_s / 60.0:8.1f} min  M{ev.magnitude:.1f}  {ev.duration_s:5.1f} s")

    if not simulate:
        return

    base = _load_config(config)
    base["magnitude"] = magnitude
    if base.get("seed") is None and seed is not None:
        base["seed"] = seed
    log = logging.getLogger("seismic_simulator.cli.aftershocks")

    memory = create_fresh_memory()
    df = _run_or_exit(base, memory, log)
    memory = StructuralMemory.from_dict(df.attrs["memory"])
    typer.echo("")
    typer.echo(f"Main shock : {_event_metrics(df, memory)}")

    prev_t = 0.0
    for i, ev in enumerate(events, start=1):
        if not ev.simulatable:
            continue
        df = _run_or_exit(ev.to_params(base, previous_time_s=prev_t), memory, log)
        memory = StructuralMemory.from_dict(df.attrs["memory"])
        prev_t = ev.time_s
        typer.echo(f"Aftershock #{i:2d} M{ev.magnitude:.1f}: {_event_metrics(df, memory)}")


def _load_city_block(path: Path) -> List[CityBuilding]:
    """Buildings of a YAML/JSON block file: a 'buildings' list of id, x, y, floors."""
    try:
        data = yaml.safe_load(path.read_text(encoding="utf-8"))
        return [CityBuilding.from_dict(b) for b in data["buildings"]]
    except (yaml.YAMLError, KeyError, TypeError, ValueError) as exc:
        raise typer.BadParameter(f"{path.name}: invalid city block: {exc}") from exc


@app.command()
def cascade(
    block: Path = typer.Argument(..., exists=True, readable=True, help="YAML/JSON file with a 'buildings' list."),
    collapse: str = typer.Option(..., "--collapse", help="Id of the building that collapses."),
    output: Optional[Path] = typer.Option(None, "--output", "-o", help="Write the resulting block as JSON."),
) -> None:
    """Propagate one building collapse through its neighbours."""
    buildings = _load_city_block(block)
    if all(b.id != collapse for b in buildings):
        raise typer.BadParameter(f"No building with id {collapse!r} in {block.name}.")

    result = simulate_city_cascade(buildings, collapse)
    for before, after in zip(buildings, result):
        typer.echo(
            f"{after.id:>8s}  {after.name:<20s} {before.status.value:>9s} -> {after.status.value:<9s} "
            f"damage {after.damage_percent:5.1f}%"
        )
    n_collapsed = sum(b.status.value == "collapsed" for b in result)
    typer.echo(f"{n_collapsed} of {len(result)} buildings collapsed.")

    if output is not None:
        output.parent.mkdir(parents=True, exist_ok=True)
        output.write_text(json.dumps([b.to_dict() for b in result], indent=2), encoding="utf-8")


@app.command()
def presets() -> None:
    """List the bundled building presets."""
    for key, preset in load_building_presets().items():
        floors = preset.expand(preset.default_floors)
        masses = ", ".join(f"{f['mass_kg'] / 1000.0:g}" for f in floors)
        typer.echo(f"{key}: {preset.name} ({len(floors)} floors; masses [t]: {masses})")


def main() -> None:
    app()


if __name__ == "__main__":
    main()
