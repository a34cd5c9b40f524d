"""Typer commands for the studies, registered on the main `seismic-sim` app."""
from __future__ import annotations

from pathlib import Path
from typing import Any, Dict, List

import pandas as pd
import typer

from . import parse_floats_csv


def _floats_option(text: str, option: str) -> List[float]:
    try:
        values = parse_floats_csv(text or "")
    except ValueError as exc:
        raise typer.BadParameter(f"{option}: could not parse floats from {text!r}") from exc
    if not values:
        raise typer.BadParameter(f"{option}: at least one value is required")
    return values


def _study_params(config: Path) -> Dict[str, Any]:
    from ..config.loader import ConfigError, load_simulation_params

    try:
        return load_simulation_params(config)
    except ConfigError as exc:
        raise typer.BadParameter(str(exc)) from exc


def _echo_summary(summary: pd.DataFrame, out: Path) -> None:
    typer.echo(summary.to_string(index=False))
    typer.echo(f"Saved to: {out}")


def register_study_commands(app: typer.Typer) -> None:
    @app.command("convergence")
    def convergence_cmd(
        config: Path = typer.Option(..., "--config", "-c", exists=True, readable=True, help="Building/earthquake config"),
        dts: str = typer.Option("0.04,0.02,0.01,0.005", "--dts", help="Time steps to compare [s]"),
        quantity: str = typer.Option("Max_Drift_pct", "--quantity", help="Result column to compare"),
        out: Path = typer.Option(..., "--out", "-o", help="Output directory"),
        save_timeseries: bool = typer.Option(False, "--save-timeseries", help="Also write each run's results CSV"),
    ) -> None:
        """Compare peak response across time steps (one ground-motion seed)."""
        from .convergence import run_convergence_study

        summary = run_convergence_study(
            _study_params(config),
            _floats_option(dts, "--dts"),
            quantity=quantity,
            out_dir=out,
            save_timeseries=save_timeseries,
        )
        _echo_summary(summary, out)
        for row in summary.itertuples(index=False):
            if row.diverged:
                typer.echo(f"dt={row.dt_s:g} s diverged after {row.steps_taken} steps (limit {row.critical_dt_s:.3g} s)")

    @app.command("sensitivity")
    def sensitivity_cmd(
        config: Path = typer.Option(..., "--config", "-c", exists=True, readable=True, help="Building/earthquake config"),
        param_path: str = typer.Argument(..., help="Parameter to sweep, e.g. building_age or stiffnesses[0]"),
        values: str = typer.Option(..., "--values", help="Values to try"),
        quantity: str = typer.Option("Max_Drift_pct", "--quantity", help="Result column to compare"),
        out: Path = typer.Option(..., "--out", "-o", help="Output directory"),
        save_timeseries: bool = typer.Option(False, "--save-timeseries", help="Also write each run's results CSV"),
    ) -> None:
        """Sweep one parameter and compare the peak response."""
        from .sensitivity import run_sensitivity_study

        summary = run_sensitivity_study(
            _study_params(config),
            param_path=param_path,
            values=_floats_option(values, "--values"),
            quantity=quantity,
            out_dir=out,
            save_timeseries=save_timeseries,
        )
        _echo_summary(summary, out)
