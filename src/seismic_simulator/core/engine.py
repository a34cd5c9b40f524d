"""Engine for the Seismic Twin Simulator.

This module is UI-agnostic: it owns the run state machine around the
explicit shear-building integrator, the drift bookkeeping, the safety score
and the once-per-run structural memory update.

Run lifecycle
-------------
``Idle -> Running -> (Completed | Stopped | Failed)``; ``reset()`` returns to
``Idle`` from any state and clears run-scoped data but keeps the structural
memory, which persists from run to run.

Use from CLI, studies or tests as:

    from seismic_simulator.core.engine import SimulationParams, run_simulation

    df = run_simulation({"magnitude": 7.5, "soil_type": "soft", "seed": 1})

or drive the step loop yourself (one step per frame/tick):

    runner = SimulationRunner(SimulationParams(**params_dict))
    runner.start()
    for snapshot in runner.iter_steps():
        render(snapshot)          # runner.stop() here ends the loop
"""


from __future__ import annotations

import logging
from collections import deque
from dataclasses import asdict, dataclass, fields, replace
from enum import Enum
from typing import Any, Deque, Dict, Iterator, List, Tuple

import numpy as np
import pandas as pd
from scipy.constants import g as GRAVITY

from ..materials.aging import AgingFactors, apply_aging, compute_aging_factors
from .drift import (
    DamageLevel,
    OverallDamage,
    calculate_drift,
    classify_floors,
    overall_damage_level,
)
from .ground_motion import (
    DT,
    RngLike,
    SoilClass,
    generate_ground_motion,
    make_rng,
    step_count_for,
)
from .integrator import ExplicitShearIntegrator, FloorState
from .memory import StructuralMemory, create_fresh_memory, update_structural_memory

logger = logging.getLogger(__name__)


# ====================================================================
# SIMULATION CONSTANTS
# ====================================================================

class SimulationConstants:
    """Physical and numerical constants for the seismic simulator."""

    DT = DT                       # s - fixed step (50 Hz)
    DEFAULT_FLOOR_HEIGHT = 3.5    # m
    DEFAULT_FLOOR_DAMPING = 1.0e4  # N·s/m - used when a floor has no damping value

    # Configuration surface
    MIN_MAGNITUDE = 5.0
    MAX_MAGNITUDE = 9.0
    MAX_DURATION = 60.0           # s

    # Display history
    HISTORY_SIZE = 50
    HISTORY_STRIDE = 5

    # Safety score penalties
    AGE_PENALTY_PER_YEAR = 0.01
    MAX_AGE_PENALTY = 0.5
    DRIFT_PENALTY_PER_PCT = 0.2
    MAX_DRIFT_PENALTY = 0.8
    FATIGUE_PENALTY_SLOPE = 0.5
    MAX_FATIGUE_PENALTY = 0.3

    # Memory damage fed per % of peak drift
    DAMAGE_PER_DRIFT_PCT = 10.0


INSTABILITY_POLICIES = ("raise", "stop")


# ====================================================================
# ERRORS
# ====================================================================

class ConfigurationError(ValueError):
    """Invalid building or earthquake configuration, raised before any step runs."""


class SimulationStateError(RuntimeError):
    """Operation not allowed in the runner's current state."""


class NumericalInstabilityError(RuntimeError):
    """A step produced non-finite displacement, velocity or acceleration.

    The offending step is never committed to the runner state.
    """

    def __init__(
        self,
        message: str,
        *,
        step_idx: int,
        t: float,
        floor_idx: int,
        quantity: str,
        dt: float,
        critical_dt: float | None = None,
        state_snapshot: Dict[str, Any] | None = None,
    ):
        super().__init__(message)
        self.step_idx = step_idx
        self.t = t
        self.floor_idx = floor_idx
        self.quantity = quantity
        self.dt = dt
        self.critical_dt = critical_dt
        self.state_snapshot = state_snapshot or {}

    def to_diagnostics_dict(self) -> Dict[str, Any]:
        diag = {
            "error_type": type(self).__name__,
            "message": str(self),
            "step_idx": self.step_idx,
            "t_last": self.t,
            "floor_idx": self.floor_idx,
            "quantity": self.quantity,
            "dt": self.dt,
            "critical_dt": self.critical_dt,
        }
        diag.update(self.state_snapshot)
        return diag


# ====================================================================
# SAFETY SCORE
# ====================================================================

def safety_score(building_age: float, peak_drift_pct: float, fatigue_multiplier: float) -> float:
    """
    Safety score in [0, 100]:

        100 · (1 - age_penalty) · (1 - damage_penalty) · (1 - fatigue_penalty)

    with age_penalty = min(0.5, 0.01·age), damage_penalty = min(0.8, 0.2·drift)
    and fatigue_penalty = min(0.3, 0.5·(fatigue - 1)).
    """
    c = SimulationConstants
    age_penalty = min(c.MAX_AGE_PENALTY, building_age * c.AGE_PENALTY_PER_YEAR)
    damage_penalty = min(c.MAX_DRIFT_PENALTY, peak_drift_pct * c.DRIFT_PENALTY_PER_PCT)
    fatigue_penalty = min(
        c.MAX_FATIGUE_PENALTY, (fatigue_multiplier - 1.0) * c.FATIGUE_PENALTY_SLOPE
    )
    score = 100.0 * (1.0 - age_penalty) * (1.0 - damage_penalty) * (1.0 - fatigue_penalty)
    return float(max(0.0, min(100.0, score)))


# ====================================================================
# CONFIGURATION & DATA CLASSES
# ====================================================================

@dataclass
class SimulationParams:
    """Container for all simulation parameters."""
    # Earthquake
    magnitude: float
    duration: float
    soil_type: str

    # Building (per floor, bottom to top; stiffness/damping relative to the floor below)
    building_age: float
    masses: np.ndarray
    stiffnesses: np.ndarray
    dampings: np.ndarray

    floor_height: float = SimulationConstants.DEFAULT_FLOOR_HEIGHT
    dt: float = SimulationConstants.DT
    seed: int | None = None

    # Memory update input
    hours_since_last_quake: float = 0.0

    # Display history
    history_size: int = SimulationConstants.HISTORY_SIZE
    history_stride: int = SimulationConstants.HISTORY_STRIDE

    # Secondary analytics
    epicenter_distance_km: float = 30.0
    occupancy_per_floor: int = 20
    building_name: str = "Default 5-Storey Frame"

    instability_policy: str = "raise"  # "raise" or "stop"

    @property
    def n_floors(self) -> int:
        return len(self.masses)

    @property
    def n_steps(self) -> int:
        return step_count_for(self.duration, self.dt)

    def validate(self) -> None:
        """Reject invalid configurations before any step runs."""
        c = SimulationConstants
        m = np.asarray(self.masses, dtype=float)
        k = np.asarray(self.stiffnesses, dtype=float)
        d = np.asarray(self.dampings, dtype=float)

        if m.ndim != 1 or m.size == 0:
            raise ConfigurationError("masses must be a non-empty 1-D sequence")
        if k.shape != m.shape or d.shape != m.shape:
            raise ConfigurationError(
                "masses, stiffnesses and dampings must have one entry per floor "
                f"(got {m.size}, {k.size}, {d.size})"
            )
        if not np.all(np.isfinite(m)) or np.any(m <= 0.0):
            raise ConfigurationError("every floor mass must be > 0")
        if not np.all(np.isfinite(k)) or np.any(k <= 0.0):
            raise ConfigurationError("every story stiffness must be > 0")
        if not np.all(np.isfinite(d)) or np.any(d < 0.0):
            raise ConfigurationError("every story damping must be >= 0")

        if not (c.MIN_MAGNITUDE <= self.magnitude <= c.MAX_MAGNITUDE):
            raise ConfigurationError(
                f"magnitude must be in [{c.MIN_MAGNITUDE}, {c.MAX_MAGNITUDE}], got {self.magnitude}"
            )
        if not (0.0 < self.duration <= c.MAX_DURATION):
            raise ConfigurationError(
                f"duration must be in (0, {c.MAX_DURATION}] s, got {self.duration}"
            )
        if not np.isfinite(self.building_age) or self.building_age < 0.0:
            raise ConfigurationError(f"building_age must be >= 0, got {self.building_age}")
        if not np.isfinite(self.dt) or self.dt <= 0.0:
            raise ConfigurationError("dt must be > 0")
        if not np.isfinite(self.floor_height) or self.floor_height <= 0.0:
            raise ConfigurationError("floor_height must be > 0")
        if not np.isfinite(self.hours_since_last_quake) or self.hours_since_last_quake < 0.0:
            raise ConfigurationError("hours_since_last_quake must be >= 0")
        if self.history_size <= 0 or self.history_stride <= 0:
            raise ConfigurationError("history_size and history_stride must be > 0")
        if self.instability_policy not in INSTABILITY_POLICIES:
            raise ConfigurationError(
                f"instability_policy must be one of {INSTABILITY_POLICIES}, got {self.instability_policy!r}"
            )
        try:
            SoilClass.parse(self.soil_type)
        except ValueError as exc:
            raise ConfigurationError(str(exc)) from exc


class RunState(str, Enum):
    IDLE = "idle"
    RUNNING = "running"
    COMPLETED = "completed"
    STOPPED = "stopped"
    FAILED = "failed"


TERMINAL_STATES = (RunState.COMPLETED, RunState.STOPPED, RunState.FAILED)


@dataclass(frozen=True)
class HistorySample:
    time: float
    drift: float          # drift of the lowest floor [%]
    ground_accel: float   # [m/s²]


@dataclass
class SimulationState:
    """Current time, floor state, last ground acceleration and display history."""
    time: float
    floors: FloorState
    ground_accel: float
    history: Deque[HistorySample]

    @classmethod
    def initial(cls, n_floors: int, history_size: int) -> "SimulationState":
        return cls(
            time=0.0,
            floors=FloorState.at_rest(n_floors),
            ground_accel=0.0,
            history=deque(maxlen=history_size),
        )


@dataclass(frozen=True)
class StepSnapshot:
    """Per-step output handed to rendering/monitoring consumers."""
    step_idx: int
    time: float
    ground_accel: float
    displacements: Tuple[float, ...]
    velocities: Tuple[float, ...]
    accelerations: Tuple[float, ...]
    drifts: Tuple[float, ...]
    damage_levels: Tuple[DamageLevel, ...]

    @property
    def max_drift(self) -> float:
        return max(self.drifts, default=0.0)


@dataclass(frozen=True)
class FinalMetrics:
    """Frozen at the end of a run."""
    peak_drift: float
    peak_drift_floor: int     # 0-based
    safety_score: float
    damage_level: OverallDamage
    steps_taken: int
    completed: bool


@dataclass(frozen=True)
class RunSummary:
    """Run record handed to the external persistence layer."""
    magnitude: float
    duration: float
    soil_type: str
    max_drift: float
    safety_score: float
    damage_level: str
    report: str

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


def build_report(params: SimulationParams, peak_drift: float, fatigue_multiplier: float) -> str:
    return (
        f"Simulation: M{params.magnitude:g} on {params.soil_type} soil. "
        f"Peak drift: {peak_drift:.2f}%. "
        f"Building age: {params.building_age:g}yrs. "
        f"Fatigue: {fatigue_multiplier:.2f}x."
    )


# ====================================================================
# RUNNER (STATE MACHINE)
# ====================================================================

class SimulationRunner:
    """Step-wise seismic run over a shear building.

    One call to :meth:`step` is one unit of work (one animation tick); the
    runner never suspends inside a step. A stop request issued between steps
    takes effect before the next one.
    """

    def __init__(
        self,
        params: SimulationParams,
        memory: StructuralMemory | None = None,
        rng: RngLike = None,
        record_steps: bool = True,
    ):
        params.validate()
        self.params = params
        self.memory: StructuralMemory = memory if memory is not None else create_fresh_memory()
        self.record_steps = record_steps
        self._rng_source = rng

        self.integrator = ExplicitShearIntegrator(params.dt)
        self.aging: AgingFactors = compute_aging_factors(params.building_age)
        self.stability: Dict[str, Any] = {}

        self.reset()

    # ----------------------------------------------------------------
    # STATE
    # ----------------------------------------------------------------
    def reset(self) -> None:
        """Return to Idle and clear run-scoped data (structural memory is kept).

        Resetting a Running runner discards the run without a memory update.
        """
        if getattr(self, "run_state", None) is RunState.RUNNING:
            logger.info("Run reset at step %d; discarded without memory update.", self.step_idx)

        p = self.params
        self.run_state = RunState.IDLE
        self.state = SimulationState.initial(p.n_floors, p.history_size)
        self.ground_motion: np.ndarray | None = None
        self.step_idx = 0
        self.n_steps = p.n_steps
        self.final_metrics: FinalMetrics | None = None
        self.diagnostics: Dict[str, Any] | None = None
        self.snapshots: List[StepSnapshot] = []

        self._peak_drift = 0.0
        self._peak_floor_drift = np.zeros(p.n_floors)
        self._current_drifts = np.zeros(p.n_floors)

        self.masses = np.asarray(p.masses, dtype=float)
        self.stiffnesses = np.asarray(p.stiffnesses, dtype=float)
        self.dampings = np.asarray(p.dampings, dtype=float)

    def start(self, ground_motion: np.ndarray | None = None) -> None:
        """Idle -> Running.

        Generates the ground motion (unless one is supplied), zeroes the floor
        state and applies the aging scaling once for the whole run. Starting
        from a finished state resets first.
        """
        if self.run_state is RunState.RUNNING:
            raise SimulationStateError("Run already in progress; stop or reset it first.")
        if self.run_state is not RunState.IDLE:
            self.reset()

        p = self.params
        if ground_motion is None:
            rng = self._rng_source
            if not isinstance(rng, np.random.Generator):
                rng = make_rng(p.seed if rng is None else rng)
            record = generate_ground_motion(p.magnitude, p.duration, p.soil_type, self.n_steps, rng, p.dt)
        else:
            record = np.array(ground_motion, dtype=float)
            if record.shape != (self.n_steps,):
                raise ConfigurationError(
                    f"ground motion must have {self.n_steps} samples, got shape {record.shape}"
                )
            if not np.all(np.isfinite(record)):
                raise ConfigurationError("ground motion contains non-finite samples")
        record.setflags(write=False)
        self.ground_motion = record

        self.masses, self.stiffnesses, self.dampings = apply_aging(
            p.masses, p.stiffnesses, p.dampings, self.aging
        )
        self.stability = self.integrator.check_stability(self.masses, self.stiffnesses)
        self.integrator.reset_counters()

        self.run_state = RunState.RUNNING
        logger.info(
            "Run started: M%.1f, %.1f s on %s soil, %d floors, age %.0f yrs, %d steps.",
            p.magnitude, p.duration, p.soil_type, p.n_floors, p.building_age, self.n_steps,
        )

    def step(self) -> StepSnapshot:
        """Running -> Running (or Completed after the last sample)."""
        if self.run_state is not RunState.RUNNING:
            raise SimulationStateError(f"Cannot step a runner in state '{self.run_state.value}'.")
        assert self.ground_motion is not None

        p = self.params
        idx = self.step_idx
        t = idx * p.dt
        ga = float(self.ground_motion[idx])

        # non-finite results are caught below
        with np.errstate(over="ignore", invalid="ignore"):
            new = self.integrator.step(self.masses, self.stiffnesses, self.dampings, self.state.floors, ga)
        if not new.is_finite():
            self._fail(new, idx, t)

        drifts = calculate_drift(new.displacements, p.floor_height)
        self._current_drifts = drifts
        self._peak_floor_drift = np.maximum(self._peak_floor_drift, drifts)
        self._peak_drift = float(self._peak_floor_drift.max())

        self.state = replace(self.state, time=t, floors=new, ground_accel=ga)
        if idx % p.history_stride == 0:
            self.state.history.append(HistorySample(t, float(drifts[0]), ga))

        snapshot = StepSnapshot(
            step_idx=idx,
            time=t,
            ground_accel=ga,
            displacements=tuple(new.displacements.tolist()),
            velocities=tuple(new.velocities.tolist()),
            accelerations=tuple(new.accelerations.tolist()),
            drifts=tuple(drifts.tolist()),
            damage_levels=tuple(classify_floors(drifts)),
        )
        if self.record_steps:
            self.snapshots.append(snapshot)

        self.step_idx += 1
        if self.step_idx >= self.n_steps:
            self._finish(RunState.COMPLETED)
        return snapshot

    def iter_steps(self) -> Iterator[StepSnapshot]:
        """Yield one snapshot per step until the run leaves the Running state."""
        while self.run_state is RunState.RUNNING:
            yield self.step()

    def run(self, ground_motion: np.ndarray | None = None) -> FinalMetrics:
        """Start and step to completion."""
        self.start(ground_motion)
        for _ in self.iter_steps():
            pass
        assert self.final_metrics is not None
        return self.final_metrics

    def stop(self) -> FinalMetrics | None:
        """Running -> Stopped, using the drift accumulated so far.

        No extra steps are fabricated. Outside the Running state this does nothing.
        """
        if self.run_state is not RunState.RUNNING:
            logger.debug("stop() ignored in state '%s'.", self.run_state.value)
            return self.final_metrics
        self._finish(RunState.STOPPED)
        return self.final_metrics

    # ----------------------------------------------------------------
    # TRANSITIONS
    # ----------------------------------------------------------------
    def _finish(self, terminal: RunState) -> None:
        p = self.params
        fatigue_before = self.memory.fatigue_multiplier
        peak = self._peak_drift
        score = safety_score(p.building_age, peak, fatigue_before)

        self.final_metrics = FinalMetrics(
            peak_drift=peak,
            peak_drift_floor=int(np.argmax(self._peak_floor_drift)),
            safety_score=score,
            damage_level=overall_damage_level(peak),
            steps_taken=self.step_idx,
            completed=terminal is RunState.COMPLETED,
        )

        if self.step_idx > 0:
            self.memory = update_structural_memory(
                self.memory,
                peak * SimulationConstants.DAMAGE_PER_DRIFT_PCT,
                p.hours_since_last_quake,
            )
        else:
            logger.info("Run stopped before the first step; structural memory unchanged.")

        self.run_state = terminal
        logger.info(
            "Run %s after %d/%d steps: peak drift %.3f%% (floor %d), safety %.1f, fatigue %.3fx.",
            terminal.value, self.step_idx, self.n_steps, peak,
            self.final_metrics.peak_drift_floor + 1, score, self.memory.fatigue_multiplier,
        )

    def _fail(self, new: FloorState, idx: int, t: float) -> None:
        quantity, floor_idx = "displacement", 0
        for name, arr in (
            ("displacement", new.displacements),
            ("velocity", new.velocities),
            ("acceleration", new.accelerations),
        ):
            bad = np.flatnonzero(~np.isfinite(arr))
            if bad.size:
                quantity, floor_idx = name, int(bad[0])
                break

        exc = NumericalInstabilityError(
            f"Non-finite {quantity} on floor {floor_idx + 1} at t={t:.3f} s (step {idx}).",
            step_idx=idx,
            t=t,
            floor_idx=floor_idx,
            quantity=quantity,
            dt=self.params.dt,
            critical_dt=self.stability.get("critical_dt"),
            state_snapshot={
                "peak_drift_before": self._peak_drift,
                "last_finite_displacements": self.state.floors.displacements.tolist(),
            },
        )
        self.diagnostics = exc.to_diagnostics_dict()
        self.run_state = RunState.FAILED
        logger.error("%s Run aborted; structural memory unchanged.", exc)
        raise exc

    # ----------------------------------------------------------------
    # DERIVED QUANTITIES
    # ----------------------------------------------------------------
    @property
    def current_drifts(self) -> np.ndarray:
        return self._current_drifts.copy()

    @property
    def current_damage_levels(self) -> List[DamageLevel]:
        return classify_floors(self._current_drifts)

    @property
    def peak_drift(self) -> float:
        return self._peak_drift

    @property
    def peak_floor_drifts(self) -> np.ndarray:
        return self._peak_floor_drift.copy()

    @property
    def live_safety_score(self) -> float:
        """Score from the current step's drift and the carried fatigue."""
        current = float(self._current_drifts.max()) if self._current_drifts.size else 0.0
        return safety_score(self.params.building_age, current, self.memory.fatigue_multiplier)

    @property
    def safety_score(self) -> float:
        """Frozen score once finished, live score otherwise."""
        if self.final_metrics is not None:
            return self.final_metrics.safety_score
        return self.live_safety_score

    def summary(self) -> RunSummary:
        if self.final_metrics is None:
            raise SimulationStateError("No finished run to summarise.")
        p = self.params
        fm = self.final_metrics
        return RunSummary(
            magnitude=p.magnitude,
            duration=p.duration,
            soil_type=str(p.soil_type),
            max_drift=fm.peak_drift,
            safety_score=fm.safety_score,
            damage_level=fm.damage_level.value,
            report=build_report(p, fm.peak_drift, self.memory.fatigue_multiplier),
        )


# ====================================================================
# RESULTS
# ====================================================================

def _build_results_dataframe(runner: SimulationRunner) -> pd.DataFrame:
    """One row per executed step, plus run metadata in ``df.attrs``."""
    snaps = runner.snapshots
    n = runner.params.n_floors

    time_s = np.array([s.time for s in snaps], dtype=float)
    ground = np.array([s.ground_accel for s in snaps], dtype=float)
    disp = np.array([s.displacements for s in snaps], dtype=float).reshape(-1, n)
    vel = np.array([s.velocities for s in snaps], dtype=float).reshape(-1, n)
    acc = np.array([s.accelerations for s in snaps], dtype=float).reshape(-1, n)
    drift = np.array([s.drifts for s in snaps], dtype=float).reshape(-1, n)

    df = pd.DataFrame(
        {
            "Time_s": time_s,
            "Ground_Accel_m_s2": ground,
            "Ground_Accel_g": ground / GRAVITY,
            "Max_Drift_pct": drift.max(axis=1) if len(snaps) else np.zeros(0),
        }
    )

    extra_cols: dict[str, object] = {}
    for i in range(n):
        idx = i + 1
        extra_cols[f"Floor{idx}_Disp_m"] = disp[:, i]
        extra_cols[f"Floor{idx}_Vel_m_s"] = vel[:, i]
        extra_cols[f"Floor{idx}_Acc_m_s2"] = acc[:, i]
        extra_cols[f"Floor{idx}_Drift_pct"] = drift[:, i]
        extra_cols[f"Floor{idx}_Damage"] = [s.damage_levels[i].value for s in snaps]
    if extra_cols:
        df = pd.concat([df, pd.DataFrame(extra_cols)], axis=1)

    df.attrs["run_state"] = runner.run_state.value
    df.attrs["n_floors"] = n
    df.attrs["n_steps"] = runner.n_steps
    df.attrs["steps_taken"] = runner.step_idx
    df.attrs["dt"] = runner.params.dt
    df.attrs["critical_dt"] = runner.stability.get("critical_dt")
    df.attrs["fundamental_period_s"] = runner.stability.get("fundamental_period_s")
    df.attrs["aging"] = runner.aging.to_dict()
    df.attrs["memory"] = runner.memory.to_dict()
    if runner.final_metrics is not None:
        fm = runner.final_metrics
        df.attrs["peak_drift_pct"] = fm.peak_drift
        df.attrs["peak_drift_floor"] = fm.peak_drift_floor + 1
        df.attrs["safety_score"] = fm.safety_score
        df.attrs["damage_level"] = fm.damage_level.value
        df.attrs["summary"] = runner.summary().to_dict()
    if runner.diagnostics is not None:
        df.attrs["instability"] = runner.diagnostics
    return df


# ====================================================================
# PUBLIC ENTRY POINT
# ====================================================================

def get_default_simulation_params() -> dict:
    """
    Baseline: the seeded default 5-storey RC frame, 10 years old, under a
    M7.0 / 20 s record on medium soil.

    Returned as a plain dict so it can be updated from YAML/JSON configs
    and then passed into SimulationParams(**params).
    """
    return {
        # ------------------------------------------------------------------
        # Earthquake
        # ------------------------------------------------------------------
        "magnitude": 7.0,
        "duration": 20.0,        # [s]
        "soil_type": "medium",   # "rock", "medium" or "soft"
        "seed": None,

        # ------------------------------------------------------------------
        # Building (floor 1 at the bottom)
        # ------------------------------------------------------------------
        "building_name": "Default 5-Storey Frame",
        "building_age": 10.0,    # [years]
        "masses": [50_000.0, 48_000.0, 46_000.0, 44_000.0, 40_000.0],     # [kg]
        "stiffnesses": [8.0e6, 7.5e6, 7.0e6, 6.5e6, 6.0e6],              # [N/m]
        "dampings": [20_000.0, 18_000.0, 16_000.0, 14_000.0, 12_000.0],  # [N·s/m]
        "floor_height": SimulationConstants.DEFAULT_FLOOR_HEIGHT,        # [m]
        "occupancy_per_floor": 20,

        # ------------------------------------------------------------------
        # Integration and bookkeeping
        # ------------------------------------------------------------------
        "dt": SimulationConstants.DT,
        "hours_since_last_quake": 0.0,
        "history_size": SimulationConstants.HISTORY_SIZE,
        "history_stride": SimulationConstants.HISTORY_STRIDE,
        "epicenter_distance_km": 30.0,
        "instability_policy": "raise",
    }


def build_simulation_params(params: SimulationParams | Dict[str, Any]) -> SimulationParams:
    """Fill defaults, drop unknown keys and coerce types into SimulationParams."""
    if isinstance(params, SimulationParams):
        raw = {f.name: getattr(params, f.name) for f in fields(SimulationParams)}
    else:
        raw = get_default_simulation_params()
        raw.update(params or {})

    # Be forgiving with YAML/CLI configs: allow extra *metadata* keys.
    allowed = {f.name for f in fields(SimulationParams)}
    extra_ok = {"case_name", "notes", "description", "title", "tags", "reinforcements"}
    unknown = sorted(set(raw.keys()) - allowed)
    unknown_nonmeta = [k for k in unknown if k not in extra_ok]
    if unknown_nonmeta:
        logger.warning(
            "Ignoring %d unknown SimulationParams key(s): %s",
            len(unknown_nonmeta),
            ", ".join(unknown_nonmeta),
        )
    if unknown:
        raw = {k: raw[k] for k in allowed if k in raw}

    coerced = _coerce_scalar_types_for_simulation(raw)
    try:
        sim_params = SimulationParams(**coerced)
    except TypeError as exc:
        raise ConfigurationError(f"Incomplete simulation parameters: {exc}") from exc
    sim_params.validate()
    return sim_params


def run_simulation(
    params: SimulationParams | Dict[str, Any],
    memory: StructuralMemory | Dict[str, Any] | None = None,
    ground_motion: np.ndarray | None = None,
) -> pd.DataFrame:
    """
    High-level convenience wrapper: build params, run to completion, return
    the per-step DataFrame.

    - A dict may contain only overrides; missing fields are filled from
      get_default_simulation_params().
    - ``memory`` carries structural memory from an earlier run (for example
      ``df.attrs["memory"]``); the updated memory is in the result attrs.
    - With ``instability_policy="stop"`` a diverging run returns the steps
      computed so far and ``df.attrs["instability"]`` instead of raising.
    """
    sim_params = build_simulation_params(params)
    if isinstance(memory, dict):
        memory = StructuralMemory.from_dict(memory)

    runner = SimulationRunner(sim_params, memory=memory)
    try:
        runner.run(ground_motion)
    except NumericalInstabilityError as exc:
        if sim_params.instability_policy == "raise":
            raise
        logger.warning("Returning truncated results: %s", exc)
    return _build_results_dataframe(runner)


def _coerce_scalar_types_for_simulation(base: dict) -> dict:
    """
    Normalize types coming from YAML/JSON before constructing SimulationParams.

    - Convert scalar fields that should be floats (incl. strings like '8.0e6').
    - Convert integer fields to int.
    - Convert per-floor lists to float arrays; missing dampings (None) take
      the default floor damping.
    """
    data: dict = dict(base)  # shallow copy

    def _to_float(val, name: str):
        if val is None:
            return None
        if isinstance(val, (float, int, np.number)) and not isinstance(val, bool):
            return float(val)
        if isinstance(val, str):
            try:
                return float(val)
            except ValueError as exc:
                raise ConfigurationError(
                    f"Parameter '{name}' expects a float-compatible value, "
                    f"got {val!r} (type {type(val).__name__})."
                ) from exc
        raise ConfigurationError(
            f"Parameter '{name}' expects a scalar float, got {val!r} "
            f"(type {type(val).__name__})."
        )

    def _to_int(val, name: str):
        if val is None:
            return None
        if isinstance(val, (int, float, np.number)) and not isinstance(val, bool):
            return int(val)
        if isinstance(val, str):
            try:
                return int(val)
            except ValueError as exc:
                raise ConfigurationError(
                    f"Parameter '{name}' expects an int-compatible value, "
                    f"got {val!r} (type {type(val).__name__})."
                ) from exc
        raise ConfigurationError(
            f"Parameter '{name}' expects an int, got {val!r} "
            f"(type {type(val).__name__})."
        )

    # --- Scalars that should be floats ---------------------------------
    scalar_float_keys = [
        "magnitude",
        "duration",
        "building_age",
        "floor_height",
        "dt",
        "hours_since_last_quake",
        "epicenter_distance_km",
    ]
    for key in scalar_float_keys:
        if key in data and data[key] is not None:
            data[key] = _to_float(data[key], key)

    # --- Scalars that should be ints ------------------------------------
    int_keys = [
        "seed",
        "history_size",
        "history_stride",
        "occupancy_per_floor",
    ]
    for key in int_keys:
        if key in data and data[key] is not None:
            data[key] = _to_int(data[key], key)

    # --- Strings ----------------------------------------------------------
    for key in ("soil_type", "instability_policy"):
        if key in data and data[key] is not None:
            data[key] = str(data[key]).strip().lower()

    # --- Per-floor arrays ---------------------------------------------------
    for key in ("masses", "stiffnesses"):
        if key in data and data[key] is not None:
            data[key] = np.asarray([_to_float(v, key) for v in data[key]], dtype=float)

    if "dampings" in data:
        dampings = data["dampings"]
        n = len(data.get("masses", []))
        if dampings is None:
            dampings = [None] * n
        data["dampings"] = np.asarray(
            [
                SimulationConstants.DEFAULT_FLOOR_DAMPING if v is None else _to_float(v, "dampings")
                for v in dampings
            ],
            dtype=float,
        )

    return data
