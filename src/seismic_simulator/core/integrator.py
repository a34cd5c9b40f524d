"""Explicit time integration for the shear-building model.

This module implements the per-floor explicit recurrence used by the
simulator: story shears from the previous state, acceleration from the floor
equilibrium, then a velocity-first (semi-implicit) Euler update.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Sequence, Tuple

import numpy as np
from scipy.linalg import eigh

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class FloorState:
    """Kinematic state of all floors, indexed bottom (0) to top (N-1).

    The three arrays always have the same length N.
    """

    displacements: np.ndarray
    velocities: np.ndarray
    accelerations: np.ndarray

    def __post_init__(self):
        n = len(self.displacements)
        if len(self.velocities) != n or len(self.accelerations) != n:
            raise ValueError(
                "displacements, velocities and accelerations must have equal length "
                f"(got {n}, {len(self.velocities)}, {len(self.accelerations)})"
            )

    @classmethod
    def at_rest(cls, n_floors: int) -> "FloorState":
        return cls(np.zeros(n_floors), np.zeros(n_floors), np.zeros(n_floors))

    @property
    def n_floors(self) -> int:
        return len(self.displacements)

    def is_finite(self) -> bool:
        return bool(
            np.all(np.isfinite(self.displacements))
            and np.all(np.isfinite(self.velocities))
            and np.all(np.isfinite(self.accelerations))
        )


class ExplicitShearIntegrator:
    """Explicit per-floor integrator for a 1-D shear building.

    Mathematical Formulation
    ------------------------
    Floor ``i`` is connected to floor ``i-1`` (or the ground for ``i = 0``)
    by a story spring ``k_i`` and dashpot ``c_i``. With the previous state
    ``(u, v)`` the story shear is

        f_i = k_i (u_i - u_{i-1}) + c_i (v_i - v_{i-1}),   u_{-1} = v_{-1} = 0

    and floor equilibrium under ground acceleration ``a_g`` gives

        a_i = (-m_i a_g - f_i + f_{i+1}) / m_i,            f_N = 0

    followed by

        v_i <- v_i + a_i Δt
        u_i <- u_i + v_i Δt      (uses the updated velocity)

    No global matrix is assembled and every floor reads only the previous
    state, so the pass is order independent.

    Notes
    -----
    - The scheme is only conditionally stable. For the undamped system the
      limit is roughly ``Δt < 2 / ω_max`` where ``ω_max`` is the highest
      natural circular frequency; see :meth:`get_stability_info`.
    - Very stiff or light floors at the fixed Δt = 0.02 s can diverge. The
      engine checks every step for non-finite values.

    Attributes
    ----------
    dt : float
        Time step [s].
    n_steps : int
        Number of steps advanced since construction or the last reset.
    """

    def __init__(self, dt: float):
        if dt <= 0.0:
            raise ValueError(f"dt must be > 0, got {dt}")
        self.dt = float(dt)
        self.n_steps: int = 0

    @staticmethod
    def story_shears(
        stiffnesses: np.ndarray,
        dampings: np.ndarray,
        displacements: np.ndarray,
        velocities: np.ndarray,
    ) -> np.ndarray:
        """Story shear of every floor relative to the floor below (ground for floor 0)."""
        d_rel = displacements - np.concatenate(([0.0], displacements[:-1]))
        v_rel = velocities - np.concatenate(([0.0], velocities[:-1]))
        return stiffnesses * d_rel + dampings * v_rel

    def step(
        self,
        masses: np.ndarray,
        stiffnesses: np.ndarray,
        dampings: np.ndarray,
        state: FloorState,
        ground_accel: float,
    ) -> FloorState:
        """Advance one time step.

        Parameters
        ----------
        masses, stiffnesses, dampings : np.ndarray
            Floor properties, shape (N,), already aging-adjusted.
        state : FloorState
            State at the start of the step.
        ground_accel : float
            Ground acceleration for this step [m/s²].

        Returns
        -------
        FloorState
            New state; the input state is not modified.
        """
        u = state.displacements
        v = state.velocities

        fs = self.story_shears(stiffnesses, dampings, u, v)
        # Shear of the story above acts on floor i with opposite sign; none above the top floor.
        fs_above = np.append(fs[1:], 0.0)

        acc = (-masses * ground_accel - fs + fs_above) / masses
        vel = v + acc * self.dt
        disp = u + vel * self.dt

        self.n_steps += 1
        return FloorState(disp, vel, acc)

    def reset_counters(self):
        """Reset the step counter."""
        self.n_steps = 0

    @staticmethod
    def natural_frequencies(masses: Sequence[float], stiffnesses: Sequence[float]) -> np.ndarray:
        """Undamped natural circular frequencies [rad/s], ascending.

        Solves ``K φ = ω² M φ`` with the tridiagonal shear-building stiffness
        matrix and the lumped mass matrix.
        """
        m = np.asarray(masses, dtype=float)
        k = np.asarray(stiffnesses, dtype=float)
        n = len(m)
        K = np.zeros((n, n))
        for i in range(n):
            K[i, i] += k[i]
            if i + 1 < n:
                K[i, i] += k[i + 1]
                K[i, i + 1] -= k[i + 1]
                K[i + 1, i] -= k[i + 1]
        eigenvalues = eigh(K, np.diag(m), eigvals_only=True)
        return np.sqrt(np.clip(eigenvalues, 0.0, None))

    def get_stability_info(self, masses: Sequence[float], stiffnesses: Sequence[float]) -> dict:
        """Stability estimate for the current Δt.

        Returns
        -------
        dict
            - 'dt': time step
            - 'omega_max': highest natural frequency [rad/s]
            - 'fundamental_period_s': first-mode period [s]
            - 'critical_dt': ``2 / omega_max`` (undamped limit)
            - 'is_stable': ``dt < critical_dt``
        """
        omegas = self.natural_frequencies(masses, stiffnesses)
        omega_max = float(omegas[-1]) if omegas.size else 0.0
        omega_min = float(omegas[0]) if omegas.size else 0.0
        critical_dt = 2.0 / omega_max if omega_max > 0.0 else float("inf")
        period = 2.0 * np.pi / omega_min if omega_min > 0.0 else float("inf")
        return {
            "dt": self.dt,
            "omega_max": omega_max,
            "fundamental_period_s": float(period),
            "critical_dt": float(critical_dt),
            "is_stable": self.dt < critical_dt,
        }

    def check_stability(self, masses: Sequence[float], stiffnesses: Sequence[float]) -> dict:
        """Log a warning when Δt exceeds the explicit stability limit."""
        info = self.get_stability_info(masses, stiffnesses)
        if not info["is_stable"]:
            logger.warning(
                "Time step dt=%.4g s exceeds the explicit stability limit %.4g s "
                "(omega_max=%.3g rad/s). The response may diverge.",
                info["dt"],
                info["critical_dt"],
                info["omega_max"],
            )
        return info
