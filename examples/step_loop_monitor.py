"""
Drive the runner one step at a time, the way a render loop would, and
stop early once any floor turns critical.
"""
from seismic_simulator.core.drift import DamageLevel
from seismic_simulator.core.engine import (
    SimulationParams,
    SimulationRunner,
    build_simulation_params,
)


def main():
    params: SimulationParams = build_simulation_params(
        {"magnitude": 8.5, "soil_type": "soft", "building_age": 60, "seed": 3}
    )
    runner = SimulationRunner(params)
    runner.start()

    for snap in runner.iter_steps():
        if snap.step_idx % 50 == 0:
            bars = " ".join(f"{d:5.2f}" for d in snap.drifts)
            print(f"t={snap.time:6.2f}s  ag={snap.ground_accel:+6.2f}  drift% [{bars}]  "
                  f"live safety {runner.live_safety_score:5.1f}")
        if DamageLevel.CRITICAL in snap.damage_levels:
            print(f"Critical drift at t={snap.time:.2f}s, stopping.")
            runner.stop()

    summary = runner.summary()
    print(summary.report)
    print(f"State: {runner.run_state.value}, steps {runner.step_idx}/{runner.n_steps}, "
          f"frozen safety {summary.safety_score:.1f}")


if __name__ == "__main__":
    main()
