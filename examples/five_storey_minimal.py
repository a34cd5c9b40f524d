from pathlib import Path
import matplotlib.pyplot as plt

from seismic_simulator.config import load_simulation_params
from seismic_simulator.core.engine import run_simulation


def main():
    project_root = Path(__file__).resolve().parents[1]
    cfg_path = project_root / "configs" / "seed_five_storey.yml"

    params = load_simulation_params(cfg_path)
    df = run_simulation(params)

    plt.figure()
    for i in range(1, df.attrs["n_floors"] + 1):
        plt.plot(df["Time_s"], df[f"Floor{i}_Drift_pct"], label=f"Floor {i}")
    plt.xlabel("t [s]")
    plt.ylabel("drift [%]")
    plt.grid(True)
    plt.legend()
    plt.tight_layout()
    plt.show()

    print(df.attrs["summary"]["report"])
    print(f"Safety score: {df.attrs['safety_score']:.1f}")


if __name__ == "__main__":
    main()
