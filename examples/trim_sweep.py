#!/usr/bin/env python3
"""
Trim Sweep Example

Solves trim across a range of cruise speeds, then flies a short
trim-cruise run at each speed as an independent simulation. Prints the
trim table and writes it to CSV.
"""

import sys
from pathlib import Path

# Add parent directory to path
sys.path.insert(0, str(Path(__file__).parent.parent))

import numpy as np
import pandas as pd
from qbitsim import (
    AeroCoefficientModel,
    ManeuverConfig,
    SimulationConfig,
    TrimNotFound,
    compute_trim,
    create_naca0015_polar,
    reference_parameters,
    run_simulation
)


def main():
    print("=" * 70)
    print("QBiT TRIM SWEEP")
    print("=" * 70)

    params = reference_parameters()
    aero_model = AeroCoefficientModel(create_naca0015_polar())
    sim_config = SimulationConfig(dt=0.01, integrator='rk4', duration=3.0)

    rows = []
    seed = None
    for speed in np.arange(12.0, 32.0, 2.0):
        try:
            trim = compute_trim(speed, params, aero_model, seed=seed)
        except TrimNotFound as e:
            print(f"  {speed:5.1f} m/s: {e}")
            continue

        # Continuation: next speed starts from this solution
        seed = [trim.thrust_top, trim.thrust_bottom, trim.theta]

        result = run_simulation(
            ManeuverConfig(maneuver='trim-cruise', cruise_speed=speed, trim_seed=seed),
            params, aero_model, sim_config
        )
        final = result.final_state

        rows.append({
            'airspeed_m_s': speed,
            'T_top_N': trim.thrust_top,
            'T_bot_N': trim.thrust_bottom,
            'theta_deg': np.degrees(trim.theta),
            'alpha_e_deg': np.degrees(trim.airflow.alpha_effective),
            'V_a_m_s': trim.airflow.airspeed_effective,
            'L_N': trim.airflow.lift,
            'D_N': trim.airflow.drag,
            'final_theta_deg': np.degrees(final.theta),
            'final_speed_m_s': final.speed,
        })

    df = pd.DataFrame(rows)
    print()
    print(df.to_string(index=False, float_format=lambda v: f"{v:8.3f}"))

    out = Path("trim_sweep.csv")
    df.to_csv(out, index=False)
    print(f"\nSaved {len(df)} trim points to {out}")


if __name__ == "__main__":
    main()
