"""
Data Export Module

Write simulation results for analysis outside the simulator:
- CSV time history with a commented metadata header
- JSON with run metadata, summary and column arrays
"""

import json
import numpy as np
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, Optional

from .simulation import SimulationResult


def run_metadata(result: SimulationResult) -> Dict[str, Any]:
    """Configuration of the run that produced a result."""
    plan = result.plan
    meta = {
        'maneuver': plan.maneuver.value,
        'integrator': result.config.integrator.value,
        'dt_s': result.plan.reference.dt,
        'aerodynamics_enabled': result.config.aerodynamics_enabled,
        'samples': len(result),
    }
    meta.update({f'param_{k}': v for k, v in result.params.to_dict().items()})
    if plan.trim is not None:
        meta['trim_T_top_N'] = plan.trim.thrust_top
        meta['trim_T_bot_N'] = plan.trim.thrust_bottom
        meta['trim_theta_rad'] = plan.trim.theta
        meta['trim_airspeed_m_s'] = plan.trim.airspeed
    if plan.terminal_alpha is not None:
        meta['terminal_alpha_rad'] = plan.terminal_alpha
    return meta


def export_csv(
    result: SimulationResult,
    filename: str,
    metadata: Optional[Dict[str, Any]] = None
) -> Path:
    """
    Export the time history to CSV.

    Header lines start with '#' so pandas.read_csv(..., comment='#')
    reads the table back directly.

    Args:
        result: Completed simulation
        filename: Output filename
        metadata: Extra key/value pairs for the header

    Returns:
        Path written
    """
    path = Path(filename)
    path.parent.mkdir(parents=True, exist_ok=True)
    df = result.to_dataframe()

    header = run_metadata(result)
    if metadata:
        header.update(metadata)

    with open(path, 'w') as f:
        f.write("# QBiT Longitudinal Simulation Time History\n")
        f.write(f"# Generated: {datetime.now().isoformat()}\n")
        for key, value in header.items():
            f.write(f"# {key}: {value}\n")
        f.write("#\n")
        f.write("# Units: SI (m, s, rad, N, N·m)\n")
        f.write("# Axes: y horizontal, z up; theta from horizontal, hover = pi/2\n")
        f.write("#\n")

        df.to_csv(f, index=False)

    return path


def _to_builtin(value):
    if isinstance(value, np.ndarray):
        return value.tolist()
    if isinstance(value, np.generic):
        return value.item()
    return str(value)


def export_json(
    result: SimulationResult,
    filename: str,
    metadata: Optional[Dict[str, Any]] = None
) -> Path:
    """
    Export metadata, summary and column-oriented data to JSON.

    Args:
        result: Completed simulation
        filename: Output filename
        metadata: Extra key/value pairs

    Returns:
        Path written
    """
    path = Path(filename)
    path.parent.mkdir(parents=True, exist_ok=True)

    meta = run_metadata(result)
    if metadata:
        meta.update(metadata)

    output = {
        'metadata': meta,
        'generated': datetime.now().isoformat(),
        'summary': result.summary(),
        'n_points': len(result),
        'data': result.to_dataframe().to_dict(orient='list'),
    }

    with open(path, 'w') as f:
        json.dump(output, f, indent=2, default=_to_builtin)

    return path
