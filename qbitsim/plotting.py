"""
Plotting Module

Standard time-history figures for a simulation run:
- States vs reference
- State derivatives
- Aerodynamic forces and moment
- Airflow over the wing
- Flight-path and angle-of-attack angles
- Rotor thrust commands
- Desired thrust vector in the vertical plane
- Coefficient polar of the aero model

Figures are returned to the caller and optionally saved.
"""

import numpy as np
import matplotlib.pyplot as plt
from pathlib import Path
from typing import Dict, Optional

from .aerodynamics import AeroCoefficientModel
from .simulation import SimulationResult


PLOT_STYLE = {
    'figure.figsize': (10, 6),
    'figure.dpi': 100,
    'font.size': 10,
    'axes.labelsize': 11,
    'axes.titlesize': 12,
    'legend.fontsize': 9,
    'xtick.labelsize': 9,
    'ytick.labelsize': 9,
    'lines.linewidth': 1.5,
    'grid.alpha': 0.3
}


def setup_plot_style():
    """Apply the common plot styling."""
    plt.style.use('seaborn-v0_8-darkgrid' if 'seaborn-v0_8-darkgrid' in plt.style.available else 'default')
    plt.rcParams.update(PLOT_STYLE)


def _finish(fig: plt.Figure, title: str, save_path: Optional[str]) -> plt.Figure:
    fig.suptitle(title)
    fig.tight_layout()
    if save_path:
        fig.savefig(save_path, dpi=150, bbox_inches='tight')
    return fig


def plot_states(result: SimulationResult, save_path: Optional[str] = None) -> plt.Figure:
    """Position, velocity and pitch against the reference."""
    setup_plot_style()
    t = result.time
    x = result.states
    ref = result.references

    fig, axes = plt.subplots(3, 2, figsize=(12, 8), sharex=True)
    panels = [
        (axes[0, 0], x[:, 0], ref[:, 0], 'y (m)'),
        (axes[0, 1], x[:, 1], ref[:, 1], 'z (m)'),
        (axes[1, 0], x[:, 3], ref[:, 2], r'$\dot y$ (m/s)'),
        (axes[1, 1], x[:, 4], ref[:, 3], r'$\dot z$ (m/s)'),
    ]
    for ax, actual, desired, label in panels:
        ax.plot(t, actual, 'b-', label='Actual')
        ax.plot(t, desired, 'r--', label='Reference')
        ax.set_ylabel(label)
        ax.grid(True, alpha=0.3)
    axes[0, 0].legend(loc='best')

    axes[2, 0].plot(t, np.degrees(x[:, 2]), 'b-')
    axes[2, 0].set_ylabel(r'$\theta$ (deg)')
    axes[2, 1].plot(t, np.degrees(x[:, 5]), 'b-')
    axes[2, 1].set_ylabel(r'$\dot\theta$ (deg/s)')
    for ax in axes[2]:
        ax.set_xlabel('Time (s)')
        ax.grid(True, alpha=0.3)

    return _finish(fig, f"States: {result.plan.maneuver.value}", save_path)


def plot_derivatives(result: SimulationResult, save_path: Optional[str] = None) -> plt.Figure:
    """Translational and pitch accelerations against the reference accelerations."""
    setup_plot_style()
    t = result.time
    acc = result.accelerations
    ref = result.references

    fig, axes = plt.subplots(3, 1, figsize=(10, 8), sharex=True)
    axes[0].plot(t, acc[:, 0], 'b-', label='Actual')
    axes[0].plot(t, ref[:, 4], 'r--', label='Reference')
    axes[0].set_ylabel(r'$\ddot y$ (m/s²)')
    axes[0].legend(loc='best')
    axes[1].plot(t, acc[:, 1], 'b-')
    axes[1].plot(t, ref[:, 5], 'r--')
    axes[1].set_ylabel(r'$\ddot z$ (m/s²)')
    axes[2].plot(t, np.degrees(acc[:, 2]), 'b-')
    axes[2].set_ylabel(r'$\ddot\theta$ (deg/s²)')
    axes[2].set_xlabel('Time (s)')
    for ax in axes:
        ax.grid(True, alpha=0.3)

    return _finish(fig, "State Derivatives", save_path)


def plot_aero_loads(result: SimulationResult, save_path: Optional[str] = None) -> plt.Figure:
    """Lift, drag and pitching moment."""
    setup_plot_style()
    t = result.time

    fig, axes = plt.subplots(2, 1, figsize=(10, 6), sharex=True)
    axes[0].plot(t, result.airflow('lift'), 'b-', label='L')
    axes[0].plot(t, result.airflow('drag'), 'r-', label='D')
    axes[0].set_ylabel('Force (N)')
    axes[0].legend(loc='best')
    axes[1].plot(t, result.airflow('moment'), 'k-')
    axes[1].set_ylabel(r'$M_{air}$ (N·m)')
    axes[1].set_xlabel('Time (s)')
    for ax in axes:
        ax.grid(True, alpha=0.3)
        ax.axhline(0, color='gray', linestyle=':', linewidth=1, alpha=0.5)

    return _finish(fig, "Aerodynamic Loads", save_path)


def plot_airflow(result: SimulationResult, save_path: Optional[str] = None) -> plt.Figure:
    """Inertial, wash and effective airspeeds."""
    setup_plot_style()
    t = result.time

    fig, ax = plt.subplots(figsize=(10, 5))
    ax.plot(t, result.airflow('airspeed_inertial'), 'b-', label=r'$V_i$')
    ax.plot(t, result.airflow('wash_speed'), 'g-', label=r'$V_w$')
    ax.plot(t, result.airflow('wash_speed_top'), 'g:', label=r'$V_{w,top}$')
    ax.plot(t, result.airflow('wash_speed_bottom'), 'g--', label=r'$V_{w,bot}$')
    ax.plot(t, result.airflow('airspeed_effective'), 'r-', label=r'$V_a$')
    ax.set_xlabel('Time (s)')
    ax.set_ylabel('Speed (m/s)')
    ax.legend(loc='best')
    ax.grid(True, alpha=0.3)

    return _finish(fig, "Airflow over the Wing", save_path)


def plot_angles(result: SimulationResult, save_path: Optional[str] = None) -> plt.Figure:
    """Flight-path angle, geometric and effective angle of attack, pitch."""
    setup_plot_style()
    t = result.time

    fig, ax = plt.subplots(figsize=(10, 5))
    ax.plot(t, np.degrees(result.states[:, 2]), 'k-', label=r'$\theta$')
    ax.plot(t, np.degrees(result.airflow('flight_path_angle')), 'b-', label=r'$\gamma$')
    ax.plot(t, np.degrees(result.airflow('alpha')), 'g-', label=r'$\alpha$')
    ax.plot(t, np.degrees(result.airflow('alpha_effective')), 'r-', label=r'$\alpha_e$')
    ax.set_xlabel('Time (s)')
    ax.set_ylabel('Angle (deg)')
    ax.legend(loc='best')
    ax.grid(True, alpha=0.3)

    return _finish(fig, "Angles", save_path)


def plot_thrust(result: SimulationResult, save_path: Optional[str] = None) -> plt.Figure:
    """Rotor thrust commands with the hover weight share for scale."""
    setup_plot_style()
    t = result.time
    thrust = result.thrust

    fig, ax = plt.subplots(figsize=(10, 5))
    ax.plot(t, thrust[:, 0], 'b-', label=r'$T_{top}$')
    ax.plot(t, thrust[:, 1], 'r-', label=r'$T_{bot}$')
    ax.plot(t, thrust.mean(axis=1), 'k--', label=r'$T_{avg}$')
    ax.axhline(result.params.weight / 2, color='gray', linestyle=':', linewidth=1, label='mg/2')
    ax.set_xlabel('Time (s)')
    ax.set_ylabel('Thrust (N)')
    ax.legend(loc='best')
    ax.grid(True, alpha=0.3)

    return _finish(fig, "Thrust Commands", save_path)


def plot_thrust_vector(result: SimulationResult, save_path: Optional[str] = None) -> plt.Figure:
    """Required thrust vector components and its direction vs pitch."""
    setup_plot_style()
    t = result.time
    vec = result.thrust_vector
    theta_des = result.to_dataframe()['theta_des_rad'].values

    fig, axes = plt.subplots(2, 1, figsize=(10, 6), sharex=True)
    axes[0].plot(t, vec[:, 0], 'b-', label='y')
    axes[0].plot(t, vec[:, 1], 'r-', label='z')
    axes[0].set_ylabel('Thrust vector (N)')
    axes[0].legend(loc='best')
    axes[1].plot(t, np.degrees(theta_des), 'r--', label=r'$\theta_{des}$')
    axes[1].plot(t, np.degrees(result.states[:, 2]), 'b-', label=r'$\theta$')
    axes[1].set_ylabel('Angle (deg)')
    axes[1].set_xlabel('Time (s)')
    axes[1].legend(loc='best')
    for ax in axes:
        ax.grid(True, alpha=0.3)

    return _finish(fig, "Desired Thrust Vector", save_path)


def plot_polar(
    aero_model: AeroCoefficientModel,
    alpha_range_deg=(-180.0, 180.0),
    save_path: Optional[str] = None
) -> plt.Figure:
    """Interpolated Cl, Cd, Cm over an angle range with the table samples."""
    setup_plot_style()
    polar = aero_model.polar
    alpha = np.linspace(alpha_range_deg[0], alpha_range_deg[1], 721)
    cl, cd, cm = aero_model.evaluate(alpha)

    fig, ax = plt.subplots(figsize=(10, 5))
    ax.plot(alpha, cl, 'b-', label=r'$C_l$')
    ax.plot(alpha, cd, 'r-', label=r'$C_d$')
    ax.plot(alpha, cm, 'g-', label=r'$C_m$')
    ax.plot(polar.alpha, polar.cl, 'b.', markersize=3)
    ax.plot(polar.alpha, polar.cd, 'r.', markersize=3)
    ax.plot(polar.alpha, polar.cm, 'g.', markersize=3)
    ax.set_xlabel(r'$\alpha_e$ (deg)')
    ax.set_ylabel('Coefficient')
    ax.legend(loc='best')
    ax.grid(True, alpha=0.3)

    return _finish(fig, f"Polar: {polar.name}", save_path)


def create_run_plots(
    result: SimulationResult,
    output_dir: str,
    prefix: str = "qbit"
) -> Dict[str, plt.Figure]:
    """
    Save the full figure set for a run.

    Returns:
        Figures keyed by name
    """
    out = Path(output_dir)
    out.mkdir(parents=True, exist_ok=True)

    makers = {
        'states': plot_states,
        'derivatives': plot_derivatives,
        'aero_loads': plot_aero_loads,
        'airflow': plot_airflow,
        'angles': plot_angles,
        'thrust': plot_thrust,
        'thrust_vector': plot_thrust_vector,
    }
    return {
        name: make(result, save_path=str(out / f"{prefix}_{name}.png"))
        for name, make in makers.items()
    }
