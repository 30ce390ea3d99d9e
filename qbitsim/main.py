"""
Main Entry Point

Run one closed-loop QBiT maneuver from the command line, optionally
exporting the time history and saving the standard figures.
"""

import argparse
import sys
import numpy as np
from pathlib import Path

from .aerodynamics import AeroCoefficientModel
from .config import RunConfig, parameters_from_preset, PARAMETER_PRESETS
from .data_export import export_csv, export_json
from .data_import import create_naca0015_polar, load_polar_csv
from .dynamics import IntegrationScheme
from .exceptions import ConfigurationError, TrimNotFound
from .simulation import Simulation, SimulationResult
from .trajectory import ManeuverType


def load_aero_model(polar_file: str = None) -> AeroCoefficientModel:
    """Coefficient model from a polar CSV, or the built-in NACA 0015 table."""
    polar = load_polar_csv(polar_file) if polar_file else create_naca0015_polar()
    return AeroCoefficientModel(polar)


def print_summary(result: SimulationResult):
    """Print the trim estimate and the closing run summary."""
    plan = result.plan
    print("\n" + "=" * 60)
    print(f"QBiT SIMULATION: {plan.maneuver.value}")
    print("=" * 60)

    if plan.trim is not None:
        trim = plan.trim
        print(f"\nTrim at {trim.airspeed:.2f} m/s ({trim.iterations} evaluations)")
        print(f"  T_top: {trim.thrust_top:.4f} N")
        print(f"  T_bot: {trim.thrust_bottom:.4f} N")
        print(f"  Theta: {np.degrees(trim.theta):.2f}°")
        print(f"  Alpha_e: {np.degrees(trim.airflow.alpha_effective):.2f}°")
        print(f"  Max residual: {np.max(np.abs(trim.residuals)):.2e}")
    if plan.terminal_alpha is not None:
        print(f"\nTerminal angle of attack: {np.degrees(plan.terminal_alpha):.2f}°")

    s = result.summary()
    print(f"\nRan {len(result)} samples to t = {s['duration_s']:.2f} s")
    print(f"  Final T_top: {s['T_top_final_N']:.4f} N")
    print(f"  Final T_bot: {s['T_bot_final_N']:.4f} N")
    print(f"  Final theta: {np.degrees(s['theta_final_rad']):.2f}°")
    print(f"  Max position error: {s['max_position_error_m']:.3f} m")
    print("\nRun means:")
    print(f"  Alpha: {np.degrees(s['alpha_mean_rad']):.2f}°")
    print(f"  Alpha_e: {np.degrees(s['alpha_e_mean_rad']):.2f}°")
    print(f"  V_w: {s['V_w_mean_m_s']:.2f} m/s")
    print(f"  V_a: {s['V_a_mean_m_s']:.2f} m/s")
    print(f"  Lift: {s['L_mean_N']:.3f} N")
    print(f"  Drag: {s['D_mean_N']:.3f} N")
    print(f"  M_air: {s['M_air_mean_Nm']:.4f} N·m")
    if s['negative_thrust_steps']:
        print(f"  Negative thrust on {s['negative_thrust_steps']} steps")
    print("=" * 60 + "\n")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="QBiT Tail-Sitter Longitudinal Flight Simulator")

    parser.add_argument(
        '--config', '-c',
        type=str,
        help='Path to run configuration YAML'
    )
    parser.add_argument(
        '--maneuver', '-m',
        type=str,
        help=f"Maneuver ({', '.join(m.value for m in ManeuverType)})"
    )
    parser.add_argument(
        '--params', '-p',
        type=str,
        choices=sorted(PARAMETER_PRESETS),
        help='Physical parameter preset (overrides the config file)'
    )
    parser.add_argument(
        '--integrator', '-i',
        type=str,
        help=f"Integration scheme ({', '.join(s.value for s in IntegrationScheme)})"
    )
    parser.add_argument(
        '--dt',
        type=float,
        help='Time step (s)'
    )
    parser.add_argument(
        '--duration', '-d',
        type=float,
        help='Run length (s); the maneuver decides if omitted'
    )
    parser.add_argument(
        '--speed', '-s',
        type=float,
        help='Cruise / target speed (m/s)'
    )
    parser.add_argument(
        '--no-aero',
        action='store_true',
        help='Disable aerodynamic loads (pure-thrust flight)'
    )
    parser.add_argument(
        '--polar',
        type=str,
        help='Polar CSV (alpha, Cl, Cd, Cm); built-in NACA 0015 if omitted'
    )
    parser.add_argument(
        '--output', '-o',
        type=str,
        help='Write the time history (.csv or .json)'
    )
    parser.add_argument(
        '--plot',
        type=str,
        metavar='DIR',
        help='Save the standard figures to DIR'
    )
    parser.add_argument(
        '--save-config',
        type=str,
        metavar='PATH',
        help='Write the effective configuration to YAML'
    )
    parser.add_argument(
        '--quiet', '-q',
        action='store_true',
        help='Suppress the printed summary'
    )
    return parser


def resolve_config(args: argparse.Namespace) -> RunConfig:
    """Configuration file (or defaults) with command-line overrides applied."""
    run_config = RunConfig.from_yaml(args.config) if args.config else RunConfig()

    if args.params:
        run_config.params = parameters_from_preset(args.params)
    if args.polar:
        run_config.polar_file = args.polar

    return run_config.with_overrides(
        maneuver=args.maneuver,
        integrator=args.integrator,
        dt=args.dt,
        duration=args.duration,
        cruise_speed=args.speed,
        aerodynamics_enabled=False if args.no_aero else None
    )


def main(argv=None) -> int:
    """Main entry point."""
    args = build_parser().parse_args(argv)
    verbose = not args.quiet

    try:
        run_config = resolve_config(args)
    except (ConfigurationError, FileNotFoundError) as e:
        print(f"Configuration error: {e}", file=sys.stderr)
        return 2

    if verbose:
        print(f"Configuration: {run_config.name}")
        print(f"  Maneuver: {run_config.maneuver.maneuver.value}")
        print(f"  Integrator: {run_config.simulation.integrator.value}, dt = {run_config.simulation.dt} s")
        print(f"  Aerodynamics: {'on' if run_config.simulation.aerodynamics_enabled else 'off'}")

    if args.save_config:
        run_config.save_yaml(args.save_config)
        if verbose:
            print(f"Saved configuration to {args.save_config}")

    aero_model = load_aero_model(run_config.polar_file)
    sim = Simulation(run_config.params, aero_model, run_config.simulation, run_config.gains)

    try:
        result = sim.fly(run_config.maneuver)
    except TrimNotFound as e:
        print(f"Trim failed: {e}", file=sys.stderr)
        return 1
    except FloatingPointError as e:
        print(f"Simulation diverged: {e}", file=sys.stderr)
        return 1

    if verbose:
        print_summary(result)

    if args.output:
        path = Path(args.output)
        if path.suffix.lower() == '.json':
            export_json(result, str(path), metadata={'config': run_config.name})
        else:
            export_csv(result, str(path), metadata={'config': run_config.name})
        if verbose:
            print(f"Exported {len(result)} records to {path}")

    if args.plot:
        from .plotting import create_run_plots, plot_polar
        import matplotlib.pyplot as plt

        prefix = result.plan.maneuver.value
        figures = create_run_plots(result, args.plot, prefix=prefix)
        figures['polar'] = plot_polar(aero_model, save_path=str(Path(args.plot) / f"{prefix}_polar.png"))
        for fig in figures.values():
            plt.close(fig)
        if verbose:
            print(f"Saved {len(figures)} figures to {args.plot}")

    return 0


if __name__ == "__main__":
    sys.exit(main())
