"""
QBiT Tail-Sitter Flight Simulator

Longitudinal (planar) flight dynamics of a two-rotor tail-sitting biplane
transitioning between hover and wing-borne flight, with a trim solver,
maneuver reference generator, prop-wash aerodynamics and a closed-loop
thrust controller.
"""

__version__ = "0.1.0"

# Core model
from .aircraft import PhysicalParameters, reference_parameters, crc3_parameters
from .state import VehicleState, ReferenceState
from .exceptions import ConfigurationError, TrimNotFound
from .aerodynamics import (
    AeroCoefficientModel,
    AirflowState,
    compute_airflow,
    induced_velocity,
    aero_force_inertial,
    SINGULARITY_EPS
)
from .dynamics import IntegrationScheme, state_derivative, euler_step, rk4_step, advance
from .controller import ControllerGains, ControlOutput, control
from .trim import (
    RootResult,
    HybridRootFinder,
    LeastSquaresRootFinder,
    TrimSolution,
    compute_trim,
    trim_residuals,
    solve_terminal_alpha
)
from .trajectory import (
    ManeuverType,
    ManeuverConfig,
    ManeuverPlan,
    ReferenceTrajectory,
    AoAProfile,
    TransitionKinematics,
    build_maneuver,
    fit_waypoint_spline
)
from .simulation import (
    SimulationConfig,
    StepRecord,
    SimulationResult,
    Simulation,
    run_simulation,
    pad_boundary_samples
)
from .config import RunConfig

# Data in and out
from .data_import import PolarData, load_polar_csv, create_naca0015_polar
from .data_export import export_csv, export_json
