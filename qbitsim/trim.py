"""
Trim Solver

Finds the rotor thrusts and pitch angle that hold straight, level,
constant-speed flight: net force and net pitching moment both zero.
If you can't trim, the model is wrong.

Root finding sits behind a narrow interface (residual function and seed
in, solution and convergence flag out) so any Newton, Powell hybrid or
least-squares implementation can be plugged in.

Also provides the scalar variant used to size the terminal angle of
attack of a prescribed angle-of-attack transition.
"""

import numpy as np
from scipy.optimize import root, least_squares
from dataclasses import dataclass
from typing import Callable, Optional, Sequence

from .aircraft import PhysicalParameters
from .aerodynamics import AeroCoefficientModel, AirflowState, compute_airflow
from .dynamics import state_derivative
from .exceptions import TrimNotFound
from .state import VehicleState


ResidualFunction = Callable[[np.ndarray], np.ndarray]


@dataclass
class RootResult:
    """Outcome of a root-finding attempt."""

    x: np.ndarray
    converged: bool
    residuals: np.ndarray
    iterations: int
    message: str

    @property
    def max_residual(self) -> float:
        return float(np.max(np.abs(self.residuals)))


# Any callable (residual_fn, x0) -> RootResult satisfies the contract
RootFinder = Callable[[ResidualFunction, np.ndarray], RootResult]


@dataclass
class HybridRootFinder:
    """Powell hybrid method (MINPACK hybrd), the classic fsolve algorithm."""

    xtol: float = 1e-12
    maxfev: int = 2000

    def __call__(self, residual_fn: ResidualFunction, x0: np.ndarray) -> RootResult:
        sol = root(residual_fn, np.asarray(x0, dtype=np.float64), method='hybr',
                   options={'xtol': self.xtol, 'maxfev': self.maxfev})
        return RootResult(
            x=np.atleast_1d(sol.x),
            converged=bool(sol.success),
            residuals=np.atleast_1d(sol.fun),
            iterations=int(sol.nfev),
            message=str(sol.message)
        )


@dataclass
class LeastSquaresRootFinder:
    """Trust-region reflective least squares on the residual vector."""

    tol: float = 1e-12
    max_nfev: int = 2000

    def __call__(self, residual_fn: ResidualFunction, x0: np.ndarray) -> RootResult:
        sol = least_squares(residual_fn, np.asarray(x0, dtype=np.float64), method='trf',
                            ftol=self.tol, xtol=self.tol, gtol=self.tol,
                            max_nfev=self.max_nfev)
        return RootResult(
            x=np.atleast_1d(sol.x),
            converged=bool(sol.success),
            residuals=np.atleast_1d(sol.fun),
            iterations=int(sol.nfev),
            message=str(sol.message)
        )


@dataclass(frozen=True)
class TrimSolution:
    """Equilibrium thrusts and pitch at a cruise speed."""

    thrust_top: float
    thrust_bottom: float
    theta: float
    airspeed: float
    residuals: np.ndarray
    airflow: AirflowState
    iterations: int
    message: str

    @property
    def total_thrust(self) -> float:
        return self.thrust_top + self.thrust_bottom

    def initial_state(self, y: float = 0.0, z: float = 0.0) -> VehicleState:
        """Level flight state at the trim condition."""
        return VehicleState(y=y, z=z, theta=self.theta, y_dot=self.airspeed)


def default_trim_seed(params: PhysicalParameters) -> np.ndarray:
    """Half the weight on each rotor, 45 deg pitch."""
    return np.array([params.weight / 2, params.weight / 2, np.pi / 4])


def trim_residuals(
    x: Sequence[float],
    airspeed: float,
    params: PhysicalParameters,
    aero_model: AeroCoefficientModel,
    aerodynamics_enabled: bool = True
) -> np.ndarray:
    """
    Net force and moment in level flight at the given thrusts and pitch.

    Evaluates one pass of the airflow model and the rigid-body equations at
    zero acceleration, so the residuals are exactly what the simulation
    would see at this condition.

    Args:
        x: [T_top, T_bot, theta]
        airspeed: Horizontal speed (m/s)
        params: Physical parameters
        aero_model: Coefficient lookup
        aerodynamics_enabled: Aerodynamic loads on/off

    Returns:
        [F_y (N), F_z (N), M (N·m)]
    """
    T_top, T_bot, theta = (float(v) for v in x)
    state = VehicleState(theta=theta, y_dot=airspeed)

    airflow = compute_airflow(state, T_top, T_bot, params, aero_model,
                              aerodynamics_enabled)
    deriv = state_derivative(
        state.to_array(), T_top, T_bot,
        airflow.lift, airflow.drag, airflow.moment, airflow.alpha_effective,
        params
    )

    return np.array([
        params.mass * deriv[3],
        params.mass * deriv[4],
        params.inertia * deriv[5],
    ])


def compute_trim(
    airspeed: float,
    params: PhysicalParameters,
    aero_model: AeroCoefficientModel,
    seed: Optional[Sequence[float]] = None,
    root_finder: Optional[RootFinder] = None,
    tolerance: float = 1e-6,
    aerodynamics_enabled: bool = True
) -> TrimSolution:
    """
    Compute trim thrusts and pitch for level flight at an airspeed.

    Args:
        airspeed: Target cruise speed V_s (m/s)
        params: Physical parameters
        aero_model: Coefficient lookup
        seed: Initial guess [T_top, T_bot, theta]; half-weight split at
            45 deg if None
        root_finder: Root-finding strategy (Powell hybrid if None)
        tolerance: Largest acceptable |residual| (N, N·m)
        aerodynamics_enabled: Aerodynamic loads on/off

    Returns:
        TrimSolution

    Raises:
        TrimNotFound: solver did not converge or residual above tolerance
    """
    root_finder = root_finder or HybridRootFinder()
    x0 = default_trim_seed(params) if seed is None else np.asarray(seed, dtype=np.float64)

    def residual_fn(x):
        return trim_residuals(x, airspeed, params, aero_model, aerodynamics_enabled)

    result = root_finder(residual_fn, x0)

    if not np.all(np.isfinite(result.x)) or not np.all(np.isfinite(result.residuals)):
        raise TrimNotFound(
            f"Trim at {airspeed:.2f} m/s diverged: {result.message}",
            x=result.x, residuals=result.residuals
        )

    # Re-evaluate rather than trust the finder's own bookkeeping
    residuals = residual_fn(result.x)
    max_residual = float(np.max(np.abs(residuals)))

    if not result.converged or max_residual > tolerance:
        raise TrimNotFound(
            f"Trim at {airspeed:.2f} m/s not found (max residual "
            f"{max_residual:.3e}, converged={result.converged}): {result.message}",
            x=result.x, residuals=residuals
        )

    T_top, T_bot, theta = (float(v) for v in result.x)
    airflow = compute_airflow(VehicleState(theta=theta, y_dot=airspeed),
                              T_top, T_bot, params, aero_model, aerodynamics_enabled)

    return TrimSolution(
        thrust_top=T_top,
        thrust_bottom=T_bot,
        theta=theta,
        airspeed=float(airspeed),
        residuals=residuals,
        airflow=airflow,
        iterations=result.iterations,
        message=result.message
    )


def terminal_alpha_residual(
    alpha: float,
    airspeed: float,
    force_ratio: float,
    params: PhysicalParameters,
    aero_model: AeroCoefficientModel
) -> float:
    """
    Quasi-steady vertical balance at a fixed angle of attack.

    q S (Cl cos a + Cd sin a) - force_ratio * m g cos a, i.e. the level
    flight balance with the thrust eliminated, multiplied through by cos a
    so it stays finite near hover.
    """
    cl, cd, _ = aero_model.evaluate(np.degrees(alpha))
    q_S = 0.5 * params.air_density * airspeed**2 * params.wing_area
    return q_S * (cl * np.cos(alpha) + cd * np.sin(alpha)) - force_ratio * params.weight * np.cos(alpha)


def solve_terminal_alpha(
    airspeed: float,
    params: PhysicalParameters,
    aero_model: AeroCoefficientModel,
    force_ratio: float = 1.0,
    seed: float = np.radians(10.0),
    root_finder: Optional[RootFinder] = None,
    tolerance: float = 1e-6
) -> float:
    """
    Angle of attack at which the wing supports force_ratio of the weight.

    Args:
        airspeed: Terminal speed (m/s)
        params: Physical parameters
        aero_model: Coefficient lookup
        force_ratio: Fraction of the weight carried aerodynamically
        seed: Initial guess (rad)
        root_finder: Root-finding strategy (Powell hybrid if None)
        tolerance: Largest acceptable |residual| (N)

    Returns:
        Terminal angle of attack (rad), in (0, pi/2)

    Raises:
        TrimNotFound: no acceptable root
    """
    root_finder = root_finder or HybridRootFinder()

    def residual_fn(x):
        return np.array([terminal_alpha_residual(x[0], airspeed, force_ratio,
                                                 params, aero_model)])

    result = root_finder(residual_fn, np.array([seed]))
    alpha = float(result.x[0])
    residual = float(residual_fn(result.x)[0]) if np.isfinite(alpha) else np.inf

    if not result.converged or abs(residual) > tolerance or not 0.0 < alpha < np.pi / 2:
        raise TrimNotFound(
            f"Terminal angle of attack at {airspeed:.2f} m/s not found "
            f"(alpha={alpha:.4f} rad, residual {residual:.3e}): {result.message}",
            x=result.x, residuals=[residual]
        )

    return alpha
