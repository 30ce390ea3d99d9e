"""
Aerodynamics Module

Computes the airflow over the wings and the resulting aerodynamic loads:
- Lift/drag/moment coefficient lookup from polar data (natural cubic splines)
- Inertial airspeed, flight-path angle and geometric angle of attack
- Propeller wash over the wings from momentum theory
- Effective airspeed and angle of attack seen by the wing
- Lift, drag and pitching moment

Angles are in radians everywhere except the coefficient lookup, which is
indexed in degrees like the polar tables it is built from.
"""

import numpy as np
from dataclasses import dataclass
from typing import Tuple, Union
from scipy.interpolate import CubicSpline

from .aircraft import PhysicalParameters
from .data_import import PolarData
from .state import VehicleState


# Below this speed heading and effective angle of attack are undefined
SINGULARITY_EPS = 1e-10

ArrayLike = Union[float, np.ndarray]


class AeroCoefficientModel:
    """
    Smooth lift, drag and moment coefficient lookup.

    One natural cubic spline per coefficient, built once from a polar
    table and read-only afterwards. Outside the sampled range each
    coefficient continues linearly with the end slope of its spline; the
    natural end condition makes that continuation twice differentiable.
    """

    def __init__(self, polar: PolarData):
        self.polar = polar
        self._alpha_min, self._alpha_max = polar.alpha_range

        self._splines = tuple(
            CubicSpline(polar.alpha, values, bc_type='natural')
            for values in (polar.cl, polar.cd, polar.cm)
        )
        self._end_slopes = tuple(
            (float(s(self._alpha_min, 1)), float(s(self._alpha_max, 1)))
            for s in self._splines
        )

    @property
    def alpha_range(self) -> Tuple[float, float]:
        """Sampled angle-of-attack domain (deg)."""
        return self._alpha_min, self._alpha_max

    def _lookup(self, index: int, alpha_deg: ArrayLike) -> ArrayLike:
        spline = self._splines[index]
        slope_low, slope_high = self._end_slopes[index]

        alpha = np.asarray(alpha_deg, dtype=np.float64)
        clipped = np.clip(alpha, self._alpha_min, self._alpha_max)
        slope = np.where(alpha < self._alpha_min, slope_low,
                         np.where(alpha > self._alpha_max, slope_high, 0.0))
        value = spline(clipped) + slope * (alpha - clipped)

        if np.ndim(value) == 0:
            return float(value)
        return value

    def cl(self, alpha_deg: ArrayLike) -> ArrayLike:
        """Lift coefficient at alpha (deg)."""
        return self._lookup(0, alpha_deg)

    def cd(self, alpha_deg: ArrayLike) -> ArrayLike:
        """Drag coefficient at alpha (deg)."""
        return self._lookup(1, alpha_deg)

    def cm(self, alpha_deg: ArrayLike) -> ArrayLike:
        """Pitching moment coefficient at alpha (deg)."""
        return self._lookup(2, alpha_deg)

    def evaluate(self, alpha_deg: ArrayLike) -> Tuple[ArrayLike, ArrayLike, ArrayLike]:
        """
        Look up all three coefficients.

        Args:
            alpha_deg: Effective angle of attack (deg), scalar or array

        Returns:
            (Cl, Cd, Cm)
        """
        return self.cl(alpha_deg), self.cd(alpha_deg), self.cm(alpha_deg)


@dataclass(frozen=True)
class AirflowState:
    """Airflow over the wing and resulting aerodynamic loads for one step."""

    # Speeds (m/s)
    airspeed_inertial: float = 0.0    # V_i
    wash_speed: float = 0.0           # V_w from averaged thrust
    wash_speed_top: float = 0.0       # V_w from top rotor thrust
    wash_speed_bottom: float = 0.0    # V_w from bottom rotor thrust
    airspeed_effective: float = 0.0   # V_a

    # Angles (rad)
    flight_path_angle: float = 0.0    # gamma
    alpha: float = 0.0                # theta - gamma
    alpha_effective: float = 0.0      # alpha_e

    # Coefficients
    cl: float = 0.0
    cd: float = 0.0
    cm: float = 0.0

    # Loads (N, N·m)
    lift: float = 0.0
    drag: float = 0.0
    moment: float = 0.0


def induced_velocity(
    airspeed_inertial: float,
    theta: float,
    gamma: float,
    thrust: float,
    params: PhysicalParameters
) -> float:
    """
    Propeller wash speed over the wing from momentum theory.

    V_w = eta * sqrt((V_i cos(theta - gamma))^2 + T / (0.5 rho pi R^2))

    A negative thrust command can drive the radicand below zero; it is
    floored at zero so the wash speed stays real and non-negative.
    """
    axial = airspeed_inertial * np.cos(theta - gamma)
    radicand = axial**2 + thrust / (0.5 * params.air_density * params.disk_area)
    return float(params.eta * np.sqrt(max(radicand, 0.0)))


def compute_airflow(
    state: VehicleState,
    thrust_top: float,
    thrust_bottom: float,
    params: PhysicalParameters,
    aero_model: AeroCoefficientModel,
    aerodynamics_enabled: bool = True
) -> AirflowState:
    """
    Compute airflow over the wing and the aerodynamic loads.

    Args:
        state: Vehicle state the loads are evaluated at
        thrust_top: Top rotor thrust (N)
        thrust_bottom: Bottom rotor thrust (N)
        params: Physical parameters
        aero_model: Coefficient lookup
        aerodynamics_enabled: If False, coefficients are forced to zero and
            alpha_e is the geometric angle of attack

    Returns:
        AirflowState with computed values
    """
    theta = state.theta
    V_i = float(np.hypot(state.y_dot, state.z_dot))

    # Heading is undefined at rest
    if V_i > SINGULARITY_EPS:
        gamma = float(np.arctan2(state.z_dot, state.y_dot))
    else:
        gamma = 0.0
    alpha = theta - gamma

    T_avg = 0.5 * (thrust_top + thrust_bottom)
    V_w = induced_velocity(V_i, theta, gamma, T_avg, params)
    V_w_top = induced_velocity(V_i, theta, gamma, thrust_top, params)
    V_w_bot = induced_velocity(V_i, theta, gamma, thrust_bottom, params)

    # Law of cosines; floored against round-off when the two nearly cancel
    V_a = float(np.sqrt(max(V_i**2 + V_w**2 + 2 * V_i * V_w * np.cos(alpha), 0.0)))

    if not aerodynamics_enabled:
        return AirflowState(
            airspeed_inertial=V_i,
            wash_speed=V_w,
            wash_speed_top=V_w_top,
            wash_speed_bottom=V_w_bot,
            airspeed_effective=V_a,
            flight_path_angle=gamma,
            alpha=alpha,
            alpha_effective=alpha,
        )

    if V_a > SINGULARITY_EPS:
        alpha_e = float(np.arcsin(np.clip(V_i * np.sin(alpha) / V_a, -1.0, 1.0)))
    else:
        alpha_e = 0.0

    cl, cd, cm = aero_model.evaluate(np.degrees(alpha_e))

    q_S = 0.5 * params.air_density * V_a**2 * params.wing_area

    return AirflowState(
        airspeed_inertial=V_i,
        wash_speed=V_w,
        wash_speed_top=V_w_top,
        wash_speed_bottom=V_w_bot,
        airspeed_effective=V_a,
        flight_path_angle=gamma,
        alpha=alpha,
        alpha_effective=alpha_e,
        cl=cl,
        cd=cd,
        cm=cm,
        lift=q_S * cl,
        drag=q_S * cd,
        moment=q_S * params.chord * cm,
    )


def aero_force_inertial(
    lift: float,
    drag: float,
    theta: float,
    alpha_e: float
) -> np.ndarray:
    """
    Aerodynamic force resolved into inertial (y, z) axes.

    Drag acts against the effective relative wind, which lies at
    theta - alpha_e from the horizontal; lift is perpendicular to it.
    """
    wind_angle = theta - alpha_e
    return np.array([
        -drag * np.cos(wind_angle) - lift * np.sin(wind_angle),
        -drag * np.sin(wind_angle) + lift * np.cos(wind_angle),
    ])
