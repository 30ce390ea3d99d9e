"""
Planar Rigid Body Dynamics

Implements the longitudinal equations of motion of the tail-sitter:
- Translational dynamics (Newton's 2nd law in inertial y-z axes)
- Rotational dynamics about the pitch axis

Thrust acts along the body axis at pitch theta; lift and drag are resolved
through the effective relative wind at theta - alpha_e. Rotor thrusts and
aerodynamic loads are held constant across a step.

Offers explicit Euler and classical RK4 as interchangeable steppers.
"""

import numpy as np
from enum import Enum
from typing import Callable, Dict

from .aircraft import PhysicalParameters
from .aerodynamics import aero_force_inertial
from .exceptions import ConfigurationError


def state_derivative(
    x: np.ndarray,
    thrust_top: float,
    thrust_bottom: float,
    lift: float,
    drag: float,
    moment: float,
    alpha_e: float,
    params: PhysicalParameters
) -> np.ndarray:
    """
    Compute the time derivative of the state vector.

    Args:
        x: State [y, z, theta, y_dot, z_dot, theta_dot]
        thrust_top: Top rotor thrust (N)
        thrust_bottom: Bottom rotor thrust (N)
        lift: Lift (N)
        drag: Drag (N)
        moment: Aerodynamic pitching moment (N·m)
        alpha_e: Effective angle of attack (rad)
        params: Physical parameters

    Returns:
        [y_dot, z_dot, theta_dot, y_ddot, z_ddot, theta_ddot]
    """
    theta = x[2]
    m = params.mass
    T = thrust_top + thrust_bottom

    F_aero = aero_force_inertial(lift, drag, theta, alpha_e)

    y_ddot = (T * np.cos(theta) + F_aero[0]) / m
    z_ddot = (-m * params.gravity + T * np.sin(theta) + F_aero[1]) / m
    theta_ddot = (moment + params.arm_length * (thrust_bottom - thrust_top)) / params.inertia

    return np.array([x[3], x[4], x[5], y_ddot, z_ddot, theta_ddot])


Derivative = Callable[[np.ndarray], np.ndarray]


def euler_step(derivative: Derivative, x: np.ndarray, dt: float) -> np.ndarray:
    """Explicit Euler: x + f(x) dt."""
    return x + derivative(x) * dt


def rk4_step(derivative: Derivative, x: np.ndarray, dt: float) -> np.ndarray:
    """Classical 4-stage Runge-Kutta."""
    k1 = derivative(x)
    k2 = derivative(x + 0.5 * dt * k1)
    k3 = derivative(x + 0.5 * dt * k2)
    k4 = derivative(x + dt * k3)
    return x + (dt / 6.0) * (k1 + 2 * k2 + 2 * k3 + k4)


class IntegrationScheme(Enum):
    """Fixed-step integration schemes."""
    EULER = 'euler'
    RK4 = 'rk4'

    @classmethod
    def parse(cls, name) -> 'IntegrationScheme':
        """Resolve a scheme from its name (case-insensitive)."""
        if isinstance(name, cls):
            return name
        try:
            return cls(str(name).strip().lower())
        except ValueError:
            options = ', '.join(s.value for s in cls)
            raise ConfigurationError(
                f"Unknown integration scheme '{name}'. Options: {options}"
            ) from None


Stepper = Callable[[Derivative, np.ndarray, float], np.ndarray]

INTEGRATORS: Dict[IntegrationScheme, Stepper] = {
    IntegrationScheme.EULER: euler_step,
    IntegrationScheme.RK4: rk4_step,
}


def get_integrator(scheme) -> Stepper:
    """Stepper for a scheme or scheme name."""
    return INTEGRATORS[IntegrationScheme.parse(scheme)]


def advance(
    x: np.ndarray,
    thrust_top: float,
    thrust_bottom: float,
    lift: float,
    drag: float,
    moment: float,
    alpha_e: float,
    params: PhysicalParameters,
    dt: float,
    scheme: IntegrationScheme = IntegrationScheme.RK4
) -> np.ndarray:
    """
    Advance the state one step with thrusts and loads held fixed.

    Returns:
        State at t + dt
    """
    def derivative(xs):
        return state_derivative(xs, thrust_top, thrust_bottom,
                                lift, drag, moment, alpha_e, params)

    return INTEGRATORS[scheme](derivative, np.asarray(x, dtype=np.float64), dt)
