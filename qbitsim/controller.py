"""
Thrust Controller

Feedback-linearising position controller for the two-rotor tail-sitter:
- PD tracking on position/velocity plus reference acceleration feed-forward
- Inversion of the force mapping: required thrust vector = desired net
  force + weight - aerodynamic force
- Collective thrust from projecting that vector on the body axis
- Differential thrust from a PD pitch loop toward the thrust-vector
  direction, with the aerodynamic moment cancelled

Stateless: every call depends only on its arguments.
"""

import numpy as np
from dataclasses import dataclass

from .aircraft import PhysicalParameters
from .aerodynamics import aero_force_inertial
from .state import VehicleState, ReferenceState


@dataclass
class ControllerGains:
    """Tuning of the tracking and pitch loops."""

    # Position (1/s²) and velocity (1/s) gains per axis
    kp_y: float = 2.0
    kp_z: float = 2.0
    kv_y: float = 3.0
    kv_z: float = 3.0

    # Pitch stiffness (1/s²) and damping (1/s)
    kp_theta: float = 36.0
    kd_theta: float = 12.0


@dataclass(frozen=True)
class ControlOutput:
    """Controller command for one step."""

    thrust_top: float
    thrust_bottom: float

    # Desired net force on the vehicle (N), inertial [y, z]
    force_desired: np.ndarray

    # Desired translational acceleration (m/s²)
    accel_desired: np.ndarray

    # Thrust vector the rotors must supply (N)
    thrust_vector: np.ndarray

    # Direction of thrust_vector (rad)
    theta_desired: float

    @property
    def total_thrust(self) -> float:
        return self.thrust_top + self.thrust_bottom


def wrap_angle(angle: float) -> float:
    """Wrap an angle difference into [-pi, pi]."""
    return float(np.arctan2(np.sin(angle), np.cos(angle)))


def control(
    state: VehicleState,
    desired: ReferenceState,
    lift: float,
    drag: float,
    moment: float,
    alpha_e: float,
    params: PhysicalParameters,
    gains: ControllerGains = None
) -> ControlOutput:
    """
    Compute rotor thrust commands.

    Thrusts are not clamped; negative commands are returned as computed.

    Args:
        state: Current vehicle state
        desired: Reference state at the same time
        lift: Lift (N)
        drag: Drag (N)
        moment: Aerodynamic pitching moment (N·m)
        alpha_e: Effective angle of attack (rad)
        params: Physical parameters
        gains: Controller gains (defaults if None)

    Returns:
        ControlOutput
    """
    gains = gains or ControllerGains()
    m = params.mass
    theta = state.theta

    kp = np.array([gains.kp_y, gains.kp_z])
    kv = np.array([gains.kv_y, gains.kv_z])

    accel_desired = (desired.acceleration
                     + kv * (desired.velocity - state.velocity)
                     + kp * (desired.position - state.position))
    force_desired = m * accel_desired

    F_aero = aero_force_inertial(lift, drag, theta, alpha_e)
    thrust_vector = force_desired + np.array([0.0, params.weight]) - F_aero

    body_axis = np.array([np.cos(theta), np.sin(theta)])
    total_thrust = float(thrust_vector @ body_axis)

    # Tilt error weighted by demand / max(demand, weight); zero demand
    # gives zero tilt error
    theta_desired = float(np.arctan2(thrust_vector[1], thrust_vector[0]))
    demand = float(np.linalg.norm(thrust_vector))
    authority = demand / max(demand, params.weight)
    tilt_error = wrap_angle(theta_desired - theta) * authority

    theta_ddot_desired = gains.kp_theta * tilt_error - gains.kd_theta * state.theta_dot
    differential = (params.inertia * theta_ddot_desired - moment) / params.arm_length

    return ControlOutput(
        thrust_top=0.5 * (total_thrust - differential),
        thrust_bottom=0.5 * (total_thrust + differential),
        force_desired=force_desired,
        accel_desired=accel_desired,
        thrust_vector=thrust_vector,
        theta_desired=theta_desired
    )
