"""
Vehicle State Representation

The planar state vector contains 6 states:
- Position (2): y horizontal, z vertical (up positive)
- Pitch (1): theta, measured from the horizontal; hover is theta = pi/2
- Rates (3): y_dot, z_dot, theta_dot

The reference (desired) state produced by the trajectory generator is
position, velocity and acceleration in the vertical plane.
"""

import numpy as np
from dataclasses import dataclass


@dataclass(frozen=True)
class VehicleState:
    """
    Longitudinal state of the vehicle at one time sample.

    All values are in SI units (m, m/s, rad, rad/s).
    """

    y: float = 0.0
    z: float = 0.0
    theta: float = np.pi / 2
    y_dot: float = 0.0
    z_dot: float = 0.0
    theta_dot: float = 0.0

    @property
    def position(self) -> np.ndarray:
        return np.array([self.y, self.z])

    @property
    def velocity(self) -> np.ndarray:
        return np.array([self.y_dot, self.z_dot])

    @property
    def speed(self) -> float:
        """Inertial speed (m/s)."""
        return float(np.hypot(self.y_dot, self.z_dot))

    def to_array(self) -> np.ndarray:
        """Convert to a 6-element array [y, z, theta, y_dot, z_dot, theta_dot]."""
        return np.array([
            self.y, self.z, self.theta,
            self.y_dot, self.z_dot, self.theta_dot
        ], dtype=np.float64)

    @classmethod
    def from_array(cls, arr: np.ndarray) -> 'VehicleState':
        """Create state from a 6-element array."""
        arr = np.asarray(arr, dtype=np.float64)
        return cls(*(float(v) for v in arr[:6]))


@dataclass(frozen=True)
class ReferenceState:
    """Desired position, velocity and acceleration at one time sample."""

    y: float = 0.0
    z: float = 0.0
    y_dot: float = 0.0
    z_dot: float = 0.0
    y_ddot: float = 0.0
    z_ddot: float = 0.0

    @property
    def position(self) -> np.ndarray:
        return np.array([self.y, self.z])

    @property
    def velocity(self) -> np.ndarray:
        return np.array([self.y_dot, self.z_dot])

    @property
    def acceleration(self) -> np.ndarray:
        return np.array([self.y_ddot, self.z_ddot])

    def to_array(self) -> np.ndarray:
        """Convert to a 6-element array [y, z, y_dot, z_dot, y_ddot, z_ddot]."""
        return np.array([
            self.y, self.z, self.y_dot,
            self.z_dot, self.y_ddot, self.z_ddot
        ], dtype=np.float64)

    @classmethod
    def from_array(cls, arr: np.ndarray) -> 'ReferenceState':
        """Create reference from a 6-element array."""
        arr = np.asarray(arr, dtype=np.float64)
        return cls(*(float(v) for v in arr[:6]))
