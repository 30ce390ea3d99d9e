"""
Vehicle Physical Parameters

Defines the physical properties of the tail-sitting biplane:
- Mass and pitch-axis inertia
- Wing reference dimensions
- Propeller geometry and thrust-arm length
- Air density and downwash efficiency

Parameters are immutable for the lifetime of a run.
"""

import numpy as np
import yaml
from dataclasses import dataclass, asdict
from typing import Dict, Any

from .exceptions import ConfigurationError


IN2M = 0.0254


@dataclass(frozen=True)
class PhysicalParameters:
    """
    Physical constants of the vehicle and its environment.

    All values are in SI units (kg, m, kg·m², kg/m³).
    """

    mass: float = 0.8652          # kg
    gravity: float = 9.81         # m/s²
    inertia: float = 0.00978      # Iyy, pitch axis (kg·m²)
    chord: float = 0.087          # m
    span: float = 1.016           # m
    prop_radius: float = 4.5 * IN2M  # m
    arm_length: float = 0.244     # thrust arm about the pitch axis (m)
    air_density: float = 1.2      # kg/m³
    eta: float = 1.0              # downwash efficiency on the wings

    def __post_init__(self):
        positive = ('mass', 'gravity', 'inertia', 'chord', 'span',
                    'prop_radius', 'arm_length', 'air_density')
        for name in positive:
            value = getattr(self, name)
            if not np.isfinite(value) or value <= 0:
                raise ConfigurationError(f"{name} must be positive, got {value}")
        if not np.isfinite(self.eta) or self.eta < 0:
            raise ConfigurationError(f"eta must be non-negative, got {self.eta}")

    @property
    def wing_area(self) -> float:
        """Planform reference area chord*span (m²)."""
        return self.chord * self.span

    @property
    def disk_area(self) -> float:
        """Single propeller disk area (m²)."""
        return np.pi * self.prop_radius**2

    @property
    def weight(self) -> float:
        """Weight m*g (N)."""
        return self.mass * self.gravity

    @classmethod
    def from_yaml(cls, filepath: str) -> 'PhysicalParameters':
        """Load parameters from a YAML file."""
        with open(filepath, 'r') as f:
            data = yaml.safe_load(f) or {}

        return cls._from_dict(data)

    @classmethod
    def _from_dict(cls, data: Dict[str, Any]) -> 'PhysicalParameters':
        """Create parameters from a dictionary, defaults filling the gaps."""
        known = set(cls.__dataclass_fields__)
        unknown = set(data) - known
        if unknown:
            raise ConfigurationError(
                f"Unknown physical parameter(s): {', '.join(sorted(unknown))}"
            )
        return cls(**{k: float(v) for k, v in data.items()})

    def to_dict(self) -> Dict[str, Any]:
        """Convert parameters to a dictionary for serialization."""
        return {k: float(v) for k, v in asdict(self).items()}

    def save_yaml(self, filepath: str):
        """Save parameters to a YAML file."""
        with open(filepath, 'w') as f:
            yaml.dump(self.to_dict(), f, default_flow_style=False)


def reference_parameters() -> PhysicalParameters:
    """Airframe used for the reference 25 m/s cruise scenario."""
    return PhysicalParameters()


def crc3_parameters() -> PhysicalParameters:
    """
    CRC-3 airframe with 9 in propellers.

    Mass and inertia are scaled from a 15 in span reference airframe
    (mass ~ s^3, inertia ~ s^5).
    """
    span = 0.508
    scaling_factor = span / (15 * IN2M)
    return PhysicalParameters(
        mass=0.3650 * scaling_factor**3,
        inertia=2.32e-3 * scaling_factor**5,
        chord=0.087,
        span=span,
        prop_radius=4.5 * IN2M,
        arm_length=0.244,
    )
