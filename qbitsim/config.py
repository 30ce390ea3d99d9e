"""
Run Configuration

Groups everything a run needs before it starts: physical parameters,
simulation settings, maneuver selection and controller gains. Loaded from
and saved to YAML. Selector strings (maneuver, integrator, profile) are
parsed at load time, so an unknown name fails before any simulation work.

Example file:

    name: CRC-3 trim cruise
    parameters:
      preset: crc3
    simulation:
      dt: 0.01
      integrator: rk4
    maneuver:
      maneuver: trim-cruise
      cruise_speed: 20.0
"""

import yaml
import numpy as np
from dataclasses import dataclass, field, fields, replace
from typing import Any, Dict, Optional

from .aircraft import PhysicalParameters, reference_parameters, crc3_parameters
from .controller import ControllerGains
from .exceptions import ConfigurationError
from .simulation import SimulationConfig
from .trajectory import ManeuverConfig


PARAMETER_PRESETS = {
    'reference': reference_parameters,
    'crc3': crc3_parameters,
}


def parameters_from_preset(name: str, **overrides) -> PhysicalParameters:
    """Named parameter set, optionally with individual values replaced."""
    key = str(name).strip().lower().replace('-', '')
    if key not in PARAMETER_PRESETS:
        options = ', '.join(PARAMETER_PRESETS)
        raise ConfigurationError(f"Unknown parameter preset '{name}'. Options: {options}")
    params = PARAMETER_PRESETS[key]()
    if overrides:
        params = PhysicalParameters._from_dict({**params.to_dict(), **overrides})
    return params


def _check_keys(section: str, data: Dict[str, Any], cls) -> None:
    unknown = set(data) - {f.name for f in fields(cls)}
    if unknown:
        raise ConfigurationError(
            f"Unknown key(s) in '{section}': {', '.join(sorted(unknown))}"
        )


@dataclass
class RunConfig:
    """Complete configuration of one simulation run."""

    name: str = "QBiT"
    params: PhysicalParameters = field(default_factory=reference_parameters)
    simulation: SimulationConfig = field(default_factory=SimulationConfig)
    maneuver: ManeuverConfig = field(default_factory=ManeuverConfig)
    gains: ControllerGains = field(default_factory=ControllerGains)

    # Optional polar CSV; the built-in NACA 0015 table if None
    polar_file: Optional[str] = None

    @classmethod
    def from_yaml(cls, filepath: str) -> 'RunConfig':
        """Load run configuration from a YAML file."""
        with open(filepath, 'r') as f:
            data = yaml.safe_load(f) or {}

        return cls._from_dict(data)

    @classmethod
    def _from_dict(cls, data: Dict[str, Any]) -> 'RunConfig':
        """Create config from a dictionary."""
        sections = {'name', 'parameters', 'simulation', 'maneuver', 'controller', 'polar_file'}
        unknown = set(data) - sections
        if unknown:
            raise ConfigurationError(f"Unknown configuration section(s): {', '.join(sorted(unknown))}")

        param_data = dict(data.get('parameters') or {})
        preset = param_data.pop('preset', None)
        if preset is not None:
            params = parameters_from_preset(preset, **param_data)
        else:
            params = PhysicalParameters._from_dict(param_data)

        sim_data = data.get('simulation') or {}
        _check_keys('simulation', sim_data, SimulationConfig)

        maneuver_data = data.get('maneuver') or {}
        _check_keys('maneuver', maneuver_data, ManeuverConfig)

        gain_data = data.get('controller') or {}
        _check_keys('controller', gain_data, ControllerGains)

        return cls(
            name=data.get('name', 'QBiT'),
            params=params,
            simulation=SimulationConfig(**sim_data),
            maneuver=ManeuverConfig(**maneuver_data),
            gains=ControllerGains(**{k: float(v) for k, v in gain_data.items()}),
            polar_file=data.get('polar_file')
        )

    def to_dict(self) -> Dict[str, Any]:
        """Convert configuration to a dictionary for serialization."""
        m = self.maneuver
        maneuver = {
            'maneuver': m.maneuver.value,
            'cruise_speed': float(m.cruise_speed),
            'waypoints': m.waypoints.tolist(),
            'cruise_duration': float(m.cruise_duration),
            'settle_time': float(m.settle_time),
            'hover_duration': float(m.hover_duration),
            'transition_duration': float(m.transition_duration),
            'acceleration': float(m.acceleration),
            'position_step': m.position_step.tolist(),
            'angle_step': float(m.angle_step),
            'airspeed_step': float(m.airspeed_step),
            'aoa_profile': m.aoa_profile.value,
            'kinematics': m.kinematics.value,
            'force_ratio': float(m.force_ratio),
        }
        if m.trim_seed is not None:
            maneuver['trim_seed'] = [float(v) for v in np.asarray(m.trim_seed)]

        s = self.simulation
        simulation = {
            'dt': float(s.dt),
            'integrator': s.integrator.value,
            'aerodynamics_enabled': bool(s.aerodynamics_enabled),
        }
        if s.duration is not None:
            simulation['duration'] = float(s.duration)

        out = {
            'name': self.name,
            'parameters': self.params.to_dict(),
            'simulation': simulation,
            'maneuver': maneuver,
            'controller': {f.name: float(getattr(self.gains, f.name)) for f in fields(self.gains)},
        }
        if self.polar_file is not None:
            out['polar_file'] = self.polar_file
        return out

    def save_yaml(self, filepath: str):
        """Save configuration to a YAML file."""
        with open(filepath, 'w') as f:
            yaml.dump(self.to_dict(), f, default_flow_style=False, sort_keys=False)

    def with_overrides(self, **simulation_or_maneuver) -> 'RunConfig':
        """
        Copy with selected simulation or maneuver fields replaced.

        Used by the command line, where flags override the file values.
        Keys are routed to whichever of the two sections defines them.
        """
        sim_names = {f.name for f in fields(SimulationConfig)}
        man_names = {f.name for f in fields(ManeuverConfig)}
        sim_kw, man_kw = {}, {}
        for key, value in simulation_or_maneuver.items():
            if value is None:
                continue
            if key in sim_names:
                sim_kw[key] = value
            elif key in man_names:
                man_kw[key] = value
            else:
                raise ConfigurationError(f"Unknown override '{key}'")

        return replace(
            self,
            simulation=replace(self.simulation, **sim_kw) if sim_kw else self.simulation,
            maneuver=replace(self.maneuver, **man_kw) if man_kw else self.maneuver
        )
