"""
Reference Trajectory Generation

Produces the time-indexed reference (position, velocity, acceleration) and
the initial condition for each supported maneuver:
- Waypoint spline through 2-D waypoints at a cruise speed
- Trim cruise: straight and level at the trim speed
- Constant acceleration / deceleration ramps
- Prescribed angle-of-attack transition out of hover
- Step-response probes in position, pitch and airspeed

Maneuvers form a closed set; every member of ManeuverType maps to exactly
one generator in MANEUVER_GENERATORS.
"""

import numpy as np
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, Dict, Optional, Sequence, Tuple
from scipy.interpolate import CubicSpline
from scipy.integrate import cumulative_trapezoid

from .aircraft import PhysicalParameters
from .aerodynamics import AeroCoefficientModel
from .exceptions import ConfigurationError
from .state import VehicleState, ReferenceState
from .trim import TrimSolution, RootFinder, compute_trim, solve_terminal_alpha


HOVER_PITCH = np.pi / 2


class ManeuverType(Enum):
    """Supported maneuvers."""
    WAYPOINT_SPLINE = 'waypoint-spline'
    TRIM_CRUISE = 'trim-cruise'
    ACCEL_RAMP = 'accel-ramp'
    DECEL_RAMP = 'decel-ramp'
    PRESCRIBED_AOA = 'prescribed-aoa'
    STEP_POSITION = 'step-position'
    STEP_ANGLE = 'step-angle'
    STEP_AIRSPEED = 'step-airspeed'
    STEP_ANGLE_FORWARD = 'step-angle-forward'

    @classmethod
    def parse(cls, name) -> 'ManeuverType':
        """Resolve a maneuver from its name or a recognised alias."""
        if isinstance(name, cls):
            return name
        key = str(name).strip().lower().replace('_', '-').replace(' ', '-')
        key = MANEUVER_ALIASES.get(key, key)
        try:
            return cls(key)
        except ValueError:
            options = ', '.join(m.value for m in cls)
            raise ConfigurationError(
                f"Unknown maneuver '{name}'. Options: {options}"
            ) from None


MANEUVER_ALIASES = {
    'cubic': 'waypoint-spline',
    'spline': 'waypoint-spline',
    'trim': 'trim-cruise',
    'accel': 'accel-ramp',
    'decel': 'decel-ramp',
    'prescribed-angle-of-attack': 'prescribed-aoa',
    'step-in-position': 'step-position',
    'step-in-angle': 'step-angle',
    'step-in-airspeed': 'step-airspeed',
    'step-in-angle-forward-flight': 'step-angle-forward',
}


class AoAProfile(Enum):
    """Angle-of-attack schedule shapes for the transition maneuver."""
    PARABOLIC = 'parabolic'
    EXPONENTIAL = 'exponential'


class TransitionKinematics(Enum):
    """How the transition's translational reference is integrated."""
    QUASI_STEADY = 'quasi-steady'   # acceleration-free equilibrium speed
    DYNAMIC = 'dynamic'             # forward-integrated Newton's law


def _parse_enum(enum_cls, value, label):
    if isinstance(value, enum_cls):
        return value
    try:
        return enum_cls(str(value).strip().lower().replace('_', '-'))
    except ValueError:
        options = ', '.join(e.value for e in enum_cls)
        raise ConfigurationError(f"Unknown {label} '{value}'. Options: {options}") from None


@dataclass
class ManeuverConfig:
    """Maneuver selection and maneuver-specific scalars."""

    maneuver: ManeuverType = ManeuverType.TRIM_CRUISE

    # Cruise / target speed (m/s)
    cruise_speed: float = 25.0

    # Waypoints for the spline maneuver, 2xK [y; z] (m)
    waypoints: np.ndarray = field(default_factory=lambda: np.array([[0.0, 40.0], [0.0, 0.0]]))

    # Durations (s)
    cruise_duration: float = 10.0
    settle_time: float = 3.0
    hover_duration: float = 8.0
    transition_duration: float = 6.0

    # Ramp acceleration magnitude (m/s²)
    acceleration: float = 2.5

    # Step magnitudes
    position_step: np.ndarray = field(default_factory=lambda: np.array([1.0, 0.0]))  # m
    angle_step: float = 0.1       # rad
    airspeed_step: float = 2.0    # m/s

    # Prescribed angle-of-attack transition
    aoa_profile: AoAProfile = AoAProfile.PARABOLIC
    kinematics: TransitionKinematics = TransitionKinematics.QUASI_STEADY
    force_ratio: float = 1.0

    # Trim seed [T_top, T_bot, theta]; half-weight split at 45 deg if None
    trim_seed: Optional[Sequence[float]] = None

    def __post_init__(self):
        self.maneuver = ManeuverType.parse(self.maneuver)
        self.aoa_profile = _parse_enum(AoAProfile, self.aoa_profile, 'angle-of-attack profile')
        self.kinematics = _parse_enum(TransitionKinematics, self.kinematics, 'transition kinematics')
        self.waypoints = np.asarray(self.waypoints, dtype=np.float64)
        self.position_step = np.asarray(self.position_step, dtype=np.float64).reshape(2)

        for name in ('cruise_speed', 'cruise_duration', 'hover_duration',
                     'transition_duration', 'acceleration', 'force_ratio'):
            value = getattr(self, name)
            if not np.isfinite(value) or value <= 0:
                raise ConfigurationError(f"{name} must be positive, got {value}")
        if not np.isfinite(self.settle_time) or self.settle_time < 0:
            raise ConfigurationError(f"settle_time must be non-negative, got {self.settle_time}")


@dataclass(frozen=True)
class ReferenceTrajectory:
    """
    Reference on the simulation time grid.

    states rows are [y, z, y_dot, z_dot, y_ddot, z_ddot], one per sample.
    """

    time: np.ndarray
    states: np.ndarray
    duration: float  # natural end of the maneuver (s)

    def __post_init__(self):
        time = np.array(self.time, dtype=np.float64)
        states = np.array(self.states, dtype=np.float64)
        if states.shape != (len(time), 6):
            raise ValueError(f"Reference must be Nx6 on the time grid, got {states.shape}")
        time.setflags(write=False)
        states.setflags(write=False)
        object.__setattr__(self, 'time', time)
        object.__setattr__(self, 'states', states)

    def __len__(self) -> int:
        return len(self.time)

    def __getitem__(self, index: int) -> ReferenceState:
        return ReferenceState.from_array(self.states[index])

    @property
    def dt(self) -> float:
        return float(self.time[1] - self.time[0]) if len(self.time) > 1 else 0.0


@dataclass(frozen=True)
class ManeuverPlan:
    """Everything a run needs from the maneuver: reference and initial condition."""

    maneuver: ManeuverType
    reference: ReferenceTrajectory
    initial_state: VehicleState
    initial_thrust: Tuple[float, float]
    trim: Optional[TrimSolution] = None
    terminal_alpha: Optional[float] = None
    waypoints: Optional[np.ndarray] = None


@dataclass
class ManeuverContext:
    """Run-level inputs shared by all generators."""

    params: PhysicalParameters
    aero_model: AeroCoefficientModel
    dt: float
    aerodynamics_enabled: bool = True
    duration: Optional[float] = None
    root_finder: Optional[RootFinder] = None

    def grid(self, natural_duration: float) -> np.ndarray:
        """Uniform time grid covering the run."""
        total = self.duration if self.duration is not None else natural_duration
        n = int(round(total / self.dt)) + 1
        return np.arange(max(n, 2)) * self.dt

    def hover_thrust(self) -> Tuple[float, float]:
        half = self.params.weight / 2
        return half, half

    def trim(self, config: ManeuverConfig) -> TrimSolution:
        return compute_trim(
            config.cruise_speed, self.params, self.aero_model,
            seed=config.trim_seed,
            root_finder=self.root_finder,
            aerodynamics_enabled=self.aerodynamics_enabled
        )


def _stack(t, y, z, y_dot, z_dot, y_ddot, z_ddot) -> np.ndarray:
    cols = [np.broadcast_to(np.asarray(c, dtype=np.float64), t.shape)
            for c in (y, z, y_dot, z_dot, y_ddot, z_ddot)]
    return np.column_stack(cols)


def _cruise_reference(t: np.ndarray, speed: float, duration: float) -> ReferenceTrajectory:
    return ReferenceTrajectory(t, _stack(t, speed * t, 0.0, speed, 0.0, 0.0, 0.0), duration)


def _hover_reference(t: np.ndarray, duration: float) -> ReferenceTrajectory:
    return ReferenceTrajectory(t, _stack(t, 0.0, 0.0, 0.0, 0.0, 0.0, 0.0), duration)


# === WAYPOINT SPLINE ===

def fit_waypoint_spline(waypoints: np.ndarray, speed: float) -> Tuple[CubicSpline, float]:
    """
    Fit a clamped cubic spline through 2-D waypoints.

    Knot times are cumulative chord length divided by speed, so the path
    is flown at roughly the cruise speed and starts and ends at rest.

    Args:
        waypoints: 2xK array [y; z] (m), K >= 2
        speed: Cruise speed (m/s)

    Returns:
        (spline of [y, z] vs time, duration in s)
    """
    wp = np.asarray(waypoints, dtype=np.float64)
    if wp.ndim != 2 or wp.shape[0] != 2 or wp.shape[1] < 2:
        raise ConfigurationError(f"Waypoints must be a 2xK array with K >= 2, got shape {wp.shape}")
    if not np.all(np.isfinite(wp)):
        raise ConfigurationError("Waypoints must be finite")

    segments = np.linalg.norm(np.diff(wp, axis=1), axis=0)
    if np.any(segments <= 0):
        raise ConfigurationError("Consecutive waypoints must not coincide")

    knots = np.concatenate([[0.0], np.cumsum(segments)]) / speed
    spline = CubicSpline(knots, wp, axis=1, bc_type='clamped')
    return spline, float(knots[-1])


def _waypoint_spline(config: ManeuverConfig, ctx: ManeuverContext) -> ManeuverPlan:
    spline, end_time = fit_waypoint_spline(config.waypoints, config.cruise_speed)
    t = ctx.grid(end_time + config.settle_time)

    # Past the final knot the reference holds the last waypoint at rest
    tc = np.minimum(t, end_time)
    pos = spline(tc)
    vel = spline(tc, 1)
    acc = spline(tc, 2)
    done = t >= end_time
    pos[:, done] = config.waypoints[:, -1:]
    vel[:, done] = 0.0
    acc[:, done] = 0.0

    reference = ReferenceTrajectory(
        t, np.column_stack([pos[0], pos[1], vel[0], vel[1], acc[0], acc[1]]), end_time
    )
    start = config.waypoints[:, 0]

    return ManeuverPlan(
        maneuver=config.maneuver,
        reference=reference,
        initial_state=VehicleState(y=float(start[0]), z=float(start[1]), theta=HOVER_PITCH),
        initial_thrust=ctx.hover_thrust(),
        waypoints=config.waypoints.copy()
    )


# === TRIM CRUISE ===

def _trim_cruise(config: ManeuverConfig, ctx: ManeuverContext) -> ManeuverPlan:
    trim = ctx.trim(config)
    t = ctx.grid(config.cruise_duration + config.settle_time)

    return ManeuverPlan(
        maneuver=config.maneuver,
        reference=_cruise_reference(t, config.cruise_speed, config.cruise_duration),
        initial_state=trim.initial_state(),
        initial_thrust=(trim.thrust_top, trim.thrust_bottom),
        trim=trim
    )


# === RAMPS ===

def _accel_ramp(config: ManeuverConfig, ctx: ManeuverContext) -> ManeuverPlan:
    V = config.cruise_speed
    a = config.acceleration
    t_ramp = V / a
    t = ctx.grid(t_ramp + config.settle_time)

    ramping = t < t_ramp
    y = np.where(ramping, 0.5 * a * t**2, 0.5 * a * t_ramp**2 + V * (t - t_ramp))
    y_dot = np.where(ramping, a * t, V)
    y_ddot = np.where(ramping, a, 0.0)

    return ManeuverPlan(
        maneuver=config.maneuver,
        reference=ReferenceTrajectory(t, _stack(t, y, 0.0, y_dot, 0.0, y_ddot, 0.0), t_ramp),
        initial_state=VehicleState(theta=HOVER_PITCH),
        initial_thrust=ctx.hover_thrust()
    )


def _decel_ramp(config: ManeuverConfig, ctx: ManeuverContext) -> ManeuverPlan:
    V = config.cruise_speed
    a = config.acceleration
    t_ramp = V / a
    trim = ctx.trim(config)
    t = ctx.grid(t_ramp + config.settle_time)

    ramping = t < t_ramp
    y = np.where(ramping, V * t - 0.5 * a * t**2, 0.5 * V**2 / a)
    y_dot = np.where(ramping, V - a * t, 0.0)
    y_ddot = np.where(ramping, -a, 0.0)

    return ManeuverPlan(
        maneuver=config.maneuver,
        reference=ReferenceTrajectory(t, _stack(t, y, 0.0, y_dot, 0.0, y_ddot, 0.0), t_ramp),
        initial_state=trim.initial_state(),
        initial_thrust=(trim.thrust_top, trim.thrust_bottom),
        trim=trim
    )


# === PRESCRIBED ANGLE OF ATTACK ===

def aoa_schedule(
    t: np.ndarray,
    alpha_start: float,
    alpha_end: float,
    duration: float,
    profile: AoAProfile = AoAProfile.PARABOLIC
) -> np.ndarray:
    """
    Angle of attack vs time for the transition.

    Parabolic: leaves alpha_start with zero slope and reaches alpha_end at
    the end of the transition. Exponential: first-order decay with time
    constant duration/5. Both hold alpha_end afterwards.
    """
    t = np.asarray(t, dtype=np.float64)
    delta = alpha_start - alpha_end
    if profile is AoAProfile.PARABOLIC:
        s = np.clip(t / duration, 0.0, 1.0)
        return alpha_start - delta * s**2
    tc = np.minimum(t, duration)
    return alpha_end + delta * np.exp(-5.0 * tc / duration)


def quasi_steady_speed(
    alpha: np.ndarray,
    params: PhysicalParameters,
    aero_model: AeroCoefficientModel,
    force_ratio: float = 1.0
) -> np.ndarray:
    """
    Level-flight equilibrium speed at each angle of attack.

    From T cos a = D and T sin a + L = m g, with force_ratio scaling the
    weight share: V^2 = 2 k m g cos a / (rho S (Cl cos a + Cd sin a)).
    """
    alpha = np.asarray(alpha, dtype=np.float64)
    cl, cd, _ = aero_model.evaluate(np.degrees(alpha))
    denom = params.air_density * params.wing_area * (cl * np.cos(alpha) + cd * np.sin(alpha))
    numer = 2.0 * force_ratio * params.weight * np.cos(alpha)
    with np.errstate(divide='ignore', invalid='ignore'):
        v_sq = np.where(denom > 0, numer / denom, 0.0)
    return np.sqrt(np.maximum(v_sq, 0.0))


def _dynamic_speed(
    t: np.ndarray,
    alpha: np.ndarray,
    params: PhysicalParameters,
    aero_model: AeroCoefficientModel
) -> np.ndarray:
    """Forward-integrate m dV/dt = T cos a - D with T from vertical balance."""
    speed = np.zeros_like(t)
    q_S_coeff = 0.5 * params.air_density * params.wing_area
    for k in range(len(t) - 1):
        cl, cd, _ = aero_model.evaluate(np.degrees(alpha[k]))
        q_S = q_S_coeff * speed[k]**2
        thrust = (params.weight - q_S * cl) / np.sin(alpha[k])
        accel = (thrust * np.cos(alpha[k]) - q_S * cd) / params.mass
        speed[k + 1] = max(speed[k] + accel * (t[k + 1] - t[k]), 0.0)
    return speed


def _prescribed_aoa(config: ManeuverConfig, ctx: ManeuverContext) -> ManeuverPlan:
    alpha_end = solve_terminal_alpha(
        config.cruise_speed, ctx.params, ctx.aero_model,
        force_ratio=config.force_ratio, root_finder=ctx.root_finder
    )
    T_tr = config.transition_duration
    t = ctx.grid(T_tr + config.settle_time)
    alpha = aoa_schedule(t, HOVER_PITCH, alpha_end, T_tr, config.aoa_profile)

    if config.kinematics is TransitionKinematics.QUASI_STEADY:
        speed = quasi_steady_speed(alpha, ctx.params, ctx.aero_model, config.force_ratio)
    else:
        speed = _dynamic_speed(t, alpha, ctx.params, ctx.aero_model)

    # Velocity frozen once the transition is over
    done = t >= T_tr
    if np.any(done):
        speed[done] = speed[np.argmax(done)]

    y = cumulative_trapezoid(speed, t, initial=0.0)
    y_ddot = np.gradient(speed, t)
    y_ddot[done] = 0.0

    return ManeuverPlan(
        maneuver=config.maneuver,
        reference=ReferenceTrajectory(t, _stack(t, y, 0.0, speed, 0.0, y_ddot, 0.0), T_tr),
        initial_state=VehicleState(theta=HOVER_PITCH),
        initial_thrust=ctx.hover_thrust(),
        terminal_alpha=alpha_end
    )


# === STEP PROBES ===

def _step_position(config: ManeuverConfig, ctx: ManeuverContext) -> ManeuverPlan:
    t = ctx.grid(config.hover_duration)
    dy, dz = (float(v) for v in config.position_step)
    return ManeuverPlan(
        maneuver=config.maneuver,
        reference=_hover_reference(t, config.hover_duration),
        initial_state=VehicleState(y=dy, z=dz, theta=HOVER_PITCH),
        initial_thrust=ctx.hover_thrust()
    )


def _step_angle(config: ManeuverConfig, ctx: ManeuverContext) -> ManeuverPlan:
    t = ctx.grid(config.hover_duration)
    return ManeuverPlan(
        maneuver=config.maneuver,
        reference=_hover_reference(t, config.hover_duration),
        initial_state=VehicleState(theta=HOVER_PITCH + config.angle_step),
        initial_thrust=ctx.hover_thrust()
    )


def _step_airspeed(config: ManeuverConfig, ctx: ManeuverContext) -> ManeuverPlan:
    trim = ctx.trim(config)
    t = ctx.grid(config.cruise_duration)
    start = trim.initial_state()
    return ManeuverPlan(
        maneuver=config.maneuver,
        reference=_cruise_reference(t, config.cruise_speed, config.cruise_duration),
        initial_state=VehicleState(theta=start.theta,
                                   y_dot=start.y_dot + config.airspeed_step),
        initial_thrust=(trim.thrust_top, trim.thrust_bottom),
        trim=trim
    )


def _step_angle_forward(config: ManeuverConfig, ctx: ManeuverContext) -> ManeuverPlan:
    trim = ctx.trim(config)
    t = ctx.grid(config.cruise_duration)
    start = trim.initial_state()
    return ManeuverPlan(
        maneuver=config.maneuver,
        reference=_cruise_reference(t, config.cruise_speed, config.cruise_duration),
        initial_state=VehicleState(theta=start.theta + config.angle_step,
                                   y_dot=start.y_dot),
        initial_thrust=(trim.thrust_top, trim.thrust_bottom),
        trim=trim
    )


ManeuverGenerator = Callable[[ManeuverConfig, ManeuverContext], ManeuverPlan]

MANEUVER_GENERATORS: Dict[ManeuverType, ManeuverGenerator] = {
    ManeuverType.WAYPOINT_SPLINE: _waypoint_spline,
    ManeuverType.TRIM_CRUISE: _trim_cruise,
    ManeuverType.ACCEL_RAMP: _accel_ramp,
    ManeuverType.DECEL_RAMP: _decel_ramp,
    ManeuverType.PRESCRIBED_AOA: _prescribed_aoa,
    ManeuverType.STEP_POSITION: _step_position,
    ManeuverType.STEP_ANGLE: _step_angle,
    ManeuverType.STEP_AIRSPEED: _step_airspeed,
    ManeuverType.STEP_ANGLE_FORWARD: _step_angle_forward,
}

_unmapped = set(ManeuverType) - set(MANEUVER_GENERATORS)
if _unmapped:
    raise RuntimeError(f"Maneuvers without a generator: {sorted(m.value for m in _unmapped)}")


def build_maneuver(
    config: ManeuverConfig,
    params: PhysicalParameters,
    aero_model: AeroCoefficientModel,
    dt: float,
    aerodynamics_enabled: bool = True,
    duration: Optional[float] = None,
    root_finder: Optional[RootFinder] = None
) -> ManeuverPlan:
    """
    Generate the reference and initial condition for a maneuver.

    Args:
        config: Maneuver selection and scalars
        params: Physical parameters
        aero_model: Coefficient lookup
        dt: Time step (s)
        aerodynamics_enabled: Aerodynamic loads on/off (affects trim)
        duration: Run length override (s); maneuver default if None
        root_finder: Root-finding strategy for trim solves

    Returns:
        ManeuverPlan

    Raises:
        ConfigurationError: invalid dt/duration or maneuver inputs
        TrimNotFound: a required trim solve failed
    """
    if not np.isfinite(dt) or dt <= 0:
        raise ConfigurationError(f"dt must be positive, got {dt}")
    if duration is not None and (not np.isfinite(duration) or duration <= 0):
        raise ConfigurationError(f"duration must be positive, got {duration}")

    ctx = ManeuverContext(
        params=params,
        aero_model=aero_model,
        dt=dt,
        aerodynamics_enabled=aerodynamics_enabled,
        duration=duration,
        root_finder=root_finder
    )
    return MANEUVER_GENERATORS[config.maneuver](config, ctx)
