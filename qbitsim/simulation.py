"""
Closed-Loop Simulation

Drives the fixed-step loop: airflow from the previous state and thrust,
then the controller, then the integrator. Each step is stored as an
immutable StepRecord; the result exposes them as arrays and tables.

Derived quantities at the array ends are not produced by the loop. They
are filled afterwards by pad_boundary_samples, a separate finishing pass.
"""

import warnings
import numpy as np
import pandas as pd
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Tuple

from .aircraft import PhysicalParameters
from .aerodynamics import AeroCoefficientModel, AirflowState, compute_airflow
from .controller import ControllerGains, ControlOutput, control
from .dynamics import IntegrationScheme, advance, state_derivative
from .exceptions import ConfigurationError
from .state import VehicleState, ReferenceState
from .trajectory import ManeuverConfig, ManeuverPlan, build_maneuver
from .trim import RootFinder


@dataclass
class SimulationConfig:
    """Simulation parameters."""

    # Integration timestep (s)
    dt: float = 0.01  # 100 Hz

    # Integration scheme
    integrator: IntegrationScheme = IntegrationScheme.RK4

    # Aerodynamic loads on/off (off = pure-thrust flight)
    aerodynamics_enabled: bool = True

    # Run length override (s); the maneuver decides if None
    duration: Optional[float] = None

    def __post_init__(self):
        self.integrator = IntegrationScheme.parse(self.integrator)
        if not np.isfinite(self.dt) or self.dt <= 0:
            raise ConfigurationError(f"dt must be positive, got {self.dt}")
        if self.duration is not None and (not np.isfinite(self.duration) or self.duration <= 0):
            raise ConfigurationError(f"duration must be positive, got {self.duration}")


@dataclass(frozen=True)
class StepRecord:
    """Everything known about one time sample."""

    time: float
    state: VehicleState
    reference: ReferenceState
    control: ControlOutput
    airflow: AirflowState


def pad_boundary_samples(
    controls: List[Optional[ControlOutput]],
    airflows: List[Optional[AirflowState]],
    initial_thrust: Tuple[float, float]
) -> Tuple[List[ControlOutput], List[AirflowState]]:
    """
    Fill the derived samples the loop does not compute.

    The first control sample keeps the initial thrust and copies its force,
    acceleration and thrust-vector fields from the second sample. The last
    airflow sample copies the one before it. Neighbour copies, not results.
    """
    controls = list(controls)
    airflows = list(airflows)

    if len(controls) > 1 and controls[0] is None:
        nxt = controls[1]
        controls[0] = ControlOutput(
            thrust_top=float(initial_thrust[0]),
            thrust_bottom=float(initial_thrust[1]),
            force_desired=nxt.force_desired.copy(),
            accel_desired=nxt.accel_desired.copy(),
            thrust_vector=nxt.thrust_vector.copy(),
            theta_desired=nxt.theta_desired
        )

    if len(airflows) > 1 and airflows[-1] is None:
        airflows[-1] = airflows[-2]

    return controls, airflows


@dataclass
class SimulationResult:
    """Time history of a completed run."""

    records: Tuple[StepRecord, ...]
    plan: ManeuverPlan
    config: SimulationConfig
    params: PhysicalParameters
    negative_thrust_steps: int = 0

    # Lazily built arrays
    _cache: Dict[str, np.ndarray] = field(default_factory=dict, repr=False)

    def __len__(self) -> int:
        return len(self.records)

    def _column(self, key: str, getter) -> np.ndarray:
        if key not in self._cache:
            arr = np.array([getter(r) for r in self.records], dtype=np.float64)
            arr.setflags(write=False)
            self._cache[key] = arr
        return self._cache[key]

    @property
    def time(self) -> np.ndarray:
        return self._column('time', lambda r: r.time)

    @property
    def states(self) -> np.ndarray:
        """N x 6 [y, z, theta, y_dot, z_dot, theta_dot]."""
        return self._column('states', lambda r: r.state.to_array())

    @property
    def references(self) -> np.ndarray:
        """N x 6 [y, z, y_dot, z_dot, y_ddot, z_ddot]."""
        return self._column('references', lambda r: r.reference.to_array())

    @property
    def thrust(self) -> np.ndarray:
        """N x 2 [T_top, T_bot]."""
        return self._column('thrust', lambda r: (r.control.thrust_top, r.control.thrust_bottom))

    @property
    def force_desired(self) -> np.ndarray:
        return self._column('force_desired', lambda r: r.control.force_desired)

    @property
    def thrust_vector(self) -> np.ndarray:
        return self._column('thrust_vector', lambda r: r.control.thrust_vector)

    def airflow(self, name: str) -> np.ndarray:
        """One AirflowState field over time, e.g. airflow('lift')."""
        return self._column(f'airflow.{name}', lambda r: getattr(r.airflow, name))

    @property
    def accelerations(self) -> np.ndarray:
        """
        N x 3 [y_ddot, z_ddot, theta_ddot] from the rigid-body equations,
        with each sample's thrust and aerodynamic loads.
        """
        def rates(r: StepRecord):
            a = r.airflow
            d = state_derivative(
                r.state.to_array(), r.control.thrust_top, r.control.thrust_bottom,
                a.lift, a.drag, a.moment, a.alpha_effective, self.params
            )
            return d[3:]
        return self._column('accelerations', rates)

    @property
    def final_state(self) -> VehicleState:
        return self.records[-1].state

    def to_dataframe(self) -> pd.DataFrame:
        """Tabulate the run, one row per time sample."""
        states = self.states
        refs = self.references
        thrust = self.thrust
        f_des = self.force_desired
        t_vec = self.thrust_vector

        data = {
            'time_s': self.time,
            'y_m': states[:, 0],
            'z_m': states[:, 1],
            'theta_rad': states[:, 2],
            'y_dot_m_s': states[:, 3],
            'z_dot_m_s': states[:, 4],
            'theta_dot_rad_s': states[:, 5],
            'y_des_m': refs[:, 0],
            'z_des_m': refs[:, 1],
            'y_dot_des_m_s': refs[:, 2],
            'z_dot_des_m_s': refs[:, 3],
            'y_ddot_des_m_s2': refs[:, 4],
            'z_ddot_des_m_s2': refs[:, 5],
            'T_top_N': thrust[:, 0],
            'T_bot_N': thrust[:, 1],
            'T_avg_N': thrust.mean(axis=1),
            'F_des_y_N': f_des[:, 0],
            'F_des_z_N': f_des[:, 1],
            'thrust_vec_y_N': t_vec[:, 0],
            'thrust_vec_z_N': t_vec[:, 1],
            'theta_des_rad': self._column('theta_desired', lambda r: r.control.theta_desired),
        }

        airflow_columns = {
            'V_i_m_s': 'airspeed_inertial',
            'V_w_m_s': 'wash_speed',
            'V_w_top_m_s': 'wash_speed_top',
            'V_w_bot_m_s': 'wash_speed_bottom',
            'V_a_m_s': 'airspeed_effective',
            'gamma_rad': 'flight_path_angle',
            'alpha_rad': 'alpha',
            'alpha_e_rad': 'alpha_effective',
            'Cl': 'cl',
            'Cd': 'cd',
            'Cm': 'cm',
            'L_N': 'lift',
            'D_N': 'drag',
            'M_air_Nm': 'moment',
        }
        for column, name in airflow_columns.items():
            data[column] = self.airflow(name)

        return pd.DataFrame(data)

    def summary(self) -> Dict[str, float]:
        """Final command and attitude plus run means of the airflow quantities."""
        final = self.records[-1]
        tracking = np.linalg.norm(self.states[:, :2] - self.references[:, :2], axis=1)

        out = {
            'maneuver': self.plan.maneuver.value,
            'duration_s': float(self.time[-1]),
            'T_top_final_N': final.control.thrust_top,
            'T_bot_final_N': final.control.thrust_bottom,
            'theta_final_rad': final.state.theta,
            'max_position_error_m': float(np.max(tracking)),
            'negative_thrust_steps': self.negative_thrust_steps,
        }
        for label, name in (('alpha_mean_rad', 'alpha'),
                            ('alpha_e_mean_rad', 'alpha_effective'),
                            ('V_w_mean_m_s', 'wash_speed'),
                            ('V_a_mean_m_s', 'airspeed_effective'),
                            ('L_mean_N', 'lift'),
                            ('D_mean_N', 'drag'),
                            ('M_air_mean_Nm', 'moment')):
            out[label] = float(np.mean(self.airflow(name)))
        return out


class Simulation:
    """
    Closed-loop simulation engine.

    Holds the run-invariant collaborators; each run() is independent and
    leaves the engine unchanged.
    """

    def __init__(
        self,
        params: PhysicalParameters,
        aero_model: AeroCoefficientModel,
        sim_config: Optional[SimulationConfig] = None,
        gains: Optional[ControllerGains] = None
    ):
        self.params = params
        self.aero_model = aero_model
        self.sim_config = sim_config or SimulationConfig()
        self.gains = gains or ControllerGains()

    def plan(
        self,
        maneuver: ManeuverConfig,
        root_finder: Optional[RootFinder] = None
    ) -> ManeuverPlan:
        """Reference and initial condition for a maneuver on this run's grid."""
        return build_maneuver(
            maneuver, self.params, self.aero_model, self.sim_config.dt,
            aerodynamics_enabled=self.sim_config.aerodynamics_enabled,
            duration=self.sim_config.duration,
            root_finder=root_finder
        )

    def fly(
        self,
        maneuver: ManeuverConfig,
        root_finder: Optional[RootFinder] = None
    ) -> SimulationResult:
        """Build a maneuver and run it."""
        return self.run(self.plan(maneuver, root_finder))

    def run(self, plan: ManeuverPlan) -> SimulationResult:
        """
        Run the closed loop over the plan's time grid.

        Args:
            plan: Reference trajectory and initial condition

        Returns:
            SimulationResult covering the full grid

        Raises:
            FloatingPointError: the state became non-finite; nothing is returned
        """
        params = self.params
        cfg = self.sim_config
        reference = plan.reference
        n = len(reference)
        dt = reference.dt

        states: List[np.ndarray] = [None] * n
        controls: List[Optional[ControlOutput]] = [None] * n
        airflows: List[Optional[AirflowState]] = [None] * n

        states[0] = plan.initial_state.to_array()
        thrust = (float(plan.initial_thrust[0]), float(plan.initial_thrust[1]))
        negative_steps = 0

        for i in range(1, n):
            prev = VehicleState.from_array(states[i - 1])

            # Loads from the previous state and previous thrust
            air = compute_airflow(prev, thrust[0], thrust[1], params,
                                  self.aero_model, cfg.aerodynamics_enabled)
            airflows[i - 1] = air

            cmd = control(prev, reference[i - 1], air.lift, air.drag, air.moment,
                          air.alpha_effective, params, self.gains)
            controls[i] = cmd
            thrust = (cmd.thrust_top, cmd.thrust_bottom)
            if min(thrust) < 0:
                negative_steps += 1

            x = advance(states[i - 1], cmd.thrust_top, cmd.thrust_bottom,
                        air.lift, air.drag, air.moment, air.alpha_effective,
                        params, dt, cfg.integrator)
            if not np.all(np.isfinite(x)):
                raise FloatingPointError(
                    f"Non-finite state at t={reference.time[i]:.3f}s "
                    f"({plan.maneuver.value}, {cfg.integrator.value}, dt={dt})"
                )
            states[i] = x

        controls, airflows = pad_boundary_samples(controls, airflows, plan.initial_thrust)

        if negative_steps:
            warnings.warn(
                f"Negative thrust commanded on {negative_steps} of {n - 1} steps "
                f"({plan.maneuver.value}); commands were not clamped"
            )

        records = tuple(
            StepRecord(
                time=float(reference.time[i]),
                state=VehicleState.from_array(states[i]),
                reference=reference[i],
                control=controls[i],
                airflow=airflows[i]
            )
            for i in range(n)
        )

        return SimulationResult(
            records=records,
            plan=plan,
            config=cfg,
            params=params,
            negative_thrust_steps=negative_steps
        )


def run_simulation(
    maneuver: ManeuverConfig,
    params: PhysicalParameters,
    aero_model: AeroCoefficientModel,
    sim_config: Optional[SimulationConfig] = None,
    gains: Optional[ControllerGains] = None,
    root_finder: Optional[RootFinder] = None
) -> SimulationResult:
    """One-shot convenience: build the maneuver and fly it."""
    return Simulation(params, aero_model, sim_config, gains).fly(maneuver, root_finder)
