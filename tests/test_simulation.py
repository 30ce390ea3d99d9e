"""
Closed-loop simulation tests.

End-to-end scenario plus the orchestration conventions: index alignment,
boundary padding, divergence and negative-thrust reporting.
"""

import json
import warnings
import numpy as np
import pandas as pd
import pytest
from dataclasses import replace
from numpy.testing import assert_allclose

from qbitsim.aircraft import reference_parameters
from qbitsim.aerodynamics import AeroCoefficientModel
from qbitsim.data_export import export_csv, export_json
from qbitsim.data_import import create_naca0015_polar
from qbitsim.dynamics import IntegrationScheme
from qbitsim.exceptions import ConfigurationError
from qbitsim.simulation import Simulation, SimulationConfig, run_simulation
from qbitsim.state import VehicleState
from qbitsim.trajectory import ManeuverConfig


@pytest.fixture(scope="module")
def params():
    return reference_parameters()


@pytest.fixture(scope="module")
def aero_model():
    return AeroCoefficientModel(create_naca0015_polar())


@pytest.fixture(scope="module")
def cruise_result(params, aero_model):
    """25 m/s trim cruise, RK4, dt = 0.01 s, aerodynamics on, 5 s."""
    sim_config = SimulationConfig(dt=0.01, integrator='rk4', duration=5.0)
    maneuver = ManeuverConfig(maneuver='trim-cruise', cruise_speed=25.0)
    return run_simulation(maneuver, params, aero_model, sim_config)


class TestEndToEnd:

    def test_grid(self, cruise_result):
        assert len(cruise_result) == 501
        assert cruise_result.time[-1] == pytest.approx(5.0)
        assert np.all(np.isfinite(cruise_result.states))

    def test_trim_carries_weight(self, cruise_result, params):
        """Thrust and aerodynamic force from the trim pair balance mg within 5%."""
        trim = cruise_result.plan.trim
        air = trim.airflow
        w = trim.theta - air.alpha_effective
        vertical = (trim.total_thrust * np.sin(trim.theta)
                    + air.lift * np.cos(w) - air.drag * np.sin(w))
        assert abs(vertical - params.weight) <= 0.05 * params.weight

    def test_final_pitch_between_level_and_vertical(self, cruise_result):
        theta = cruise_result.final_state.theta
        assert 0 < theta < np.pi / 2, f"Final pitch {np.degrees(theta):.2f} deg"

    def test_holds_cruise(self, cruise_result):
        final = cruise_result.final_state
        assert final.y_dot == pytest.approx(25.0, abs=0.5)
        assert abs(final.z) < 0.5

    def test_starts_from_trim(self, cruise_result):
        trim = cruise_result.plan.trim
        first = cruise_result.records[0]
        assert first.state.theta == trim.theta
        assert first.control.thrust_top == trim.thrust_top
        assert first.control.thrust_bottom == trim.thrust_bottom


class TestBoundaryPadding:

    def test_first_control_sample(self, cruise_result):
        first, second = cruise_result.records[0].control, cruise_result.records[1].control
        assert_allclose(first.force_desired, second.force_desired)
        assert_allclose(first.thrust_vector, second.thrust_vector)
        assert first.theta_desired == second.theta_desired

    def test_last_airflow_sample(self, cruise_result):
        records = cruise_result.records
        assert records[-1].airflow == records[-2].airflow

    def test_no_placeholders(self, cruise_result):
        df = cruise_result.to_dataframe()
        assert not df.isnull().values.any()
        assert (df['V_a_m_s'] > 0).all()


class TestHoverProbes:

    @pytest.mark.parametrize("scheme", ['euler', 'rk4'])
    def test_position_step_returns_to_origin(self, params, aero_model, scheme):
        sim_config = SimulationConfig(dt=0.01, integrator=scheme, aerodynamics_enabled=False)
        maneuver = ManeuverConfig(maneuver='step-position', position_step=(1.0, 0.5),
                                  hover_duration=8.0)
        result = run_simulation(maneuver, params, aero_model, sim_config)
        final = result.final_state

        assert abs(final.y) < 0.05, f"y = {final.y:.4f}"
        assert abs(final.z) < 0.05, f"z = {final.z:.4f}"
        assert final.theta == pytest.approx(np.pi / 2, abs=0.05)

    def test_hover_hold_without_error(self, params, aero_model):
        sim_config = SimulationConfig(dt=0.01, aerodynamics_enabled=False, duration=2.0)
        maneuver = ManeuverConfig(maneuver='step-position', position_step=(0.0, 0.0))
        result = run_simulation(maneuver, params, aero_model, sim_config)

        assert_allclose(result.states[:, 1], 0.0, atol=1e-9)
        assert_allclose(result.thrust, params.weight / 2, rtol=1e-9)


class TestFailureReporting:

    def test_negative_thrust_warned_not_clamped(self, params, aero_model):
        sim_config = SimulationConfig(dt=0.01, aerodynamics_enabled=False, duration=0.5)
        maneuver = ManeuverConfig(maneuver='step-angle', angle_step=2.5)

        with pytest.warns(UserWarning, match="Negative thrust"):
            result = run_simulation(maneuver, params, aero_model, sim_config)

        assert result.negative_thrust_steps > 0
        assert np.min(result.thrust) < 0

    def test_non_finite_state_aborts(self, params, aero_model):
        sim = Simulation(params, aero_model,
                         SimulationConfig(dt=0.01, aerodynamics_enabled=False, duration=1.0))
        plan = sim.plan(ManeuverConfig(maneuver='step-angle'))
        bad = replace(plan, initial_state=VehicleState(y=np.nan))

        with warnings.catch_warnings():
            warnings.simplefilter("ignore", RuntimeWarning)
            with pytest.raises(FloatingPointError):
                sim.run(bad)

    def test_invalid_config(self):
        with pytest.raises(ConfigurationError):
            SimulationConfig(dt=-0.01)
        with pytest.raises(ConfigurationError):
            SimulationConfig(integrator='leapfrog')


class TestResult:

    def test_runs_are_independent(self, params, aero_model):
        sim = Simulation(params, aero_model,
                         SimulationConfig(dt=0.01, integrator=IntegrationScheme.EULER,
                                          duration=1.0))
        maneuver = ManeuverConfig(maneuver='step-angle')
        a = sim.fly(maneuver)
        b = sim.fly(maneuver)
        assert_allclose(a.states, b.states, rtol=0, atol=0)

    def test_dataframe_columns(self, cruise_result):
        df = cruise_result.to_dataframe()
        assert len(df) == len(cruise_result)
        for column in ('time_s', 'theta_rad', 'y_des_m', 'T_top_N', 'T_avg_N',
                       'V_w_top_m_s', 'V_w_bot_m_s', 'alpha_e_rad', 'L_N', 'M_air_Nm',
                       'F_des_y_N', 'thrust_vec_z_N'):
            assert column in df.columns

    def test_summary(self, cruise_result):
        s = cruise_result.summary()
        assert s['maneuver'] == 'trim-cruise'
        assert s['negative_thrust_steps'] == 0
        assert s['V_a_mean_m_s'] > 25.0
        assert s['L_mean_N'] > 0

    def test_accelerations_shape(self, cruise_result):
        acc = cruise_result.accelerations
        assert acc.shape == (len(cruise_result), 3)
        assert np.all(np.isfinite(acc))


class TestExport:

    def test_csv(self, cruise_result, tmp_path):
        path = export_csv(cruise_result, str(tmp_path / "run.csv"), metadata={'case': 'cruise'})
        df = pd.read_csv(path, comment='#')

        assert len(df) == len(cruise_result)
        assert_allclose(df['theta_rad'].values, cruise_result.states[:, 2])

        header = path.read_text().splitlines()[:30]
        assert any(line.startswith('# case: cruise') for line in header)

    def test_json(self, cruise_result, tmp_path):
        path = export_json(cruise_result, str(tmp_path / "out" / "run.json"))
        with open(path) as f:
            data = json.load(f)

        assert data['n_points'] == len(cruise_result)
        assert data['metadata']['maneuver'] == 'trim-cruise'
        assert len(data['data']['time_s']) == len(cruise_result)
        assert data['summary']['negative_thrust_steps'] == 0
