"""
Tests for the rigid-body equations and the integrators.

Follows a build-up approach:
1. Hover balance with aerodynamics off (thrust cancels weight)
2. Constant pitch acceleration against the closed-form solution
3. Force resolution with aerodynamic loads
"""

import numpy as np
import pytest
from numpy.testing import assert_allclose

from qbitsim.aircraft import PhysicalParameters
from qbitsim.dynamics import (
    IntegrationScheme, state_derivative, euler_step, rk4_step, advance, get_integrator
)
from qbitsim.exceptions import ConfigurationError
from qbitsim.state import VehicleState


@pytest.fixture(scope="module")
def params():
    return PhysicalParameters()


class TestHoverBalance:
    """Equal thrusts of mg/2 at vertical pitch hold the vehicle still."""

    def test_derivative_is_zero(self, params):
        x = VehicleState().to_array()
        half = params.weight / 2
        d = state_derivative(x, half, half, 0.0, 0.0, 0.0, np.pi / 2, params)
        assert_allclose(d, np.zeros(6), atol=1e-12)

    @pytest.mark.parametrize("scheme", list(IntegrationScheme))
    def test_hover_hold(self, params, scheme):
        x = VehicleState(y=2.0, z=5.0).to_array()
        x0 = x.copy()
        half = params.weight / 2

        for _ in range(1000):
            x = advance(x, half, half, 0.0, 0.0, 0.0, np.pi / 2, params, 0.01, scheme)

        assert abs(x[1] - x0[1]) < 1e-9, f"Altitude drifted: {x[1] - x0[1]}"
        assert abs(x[3] - x0[3]) < 1e-9, f"Horizontal speed drifted: {x[3]}"
        assert abs(x[2] - x0[2]) < 1e-12

    def test_free_fall_without_thrust(self, params):
        x = VehicleState(z=100.0).to_array()
        for _ in range(100):
            x = advance(x, 0.0, 0.0, 0.0, 0.0, 0.0, 0.0, params, 0.01)

        # RK4 is exact for constant acceleration
        assert x[4] == pytest.approx(-params.gravity * 1.0, rel=1e-9)
        assert x[1] == pytest.approx(100.0 - 0.5 * params.gravity, rel=1e-9)


class TestPitchIntegration:
    """Constant differential thrust gives constant pitch acceleration."""

    def _pitch_error(self, params, stepper, dt, duration=1.0):
        delta = 0.2  # T_bot - T_top (N)
        theta_ddot = params.arm_length * delta / params.inertia
        half = params.weight / 2

        def derivative(xs):
            return state_derivative(xs, half - delta / 2, half + delta / 2,
                                    0.0, 0.0, 0.0, 0.0, params)

        x = VehicleState().to_array()
        steps = int(round(duration / dt))
        for _ in range(steps):
            x = stepper(derivative, x, dt)

        exact = np.pi / 2 + 0.5 * theta_ddot * duration**2
        return abs(x[2] - exact)

    def test_rk4_beats_euler(self, params):
        dt = 0.01
        err_euler = self._pitch_error(params, euler_step, dt)
        err_rk4 = self._pitch_error(params, rk4_step, dt)

        assert err_rk4 < err_euler, f"RK4 {err_rk4:.3e} vs Euler {err_euler:.3e}"
        assert err_rk4 < 1e-9

    def test_euler_first_order(self, params):
        """Halving dt halves the Euler error."""
        e1 = self._pitch_error(params, euler_step, 0.02)
        e2 = self._pitch_error(params, euler_step, 0.01)
        assert e1 / e2 == pytest.approx(2.0, rel=0.05)


class TestForces:
    """Thrust and aerodynamic loads in the equations of motion."""

    def test_level_thrust_accelerates_forward(self, params):
        x = VehicleState(theta=0.0).to_array()
        d = state_derivative(x, 1.0, 1.0, 0.0, 0.0, 0.0, 0.0, params)
        assert d[3] == pytest.approx(2.0 / params.mass)
        assert d[4] == pytest.approx(-params.gravity)

    def test_lift_and_drag_at_level_wind(self, params):
        x = VehicleState(theta=0.1, y_dot=20.0).to_array()
        d = state_derivative(x, 0.0, 0.0, params.weight, 1.0, 0.0, 0.1, params)
        assert d[3] == pytest.approx(-1.0 / params.mass)
        assert d[4] == pytest.approx(0.0, abs=1e-12)

    def test_aero_moment_and_differential_thrust(self, params):
        x = VehicleState().to_array()
        d = state_derivative(x, 1.0, 2.0, 0.0, 0.0, 0.05, 0.0, params)
        expected = (0.05 + params.arm_length * 1.0) / params.inertia
        assert d[5] == pytest.approx(expected)


class TestSchemeSelection:

    def test_parse_names(self):
        assert IntegrationScheme.parse('RK4') is IntegrationScheme.RK4
        assert IntegrationScheme.parse(' euler ') is IntegrationScheme.EULER
        assert get_integrator('euler') is euler_step

    def test_unknown_scheme(self):
        with pytest.raises(ConfigurationError):
            IntegrationScheme.parse('midpoint')
