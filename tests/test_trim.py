"""
Tests for the trim solver and the terminal angle-of-attack solve.

If you can't trim, the model is wrong: every solution is fed back
through the airflow model and must balance.
"""

import numpy as np
import pytest
from numpy.testing import assert_allclose

from qbitsim.aircraft import PhysicalParameters, crc3_parameters
from qbitsim.aerodynamics import AeroCoefficientModel
from qbitsim.data_import import create_naca0015_polar
from qbitsim.exceptions import TrimNotFound
from qbitsim.trim import (
    RootResult, LeastSquaresRootFinder, compute_trim, trim_residuals,
    solve_terminal_alpha, terminal_alpha_residual
)


@pytest.fixture(scope="module")
def params():
    return PhysicalParameters()


@pytest.fixture(scope="module")
def aero_model():
    return AeroCoefficientModel(create_naca0015_polar())


class TestTrim:
    """Straight, level, constant-speed flight."""

    def test_cruise_residual_below_tolerance(self, params, aero_model):
        trim = compute_trim(25.0, params, aero_model)
        residuals = trim_residuals(
            [trim.thrust_top, trim.thrust_bottom, trim.theta], 25.0, params, aero_model
        )
        assert np.max(np.abs(residuals)) <= 1e-6, f"Residuals: {residuals}"

    def test_cruise_pitch_between_level_and_vertical(self, params, aero_model):
        trim = compute_trim(25.0, params, aero_model)
        assert 0 < trim.theta < np.pi / 2
        assert trim.airflow.lift > 0

    def test_vertical_force_balance(self, params, aero_model):
        """Thrust plus aerodynamic force carries the weight."""
        trim = compute_trim(25.0, params, aero_model)
        air = trim.airflow
        w = trim.theta - air.alpha_effective
        vertical = (trim.total_thrust * np.sin(trim.theta)
                    + air.lift * np.cos(w) - air.drag * np.sin(w))
        assert vertical == pytest.approx(params.weight, rel=0.05)

    def test_no_aero_trim_is_vertical(self, params, aero_model):
        """Without aerodynamic loads the rotors carry the full weight."""
        trim = compute_trim(10.0, params, aero_model, aerodynamics_enabled=False)
        assert trim.total_thrust == pytest.approx(params.weight, rel=1e-6)
        assert trim.theta == pytest.approx(np.pi / 2, abs=1e-6)
        assert trim.thrust_top == pytest.approx(trim.thrust_bottom, abs=1e-6)

    def test_least_squares_finder(self, params, aero_model):
        reference = compute_trim(20.0, params, aero_model)
        trim = compute_trim(20.0, params, aero_model, root_finder=LeastSquaresRootFinder())
        assert_allclose(
            [trim.thrust_top, trim.thrust_bottom, trim.theta],
            [reference.thrust_top, reference.thrust_bottom, reference.theta],
            atol=1e-5
        )

    def test_crc3_trims(self, aero_model):
        params = crc3_parameters()
        trim = compute_trim(20.0, params, aero_model)
        assert np.max(np.abs(trim.residuals)) <= 1e-6

    def test_initial_state(self, params, aero_model):
        trim = compute_trim(25.0, params, aero_model)
        state = trim.initial_state()
        assert state.theta == trim.theta
        assert state.y_dot == 25.0
        assert state.z_dot == 0.0


class TestTrimFailure:
    """Non-convergence is reported, never returned as a solution."""

    def test_non_converging_finder(self, params, aero_model):
        def stuck(residual_fn, x0):
            return RootResult(x=x0, converged=False, residuals=residual_fn(x0),
                              iterations=1, message="gave up")

        with pytest.raises(TrimNotFound) as info:
            compute_trim(25.0, params, aero_model, root_finder=stuck)

        assert info.value.x is not None
        assert info.value.residuals.shape == (3,)

    def test_converged_flag_with_large_residual(self, params, aero_model):
        """A finder claiming success is still checked against the tolerance."""
        def liar(residual_fn, x0):
            return RootResult(x=x0, converged=True, residuals=np.zeros(3),
                              iterations=1, message="ok")

        with pytest.raises(TrimNotFound):
            compute_trim(25.0, params, aero_model, root_finder=liar)


class TestTerminalAlpha:

    def test_balances_weight(self, params, aero_model):
        alpha = solve_terminal_alpha(15.0, params, aero_model)
        assert 0 < alpha < np.pi / 2
        residual = terminal_alpha_residual(alpha, 15.0, 1.0, params, aero_model)
        assert abs(residual) <= 1e-6

    def test_lower_force_ratio_needs_less_alpha(self, params, aero_model):
        full = solve_terminal_alpha(15.0, params, aero_model, force_ratio=1.0)
        half = solve_terminal_alpha(15.0, params, aero_model, force_ratio=0.5)
        assert half < full
