"""
Tests for polar table loading.
"""

import numpy as np
import pytest

from qbitsim.data_import import PolarData, load_polar_csv, create_naca0015_polar


class TestPolarData:

    def test_length_mismatch(self):
        with pytest.raises(ValueError):
            PolarData(alpha=[0, 1, 2], cl=[0, 0.1], cd=[0.01] * 3, cm=[0] * 3)

    def test_too_few_samples(self):
        with pytest.raises(ValueError):
            PolarData(alpha=[0], cl=[0], cd=[0.01], cm=[0])

    def test_non_finite(self):
        with pytest.raises(ValueError):
            PolarData(alpha=[0, 1], cl=[0, np.nan], cd=[0.01, 0.01], cm=[0, 0])

    def test_unsorted_is_sorted_with_warning(self):
        with pytest.warns(UserWarning, match="not sorted"):
            polar = PolarData(alpha=[2, 0, 1], cl=[0.2, 0.0, 0.1],
                              cd=[0.012, 0.010, 0.011], cm=[0, 0, 0])
        np.testing.assert_array_equal(polar.alpha, [0, 1, 2])
        np.testing.assert_array_equal(polar.cl, [0.0, 0.1, 0.2])

    def test_repeated_angles_dropped(self):
        with pytest.warns(UserWarning, match="repeated"):
            polar = PolarData(alpha=[0, 1, 1, 2], cl=[0, 0.1, 0.1, 0.2],
                              cd=[0.01] * 4, cm=[0] * 4)
        assert len(polar.alpha) == 3

    def test_to_dataframe(self):
        df = create_naca0015_polar(step_deg=5.0).to_dataframe()
        assert list(df.columns) == ['alpha_deg', 'cl', 'cd', 'cm']
        assert len(df) == 73


class TestSyntheticPolar:

    def test_full_circle(self):
        polar = create_naca0015_polar()
        assert polar.alpha_range == (-180.0, 180.0)

    def test_symmetry(self):
        polar = create_naca0015_polar()
        np.testing.assert_allclose(polar.cl, -polar.cl[::-1], atol=1e-12)
        np.testing.assert_allclose(polar.cd, polar.cd[::-1], atol=1e-12)

    def test_drag_positive(self):
        assert np.all(create_naca0015_polar().cd > 0)


class TestCsvLoader:

    def test_flexible_columns(self, tmp_path):
        path = tmp_path / "naca.csv"
        path.write_text(
            "# exported polar\n"
            "Alpha,CL,CD,CM\n"
            "-5,-0.5,0.012,0.01\n"
            "0,0.0,0.010,0.0\n"
            "5,0.5,0.012,-0.01\n"
        )
        polar = load_polar_csv(str(path), reynolds_number=1.6e5)

        assert polar.name == "naca"
        np.testing.assert_allclose(polar.alpha, [-5, 0, 5])
        np.testing.assert_allclose(polar.cm, [0.01, 0.0, -0.01])

    def test_missing_moment(self, tmp_path):
        path = tmp_path / "nocm.csv"
        path.write_text("alpha_deg,cl,cd\n0,0.0,0.01\n10,1.0,0.02\n")

        with pytest.warns(UserWarning, match="Cm = 0"):
            polar = load_polar_csv(str(path))
        np.testing.assert_array_equal(polar.cm, [0.0, 0.0])

    def test_missing_required_column(self, tmp_path):
        path = tmp_path / "bad.csv"
        path.write_text("alpha,cl\n0,0.0\n10,1.0\n")
        with pytest.raises(ValueError):
            load_polar_csv(str(path))
