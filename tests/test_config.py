"""
Tests for physical parameters, run configuration and the command line.
"""

import numpy as np
import pytest
from pathlib import Path

from qbitsim.aircraft import PhysicalParameters, crc3_parameters, IN2M
from qbitsim.config import RunConfig, parameters_from_preset
from qbitsim.dynamics import IntegrationScheme
from qbitsim.exceptions import ConfigurationError
from qbitsim.main import main
from qbitsim.trajectory import ManeuverType, AoAProfile


CONFIG_DIR = Path(__file__).parent.parent / "configs"


class TestPhysicalParameters:

    def test_derived_quantities(self):
        p = PhysicalParameters()
        assert p.wing_area == pytest.approx(0.087 * 1.016)
        assert p.disk_area == pytest.approx(np.pi * (4.5 * IN2M)**2)
        assert p.weight == pytest.approx(0.8652 * 9.81)

    @pytest.mark.parametrize("field", ['mass', 'inertia', 'chord', 'span',
                                       'prop_radius', 'arm_length', 'air_density'])
    def test_non_positive_rejected(self, field):
        with pytest.raises(ConfigurationError):
            PhysicalParameters(**{field: 0.0})

    def test_crc3_scaling(self):
        p = crc3_parameters()
        s = 0.508 / (15 * IN2M)
        assert p.span == 0.508
        assert p.mass == pytest.approx(0.365 * s**3)
        assert p.inertia == pytest.approx(2.32e-3 * s**5)

    def test_yaml_round_trip(self, tmp_path):
        p = crc3_parameters()
        path = tmp_path / "params.yaml"
        p.save_yaml(str(path))
        assert PhysicalParameters.from_yaml(str(path)) == p

    def test_unknown_key(self):
        with pytest.raises(ConfigurationError):
            PhysicalParameters._from_dict({'mass': 1.0, 'wingspan': 2.0})


class TestRunConfig:

    @pytest.mark.parametrize("name", sorted(p.name for p in CONFIG_DIR.glob("*.yaml")))
    def test_shipped_configs_load(self, name):
        config = RunConfig.from_yaml(str(CONFIG_DIR / name))
        assert isinstance(config.maneuver.maneuver, ManeuverType)
        assert isinstance(config.simulation.integrator, IntegrationScheme)

    def test_preset_with_override(self):
        config = RunConfig._from_dict({'parameters': {'preset': 'crc3', 'eta': 0.8}})
        assert config.params.eta == 0.8
        assert config.params.span == crc3_parameters().span

    def test_unknown_preset(self):
        with pytest.raises(ConfigurationError):
            parameters_from_preset('concorde')

    def test_unknown_maneuver_fails_at_load(self):
        with pytest.raises(ConfigurationError):
            RunConfig._from_dict({'maneuver': {'maneuver': 'hammerhead'}})

    def test_unknown_section_key(self):
        with pytest.raises(ConfigurationError):
            RunConfig._from_dict({'simulation': {'timestep': 0.01}})
        with pytest.raises(ConfigurationError):
            RunConfig._from_dict({'wind': {}})

    def test_save_and_reload(self, tmp_path):
        config = RunConfig._from_dict({
            'name': 'round trip',
            'simulation': {'dt': 0.005, 'integrator': 'euler', 'duration': 4.0},
            'maneuver': {'maneuver': 'prescribed-aoa', 'aoa_profile': 'exponential',
                         'cruise_speed': 18.0},
            'controller': {'kp_theta': 40.0},
        })
        path = tmp_path / "run.yaml"
        config.save_yaml(str(path))
        loaded = RunConfig.from_yaml(str(path))

        assert loaded.name == 'round trip'
        assert loaded.simulation.integrator is IntegrationScheme.EULER
        assert loaded.simulation.duration == 4.0
        assert loaded.maneuver.aoa_profile is AoAProfile.EXPONENTIAL
        assert loaded.maneuver.cruise_speed == 18.0
        assert loaded.gains.kp_theta == 40.0
        assert loaded.params == config.params

    def test_overrides_routed(self):
        config = RunConfig().with_overrides(maneuver='step-angle', dt=0.02,
                                            cruise_speed=None)
        assert config.maneuver.maneuver is ManeuverType.STEP_ANGLE
        assert config.simulation.dt == 0.02
        assert config.maneuver.cruise_speed == 25.0

    def test_override_unknown(self):
        with pytest.raises(ConfigurationError):
            RunConfig().with_overrides(gust=3.0)


class TestCommandLine:

    def test_runs_and_exports(self, tmp_path):
        out = tmp_path / "hover.csv"
        code = main(['--maneuver', 'step-angle', '--no-aero', '--duration', '1',
                     '--quiet', '--output', str(out)])
        assert code == 0
        assert out.exists()

    def test_bad_maneuver(self):
        assert main(['--maneuver', 'loop', '--quiet']) == 2

    def test_plots(self, tmp_path):
        import matplotlib
        matplotlib.use("Agg")

        code = main(['--maneuver', 'step-position', '--duration', '0.5',
                     '--quiet', '--plot', str(tmp_path)])
        assert code == 0
        assert len(list(tmp_path.glob("*.png"))) == 8
