"""
Tests for configuration loading and validation.
"""

import pytest
import yaml

from map_localizer.config import (
    ConfigurationError,
    FilterMethod,
    MatchingParams,
    RegistrationMethod,
    load_matching_config,
    merge_configs,
)


class TestDefaults:

    def test_shipped_yaml_matches_model_defaults(self, default_config_path):
        params = load_matching_config(default_config_path)
        defaults = MatchingParams()
        assert params.registration_method is RegistrationMethod.NDT
        assert params.local_map_margin == defaults.local_map_margin == 50.0
        assert params.init_absolute_samples == 3
        assert params.box_filter_size == defaults.box_filter_size
        assert params.frame_filter is FilterMethod.VOXEL_FILTER

    def test_aliases_and_field_names(self):
        assert MatchingParams(NDT={"res": 2.0}).ndt.res == 2.0
        assert MatchingParams(icp={"max_iter": 5}).icp.max_iter == 5


class TestMerge:

    def test_deep_merge(self):
        merged = merge_configs(
            {"NDT": {"res": 1.0, "max_iter": 30}, "map_path": "a.pcd"},
            {"NDT": {"res": 2.0}},
            {"map_path": "b.pcd"},
        )
        assert merged == {"NDT": {"res": 2.0, "max_iter": 30}, "map_path": "b.pcd"}

    def test_preset_and_overrides(self, default_config_path, tmp_path):
        preset = tmp_path / "preset.yaml"
        preset.write_text(yaml.safe_dump({"registration_method": "ICP", "ICP": {"max_iter": 7}}))
        params = load_matching_config(default_config_path, preset, {"local_map_margin": 30.0})
        assert params.registration_method is RegistrationMethod.ICP
        assert params.icp.max_iter == 7
        assert params.icp.max_corr_dist == 1.2
        assert params.local_map_margin == 30.0


class TestValidation:

    @pytest.mark.parametrize("overrides", [
        {"registration_method": "GICP"},
        {"frame_filter": "approximate_voxel"},
        {"loop_closure_method": "iris"},
        {"box_filter_size": [10.0, -10.0, -1.0, 1.0, -1.0, 1.0]},
        {"box_filter_size": [-1.0, 1.0]},
        {"voxel_filter": {"frame": {"leaf_size": [0.0, 1.0, 1.0]}}},
        {"NDT": {"res": -1.0}},
        {"local_map_margin": -5.0},
    ])
    def test_invalid_values(self, default_config_path, overrides):
        with pytest.raises(ConfigurationError):
            load_matching_config(default_config_path, overrides=overrides)

    def test_missing_file(self, tmp_path):
        with pytest.raises(ConfigurationError):
            load_matching_config(tmp_path / "missing.yaml")

    def test_malformed_yaml(self, tmp_path):
        path = tmp_path / "bad.yaml"
        path.write_text("NDT: [res: 1\n")
        with pytest.raises(ConfigurationError):
            load_matching_config(path)

    def test_configuration_error_is_value_error(self):
        assert issubclass(ConfigurationError, ValueError)
