"""
Unit tests for configuration loading and value coercion
"""

import pytest
import os
import sys

# Add project root to path
project_root = os.path.dirname(os.path.dirname(os.path.dirname(os.path.abspath(__file__))))
sys.path.append(project_root)

from location.config import (
    ACCURACY_BEST,
    ACCURACY_BEST_FOR_NAVIGATION,
    DISTANCE_FILTER_NONE,
    LocationConfig,
    coerce_accuracy,
    coerce_filter,
    load_config,
)


class TestLoadConfig:
    def test_missing_file_gives_defaults(self, tmp_path):
        P = load_config(str(tmp_path / "nope.yaml"))
        assert P["location"]["strict_mode"] is True
        assert P["geocoding"]["provider"] == "none"

    def test_file_merged_over_defaults(self, tmp_path):
        cfg = tmp_path / "p.yaml"
        cfg.write_text("location:\n  reject_repeated_locations: true\ngeocoding:\n  nominatim:\n    zoom: 14\n")
        P = load_config(str(cfg))
        assert P["location"]["reject_repeated_locations"] is True
        assert P["location"]["strict_mode"] is True
        assert P["geocoding"]["nominatim"]["zoom"] == 14
        assert P["geocoding"]["nominatim"]["min_interval_s"] == 1.0

    def test_env_var(self, tmp_path, monkeypatch):
        cfg = tmp_path / "env.yaml"
        cfg.write_text("logging:\n  level: DEBUG\n")
        monkeypatch.setenv("LOCATION_CONFIG", str(cfg))
        assert load_config()["logging"]["level"] == "DEBUG"

    def test_empty_file(self, tmp_path):
        cfg = tmp_path / "empty.yaml"
        cfg.write_text("")
        assert load_config(str(cfg))["sensor"]["rate_hz"] == 1.0

    def test_non_mapping_rejected(self, tmp_path):
        cfg = tmp_path / "list.yaml"
        cfg.write_text("- a\n- b\n")
        with pytest.raises(ValueError, match="mapping"):
            load_config(str(cfg))

    def test_defaults_not_shared(self, tmp_path):
        """Mutating a loaded dict must not leak into the next load"""
        P = load_config(str(tmp_path / "nope.yaml"))
        P["location"]["strict_mode"] = False
        assert load_config(str(tmp_path / "nope.yaml"))["location"]["strict_mode"] is True


class TestCoercion:
    @pytest.mark.parametrize("value,expected", [
        ("best", ACCURACY_BEST),
        ("Best_For_Navigation", ACCURACY_BEST_FOR_NAVIGATION),
        ("three_kilometers", 3000.0),
        ("25", 25.0),
        (0, 0.0),
        (-1, ACCURACY_BEST),
    ])
    def test_accuracy(self, value, expected):
        assert coerce_accuracy(value) == expected

    @pytest.mark.parametrize("value", ["anywhere", -3, -0.5])
    def test_bad_accuracy(self, value):
        with pytest.raises(ValueError):
            coerce_accuracy(value)

    @pytest.mark.parametrize("value,expected", [(None, -1.0), ("none", -1.0), ("None", -1.0), (-1, -1.0),
                                                (0, 0.0), ("12.5", 12.5)])
    def test_filter(self, value, expected):
        assert coerce_filter(value, "f") == expected

    def test_bad_filter(self):
        with pytest.raises(ValueError, match="distance_filter_m"):
            coerce_filter(-2, "distance_filter_m")


class TestLocationConfig:
    def test_defaults(self):
        cfg = LocationConfig()
        assert cfg.desired_accuracy == ACCURACY_BEST
        assert cfg.distance_filter_m == DISTANCE_FILTER_NONE
        assert cfg.heading_filter_deg == 1.0
        assert cfg.strict_mode is True
        assert cfg.reject_repeated_locations is False

    def test_from_dict(self):
        cfg = LocationConfig.from_dict({"desired_accuracy": "nearest_ten_meters", "distance_filter_m": "none",
                                        "heading_filter_deg": 5, "unknown_key": 1})
        assert cfg.sensor_settings() == (10.0, -1.0, 5.0)

    def test_from_none(self):
        assert LocationConfig.from_dict(None) == LocationConfig()

    def test_shipped_params_file_loads(self):
        P = load_config(os.path.join(project_root, "config", "params.yaml"))
        cfg = LocationConfig.from_dict(P["location"])
        assert cfg.distance_filter_m == DISTANCE_FILTER_NONE
        assert P["sensor"]["rate_hz"] == 2.0
