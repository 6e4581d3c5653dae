"""Unit tests for viewport_clustering.config module."""

import json

import pytest

from viewport_clustering import Cluster, ClusterOptions, GeoPoint, LatLng, default_marker_directive, load_config
from viewport_clustering.config import _DEFAULT, validate_config


class TestLoadConfig:
    """Test suite for load_config.

    Tests default loading, merging with a user file, and schema validation.
    """

    def test_load_default_config(self):
        """Test loading default config when no file specified."""
        config = load_config(None)

        assert config["clustering"]["throttle_ms"] == 200
        assert config["clustering"]["settle_ms"] == 100
        assert config["clustering"]["centering_strategy"] == "smart"
        assert config["clustering"]["grid"] == "h3"

    def test_load_default_config_nonexistent(self):
        """Test loading default config when file doesn't exist."""
        config = load_config("nonexistent.json")

        assert config == _DEFAULT

    def test_load_config_merging(self, tmp_path):
        """Test that the clustering section is updated, not replaced."""
        config_file = tmp_path / "clustering_config.json"
        config_file.write_text(
            json.dumps({"clustering": {"grid": "s2", "smart_blend": [1, 1]}, "new_key": "new_value"}),
            encoding="utf-8",
        )

        config = load_config(str(config_file))

        assert config["clustering"]["grid"] == "s2"
        assert config["clustering"]["smart_blend"] == [1, 1]
        # Defaults should still exist
        assert config["clustering"]["throttle_ms"] == 200
        assert config["new_key"] == "new_value"

    def test_load_config_does_not_mutate_defaults(self, tmp_path):
        config_file = tmp_path / "clustering_config.json"
        config_file.write_text(json.dumps({"clustering": {"throttle_ms": 5}}), encoding="utf-8")

        load_config(str(config_file))

        assert _DEFAULT["clustering"]["throttle_ms"] == 200

    @pytest.mark.parametrize("section", [
        {"throttle_ms": -1},
        {"centering_strategy": "median"},
        {"grid": "geohash"},
        {"bucketing": "hex"},
        {"smart_blend": [3, 0]},
        {"smart_blend": [1, 2, 3]},
        {"omit_clustering": "yes"},
        {"zoom_on_click": True},
    ])
    def test_invalid_values_rejected(self, tmp_path, section):
        config_file = tmp_path / "clustering_config.json"
        config_file.write_text(json.dumps({"clustering": section}), encoding="utf-8")

        with pytest.raises(ValueError, match="Invalid clustering configuration"):
            load_config(str(config_file))

    def test_validate_config_returns_input(self):
        config = {"clustering": {"grid": "h3"}}

        assert validate_config(config) is config


class TestClusterOptions:
    """Test suite for ClusterOptions."""

    def test_defaults_match_config(self):
        options = ClusterOptions.from_config(load_config(None))

        assert options == ClusterOptions()
        assert options.smart_blend == (3.0, 1.0)
        assert options.create_marker is default_marker_directive

    def test_from_config_with_overrides(self):
        config = load_config(None)
        config["clustering"]["smart_blend"] = [2, 1]

        options = ClusterOptions.from_config(config, grid="s2")

        assert options.smart_blend == (2, 1)
        assert options.grid == "s2"

    def test_camel_case_aliases(self):
        callback = print
        options = ClusterOptions().with_overrides(
            throttle=10, settleMs=20, centeringStrategy="centroid", onClick=callback
        )

        assert options.throttle_ms == 10
        assert options.settle_ms == 20
        assert options.centering_strategy == "centroid"
        assert options.on_click is callback

    def test_with_overrides_returns_copy(self):
        base = ClusterOptions()
        changed = base.with_overrides(omit_clustering=True)

        assert base.omit_clustering is False
        assert changed.omit_clustering is True

    def test_unknown_option(self):
        with pytest.raises(ValueError, match="Unknown clustering option: zoom"):
            ClusterOptions().with_overrides(zoom=3)

    @pytest.mark.parametrize("overrides, message", [
        ({"throttle_ms": -5}, "throttle_ms"),
        ({"settle_ms": -1}, "settle_ms"),
        ({"grid": "geohash"}, "Unknown grid"),
        ({"bucketing": "hex"}, "Unknown bucketing"),
        ({"centering_strategy": "median"}, "centering strategy"),
        ({"smart_blend": (1.0,)}, "smart_blend"),
        ({"smart_blend": (1.0, -1.0)}, "smart_blend"),
        ({"fit_padding": -1}, "fit_padding"),
        ({"bucketing": "pixel", "pixel_cell_size": 0}, "pixel_cell_size"),
        ({"bucketing": "pixel", "centering_strategy": "cell-center"}, "cell-center"),
    ])
    def test_invalid_options(self, overrides, message):
        with pytest.raises(ValueError, match=message):
            ClusterOptions().with_overrides(**overrides)


class TestDefaultMarkerDirective:
    def test_singleton_has_no_directive(self):
        cluster = Cluster("point-0", LatLng(1.0, 2.0), (GeoPoint(1.0, 2.0),))

        assert default_marker_directive(cluster) is None

    def test_count_directive(self):
        points = (GeoPoint(1.0, 2.0), GeoPoint(1.0, 2.0), GeoPoint(1.5, 2.5))
        cluster = Cluster("cell", LatLng(1.2, 2.2), points)

        assert default_marker_directive(cluster) == {"count": 3}
