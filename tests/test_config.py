"""
Smoke tests for configuration loading and validation.
"""

import argparse
import logging
import sys

import pytest

from trt_inference.inference.observer import Severity
from trt_inference.main import apply_overrides, load_config, run, validate_config
from trt_inference.models.config import Config, PostprocessConfig
from trt_inference.ops.logging import observer_severity, setup_logging


class TestValidateConfig:
    """Tests for validate_config function."""

    def test_valid_config_passes(self, valid_config):
        """A complete valid config passes validation."""
        is_valid, error = validate_config(valid_config)

        assert is_valid is True
        assert error is None

    @pytest.mark.parametrize("section", ["engine", "source", "log_path", "log_level"])
    def test_missing_section(self, valid_config, section):
        del valid_config[section]

        is_valid, error = validate_config(valid_config)

        assert is_valid is False
        assert section in error

    def test_postprocess_section_optional(self, valid_config):
        del valid_config["postprocess"]
        assert validate_config(valid_config)[0] is True

    def test_missing_engine_path(self, valid_config):
        valid_config["engine"]["engine_path"] = ""

        is_valid, error = validate_config(valid_config)

        assert is_valid is False
        assert "engine_path" in error

    @pytest.mark.parametrize("key,value", [
        ("conf_threshold", 1.5),
        ("conf_threshold", -0.1),
        ("iou_threshold", "high"),
        ("iou_threshold", True),
    ])
    def test_invalid_thresholds(self, valid_config, key, value):
        valid_config["postprocess"][key] = value

        is_valid, error = validate_config(valid_config)

        assert is_valid is False
        assert key in error

    def test_invalid_nms_mode(self, valid_config):
        valid_config["postprocess"]["nms_mode"] = "soft"

        is_valid, error = validate_config(valid_config)

        assert is_valid is False
        assert "nms_mode" in error

    def test_invalid_output_layout(self, valid_config):
        valid_config["engine"]["output_layout"] = "nhwc"
        assert validate_config(valid_config)[0] is False

    def test_invalid_resolution(self, valid_config):
        valid_config["engine"]["input_resolution"] = -640
        assert validate_config(valid_config)[0] is False

    def test_invalid_source_kind(self, valid_config):
        valid_config["source"]["kind"] = "rtsp"

        is_valid, error = validate_config(valid_config)

        assert is_valid is False
        assert "source.kind" in error

    def test_negative_failure_limit(self, valid_config):
        valid_config["pipeline"]["max_consecutive_failures"] = -1
        assert validate_config(valid_config)[0] is False

    def test_invalid_log_level(self, valid_config):
        valid_config["log_level"] = "LOUD"

        is_valid, error = validate_config(valid_config)

        assert is_valid is False
        assert "log_level" in error


class TestLoadConfig:
    def test_loads_default(self, temp_config_dir):
        config = load_config(str(temp_config_dir / "config.yaml"))

        assert config["engine"]["engine_path"] == "models/default.engine"
        assert config["postprocess"]["iou_threshold"] == 0.45

    def test_local_overrides_merge(self, temp_config_dir):
        (temp_config_dir / "config.yaml").write_text("""
engine:
  engine_path: "models/local.engine"
postprocess:
  conf_threshold: 0.5
""")

        config = load_config(str(temp_config_dir / "config.yaml"))

        assert config["engine"]["engine_path"] == "models/local.engine"
        assert config["engine"]["input_tensor"] == "images"
        assert config["postprocess"]["conf_threshold"] == 0.5
        assert config["postprocess"]["nms_mode"] == "sorted"

    def test_explicit_config_applied_last(self, temp_config_dir):
        (temp_config_dir / "config.yaml").write_text("log_level: WARNING\n")
        explicit = temp_config_dir / "bench.yaml"
        explicit.write_text("log_level: DEBUG\n")

        config = load_config(str(explicit))

        assert config["log_level"] == "DEBUG"

    def test_invalid_yaml_exits(self, temp_config_dir):
        (temp_config_dir / "config.yaml").write_text("engine: [unclosed\n")

        with pytest.raises(SystemExit):
            load_config(str(temp_config_dir / "config.yaml"))


class TestApplyOverrides:
    def _args(self, **kwargs):
        defaults = dict(engine=None, source=None, max_frames=None, loop=False, legacy_nms=False)
        defaults.update(kwargs)
        return argparse.Namespace(**defaults)

    def test_engine_and_frames(self, valid_config):
        config = apply_overrides(valid_config, self._args(engine="other.engine", max_frames=10))

        assert config["engine"]["engine_path"] == "other.engine"
        assert config["pipeline"]["max_frames"] == 10

    def test_directory_source_uses_images(self, valid_config, tmp_path):
        config = apply_overrides(valid_config, self._args(source=str(tmp_path)))
        assert config["source"]["kind"] == "images"

    def test_legacy_nms(self, valid_config):
        config = apply_overrides(valid_config, self._args(legacy_nms=True, loop=True))

        assert config["postprocess"]["nms_mode"] == "legacy"
        assert config["source"]["loop"] is True


class TestTypedConfig:
    def test_from_dict(self, valid_config):
        config = Config.from_dict(valid_config)

        assert config.engine.engine_path == "models/test.engine"
        assert config.engine.input_resolution is None
        assert config.postprocess.sort_by_confidence is True
        assert config.pipeline.max_consecutive_failures == 0
        assert config.log_level == "INFO"

    def test_defaults(self):
        config = Config.from_dict({})

        assert config.engine.input_tensor == "images"
        assert config.engine.output_tensor == "output0"
        assert config.postprocess.conf_threshold == 0.25
        assert config.postprocess.iou_threshold == 0.45
        assert config.pipeline.latency_window == 30

    def test_class_names_list(self):
        pp = PostprocessConfig.from_dict({"class_names": ["person", "car"], "class_thresholds": {"1": 0.6}})

        assert pp.class_names == {0: "person", 1: "car"}
        assert pp.class_thresholds == {1: 0.6}

    def test_legacy_mode(self):
        assert PostprocessConfig(nms_mode="legacy").sort_by_confidence is False

    def test_to_dict_round_trip(self, valid_config):
        config = Config.from_dict(valid_config)
        assert Config.from_dict(config.to_dict()) == config


class TestSetupLogging:
    def test_creates_log_directory(self, tmp_path):
        log_path = tmp_path / "logs" / "run.log"

        setup_logging(str(log_path), "DEBUG")
        logging.getLogger("test.setup").debug("hello")

        assert log_path.exists()
        assert logging.getLogger().level == logging.DEBUG
        for handler in logging.getLogger().handlers:
            handler.flush()
        assert "hello" in log_path.read_text()

        root = logging.getLogger()
        for handler in root.handlers[:]:
            root.removeHandler(handler)
            handler.close()


class TestRun:
    def test_missing_tensorrt_exits_nonzero(self, valid_config, monkeypatch):
        monkeypatch.setitem(sys.modules, "tensorrt", None)
        assert run(Config.from_dict(valid_config)) == 1


class TestObserverSeverity:
    @pytest.mark.parametrize("level,expected", [
        ("DEBUG", Severity.VERBOSE),
        ("INFO", Severity.INFO),
        ("WARNING", Severity.WARNING),
        ("ERROR", Severity.ERROR),
        ("CRITICAL", Severity.INTERNAL_ERROR),
        ("NOISY", Severity.WARNING),
    ])
    def test_maps_log_level(self, level, expected):
        assert observer_severity(level) is expected
