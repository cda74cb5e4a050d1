"""
Unit tests for settings and test configuration.

Tests perfgate/core/config.py and perfgate/core/models.py
"""

import pytest
from pydantic import ValidationError

from perfgate.core.config import Environment, PerformanceSettings, detect_environment, load_test_config
from perfgate.core.models import NetworkConditions, NetworkPreset, PerformanceTestConfig


class TestSettings:
    """Tests for pydantic-settings defaults and env handling."""

    def test_defaults(self, settings):
        assert settings.buffers.duration == 20
        assert settings.buffers.web_vitals.lcp == 20
        assert settings.features.default_fps_threshold == 60
        assert settings.features.long_task_threshold_ms == 50
        assert settings.profiler.stability_period_ms == 1000

    def test_ci_from_env(self, monkeypatch):
        monkeypatch.setenv("CI", "true")
        assert PerformanceSettings().ci is True

    def test_nested_env_override(self, monkeypatch):
        monkeypatch.setenv("PERFGATE_BUFFERS__FPS", "10")
        assert PerformanceSettings().buffers.fps == 10

    def test_trace_dir(self, settings):
        assert settings.trace_dir == settings.output_dir / "traces"

    def test_detect_environment(self):
        assert detect_environment(PerformanceSettings(CI=True)) == Environment(is_ci=True)
        assert detect_environment(PerformanceSettings(CI=False)).name == "local"


class TestPerformanceTestConfig:
    """Tests for the test config model."""

    def test_camel_and_snake_keys(self):
        camel = PerformanceTestConfig.model_validate({"throttleRate": 4, "exportTrace": True})
        snake = PerformanceTestConfig.model_validate({"throttle_rate": 4, "export_trace": True})
        assert camel == snake

    def test_unknown_keys_rejected(self):
        with pytest.raises(ValidationError):
            PerformanceTestConfig.model_validate({"iteratons": 3})

    def test_network_preset_or_custom(self):
        preset = PerformanceTestConfig.model_validate({"networkThrottling": "slow-3g"})
        custom = PerformanceTestConfig.model_validate({"networkThrottling": {
            "latency": 100, "downloadThroughput": 1000, "uploadThroughput": 500,
        }})
        assert preset.network_throttling is NetworkPreset.SLOW_3G
        assert isinstance(custom.network_throttling, NetworkConditions)

    def test_defaults(self):
        config = PerformanceTestConfig()
        assert config.warmup is None
        assert config.export_trace is False
        assert config.reset_page_between_iterations is True
        assert config.thresholds.base.profiler == {}


class TestLoadTestConfig:
    """Tests for YAML loading."""

    def test_load_yaml(self, tmp_path):
        path = tmp_path / "dashboard.yaml"
        path.write_text(
            "name: dashboard\n"
            "iterations: 5\n"
            "thresholds:\n"
            "  base:\n"
            "    profiler:\n"
            "      '*':\n"
            "        duration: 16\n"
            "        rerenders: 3\n"
            "    fps: {avg: 55, p95: 45}\n"
            "  ci:\n"
            "    fps: 40\n"
        )

        config = load_test_config(path)

        assert config.name == "dashboard"
        assert config.iterations == 5
        assert config.thresholds.base.profiler["*"].rerenders == 3
        assert config.thresholds.base.fps.p95 == 45
        assert config.thresholds.ci.fps == 40

    def test_empty_file(self, tmp_path):
        path = tmp_path / "empty.yaml"
        path.write_text("")
        assert load_test_config(path) == PerformanceTestConfig()
