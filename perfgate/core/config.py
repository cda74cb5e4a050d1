"""Configuration management for perfgate."""

from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path
from typing import Optional, Union

import yaml
from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from perfgate.core.models import PerformanceTestConfig


class ProfilerSettings(BaseModel):
    """Render profiler wait timings (nested delimiter PERFGATE_PROFILER__)."""

    stability_period_ms: int = 1000
    check_interval_ms: int = 100
    max_wait_ms: int = 5000
    initialization_timeout_ms: int = 10000


class WebVitalsBufferSettings(BaseModel):
    """Default buffer percentages for web vitals."""

    lcp: float = 20
    inp: float = 20
    cls: float = 20
    ttfb: float = 20
    fcp: float = 20


class LongTaskBufferSettings(BaseModel):
    """Default buffer percentages for long task metrics."""

    tbt: float = 20
    max_duration: float = 20
    max_count: float = 20


class BufferSettings(BaseModel):
    """Default buffer percentages (nested delimiter PERFGATE_BUFFERS__)."""

    duration: float = 20
    rerenders: float = 20
    fps: float = 20
    heap_growth: float = 20
    web_vitals: WebVitalsBufferSettings = Field(default_factory=WebVitalsBufferSettings)
    long_tasks: LongTaskBufferSettings = Field(default_factory=LongTaskBufferSettings)


class FeatureSettings(BaseModel):
    """Feature defaults (nested delimiter PERFGATE_FEATURES__)."""

    default_throttle_rate: float = 1
    default_fps_threshold: float = 60
    default_iterations: int = 1
    long_task_threshold_ms: float = 50
    trace_timeout_ms: int = 30000
    fps_trace_timeout_ms: int = 10000


class PerformanceSettings(BaseSettings):
    """Main harness settings."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        env_nested_delimiter="__",  # PERFGATE_BUFFERS__FPS=10 for nested settings
        populate_by_name=True,
    )

    # CI detection happens here and nowhere else
    ci: bool = Field(default=False, alias="CI")
    log_level: str = Field(default="INFO", alias="PERFGATE_LOG_LEVEL")
    output_dir: Path = Field(default=Path("test-results/perfgate"), alias="PERFGATE_OUTPUT_DIR")

    # Sub-settings
    profiler: ProfilerSettings = Field(default_factory=ProfilerSettings, alias="PERFGATE_PROFILER")
    buffers: BufferSettings = Field(default_factory=BufferSettings, alias="PERFGATE_BUFFERS")
    features: FeatureSettings = Field(default_factory=FeatureSettings, alias="PERFGATE_FEATURES")

    @property
    def trace_dir(self) -> Path:
        """Get the directory trace exports are written to."""
        return self.output_dir / "traces"


@lru_cache()
def get_settings() -> PerformanceSettings:
    """Get cached settings instance."""
    return PerformanceSettings()


@dataclass(frozen=True)
class Environment:
    """Execution environment passed explicitly into threshold resolution."""

    is_ci: bool = False

    @property
    def name(self) -> str:
        return "ci" if self.is_ci else "local"


def detect_environment(settings: Optional[PerformanceSettings] = None) -> Environment:
    """Build the Environment from settings (reads the CI env var once, at the edge)."""
    settings = settings or get_settings()
    return Environment(is_ci=settings.ci)


def load_test_config(path: Union[str, Path]) -> PerformanceTestConfig:
    """Load a PerformanceTestConfig from YAML (camelCase or snake_case keys)."""
    with open(path) as f:
        data = yaml.safe_load(f) or {}
    return PerformanceTestConfig.model_validate(data)
