from perfgate.runner.instance import PerformanceContext, PerformanceInstance
from perfgate.runner.performance_runner import (
    PerformanceTestRunner,
    RunConfig,
    RunResult,
    resolve_run_config,
    run_performance_test,
)

__all__ = [
    "PerformanceContext",
    "PerformanceInstance",
    "PerformanceTestRunner",
    "RunConfig",
    "RunResult",
    "resolve_run_config",
    "run_performance_test",
]
