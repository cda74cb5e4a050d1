from perfgate.assertions.engine import AssertionEngine, AssertionReport, MetricCheck
from perfgate.assertions.report import build_results_payload, generate_artifact_name, log_results_table

__all__ = [
    "AssertionEngine",
    "AssertionReport",
    "MetricCheck",
    "build_results_payload",
    "generate_artifact_name",
    "log_results_table",
]
