"""
Iteration Runner - drives warmup and measured passes of one test.

State machine:
    IDLE -> WARMUP_RUNNING -> MEASURED_RUNNING (xN) -> AGGREGATING -> DONE
                        any pass raising -> FAILED

Passes run strictly one after another: throttling and tracing are global to
the page, so overlapping passes would corrupt each other's samples.

Usage:
    runner = IterationRunner(iterations=3, warmup=True, coordination=coordination)
    metrics = await runner.run(execute_pass)   # execute_pass(index, is_warmup) -> IterationResult
"""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Awaitable, Callable, List, Optional

from perfgate.core.exceptions import ConfigurationError
from perfgate.core.logging_config import log_features_reset, log_iteration
from perfgate.features.coordination import FeatureCoordination
from perfgate.iterations.stats import aggregate_iteration_results
from perfgate.iterations.types import IterationMetrics, IterationResult

logger = logging.getLogger(__name__)

PassFn = Callable[[int, bool], Awaitable[IterationResult]]


class RunnerState(str, Enum):
    IDLE = "idle"
    WARMUP_RUNNING = "warmup_running"
    MEASURED_RUNNING = "measured_running"
    AGGREGATING = "aggregating"
    DONE = "done"
    FAILED = "failed"


@dataclass(frozen=True)
class IterationPlan:
    """
    How many passes run and how many count.

    With warmup, the first of the configured iterations is the warmup pass.
    A single configured iteration gets an extra warmup pass in front of it so
    there is always at least one counted pass.
    """

    total_passes: int
    counted: int
    warmup: bool

    @classmethod
    def create(cls, iterations: int, warmup: bool) -> "IterationPlan":
        if iterations < 1:
            raise ConfigurationError(
                f"iterations must be >= 1, got {iterations}",
                context={"iterations": iterations},
            )
        if not warmup:
            return cls(total_passes=iterations, counted=iterations, warmup=False)
        if iterations == 1:
            return cls(total_passes=2, counted=1, warmup=True)
        return cls(total_passes=iterations, counted=iterations - 1, warmup=True)


class IterationRunner:
    """Runs the passes of one test and aggregates the counted ones."""

    def __init__(
        self,
        iterations: int,
        warmup: bool,
        coordination: FeatureCoordination,
        between_iterations: Optional[Callable[[], Awaitable[None]]] = None,
    ):
        """
        Args:
            iterations: Configured iteration count (>= 1)
            warmup: Discard the first pass
            coordination: Handles reset between passes
            between_iterations: Hook awaited before the reset (e.g. navigate to about:blank)
        """
        self.plan = IterationPlan.create(iterations, warmup)
        self.coordination = coordination
        self._between_iterations = between_iterations
        self.state = RunnerState.IDLE
        self.results: List[IterationResult] = []
        self.reset_log: List[List[str]] = []

    async def run(self, execute_pass: PassFn) -> IterationMetrics:
        if self.state != RunnerState.IDLE:
            raise RuntimeError(f"IterationRunner already used (state={self.state.value})")

        try:
            for pass_number in range(self.plan.total_passes):
                if pass_number > 0:
                    await self._prepare_next_pass()

                is_warmup = self.plan.warmup and pass_number == 0
                index = pass_number if self.plan.warmup else pass_number + 1
                self.state = RunnerState.WARMUP_RUNNING if is_warmup else RunnerState.MEASURED_RUNNING
                log_iteration(logger, index, self.plan.counted, is_warmup)

                result = await execute_pass(index, is_warmup)
                self.results.append(result)
        except BaseException:
            self.state = RunnerState.FAILED
            logger.warning(
                f"[IterationRunner] Failed after {len(self.results)}/{self.plan.total_passes} passes"
            )
            raise

        self.state = RunnerState.AGGREGATING
        metrics = aggregate_iteration_results(self.results, discard_first=self.plan.warmup)
        self.state = RunnerState.DONE
        logger.info(
            f"[IterationRunner] Aggregated {metrics.iterations} iteration(s)"
            f"{' (warmup discarded)' if self.plan.warmup else ''}"
        )
        return metrics

    async def _prepare_next_pass(self) -> None:
        if self._between_iterations is not None:
            await self._between_iterations()
        names = await self.coordination.reset_all_active()
        self.reset_log.append(names)
        log_features_reset(logger, names)
