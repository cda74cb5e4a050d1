"""
Threshold Calculator - buffered bounds and percentiles.

Buffers are percentages. Max-style metrics (durations, counts, growth) get the
buffer added; min-style metrics (fps) get it subtracted.

Usage:
    effective_threshold(100, 20)            # 120.0
    effective_threshold(3, 20, round_up=True)  # 4
    effective_min_threshold(60, 20)         # 48.0
    calculate_percentile([100, 200, 300], 95)  # 300
"""

import math
from typing import Optional, Sequence

from perfgate.core.exceptions import InvalidThresholdError


def _validate(base: float, buffer_percent: float) -> None:
    if base < 0:
        raise InvalidThresholdError(f"Threshold must be non-negative, got {base}", value=base)
    if buffer_percent < 0 or buffer_percent > 100:
        raise InvalidThresholdError(
            f"Buffer percent must be between 0 and 100, got {buffer_percent}",
            value=buffer_percent,
        )


def effective_threshold(base: float, buffer_percent: float, round_up: bool = False) -> float:
    """Upper bound for a max-style metric: base * (1 + buffer/100)."""
    _validate(base, buffer_percent)
    value = base * (1 + buffer_percent / 100)
    return math.ceil(value) if round_up else value


def effective_min_threshold(base: float, buffer_percent: float, round_down: bool = False) -> float:
    """Lower bound for a min-style metric: base * (1 - buffer/100)."""
    _validate(base, buffer_percent)
    value = base * (1 - buffer_percent / 100)
    return math.floor(value) if round_down else value


def calculate_percentile(values: Sequence[float], percentile: float) -> Optional[float]:
    """
    Nearest-rank percentile.

    Sorts ascending and picks index ceil(p * N / 100) - 1, clamped to [0, N-1].
    Dividing last keeps the rank exact for integer percentiles.
    Returns None for an empty sequence; callers omit the statistic.
    """
    if percentile < 0 or percentile > 100:
        raise InvalidThresholdError(
            f"Percentile must be between 0 and 100, got {percentile}",
            value=percentile,
        )
    if not values:
        return None
    ordered = sorted(values)
    index = math.ceil(percentile * len(ordered) / 100) - 1
    index = max(0, min(index, len(ordered) - 1))
    return ordered[index]
