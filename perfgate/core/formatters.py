"""Human-readable formatting for report and log output."""

from typing import Optional

_BYTE_UNITS = ("B", "KB", "MB", "GB")


def format_bytes(num_bytes: float, decimals: int = 2) -> str:
    """Format a byte count, e.g. 1536 -> "1.5 KB". Negative values keep their sign."""
    if num_bytes == 0:
        return "0 B"
    sign = "-" if num_bytes < 0 else ""
    value = abs(num_bytes)
    unit = 0
    while value >= 1024 and unit < len(_BYTE_UNITS) - 1:
        value /= 1024
        unit += 1
    text = f"{value:.{decimals}f}".rstrip("0").rstrip(".")
    return f"{sign}{text} {_BYTE_UNITS[unit]}"


def format_throughput(bytes_per_second: float) -> str:
    """Format a network throughput given in bytes/second ("unlimited" for -1)."""
    if bytes_per_second < 0:
        return "unlimited"
    kbps = bytes_per_second * 8 / 1024
    if kbps >= 1024:
        return f"{kbps / 1024:.1f} Mbps"
    return f"{round(kbps)} Kbps"


def format_duration(ms: Optional[float]) -> str:
    if ms is None:
        return "n/a"
    if ms >= 1000:
        return f"{ms / 1000:.2f}s"
    return f"{ms:.2f}ms"


def format_percent(value: Optional[float], decimals: int = 1) -> str:
    if value is None:
        return "n/a"
    return f"{value:.{decimals}f}%"


def format_number(value: Optional[float], decimals: int = 2) -> str:
    """Format a metric value for failure messages and tables (no trailing zeros)."""
    if value is None:
        return "n/a"
    if float(value).is_integer():
        return str(int(value))
    return f"{value:.{decimals}f}".rstrip("0").rstrip(".")
