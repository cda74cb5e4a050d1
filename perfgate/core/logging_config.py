"""
Centralized Logging Configuration for perfgate

Harness runs log to the console and to one rotating file so a CI job's
performance verdicts can be inspected after the fact:

    logs/perfgate/system.log - All Python logging from the harness (rotating)

Usage in any module:
    from perfgate.core.logging_config import setup_logging, get_logger

    # Call once per test session (conftest.py or a CI entry point)
    setup_logging()

    # Get a logger for your module
    logger = get_logger(__name__)
    logger.info("My message")

Debugging:
    # Watch a run in real-time:
    tail -f logs/perfgate/system.log
"""

import logging
import sys
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Iterable, Optional

from perfgate.core.config import get_settings
from perfgate.core.formatters import format_duration

# =============================================================================
# Configuration
# =============================================================================

LOG_DIR = Path("logs/perfgate")
SYSTEM_LOG_FILE = LOG_DIR / "system.log"
MAX_LOG_SIZE = 10 * 1024 * 1024  # 10 MB per file
BACKUP_COUNT = 5  # Keep 5 rotated files

# Log format with timestamp, level, component, and message
LOG_FORMAT = "%(asctime)s | %(levelname)-5s | %(name)-30s | %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

# Simplified format for console
CONSOLE_FORMAT = "%(asctime)s | %(levelname)-5s | %(name)-20s | %(message)s"
CONSOLE_DATE_FORMAT = "%H:%M:%S"

# =============================================================================
# Global State
# =============================================================================

_logging_configured = False
_file_handler: Optional[RotatingFileHandler] = None


# =============================================================================
# Setup Functions
# =============================================================================


def setup_logging(
    level: Optional[str] = None,
    log_to_console: bool = True,
    log_to_file: bool = True,
    service_name: str = "perfgate",
) -> None:
    """
    Configure unified logging for perfgate runs.

    Safe to call more than once; only the first call configures handlers.

    Args:
        level: Log level (DEBUG, INFO, WARNING, ERROR). Defaults to settings.log_level (PERFGATE_LOG_LEVEL).
        log_to_console: Whether to also log to stdout (default True)
        log_to_file: Whether to log to system.log file (default True)
        service_name: Identifier written in the startup marker
    """
    global _logging_configured, _file_handler

    if _logging_configured:
        return

    if level is None:
        level = get_settings().log_level
    log_level = getattr(logging, level.upper(), logging.INFO)

    root_logger = logging.getLogger()
    root_logger.setLevel(log_level)

    # Remove any existing handlers (prevents duplicates)
    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    # === File Handler (system.log) ===
    if log_to_file:
        LOG_DIR.mkdir(parents=True, exist_ok=True)
        _file_handler = RotatingFileHandler(
            SYSTEM_LOG_FILE,
            maxBytes=MAX_LOG_SIZE,
            backupCount=BACKUP_COUNT,
            encoding="utf-8",
        )
        _file_handler.setLevel(log_level)
        _file_handler.setFormatter(logging.Formatter(LOG_FORMAT, DATE_FORMAT))
        root_logger.addHandler(_file_handler)

    # === Console Handler (stdout) ===
    if log_to_console:
        console_handler = logging.StreamHandler(sys.stdout)
        console_handler.setLevel(log_level)
        console_handler.setFormatter(logging.Formatter(CONSOLE_FORMAT, CONSOLE_DATE_FORMAT))
        root_logger.addHandler(console_handler)

    # === Reduce noise from chatty libraries ===
    logging.getLogger("asyncio").setLevel(logging.WARNING)
    logging.getLogger("playwright").setLevel(logging.WARNING)

    _logging_configured = True

    logger = logging.getLogger(service_name)
    logger.info("=" * 60)
    logger.info(f"LOGGING INITIALIZED - {service_name.upper()}")
    if log_to_file:
        logger.info(f"Log file: {SYSTEM_LOG_FILE.absolute()}")
    logger.info(f"Log level: {level.upper()}")
    logger.info("=" * 60)


def get_logger(name: str) -> logging.Logger:
    """
    Get a logger for a module.

    Args:
        name: Usually __name__ to get the module's dotted path

    Returns:
        Logger instance
    """
    return logging.getLogger(name)


def get_system_log_path() -> Path:
    """Get the path to the system log file."""
    return SYSTEM_LOG_FILE


# =============================================================================
# Convenience Functions
# =============================================================================


def log_test_start(logger: logging.Logger, test_name: str, iterations: int, warmup: bool):
    """Log the start of a performance test with standard format."""
    logger.info(
        f"[{test_name}] TEST START | iterations={iterations} | warmup={'yes' if warmup else 'no'}"
    )


def log_test_end(logger: logging.Logger, test_name: str, passed: bool, elapsed_ms: float):
    """Log the end of a performance test with standard format."""
    status = "PASSED" if passed else "FAILED"
    logger.info(f"[{test_name}] TEST END | {status} | elapsed={format_duration(elapsed_ms)}")


def log_iteration(logger: logging.Logger, index: int, total: int, is_warmup: bool = False):
    """Log an iteration boundary."""
    if is_warmup:
        logger.info("[IterationRunner] WARMUP | result will be discarded")
    else:
        logger.info(f"[IterationRunner] ITERATION {index}/{total}")


def log_features_reset(logger: logging.Logger, names: Iterable[str]):
    """Log the features reset between iterations."""
    names = list(names)
    if names:
        logger.info(f"[IterationRunner] Reset features: {', '.join(names)}")
    else:
        logger.debug("[IterationRunner] No active features to reset")
