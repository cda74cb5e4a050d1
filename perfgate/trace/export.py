"""
Trace export - write captured timeline events as a JSON file loadable in
Chrome DevTools / Perfetto.

File format:
    {"traceEvents": [...], "metadata": {"capturedAt": ISO-8601, "testName": str, "source": "perfgate"}}
"""

import json
import logging
import re
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

from perfgate.features.trace_capture import TraceCaptureResult
from perfgate.features.utils import TraceEvent

logger = logging.getLogger(__name__)

TRACE_SOURCE = "perfgate"


@dataclass(frozen=True)
class TraceExportConfig:
    enabled: bool = False
    output_path: Optional[Path] = None


def resolve_trace_export_config(config: Union[bool, str, None]) -> TraceExportConfig:
    """False/None disables, True uses a generated path, a string is the output path."""
    if config is None or config is False:
        return TraceExportConfig(enabled=False)
    if config is True:
        return TraceExportConfig(enabled=True)
    return TraceExportConfig(enabled=True, output_path=Path(config))


def format_trace_for_export(events: List[TraceEvent], test_name: str) -> Dict[str, Any]:
    return {
        "traceEvents": events,
        "metadata": {
            "capturedAt": datetime.now(timezone.utc).isoformat(),
            "testName": test_name,
            "source": TRACE_SOURCE,
        },
    }


def sanitize_name(name: str) -> str:
    """Lowercase, spaces to dashes, drop everything else: "Load Test!" -> "load-test"."""
    return re.sub(r"[^a-z0-9-]", "", re.sub(r"\s+", "-", name.lower()))


def generate_trace_output_path(test_name: str, output_dir: Path, config: TraceExportConfig) -> Path:
    if config.output_path is not None:
        return config.output_path
    return Path(output_dir) / f"{sanitize_name(test_name)}-trace.json"


def write_trace_file(output_path: Path, trace_data: Dict[str, Any]) -> None:
    output_path.parent.mkdir(parents=True, exist_ok=True)
    with open(output_path, "w", encoding="utf-8") as f:
        json.dump(trace_data, f, indent=2)


def export_trace(
    result: TraceCaptureResult,
    test_name: str,
    output_dir: Path,
    config: TraceExportConfig,
) -> Optional[Path]:
    """
    Write the trace if export is enabled and events were captured.

    A failed write is logged and yields None; the test verdict does not depend
    on the export.
    """
    if not config.enabled or result.event_count == 0:
        return None

    output_path = generate_trace_output_path(test_name, output_dir, config)
    try:
        write_trace_file(output_path, format_trace_for_export(result.events, test_name))
    except OSError as e:
        logger.error(f"[TraceExport] Failed to write {output_path}: {e}")
        return None

    logger.info(f"[TraceExport] Trace exported: {output_path} ({result.event_count} events)")
    return output_path
