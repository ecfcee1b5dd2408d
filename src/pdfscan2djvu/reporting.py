"""Run summary and JSON report generation for pdfscan2djvu."""

from __future__ import annotations

from dataclasses import asdict, is_dataclass
from datetime import datetime, timezone
import getpass
import json
from pathlib import Path
import platform
import sys
from typing import Any

import pypdf

from pdfscan2djvu.models import ConversionConfig, ConversionResult, JSONValue, RunReport


def build_run_report(config: ConversionConfig, result: ConversionResult) -> RunReport:
    """Build a run report with environment metadata."""
    now_utc = datetime.now(timezone.utc)
    now_local = now_utc.astimezone()
    return RunReport(
        timestamp_local=now_local.isoformat(),
        timestamp_utc=now_utc.isoformat(),
        user=getpass.getuser(),
        host=platform.node(),
        python_version=sys.version.split()[0],
        pypdf_version=pypdf.__version__,
        config=config,
        result=result,
        totals=_build_totals(result),
    )


def write_run_report(report: RunReport, report_path: Path) -> Path:
    report_path.parent.mkdir(parents=True, exist_ok=True)
    report_path.write_text(
        json.dumps(run_report_to_dict(report), indent=2, sort_keys=True) + "\n",
        encoding="utf-8",
    )
    return report_path


def run_report_to_dict(report: RunReport) -> dict[str, JSONValue]:
    """Convert a run report to a JSON-serializable dictionary."""
    serialized = _serialize_value(report)
    if not isinstance(serialized, dict):
        raise TypeError("RunReport serialization must produce a dictionary.")
    return serialized


def size_ratio_text(input_size: int, output_size: int) -> str:
    """Describe the output size relative to the input, e.g. ``(x2.50 reduction)``."""
    if 0 < output_size < input_size:
        return f"(x{input_size / output_size:.2f} reduction)"
    if input_size == 0:
        return "(input is empty)"
    return f"(x{output_size / input_size:.2f} increase)"


def summary_lines(result: ConversionResult) -> list[str]:
    return [
        "Summary:",
        f"    PDF size: {result.input_size}, DjVu size: {result.output_size} "
        f"{size_ratio_text(result.input_size, result.output_size)}.",
        f"    '{result.output_path}' is ready ({result.pages_output} pages).",
    ]


def _build_totals(result: ConversionResult) -> dict[str, int]:
    totals = {
        "pages_source": result.pages_source,
        "pages_deleted": result.pages_deleted,
        "pages_inserted": result.pages_inserted,
        "pages_output": result.pages_output,
        "input_size": result.input_size,
        "output_size": result.output_size,
        "bilevel_pages": 0,
        "grayscale_pages": 0,
        "color_pages": 0,
        "passthrough_pages": 0,
    }
    for outcome in result.outcomes:
        key = f"{outcome.action}_pages"
        if key in totals:
            totals[key] += outcome.output_pages
    return totals


def _serialize_value(value: Any) -> JSONValue:
    if is_dataclass(value) and not isinstance(value, type):
        return {
            str(key): _serialize_value(item)
            for key, item in asdict(value).items()
        }
    if isinstance(value, Path):
        return str(value)
    if isinstance(value, dict):
        return {
            str(key): _serialize_value(item)
            for key, item in value.items()
        }
    if isinstance(value, (list, tuple)):
        return [_serialize_value(item) for item in value]
    if isinstance(value, (str, int, float, bool)) or value is None:
        return value
    return str(value)
