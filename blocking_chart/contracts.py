"""Versioned contracts for machine-readable blocking-chart outputs."""

from __future__ import annotations

from datetime import datetime, timezone
from pathlib import Path
from typing import Any

from blocking_chart.parse_modules.shared import VALID_SOURCES

CONTRACT_VERSIONS = {
    "blocking_chart.rows": "1.0.0",
    "blocking_chart.shells": "1.0.0",
}
SCHEMA_VERSION = "1.0.0"

# "no_rows" means the input parsed but every row was noise or incomplete.
RUN_STATUSES = ("ok", "no_rows")


def utc_now_iso() -> str:
    return datetime.now(timezone.utc).replace(microsecond=0).isoformat().replace("+00:00", "Z")


def build_contract(name: str) -> dict[str, str]:
    return {"name": name, "version": CONTRACT_VERSIONS[name]}


def build_run_summary(
    *,
    tool: str,
    script: str,
    input_path: Path | str,
    source: str,
    sheet_name: str | None = None,
    status: str = "ok",
    output_path: Path | None = None,
    metrics: dict[str, Any] | None = None,
    warnings: list[str] | None = None,
) -> dict[str, Any]:
    """
    Describe one parse run.

    ``source`` is the engine mode the input went through ("paste" or "file");
    ``sheet_name`` is the workbook sheet that was read, if any.
    """
    if source not in VALID_SOURCES:
        raise ValueError(f"Unknown source '{source}'. Expected one of {VALID_SOURCES}")
    if status not in RUN_STATUSES:
        raise ValueError(f"Unknown run status '{status}'. Expected one of {RUN_STATUSES}")
    warnings = list(warnings or [])
    return {
        "tool": tool,
        "script": script,
        "status": status,
        "generated_at": utc_now_iso(),
        "input_file": str(input_path),
        "input_source": source,
        "sheet_name": sheet_name,
        "output_file": str(output_path) if output_path else None,
        "warnings_count": len(warnings),
        "warnings": warnings,
        "metrics": metrics or {},
    }
