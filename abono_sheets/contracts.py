"""Versioned contracts for machine-readable abono-sheets outputs."""

from __future__ import annotations

from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Optional

from abono_sheets import __version__
from abono_sheets.models import CombinedResult, ParseResult

CONTRACT_VERSIONS = {
    "abono_sheets.parse": "1.0.0",
    "abono_sheets.combined": "1.0.0",
}


def utc_now_iso() -> str:
    return datetime.now(timezone.utc).replace(microsecond=0).isoformat().replace("+00:00", "Z")


def build_contract(name: str) -> dict[str, str]:
    version = CONTRACT_VERSIONS[name]
    return {"name": name, "version": version}


def build_run_summary(
    *,
    tool: str,
    command: str,
    inputs: list[Path],
    status: str = "ok",
    outputs: Optional[list[Path]] = None,
    metrics: Optional[dict[str, Any]] = None,
    warnings: Optional[list[str]] = None,
) -> dict[str, Any]:
    return {
        "tool": tool,
        "command": command,
        "status": status,
        "generated_at": utc_now_iso(),
        "input_files": [str(path) for path in inputs],
        "output_files": [str(path) for path in outputs or []],
        "warnings_count": len(warnings or []),
        "warnings": list(warnings or []),
        "metrics": metrics or {},
    }


def parse_contract(result: ParseResult, input_path: Path, outputs: Optional[list[Path]] = None) -> dict[str, Any]:
    contract = build_contract("abono_sheets.parse")
    payload = result.to_dict()
    payload.update(
        {
            "contract": contract,
            "schema_version": contract["version"],
            "tool_version": __version__,
            "run_summary": build_run_summary(
                tool="abono-sheets",
                command="parse",
                inputs=[input_path],
                status="warning" if result.warnings else "ok",
                outputs=outputs,
                metrics={
                    "records": len(result.records),
                    "header_row_index": result.header_row_index,
                    "low_confidence": result.low_confidence,
                },
                warnings=result.warning_codes,
            ),
        }
    )
    return payload


def combined_contract(
    combined: CombinedResult,
    input_paths: list[Path],
    outputs: Optional[list[Path]] = None,
) -> dict[str, Any]:
    contract = build_contract("abono_sheets.combined")
    payload = combined.to_dict()
    codes = [warning["code"] for warning in combined.warnings]
    payload.update(
        {
            "contract": contract,
            "schema_version": contract["version"],
            "tool_version": __version__,
            "run_summary": build_run_summary(
                tool="abono-sheets",
                command="combine",
                inputs=input_paths,
                status="warning" if codes else "ok",
                outputs=outputs,
                metrics={"records": combined.total_records, "sources": len(combined.sources)},
                warnings=codes,
            ),
        }
    )
    return payload
