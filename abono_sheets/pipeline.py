"""
pipeline.py: One call per uploaded file.

    result = parse_file(data, "abonos_bcp.xlsx")
    combined = combine_results(result_bbva, result_bcp)

Reader failures (unsupported, corrupt, empty) raise and stop that file.
Everything after the reader reports problems as warnings on the result.
"""

from __future__ import annotations

import logging
from dataclasses import replace
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional, Union

from abono_sheets.config import DEFAULT_CONFIG, ParserConfig
from abono_sheets.detector import detect_layout
from abono_sheets.diagnostics import DiagnosticSink, EventLog
from abono_sheets.errors import EMPTY_EXTRACTION, NO_RECOGNIZED_LAYOUT, build_warning
from abono_sheets.extractor import extract_rows
from abono_sheets.headers import build_field_map, resolve_headers
from abono_sheets.models import CombinedResult, LayoutTag, ParseResult
from abono_sheets.normalizer import normalize
from abono_sheets.reader import read_workbook

logger = logging.getLogger(__name__)


def parse_file(
    data: bytes,
    file_name: str,
    hint: Union[LayoutTag, str, None] = None,
    bank_override: Optional[str] = None,
    config: Optional[ParserConfig] = None,
    sink: Optional[DiagnosticSink] = None,
    content_type: Optional[str] = None,
) -> ParseResult:
    config = config or DEFAULT_CONFIG
    events = EventLog(forward=sink)

    sheets = read_workbook(data, file_name, content_type)
    detection = detect_layout(sheets, hint=hint, config=config, sink=events)
    layout = detection.layout
    sheet = sheets[detection.sheet_index]

    warnings = []
    if not detection.confident:
        warnings.append(build_warning(NO_RECOGNIZED_LAYOUT, sheet=sheet.name))

    resolution = resolve_headers(sheet.rows, layout, config=config, sink=events)
    warnings.extend(resolution.warnings)

    field_map = build_field_map(resolution.headers, layout)
    extraction = extract_rows(
        sheet.rows,
        resolution.header_row_index,
        layout,
        headers=resolution.headers,
        field_map=field_map,
        config=config,
        sink=events,
    )
    records = normalize(
        extraction.rows,
        layout,
        file_name,
        bank_override=bank_override,
        field_map=field_map,
        config=config,
        sink=events,
    )
    if not records:
        warnings.append(
            build_warning(
                EMPTY_EXTRACTION,
                sheet=sheet.name,
                header_row_index=resolution.header_row_index,
                extracted_rows=extraction.row_count,
            )
        )

    logger.info(
        "%s: %s via %s, sheet '%s', header row %d, %d record(s)",
        file_name,
        layout.value,
        detection.source,
        sheet.name,
        resolution.header_row_index,
        len(records),
    )
    return ParseResult(
        file_name=file_name,
        layout=layout,
        layout_source=detection.source,
        sheet_name=sheet.name,
        header_row_index=resolution.header_row_index,
        headers=extraction.headers,
        field_map=field_map,
        records=records,
        warnings=warnings,
        low_confidence=not detection.confident,
        events=[event.to_dict() for event in events.events],
    )


def parse_path(path: Union[str, Path], **kwargs) -> ParseResult:
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"File not found: {path}")
    return parse_file(path.read_bytes(), path.name, **kwargs)


def combine_results(
    *results: Optional[ParseResult],
    processed_at: Optional[datetime] = None,
) -> CombinedResult:
    """
    Merge parse results in slot order. A missing slot (None) is skipped.
    Ids already carry the file name; a file name seen twice gets a
    ``(n)`` suffix on its second source so ids stay unique.
    """
    records = []
    sources: list[str] = []
    warnings = []
    seen: dict[str, int] = {}
    for result in results:
        if result is None:
            continue
        seen[result.file_name] = seen.get(result.file_name, 0) + 1
        occurrence = seen[result.file_name]
        sources.append(result.file_name)
        for record in result.records:
            if occurrence > 1:
                suffix = record.id[len(result.file_name):]
                record = replace(record, id=f"{result.file_name}({occurrence}){suffix}")
            records.append(record)
        for warning in result.warnings:
            warnings.append({**warning, "source": result.file_name})

    return CombinedResult(
        records=records,
        sources=sources,
        processed_at=processed_at or datetime.now(timezone.utc),
        warnings=warnings,
    )
