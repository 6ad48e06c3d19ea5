"""
extractor.py: Data-region boundaries and row materialisation.

Layout A: rows after the header up to the first footer sentinel row
("Estimado cliente:"), capped at ``layout_a_max_data_rows``. A row is kept
when its "No." cell (or, lacking that column, its first filled cell) is a
sequence number, or when any key column is filled.

Layout B: rows after the header to the end of the sheet. Duplicate columns
are merged and any filled cell keeps the row.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Optional

from abono_sheets.config import DEFAULT_CONFIG, ParserConfig
from abono_sheets.diagnostics import DiagnosticSink, emit
from abono_sheets.duplicates import merge_row, resolve_duplicates
from abono_sheets.headers import build_field_map, clean_headers, row_cells
from abono_sheets.layouts import contains_sentinel, profile_for, sequence_column
from abono_sheets.models import Cell, ExtractedRow, FieldMap, HeaderRow, LayoutTag

logger = logging.getLogger(__name__)

STAGE = "extractor"


@dataclass
class Extraction:
    rows: list[ExtractedRow]
    headers: HeaderRow
    data_start: int
    data_end: int
    footer_row_index: Optional[int] = None
    field_map: FieldMap = field(default_factory=dict)

    @property
    def row_count(self) -> int:
        return len(self.rows)


def find_data_end(
    grid: list[list[Cell]],
    header_row_index: int,
    layout: LayoutTag,
    config: ParserConfig = DEFAULT_CONFIG,
) -> tuple[int, Optional[int]]:
    """Return (exclusive end row, footer sentinel row or None)."""
    start = header_row_index + 1
    if not profile_for(layout).uses_footer_sentinel:
        return len(grid), None

    limit = min(len(grid), start + config.layout_a_max_data_rows)
    for idx in range(start, limit):
        if contains_sentinel(row_cells(grid[idx]), config.footer_sentinels):
            return idx, idx
    return limit, None


def _pad(cells: list[str], width: int) -> list[str]:
    if len(cells) < width:
        return cells + [""] * (width - len(cells))
    return cells[:width]


def extract_rows(
    grid: list[list[Cell]],
    header_row_index: int,
    layout: LayoutTag,
    headers: Optional[HeaderRow] = None,
    field_map: Optional[FieldMap] = None,
    config: ParserConfig = DEFAULT_CONFIG,
    sink: Optional[DiagnosticSink] = None,
) -> Extraction:
    profile = profile_for(layout)
    if headers is None:
        headers = clean_headers(grid[header_row_index]) if header_row_index < len(grid) else []
    if field_map is None:
        field_map = build_field_map(headers, layout)

    data_start = header_row_index + 1
    data_end, footer_row = find_data_end(grid, header_row_index, layout, config)
    width = len(headers)

    rows: list[ExtractedRow] = []
    skipped = 0
    if profile.merges_duplicate_columns:
        logical, remap = resolve_duplicates(headers)
        for raw in grid[data_start:data_end]:
            cells = _pad(row_cells(raw), width)
            if not profile.include_row(cells, []):
                skipped += 1
                continue
            rows.append(merge_row(cells, remap))
    else:
        logical = list(dict.fromkeys(headers))
        # A repeated label keeps its last column.
        last_index = {label: idx for idx, label in enumerate(headers)}
        key_columns = [last_index[field_map[name]] for name in profile.key_fields if name in field_map]
        sequence_col = sequence_column(headers)
        for raw in grid[data_start:data_end]:
            cells = _pad(row_cells(raw), width)
            if not any(cells) or not profile.include_row(cells, key_columns, sequence_col):
                skipped += 1
                continue
            rows.append(dict(zip(headers, cells)))

    emit(
        sink,
        STAGE,
        "rows extracted",
        level=logging.INFO,
        layout=layout.value,
        data_start=data_start,
        data_end=data_end,
        footer_row_index=footer_row,
        extracted=len(rows),
        skipped=skipped,
    )
    return Extraction(
        rows=rows,
        headers=logical,
        data_start=data_start,
        data_end=data_end,
        footer_row_index=footer_row,
        field_map=field_map,
    )
