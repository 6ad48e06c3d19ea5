"""Decide which sheet holds the report and which layout it follows."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional, Union

from abono_sheets.config import DEFAULT_CONFIG, ParserConfig
from abono_sheets.diagnostics import DiagnosticSink, emit
from abono_sheets.layouts import (
    DETECTION_KEYWORDS,
    has_keywords,
    matches_layout_a_signature,
    matches_layout_b_signature,
)
from abono_sheets.models import LayoutTag, RawSheet
from abono_sheets.text import cell_text

logger = logging.getLogger(__name__)

STAGE = "detector"

SOURCE_HINT = "hint"
SOURCE_SIGNATURE = "signature"
SOURCE_KEYWORDS = "keywords"
SOURCE_DEFAULT = "default"


@dataclass(frozen=True)
class Detection:
    sheet_index: int
    layout: LayoutTag
    source: str
    confident: bool = True
    # Row that triggered the decision, when content-based.
    evidence_row: Optional[int] = None


def _first_non_empty(sheets: list[RawSheet]) -> int:
    for idx, sheet in enumerate(sheets):
        if not sheet.is_empty():
            return idx
    return 0


def _scan(sheets: list[RawSheet], limit: int):
    for sheet_index, sheet in enumerate(sheets):
        for row_index, row in enumerate(sheet.rows[:limit]):
            yield sheet_index, row_index, [cell_text(cell) for cell in row]


SIGNATURES = {
    LayoutTag.LAYOUT_A: matches_layout_a_signature,
    LayoutTag.LAYOUT_B: matches_layout_b_signature,
}


def _locate_hinted(sheets: list[RawSheet], layout: LayoutTag, limit: int) -> tuple[int, Optional[int]]:
    """Sheet holding the hinted layout: its signature, then keywords, then the first non-empty sheet."""
    matches = SIGNATURES[layout]
    for sheet_index, row_index, cells in _scan(sheets, limit):
        if matches(cells):
            return sheet_index, row_index
    for sheet_index, row_index, cells in _scan(sheets, limit):
        if has_keywords(cells, DETECTION_KEYWORDS):
            return sheet_index, row_index
    return _first_non_empty(sheets), None


def detect_layout(
    sheets: list[RawSheet],
    hint: Union[LayoutTag, str, None] = None,
    config: ParserConfig = DEFAULT_CONFIG,
    sink: Optional[DiagnosticSink] = None,
) -> Detection:
    """
    A hint fixes the layout; the sheet is still searched for. Otherwise
    pass 1 looks for a strict layout signature, pass 2 for generic
    disbursement keywords, and the fallback is the first non-empty sheet
    read as Layout B with ``confident=False``.
    """
    tag = LayoutTag.coerce(hint)
    if tag is not None and tag != LayoutTag.UNKNOWN:
        sheet_index, row_index = _locate_hinted(sheets, tag, config.detect_scan_rows)
        emit(
            sink,
            STAGE,
            "layout taken from hint",
            level=logging.INFO,
            layout=tag.value,
            sheet_index=sheet_index,
            row_index=row_index,
        )
        return Detection(sheet_index, tag, SOURCE_HINT, evidence_row=row_index)

    for sheet_index, row_index, cells in _scan(sheets, config.detect_scan_rows):
        layout = None
        if matches_layout_a_signature(cells):
            layout = LayoutTag.LAYOUT_A
        elif matches_layout_b_signature(cells):
            layout = LayoutTag.LAYOUT_B
        if layout is not None:
            emit(
                sink,
                STAGE,
                "layout signature found",
                level=logging.INFO,
                layout=layout.value,
                sheet_index=sheet_index,
                row_index=row_index,
            )
            return Detection(sheet_index, layout, SOURCE_SIGNATURE, evidence_row=row_index)

    for sheet_index, row_index, cells in _scan(sheets, config.detect_scan_rows):
        if has_keywords(cells, DETECTION_KEYWORDS):
            emit(
                sink,
                STAGE,
                "generic header keywords found",
                level=logging.INFO,
                layout=LayoutTag.LAYOUT_B.value,
                sheet_index=sheet_index,
                row_index=row_index,
            )
            return Detection(sheet_index, LayoutTag.LAYOUT_B, SOURCE_KEYWORDS, evidence_row=row_index)

    fallback = _first_non_empty(sheets)
    emit(sink, STAGE, "no layout recognised; defaulting to layout B", level=logging.WARNING, sheet_index=fallback)
    return Detection(sheet_index=fallback, layout=LayoutTag.LAYOUT_B, source=SOURCE_DEFAULT, confident=False)
