"""
reader.py: Workbook reader for abono-sheets

Supports: .xls (xlrd engine) .xlsx .xlsm (openpyxl engine)

Public API:
    sheets = read_workbook(data, "reporte.xlsx")
    sheets[0].rows   # list of rows, each a list of cell values

Every worksheet is returned verbatim, leading blank rows included, so the
header search downstream sees the same row numbers a user sees in Excel
(0-based).
"""

from __future__ import annotations

import io
import logging
from pathlib import PurePath
from typing import Optional

import pandas as pd

from abono_sheets.errors import CorruptFile, EmptyFile, UnsupportedFormat
from abono_sheets.models import Cell, RawSheet
from abono_sheets.text import cell_text, normalize_scalar

logger = logging.getLogger(__name__)

# ── Format groups ──────────────────────────────────────────────────────────────
ENGINES = {
    ".xls": "xlrd",
    ".xlsx": "openpyxl",
    ".xlsm": "openpyxl",
}
MIME_TYPES = {
    "application/vnd.ms-excel": ".xls",
    "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet": ".xlsx",
    "application/vnd.ms-excel.sheet.macroenabled.12": ".xlsm",
}
# The upload surface only offers the two formats the banks actually issue.
UPLOAD_EXTENSIONS = (".xls", ".xlsx")

ZIP_SIGNATURE = b"PK\x03\x04"
OLE2_SIGNATURE = b"\xd0\xcf\x11\xe0\xa1\xb1\x1a\xe1"
SIGNATURES = {
    ".xls": OLE2_SIGNATURE,
    ".xlsx": ZIP_SIGNATURE,
    ".xlsm": ZIP_SIGNATURE,
}


def resolve_extension(file_name: str, content_type: Optional[str] = None) -> str:
    """Extension first, MIME type second. Raises UnsupportedFormat."""
    suffix = PurePath(file_name or "").suffix.lower()
    if suffix in ENGINES:
        return suffix
    if content_type:
        mapped = MIME_TYPES.get(content_type.split(";")[0].strip().lower())
        if mapped:
            return mapped
    supported = ", ".join(sorted(ENGINES))
    shown = suffix or content_type or "(none)"
    raise UnsupportedFormat(f"Unsupported format '{shown}'. Supported: {supported}")


def is_supported_upload(file_name: str, content_type: Optional[str] = None) -> bool:
    try:
        suffix = resolve_extension(file_name, content_type)
    except UnsupportedFormat:
        return False
    return suffix in UPLOAD_EXTENSIONS


def _classify_failure(data: bytes, suffix: str, exc: Exception) -> CorruptFile:
    expected = SIGNATURES[suffix]
    if data.startswith(expected):
        return CorruptFile(
            f"The {suffix} workbook is damaged and could not be opened: {exc}",
            kind=CorruptFile.DAMAGED,
        )
    if suffix == ".xls" and data.startswith(ZIP_SIGNATURE):
        return CorruptFile(
            "This .xls file is really an .xlsx workbook. Rename it to .xlsx, "
            "or open it in Excel and save it as 'Excel 97-2003 Workbook'.",
            kind=CorruptFile.NOT_SPREADSHEET,
        )
    if suffix != ".xls" and data.startswith(OLE2_SIGNATURE):
        return CorruptFile(
            f"This {suffix} file is really a legacy .xls workbook (or is password "
            "protected). Rename it to .xls, or re-save it as .xlsx.",
            kind=CorruptFile.NOT_SPREADSHEET,
        )
    return CorruptFile(
        f"The file is not a valid Excel workbook ({suffix}).",
        kind=CorruptFile.NOT_SPREADSHEET,
    )


def _to_cell(value: object) -> Cell:
    normalized = normalize_scalar(value)
    if normalized is None or isinstance(normalized, (str, int, float)):
        return normalized
    # Dates, times and booleans are rendered as text.
    return cell_text(normalized)


def read_workbook(
    data: bytes,
    file_name: str,
    content_type: Optional[str] = None,
) -> list[RawSheet]:
    """
    Read every worksheet of an Excel workbook held in memory.

    Raises:
        UnsupportedFormat  unknown extension and MIME type.
        EmptyFile          zero bytes, or no sheet holds any value.
        CorruptFile        the container could not be opened.
    """
    suffix = resolve_extension(file_name, content_type)
    if not data:
        raise EmptyFile(f"'{file_name}' is empty (0 bytes).")

    engine = ENGINES[suffix]
    try:
        with pd.ExcelFile(io.BytesIO(data), engine=engine) as xf:
            sheets = []
            for name in xf.sheet_names:
                frame = xf.parse(name, header=None, dtype=object)
                rows = [[_to_cell(value) for value in row] for row in frame.itertuples(index=False, name=None)]
                sheets.append(RawSheet(name=str(name), rows=rows))
    except Exception as exc:
        error = _classify_failure(data, suffix, exc)
        logger.debug("could not open %s (%s): %s", file_name, error.kind, exc)
        raise error from exc

    if not sheets or all(sheet.is_empty() for sheet in sheets):
        raise EmptyFile(f"'{file_name}' has no data in any worksheet.")

    logger.debug(
        "read %s: %d sheet(s) %s",
        file_name,
        len(sheets),
        [(sheet.name, len(sheet.rows)) for sheet in sheets],
    )
    return sheets
