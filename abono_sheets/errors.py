"""
Error taxonomy for abono-sheets.

Fatal conditions are exceptions (the file's pipeline stops). Soft conditions
never raise: they travel as warning codes on the parse result so a two-file
combination can still proceed with whichever file succeeded.
"""

from __future__ import annotations

from typing import Any


class AbonoSheetsError(Exception):
    """Base class for every fatal pipeline error."""

    code = "ABONO_SHEETS_ERROR"

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class UnsupportedFormat(AbonoSheetsError):
    code = "UNSUPPORTED_FORMAT"


class EmptyFile(AbonoSheetsError):
    code = "EMPTY_FILE"


class CorruptFile(AbonoSheetsError):
    """The container could not be opened.

    ``kind`` is ``"damaged"`` when the bytes carry a spreadsheet signature but
    the structure is broken (truncated zip, bad OLE stream), and
    ``"not_spreadsheet"`` when they do not look like a workbook at all.
    """

    code = "CORRUPT_FILE"

    DAMAGED = "damaged"
    NOT_SPREADSHEET = "not_spreadsheet"

    def __init__(self, message: str, kind: str = DAMAGED) -> None:
        super().__init__(message)
        self.kind = kind


class ConfigError(AbonoSheetsError):
    code = "CONFIG_ERROR"


class AuthError(AbonoSheetsError):
    code = "AUTH_ERROR"


# ══════════════════════════════════════════════════════════════════════════════
# SOFT CONDITIONS
# ══════════════════════════════════════════════════════════════════════════════

NO_RECOGNIZED_LAYOUT = "NO_RECOGNIZED_LAYOUT"
EMPTY_EXTRACTION = "EMPTY_EXTRACTION"
LAYOUT_A_HEADER_FALLBACK = "LAYOUT_A_HEADER_FALLBACK"

WARNING_DEFINITIONS = {
    NO_RECOGNIZED_LAYOUT: {
        "severity": "warning",
        "message": (
            "No known report layout was recognised; the file was read with the "
            "permissive layout. Check the record count before using the result."
        ),
    },
    EMPTY_EXTRACTION: {
        "severity": "warning",
        "message": (
            "The file was processed but no data rows were found. "
            "Inspect the source file."
        ),
    },
    LAYOUT_A_HEADER_FALLBACK: {
        "severity": "info",
        "message": (
            "The expected header row was not found; a keyword-matched row was "
            "used as the header instead."
        ),
    },
}


def build_warning(code: str, **evidence: Any) -> dict[str, Any]:
    definition = WARNING_DEFINITIONS[code]
    return {
        "code": code,
        "severity": definition["severity"],
        "message": definition["message"],
        "evidence": evidence,
    }
