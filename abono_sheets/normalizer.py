"""Turn extracted rows into AbonoRecord objects."""

from __future__ import annotations

import logging
import re
from pathlib import PurePath
from typing import Optional

from abono_sheets.config import DEFAULT_CONFIG, ParserConfig
from abono_sheets.diagnostics import DiagnosticSink, emit
from abono_sheets.headers import build_field_map
from abono_sheets.models import AbonoRecord, ExtractedRow, FieldMap, LayoutTag
from abono_sheets.text import strip_dashes

logger = logging.getLogger(__name__)

STAGE = "normalizer"

DECIMAL_RE = re.compile(r"^[+-]?(\d+(\.\d*)?|\.\d+)([eE][+-]?\d+)?$")
DOC_PREFIX_RE = re.compile(r"^L\s*-\s*", re.IGNORECASE)
BANK_NAMES = ("BBVA", "BCP")
MISSING_DOCUMENT = "-"


def coerce_amount(value: object) -> float:
    """
    Strict decimal parsing. Thousands separators, currency symbols and text
    all yield 0.0.
    """
    if value is None or isinstance(value, bool):
        return 0.0
    if isinstance(value, (int, float)):
        return float(value) if value == value else 0.0
    text = str(value).strip()
    if not DECIMAL_RE.match(text):
        return 0.0
    return float(text)


def normalize_account(value: str) -> str:
    return strip_dashes(value.strip())


def strip_document_prefix(value: str) -> str:
    return DOC_PREFIX_RE.sub("", value.strip())


def infer_bank(source_file_name: str, bank_override: Optional[str] = None, default: str = "BCP") -> str:
    """Override first, then a bank name inside the file name, then the default."""
    if bank_override and bank_override.strip():
        return bank_override.strip().upper()
    stem = PurePath(source_file_name).name.lower()
    for name in BANK_NAMES:
        if name.lower() in stem:
            return name
    return default


def _value(row: ExtractedRow, field_map: FieldMap, field_name: str) -> str:
    label = field_map.get(field_name)
    if label is None:
        return ""
    return row.get(label, "").strip()


def _layout_a_record(row: ExtractedRow, field_map: FieldMap, config: ParserConfig, record_id: str, origin: str) -> AbonoRecord:
    documento = ""
    if config.layout_a_documents:
        documento = strip_document_prefix(_value(row, field_map, "documento"))
    return AbonoRecord(
        id=record_id,
        beneficiario=_value(row, field_map, "beneficiario"),
        documento=documento,
        monto=coerce_amount(_value(row, field_map, "monto")),
        cuenta_numero=normalize_account(_value(row, field_map, "cuenta_numero")),
        estado=_value(row, field_map, "estado"),
        banco=config.layout_a_bank,
        origen=origin,
    )


def _layout_b_record(row: ExtractedRow, field_map: FieldMap, bank: str, record_id: str, origin: str) -> AbonoRecord:
    return AbonoRecord(
        id=record_id,
        beneficiario=_value(row, field_map, "beneficiario"),
        documento_tipo=_value(row, field_map, "documento_tipo") or MISSING_DOCUMENT,
        documento=_value(row, field_map, "documento") or MISSING_DOCUMENT,
        monto_mn=coerce_amount(_value(row, field_map, "monto_mn")),
        monto=coerce_amount(_value(row, field_map, "monto")),
        cuenta_tipo=_value(row, field_map, "cuenta_tipo"),
        cuenta_numero=normalize_account(_value(row, field_map, "cuenta_numero")),
        estado=_value(row, field_map, "estado"),
        observaciones=_value(row, field_map, "observaciones"),
        banco=bank,
        origen=origin,
    )


def normalize(
    rows: list[ExtractedRow],
    layout: LayoutTag,
    source_file_name: str,
    bank_override: Optional[str] = None,
    field_map: Optional[FieldMap] = None,
    config: ParserConfig = DEFAULT_CONFIG,
    sink: Optional[DiagnosticSink] = None,
) -> list[AbonoRecord]:
    """
    Build one record per extracted row and drop rows with no beneficiary,
    no positive amount, no status and no account. Ids are
    ``<file name>_<row position>`` where the position counts every extracted
    row, dropped or not.
    """
    if field_map is None:
        field_map = build_field_map(list(rows[0]) if rows else [], layout)

    bank = infer_bank(source_file_name, bank_override, default=config.layout_b_bank)
    records: list[AbonoRecord] = []
    dropped = 0
    for index, row in enumerate(rows):
        record_id = f"{source_file_name}_{index}"
        if layout == LayoutTag.LAYOUT_A:
            record = _layout_a_record(row, field_map, config, record_id, source_file_name)
        else:
            record = _layout_b_record(row, field_map, bank, record_id, source_file_name)
        if record.has_content():
            records.append(record)
        else:
            dropped += 1

    emit(
        sink,
        STAGE,
        "records normalized",
        level=logging.INFO,
        layout=layout.value,
        kept=len(records),
        dropped=dropped,
        banco=records[0].banco if records else None,
    )
    return records
