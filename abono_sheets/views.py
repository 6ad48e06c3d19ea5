"""Read-only helpers the web app and CLI use to present records."""

from __future__ import annotations

from collections import Counter
from typing import Any, Iterable

import pandas as pd

from abono_sheets.models import AbonoRecord, ParseResult

ALL = "all"

TABLE_COLUMNS = {
    "beneficiario": "Beneficiario",
    "documento": "Documento",
    "cuenta_numero": "Cuenta",
    "monto": "Monto",
    "estado": "Estado",
    "banco": "Banco",
    "origen": "Origen",
}


def filter_records(
    records: Iterable[AbonoRecord],
    search: str = "",
    estado: str = ALL,
    origen: str = ALL,
) -> list[AbonoRecord]:
    """
    ``search`` is a case-insensitive substring over beneficiary, document and
    account. ``estado`` and ``origen`` are exact; ``"all"`` disables them.
    """
    term = search.strip().lower()
    matched = []
    for record in records:
        if term and not any(
            term in value.lower() for value in (record.beneficiario, record.documento, record.cuenta_numero)
        ):
            continue
        if estado != ALL and record.estado != estado:
            continue
        if origen != ALL and record.origen != origen:
            continue
        matched.append(record)
    return matched


def display_amount(record: AbonoRecord) -> float:
    return record.monto or record.monto_mn


def summarize(records: Iterable[AbonoRecord]) -> dict[str, Any]:
    records = list(records)
    return {
        "total_records": len(records),
        "total_amount": round(sum(display_amount(record) for record in records), 2),
        "unique_beneficiaries": len({record.beneficiario for record in records}),
        "by_bank": dict(Counter(record.banco for record in records)),
        "estados": sorted({record.estado for record in records if record.estado}),
        "origenes": list(dict.fromkeys(record.origen for record in records)),
    }


def records_frame(records: Iterable[AbonoRecord], columns: dict[str, str] = TABLE_COLUMNS) -> pd.DataFrame:
    rows = [{label: getattr(record, attr) for attr, label in columns.items()} for record in records]
    return pd.DataFrame(rows, columns=list(columns.values()))


def compare_headers(first: ParseResult, second: ParseResult) -> dict[str, Any]:
    first_headers = list(dict.fromkeys(first.headers))
    second_headers = list(dict.fromkeys(second.headers))
    common = [header for header in first_headers if header in second_headers]
    widest = max(len(first_headers), len(second_headers))
    return {
        "first": {"file_name": first.file_name, "headers": first_headers},
        "second": {"file_name": second.file_name, "headers": second_headers},
        "common": common,
        "only_first": [header for header in first_headers if header not in second_headers],
        "only_second": [header for header in second_headers if header not in first_headers],
        "similarity": round(len(common) / widest * 100, 1) if widest else 0.0,
    }
