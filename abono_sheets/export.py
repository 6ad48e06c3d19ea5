"""
export.py: CSV and styled XLSX downloads of combined records.

CSV keeps every canonical field. The XLSX "Carga de Abonos" sheet is the
short upload format the payments team loads: item, payee, document, account,
amount, status and bank.
"""

from __future__ import annotations

import csv
import io
from datetime import date
from typing import Iterable, Optional

import openpyxl
from openpyxl.styles import Border, Font, PatternFill, Side
from openpyxl.utils import get_column_letter

from abono_sheets.models import AbonoRecord

CSV_COLUMNS = [
    ("Beneficiario", "beneficiario"),
    ("Documento Tipo", "documento_tipo"),
    ("Documento", "documento"),
    ("Documento 2", "documento_2"),
    ("Documento 3", "documento_3"),
    ("Monto M/N", "monto_mn"),
    ("Monto", "monto"),
    ("T/C", "tc"),
    ("Monto Abonado", "monto_abonado"),
    ("Monto Abonado 2", "monto_abonado_2"),
    ("Cuenta Tipo", "cuenta_tipo"),
    ("Cuenta Número", "cuenta_numero"),
    ("Cuenta Nombre", "cuenta_nombre"),
    ("Estado", "estado"),
    ("Observaciones", "observaciones"),
    ("Banco", "banco"),
    ("Origen", "origen"),
]
CSV_HEADERS = [header for header, _ in CSV_COLUMNS]

XLSX_SHEET_TITLE = "Carga de Abonos"
XLSX_COLUMNS = [
    ("ITEM", 8),
    ("BENEFICIARIO", 30),
    ("DOCUMENTO", 15),
    ("CUENTA", 20),
    ("MONTO", 15),
    ("ESTADO", 20),
    ("BANCO", 10),
]
HEADER_FILL = "366092"
BANK_COLORS = {"BBVA": "2563EB"}
OTHER_BANK_COLOR = "7C3AED"
AMOUNT_FORMAT = "S/ #,##0.00"

CSV_FILENAME_TEMPLATE = "abonos_{day}.csv"
XLSX_FILENAME = "Carga_de_Abonos.xlsx"

_THIN = Side(style="thin")
THIN_BORDER = Border(top=_THIN, left=_THIN, bottom=_THIN, right=_THIN)


def _csv_value(value):
    if isinstance(value, float) and value.is_integer():
        return int(value)
    return value


def export_csv(records: Iterable[AbonoRecord]) -> bytes:
    """
    Text fields are double-quoted (inner quotes doubled); amounts are bare
    numbers.
    """
    buffer = io.StringIO()
    csv.writer(buffer, lineterminator="\n").writerow(CSV_HEADERS)
    writer = csv.writer(buffer, quoting=csv.QUOTE_NONNUMERIC, lineterminator="\n")
    for record in records:
        writer.writerow([_csv_value(getattr(record, attr)) for _, attr in CSV_COLUMNS])
    return buffer.getvalue().encode("utf-8")


def _display_document(record: AbonoRecord) -> str:
    for value in (record.documento, record.documento_2, record.documento_3, record.documento_tipo):
        if value:
            return value
    return "-"


def export_xlsx(records: Iterable[AbonoRecord]) -> bytes:
    wb = openpyxl.Workbook()
    ws = wb.active
    ws.title = XLSX_SHEET_TITLE

    ws.append([header for header, _ in XLSX_COLUMNS])
    header_font = Font(bold=True, color="FFFFFF")
    header_fill = PatternFill("solid", fgColor=HEADER_FILL)
    for cell in ws[1]:
        cell.font = header_font
        cell.fill = header_fill
    for i, (_, width) in enumerate(XLSX_COLUMNS, start=1):
        ws.column_dimensions[get_column_letter(i)].width = width

    for item, record in enumerate(records, start=1):
        ws.append(
            [
                item,
                record.beneficiario,
                _display_document(record),
                record.cuenta_numero,
                record.monto,
                record.estado,
                record.banco,
            ]
        )
        row = ws.max_row
        ws.cell(row=row, column=5).number_format = AMOUNT_FORMAT
        ws.cell(row=row, column=7).font = Font(color=BANK_COLORS.get(record.banco, OTHER_BANK_COLOR))

    for row in ws.iter_rows():
        for cell in row:
            cell.border = THIN_BORDER

    buffer = io.BytesIO()
    wb.save(buffer)
    return buffer.getvalue()


def export_filename(kind: str, today: Optional[date] = None) -> str:
    if kind == "csv":
        return CSV_FILENAME_TEMPLATE.format(day=(today or date.today()).isoformat())
    if kind == "xlsx":
        return XLSX_FILENAME
    raise ValueError(f"Unknown export kind: {kind}")
