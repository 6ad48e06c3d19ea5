#!/usr/bin/env python3
"""
Generates sample bank reports for abono-sheets.

Run from the repo root:
    python sample-data/generate_xlsx.py

Writes:
  sample-data/abonos_bbva.xlsx   Layout A
    - Title block above the table, header on row 9
    - Doc.Identidad values carry the "L - " prefix
    - Account numbers with dashes
    - One rejected transfer
    - "Estimado cliente:" legal footer after the data
  sample-data/abonos_bcp.xlsx    Layout B
    - "Cuenta de cargo" line in the title block
    - "Documento - Tipo" / "Documento" repeated at a second offset; some
      rows fill the first copy, some the second
    - Blank spacer row inside the data
    - Amounts as numbers and as text

The row builders are also used by the test suite.
"""

from __future__ import annotations

import io
from pathlib import Path

import openpyxl

OUTPUT_DIR = Path(__file__).parent

LAYOUT_A_HEADERS = [
    "Sel", "No.", "Cuenta", "Banco", "Titular(Archivo)", "Titular(Banco)",
    "Doc.Identidad", "Importe", "Situación",
]
LAYOUT_B_HEADERS = [
    "Nro", "Beneficiario - Nombre", "Documento - Tipo", "Documento",
    "Documento - Tipo", "Documento", "Monto - Moneda", "Monto",
    "Cuenta - Tipo", "Cuenta - Número", "Estado", "Observación",
]

LAYOUT_A_RECORDS = [
    # cuenta                   titular(archivo)       titular(banco)         doc                importe   situación
    ["0011-0123-0200123456", "PEREZ GOMEZ JUAN",    "JUAN PEREZ GOMEZ",    "L - 40123456",    1500.00, "ABONO CORRECTO"],
    ["0011-0456-0200654321", "TORRES DIAZ MARIA",   "MARIA TORRES DIAZ",   "L - 07654321",    820.50,  "ABONO CORRECTO"],
    ["0011-0789-0200111222", "RAMOS VEGA LUIS",     "LUIS RAMOS VEGA",     "L - 45678901",    2180.00, "RECHAZADO"],
]

LAYOUT_B_RECORDS = [
    # beneficiario          doc tipo 1  doc 1        doc tipo 2  doc 2        moneda  monto      cta tipo  cta número            estado           obs
    ["QUISPE MAMANI ROSA",  "DNI",      "41234567",  "-",        "-",         "S/",   1200.00,   "AHO",    "191-1234567-0-12",   "TERMINADA OK",  ""],
    ["HUAMAN SOTO PEDRO",   "",         "",          "DNI",      "12345678",  "S/",   "950.75",  "AHO",    "191-7654321-0-34",   "TERMINADA OK",  ""],
    ["CCAHUANA ROJAS ANA",  "CE",       "00123456",  "",         "",          "S/",   640.00,    "CTE",    "194-1111111-0-56",   "ERROR",         "Cuenta cerrada"],
]

FOOTER_LINES = [
    "Estimado cliente:",
    "La información contenida en este reporte es referencial.",
    "Para cualquier consulta comuníquese con su funcionario de negocios.",
]


def layout_a_rows(records=None, header_row: int = 8, footer: bool = True) -> list[list]:
    """Title block, header on ``header_row`` (0-based), data, then the legal footer."""
    records = LAYOUT_A_RECORDS if records is None else records
    rows: list[list] = [
        ["Relación de las cuentas de abono"],
        [],
        ["Empresa:", "TAXI MONTERRICO S.A.C."],
        ["Fecha de proceso:", "30/06/2025"],
        ["Importe cargado por abonos:", sum(record[4] for record in records)],
    ]
    while len(rows) < header_row:
        rows.append([])
    rows.append(list(LAYOUT_A_HEADERS))
    for number, (cuenta, archivo, banco_titular, doc, importe, situacion) in enumerate(records, start=1):
        rows.append([None, number, cuenta, "BBVA", archivo, banco_titular, doc, importe, situacion])
    if footer:
        rows.append([])
        rows.extend([line] for line in FOOTER_LINES)
    return rows


def layout_b_rows(records=None, title: bool = True, spacer: bool = True) -> list[list]:
    records = LAYOUT_B_RECORDS if records is None else records
    rows: list[list] = []
    if title:
        rows.extend(
            [
                ["Planilla de pagos - Detalle de abonos"],
                ["Cuenta de cargo:", "193-1234567-0-55"],
                [],
            ]
        )
    rows.append(list(LAYOUT_B_HEADERS))
    for number, record in enumerate(records, start=1):
        rows.append([number, *record])
        if spacer and number == 1:
            rows.append([])
    return rows


def workbook_bytes(sheets: dict[str, list[list]]) -> bytes:
    """Build an .xlsx in memory with one worksheet per entry."""
    wb = openpyxl.Workbook()
    wb.remove(wb.active)
    for title, rows in sheets.items():
        ws = wb.create_sheet(title)
        for row in rows:
            ws.append(row)
    buffer = io.BytesIO()
    wb.save(buffer)
    return buffer.getvalue()


def main() -> None:
    targets = {
        OUTPUT_DIR / "abonos_bbva.xlsx": {"Reporte": layout_a_rows()},
        OUTPUT_DIR / "abonos_bcp.xlsx": {"Detalle": layout_b_rows()},
    }
    for path, sheets in targets.items():
        path.write_bytes(workbook_bytes(sheets))
        print(f"Written: {path}")


if __name__ == "__main__":
    main()
