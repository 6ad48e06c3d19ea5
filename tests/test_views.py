from __future__ import annotations

import unittest

from abono_sheets.models import AbonoRecord, LayoutTag, ParseResult
from abono_sheets.views import (
    ALL,
    TABLE_COLUMNS,
    compare_headers,
    display_amount,
    filter_records,
    records_frame,
    summarize,
)


def record(idx: int, **values) -> AbonoRecord:
    return AbonoRecord(id=f"f.xlsx_{idx}", **values)


RECORDS = [
    record(0, beneficiario="PEREZ GOMEZ JUAN", cuenta_numero="0011012302", monto=1500.0,
           estado="ABONO CORRECTO", banco="BBVA", origen="bbva.xlsx"),
    record(1, beneficiario="TORRES DIAZ MARIA", documento="07654321", monto=820.5,
           estado="RECHAZADO", banco="BBVA", origen="bbva.xlsx"),
    record(2, beneficiario="QUISPE MAMANI ROSA", documento="41234567", cuenta_numero="1911234567012",
           monto_mn=300.0, estado="TERMINADA OK", banco="BCP", origen="bcp.xlsx"),
    record(3, beneficiario="PEREZ GOMEZ JUAN", monto=10.0, banco="BCP", origen="bcp.xlsx"),
]


def parse_result(file_name: str, headers: list[str]) -> ParseResult:
    return ParseResult(
        file_name=file_name,
        layout=LayoutTag.LAYOUT_B,
        layout_source="signature",
        sheet_name="S",
        header_row_index=0,
        headers=headers,
        field_map={},
        records=[],
    )


class FilterTests(unittest.TestCase):
    def test_search_covers_name_document_and_account(self):
        self.assertEqual([r.id for r in filter_records(RECORDS, search="perez")], ["f.xlsx_0", "f.xlsx_3"])
        self.assertEqual([r.id for r in filter_records(RECORDS, search="0765")], ["f.xlsx_1"])
        self.assertEqual([r.id for r in filter_records(RECORDS, search=" 191123 ")], ["f.xlsx_2"])

    def test_estado_and_origen_are_exact(self):
        self.assertEqual([r.id for r in filter_records(RECORDS, estado="RECHAZADO")], ["f.xlsx_1"])
        self.assertEqual(filter_records(RECORDS, estado="rechazado"), [])
        self.assertEqual(len(filter_records(RECORDS, origen="bcp.xlsx")), 2)
        self.assertEqual(
            [r.id for r in filter_records(RECORDS, search="juan", origen="bcp.xlsx")],
            ["f.xlsx_3"],
        )

    def test_all_disables_filters(self):
        self.assertEqual(len(filter_records(RECORDS, estado=ALL, origen=ALL)), len(RECORDS))


class SummaryTests(unittest.TestCase):
    def test_display_amount_prefers_monto(self):
        self.assertEqual(display_amount(RECORDS[0]), 1500.0)
        self.assertEqual(display_amount(RECORDS[2]), 300.0)

    def test_summarize(self):
        summary = summarize(RECORDS)
        self.assertEqual(summary["total_records"], 4)
        self.assertEqual(summary["total_amount"], 2630.5)
        self.assertEqual(summary["unique_beneficiaries"], 3)
        self.assertEqual(summary["by_bank"], {"BBVA": 2, "BCP": 2})
        self.assertEqual(summary["estados"], ["ABONO CORRECTO", "RECHAZADO", "TERMINADA OK"])
        self.assertEqual(summary["origenes"], ["bbva.xlsx", "bcp.xlsx"])

    def test_summarize_empty(self):
        summary = summarize([])
        self.assertEqual(summary["total_records"], 0)
        self.assertEqual(summary["total_amount"], 0)
        self.assertEqual(summary["by_bank"], {})

    def test_records_frame(self):
        frame = records_frame(RECORDS[:2])
        self.assertEqual(list(frame.columns), list(TABLE_COLUMNS.values()))
        self.assertEqual(frame.iloc[1]["Beneficiario"], "TORRES DIAZ MARIA")
        self.assertEqual(len(records_frame([])), 0)


class CompareHeadersTests(unittest.TestCase):
    def test_common_and_exclusive_headers(self):
        comparison = compare_headers(
            parse_result("a.xlsx", ["Cuenta", "Importe", "Situación", "Sel"]),
            parse_result("b.xlsx", ["Cuenta", "Monto", "Estado", "Importe"]),
        )
        self.assertEqual(comparison["common"], ["Cuenta", "Importe"])
        self.assertEqual(comparison["only_first"], ["Situación", "Sel"])
        self.assertEqual(comparison["only_second"], ["Monto", "Estado"])
        self.assertEqual(comparison["similarity"], 50.0)
        self.assertEqual(comparison["first"]["file_name"], "a.xlsx")

    def test_no_headers(self):
        comparison = compare_headers(parse_result("a.xlsx", []), parse_result("b.xlsx", []))
        self.assertEqual(comparison["similarity"], 0.0)


if __name__ == "__main__":
    unittest.main()
