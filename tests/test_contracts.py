from __future__ import annotations

import unittest
from datetime import datetime, timezone
from pathlib import Path

from abono_sheets import __version__
from abono_sheets.contracts import (
    CONTRACT_VERSIONS,
    build_run_summary,
    combined_contract,
    parse_contract,
)
from abono_sheets.errors import EMPTY_EXTRACTION, build_warning
from abono_sheets.models import AbonoRecord, CombinedResult, LayoutTag, ParseResult


def parse_result(warnings=None) -> ParseResult:
    return ParseResult(
        file_name="abonos_bcp.xlsx",
        layout=LayoutTag.LAYOUT_B,
        layout_source="signature",
        sheet_name="Detalle",
        header_row_index=3,
        headers=["Beneficiario - Nombre", "Monto"],
        field_map={"beneficiario": "Beneficiario - Nombre", "monto": "Monto"},
        records=[AbonoRecord(id="abonos_bcp.xlsx_0", beneficiario="ANA", monto=10.0, banco="BCP")],
        warnings=warnings or [],
    )


class ContractTests(unittest.TestCase):
    def test_parse_contract_and_run_summary(self):
        payload = parse_contract(parse_result(), Path("in/abonos_bcp.xlsx"), [Path("out/a.csv")])

        self.assertEqual(payload["contract"]["name"], "abono_sheets.parse")
        self.assertEqual(payload["schema_version"], CONTRACT_VERSIONS["abono_sheets.parse"])
        self.assertEqual(payload["tool_version"], __version__)
        self.assertEqual(payload["layout"], "layout_b")
        self.assertEqual(payload["record_count"], 1)

        summary = payload["run_summary"]
        self.assertEqual(summary["tool"], "abono-sheets")
        self.assertEqual(summary["command"], "parse")
        self.assertEqual(summary["status"], "ok")
        self.assertEqual(summary["input_files"], [str(Path("in/abonos_bcp.xlsx"))])
        self.assertEqual(summary["output_files"], [str(Path("out/a.csv"))])
        self.assertEqual(summary["metrics"]["header_row_index"], 3)
        self.assertTrue(summary["generated_at"].endswith("Z"))

    def test_warnings_set_status(self):
        payload = parse_contract(parse_result([build_warning(EMPTY_EXTRACTION)]), Path("x.xlsx"))
        self.assertEqual(payload["run_summary"]["status"], "warning")
        self.assertEqual(payload["run_summary"]["warnings"], [EMPTY_EXTRACTION])
        self.assertEqual(payload["run_summary"]["warnings_count"], 1)

    def test_combined_contract(self):
        combined = CombinedResult(
            records=parse_result().records,
            sources=["abonos_bcp.xlsx"],
            processed_at=datetime(2025, 6, 30, tzinfo=timezone.utc),
            warnings=[{**build_warning(EMPTY_EXTRACTION), "source": "otro.xlsx"}],
        )
        payload = combined_contract(combined, [Path("a.xlsx"), Path("b.xlsx")])

        self.assertEqual(payload["contract"]["name"], "abono_sheets.combined")
        self.assertEqual(payload["total_records"], 1)
        self.assertEqual(payload["processed_at"], "2025-06-30T00:00:00Z")
        self.assertEqual(payload["run_summary"]["status"], "warning")
        self.assertEqual(payload["run_summary"]["metrics"], {"records": 1, "sources": 1})

    def test_run_summary_defaults(self):
        summary = build_run_summary(tool="abono-sheets", command="parse", inputs=[])
        self.assertEqual(summary["status"], "ok")
        self.assertEqual(summary["output_files"], [])
        self.assertEqual(summary["warnings_count"], 0)
        self.assertEqual(summary["metrics"], {})


if __name__ == "__main__":
    unittest.main()
