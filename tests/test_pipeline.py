from __future__ import annotations

import importlib.util
import sys
import tempfile
import unittest
from datetime import datetime, timezone
from pathlib import Path

from abono_sheets.diagnostics import EventLog
from abono_sheets.errors import (
    EMPTY_EXTRACTION,
    LAYOUT_A_HEADER_FALLBACK,
    NO_RECOGNIZED_LAYOUT,
    EmptyFile,
)
from abono_sheets.models import LayoutTag
from abono_sheets.pipeline import combine_results, parse_file, parse_path

ROOT = Path(__file__).resolve().parents[1]
GENERATOR_PATH = ROOT / "sample-data" / "generate_xlsx.py"


def load_module(path: Path, module_name: str):
    spec = importlib.util.spec_from_file_location(module_name, path)
    module = importlib.util.module_from_spec(spec)
    assert spec.loader is not None
    sys.modules[module_name] = module
    spec.loader.exec_module(module)
    return module


class PipelineTests(unittest.TestCase):
    @classmethod
    def setUpClass(cls):
        cls.samples = load_module(GENERATOR_PATH, "abono_samples_pipeline_tests")
        cls.bbva_bytes = cls.samples.workbook_bytes({"Reporte": cls.samples.layout_a_rows()})
        cls.bcp_bytes = cls.samples.workbook_bytes({"Detalle": cls.samples.layout_b_rows()})

    def parse_bbva(self, **kwargs):
        return parse_file(self.bbva_bytes, "abonos_bbva.xlsx", **kwargs)

    def parse_bcp(self, **kwargs):
        return parse_file(self.bcp_bytes, "abonos_bcp.xlsx", **kwargs)

    def test_layout_a_report(self):
        result = self.parse_bbva()

        self.assertEqual(result.layout, LayoutTag.LAYOUT_A)
        self.assertEqual(result.layout_source, "signature")
        self.assertEqual(result.sheet_name, "Reporte")
        self.assertEqual(result.header_row_index, 8)
        self.assertEqual(result.warnings, [])
        self.assertFalse(result.low_confidence)

        self.assertEqual([r.id for r in result.records], [f"abonos_bbva.xlsx_{i}" for i in range(3)])
        self.assertEqual({r.banco for r in result.records}, {"BBVA"})
        self.assertEqual([r.monto for r in result.records], [1500.0, 820.5, 2180.0])
        self.assertEqual(result.records[0].cuenta_numero, "001101230200123456")
        self.assertEqual(result.records[0].beneficiario, "PEREZ GOMEZ JUAN")
        self.assertEqual(result.records[2].estado, "RECHAZADO")
        self.assertEqual({r.documento for r in result.records}, {""})

    def test_layout_b_report(self):
        result = self.parse_bcp()

        self.assertEqual(result.layout, LayoutTag.LAYOUT_B)
        self.assertEqual(result.header_row_index, 3)
        self.assertEqual(len(result.records), 3)
        self.assertEqual({r.banco for r in result.records}, {"BCP"})

        first, second, third = result.records
        self.assertEqual((first.documento_tipo, first.documento), ("DNI", "41234567"))
        self.assertEqual((second.documento_tipo, second.documento), ("DNI", "12345678"))
        self.assertEqual(second.monto, 950.75)
        self.assertEqual(second.id, "abonos_bcp.xlsx_1")
        self.assertEqual(first.cuenta_numero, "1911234567012")
        self.assertEqual(third.observaciones, "Cuenta cerrada")
        self.assertEqual(third.cuenta_tipo, "CTE")

    def test_parsing_is_repeatable(self):
        first = [record.to_dict() for record in self.parse_bcp().records]
        second = [record.to_dict() for record in self.parse_bcp().records]
        self.assertEqual(first, second)

    def test_hint_overrides_detection(self):
        data = self.samples.workbook_bytes({"Hoja1": self.samples.layout_b_rows(title=False)})

        result = parse_file(data, "planilla.xlsx", hint="BBVA")

        self.assertEqual(result.layout, LayoutTag.LAYOUT_A)
        self.assertEqual(result.layout_source, "hint")
        self.assertIn(LAYOUT_A_HEADER_FALLBACK, result.warning_codes)
        self.assertEqual(len(result.records), 3)
        self.assertEqual({r.banco for r in result.records}, {"BBVA"})
        self.assertEqual(
            [r.cuenta_numero for r in result.records],
            ["1911234567012", "1917654321034", "1941111111056"],
        )

    def test_hinted_workbook_with_cover_sheet(self):
        data = self.samples.workbook_bytes(
            {
                "Portada": [["Reporte BBVA generado"]],
                "Detalle": self.samples.layout_a_rows(header_row=6),
            }
        )

        result = parse_file(data, "abonos_bbva.xlsx", hint="BBVA", bank_override="BBVA")

        self.assertEqual(result.sheet_name, "Detalle")
        self.assertEqual(result.header_row_index, 6)
        self.assertEqual(len(result.records), 3)
        self.assertEqual(result.warnings, [])

    def test_bank_override_for_layout_b(self):
        result = parse_file(self.bcp_bytes, "planilla.xlsx", bank_override="Interbank")
        self.assertEqual({r.banco for r in result.records}, {"INTERBANK"})

    def test_header_only_report_warns_empty_extraction(self):
        data = self.samples.workbook_bytes({"Detalle": [list(self.samples.LAYOUT_B_HEADERS)]})

        result = parse_file(data, "vacio.xlsx")

        self.assertEqual(result.records, [])
        self.assertEqual(result.warning_codes, [EMPTY_EXTRACTION])
        self.assertFalse(result.low_confidence)

    def test_unrecognised_report_is_low_confidence(self):
        data = self.samples.workbook_bytes({"Hoja1": [["foo", "bar"], ["x", "y"]]})

        result = parse_file(data, "otro.xlsx")

        self.assertTrue(result.low_confidence)
        self.assertEqual(result.layout_source, "default")
        self.assertEqual(result.warning_codes, [NO_RECOGNIZED_LAYOUT, EMPTY_EXTRACTION])

    def test_reader_errors_propagate(self):
        with self.assertRaises(EmptyFile):
            parse_file(b"", "abonos.xlsx")

    def test_every_stage_reports_events(self):
        forwarded = EventLog()
        result = self.parse_bbva(sink=forwarded)

        stages = {event["stage"] for event in result.events}
        self.assertEqual(stages, {"detector", "headers", "extractor", "normalizer"})
        self.assertEqual(len(forwarded.events), len(result.events))

    def test_parse_path(self):
        with tempfile.TemporaryDirectory() as tmp:
            path = Path(tmp) / "abonos_bcp.xlsx"
            path.write_bytes(self.bcp_bytes)
            result = parse_path(path)
            self.assertEqual(result.file_name, "abonos_bcp.xlsx")
            self.assertEqual(len(result.records), 3)

            with self.assertRaises(FileNotFoundError):
                parse_path(Path(tmp) / "missing.xlsx")


class CombineTests(unittest.TestCase):
    @classmethod
    def setUpClass(cls):
        samples = load_module(GENERATOR_PATH, "abono_samples_combine_tests")
        cls.bbva = parse_file(samples.workbook_bytes({"Reporte": samples.layout_a_rows()}), "abonos_bbva.xlsx")
        cls.bcp = parse_file(samples.workbook_bytes({"Detalle": samples.layout_b_rows()}), "abonos_bcp.xlsx")
        cls.empty = parse_file(samples.workbook_bytes({"Hoja1": [["foo", "bar"]]}), "otro.xlsx")

    def test_records_in_slot_order_with_unique_ids(self):
        stamp = datetime(2025, 6, 30, 12, 0, tzinfo=timezone.utc)
        combined = combine_results(self.bbva, self.bcp, processed_at=stamp)

        self.assertEqual(combined.total_records, 6)
        self.assertEqual(combined.sources, ["abonos_bbva.xlsx", "abonos_bcp.xlsx"])
        self.assertEqual([r.banco for r in combined.records], ["BBVA"] * 3 + ["BCP"] * 3)
        ids = [r.id for r in combined.records]
        self.assertEqual(len(ids), len(set(ids)))
        self.assertEqual(combined.to_dict()["processed_at"], "2025-06-30T12:00:00Z")

    def test_missing_slot_is_skipped(self):
        combined = combine_results(None, self.bcp)
        self.assertEqual(combined.sources, ["abonos_bcp.xlsx"])
        self.assertEqual(combined.total_records, 3)

    def test_same_file_twice_keeps_ids_unique(self):
        combined = combine_results(self.bcp, self.bcp)

        ids = [r.id for r in combined.records]
        self.assertEqual(len(set(ids)), 6)
        self.assertEqual(ids[3], "abonos_bcp.xlsx(2)_0")
        self.assertEqual(self.bcp.records[0].id, "abonos_bcp.xlsx_0")

    def test_warnings_carry_their_source(self):
        combined = combine_results(self.bbva, self.empty)
        self.assertEqual({w["source"] for w in combined.warnings}, {"otro.xlsx"})
        self.assertEqual(combined.total_records, 3)


if __name__ == "__main__":
    unittest.main()
