from __future__ import annotations

import csv
import importlib.util
import io
import json
import os
import shutil
import subprocess
import sys
import tempfile
import unittest
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
GENERATOR_PATH = ROOT / "sample-data" / "generate_xlsx.py"
CLI = [sys.executable, "-m", "abono_sheets.cli"]
FIXED_STAMP = "20260301T010203Z"


def load_module(path: Path, module_name: str):
    spec = importlib.util.spec_from_file_location(module_name, path)
    module = importlib.util.module_from_spec(spec)
    assert spec.loader is not None
    sys.modules[module_name] = module
    spec.loader.exec_module(module)
    return module


def run_cli(*args: str, env: dict[str, str] | None = None) -> subprocess.CompletedProcess[str]:
    merged_env = dict(os.environ)
    merged_env["ABONO_SHEETS_OUTPUT_STAMP"] = FIXED_STAMP
    if env:
        merged_env.update(env)
    return subprocess.run(
        [*CLI, *args],
        cwd=ROOT,
        capture_output=True,
        text=True,
        env=merged_env,
    )


class AbonoSheetsCliTests(unittest.TestCase):
    @classmethod
    def setUpClass(cls):
        samples = load_module(GENERATOR_PATH, "abono_samples_cli_tests")
        cls.tmp = tempfile.TemporaryDirectory()
        tmp = Path(cls.tmp.name)
        cls.bbva = tmp / "abonos_bbva.xlsx"
        cls.bbva.write_bytes(samples.workbook_bytes({"Reporte": samples.layout_a_rows()}))
        cls.bcp = tmp / "abonos_bcp.xlsx"
        cls.bcp.write_bytes(samples.workbook_bytes({"Detalle": samples.layout_b_rows()}))
        cls.unknown = tmp / "otro.xlsx"
        cls.unknown.write_bytes(samples.workbook_bytes({"Hoja1": [["foo", "bar"], ["x", "y"]]}))
        cls.broken = tmp / "roto.xlsx"
        cls.broken.write_bytes(b"this is not a workbook")

    @classmethod
    def tearDownClass(cls):
        cls.tmp.cleanup()

    def test_parse_clean_report_returns_exit_0(self):
        proc = run_cli("parse", str(self.bbva))
        self.assertEqual(proc.returncode, 0, proc.stderr)
        self.assertIn("Layout: layout_a (via signature)", proc.stderr)
        self.assertIn("Records: 3", proc.stderr)

    def test_parse_json_stdout_contains_only_json(self):
        proc = run_cli("parse", str(self.bcp), "--json")
        self.assertEqual(proc.returncode, 0, proc.stderr)
        payload = json.loads(proc.stdout)
        self.assertEqual(payload["contract"]["name"], "abono_sheets.parse")
        self.assertEqual(payload["record_count"], 3)
        self.assertEqual(payload["run_summary"]["generated_at"], "1970-01-01T00:00:00Z")
        self.assertEqual(proc.stderr.strip(), "")

    def test_parse_with_bank_skips_detection(self):
        proc = run_cli("parse", str(self.bcp), "--bank", "BCP", "--json")
        self.assertEqual(proc.returncode, 0, proc.stderr)
        self.assertEqual(json.loads(proc.stdout)["layout_source"], "hint")

    def test_parse_unrecognised_report_returns_exit_3(self):
        proc = run_cli("parse", str(self.unknown), "--json")
        self.assertEqual(proc.returncode, 3, proc.stderr)
        self.assertTrue(json.loads(proc.stdout)["low_confidence"])

    def test_parse_unreadable_input_returns_exit_2(self):
        proc = run_cli("parse", str(self.broken))
        self.assertEqual(proc.returncode, 2)
        self.assertIn(".xlsx", proc.stderr)

    def test_parse_missing_input_returns_exit_1(self):
        proc = run_cli("parse", str(Path(self.tmp.name) / "missing.xlsx"))
        self.assertEqual(proc.returncode, 1)
        self.assertIn("File not found", proc.stderr)

    def test_parse_writes_requested_exports(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            csv_path = Path(tmpdir) / "out" / "abonos.csv"
            xlsx_path = Path(tmpdir) / "out" / "carga.xlsx"
            proc = run_cli("parse", str(self.bcp), "--csv", str(csv_path), "--xlsx", str(xlsx_path))
            self.assertEqual(proc.returncode, 0, proc.stderr)
            self.assertIn("Written:", proc.stderr)
            rows = list(csv.reader(io.StringIO(csv_path.read_text(encoding="utf-8"))))
            self.assertEqual(rows[0][0], "Beneficiario")
            self.assertEqual(len(rows), 4)
            self.assertTrue(xlsx_path.exists())

    def test_default_output_directory_uses_stamp(self):
        output_root = ROOT / "abono-sheets-output"
        output_dir = output_root / f"abonos_bbva-{FIXED_STAMP}"
        try:
            proc = run_cli("parse", str(self.bbva), "--xlsx")
            self.assertEqual(proc.returncode, 0, proc.stderr)
            self.assertTrue((output_dir / "Carga_de_Abonos.xlsx").exists())
        finally:
            if output_dir.exists():
                shutil.rmtree(output_dir)
            if output_root.exists() and not any(output_root.iterdir()):
                output_root.rmdir()

    def test_combine_two_reports(self):
        proc = run_cli("combine", str(self.bbva), str(self.bcp), "--json")
        self.assertEqual(proc.returncode, 0, proc.stderr)
        payload = json.loads(proc.stdout)
        self.assertEqual(payload["contract"]["name"], "abono_sheets.combined")
        self.assertEqual(payload["total_records"], 6)
        self.assertEqual(payload["sources"], ["abonos_bbva.xlsx", "abonos_bcp.xlsx"])
        self.assertEqual(payload["processed_at"], "1970-01-01T00:00:00Z")

    def test_combine_with_one_failure_returns_exit_3(self):
        proc = run_cli("combine", str(self.broken), str(self.bcp), "--json")
        self.assertEqual(proc.returncode, 3)
        self.assertEqual(json.loads(proc.stdout)["total_records"], 3)
        self.assertIn("roto.xlsx", proc.stderr)

    def test_combine_with_both_failing_returns_exit_2(self):
        proc = run_cli("combine", str(self.broken), str(self.broken))
        self.assertEqual(proc.returncode, 2)

    def test_invalid_bank_choice_returns_exit_1(self):
        proc = run_cli("parse", str(self.bbva), "--bank", "Interbank")
        self.assertEqual(proc.returncode, 1)

    def test_config_init_and_use(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            config_path = Path(tmpdir) / "abono-sheets.json"
            proc = run_cli("config", "init", "--path", str(config_path))
            self.assertEqual(proc.returncode, 0, proc.stderr)
            payload = json.loads(config_path.read_text(encoding="utf-8"))
            self.assertEqual(payload["layout_a_max_data_rows"], 100)

            again = run_cli("config", "init", "--path", str(config_path))
            self.assertEqual(again.returncode, 1)

            payload["layout_a_documents"] = True
            config_path.write_text(json.dumps(payload), encoding="utf-8")
            parsed = run_cli("parse", str(self.bbva), "--config", str(config_path), "--json")
            self.assertEqual(parsed.returncode, 0, parsed.stderr)
            self.assertEqual(json.loads(parsed.stdout)["records"][0]["documento"], "40123456")

    def test_bad_config_returns_exit_1(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            config_path = Path(tmpdir) / "bad.json"
            config_path.write_text(json.dumps({"nope": 1}), encoding="utf-8")
            proc = run_cli("parse", str(self.bbva), "--config", str(config_path))
            self.assertEqual(proc.returncode, 1)
            self.assertIn("unknown config keys", proc.stderr)

    def test_version_prints_version(self):
        proc = run_cli("version")
        self.assertEqual(proc.returncode, 0, proc.stderr)
        self.assertRegex(proc.stdout.strip(), r"^\d+\.\d+\.\d+$")


if __name__ == "__main__":
    unittest.main()
