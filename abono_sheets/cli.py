from __future__ import annotations

import argparse
import json
import os
import sys
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Optional

from abono_sheets import __version__ as TOOL_VERSION
from abono_sheets.config import DEFAULT_CONFIG, ParserConfig, load_config
from abono_sheets.contracts import combined_contract, parse_contract
from abono_sheets.diagnostics import LoggingSink, setup_logging
from abono_sheets.errors import EMPTY_EXTRACTION, AbonoSheetsError, ConfigError
from abono_sheets.export import export_csv, export_filename, export_xlsx
from abono_sheets.models import AbonoRecord, ParseResult
from abono_sheets.pipeline import combine_results, parse_path
from abono_sheets.views import summarize

BANK_CHOICES = ["BBVA", "BCP"]

EXIT_SUCCESS = 0
EXIT_COMMAND_ERROR = 1
EXIT_PARSE_FAILED = 2
EXIT_SOFT_WARNING = 3

DEFAULT_CONFIG_NAME = "abono-sheets.json"


class CliError(Exception):
    def __init__(self, message: str, code: int = EXIT_COMMAND_ERROR) -> None:
        super().__init__(message)
        self.code = code


class AbonoSheetsArgumentParser(argparse.ArgumentParser):
    def error(self, message: str) -> None:
        raise CliError(message, EXIT_COMMAND_ERROR)


def eprint(message: str) -> None:
    print(message, file=sys.stderr)


def emit_human(message: str, *, quiet: bool = False) -> None:
    if not quiet:
        eprint(message)


def json_dumps(payload: Any) -> str:
    return json.dumps(payload, indent=2, ensure_ascii=False, sort_keys=True)


def timestamp_token() -> str:
    override = os.environ.get("ABONO_SHEETS_OUTPUT_STAMP")
    if override:
        return override
    return datetime.now(timezone.utc).strftime("%Y%m%dT%H%M%SZ")


def default_output_dir(stem: str) -> Path:
    return Path.cwd() / "abono-sheets-output" / f"{stem}-{timestamp_token()}"


def ensure_parent(path: Path) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)


def write_bytes(path: Path, payload: bytes) -> None:
    ensure_parent(path)
    path.write_bytes(payload)


def pin_timestamps(value: Any) -> Any:
    if isinstance(value, dict):
        result = {}
        for key, item in value.items():
            if key in ("generated_at", "processed_at") and os.environ.get("ABONO_SHEETS_OUTPUT_STAMP"):
                result[key] = "1970-01-01T00:00:00Z"
            else:
                result[key] = pin_timestamps(item)
        return result
    if isinstance(value, list):
        return [pin_timestamps(item) for item in value]
    return value


def resolve_config(args: argparse.Namespace) -> ParserConfig:
    if not getattr(args, "config", None):
        return DEFAULT_CONFIG
    try:
        return load_config(Path(args.config))
    except ConfigError as exc:
        raise CliError(exc.message, EXIT_COMMAND_ERROR) from exc


def write_exports(
    args: argparse.Namespace,
    records: list[AbonoRecord],
    stem: str,
) -> list[Path]:
    """``--csv``/``--xlsx`` without a path write into the default output folder."""
    written: list[Path] = []
    if args.csv is not None:
        path = Path(args.csv) if args.csv else default_output_dir(stem) / export_filename("csv")
        write_bytes(path, export_csv(records))
        written.append(path)
    if args.xlsx is not None:
        path = Path(args.xlsx) if args.xlsx else default_output_dir(stem) / export_filename("xlsx")
        write_bytes(path, export_xlsx(records))
        written.append(path)
    return written


def render_parse_text(result: ParseResult) -> str:
    summary = summarize(result.records)
    lines = [
        f"File: {result.file_name}",
        f"Layout: {result.layout.value} (via {result.layout_source})",
        f"Sheet: {result.sheet_name}  header row: {result.header_row_index}",
        f"Records: {summary['total_records']}  total amount: {summary['total_amount']:.2f}",
        f"Beneficiaries: {summary['unique_beneficiaries']}",
    ]
    if summary["estados"]:
        lines.append("Estados: " + ", ".join(summary["estados"]))
    for warning in result.warnings:
        lines.append(f"[{warning['severity'].upper()}] {warning['code']}: {warning['message']}")
    return "\n".join(lines)


def needs_attention(result: ParseResult) -> bool:
    return result.low_confidence or EMPTY_EXTRACTION in result.warning_codes


def parse_one(path: Path, bank: Optional[str], config: ParserConfig, verbose: bool) -> ParseResult:
    if not path.exists():
        raise CliError(f"File not found: {path}", EXIT_COMMAND_ERROR)
    return parse_path(
        path,
        hint=bank,
        bank_override=bank,
        config=config,
        sink=LoggingSink() if verbose else None,
    )


def run_parse(args: argparse.Namespace) -> int:
    config = resolve_config(args)
    input_path = Path(args.input)
    try:
        result = parse_one(input_path, args.bank, config, args.verbose)
    except AbonoSheetsError as exc:
        eprint(exc.message)
        return EXIT_PARSE_FAILED

    outputs = write_exports(args, result.records, input_path.stem)
    if args.json:
        print(json_dumps(pin_timestamps(parse_contract(result, input_path, outputs))))
    else:
        emit_human(render_parse_text(result), quiet=args.quiet)
        for path in outputs:
            emit_human(f"Written: {path}", quiet=args.quiet)
    return EXIT_SOFT_WARNING if needs_attention(result) else EXIT_SUCCESS


def run_combine(args: argparse.Namespace) -> int:
    config = resolve_config(args)
    slots = [(Path(args.first), args.bank_a), (Path(args.second), args.bank_b)]
    results: list[Optional[ParseResult]] = []
    failures = 0
    for path, bank in slots:
        try:
            results.append(parse_one(path, bank, config, args.verbose))
        except AbonoSheetsError as exc:
            eprint(f"{path.name}: {exc.message}")
            results.append(None)
            failures += 1

    if failures == len(slots):
        return EXIT_PARSE_FAILED

    combined = combine_results(*results)
    outputs = write_exports(args, combined.records, "combined")
    if args.json:
        payload = combined_contract(combined, [path for path, _ in slots], outputs)
        print(json_dumps(pin_timestamps(payload)))
    else:
        for result in results:
            if result is not None:
                emit_human(render_parse_text(result), quiet=args.quiet)
        summary = summarize(combined.records)
        emit_human(
            f"Combined: {summary['total_records']} record(s) from {len(combined.sources)} file(s); "
            f"total amount {summary['total_amount']:.2f}",
            quiet=args.quiet,
        )
        for path in outputs:
            emit_human(f"Written: {path}", quiet=args.quiet)

    if failures or any(needs_attention(result) for result in results if result is not None):
        return EXIT_SOFT_WARNING
    return EXIT_SUCCESS


def run_config_init(args: argparse.Namespace) -> int:
    config_path = Path(args.path)
    if config_path.exists():
        eprint(f"Refusing to overwrite existing config: {config_path}")
        return EXIT_COMMAND_ERROR
    ensure_parent(config_path)
    config_path.write_text(json_dumps(DEFAULT_CONFIG.to_dict()) + "\n", encoding="utf-8")
    emit_human(f"Config written: {config_path}")
    return EXIT_SUCCESS


def run_version() -> int:
    print(TOOL_VERSION)
    return EXIT_SUCCESS


def add_output_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("--csv", nargs="?", const="", default=None, help="Write the CSV export (optional path)")
    parser.add_argument("--xlsx", nargs="?", const="", default=None, help="Write the XLSX upload sheet (optional path)")
    parser.add_argument("--json", action="store_true", help="Write machine JSON to stdout")
    parser.add_argument("--config", help="JSON parser config path")
    parser.add_argument("-q", "--quiet", action="store_true", help="Minimal human logs")
    parser.add_argument("-v", "--verbose", action="store_true", help="Log every pipeline decision")


def build_parser() -> argparse.ArgumentParser:
    parser = AbonoSheetsArgumentParser(prog="abono-sheets")
    subparsers = parser.add_subparsers(dest="command", required=True, parser_class=AbonoSheetsArgumentParser)

    parse = subparsers.add_parser("parse", help="Parse one bank report.")
    parse.add_argument("input", help="Input workbook path (.xls, .xlsx, .xlsm)")
    parse.add_argument("--bank", choices=BANK_CHOICES, help="Bank that issued the report; skips layout detection")
    add_output_arguments(parse)

    combine = subparsers.add_parser("combine", help="Parse two bank reports and merge their records.")
    combine.add_argument("first", help="First workbook path")
    combine.add_argument("second", help="Second workbook path")
    combine.add_argument("--bank-a", dest="bank_a", choices=BANK_CHOICES, help="Bank of the first workbook")
    combine.add_argument("--bank-b", dest="bank_b", choices=BANK_CHOICES, help="Bank of the second workbook")
    add_output_arguments(combine)

    config = subparsers.add_parser("config", help="Generate configuration.")
    config_subparsers = config.add_subparsers(dest="config_command", required=True, parser_class=AbonoSheetsArgumentParser)
    config_init = config_subparsers.add_parser("init", help="Write a starter config file.")
    config_init.add_argument("--path", default=DEFAULT_CONFIG_NAME, help="Config output path")

    subparsers.add_parser("version", help="Print version")
    return parser


def main(argv: list[str] | None = None) -> int:
    try:
        parser = build_parser()
        args = parser.parse_args(argv)
        if args.command in ("parse", "combine"):
            setup_logging(verbose=args.verbose, quiet=args.quiet or args.json)
        if args.command == "parse":
            return run_parse(args)
        if args.command == "combine":
            return run_combine(args)
        if args.command == "config":
            if args.config_command == "init":
                return run_config_init(args)
        if args.command == "version":
            return run_version()
        raise CliError(f"Unknown command: {args.command}", EXIT_COMMAND_ERROR)
    except CliError as exc:
        eprint(str(exc))
        return exc.code


if __name__ == "__main__":
    raise SystemExit(main())
