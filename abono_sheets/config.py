"""Parser configuration: scan windows, row caps, sentinels and bank tags."""

from __future__ import annotations

import json
from dataclasses import asdict, dataclass, fields, replace
from pathlib import Path
from typing import Any

from abono_sheets.errors import ConfigError


@dataclass(frozen=True)
class ParserConfig:
    # Layout detector looks this far into each sheet.
    detect_scan_rows: int = 50
    # Keyword-based header search (Layout B, and Layout A fallback).
    header_scan_rows: int = 20
    # Layout A data region cap when no footer sentinel is found.
    layout_a_max_data_rows: int = 100
    footer_sentinels: tuple[str, ...] = ("estimado cliente", "dear customer")
    layout_a_bank: str = "BBVA"
    layout_b_bank: str = "BCP"
    # Layout A reports carry a Doc.Identidad column that is unreliable; it is
    # dropped unless this policy flag is switched on.
    layout_a_documents: bool = False

    def to_dict(self) -> dict[str, Any]:
        payload = asdict(self)
        payload["footer_sentinels"] = list(self.footer_sentinels)
        return payload


DEFAULT_CONFIG = ParserConfig()


def config_from_dict(data: dict[str, Any], base: ParserConfig = DEFAULT_CONFIG) -> ParserConfig:
    known = {item.name: item for item in fields(ParserConfig)}
    unknown = sorted(set(data) - set(known))
    if unknown:
        raise ConfigError(f"unknown config keys: {unknown}")

    overrides: dict[str, Any] = {}
    for key, value in data.items():
        default = getattr(base, key)
        if isinstance(default, bool):
            if not isinstance(value, bool):
                raise ConfigError(f"config key '{key}' must be true or false")
        elif isinstance(default, int):
            if isinstance(value, bool) or not isinstance(value, int) or value <= 0:
                raise ConfigError(f"config key '{key}' must be a positive integer")
        elif isinstance(default, tuple):
            if not isinstance(value, list) or not all(isinstance(item, str) and item.strip() for item in value):
                raise ConfigError(f"config key '{key}' must be a list of non-empty strings")
            value = tuple(item.strip().lower() for item in value)
        elif isinstance(default, str):
            if not isinstance(value, str) or not value.strip():
                raise ConfigError(f"config key '{key}' must be a non-empty string")
            value = value.strip()
        overrides[key] = value
    return replace(base, **overrides)


def load_config(path: Path) -> ParserConfig:
    if not path.exists():
        raise ConfigError(f"config file not found: {path}")
    try:
        payload = json.loads(path.read_text(encoding="utf-8"))
    except json.JSONDecodeError as exc:
        raise ConfigError(f"invalid config JSON: {exc}") from exc
    if not isinstance(payload, dict):
        raise ConfigError("config root must be a JSON object")
    return config_from_dict(payload)
