"""Cell and label normalisation shared by every engine stage."""

from __future__ import annotations

import math
import re
import unicodedata
from datetime import date, datetime, time
from typing import Any

import pandas as pd

PLACEHOLDER_VALUES = {"", "-"}
INTEGER_RE = re.compile(r"^\d+$")
DASH_RE = re.compile(r"[-‐‑‒–—−]")
SEPARATOR_RE = re.compile(r"[-‐‑‒–—−\s_]+")
WHITESPACE_RE = re.compile(r"\s+")


def normalize_scalar(value: Any) -> Any:
    """Plain Python value for a pandas cell; NaN/NaT become None."""
    if value is None or value is pd.NaT:
        return None
    if isinstance(value, pd.Timestamp):
        return value.to_pydatetime()
    if pd.api.types.is_bool(value):
        return bool(value)
    if pd.api.types.is_integer(value):
        return int(value)
    if pd.api.types.is_float(value):
        number = float(value)
        if math.isnan(number):
            return None
        return int(number) if number.is_integer() else number
    if isinstance(value, (datetime, date, time)):
        return value
    return str(value).replace("\x00", "")


def cell_text(value: Any) -> str:
    """Render a raw cell as trimmed text ("" for empty cells)."""
    normalized = normalize_scalar(value)
    if normalized is None:
        return ""
    if isinstance(normalized, datetime):
        if normalized.time() == time(0, 0):
            return normalized.strftime("%Y-%m-%d")
        return normalized.strftime("%Y-%m-%d %H:%M:%S")
    if isinstance(normalized, date):
        return normalized.strftime("%Y-%m-%d")
    if isinstance(normalized, time):
        return normalized.strftime("%H:%M:%S")
    return str(normalized).strip()


def is_blank(value: Any) -> bool:
    return cell_text(value) == ""


def is_placeholder(text: str) -> bool:
    return text.strip() in PLACEHOLDER_VALUES


def strip_accents(text: str) -> str:
    decomposed = unicodedata.normalize("NFD", text)
    return "".join(ch for ch in decomposed if unicodedata.category(ch) != "Mn")


def normalize_label(text: str) -> str:
    """Lowercase, accent-free, single-spaced."""
    return WHITESPACE_RE.sub(" ", strip_accents(text).lower()).strip()


def compact_label(text: str) -> str:
    """``normalize_label`` with hyphens, spaces and underscores removed."""
    return SEPARATOR_RE.sub("", normalize_label(text))


def row_text(row: list[Any]) -> str:
    return " ".join(normalize_label(cell_text(cell)) for cell in row if not is_blank(cell))


def is_pure_integer(text: str) -> bool:
    return bool(INTEGER_RE.fullmatch(text.strip()))


def strip_dashes(text: str) -> str:
    return DASH_RE.sub("", text)
