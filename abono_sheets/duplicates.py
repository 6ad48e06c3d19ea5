"""
Merge physical columns that share a header label.

Some Layout B revisions print "Documento - Tipo" and "Documento" twice; a row
fills one copy and leaves the other blank or "-". The logical column keeps
the first real value.
"""

from __future__ import annotations

from abono_sheets.models import HeaderRow
from abono_sheets.text import is_placeholder


def resolve_duplicates(headers: HeaderRow) -> tuple[HeaderRow, dict[str, list[int]]]:
    """Return logical headers (first-occurrence order) and label → physical indices."""
    remap: dict[str, list[int]] = {}
    for idx, label in enumerate(headers):
        remap.setdefault(label, []).append(idx)
    return list(remap), remap


def merge_row(cells: list[str], remap: dict[str, list[int]]) -> dict[str, str]:
    merged: dict[str, str] = {}
    for label, indices in remap.items():
        values = [cells[idx] if idx < len(cells) else "" for idx in indices]
        chosen = values[0]
        if is_placeholder(chosen):
            chosen = next((value for value in values[1:] if not is_placeholder(value)), chosen)
        merged[label] = chosen
    return merged
