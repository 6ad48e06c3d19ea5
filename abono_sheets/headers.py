"""
headers.py: Header-row discovery and column-to-field mapping.

Public API:
    resolution = resolve_headers(grid, LayoutTag.LAYOUT_B)
    field_map  = build_field_map(resolution.headers, LayoutTag.LAYOUT_B)
    label      = find_best_match(resolution.headers, "monto", LayoutTag.LAYOUT_B)

Label comparison ignores case, accents, hyphens, spaces and underscores, so
"Cuenta - Número", "cuenta_numero" and "CUENTA NUMERO" are the same label.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Iterable, Optional

from abono_sheets.config import DEFAULT_CONFIG, ParserConfig
from abono_sheets.diagnostics import DiagnosticSink, emit
from abono_sheets.errors import LAYOUT_A_HEADER_FALLBACK, build_warning
from abono_sheets.layouts import (
    GENERIC_SYNONYMS,
    HEADER_KEYWORDS,
    TYPE_QUALIFIERS,
    contains_sentinel,
    has_keywords,
    matches_layout_a_signature,
    matches_layout_b_signature,
    profile_for,
)
from abono_sheets.models import Cell, FieldMap, HeaderRow, LayoutTag
from abono_sheets.text import cell_text, compact_label, normalize_label

logger = logging.getLogger(__name__)

STAGE = "headers"

STRATEGY_SIGNATURE = "signature"
STRATEGY_KEYWORDS = "keywords"
STRATEGY_FIRST_ROW = "first_row"


@dataclass
class HeaderResolution:
    header_row_index: int
    headers: HeaderRow
    strategy: str
    warnings: list[dict[str, Any]] = field(default_factory=list)

    @property
    def is_fallback(self) -> bool:
        return self.strategy != STRATEGY_SIGNATURE


def row_cells(row: list[Cell]) -> list[str]:
    return [cell_text(cell) for cell in row]


def clean_headers(row: list[Cell]) -> HeaderRow:
    """Trim every label; blank cells become ``Column_<n>`` (1-based)."""
    return [text or f"Column_{idx}" for idx, text in enumerate(row_cells(row), start=1)]


def _keyword_row(grid: list[list[Cell]], limit: int) -> Optional[int]:
    for idx, row in enumerate(grid[:limit]):
        if has_keywords(row_cells(row), HEADER_KEYWORDS):
            return idx
    return None


def _layout_b_signature_row(grid: list[list[Cell]], limit: int) -> Optional[int]:
    for idx, row in enumerate(grid[:limit]):
        if matches_layout_b_signature(row_cells(row)):
            return idx
    return None


def _signature_row(grid: list[list[Cell]], sentinels: tuple[str, ...]) -> Optional[int]:
    for idx, row in enumerate(grid):
        cells = row_cells(row)
        if contains_sentinel(cells, sentinels):
            return None
        if matches_layout_a_signature(cells):
            return idx
    return None


def resolve_headers(
    grid: list[list[Cell]],
    layout: LayoutTag,
    config: ParserConfig = DEFAULT_CONFIG,
    sink: Optional[DiagnosticSink] = None,
) -> HeaderResolution:
    warnings: list[dict[str, Any]] = []
    strategy = STRATEGY_FIRST_ROW
    index: Optional[int] = None

    if layout == LayoutTag.LAYOUT_A:
        index = _signature_row(grid, config.footer_sentinels)
        if index is not None:
            strategy = STRATEGY_SIGNATURE
        else:
            index = _keyword_row(grid, config.header_scan_rows)
            if index is not None:
                strategy = STRATEGY_KEYWORDS
            warnings.append(
                build_warning(
                    LAYOUT_A_HEADER_FALLBACK,
                    header_row_index=index if index is not None else 0,
                    strategy=strategy,
                )
            )
    else:
        # A full layout B header row beats an earlier keyword hit such as
        # "Cuenta de cargo: 193-..." in the title block.
        index = _layout_b_signature_row(grid, config.header_scan_rows)
        if index is not None:
            strategy = STRATEGY_SIGNATURE
        else:
            index = _keyword_row(grid, config.header_scan_rows)
            if index is not None:
                strategy = STRATEGY_KEYWORDS

    if index is None:
        index = 0

    headers = clean_headers(grid[index]) if grid else []
    emit(
        sink,
        STAGE,
        "header row resolved",
        level=logging.INFO if strategy == STRATEGY_SIGNATURE else logging.DEBUG,
        layout=layout.value,
        header_row_index=index,
        strategy=strategy,
        headers=list(headers),
    )
    if warnings:
        emit(sink, STAGE, "layout A signature not found; using fallback header", level=logging.WARNING, strategy=strategy)
    return HeaderResolution(header_row_index=index, headers=headers, strategy=strategy, warnings=warnings)


# ══════════════════════════════════════════════════════════════════════════════
# FIELD MATCHING
# ══════════════════════════════════════════════════════════════════════════════

def _has_type_qualifier(label: str) -> bool:
    normalized = normalize_label(label)
    return any(q in normalized for q in TYPE_QUALIFIERS)


ACCOUNT_NUMBER_LABELS = {"cuenta", "cuentanumero", "numerocuenta", "nrocuenta", "cuentanro"}


def _is_document_label(label: str) -> bool:
    return "documento" in normalize_label(label)


def find_best_match(
    headers: Iterable[str],
    field_name: str,
    layout: LayoutTag,
    exclude: Iterable[str] = (),
) -> Optional[str]:
    """
    Return the header label that best matches a canonical field, or None.

    The layout's priority list is tried first, then the generic synonyms.
    For each pattern an exact match beats a containment match in either
    direction; the first hit wins.
    """
    excluded = set(exclude)
    candidates = [label for label in headers if label not in excluded]

    if field_name == "documento_tipo":
        for label in candidates:
            if _is_document_label(label) and _has_type_qualifier(label):
                return label
    elif field_name == "documento":
        candidates = [label for label in candidates if not _has_type_qualifier(label)]
        documents = [label for label in candidates if _is_document_label(label)]
        for label in documents:
            if compact_label(label) == "documento":
                return label
        if documents:
            return documents[0]
    elif field_name == "cuenta_numero":
        candidates = [label for label in candidates if not _has_type_qualifier(label)]
        for label in candidates:
            if compact_label(label) in ACCOUNT_NUMBER_LABELS:
                return label

    compacts = [(label, compact_label(label)) for label in candidates]
    patterns = profile_for(layout).priority.get(field_name, []) + GENERIC_SYNONYMS.get(field_name, [])
    for pattern in patterns:
        target = compact_label(pattern)
        for label, compact in compacts:
            if compact == target:
                return label
        for label, compact in compacts:
            if target in compact or (len(compact) >= 3 and compact in target):
                return label
    return None


def build_field_map(headers: HeaderRow, layout: LayoutTag) -> FieldMap:
    """
    Map the layout's canonical fields to header labels.

    Fields claim columns in profile order, so "Monto" is taken by ``monto``
    before ``monto_mn`` can reach it through containment.
    """
    field_map: FieldMap = {}
    for field_name in profile_for(layout).fields:
        label = find_best_match(headers, field_name, layout, exclude=field_map.values())
        if label is not None:
            field_map[field_name] = label
    logger.debug("field map for %s: %s", layout.value, field_map)
    return field_map
