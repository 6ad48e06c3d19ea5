"""
Layout strategies.

Each known report layout is one ``LayoutProfile``. A profile carries the
header signature, the header-priority lists, the row inclusion predicate and
the footer/duplicate handling switches. Downstream stages never branch on the
bank name; they ask the profile.

Layout A ("Relación de las cuentas de abono", BBVA):
    Sel | No. | Cuenta | Banco | Titular(Archivo) | Titular(Banco) |
    Doc.Identidad | Importe | Situación
    The table sits deep in the sheet under a title block and is followed by
    legal boilerplate that starts with "Estimado cliente:".

Layout B (BCP payroll disbursement export):
    ... | Beneficiario - Nombre | Documento - Tipo | Documento | ... |
    Monto - Moneda | Monto | ... | Cuenta - Número | Estado | Observación
    Some revisions repeat "Documento - Tipo"/"Documento" at a second offset.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Optional

from abono_sheets.models import LayoutTag
from abono_sheets.text import compact_label, is_pure_integer, normalize_label

# ══════════════════════════════════════════════════════════════════════════════
# HEADER PRIORITY LISTS
# ══════════════════════════════════════════════════════════════════════════════

LAYOUT_A_PRIORITY: dict[str, list[str]] = {
    "beneficiario": ["titular(archivo)", "titular"],
    "documento": ["doc.identidad", "doc identidad", "documento"],
    "monto": ["importe"],
    "cuenta_numero": ["cuenta"],
    "estado": ["situacion", "situ", "estado"],
    "banco": ["banco"],
}

LAYOUT_B_PRIORITY: dict[str, list[str]] = {
    "beneficiario": ["beneficiario - nombre", "beneficiario", "cliente", "nombre", "titular"],
    "documento_tipo": ["documento - tipo", "tipo documento", "doc tipo", "documento tipo"],
    "documento": ["documento", "numero documento", "documento - numero"],
    "monto": ["monto", "importe", "amount", "monto - monto"],
    "monto_mn": ["monto - m/n", "monto mn"],
    "cuenta_numero": ["cuenta - numero", "cuenta numero", "numero cuenta", "cuenta", "cuenta - n"],
    "cuenta_tipo": ["cuenta - tipo", "cuenta - t", "cuenta tipo", "tipo cuenta"],
    "estado": ["estado", "status", "situacion"],
    "observaciones": ["observacion", "observaciones", "obs"],
    "banco": ["banco", "entidad", "institucion"],
}

GENERIC_SYNONYMS: dict[str, list[str]] = {
    "beneficiario": [
        "titular(archivo)", "titular(banco)", "beneficiario - nombre", "beneficiario", "titular",
        "cliente", "client", "nombre", "name", "cliente_nombre", "pasajero",
    ],
    "documento_tipo": ["documento - tipo", "documento - tipo documento", "tipo documento", "doc tipo"],
    "documento": ["documento", "doc.identidad", "documento - documento", "numero documento"],
    "documento_2": ["documento 2", "documento - documento 2", "segundo documento"],
    "documento_3": ["documento 3", "documento - documento 3", "tercer documento"],
    "monto_mn": ["monto - m/n", "monto mn", "monto soles"],
    "monto": [
        "monto", "amount", "importe", "valor", "precio", "total", "suma",
        "monto - monto", "importe cargado por abonos",
    ],
    "tc": ["t/c", "tipo cambio", "tc", "cambio"],
    "monto_abonado": ["monto abonado", "monto - abonado", "abonado"],
    "monto_abonado_2": ["monto abonado 2", "monto - abonado 2", "segundo abonado"],
    "cuenta_tipo": ["cuenta - t", "cuenta tipo", "tipo cuenta"],
    "cuenta_numero": ["cuenta - n", "cuenta numero", "numero cuenta", "cuenta - cuenta", "cuenta"],
    "cuenta_nombre": ["cuenta - nombre", "nombre cuenta"],
    "estado": ["estado", "status", "situacion", "condicion", "situacion de proceso"],
    "observaciones": ["observaciones", "observacion", "comentarios", "notas", "obs"],
    "banco": ["banco", "entidad", "bank", "institucion"],
}

# ══════════════════════════════════════════════════════════════════════════════
# KEYWORDS AND SIGNATURES
# ══════════════════════════════════════════════════════════════════════════════

PAYEE_KEYWORDS = ("beneficiario", "titular", "cliente", "nombre")
ACCOUNT_KEYWORDS = ("cuenta",)
AMOUNT_KEYWORDS = ("monto", "importe")
DOCUMENT_KEYWORDS = ("documento",)
STATUS_KEYWORDS = ("estado", "situacion")
OBSERVATION_KEYWORDS = ("observacion",)

# Detector pass 2: generic evidence of a disbursement table.
DETECTION_KEYWORDS = PAYEE_KEYWORDS + ACCOUNT_KEYWORDS + AMOUNT_KEYWORDS + DOCUMENT_KEYWORDS
# Header search for the permissive layout.
HEADER_KEYWORDS = DETECTION_KEYWORDS + STATUS_KEYWORDS + OBSERVATION_KEYWORDS

SEQUENCE_LABELS = {"no", "no.", "nro", "nro.", "n°", "n.°", "num", "num.", "numero"}
TYPE_QUALIFIERS = ("tipo", "type")


def row_labels(cells: list[str]) -> list[str]:
    return [normalize_label(cell) for cell in cells if cell.strip()]


def matches_layout_a_signature(cells: list[str]) -> bool:
    """Select, sequence-no, account, payee-as-filed and amount in one row."""
    labels = row_labels(cells)
    compacts = [compact_label(label) for label in labels]
    has_select = any(item.startswith("sel") for item in compacts)
    has_sequence = any(item in SEQUENCE_LABELS for item in compacts)
    has_account = any("cuenta" in item for item in compacts)
    has_payee_filed = any("titular(archivo)" in item for item in compacts)
    has_amount = any("importe" in item for item in compacts)
    return has_select and has_sequence and has_account and has_payee_filed and has_amount


def matches_layout_b_signature(cells: list[str]) -> bool:
    """Payee name, document type, amount and account number in one row."""
    labels = row_labels(cells)
    has_payee = any("beneficiario" in label for label in labels)
    has_doc_type = any(
        "documento" in label and any(q in label for q in TYPE_QUALIFIERS) for label in labels
    )
    has_amount = any(any(k in label for k in AMOUNT_KEYWORDS) for label in labels)
    has_account_number = any(
        "cuenta" in label and ("numero" in label or "nro" in label) for label in labels
    )
    return has_payee and has_doc_type and has_amount and has_account_number


def has_keywords(cells: list[str], keywords: tuple[str, ...]) -> bool:
    """Keyword evidence needs at least two populated cells to rule out titles."""
    labels = row_labels(cells)
    if len(labels) < 2:
        return False
    return any(keyword in label for label in labels for keyword in keywords)


def contains_sentinel(cells: list[str], sentinels: tuple[str, ...]) -> bool:
    text = " ".join(row_labels(cells))
    return any(sentinel in text for sentinel in sentinels)


# ══════════════════════════════════════════════════════════════════════════════
# ROW INCLUSION
# ══════════════════════════════════════════════════════════════════════════════

def sequence_column(headers: list[str]) -> Optional[int]:
    """Index of the "No." column, or None when the header has none."""
    for idx, label in enumerate(headers):
        if compact_label(label) in SEQUENCE_LABELS:
            return idx
    return None


def include_row_layout_a(cells: list[str], key_columns: list[int], sequence_col: Optional[int] = None) -> bool:
    """A sequence number, or any filled key column, keeps the row.

    Without a known sequence column the first non-blank cell is tested.
    """
    if not cells:
        return False
    if sequence_col is None:
        leading = next((cell for cell in cells if cell.strip()), "")
    else:
        leading = cells[sequence_col] if sequence_col < len(cells) else ""
    if is_pure_integer(leading):
        return True
    return any(idx < len(cells) and cells[idx].strip() for idx in key_columns)


def include_row_layout_b(cells: list[str], key_columns: list[int], sequence_col: Optional[int] = None) -> bool:
    return any(cell.strip() for cell in cells)


# ══════════════════════════════════════════════════════════════════════════════
# PROFILES
# ══════════════════════════════════════════════════════════════════════════════

@dataclass(frozen=True)
class LayoutProfile:
    tag: LayoutTag
    priority: dict[str, list[str]]
    # Canonical fields wired into AbonoRecord for this layout, in the order
    # they claim header columns.
    fields: tuple[str, ...]
    # Fields whose columns decide row inclusion.
    key_fields: tuple[str, ...]
    include_row: Callable[..., bool]
    uses_footer_sentinel: bool
    merges_duplicate_columns: bool


LAYOUT_A = LayoutProfile(
    tag=LayoutTag.LAYOUT_A,
    priority=LAYOUT_A_PRIORITY,
    fields=("beneficiario", "documento", "monto", "cuenta_numero", "estado"),
    key_fields=("cuenta_numero", "beneficiario", "monto", "estado"),
    include_row=include_row_layout_a,
    uses_footer_sentinel=True,
    merges_duplicate_columns=False,
)

LAYOUT_B = LayoutProfile(
    tag=LayoutTag.LAYOUT_B,
    priority=LAYOUT_B_PRIORITY,
    fields=(
        "beneficiario",
        "documento_tipo",
        "documento",
        "monto",
        "monto_mn",
        "cuenta_numero",
        "cuenta_tipo",
        "estado",
        "observaciones",
    ),
    key_fields=(),
    include_row=include_row_layout_b,
    uses_footer_sentinel=False,
    merges_duplicate_columns=True,
)

PROFILES = {
    LayoutTag.LAYOUT_A: LAYOUT_A,
    LayoutTag.LAYOUT_B: LAYOUT_B,
}


def profile_for(layout: LayoutTag) -> LayoutProfile:
    """UNKNOWN is parsed with the permissive layout."""
    return PROFILES.get(layout, LAYOUT_B)
