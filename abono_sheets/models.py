from __future__ import annotations

from dataclasses import asdict, dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Optional, Union

Cell = Union[str, int, float, None]
HeaderRow = list[str]
FieldMap = dict[str, str]
ExtractedRow = dict[str, str]


class LayoutTag(str, Enum):
    LAYOUT_A = "layout_a"
    LAYOUT_B = "layout_b"
    UNKNOWN = "unknown"

    @classmethod
    def coerce(cls, value: "LayoutTag | str | None") -> Optional["LayoutTag"]:
        """Accept a tag, its value, or a bank name ("BBVA" → A, "BCP" → B)."""
        if value is None or isinstance(value, LayoutTag):
            return value
        text = str(value).strip().lower()
        if not text:
            return None
        aliases = {
            "a": cls.LAYOUT_A,
            "bbva": cls.LAYOUT_A,
            "b": cls.LAYOUT_B,
            "bcp": cls.LAYOUT_B,
        }
        if text in aliases:
            return aliases[text]
        try:
            return cls(text)
        except ValueError as exc:
            raise ValueError(f"Unknown layout or bank hint: {value!r}") from exc


@dataclass
class RawSheet:
    name: str
    rows: list[list[Cell]]

    @property
    def width(self) -> int:
        return max((len(row) for row in self.rows), default=0)

    def is_empty(self) -> bool:
        return not any(
            cell is not None and str(cell).strip() != "" for row in self.rows for cell in row
        )


CANONICAL_FIELDS = (
    "beneficiario",
    "documento_tipo",
    "documento",
    "documento_2",
    "documento_3",
    "monto_mn",
    "monto",
    "tc",
    "monto_abonado",
    "monto_abonado_2",
    "cuenta_tipo",
    "cuenta_numero",
    "cuenta_nombre",
    "estado",
    "observaciones",
    "banco",
)


@dataclass
class AbonoRecord:
    id: str
    beneficiario: str = ""
    documento_tipo: str = ""
    documento: str = ""
    documento_2: str = ""
    documento_3: str = ""
    monto_mn: float = 0.0
    monto: float = 0.0
    tc: str = ""
    monto_abonado: float = 0.0
    monto_abonado_2: float = 0.0
    cuenta_tipo: str = ""
    cuenta_numero: str = ""
    cuenta_nombre: str = ""
    estado: str = ""
    observaciones: str = ""
    banco: str = ""
    origen: str = ""

    def has_content(self) -> bool:
        return bool(self.beneficiario or self.monto > 0 or self.estado or self.cuenta_numero)

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass
class ParseResult:
    file_name: str
    layout: LayoutTag
    layout_source: str
    sheet_name: Optional[str]
    header_row_index: Optional[int]
    headers: HeaderRow
    field_map: FieldMap
    records: list[AbonoRecord]
    warnings: list[dict[str, Any]] = field(default_factory=list)
    low_confidence: bool = False
    events: list[dict[str, Any]] = field(default_factory=list)

    @property
    def warning_codes(self) -> list[str]:
        return [warning["code"] for warning in self.warnings]

    def to_dict(self) -> dict[str, Any]:
        return {
            "file_name": self.file_name,
            "layout": self.layout.value,
            "layout_source": self.layout_source,
            "sheet_name": self.sheet_name,
            "header_row_index": self.header_row_index,
            "headers": list(self.headers),
            "field_map": dict(self.field_map),
            "record_count": len(self.records),
            "records": [record.to_dict() for record in self.records],
            "warnings": list(self.warnings),
            "low_confidence": self.low_confidence,
        }


@dataclass
class CombinedResult:
    records: list[AbonoRecord]
    sources: list[str]
    processed_at: datetime
    warnings: list[dict[str, Any]] = field(default_factory=list)

    @property
    def total_records(self) -> int:
        return len(self.records)

    def to_dict(self) -> dict[str, Any]:
        return {
            "sources": list(self.sources),
            "processed_at": self.processed_at.replace(microsecond=0).isoformat().replace("+00:00", "Z"),
            "total_records": self.total_records,
            "records": [record.to_dict() for record in self.records],
            "warnings": list(self.warnings),
        }
