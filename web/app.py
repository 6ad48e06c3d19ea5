#!/usr/bin/env python3
from __future__ import annotations

from datetime import date
from typing import Optional

import streamlit as st

from abono_sheets.auth import SessionStore, login
from abono_sheets.errors import AbonoSheetsError, AuthError
from abono_sheets.export import export_csv, export_filename, export_xlsx
from abono_sheets.models import AbonoRecord, CombinedResult, ParseResult
from abono_sheets.pipeline import combine_results, parse_file
from abono_sheets.reader import UPLOAD_EXTENSIONS, is_supported_upload
from abono_sheets.views import ALL, compare_headers, filter_records, records_frame, summarize

SLOTS = [
    {"key": "bbva", "label": "Archivo BBVA", "bank": "BBVA"},
    {"key": "bcp", "label": "Archivo BCP", "bank": "BCP"},
]

STATUS_OK = {"ABONO CORRECTO", "TERMINADA OK"}
STATUS_FAILED = {"ERROR", "RECHAZADO"}
STATUS_COLORS = {
    "ok": "background-color: #dcfce7; color: #166534",
    "failed": "background-color: #fee2e2; color: #991b1b",
    "other": "background-color: #fef9c3; color: #854d0e",
}
BANK_COLORS = {"BBVA": "color: #2563eb", "BCP": "color: #7c3aed"}

XLSX_MIME = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"


def status_class(estado: str) -> str:
    if estado in STATUS_OK:
        return "ok"
    if estado in STATUS_FAILED:
        return "failed"
    return "other"


def ensure_state() -> None:
    for slot in SLOTS:
        st.session_state.setdefault(f"result_{slot['key']}", None)
        st.session_state.setdefault(f"error_{slot['key']}", None)
        st.session_state.setdefault(f"upload_id_{slot['key']}", None)


def session_store() -> SessionStore:
    return SessionStore(st.session_state)


def render_login() -> None:
    st.title("Carga de Abonos")
    st.caption("Inicia sesión para procesar los reportes de abonos.")
    with st.form("login_form"):
        agente = st.text_input("Usuario")
        contrasena = st.text_input("Contraseña", type="password")
        submitted = st.form_submit_button("Ingresar", type="primary")
    if not submitted:
        return
    if not agente or not contrasena:
        st.error("Ingresa usuario y contraseña.")
        return
    try:
        response = login(agente, contrasena)
    except AuthError as exc:
        st.error(exc.message)
        return
    if not response.succeeded:
        st.error(response.message or "Error de autenticación")
        return
    session_store().save(response)
    st.rerun()


def process_upload(slot: dict, upload) -> None:
    """Parse a new upload once; the result stays in session state."""
    key = slot["key"]
    upload_id = f"{upload.name}:{upload.size}"
    if st.session_state[f"upload_id_{key}"] == upload_id:
        return
    st.session_state[f"upload_id_{key}"] = upload_id
    st.session_state[f"result_{key}"] = None
    st.session_state[f"error_{key}"] = None

    if not is_supported_upload(upload.name, upload.type):
        allowed = ", ".join(UPLOAD_EXTENSIONS)
        st.session_state[f"error_{key}"] = f"Formato no soportado. Sube un archivo {allowed}."
        return
    try:
        st.session_state[f"result_{key}"] = parse_file(
            upload.getvalue(),
            upload.name,
            hint=slot["bank"],
            bank_override=slot["bank"],
            content_type=upload.type,
        )
    except AbonoSheetsError as exc:
        st.session_state[f"error_{key}"] = exc.message


def clear_slot(slot: dict) -> None:
    key = slot["key"]
    st.session_state[f"result_{key}"] = None
    st.session_state[f"error_{key}"] = None
    st.session_state[f"upload_id_{key}"] = None


def render_slot(slot: dict) -> None:
    key = slot["key"]
    st.subheader(slot["label"])
    upload = st.file_uploader(
        slot["label"],
        type=[ext.lstrip(".") for ext in UPLOAD_EXTENSIONS],
        key=f"upload_{key}",
        label_visibility="collapsed",
    )
    if upload is None:
        clear_slot(slot)
        return
    process_upload(slot, upload)

    error = st.session_state[f"error_{key}"]
    if error:
        st.error(error)
        return
    result: Optional[ParseResult] = st.session_state[f"result_{key}"]
    if result is None:
        return
    st.success(f"{len(result.records)} registros · hoja '{result.sheet_name}' · fila de cabecera {result.header_row_index + 1}")
    for warning in result.warnings:
        if warning["severity"] == "info":
            st.info(warning["message"])
        else:
            st.warning(warning["message"])


def render_metrics(records: list[AbonoRecord], combined: CombinedResult) -> None:
    summary = summarize(records)
    cols = st.columns(4)
    cols[0].metric("Total registros", summary["total_records"])
    cols[1].metric("Monto total", f"S/ {summary['total_amount']:,.2f}")
    cols[2].metric("Clientes", summary["unique_beneficiaries"])
    cols[3].metric("Procesado", combined.processed_at.strftime("%d/%m/%Y"))


def style_table(frame):
    def estado_style(value: str) -> str:
        return STATUS_COLORS[status_class(value)]

    def banco_style(value: str) -> str:
        return BANK_COLORS.get(value, "")

    return frame.style.map(estado_style, subset=["Estado"]).map(banco_style, subset=["Banco"]).format({"Monto": "S/ {:,.2f}"})


def render_combined(combined: CombinedResult) -> None:
    st.subheader("Carga de Abonos")
    summary = summarize(combined.records)
    left, middle, right = st.columns([2, 1, 1])
    search = left.text_input("Buscar", placeholder="Beneficiario, documento o cuenta")
    estado = middle.selectbox("Estado", [ALL] + summary["estados"], format_func=lambda v: "Todos" if v == ALL else v)
    origen = right.selectbox("Origen", [ALL] + combined.sources, format_func=lambda v: "Todos" if v == ALL else v)

    records = filter_records(combined.records, search=search, estado=estado, origen=origen)
    render_metrics(records, combined)

    if not records:
        st.info("No hay registros que coincidan con los filtros.")
        return
    st.dataframe(style_table(records_frame(records)), width="stretch", hide_index=True)

    downloads = st.columns(2)
    downloads[0].download_button(
        "Exportar CSV",
        data=export_csv(records),
        file_name=export_filename("csv", date.today()),
        mime="text/csv",
        width="stretch",
    )
    downloads[1].download_button(
        "Exportar XLSX",
        data=export_xlsx(records),
        file_name=export_filename("xlsx"),
        mime=XLSX_MIME,
        width="stretch",
    )


def render_comparison(first: ParseResult, second: ParseResult) -> None:
    comparison = compare_headers(first, second)
    with st.expander(f"Comparación de columnas · similitud {comparison['similarity']}%"):
        cols = st.columns(3)
        cols[0].markdown(f"**Comunes ({len(comparison['common'])})**")
        cols[0].write(comparison["common"] or "-")
        cols[1].markdown(f"**Solo en {first.file_name} ({len(comparison['only_first'])})**")
        cols[1].write(comparison["only_first"] or "-")
        cols[2].markdown(f"**Solo en {second.file_name} ({len(comparison['only_second'])})**")
        cols[2].write(comparison["only_second"] or "-")


def set_visuals() -> None:
    st.set_page_config(page_title="Carga de Abonos", page_icon="💳", layout="wide", initial_sidebar_state="collapsed")
    st.markdown(
        """
        <style>
        .block-container {
            padding-top: 2rem;
            padding-bottom: 2rem;
            max-width: 1200px;
        }
        [data-testid="stDecoration"], [data-testid="stStatusWidget"] {
            display: none !important;
        }
        </style>
        """,
        unsafe_allow_html=True,
    )


def main() -> None:
    set_visuals()
    store = session_store()
    if not store.is_authenticated():
        render_login()
        return

    ensure_state()
    header, logout = st.columns([5, 1])
    header.title("Carga de Abonos")
    if logout.button("Cerrar sesión", width="stretch"):
        store.clear()
        for slot in SLOTS:
            clear_slot(slot)
        st.rerun()

    columns = st.columns(len(SLOTS))
    for column, slot in zip(columns, SLOTS):
        with column:
            render_slot(slot)

    results = [st.session_state[f"result_{slot['key']}"] for slot in SLOTS]
    parsed = [result for result in results if result is not None]
    if not parsed:
        st.info("Sube al menos un archivo .xls o .xlsx para ver los abonos.")
        return

    if len(parsed) == 2:
        render_comparison(parsed[0], parsed[1])
    render_combined(combine_results(*results))


if __name__ == "__main__":
    main()
