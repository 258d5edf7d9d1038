"""
Patient details page: patient information and live consultation transcription.

UX flow: idle -> requesting -> active -> stopping -> idle
"""

# Ensure project root is on sys.path (Streamlit page files need this).
import sys as _sys; from pathlib import Path as _Path; _r = str(_Path(__file__).resolve().parents[3]); _r in _sys.path or _sys.path.insert(0, _r)  # noqa: E702,I001

import streamlit as st  # noqa: E402

from src.ui.api_client import APIError, get_api_client  # noqa: E402
from src.ui.components.header import render_header  # noqa: E402
from src.ui.components.recorder import release_runner, render_recorder  # noqa: E402
from src.ui.utils import format_visit_date  # noqa: E402

PATIENTS_PAGE = "pages/01_patients.py"

render_header()

if st.button("⬅ Back to Patient List"):
    st.switch_page(PATIENTS_PAGE)

patient_id = st.query_params.get("id") or st.session_state.selected_patient_id

patient = None
if patient_id:
    try:
        patient = get_api_client(st.session_state.api_base_url).get_patient(patient_id)
    except APIError as exc:
        st.error(exc.message)
        st.stop()

if patient is None:
    release_runner()
    with st.container(border=True):
        st.markdown("<h3 style='color:#dc2626;text-align:center'>Patient Not Found</h3>", unsafe_allow_html=True)
        st.markdown(f'The patient with ID "{patient_id or ""}" could not be found.')
        if st.button("Return to Patient List", type="primary"):
            st.switch_page(PATIENTS_PAGE)
    st.stop()

visit_date = format_visit_date(patient["date"])

with st.container(border=True):
    st.header(patient["name"])
    st.markdown(
        f":blue-background[ID: {patient['id']}] "
        f":blue-background[Diagnosis: {patient['diagnosis']}] "
        f":blue-background[Date: {visit_date}]"
    )

    info_col, medical_col = st.columns(2)
    with info_col:
        st.markdown("**Patient Information**")
        st.caption(f"Name: {patient['name']}")
        st.caption(f"ID: {patient['id']}")
    with medical_col:
        st.markdown("**Medical Information**")
        st.caption(f"Diagnosis: {patient['diagnosis']}")
        st.caption(f"Date: {visit_date}")

    st.divider()
    render_recorder(patient["id"])
