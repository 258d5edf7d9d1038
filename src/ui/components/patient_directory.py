"""
Patient directory component: search box, patient list and the add-patient dialog.
"""

import logging

import streamlit as st

from src.ui.api_client import APIError, get_api_client
from src.ui.utils import format_visit_date

logger = logging.getLogger(__name__)

DETAILS_PAGE = "pages/02_patient_details.py"


def _open_patient(patient_id: str) -> None:
    st.session_state.selected_patient_id = patient_id
    st.switch_page(DETAILS_PAGE)


@st.dialog("Add New Patient")
def _add_patient_dialog() -> None:
    """Demo form: the backend validates the input but stores nothing."""
    with st.form("add_patient_form"):
        name = st.text_input("Patient Name", placeholder="Enter patient name")
        patient_id = st.text_input("Patient ID", placeholder="Enter patient ID")
        diagnosis = st.text_input("Diagnosis", placeholder="Enter diagnosis")
        submitted = st.form_submit_button("Add Patient")

    if submitted:
        if not name.strip() or not patient_id.strip():
            st.error("Patient name and ID are required.")
            return
        try:
            result = get_api_client(st.session_state.api_base_url).add_patient(
                patient_id=patient_id.strip(),
                name=name.strip(),
                diagnosis=diagnosis.strip(),
            )
        except APIError as exc:
            st.error(exc.message)
            return
        st.success(result.get("message", "Patient accepted."))


def render_patient_directory() -> None:
    """Render the searchable patient list."""
    st.subheader("Patient Directory")

    st.session_state.patient_search = st.text_input(
        "Search",
        value=st.session_state.patient_search,
        placeholder="Search by name, ID, or diagnosis...",
        label_visibility="collapsed",
    )

    col_title, col_add = st.columns([4, 1])
    with col_title:
        st.markdown("#### Patient List")
    with col_add:
        if st.button("➕ Add New Patient", use_container_width=True):
            _add_patient_dialog()

    client = get_api_client(st.session_state.api_base_url)
    try:
        patients = client.list_patients(st.session_state.patient_search)
    except APIError as exc:
        st.error(exc.message)
        return

    if not patients:
        st.info("No patients found matching your search.")
        return

    header = st.columns([3, 1, 3, 2, 1])
    for col, label in zip(header, ["Name", "ID", "Diagnosis", "Date", ""], strict=True):
        col.markdown(f"**{label}**")

    for patient in patients:
        name_col, id_col, diag_col, date_col, action_col = st.columns([3, 1, 3, 2, 1])
        name_col.write(patient["name"])
        id_col.write(patient["id"])
        diag_col.write(patient["diagnosis"])
        date_col.write(format_visit_date(patient["date"]))
        if action_col.button("\U0001f4c4 View", key=f"view_{patient['id']}"):
            _open_patient(patient["id"])
