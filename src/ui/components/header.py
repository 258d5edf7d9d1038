"""Clinic banner shown at the top of every page."""

import streamlit as st

from src.core.config import get_settings


def render_header() -> None:
    settings = get_settings()
    st.markdown(
        f"<div style='background:#0f766e;color:white;padding:1.25rem;border-radius:0.5rem;"
        f"text-align:center;margin-bottom:1rem'>"
        f"<h1 style='color:white;margin:0'>{settings.clinic_name}</h1>"
        f"<p style='color:#ccfbf1;font-size:1.2rem;margin:0'>{settings.physician_name}</p>"
        f"</div>",
        unsafe_allow_html=True,
    )
