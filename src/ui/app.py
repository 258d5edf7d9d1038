"""
Clinic Scribe Streamlit UI: main entry point.

Run with: ``streamlit run src/ui/app.py``
"""

# ---------------------------------------------------------------------------
# Ensure project root is on sys.path so ``from src.xxx`` imports work.
# Streamlit replaces sys.path[0] with the script directory (src/ui/),
# which removes the project root needed for absolute ``src.*`` imports.
# ---------------------------------------------------------------------------
import sys  # noqa: E402
from pathlib import Path  # noqa: E402

_project_root = str(Path(__file__).resolve().parent.parent.parent)
if _project_root not in sys.path:
    sys.path.insert(0, _project_root)

import streamlit as st  # noqa: E402

from src.core.config import get_settings  # noqa: E402
from src.core.logging import configure_logging  # noqa: E402

_settings = get_settings()
configure_logging(_settings.log_level)

# ---------------------------------------------------------------------------
# Page config (must be first Streamlit call)
# ---------------------------------------------------------------------------
st.set_page_config(
    page_title=_settings.clinic_name,
    page_icon="\U0001fa7a",
    layout="wide",
)

# ---------------------------------------------------------------------------
# Session state defaults
# ---------------------------------------------------------------------------
_DEFAULTS = {
    "api_base_url": _settings.api_base_url,
    "patient_search": "",
    "selected_patient_id": None,
}

for key, value in _DEFAULTS.items():
    if key not in st.session_state:
        st.session_state[key] = value

# ---------------------------------------------------------------------------
# Sidebar
# ---------------------------------------------------------------------------
with st.sidebar:
    st.title(f"\U0001fa7a {_settings.clinic_name}")
    st.caption(_settings.physician_name)
    st.divider()
    st.session_state.api_base_url = st.text_input(
        "Backend API URL",
        value=st.session_state.api_base_url,
        help="URL of the Clinic Scribe FastAPI backend server (default: http://localhost:8000)",
    )

    # Connection status indicator
    from src.ui.api_client import get_api_client  # noqa: E402

    _client = get_api_client(st.session_state.api_base_url)
    _conn_ok, _conn_msg = _client.check_connection()
    if _conn_ok:
        st.success(f"Backend: {_conn_msg}")
    else:
        st.error(f"Backend: {_conn_msg}")

    if not _settings.gladia_api_key:
        st.warning("GLADIA_API_KEY is not set; live transcription will fail to start.")

# ---------------------------------------------------------------------------
# Navigation (multipage)
# ---------------------------------------------------------------------------
patients_page = st.Page(
    "pages/01_patients.py",
    title="Patients",
    icon="\U0001f465",
    default=True,
)
details_page = st.Page(
    "pages/02_patient_details.py",
    title="Patient Details",
    icon="\U0001f4c4",
)

nav = st.navigation([patients_page, details_page])
nav.run()
