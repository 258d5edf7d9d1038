"""
Patient directory page: search the clinic's patients and open a record.
"""

# Ensure project root is on sys.path (Streamlit page files need this).
import sys as _sys; from pathlib import Path as _Path; _r = str(_Path(__file__).resolve().parents[3]); _r in _sys.path or _sys.path.insert(0, _r)  # noqa: E702,I001

from src.ui.components.header import render_header  # noqa: E402
from src.ui.components.patient_directory import render_patient_directory  # noqa: E402
from src.ui.components.recorder import release_runner  # noqa: E402

# Leaving a patient page stops its recording and frees the microphone
release_runner()

render_header()
render_patient_directory()
