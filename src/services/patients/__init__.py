"""
Patients module - Static clinic patient directory.
"""

from .directory import PATIENTS, get_patient, search_patients

__all__ = ["PATIENTS", "get_patient", "search_patients"]
