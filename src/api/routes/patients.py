"""
Patient directory REST endpoints.

Read-only access to the static clinic directory, plus the demo
add-patient endpoint which validates input but stores nothing.
"""

import logging

from fastapi import APIRouter, Query

from src.core.models import Patient, PatientCreate, PatientCreateResponse
from src.services.patients import get_patient as lookup_patient
from src.services.patients import search_patients

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/patients", tags=["patients"])


@router.get("", response_model=list[Patient])
async def list_patients(q: str = Query("", max_length=200)):
    """List patients, filtered by a case-insensitive match on name, diagnosis or ID."""
    return search_patients(q)


@router.get("/{patient_id}", response_model=Patient)
async def get_patient(patient_id: str):
    """Return a single patient, or 404 ``PATIENT_NOT_FOUND``."""
    return lookup_patient(patient_id)


@router.post("", response_model=PatientCreateResponse, status_code=202)
async def add_patient(body: PatientCreate):
    """Acknowledge a new patient. Nothing is persisted."""
    logger.info("Add-patient request acknowledged (not persisted): %s", body.id)
    return PatientCreateResponse(patient=body)
