"""In-memory patient directory with case-insensitive search.

The directory is a fixed list; adding patients is acknowledged by the API
but never persisted.
"""

from datetime import date

from src.core.exceptions import PatientNotFoundError
from src.core.models import Patient

PATIENTS: tuple[Patient, ...] = (
    Patient(id="P001", name="John Smith", diagnosis="Type 2 Diabetes", date=date(2023, 4, 15)),
    Patient(id="P002", name="Sarah Johnson", diagnosis="Hypothyroidism", date=date(2023, 4, 16)),
    Patient(id="P003", name="Michael Brown", diagnosis="Graves' Disease", date=date(2023, 4, 17)),
    Patient(id="P004", name="Emily Davis", diagnosis="Adrenal Insufficiency", date=date(2023, 4, 18)),
    Patient(id="P005", name="Robert Wilson", diagnosis="Cushing's Syndrome", date=date(2023, 4, 19)),
    Patient(id="P006", name="Jennifer Lee", diagnosis="Hyperthyroidism", date=date(2023, 4, 20)),
    Patient(id="P007", name="David Martinez", diagnosis="Osteoporosis", date=date(2023, 4, 21)),
    Patient(id="P008", name="Lisa Anderson", diagnosis="Hashimoto's Thyroiditis", date=date(2023, 4, 22)),
    Patient(id="P009", name="James Taylor", diagnosis="Pituitary Adenoma", date=date(2023, 4, 23)),
    Patient(id="P010", name="Patricia Garcia", diagnosis="Diabetic Neuropathy", date=date(2023, 4, 24)),
)


def search_patients(query: str = "", patients=PATIENTS) -> list[Patient]:
    """Return patients whose name, diagnosis or ID contains ``query``.

    Matching is a case-insensitive substring test, so an empty query
    returns every patient in directory order.
    """
    needle = query.lower()
    return [
        p
        for p in patients
        if needle in p.name.lower() or needle in p.diagnosis.lower() or needle in p.id.lower()
    ]


def get_patient(patient_id: str, patients=PATIENTS) -> Patient:
    """Look up a patient by exact ID.

    Raises:
        PatientNotFoundError: If no patient has this ID.
    """
    for p in patients:
        if p.id == patient_id:
            return p
    raise PatientNotFoundError(patient_id)
