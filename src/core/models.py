"""
Pydantic v2 models used across the API, UI and transcription layers.

v0.1.0: Health, Patient, Error
v0.2.0: Live transcription (session, Gladia wire messages, transcript events, states)
"""

from datetime import date, datetime
from enum import StrEnum

from pydantic import BaseModel, ConfigDict, Field

# ---------------------------------------------------------------------------
# Health
# ---------------------------------------------------------------------------


class HealthResponse(BaseModel):
    """GET /health response."""

    status: str = "ok"
    version: str = "0.1.0"
    timestamp: datetime


# ---------------------------------------------------------------------------
# Patient
# ---------------------------------------------------------------------------


class Patient(BaseModel):
    """A patient entry in the clinic directory."""

    model_config = ConfigDict(frozen=True)

    id: str
    name: str
    diagnosis: str
    date: date


class PatientCreate(BaseModel):
    """POST /patients request body (validated, never persisted)."""

    id: str = Field(min_length=1, max_length=32)
    name: str = Field(min_length=1, max_length=200)
    diagnosis: str = ""


class PatientCreateResponse(BaseModel):
    """Acknowledgement returned for the demo add-patient form."""

    accepted: bool = True
    message: str = "Patient would be added here. This is just a demo."
    patient: PatientCreate


# ---------------------------------------------------------------------------
# Live transcription session
# ---------------------------------------------------------------------------


class SessionDescriptor(BaseModel):
    """A live transcription session returned by the session endpoint.

    The wire payload is ``{"id": ..., "url": ...}``.
    """

    model_config = ConfigDict(populate_by_name=True)

    session_id: str = Field(alias="id", min_length=1)
    stream_url: str = Field(alias="url", min_length=1)


class RecordingState(StrEnum):
    """States of the recording lifecycle controller."""

    idle = "idle"
    requesting = "requesting"
    active = "active"
    stopping = "stopping"


class StreamState(StrEnum):
    """States of a single streaming connection."""

    connecting = "connecting"
    open = "open"
    closing = "closing"
    closed = "closed"
    errored = "errored"


class TranscriptEvent(BaseModel):
    """One transcript update, flattened from a Gladia transcript message."""

    model_config = ConfigDict(frozen=True)

    utterance_text: str
    language_code: str
    is_final: bool = False


# ---------------------------------------------------------------------------
# Gladia wire messages
# ---------------------------------------------------------------------------


class GladiaUtterance(BaseModel):
    """Utterance payload nested in a transcript message."""

    text: str
    start: float = 0.0
    end: float = 0.0
    language: str = ""
    channel: int | None = None


class GladiaTranscriptData(BaseModel):
    """``data`` object of a transcript message."""

    id: str = ""
    utterance: GladiaUtterance
    is_final: bool = False


class GladiaTranscriptMessage(BaseModel):
    """Inbound ``{"type": "transcript", ...}`` message from the live stream."""

    type: str
    session_id: str = ""
    created_at: str = ""
    data: GladiaTranscriptData

    def to_event(self) -> TranscriptEvent:
        """Flatten into the transcript event consumed by the assembler."""
        return TranscriptEvent(
            utterance_text=self.data.utterance.text,
            language_code=self.data.utterance.language,
            is_final=self.data.is_final,
        )


# ---------------------------------------------------------------------------
# Error
# ---------------------------------------------------------------------------


class ErrorResponse(BaseModel):
    """Standard error envelope returned by the API."""

    detail: str
    code: str
    timestamp: str
