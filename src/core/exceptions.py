"""
Clinic Scribe exception hierarchy.

All application-specific exceptions inherit from ClinicScribeError,
enabling centralized error handling in the API middleware layer and
uniform error banners in the UI.
"""

from datetime import UTC, datetime


class ClinicScribeError(Exception):
    """Base exception for all Clinic Scribe errors."""

    user_message = "Something went wrong. Please try again."

    def __init__(
        self,
        detail: str = "An unexpected error occurred",
        code: str = "CLINIC_SCRIBE_ERROR",
        status_code: int = 500,
    ) -> None:
        self.detail = detail
        self.code = code
        self.status_code = status_code
        self.timestamp = datetime.now(UTC).isoformat()
        super().__init__(detail)


class PatientNotFoundError(ClinicScribeError):
    """Raised when a patient ID does not exist in the directory."""

    def __init__(self, patient_id: str) -> None:
        self.patient_id = patient_id
        super().__init__(
            detail=f"Patient not found: {patient_id}",
            code="PATIENT_NOT_FOUND",
            status_code=404,
        )

    @property
    def user_message(self) -> str:
        return f'The patient with ID "{self.patient_id}" could not be found.'


class RecordingAlreadyActiveError(ClinicScribeError):
    """Raised when trying to start a recording while one is already running."""

    user_message = "A recording is already in progress."

    def __init__(self) -> None:
        super().__init__(
            detail="A recording is already active",
            code="RECORDING_ALREADY_ACTIVE",
            status_code=409,
        )


class PermissionDeniedError(ClinicScribeError):
    """Raised when the platform refuses microphone access."""

    user_message = (
        "Microphone access denied. Please check your system settings and "
        "ensure microphone permissions are enabled."
    )

    def __init__(self, detail: str = "Microphone permission denied") -> None:
        super().__init__(detail=detail, code="MICROPHONE_PERMISSION_DENIED", status_code=403)


class DeviceUnavailableError(ClinicScribeError):
    """Raised when the microphone cannot be opened for any other reason."""

    user_message = "Failed to access microphone. Please check your permissions."

    def __init__(self, detail: str = "Audio input device unavailable") -> None:
        super().__init__(detail=detail, code="DEVICE_UNAVAILABLE", status_code=503)


class ServiceUnavailableError(ClinicScribeError):
    """Raised when the transcription service rejects the session request."""

    user_message = "Failed to start recording. Please try again."

    def __init__(self, detail: str = "Transcription service unavailable") -> None:
        super().__init__(detail=detail, code="SERVICE_UNAVAILABLE", status_code=503)


class TransportError(ClinicScribeError):
    """Raised when the streaming connection fails at the transport level."""

    user_message = "Connection error with transcription service"

    def __init__(self, detail: str = "Streaming transport error") -> None:
        super().__init__(detail=detail, code="TRANSPORT_ERROR", status_code=502)


class AbnormalClosureError(ClinicScribeError):
    """Raised when the stream closes with anything other than a normal-closure code."""

    user_message = "Connection to transcription service was closed unexpectedly"

    def __init__(self, close_code: int | None, reason: str = "") -> None:
        self.close_code = close_code
        self.reason = reason
        super().__init__(
            detail=f"Stream closed with code {close_code}: {reason or 'no reason given'}",
            code="ABNORMAL_CLOSURE",
            status_code=502,
        )


class TimedOutError(ClinicScribeError):
    """Raised when session setup or the stream handshake exceeds its time limit."""

    user_message = "The transcription service did not respond in time. Please try again."

    def __init__(self, detail: str = "Operation timed out") -> None:
        super().__init__(detail=detail, code="TIMED_OUT", status_code=504)


class MessageParseError(ClinicScribeError):
    """Raised for an inbound stream payload that is not valid JSON (recovered locally)."""

    def __init__(self, detail: str = "Malformed stream message") -> None:
        super().__init__(detail=detail, code="MESSAGE_PARSE_ERROR", status_code=500)


class CleanupError(ClinicScribeError):
    """Raised when a teardown step fails (recovered locally, cleanup continues)."""

    def __init__(self, step: str, cause: BaseException | None = None) -> None:
        self.step = step
        detail = f"Cleanup step '{step}' failed"
        if cause is not None:
            detail = f"{detail}: {cause}"
        super().__init__(detail=detail, code="CLEANUP_ERROR", status_code=500)
