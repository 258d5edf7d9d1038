"""Gladia live transcription: session setup and inbound message shapes.

``GladiaSessionClient.begin_session()`` posts the fixed audio configuration
to the live endpoint and returns the session ID plus the WebSocket URL to
stream to. The helpers below recognise transcript messages on that stream.
"""

import asyncio
import logging

import httpx
from pydantic import ValidationError
from tenacity import (
    retry,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from src.core.config import Settings, get_settings
from src.core.exceptions import ServiceUnavailableError, TimedOutError
from src.core.models import GladiaTranscriptMessage, SessionDescriptor, TranscriptEvent

logger = logging.getLogger(__name__)

TRANSCRIPT_MESSAGE_TYPE = "transcript"
STOP_RECORDING_MESSAGE = {"type": "stop_recording"}


class GladiaSessionClient:
    """Requests live transcription sessions from the Gladia API.

    Args:
        api_key: Gladia API key (falls back to settings if not provided).
        api_url: Live session endpoint (falls back to settings).
        timeout: Upper bound for the whole request, in seconds.
        settings: Optional Settings instance (defaults to get_settings()).
        transport: Optional httpx transport, used to stub the network in tests.
    """

    def __init__(
        self,
        api_key: str | None = None,
        api_url: str | None = None,
        timeout: float | None = None,
        settings: Settings | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._settings = settings or get_settings()
        self._api_key = api_key if api_key is not None else self._settings.gladia_api_key
        self._api_url = api_url or self._settings.gladia_api_url
        self._timeout = timeout if timeout is not None else self._settings.session_request_timeout
        self._transport = transport

    def build_session_config(self) -> dict:
        """Request body describing the audio format and the event subscriptions."""
        return {
            "encoding": "wav/pcm",
            "sample_rate": self._settings.sample_rate,
            "bit_depth": self._settings.bit_depth,
            "channels": self._settings.channels,
            "language_config": {
                "languages": [self._settings.transcription_language],
                "code_switching": False,
            },
            "messages_config": {
                "receive_final_transcripts": True,
                "receive_speech_events": True,
                "receive_pre_processing_events": False,
                "receive_realtime_processing_events": False,
                "receive_post_processing_events": False,
                "receive_acknowledgments": True,
                "receive_errors": True,
                "receive_lifecycle_events": True,
            },
        }

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=0.5, min=0.5, max=4),
        retry=retry_if_exception_type(httpx.ConnectError),
        reraise=True,
    )
    async def _post(self, body: dict) -> httpx.Response:
        """Send the session request. Connection failures are retried."""
        async with httpx.AsyncClient(timeout=self._timeout, transport=self._transport) as client:
            return await client.post(
                self._api_url,
                json=body,
                headers={"Content-Type": "application/json", "x-gladia-key": self._api_key},
            )

    async def begin_session(self) -> SessionDescriptor:
        """Open a live transcription session.

        Returns:
            SessionDescriptor with the session ID and the stream URL.

        Raises:
            ServiceUnavailableError: On a non-success status, a network
                failure, or a response without ``id``/``url``.
            TimedOutError: If the request exceeds the configured timeout.
        """
        body = self.build_session_config()
        try:
            response = await asyncio.wait_for(self._post(body), timeout=self._timeout)
        except (TimeoutError, httpx.TimeoutException) as exc:
            logger.error("Gladia session request timed out after %ss", self._timeout)
            raise TimedOutError(
                detail=f"Gladia session request timed out after {self._timeout}s"
            ) from exc
        except httpx.HTTPError as exc:
            logger.error("Error initializing Gladia session: %s", exc)
            raise ServiceUnavailableError(
                detail=f"Failed to reach Gladia at {self._api_url}: {exc}"
            ) from exc

        if not response.is_success:
            logger.error(
                "Gladia session request rejected: %s %s",
                response.status_code,
                response.reason_phrase,
            )
            raise ServiceUnavailableError(
                detail=(
                    "Failed to initialize Gladia session: "
                    f"{response.status_code} {response.reason_phrase}"
                )
            )

        try:
            descriptor = SessionDescriptor.model_validate(response.json())
        except (ValueError, ValidationError) as exc:
            raise ServiceUnavailableError(
                detail=f"Unexpected Gladia session response: {exc}"
            ) from exc

        logger.info("Gladia session %s initialized", descriptor.session_id)
        return descriptor


def is_transcript_message(message) -> bool:
    """True if ``message`` has the transcript shape with a string utterance text."""
    if not isinstance(message, dict) or message.get("type") != TRANSCRIPT_MESSAGE_TYPE:
        return False
    data = message.get("data")
    if not isinstance(data, dict):
        return False
    utterance = data.get("utterance")
    return isinstance(utterance, dict) and isinstance(utterance.get("text"), str)


def parse_transcript_event(message) -> TranscriptEvent | None:
    """Convert a decoded stream message into a TranscriptEvent.

    Returns None for every message that is not a well-formed transcript.
    """
    if not is_transcript_message(message):
        return None
    try:
        return GladiaTranscriptMessage.model_validate(message).to_event()
    except ValidationError:
        logger.debug("Transcript message with unexpected fields ignored: %s", message)
        return None
