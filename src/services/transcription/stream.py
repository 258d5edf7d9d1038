"""Streaming connection to the live transcription service.

``DuplexStream`` is the transport seam (``WebSocketDuplexStream`` in
production, a scripted fake in tests). ``TranscriptStreamClient`` owns one
connection and its state machine::

    connecting -> open -> closing -> closed
         \\          \\        \\
          +----------+--------+--> errored

Outbound traffic is binary PCM frames plus a single ``stop_recording``
control message. Inbound JSON messages of the transcript shape are handed
to ``on_transcript``; everything else is dropped. Failures are reported
through ``on_error`` and never raised out of the receive task.
"""

import asyncio
import json
import logging
from abc import ABC, abstractmethod
from collections.abc import AsyncIterator, Callable

import numpy as np
import websockets
from websockets.exceptions import ConnectionClosed, ConnectionClosedOK

from src.core.exceptions import (
    AbnormalClosureError,
    ClinicScribeError,
    MessageParseError,
    TimedOutError,
    TransportError,
)
from src.core.models import StreamState, TranscriptEvent
from src.services.audio.processor import convert_to_pcm16
from src.services.transcription.gladia import STOP_RECORDING_MESSAGE, parse_transcript_event

logger = logging.getLogger(__name__)

NORMAL_CLOSURE = 1000

_TERMINAL_STATES = (StreamState.closed, StreamState.errored)


class DuplexStream(ABC):
    """Bidirectional message transport."""

    @abstractmethod
    async def connect(self) -> None:
        """Perform the opening handshake."""

    @abstractmethod
    async def send_bytes(self, data: bytes) -> None:
        """Send one binary frame."""

    @abstractmethod
    async def send_text(self, text: str) -> None:
        """Send one text frame."""

    @abstractmethod
    def messages(self) -> AsyncIterator[str | bytes]:
        """Yield inbound payloads until the connection closes.

        A close (either side) ends the iteration; ``close_code`` then tells
        how. Any other failure is raised.
        """

    @abstractmethod
    async def close(self, code: int = NORMAL_CLOSURE, reason: str = "") -> None:
        """Close the connection with ``code``."""

    @property
    @abstractmethod
    def close_code(self) -> int | None:
        """Close code received from the peer, or None while open."""

    @property
    def close_reason(self) -> str:
        return ""


class WebSocketDuplexStream(DuplexStream):
    """DuplexStream over a client WebSocket (``websockets`` library)."""

    def __init__(self, url: str) -> None:
        self.url = url
        self._ws = None

    async def connect(self) -> None:
        # Handshake time is bounded by TranscriptStreamClient
        self._ws = await websockets.connect(self.url, open_timeout=None)

    async def send_bytes(self, data: bytes) -> None:
        await self._ws.send(data)

    async def send_text(self, text: str) -> None:
        await self._ws.send(text)

    async def messages(self) -> AsyncIterator[str | bytes]:
        try:
            async for message in self._ws:
                yield message
        except ConnectionClosed:
            return

    async def close(self, code: int = NORMAL_CLOSURE, reason: str = "") -> None:
        if self._ws is not None:
            await self._ws.close(code=code, reason=reason)

    @property
    def close_code(self) -> int | None:
        return self._ws.close_code if self._ws is not None else None

    @property
    def close_reason(self) -> str:
        return (self._ws.close_reason or "") if self._ws is not None else ""


class TranscriptStreamClient:
    """Owns one streaming connection to the transcription service.

    Args:
        stream: Transport to drive.
        on_transcript: Called with every recognised transcript event.
        on_error: Called once if the connection errors or closes abnormally.
        on_close: Called when the peer closes normally.
        handshake_timeout: Upper bound on ``connect()``, in seconds.
    """

    def __init__(
        self,
        stream: DuplexStream,
        on_transcript: Callable[[TranscriptEvent], None],
        on_error: Callable[[ClinicScribeError], None],
        on_close: Callable[[], None] | None = None,
        handshake_timeout: float = 10.0,
    ) -> None:
        self._stream = stream
        self._on_transcript = on_transcript
        self._on_error = on_error
        self._on_close = on_close
        self._handshake_timeout = handshake_timeout
        self._receive_task: asyncio.Task | None = None
        self._closing_locally = False
        self.state = StreamState.connecting
        self.frames_sent = 0

    @property
    def is_open(self) -> bool:
        return self.state == StreamState.open

    async def connect(self) -> None:
        """Open the connection and start receiving.

        Raises:
            TimedOutError: If the handshake exceeds ``handshake_timeout``.
            TransportError: If the handshake fails.
        """
        try:
            await asyncio.wait_for(self._stream.connect(), timeout=self._handshake_timeout)
        except TimeoutError as exc:
            self.state = StreamState.errored
            raise TimedOutError(
                detail=f"Stream handshake timed out after {self._handshake_timeout}s"
            ) from exc
        except Exception as exc:
            self.state = StreamState.errored
            raise TransportError(detail=f"Stream handshake failed: {exc}") from exc

        self.state = StreamState.open
        logger.info("WebSocket connection established")
        self._receive_task = asyncio.create_task(self._receive_loop())

    async def forward(self, block: np.ndarray) -> bytes | None:
        """Send one captured float block as PCM while the stream is open.

        Returns:
            The PCM bytes sent, or None if the block was dropped.
        """
        if self.state != StreamState.open:
            return None
        pcm = convert_to_pcm16(block)
        try:
            await self._stream.send_bytes(pcm)
        except ConnectionClosedOK:
            # Peer closed normally; the receive task reports the close
            logger.debug("Audio frame dropped: stream closed by peer")
            return None
        except Exception as exc:
            self._fail(TransportError(detail=f"Failed to send audio frame: {exc}"))
            return None
        self.frames_sent += 1
        return pcm

    async def request_stop(self) -> bool:
        """Send the stop notification and enter ``closing``.

        Returns:
            False if the stream was not open (nothing sent).
        """
        if self.state != StreamState.open:
            return False
        await self._stream.send_text(json.dumps(STOP_RECORDING_MESSAGE))
        self.state = StreamState.closing
        return True

    async def close(self, code: int = NORMAL_CLOSURE) -> None:
        """Close the connection locally and stop the receive task."""
        self._closing_locally = True
        try:
            await self._stream.close(code=code)
        finally:
            if self.state not in _TERMINAL_STATES:
                self.state = StreamState.closed
            await self._finish_receive_task()

    async def _finish_receive_task(self) -> None:
        task = self._receive_task
        if task is None or task is asyncio.current_task():
            return
        if not task.done():
            task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass

    async def _receive_loop(self) -> None:
        try:
            async for raw in self._stream.messages():
                self._handle_message(raw)
        except asyncio.CancelledError:
            raise
        except Exception as exc:
            if not self._closing_locally:
                self._fail(TransportError(detail=f"Stream receive failed: {exc}"))
            return
        self._handle_close()

    def _handle_message(self, raw: str | bytes) -> None:
        try:
            message = json.loads(raw)
        except (ValueError, TypeError) as exc:
            error = MessageParseError(detail=f"Error parsing WebSocket message: {exc}")
            logger.warning(error.detail)
            return

        event = parse_transcript_event(message)
        if event is None:
            msg_type = message.get("type") if isinstance(message, dict) else type(message).__name__
            logger.debug("Ignoring stream message of type %s", msg_type)
            return

        try:
            self._on_transcript(event)
        except Exception:
            logger.exception("Transcript handler failed")

    def _handle_close(self) -> None:
        code = self._stream.close_code
        reason = self._stream.close_reason
        logger.info("WebSocket connection closed: %s %s", code, reason)
        if self._closing_locally:
            if self.state not in _TERMINAL_STATES:
                self.state = StreamState.closed
            return
        if code == NORMAL_CLOSURE:
            self.state = StreamState.closed
            if self._on_close is not None:
                try:
                    self._on_close()
                except Exception:
                    logger.exception("Close handler failed")
            return
        self._fail(AbnormalClosureError(code, reason))

    def _fail(self, error: ClinicScribeError) -> None:
        if self.state in _TERMINAL_STATES:
            return
        self.state = StreamState.errored
        logger.error("WebSocket error: %s", error.detail)
        try:
            self._on_error(error)
        except Exception:
            logger.exception("Error handler failed")
