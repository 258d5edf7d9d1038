"""Recording lifecycle for live consultation transcription.

``RecordingController`` owns the recording state and coordinates the
session request, the stream connection, microphone capture and the local
recording sink::

    idle -> requesting -> active -> stopping -> idle

``last_error`` is an overlay on top of that state; it is cleared by the
next ``start()``. Every failure is reported (``last_error``, ``on_error``,
log) rather than raised, and every teardown step runs even if an earlier
one failed.

Usage::

    async with RecordingController(patient_id="P001") as controller:
        await controller.start()
        ...
        await controller.stop()
"""

import asyncio
import logging
from collections.abc import Awaitable, Callable

from src.core.config import Settings, get_settings
from src.core.exceptions import (
    CleanupError,
    ClinicScribeError,
    DeviceUnavailableError,
    PermissionDeniedError,
    RecordingAlreadyActiveError,
)
from src.core.models import RecordingState, SessionDescriptor, TranscriptEvent
from src.services.audio.processor import convert_to_pcm16
from src.services.audio.recorder import RecordingSink
from src.services.audio.source import AudioSource
from src.services.transcription.assembler import TranscriptAssembler
from src.services.transcription.gladia import GladiaSessionClient
from src.services.transcription.stream import (
    NORMAL_CLOSURE,
    DuplexStream,
    TranscriptStreamClient,
    WebSocketDuplexStream,
)

logger = logging.getLogger(__name__)

AudioFactory = Callable[[], Awaitable[AudioSource]]


def _microphone_factory(settings: Settings) -> AudioFactory:
    """Default audio factory: the PyAudio microphone from settings."""

    async def _acquire() -> AudioSource:
        from src.services.audio import capture

        return await capture.acquire(
            sample_rate=settings.sample_rate,
            channels=settings.channels,
            block_size=settings.audio_block_size,
        )

    return _acquire


class RecordingController:
    """Start/stop state machine for one patient's live transcription.

    Args:
        patient_id: Used to label the saved consultation audio.
        session_client: Session initiator (defaults to a GladiaSessionClient).
        stream_factory: Builds the transport for a stream URL.
        audio_factory: Coroutine function returning an acquired AudioSource.
        sink: Local recording sink (defaults to one under ``recordings_dir``).
        assembler: Transcript assembler shared across recordings on the page.
        settings: Optional Settings instance (defaults to get_settings()).
        on_state_change: Called with the new state after every transition.
        on_error: Called with every user-visible error.
        on_transcript: Called with ``(live, accumulated)`` after each accepted event.
    """

    def __init__(
        self,
        patient_id: str = "consultation",
        session_client: GladiaSessionClient | None = None,
        stream_factory: Callable[[str], DuplexStream] = WebSocketDuplexStream,
        audio_factory: AudioFactory | None = None,
        sink: RecordingSink | None = None,
        assembler: TranscriptAssembler | None = None,
        settings: Settings | None = None,
        on_state_change: Callable[[RecordingState], None] | None = None,
        on_error: Callable[[ClinicScribeError], None] | None = None,
        on_transcript: Callable[[str, str], None] | None = None,
    ) -> None:
        self._settings = settings or get_settings()
        self._session_client = session_client or GladiaSessionClient(settings=self._settings)
        self._stream_factory = stream_factory
        self._audio_factory = audio_factory or _microphone_factory(self._settings)
        self._sink = sink or RecordingSink(
            self._settings.recordings_dir,
            label=patient_id,
            sample_rate=self._settings.sample_rate,
            channels=self._settings.channels,
        )
        self.assembler = assembler or TranscriptAssembler(self._settings.transcription_language)
        self._on_state_change = on_state_change
        self._on_error = on_error
        self._on_transcript = on_transcript

        self.state = RecordingState.idle
        self.last_error: ClinicScribeError | None = None
        self.permission_granted = True
        self.session: SessionDescriptor | None = None
        self.recording_path: str | None = None

        self._client: TranscriptStreamClient | None = None
        self._audio: AudioSource | None = None
        self._pump_task: asyncio.Task | None = None
        self._stop_task: asyncio.Task | None = None

    # -- properties --

    @property
    def is_recording(self) -> bool:
        return self.state == RecordingState.active

    @property
    def live_transcript(self) -> str:
        return self.assembler.live

    @property
    def transcript(self) -> str:
        return self.assembler.accumulated

    @property
    def stream_client(self) -> TranscriptStreamClient | None:
        return self._client

    # -- lifecycle --

    async def start(self) -> bool:
        """Request a session, connect, and begin streaming microphone audio.

        Returns:
            True if the controller is now active. On failure the error is
            reported, partial resources are released and the state is idle.

        Raises:
            RecordingAlreadyActiveError: If called outside the idle state.
        """
        if self.state != RecordingState.idle:
            raise RecordingAlreadyActiveError()

        self.last_error = None
        self.assembler.reset_live()
        self._set_state(RecordingState.requesting)

        try:
            self.session = await self._session_client.begin_session()
            self._client = TranscriptStreamClient(
                self._stream_factory(self.session.stream_url),
                on_transcript=self._handle_transcript,
                on_error=self._handle_stream_error,
                on_close=self._handle_stream_closed,
                handshake_timeout=self._settings.stream_handshake_timeout,
            )
            await self._client.connect()

            self._audio = await self._audio_factory()
            self.permission_granted = True
            self._sink.start()
            self._pump_task = asyncio.create_task(self._pump(self._audio, self._client))
        except Exception as exc:
            error = self._as_error(exc, "Failed to start recording")
            if isinstance(error, PermissionDeniedError):
                self.permission_granted = False
            logger.error("Error starting recording: %s", error.detail)
            self._report(error)
            await self._teardown()
            self._set_state(RecordingState.idle)
            return False

        self._set_state(RecordingState.active)
        logger.info("Recording started (session=%s)", self.session.session_id)

        if not self._client.is_open:
            # The stream failed while the microphone was being acquired
            await self.stop()
            return False
        return True

    async def stop(self) -> bool:
        """Stop recording and release every resource.

        Only valid while active; from any other state this is a no-op.

        Returns:
            True if a recording was stopped.
        """
        if self.state != RecordingState.active:
            logger.info("stop() ignored in state %s", self.state)
            return False

        self._set_state(RecordingState.stopping)
        await self._teardown()
        self._set_state(RecordingState.idle)
        logger.info("Recording stopped")
        return True

    async def check_microphone_permission(self) -> bool:
        """Probe the microphone once (acquire then release immediately)."""
        if self.state != RecordingState.idle:
            return self.permission_granted
        try:
            source = await self._audio_factory()
        except Exception as exc:
            error = self._as_error(exc, "Microphone check failed")
            self.permission_granted = False
            self._report(error)
            return False
        source.release()
        self.permission_granted = True
        return True

    async def close(self) -> None:
        """Release everything; used when the owning page goes away."""
        if self._stop_task is not None:
            await self._stop_task
            self._stop_task = None
        if self.state == RecordingState.active:
            await self.stop()

    async def __aenter__(self) -> "RecordingController":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.close()

    # -- internals --

    async def _pump(self, source: AudioSource, client: TranscriptStreamClient) -> None:
        """Forward every captured block to the stream and the local sink."""
        try:
            async for block in source:
                pcm = await client.forward(block)
                if pcm is None:
                    pcm = convert_to_pcm16(block)
                self._sink.write(pcm)
        except asyncio.CancelledError:
            raise
        except Exception as exc:
            logger.exception("Audio capture failed")
            self._report(DeviceUnavailableError(detail=f"Audio capture failed: {exc}"))
            self._schedule_stop()

    async def _teardown(self) -> None:
        """Best-effort release in fixed order; a failing step never blocks the next."""
        if self._sink.is_recording:
            await self._cleanup_step("recording sink", self._stop_sink)
        if self._client is not None and self._client.is_open:
            await self._cleanup_step("stop notification", self._client.request_stop)
        await self._cleanup_step("audio processing", self._cancel_pump)
        if self._audio is not None:
            await self._cleanup_step("microphone", self._release_audio)
        if self._client is not None:
            await self._cleanup_step("stream", self._close_stream)

        self._audio = None
        self._client = None
        self._pump_task = None

    async def _cleanup_step(self, step: str, action: Callable[[], Awaitable[object]]) -> None:
        try:
            await action()
        except Exception as exc:
            error = CleanupError(step, exc)
            logger.warning(error.detail)

    async def _stop_sink(self) -> None:
        # WAV write is blocking file I/O
        self.recording_path = await asyncio.to_thread(self._sink.stop)

    async def _cancel_pump(self) -> None:
        task = self._pump_task
        if task is None or task is asyncio.current_task():
            return
        if not task.done():
            task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass

    async def _release_audio(self) -> None:
        self._audio.release()

    async def _close_stream(self) -> None:
        await self._client.close(NORMAL_CLOSURE)

    def _handle_transcript(self, event: TranscriptEvent) -> None:
        if not self.assembler.feed(event):
            return
        if self._on_transcript is not None:
            self._on_transcript(self.assembler.live, self.assembler.accumulated)

    def _handle_stream_error(self, error: ClinicScribeError) -> None:
        self._report(error)
        self._schedule_stop()

    def _handle_stream_closed(self) -> None:
        logger.info("Transcription service closed the stream")
        self._schedule_stop()

    def _schedule_stop(self) -> None:
        if self.state != RecordingState.active:
            return
        if self._stop_task is not None and not self._stop_task.done():
            return
        self._stop_task = asyncio.create_task(self.stop())

    def _report(self, error: ClinicScribeError) -> None:
        self.last_error = error
        if self._on_error is not None:
            try:
                self._on_error(error)
            except Exception:
                logger.exception("Error callback failed")

    def _set_state(self, state: RecordingState) -> None:
        self.state = state
        if self._on_state_change is not None:
            try:
                self._on_state_change(state)
            except Exception:
                logger.exception("State callback failed")

    @staticmethod
    def _as_error(exc: Exception, context: str) -> ClinicScribeError:
        if isinstance(exc, ClinicScribeError):
            return exc
        return ClinicScribeError(detail=f"{context}: {exc}")
