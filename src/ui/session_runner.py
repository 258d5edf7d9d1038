"""
Background event loop hosting a RecordingController for the Streamlit UI.

Streamlit scripts run synchronously and rerun on every interaction, so the
controller lives on a dedicated asyncio loop thread. ``start``/``stop`` are
submitted with ``run_coroutine_threadsafe``; the UI reads a thread-safe
``SessionSnapshot`` that the controller callbacks keep current.

The page polls ``snapshot()`` while a recording runs. If the polls stop
(tab closed, session expired) a watchdog on the loop stops the recording
and releases the microphone.
"""

import asyncio
import logging
import threading
import time
from collections.abc import Callable
from dataclasses import dataclass, replace

from src.core.exceptions import ClinicScribeError, RecordingAlreadyActiveError
from src.core.models import RecordingState
from src.services.transcription import RecordingController, create_controller

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SessionSnapshot:
    """What the detail page renders on each rerun."""

    state: RecordingState = RecordingState.idle
    live: str = ""
    transcript: str = ""
    error: str | None = None
    permission_granted: bool = True
    recording_path: str | None = None

    @property
    def is_recording(self) -> bool:
        return self.state == RecordingState.active


class LiveSessionRunner:
    """Owns one controller and the loop thread it runs on.

    Args:
        patient_id: Patient whose consultation is being recorded.
        controller_factory: Builds the controller; receives the patient ID
            and the callback keyword arguments.
        call_timeout: Seconds to wait for a submitted call (None = no limit).
        heartbeat_timeout: Seconds without a UI poll after which an active
            recording is stopped (None disables the watchdog).
    """

    def __init__(
        self,
        patient_id: str,
        controller_factory: Callable[..., RecordingController] = create_controller,
        call_timeout: float | None = 60.0,
        heartbeat_timeout: float | None = 10.0,
    ) -> None:
        self.patient_id = patient_id
        self._call_timeout = call_timeout
        self._lock = threading.Lock()
        self._snapshot = SessionSnapshot()
        self._closed = False
        self._heartbeat_timeout = heartbeat_timeout
        self._last_poll = time.monotonic()
        self._watchdog: asyncio.Task | None = None

        self._loop = asyncio.new_event_loop()
        self._thread = threading.Thread(
            target=self._run_loop,
            name=f"transcription-{patient_id}",
            daemon=True,
        )
        self._thread.start()
        self._controller: RecordingController
        self._call(self._build(controller_factory))

    def _run_loop(self) -> None:
        asyncio.set_event_loop(self._loop)
        self._loop.run_forever()

    def _call(self, coro):
        self._touch()
        future = asyncio.run_coroutine_threadsafe(coro, self._loop)
        try:
            return future.result(timeout=self._call_timeout)
        finally:
            self._touch()

    def _touch(self) -> None:
        with self._lock:
            self._last_poll = time.monotonic()

    async def _build(self, factory: Callable[..., RecordingController]) -> None:
        self._controller = factory(
            self.patient_id,
            on_state_change=self._on_state_change,
            on_error=self._on_error,
            on_transcript=self._on_transcript,
        )
        if self._heartbeat_timeout is not None:
            self._watchdog = asyncio.create_task(self._watch_polls())

    async def _watch_polls(self) -> None:
        interval = self._heartbeat_timeout / 4
        while True:
            await asyncio.sleep(interval)
            with self._lock:
                silent_for = time.monotonic() - self._last_poll
            if silent_for < self._heartbeat_timeout:
                continue
            if self._controller.state != RecordingState.active:
                continue
            logger.warning(
                "No UI poll for %.1fs, stopping recording for %s", silent_for, self.patient_id
            )
            try:
                await self._controller.close()
            except Exception:
                logger.exception("Watchdog failed to stop recording for %s", self.patient_id)

    async def _shutdown(self) -> None:
        if self._watchdog is not None:
            self._watchdog.cancel()
            try:
                await self._watchdog
            except asyncio.CancelledError:
                pass
        await self._controller.close()

    # -- controller callbacks (loop thread) --

    def _update(self, **changes) -> None:
        with self._lock:
            self._snapshot = replace(self._snapshot, **changes)

    def _on_state_change(self, state: RecordingState) -> None:
        changes = {"state": state, "permission_granted": self._controller.permission_granted}
        if state == RecordingState.requesting:
            changes.update(error=None, live="")
        elif state == RecordingState.idle:
            changes["recording_path"] = self._controller.recording_path
        self._update(**changes)

    def _on_error(self, error: ClinicScribeError) -> None:
        self._update(
            error=error.user_message,
            permission_granted=self._controller.permission_granted,
        )

    def _on_transcript(self, live: str, transcript: str) -> None:
        self._update(live=live, transcript=transcript)

    # -- public API (UI thread) --

    def snapshot(self) -> SessionSnapshot:
        """Current state for rendering; each call also counts as a UI poll."""
        with self._lock:
            self._last_poll = time.monotonic()
            return self._snapshot

    def start(self) -> bool:
        """Start recording; returns False if it failed or was already running."""
        try:
            return self._call(self._controller.start())
        except RecordingAlreadyActiveError:
            logger.info("Start ignored: recording already active for %s", self.patient_id)
            return False

    def stop(self) -> bool:
        return self._call(self._controller.stop())

    def check_permission(self) -> bool:
        granted = self._call(self._controller.check_microphone_permission())
        self._update(permission_granted=granted)
        return granted

    def close(self) -> None:
        """Stop any active recording and shut the loop thread down."""
        if self._closed:
            return
        self._closed = True
        try:
            self._call(self._shutdown())
        finally:
            self._loop.call_soon_threadsafe(self._loop.stop)
            self._thread.join(timeout=5.0)
            if not self._thread.is_alive():
                self._loop.close()
        logger.info("Transcription runner closed for %s", self.patient_id)

    def __enter__(self) -> "LiveSessionRunner":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()
