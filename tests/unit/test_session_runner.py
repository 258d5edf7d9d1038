"""Tests for LiveSessionRunner (controller hosted on a background loop thread).

The runner is driven synchronously, the way Streamlit pages use it; the
controller inside is wired to the scripted fakes.
"""

import json
import time
from types import SimpleNamespace
from unittest.mock import AsyncMock

import pytest

from src.core.exceptions import PermissionDeniedError, ServiceUnavailableError
from src.core.models import RecordingState
from src.services.transcription.controller import RecordingController
from src.services.transcription.gladia import GladiaSessionClient
from src.ui.session_runner import LiveSessionRunner
from tests.fakes import FakeAudioSource, FakeDuplexStream, transcript_message


@pytest.fixture
def parts(settings, session_descriptor):
    """Everything the controller factory builds, exposed for the test."""
    parts = SimpleNamespace(streams=[], sources=[], controller=None)
    parts.session_client = AsyncMock(spec=GladiaSessionClient)
    parts.session_client.begin_session.return_value = session_descriptor

    def new_source():
        source = FakeAudioSource()
        parts.sources.append(source)
        return source

    def new_stream(url):
        stream = FakeDuplexStream(url)
        parts.streams.append(stream)
        return stream

    parts.audio_factory = AsyncMock(side_effect=new_source)

    def factory(patient_id, **callbacks):
        parts.controller = RecordingController(
            patient_id=patient_id,
            session_client=parts.session_client,
            stream_factory=new_stream,
            audio_factory=parts.audio_factory,
            settings=settings,
            **callbacks,
        )
        return parts.controller

    parts.factory = factory
    return parts


@pytest.fixture
def runner(parts):
    runner = LiveSessionRunner("P001", controller_factory=parts.factory, call_timeout=5.0)
    yield runner
    runner.close()


def _poll(predicate, timeout: float = 2.0) -> None:
    deadline = time.monotonic() + timeout
    while not predicate():
        if time.monotonic() > deadline:
            raise AssertionError("condition not reached in time")
        time.sleep(0.01)


class TestLiveSessionRunner:
    def test_initial_snapshot(self, runner):
        snap = runner.snapshot()
        assert snap.state == RecordingState.idle
        assert snap.transcript == ""
        assert snap.error is None
        assert snap.permission_granted is True

    def test_start_and_stop(self, runner, parts):
        assert runner.start() is True
        assert runner.snapshot().is_recording

        assert runner.stop() is True
        snap = runner.snapshot()
        assert snap.state == RecordingState.idle
        assert parts.sources[0].released

    def test_transcript_reaches_snapshot(self, runner, parts):
        runner.start()
        stream = parts.streams[0]
        runner._loop.call_soon_threadsafe(stream.push, transcript_message("Hello"))
        runner._loop.call_soon_threadsafe(stream.push, transcript_message("world"))

        _poll(lambda: runner.snapshot().transcript == "Hello; world")
        assert runner.snapshot().live == "world"

    def test_second_start_is_ignored(self, runner, parts):
        assert runner.start() is True
        assert runner.start() is False
        assert len(parts.streams) == 1

    def test_failed_start_surfaces_error(self, runner, parts):
        parts.session_client.begin_session.side_effect = ServiceUnavailableError("down")

        assert runner.start() is False
        snap = runner.snapshot()
        assert snap.state == RecordingState.idle
        assert snap.error == "Failed to start recording. Please try again."

        parts.session_client.begin_session.side_effect = None
        assert runner.start() is True
        assert runner.snapshot().error is None

    def test_permission_denied(self, runner, parts):
        parts.audio_factory.side_effect = PermissionDeniedError()

        assert runner.check_permission() is False
        snap = runner.snapshot()
        assert snap.permission_granted is False
        assert "Microphone access denied" in snap.error

    def test_close_stops_active_recording(self, parts):
        runner = LiveSessionRunner("P001", controller_factory=parts.factory, call_timeout=5.0)
        runner.start()

        runner.close()
        runner.close()

        assert parts.controller.state == RecordingState.idle
        assert parts.sources[0].released
        assert parts.streams[0].closed_with == 1000
        assert not runner._thread.is_alive()

    def test_context_manager(self, parts):
        with LiveSessionRunner("P002", controller_factory=parts.factory) as runner:
            assert runner.patient_id == "P002"
        assert not runner._thread.is_alive()


class TestPollWatchdog:
    """An active recording is stopped once the page stops polling."""

    def test_unpolled_recording_is_stopped(self, parts):
        runner = LiveSessionRunner(
            "P001", controller_factory=parts.factory, call_timeout=5.0, heartbeat_timeout=0.2
        )
        try:
            assert runner.start() is True

            # No snapshot() calls from here on, as when the tab is closed
            _poll(lambda: parts.controller.state == RecordingState.idle)

            assert parts.sources[0].released
            stream = parts.streams[0]
            assert stream.closed_with == 1000
            assert [json.loads(text) for text in stream.sent_text] == [{"type": "stop_recording"}]
            assert parts.controller.last_error is None
        finally:
            runner.close()

    def test_polling_keeps_recording_alive(self, parts):
        runner = LiveSessionRunner(
            "P001", controller_factory=parts.factory, call_timeout=5.0, heartbeat_timeout=0.3
        )
        try:
            runner.start()
            deadline = time.monotonic() + 0.9
            while time.monotonic() < deadline:
                assert runner.snapshot().is_recording
                time.sleep(0.02)

            assert parts.controller.state == RecordingState.active
            assert not parts.sources[0].released
        finally:
            runner.close()

    def test_idle_runner_left_alone(self, parts):
        runner = LiveSessionRunner(
            "P001", controller_factory=parts.factory, call_timeout=5.0, heartbeat_timeout=0.1
        )
        try:
            time.sleep(0.3)
            assert runner.start() is True
            assert runner.snapshot().is_recording
        finally:
            runner.close()
