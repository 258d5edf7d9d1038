"""Tests for the Gladia session initiator and transcript message helpers.

The HTTP layer is stubbed with ``httpx.MockTransport`` so requests can be
inspected and responses scripted without network access.
"""

import asyncio
import json

import httpx
import pytest

from src.core.exceptions import ServiceUnavailableError, TimedOutError
from src.services.transcription.gladia import (
    STOP_RECORDING_MESSAGE,
    GladiaSessionClient,
    is_transcript_message,
    parse_transcript_event,
)
from tests.fakes import transcript_message


def _client(settings, handler, **kwargs) -> GladiaSessionClient:
    return GladiaSessionClient(settings=settings, transport=httpx.MockTransport(handler), **kwargs)


class TestBeginSession:
    """Verify the session request and response handling."""

    async def test_returns_descriptor(self, settings):
        def handler(request):
            return httpx.Response(201, json={"id": "sess-42", "url": "wss://gladia.test/sess-42"})

        descriptor = await _client(settings, handler).begin_session()

        assert descriptor.session_id == "sess-42"
        assert descriptor.stream_url == "wss://gladia.test/sess-42"

    async def test_request_shape(self, settings):
        captured = {}

        def handler(request):
            captured["request"] = request
            return httpx.Response(200, json={"id": "s", "url": "wss://x"})

        await _client(settings, handler).begin_session()

        request = captured["request"]
        assert request.method == "POST"
        assert str(request.url) == "https://gladia.test/v2/live"
        assert request.headers["x-gladia-key"] == "test-key"
        assert request.headers["content-type"] == "application/json"
        body = json.loads(request.content)
        assert body["encoding"] == "wav/pcm"
        assert body["sample_rate"] == 16000
        assert body["bit_depth"] == 16
        assert body["channels"] == 1
        assert body["language_config"] == {"languages": ["en"], "code_switching": False}
        assert body["messages_config"]["receive_final_transcripts"] is True
        assert body["messages_config"]["receive_pre_processing_events"] is False

    async def test_explicit_key_overrides_settings(self, settings):
        captured = {}

        def handler(request):
            captured["key"] = request.headers["x-gladia-key"]
            return httpx.Response(200, json={"id": "s", "url": "wss://x"})

        await _client(settings, handler, api_key="other-key").begin_session()
        assert captured["key"] == "other-key"

    @pytest.mark.parametrize("status", [400, 401, 500, 503])
    async def test_non_success_status(self, settings, status):
        def handler(request):
            return httpx.Response(status, json={"message": "nope"})

        with pytest.raises(ServiceUnavailableError, match=str(status)):
            await _client(settings, handler).begin_session()

    @pytest.mark.parametrize(
        "payload",
        [{"id": "s"}, {"url": "wss://x"}, {"id": "", "url": "wss://x"}, ["not", "an", "object"]],
    )
    async def test_malformed_body(self, settings, payload):
        def handler(request):
            return httpx.Response(200, json=payload)

        with pytest.raises(ServiceUnavailableError, match="Unexpected"):
            await _client(settings, handler).begin_session()

    async def test_non_json_body(self, settings):
        def handler(request):
            return httpx.Response(200, text="<html>gateway</html>")

        with pytest.raises(ServiceUnavailableError):
            await _client(settings, handler).begin_session()

    async def test_transport_timeout(self, settings):
        def handler(request):
            raise httpx.ReadTimeout("read timed out", request=request)

        with pytest.raises(TimedOutError):
            await _client(settings, handler).begin_session()

    async def test_overall_timeout(self, settings):
        async def handler(request):
            await asyncio.sleep(5)
            return httpx.Response(200, json={"id": "s", "url": "wss://x"})

        with pytest.raises(TimedOutError):
            await _client(settings, handler, timeout=0.05).begin_session()

    async def test_connect_errors_are_retried(self, settings):
        calls = []

        def handler(request):
            calls.append(request)
            raise httpx.ConnectError("connection refused", request=request)

        with pytest.raises(ServiceUnavailableError, match="Failed to reach"):
            await _client(settings, handler, timeout=10.0).begin_session()
        assert len(calls) == 3

    async def test_recovers_after_transient_connect_error(self, settings):
        calls = []

        def handler(request):
            calls.append(request)
            if len(calls) == 1:
                raise httpx.ConnectError("connection refused", request=request)
            return httpx.Response(200, json={"id": "s", "url": "wss://x"})

        descriptor = await _client(settings, handler, timeout=10.0).begin_session()
        assert descriptor.session_id == "s"
        assert len(calls) == 2


class TestTranscriptMessages:
    """Verify recognition of inbound transcript messages."""

    def test_stop_message(self):
        assert STOP_RECORDING_MESSAGE == {"type": "stop_recording"}

    def test_recognises_transcript(self):
        assert is_transcript_message(transcript_message("Hello")) is True

    @pytest.mark.parametrize(
        "message",
        [
            {"type": "audio_chunk", "data": {}},
            {"type": "transcript"},
            {"type": "transcript", "data": {"utterance": None}},
            {"type": "transcript", "data": {"utterance": {"text": 42}}},
            "transcript",
            None,
            [1, 2, 3],
        ],
    )
    def test_rejects_other_shapes(self, message):
        assert is_transcript_message(message) is False
        assert parse_transcript_event(message) is None

    def test_parse_flattens_fields(self):
        event = parse_transcript_event(transcript_message("Hello", language="fr", is_final=False))
        assert event.utterance_text == "Hello"
        assert event.language_code == "fr"
        assert event.is_final is False
