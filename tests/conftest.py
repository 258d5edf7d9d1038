"""Shared pytest fixtures for the Clinic Scribe test suite.

Provides test settings, scripted stand-ins for the microphone and the
streaming transport (see ``tests/fakes.py``), and a mocked Gladia
session initiator.
"""

from unittest.mock import AsyncMock

import numpy as np
import pytest

from src.core.config import Settings
from src.core.models import SessionDescriptor
from src.services.transcription.gladia import GladiaSessionClient
from tests.fakes import FakeAudioSource, FakeDuplexStream

# ---------------------------------------------------------------------------
# Settings
# ---------------------------------------------------------------------------


@pytest.fixture
def settings(tmp_path):
    """Settings isolated from any local .env, with short timeouts."""
    return Settings(
        _env_file=None,
        gladia_api_key="test-key",
        gladia_api_url="https://gladia.test/v2/live",
        session_request_timeout=1.0,
        stream_handshake_timeout=1.0,
        recordings_dir=str(tmp_path / "recordings"),
    )


# ---------------------------------------------------------------------------
# Audio Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def sample_block():
    """A short float32 block with both negative and positive samples."""
    return np.array([0.0, 0.25, -0.25, 0.9, -0.9, 1.0, -1.0], dtype=np.float32)


@pytest.fixture
def audio_source():
    return FakeAudioSource()


@pytest.fixture
def silent_pcm_bytes():
    """One second of silence as PCM audio (16kHz, 16-bit, mono)."""
    return b"\x00\x00" * 16000


# ---------------------------------------------------------------------------
# Stream Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def fake_stream():
    return FakeDuplexStream()


@pytest.fixture
def session_descriptor():
    return SessionDescriptor.model_validate({"id": "sess-1", "url": "wss://gladia.test/sess-1"})


@pytest.fixture
def mock_session_client(session_descriptor):
    """Session initiator that always grants ``session_descriptor``."""
    client = AsyncMock(spec=GladiaSessionClient)
    client.begin_session.return_value = session_descriptor
    return client
