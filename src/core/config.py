"""
Application configuration via pydantic-settings.

Loads values from .env file with sensible defaults for local development.
Use ``get_settings()`` to obtain the cached singleton instance.
"""

from functools import lru_cache

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Clinic Scribe application settings loaded from environment / .env file.

    All settings can be overridden via environment variables or a `.env` file.
    Field names map directly to env var names (case-insensitive).

    Attributes:
        gladia_api_key: API key sent as ``x-gladia-key`` on session requests.
        gladia_api_url: Live session endpoint of the transcription service.
        audio_block_size: Frames per microphone callback (one PCM frame per block).
        session_request_timeout: Upper bound on the session POST, in seconds.
        stream_handshake_timeout: Upper bound on the WebSocket handshake, in seconds.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",  # Silently ignore unrecognized env vars
    )

    # --- Gladia live transcription ---
    gladia_api_key: str = ""  # Required to start a recording
    gladia_api_url: str = "https://api.gladia.io/v2/live"
    transcription_language: str = "en"  # Only this language is committed to the transcript

    # --- Audio capture ---
    # PCM 16-bit, 16 kHz, mono is the only format the live session is opened with
    sample_rate: int = 16000
    bit_depth: int = 16
    channels: int = 1
    audio_block_size: int = 4096

    # --- Timeouts ---
    session_request_timeout: float = 10.0
    stream_handshake_timeout: float = 10.0

    # --- Application ---
    app_host: str = "0.0.0.0"  # Bind address for the FastAPI server
    app_port: int = 8000
    api_base_url: str = "http://localhost:8000"  # Used by the Streamlit UI
    log_level: str = "INFO"  # Python logging level

    # --- Clinic ---
    clinic_name: str = "Endo Clinic"
    physician_name: str = "Atallah Alruhaily - Consultant Endocrinologist"

    # --- Storage ---
    recordings_dir: str = "data/recordings"  # WAV copies of consultation audio


@lru_cache
def get_settings() -> Settings:
    """Return a cached Settings singleton.

    Uses ``functools.lru_cache`` so the .env file is read only once.
    Subsequent calls return the same ``Settings`` instance.

    Returns:
        Settings: The application-wide configuration object.
    """
    return Settings()
