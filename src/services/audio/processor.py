"""Audio processing utilities for PCM data.

Converts float sample blocks from the microphone into 16-bit PCM frames
for the live stream, and writes PCM to WAV files for playback.
"""

import wave
from pathlib import Path

import numpy as np

# Asymmetric scale: -1.0 maps to -32768, +1.0 maps to 32767
_NEGATIVE_SCALE = 32768.0
_POSITIVE_SCALE = 32767.0


def convert_to_pcm16(block: np.ndarray) -> bytes:
    """Convert a float sample block in [-1, 1] to signed 16-bit little-endian PCM.

    Samples are clamped to [-1, 1] first, then negative values are scaled
    by 32768 and non-negative values by 32767, rounding to the nearest integer.

    Args:
        block: 1-D array (or sequence) of float samples.

    Returns:
        Raw PCM bytes, two bytes per sample.
    """
    samples = np.clip(np.asarray(block, dtype=np.float64), -1.0, 1.0)
    scaled = np.where(samples < 0, samples * _NEGATIVE_SCALE, samples * _POSITIVE_SCALE)
    return np.rint(scaled).astype("<i2").tobytes()


class AudioProcessor:
    """PCM helpers bound to one audio format (rate, sample width, channels)."""

    def __init__(self, sample_rate: int = 16000, sample_width: int = 2, channels: int = 1) -> None:
        self.sample_rate = sample_rate
        self.sample_width = sample_width
        self.channels = channels

    def duration_seconds(self, pcm_data: bytes | bytearray) -> float:
        """Playback duration of raw PCM bytes."""
        return len(pcm_data) / (self.sample_rate * self.sample_width * self.channels)

    def save_wav(self, pcm_data: bytes, file_path: str | Path) -> str:
        """Write ``pcm_data`` as a WAV file, creating parent directories.

        Returns:
            Absolute path of the written file.

        Raises:
            ValueError: If there is no audio to write.
        """
        if not pcm_data:
            raise ValueError("Cannot save empty PCM data to WAV")
        path = Path(file_path)
        path.parent.mkdir(parents=True, exist_ok=True)
        with wave.open(str(path), "wb") as wf:
            wf.setnchannels(self.channels)
            wf.setsampwidth(self.sample_width)
            wf.setframerate(self.sample_rate)
            wf.writeframes(pcm_data)
        return str(path.resolve())
