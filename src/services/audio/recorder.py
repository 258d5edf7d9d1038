"""Local recording sink for consultation audio.

Keeps a copy of every PCM frame sent to the transcription service so the
consultation can be played back once the recording stops.
"""

import logging
from datetime import UTC, datetime
from pathlib import Path

from src.services.audio.processor import AudioProcessor

logger = logging.getLogger(__name__)


class RecordingSink:
    """Accumulates PCM audio bytes and writes them to a WAV file on stop.

    Args:
        output_dir: Directory receiving the WAV files.
        label: Prefix for the file name (e.g. the patient ID).
        sample_rate: Audio sample rate in Hz.
        sample_width: Bytes per sample.
        channels: Number of audio channels.
    """

    def __init__(
        self,
        output_dir: str | Path,
        label: str = "consultation",
        sample_rate: int = 16000,
        sample_width: int = 2,
        channels: int = 1,
    ) -> None:
        self._output_dir = Path(output_dir)
        self._label = label
        self._buffer = bytearray()
        self._processor = AudioProcessor(sample_rate, sample_width, channels)
        self._recording = False
        self.saved_path: str | None = None

    @property
    def is_recording(self) -> bool:
        return self._recording

    @property
    def buffered_duration(self) -> float:
        """Duration of currently buffered audio in seconds."""
        return self._processor.duration_seconds(self._buffer)

    def start(self) -> None:
        """Begin a new take, discarding any previous buffer."""
        self._buffer.clear()
        self.saved_path = None
        self._recording = True

    def write(self, pcm: bytes) -> None:
        """Append raw PCM bytes while recording; ignored otherwise."""
        if self._recording:
            self._buffer.extend(pcm)

    def stop(self) -> str | None:
        """Stop recording and save the take.

        Returns:
            Absolute path of the WAV file, or None if nothing was captured.
        """
        if not self._recording:
            return self.saved_path
        self._recording = False
        if not self._buffer:
            logger.info("Recording sink stopped with no audio captured")
            return None

        timestamp = datetime.now(UTC).strftime("%Y%m%d-%H%M%S")
        wav_path = self._output_dir / f"{self._label}-{timestamp}.wav"
        self.saved_path = self._processor.save_wav(bytes(self._buffer), wav_path)
        self._buffer.clear()
        logger.info("Saved consultation audio: %s", self.saved_path)
        return self.saved_path
