"""
Microphone capture using PyAudio.

``acquire()`` opens the default input device and returns an ``AudioSource``:
an async iterator of float32 sample blocks that ends once ``release()`` is
called. PyAudio delivers blocks on its own callback thread; they are handed
to the event loop with ``call_soon_threadsafe`` so every consumer runs on
the loop.
"""

import asyncio
import errno
import logging
from collections.abc import AsyncIterator

import numpy as np
import pyaudio

from src.core.exceptions import DeviceUnavailableError, PermissionDeniedError
from src.services.audio.source import AudioSource

logger = logging.getLogger(__name__)


class MicrophoneSource(AudioSource):
    """
    Default-microphone source backed by a PyAudio callback stream.

    Args:
        loop: Event loop that consumes the blocks.
        sample_rate: Capture rate in Hz.
        channels: Number of captured channels; only channel 0 is yielded.
        block_size: Frames per PyAudio buffer (one yielded block per buffer).
    """

    def __init__(
        self,
        loop: asyncio.AbstractEventLoop,
        sample_rate: int = 16000,
        channels: int = 1,
        block_size: int = 4096,
    ) -> None:
        self.sample_rate = sample_rate
        self.channels = channels
        self.block_size = block_size
        self._loop = loop
        self._queue: asyncio.Queue[np.ndarray | None] = asyncio.Queue()
        self._pa: pyaudio.PyAudio | None = None
        self._stream = None
        self._released = False

    @property
    def released(self) -> bool:
        return self._released

    def open(self) -> None:
        """Open and start the input stream (blocking; run off the loop)."""
        self._pa = pyaudio.PyAudio()
        try:
            self._stream = self._pa.open(
                format=pyaudio.paFloat32,
                channels=self.channels,
                rate=self.sample_rate,
                input=True,
                frames_per_buffer=self.block_size,
                stream_callback=self._callback,
            )
            self._stream.start_stream()
        except Exception:
            self._pa.terminate()
            self._pa = None
            self._stream = None
            raise

    def _callback(
        self,
        in_data: bytes | None,
        frame_count: int,
        time_info: dict[str, float],
        status_flags: int,
    ) -> tuple[None, int]:
        """PyAudio callback (audio thread)."""
        if in_data is None or self._released:
            return (None, pyaudio.paContinue)
        block = np.frombuffer(in_data, dtype=np.float32)
        if self.channels > 1:
            block = block.reshape(-1, self.channels)[:, 0]
        try:
            self._loop.call_soon_threadsafe(self._queue.put_nowait, block.copy())
        except RuntimeError:
            # Loop already closed; nothing left to deliver to
            return (None, pyaudio.paComplete)
        return (None, pyaudio.paContinue)

    async def blocks(self) -> AsyncIterator[np.ndarray]:
        while True:
            block = await self._queue.get()
            if block is None:
                return
            yield block

    def release(self) -> None:
        if self._released:
            return
        self._released = True
        try:
            if self._stream is not None:
                self._stream.stop_stream()
                self._stream.close()
        finally:
            self._stream = None
            if self._pa is not None:
                self._pa.terminate()
                self._pa = None
            self._queue.put_nowait(None)
        logger.info("Microphone released")


def _is_permission_error(exc: BaseException) -> bool:
    if isinstance(exc, PermissionError):
        return True
    if isinstance(exc, OSError) and exc.errno == errno.EACCES:
        return True
    return "permission" in str(exc).lower()


async def acquire(
    sample_rate: int = 16000,
    channels: int = 1,
    block_size: int = 4096,
) -> AudioSource:
    """Open the default microphone.

    Raises:
        PermissionDeniedError: If the platform refuses microphone access.
        DeviceUnavailableError: On any other acquisition failure.
    """
    source = MicrophoneSource(
        asyncio.get_running_loop(),
        sample_rate=sample_rate,
        channels=channels,
        block_size=block_size,
    )
    try:
        await asyncio.to_thread(source.open)
    except Exception as exc:
        logger.error("Error accessing microphone: %s", exc)
        if _is_permission_error(exc):
            raise PermissionDeniedError(detail=f"Microphone access denied: {exc}") from exc
        raise DeviceUnavailableError(detail=f"Failed to open microphone: {exc}") from exc
    logger.info(
        "Microphone acquired (rate=%s, channels=%s, block=%s)",
        sample_rate,
        channels,
        block_size,
    )
    return source
