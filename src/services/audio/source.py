"""Audio source interface shared by the microphone adapter and test doubles."""

from abc import ABC, abstractmethod
from collections.abc import AsyncIterator

import numpy as np


class AudioSource(ABC):
    """A live sequence of float sample blocks plus a way to release the device."""

    @abstractmethod
    def blocks(self) -> AsyncIterator[np.ndarray]:
        """Yield float32 blocks in [-1, 1] until the source is released."""

    @abstractmethod
    def release(self) -> None:
        """Stop capturing and free the device. Safe to call more than once."""

    @property
    @abstractmethod
    def released(self) -> bool:
        """True once ``release()`` has been called."""

    def __aiter__(self) -> AsyncIterator[np.ndarray]:
        return self.blocks()
