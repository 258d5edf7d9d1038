"""
Audio module - Microphone capture, PCM conversion and the local recording sink.
"""

from .processor import AudioProcessor, convert_to_pcm16
from .recorder import RecordingSink

__all__ = ["AudioProcessor", "RecordingSink", "convert_to_pcm16"]
