"""
Transcription module - Live speech-to-text sessions against Gladia.

Factory function for creating a recording controller wired to the
production session client, WebSocket transport and microphone.
"""

from .assembler import TranscriptAssembler, apply
from .controller import RecordingController
from .gladia import GladiaSessionClient
from .stream import DuplexStream, TranscriptStreamClient, WebSocketDuplexStream

__all__ = [
    "DuplexStream",
    "GladiaSessionClient",
    "RecordingController",
    "TranscriptAssembler",
    "TranscriptStreamClient",
    "WebSocketDuplexStream",
    "apply",
    "create_controller",
]


def create_controller(patient_id: str, **kwargs) -> RecordingController:
    """
    Factory function to create a RecordingController for one patient page.

    Args:
        patient_id: Patient the consultation belongs to.
        **kwargs: Callbacks and overrides passed to RecordingController

    Returns:
        RecordingController using Gladia, WebSockets and the default microphone
    """
    return RecordingController(patient_id=patient_id, **kwargs)
