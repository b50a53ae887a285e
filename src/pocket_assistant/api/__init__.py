"""
API module: request/response boundary to the assistant backend.
"""

from pocket_assistant.api.assistant import RemoteDispatch
from pocket_assistant.api.client import ApiClient, ApiError
from pocket_assistant.api.schemas import AssistantResponse, TranscriptionResult
from pocket_assistant.api.transcription import (
    CannedTranscriber,
    FallbackTranscriber,
    RemoteTranscriber,
    Transcriber,
)

__all__ = [
    "ApiClient",
    "ApiError",
    "AssistantResponse",
    "CannedTranscriber",
    "FallbackTranscriber",
    "RemoteDispatch",
    "RemoteTranscriber",
    "Transcriber",
    "TranscriptionResult",
]
