"""
Data model for the voice pipeline.

Tracks the recording session lifecycle, speech requests, and the tagged
result returned by a pipeline run.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from pathlib import Path
from typing import Union
from uuid import uuid4

from pydantic import BaseModel, Field

from pocket_assistant.api.schemas import AssistantResponse
from pocket_assistant.intent.schemas import CommandIntent
from pocket_assistant.voice.errors import FailureReason


def _now_utc() -> datetime:
    """Get current UTC datetime (timezone-aware)."""
    return datetime.now(timezone.utc)


class SessionState(str, Enum):
    """States of the voice interaction state machine."""

    IDLE = "idle"
    REQUESTING_PERMISSION = "requesting_permission"
    RECORDING = "recording"
    STOPPING = "stopping"
    TRANSCRIBING = "transcribing"
    DISPATCHING = "dispatching"
    SPEAKING = "speaking"
    FAILED = "failed"


# Legal forward transitions; FAILED is reachable from every non-idle state.
TRANSITIONS: dict[SessionState, frozenset[SessionState]] = {
    SessionState.IDLE: frozenset({SessionState.REQUESTING_PERMISSION}),
    SessionState.REQUESTING_PERMISSION: frozenset({SessionState.RECORDING, SessionState.FAILED}),
    SessionState.RECORDING: frozenset({SessionState.STOPPING, SessionState.FAILED}),
    SessionState.STOPPING: frozenset({SessionState.TRANSCRIBING, SessionState.FAILED}),
    SessionState.TRANSCRIBING: frozenset({SessionState.DISPATCHING, SessionState.FAILED}),
    SessionState.DISPATCHING: frozenset({SessionState.SPEAKING, SessionState.IDLE, SessionState.FAILED}),
    SessionState.SPEAKING: frozenset({SessionState.IDLE, SessionState.FAILED}),
    SessionState.FAILED: frozenset({SessionState.IDLE}),
}


@dataclass
class RecordingSession:
    """One attempt to record and process a voice command."""

    id: str = field(default_factory=lambda: uuid4().hex)
    state: SessionState = SessionState.IDLE
    started_at: datetime | None = None
    last_activity_at: datetime | None = None
    audio_handle: Path | None = None
    duration_ms: int | None = None
    size_bytes: int | None = None

    def touch(self) -> None:
        self.last_activity_at = _now_utc()


@dataclass(frozen=True)
class SessionHandle:
    """Handle returned by AudioCaptureSession.start()."""

    id: str
    started_at: datetime


@dataclass(frozen=True)
class CaptureResult:
    """Captured audio plus its metadata, available after a successful stop."""

    audio_handle: Path
    duration_ms: int
    size_bytes: int


class SpeechPriority(str, Enum):
    NORMAL = "normal"
    IMPORTANT = "important"


class SpeechOutcome(str, Enum):
    """How a speech request ended."""

    COMPLETED = "completed"
    INTERRUPTED = "interrupted"
    REPLACED = "replaced"
    FAILED = "failed"


class SpeechRequest(BaseModel):
    """A single utterance with its voice parameters."""

    text: str = Field(..., description="Text to speak")
    priority: SpeechPriority = Field(default=SpeechPriority.NORMAL, description="Playback priority")
    pitch: float = Field(default=1.1, gt=0.0, le=2.0, description="Voice pitch multiplier")
    rate: float = Field(default=0.7, gt=0.0, le=2.0, description="Speaking rate multiplier")
    language: str = Field(default="en-US", description="Voice locale tag")

    @classmethod
    def important(cls, text: str, language: str = "en-US") -> "SpeechRequest":
        """Higher pitch, slower rate; used for responses and errors."""
        return cls(text=text, priority=SpeechPriority.IMPORTANT, pitch=1.2, rate=0.65, language=language)


@dataclass(frozen=True)
class PipelineSuccess:
    session_id: str
    transcription: str
    intent: CommandIntent
    response: AssistantResponse
    duration_ms: int | None = None
    ok: bool = True


@dataclass(frozen=True)
class PipelineFailure:
    reason: FailureReason
    message: str
    session_id: str | None = None
    transcription: str | None = None
    ok: bool = False


PipelineResult = Union[PipelineSuccess, PipelineFailure]
