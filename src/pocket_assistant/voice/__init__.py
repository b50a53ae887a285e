"""Voice command subsystem.

This package provides the interaction pipeline for voice commands:

mic -> transcription -> intent / assistant -> speech -> speaker

The controller is the single authority for pipeline state; everything else is
stateless or owns one device resource.
"""

from pocket_assistant.voice.audio_io import AudioIO, AudioIOConfig, AudioRouter
from pocket_assistant.voice.capture import AudioCaptureSession
from pocket_assistant.voice.controller import (
    CancellationToken,
    ControllerConfig,
    VoiceInteractionController,
)
from pocket_assistant.voice.errors import (
    CaptureFailure,
    DeviceBusy,
    DispatchFailure,
    FailureReason,
    NoActiveSession,
    PermissionDenied,
    PipelineCancelled,
    TranscriptionFailure,
    VoicePipelineError,
)
from pocket_assistant.voice.schemas import (
    PipelineFailure,
    PipelineResult,
    PipelineSuccess,
    RecordingSession,
    SessionState,
    SpeechPriority,
    SpeechRequest,
)
from pocket_assistant.voice.speech_output import SpeechOutput
from pocket_assistant.voice.vad import LevelAnalysisDetector, TimerStubDetector, VoiceActivityDetector

__all__ = [
    "AudioCaptureSession",
    "AudioIO",
    "AudioIOConfig",
    "AudioRouter",
    "CancellationToken",
    "CaptureFailure",
    "ControllerConfig",
    "DeviceBusy",
    "DispatchFailure",
    "FailureReason",
    "LevelAnalysisDetector",
    "NoActiveSession",
    "PermissionDenied",
    "PipelineCancelled",
    "PipelineFailure",
    "PipelineResult",
    "PipelineSuccess",
    "RecordingSession",
    "SessionState",
    "SpeechOutput",
    "SpeechPriority",
    "SpeechRequest",
    "TimerStubDetector",
    "TranscriptionFailure",
    "VoiceActivityDetector",
    "VoiceInteractionController",
    "VoicePipelineError",
]
