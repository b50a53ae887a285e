"""
Error taxonomy for the voice pipeline.

Every failure carries a FailureReason so the controller can decide whether it
is spoken, reported, or both. None of them is fatal to the controller.
"""

from __future__ import annotations

from enum import Enum


class FailureReason(str, Enum):
    """Why a pipeline run (or a call into it) failed."""

    PERMISSION_DENIED = "permission_denied"
    DEVICE_BUSY = "device_busy"
    NO_ACTIVE_SESSION = "no_active_session"
    CAPTURE_FAILURE = "capture_failure"
    TRANSCRIPTION_FAILURE = "transcription_failure"
    DISPATCH_FAILURE = "dispatch_failure"
    CANCELLED = "cancelled"


class VoicePipelineError(Exception):
    """Base exception for voice pipeline failures."""

    reason: FailureReason = FailureReason.CAPTURE_FAILURE
    default_message: str = "Voice pipeline failed"

    def __init__(self, message: str | None = None) -> None:
        super().__init__(message or self.default_message)
        self.message = message or self.default_message


class PermissionDenied(VoicePipelineError):
    reason = FailureReason.PERMISSION_DENIED
    default_message = "Microphone permission required for voice input"


class DeviceBusy(VoicePipelineError):
    reason = FailureReason.DEVICE_BUSY
    default_message = "A voice command is already in progress"


class NoActiveSession(VoicePipelineError):
    reason = FailureReason.NO_ACTIVE_SESSION
    default_message = "No active recording"


class CaptureFailure(VoicePipelineError):
    reason = FailureReason.CAPTURE_FAILURE
    default_message = "Recording failed"


class TranscriptionFailure(VoicePipelineError):
    reason = FailureReason.TRANSCRIPTION_FAILURE
    default_message = "Transcription failed"


class DispatchFailure(VoicePipelineError):
    reason = FailureReason.DISPATCH_FAILURE
    default_message = "AI processing failed"


class PipelineCancelled(VoicePipelineError):
    reason = FailureReason.CANCELLED
    default_message = "Voice command cancelled"
