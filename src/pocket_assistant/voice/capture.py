"""
Audio capture session.

Owns the lifecycle of one recording attempt: permission, start, stop, and the
captured audio handle with its duration/size metadata. Only one session may
be active at a time; a second ``start`` fails fast instead of replacing the
running one.
"""

from __future__ import annotations

import asyncio
import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Protocol
from uuid import uuid4

from pocket_assistant.voice.audio_io import RECORDING_ROUTE, AudioRouter
from pocket_assistant.voice.errors import CaptureFailure, DeviceBusy, NoActiveSession, PermissionDenied
from pocket_assistant.voice.permissions import PermissionProvider
from pocket_assistant.voice.schemas import CaptureResult, SessionHandle

logger = logging.getLogger(__name__)


class AudioRecorder(Protocol):
    @property
    def sample_rate(self) -> int: ...

    async def start_recording(self) -> None: ...

    async def stop_recording(self) -> Any: ...

    def write_wav(self, wav_path: str | Path, audio: Any) -> Path: ...

    def input_level(self) -> float: ...


class AudioCaptureSession:
    def __init__(
        self,
        *,
        recorder: AudioRecorder,
        permissions: PermissionProvider,
        router: AudioRouter,
        recordings_dir: str | Path = "data/recordings",
    ) -> None:
        self._recorder = recorder
        self._permissions = permissions
        self._router = router
        self._recordings_dir = Path(recordings_dir)
        self._granted = False
        self._active: SessionHandle | None = None

    @property
    def is_active(self) -> bool:
        return self._active is not None

    @property
    def permission_granted(self) -> bool:
        return self._granted

    async def request_permission(self) -> bool:
        """Check, then prompt only if needed. Safe to call repeatedly."""
        if self._granted:
            return True
        granted = await self._permissions.check()
        if not granted:
            granted = await self._permissions.request()
        self._granted = bool(granted)
        if not self._granted:
            logger.info("[VOICE][CAPTURE] microphone permission denied")
        return self._granted

    async def start(self) -> SessionHandle:
        if not self._granted:
            raise PermissionDenied()
        if self._active is not None:
            raise DeviceBusy(f"Recording {self._active.id} is already active")

        self._router.apply(RECORDING_ROUTE)
        handle = SessionHandle(id=uuid4().hex, started_at=datetime.now(timezone.utc))
        # Claim the device before awaiting so a concurrent start sees it busy.
        self._active = handle
        try:
            await self._recorder.start_recording()
        except Exception as e:
            self._active = None
            raise CaptureFailure(f"Recording failed: {e}") from e

        logger.info(f"[VOICE][CAPTURE] started id={handle.id}")
        return handle

    async def stop(self, handle: SessionHandle) -> CaptureResult:
        if self._active is None or self._active.id != handle.id:
            raise NoActiveSession()

        self._active = None
        try:
            audio = await self._recorder.stop_recording()
        except Exception as e:
            raise CaptureFailure(f"Failed to stop recording: {e}") from e

        samples = int(getattr(audio, "shape", (0,))[0]) if getattr(audio, "size", 0) else 0
        duration_ms = int(samples * 1000 / self._recorder.sample_rate) if samples else 0

        wav_path = self._recordings_dir / f"recording_{handle.id}.wav"
        try:
            wav_path = await asyncio.to_thread(self._recorder.write_wav, wav_path, audio)
            size_bytes = wav_path.stat().st_size
        except (OSError, ValueError) as e:
            raise CaptureFailure(f"Failed to get recording file: {e}") from e

        logger.info(f"[VOICE][CAPTURE] stopped id={handle.id} duration_ms={duration_ms} bytes={size_bytes}")
        return CaptureResult(audio_handle=wav_path, duration_ms=duration_ms, size_bytes=size_bytes)

    async def abort(self) -> None:
        """Stop an active recording and throw the audio away."""
        if self._active is None:
            return
        self._active = None
        try:
            await self._recorder.stop_recording()
        except Exception as e:
            logger.warning(f"[VOICE][CAPTURE] abort failed: {e}")

    def current_level(self) -> float | None:
        if self._active is None:
            return None
        return self._recorder.input_level()

    def discard(self, result: CaptureResult) -> None:
        """Delete the recording file behind an audio handle."""
        try:
            result.audio_handle.unlink(missing_ok=True)
        except OSError as e:
            logger.warning(f"[VOICE][CAPTURE] could not delete {result.audio_handle}: {e}")
