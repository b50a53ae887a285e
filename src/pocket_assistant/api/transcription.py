"""
Upload-and-transcribe boundary.

The remote transcriber uploads the captured WAV as multipart form data. When
the upload fails, an optional offline fallback can answer instead:

- CannedTranscriber: a fixed table of sample commands. NOT for production;
  it exists so the pipeline can be exercised without a backend.
- WhisperTranscriber (pocket_assistant.voice.stt): a local faster-whisper model.
"""

from __future__ import annotations

import asyncio
import logging
import random
import time
from pathlib import Path

from pocket_assistant.api.client import ApiClient, ApiError
from pocket_assistant.api.schemas import TranscriptionResult
from pocket_assistant.config import get_settings

logger = logging.getLogger(__name__)


class Transcriber:
    async def transcribe(
        self,
        audio_path: str | Path,
        *,
        language: str = "en-US",
        context: str = "voice_command",
    ) -> TranscriptionResult:
        raise NotImplementedError


class RemoteTranscriber(Transcriber):
    """Uploads audio to the backend and returns its transcription."""

    def __init__(self, client: ApiClient, path: str | None = None) -> None:
        self._client = client
        self._path = path or get_settings().transcribe_path

    async def transcribe(
        self,
        audio_path: str | Path,
        *,
        language: str = "en-US",
        context: str = "voice_command",
    ) -> TranscriptionResult:
        audio_path = Path(audio_path)
        try:
            content = await asyncio.to_thread(audio_path.read_bytes)
        except OSError as e:
            raise ApiError(f"Could not read recording {audio_path.name}: {e}") from e

        file_name = f"recording_{int(time.time() * 1000)}{audio_path.suffix or '.wav'}"
        logger.info(f"[VOICE][STT] uploading {file_name} bytes={len(content)} language={language}")
        payload = await self._client.post_multipart(
            self._path,
            files={"audioPath": (file_name, content, "audio/wav")},
            data={"language": language, "context": context},
        )

        try:
            result = TranscriptionResult.from_payload(payload, default_language=language)
        except (ValueError, TypeError) as e:
            raise ApiError(f"Invalid transcription payload: {e}") from e
        if result is None:
            raise ApiError("No transcription received from server")
        return result


# Sample commands used by the offline stub.
CANNED_TRANSCRIPTIONS: tuple[tuple[str, float], ...] = (
    ("Schedule a meeting for tomorrow at 2 PM", 0.95),
    ("Add expense for lunch $25", 0.92),
    ("Show my calendar for today", 0.88),
    ("Call assistant", 0.9),
    ("Create a new task", 0.87),
    ("Title team meeting, description weekly standup, location conference room, time 2 PM tomorrow", 0.93),
    ("Event client call at 3 PM today in virtual meeting", 0.91),
    ("Meeting budget review all day tomorrow", 0.89),
)


class CannedTranscriber(Transcriber):
    """Offline stub that answers with a sample command. Not for production use."""

    def __init__(
        self,
        table: tuple[tuple[str, float], ...] = CANNED_TRANSCRIPTIONS,
        seed: int | None = None,
    ) -> None:
        if not table:
            raise ValueError("CannedTranscriber needs at least one entry")
        self._table = table
        self._rng = random.Random(seed)

    async def transcribe(
        self,
        audio_path: str | Path,
        *,
        language: str = "en-US",
        context: str = "voice_command",
    ) -> TranscriptionResult:
        text, confidence = self._rng.choice(self._table)
        logger.info(f"[VOICE][STT] canned transcription used text={text!r}")
        return TranscriptionResult(text=text, confidence=confidence, language=language)


class FallbackTranscriber(Transcriber):
    """Tries the primary transcriber and falls back on any boundary failure."""

    def __init__(self, primary: Transcriber, fallback: Transcriber) -> None:
        self._primary = primary
        self._fallback = fallback

    async def transcribe(
        self,
        audio_path: str | Path,
        *,
        language: str = "en-US",
        context: str = "voice_command",
    ) -> TranscriptionResult:
        try:
            return await self._primary.transcribe(audio_path, language=language, context=context)
        except (ApiError, RuntimeError) as e:
            logger.warning(f"Transcription with upload failed; falling back to local transcription: {e}")
            return await self._fallback.transcribe(audio_path, language=language, context=context)
