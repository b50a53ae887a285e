"""Speech-to-text (offline fallback).

Used only when the upload-and-transcribe call fails and the whisper fallback
is configured. Requires `faster-whisper` (the ``voice`` extra).
"""

from __future__ import annotations

import asyncio
import logging
import math
from dataclasses import dataclass
from pathlib import Path

from pocket_assistant.api.schemas import TranscriptionResult
from pocket_assistant.api.transcription import Transcriber

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class STTConfig:
    model_size: str = "small"
    # Default to CPU to avoid hard crashes when CUDA/cuDNN aren't present.
    device: str = "cpu"  # cpu|cuda|auto
    compute_type: str | None = None  # e.g. int8, float16
    vad_filter: bool = True


class WhisperTranscriber(Transcriber):
    """faster-whisper wrapper."""

    def __init__(self, config: STTConfig | None = None) -> None:
        self._config = config or STTConfig()
        self._model = None

    @property
    def config(self) -> STTConfig:
        return self._config

    def _load_model(self):
        if self._model is not None:
            return self._model

        try:
            from faster_whisper import WhisperModel  # type: ignore
        except ImportError as e:  # pragma: no cover
            raise RuntimeError(
                "faster-whisper is required for the whisper fallback. Install with: pip install -e '.[voice]'"
            ) from e

        device = self._config.device
        if device == "auto":
            # Be conservative: prefer CPU unless user explicitly requests CUDA.
            device = "cpu"

        kwargs = {}
        if self._config.compute_type:
            kwargs["compute_type"] = self._config.compute_type

        self._model = WhisperModel(self._config.model_size, device=device, **kwargs)
        return self._model

    async def transcribe(
        self,
        audio_path: str | Path,
        *,
        language: str = "en-US",
        context: str = "voice_command",
    ) -> TranscriptionResult:
        audio_path = Path(audio_path)
        # Whisper wants a bare language code ("en"), not a locale tag.
        whisper_language = language.split("-", 1)[0].lower() or None

        def _run() -> TranscriptionResult:
            model = self._load_model()
            segments, info = model.transcribe(
                str(audio_path),
                language=whisper_language,
                vad_filter=self._config.vad_filter,
            )
            text_parts: list[str] = []
            logprobs: list[float] = []
            for s in segments:
                if s.text:
                    text_parts.append(s.text.strip())
                if getattr(s, "avg_logprob", None) is not None:
                    logprobs.append(s.avg_logprob)
            text = " ".join(t for t in text_parts if t).strip()
            if not text:
                raise RuntimeError("Local transcription produced no text")
            confidence = math.exp(sum(logprobs) / len(logprobs)) if logprobs else 0.8
            detected = getattr(info, "language", None)
            return TranscriptionResult(
                text=text,
                confidence=max(0.0, min(1.0, confidence)),
                language=language if not detected or language.startswith(detected) else detected,
            )

        logger.info(f"[VOICE][STT] local whisper transcription file={audio_path.name}")
        return await asyncio.to_thread(_run)
