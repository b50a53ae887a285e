"""Text-to-speech engines.

An engine starts an utterance and may return an awaitable that resolves when
playback ends. Engines that cannot report completion return None, and
SpeechOutput falls back to a length-based timer.

- ConsoleSpeechEngine: prints the text (headless runs, no completion signal)
- PiperSpeechEngine: `piper` via subprocess, played through AudioIO
"""

from __future__ import annotations

import asyncio
import logging
import re
import shutil
import subprocess
import tempfile
from dataclasses import dataclass
from pathlib import Path
from typing import Awaitable, Protocol

from pocket_assistant.voice.audio_io import AudioIO
from pocket_assistant.voice.schemas import SpeechRequest

logger = logging.getLogger(__name__)


class SpeechEngine(Protocol):
    def utter(self, request: SpeechRequest) -> Awaitable[None] | None: ...

    def cancel(self) -> None: ...


class ConsoleSpeechEngine:
    """Writes utterances to stdout."""

    def __init__(self) -> None:
        self.spoken: list[str] = []

    def utter(self, request: SpeechRequest) -> None:
        self.spoken.append(request.text)
        print(f"\n[Assistant] {request.text}\n", flush=True)
        return None

    def cancel(self) -> None:
        pass


@dataclass(frozen=True)
class TTSConfig:
    piper_bin: str = "piper"
    model_path: str | None = None  # path to *.onnx
    speaker_id: int | None = None
    max_chars_per_chunk: int = 350
    timeout_s: float = 60.0


class PiperSpeechEngine:
    def __init__(self, audio: AudioIO, config: TTSConfig | None = None) -> None:
        self._audio = audio
        self._config = config or TTSConfig()
        self._validated_piper_path: str | None = None
        self._cancelled = False

    @property
    def config(self) -> TTSConfig:
        return self._config

    def is_available(self) -> tuple[bool, str]:
        try:
            _ = self._require_piper()
            return True, "ok"
        except RuntimeError as e:
            return False, str(e)

    def _looks_like_piper_tts(self, piper_path: str) -> bool:
        try:
            r = subprocess.run(
                [piper_path, "--help"],
                check=False,
                text=True,
                stdout=subprocess.PIPE,
                stderr=subprocess.STDOUT,
                timeout=5,
            )
        except (OSError, subprocess.SubprocessError):
            return False

        out = (r.stdout or "").lower()
        # Piper TTS CLI typically supports these flags.
        return ("--model" in out or "--output_file" in out) and "application options" not in out

    def _require_piper(self) -> str:
        if self._validated_piper_path:
            return self._validated_piper_path

        p = shutil.which(self._config.piper_bin)
        if not p:  # pragma: no cover
            raise RuntimeError(
                "piper CLI not found. Install piper (binary) and ensure it's on PATH, "
                "or set POCKET_PIPER_BIN."
            )
        if not self._looks_like_piper_tts(p):  # pragma: no cover
            raise RuntimeError(
                "Found a `piper` binary, but it does not look like the Piper TTS CLI "
                "(common on Linux: /usr/bin/piper is a GTK app). Set POCKET_PIPER_BIN to the Piper TTS binary."
            )
        if not self._config.model_path:  # pragma: no cover
            raise RuntimeError("Piper model path not configured. Set POCKET_PIPER_MODEL='/path/to/voice.onnx'.")

        self._validated_piper_path = p
        return p

    def _chunk_text(self, text: str) -> list[str]:
        t = (text or "").strip()
        if not t:
            return []

        # Split on sentence-ish boundaries, then re-pack into chunks.
        parts = [p.strip() for p in re.split(r"(?<=[.!?])\s+", t) if p.strip()]
        chunks: list[str] = []
        current = ""
        for p in parts:
            if not current:
                current = p
                continue
            if len(current) + 1 + len(p) <= self._config.max_chars_per_chunk:
                current = current + " " + p
            else:
                chunks.append(current)
                current = p
        if current:
            chunks.append(current)

        return chunks

    def _synthesize(self, piper_bin: str, chunk: str, wav_path: Path, rate: float) -> None:
        # Piper has no pitch control; rate maps to the inverse phoneme length.
        cmd = [
            piper_bin,
            "--model",
            str(self._config.model_path),
            "--output_file",
            str(wav_path),
            "--length_scale",
            f"{1.0 / rate:.2f}",
        ]
        if self._config.speaker_id is not None:
            cmd += ["--speaker", str(self._config.speaker_id)]

        try:
            subprocess.run(
                cmd,
                input=chunk,
                text=True,
                check=True,
                stdout=subprocess.DEVNULL,
                stderr=subprocess.PIPE,
                timeout=self._config.timeout_s,
            )
        except subprocess.TimeoutExpired as e:  # pragma: no cover
            raise RuntimeError(
                f"piper timed out after {self._config.timeout_s:.1f}s. model={self._config.model_path!s}."
            ) from e
        except subprocess.CalledProcessError as e:  # pragma: no cover
            stderr = (e.stderr or "").strip()
            raise RuntimeError(
                f"piper failed (exit={e.returncode}). model={self._config.model_path!s}. stderr={stderr or '<empty>'}"
            ) from e

    async def _speak(self, request: SpeechRequest) -> None:
        piper_bin = self._require_piper()
        with tempfile.TemporaryDirectory(prefix="pocket_tts_") as tmp:
            for idx, chunk in enumerate(self._chunk_text(request.text)):
                if self._cancelled:
                    return
                wav_path = Path(tmp) / f"utterance_{idx:02d}.wav"
                await asyncio.to_thread(self._synthesize, piper_bin, chunk, wav_path, request.rate)
                if self._cancelled:
                    return
                await self._audio.play_wav(wav_path)

    def utter(self, request: SpeechRequest) -> Awaitable[None]:
        self._cancelled = False
        return self._speak(request)

    def cancel(self) -> None:
        self._cancelled = True
        self._audio.stop_playback()
