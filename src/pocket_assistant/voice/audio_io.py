"""Audio capture + playback (assistant-agnostic).

This module is intentionally "dumb hardware I/O": it knows nothing about
commands, intents or the backend.

It provides:
- microphone capture (start/stop) with a running input level
- WAV saving/loading helpers
- speaker playback that can be stopped
- the shared audio route, switched between recording and playback
"""

from __future__ import annotations

import asyncio
import logging
import wave
from dataclasses import dataclass
from pathlib import Path

import numpy as np

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AudioRoute:
    """Configuration of the shared device audio session."""

    name: str
    allows_recording: bool
    duck_others: bool
    loudspeaker: bool
    stays_active_in_background: bool = False


RECORDING_ROUTE = AudioRoute("recording", allows_recording=True, duck_others=True, loudspeaker=True)
PLAYBACK_ROUTE = AudioRoute("playback", allows_recording=False, duck_others=False, loudspeaker=True)
IMPORTANT_PLAYBACK_ROUTE = AudioRoute(
    "important_playback",
    allows_recording=False,
    duck_others=False,
    loudspeaker=True,
    stays_active_in_background=True,
)


class AudioRouter:
    """
    Tracks the shared audio route.

    Desktop audio has no session categories, so applying a route only records
    it; callers must still apply a route before every use because another
    component may have switched it in between.
    """

    def __init__(self) -> None:
        self._current: AudioRoute | None = None
        self._applied = 0

    @property
    def current(self) -> AudioRoute | None:
        return self._current

    @property
    def applied_count(self) -> int:
        return self._applied

    def apply(self, route: AudioRoute) -> None:
        self._current = route
        self._applied += 1
        logger.debug(f"[VOICE][AUDIO] route={route.name}")


@dataclass(frozen=True)
class AudioIOConfig:
    sample_rate: int = 16000
    channels: int = 1
    dtype: str = "int16"  # sounddevice dtype and WAV sample width


class AudioIO:
    def __init__(self, config: AudioIOConfig | None = None) -> None:
        self._config = config or AudioIOConfig()
        self._recording_stream = None
        self._recording_frames: list[np.ndarray] = []
        self._level: float = 0.0

    @property
    def config(self) -> AudioIOConfig:
        return self._config

    @property
    def sample_rate(self) -> int:
        return self._config.sample_rate

    def _require_sounddevice(self):
        try:
            import sounddevice as sd  # type: ignore

            return sd
        except Exception as e:  # pragma: no cover
            raise RuntimeError(
                "sounddevice is required for voice mode. Install Python deps with: pip install -e '.[voice]'. "
                "If you see 'PortAudio library not found', install PortAudio (Debian/Ubuntu: sudo apt-get install portaudio19-dev)."
            ) from e

    def has_input_device(self) -> bool:
        """True when an input device is available to record from."""
        sd = self._require_sounddevice()
        try:
            sd.check_input_settings(
                samplerate=self._config.sample_rate,
                channels=self._config.channels,
                dtype=self._config.dtype,
            )
        except Exception as e:
            logger.info(f"[VOICE][AUDIO] no usable input device: {e}")
            return False
        return True

    def input_level(self) -> float:
        """RMS (0..1) of the most recent captured block."""
        return self._level

    async def start_recording(self) -> None:
        """Start mic capture."""
        sd = self._require_sounddevice()
        self._recording_frames = []
        self._level = 0.0

        def callback(indata, frames, time, status):  # noqa: ANN001
            if status:
                logger.debug(f"Input status: {status}")
            block = indata.copy()
            self._recording_frames.append(block)
            self._level = float(np.sqrt(np.mean(np.square(block.astype(np.float32) / 32768.0))))

        self._recording_stream = sd.InputStream(
            samplerate=self._config.sample_rate,
            channels=self._config.channels,
            dtype=self._config.dtype,
            callback=callback,
        )

        await asyncio.to_thread(self._recording_stream.start)

    async def stop_recording(self) -> np.ndarray:
        """Stop mic capture and return audio as int16 numpy array [samples, channels]."""
        if self._recording_stream is None:
            return np.zeros((0, self._config.channels), dtype=np.int16)

        stream = self._recording_stream
        self._recording_stream = None

        await asyncio.to_thread(stream.stop)
        await asyncio.to_thread(stream.close)

        if not self._recording_frames:
            return np.zeros((0, self._config.channels), dtype=np.int16)

        audio = np.concatenate(self._recording_frames, axis=0)
        self._recording_frames = []
        return audio

    def write_wav(self, wav_path: str | Path, audio: np.ndarray) -> Path:
        """Write int16 PCM WAV."""
        wav_path = Path(wav_path)
        wav_path.parent.mkdir(parents=True, exist_ok=True)

        if audio.ndim == 1:
            audio = audio[:, None]

        audio_i16 = audio.astype(np.int16, copy=False)

        with wave.open(str(wav_path), "wb") as wf:
            wf.setnchannels(self._config.channels)
            wf.setsampwidth(2)  # int16
            wf.setframerate(self._config.sample_rate)
            wf.writeframes(audio_i16.tobytes())

        return wav_path

    def read_wav(self, wav_path: str | Path) -> tuple[np.ndarray, int]:
        wav_path = Path(wav_path)
        with wave.open(str(wav_path), "rb") as wf:
            sr = wf.getframerate()
            n_channels = wf.getnchannels()
            sampwidth = wf.getsampwidth()
            if sampwidth != 2:
                raise ValueError(f"Only 16-bit WAV supported, got sampwidth={sampwidth}")
            frames = wf.readframes(wf.getnframes())

        audio = np.frombuffer(frames, dtype=np.int16)
        if n_channels > 1:
            audio = audio.reshape(-1, n_channels)
        else:
            audio = audio.reshape(-1, 1)
        return audio, sr

    async def play_wav(self, wav_path: str | Path, *, timeout_s: float = 60.0) -> None:
        """Play a WAV file and wait until it finishes or is stopped."""
        sd = self._require_sounddevice()

        audio, sr = self.read_wav(wav_path)
        audio_f32 = (audio.astype(np.float32) / 32768.0).squeeze(-1)

        sd.play(audio_f32, samplerate=sr, blocking=False)

        try:
            await asyncio.wait_for(asyncio.to_thread(sd.wait), timeout=timeout_s)
        except asyncio.TimeoutError:
            self.stop_playback()

    def stop_playback(self) -> None:
        sd = self._require_sounddevice()
        try:
            sd.stop()
        except Exception as e:
            logger.debug(f"[VOICE][AUDIO] stop failed: {e}")
