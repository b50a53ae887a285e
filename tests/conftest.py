import asyncio
from pathlib import Path

import numpy as np
import pytest

from pocket_assistant.api.schemas import AssistantResponse, TranscriptionResult
from pocket_assistant.config import get_settings
from pocket_assistant.voice.audio_io import AudioIO, AudioIOConfig, AudioRouter
from pocket_assistant.voice.capture import AudioCaptureSession
from pocket_assistant.voice.controller import ControllerConfig, VoiceInteractionController
from pocket_assistant.voice.permissions import StaticPermissionProvider
from pocket_assistant.voice.schemas import SpeechRequest
from pocket_assistant.voice.speech_output import SpeechOutput
from pocket_assistant.voice.vad import TimerStubDetector


class FakeRecorder:
    """Recorder that hands back silence of a fixed length and writes real WAVs.

    ``start_error`` is raised by the next start only; ``stop_error`` by every stop.
    """

    def __init__(
        self,
        *,
        samples: int = 16000,
        sample_rate: int = 16000,
        start_error: Exception | None = None,
        stop_error: Exception | None = None,
    ) -> None:
        self._io = AudioIO(AudioIOConfig(sample_rate=sample_rate))
        self._samples = samples
        self._start_error = start_error
        self._stop_error = stop_error
        self.started = 0
        self.stopped = 0

    @property
    def sample_rate(self) -> int:
        return self._io.sample_rate

    async def start_recording(self) -> None:
        if self._start_error is not None:
            error, self._start_error = self._start_error, None
            raise error
        self.started += 1

    async def stop_recording(self):
        self.stopped += 1
        if self._stop_error is not None:
            raise self._stop_error
        return np.zeros((self._samples, 1), dtype=np.int16)

    def write_wav(self, wav_path, audio) -> Path:
        return self._io.write_wav(wav_path, audio)

    def input_level(self) -> float:
        return 0.0


class FakeTranscriber:
    def __init__(self, text: str = "Schedule a meeting tomorrow at 2 PM", error: Exception | None = None) -> None:
        self._text = text
        self._error = error
        self.calls: list[Path] = []

    async def transcribe(self, audio_path, *, language="en-US", context="voice_command") -> TranscriptionResult:
        self.calls.append(Path(audio_path))
        if self._error is not None:
            raise self._error
        return TranscriptionResult(text=self._text, confidence=0.9, language=language)


class FakeDispatcher:
    def __init__(self, reply: str = "Your meeting is scheduled.", error: Exception | None = None) -> None:
        self._reply = reply
        self._error = error
        self.texts: list[str] = []

    async def dispatch(self, text: str) -> AssistantResponse:
        self.texts.append(text)
        if self._error is not None:
            raise self._error
        return AssistantResponse(response_text=self._reply, action="create_event")


class FakeSpeechEngine:
    """Speech engine with a completion signal; ``blocking`` keeps playback going until cancelled."""

    def __init__(self, *, blocking: bool = False) -> None:
        self.blocking = blocking
        self.requests: list[SpeechRequest] = []
        self.cancels = 0

    @property
    def spoken(self) -> list[str]:
        return [r.text for r in self.requests]

    def utter(self, request: SpeechRequest):
        self.requests.append(request)
        return self._play()

    async def _play(self) -> None:
        if self.blocking:
            await asyncio.Event().wait()
        await asyncio.sleep(0)

    def cancel(self) -> None:
        self.cancels += 1


class Recorder:
    """Collects controller callbacks."""

    def __init__(self) -> None:
        self.states: list = []
        self.transcriptions: list[str] = []
        self.errors: list[str] = []

    def on_state_change(self, old, new) -> None:
        self.states.append(new)

    def on_transcription(self, text: str) -> None:
        self.transcriptions.append(text)

    def on_error(self, message: str) -> None:
        self.errors.append(message)


@pytest.fixture(autouse=True)
def _fresh_settings():
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture
def make_controller(tmp_path):
    """Build a controller wired to fakes; keyword overrides replace single parts."""

    def _make(
        *,
        transcriber=None,
        dispatcher=None,
        engine=None,
        granted: bool = True,
        recorder=None,
        permissions=None,
        detector=None,
        timings=None,
        callbacks: Recorder | None = None,
        **config_overrides,
    ):
        router = AudioRouter()
        engine = engine or FakeSpeechEngine()
        capture = AudioCaptureSession(
            recorder=recorder or FakeRecorder(),
            permissions=permissions or StaticPermissionProvider(granted=granted),
            router=router,
            recordings_dir=tmp_path,
        )
        config_kwargs = {"silence_timeout_ms": 30, "tick_ms": 10}
        config_kwargs.update(config_overrides)
        callbacks = callbacks or Recorder()
        controller = VoiceInteractionController(
            capture=capture,
            transcriber=transcriber or FakeTranscriber(),
            speech=SpeechOutput(engine, router, timings),
            dispatcher=dispatcher if dispatcher is not None else FakeDispatcher(),
            detector=detector or TimerStubDetector(active_ticks=0),
            config=ControllerConfig(**config_kwargs),
            on_transcription=callbacks.on_transcription,
            on_error=callbacks.on_error,
            on_state_change=callbacks.on_state_change,
        )
        return controller, engine, callbacks

    return _make
