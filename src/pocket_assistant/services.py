"""
Service context.

All long-lived collaborators are built once at process start and handed to
the controller and UI layer by reference.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional

import httpx

from pocket_assistant.api.assistant import RemoteDispatch
from pocket_assistant.api.client import ApiClient
from pocket_assistant.api.transcription import (
    CannedTranscriber,
    FallbackTranscriber,
    RemoteTranscriber,
    Transcriber,
)
from pocket_assistant.config import Settings, get_settings
from pocket_assistant.intent.extractor import LocalExtractor
from pocket_assistant.voice.audio_io import AudioIO, AudioIOConfig, AudioRouter
from pocket_assistant.voice.capture import AudioCaptureSession
from pocket_assistant.voice.controller import (
    ControllerConfig,
    ErrorCallback,
    StateCallback,
    TranscriptionCallback,
    VoiceInteractionController,
)
from pocket_assistant.voice.permissions import InputDevicePermissionProvider, PermissionProvider
from pocket_assistant.voice.speech_output import SpeechOutput
from pocket_assistant.voice.stt import STTConfig, WhisperTranscriber
from pocket_assistant.voice.tts import ConsoleSpeechEngine, PiperSpeechEngine, SpeechEngine, TTSConfig
from pocket_assistant.voice.vad import LevelAnalysisDetector, TimerStubDetector, VoiceActivityDetector

logger = logging.getLogger(__name__)


def build_transcriber(settings: Settings, client: ApiClient) -> Transcriber:
    remote = RemoteTranscriber(client, path=settings.transcribe_path)
    if settings.transcription_fallback == "canned":
        logger.warning("Canned transcription fallback enabled; not for production use")
        return FallbackTranscriber(remote, CannedTranscriber())
    if settings.transcription_fallback == "whisper":
        stt = WhisperTranscriber(STTConfig(model_size=settings.whisper_model, device=settings.whisper_device))
        return FallbackTranscriber(remote, stt)
    return remote


def build_speech_engine(settings: Settings, audio: AudioIO) -> SpeechEngine:
    if settings.tts_engine == "piper":
        engine = PiperSpeechEngine(audio, TTSConfig(piper_bin=settings.piper_bin, model_path=settings.piper_model))
        ok, reason = engine.is_available()
        if ok:
            return engine
        logger.warning(f"Piper TTS unavailable, speaking to the console instead: {reason}")
    return ConsoleSpeechEngine()


def build_detector(settings: Settings) -> VoiceActivityDetector:
    if settings.vad_mode == "level":
        return LevelAnalysisDetector(threshold=settings.vad_level_threshold)
    return TimerStubDetector(active_ticks=settings.vad_stub_active_ticks)


@dataclass
class ServiceContext:
    settings: Settings
    api_client: ApiClient
    audio: AudioIO
    router: AudioRouter
    permissions: PermissionProvider
    speech: SpeechOutput
    transcriber: Transcriber
    dispatcher: RemoteDispatch
    extractor: LocalExtractor

    @classmethod
    def build(
        cls,
        settings: Settings | None = None,
        *,
        permissions: PermissionProvider | None = None,
        speech_engine: SpeechEngine | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> "ServiceContext":
        """
        Build every service from settings.

        Args:
            settings: Settings to use (cached settings if not provided).
            permissions: Permission boundary (input-device check if not provided).
            speech_engine: Speech engine (from settings if not provided).
            transport: Optional httpx transport for the API client.
        """
        settings = settings or get_settings()
        api_client = ApiClient(
            base_url=settings.api_base_url,
            timeout=settings.api_timeout,
            token=settings.api_token,
            transport=transport,
        )
        audio = AudioIO(AudioIOConfig(sample_rate=settings.sample_rate))
        router = AudioRouter()
        engine = speech_engine or build_speech_engine(settings, audio)

        return cls(
            settings=settings,
            api_client=api_client,
            audio=audio,
            router=router,
            permissions=permissions or InputDevicePermissionProvider(audio),
            speech=SpeechOutput(engine, router),
            transcriber=build_transcriber(settings, api_client),
            dispatcher=RemoteDispatch(api_client, path=settings.assistant_path),
            extractor=LocalExtractor(),
        )

    def create_controller(
        self,
        *,
        on_transcription: Optional[TranscriptionCallback] = None,
        on_error: Optional[ErrorCallback] = None,
        on_state_change: Optional[StateCallback] = None,
    ) -> VoiceInteractionController:
        settings = self.settings
        capture = AudioCaptureSession(
            recorder=self.audio,
            permissions=self.permissions,
            router=self.router,
            recordings_dir=settings.recordings_dir,
        )
        return VoiceInteractionController(
            capture=capture,
            transcriber=self.transcriber,
            speech=self.speech,
            dispatcher=self.dispatcher,
            extractor=self.extractor,
            detector=build_detector(settings),
            config=ControllerConfig(
                silence_timeout_ms=settings.silence_timeout_ms,
                tick_ms=settings.vad_tick_ms,
                language=settings.language,
                context=settings.transcription_context,
                dispatch_source=settings.dispatch_source,
                keep_recordings=settings.keep_recordings,
                tts_max_chars=settings.tts_max_chars,
            ),
            on_transcription=on_transcription,
            on_error=on_error,
            on_state_change=on_state_change,
        )

    async def aclose(self) -> None:
        self.speech.stop()
        await self.api_client.close()
