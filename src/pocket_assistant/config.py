"""
Application configuration using pydantic-settings.

Loads configuration from environment variables (prefix ``POCKET_``) and .env files.
"""

from functools import lru_cache
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_prefix="POCKET_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
    )

    # Assistant backend
    api_base_url: str = Field(
        default="http://localhost:3000",
        description="Base URL of the assistant backend",
    )
    api_token: str | None = Field(
        default=None,
        description="Bearer token sent with every backend request",
    )
    api_timeout: float = Field(
        default=10.0,
        description="Timeout in seconds for backend requests",
    )
    transcribe_path: str = Field(
        default="/ai/upload-audio",
        description="Upload-and-transcribe endpoint",
    )
    assistant_path: str = Field(
        default="/ai/create-event",
        description="Assistant dispatch endpoint",
    )

    # Transcription
    language: str = Field(default="en-US", description="Locale tag sent with uploads")
    transcription_context: str = Field(
        default="voice_command",
        description="Free-form context tag sent with uploads",
    )
    transcription_fallback: Literal["none", "canned", "whisper"] = Field(
        default="none",
        description="Offline fallback used when the upload fails",
    )
    whisper_model: str = Field(default="small", description="faster-whisper model size")
    whisper_device: Literal["cpu", "cuda", "auto"] = Field(default="cpu", description="faster-whisper device")

    # Recording
    silence_timeout_ms: int = Field(
        default=2000,
        description="Inactivity interval after which recording auto-stops",
    )
    vad_tick_ms: int = Field(
        default=1000,
        description="Interval between voice-activity checks",
    )
    vad_mode: Literal["timer", "level"] = Field(
        default="timer",
        description="Voice-activity detector: timer stub or RMS level analysis",
    )
    vad_stub_active_ticks: int | None = Field(
        default=None,
        description="Ticks the timer stub reports as speech (None = every tick)",
    )
    vad_level_threshold: float = Field(
        default=0.02,
        description="RMS level treated as speech by the level detector",
    )
    sample_rate: int = Field(default=16000, description="Capture sample rate")
    recordings_dir: str = Field(
        default="./data/recordings",
        description="Where captured WAV files are written",
    )
    keep_recordings: bool = Field(
        default=False,
        description="Keep WAV files after the pipeline run finishes",
    )

    # Dispatch / speech
    dispatch_source: Literal["remote", "local"] = Field(
        default="remote",
        description="Answer with the remote assistant or the local extractor",
    )
    tts_engine: Literal["console", "piper"] = Field(
        default="console",
        description="Speech engine used by SpeechOutput",
    )
    piper_bin: str = Field(default="piper", description="Path/name of the Piper TTS binary")
    piper_model: str | None = Field(default=None, description="Path to the Piper .onnx voice")
    tts_max_chars: int = Field(default=300, description="Max characters spoken per response")

    # Application
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = Field(
        default="INFO",
        description="Logging level",
    )
    debug: bool = Field(
        default=False,
        description="Enable debug mode",
    )


@lru_cache
def get_settings() -> Settings:
    """
    Get cached application settings.

    Returns:
        Settings: Application settings instance.
    """
    return Settings()
