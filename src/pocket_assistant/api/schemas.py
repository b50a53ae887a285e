"""
Wire models for the assistant backend.

Responses may arrive flat or wrapped in a ``{"data": {...}}`` envelope; the
``from_payload`` constructors accept both.
"""

from typing import Any

from pydantic import BaseModel, ConfigDict, Field


def unwrap_data(payload: Any) -> dict[str, Any]:
    """Return the ``data`` envelope when present, else the payload itself."""
    if not isinstance(payload, dict):
        return {}
    inner = payload.get("data")
    if isinstance(inner, dict):
        return inner
    return payload


class TranscriptionResult(BaseModel):
    """Output of the upload-and-transcribe call."""

    model_config = ConfigDict(frozen=True)

    text: str = Field(..., description="Transcribed text")
    confidence: float = Field(default=0.8, ge=0.0, le=1.0, description="Recognizer confidence")
    language: str = Field(default="en-US", description="Detected or requested locale tag")

    @classmethod
    def from_payload(cls, payload: Any, *, default_language: str = "en-US") -> "TranscriptionResult | None":
        """Build from a backend response; None when no transcription text is present."""
        body = unwrap_data(payload)
        text = body.get("transcription") or body.get("text")
        if not isinstance(text, str) or not text.strip():
            return None
        confidence = body.get("confidence")
        return cls(
            text=text.strip(),
            confidence=max(0.0, min(1.0, float(confidence))) if confidence is not None else 0.8,
            language=body.get("language") or default_language,
        )


class AssistantResponse(BaseModel):
    """Reply from the remote assistant."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    response_text: str = Field(default="", alias="response", description="Natural-language reply")
    action: str | None = Field(default=None, description="Optional action tag")
    data: Any = Field(default=None, description="Opaque action payload")

    @classmethod
    def from_payload(cls, payload: Any) -> "AssistantResponse":
        body = unwrap_data(payload)
        if "response" not in body and isinstance(payload, dict) and "response" in payload:
            body = payload
        return cls(
            response_text=str(body.get("response") or ""),
            action=body.get("action"),
            data=body.get("data"),
        )
