"""
Assistant dispatch boundary.

Sends transcribed text to the remote assistant, which answers with a
natural-language reply and an optional action tag.
"""

from __future__ import annotations

import logging

from pocket_assistant.api.client import ApiClient, ApiError
from pocket_assistant.api.schemas import AssistantResponse
from pocket_assistant.config import get_settings

logger = logging.getLogger(__name__)


class RemoteDispatch:
    """Dispatches a transcription to the remote assistant."""

    def __init__(self, client: ApiClient, path: str | None = None) -> None:
        self._client = client
        self._path = path or get_settings().assistant_path

    async def dispatch(self, text: str) -> AssistantResponse:
        """
        Send text to the assistant.

        Args:
            text: Transcribed user command.

        Returns:
            The assistant's response.

        Raises:
            ApiError: On transport, status or payload failures.
        """
        if not text.strip():
            raise ApiError("Cannot dispatch an empty command")

        payload = await self._client.post_json(self._path, {"text": text})
        try:
            response = AssistantResponse.from_payload(payload)
        except (ValueError, TypeError) as e:
            raise ApiError(f"Invalid assistant payload: {e}") from e
        logger.info(f"[VOICE][ASSISTANT] action={response.action} chars={len(response.response_text)}")
        return response
