"""Microphone permission boundary.

Both operations are idempotent; ``request`` may prompt the user on platforms
that have a prompt.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Protocol

from pocket_assistant.voice.audio_io import AudioIO

logger = logging.getLogger(__name__)


class PermissionProvider(Protocol):
    async def check(self) -> bool: ...

    async def request(self) -> bool: ...


class StaticPermissionProvider:
    """Fixed answer; used for headless runs and tests."""

    def __init__(self, granted: bool = True) -> None:
        self._granted = granted
        self.requests = 0

    async def check(self) -> bool:
        return self._granted

    async def request(self) -> bool:
        self.requests += 1
        return self._granted


class InputDevicePermissionProvider:
    """
    Desktop permission check: access is granted when an input device can be
    opened with the configured capture settings.
    """

    def __init__(self, audio: AudioIO) -> None:
        self._audio = audio

    async def check(self) -> bool:
        try:
            return await asyncio.to_thread(self._audio.has_input_device)
        except RuntimeError as e:
            logger.warning(f"Permission check failed: {e}")
            return False

    async def request(self) -> bool:
        # No prompt exists on desktop; requesting runs the same check.
        return await self.check()
