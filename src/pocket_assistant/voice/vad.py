"""Voice-activity detection used to end recordings after the user stops speaking.

The controller asks the detector on every tick whether speech is still
happening; a positive answer re-arms the silence timer.
"""

from __future__ import annotations

from typing import Protocol


class VoiceActivityDetector(Protocol):
    def reset(self) -> None: ...

    def is_voice_active(self, level: float | None) -> bool: ...


class TimerStubDetector:
    """
    Placeholder that ignores the audio entirely.

    With ``active_ticks=None`` every tick counts as speech, so only a manual
    stop ends the recording. A number makes it report speech for that many
    ticks and silence afterwards.
    """

    def __init__(self, active_ticks: int | None = None) -> None:
        self._active_ticks = active_ticks
        self._ticks = 0

    def reset(self) -> None:
        self._ticks = 0

    def is_voice_active(self, level: float | None) -> bool:
        self._ticks += 1
        if self._active_ticks is None:
            return True
        return self._ticks <= self._active_ticks


class LevelAnalysisDetector:
    """Treats an input RMS level at or above ``threshold`` as speech."""

    def __init__(self, threshold: float = 0.02) -> None:
        self._threshold = threshold

    def reset(self) -> None:
        pass

    def is_voice_active(self, level: float | None) -> bool:
        return level is not None and level >= self._threshold
