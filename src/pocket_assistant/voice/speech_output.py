"""
Speech output with priorities.

Policy:
- At most one utterance plays at a time.
- An IMPORTANT request preempts whatever is playing and drops any pending one.
- A NORMAL request while something plays is queued-of-one: it replaces any
  pending NORMAL request and starts when the current utterance ends.

The shared audio route is switched to playback before every utterance, since
recording may have reconfigured it in between.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Callable

from pocket_assistant.voice.audio_io import IMPORTANT_PLAYBACK_ROUTE, PLAYBACK_ROUTE, AudioRouter
from pocket_assistant.voice.schemas import SpeechOutcome, SpeechPriority, SpeechRequest
from pocket_assistant.voice.tts import SpeechEngine

logger = logging.getLogger(__name__)

DoneCallback = Callable[[SpeechOutcome], None]


@dataclass(frozen=True)
class SpeechTiming:
    """Completion estimate for engines without a completion signal."""

    per_char_ms: int
    min_ms: int

    def estimate_ms(self, text: str) -> int:
        return max(len(text) * self.per_char_ms, self.min_ms)


DEFAULT_TIMINGS: dict[SpeechPriority, SpeechTiming] = {
    SpeechPriority.NORMAL: SpeechTiming(per_char_ms=80, min_ms=1000),
    SpeechPriority.IMPORTANT: SpeechTiming(per_char_ms=90, min_ms=1500),
}


@dataclass
class _Utterance:
    request: SpeechRequest
    on_done: DoneCallback | None
    task: asyncio.Future | None = None


class SpeechOutput:
    def __init__(
        self,
        engine: SpeechEngine,
        router: AudioRouter,
        timings: dict[SpeechPriority, SpeechTiming] | None = None,
    ) -> None:
        self._engine = engine
        self._router = router
        self._timings = {**DEFAULT_TIMINGS, **(timings or {})}
        self._current: _Utterance | None = None
        self._pending: _Utterance | None = None

    @property
    def is_speaking(self) -> bool:
        return self._current is not None

    @property
    def current_request(self) -> SpeechRequest | None:
        return self._current.request if self._current else None

    @property
    def pending_request(self) -> SpeechRequest | None:
        return self._pending.request if self._pending else None

    def speak(self, request: SpeechRequest, on_done: DoneCallback | None = None) -> None:
        """Start (or queue) an utterance. Completion is reported through ``on_done``."""
        utterance = _Utterance(request=request, on_done=on_done)

        if self._current is None:
            self._start(utterance)
            return

        if request.priority is SpeechPriority.IMPORTANT:
            self._drop_pending(SpeechOutcome.REPLACED)
            self._interrupt_current()
            self._start(utterance)
            return

        self._drop_pending(SpeechOutcome.REPLACED)
        self._pending = utterance
        logger.debug(f"[VOICE][TTS] queued text={request.text[:40]!r}")

    def stop(self) -> None:
        """Cancel in-flight and pending speech. Idempotent."""
        self._drop_pending(SpeechOutcome.INTERRUPTED)
        self._interrupt_current()

    def _start(self, utterance: _Utterance) -> None:
        request = utterance.request
        important = request.priority is SpeechPriority.IMPORTANT
        self._router.apply(IMPORTANT_PLAYBACK_ROUTE if important else PLAYBACK_ROUTE)
        self._current = utterance

        try:
            awaitable = self._engine.utter(request)
        except RuntimeError as e:
            logger.warning(f"[VOICE][TTS] failed to speak: {e}")
            self._current = None
            self._finish(utterance, SpeechOutcome.FAILED)
            self._start_next()
            return

        if awaitable is None:
            delay_ms = self._timings[request.priority].estimate_ms(request.text)
            utterance.task = asyncio.ensure_future(asyncio.sleep(delay_ms / 1000))
        else:
            utterance.task = asyncio.ensure_future(awaitable)

        excerpt = request.text[:80].replace("\n", " ")
        logger.info(f"[VOICE][TTS] speak priority={request.priority.value} len={len(request.text)} text=\"{excerpt}\"")
        utterance.task.add_done_callback(lambda task, u=utterance: self._on_task_done(u, task))

    def _on_task_done(self, utterance: _Utterance, task: asyncio.Future) -> None:
        if self._current is not utterance:
            return
        self._current = None

        if task.cancelled():
            outcome = SpeechOutcome.INTERRUPTED
        elif task.exception() is not None:
            logger.warning(f"[VOICE][TTS] utterance failed: {task.exception()}")
            outcome = SpeechOutcome.FAILED
        else:
            outcome = SpeechOutcome.COMPLETED

        self._finish(utterance, outcome)
        self._start_next()

    def _interrupt_current(self) -> None:
        utterance = self._current
        if utterance is None:
            return
        self._current = None
        self._engine.cancel()
        if utterance.task is not None:
            utterance.task.cancel()
        self._finish(utterance, SpeechOutcome.INTERRUPTED)

    def _drop_pending(self, outcome: SpeechOutcome) -> None:
        pending, self._pending = self._pending, None
        if pending is not None:
            self._finish(pending, outcome)

    def _start_next(self) -> None:
        if self._current is None and self._pending is not None:
            utterance, self._pending = self._pending, None
            self._start(utterance)

    def _finish(self, utterance: _Utterance, outcome: SpeechOutcome) -> None:
        logger.debug(f"[VOICE][TTS] done outcome={outcome.value}")
        if utterance.on_done is not None:
            utterance.on_done(outcome)
