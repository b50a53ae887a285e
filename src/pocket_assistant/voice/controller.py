"""Voice interaction controller.

This module orchestrates one voice command at a time:
permission -> record -> stop -> transcribe -> dispatch -> speak -> idle

It is the only component with mutable cross-call state. A new run cannot
start while another one is anywhere between permission and idle; such calls
are rejected with DeviceBusy rather than queued.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Awaitable, Callable, Literal, Optional, Protocol, TypeVar

from pocket_assistant.api.client import ApiError
from pocket_assistant.api.schemas import AssistantResponse
from pocket_assistant.api.transcription import Transcriber
from pocket_assistant.intent.extractor import LocalExtractor
from pocket_assistant.intent.responses import describe_intent
from pocket_assistant.intent.schemas import CommandIntent
from pocket_assistant.voice.capture import AudioCaptureSession
from pocket_assistant.voice.errors import (
    CaptureFailure,
    DeviceBusy,
    DispatchFailure,
    FailureReason,
    NoActiveSession,
    PermissionDenied,
    PipelineCancelled,
    TranscriptionFailure,
    VoicePipelineError,
)
from pocket_assistant.voice.schemas import (
    TRANSITIONS,
    CaptureResult,
    PipelineFailure,
    PipelineResult,
    PipelineSuccess,
    RecordingSession,
    SessionHandle,
    SessionState,
    SpeechOutcome,
    SpeechRequest,
)
from pocket_assistant.voice.speakable import to_speakable_text
from pocket_assistant.voice.speech_output import SpeechOutput
from pocket_assistant.voice.vad import TimerStubDetector, VoiceActivityDetector

logger = logging.getLogger(__name__)

T = TypeVar("T")

StateCallback = Callable[[SessionState, SessionState], None]
TranscriptionCallback = Callable[[str], None]
ErrorCallback = Callable[[str], None]

DISPATCH_ERROR_MESSAGE = "Failed to process your command. Please try again."


class Dispatcher(Protocol):
    async def dispatch(self, text: str) -> AssistantResponse: ...


class CancellationToken:
    """Cancels an in-flight pipeline run at its next suspension point."""

    def __init__(self) -> None:
        self._event = asyncio.Event()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def cancel(self) -> None:
        self._event.set()

    async def wait(self) -> None:
        await self._event.wait()


@dataclass(frozen=True)
class ControllerConfig:
    silence_timeout_ms: int = 2000
    tick_ms: int = 1000
    language: str = "en-US"
    context: str = "voice_command"
    dispatch_source: Literal["remote", "local"] = "remote"
    keep_recordings: bool = False
    tts_max_chars: int = 300


class VoiceInteractionController:
    def __init__(
        self,
        *,
        capture: AudioCaptureSession,
        transcriber: Transcriber,
        speech: SpeechOutput,
        dispatcher: Dispatcher | None = None,
        extractor: LocalExtractor | None = None,
        detector: VoiceActivityDetector | None = None,
        config: ControllerConfig | None = None,
        on_transcription: Optional[TranscriptionCallback] = None,
        on_error: Optional[ErrorCallback] = None,
        on_state_change: Optional[StateCallback] = None,
    ) -> None:
        self._capture = capture
        self._transcriber = transcriber
        self._speech = speech
        self._dispatcher = dispatcher
        self._extractor = extractor or LocalExtractor()
        self._detector = detector or TimerStubDetector()
        self._config = config or ControllerConfig()
        self._on_transcription = on_transcription
        self._on_error = on_error
        self._on_state_change = on_state_change

        self._state = SessionState.IDLE
        self._session: RecordingSession | None = None
        self._handle: SessionHandle | None = None
        self._token: CancellationToken | None = None
        self._result: asyncio.Future[PipelineResult] | None = None
        self._stop_event = asyncio.Event()
        self._stop_trigger: str | None = None
        self._silence_timer: asyncio.TimerHandle | None = None
        self._tick_task: asyncio.Task | None = None
        self._drive_task: asyncio.Task | None = None

    @property
    def config(self) -> ControllerConfig:
        return self._config

    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def session(self) -> RecordingSession | None:
        return self._session

    @property
    def is_busy(self) -> bool:
        return self._session is not None

    async def start(self, cancel_token: CancellationToken | None = None) -> RecordingSession:
        """
        Request permission and start recording.

        Returns once recording is under way; the rest of the pipeline runs in
        the background and is observed through ``wait`` or the callbacks.

        Raises:
            DeviceBusy: Another run has not returned to idle yet.
            PermissionDenied: Microphone access was refused.
            CaptureFailure: The recording device could not start.
            PipelineCancelled: The token was cancelled while starting.
        """
        if self._session is not None:
            raise DeviceBusy()

        loop = asyncio.get_running_loop()
        session = RecordingSession()
        self._session = session
        self._token = cancel_token or CancellationToken()
        self._result = loop.create_future()
        self._stop_event = asyncio.Event()
        self._stop_trigger = None
        self._transition(SessionState.REQUESTING_PERMISSION)

        # Nothing has been heard yet, so failures here are never spoken.
        try:
            granted = await self._guard(self._capture.request_permission())
            if not granted:
                raise PermissionDenied()
            self._handle = await self._capture.start()
            if self._token.cancelled:
                raise PipelineCancelled()
        except VoicePipelineError as e:
            await self._fail(e, speak=False)
            raise
        except Exception as e:
            logger.error(f"[VOICE] unexpected failure while starting: {e}", exc_info=True)
            error = CaptureFailure(f"Recording failed: {e}")
            await self._fail(error, speak=False)
            raise error from e

        session.started_at = self._handle.started_at
        session.touch()
        self._transition(SessionState.RECORDING)
        self._detector.reset()
        self._arm_silence_timer()
        self._tick_task = loop.create_task(self._tick_loop())
        self._drive_task = loop.create_task(self._drive(session))
        return session

    def stop(self) -> bool:
        """Manual stop. Returns False when there is no recording to stop."""
        if self._state is not SessionState.RECORDING or self._stop_event.is_set():
            return False
        self._request_stop("manual")
        return True

    def cancel(self) -> bool:
        """Abort the current run at its next suspension point."""
        if self._session is None or self._token is None:
            return False
        self._token.cancel()
        return True

    async def wait(self) -> PipelineResult:
        """Wait for the current (or most recent) run to finish."""
        if self._result is None:
            raise NoActiveSession("No voice command has been started")
        return await asyncio.shield(self._result)

    async def run(self, cancel_token: CancellationToken | None = None) -> PipelineResult:
        """Start a run and wait for its result. Never raises pipeline errors."""
        try:
            await self.start(cancel_token)
        except DeviceBusy as e:
            return PipelineFailure(reason=e.reason, message=e.message)
        except VoicePipelineError as e:
            if self._result is not None and self._result.done():
                return self._result.result()
            return PipelineFailure(reason=e.reason, message=e.message)
        return await self.wait()

    async def _drive(self, session: RecordingSession) -> None:
        transcription: str | None = None
        capture_result: CaptureResult | None = None
        outcome: PipelineResult | None = None
        try:
            await self._guard(self._stop_event.wait())
            logger.info(f"[VOICE] stopping session={session.id} trigger={self._stop_trigger}")
            self._transition(SessionState.STOPPING)
            self._disarm_timers()

            if self._handle is None:
                raise NoActiveSession()
            capture_result = await self._guard(self._capture.stop(self._handle))
            session.audio_handle = capture_result.audio_handle
            session.duration_ms = capture_result.duration_ms
            session.size_bytes = capture_result.size_bytes

            self._transition(SessionState.TRANSCRIBING)
            transcription = await self._transcribe(capture_result)

            self._transition(SessionState.DISPATCHING)
            intent = self._extractor.extract(transcription)
            response = await self._dispatch(transcription, intent)

            speakable, dbg = to_speakable_text(response.response_text, max_chars=self._config.tts_max_chars)
            if speakable is None:
                logger.info(f"[VOICE][TTS] skipped reason={dbg.get('skip_reason')}")
                self._notify_transcription(transcription)
            else:
                self._transition(SessionState.SPEAKING)
                done = self._speak(SpeechRequest.important(speakable, language=self._config.language))
                self._notify_transcription(transcription)
                await self._guard(done)

            outcome = PipelineSuccess(
                session_id=session.id,
                transcription=transcription,
                intent=intent,
                response=response,
                duration_ms=capture_result.duration_ms,
            )
            self._transition(SessionState.IDLE)
        except VoicePipelineError as e:
            outcome = await self._fail(e, speak=e.reason is not FailureReason.CANCELLED, transcription=transcription)
        except Exception as e:
            logger.error(f"[VOICE] unexpected failure in state={self._state.value}: {e}", exc_info=True)
            outcome = await self._fail(self._error_for_state(str(e)), speak=True, transcription=transcription)
        finally:
            if capture_result is not None and not self._config.keep_recordings:
                self._capture.discard(capture_result)
            if outcome is None:
                outcome = self._force_idle(session, transcription)
            self._complete(outcome)

    async def _transcribe(self, capture_result: CaptureResult) -> str:
        try:
            result = await self._guard(
                self._transcriber.transcribe(
                    capture_result.audio_handle,
                    language=self._config.language,
                    context=self._config.context,
                )
            )
        except (ApiError, RuntimeError, OSError) as e:
            raise TranscriptionFailure(str(e)) from e

        text = (result.text or "").strip()
        if not text:
            raise TranscriptionFailure("No transcription received from server")
        logger.info(f"[VOICE][STT] text={text!r} confidence={result.confidence:.2f}")
        return text

    async def _dispatch(self, text: str, intent: CommandIntent) -> AssistantResponse:
        if self._config.dispatch_source == "local" or self._dispatcher is None:
            return AssistantResponse(response_text=describe_intent(intent), action=intent.action.value)

        try:
            return await self._guard(self._dispatcher.dispatch(text))
        except ApiError as e:
            raise DispatchFailure(f"AI processing failed: {e}") from e

    async def _fail(
        self,
        error: VoicePipelineError,
        *,
        speak: bool,
        transcription: str | None = None,
    ) -> PipelineFailure:
        session_id = self._session.id if self._session else None
        was_speaking = self._state is SessionState.SPEAKING
        self._disarm_timers()
        if self._capture.is_active:
            await self._capture.abort()
        if was_speaking:
            self._speech.stop()

        logger.warning(f"[VOICE] failed reason={error.reason.value} message={error.message}")
        self._transition(SessionState.FAILED)

        if speak:
            if error.reason is FailureReason.DISPATCH_FAILURE:
                text = DISPATCH_ERROR_MESSAGE
            else:
                text = f"Error: {error.message}. Please try again."
            done = self._speak(SpeechRequest.important(text, language=self._config.language))
            self._notify_error(error.message)
            await done
        else:
            self._notify_error(error.message)

        self._transition(SessionState.IDLE)
        outcome = PipelineFailure(
            reason=error.reason,
            message=error.message,
            session_id=session_id,
            transcription=transcription,
        )
        if self._drive_task is None or self._drive_task is not asyncio.current_task():
            # Failures while starting never reach _drive.
            self._complete(outcome)
        return outcome

    def _complete(self, outcome: PipelineResult) -> None:
        self._session = None
        self._handle = None
        self._token = None
        self._tick_task = None
        self._drive_task = None
        if self._result is not None and not self._result.done():
            self._result.set_result(outcome)

    def _force_idle(self, session: RecordingSession, transcription: str | None) -> PipelineFailure:
        """Last resort when failure handling itself broke: drop straight back to idle."""
        error = self._error_for_state("Voice command aborted")
        logger.error(f"[VOICE] run aborted in state={self._state.value}; resetting to idle")
        self._disarm_timers()
        self._state = SessionState.IDLE
        session.state = SessionState.IDLE
        return PipelineFailure(
            reason=error.reason,
            message=error.message,
            session_id=session.id,
            transcription=transcription,
        )

    def _error_for_state(self, message: str) -> VoicePipelineError:
        if self._state is SessionState.TRANSCRIBING:
            return TranscriptionFailure(message)
        if self._state in (SessionState.DISPATCHING, SessionState.SPEAKING):
            return DispatchFailure(message)
        return CaptureFailure(message)

    async def _guard(self, awaitable: Awaitable[T]) -> T:
        """Await ``awaitable`` unless the run's token is cancelled first."""
        token = self._token
        if token is None:
            return await awaitable
        if token.cancelled:
            if asyncio.iscoroutine(awaitable):
                awaitable.close()
            raise PipelineCancelled()

        task = asyncio.ensure_future(awaitable)
        waiter = asyncio.ensure_future(token.wait())
        try:
            done, _ = await asyncio.wait({task, waiter}, return_when=asyncio.FIRST_COMPLETED)
        except asyncio.CancelledError:
            task.cancel()
            raise
        finally:
            waiter.cancel()

        if task in done:
            return task.result()

        task.cancel()
        await asyncio.wait({task})
        raise PipelineCancelled()

    def _speak(self, request: SpeechRequest) -> asyncio.Future[SpeechOutcome]:
        done: asyncio.Future[SpeechOutcome] = asyncio.get_running_loop().create_future()

        def _on_done(outcome: SpeechOutcome) -> None:
            if not done.done():
                done.set_result(outcome)

        self._speech.speak(request, on_done=_on_done)
        return done

    def _request_stop(self, trigger: str) -> None:
        self._stop_trigger = trigger
        self._stop_event.set()

    def _arm_silence_timer(self) -> None:
        if self._silence_timer is not None:
            self._silence_timer.cancel()
        self._silence_timer = asyncio.get_running_loop().call_later(
            self._config.silence_timeout_ms / 1000,
            self._on_silence,
        )

    def _on_silence(self) -> None:
        self._silence_timer = None
        if self._state is SessionState.RECORDING and not self._stop_event.is_set():
            logger.info("[VOICE] auto-stopping recording due to silence")
            self._request_stop("silence")

    async def _tick_loop(self) -> None:
        interval = self._config.tick_ms / 1000
        while self._state is SessionState.RECORDING:
            await asyncio.sleep(interval)
            if self._state is not SessionState.RECORDING or self._stop_event.is_set():
                return
            if self._detector.is_voice_active(self._capture.current_level()):
                if self._session is not None:
                    self._session.touch()
                self._arm_silence_timer()

    def _disarm_timers(self) -> None:
        if self._silence_timer is not None:
            self._silence_timer.cancel()
            self._silence_timer = None
        if self._tick_task is not None and self._tick_task is not asyncio.current_task():
            self._tick_task.cancel()

    def _transition(self, new: SessionState) -> None:
        old = self._state
        if new not in TRANSITIONS[old]:
            raise RuntimeError(f"Illegal voice state transition {old.value} -> {new.value}")
        self._state = new
        if self._session is not None:
            self._session.state = new
        logger.info(f"[VOICE][STATE] {old.value} -> {new.value}")
        if self._on_state_change:
            self._observe("on_state_change", self._on_state_change, old, new)

    def _notify_transcription(self, text: str) -> None:
        if self._on_transcription:
            self._observe("on_transcription", self._on_transcription, text)

    def _notify_error(self, message: str) -> None:
        if self._on_error:
            self._observe("on_error", self._on_error, message)

    def _observe(self, name: str, callback: Callable[..., None], *args: object) -> None:
        # Observers never change the outcome of a run.
        try:
            callback(*args)
        except Exception as e:
            logger.error(f"[VOICE] {name} callback failed: {e}", exc_info=True)
