import asyncio

import pytest

from conftest import FakeSpeechEngine
from pocket_assistant.voice.audio_io import IMPORTANT_PLAYBACK_ROUTE, PLAYBACK_ROUTE, RECORDING_ROUTE, AudioRouter
from pocket_assistant.voice.schemas import SpeechOutcome, SpeechPriority, SpeechRequest
from pocket_assistant.voice.speech_output import DEFAULT_TIMINGS, SpeechOutput, SpeechTiming
from pocket_assistant.voice.tts import ConsoleSpeechEngine


def _normal(text: str) -> SpeechRequest:
    return SpeechRequest(text=text)


def test_speech_timing_estimates() -> None:
    normal = DEFAULT_TIMINGS[SpeechPriority.NORMAL]
    important = DEFAULT_TIMINGS[SpeechPriority.IMPORTANT]

    assert normal.estimate_ms("hi") == 1000
    assert normal.estimate_ms("x" * 20) == 1600
    assert important.estimate_ms("hi") == 1500
    assert important.estimate_ms("x" * 20) == 1800


def test_important_request_voice_parameters() -> None:
    request = SpeechRequest.important("Done", language="en-GB")
    assert request.priority == SpeechPriority.IMPORTANT
    assert request.pitch == 1.2
    assert request.rate == 0.65
    assert request.language == "en-GB"

    default = SpeechRequest(text="Done")
    assert (default.pitch, default.rate) == (1.1, 0.7)


@pytest.mark.asyncio
async def test_important_preempts_current_and_drops_pending() -> None:
    engine = FakeSpeechEngine(blocking=True)
    output = SpeechOutput(engine, AudioRouter())
    outcomes: dict[str, SpeechOutcome] = {}

    output.speak(_normal("first"), on_done=lambda o: outcomes.setdefault("first", o))
    output.speak(_normal("second"), on_done=lambda o: outcomes.setdefault("second", o))
    assert output.pending_request.text == "second"

    output.speak(SpeechRequest.important("urgent"), on_done=lambda o: outcomes.setdefault("urgent", o))

    assert outcomes == {"second": SpeechOutcome.REPLACED, "first": SpeechOutcome.INTERRUPTED}
    assert output.current_request.text == "urgent"
    assert output.pending_request is None
    assert engine.spoken == ["first", "urgent"]
    assert engine.cancels == 1

    output.stop()
    assert outcomes["urgent"] == SpeechOutcome.INTERRUPTED
    assert output.is_speaking is False


@pytest.mark.asyncio
async def test_normal_requests_queue_one_deep() -> None:
    engine = FakeSpeechEngine()
    output = SpeechOutput(engine, AudioRouter())
    outcomes: list[tuple[str, SpeechOutcome]] = []
    last_done = asyncio.get_running_loop().create_future()

    output.speak(_normal("a"), on_done=lambda o: outcomes.append(("a", o)))
    output.speak(_normal("b"), on_done=lambda o: outcomes.append(("b", o)))

    def _on_c(outcome: SpeechOutcome) -> None:
        outcomes.append(("c", outcome))
        last_done.set_result(outcome)

    output.speak(_normal("c"), on_done=_on_c)
    await asyncio.wait_for(last_done, timeout=1)

    assert outcomes == [
        ("b", SpeechOutcome.REPLACED),
        ("a", SpeechOutcome.COMPLETED),
        ("c", SpeechOutcome.COMPLETED),
    ]
    assert engine.spoken == ["a", "c"]
    assert output.is_speaking is False


@pytest.mark.asyncio
async def test_route_is_applied_before_every_utterance() -> None:
    engine = FakeSpeechEngine()
    router = AudioRouter()
    output = SpeechOutput(engine, router)

    done = asyncio.get_running_loop().create_future()
    output.speak(_normal("one"), on_done=done.set_result)
    await done
    assert router.current == PLAYBACK_ROUTE

    # Recording switches the shared route in between.
    router.apply(RECORDING_ROUTE)

    done = asyncio.get_running_loop().create_future()
    output.speak(SpeechRequest.important("two"), on_done=done.set_result)
    assert router.current == IMPORTANT_PLAYBACK_ROUTE
    assert router.current.stays_active_in_background is True
    await done
    assert router.applied_count == 3


@pytest.mark.asyncio
async def test_engine_without_completion_falls_back_to_timer(capsys) -> None:
    engine = ConsoleSpeechEngine()
    output = SpeechOutput(engine, AudioRouter(), timings={SpeechPriority.NORMAL: SpeechTiming(per_char_ms=1, min_ms=20)})

    done = asyncio.get_running_loop().create_future()
    output.speak(_normal("hello"), on_done=done.set_result)
    assert output.is_speaking is True

    outcome = await asyncio.wait_for(done, timeout=1)
    assert outcome == SpeechOutcome.COMPLETED
    assert engine.spoken == ["hello"]
    assert "[Assistant] hello" in capsys.readouterr().out


@pytest.mark.asyncio
async def test_engine_error_reports_failed() -> None:
    class BrokenEngine:
        def utter(self, request):
            raise RuntimeError("no voice")

        def cancel(self) -> None:
            pass

    output = SpeechOutput(BrokenEngine(), AudioRouter())
    outcomes: list[SpeechOutcome] = []

    output.speak(_normal("hello"), on_done=outcomes.append)

    assert outcomes == [SpeechOutcome.FAILED]
    assert output.is_speaking is False


@pytest.mark.asyncio
async def test_stop_is_idempotent() -> None:
    output = SpeechOutput(FakeSpeechEngine(blocking=True), AudioRouter())
    outcomes: list[SpeechOutcome] = []

    output.stop()
    output.speak(_normal("hello"), on_done=outcomes.append)
    output.stop()
    output.stop()

    assert outcomes == [SpeechOutcome.INTERRUPTED]
    assert output.is_speaking is False
