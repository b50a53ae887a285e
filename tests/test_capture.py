import asyncio

import pytest

from conftest import FakeRecorder
from pocket_assistant.voice.audio_io import RECORDING_ROUTE, AudioRouter
from pocket_assistant.voice.capture import AudioCaptureSession
from pocket_assistant.voice.errors import CaptureFailure, DeviceBusy, NoActiveSession, PermissionDenied
from pocket_assistant.voice.permissions import StaticPermissionProvider
from pocket_assistant.voice.schemas import SessionHandle
from pocket_assistant.voice.vad import LevelAnalysisDetector, TimerStubDetector


class PromptingPermissions:
    """Denies the silent check, grants when prompted."""

    def __init__(self) -> None:
        self.checks = 0
        self.requests = 0

    async def check(self) -> bool:
        self.checks += 1
        return False

    async def request(self) -> bool:
        self.requests += 1
        return True


def _session(tmp_path, *, recorder=None, permissions=None, router=None) -> AudioCaptureSession:
    return AudioCaptureSession(
        recorder=recorder or FakeRecorder(),
        permissions=permissions or StaticPermissionProvider(),
        router=router or AudioRouter(),
        recordings_dir=tmp_path,
    )


def test_start_without_permission_raises(tmp_path) -> None:
    capture = _session(tmp_path)

    with pytest.raises(PermissionDenied):
        asyncio.run(capture.start())
    assert capture.is_active is False


def test_permission_is_requested_once(tmp_path) -> None:
    permissions = PromptingPermissions()
    capture = _session(tmp_path, permissions=permissions)

    async def _run():
        assert await capture.request_permission() is True
        assert await capture.request_permission() is True

    asyncio.run(_run())
    assert permissions.checks == 1
    assert permissions.requests == 1
    assert capture.permission_granted is True


def test_denied_permission_is_not_cached(tmp_path) -> None:
    permissions = StaticPermissionProvider(granted=False)
    capture = _session(tmp_path, permissions=permissions)

    async def _run():
        assert await capture.request_permission() is False
        assert await capture.request_permission() is False

    asyncio.run(_run())
    assert permissions.requests == 2


@pytest.mark.asyncio
async def test_second_start_is_device_busy(tmp_path) -> None:
    recorder = FakeRecorder()
    router = AudioRouter()
    capture = _session(tmp_path, recorder=recorder, router=router)
    await capture.request_permission()

    handle = await capture.start()
    assert router.current == RECORDING_ROUTE

    with pytest.raises(DeviceBusy):
        await capture.start()
    assert recorder.started == 1

    await capture.stop(handle)


@pytest.mark.asyncio
async def test_stop_reports_duration_and_size(tmp_path) -> None:
    capture = _session(tmp_path, recorder=FakeRecorder(samples=8000))
    await capture.request_permission()

    handle = await capture.start()
    assert capture.current_level() == 0.0
    result = await capture.stop(handle)

    assert result.audio_handle == tmp_path / f"recording_{handle.id}.wav"
    assert result.audio_handle.exists()
    assert result.duration_ms == 500
    # 44-byte header plus 16-bit mono samples.
    assert result.size_bytes == 44 + 8000 * 2
    assert capture.is_active is False
    assert capture.current_level() is None

    capture.discard(result)
    assert not result.audio_handle.exists()
    capture.discard(result)


@pytest.mark.asyncio
async def test_stop_without_active_recording(tmp_path) -> None:
    capture = _session(tmp_path)
    await capture.request_permission()
    handle = await capture.start()
    await capture.stop(handle)

    with pytest.raises(NoActiveSession):
        await capture.stop(handle)

    stale = SessionHandle(id="other", started_at=handle.started_at)
    handle = await capture.start()
    with pytest.raises(NoActiveSession):
        await capture.stop(stale)
    await capture.abort()
    assert capture.is_active is False


@pytest.mark.asyncio
async def test_recorder_failure_frees_the_device(tmp_path) -> None:
    capture = _session(tmp_path, recorder=FakeRecorder(start_error=RuntimeError("No input device")))
    await capture.request_permission()

    with pytest.raises(CaptureFailure, match="No input device"):
        await capture.start()
    assert capture.is_active is False


@pytest.mark.asyncio
async def test_backend_specific_errors_become_capture_failures(tmp_path) -> None:
    class PortAudioError(Exception):
        pass

    recorder = FakeRecorder(
        start_error=PortAudioError("Invalid sample rate"),
        stop_error=PortAudioError("Stream is stopped"),
    )
    capture = _session(tmp_path, recorder=recorder)
    await capture.request_permission()

    with pytest.raises(CaptureFailure, match="Recording failed: Invalid sample rate"):
        await capture.start()
    assert capture.is_active is False

    handle = await capture.start()
    with pytest.raises(CaptureFailure, match="Failed to stop recording: Stream is stopped"):
        await capture.stop(handle)
    assert capture.is_active is False
    assert list(tmp_path.glob("*.wav")) == []


def test_timer_stub_detector() -> None:
    always = TimerStubDetector()
    assert all(always.is_voice_active(None) for _ in range(5))

    limited = TimerStubDetector(active_ticks=2)
    assert [limited.is_voice_active(0.0) for _ in range(4)] == [True, True, False, False]
    limited.reset()
    assert limited.is_voice_active(0.0) is True


def test_level_analysis_detector() -> None:
    detector = LevelAnalysisDetector(threshold=0.05)
    assert detector.is_voice_active(0.2) is True
    assert detector.is_voice_active(0.01) is False
    assert detector.is_voice_active(None) is False
