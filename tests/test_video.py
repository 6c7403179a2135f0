"""Video wait loop driven by a fake clock."""
from __future__ import annotations

import json

import pytest
from PIL import Image

from pilot_agent.actions import ActionExecutor
from pilot_agent.video import QUIZ_DETECTED, TIMER_COMPLETED, VIDEO_COMPLETED, VideoWaitMonitor
from pilot_os.capture import CaptureResult, CaptureValidation
from pilot_os.config import VideoConfig
from pilot_vision.analysis import VisualAnalysisAdapter


class FakeClock:
    def __init__(self) -> None:
        self.now = 0.0

    def __call__(self) -> float:
        return self.now

    async def sleep(self, seconds: float) -> None:
        self.now += seconds


class RepeatingBackend:
    provider = "openrouter"

    def __init__(self, response) -> None:
        self.response = response
        self.calls = 0

    def analyze(self, png_bytes: bytes, prompt: str) -> str:
        self.calls += 1
        if isinstance(self.response, Exception):
            raise self.response
        return json.dumps(self.response)


class StaticCapture:
    def capture(self) -> CaptureResult:
        return CaptureResult(
            image=Image.new("RGB", (4, 4)),
            png_bytes=b"png",
            width=1000,
            height=800,
            validation=CaptureValidation(100.0, 10.0, (1000, 800)),
        )


class RecordingInput:
    def __init__(self) -> None:
        self.calls = []

    def move_to(self, x: int, y: int) -> None:
        self.calls.append(("move_to", x, y))

    def click(self) -> None:
        self.calls.append(("click",))

    def move_relative(self, dx: int, dy: int) -> None:
        self.calls.append(("move_relative", dx, dy))


FAST = VideoConfig(poll_interval_s=1, check_interval_s=1, jiggle_interval_s=100, min_wait_s=0, end_buffer_s=0)


def _monitor(response, config: VideoConfig = FAST):
    clock = FakeClock()
    backend = RepeatingBackend(response)
    inputs = RecordingInput()
    monitor = VideoWaitMonitor(
        StaticCapture(),
        VisualAnalysisAdapter(backend),
        ActionExecutor(inputs, click_delay_s=0, clock=clock),
        config=config,
        post_action_delay_s=0.5,
        clock=clock,
        sleep=clock.sleep,
    )
    return monitor, backend, inputs, clock


class EventRecorder:
    def __init__(self) -> None:
        self.events = []

    def __call__(self, kind: str, **data) -> None:
        self.events.append((kind, data))


@pytest.mark.asyncio
async def test_timer_completes_with_jiggle_and_progress() -> None:
    monitor, backend, inputs, clock = _monitor({"videoPlaying": True, "timeRemaining": 4}, VideoConfig())
    emit = EventRecorder()

    reason = await monitor.run(10, lambda: True, emit)

    assert reason == TIMER_COMPLETED
    assert clock.now == 15
    assert backend.calls == 1
    assert [call[0] for call in inputs.calls] == ["move_relative"]
    assert emit.events == [("video-progress", {"time_remaining": 4.0, "check_count": 1})]


@pytest.mark.asyncio
async def test_quiz_on_screen_ends_wait() -> None:
    monitor, _, _, clock = _monitor({"screenType": "video", "hasQuizNow": True})

    assert await monitor.run(60, lambda: True, EventRecorder()) == QUIZ_DETECTED
    assert clock.now == 1


@pytest.mark.asyncio
async def test_continue_button_is_clicked_when_video_ends() -> None:
    monitor, _, inputs, clock = _monitor(
        {"videoEnded": True, "continueButton": {"xPercent": 50, "yPercent": 80}}
    )

    assert await monitor.run(60, lambda: True, EventRecorder()) == VIDEO_COMPLETED
    assert inputs.calls == [("move_to", 500, 640), ("click",)]
    assert clock.now == 1.5


@pytest.mark.asyncio
async def test_failed_checks_count_as_still_playing() -> None:
    monitor, backend, _, _ = _monitor(ConnectionError("offline"))

    assert await monitor.run(2, lambda: True, EventRecorder()) == TIMER_COMPLETED
    assert backend.calls == 2


@pytest.mark.asyncio
async def test_paused_video_gets_play_click() -> None:
    monitor, _, inputs, _ = _monitor({"videoPlaying": False, "playButton": {"xPercent": 50, "yPercent": 50}})

    assert await monitor.run(1, lambda: True, EventRecorder()) == TIMER_COMPLETED
    assert inputs.calls == [("move_to", 500, 400), ("click",)]


@pytest.mark.asyncio
async def test_stopped_run_returns_none() -> None:
    monitor, backend, _, _ = _monitor({"videoEnded": True})

    assert await monitor.run(60, lambda: False, EventRecorder()) is None
    assert backend.calls == 0


@pytest.mark.asyncio
async def test_unexpected_capture_error_counts_as_still_playing() -> None:
    class FullDiskCapture:
        def capture(self):
            raise OSError("No space left on device")

    monitor, backend, _, _ = _monitor({"videoEnded": True})
    monitor._capture = FullDiskCapture()

    assert await monitor.run(2, lambda: True, EventRecorder()) == TIMER_COMPLETED
    assert backend.calls == 0
