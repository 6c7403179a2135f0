"""State machine scenarios with capture, input and vision replaced by stubs.

Cycles are driven by awaiting ``run_cycle`` directly; the scheduler started by
``start`` uses a long interval so its ticks never interleave with the test.
"""
from __future__ import annotations

import asyncio
import json
import threading

import pytest
from PIL import Image

from pilot_agent.context import ButtonPosition, ScreenKind
from pilot_agent.solver import QuizSolver, SolverError
from pilot_agent.state import QuizState
from pilot_agent.video import QUIZ_DETECTED, TIMER_COMPLETED
from pilot_os.capture import CaptureError, CaptureResult, CaptureValidation
from pilot_os.config import SolverConfig, VideoConfig
from pilot_vision.coords import PercentPoint
from pilot_vision.signature import signature_of

SLOW_INTERVAL_MS = 60_000

QUIZ_CLASSIFICATION = {
    "screenType": "quiz",
    "confidence": 0.95,
    "quiz": {
        "question": "2 + 2 = ?",
        "quizType": "multipleChoice",
        "options": [
            {"letter": "A", "text": "3", "xPercent": 20, "yPercent": 40},
            {"letter": "B", "text": "4", "xPercent": 20, "yPercent": 50},
        ],
        "correctAnswer": "B",
        "explanation": "arithmetic",
    },
    "buttons": {"submit": {"exists": True, "text": "Submit", "xPercent": 50, "yPercent": 90}},
}


class ScriptedBackend:
    def __init__(self, *responses, provider: str = "openrouter") -> None:
        self.provider = provider
        self.responses = list(responses)

    def analyze(self, png_bytes: bytes, prompt: str) -> str:
        if not self.responses:
            return "{}"
        item = self.responses.pop(0)
        if isinstance(item, Exception):
            raise item
        return json.dumps(item)


class BlockingBackend:
    provider = "openrouter"

    def __init__(self, response) -> None:
        self.response = response
        self.entered = threading.Event()
        self.release = threading.Event()

    def analyze(self, png_bytes: bytes, prompt: str) -> str:
        self.entered.set()
        self.release.wait(5)
        return json.dumps(self.response)


class RecordingInput:
    def __init__(self, available: bool = True) -> None:
        self.available = available
        self.calls = []

    def check_availability(self):
        if self.available:
            return True, "stub", None
        return False, "xdotool", "xdotool not installed"

    def move_to(self, x: int, y: int) -> None:
        self.calls.append(("move_to", x, y))

    def click(self) -> None:
        self.calls.append(("click",))

    def move_relative(self, dx: int, dy: int) -> None:
        self.calls.append(("move_relative", dx, dy))

    def scroll(self, direction: str) -> None:
        self.calls.append(("scroll", direction))

    def type_text(self, text: str) -> None:
        self.calls.append(("type_text", text))

    def moves(self):
        return [call[1:] for call in self.calls if call[0] == "move_to"]


class StaticCapture:
    """Returns the same frame until ``png`` is replaced; raises queued errors first."""

    def __init__(self, *errors: Exception) -> None:
        self.errors = list(errors)
        self.png = bytes([1]) * 5000

    def capture(self) -> CaptureResult:
        if self.errors:
            raise self.errors.pop(0)
        return CaptureResult(
            image=Image.new("RGB", (4, 4)),
            png_bytes=self.png,
            width=1000,
            height=800,
            validation=CaptureValidation(100.0, 10.0, (1000, 800)),
        )


def fast_config(tmp_path, **overrides) -> SolverConfig:
    values = dict(
        click_delay_s=0,
        post_action_delay_s=0,
        completion_delay_s=0,
        event_log=False,
        memory_dir=tmp_path / "memory",
        logs_dir=tmp_path / "logs",
    )
    values.update(overrides)
    return SolverConfig(**values)


def make_solver(tmp_path, backend, capture=None, inputs=None, **overrides):
    capture = capture or StaticCapture()
    inputs = inputs or RecordingInput()
    solver = QuizSolver(capture, inputs, backend, config=fast_config(tmp_path, **overrides))
    events = []
    solver.channel.subscribe(events.append)
    return solver, capture, inputs, events


async def drive(solver: QuizSolver, cycles: int):
    states = []
    for _ in range(cycles):
        await solver.run_cycle()
        states.append(solver.state.value)
    return states


async def shutdown(solver: QuizSolver) -> None:
    if solver.is_active():
        solver.stop()
    await asyncio.sleep(0)


@pytest.mark.asyncio
async def test_classify_answer_and_submit_from_cached_positions(tmp_path) -> None:
    solver, _, inputs, events = make_solver(tmp_path, ScriptedBackend(QUIZ_CLASSIFICATION))

    assert (await solver.start(SLOW_INTERVAL_MS)).success
    states = await drive(solver, 4)

    assert states == ["Classifying", "Answering", "ClickingSubmit", "WaitingForChange"]
    assert inputs.moves() == [(200, 400), (500, 720)]
    stats = solver.get_stats()
    assert stats.total_answered == 1
    assert stats.ai_calls == 1
    assert stats.cache_hits == 1
    kinds = [event.kind for event in events]
    assert kinds[0] == "started"
    assert "classified" in kinds and "layout-learned" in kinds
    assert solver.get_context()["questions_answered"] == 1
    await shutdown(solver)


@pytest.mark.asyncio
async def test_new_question_is_answered_from_quick_check(tmp_path) -> None:
    quick = {"questionChanged": True, "newQuestion": "3 + 3 = ?", "correctAnswer": "A"}
    solver, capture, inputs, _ = make_solver(tmp_path, ScriptedBackend(QUIZ_CLASSIFICATION, quick))

    await solver.start(SLOW_INTERVAL_MS)
    await drive(solver, 4)
    capture.png = bytes([2]) * 5000
    states = await drive(solver, 2)

    assert states == ["Answering", "ClickingSubmit"]
    assert inputs.moves()[-1] == (200, 320)
    assert solver.get_stats().total_answered == 2
    assert solver.get_stats().ai_calls == 2
    await shutdown(solver)


@pytest.mark.asyncio
async def test_unchanged_screen_triggers_stuck_recovery(tmp_path) -> None:
    backend = ScriptedBackend()
    solver, capture, inputs, _ = make_solver(tmp_path, backend)

    await solver.start(SLOW_INTERVAL_MS)
    solver._cache.context.kind = ScreenKind.QUIZ
    solver._tracker.update(signature_of(capture.png))
    states = await drive(solver, 4)

    assert states == ["Scanning", "Scanning", "StuckRecovery", "LearningLayout"]
    assert ("scroll", "down") in inputs.calls
    assert solver.get_stats().stuck_recoveries == 1
    assert solver.get_stats().ai_calls == 0
    await shutdown(solver)


@pytest.mark.asyncio
async def test_result_arriving_after_stop_is_discarded(tmp_path) -> None:
    backend = BlockingBackend(QUIZ_CLASSIFICATION)
    solver, _, inputs, events = make_solver(tmp_path, backend)

    await solver.start(SLOW_INTERVAL_MS)
    await drive(solver, 1)
    in_flight = asyncio.create_task(solver.run_cycle())
    assert await asyncio.to_thread(backend.entered.wait, 5)

    solver.stop()
    backend.release.set()
    await in_flight

    kinds = [event.kind for event in events]
    assert "classified" not in kinds
    assert kinds[-1] == "stopped"
    assert solver.state is QuizState.IDLE
    assert solver.get_context()["kind"] == "none"
    assert inputs.moves() == []


@pytest.mark.asyncio
async def test_read_only_provider_reports_answer_and_stops(tmp_path) -> None:
    backend = ScriptedBackend(QUIZ_CLASSIFICATION, provider="anthropic")
    solver, _, inputs, events = make_solver(tmp_path, backend)

    assert not solver.automation_enabled
    await solver.start(SLOW_INTERVAL_MS)
    await drive(solver, 3)

    assert not solver.is_active()
    assert solver.state is QuizState.IDLE
    assert solver.get_stats().total_answered == 1
    result = next(event for event in events if event.kind == "answer-result")
    assert result.data["answer"] == "B"
    assert inputs.calls == []
    await shutdown(solver)


@pytest.mark.asyncio
async def test_consecutive_capture_failures_stop_the_run(tmp_path) -> None:
    capture = StaticCapture(*(CaptureError("black frame") for _ in range(5)))
    solver, _, _, events = make_solver(tmp_path, ScriptedBackend(), capture=capture, max_consecutive_errors=3)

    await solver.start(SLOW_INTERVAL_MS)
    await drive(solver, 3)

    kinds = [event.kind for event in events]
    assert kinds.count("error") == 3
    assert "fatal" in kinds
    assert not solver.is_active()
    await shutdown(solver)


@pytest.mark.asyncio
async def test_unexpected_error_moves_to_error_then_scanning(tmp_path) -> None:
    capture = StaticCapture(RuntimeError("boom"))
    solver, _, _, events = make_solver(tmp_path, ScriptedBackend(), capture=capture)

    await solver.start(SLOW_INTERVAL_MS)
    states = await drive(solver, 2)

    assert states == ["Error", "Scanning"]
    assert any(event.kind == "error" and event.data["message"] == "boom" for event in events)
    assert solver.is_active()
    await shutdown(solver)


@pytest.mark.asyncio
async def test_classification_failure_returns_to_scanning(tmp_path) -> None:
    solver, _, _, events = make_solver(tmp_path, ScriptedBackend(ConnectionError("offline")))

    await solver.start(SLOW_INTERVAL_MS)
    states = await drive(solver, 2)

    assert states == ["Classifying", "Scanning"]
    assert any(event.data.get("source") == "classification" for event in events)
    await shutdown(solver)


@pytest.mark.asyncio
async def test_video_wait_resumes_scanning_when_timer_ends(tmp_path) -> None:
    video = {"screenType": "video", "video": {"isPlaying": True, "timeRemaining": 0.02}}
    pacing = VideoConfig(poll_interval_s=0.01, check_interval_s=100, jiggle_interval_s=100, min_wait_s=100, end_buffer_s=0)
    solver, _, _, events = make_solver(tmp_path, ScriptedBackend(video), video=pacing)

    await solver.start(SLOW_INTERVAL_MS)
    states = await drive(solver, 2)
    assert states == ["Classifying", "WaitingForVideo"]

    await solver._video_task

    kinds = [event.kind for event in events]
    assert "video-wait" in kinds
    complete = kinds.index("video-complete")
    assert events[complete].data["reason"] == TIMER_COMPLETED
    assert events[complete + 1].kind == "state-change"
    assert events[complete + 1].state == "Scanning"
    assert solver._scheduler_task is not None
    await shutdown(solver)


@pytest.mark.asyncio
async def test_start_and_stop_guards(tmp_path) -> None:
    solver, _, _, _ = make_solver(tmp_path, ScriptedBackend(), inputs=RecordingInput(available=False))

    result = await solver.start(SLOW_INTERVAL_MS)
    assert not result.success
    assert result.error == "xdotool not installed"
    assert not solver.is_active()

    solver._input.available = True
    with pytest.raises(SolverError):
        await solver.start(0)
    assert (await solver.start(SLOW_INTERVAL_MS)).success
    assert (await solver.start(SLOW_INTERVAL_MS)).error == "Already active"
    assert solver.stop().success
    assert solver.stop().error == "Not active"
    await asyncio.sleep(0)


class CountingCapture(StaticCapture):
    def __init__(self) -> None:
        super().__init__()
        self.calls = 0

    def capture(self) -> CaptureResult:
        self.calls += 1
        return super().capture()


async def start_in(solver: QuizSolver, state: QuizState) -> None:
    await solver.start(SLOW_INTERVAL_MS)
    solver._state = state


@pytest.mark.asyncio
async def test_overlapping_cycles_are_dropped(tmp_path) -> None:
    capture = CountingCapture()
    solver, _, _, _ = make_solver(tmp_path, ScriptedBackend(), capture=capture)

    await solver.start(SLOW_INTERVAL_MS)
    await asyncio.gather(*(solver.run_cycle() for _ in range(3)))

    assert capture.calls == 1
    assert solver.state is QuizState.CLASSIFYING
    await shutdown(solver)


@pytest.mark.asyncio
async def test_quiz_continue_button_is_used_as_next(tmp_path) -> None:
    classification = {
        "screenType": "quiz",
        "quiz": {
            "options": [{"letter": "A", "xPercent": 20, "yPercent": 40}],
            "correctAnswer": "A",
        },
        "buttons": {"continue": {"exists": True, "text": "Continue", "xPercent": 80, "yPercent": 90}},
    }
    solver, _, inputs, _ = make_solver(tmp_path, ScriptedBackend(classification))

    await solver.start(SLOW_INTERVAL_MS)
    states = await drive(solver, 4)

    assert states == ["Classifying", "Answering", "ClickingNext", "WaitingForChange"]
    assert inputs.moves() == [(200, 320), (800, 720)]
    await shutdown(solver)


@pytest.mark.asyncio
async def test_static_quiz_without_answer_escalates_to_recovery(tmp_path) -> None:
    classification = {
        "screenType": "quiz",
        "quiz": {"options": [{"letter": "A", "xPercent": 20, "yPercent": 40}]},
    }
    solver, _, _, _ = make_solver(tmp_path, ScriptedBackend(classification))

    await solver.start(SLOW_INTERVAL_MS)
    states = await drive(solver, 5)

    assert states == ["Classifying", "Answering", "Classifying", "StuckRecovery", "LearningLayout"]
    assert solver.get_stats().ai_calls == 1
    await shutdown(solver)


@pytest.mark.asyncio
async def test_learning_layout_answers_flagged_option(tmp_path) -> None:
    layout = {
        "isQuiz": True,
        "quizType": "multipleChoice",
        "options": [
            {"letter": "A", "xPercent": 15, "yPercent": 40},
            {"letter": "B", "xPercent": 15, "yPercent": 50, "isCorrect": True},
        ],
        "buttons": {"submit": {"exists": True, "xPercent": 50, "yPercent": 90}},
    }
    solver, _, inputs, events = make_solver(tmp_path, ScriptedBackend(layout))

    await start_in(solver, QuizState.LEARNING_LAYOUT)
    states = await drive(solver, 1)

    assert states == ["ClickingSubmit"]
    assert inputs.moves() == [(150, 400)]
    stats = solver.get_stats()
    assert (stats.cache_misses, stats.total_answered) == (1, 1)
    assert any(event.kind == "quiz-detected" and event.data.get("option_count") == 2 for event in events)
    await shutdown(solver)


@pytest.mark.asyncio
async def test_learning_layout_types_into_text_field(tmp_path) -> None:
    layout = {
        "isQuiz": True,
        "quizType": "textInput",
        "correctAnswer": "Paris",
        "textInput": {"exists": True, "xPercent": 50, "yPercent": 60},
    }
    solver, _, inputs, _ = make_solver(tmp_path, ScriptedBackend(layout))

    await start_in(solver, QuizState.LEARNING_LAYOUT)
    states = await drive(solver, 1)

    assert states == ["WaitingForChange"]
    assert inputs.moves() == [(500, 480)]
    assert ("type_text", "Paris") in inputs.calls
    assert solver.get_stats().total_answered == 1
    await shutdown(solver)


@pytest.mark.asyncio
async def test_learning_layout_unresolved_answer_drops_pending_and_scrolls(tmp_path) -> None:
    layout = {
        "isQuiz": True,
        "options": [{"letter": "A", "xPercent": 15, "yPercent": 40}],
        "correctAnswer": "Z",
        "scroll": {"needed": True, "direction": "up"},
    }
    solver, _, inputs, _ = make_solver(tmp_path, ScriptedBackend(layout))

    await start_in(solver, QuizState.LEARNING_LAYOUT)
    assert await drive(solver, 1) == ["Scrolling"]
    assert solver.get_context()["pending_actions"] is None

    assert await drive(solver, 1) == ["Scanning"]
    assert ("scroll", "up") in inputs.calls
    await shutdown(solver)


@pytest.mark.asyncio
async def test_learning_layout_non_quiz_pages(tmp_path) -> None:
    solver, _, _, events = make_solver(tmp_path, ScriptedBackend({"isQuiz": False}, {"isQuiz": False, "isVideo": True}))

    await start_in(solver, QuizState.LEARNING_LAYOUT)
    assert await drive(solver, 1) == ["Scanning"]
    assert any(event.kind == "no-quiz" for event in events)

    solver._state = QuizState.LEARNING_LAYOUT
    assert await drive(solver, 1) == ["WaitingForVideo"]
    wait = next(event for event in events if event.kind == "video-wait")
    assert wait.data["seconds"] == solver._config.video.default_duration_s
    await shutdown(solver)


@pytest.mark.asyncio
async def test_clicking_finish_uses_revalidated_position(tmp_path) -> None:
    solver, _, inputs, events = make_solver(
        tmp_path, ScriptedBackend({"found": True, "xPercent": 82, "yPercent": 93})
    )

    await start_in(solver, QuizState.CLICKING_FINISH)
    solver._cache.context.kind = ScreenKind.QUIZ
    solver._cache.context.learned_positions.finish_button = ButtonPosition(PercentPoint(80, 95), "Finish")
    solver._cache.context.questions_answered = 4
    states = await drive(solver, 2)

    assert states == ["QuizCompleted", "Scanning"]
    assert inputs.moves() == [(820, 744)]
    assert solver.get_stats().ai_calls == 1
    completed = next(event for event in events if event.kind == "quiz-completed")
    assert completed.data["questions_answered"] == 4
    context = solver.get_context()
    assert context["kind"] == "none"
    assert context["learned_positions"]["finish_button"] is None
    assert solver._tracker.previous is None
    await shutdown(solver)


@pytest.mark.asyncio
async def test_stuck_recovery_clicks_cached_submit(tmp_path) -> None:
    solver, _, inputs, _ = make_solver(tmp_path, ScriptedBackend())

    await start_in(solver, QuizState.STUCK_RECOVERY)
    solver._cache.context.learned_positions.submit_button = ButtonPosition(PercentPoint(50, 90), "Submit")
    states = await drive(solver, 1)

    assert states == ["WaitingForChange"]
    assert inputs.moves() == [(500, 720)]
    assert solver.get_stats().stuck_recoveries == 1
    assert solver._tracker.unchanged_streak == 0
    await shutdown(solver)


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "quick, expected",
    [
        ({"quizEnded": True, "buttonsVisible": {"finish": True}}, "ClickingFinish"),
        ({"quizEnded": True}, "QuizCompleted"),
        ({"buttonsVisible": {"finish": True}}, "ClickingFinish"),
        ({"buttonsVisible": {"submit": True}}, "ClickingSubmit"),
        ({"buttonsVisible": {"next": True}}, "ClickingNext"),
        ({"isVideo": True}, "Scanning"),
        ({}, "Scanning"),
    ],
)
async def test_waiting_for_change_routes_quick_check(tmp_path, quick, expected) -> None:
    solver, _, _, _ = make_solver(tmp_path, ScriptedBackend(quick))

    await start_in(solver, QuizState.WAITING_FOR_CHANGE)

    assert await drive(solver, 1) == [expected]
    await shutdown(solver)


@pytest.mark.asyncio
async def test_waiting_for_change_clicks_continue_watching(tmp_path) -> None:
    quick = {"buttonsVisible": {"continueWatching": True}, "continueButton": {"xPercent": 50, "yPercent": 50}}
    solver, _, inputs, events = make_solver(tmp_path, ScriptedBackend(quick))

    await start_in(solver, QuizState.WAITING_FOR_CHANGE)

    assert await drive(solver, 1) == ["WaitingForChange"]
    assert inputs.moves() == [(500, 400)]
    assert any(event.kind == "clicking-continue" for event in events)
    await shutdown(solver)


@pytest.mark.asyncio
async def test_instructions_screen_clicks_start_button(tmp_path) -> None:
    instructions = {
        "screenType": "instructions",
        "actionButtons": {"startQuiz": {"exists": True, "xPercent": 50, "yPercent": 70}},
    }
    solver, _, inputs, _ = make_solver(tmp_path, ScriptedBackend(instructions))

    await solver.start(SLOW_INTERVAL_MS)

    assert await drive(solver, 2) == ["Classifying", "Scanning"]
    assert inputs.moves() == [(500, 560)]
    await shutdown(solver)


@pytest.mark.asyncio
async def test_instructions_without_button_waits(tmp_path) -> None:
    solver, _, inputs, events = make_solver(tmp_path, ScriptedBackend({"screenType": "instructions"}))

    await solver.start(SLOW_INTERVAL_MS)

    assert await drive(solver, 2) == ["Classifying", "Classifying"]
    assert inputs.moves() == []
    assert any(event.kind == "waiting" and "instructions" in event.data["reason"] for event in events)
    await shutdown(solver)


@pytest.mark.asyncio
async def test_failed_video_wait_resumes_scanning(tmp_path) -> None:
    video = {"screenType": "video", "video": {"isPlaying": True, "timeRemaining": 30}}
    solver, _, _, events = make_solver(tmp_path, ScriptedBackend(video))

    async def broken_wait(seconds, is_alive, emit):
        raise OSError("No space left on device")

    solver._video.run = broken_wait
    await solver.start(SLOW_INTERVAL_MS)
    assert await drive(solver, 2) == ["Classifying", "WaitingForVideo"]

    await solver._video_task

    assert solver.is_active()
    assert solver.state is QuizState.SCANNING
    assert solver._scheduler_task is not None
    assert any(event.kind == "error" and event.data.get("source") == "video" for event in events)
    assert solver._consecutive_errors == 1
    await shutdown(solver)


@pytest.mark.asyncio
async def test_unexpected_capture_error_during_video_counts_as_still_playing(tmp_path) -> None:
    video = {"screenType": "video", "video": {"isPlaying": True, "timeRemaining": 30}}
    pacing = VideoConfig(poll_interval_s=0.01, check_interval_s=0, jiggle_interval_s=100, min_wait_s=0, end_buffer_s=0)
    solver, capture, _, events = make_solver(
        tmp_path, ScriptedBackend(video, {"hasQuizNow": True}), video=pacing
    )

    await solver.start(SLOW_INTERVAL_MS)
    await drive(solver, 1)
    await solver.run_cycle()
    capture.errors.append(OSError("No space left on device"))

    await solver._video_task

    complete = next(event for event in events if event.kind == "video-complete")
    assert complete.data["reason"] == QUIZ_DETECTED
    assert solver.is_active()
    await shutdown(solver)
