"""Quiz solving state machine.

One cycle = throttled jiggle -> capture -> signature compare -> dispatch to the
handler of the current state. A fixed-interval scheduler task spawns cycles;
a tick that fires while a cycle is still running is dropped. Every await is
followed by a liveness check so results that arrive after ``stop()`` (or after
a restart) are discarded instead of acted upon.

While a video plays the scheduler task is cancelled and the video wait monitor
drives the run; when it finishes the scheduler is restarted.
"""
from __future__ import annotations

import asyncio
import dataclasses
import logging
import time
from dataclasses import dataclass
from typing import Awaitable, Callable, Dict, Optional, Set

from pilot_os.capture import CaptureError, CaptureManager, CaptureResult
from pilot_os.config import SolverConfig, VisionConfig
from pilot_os.input_handler import AutomationError, InputHandler
from pilot_vision.analysis import VisualAnalysisAdapter
from pilot_vision.backends import AnalysisError, VisionBackend
from pilot_vision.coords import PercentPoint, percent_to_pixel
from pilot_vision.responses import ButtonSpot
from pilot_vision.signature import SignatureTracker, signature_of

from .actions import ActionExecutor
from .context import LayoutCache, PendingAnswer, QuizLayout, ScreenKind
from .events import EventLogWriter, StatusChannel, StatusEvent
from .memory import LayoutMemory
from .state import QuizState, Stats
from .validator import PositionValidator
from .video import VideoWaitMonitor

Logger = logging.Logger


class SolverError(RuntimeError):
    """Raised when the solver is driven in a way it cannot honour."""


@dataclass(slots=True)
class CommandResult:
    success: bool
    error: Optional[str] = None


@dataclass(slots=True)
class CycleFrame:
    """Everything a handler needs from the current cycle."""

    run: int
    capture: CaptureResult
    changed: bool

    @property
    def screen(self) -> tuple:
        return (self.capture.width, self.capture.height)


Handler = Callable[[CycleFrame], Awaitable[None]]


class QuizSolver:
    """Owns the state, context, stats and timers of one solving run at a time."""

    def __init__(
        self,
        capture: CaptureManager,
        input_handler: InputHandler,
        backend: VisionBackend,
        config: Optional[SolverConfig] = None,
        vision_config: Optional[VisionConfig] = None,
        memory: Optional[LayoutMemory] = None,
        channel: Optional[StatusChannel] = None,
        logger: Optional[Logger] = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._config = config or SolverConfig()
        vision_config = vision_config or VisionConfig()
        self._logger = logger or logging.getLogger(__name__)
        self._capture = capture
        self._input = input_handler
        self._memory = memory
        self.channel = channel or StatusChannel()

        provider = getattr(backend, "provider", vision_config.provider)
        automation_enabled = provider in vision_config.automation_safe_providers
        if not automation_enabled:
            self._logger.warning("Provider %s is not automation-safe; running read-only", provider)

        self._stats = Stats()
        self._cache = LayoutCache(memory, logger=self._logger.getChild("context"))
        self._tracker = SignatureTracker(logger=self._logger.getChild("signature"))
        self._analysis = VisualAnalysisAdapter(
            backend, self._config.language, self._stats, logger=self._logger.getChild("analysis")
        )
        self._actions = ActionExecutor(
            input_handler,
            automation_enabled=automation_enabled,
            click_delay_s=self._config.click_delay_s,
            jiggle_min_interval_s=self._config.jiggle_min_interval_s,
            logger=self._logger.getChild("actions"),
            clock=clock,
        )
        self._validator = PositionValidator(
            self._analysis, self._config.max_position_drift, logger=self._logger.getChild("validator")
        )
        self._video = VideoWaitMonitor(
            capture,
            self._analysis,
            self._actions,
            self._config.video,
            post_action_delay_s=self._config.post_action_delay_s,
            logger=self._logger.getChild("video"),
            clock=clock,
        )

        self._state = QuizState.IDLE
        self._previous_state = QuizState.IDLE
        self._active = False
        self._busy = False
        self._run = 0
        self._interval_s = self._config.interval_ms / 1000.0
        self._consecutive_errors = 0
        self._scheduler_task: Optional[asyncio.Task] = None
        self._video_task: Optional[asyncio.Task] = None
        self._cycle_tasks: Set[asyncio.Task] = set()
        self._unsubscribe_log: Optional[Callable[[], None]] = None

        self._handlers: Dict[QuizState, Handler] = {
            QuizState.SCANNING: self._handle_scanning,
            QuizState.CLASSIFYING: self._handle_classifying,
            QuizState.LEARNING_LAYOUT: self._handle_learning_layout,
            QuizState.ANSWERING: self._handle_answering,
            QuizState.WAITING_FOR_CHANGE: self._handle_waiting_for_change,
            QuizState.CLICKING_SUBMIT: self._handle_clicking_submit,
            QuizState.CLICKING_NEXT: self._handle_clicking_next,
            QuizState.CLICKING_FINISH: self._handle_clicking_finish,
            QuizState.QUIZ_COMPLETED: self._handle_quiz_completed,
            QuizState.SCROLLING: self._handle_scrolling,
            QuizState.STUCK_RECOVERY: self._handle_stuck_recovery,
        }

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------
    @property
    def state(self) -> QuizState:
        return self._state

    @property
    def previous_state(self) -> QuizState:
        return self._previous_state

    @property
    def automation_enabled(self) -> bool:
        return self._actions.automation_enabled

    def is_active(self) -> bool:
        return self._active

    def get_stats(self) -> Stats:
        return dataclasses.replace(self._stats)

    def get_context(self) -> dict:
        return self._cache.snapshot()

    async def start(self, interval_ms: Optional[int] = None) -> CommandResult:
        """Begin a fresh run; must be awaited inside a running event loop."""

        if self._active:
            return CommandResult(False, "Already active")
        interval_ms = self._config.interval_ms if interval_ms is None else interval_ms
        if interval_ms <= 0:
            raise SolverError(f"Cycle interval must be positive, got {interval_ms}ms")

        available, tool, error = await asyncio.to_thread(self._input.check_availability)
        if not available:
            self._logger.error("Input automation unavailable: %s", error)
            return CommandResult(False, error or f"{tool} unavailable")

        self._run += 1
        self._active = True
        self._busy = False
        self._interval_s = interval_ms / 1000.0
        self._consecutive_errors = 0
        self._stats = Stats()
        self._analysis.bind_stats(self._stats)
        self._cache.reset()
        self._tracker.reset()
        self._state = QuizState.SCANNING
        self._previous_state = QuizState.IDLE

        if self._config.event_log:
            writer = EventLogWriter(self._config.logs_dir, logger=self._logger.getChild("events"))
            self._unsubscribe_log = self.channel.subscribe(writer)
            self._logger.info("Writing status events to %s", writer.path)

        self._logger.info(
            "Starting quiz solver with %dms interval (%s)",
            interval_ms,
            "automation" if self.automation_enabled else "read-only",
        )
        self._emit("started", tool=tool, read_only=not self.automation_enabled)
        self._start_scheduler(self._run)
        return CommandResult(True)

    def stop(self) -> CommandResult:
        """End the run. In-flight cycles finish on their own and are ignored."""

        if not self._active:
            return CommandResult(False, "Not active")

        self._active = False
        self._busy = False
        for task in (self._scheduler_task, self._video_task):
            if task is not None and not task.done():
                task.cancel()
        self._scheduler_task = None
        self._video_task = None

        self._log_stats()
        self._previous_state, self._state = self._state, QuizState.IDLE
        self._emit("stopped", questions_answered=self._cache.context.questions_answered)
        if self._unsubscribe_log is not None:
            self._unsubscribe_log()
            self._unsubscribe_log = None
        self._cache.reset()
        self._tracker.reset()
        return CommandResult(True)

    async def run_cycle(self) -> None:
        """Run one cycle now unless the run is inactive or a cycle is in flight."""

        if not self._active:
            return
        if self._busy:
            self._logger.debug("Cycle skipped - already busy")
            return
        run = self._run
        self._busy = True
        try:
            await self._cycle(run)
        except asyncio.CancelledError:
            raise
        except Exception as exc:
            if self._alive(run):
                self._logger.exception("Cycle error: %s", exc)
                self._emit("error", message=str(exc))
                self._set_state(QuizState.ERROR)
                self._record_failure()
        finally:
            if self._run == run:
                self._busy = False

    # ------------------------------------------------------------------
    # Scheduling
    # ------------------------------------------------------------------
    def _alive(self, run: int) -> bool:
        return self._active and self._run == run

    def _start_scheduler(self, run: int) -> None:
        self._scheduler_task = asyncio.create_task(self._schedule(run))

    def _cancel_scheduler(self) -> None:
        if self._scheduler_task is not None and self._scheduler_task is not asyncio.current_task():
            self._scheduler_task.cancel()
        self._scheduler_task = None

    async def _schedule(self, run: int) -> None:
        while self._alive(run):
            if self._busy:
                self._logger.debug("Tick dropped - cycle still running")
            else:
                task = asyncio.create_task(self.run_cycle())
                self._cycle_tasks.add(task)
                task.add_done_callback(self._cycle_tasks.discard)
            await asyncio.sleep(self._interval_s)

    async def _cycle(self, run: int) -> None:
        await self._actions.jiggle()
        if not self._alive(run):
            return

        try:
            capture = await asyncio.to_thread(self._capture.capture)
        except CaptureError as exc:
            if self._alive(run):
                self._logger.warning("Capture failed: %s", exc)
                self._emit("error", message=str(exc), source="capture")
                self._record_failure()
            return
        if not self._alive(run):
            return

        frame = CycleFrame(run, capture, self._tracker.update(signature_of(capture.png_bytes)))
        handler = self._handlers.get(self._state)
        if handler is None:
            if self._state is QuizState.ERROR:
                self._set_state(QuizState.SCANNING)
            return

        await handler(frame)
        if self._alive(run):
            self._consecutive_errors = 0

    def _record_failure(self) -> None:
        self._consecutive_errors += 1
        limit = self._config.max_consecutive_errors
        if limit and self._consecutive_errors >= limit:
            self._logger.error("Giving up after %d consecutive failed cycles", self._consecutive_errors)
            self._emit("fatal", message="Too many consecutive errors", consecutive_errors=self._consecutive_errors)
            self.stop()

    # ------------------------------------------------------------------
    # State & status
    # ------------------------------------------------------------------
    def _set_state(self, state: QuizState) -> None:
        self._previous_state, self._state = self._state, state
        self._logger.info("State: %s -> %s", self._previous_state.value, state.value)
        self._emit("state-change")

    def _emit(self, kind: str, **data) -> None:
        self.channel.publish(
            StatusEvent(
                kind=kind,
                state=self._state.value,
                previous_state=self._previous_state.value,
                stats=self._stats.snapshot(),
                context=self._cache.summary(),
                data=data,
            )
        )

    def _log_stats(self) -> None:
        stats = self._stats
        self._logger.info(
            "Run stats: answered=%d cache_hits=%d cache_misses=%d hit_rate=%.1f%% "
            "ai_calls=%d position_reuses=%d stuck_recoveries=%d",
            stats.total_answered,
            stats.cache_hits,
            stats.cache_misses,
            stats.hit_rate,
            stats.ai_calls,
            stats.position_reuses,
            stats.stuck_recoveries,
        )

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------
    async def _click(self, frame: CycleFrame, point: PercentPoint, label: str) -> bool:
        return await self._actions.click_at(percent_to_pixel(point, frame.screen), label)

    async def _click_spot(self, frame: CycleFrame, spot: Optional[ButtonSpot], label: str) -> bool:
        if spot is None or spot.point is None:
            return False
        return await self._click(frame, spot.point, label)

    async def _pause(self, frame: CycleFrame, seconds: float) -> bool:
        await asyncio.sleep(seconds)
        return self._alive(frame.run)

    def _after_answer_state(self) -> QuizState:
        positions = self._cache.context.learned_positions
        if positions.submit_button is not None:
            return QuizState.CLICKING_SUBMIT
        if positions.next_button is not None:
            return QuizState.CLICKING_NEXT
        return QuizState.WAITING_FOR_CHANGE

    def _analysis_failed(self, frame: CycleFrame, purpose: str, exc: Exception) -> None:
        if not self._alive(frame.run):
            return
        self._logger.warning("%s failed: %s", purpose, exc)
        self._emit("error", message=str(exc), source=purpose)
        self._set_state(QuizState.SCANNING)

    async def _answer(self, frame: CycleFrame) -> bool:
        """Click (or type) the pending answer from cached positions; no vision call.

        Returns False when nothing could be resolved. In read-only mode the
        answer is reported and the run is stopped.
        """
        ctx = self._cache.context
        pending: Optional[PendingAnswer] = ctx.pending_actions
        if pending is None:
            return False
        positions = ctx.learned_positions
        text_field = positions.text_input_field if ctx.layout is QuizLayout.TEXT_INPUT else None

        if text_field is not None:
            await self._click(frame, text_field, "text input field")
            if not self._alive(frame.run):
                return True
            await self._actions.type_text(pending.correct_answer)
        else:
            option = self._cache.resolve_answer_position(pending.correct_answer)
            if option is None:
                self._logger.info("Could not find position for answer %s", pending.correct_answer)
                return False
            self._emit(
                "quiz-detected",
                correct_answer=pending.correct_answer,
                explanation=pending.explanation,
                using_cache=True,
            )
            await self._click(frame, option.point, f"answer {option.letter}")
        if not self._alive(frame.run):
            return True

        self._cache.take_pending()
        ctx.questions_answered += 1
        self._stats.total_answered += 1
        ctx.last_question = ctx.current_question

        if not self.automation_enabled:
            self._logger.info("Read-only mode: answer is %s, stopping", pending.correct_answer)
            self._emit(
                "answer-result",
                answer=pending.correct_answer,
                explanation=pending.explanation or "",
                message=f"Answer: {pending.correct_answer} (read-only, stopped)",
            )
            self.stop()
            return True

        self._set_state(self._after_answer_state())
        return True

    async def _enter_video_wait(self, frame: CycleFrame, seconds: float) -> None:
        self._set_state(QuizState.WAITING_FOR_VIDEO)
        self._cancel_scheduler()
        self._emit("video-wait", seconds=seconds, monitoring=True)
        self._video_task = asyncio.create_task(self._watch_video(frame.run, seconds))

    async def _watch_video(self, run: int, seconds: float) -> None:
        try:
            reason = await self._video.run(
                seconds,
                lambda: self._alive(run),
                lambda kind, **data: self._emit(kind, **data),
            )
        except Exception as exc:
            if not self._alive(run):
                return
            self._logger.exception("Video wait failed: %s", exc)
            self._emit("error", message=str(exc), source="video")
            self._record_failure()
            reason = "Video wait failed"
        if reason is None or not self._alive(run):
            return
        self._logger.info("Resuming from video wait: %s", reason)
        self._emit("video-complete", reason=reason)
        self._video_task = None
        self._cache.forget_screen()
        self._tracker.reset()
        self._set_state(QuizState.SCANNING)
        self._start_scheduler(run)

    # ------------------------------------------------------------------
    # State handlers
    # ------------------------------------------------------------------
    async def _handle_scanning(self, frame: CycleFrame) -> None:
        self._emit("scanning")
        if self._cache.context.kind is ScreenKind.NONE:
            self._set_state(QuizState.CLASSIFYING)
        elif frame.changed:
            self._set_state(QuizState.CLASSIFYING)
        elif self._tracker.unchanged_streak >= self._config.max_unchanged_before_stuck:
            self._logger.info("Screen unchanged %d cycles, attempting recovery", self._tracker.unchanged_streak)
            self._set_state(QuizState.STUCK_RECOVERY)

    async def _handle_classifying(self, frame: CycleFrame) -> None:
        ctx = self._cache.context
        if not frame.changed and ctx.kind is not ScreenKind.NONE:
            self._logger.debug("Screen unchanged, keeping context: %s", ctx.kind.value)
            if self._tracker.unchanged_streak >= self._config.max_unchanged_before_stuck:
                self._logger.info("Screen unchanged %d cycles, attempting recovery", self._tracker.unchanged_streak)
                self._set_state(QuizState.STUCK_RECOVERY)
            elif ctx.kind is ScreenKind.QUIZ:
                self._set_state(QuizState.ANSWERING if self._cache.has_positions else QuizState.LEARNING_LAYOUT)
            else:
                self._set_state(QuizState.SCANNING)
            return

        self._emit("classifying")
        try:
            data = await self._analysis.classify(frame.capture)
        except AnalysisError as exc:
            self._analysis_failed(frame, "classification", exc)
            return
        if not self._alive(frame.run):
            return
        if data is None:
            self._set_state(QuizState.SCANNING)
            return

        self._logger.info("Screen classified as %s (%.0f%% confidence)", data.screen_type, data.confidence * 100)
        self._emit("classified", type=data.screen_type, description=data.description, confidence=data.confidence)
        has_positions = self._cache.apply_classification(data)

        if data.screen_type == "quiz":
            positions = ctx.learned_positions
            self._emit(
                "layout-learned",
                quiz_type=ctx.layout.value if ctx.layout else None,
                option_count=ctx.option_count,
                has_submit=positions.submit_button is not None,
                correct_answer=data.correct_answer,
            )
            self._set_state(QuizState.ANSWERING if has_positions else QuizState.LEARNING_LAYOUT)

        elif data.screen_type == "video":
            for name in ("play", "continue"):
                spot = data.button(name)
                if spot is not None:
                    self._logger.info("Video %s button found, clicking", name)
                    await self._click_spot(frame, spot, f"{name} button")
                    if await self._pause(frame, self._config.completion_delay_s):
                        self._set_state(QuizState.SCANNING)
                    return
            seconds = data.time_remaining or self._config.video.default_duration_s
            await self._enter_video_wait(frame, seconds)

        elif data.screen_type == "instructions":
            spot = data.button("next") or data.button("startquiz")
            if spot is not None and spot.point is not None:
                await self._click_spot(frame, spot, "next button")
                if await self._pause(frame, self._config.post_action_delay_s):
                    self._set_state(QuizState.SCANNING)
            else:
                self._emit("waiting", reason="Reading instructions, no action needed")

        elif data.screen_type == "results":
            self._set_state(QuizState.QUIZ_COMPLETED)

        else:
            self._emit("waiting", reason=data.description or "Analyzing screen")
            self._set_state(QuizState.SCANNING)

    async def _handle_learning_layout(self, frame: CycleFrame) -> None:
        self._emit("learning-layout")
        try:
            data = await self._analysis.learn_layout(frame.capture)
        except AnalysisError as exc:
            self._analysis_failed(frame, "layout learning", exc)
            return
        if not self._alive(frame.run):
            return

        if data is None or not data.is_quiz:
            if data is not None and data.is_video:
                self._cache.apply_learned_layout(data)
                await self._enter_video_wait(frame, self._config.video.default_duration_s)
                return
            self._emit("no-quiz", reason="Not a quiz page")
            self._cache.forget_screen()
            self._set_state(QuizState.SCANNING)
            return

        self._cache.apply_learned_layout(data)
        self._stats.cache_misses += 1
        ctx = self._cache.context
        positions = ctx.learned_positions
        self._emit(
            "quiz-detected",
            question=data.question,
            correct_answer=data.correct_answer,
            option_count=ctx.option_count,
            has_submit_button=positions.submit_button is not None,
            has_next_button=positions.next_button is not None,
        )

        if await self._answer(frame):
            return
        if not self._alive(frame.run):
            return
        self._cache.take_pending()
        self._set_state(QuizState.SCROLLING if data.scroll_needed else QuizState.WAITING_FOR_CHANGE)

    async def _handle_answering(self, frame: CycleFrame) -> None:
        self._emit("answering")
        if self._cache.context.pending_actions is not None and await self._answer(frame):
            self._stats.cache_hits += 1
            self._stats.position_reuses += 1
            return
        if not self._alive(frame.run):
            return
        self._logger.info("No saved positions/answer, re-classifying")
        self._stats.cache_misses += 1
        self._set_state(QuizState.CLASSIFYING)

    async def _handle_waiting_for_change(self, frame: CycleFrame) -> None:
        if not frame.changed:
            self._emit("waiting", reason="Waiting for page change")
            if self._tracker.unchanged_streak >= self._config.max_unchanged_before_stuck:
                self._set_state(QuizState.STUCK_RECOVERY)
            return

        try:
            data = await self._analysis.quick_check(frame.capture)
        except AnalysisError as exc:
            self._analysis_failed(frame, "quick check", exc)
            return
        if not self._alive(frame.run):
            return
        if data is None:
            self._set_state(QuizState.SCANNING)
            return

        if data.continue_watching_visible and data.continue_button is not None:
            self._emit("clicking-continue", reason="Resuming video")
            await self._click(frame, data.continue_button, "continue watching button")
            if self._alive(frame.run):
                self._set_state(QuizState.WAITING_FOR_CHANGE)
        elif data.is_video:
            self._set_state(QuizState.SCANNING)
        elif data.quiz_ended:
            self._logger.info("Quiz end detected")
            self._set_state(QuizState.CLICKING_FINISH if data.finish_visible else QuizState.QUIZ_COMPLETED)
        elif data.question_changed:
            await self._prepare_next_question(frame, data.new_question, data.correct_answer)
        elif data.finish_visible:
            self._set_state(QuizState.CLICKING_FINISH)
        elif data.submit_visible:
            self._set_state(QuizState.CLICKING_SUBMIT)
        elif data.next_visible:
            self._set_state(QuizState.CLICKING_NEXT)
        else:
            self._set_state(QuizState.SCANNING)

    async def _prepare_next_question(
        self, frame: CycleFrame, question: Optional[str], answer: Optional[str]
    ) -> None:
        ctx = self._cache.context
        self._logger.info("New question detected")
        ctx.last_question, ctx.current_question = ctx.current_question, question
        if answer:
            self._cache.set_pending(answer)
        elif self._cache.has_positions:
            try:
                result = await self._analysis.answer_only(frame.capture, len(ctx.learned_positions.options))
            except AnalysisError as exc:
                self._logger.warning("Answer-only request failed: %s", exc)
                result = None
            if not self._alive(frame.run):
                return
            if result is not None and result.answer:
                self._cache.set_pending(result.answer, result.explanation)
        self._set_state(QuizState.ANSWERING)

    async def _handle_clicking_submit(self, frame: CycleFrame) -> None:
        submit = self._cache.context.learned_positions.submit_button
        if submit is not None:
            self._emit("clicking-submit")
            await self._click(frame, submit.point, "submit button")
            if not self._alive(frame.run):
                return
        if not await self._pause(frame, self._config.post_action_delay_s):
            return
        self._cache.context.pending_actions = None
        if self._cache.context.learned_positions.next_button is not None:
            self._set_state(QuizState.CLICKING_NEXT)
        else:
            self._set_state(QuizState.WAITING_FOR_CHANGE)

    async def _handle_clicking_next(self, frame: CycleFrame) -> None:
        next_button = self._cache.context.learned_positions.next_button
        if next_button is not None:
            self._emit("clicking-next")
            await self._click(frame, next_button.point, "next button")
            if not self._alive(frame.run):
                return
        if not await self._pause(frame, self._config.post_action_delay_s):
            return
        self._cache.context.pending_actions = None
        self._set_state(QuizState.WAITING_FOR_CHANGE)

    async def _handle_clicking_finish(self, frame: CycleFrame) -> None:
        positions = self._cache.context.learned_positions
        finish = positions.finish_button
        if finish is not None:
            self._emit("clicking-finish")
            if self._config.position_validation:
                validated = await self._validator.validate(finish, "finish", frame.capture)
                if not self._alive(frame.run):
                    return
                # Not found: fall back to the cached spot
                if validated is not None:
                    positions.finish_button = finish = validated
            await self._click(frame, finish.point, "finish button")
            if not self._alive(frame.run):
                return
        if await self._pause(frame, self._config.post_action_delay_s):
            self._set_state(QuizState.QUIZ_COMPLETED)

    async def _handle_quiz_completed(self, frame: CycleFrame) -> None:
        self._logger.info("Quiz completed after %d questions", self._cache.context.questions_answered)
        self._emit(
            "quiz-completed",
            questions_answered=self._cache.context.questions_answered,
            total_answered=self._stats.total_answered,
        )
        self._cache.reset()
        self._tracker.reset()
        if await self._pause(frame, self._config.completion_delay_s):
            self._set_state(QuizState.SCANNING)

    async def _handle_scrolling(self, frame: CycleFrame) -> None:
        self._emit("scrolling")
        await self._actions.scroll(self._cache.context.learned_positions.scroll_direction)
        if self._alive(frame.run):
            self._set_state(QuizState.SCANNING)

    async def _handle_stuck_recovery(self, frame: CycleFrame) -> None:
        self._stats.stuck_recoveries += 1
        self._emit("stuck-recovery")
        positions = self._cache.context.learned_positions

        for button, label in ((positions.submit_button, "submit"), (positions.next_button, "next")):
            if button is None:
                continue
            self._logger.info("Recovery: clicking %s", label)
            await self._click(frame, button.point, f"{label} button (recovery)")
            if not await self._pause(frame, self._config.post_action_delay_s):
                return
            self._tracker.clear_streak()
            self._set_state(QuizState.WAITING_FOR_CHANGE)
            return

        self._logger.info("Recovery: scrolling")
        try:
            await self._actions.scroll("down")
        except AutomationError as exc:
            self._logger.warning("Recovery scroll failed: %s", exc)
        if not self._alive(frame.run):
            return

        self._logger.info("Recovery: forcing fresh layout analysis")
        self._cache.forget_screen()
        self._tracker.reset()
        self._set_state(QuizState.LEARNING_LAYOUT)


__all__ = ["CommandResult", "QuizSolver", "SolverError"]
