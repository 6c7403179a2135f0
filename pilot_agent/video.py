"""Cooperative wait loop used while a video plays instead of the cycle scheduler."""
from __future__ import annotations

import asyncio
import logging
import time
from typing import Any, Awaitable, Callable, Optional

from pilot_os.capture import CaptureError, CaptureManager
from pilot_os.config import VideoConfig
from pilot_os.input_handler import AutomationError
from pilot_vision.analysis import VisualAnalysisAdapter
from pilot_vision.backends import AnalysisError
from pilot_vision.coords import PercentPoint, percent_to_pixel

from .actions import ActionExecutor

Logger = logging.Logger
Emit = Callable[..., None]

QUIZ_DETECTED = "Quiz detected"
VIDEO_COMPLETED = "Video completed"
TIMER_COMPLETED = "Timer completed"


class VideoWaitMonitor:
    """Waits out a video, checking on it now and then, and reports why it finished.

    ``run`` returns the resume reason, or ``None`` when ``is_alive`` turned
    False (the run was stopped) before the video was done.
    """

    def __init__(
        self,
        capture: CaptureManager,
        analysis: VisualAnalysisAdapter,
        actions: ActionExecutor,
        config: Optional[VideoConfig] = None,
        post_action_delay_s: float = 1.5,
        logger: Optional[Logger] = None,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ) -> None:
        self._capture = capture
        self._analysis = analysis
        self._actions = actions
        self._config = config or VideoConfig()
        self._post_action_delay_s = post_action_delay_s
        self._logger = logger or logging.getLogger(__name__)
        self._clock = clock
        self._sleep = sleep

    async def run(self, seconds: float, is_alive: Callable[[], bool], emit: Emit) -> Optional[str]:
        cfg = self._config
        started = self._clock()
        deadline = started + max(seconds, 0.0) + cfg.end_buffer_s
        last_jiggle = last_check = started
        checks = 0
        self._logger.info("Entering video wait (estimated %.0fs)", seconds)

        while is_alive():
            now = self._clock()

            if now - last_jiggle >= cfg.jiggle_interval_s:
                last_jiggle = now
                await self._actions.jiggle(force=True)
                if not is_alive():
                    return None

            if now - started >= cfg.min_wait_s and now - last_check >= cfg.check_interval_s:
                last_check = now
                checks += 1
                self._logger.info("Video check #%d, %.0fs estimated remaining", checks, deadline - now)
                reason = await self._check(checks, is_alive, emit)
                if not is_alive():
                    return None
                if reason is not None:
                    return reason

            if now >= deadline:
                self._logger.info("Estimated video time complete")
                return TIMER_COMPLETED

            await self._sleep(cfg.poll_interval_s)
        return None

    async def _check(self, checks: int, is_alive: Callable[[], bool], emit: Emit) -> Optional[str]:
        """One lightweight look at the screen; failures count as "still playing"."""

        try:
            capture = await asyncio.to_thread(self._capture.capture)
            if not is_alive():
                return None
            result = await self._analysis.check_video(capture)
        except (CaptureError, AnalysisError) as exc:
            self._logger.info("Video check failed, assuming still playing: %s", exc)
            return None
        except Exception as exc:
            self._logger.warning("Unexpected video check error, assuming still playing: %s", exc)
            return None
        if result is None or not is_alive():
            return None

        screen = (capture.width, capture.height)
        if result.quiz_visible:
            return QUIZ_DETECTED

        if result.video_ended or result.continue_button is not None:
            if result.continue_button is not None:
                await self._click(result.continue_button, screen, "continue button")
                await self._sleep(self._post_action_delay_s)
            return VIDEO_COMPLETED

        if result.time_remaining and result.time_remaining > 0:
            emit("video-progress", time_remaining=result.time_remaining, check_count=checks)

        if result.video_playing is False and result.play_button is not None:
            self._logger.info("Video paused, clicking play")
            await self._click(result.play_button, screen, "play button")
        return None

    async def _click(self, point: PercentPoint, screen: tuple, label: str) -> None:
        try:
            await self._actions.click_at(percent_to_pixel(point, screen), label)
        except AutomationError as exc:
            self._logger.warning("Could not click %s during video wait: %s", label, exc)


__all__ = ["QUIZ_DETECTED", "TIMER_COMPLETED", "VIDEO_COMPLETED", "VideoWaitMonitor"]
