"""Pointer/keyboard actions issued by the solver, behind a read-only gate."""
from __future__ import annotations

import asyncio
import logging
import random
import time
from typing import Callable, Optional

from pilot_os.input_handler import AutomationError, InputHandler
from pilot_vision.coords import PixelPoint

Logger = logging.Logger


class ActionExecutor:
    """Thin async wrapper over ``InputHandler``.

    When ``automation_enabled`` is False every action only logs what it would
    have done and returns immediately.
    """

    def __init__(
        self,
        input_handler: InputHandler,
        automation_enabled: bool = True,
        click_delay_s: float = 0.4,
        jiggle_min_interval_s: float = 5.0,
        logger: Optional[Logger] = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._input = input_handler
        self._automation_enabled = automation_enabled
        self._click_delay_s = click_delay_s
        self._jiggle_min_interval_s = jiggle_min_interval_s
        self._logger = logger or logging.getLogger(__name__)
        self._clock = clock
        self._last_jiggle: Optional[float] = None

    @property
    def automation_enabled(self) -> bool:
        return self._automation_enabled

    async def click_at(self, pixel: PixelPoint, label: str) -> bool:
        """Move to ``pixel`` and click; returns False in read-only mode.

        Raises:
            AutomationError: If the input tool fails
        """
        if not self._automation_enabled:
            self._logger.info("[read-only] Would click %s at (%d, %d)", label, pixel.x, pixel.y)
            return False

        self._logger.info("Clicking %s at (%d, %d)", label, pixel.x, pixel.y)
        await asyncio.to_thread(self._input.move_to, pixel.x, pixel.y)
        await asyncio.sleep(self._click_delay_s)
        await asyncio.to_thread(self._input.click)
        return True

    async def scroll(self, direction: str = "down") -> bool:
        if not self._automation_enabled:
            self._logger.info("[read-only] Would scroll %s", direction)
            return False
        self._logger.info("Scrolling %s", direction)
        await asyncio.to_thread(self._input.scroll, direction)
        return True

    async def type_text(self, text: str) -> bool:
        if not self._automation_enabled:
            self._logger.info("[read-only] Would type %d characters", len(text))
            return False
        self._logger.info("Typing %d characters", len(text))
        await asyncio.to_thread(self._input.type_text, text)
        return True

    async def jiggle(self, force: bool = False) -> bool:
        """Nudge the pointer a few pixels (relative only) to reveal hidden controls.

        Throttled to once per ``jiggle_min_interval_s`` unless ``force``. Never raises.
        """
        if not self._automation_enabled:
            return False
        now = self._clock()
        if not force and self._last_jiggle is not None and now - self._last_jiggle < self._jiggle_min_interval_s:
            return False

        dx = random.choice((3, -3))
        dy = random.choice((2, -2))
        try:
            await asyncio.to_thread(self._input.move_relative, dx, dy)
        except AutomationError as exc:
            self._logger.debug("Jiggle failed (ignored): %s", exc)
            return False
        self._last_jiggle = now
        return True


__all__ = ["ActionExecutor"]
