"""Raw pointer and keyboard driving.

Thin layer over pyautogui. It knows *how* to move and click on the host OS;
the solver decides *when* and *where*. Coordinates are absolute screen pixels.
"""
from __future__ import annotations

import logging
import random
import time
from dataclasses import dataclass
from typing import Optional, Tuple

Logger = logging.Logger

try:  # pragma: no cover - import validated at runtime
    import pyautogui  # type: ignore
except Exception:  # pragma: no cover - headless hosts raise on import
    pyautogui = None  # type: ignore


class AutomationError(RuntimeError):
    """Raised when a pointer or keyboard action cannot be performed."""


@dataclass(slots=True)
class InputConfig:
    """Pointer timing and jitter settings."""

    jitter_min_ms: int = 20
    jitter_max_ms: int = 50
    click_duration_ms: int = 100
    type_interval_ms: int = 30
    scroll_clicks: int = 5


class InputHandler:
    """Low-level input operations used by the action executor."""

    def __init__(self, config: Optional[InputConfig] = None, logger: Optional[Logger] = None) -> None:
        self._config = config or InputConfig()
        self._logger = logger or logging.getLogger(__name__)

    @property
    def tool(self) -> str:
        return "pyautogui"

    def check_availability(self) -> Tuple[bool, str, Optional[str]]:
        """Report whether input automation can run on this host.

        Returns:
            (available, tool name, error message or None)
        """
        if pyautogui is None:
            return False, self.tool, "pyautogui is not available (missing package or no display)"
        try:
            pyautogui.position()
        except Exception as exc:
            return False, self.tool, f"pyautogui cannot reach the pointer: {exc}"
        return True, self.tool, None

    def move_to(self, x: int, y: int) -> None:
        """Move the pointer to absolute pixel (x, y) of the captured monitor."""
        self._apply_jitter()
        self._call("moveTo", x, y)

    def click(self) -> None:
        """Click at the current cursor position."""
        duration_sec = self._config.click_duration_ms / 1000.0
        self._call("click", duration=duration_sec)

    def move_relative(self, dx: int, dy: int) -> None:
        """Nudge the cursor relative to where it currently is."""
        self._call("moveRel", dx, dy)

    def scroll(self, direction: str = "down", amount: Optional[int] = None) -> None:
        """Scroll the wheel up or down by a number of clicks."""
        clicks = amount if amount is not None else self._config.scroll_clicks
        signed = -abs(clicks) if direction == "down" else abs(clicks)
        self._apply_jitter()
        self._call("scroll", signed)

    def type_text(self, text: str) -> None:
        """Type text into the focused element."""
        self._apply_jitter()
        self._call("write", text, interval=self._config.type_interval_ms / 1000.0)

    def _call(self, name: str, *args, **kwargs) -> None:
        if pyautogui is None:
            raise AutomationError("pyautogui not available")
        try:
            getattr(pyautogui, name)(*args, **kwargs)
        except Exception as exc:
            raise AutomationError(f"pyautogui.{name} failed: {exc}") from exc

    def _apply_jitter(self) -> None:
        """Sleep a random few milliseconds before each action."""
        jitter_ms = random.randint(self._config.jitter_min_ms, self._config.jitter_max_ms)
        time.sleep(jitter_ms / 1000.0)


__all__ = ["AutomationError", "InputConfig", "InputHandler"]
