"""Re-locates a cached button before clicking it."""
from __future__ import annotations

import logging
from typing import Optional

from pilot_os.capture import CaptureResult
from pilot_vision.analysis import VisualAnalysisAdapter
from pilot_vision.backends import AnalysisError

from .context import ButtonPosition

Logger = logging.Logger


class PositionValidator:
    """Minimal-token "is this button still here?" check with drift correction.

    ``validate`` returns the fresh position when the button is found (even past
    the drift threshold, which is only logged), ``None`` when the model says it
    is gone, and the expected position unchanged when the request fails.
    """

    def __init__(
        self,
        analysis: VisualAnalysisAdapter,
        max_drift: float = 15.0,
        logger: Optional[Logger] = None,
    ) -> None:
        self._analysis = analysis
        self._max_drift = max_drift
        self._logger = logger or logging.getLogger(__name__)

    async def validate(
        self,
        expected: ButtonPosition,
        role: str,
        capture: CaptureResult,
    ) -> Optional[ButtonPosition]:
        try:
            result = await self._analysis.check_button(capture, role)
        except AnalysisError as exc:
            self._logger.warning("Validation of %s button failed, keeping cached position: %s", role, exc)
            return expected

        if result is None:
            self._logger.debug("Unreadable %s validation response, keeping cached position", role)
            return expected
        if not result.found or result.point is None:
            self._logger.info("%s button no longer found", role.capitalize())
            return None

        drift = abs(result.point.x - expected.point.x) + abs(result.point.y - expected.point.y)
        if drift > self._max_drift:
            self._logger.warning(
                "%s button drifted %.1f points (%.1f, %.1f) -> (%.1f, %.1f)",
                role.capitalize(),
                drift,
                expected.point.x,
                expected.point.y,
                result.point.x,
                result.point.y,
            )
        return ButtonPosition(point=result.point, text=result.text or expected.text)


__all__ = ["PositionValidator"]
