"""Whole-monitor screenshots for the quiz solver."""
from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from datetime import datetime
from io import BytesIO
from pathlib import Path
from typing import Optional, Tuple

import numpy as np
from PIL import Image

from .config import CaptureConfig

try:  # pragma: no cover - import validated at runtime
    import mss
except Exception:  # pragma: no cover
    mss = None

Logger = logging.Logger


@dataclass(slots=True)
class CaptureValidation:
    """Luminance statistics of a frame; a black or flat frame never reaches the solver."""

    mean_luminance: float
    stddev_luminance: float
    size_px: Tuple[int, int]


@dataclass(slots=True)
class CaptureResult:
    """One validated frame: the decoded image plus the PNG bytes sent for analysis."""

    image: Image.Image
    png_bytes: bytes
    width: int
    height: int
    validation: CaptureValidation
    path: Optional[Path] = None


class CaptureError(RuntimeError):
    """The screen could not be grabbed, or the frame looked blank."""


class CaptureManager:
    """Grabs the configured monitor and hands back PNG bytes plus dimensions."""

    def __init__(self, config: CaptureConfig, logger: Optional[Logger] = None) -> None:
        self._config = config
        self._logger = logger or logging.getLogger(__name__)
        self._output_dir = config.output_dir
        if config.save_captures:
            self._output_dir.mkdir(parents=True, exist_ok=True)

    def capture(self) -> CaptureResult:
        """Capture the full monitor once."""

        screenshot = self._grab()
        image = self._to_image(screenshot)
        validation = self._validate_capture(image)
        png_bytes = self._encode(image)

        path: Optional[Path] = None
        if self._config.save_captures:
            path = self._save(png_bytes, datetime.now().strftime("%Y%m%d-%H%M%S-%f"))
            self._enforce_retention()

        return CaptureResult(
            image=image,
            png_bytes=png_bytes,
            width=image.width,
            height=image.height,
            validation=validation,
            path=path,
        )

    def _grab(self) -> "mss.base.ScreenShot":
        if mss is None:
            raise CaptureError("mss library is not available; install dependency before capturing")
        try:
            with mss.mss() as sct:
                monitors = sct.monitors
                index = self._config.monitor
                if index < 0 or index >= len(monitors):
                    raise CaptureError(f"Monitor {index} not found ({len(monitors) - 1} available)")
                self._logger.debug("Capturing monitor %d: %s", index, monitors[index])
                return sct.grab(monitors[index])
        except CaptureError:
            raise
        except Exception as exc:
            raise CaptureError(f"Screen grab failed: {exc}") from exc

    def _to_image(self, screenshot: "mss.base.ScreenShot") -> Image.Image:
        return Image.frombytes("RGB", screenshot.size, screenshot.rgb)

    @staticmethod
    def _frame_luminance(image: Image.Image) -> Tuple[float, float]:
        """Rec. 709 luma mean and standard deviation of ``image``."""

        rgb = np.asarray(image.convert("RGB"), dtype=np.float32)
        luma = rgb @ np.array([0.2126, 0.7152, 0.0722], dtype=np.float32)
        return float(luma.mean()), float(luma.std())

    def _validate_capture(self, image: Image.Image) -> CaptureValidation:
        size = (image.width, image.height)
        if min(size) <= 0:
            raise CaptureError(f"Frame has no pixels ({size[0]}x{size[1]})")

        mean, spread = self._frame_luminance(image)
        limits = self._config.validation
        if mean < limits.min_mean_luminance:
            raise CaptureError(f"Frame is too dark: mean luma {mean:.2f} below {limits.min_mean_luminance}")
        if spread < limits.min_luminance_stddev:
            raise CaptureError(f"Frame is flat: luma spread {spread:.2f} below {limits.min_luminance_stddev}")

        return CaptureValidation(mean_luminance=mean, stddev_luminance=spread, size_px=size)

    def _encode(self, image: Image.Image) -> bytes:
        with BytesIO() as buffer:
            image.save(buffer, format="PNG")
            return buffer.getvalue()

    def _save(self, png_bytes: bytes, stem: str) -> Path:
        safe_stem = re.sub(r"[^A-Za-z0-9._-]", "_", stem)
        path = self._output_dir / f"{safe_stem}.png"
        path.write_bytes(png_bytes)
        self._logger.debug("Saved capture to %s", path)
        return path

    def _enforce_retention(self) -> None:
        max_captures = self._config.retention.max_captures
        if max_captures <= 0:
            return

        captures = sorted(self._output_dir.glob("*.png"), key=lambda p: p.stat().st_mtime)
        excess = len(captures) - max_captures
        for victim in captures[:excess]:
            self._logger.debug("Deleting capture %s", victim)
            victim.unlink(missing_ok=True)


__all__ = ["CaptureError", "CaptureManager", "CaptureResult", "CaptureValidation"]
