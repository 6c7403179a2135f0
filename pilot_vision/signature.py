"""Cheap "did the screen change?" fingerprints for captured frames.

A signature hashes three fixed-size samples (head, middle, tail) of the encoded
frame and records its byte size. It is collision tolerant: a hash change means
"maybe changed" and is never disambiguated further. This gate is what keeps the
solver from paying for a vision call on every tick of a static screen.
"""
from __future__ import annotations

import hashlib
import logging
from dataclasses import dataclass
from typing import Optional

Logger = logging.Logger

SAMPLE_SIZE = 2000
SIZE_CHANGE_THRESHOLD = 0.02


@dataclass(frozen=True, slots=True)
class ScreenshotSignature:
    hash: str
    byte_size: int


def signature_of(raw: bytes) -> ScreenshotSignature:
    size = len(raw)
    middle = size // 2
    half = SAMPLE_SIZE // 2
    samples = b"".join(
        (
            raw[:SAMPLE_SIZE],
            raw[max(0, middle - half) : middle + half],
            raw[max(0, size - SAMPLE_SIZE) :],
        )
    )
    return ScreenshotSignature(hash=hashlib.md5(samples).hexdigest(), byte_size=size)


def has_changed(previous: Optional[ScreenshotSignature], current: ScreenshotSignature) -> bool:
    """Return True on the first frame, a >2% size swing, or a differing sample hash."""

    if previous is None or previous.byte_size <= 0:
        return True
    size_delta = abs(current.byte_size - previous.byte_size) / previous.byte_size
    if size_delta > SIZE_CHANGE_THRESHOLD:
        return True
    return current.hash != previous.hash


class SignatureTracker:
    """Remembers the previous frame and counts consecutive unchanged frames."""

    def __init__(self, logger: Optional[Logger] = None) -> None:
        self._logger = logger or logging.getLogger(__name__)
        self.previous: Optional[ScreenshotSignature] = None
        self.unchanged_streak = 0

    def update(self, current: ScreenshotSignature) -> bool:
        changed = has_changed(self.previous, current)
        if changed:
            if self.previous is not None:
                self._logger.debug(
                    "Screen changed (%d -> %d bytes)",
                    self.previous.byte_size,
                    current.byte_size,
                )
            self.unchanged_streak = 0
        else:
            self.unchanged_streak += 1
        self.previous = current
        return changed

    def reset(self) -> None:
        """Forget the history so the next frame counts as changed."""
        self.previous = None
        self.unchanged_streak = 0

    def clear_streak(self) -> None:
        self.unchanged_streak = 0


__all__ = [
    "SAMPLE_SIZE",
    "SIZE_CHANGE_THRESHOLD",
    "ScreenshotSignature",
    "SignatureTracker",
    "has_changed",
    "signature_of",
]
