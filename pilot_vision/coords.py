"""Mapping between region codes, screen percentages and pixels.

Percent coordinates always describe the clickable centre of an element with
the origin at the top-left corner of the captured frame.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Tuple

ROW_PERCENT = {
    "top": 10.0,
    "upper": 30.0,
    "middle": 50.0,
    "lower": 70.0,
    "bottom": 92.0,
}

COLUMN_PERCENT = {
    "left": 12.0,
    "center-left": 32.0,
    "center": 50.0,
    "center-right": 68.0,
    "right": 88.0,
}

FALLBACK_X = 15.0
FALLBACK_Y = 35.0
FALLBACK_STEP = 10.0

# Options described by region share a row code, so they get spaced vertically instead
OPTION_FIRST_Y = 25.0
OPTION_STEP_Y = 10.0
OPTION_MAX_Y = 75.0


@dataclass(frozen=True, slots=True)
class PercentPoint:
    """Position expressed as percentages of the frame (0-100)."""

    x: float
    y: float


@dataclass(frozen=True, slots=True)
class PixelPoint:
    """Absolute pixel position within the captured frame."""

    x: int
    y: int


def _clamp(value: float) -> float:
    return max(0.0, min(100.0, value))


def fallback_percent(index: int = 0) -> PercentPoint:
    """Deterministic position used when a region code cannot be read."""

    return PercentPoint(FALLBACK_X, _clamp(FALLBACK_Y + FALLBACK_STEP * index))


def region_to_percent(region: Any, index: int = 0) -> PercentPoint:
    """Convert a "row-column" region code such as "bottom-center-right" to percentages.

    Unknown or malformed input never raises; it yields ``fallback_percent(index)``.
    When only one axis is recognised the other defaults to the centre line.
    """

    if not isinstance(region, str) or not region.strip():
        return fallback_percent(index)

    normalised = region.strip().lower().replace("_", "-").replace(" ", "-")
    parts = [part for part in normalised.split("-") if part]

    y = next((ROW_PERCENT[part] for part in parts if part in ROW_PERCENT), None)

    x = None
    for compound in ("center-left", "center-right"):
        if compound in normalised:
            x = COLUMN_PERCENT[compound]
            break
    if x is None:
        for part in parts:
            if part in COLUMN_PERCENT:
                x = COLUMN_PERCENT[part]

    if x is None and y is None:
        return fallback_percent(index)

    return PercentPoint(x if x is not None else 50.0, y if y is not None else 50.0)


def option_region_to_percent(region: Any, index: int) -> PercentPoint:
    """Region mapping for answer options: column from the code, rows spaced by index."""

    column = region_to_percent(region, index).x
    return PercentPoint(column, min(OPTION_FIRST_Y + OPTION_STEP_Y * max(index, 0), OPTION_MAX_Y))


def percent_to_pixel(point: PercentPoint, screen_size: Tuple[int, int]) -> PixelPoint:
    """Scale a percent position to pixels for a (width, height) frame."""

    width, height = screen_size
    return PixelPoint(
        x=int(round(point.x / 100.0 * width)),
        y=int(round(point.y / 100.0 * height)),
    )


__all__ = [
    "PercentPoint",
    "PixelPoint",
    "fallback_percent",
    "option_region_to_percent",
    "percent_to_pixel",
    "region_to_percent",
]
