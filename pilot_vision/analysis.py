"""Request/parse adapter between the solver and a vision backend.

Each purpose has its own prompt and typed response. Responses are parsed
tolerantly (raw JSON, fenced JSON, or the first JSON-looking substring) and
region codes are rewritten to explicit percentages before typing. An
unparseable response yields ``None``; a failed request raises
``AnalysisError`` so the caller can pick its fallback state.
"""
from __future__ import annotations

import asyncio
import json
import logging
import re
from typing import Any, Callable, Dict, List, Optional, TypeVar

from pilot_os.capture import CaptureResult

from . import prompts
from .backends import AnalysisError, VisionBackend
from .coords import option_region_to_percent, region_to_percent
from .responses import (
    AnswerOnly,
    ButtonCheck,
    Classification,
    LayoutLearning,
    QuickCheck,
    VideoCheck,
)

Logger = logging.Logger
T = TypeVar("T")

_FENCED_JSON = re.compile(r"```(?:json)?\s*([\s\S]*?)```")
_JSON_OBJECT = re.compile(r"\{[\s\S]*\}")
_BUTTON_GROUPS = ("buttons", "actionButtons")
_SINGLE_BUTTONS = ("continueButton", "playButton")


def parse_response(text: Optional[str]) -> Optional[Dict[str, Any]]:
    """Decode the first JSON object found in ``text``; ``None`` when nothing parses."""

    if not text:
        return None
    candidates: List[str] = [text.strip()]
    fenced = _FENCED_JSON.search(text)
    if fenced:
        candidates.append(fenced.group(1).strip())
    braces = _JSON_OBJECT.search(text)
    if braces:
        candidates.append(braces.group(0))

    for candidate in candidates:
        try:
            decoded = json.loads(candidate)
        except json.JSONDecodeError:
            continue
        if isinstance(decoded, dict):
            return decoded
    return None


def _has_percent(entry: Dict[str, Any]) -> bool:
    return entry.get("xPercent") is not None and entry.get("yPercent") is not None


def _normalize_options(options: Any) -> None:
    if not isinstance(options, list):
        return
    for index, option in enumerate(options):
        if isinstance(option, dict) and option.get("region") and not _has_percent(option):
            point = option_region_to_percent(option["region"], index)
            option["xPercent"], option["yPercent"] = point.x, point.y


def _normalize_button(entry: Any, index: int) -> None:
    if isinstance(entry, dict) and entry.get("region") and not _has_percent(entry):
        point = region_to_percent(entry["region"], index)
        entry["xPercent"], entry["yPercent"] = point.x, point.y


def normalize_payload(data: Dict[str, Any]) -> Dict[str, Any]:
    """Rewrite every ``region`` code in-place into ``xPercent``/``yPercent``.

    Explicit percentages always win over a region code.
    """

    _normalize_options(data.get("options"))
    quiz = data.get("quiz")
    if isinstance(quiz, dict):
        _normalize_options(quiz.get("options"))
    for group in _BUTTON_GROUPS:
        buttons = data.get(group)
        if isinstance(buttons, dict):
            for index, entry in enumerate(buttons.values()):
                _normalize_button(entry, index)
    for key in _SINGLE_BUTTONS:
        _normalize_button(data.get(key), 0)
    return data


class VisualAnalysisAdapter:
    """Issues purpose-specific prompts and returns typed, normalised responses."""

    def __init__(
        self,
        backend: VisionBackend,
        language: str = prompts.DEFAULT_LANGUAGE,
        stats: Optional[Any] = None,
        logger: Optional[Logger] = None,
    ) -> None:
        self._backend = backend
        self._language = language
        self._stats = stats
        self._logger = logger or logging.getLogger(__name__)

    @property
    def provider(self) -> str:
        return getattr(self._backend, "provider", "unknown")

    def bind_stats(self, stats: Any) -> None:
        """Point AI-call accounting at a fresh stats object (one per run)."""
        self._stats = stats

    async def classify(self, capture: CaptureResult) -> Optional[Classification]:
        return await self._request(
            capture, prompts.classification_prompt(self._language), Classification.from_payload, "classification"
        )

    async def learn_layout(self, capture: CaptureResult) -> Optional[LayoutLearning]:
        return await self._request(
            capture, prompts.layout_learning_prompt(self._language), LayoutLearning.from_payload, "layout learning"
        )

    async def quick_check(self, capture: CaptureResult) -> Optional[QuickCheck]:
        return await self._request(
            capture, prompts.quick_check_prompt(self._language), QuickCheck.from_payload, "quick check"
        )

    async def answer_only(self, capture: CaptureResult, option_count: int) -> Optional[AnswerOnly]:
        return await self._request(
            capture,
            prompts.answer_only_prompt(self._language, option_count),
            AnswerOnly.from_payload,
            "answer only",
        )

    async def check_button(self, capture: CaptureResult, role: str) -> Optional[ButtonCheck]:
        return await self._request(
            capture, prompts.button_check_prompt(self._language, role), ButtonCheck.from_payload, f"{role} check"
        )

    async def check_video(self, capture: CaptureResult) -> Optional[VideoCheck]:
        return await self._request(
            capture, prompts.video_check_prompt(self._language), VideoCheck.from_payload, "video check"
        )

    async def _request(
        self,
        capture: CaptureResult,
        prompt: str,
        build: Callable[[Dict[str, Any]], T],
        purpose: str,
    ) -> Optional[T]:
        if self._stats is not None:
            self._stats.ai_calls += 1
        full_prompt = prompts.with_resolution(prompt, capture.width, capture.height)
        try:
            text = await asyncio.to_thread(self._backend.analyze, capture.png_bytes, full_prompt)
        except AnalysisError:
            raise
        except Exception as exc:
            raise AnalysisError(f"{purpose} request failed: {exc}") from exc

        data = parse_response(text)
        if data is None:
            self._logger.warning("Unparseable %s response: %s", purpose, (text or "")[:200])
            return None
        return build(normalize_payload(data))


__all__ = [
    "AnalysisError",
    "VisualAnalysisAdapter",
    "normalize_payload",
    "parse_response",
]
