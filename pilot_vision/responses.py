"""Typed shapes of the JSON documents returned for each prompt purpose.

Vision models return loosely structured JSON. Each ``from_payload`` accepts a
decoded dict, tolerates missing or oddly typed fields, and exposes explicit
optional attributes instead of an untyped blob. Region codes must already have
been rewritten into percentages (see ``analysis.normalize_payload``).
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from .coords import PercentPoint

SCREEN_TYPES = ("quiz", "video", "instructions", "results", "other")


def _as_bool(value: Any) -> bool:
    if isinstance(value, str):
        return value.strip().lower() in ("true", "yes", "1")
    return bool(value)


def _as_float(value: Any) -> Optional[float]:
    if isinstance(value, bool) or value is None:
        return None
    if isinstance(value, str):
        value = value.strip().rstrip("%")
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


def _as_percent(value: Any) -> Optional[float]:
    numeric = _as_float(value)
    if numeric is None:
        return None
    return max(0.0, min(100.0, numeric))


def _as_text(value: Any) -> Optional[str]:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def _as_dict(value: Any) -> Dict[str, Any]:
    return value if isinstance(value, dict) else {}


def _point(data: Any) -> Optional[PercentPoint]:
    entry = _as_dict(data)
    x = _as_percent(entry.get("xPercent"))
    y = _as_percent(entry.get("yPercent"))
    if x is None or y is None:
        return None
    return PercentPoint(x, y)


@dataclass(slots=True)
class ButtonSpot:
    """A button the model reports; ``point`` is None when no coordinates were given."""

    exists: bool
    text: str = ""
    point: Optional[PercentPoint] = None

    @classmethod
    def from_payload(cls, data: Any) -> "ButtonSpot":
        entry = _as_dict(data)
        return cls(
            exists=_as_bool(entry.get("exists", entry.get("visible", False))),
            text=_as_text(entry.get("text")) or "",
            point=_point(entry),
        )

    @property
    def usable(self) -> bool:
        return self.exists and self.point is not None


@dataclass(slots=True)
class OptionSpot:
    letter: str
    text: str
    point: Optional[PercentPoint]
    is_correct: bool = False

    @classmethod
    def from_payload(cls, data: Any, index: int) -> "OptionSpot":
        entry = _as_dict(data)
        letter = _as_text(entry.get("letter")) or chr(ord("A") + index)
        return cls(
            letter=letter,
            text=_as_text(entry.get("text")) or "",
            point=_point(entry),
            is_correct=_as_bool(entry.get("isCorrect", False)),
        )


def _options(data: Any) -> List[OptionSpot]:
    if not isinstance(data, list):
        return []
    return [OptionSpot.from_payload(item, idx) for idx, item in enumerate(data) if isinstance(item, dict)]


def _buttons(data: Any) -> Dict[str, ButtonSpot]:
    return {
        str(name).strip().lower(): ButtonSpot.from_payload(entry)
        for name, entry in _as_dict(data).items()
        if isinstance(entry, dict)
    }


@dataclass(slots=True)
class Classification:
    """Unified screen classification (type, quiz content, buttons, video state)."""

    screen_type: str
    confidence: float = 0.0
    description: Optional[str] = None
    question: Optional[str] = None
    quiz_type: Optional[str] = None
    options: List[OptionSpot] = field(default_factory=list)
    correct_answer: Optional[str] = None
    explanation: Optional[str] = None
    buttons: Dict[str, ButtonSpot] = field(default_factory=dict)
    video_playing: bool = False
    time_remaining: Optional[float] = None

    @classmethod
    def from_payload(cls, data: Dict[str, Any]) -> "Classification":
        screen_type = (_as_text(data.get("screenType")) or "other").lower()
        if screen_type not in SCREEN_TYPES:
            screen_type = "other"
        quiz = _as_dict(data.get("quiz"))
        video = _as_dict(data.get("video"))
        buttons = _buttons(data.get("buttons"))
        # Instruction screens sometimes report their buttons under actionButtons
        for name, spot in _buttons(data.get("actionButtons")).items():
            buttons.setdefault(name, spot)
        return cls(
            screen_type=screen_type,
            confidence=_as_float(data.get("confidence")) or 0.0,
            description=_as_text(data.get("description")),
            question=_as_text(quiz.get("question")),
            quiz_type=_as_text(quiz.get("quizType")),
            options=_options(quiz.get("options")),
            correct_answer=_as_text(quiz.get("correctAnswer")),
            explanation=_as_text(quiz.get("explanation")),
            buttons=buttons,
            video_playing=_as_bool(video.get("isPlaying", False)),
            time_remaining=_as_float(video.get("timeRemaining")),
        )

    def button(self, name: str) -> Optional[ButtonSpot]:
        spot = self.buttons.get(name)
        return spot if spot is not None and spot.exists else None


@dataclass(slots=True)
class LayoutLearning:
    """Deep layout description with precise element coordinates."""

    is_quiz: bool
    is_video: bool = False
    quiz_type: Optional[str] = None
    question: Optional[str] = None
    options: List[OptionSpot] = field(default_factory=list)
    correct_answer: Optional[str] = None
    explanation: Optional[str] = None
    buttons: Dict[str, ButtonSpot] = field(default_factory=dict)
    text_input: Optional[PercentPoint] = None
    scroll_needed: bool = False
    scroll_direction: str = "down"

    @classmethod
    def from_payload(cls, data: Dict[str, Any]) -> "LayoutLearning":
        text_input = _as_dict(data.get("textInput"))
        scroll = _as_dict(data.get("scroll"))
        return cls(
            is_quiz=_as_bool(data.get("isQuiz", False)),
            is_video=_as_bool(data.get("isVideo", False)),
            quiz_type=_as_text(data.get("quizType")),
            question=_as_text(data.get("question")),
            options=_options(data.get("options")),
            correct_answer=_as_text(data.get("correctAnswer")),
            explanation=_as_text(data.get("explanation")),
            buttons=_buttons(data.get("buttons")),
            text_input=_point(text_input) if _as_bool(text_input.get("exists", False)) else None,
            scroll_needed=_as_bool(scroll.get("needed", False)),
            scroll_direction=(_as_text(scroll.get("direction")) or "down").lower(),
        )


@dataclass(slots=True)
class QuickCheck:
    """Minimal-token answer to "what changed on screen?"."""

    question_changed: bool = False
    new_question: Optional[str] = None
    correct_answer: Optional[str] = None
    quiz_ended: bool = False
    is_video: bool = False
    submit_visible: bool = False
    next_visible: bool = False
    finish_visible: bool = False
    continue_watching_visible: bool = False
    continue_button: Optional[PercentPoint] = None

    @classmethod
    def from_payload(cls, data: Dict[str, Any]) -> "QuickCheck":
        visible = _as_dict(data.get("buttonsVisible"))
        return cls(
            question_changed=_as_bool(data.get("questionChanged", False)),
            new_question=_as_text(data.get("newQuestion")),
            correct_answer=_as_text(data.get("correctAnswer")),
            quiz_ended=_as_bool(data.get("quizEnded", False)),
            is_video=_as_bool(data.get("isVideo", False)),
            submit_visible=_as_bool(visible.get("submit", False)),
            next_visible=_as_bool(visible.get("next", False)),
            finish_visible=_as_bool(visible.get("finish", False)),
            continue_watching_visible=_as_bool(visible.get("continueWatching", False)),
            continue_button=_point(data.get("continueButton")),
        )


@dataclass(slots=True)
class AnswerOnly:
    answer: Optional[str]
    explanation: Optional[str] = None

    @classmethod
    def from_payload(cls, data: Dict[str, Any]) -> "AnswerOnly":
        return cls(answer=_as_text(data.get("answer")), explanation=_as_text(data.get("explanation")))


@dataclass(slots=True)
class ButtonCheck:
    """Result of re-locating a single known button."""

    found: bool
    point: Optional[PercentPoint] = None
    text: Optional[str] = None

    @classmethod
    def from_payload(cls, data: Dict[str, Any]) -> "ButtonCheck":
        return cls(
            found=_as_bool(data.get("found", False)),
            point=_point(data),
            text=_as_text(data.get("text")),
        )


@dataclass(slots=True)
class VideoCheck:
    """Lightweight progress check issued by the video wait monitor."""

    screen_type: str = "other"
    video_playing: Optional[bool] = None
    video_ended: bool = False
    time_remaining: Optional[float] = None
    has_quiz_now: bool = False
    continue_button: Optional[PercentPoint] = None
    play_button: Optional[PercentPoint] = None

    @classmethod
    def from_payload(cls, data: Dict[str, Any]) -> "VideoCheck":
        playing = data.get("videoPlaying")
        return cls(
            screen_type=(_as_text(data.get("screenType")) or "other").lower(),
            video_playing=None if playing is None else _as_bool(playing),
            video_ended=_as_bool(data.get("videoEnded", False)),
            time_remaining=_as_float(data.get("timeRemaining")),
            has_quiz_now=_as_bool(data.get("hasQuizNow", False)),
            continue_button=_point(data.get("continueButton")),
            play_button=_point(data.get("playButton")),
        )

    @property
    def quiz_visible(self) -> bool:
        return self.has_quiz_now or self.screen_type == "quiz"


__all__ = [
    "AnswerOnly",
    "ButtonCheck",
    "ButtonSpot",
    "Classification",
    "LayoutLearning",
    "OptionSpot",
    "QuickCheck",
    "SCREEN_TYPES",
    "VideoCheck",
]
