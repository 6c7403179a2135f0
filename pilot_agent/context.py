"""Quiz context model and the layout cache that owns it.

The cache is filled from either the unified classification response or the
deeper layout-learning response, so the Answering handler can click without
another vision call. Option positions are only kept while the screen is a quiz.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional

from pilot_vision.coords import PercentPoint
from pilot_vision.responses import ButtonSpot, Classification, LayoutLearning, OptionSpot

from .memory import LayoutMemory, LayoutMemoryError

Logger = logging.Logger


class ScreenKind(str, Enum):
    NONE = "none"
    QUIZ = "quiz"
    VIDEO = "video"


class QuizLayout(str, Enum):
    MULTIPLE_CHOICE = "multipleChoice"
    TRUE_FALSE = "trueFalse"
    TEXT_INPUT = "textInput"

    @classmethod
    def parse(cls, value: Optional[str]) -> Optional["QuizLayout"]:
        for member in cls:
            if value and member.value.lower() == value.strip().lower():
                return member
        return None


@dataclass(slots=True)
class PositionedOption:
    letter: str
    text: str
    point: PercentPoint
    is_correct: bool = False


@dataclass(slots=True)
class ButtonPosition:
    point: PercentPoint
    text: str = ""


@dataclass(slots=True)
class LearnedPositions:
    options: List[PositionedOption] = field(default_factory=list)
    submit_button: Optional[ButtonPosition] = None
    next_button: Optional[ButtonPosition] = None
    finish_button: Optional[ButtonPosition] = None
    skip_button: Optional[ButtonPosition] = None
    scroll_direction: str = "down"
    text_input_field: Optional[PercentPoint] = None
    question_area: Optional[PercentPoint] = None


@dataclass(slots=True)
class PendingAnswer:
    correct_answer: str
    explanation: Optional[str] = None


@dataclass(slots=True)
class QuizContext:
    kind: ScreenKind = ScreenKind.NONE
    layout: Optional[QuizLayout] = None
    option_count: int = 0
    learned_positions: LearnedPositions = field(default_factory=LearnedPositions)
    questions_answered: int = 0
    current_question: Optional[str] = None
    last_question: Optional[str] = None
    pending_actions: Optional[PendingAnswer] = None
    confidence: float = 0.0


# Button names the layout prompt may use, in order of preference, per cached role
_LEARNED_BUTTON_SYNONYMS = {
    "submit_button": ("submit", "confirm"),
    "next_button": ("next", "continue", "finish"),
    "finish_button": ("finish",),
    "skip_button": ("skip",),
}


def _button(spot: Optional[ButtonSpot]) -> Optional[ButtonPosition]:
    if spot is None or not spot.usable:
        return None
    return ButtonPosition(point=spot.point, text=spot.text)


def _positioned(options: List[OptionSpot]) -> List[PositionedOption]:
    return [
        PositionedOption(letter=o.letter, text=o.text, point=o.point, is_correct=o.is_correct)
        for o in options
        if o.point is not None
    ]


def _pending(correct_answer: Optional[str], explanation: Optional[str], options: List[OptionSpot]) -> Optional[PendingAnswer]:
    if correct_answer:
        return PendingAnswer(correct_answer, explanation)
    flagged = next((o for o in options if o.is_correct), None)
    if flagged is not None:
        return PendingAnswer(flagged.letter, explanation)
    return None


def _point_dict(point: Optional[PercentPoint]) -> Optional[Dict[str, float]]:
    return None if point is None else {"x": point.x, "y": point.y}


class LayoutCache:
    """Owns the single ``QuizContext`` of a run."""

    def __init__(self, memory: Optional[LayoutMemory] = None, logger: Optional[Logger] = None) -> None:
        self._memory = memory
        self._logger = logger or logging.getLogger(__name__)
        self.context = QuizContext()

    @property
    def has_positions(self) -> bool:
        return bool(self.context.learned_positions.options)

    def apply_classification(self, data: Classification) -> bool:
        """Populate the context from a unified classification.

        Returns True when clickable option positions are now cached.
        """
        ctx = self.context
        ctx.confidence = data.confidence
        if data.screen_type == "video":
            self._set_kind(ScreenKind.VIDEO)
            return False
        if data.screen_type != "quiz":
            self._set_kind(ScreenKind.NONE)
            return False

        self._set_kind(ScreenKind.QUIZ)
        ctx.layout = QuizLayout.parse(data.quiz_type) or ctx.layout
        if data.question:
            ctx.last_question, ctx.current_question = ctx.current_question, data.question

        positions = ctx.learned_positions
        options = _positioned(data.options)
        if options:
            positions.options = options
            ctx.option_count = len(data.options)
        positions.submit_button = _button(data.button("submit")) or positions.submit_button
        positions.next_button = (
            _button(data.button("next")) or _button(data.button("continue")) or positions.next_button
        )
        positions.finish_button = _button(data.button("finish")) or positions.finish_button

        pending = _pending(data.correct_answer, data.explanation, data.options)
        if pending is not None:
            ctx.pending_actions = pending
        self._logger.debug(
            "Classification cached %d option positions (submit=%s, next=%s)",
            len(positions.options),
            positions.submit_button is not None,
            positions.next_button is not None,
        )
        return self.has_positions

    def apply_learned_layout(self, data: LayoutLearning) -> bool:
        """Populate the context from a layout-learning response and persist it."""

        ctx = self.context
        if not data.is_quiz:
            self._set_kind(ScreenKind.VIDEO if data.is_video else ScreenKind.NONE)
            return False

        self._set_kind(ScreenKind.QUIZ)
        ctx.layout = QuizLayout.parse(data.quiz_type) or ctx.layout
        if data.question:
            ctx.last_question, ctx.current_question = ctx.current_question, data.question

        positions = ctx.learned_positions
        positions.options = _positioned(data.options)
        ctx.option_count = len(data.options)
        for attribute, names in _LEARNED_BUTTON_SYNONYMS.items():
            found = next((b for b in (_button(data.buttons.get(n)) for n in names) if b is not None), None)
            setattr(positions, attribute, found)
        positions.text_input_field = data.text_input
        positions.scroll_direction = data.scroll_direction

        ctx.pending_actions = _pending(data.correct_answer, data.explanation, data.options)
        self._persist()
        return True

    def resolve_answer_position(self, answer: Optional[str]) -> Optional[PositionedOption]:
        """Find the option to click: ``is_correct`` flag, then letter, then letter as index."""

        options = self.context.learned_positions.options
        if not options:
            return None
        flagged = next((o for o in options if o.is_correct), None)
        if flagged is not None:
            return flagged
        if not answer:
            return None

        letter = answer.strip().upper()[:1]
        by_letter = next((o for o in options if o.letter.strip().upper() == letter), None)
        if by_letter is not None:
            return by_letter
        index = ord(letter) - ord("A") if letter else -1
        if 0 <= index < len(options):
            return options[index]
        return None

    def set_pending(self, answer: str, explanation: Optional[str] = None) -> None:
        """Queue a new answer; flags from the previous question no longer apply."""

        for option in self.context.learned_positions.options:
            option.is_correct = False
        self.context.pending_actions = PendingAnswer(answer, explanation)

    def take_pending(self) -> Optional[PendingAnswer]:
        pending, self.context.pending_actions = self.context.pending_actions, None
        return pending

    def forget_screen(self) -> None:
        """Clear the screen classification so the next cycle classifies afresh."""
        self._set_kind(ScreenKind.NONE)

    def reset(self) -> None:
        self.context = QuizContext()

    def summary(self) -> Dict[str, Any]:
        return {
            "kind": self.context.kind.value,
            "questions_answered": self.context.questions_answered,
            "has_learned_positions": self.has_positions,
        }

    def snapshot(self) -> Dict[str, Any]:
        ctx = self.context
        positions = ctx.learned_positions
        return {
            "kind": ctx.kind.value,
            "layout": ctx.layout.value if ctx.layout else None,
            "option_count": ctx.option_count,
            "learned_positions": self._positions_payload(),
            "scroll_direction": positions.scroll_direction,
            "questions_answered": ctx.questions_answered,
            "current_question": ctx.current_question,
            "last_question": ctx.last_question,
            "pending_actions": (
                {"correct_answer": ctx.pending_actions.correct_answer, "explanation": ctx.pending_actions.explanation}
                if ctx.pending_actions
                else None
            ),
            "confidence": ctx.confidence,
        }

    def _set_kind(self, kind: ScreenKind) -> None:
        self.context.kind = kind
        if kind is not ScreenKind.QUIZ:
            self.context.learned_positions.options = []
            self.context.option_count = 0

    def _positions_payload(self) -> Dict[str, Any]:
        positions = self.context.learned_positions

        def button(b: Optional[ButtonPosition]) -> Optional[Dict[str, Any]]:
            return None if b is None else {**_point_dict(b.point), "text": b.text}

        return {
            "options": [
                {"letter": o.letter, "text": o.text, "x": o.point.x, "y": o.point.y, "is_correct": o.is_correct}
                for o in positions.options
            ],
            "submit_button": button(positions.submit_button),
            "next_button": button(positions.next_button),
            "finish_button": button(positions.finish_button),
            "skip_button": button(positions.skip_button),
            "text_input_field": _point_dict(positions.text_input_field),
            "question_area": _point_dict(positions.question_area),
        }

    def _persist(self) -> None:
        if self._memory is None:
            return
        ctx = self.context
        try:
            self._memory.save_learned_section(
                ctx.kind.value,
                ctx.option_count,
                ctx.layout.value if ctx.layout else None,
                self._positions_payload(),
            )
        except LayoutMemoryError as exc:
            self._logger.warning("Could not persist learned layout: %s", exc)


__all__ = [
    "ButtonPosition",
    "LayoutCache",
    "LearnedPositions",
    "PendingAnswer",
    "PositionedOption",
    "QuizContext",
    "QuizLayout",
    "ScreenKind",
]
