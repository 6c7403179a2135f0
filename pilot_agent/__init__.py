"""Quiz solving state machine and its supporting pieces."""
from __future__ import annotations

from typing import TYPE_CHECKING

from .state import QuizState, Stats

if TYPE_CHECKING:  # pragma: no cover - import typing aid only
    from .memory import LayoutMemory
    from .solver import QuizSolver

__all__ = ["LayoutMemory", "QuizSolver", "QuizState", "Stats"]


def __getattr__(name: str):
    if name == "QuizSolver":
        from .solver import QuizSolver

        return QuizSolver
    if name == "LayoutMemory":
        from .memory import LayoutMemory

        return LayoutMemory
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")
