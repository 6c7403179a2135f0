"""Solver states and per-run counters."""
from __future__ import annotations

from dataclasses import asdict, dataclass
from enum import Enum
from typing import Dict


class QuizState(str, Enum):
    IDLE = "Idle"
    SCANNING = "Scanning"
    CLASSIFYING = "Classifying"
    LEARNING_LAYOUT = "LearningLayout"
    ANSWERING = "Answering"
    WAITING_FOR_CHANGE = "WaitingForChange"
    CLICKING_SUBMIT = "ClickingSubmit"
    CLICKING_NEXT = "ClickingNext"
    CLICKING_FINISH = "ClickingFinish"
    QUIZ_COMPLETED = "QuizCompleted"
    SCROLLING = "Scrolling"
    WAITING_FOR_VIDEO = "WaitingForVideo"
    STUCK_RECOVERY = "StuckRecovery"
    ERROR = "Error"


@dataclass(slots=True)
class Stats:
    """Monotonic counters for one run; replaced wholesale on ``start()``."""

    total_answered: int = 0
    cache_hits: int = 0
    cache_misses: int = 0
    ai_calls: int = 0
    position_reuses: int = 0
    stuck_recoveries: int = 0

    def snapshot(self) -> Dict[str, int]:
        return asdict(self)

    @property
    def hit_rate(self) -> float:
        lookups = self.cache_hits + self.cache_misses
        return (self.cache_hits / lookups * 100.0) if lookups else 0.0


__all__ = ["QuizState", "Stats"]
