"""Persistent store of learned quiz layouts."""
from __future__ import annotations

import hashlib
import json
import logging
import time
from dataclasses import asdict, dataclass, field
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional

Logger = logging.Logger

SECTIONS_FILE = "learned_sections.json"


class LayoutMemoryError(RuntimeError):
    """Raised when learned sections cannot be persisted or reloaded."""


@dataclass(slots=True)
class LearnedSection:
    """A quiz layout recognised earlier, keyed by a short visual hash."""

    id: str
    kind: str
    option_count: int
    layout: Optional[str]
    positions: Dict[str, Any] = field(default_factory=dict)
    created_at: float = 0.0
    last_used: float = 0.0


def section_id(kind: str, option_count: int, layout: Optional[str], positions: Dict[str, Any]) -> str:
    """Deterministic 12-char id; option/question areas are rounded to 10-point bands."""

    options = positions.get("options") or []
    question_area = positions.get("question_area") or {}
    first_option = options[0] if options else {}
    data = json.dumps(
        {
            "type": kind,
            "optionCount": option_count,
            "layout": layout,
            "questionAreaTop": round((question_area.get("y") or 0) / 10) * 10,
            "optionAreaTop": round((first_option.get("y") or 0) / 10) * 10,
        },
        sort_keys=True,
    )
    return hashlib.md5(data.encode("utf-8")).hexdigest()[:12]


class LayoutMemory:
    """Keeps at most ``max_sections`` learned sections, evicting the least recently used."""

    def __init__(
        self,
        memory_dir: Path,
        max_sections: int = 50,
        expiry_s: float = 30 * 60,
        logger: Optional[Logger] = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._memory_dir = memory_dir
        self._max_sections = max_sections
        self._expiry_s = expiry_s
        self._logger = logger or logging.getLogger(__name__)
        self._clock = clock
        self._sections: Dict[str, LearnedSection] = {}

        self._memory_dir.mkdir(parents=True, exist_ok=True)
        self._load_existing()

    @property
    def path(self) -> Path:
        return self._memory_dir / SECTIONS_FILE

    def save_learned_section(
        self,
        kind: str,
        option_count: int,
        layout: Optional[str],
        positions: Dict[str, Any],
    ) -> LearnedSection:
        """Store (or refresh) a section and persist the whole set.

        Raises:
            LayoutMemoryError: If the sections file cannot be written
        """
        now = self._clock()
        self._drop_expired(now)

        ident = section_id(kind, option_count, layout, positions)
        existing = self._sections.get(ident)
        if existing is None and len(self._sections) >= self._max_sections:
            self._evict_oldest()

        section = LearnedSection(
            id=ident,
            kind=kind,
            option_count=option_count,
            layout=layout,
            positions=positions,
            created_at=existing.created_at if existing else now,
            last_used=now,
        )
        self._sections[ident] = section
        self._persist()
        self._logger.info("Saved learned section %s (type: %s, options: %d)", ident, kind, option_count)
        return section

    def get(self, ident: str) -> Optional[LearnedSection]:
        section = self._sections.get(ident)
        if section is None:
            return None
        if self._clock() - section.last_used > self._expiry_s:
            del self._sections[ident]
            self._logger.debug("Section %s expired", ident)
            return None
        return section

    def sections(self) -> List[LearnedSection]:
        return list(self._sections.values())

    def clear(self) -> None:
        count = len(self._sections)
        self._sections.clear()
        self._persist()
        self._logger.info("Cleared %d learned sections", count)

    def _drop_expired(self, now: float) -> None:
        expired = [ident for ident, s in self._sections.items() if now - s.last_used > self._expiry_s]
        for ident in expired:
            del self._sections[ident]
        if expired:
            self._logger.debug("Dropped %d expired sections", len(expired))

    def _evict_oldest(self) -> None:
        oldest = min(self._sections.values(), key=lambda s: s.last_used)
        del self._sections[oldest.id]
        self._logger.debug("Evicted least recently used section %s", oldest.id)

    def _persist(self) -> None:
        payload = [asdict(section) for section in self._sections.values()]
        try:
            self.path.write_text(json.dumps(payload, indent=2), encoding="utf-8")
        except (OSError, TypeError) as exc:
            raise LayoutMemoryError(f"Failed to write {self.path}: {exc}") from exc

    def _load_existing(self) -> None:
        if not self.path.exists():
            return
        try:
            payload = json.loads(self.path.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as exc:
            self._logger.warning("Ignoring unreadable %s: %s", self.path, exc)
            return

        for entry in payload if isinstance(payload, list) else []:
            try:
                section = LearnedSection(**entry)
            except TypeError:
                self._logger.debug("Skipping malformed section entry: %s", entry)
                continue
            self._sections[section.id] = section

        self._drop_expired(self._clock())
        self._logger.debug("Loaded %d learned sections", len(self._sections))


__all__ = ["LayoutMemory", "LayoutMemoryError", "LearnedSection", "section_id"]
