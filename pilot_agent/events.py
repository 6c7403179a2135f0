"""Status events emitted by the solver for host UIs and telemetry."""
from __future__ import annotations

import json
import logging
from collections import deque
from dataclasses import asdict, dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Any, Callable, Deque, Dict, List, Optional

Logger = logging.Logger

Listener = Callable[["StatusEvent"], None]


@dataclass(slots=True)
class StatusEvent:
    kind: str
    state: str
    previous_state: str
    stats: Dict[str, int]
    context: Dict[str, Any]
    data: Dict[str, Any] = field(default_factory=dict)
    timestamp: str = field(default_factory=lambda: datetime.now().isoformat(timespec="milliseconds"))

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


class StatusChannel:
    """Fan-out of status events to listeners plus a bounded buffer hosts can drain."""

    def __init__(self, max_buffer: int = 500, logger: Optional[Logger] = None) -> None:
        self._listeners: List[Listener] = []
        self._buffer: Deque[StatusEvent] = deque(maxlen=max_buffer)
        self._logger = logger or logging.getLogger(__name__)

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Register ``listener``; the returned callable unsubscribes it."""

        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def publish(self, event: StatusEvent) -> None:
        self._buffer.append(event)
        for listener in list(self._listeners):
            try:
                listener(event)
            except Exception as exc:  # pragma: no cover
                self._logger.error("Status listener failed on %s: %s", event.kind, exc)

    def drain(self) -> List[StatusEvent]:
        events = list(self._buffer)
        self._buffer.clear()
        return events


class EventLogWriter:
    """Appends every published event to ``<logs_dir>/events-<run>.jsonl``."""

    def __init__(self, logs_dir: Path, run_id: Optional[str] = None, logger: Optional[Logger] = None) -> None:
        self._logger = logger or logging.getLogger(__name__)
        run = run_id or datetime.now().strftime("%Y%m%d-%H%M%S")
        logs_dir.mkdir(parents=True, exist_ok=True)
        self.path = logs_dir / f"events-{run}.jsonl"

    def __call__(self, event: StatusEvent) -> None:
        try:
            with self.path.open("a", encoding="utf-8") as handle:
                handle.write(json.dumps(event.to_dict(), default=str) + "\n")
        except OSError as exc:
            self._logger.warning("Failed to append event log %s: %s", self.path, exc)


__all__ = ["EventLogWriter", "StatusChannel", "StatusEvent"]
