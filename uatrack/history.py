"""Page-view history kept in the storage collaborator."""

from __future__ import annotations

import json
import logging
import time
from dataclasses import asdict, dataclass
from datetime import datetime, timezone
from typing import Callable, Optional

from .storage import Storage

logger = logging.getLogger(__name__)

HISTORY_KEY = "__uatrack.analytics.history"
MAX_HISTORY_ELEMENTS = 20
MIN_SECONDS_BETWEEN_SAME_VALUE = 60.0


@dataclass
class HistoryElement:
    name: str
    value: str
    time: str = ""
    internal_time: float = 0.0


class HistoryStore:
    def __init__(self, storage: Storage, clock: Callable[[], float] = time.time):
        self.storage = storage
        self._clock = clock

    def add_element(self, element: HistoryElement) -> bool:
        """Record `element` newest-first. Returns False when it was a recent duplicate."""
        now = self._clock()
        element.internal_time = now
        if not element.time:
            element.time = datetime.fromtimestamp(now, tz=timezone.utc).isoformat()

        history = self.get_history()
        latest = history[0] if history else None
        if (
            latest is not None
            and latest.value == element.value
            and now - latest.internal_time < MIN_SECONDS_BETWEEN_SAME_VALUE
        ):
            return False

        history.insert(0, element)
        self._save(history[:MAX_HISTORY_ELEMENTS])
        return True

    def get_history(self) -> list[HistoryElement]:
        raw = self.storage.get_item(HISTORY_KEY)
        if not raw:
            return []
        try:
            parsed = json.loads(raw)
        except json.JSONDecodeError:
            logger.warning("discarding unreadable page history")
            return []
        if not isinstance(parsed, list):
            return []
        out: list[HistoryElement] = []
        for item in parsed:
            if not isinstance(item, dict):
                continue
            out.append(
                HistoryElement(
                    name=str(item.get("name", "")),
                    value=str(item.get("value", "")),
                    time=str(item.get("time", "")),
                    internal_time=float(item.get("internal_time", 0.0)),
                )
            )
        return out

    def get_most_recent_element(self) -> Optional[HistoryElement]:
        history = self.get_history()
        return history[0] if history else None

    def clear(self) -> None:
        self.storage.remove_item(HISTORY_KEY)

    def _save(self, history: list[HistoryElement]) -> None:
        self.storage.set_item(HISTORY_KEY, json.dumps([asdict(e) for e in history]))
