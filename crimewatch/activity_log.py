"""Bounded, timestamped activity history shown to users alongside reports."""

import threading
from collections import deque
from datetime import datetime
from typing import Callable, List, Optional

from utils.logging_utils import get_tagged_logger

logger = get_tagged_logger(__name__, tag="activity_log")

Subscriber = Callable[[str], None]


class ActivityLog:
    """Thread-safe ring of 'HH:MM:SS: message' lines with synchronous listeners."""

    def __init__(self, max_entries: int = 500, clock: Callable[[], datetime] = datetime.now) -> None:
        self._entries: deque[str] = deque(maxlen=max_entries)
        self._subscribers: List[Subscriber] = []
        self._clock = clock
        self._lock = threading.Lock()

    def add(self, message: str) -> str:
        """Timestamp and store a message, then notify subscribers in registration order."""
        entry = f"{self._clock():%H:%M:%S}: {message}"
        with self._lock:
            self._entries.append(entry)
            subscribers = list(self._subscribers)
        for callback in subscribers:
            try:
                callback(entry)
            except Exception:
                logger.exception("Activity log subscriber failed")
        return entry

    __call__ = add

    def subscribe(self, callback: Subscriber) -> None:
        with self._lock:
            self._subscribers.append(callback)

    def unsubscribe(self, callback: Subscriber) -> None:
        with self._lock:
            try:
                self._subscribers.remove(callback)
            except ValueError:
                logger.debug("Unsubscribe for unknown activity log subscriber ignored")

    def entries(self, limit: Optional[int] = None) -> List[str]:
        """Oldest-first copy of the history; `limit` keeps only the newest entries."""
        with self._lock:
            items = list(self._entries)
        if limit is not None:
            items = items[-limit:] if limit > 0 else []
        return items

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()
        self.add("Logs cleared.")
