"""Bounded history of strategy applications."""
import threading
from collections import deque
from dataclasses import dataclass, field
from datetime import datetime, timezone

from .types import FailureCategory

DEFAULT_LOG_CAPACITY = 100


@dataclass(frozen=True)
class RecoveryLogEntry:
    """One strategy application, successful or not."""

    error_id: str
    category: FailureCategory
    strategy: str
    success: bool
    action: str
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def to_dict(self) -> dict:
        """Convert to dictionary for serialization."""
        return {
            "timestamp": self.timestamp.isoformat(),
            "error_id": self.error_id,
            "category": self.category.value,
            "strategy": self.strategy,
            "success": self.success,
            "action": self.action,
        }


class RecoveryLog:
    """FIFO ring buffer of log entries; the oldest entry is evicted first."""

    def __init__(self, capacity: int = DEFAULT_LOG_CAPACITY):
        if capacity < 1:
            raise ValueError(f"capacity must be at least 1, got {capacity}")
        self._entries: deque[RecoveryLogEntry] = deque(maxlen=capacity)
        self._lock = threading.Lock()

    @property
    def capacity(self) -> int:
        return self._entries.maxlen

    def append(self, entry: RecoveryLogEntry) -> None:
        with self._lock:
            self._entries.append(entry)

    def entries(self) -> list[RecoveryLogEntry]:
        """Oldest-first copy of the retained entries."""
        with self._lock:
            return list(self._entries)

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def __len__(self) -> int:
        return len(self._entries)
