"""
Base implementation for escalation persistence.
"""
import logging
from abc import ABC, abstractmethod
from collections import Counter
from datetime import datetime, timedelta, timezone
from typing import Optional, List

from ..types import EscalationRecord, FailureCategory


logger = logging.getLogger(__name__)


class BasePersistence(ABC):
    """Base class for escalation stores.

    Subclasses provide keyed storage; listing, retention and statistics are
    built on top of it here.
    """

    def __init__(self):
        self._initialized = False

    async def initialize(self) -> None:
        """Initialize the persistence backend."""
        if not self._initialized:
            await self._setup()
            self._initialized = True

    @abstractmethod
    async def _setup(self) -> None:
        """Setup the persistence backend. Override in subclasses."""
        pass

    @abstractmethod
    async def save(self, record: EscalationRecord) -> None:
        """Insert or replace the record stored under its error ID."""
        pass

    @abstractmethod
    async def load(self, error_id: str) -> Optional[EscalationRecord]:
        pass

    @abstractmethod
    async def delete(self, error_id: str) -> None:
        pass

    @abstractmethod
    async def list_by_category(self, category: FailureCategory) -> List[EscalationRecord]:
        """Escalations of one category, newest first."""
        pass

    async def list_all(self) -> List[EscalationRecord]:
        """Every stored escalation, newest first."""
        records = []
        for category in FailureCategory:
            records.extend(await self.list_by_category(category))
        return sorted(records, key=lambda r: r.created_at, reverse=True)

    async def cleanup_old(self, days: int = 30) -> int:
        """
        Delete escalations created more than ``days`` ago.

        Args:
            days: Retention window in days

        Returns:
            Number of escalations deleted
        """
        cutoff = datetime.now(timezone.utc) - timedelta(days=days)
        stale = [record.error_id for record in await self.list_all() if record.created_at < cutoff]
        for error_id in stale:
            await self.delete(error_id)

        logger.info(f"Removed {len(stale)} escalations older than {days} days")
        return len(stale)

    async def get_statistics(self) -> dict:
        """Escalation counts per category and the most recent escalation."""
        records = await self.list_all()
        counts = Counter(record.category for record in records)
        latest = records[0] if records else None

        return {
            'total': len(records),
            'by_category': {category.value: counts[category] for category in FailureCategory},
            'max_attempts': max((record.attempts for record in records), default=0),
            'latest_error_id': latest.error_id if latest else None,
            'latest_at': latest.created_at.isoformat() if latest else None,
        }
