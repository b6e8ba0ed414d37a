"""In-memory escalation store."""
import asyncio

from ..types import EscalationRecord, FailureCategory
from .base import BasePersistence


class MemoryPersistence(BasePersistence):
    """Process-local escalation store keyed by error ID.

    Records are lost on restart; the engine uses it in tests and wherever
    escalations only need to be inspected during the process lifetime.
    """

    def __init__(self):
        super().__init__()
        self._records: dict[str, EscalationRecord] = {}
        self._lock = asyncio.Lock()

    async def _setup(self) -> None:
        pass

    async def save(self, record: EscalationRecord) -> None:
        async with self._lock:
            self._records[record.error_id] = record

    async def load(self, error_id: str) -> EscalationRecord | None:
        async with self._lock:
            return self._records.get(error_id)

    async def delete(self, error_id: str) -> None:
        async with self._lock:
            self._records.pop(error_id, None)

    async def list_by_category(self, category: FailureCategory) -> list[EscalationRecord]:
        return [record for record in await self.list_all() if record.category == category]

    async def list_by_correlation_id(self, correlation_id: str) -> list[EscalationRecord]:
        return [record for record in await self.list_all() if record.correlation_id == correlation_id]

    async def list_all(self) -> list[EscalationRecord]:
        async with self._lock:
            records = list(self._records.values())
        return sorted(records, key=lambda r: r.created_at, reverse=True)

    async def clear(self) -> None:
        async with self._lock:
            self._records.clear()
