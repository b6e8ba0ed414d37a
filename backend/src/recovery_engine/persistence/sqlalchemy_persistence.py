"""SQLAlchemy-based persistence for escalation records."""
import asyncio
from pathlib import Path
from typing import Any

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from ..types import EscalationRecord, FailureCategory
from .base import BasePersistence
from .repository import EscalationRepository


class SQLAlchemyPersistence(BasePersistence):
    """SQLAlchemy-based persistence implementation."""

    def __init__(self, database_url: str | None = None):
        """Initialize SQLAlchemy persistence.

        Args:
            database_url: SQLAlchemy database URL. Defaults to SQLite in the user's home.

        """
        super().__init__()
        if database_url is None:
            data_dir = Path.home() / ".recovery-engine" / "data"
            data_dir.mkdir(parents=True, exist_ok=True)
            database_url = f"sqlite+aiosqlite:///{data_dir / 'escalations.db'}"

        self.database_url = database_url
        self.engine = create_async_engine(
            database_url,
            echo=False,
            pool_pre_ping=True,
        )
        self.session_factory = async_sessionmaker(
            self.engine,
            class_=AsyncSession,
            expire_on_commit=False
        )
        self._init_lock = asyncio.Lock()

    async def _ensure_initialized(self):
        """Ensure database tables are created."""
        if self._initialized:
            return

        async with self._init_lock:
            if self._initialized:
                return

            from .models import Base

            async with self.engine.begin() as conn:
                await conn.run_sync(Base.metadata.create_all)

            self._initialized = True

    async def _setup(self) -> None:
        await self._ensure_initialized()

    async def save(self, record: EscalationRecord) -> None:
        await self._ensure_initialized()
        async with self.session_factory() as session:
            await EscalationRepository(session).save_escalation(record)

    async def load(self, error_id: str) -> EscalationRecord | None:
        await self._ensure_initialized()
        async with self.session_factory() as session:
            return await EscalationRepository(session).get_escalation(error_id)

    async def delete(self, error_id: str) -> None:
        await self._ensure_initialized()
        async with self.session_factory() as session:
            await EscalationRepository(session).delete_escalation(error_id)

    async def list_by_category(self, category: FailureCategory) -> list[EscalationRecord]:
        await self._ensure_initialized()
        async with self.session_factory() as session:
            return await EscalationRepository(session).list_by_category(category)

    async def list_by_correlation_id(self, correlation_id: str) -> list[EscalationRecord]:
        await self._ensure_initialized()
        async with self.session_factory() as session:
            return await EscalationRepository(session).list_by_correlation_id(correlation_id)

    async def clear(self) -> None:
        await self._ensure_initialized()
        async with self.session_factory() as session:
            await EscalationRepository(session).clear_all()

    async def cleanup_old(self, days: int = 30) -> int:
        """Delete escalations older than ``days`` in a single statement."""
        await self._ensure_initialized()
        async with self.session_factory() as session:
            return await EscalationRepository(session).cleanup_old_escalations(days=days)

    async def get_stats(self) -> dict[str, Any]:
        """Get persistence statistics."""
        stats = await self.get_statistics()
        stats["type"] = "sqlalchemy"
        stats["database_url"] = self.database_url
        return stats

    async def close(self):
        """Close database connections."""
        await self.engine.dispose()
