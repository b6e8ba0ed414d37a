"""Repository for escalation records."""
import json
import logging
from datetime import datetime, timedelta, timezone

from sqlalchemy import delete, desc, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from ..types import EscalationRecord, FailureCategory
from .models import EscalationModel

logger = logging.getLogger(__name__)


def _to_naive_utc(value: datetime) -> datetime:
    return value.astimezone(timezone.utc).replace(tzinfo=None)


class EscalationRepository:
    """Repository for managing escalation records.

    Wraps an async session; every write commits or rolls back on its own.
    """

    def __init__(self, session: AsyncSession):
        """Initialize with async database session."""
        self.session = session

    async def save_escalation(self, record: EscalationRecord) -> None:
        """Insert or replace an escalation record."""
        try:
            await self.session.merge(EscalationModel(
                error_id=record.error_id,
                category=record.category.value,
                error=record.error,
                attempts=record.attempts,
                context=json.dumps(record.context, default=str),
                correlation_id=record.correlation_id,
                created_at=_to_naive_utc(record.created_at)
            ))
            await self.session.commit()
            logger.debug(f"Saved escalation {record.error_id}")

        except Exception as e:
            await self.session.rollback()
            logger.error(f"Failed to save escalation {record.error_id}: {e}")
            raise

    async def get_escalation(self, error_id: str) -> EscalationRecord | None:
        try:
            result = await self.session.execute(
                select(EscalationModel).where(EscalationModel.error_id == error_id)
            )
            model = result.scalar_one_or_none()
            return self._model_to_record(model) if model else None

        except Exception as e:
            logger.error(f"Failed to load escalation {error_id}: {e}")
            raise

    async def delete_escalation(self, error_id: str) -> None:
        try:
            await self.session.execute(
                delete(EscalationModel).where(EscalationModel.error_id == error_id)
            )
            await self.session.commit()
            logger.debug(f"Deleted escalation {error_id}")

        except Exception as e:
            await self.session.rollback()
            logger.error(f"Failed to delete escalation {error_id}: {e}")
            raise

    async def list_by_category(self, category: FailureCategory) -> list[EscalationRecord]:
        """List escalations for a category, newest first."""
        try:
            result = await self.session.execute(
                select(EscalationModel)
                .where(EscalationModel.category == category.value)
                .order_by(desc(EscalationModel.created_at))
            )
            return [self._model_to_record(model) for model in result.scalars().all()]

        except Exception as e:
            logger.error(f"Failed to list escalations for {category.value}: {e}")
            raise

    async def list_by_correlation_id(self, correlation_id: str) -> list[EscalationRecord]:
        try:
            result = await self.session.execute(
                select(EscalationModel)
                .where(EscalationModel.correlation_id == correlation_id)
                .order_by(desc(EscalationModel.created_at))
            )
            return [self._model_to_record(model) for model in result.scalars().all()]

        except Exception as e:
            logger.error(f"Failed to list escalations for correlation {correlation_id}: {e}")
            raise

    async def count_escalations(self) -> int:
        result = await self.session.execute(select(func.count()).select_from(EscalationModel))
        return result.scalar_one()

    async def cleanup_old_escalations(self, days: int = 30) -> int:
        """Delete escalations older than ``days``; returns how many were removed."""
        cutoff_date = _to_naive_utc(datetime.now(timezone.utc) - timedelta(days=days))
        try:
            result = await self.session.execute(
                delete(EscalationModel).where(EscalationModel.created_at < cutoff_date)
            )
            await self.session.commit()
            count = result.rowcount or 0
            logger.info(f"Cleaned up {count} old escalations")
            return count

        except Exception as e:
            await self.session.rollback()
            logger.error(f"Failed to cleanup old escalations: {e}")
            raise

    async def clear_all(self) -> None:
        try:
            await self.session.execute(delete(EscalationModel))
            await self.session.commit()
        except Exception as e:
            await self.session.rollback()
            logger.error(f"Failed to clear escalations: {e}")
            raise

    def _model_to_record(self, model: EscalationModel) -> EscalationRecord:
        """Convert database model to EscalationRecord."""
        return EscalationRecord(
            error_id=model.error_id,
            category=FailureCategory(model.category),
            error=model.error,
            attempts=model.attempts,
            context=json.loads(model.context),
            correlation_id=model.correlation_id,
            created_at=model.created_at.replace(tzinfo=timezone.utc)
        )
