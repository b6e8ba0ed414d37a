"""SQLAlchemy models for escalation persistence."""
from datetime import datetime

from sqlalchemy import DateTime, Integer, String, Text
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


class Base(DeclarativeBase):
    """Base class for all ORM models."""

    pass


class EscalationModel(Base):
    """Failures that exhausted every remediation strategy.

    Keyed by error ID so an escalated response can be correlated with the
    recovery log and this table.
    """

    __tablename__ = 'escalations'

    error_id: Mapped[str] = mapped_column(String(255), primary_key=True)

    category: Mapped[str] = mapped_column(String(50), nullable=False, index=True)
    error: Mapped[str] = mapped_column(Text, nullable=False)
    attempts: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    context: Mapped[str] = mapped_column(Text, nullable=False, default='{}')  # JSON serialized
    correlation_id: Mapped[str | None] = mapped_column(String(255), nullable=True, index=True)

    # Naive UTC
    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, index=True)

    def __repr__(self) -> str:
        return (
            f"<EscalationModel(error_id='{self.error_id}', "
            f"category='{self.category}', attempts={self.attempts})>"
        )
