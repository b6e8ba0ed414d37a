"""Escalation persistence implementations for the recovery engine."""
from .base import BasePersistence
from .memory import MemoryPersistence
from .sqlalchemy_persistence import SQLAlchemyPersistence

__all__ = [
    'BasePersistence',
    'MemoryPersistence',
    'SQLAlchemyPersistence'
]
