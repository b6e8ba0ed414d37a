"""
Tests for escalation persistence backends.
"""
from datetime import datetime, timedelta, timezone

import pytest
import pytest_asyncio

from backend.src.recovery_engine.engine import RecoveryEngine
from backend.src.recovery_engine.persistence import MemoryPersistence, SQLAlchemyPersistence
from backend.src.recovery_engine.types import EscalationRecord, FailureCategory


def _record(error_id, category=FailureCategory.RPC_ERROR, age_days=0, **kwargs):
    return EscalationRecord(
        error_id=error_id,
        category=category,
        error="RPC endpoint unreachable",
        attempts=3,
        context={"currentProvider": "https://rpc-a.example"},
        created_at=datetime.now(timezone.utc) - timedelta(days=age_days),
        **kwargs
    )


@pytest_asyncio.fixture
async def sqlalchemy_persistence(tmp_path):
    persistence = SQLAlchemyPersistence(f"sqlite+aiosqlite:///{tmp_path / 'escalations.db'}")
    await persistence.initialize()
    yield persistence
    await persistence.close()


@pytest.fixture
def memory_persistence():
    return MemoryPersistence()


@pytest_asyncio.fixture(params=["memory", "sqlalchemy"])
async def persistence(request, tmp_path):
    if request.param == "memory":
        yield MemoryPersistence()
        return
    backend = SQLAlchemyPersistence(f"sqlite+aiosqlite:///{tmp_path / 'shared.db'}")
    await backend.initialize()
    yield backend
    await backend.close()


class TestEscalationRecord:
    """Test record serialization."""

    def test_dict_round_trip(self):
        record = _record("err-1", correlation_id="req-1")
        restored = EscalationRecord.from_dict(record.to_dict())
        assert restored == record

    def test_naive_timestamp_becomes_utc(self):
        record = EscalationRecord("err-1", FailureCategory.RPC_ERROR, "x", 1, created_at=datetime(2024, 1, 1))
        assert record.created_at.tzinfo == timezone.utc


class TestPersistenceBackends:
    """Behaviour shared by every backend."""

    @pytest.mark.asyncio
    async def test_save_and_load(self, persistence):
        await persistence.save(_record("err-1", correlation_id="req-1"))

        loaded = await persistence.load("err-1")

        assert loaded is not None
        assert loaded.category == FailureCategory.RPC_ERROR
        assert loaded.attempts == 3
        assert loaded.context == {"currentProvider": "https://rpc-a.example"}
        assert loaded.correlation_id == "req-1"
        assert loaded.created_at.tzinfo is not None

    @pytest.mark.asyncio
    async def test_load_missing(self, persistence):
        assert await persistence.load("nope") is None

    @pytest.mark.asyncio
    async def test_save_replaces_existing(self, persistence):
        await persistence.save(_record("err-1"))
        replacement = _record("err-1")
        replacement.attempts = 5
        await persistence.save(replacement)

        assert (await persistence.load("err-1")).attempts == 5

    @pytest.mark.asyncio
    async def test_delete(self, persistence):
        await persistence.save(_record("err-1"))
        await persistence.delete("err-1")
        await persistence.delete("never-existed")

        assert await persistence.load("err-1") is None

    @pytest.mark.asyncio
    async def test_list_by_category(self, persistence):
        await persistence.save(_record("rpc-1"))
        await persistence.save(_record("rpc-2"))
        await persistence.save(_record("db-1", category=FailureCategory.DATABASE_ERROR))

        rpc = await persistence.list_by_category(FailureCategory.RPC_ERROR)

        assert {r.error_id for r in rpc} == {"rpc-1", "rpc-2"}
        assert await persistence.list_by_category(FailureCategory.NETWORK_TIMEOUT) == []

    @pytest.mark.asyncio
    async def test_cleanup_old(self, persistence):
        await persistence.save(_record("old", age_days=40))
        await persistence.save(_record("fresh", age_days=1))

        deleted = await persistence.cleanup_old(days=30)

        assert deleted == 1
        assert await persistence.load("old") is None
        assert await persistence.load("fresh") is not None

    @pytest.mark.asyncio
    async def test_statistics(self, persistence):
        await persistence.save(_record("rpc-1", age_days=2))
        await persistence.save(_record("db-1", category=FailureCategory.DATABASE_ERROR))

        stats = await persistence.get_statistics()

        assert stats["total"] == 2
        assert stats["by_category"]["rpc_error"] == 1
        assert stats["by_category"]["database_error"] == 1
        assert stats["by_category"]["network_timeout"] == 0
        assert stats["max_attempts"] == 3
        assert stats["latest_error_id"] == "db-1"

    @pytest.mark.asyncio
    async def test_statistics_when_empty(self, persistence):
        stats = await persistence.get_statistics()

        assert stats["total"] == 0
        assert stats["latest_error_id"] is None
        assert stats["latest_at"] is None

    @pytest.mark.asyncio
    async def test_list_all_newest_first(self, persistence):
        await persistence.save(_record("old", age_days=3))
        await persistence.save(_record("db", category=FailureCategory.DATABASE_ERROR, age_days=1))
        await persistence.save(_record("new"))

        assert [r.error_id for r in await persistence.list_all()] == ["new", "db", "old"]


class TestSQLAlchemyPersistence:
    """SQLAlchemy-specific behaviour."""

    @pytest.mark.asyncio
    async def test_list_by_correlation_id_newest_first(self, sqlalchemy_persistence):
        await sqlalchemy_persistence.save(_record("older", age_days=2, correlation_id="req-1"))
        await sqlalchemy_persistence.save(_record("newer", correlation_id="req-1"))
        await sqlalchemy_persistence.save(_record("other", correlation_id="req-2"))

        records = await sqlalchemy_persistence.list_by_correlation_id("req-1")

        assert [r.error_id for r in records] == ["newer", "older"]

    @pytest.mark.asyncio
    async def test_clear_and_stats(self, sqlalchemy_persistence):
        await sqlalchemy_persistence.save(_record("rpc-1"))
        await sqlalchemy_persistence.clear()

        stats = await sqlalchemy_persistence.get_stats()

        assert stats["total"] == 0
        assert stats["type"] == "sqlalchemy"

    @pytest.mark.asyncio
    async def test_survives_new_instance(self, tmp_path):
        url = f"sqlite+aiosqlite:///{tmp_path / 'escalations.db'}"
        first = SQLAlchemyPersistence(url)
        await first.save(_record("err-1"))
        await first.close()

        second = SQLAlchemyPersistence(url)
        try:
            assert (await second.load("err-1")).error == "RPC endpoint unreachable"
        finally:
            await second.close()

    @pytest.mark.asyncio
    async def test_engine_escalation_round_trip(self, sqlalchemy_persistence):
        engine = RecoveryEngine(persistence=sqlalchemy_persistence)

        async def validate(ctx):
            return False

        result = await engine.recover(RuntimeError("Validation failed"), {"order": 42}, validate)

        record = await sqlalchemy_persistence.load(result.error_id)
        assert record.attempts == 3
        assert record.context == {}


class TestMemoryPersistence:
    """Memory-specific helpers."""

    @pytest.mark.asyncio
    async def test_clear(self, memory_persistence):
        await memory_persistence.save(_record("a"))
        await memory_persistence.save(_record("b"))
        assert len(await memory_persistence.list_all()) == 2

        await memory_persistence.clear()
        assert await memory_persistence.list_all() == []

    @pytest.mark.asyncio
    async def test_list_by_correlation_id(self, memory_persistence):
        await memory_persistence.save(_record("older", age_days=2, correlation_id="req-1"))
        await memory_persistence.save(_record("newer", correlation_id="req-1"))
        await memory_persistence.save(_record("other", correlation_id="req-2"))

        records = await memory_persistence.list_by_correlation_id("req-1")

        assert [r.error_id for r in records] == ["newer", "older"]
