"""
Tests for the bounded recovery log and attempt tracker.
"""
import asyncio

import pytest

from backend.src.recovery_engine.attempts import AttemptTracker
from backend.src.recovery_engine.recovery_log import RecoveryLog, RecoveryLogEntry
from backend.src.recovery_engine.types import FailureCategory


def _entry(i):
    return RecoveryLogEntry(
        error_id=f"err-{i}",
        category=FailureCategory.GENERIC_ERROR,
        strategy="Log and Retry",
        success=True,
        action="Logged error and preparing retry"
    )


class TestRecoveryLog:
    """Test FIFO eviction and snapshots."""

    def test_evicts_oldest_first(self):
        log = RecoveryLog(capacity=3)
        for i in range(5):
            log.append(_entry(i))

        assert len(log) == 3
        assert [e.error_id for e in log.entries()] == ["err-2", "err-3", "err-4"]

    def test_default_capacity(self):
        log = RecoveryLog()
        for i in range(150):
            log.append(_entry(i))

        assert log.capacity == 100
        assert log.entries()[0].error_id == "err-50"

    def test_entries_is_a_copy(self):
        log = RecoveryLog()
        log.append(_entry(0))
        log.entries().clear()
        assert len(log) == 1

    def test_clear(self):
        log = RecoveryLog()
        log.append(_entry(0))
        log.clear()
        assert log.entries() == []

    def test_invalid_capacity(self):
        with pytest.raises(ValueError):
            RecoveryLog(capacity=0)

    def test_entry_to_dict(self):
        data = _entry(1).to_dict()
        assert data["category"] == "generic_error"
        assert data["error_id"] == "err-1"
        assert data["timestamp"].endswith("+00:00")


class TestAttemptTracker:
    """Test counter lifecycle and per-ID locking."""

    def test_increment_and_clear(self):
        tracker = AttemptTracker()
        assert tracker.get("a") == 0
        assert tracker.increment("a") == 1
        assert tracker.increment("a") == 2
        assert "a" in tracker

        assert tracker.clear("a") == 2
        assert "a" not in tracker
        assert tracker.clear("a") == 0

    def test_reset(self):
        tracker = AttemptTracker()
        tracker.increment("a")
        tracker.increment("b")

        assert tracker.snapshot() == {"a": 1, "b": 1}
        tracker.reset()
        assert len(tracker) == 0

    @pytest.mark.asyncio
    async def test_guard_serializes_same_id(self):
        tracker = AttemptTracker()
        order = []

        async def worker(name):
            async with tracker.guard("same"):
                order.append(f"{name}-start")
                await asyncio.sleep(0.01)
                order.append(f"{name}-end")

        await asyncio.gather(worker("one"), worker("two"))

        assert order == ["one-start", "one-end", "two-start", "two-end"]

    @pytest.mark.asyncio
    async def test_guard_releases_lock_bookkeeping(self):
        tracker = AttemptTracker()
        async with tracker.guard("x"):
            pass

        async with tracker.guard("x"):
            pass
        assert tracker.get("x") == 0

    @pytest.mark.asyncio
    async def test_guard_is_reentrant_within_a_task(self):
        tracker = AttemptTracker()

        async def nested():
            async with tracker.guard("x"):
                async with tracker.guard("x"):
                    return "inner"

        assert await asyncio.wait_for(nested(), 1) == "inner"

    @pytest.mark.asyncio
    async def test_reentry_is_scoped_to_the_holding_task(self):
        tracker = AttemptTracker()
        order = []

        async def holder():
            async with tracker.guard("x"):
                await asyncio.sleep(0.01)
                order.append("holder")

        async def other():
            await asyncio.sleep(0)
            async with tracker.guard("x"):
                order.append("other")

        await asyncio.gather(holder(), other())

        assert order == ["holder", "other"]
