"""Attempt bookkeeping per failure identity."""
import asyncio
import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from contextvars import ContextVar

logger = logging.getLogger(__name__)

# (tracker id, error id) pairs whose lock is held by the current task
_held: ContextVar[frozenset[tuple[int, str]]] = ContextVar("recovery_held_locks", default=frozenset())


class AttemptTracker:
    """Counts unsuccessful recovery cycles per error ID.

    Entries exist only while a failure is being worked on: they are created
    on the first failed cycle and removed on recovery or escalation.
    ``guard`` serializes concurrent recoveries of the same error ID.
    """

    def __init__(self):
        self._attempts: dict[str, int] = {}
        self._locks: dict[str, asyncio.Lock] = {}
        self._holders: dict[str, int] = {}

    def get(self, error_id: str) -> int:
        return self._attempts.get(error_id, 0)

    def increment(self, error_id: str) -> int:
        count = self._attempts.get(error_id, 0) + 1
        self._attempts[error_id] = count
        return count

    def clear(self, error_id: str) -> int:
        """Drop the counter and return its value before deletion."""
        return self._attempts.pop(error_id, 0)

    def reset(self) -> None:
        """Drop every counter."""
        if self._attempts:
            logger.debug(f"Resetting {len(self._attempts)} attempt counters")
        self._attempts.clear()

    def snapshot(self) -> dict[str, int]:
        return dict(self._attempts)

    def __len__(self) -> int:
        return len(self._attempts)

    def __contains__(self, error_id: object) -> bool:
        return error_id in self._attempts

    @asynccontextmanager
    async def guard(self, error_id: str) -> AsyncIterator[None]:
        """Hold the per-error-ID lock for the duration of the block.

        Re-entrant within a task: a recovery started from inside a guarded
        block (a validation that calls ``recover`` again) does not wait on the
        lock its caller already holds.
        """
        key = (id(self), error_id)
        held = _held.get()
        if key in held:
            logger.debug(f"Re-entering guard for {error_id}")
            yield
            return

        lock = self._locks.get(error_id)
        if lock is None:
            lock = self._locks[error_id] = asyncio.Lock()
        self._holders[error_id] = self._holders.get(error_id, 0) + 1
        try:
            async with lock:
                token = _held.set(held | {key})
                try:
                    yield
                finally:
                    _held.reset(token)
        finally:
            self._holders[error_id] -= 1
            if self._holders[error_id] == 0:
                del self._holders[error_id]
                self._locks.pop(error_id, None)
