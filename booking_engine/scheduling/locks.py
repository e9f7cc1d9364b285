"""Per-provider mutual exclusion for check-then-commit sequences."""

import asyncio
import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from booking_engine.scheduling.errors import SchedulingConflictError

logger = logging.getLogger(__name__)


class ProviderLockRegistry:
    """One ``asyncio.Lock`` per provider, created on first use.

    Bookings for different providers never wait on each other. The locks are
    local to the event loop of this process.
    """

    def __init__(self, timeout_seconds: float = 5.0) -> None:
        self.timeout_seconds = timeout_seconds
        self._locks: dict[str, asyncio.Lock] = {}

    def _lock_for(self, provider_id: str) -> asyncio.Lock:
        lock = self._locks.get(provider_id)
        if lock is None:
            lock = asyncio.Lock()
            self._locks[provider_id] = lock
        return lock

    def is_locked(self, provider_id: str) -> bool:
        lock = self._locks.get(provider_id)
        return lock is not None and lock.locked()

    @asynccontextmanager
    async def acquire(self, provider_id: str, timeout: float | None = None) -> AsyncIterator[None]:
        """Hold the provider's lock for the duration of the block.

        Raises ``SchedulingConflictError`` (reason ``lock_timeout``) if the
        lock is not obtained in time; callers retry.
        """
        lock = self._lock_for(provider_id)
        wait = self.timeout_seconds if timeout is None else timeout
        try:
            await asyncio.wait_for(lock.acquire(), timeout=wait)
        except asyncio.TimeoutError:
            logger.warning(f"Lock timeout for provider={provider_id} after {wait:.2f}s")
            raise SchedulingConflictError(reason="lock_timeout")
        try:
            yield
        finally:
            lock.release()
