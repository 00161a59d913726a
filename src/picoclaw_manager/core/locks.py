"""Per-tenant serialization for mutating lifecycle operations."""

import asyncio
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

import structlog

logger = structlog.get_logger()


class TenantLocks:
    """Registry of one ``asyncio.Lock`` per tenant ID.

    Create, update, delete and restart for the same tenant run one at a time;
    different tenants never block each other. An entry is dropped once no
    caller holds or waits on it, so the registry does not grow with the
    number of tenants ever seen.

    Example:
        locks = TenantLocks()
        async with locks.hold("acme"):
            ...  # read-modify-write of tenant "acme"
    """

    def __init__(self) -> None:
        self._locks: dict[str, asyncio.Lock] = {}
        self._waiters: dict[str, int] = {}

    @asynccontextmanager
    async def hold(self, tenant_id: str) -> AsyncIterator[None]:
        """Hold the lock for ``tenant_id`` for the duration of the block."""
        lock = self._locks.get(tenant_id)
        if lock is None:
            lock = asyncio.Lock()
            self._locks[tenant_id] = lock
        self._waiters[tenant_id] = self._waiters.get(tenant_id, 0) + 1

        if lock.locked():
            logger.debug("tenant_lock_contended", tenant_id=tenant_id)

        try:
            async with lock:
                yield
        finally:
            self._waiters[tenant_id] -= 1
            if self._waiters[tenant_id] == 0:
                del self._waiters[tenant_id]
                del self._locks[tenant_id]

    def is_held(self, tenant_id: str) -> bool:
        """Whether some caller currently holds the lock for ``tenant_id``."""
        lock = self._locks.get(tenant_id)
        return lock is not None and lock.locked()

    def __len__(self) -> int:
        return len(self._locks)
