"""
Per-key asyncio locks.

Locks are created on first use and dropped once nobody holds or waits
on them, so the map only ever contains keys that are in flight.
"""

import asyncio
from contextlib import asynccontextmanager
from typing import Dict, Hashable, AsyncIterator


class KeyedLock:
    """
    Map of key -> asyncio.Lock with reference counting.

    Example:
        >>> locks = KeyedLock()
        >>> async with locks.acquire(("cloud-init", "00:11:22:33:44:55")):
        ...     ...
    """

    def __init__(self):
        self._locks: Dict[Hashable, asyncio.Lock] = {}
        self._waiters: Dict[Hashable, int] = {}

    @asynccontextmanager
    async def acquire(self, key: Hashable) -> AsyncIterator[None]:
        lock = self._locks.get(key)
        if lock is None:
            lock = asyncio.Lock()
            self._locks[key] = lock
        self._waiters[key] = self._waiters.get(key, 0) + 1

        try:
            async with lock:
                yield
        finally:
            self._waiters[key] -= 1
            if self._waiters[key] == 0:
                del self._waiters[key]
                del self._locks[key]

    def __len__(self) -> int:
        return len(self._locks)
