"""Keyed mutual exclusion for request and ledger mutations.

Within one process, keys map to ``asyncio.Lock`` objects. On PostgreSQL the
same keys are also taken as transaction-scoped advisory locks so that several
API processes serialize on them too. Every operation acquires all of its keys
in one call, in sorted order, so two operations can never wait on each other
in a cycle.
"""

from __future__ import annotations

import asyncio
import logging
import weakref
from contextlib import asynccontextmanager
from typing import TYPE_CHECKING

from sqlalchemy import text

if TYPE_CHECKING:
    import uuid
    from collections.abc import AsyncIterator, Iterable

    from sqlalchemy.ext.asyncio import AsyncSession

logger = logging.getLogger(__name__)


def request_key(request_id: uuid.UUID) -> str:
    return f"request:{request_id}"


def ledger_key(owner_id: uuid.UUID, year: int) -> str:
    return f"ledger:{owner_id}:{year}"


class LockRegistry:
    """Registry of keyed asyncio locks.

    Locks are held weakly: a key nobody is waiting on or holding is dropped.
    """

    def __init__(self) -> None:
        self._locks: weakref.WeakValueDictionary[str, asyncio.Lock] = weakref.WeakValueDictionary()

    def _lock_for(self, key: str) -> asyncio.Lock:
        lock = self._locks.get(key)
        if lock is None:
            lock = asyncio.Lock()
            self._locks[key] = lock
        return lock

    def is_locked(self, key: str) -> bool:
        lock = self._locks.get(key)
        return lock is not None and lock.locked()

    @asynccontextmanager
    async def hold(self, keys: Iterable[str], session: AsyncSession | None = None) -> AsyncIterator[None]:
        """Acquire every key in sorted order and release them on exit.

        When ``session`` is bound to PostgreSQL, matching advisory locks are
        taken inside its transaction and released on commit or rollback.
        """
        ordered = sorted(set(keys))
        # Strong references keep the locks alive while held.
        locks = [self._lock_for(key) for key in ordered]
        acquired: list[asyncio.Lock] = []
        try:
            for lock in locks:
                await lock.acquire()
                acquired.append(lock)
            if session is not None:
                await _acquire_advisory_locks(session, ordered)
            yield
        finally:
            for lock in reversed(acquired):
                lock.release()


async def _acquire_advisory_locks(session: AsyncSession, keys: list[str]) -> None:
    bind = session.get_bind()
    if bind.dialect.name != "postgresql":
        return
    for key in keys:
        await session.execute(text("SELECT pg_advisory_xact_lock(hashtext(:key))"), {"key": key})
    logger.debug("Advisory locks acquired: %s", keys)


lock_registry = LockRegistry()
