"""Schedule locks keyed by (shop, machine, day).

Held across slot search and commit so two requests cannot place blocks on the
same machine-day from the same snapshot. Uses Redis locks when Redis is
available and falls back to an in-process registry of asyncio locks.
"""

import asyncio
import logging
import uuid
from collections.abc import AsyncIterator, Iterable
from contextlib import asynccontextmanager
from dataclasses import dataclass, field
from datetime import date

from redis.exceptions import LockError

from creamery.core.config import settings
from creamery.core.exceptions import ResourceBusyError
from creamery.core.redis import get_redis

logger = logging.getLogger(__name__)


def lock_key(owner_id: uuid.UUID, machine_id: uuid.UUID, day: date) -> str:
    return f"schedule-lock:{owner_id}:{machine_id}:{day.isoformat()}"


@dataclass
class _InMemoryLockRegistry:
    """Per-key asyncio locks for single-process deployments and tests.

    A key stays registered only while some request holds or waits for it.
    """

    _locks: dict[str, asyncio.Lock] = field(default_factory=dict)
    _users: dict[str, int] = field(default_factory=dict)

    def checkout(self, key: str) -> asyncio.Lock:
        lock = self._locks.get(key)
        if lock is None:
            lock = asyncio.Lock()
            self._locks[key] = lock
        self._users[key] = self._users.get(key, 0) + 1
        return lock

    def checkin(self, key: str) -> None:
        remaining = self._users[key] - 1
        if remaining:
            self._users[key] = remaining
        else:
            del self._users[key]
            del self._locks[key]

    def __len__(self) -> int:
        return len(self._locks)


_memory_locks = _InMemoryLockRegistry()


async def _acquire_memory(key: str, wait_seconds: float) -> asyncio.Lock:
    lock = _memory_locks.checkout(key)
    try:
        await asyncio.wait_for(lock.acquire(), timeout=wait_seconds)
    except asyncio.TimeoutError:
        _memory_locks.checkin(key)
        raise ResourceBusyError(f"Schedule for {key} is being modified, try again")
    except asyncio.CancelledError:
        _memory_locks.checkin(key)
        raise
    return lock


@asynccontextmanager
async def schedule_lock(
    owner_id: uuid.UUID,
    machine_id: uuid.UUID,
    days: Iterable[date],
) -> AsyncIterator[None]:
    """Hold the schedule lock of a machine for every given day.

    Keys are acquired in sorted order so overlapping requests cannot deadlock.
    """
    keys = sorted({lock_key(owner_id, machine_id, day) for day in days})
    wait_seconds = settings.SCHEDULE_LOCK_WAIT_SECONDS

    try:
        redis = get_redis()
    except RuntimeError:
        redis = None

    if redis is None:
        held: list[tuple[str, asyncio.Lock]] = []
        try:
            for key in keys:
                held.append((key, await _acquire_memory(key, wait_seconds)))
            yield
        finally:
            for key, lock in reversed(held):
                lock.release()
                _memory_locks.checkin(key)
        return

    redis_locks = []
    try:
        for key in keys:
            lock = redis.lock(
                key,
                timeout=settings.SCHEDULE_LOCK_TIMEOUT_SECONDS,
                blocking_timeout=wait_seconds,
            )
            if not await lock.acquire():
                raise ResourceBusyError(f"Schedule for {key} is being modified, try again")
            redis_locks.append(lock)
        yield
    finally:
        for lock in reversed(redis_locks):
            try:
                await lock.release()
            except LockError:
                logger.warning("Schedule lock %s expired before release", lock.name)
