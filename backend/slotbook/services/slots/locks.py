# backend/slotbook/services/slots/locks.py
"""
Per-(staff, date) serialization point for reservations.

The availability re-check and the appointment insert run while holding the
lock for their staff/day key, so two reservations for the same staff and
date cannot interleave. Different keys never wait on each other.

LocalStaffDayLocks:  threading locks, valid inside one process.
RedisStaffDayLocks:  redis-py locks, shared by every worker using the
                     same Redis (key: slotbook:lock:{staff_id}:{date}).
"""

import logging
import threading
from contextlib import ExitStack, contextmanager
from datetime import date
from functools import lru_cache

from redis import Redis
from redis.exceptions import LockError

from ...redis_client import redis_client
from .config import get_booking_config
from .errors import ReservationRace

logger = logging.getLogger(__name__)

LockKey = tuple[int, str]


def lock_key(staff_id: int, target_date: date) -> LockKey:
    return staff_id, target_date.isoformat()


class StaffDayLocks:
    """Base class: subclasses implement hold() for a single key."""

    def __init__(self, timeout: float):
        self.timeout = timeout

    def hold(self, staff_id: int, target_date: date):
        """Context manager holding the lock for one staff/day key."""
        raise NotImplementedError

    @contextmanager
    def hold_many(self, keys):
        """
        Hold several staff/day locks at once.

        Keys are taken in sorted order so two callers locking the same pair
        of days cannot deadlock.
        """
        unique = sorted({lock_key(staff_id, d) for staff_id, d in keys})
        with ExitStack() as stack:
            for staff_id, iso_date in unique:
                stack.enter_context(self.hold(staff_id, date.fromisoformat(iso_date)))
            yield


class LocalStaffDayLocks(StaffDayLocks):

    def __init__(self, timeout: float):
        super().__init__(timeout)
        self._guard = threading.Lock()
        # key -> [lock, number of holders and waiters]
        self._locks: dict[LockKey, list] = {}

    @contextmanager
    def hold(self, staff_id: int, target_date: date):
        key = lock_key(staff_id, target_date)

        with self._guard:
            entry = self._locks.setdefault(key, [threading.Lock(), 0])
            entry[1] += 1

        try:
            if not entry[0].acquire(timeout=self.timeout):
                logger.warning(f"Lock timeout for staff={staff_id} date={key[1]}")
                raise ReservationRace("busy")
            try:
                yield
            finally:
                entry[0].release()
        finally:
            with self._guard:
                entry[1] -= 1
                if entry[1] == 0:
                    self._locks.pop(key, None)

    def active_keys(self) -> list[LockKey]:
        with self._guard:
            return list(self._locks)


class RedisStaffDayLocks(StaffDayLocks):

    KEY_PREFIX = "slotbook:lock"

    def __init__(self, redis: Redis, timeout: float, ttl: float | None = None):
        super().__init__(timeout)
        self.redis = redis
        # Lock auto-expires if a worker dies while holding it
        self.ttl = ttl or max(30.0, timeout * 3)

    def _name(self, staff_id: int, target_date: date) -> str:
        return f"{self.KEY_PREFIX}:{staff_id}:{target_date.isoformat()}"

    @contextmanager
    def hold(self, staff_id: int, target_date: date):
        name = self._name(staff_id, target_date)
        lock = self.redis.lock(name, timeout=self.ttl, blocking_timeout=self.timeout)

        if not lock.acquire():
            logger.warning(f"Redis lock timeout: {name}")
            raise ReservationRace("busy")
        try:
            yield
        finally:
            try:
                lock.release()
            except LockError:
                logger.error(f"Redis lock {name} expired before release")


@lru_cache
def get_staff_day_locks() -> StaffDayLocks:
    """Lock registry for this process (Redis-backed when configured)."""
    timeout = get_booking_config().lock_timeout_seconds
    if redis_client is not None:
        return RedisStaffDayLocks(redis_client, timeout)
    return LocalStaffDayLocks(timeout)
