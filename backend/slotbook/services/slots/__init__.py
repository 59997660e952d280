"""
Slot scheduling engine.

Slot index model:   30-minute slot arithmetic (slot_index)
Availability:       advisory day grid and free ranges (calculator, availability)
Reservation guard:  locked re-check-and-commit (guard, locks)
Migration adapter:  legacy duration records → slots (migration)
"""

from .config import SLOT_MINUTES, SLOTS_PER_DAY, BookingConfig, get_booking_config
from .availability import compute_availability
from .guard import ReservationToken, cancel, complete, reschedule, reserve
from .locks import LocalStaffDayLocks, RedisStaffDayLocks, get_staff_day_locks
from .migration import (
    migrate_appointment,
    migrate_service,
    migrate_staff_availability,
)

__all__ = [
    "SLOT_MINUTES",
    "SLOTS_PER_DAY",
    "BookingConfig",
    "get_booking_config",
    "compute_availability",
    "ReservationToken",
    "reserve",
    "cancel",
    "complete",
    "reschedule",
    "LocalStaffDayLocks",
    "RedisStaffDayLocks",
    "get_staff_day_locks",
    "migrate_service",
    "migrate_appointment",
    "migrate_staff_availability",
]
