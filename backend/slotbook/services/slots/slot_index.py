# backend/slotbook/services/slots/slot_index.py
"""
Slot index model.

A business day is split into 48 slots of 30 minutes:
  slot 0  = 00:00-00:30
  slot 18 = 09:00-09:30
  slot 47 = 23:30-24:00

Every minutes <-> slots conversion in the engine goes through this module.
"""

import re
from datetime import datetime
from math import ceil

from .config import SLOT_MINUTES, SLOTS_PER_DAY
from .errors import (
    InvalidDuration,
    InvalidSlotRange,
    InvalidTimeFormat,
    SlotOutOfRange,
)

_TIME_RE = re.compile(r"^([01]?[0-9]|2[0-3]):([0-5][0-9])$")

END_OF_DAY = "24:00"


def is_valid_time_format(value) -> bool:
    return isinstance(value, str) and _TIME_RE.match(value.strip()) is not None


def _parse_time(value: str) -> tuple[int, int]:
    if not is_valid_time_format(value):
        raise InvalidTimeFormat(value)
    hours, minutes = value.strip().split(":")
    return int(hours), int(minutes)


def time_to_slot_index(value: str) -> int:
    """
    Convert "HH:MM" to the slot that contains it.

    Minutes are floored to the slot start: "09:00" -> 18, "09:45" -> 19.
    """
    hours, minutes = _parse_time(value)
    return hours * 2 + (1 if minutes >= 30 else 0)


def time_to_slot_boundary(value: str) -> int:
    """Like time_to_slot_index, but accepts "24:00" as the end-of-day boundary (48)."""
    if isinstance(value, str) and value.strip() == END_OF_DAY:
        return SLOTS_PER_DAY
    return time_to_slot_index(value)


def time_to_slot_ceil_boundary(value: str) -> int:
    """
    Exclusive slot boundary covering everything up to "HH:MM".

    Rounds up: "13:45" -> 28, so slot 27 (13:30-14:00) is included.
    "24:00" -> 48.
    """
    if isinstance(value, str) and value.strip() == END_OF_DAY:
        return SLOTS_PER_DAY
    hours, minutes = _parse_time(value)
    return ceil((hours * 60 + minutes) / SLOT_MINUTES)


def slot_index_to_time(slot: int) -> str:
    """Convert slot index to its start time "HH:MM"."""
    if not is_valid_slot_index(slot):
        raise SlotOutOfRange(slot)
    hours, half = divmod(slot, 2)
    return f"{hours:02d}:{half * SLOT_MINUTES:02d}"


def slot_end_time(slot: int) -> str:
    """End time of a slot; the last slot of the day ends at "24:00"."""
    if not is_valid_slot_index(slot):
        raise SlotOutOfRange(slot)
    if slot + 1 == SLOTS_PER_DAY:
        return END_OF_DAY
    return slot_index_to_time(slot + 1)


def boundary_to_time(boundary: int) -> str:
    """Format an exclusive range end (0..48) as a wall-clock time."""
    if boundary == SLOTS_PER_DAY:
        return END_OF_DAY
    return slot_index_to_time(boundary)


def duration_to_slots(minutes: int) -> int:
    """Slots needed for a duration. Always rounds up: 45min -> 2 slots."""
    if isinstance(minutes, bool) or not isinstance(minutes, (int, float)) or minutes <= 0:
        raise InvalidDuration(minutes)
    return max(1, ceil(minutes / SLOT_MINUTES))


def slots_to_duration(slots: int) -> int:
    if isinstance(slots, bool) or not isinstance(slots, int) or slots <= 0:
        raise InvalidDuration(slots)
    return slots * SLOT_MINUTES


def is_valid_slot_index(slot) -> bool:
    return (
        isinstance(slot, int)
        and not isinstance(slot, bool)
        and 0 <= slot < SLOTS_PER_DAY
    )


def is_valid_slot_range(start_slot: int, end_slot: int) -> bool:
    """True iff 0 <= start < end <= 48."""
    return (
        isinstance(start_slot, int)
        and isinstance(end_slot, int)
        and 0 <= start_slot < end_slot <= SLOTS_PER_DAY
    )


def validate_slot_range(start_slot: int, end_slot: int) -> None:
    if not is_valid_slot_range(start_slot, end_slot):
        raise InvalidSlotRange(start_slot, end_slot)


def datetime_to_slot(value: datetime) -> tuple[str, int]:
    """Split a datetime into (ISO date, slot index)."""
    return value.date().isoformat(), time_to_slot_index(value.strftime("%H:%M"))


def slot_occupancy(total_slots: int, occupied_slots) -> dict:
    """Occupied slot count and its share of total_slots, in percent."""
    occupied_count = len(set(occupied_slots))
    percentage = (occupied_count / total_slots) * 100 if total_slots > 0 else 0
    return {
        "occupied_count": occupied_count,
        "occupancy_percentage": round(percentage, 2),
    }
