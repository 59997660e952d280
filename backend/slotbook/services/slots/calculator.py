# backend/slotbook/services/slots/calculator.py
"""
Day grid calculation.

Produces, for one staff member / service / date, the list of candidate slots
with their capacity and current bookings, and the contiguous free ranges a
service of ``slots_needed`` slots can start at.

Contains:
✓ staff working window (weekday) minus lunch break
✓ service day windows with capacity (group events)
✓ staff unavailability (closed periods)
✓ occupancy of non-cancelled appointments (other services block the slot)
✓ "now" gate for today

Pure functions only: storage access lives in availability.py.
"""

from collections import Counter
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta
from math import ceil

from .config import SLOT_MINUTES, SLOTS_PER_DAY
from .slot_index import (
    boundary_to_time,
    is_valid_slot_range,
    slot_end_time,
    slot_index_to_time,
)

WEEKDAYS = ("monday", "tuesday", "wednesday", "thursday", "friday", "saturday", "sunday")


@dataclass(frozen=True)
class SlotRange:
    start_slot: int
    end_slot: int

    @property
    def slots_used(self) -> int:
        return self.end_slot - self.start_slot

    def slots(self) -> range:
        return range(self.start_slot, self.end_slot)

    def overlaps(self, other: "SlotRange") -> bool:
        return self.start_slot < other.end_slot and other.start_slot < self.end_slot

    def to_dict(self) -> dict:
        return {
            "start_slot": self.start_slot,
            "end_slot": self.end_slot,
            "slots_used": self.slots_used,
            "start_time": slot_index_to_time(self.start_slot),
            "end_time": boundary_to_time(self.end_slot),
        }


@dataclass(frozen=True)
class StaffDayWindow:
    """Working hours of one staff member on one weekday, in slots."""
    is_working: bool
    start_slot: int = 0
    end_slot: int = 0
    lunch_break: SlotRange | None = None

    def working_slots(self) -> set[int]:
        if not self.is_working:
            return set()
        slots = set(range(self.start_slot, self.end_slot))
        if self.lunch_break is not None:
            slots -= set(self.lunch_break.slots())
        return slots


NOT_WORKING = StaffDayWindow(is_working=False)


@dataclass(frozen=True)
class SlotWindow:
    """Service-defined window on a weekday. capacity > 1 = group event."""
    start_slot: int
    end_slot: int
    capacity: int = 1


@dataclass
class SlotState:
    slot_index: int
    capacity: int
    booked: int = 0
    past: bool = False
    blocked: bool = False

    @property
    def available(self) -> int:
        if self.blocked:
            return 0
        return max(0, self.capacity - self.booked)

    @property
    def start_time(self) -> str:
        return slot_index_to_time(self.slot_index)

    @property
    def end_time(self) -> str:
        return slot_end_time(self.slot_index)

    def to_dict(self) -> dict:
        return {
            "slot_index": self.slot_index,
            "start_time": self.start_time,
            "end_time": self.end_time,
            "capacity": self.capacity,
            "booked": self.booked,
            "available": self.available,
            "past": self.past,
            "blocked": self.blocked,
        }


@dataclass
class DayGrid:
    """Candidate slots of a day keyed by slot index."""
    slots: dict[int, SlotState] = field(default_factory=dict)

    def ordered(self) -> list[SlotState]:
        return [self.slots[i] for i in sorted(self.slots)]

    def __contains__(self, slot: int) -> bool:
        return slot in self.slots

    def __bool__(self) -> bool:
        return bool(self.slots)


# ── Staff window ─────────────────────────────────────────────────────────


def resolve_staff_window(slot_schedule: dict | None, target_date: date) -> StaffDayWindow:
    """
    Read the migrated slot schedule entry for target_date's weekday.

    Entry format:
        {"isWorking": true, "startSlot": 18, "endSlot": 36,
         "lunchBreakStartSlot": 26, "lunchBreakEndSlot": 28}

    Missing or inconsistent entries mean "not working".
    """
    if not slot_schedule:
        return NOT_WORKING

    day = slot_schedule.get(WEEKDAYS[target_date.weekday()])
    if not isinstance(day, dict) or not day.get("isWorking"):
        return NOT_WORKING

    start_slot = day.get("startSlot")
    end_slot = day.get("endSlot")
    if not is_valid_slot_range(start_slot, end_slot):
        return NOT_WORKING

    lunch = None
    lunch_start = day.get("lunchBreakStartSlot")
    lunch_end = day.get("lunchBreakEndSlot")
    if is_valid_slot_range(lunch_start, lunch_end):
        lunch = SlotRange(lunch_start, lunch_end)

    return StaffDayWindow(
        is_working=True,
        start_slot=start_slot,
        end_slot=end_slot,
        lunch_break=lunch,
    )


# ── Occupancy / closed periods ───────────────────────────────────────────


def build_occupancy(ranges) -> Counter:
    """
    Count reservations per slot.

    ranges: iterable of SlotRange (or (start, end) pairs) of non-cancelled
    appointments for one staff member and date.
    """
    occupancy: Counter = Counter()
    for item in ranges:
        start_slot, end_slot = (
            (item.start_slot, item.end_slot) if isinstance(item, SlotRange) else item
        )
        for slot in range(max(0, start_slot), min(SLOTS_PER_DAY, end_slot)):
            occupancy[slot] += 1
    return occupancy


def closed_slots(blocks) -> set[int]:
    """
    Slots blocked by unavailability periods.

    blocks: iterable of (start_slot, end_slot) pairs; (None, None) = whole day.
    """
    closed: set[int] = set()
    for start_slot, end_slot in blocks:
        if start_slot is None or end_slot is None:
            return set(range(SLOTS_PER_DAY))
        closed.update(range(max(0, start_slot), min(SLOTS_PER_DAY, end_slot)))
    return closed


def first_bookable_slot(
    target_date: date,
    now: datetime,
    min_advance_minutes: int = 0,
) -> int:
    """
    First slot of target_date whose start is not earlier than now + advance.

    0 for future days, 48 (nothing) for past days.
    """
    threshold = now + timedelta(minutes=min_advance_minutes)
    if target_date > threshold.date():
        return 0
    if target_date < threshold.date():
        return SLOTS_PER_DAY

    minutes = threshold.hour * 60 + threshold.minute
    if threshold.second or threshold.microsecond:
        minutes += 1
    return min(SLOTS_PER_DAY, ceil(minutes / SLOT_MINUTES))


# ── Grid / ranges ────────────────────────────────────────────────────────


def build_day_grid(
    staff_window: StaffDayWindow,
    service_windows: list[SlotWindow] | None = None,
    default_capacity: int = 1,
    occupancy: Counter | None = None,
    closed: set[int] | None = None,
    first_bookable: int = 0,
    blocked: set[int] | None = None,
) -> DayGrid:
    """
    Build candidate slots for one day.

    Service windows (when given) are clipped to the staff working window;
    an empty list means the service is not offered that day. Lunch break
    and closed slots are removed entirely. Blocked slots are taken by the
    staff member's appointments for other services and have no capacity left.
    """
    working = staff_window.working_slots()
    if not working:
        return DayGrid()

    capacities: dict[int, int] = {}
    if service_windows is not None:
        for window in service_windows:
            for slot in range(window.start_slot, window.end_slot):
                if slot in working:
                    capacities[slot] = max(capacities.get(slot, 0), window.capacity)
    else:
        capacities = {slot: default_capacity for slot in working}

    closed = closed or set()
    occupancy = occupancy or Counter()
    blocked = blocked or set()

    grid = DayGrid()
    for slot, capacity in capacities.items():
        if slot in closed:
            continue
        grid.slots[slot] = SlotState(
            slot_index=slot,
            capacity=max(1, capacity),
            booked=occupancy.get(slot, 0),
            blocked=slot in blocked,
            past=slot < first_bookable,
        )
    return grid


def find_free_ranges(grid: DayGrid, slots_needed: int) -> list[SlotRange]:
    """
    All ranges of slots_needed consecutive grid slots that can take one more
    reservation. Ranges never cross a gap (lunch, closed, non-window slot)
    and never run past the end of the day.
    """
    if slots_needed < 1:
        return []

    ranges = []
    for start_slot in sorted(grid.slots):
        end_slot = start_slot + slots_needed
        if end_slot > SLOTS_PER_DAY:
            break
        if not range_conflicts(grid, start_slot, slots_needed):
            ranges.append(SlotRange(start_slot, end_slot))
    return ranges


def range_conflicts(grid: DayGrid, start_slot: int, slots_needed: int) -> dict[str, list[int]]:
    """
    Check one range against the grid.

    Returns {"closed": [...], "past": [...], "booked": [...]} with the
    offending slots, or an empty dict when the range is free.
    """
    result: dict[str, list[int]] = {"closed": [], "past": [], "booked": []}
    for slot in range(start_slot, start_slot + slots_needed):
        state = grid.slots.get(slot)
        if state is None:
            result["closed"].append(slot)
        elif state.past:
            result["past"].append(slot)
        elif state.available < 1:
            result["booked"].append(slot)
    if not any(result.values()):
        return {}
    return result
