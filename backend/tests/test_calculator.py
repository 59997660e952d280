"""
Tests for services/slots/calculator.py
"""

from collections import Counter
from datetime import date, datetime

from slotbook.services.slots.calculator import (
    NOT_WORKING,
    SlotRange,
    SlotWindow,
    StaffDayWindow,
    build_day_grid,
    build_occupancy,
    closed_slots,
    find_free_ranges,
    first_bookable_slot,
    range_conflicts,
    resolve_staff_window,
)

from .helpers import MONDAY, SATURDAY, make_slot_schedule

FULL_DAY = StaffDayWindow(is_working=True, start_slot=0, end_slot=48)
OFFICE_HOURS = StaffDayWindow(
    is_working=True, start_slot=18, end_slot=36, lunch_break=SlotRange(26, 28)
)


def starts(ranges):
    return [r.start_slot for r in ranges]


def test_free_ranges_skip_occupied_slots():
    occupancy = Counter({slot: 1 for slot in [10, 11, 15, 16, 17]})
    grid = build_day_grid(FULL_DAY, occupancy=occupancy)

    free = starts(find_free_ranges(grid, 2))

    assert 8 in free
    assert 9 not in free
    assert 10 not in free
    assert 12 in free
    assert 14 not in free
    assert 15 not in free
    assert 18 in free


def test_every_free_range_is_fully_free():
    occupancy = build_occupancy([(19, 21), (30, 31)])
    grid = build_day_grid(OFFICE_HOURS, occupancy=occupancy)

    for free in find_free_ranges(grid, 3):
        assert free.slots_used == 3
        assert all(s in grid and grid.slots[s].available > 0 for s in free.slots())


def test_lunch_break_splits_ranges():
    grid = build_day_grid(OFFICE_HOURS)

    assert 26 not in grid
    assert 27 not in grid
    free = starts(find_free_ranges(grid, 2))
    assert 24 in free
    assert 25 not in free
    assert 28 in free


def test_ranges_are_not_truncated_at_end_of_day():
    grid = build_day_grid(FULL_DAY)

    free = find_free_ranges(grid, 3)

    assert free[-1] == SlotRange(45, 48)
    assert free[-1].to_dict()["end_time"] == "24:00"
    assert all(r.end_slot <= 48 for r in free)


def test_working_window_end_limits_ranges():
    grid = build_day_grid(OFFICE_HOURS)

    free = find_free_ranges(grid, 2)

    assert free[-1] == SlotRange(34, 36)


def test_not_working_day_has_empty_grid():
    grid = build_day_grid(NOT_WORKING)

    assert not grid
    assert find_free_ranges(grid, 1) == []


def test_service_windows_are_clipped_to_working_hours():
    windows = [SlotWindow(14, 22, capacity=2), SlotWindow(25, 30, capacity=1)]

    grid = build_day_grid(OFFICE_HOURS, service_windows=windows)

    assert sorted(grid.slots) == [18, 19, 20, 21, 25, 28, 29]
    assert grid.slots[18].capacity == 2
    assert grid.slots[25].capacity == 1


def test_overlapping_windows_take_the_larger_capacity():
    windows = [SlotWindow(18, 22, capacity=2), SlotWindow(20, 24, capacity=5)]

    grid = build_day_grid(OFFICE_HOURS, service_windows=windows)

    assert grid.slots[19].capacity == 2
    assert grid.slots[20].capacity == 5
    assert grid.slots[23].capacity == 5


def test_group_capacity_counts_bookings():
    occupancy = build_occupancy([(20, 22), (20, 22)])
    grid = build_day_grid(OFFICE_HOURS, [SlotWindow(20, 24, capacity=3)], occupancy=occupancy)

    assert grid.slots[20].booked == 2
    assert grid.slots[20].available == 1
    assert 20 in starts(find_free_ranges(grid, 2))

    occupancy[20] += 1
    occupancy[21] += 1
    grid = build_day_grid(OFFICE_HOURS, [SlotWindow(20, 24, capacity=3)], occupancy=occupancy)

    assert grid.slots[20].available == 0
    assert starts(find_free_ranges(grid, 2)) == [22]


def test_empty_window_list_means_not_offered():
    grid = build_day_grid(OFFICE_HOURS, service_windows=[], default_capacity=3)

    assert not grid
    assert find_free_ranges(grid, 1) == []


def test_no_windows_use_default_capacity():
    grid = build_day_grid(OFFICE_HOURS, service_windows=None, default_capacity=3)

    assert len(grid.slots) == 16
    assert grid.slots[18].capacity == 3


def test_blocked_slots_have_no_capacity_left():
    grid = build_day_grid(OFFICE_HOURS, [SlotWindow(20, 24, capacity=3)], blocked={20, 21})

    assert grid.slots[20].available == 0
    assert grid.slots[20].to_dict()["blocked"]
    assert grid.slots[22].available == 3
    assert starts(find_free_ranges(grid, 2)) == [22]
    assert range_conflicts(grid, 21, 2) == {"closed": [], "past": [], "booked": [21]}


def test_closed_slots():
    assert closed_slots([]) == set()
    assert closed_slots([(20, 22), (30, 31)]) == {20, 21, 30}
    assert closed_slots([(20, 22), (None, None)]) == set(range(48))


def test_closed_slots_are_removed_from_grid():
    grid = build_day_grid(OFFICE_HOURS, closed={20, 21})

    assert 20 not in grid
    assert 19 not in starts(find_free_ranges(grid, 2))
    assert 22 in starts(find_free_ranges(grid, 2))


def test_first_bookable_slot():
    now = datetime(2030, 1, 7, 10, 10)

    assert first_bookable_slot(date(2030, 1, 8), now) == 0
    assert first_bookable_slot(date(2030, 1, 6), now) == 48
    assert first_bookable_slot(MONDAY, now) == 21
    assert first_bookable_slot(MONDAY, datetime(2030, 1, 7, 10, 0)) == 20
    assert first_bookable_slot(MONDAY, datetime(2030, 1, 7, 10, 0, 1)) == 21
    assert first_bookable_slot(MONDAY, now, min_advance_minutes=60) == 23


def test_min_advance_can_push_to_next_day():
    now = datetime(2030, 1, 6, 23, 0)

    assert first_bookable_slot(MONDAY, now, min_advance_minutes=120) == 2


def test_past_slots_are_not_free():
    grid = build_day_grid(OFFICE_HOURS, first_bookable=21)

    assert grid.slots[20].past
    assert not grid.slots[21].past
    assert starts(find_free_ranges(grid, 2))[0] == 21


def test_range_conflicts_classifies_slots():
    occupancy = build_occupancy([(24, 25)])
    grid = build_day_grid(OFFICE_HOURS, occupancy=occupancy, first_bookable=20)

    assert range_conflicts(grid, 22, 2) == {}
    assert range_conflicts(grid, 19, 2)["past"] == [19]
    assert range_conflicts(grid, 23, 2)["booked"] == [24]
    assert range_conflicts(grid, 25, 2)["closed"] == [26]
    assert range_conflicts(grid, 35, 2)["closed"] == [36]


def test_resolve_staff_window():
    schedule = make_slot_schedule()

    window = resolve_staff_window(schedule, MONDAY)
    assert window.is_working
    assert (window.start_slot, window.end_slot) == (18, 36)
    assert window.lunch_break == SlotRange(26, 28)

    assert resolve_staff_window(schedule, SATURDAY) == NOT_WORKING
    assert resolve_staff_window(None, MONDAY) == NOT_WORKING


def test_resolve_staff_window_rejects_inconsistent_entries():
    schedule = make_slot_schedule()
    schedule["monday"]["endSlot"] = 10

    assert resolve_staff_window(schedule, MONDAY) == NOT_WORKING


def test_build_occupancy_clamps_to_day():
    occupancy = build_occupancy([SlotRange(46, 48), (47, 50)])

    assert occupancy == Counter({46: 1, 47: 2})
