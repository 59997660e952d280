from datetime import date, datetime

from slotbook.services.slots.calculator import WEEKDAYS

# 2030-01-07 is a Monday, 2030-01-12 a Saturday
MONDAY = date(2030, 1, 7)
TUESDAY = date(2030, 1, 8)
SATURDAY = date(2030, 1, 12)
BEFORE_OPENING = datetime(2030, 1, 1, 8, 0)


def make_slot_schedule(start_slot=18, end_slot=36, lunch=(26, 28), days=WEEKDAYS[:5]) -> dict:
    """Migrated weekly schedule: working `days` from start_slot to end_slot."""
    schedule = {}
    for day in WEEKDAYS:
        if day not in days:
            schedule[day] = {"isWorking": False, "availableSlots": []}
            continue
        entry = {
            "isWorking": True,
            "startSlot": start_slot,
            "endSlot": end_slot,
            "availableSlots": list(range(start_slot, end_slot)),
        }
        if lunch:
            entry["lunchBreakStartSlot"], entry["lunchBreakEndSlot"] = lunch
        schedule[day] = entry
    return schedule
