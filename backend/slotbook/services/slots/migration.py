# backend/slotbook/services/slots/migration.py
"""
Legacy → slot migration adapter.

The legacy model stores free-form start times and durations in minutes.
This module is the only converter between the two appointment shapes:

    LegacyAppointment  (scheduled_for + duration_minutes)
    SlotAppointment    (date + start_slot + slots_used)

All functions are pure; the batch runner (slotbook/migrate.py) selects
unmigrated rows, applies these conversions and records per-record errors.
"""

import logging
from dataclasses import dataclass, field
from datetime import date, datetime

from .calculator import WEEKDAYS, SlotRange
from .config import SLOTS_PER_DAY
from .errors import (
    DayBoundaryOverflow,
    MigrationError,
    SlotEngineError,
    UnparseableLegacyTime,
)
from .slot_index import (
    boundary_to_time,
    datetime_to_slot,
    duration_to_slots,
    is_valid_slot_range,
    slot_index_to_time,
    slots_to_duration,
    time_to_slot_boundary,
    time_to_slot_ceil_boundary,
    time_to_slot_index,
)

logger = logging.getLogger(__name__)

SCHEDULE_VERSION = "v2"


# ── Appointment variants ─────────────────────────────────────────────────


@dataclass(frozen=True)
class LegacyAppointment:
    id: int
    staff_id: int
    scheduled_for: str | datetime | None
    duration_minutes: int | None
    status: str = "PENDING"


@dataclass(frozen=True)
class SlotAppointment:
    id: int
    staff_id: int
    date: date
    start_slot: int
    end_slot: int
    slots_used: int
    status: str = "PENDING"

    @property
    def slot_range(self) -> SlotRange:
        return SlotRange(self.start_slot, self.end_slot)


def appointment_variant(row) -> LegacyAppointment | SlotAppointment:
    """Tag an appointment row as legacy (no slot fields yet) or slot-normalized."""
    if row.start_slot is None or row.end_slot is None or row.slots_used is None or row.date is None:
        return LegacyAppointment(
            id=row.id,
            staff_id=row.staff_id,
            scheduled_for=row.scheduled_for,
            duration_minutes=row.duration_minutes,
            status=row.status,
        )
    return SlotAppointment(
        id=row.id,
        staff_id=row.staff_id,
        date=row.date,
        start_slot=row.start_slot,
        end_slot=row.end_slot,
        slots_used=row.slots_used,
        status=row.status,
    )


# ── Services ─────────────────────────────────────────────────────────────


@dataclass(frozen=True)
class ServiceMigration:
    slots_needed: int
    adjusted_duration: int
    original_duration: int

    @property
    def duration_changed(self) -> bool:
        return self.adjusted_duration != self.original_duration

    @property
    def note(self) -> str:
        if self.duration_changed:
            return (
                f"Duration adjusted from {self.original_duration}min to "
                f"{self.adjusted_duration}min for slot alignment"
            )
        return "Perfect slot alignment"

    def audit(self, timestamp: str) -> dict:
        return {
            "originalDuration": self.original_duration,
            "calculatedSlotsNeeded": self.slots_needed,
            "adjustedDuration": self.adjusted_duration,
            "migrationTimestamp": timestamp,
            "notes": self.note,
        }


def migrate_service(service) -> ServiceMigration:
    """
    Convert a service's duration to slots (ceiling).

    A 45 minute service becomes 2 slots / 60 minutes; the caller rewrites
    the duration and stores audit() so the original value is kept.
    """
    original = service.duration_minutes
    slots_needed = duration_to_slots(original)
    return ServiceMigration(
        slots_needed=slots_needed,
        adjusted_duration=slots_to_duration(slots_needed),
        original_duration=original,
    )


# ── Appointments ─────────────────────────────────────────────────────────


def parse_legacy_datetime(record_id, value) -> datetime:
    if isinstance(value, datetime):
        return value.replace(tzinfo=None)
    if not value or not isinstance(value, str):
        raise UnparseableLegacyTime(record_id, value)
    try:
        return datetime.fromisoformat(value.strip().replace("Z", "")).replace(tzinfo=None)
    except ValueError:
        raise UnparseableLegacyTime(record_id, value)


def migrate_appointment(
    appointment: LegacyAppointment,
    service_slots_needed: int | None = None,
) -> SlotAppointment:
    """
    Convert a legacy appointment to slots.

    slots_used comes from the (already migrated) service when known,
    otherwise from the appointment's own duration.

    Raises:
        UnparseableLegacyTime: scheduled_for missing or not a datetime
        DayBoundaryOverflow: the range would end after slot 48
    """
    scheduled = parse_legacy_datetime(appointment.id, appointment.scheduled_for)
    _, start_slot = datetime_to_slot(scheduled)

    if service_slots_needed:
        slots_used = service_slots_needed
    elif appointment.duration_minutes:
        slots_used = duration_to_slots(appointment.duration_minutes)
    else:
        raise MigrationError(appointment.id, "Appointment has no duration and no service slots")

    end_slot = start_slot + slots_used
    if end_slot > SLOTS_PER_DAY:
        raise DayBoundaryOverflow(appointment.id, start_slot, end_slot)

    return SlotAppointment(
        id=appointment.id,
        staff_id=appointment.staff_id,
        date=scheduled.date(),
        start_slot=start_slot,
        end_slot=end_slot,
        slots_used=slots_used,
        status=appointment.status,
    )


def appointment_audit(legacy: LegacyAppointment, migrated: SlotAppointment, timestamp: str) -> dict:
    scheduled = parse_legacy_datetime(legacy.id, legacy.scheduled_for)
    return {
        "startTime": slot_index_to_time(migrated.start_slot),
        "endTime": boundary_to_time(migrated.end_slot),
        "originalStart": scheduled.strftime("%H:%M"),
        "originalDuration": legacy.duration_minutes,
        "calculatedSlots": migrated.slots_used,
        "migrationTimestamp": timestamp,
    }


# ── Staff availability ───────────────────────────────────────────────────


@dataclass
class StaffScheduleMigration:
    slot_schedule: dict = field(default_factory=dict)
    working_slots: dict = field(default_factory=dict)


def _not_working() -> dict:
    return {"isWorking": False, "availableSlots": []}


def _convert_day(day_schedule) -> tuple[dict | None, str | None]:
    """
    Working day -> (slot entry, None).

    Unusable entries give (None, reason); reason is None for days that are
    simply off.
    """
    if not isinstance(day_schedule, dict) or not day_schedule.get("isWorking"):
        return None, None

    start, end = day_schedule.get("start"), day_schedule.get("end")
    if not start or not end:
        return None, "missing working hours"

    try:
        start_slot = time_to_slot_index(start)
        end_slot = time_to_slot_boundary(end)
    except SlotEngineError as e:
        return None, str(e)
    if not is_valid_slot_range(start_slot, end_slot):
        return None, f"working hours {start}-{end} are inverted or empty"

    entry = {
        "isWorking": True,
        "startSlot": start_slot,
        "endSlot": end_slot,
        "availableSlots": list(range(start_slot, end_slot)),
        "originalStart": start,
        "originalEnd": end,
    }

    lunch_start = day_schedule.get("lunchBreakStart")
    lunch_end = day_schedule.get("lunchBreakEnd")
    if not lunch_start and not lunch_end:
        return entry, None
    if not lunch_start or not lunch_end:
        return None, "incomplete lunch break"

    # Every slot touching the break is excluded: start floors, end rounds up
    try:
        lunch_start_slot = time_to_slot_index(lunch_start)
        lunch_end_slot = time_to_slot_ceil_boundary(lunch_end)
    except SlotEngineError as e:
        return None, f"lunch break: {e}"
    if not (
        is_valid_slot_range(lunch_start_slot, lunch_end_slot)
        and start_slot <= lunch_start_slot
        and lunch_end_slot <= time_to_slot_ceil_boundary(end)
    ):
        return None, f"lunch break {lunch_start}-{lunch_end} outside working hours {start}-{end}"

    # A break running to closing time ends with the working window
    lunch_end_slot = min(lunch_end_slot, end_slot)
    entry["lunchBreakStartSlot"] = lunch_start_slot
    entry["lunchBreakEndSlot"] = lunch_end_slot
    entry["lunchBreakSlots"] = list(range(lunch_start_slot, lunch_end_slot))
    return entry, None


def migrate_staff_availability(schedule, timestamp: str | None = None) -> StaffScheduleMigration:
    """
    Convert a legacy weekly schedule to slot form.

    Days with missing or invalid hours (lunch break included) become
    not-working with a warning; they never raise.
    """
    schedule = schedule if isinstance(schedule, dict) else {}
    result = StaffScheduleMigration()

    for day in WEEKDAYS:
        entry, problem = _convert_day(schedule.get(day))
        if entry is None:
            if problem:
                logger.warning(f"Invalid legacy schedule for {day} ({problem}); marked not working")
            result.slot_schedule[day] = _not_working()
            result.working_slots[day] = []
        else:
            result.slot_schedule[day] = entry
            result.working_slots[day] = entry["availableSlots"]

    result.slot_schedule["version"] = SCHEDULE_VERSION
    if timestamp:
        result.slot_schedule["migrationTimestamp"] = timestamp
    return result
