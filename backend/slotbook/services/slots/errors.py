# backend/slotbook/services/slots/errors.py
"""
Slot engine error taxonomy.

Input errors:      malformed caller input, never retried.
Not-found errors:  referenced staff/service/appointment does not exist.
Conflict errors:   expected outcome of competing demand for a slot;
                   the caller re-queries availability and picks again.
Migration errors:  per-record legacy conversion failures.
"""


class SlotEngineError(Exception):
    """Base class for every error raised by the slot engine."""
    code = "slot_engine_error"


# ── Input ────────────────────────────────────────────────────────────────


class SlotInputError(SlotEngineError, ValueError):
    code = "invalid_input"


class InvalidTimeFormat(SlotInputError):
    code = "invalid_time_format"

    def __init__(self, value):
        self.value = value
        super().__init__(f"Invalid time format: {value!r}. Expected HH:MM (00:00-23:59)")


class SlotOutOfRange(SlotInputError):
    code = "slot_out_of_range"

    def __init__(self, slot):
        self.slot = slot
        super().__init__(f"Invalid slot index: {slot!r}. Must be between 0-47")


class InvalidSlotRange(SlotInputError):
    code = "invalid_slot_range"

    def __init__(self, start_slot, end_slot):
        self.start_slot = start_slot
        self.end_slot = end_slot
        super().__init__(
            f"Invalid slot range [{start_slot}, {end_slot}). "
            f"Requires 0 <= start < end <= 48"
        )


class InvalidDuration(SlotInputError):
    code = "invalid_duration"

    def __init__(self, value):
        self.value = value
        super().__init__(f"Invalid duration: {value!r}. Must be positive")


class InvalidStatusTransition(SlotInputError):
    code = "invalid_status_transition"

    def __init__(self, appointment_id: int, current: str, target: str):
        self.appointment_id = appointment_id
        self.current = current
        self.target = target
        super().__init__(
            f"Appointment {appointment_id} cannot move from {current} to {target}"
        )


# ── Not found ────────────────────────────────────────────────────────────


class NotFoundError(SlotEngineError, LookupError):
    code = "not_found"
    entity = "Resource"

    def __init__(self, entity_id):
        self.entity_id = entity_id
        super().__init__(f"{self.entity} {entity_id} not found")


class StaffNotFound(NotFoundError):
    code = "staff_not_found"
    entity = "Staff"


class ServiceNotFound(NotFoundError):
    code = "service_not_found"
    entity = "Service"


class AppointmentNotFound(NotFoundError):
    code = "appointment_not_found"
    entity = "Appointment"


# ── Conflict ─────────────────────────────────────────────────────────────


class ConflictError(SlotEngineError):
    """Requested range cannot be reserved. Carries the offending slots."""
    code = "conflict"

    def __init__(self, reason: str, conflicting_slots: list[int] | None = None):
        self.reason = reason
        self.conflicting_slots = sorted(conflicting_slots or [])
        super().__init__(f"{reason} (slots: {self.conflicting_slots})")

    def to_dict(self) -> dict:
        return {
            "code": self.code,
            "reason": self.reason,
            "conflicting_slots": self.conflicting_slots,
        }


class SlotUnavailable(ConflictError):
    """Slots are closed, outside working hours or already in the past."""
    code = "slot_unavailable"


class ReservationRace(ConflictError):
    """Capacity of the slots is already taken by other reservations."""
    code = "reservation_race"


# ── Migration ────────────────────────────────────────────────────────────


class MigrationError(SlotEngineError):
    code = "migration_error"

    def __init__(self, record_id, message: str):
        self.record_id = record_id
        super().__init__(message)


class DayBoundaryOverflow(MigrationError):
    code = "day_boundary_overflow"

    def __init__(self, record_id, start_slot: int, end_slot: int):
        self.start_slot = start_slot
        self.end_slot = end_slot
        super().__init__(
            record_id,
            f"Appointment extends beyond day: slots {start_slot}-{end_slot}",
        )


class UnparseableLegacyTime(MigrationError):
    code = "unparseable_legacy_time"

    def __init__(self, record_id, value):
        self.value = value
        super().__init__(record_id, f"Cannot parse legacy time {value!r}")
