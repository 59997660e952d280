# backend/slotbook/services/slots/guard.py
"""
Reservation guard: authoritative re-check-and-commit.

compute_availability() is advisory. reserve() re-runs the same check with a
fresh occupancy read while holding the staff/day lock, inserts the
appointment and commits before the lock is released:

    lock(staff, date) → build grid → check range → insert → commit → unlock

A lost race surfaces as ConflictError; the caller re-queries availability.
The guard never picks an alternative slot.

Status machine:
    PENDING → COMPLETED
    PENDING → CANCELLED
"""

import logging
from dataclasses import asdict, dataclass
from datetime import date, datetime

from sqlalchemy.orm import Session

from ...models import Appointments, AppointmentStatus
from ..events import emit_event
from .availability import build_day_context
from .calculator import DayGrid, range_conflicts
from .config import BookingConfig, get_booking_config
from .errors import (
    AppointmentNotFound,
    InvalidStatusTransition,
    ReservationRace,
    SlotOutOfRange,
    SlotUnavailable,
)
from .locks import StaffDayLocks, get_staff_day_locks
from .slot_index import (
    boundary_to_time,
    is_valid_slot_index,
    slot_index_to_time,
    validate_slot_range,
)

logger = logging.getLogger(__name__)

ALLOWED_TRANSITIONS = {
    AppointmentStatus.PENDING: {AppointmentStatus.COMPLETED, AppointmentStatus.CANCELLED},
    AppointmentStatus.COMPLETED: set(),
    AppointmentStatus.CANCELLED: set(),
}


@dataclass(frozen=True)
class ReservationToken:
    appointment_id: int
    staff_id: int
    service_id: int
    date: date
    start_slot: int
    end_slot: int
    slots_used: int
    status: str = AppointmentStatus.PENDING

    def to_dict(self) -> dict:
        data = asdict(self)
        data["start_time"] = slot_index_to_time(self.start_slot)
        data["end_time"] = boundary_to_time(self.end_slot)
        return data

    @classmethod
    def from_appointment(cls, appointment: Appointments) -> "ReservationToken":
        return cls(
            appointment_id=appointment.id,
            staff_id=appointment.staff_id,
            service_id=appointment.service_id,
            date=appointment.date,
            start_slot=appointment.start_slot,
            end_slot=appointment.end_slot,
            slots_used=appointment.slots_used,
            status=appointment.status,
        )


def reserve(
    db: Session,
    staff_id: int,
    service_id: int,
    client_id: int | None,
    target_date: date,
    start_slot: int,
    config: BookingConfig | None = None,
    now: datetime | None = None,
    locks: StaffDayLocks | None = None,
) -> ReservationToken:
    """
    Reserve [start_slot, start_slot + slots_needed) for staff on target_date.

    Raises:
        SlotOutOfRange, InvalidSlotRange: malformed request
        StaffNotFound, ServiceNotFound
        SlotUnavailable: slots closed, outside working hours or in the past
        ReservationRace: slots already taken (or lock not obtained)
    """
    config = config or get_booking_config()
    locks = locks or get_staff_day_locks()

    if not is_valid_slot_index(start_slot):
        raise SlotOutOfRange(start_slot)

    with locks.hold(staff_id, target_date):
        ctx = build_day_context(
            db, staff_id, service_id, target_date, config, now or datetime.now()
        )
        end_slot = start_slot + ctx.slots_needed
        validate_slot_range(start_slot, end_slot)
        _ensure_free(ctx.grid, start_slot, ctx.slots_needed)

        appointment = Appointments(
            staff_id=staff_id,
            service_id=service_id,
            client_id=client_id,
            date=target_date,
            start_slot=start_slot,
            end_slot=end_slot,
            slots_used=ctx.slots_needed,
            status=AppointmentStatus.PENDING,
            duration_minutes=ctx.service.duration_minutes,
            slot_details={
                "startTime": slot_index_to_time(start_slot),
                "endTime": boundary_to_time(end_slot),
            },
        )
        _commit(db, appointment)

    token = ReservationToken.from_appointment(appointment)
    logger.info(
        f"Reserved appointment={token.appointment_id} staff={staff_id} "
        f"date={target_date} slots={start_slot}-{end_slot}"
    )
    emit_event("appointment_reserved", token.to_dict())
    return token


def cancel(db: Session, appointment_id: int) -> Appointments:
    """Cancel a pending appointment. Its slots are free as soon as this returns."""
    appointment = _transition(db, appointment_id, AppointmentStatus.CANCELLED)
    logger.info(
        f"Cancelled appointment={appointment_id} staff={appointment.staff_id} "
        f"date={appointment.date}"
    )
    emit_event("appointment_cancelled", {
        "appointment_id": appointment_id,
        "staff_id": appointment.staff_id,
        "date": appointment.date,
    })
    return appointment


def complete(db: Session, appointment_id: int) -> Appointments:
    appointment = _transition(db, appointment_id, AppointmentStatus.COMPLETED)
    logger.info(f"Completed appointment={appointment_id}")
    emit_event("appointment_completed", {"appointment_id": appointment_id})
    return appointment


def reschedule(
    db: Session,
    appointment_id: int,
    target_date: date,
    start_slot: int,
    config: BookingConfig | None = None,
    now: datetime | None = None,
    locks: StaffDayLocks | None = None,
) -> ReservationToken:
    """
    Move a pending appointment to a new range.

    The committed range is never edited in place: a new PENDING appointment
    is created and the old one cancelled in the same transaction. The old
    appointment's own slots do not count against the new range.
    """
    config = config or get_booking_config()
    locks = locks or get_staff_day_locks()

    if not is_valid_slot_index(start_slot):
        raise SlotOutOfRange(start_slot)

    old = _get_appointment(db, appointment_id)
    keys = [(old.staff_id, target_date)]
    if old.date is not None:
        keys.append((old.staff_id, old.date))

    with locks.hold_many(keys):
        db.refresh(old)
        if old.status != AppointmentStatus.PENDING:
            raise InvalidStatusTransition(old.id, old.status, AppointmentStatus.CANCELLED)

        ctx = build_day_context(
            db, old.staff_id, old.service_id, target_date, config,
            now or datetime.now(), exclude_appointment_id=old.id,
        )
        end_slot = start_slot + ctx.slots_needed
        validate_slot_range(start_slot, end_slot)
        _ensure_free(ctx.grid, start_slot, ctx.slots_needed)

        new = Appointments(
            staff_id=old.staff_id,
            service_id=old.service_id,
            client_id=old.client_id,
            date=target_date,
            start_slot=start_slot,
            end_slot=end_slot,
            slots_used=ctx.slots_needed,
            status=AppointmentStatus.PENDING,
            duration_minutes=ctx.service.duration_minutes,
            slot_details={
                "startTime": slot_index_to_time(start_slot),
                "endTime": boundary_to_time(end_slot),
                "rescheduledFrom": old.id,
            },
        )
        old.status = AppointmentStatus.CANCELLED
        old.updated_at = _timestamp()
        _commit(db, new)

        old.slot_details = {**(old.slot_details or {}), "rescheduledTo": new.id}
        db.commit()

    token = ReservationToken.from_appointment(new)
    logger.info(
        f"Rescheduled appointment={appointment_id} → {token.appointment_id} "
        f"date={target_date} slots={start_slot}-{end_slot}"
    )
    emit_event("appointment_rescheduled", {
        "previous_appointment_id": appointment_id,
        **token.to_dict(),
    })
    return token


# ── Helpers ──────────────────────────────────────────────────────────────


def _ensure_free(grid: DayGrid, start_slot: int, slots_needed: int) -> None:
    conflicts = range_conflicts(grid, start_slot, slots_needed)
    if not conflicts:
        return

    if conflicts["closed"] or conflicts["past"]:
        reason = "outside_working_hours" if conflicts["closed"] else "in_the_past"
        slots = conflicts["closed"] + conflicts["past"] + conflicts["booked"]
        logger.info(f"Reservation rejected ({reason}): slots {sorted(slots)}")
        raise SlotUnavailable(reason, slots)

    logger.info(f"Reservation rejected (fully_booked): slots {conflicts['booked']}")
    raise ReservationRace("fully_booked", conflicts["booked"])


def _get_appointment(db: Session, appointment_id: int) -> Appointments:
    appointment = db.get(Appointments, appointment_id)
    if not appointment:
        raise AppointmentNotFound(appointment_id)
    return appointment


def _transition(db: Session, appointment_id: int, target: str) -> Appointments:
    """Atomic status change: only rows currently in an allowed source state move."""
    sources = [s for s, targets in ALLOWED_TRANSITIONS.items() if target in targets]
    updated = (
        db.query(Appointments)
        .filter(Appointments.id == appointment_id, Appointments.status.in_(sources))
        .update(
            {Appointments.status: target, Appointments.updated_at: _timestamp()},
            synchronize_session=False,
        )
    )
    db.commit()

    appointment = _get_appointment(db, appointment_id)
    db.refresh(appointment)
    if not updated:
        raise InvalidStatusTransition(appointment_id, appointment.status, target)
    return appointment


def _commit(db: Session, appointment: Appointments) -> None:
    db.add(appointment)
    try:
        db.commit()
    except Exception:
        db.rollback()
        raise
    db.refresh(appointment)


def _timestamp() -> str:
    return datetime.now().strftime("%Y-%m-%d %H:%M:%S")
