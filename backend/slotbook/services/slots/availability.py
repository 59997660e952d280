# backend/slotbook/services/slots/availability.py
"""
Service availability for one staff member on one day.

Advisory read: the result is what the client shows. Every reservation
re-runs the same check at commit time (guard.py), so nothing here is cached.

Takes into account:
- Staff weekly slot schedule (migrated) and lunch break
- Staff unavailability periods
- Service day windows and capacity
- Existing non-cancelled appointments (other services block the slot)
- Current time for today's slots
"""

import logging
from collections import Counter
from dataclasses import dataclass
from datetime import date, datetime

from sqlalchemy.orm import Session

from ...models import (
    Appointments,
    AppointmentStatus,
    Services,
    Staff,
    StaffAvailability,
    StaffUnavailability,
)
from .calculator import (
    NOT_WORKING,
    DayGrid,
    SlotRange,
    SlotWindow,
    StaffDayWindow,
    build_day_grid,
    build_occupancy,
    closed_slots,
    find_free_ranges,
    first_bookable_slot,
    resolve_staff_window,
)
from .config import SLOTS_PER_DAY, BookingConfig, get_booking_config
from .errors import ServiceNotFound, StaffNotFound
from .slot_index import duration_to_slots, slot_occupancy

logger = logging.getLogger(__name__)


@dataclass
class DayContext:
    """Everything needed to judge one (staff, service, date)."""
    staff: Staff
    service: Services
    target_date: date
    slots_needed: int
    staff_window: StaffDayWindow
    grid: DayGrid


def compute_availability(
    db: Session,
    staff_id: int,
    service_id: int,
    target_date: date,
    config: BookingConfig | None = None,
    now: datetime | None = None,
) -> dict:
    """
    Calculate slot states and free ranges for a staff member and service.

    Returns:
        Dict for AvailabilityResponse. A day without working hours or free
        slots is an empty result, not an error.

    Raises:
        StaffNotFound, ServiceNotFound
    """
    config = config or get_booking_config()
    now = now or datetime.now()

    ctx = build_day_context(db, staff_id, service_id, target_date, config, now)
    free_ranges = find_free_ranges(ctx.grid, ctx.slots_needed)

    logger.debug(
        f"Availability staff={staff_id} service={service_id} date={target_date}: "
        f"{len(ctx.grid.slots)} candidate slots, {len(free_ranges)} free ranges"
    )

    return {
        "staff_id": staff_id,
        "service_id": service_id,
        "date": target_date.isoformat(),
        "is_working": ctx.staff_window.is_working,
        "slots_needed": ctx.slots_needed,
        "all_slots": [state.to_dict() for state in ctx.grid.ordered()],
        "free_ranges": [r.to_dict() for r in free_ranges],
        "occupancy": slot_occupancy(
            len(ctx.grid.slots),
            [s.slot_index for s in ctx.grid.ordered() if s.booked or s.blocked],
        ),
    }


def build_day_context(
    db: Session,
    staff_id: int,
    service_id: int,
    target_date: date,
    config: BookingConfig,
    now: datetime,
    exclude_appointment_id: int | None = None,
) -> DayContext:
    """
    Load staff, service and a fresh occupancy snapshot and build the day grid.

    exclude_appointment_id: appointment whose own slots are ignored
    (used when rescheduling it).
    """
    staff = get_staff(db, staff_id)
    service = get_service(db, service_id)
    slots_needed = service_slots_needed(service)

    staff_window = _get_staff_window(db, staff_id, target_date)
    blocks = _get_unavailability_blocks(db, staff_id, target_date)
    closed = closed_slots(blocks)

    if not staff_window.is_working or len(closed) >= SLOTS_PER_DAY:
        return DayContext(staff, service, target_date, slots_needed, staff_window, DayGrid())

    occupancy, blocked = load_occupancy(
        db, staff_id, target_date, service.id, exclude_appointment_id
    )
    grid = build_day_grid(
        staff_window,
        service_windows=_get_service_windows(service, target_date),
        default_capacity=service.max_capacity or 1,
        occupancy=occupancy,
        closed=closed,
        first_bookable=first_bookable_slot(target_date, now, config.min_advance_minutes),
        blocked=blocked,
    )
    return DayContext(staff, service, target_date, slots_needed, staff_window, grid)


def service_slots_needed(service: Services) -> int:
    """Slots a service occupies; unmigrated services are converted on the fly."""
    if service.slots_needed:
        return service.slots_needed
    return duration_to_slots(service.duration_minutes)


def load_occupancy(
    db: Session,
    staff_id: int,
    target_date: date,
    service_id: int,
    exclude_appointment_id: int | None = None,
) -> tuple[Counter, set[int]]:
    """
    Fresh occupancy of staff on date, as seen by service_id.

    Returns (reservations per slot for service_id, slots taken by the
    staff member's appointments for any other service). Only bookings of
    the same service share a slot's capacity.
    """
    query = (
        db.query(Appointments.start_slot, Appointments.end_slot, Appointments.service_id)
        .filter(
            Appointments.staff_id == staff_id,
            Appointments.date == target_date,
            Appointments.status != AppointmentStatus.CANCELLED,
            Appointments.start_slot.isnot(None),
            Appointments.end_slot.isnot(None),
        )
    )
    if exclude_appointment_id is not None:
        query = query.filter(Appointments.id != exclude_appointment_id)

    shared, other = [], []
    for start, end, booked_service_id in query.all():
        (shared if booked_service_id == service_id else other).append(SlotRange(start, end))

    return build_occupancy(shared), set(build_occupancy(other))


# ── Database helpers ─────────────────────────────────────────────────────


def get_staff(db: Session, staff_id: int) -> Staff:
    staff = db.get(Staff, staff_id)
    if not staff or not staff.is_active:
        raise StaffNotFound(staff_id)
    return staff


def get_service(db: Session, service_id: int) -> Services:
    service = db.get(Services, service_id)
    if not service or not service.is_active:
        raise ServiceNotFound(service_id)
    return service


def _get_staff_window(db: Session, staff_id: int, target_date: date) -> StaffDayWindow:
    availability = (
        db.query(StaffAvailability)
        .filter(StaffAvailability.staff_id == staff_id)
        .first()
    )
    if availability is None:
        return NOT_WORKING
    if availability.slot_schedule is None:
        logger.warning(
            f"Staff {staff_id} has no migrated slot schedule; treated as not working"
        )
        return NOT_WORKING
    return resolve_staff_window(availability.slot_schedule, target_date)


def _get_unavailability_blocks(
    db: Session,
    staff_id: int,
    target_date: date,
) -> list[tuple[int | None, int | None]]:
    """Unavailability periods covering target_date as (start_slot, end_slot)."""
    rows = (
        db.query(StaffUnavailability)
        .filter(
            StaffUnavailability.staff_id == staff_id,
            StaffUnavailability.date_start <= target_date,
            StaffUnavailability.date_end >= target_date,
        )
        .all()
    )
    return [(row.start_slot, row.end_slot) for row in rows]


def _get_service_windows(service: Services, target_date: date) -> list[SlotWindow] | None:
    """
    Service windows for target_date's weekday.

    None when the service defines no windows at all (bookable during all
    working hours); an empty list when it has windows on other weekdays only.
    """
    if not service.slot_windows:
        return None
    weekday = target_date.weekday()
    return [
        SlotWindow(w.start_slot, w.end_slot, w.capacity or 1)
        for w in service.slot_windows
        if w.weekday == weekday
    ]
