"""
Offline migration to the 30-minute slot system.

Run once during a maintenance window (no live booking traffic):

    python -m slotbook.migrate

Order: services → appointments (use migrated service slots) → staff schedules.
Only unmigrated rows are selected, so re-running is a no-op for rows that
already have slot fields. Each row is committed on its own; a row that
fails is recorded and the batch continues.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime

from sqlalchemy import or_
from sqlalchemy.orm import Session

from .models import Appointments, Services, StaffAvailability
from .services.slots.errors import SlotEngineError
from .services.slots.migration import (
    appointment_audit,
    appointment_variant,
    migrate_appointment,
    migrate_service,
    migrate_staff_availability,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class MigrationFailure:
    kind: str
    record_id: int
    code: str
    message: str


@dataclass
class MigrationStats:
    total: int = 0
    migrated: int = 0
    failures: list[MigrationFailure] = field(default_factory=list)

    @property
    def errors(self) -> int:
        return len(self.failures)


@dataclass
class MigrationReport:
    services: MigrationStats = field(default_factory=MigrationStats)
    appointments: MigrationStats = field(default_factory=MigrationStats)
    staff_availability: MigrationStats = field(default_factory=MigrationStats)

    def _all(self) -> list[MigrationStats]:
        return [self.services, self.appointments, self.staff_availability]

    @property
    def processed(self) -> int:
        return sum(s.total for s in self._all())

    @property
    def migrated(self) -> int:
        return sum(s.migrated for s in self._all())

    @property
    def errored(self) -> int:
        return sum(s.errors for s in self._all())

    @property
    def failures(self) -> list[MigrationFailure]:
        return [f for s in self._all() for f in s.failures]

    def summary(self) -> dict:
        return {
            "processed": self.processed,
            "migrated": self.migrated,
            "errored": self.errored,
            "services": {"total": self.services.total, "migrated": self.services.migrated, "errors": self.services.errors},
            "appointments": {"total": self.appointments.total, "migrated": self.appointments.migrated, "errors": self.appointments.errors},
            "staff_availability": {"total": self.staff_availability.total, "migrated": self.staff_availability.migrated, "errors": self.staff_availability.errors},
        }


def run_migration(db: Session, now: datetime | None = None) -> MigrationReport:
    timestamp = (now or datetime.now()).isoformat(timespec="seconds")
    report = MigrationReport()

    _migrate_services(db, report.services, timestamp)
    _migrate_appointments(db, report.appointments, timestamp)
    _migrate_staff_availability(db, report.staff_availability, timestamp)

    logger.info(
        f"Migration finished: {report.processed} processed, "
        f"{report.migrated} migrated, {report.errored} errors"
    )
    return report


def validate_migration(db: Session) -> dict:
    """Count rows still lacking slot fields."""
    return {
        "services": _unmigrated_services(db).count(),
        "appointments": _unmigrated_appointments(db).count(),
        "staff_availability": _unmigrated_staff_availability(db).count(),
    }


# ── Selection ────────────────────────────────────────────────────────────


def _unmigrated_services(db: Session):
    return db.query(Services).filter(
        or_(Services.slots_needed.is_(None), Services.slots_needed == 0)
    )


def _unmigrated_appointments(db: Session):
    return db.query(Appointments).filter(
        or_(
            Appointments.start_slot.is_(None),
            Appointments.end_slot.is_(None),
            Appointments.slots_used.is_(None),
        )
    )


def _unmigrated_staff_availability(db: Session):
    return db.query(StaffAvailability).filter(
        or_(
            StaffAvailability.slot_schedule.is_(None),
            StaffAvailability.working_slots.is_(None),
        )
    )


# ── Per-kind passes ──────────────────────────────────────────────────────


def _record_failure(db: Session, stats: MigrationStats, kind: str, record_id: int, error: SlotEngineError) -> None:
    db.rollback()
    failure = MigrationFailure(kind, record_id, error.code, str(error))
    stats.failures.append(failure)
    logger.error(f"Failed to migrate {kind} {record_id}: {error}")


def _migrate_services(db: Session, stats: MigrationStats, timestamp: str) -> None:
    services = _unmigrated_services(db).order_by(Services.id).all()
    stats.total = len(services)
    logger.info(f"Found {stats.total} services to migrate")

    for service in services:
        service_id = service.id
        try:
            result = migrate_service(service)
            service.slots_needed = result.slots_needed
            service.duration_minutes = result.adjusted_duration
            service.slot_configuration = result.audit(timestamp)
            db.commit()
        except SlotEngineError as e:
            _record_failure(db, stats, "service", service_id, e)
            continue

        stats.migrated += 1
        logger.info(
            f"Service {service_id}: {result.original_duration}min → "
            f"{result.slots_needed} slots ({result.adjusted_duration}min)"
        )


def _migrate_appointments(db: Session, stats: MigrationStats, timestamp: str) -> None:
    appointments = _unmigrated_appointments(db).order_by(Appointments.id).all()
    stats.total = len(appointments)
    logger.info(f"Found {stats.total} appointments to migrate")

    for row in appointments:
        appointment_id = row.id
        try:
            legacy = appointment_variant(row)
            service_slots = row.service.slots_needed if row.service else None
            migrated = migrate_appointment(legacy, service_slots)

            row.date = migrated.date
            row.start_slot = migrated.start_slot
            row.end_slot = migrated.end_slot
            row.slots_used = migrated.slots_used
            row.slot_details = appointment_audit(legacy, migrated, timestamp)
            db.commit()
        except SlotEngineError as e:
            _record_failure(db, stats, "appointment", appointment_id, e)
            continue

        stats.migrated += 1
        logger.info(
            f"Appointment {appointment_id}: {migrated.date} → "
            f"slots {migrated.start_slot}-{migrated.end_slot}"
        )


def _migrate_staff_availability(db: Session, stats: MigrationStats, timestamp: str) -> None:
    rows = _unmigrated_staff_availability(db).order_by(StaffAvailability.id).all()
    stats.total = len(rows)
    logger.info(f"Found {stats.total} staff schedules to migrate")

    for row in rows:
        result = migrate_staff_availability(row.schedule, timestamp)
        row.slot_schedule = result.slot_schedule
        row.working_slots = result.working_slots
        db.commit()

        stats.migrated += 1
        logger.info(f"Staff {row.staff_id}: schedule converted to slots")


def main() -> int:
    from .config import settings
    from .database import SessionLocal, init_db

    logging.basicConfig(
        level=settings.log_level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    init_db()

    db = SessionLocal()
    try:
        report = run_migration(db)
        remaining = validate_migration(db)
    finally:
        db.close()

    summary = report.summary()
    print("Slot migration report")
    for kind in ("services", "appointments", "staff_availability"):
        s = summary[kind]
        print(f"  {kind}: {s['migrated']}/{s['total']} migrated, {s['errors']} errors")
    for failure in report.failures:
        print(f"  ✗ {failure.kind} {failure.record_id}: [{failure.code}] {failure.message}")
    print(f"Total: {report.processed} processed, {report.migrated} migrated, {report.errored} errors")
    print(f"Still unmigrated: {remaining}")

    return 1 if report.errored else 0


if __name__ == "__main__":
    raise SystemExit(main())
