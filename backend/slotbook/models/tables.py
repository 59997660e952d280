from sqlalchemy import (
    JSON,
    CheckConstraint,
    Column,
    Date,
    ForeignKey,
    Index,
    Integer,
    Text,
    text,
)
from sqlalchemy.orm import declarative_base, relationship

Base = declarative_base()
metadata = Base.metadata


class AppointmentStatus:
    PENDING = "PENDING"
    COMPLETED = "COMPLETED"
    CANCELLED = "CANCELLED"

    ALL = (PENDING, COMPLETED, CANCELLED)


class Staff(Base):
    __tablename__ = 'staff'

    id = Column(Integer, primary_key=True)
    name = Column(Text, nullable=False)
    is_active = Column(Integer, nullable=False, server_default=text('1'))

    availability = relationship('StaffAvailability', uselist=False, back_populates='staff')
    unavailability = relationship('StaffUnavailability', back_populates='staff')
    appointments = relationship('Appointments', back_populates='staff')


class StaffAvailability(Base):
    """
    Weekly schedule of a staff member.

    ``schedule`` is the legacy free-form document
    (``{"monday": {"isWorking": true, "start": "09:00", "end": "18:00",
    "lunchBreakStart": "13:00", "lunchBreakEnd": "14:00"}, ...}``).
    ``slot_schedule`` / ``working_slots`` are filled by the migration and
    are the only fields the availability engine reads.
    """
    __tablename__ = 'staff_availability'

    id = Column(Integer, primary_key=True)
    staff_id = Column(ForeignKey('staff.id', ondelete='CASCADE'), nullable=False, unique=True)
    schedule = Column(JSON, nullable=False, default=dict)
    slot_schedule = Column(JSON(none_as_null=True))
    working_slots = Column(JSON(none_as_null=True))

    staff = relationship('Staff', back_populates='availability')


class StaffUnavailability(Base):
    """Vacation / sick leave / blocked hours. No slot range means the whole day."""
    __tablename__ = 'staff_unavailability'
    __table_args__ = (
        CheckConstraint('date_start <= date_end'),
    )

    id = Column(Integer, primary_key=True)
    staff_id = Column(ForeignKey('staff.id', ondelete='CASCADE'), nullable=False)
    date_start = Column(Date, nullable=False)
    date_end = Column(Date, nullable=False)
    start_slot = Column(Integer)
    end_slot = Column(Integer)
    reason = Column(Text)

    staff = relationship('Staff', back_populates='unavailability')


class Services(Base):
    __tablename__ = 'services'

    id = Column(Integer, primary_key=True)
    name = Column(Text, nullable=False)
    duration_minutes = Column(Integer, nullable=False)
    slots_needed = Column(Integer)
    max_capacity = Column(Integer, nullable=False, server_default=text('1'))
    slot_configuration = Column(JSON(none_as_null=True))
    is_active = Column(Integer, nullable=False, server_default=text('1'))

    slot_windows = relationship(
        'ServiceSlotWindows',
        back_populates='service',
        order_by='ServiceSlotWindows.start_slot',
    )
    appointments = relationship('Appointments', back_populates='service')


class ServiceSlotWindows(Base):
    __tablename__ = 'service_slot_windows'
    __table_args__ = (
        CheckConstraint('weekday BETWEEN 0 AND 6'),
        CheckConstraint('start_slot >= 0 AND start_slot < end_slot AND end_slot <= 48'),
        CheckConstraint('capacity >= 1'),
    )

    id = Column(Integer, primary_key=True)
    service_id = Column(ForeignKey('services.id', ondelete='CASCADE'), nullable=False)
    weekday = Column(Integer, nullable=False)  # 0 = Monday
    start_slot = Column(Integer, nullable=False)
    end_slot = Column(Integer, nullable=False)
    capacity = Column(Integer, nullable=False, server_default=text('1'))

    service = relationship('Services', back_populates='slot_windows')


class Appointments(Base):
    """
    Slot-normalized appointment.

    Legacy rows carry ``scheduled_for`` (free-form datetime text) and
    ``duration_minutes`` with null slot columns until the migration runs.
    """
    __tablename__ = 'appointments'
    __table_args__ = (
        Index('ix_appointments_staff_date', 'staff_id', 'date'),
    )

    id = Column(Integer, primary_key=True)
    staff_id = Column(ForeignKey('staff.id', ondelete='CASCADE'), nullable=False)
    service_id = Column(ForeignKey('services.id', ondelete='CASCADE'), nullable=False)
    client_id = Column(Integer)

    date = Column(Date)
    start_slot = Column(Integer)
    end_slot = Column(Integer)
    slots_used = Column(Integer)
    status = Column(Text, nullable=False, server_default=text("'PENDING'"))

    scheduled_for = Column(Text)
    duration_minutes = Column(Integer)
    slot_details = Column(JSON(none_as_null=True))

    created_at = Column(Text, server_default=text('CURRENT_TIMESTAMP'))
    updated_at = Column(Text, server_default=text('CURRENT_TIMESTAMP'))

    staff = relationship('Staff', back_populates='appointments')
    service = relationship('Services', back_populates='appointments')


__all__ = [
    "Base",
    "metadata",
    "AppointmentStatus",
    "Staff",
    "StaffAvailability",
    "StaffUnavailability",
    "Services",
    "ServiceSlotWindows",
    "Appointments",
]
