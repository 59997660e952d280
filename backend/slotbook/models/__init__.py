from .tables import (
    Appointments,
    AppointmentStatus,
    Base,
    ServiceSlotWindows,
    Services,
    Staff,
    StaffAvailability,
    StaffUnavailability,
    metadata,
)

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
