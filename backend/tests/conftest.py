import pytest
from sqlalchemy.orm import sessionmaker

from slotbook.database import build_engine
from slotbook.models import (
    Base,
    Services,
    ServiceSlotWindows,
    Staff,
    StaffAvailability,
)
from slotbook.services.slots.config import BookingConfig
from slotbook.services.slots.locks import LocalStaffDayLocks

from .helpers import make_slot_schedule


@pytest.fixture
def engine(tmp_path):
    engine = build_engine(f"sqlite:///{tmp_path / 'slotbook-test.db'}")
    Base.metadata.create_all(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    yield session
    session.close()


@pytest.fixture
def config():
    return BookingConfig(min_advance_minutes=0, lock_timeout_seconds=5)


@pytest.fixture
def locks():
    return LocalStaffDayLocks(timeout=5)


@pytest.fixture
def seed(db):
    """
    staff 1: Mon-Fri 09:00-18:00, lunch 13:00-14:00
    staff 2: same hours, no lunch
    service 1: haircut, 45 min → 2 slots
    service 2: yoga class, 60 min, Monday 10:00-12:00 window for 3 people
    service 3: consultation, 30 min → 1 slot
    """
    alice = Staff(id=1, name="Alice")
    bob = Staff(id=2, name="Bob")
    db.add_all([alice, bob])
    db.add_all([
        StaffAvailability(staff_id=1, schedule={}, slot_schedule=make_slot_schedule(), working_slots={}),
        StaffAvailability(staff_id=2, schedule={}, slot_schedule=make_slot_schedule(lunch=None), working_slots={}),
    ])

    haircut = Services(id=1, name="Haircut", duration_minutes=45, slots_needed=2)
    yoga = Services(id=2, name="Yoga class", duration_minutes=60, slots_needed=2, max_capacity=3)
    consult = Services(id=3, name="Consultation", duration_minutes=30, slots_needed=1)
    db.add_all([haircut, yoga, consult])
    db.add(ServiceSlotWindows(service_id=2, weekday=0, start_slot=20, end_slot=24, capacity=3))
    db.commit()

    return {"alice": 1, "bob": 2, "haircut": 1, "yoga": 2, "consult": 3}
