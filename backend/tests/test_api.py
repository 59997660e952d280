import pytest
from fastapi.testclient import TestClient

from slotbook.database import get_db
from slotbook.main import app

from .helpers import MONDAY, SATURDAY


@pytest.fixture
def client(session_factory, seed):
    def override_get_db():
        db = session_factory()
        try:
            yield db
        finally:
            db.close()

    app.dependency_overrides[get_db] = override_get_db
    yield TestClient(app)
    app.dependency_overrides.clear()


def reserve(client, start_slot, day=MONDAY, service_id=1):
    return client.post("/appointments", json={
        "staff_id": 1,
        "service_id": service_id,
        "client_id": 42,
        "date": day.isoformat(),
        "start_slot": start_slot,
    })


def test_health(client):
    response = client.get("/health")

    assert response.status_code == 200
    assert response.json() == {"status": "ok", "redis": None}


def test_get_availability(client):
    response = client.get("/availability", params={"staff_id": 1, "service_id": 1, "date": MONDAY.isoformat()})

    assert response.status_code == 200
    body = response.json()
    assert body["is_working"] is True
    assert body["slots_needed"] == 2
    assert body["free_ranges"][0] == {
        "start_slot": 18, "end_slot": 20, "slots_used": 2,
        "start_time": "09:00", "end_time": "10:00",
    }


def test_availability_non_working_day(client):
    response = client.get("/availability", params={"staff_id": 1, "service_id": 1, "date": SATURDAY.isoformat()})

    assert response.status_code == 200
    assert response.json()["free_ranges"] == []


def test_availability_unknown_staff(client):
    response = client.get("/availability", params={"staff_id": 99, "service_id": 1, "date": MONDAY.isoformat()})

    assert response.status_code == 404
    assert response.json()["detail"]["code"] == "staff_not_found"


def test_availability_requires_date(client):
    response = client.get("/availability", params={"staff_id": 1, "service_id": 1})

    assert response.status_code == 422


def test_reserve_and_fetch(client):
    response = reserve(client, 20)

    assert response.status_code == 201
    body = response.json()
    assert body["start_time"] == "10:00"
    assert body["end_time"] == "11:00"
    assert body["status"] == "PENDING"

    fetched = client.get(f"/appointments/{body['appointment_id']}")
    assert fetched.status_code == 200
    assert fetched.json()["client_id"] == 42
    assert fetched.json()["slots_used"] == 2


def test_double_booking_returns_conflict(client):
    assert reserve(client, 20).status_code == 201

    response = reserve(client, 21)

    assert response.status_code == 409
    assert response.json()["detail"] == {
        "code": "reservation_race",
        "reason": "fully_booked",
        "conflicting_slots": [21],
    }


def test_reserve_outside_hours_returns_conflict(client):
    response = reserve(client, 20, day=SATURDAY)

    assert response.status_code == 409
    assert response.json()["detail"]["code"] == "slot_unavailable"


def test_reserve_invalid_slot(client):
    response = reserve(client, 48)

    assert response.status_code == 422
    assert response.json()["detail"]["code"] == "slot_out_of_range"


def test_get_unknown_appointment(client):
    response = client.get("/appointments/999")

    assert response.status_code == 404
    assert response.json()["detail"]["code"] == "appointment_not_found"


def test_cancel_then_rebook(client):
    appointment_id = reserve(client, 20).json()["appointment_id"]

    response = client.patch(f"/appointments/{appointment_id}/cancel")

    assert response.status_code == 200
    assert response.json() == {"ok": True, "appointment_id": appointment_id, "status": "CANCELLED"}
    assert reserve(client, 20).status_code == 201

    again = client.patch(f"/appointments/{appointment_id}/cancel")
    assert again.status_code == 409
    assert again.json()["detail"]["code"] == "invalid_status_transition"


def test_complete(client):
    appointment_id = reserve(client, 20).json()["appointment_id"]

    response = client.patch(f"/appointments/{appointment_id}/complete")

    assert response.status_code == 200
    assert response.json()["status"] == "COMPLETED"


def test_reschedule(client):
    appointment_id = reserve(client, 20).json()["appointment_id"]

    response = client.post(
        f"/appointments/{appointment_id}/reschedule",
        json={"date": MONDAY.isoformat(), "start_slot": 30},
    )

    assert response.status_code == 200
    body = response.json()
    assert body["appointment_id"] != appointment_id
    assert (body["start_slot"], body["end_slot"]) == (30, 32)
    assert client.get(f"/appointments/{appointment_id}").json()["status"] == "CANCELLED"
