import uuid

import pytest

from conftest import ADMIN, STAFF

DAY = "2024-03-25"


def _unique_email(prefix: str) -> str:
    return f"{prefix}_{uuid.uuid4().hex[:10]}@example.com"


def _book(client, guests=2, time="18:00", date=DAY, **extra):
    payload = {
        "name": "Integration Tester",
        "email": _unique_email("reserve"),
        "phone": "555-0100",
        "date": date,
        "time": time,
        "guests": guests,
        **extra,
    }
    return client.post("/api/reservations", json=payload)


def _slot(client, time="18:00", guests=1, date=DAY):
    r = client.get("/api/availability", query_string={"date": date, "guests": guests})
    assert r.status_code == 200
    return next(s for s in r.get_json()["availability"] if s["time"] == time)


def test_health_ok(client):
    r = client.get("/health")
    assert r.status_code == 200
    assert r.get_json().get("status") == "ok"


def test_availability_on_empty_day(client):
    r = client.get("/api/availability", query_string={"date": DAY, "guests": 2})
    assert r.status_code == 200
    body = r.get_json()
    assert body["date"] == DAY
    assert body["guests"] == 2
    assert body["allTimeSlots"][0] == "17:00"
    assert len(body["availability"]) == len(body["allTimeSlots"])
    for slot in body["availability"]:
        assert slot == {"time": slot["time"], "isAvailable": True, "availableTables": 5, "remainingCapacity": 20}


def test_availability_requires_date(client):
    r = client.get("/api/availability")
    assert r.status_code == 400
    assert r.get_json()["code"] == "MISSING_DATE"


@pytest.mark.parametrize("params,code", [
    ({"date": "25/03/2024"}, "BAD_DATE"),
    ({"date": DAY, "guests": "0"}, "BAD_GUESTS"),
    ({"date": DAY, "guests": "many"}, "BAD_GUESTS"),
])
def test_availability_bad_input(client, params, code):
    r = client.get("/api/availability", query_string=params)
    assert r.status_code == 422
    assert r.get_json()["code"] == code


def test_availability_on_closed_day_is_empty(client):
    r = client.get("/api/availability", query_string={"date": "2030-12-25"})
    body = r.get_json()
    assert body["availability"] == []
    assert body["allTimeSlots"] == []


def test_create_reservation_is_always_pending(client):
    r = _book(client, guests=4, status="confirmed", specialRequests="Window seat")
    assert r.status_code == 201
    body = r.get_json()
    assert body["status"] == "pending"
    assert body["reservationCode"].startswith("RES2")
    assert body["reservation"]["specialRequests"] == "Window seat"
    assert body["reservation"]["guests"] == 4


def test_booking_reduces_remaining_capacity(client):
    assert _book(client, guests=4).status_code == 201
    slot = _slot(client)
    assert slot["remainingCapacity"] == 16
    assert slot["availableTables"] == 4

    assert _book(client, guests=8).status_code == 201
    assert _book(client, guests=8).status_code == 201
    slot = _slot(client)
    assert slot["remainingCapacity"] == 0
    assert slot["isAvailable"] is False

    r = _book(client, guests=1)
    assert r.status_code == 409
    body = r.get_json()
    assert body["code"] == "FULLY_BOOKED"
    assert body["details"]["remainingCapacity"] == 0

    # other slots are untouched
    assert _slot(client, time="19:00")["remainingCapacity"] == 20


def test_cancellation_frees_seats(client):
    created = _book(client, guests=8).get_json()["reservation"]
    assert _slot(client)["remainingCapacity"] == 12

    r = client.patch(f"/api/reservations/{created['id']}", json={"status": "cancelled"}, headers=STAFF)
    assert r.status_code == 200
    assert _slot(client)["remainingCapacity"] == 20


@pytest.mark.parametrize("overrides,code", [
    ({"guests": 9}, "VALIDATION_ERROR"),
    ({"guests": 0}, "VALIDATION_ERROR"),
    ({"time": "18:15"}, "VALIDATION_ERROR"),
    ({"time": "late"}, "VALIDATION_ERROR"),
    ({"date": "2030-12-25"}, "VALIDATION_ERROR"),
    ({"email": "not-an-email"}, "VALIDATION_ERROR"),
    ({"guests": True}, "VALIDATION_ERROR"),
    ({"guests": "4"}, "VALIDATION_ERROR"),
    ({"date": 0}, "VALIDATION_ERROR"),
])
def test_create_reservation_rejects_bad_input(client, overrides, code):
    r = _book(client, **overrides)
    assert r.status_code == 422
    assert r.get_json()["code"] == code


def test_create_reservation_requires_json(client):
    r = client.post("/api/reservations", data="nope", content_type="text/plain")
    assert r.status_code == 400
    assert r.get_json()["code"] == "INVALID_PAYLOAD"


def test_lookup_by_code_is_case_insensitive(client):
    code = _book(client).get_json()["reservationCode"]

    r = client.get(f"/api/reservations/code/{code.lower()}")
    assert r.status_code == 200
    assert r.get_json()["reservation"]["reservationCode"] == code

    r = client.get("/api/reservations/code/RES0000NOPE")
    assert r.status_code == 404
    assert r.get_json()["code"] == "NOT_FOUND"


def test_staff_list_requires_bearer_token(client):
    r = client.get("/api/reservations", query_string={"date": DAY})
    assert r.status_code == 401
    assert r.get_json()["code"] == "UNAUTHORIZED"


def test_staff_list_for_day(client):
    _book(client, time="19:00")
    _book(client, time="17:30")
    _book(client, date="2024-03-26")

    r = client.get("/api/reservations", query_string={"date": DAY, "page_size": 100}, headers=ADMIN)
    assert r.status_code == 200
    data = r.get_json()
    assert data["total"] == 2
    assert [row["time"] for row in data["reservations"]] == ["17:30", "19:00"]


def test_status_lifecycle_over_http(client):
    res = _book(client).get_json()["reservation"]
    url = f"/api/reservations/{res['id']}"

    r = client.patch(url, json={"status": "confirmed"}, headers=STAFF)
    assert r.status_code == 200
    assert r.get_json()["reservation"]["status"] == "confirmed"

    r = client.patch(url, json={"status": "completed"}, headers=STAFF)
    assert r.get_json()["reservation"]["status"] == "completed"

    before = client.get(url, headers=STAFF).get_json()
    r = client.patch(url, json={"status": "pending"}, headers=STAFF)
    assert r.status_code == 409
    assert r.get_json()["code"] == "INVALID_TRANSITION"
    assert client.get(url, headers=STAFF).get_json() == before


def test_status_update_rejects_unknown_status(client):
    res = _book(client).get_json()["reservation"]
    r = client.patch(f"/api/reservations/{res['id']}", json={"status": "seated"}, headers=STAFF)
    assert r.status_code == 422


def test_status_update_on_missing_reservation(client):
    r = client.patch("/api/reservations/9999", json={"status": "confirmed"}, headers=STAFF)
    assert r.status_code == 404


def test_store_outage_is_reported(client, monkeypatch):
    from sqlalchemy.exc import OperationalError
    import restaurant_api.blueprints.availability as availability_bp

    def boom(*args, **kwargs):
        raise OperationalError("SELECT 1", {}, Exception("connection refused"))

    monkeypatch.setattr(availability_bp, "check_availability", boom)
    r = client.get("/api/availability", query_string={"date": DAY})
    assert r.status_code == 503
    assert r.get_json()["code"] == "STORE_UNAVAILABLE"


def test_numeric_date_is_not_booked_as_epoch(client):
    r = _book(client, date=0)
    assert r.status_code == 422

    r = client.get("/api/reservations", query_string={"date": "1970-01-01"}, headers=ADMIN)
    assert r.get_json()["total"] == 0


def test_rate_limiter_forgets_past_windows(app, monkeypatch):
    from restaurant_api.blueprints import reservations as reservations_bp

    monkeypatch.setattr(reservations_bp, "_rate_state", {"203.0.113.9": (5, 0)})

    assert reservations_bp._allow("198.51.100.7") is True
    assert "203.0.113.9" not in reservations_bp._rate_state
    assert list(reservations_bp._rate_state) == ["198.51.100.7"]
