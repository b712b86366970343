"""Unit tests for trip endpoints."""

import uuid
from datetime import timedelta

import pytest

from ridemate.auth import Role
from ridemate.models import BookingStatus, TripStatus
from tests.fakes.builders import (
    ADMIN_ID,
    DRIVER_ID,
    NOW,
    OTHER_PASSENGER_ID,
    PASSENGER_ID,
    make_booking,
    make_trip,
)

TRIPS = "/api/v1/trips"


def new_trip_body(**overrides) -> dict:
    body = {
        "from": {"city": "Bengaluru", "state": "Karnataka"},
        "to": {"city": "Mysuru", "state": "Karnataka"},
        "departureDate": (NOW.date() + timedelta(days=2)).isoformat(),
        "departureTime": "06:15",
        "tripType": "one-way",
        "vehicle": {
            "type": "hatchback",
            "model": "Swift",
            "number": "KA01AB0001",
            "color": "Red",
        },
        "availableSeats": 3,
        "pricePerSeat": 350,
        "rules": ["No smoking"],
    }
    body.update(overrides)
    return body


@pytest.mark.unit
def test_create_trip(client, auth_headers):
    response = client.post(TRIPS, json=new_trip_body(), headers=auth_headers(DRIVER_ID))

    assert response.status_code == 201
    body = response.json()
    assert body["success"] is True
    assert body["message"] == "Trip created successfully"
    data = body["data"]
    assert data["driver"] == str(DRIVER_ID)
    assert data["status"] == "pending"
    assert data["from"]["city"] == "Bengaluru"
    assert data["remainingSeats"] == 3
    assert data["pricePerSeat"] == 350.0
    assert data["passengers"] == []


@pytest.mark.unit
def test_create_trip_requires_token(client):
    response = client.post(TRIPS, json=new_trip_body())

    assert response.status_code in (401, 403)


@pytest.mark.unit
def test_create_trip_invalid_body(client, auth_headers):
    body = new_trip_body(availableSeats=9, departureTime="25:00")

    response = client.post(TRIPS, json=body, headers=auth_headers(DRIVER_ID))

    assert response.status_code == 400
    body = response.json()
    assert body["success"] is False
    assert body["error"] == "validation_failed"
    fields = {detail["field"] for detail in body["details"]}
    assert {"availableSeats", "departureTime"} <= fields


@pytest.mark.unit
def test_invalid_token_rejected(client):
    response = client.post(
        TRIPS, json=new_trip_body(), headers={"Authorization": "Bearer not-a-jwt"}
    )

    assert response.status_code == 401


@pytest.mark.unit
def test_search_trips(client, store, trip):
    store.seed(make_trip(to_city="Nashik"))

    response = client.get(TRIPS, params={"from": "mumbai", "to": "pune", "seats": 2})

    assert response.status_code == 200
    body = response.json()
    assert body["count"] == 1
    assert body["data"][0]["id"] == str(trip.id)


@pytest.mark.unit
def test_search_requires_both_cities(client):
    response = client.get(TRIPS, params={"from": "Mumbai"})

    assert response.status_code == 400
    assert response.json()["details"] == [
        {"field": "to", "message": "Destination city is required"}
    ]


@pytest.mark.unit
def test_get_trip(client, trip):
    response = client.get(f"{TRIPS}/{trip.id}")

    assert response.status_code == 200
    assert response.json()["data"]["vehicle"]["number"] == "MH12AB1234"


@pytest.mark.unit
def test_get_unknown_trip(client):
    response = client.get(f"{TRIPS}/{uuid.uuid4()}")

    assert response.status_code == 404
    assert response.json() == {
        "success": False,
        "error": "not_found",
        "message": "Trip not found",
    }


@pytest.mark.unit
def test_book_and_cancel_through_trip(client, auth_headers, store, trip):
    headers = auth_headers(PASSENGER_ID)

    booked = client.post(
        f"{TRIPS}/{trip.id}/book",
        json={"userId": str(PASSENGER_ID), "seatsRequested": 2},
        headers=headers,
    )

    assert booked.status_code == 200
    data = booked.json()["data"]
    assert data["bookedSeats"] == 2
    assert data["remainingSeats"] == 2
    assert data["totalEarnings"] == 300.0
    assert data["passengers"][0]["user"] == str(PASSENGER_ID)
    assert data["passengers"][0]["status"] == "confirmed"

    cancelled = client.post(
        f"{TRIPS}/{trip.id}/cancel-booking",
        json={"userId": str(PASSENGER_ID)},
        headers=headers,
    )

    assert cancelled.status_code == 200
    data = cancelled.json()["data"]
    assert data["bookedSeats"] == 0
    assert data["passengers"][0]["status"] == "cancelled"
    assert store.bookings_for(trip.id)[0].booking_status == BookingStatus.CANCELLED


@pytest.mark.unit
def test_book_more_than_remaining(client, auth_headers, trip):
    response = client.post(
        f"{TRIPS}/{trip.id}/book",
        json={"userId": str(PASSENGER_ID), "seatsRequested": 5},
        headers=auth_headers(PASSENGER_ID),
    )

    assert response.status_code == 400
    assert response.json()["error"] == "insufficient_seats"


@pytest.mark.unit
def test_book_twice(client, auth_headers, trip):
    body = {"userId": str(PASSENGER_ID), "seatsRequested": 1}
    headers = auth_headers(PASSENGER_ID)
    client.post(f"{TRIPS}/{trip.id}/book", json=body, headers=headers)

    response = client.post(f"{TRIPS}/{trip.id}/book", json=body, headers=headers)

    assert response.status_code == 400
    assert response.json()["error"] == "duplicate_booking"


@pytest.mark.unit
def test_book_for_someone_else_forbidden(client, auth_headers, trip):
    response = client.post(
        f"{TRIPS}/{trip.id}/book",
        json={"userId": str(OTHER_PASSENGER_ID), "seatsRequested": 1},
        headers=auth_headers(PASSENGER_ID),
    )

    assert response.status_code == 403
    assert response.json()["error"] == "forbidden"


@pytest.mark.unit
def test_admin_books_for_user(client, auth_headers, trip):
    response = client.post(
        f"{TRIPS}/{trip.id}/book",
        json={"userId": str(PASSENGER_ID), "seatsRequested": 1},
        headers=auth_headers(ADMIN_ID, Role.ADMIN),
    )

    assert response.status_code == 200


@pytest.mark.unit
def test_update_price_blocked_while_booked(client, auth_headers, trip):
    client.post(
        f"{TRIPS}/{trip.id}/book",
        json={"userId": str(PASSENGER_ID), "seatsRequested": 1},
        headers=auth_headers(PASSENGER_ID),
    )

    response = client.put(
        f"{TRIPS}/{trip.id}",
        json={"pricePerSeat": 99},
        headers=auth_headers(DRIVER_ID),
    )

    assert response.status_code == 400
    assert response.json()["details"][0]["field"] == "pricePerSeat"


@pytest.mark.unit
def test_update_trip(client, auth_headers, trip):
    response = client.put(
        f"{TRIPS}/{trip.id}",
        json={"departureTime": "10:45", "amenities": ["wifi"]},
        headers=auth_headers(DRIVER_ID),
    )

    assert response.status_code == 200
    data = response.json()["data"]
    assert data["departureTime"] == "10:45"
    assert data["amenities"] == ["wifi"]


@pytest.mark.unit
def test_delete_trip(client, auth_headers, store, trip):
    response = client.delete(f"{TRIPS}/{trip.id}", headers=auth_headers(DRIVER_ID))

    assert response.status_code == 200
    assert response.json() == {"success": True, "message": "Trip deleted successfully"}
    assert store.get_trip(trip.id) is None


@pytest.mark.unit
def test_delete_trip_with_history_deactivates(client, auth_headers, store, trip):
    store.seed(make_booking(trip, booking_status=BookingStatus.CANCELLED))

    response = client.delete(f"{TRIPS}/{trip.id}", headers=auth_headers(DRIVER_ID))

    assert response.json()["message"] == "Trip deactivated successfully"
    assert store.get_trip(trip.id).is_active is False


@pytest.mark.unit
def test_delete_by_stranger_forbidden(client, auth_headers, trip):
    response = client.delete(f"{TRIPS}/{trip.id}", headers=auth_headers(PASSENGER_ID))

    assert response.status_code == 403


@pytest.mark.unit
def test_cancel_trip(client, auth_headers, store, trip):
    client.post(
        f"{TRIPS}/{trip.id}/book",
        json={"userId": str(PASSENGER_ID), "seatsRequested": 2},
        headers=auth_headers(PASSENGER_ID),
    )

    response = client.post(
        f"{TRIPS}/{trip.id}/cancel",
        json={"reason": "Weather"},
        headers=auth_headers(DRIVER_ID),
    )

    assert response.status_code == 200
    data = response.json()["data"]
    assert data["status"] == "cancelled"
    assert data["bookedSeats"] == 0
    assert store.bookings_for(trip.id)[0].cancellation_reason == "Weather"


@pytest.mark.unit
def test_complete_trip(client, auth_headers, store, trip):
    response = client.post(f"{TRIPS}/{trip.id}/complete", headers=auth_headers(DRIVER_ID))

    assert response.status_code == 200
    assert store.get_trip(trip.id).status == TripStatus.COMPLETED


@pytest.mark.unit
def test_popular_routes(client, store, trip):
    store.seed(make_trip(price_per_seat=250))

    response = client.get(f"{TRIPS}/popular-routes")

    assert response.status_code == 200
    route = response.json()["data"][0]
    assert route["from"] == "Mumbai"
    assert route["to"] == "Pune"
    assert route["tripCount"] == 2
    assert route["averagePrice"] == 200.0
    assert route["minPrice"] == 150.0


@pytest.mark.unit
def test_driver_trips(client, store, trip):
    store.seed(make_trip(driver_id=OTHER_PASSENGER_ID))

    response = client.get(f"{TRIPS}/driver/{DRIVER_ID}")

    assert response.status_code == 200
    assert [t["id"] for t in response.json()["data"]] == [str(trip.id)]
