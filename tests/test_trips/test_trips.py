"""Tests for trips module."""

import pytest
from fastapi.testclient import TestClient
from pydantic import ValidationError
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm import Session

from carpool.db.models import CarStatus, Trip
from carpool.trips.schemas import TripCreate, TripUpdate
from carpool.trips.service import TripService


def trip_data(**overrides) -> dict:
    """Build a valid trip payload."""
    data = {
        "name": "Ada",
        "flightDate": "2025-07-01",
        "flightTime": "9:30",
        "flightNumber": "ba 117",
        "carStatus": "looking",
    }
    data.update(overrides)
    return data


class TestTripSchemas:
    """Tests for trip validation."""

    def test_normalizes_fields(self):
        """Test the time is zero-padded and the flight number upper-cased."""
        trip = TripCreate(**trip_data())
        assert trip.flight_time == "09:30"
        assert trip.flight_number == "BA 117"
        assert trip.car_status == CarStatus.LOOKING

    @pytest.mark.parametrize(
        "field,value",
        [
            ("flightDate", "01/07/2025"),
            ("flightDate", "2025-02-30"),
            ("flightTime", "24:00"),
            ("flightTime", "9.30"),
            ("carStatus", "driving"),
            ("name", ""),
        ],
    )
    def test_rejects_invalid_values(self, field, value):
        """Test malformed fields fail validation."""
        with pytest.raises(ValidationError):
            TripCreate(**trip_data(**{field: value}))

    def test_update_is_partial(self):
        """Test updates only carry the fields that were sent."""
        update = TripUpdate(carStatus="sharing")
        assert update.model_dump(exclude_unset=True) == {"car_status": CarStatus.SHARING}


class TestTripService:
    """Tests for TripService."""

    def test_list_trips_empty(self, db: Session):
        """Test listing trips when none exist."""
        assert TripService(db).list_trips() == []

    def test_list_trips_in_flight_order(self, db: Session):
        """Test trips come back sorted by date then time."""
        service = TripService(db)
        service.create_trip(TripCreate(**trip_data(name="Late", flightTime="18:00")))
        service.create_trip(TripCreate(**trip_data(name="Next day", flightDate="2025-07-02", flightTime="06:00")))
        service.create_trip(TripCreate(**trip_data(name="Early", flightTime="7:15")))

        names = [trip.name for trip in service.list_trips()]
        assert names == ["Early", "Late", "Next day"]

    def test_list_trips_filters(self, db: Session):
        """Test filtering by car status and date."""
        service = TripService(db)
        service.create_trip(TripCreate(**trip_data(name="A", carStatus="booked")))
        service.create_trip(TripCreate(**trip_data(name="B", carStatus="looking")))
        service.create_trip(TripCreate(**trip_data(name="C", flightDate="2025-07-03")))

        assert [t.name for t in service.list_trips(car_status=CarStatus.BOOKED)] == ["A"]
        assert [t.name for t in service.list_trips(flight_date="2025-07-03")] == ["C"]

    def test_update_trip(self, db: Session):
        """Test updating a trip changes only the given fields."""
        service = TripService(db)
        trip = service.create_trip(TripCreate(**trip_data()))

        updated = service.update_trip(trip.id, TripUpdate(carStatus="sharing"))

        assert updated.car_status == CarStatus.SHARING
        assert updated.name == "Ada"

    def test_update_trip_not_found(self, db: Session):
        """Test updating a nonexistent trip."""
        assert TripService(db).update_trip("nonexistent-id", TripUpdate(name="X")) is None

    def test_delete_trip(self, db: Session):
        """Test deleting a trip."""
        service = TripService(db)
        trip = service.create_trip(TripCreate(**trip_data()))

        assert service.delete_trip(trip.id) is True
        assert service.get_trip(trip.id) is None
        assert service.delete_trip(trip.id) is False


    def test_replace_trips(self, db: Session):
        """Test an import replaces every existing trip."""
        service = TripService(db)
        service.create_trip(TripCreate(**trip_data(name="Old")))

        count, deleted = service.replace_trips(
            [TripCreate(**trip_data(name="New 1")), TripCreate(**trip_data(name="New 2"))]
        )

        assert (count, deleted) == (2, 1)
        assert sorted(t.name for t in service.list_trips()) == ["New 1", "New 2"]

    def test_replace_trips_failure_keeps_old_trips(self, db: Session, monkeypatch):
        """Test a database failure during import rolls back the delete."""
        service = TripService(db)
        service.create_trip(TripCreate(**trip_data(name="Old")))

        def fail_commit():
            raise OperationalError("COMMIT", {}, Exception("disk full"))

        monkeypatch.setattr(db, "commit", fail_commit)
        with pytest.raises(OperationalError):
            service.replace_trips([TripCreate(**trip_data(name="New"))])
        monkeypatch.undo()

        assert [t.name for t in db.query(Trip).all()] == ["Old"]


class TestTripsApi:
    """Tests for the trips endpoints."""

    def test_create_and_list(self, user_client: TestClient):
        """Test creating a trip and reading it back."""
        response = user_client.post("/api/trips", json=trip_data())

        assert response.status_code == 201
        created = response.json()
        assert created["flightTime"] == "09:30"
        assert created["flightNumber"] == "BA 117"
        assert created["carStatus"] == "looking"

        listed = user_client.get("/api/trips").json()
        assert [trip["id"] for trip in listed] == [created["id"]]

    def test_list_with_filters(self, user_client: TestClient):
        """Test query string filters."""
        user_client.post("/api/trips", json=trip_data(name="A", carStatus="booked"))
        user_client.post("/api/trips", json=trip_data(name="B", flightDate="2025-07-05"))

        booked = user_client.get("/api/trips", params={"carStatus": "booked"}).json()
        assert [trip["name"] for trip in booked] == ["A"]

        on_date = user_client.get("/api/trips", params={"flightDate": "2025-07-05"}).json()
        assert [trip["name"] for trip in on_date] == ["B"]

    def test_get_update_delete(self, user_client: TestClient):
        """Test the single-trip endpoints."""
        trip_id = user_client.post("/api/trips", json=trip_data()).json()["id"]

        assert user_client.get(f"/api/trips/{trip_id}").status_code == 200

        response = user_client.put(f"/api/trips/{trip_id}", json={"carStatus": "sharing"})
        assert response.status_code == 200
        assert response.json()["carStatus"] == "sharing"

        response = user_client.delete(f"/api/trips/{trip_id}")
        assert response.status_code == 200
        assert response.json() == {"message": "Trip deleted successfully"}
        assert user_client.get(f"/api/trips/{trip_id}").status_code == 404

    def test_invalid_trip(self, user_client: TestClient):
        """Test request validation on create."""
        response = user_client.post("/api/trips", json=trip_data(flightTime="25:00"))
        assert response.status_code == 422

    def test_trips_require_sign_in(self, client: TestClient):
        """Test signed-out requests are rejected."""
        assert client.get("/api/trips").status_code == 401


class TestTripImport:
    """Tests for POST /api/trips/import."""

    def test_import_replaces_trips(self, user_client: TestClient):
        """Test an import swaps out all existing trips."""
        user_client.post("/api/trips", json=trip_data(name="Old"))

        response = user_client.post(
            "/api/trips/import",
            json=[trip_data(name="Ada"), trip_data(name="Grace", carStatus="sharing")],
        )

        assert response.status_code == 200
        assert response.json() == {"message": "Import successful", "count": 2, "deleted": 1}
        names = sorted(trip["name"] for trip in user_client.get("/api/trips").json())
        assert names == ["Ada", "Grace"]

    def test_import_invalid_row_changes_nothing(self, user_client: TestClient):
        """Test one invalid row rejects the whole import."""
        user_client.post("/api/trips", json=trip_data(name="Old"))

        response = user_client.post(
            "/api/trips/import",
            json=[trip_data(name="Ada"), trip_data(name="Bad", flightTime="99:99")],
        )

        assert response.status_code == 422
        assert [trip["name"] for trip in user_client.get("/api/trips").json()] == ["Old"]

    def test_import_empty_list(self, user_client: TestClient):
        """Test an empty import is rejected."""
        response = user_client.post("/api/trips/import", json=[])
        assert response.status_code == 400

    def test_import_requires_sign_in(self, client: TestClient):
        """Test signed-out imports are rejected."""
        response = client.post("/api/trips/import", json=[trip_data()])
        assert response.status_code == 401

    def test_import_rejects_pending_session(self, client: TestClient, sign_in, claims):
        """Test a session that still owes an invitation code cannot import."""
        sign_in(client, claims("oidc-11", "guest@acme.com"), invitation=True)
        response = client.post("/api/trips/import", json=[trip_data()])
        assert response.status_code == 403
        assert response.json()["detail"]["reason"] == "InvitationRequired"
