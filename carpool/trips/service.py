"""Trip service layer."""

import logging

from sqlalchemy import delete
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from carpool.db.models import CarStatus, Trip
from carpool.trips.schemas import TripCreate, TripUpdate

logger = logging.getLogger(__name__)


class TripService:
    """Service class for trip operations."""

    def __init__(self, db: Session):
        """Initialize trip service.

        Args:
            db: Database session.
        """
        self.db = db

    def list_trips(
        self,
        car_status: CarStatus | None = None,
        flight_date: str | None = None,
    ) -> list[Trip]:
        """List trips in flight order.

        Args:
            car_status: Only trips with this car status.
            flight_date: Only trips on this date.

        Returns:
            list[Trip]: Trips sorted by flight date and time.
        """
        query = self.db.query(Trip)
        if car_status is not None:
            query = query.filter(Trip.car_status == car_status)
        if flight_date:
            query = query.filter(Trip.flight_date == flight_date)
        return query.order_by(Trip.flight_date.asc(), Trip.flight_time.asc()).all()

    def get_trip(self, trip_id: str) -> Trip | None:
        """Get a trip by ID.

        Args:
            trip_id: Trip UUID.

        Returns:
            Trip | None: Trip if found.
        """
        return self.db.query(Trip).filter(Trip.id == trip_id).first()

    def create_trip(self, data: TripCreate) -> Trip:
        """Create a trip.

        Args:
            data: Trip data.

        Returns:
            Trip: Created trip.
        """
        trip = Trip(**data.model_dump())
        self.db.add(trip)
        self.db.commit()
        self.db.refresh(trip)
        logger.info("Trip %s created for flight %s", trip.id, trip.flight_number)
        return trip

    def replace_trips(self, trips: list[TripCreate]) -> tuple[int, int]:
        """Replace every trip with an imported set.

        The delete and the inserts share one transaction, so a failure
        leaves the previous trips in place.

        Args:
            trips: Validated trips to store.

        Returns:
            tuple[int, int]: Number of trips created and number deleted.

        Raises:
            SQLAlchemyError: If the database rejects the import.
        """
        try:
            deleted = self.db.execute(delete(Trip)).rowcount
            self.db.add_all([Trip(**data.model_dump()) for data in trips])
            self.db.commit()
        except SQLAlchemyError:
            self.db.rollback()
            logger.exception("Trip import failed; previous trips kept")
            raise

        logger.info("Imported %d trips, replacing %d", len(trips), deleted)
        return len(trips), deleted

    def update_trip(self, trip_id: str, data: TripUpdate) -> Trip | None:
        """Update a trip.

        Args:
            trip_id: Trip UUID.
            data: Fields to change.

        Returns:
            Trip | None: Updated trip if found.
        """
        trip = self.get_trip(trip_id)
        if not trip:
            return None

        for field, value in data.model_dump(exclude_unset=True).items():
            if value is not None:
                setattr(trip, field, value)

        self.db.commit()
        self.db.refresh(trip)
        return trip

    def delete_trip(self, trip_id: str) -> bool:
        """Delete a trip.

        Args:
            trip_id: Trip UUID.

        Returns:
            bool: True if deleted, False if not found.
        """
        trip = self.get_trip(trip_id)
        if not trip:
            return False

        self.db.delete(trip)
        self.db.commit()
        return True
