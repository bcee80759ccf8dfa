"""API router for trips."""

from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.orm import Session

from carpool.db.models import CarStatus
from carpool.dependencies import CurrentUser, get_db
from carpool.trips.schemas import TripCreate, TripResponse, TripUpdate
from carpool.trips.service import TripService

router = APIRouter()


def get_trip_service(
    db: Annotated[Session, Depends(get_db)],
    _user: CurrentUser,  # Trips are only visible to admitted users
) -> TripService:
    """Get trip service dependency."""
    return TripService(db)


@router.get("", response_model=list[TripResponse])
async def list_trips(
    service: Annotated[TripService, Depends(get_trip_service)],
    car_status: Annotated[CarStatus | None, Query(alias="carStatus")] = None,
    flight_date: Annotated[str | None, Query(alias="flightDate")] = None,
):
    """List trips in flight order, optionally filtered."""
    return service.list_trips(car_status=car_status, flight_date=flight_date)


@router.get("/{trip_id}", response_model=TripResponse)
async def get_trip(
    trip_id: str,
    service: Annotated[TripService, Depends(get_trip_service)],
):
    """Get a trip."""
    trip = service.get_trip(trip_id)
    if not trip:
        raise HTTPException(status_code=404, detail="Trip not found")
    return trip


@router.post("", response_model=TripResponse, status_code=status.HTTP_201_CREATED)
async def create_trip(
    data: TripCreate,
    service: Annotated[TripService, Depends(get_trip_service)],
):
    """Create a trip."""
    return service.create_trip(data)


@router.post("/import")
async def import_trips(
    trips: list[TripCreate],
    service: Annotated[TripService, Depends(get_trip_service)],
):
    """Replace all trips with an imported list.

    Every row is validated before anything is written, so one bad row
    leaves the existing trips untouched.

    Args:
        trips: Trips to import.
        service: Trip service.

    Returns:
        dict: Success message with created and deleted counts.

    Raises:
        HTTPException: 400 if the list is empty.
    """
    if not trips:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Invalid data: expected array of trips",
        )
    count, deleted = service.replace_trips(trips)
    return {"message": "Import successful", "count": count, "deleted": deleted}


@router.put("/{trip_id}", response_model=TripResponse)
async def update_trip(
    trip_id: str,
    data: TripUpdate,
    service: Annotated[TripService, Depends(get_trip_service)],
):
    """Update a trip."""
    trip = service.update_trip(trip_id, data)
    if not trip:
        raise HTTPException(status_code=404, detail="Trip not found")
    return trip


@router.delete("/{trip_id}")
async def delete_trip(
    trip_id: str,
    service: Annotated[TripService, Depends(get_trip_service)],
):
    """Delete a trip."""
    if not service.delete_trip(trip_id):
        raise HTTPException(status_code=404, detail="Trip not found")
    return {"message": "Trip deleted successfully"}
