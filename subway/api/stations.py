"""Stations API endpoints."""

from uuid import UUID

from fastapi import APIRouter, Depends, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from subway.core.auth import get_current_member
from subway.core.config import settings
from subway.core.database import get_db
from subway.models.station import Station
from subway.schemas.stations import CreateStationRequest, StationResponse
from subway.services.station_service import StationService

router = APIRouter(prefix="/stations", tags=["stations"])


@router.post(
    "",
    response_model=StationResponse,
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(get_current_member)],
)
async def create_station(
    request: CreateStationRequest,
    response: Response,
    db: AsyncSession = Depends(get_db),
) -> Station:
    """
    Create a station.

    Raises:
        HTTPException: 409 if the name is already used
    """
    station = await StationService(db).create_station(request)
    response.headers["Location"] = f"{settings.API_V1_PREFIX}/stations/{station.id}"
    return station


@router.get("", response_model=list[StationResponse])
async def list_stations(db: AsyncSession = Depends(get_db)) -> list[Station]:
    """List all stations ordered by name."""
    return await StationService(db).list_stations()


@router.get("/{station_id}", response_model=StationResponse)
async def get_station(station_id: UUID, db: AsyncSession = Depends(get_db)) -> Station:
    """
    Get a station by ID.

    Raises:
        HTTPException: 404 if station not found
    """
    return await StationService(db).get_station_by_id(station_id)


@router.delete(
    "/{station_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    dependencies=[Depends(get_current_member)],
)
async def delete_station(station_id: UUID, db: AsyncSession = Depends(get_db)) -> None:
    """
    Delete a station.

    Raises:
        HTTPException: 404 if station not found, 409 if a line or favorite still uses it
    """
    await StationService(db).delete_station(station_id)
