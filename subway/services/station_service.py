"""Station management service."""

import uuid

import structlog
from fastapi import HTTPException, status
from sqlalchemy import exists, or_, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from subway.models.favorite import Favorite
from subway.models.line import Section
from subway.models.station import Station
from subway.schemas.stations import CreateStationRequest

logger = structlog.get_logger(__name__)


class StationService:
    """Service for managing stations."""

    def __init__(self, db: AsyncSession) -> None:
        """
        Initialize the station service.

        Args:
            db: Database session
        """
        self.db = db

    async def get_station_by_id(self, station_id: uuid.UUID) -> Station:
        """
        Get a station by ID.

        Raises:
            HTTPException: 404 if station not found
        """
        result = await self.db.execute(select(Station).where(Station.id == station_id))

        if not (station := result.scalar_one_or_none()):
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail=f"Station {station_id} not found.",
            )

        return station

    async def list_stations(self) -> list[Station]:
        """List all stations ordered by name."""
        result = await self.db.execute(select(Station).order_by(Station.name))
        return list(result.scalars().all())

    async def create_station(self, request: CreateStationRequest) -> Station:
        """
        Create a station.

        Raises:
            HTTPException: 409 if a station with the same name exists
        """
        existing = await self.db.execute(select(Station.id).where(Station.name == request.name))
        if existing.scalar_one_or_none() is not None:
            raise HTTPException(
                status_code=status.HTTP_409_CONFLICT,
                detail=f"Station '{request.name}' already exists.",
            )

        station = Station(name=request.name)
        self.db.add(station)

        try:
            await self.db.commit()
        except IntegrityError as e:
            await self.db.rollback()
            raise HTTPException(
                status_code=status.HTTP_409_CONFLICT,
                detail=f"Station '{request.name}' already exists.",
            ) from e

        logger.info("station_created", station_id=str(station.id), name=station.name)
        return station

    async def delete_station(self, station_id: uuid.UUID) -> None:
        """
        Delete a station that no section or favorite refers to.

        Raises:
            HTTPException: 404 if station not found, 409 if it is still referenced
        """
        station = await self.get_station_by_id(station_id)

        if await self._is_referenced(station_id):
            raise HTTPException(
                status_code=status.HTTP_409_CONFLICT,
                detail="Station is used by a line or a favorite and cannot be deleted.",
            )

        await self.db.delete(station)
        await self.db.commit()
        logger.info("station_deleted", station_id=str(station_id))

    async def _is_referenced(self, station_id: uuid.UUID) -> bool:
        in_section = exists().where(or_(Section.up_station_id == station_id, Section.down_station_id == station_id))
        in_favorite = exists().where(
            or_(Favorite.source_station_id == station_id, Favorite.target_station_id == station_id)
        )
        result = await self.db.execute(select(or_(in_section, in_favorite)))
        return bool(result.scalar())
