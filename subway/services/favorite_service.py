"""Favorite management service."""

import uuid

import structlog
from fastapi import HTTPException, status
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from subway.models.favorite import Favorite
from subway.schemas.favorites import CreateFavoriteRequest
from subway.services.station_service import StationService

logger = structlog.get_logger(__name__)


class FavoriteService:
    """Service for managing a member's favorite routes."""

    def __init__(self, db: AsyncSession) -> None:
        """
        Initialize the favorite service.

        Args:
            db: Database session
        """
        self.db = db
        self.station_service = StationService(db)

    async def get_favorite_by_id(self, favorite_id: uuid.UUID, member_id: uuid.UUID) -> Favorite:
        """
        Get a favorite by ID with ownership validation.

        Args:
            favorite_id: Favorite UUID
            member_id: Member UUID (for ownership check)

        Returns:
            Favorite with both stations loaded

        Raises:
            HTTPException: 404 if favorite not found or doesn't belong to member
        """
        result = await self.db.execute(
            select(Favorite)
            .where(
                Favorite.id == favorite_id,
                Favorite.member_id == member_id,
            )
            .options(
                selectinload(Favorite.source_station),
                selectinload(Favorite.target_station),
            )
        )

        if not (favorite := result.scalar_one_or_none()):
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="Favorite not found.",
            )

        return favorite

    async def list_favorites(self, member_id: uuid.UUID) -> list[Favorite]:
        """
        List all favorites of a member, oldest first.

        Args:
            member_id: Member UUID

        Returns:
            Favorites with both stations loaded
        """
        result = await self.db.execute(
            select(Favorite)
            .where(Favorite.member_id == member_id)
            .options(
                selectinload(Favorite.source_station),
                selectinload(Favorite.target_station),
            )
            .order_by(Favorite.created_at)
        )
        return list(result.scalars().all())

    async def create_favorite(self, member_id: uuid.UUID, request: CreateFavoriteRequest) -> Favorite:
        """
        Save a favorite for a member.

        The two stations only have to exist; whether a line connects them is not checked.

        Raises:
            HTTPException: 404 if either station is missing
        """
        source_station = await self.station_service.get_station_by_id(request.source_station_id)
        target_station = await self.station_service.get_station_by_id(request.target_station_id)

        favorite = Favorite(
            member_id=member_id,
            source_station=source_station,
            target_station=target_station,
        )

        self.db.add(favorite)
        await self.db.commit()

        logger.info(
            "favorite_created",
            favorite_id=str(favorite.id),
            member_id=str(member_id),
        )
        return favorite

    async def delete_favorite(self, member_id: uuid.UUID, favorite_id: uuid.UUID) -> None:
        """
        Delete a member's favorite.

        Raises:
            HTTPException: 404 if favorite not found or owned by another member
        """
        favorite = await self.get_favorite_by_id(favorite_id, member_id)

        await self.db.delete(favorite)
        await self.db.commit()
        logger.info("favorite_deleted", favorite_id=str(favorite_id), member_id=str(member_id))
