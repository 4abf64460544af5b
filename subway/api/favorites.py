"""Favorites API endpoints for the authenticated member."""

from uuid import UUID

from fastapi import APIRouter, Depends, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from subway.core.auth import get_current_member
from subway.core.config import settings
from subway.core.database import get_db
from subway.models.favorite import Favorite
from subway.models.member import Member
from subway.schemas.favorites import CreateFavoriteRequest, FavoriteResponse
from subway.services.favorite_service import FavoriteService

router = APIRouter(prefix="/favorites", tags=["favorites"])


@router.post("", response_model=FavoriteResponse, status_code=status.HTTP_201_CREATED)
async def create_favorite(
    request: CreateFavoriteRequest,
    response: Response,
    current_member: Member = Depends(get_current_member),
    db: AsyncSession = Depends(get_db),
) -> Favorite:
    """
    Save a favorite route.

    Args:
        request: Source and target station IDs
        response: Outgoing response, used to set the Location header
        current_member: Authenticated member
        db: Database session

    Returns:
        Created favorite

    Raises:
        HTTPException: 404 if either station does not exist
    """
    favorite = await FavoriteService(db).create_favorite(current_member.id, request)
    response.headers["Location"] = f"{settings.API_V1_PREFIX}/favorites/{favorite.id}"
    return favorite


@router.get("", response_model=list[FavoriteResponse])
async def list_favorites(
    current_member: Member = Depends(get_current_member),
    db: AsyncSession = Depends(get_db),
) -> list[Favorite]:
    """List the authenticated member's favorites."""
    return await FavoriteService(db).list_favorites(current_member.id)


@router.delete("/{favorite_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_favorite(
    favorite_id: UUID,
    current_member: Member = Depends(get_current_member),
    db: AsyncSession = Depends(get_db),
) -> None:
    """
    Delete one of the authenticated member's favorites.

    Raises:
        HTTPException: 404 if favorite not found or owned by another member
    """
    await FavoriteService(db).delete_favorite(current_member.id, favorite_id)
