"""Lines API endpoints, including section management."""

from uuid import UUID

from fastapi import APIRouter, Depends, Query, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from subway.core.auth import get_current_member
from subway.core.config import settings
from subway.core.database import get_db
from subway.models.line import Section
from subway.schemas.lines import (
    CreateLineRequest,
    CreateSectionRequest,
    LineListItemResponse,
    LineResponse,
    SectionResponse,
    UpdateLineRequest,
)
from subway.services.line_service import LineService

router = APIRouter(prefix="/lines", tags=["lines"])


# ==================== Line Endpoints ====================


@router.post(
    "",
    response_model=LineResponse,
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(get_current_member)],
)
async def create_line(
    request: CreateLineRequest,
    response: Response,
    db: AsyncSession = Depends(get_db),
) -> LineResponse:
    """
    Create a line, optionally with its first section.

    Raises:
        HTTPException: 404 if a station is missing, 409 if the name is taken
    """
    line = await LineService(db).create_line(request)
    response.headers["Location"] = f"{settings.API_V1_PREFIX}/lines/{line.id}"
    return LineResponse.from_line(line)


@router.get("", response_model=list[LineListItemResponse])
async def list_lines(db: AsyncSession = Depends(get_db)) -> list[LineListItemResponse]:
    """List all lines with station counts and total distance."""
    lines = await LineService(db).list_lines()
    return [
        LineListItemResponse(
            id=line.id,
            name=line.name,
            color=line.color,
            station_count=len(line.stations()),
            total_distance=line.total_distance,
        )
        for line in lines
    ]


@router.get("/{line_id}", response_model=LineResponse)
async def get_line(line_id: UUID, db: AsyncSession = Depends(get_db)) -> LineResponse:
    """
    Get a line with its stations in path order.

    Raises:
        HTTPException: 404 if line not found
    """
    line = await LineService(db).get_line_by_id(line_id)
    return LineResponse.from_line(line)


@router.patch(
    "/{line_id}",
    response_model=LineResponse,
    dependencies=[Depends(get_current_member)],
)
async def update_line(
    line_id: UUID,
    request: UpdateLineRequest,
    db: AsyncSession = Depends(get_db),
) -> LineResponse:
    """
    Update line name and/or color.

    Raises:
        HTTPException: 404 if line not found, 409 if the new name is taken
    """
    line = await LineService(db).update_line(line_id, request)
    return LineResponse.from_line(line)


@router.delete(
    "/{line_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    dependencies=[Depends(get_current_member)],
)
async def delete_line(line_id: UUID, db: AsyncSession = Depends(get_db)) -> None:
    """
    Delete a line and all of its sections.

    Raises:
        HTTPException: 404 if line not found
    """
    await LineService(db).delete_line(line_id)


# ==================== Section Endpoints ====================


@router.post(
    "/{line_id}/sections",
    response_model=SectionResponse,
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(get_current_member)],
)
async def add_section(
    line_id: UUID,
    request: CreateSectionRequest,
    db: AsyncSession = Depends(get_db),
) -> Section:
    """
    Add a section to a line.

    Exactly one of the two stations must already be on the line (any pair is
    accepted on an empty line). A section inserted inside the line splits the
    section it falls into and must be shorter than it.

    Raises:
        HTTPException: 404 if line or a station is missing, 400 if the section is rejected
    """
    return await LineService(db).add_section(line_id, request)


@router.delete(
    "/{line_id}/sections",
    status_code=status.HTTP_204_NO_CONTENT,
    dependencies=[Depends(get_current_member)],
)
async def remove_station(
    line_id: UUID,
    station_id: UUID = Query(..., description="Station to take off the line"),
    db: AsyncSession = Depends(get_db),
) -> None:
    """
    Remove a station from a line.

    An interior station's two sections are merged. Removing a station that is
    not on the line does nothing.

    Raises:
        HTTPException: 404 if line or station is missing, 400 if the line has a single section
    """
    await LineService(db).remove_station(line_id, station_id)
