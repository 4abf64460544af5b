"""Line management service.

Loads a line with its full section set, applies one chain operation from the
Line model and commits. Chain errors raised by the model are translated to
400 responses here; the model itself knows nothing about HTTP.
"""

import uuid

import structlog
from fastapi import HTTPException, status
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload
from sqlalchemy.sql import Select

from subway.core.telemetry import service_span
from subway.models.line import Line, Section, SectionError
from subway.schemas.lines import CreateLineRequest, CreateSectionRequest, UpdateLineRequest
from subway.services.station_service import StationService

logger = structlog.get_logger(__name__)

SERVICE_NAME = "line-service"


def _line_query() -> Select[tuple[Line]]:
    """Select lines with sections and both section stations eager-loaded."""
    return select(Line).options(
        selectinload(Line.sections).selectinload(Section.up_station),
        selectinload(Line.sections).selectinload(Section.down_station),
    )


class LineService:
    """Service for managing lines and their section chains."""

    def __init__(self, db: AsyncSession) -> None:
        """
        Initialize the line service.

        Args:
            db: Database session
        """
        self.db = db
        self.station_service = StationService(db)

    async def get_line_by_id(self, line_id: uuid.UUID, *, for_update: bool = False) -> Line:
        """
        Get a line by ID with all sections loaded.

        Args:
            line_id: Line UUID
            for_update: Lock the line row until the end of the transaction. Chain
                mutations read the whole path before writing, so writers on the
                same line must be serialized.

        Returns:
            Line with sections and their stations loaded

        Raises:
            HTTPException: 404 if line not found
        """
        query = _line_query().where(Line.id == line_id)
        if for_update:
            query = query.with_for_update(of=Line)

        result = await self.db.execute(query)

        if not (line := result.scalar_one_or_none()):
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="Line not found.",
            )

        return line

    async def list_lines(self) -> list[Line]:
        """List all lines ordered by name, with sections loaded."""
        result = await self.db.execute(_line_query().order_by(Line.name))
        return list(result.scalars().all())

    async def create_line(self, request: CreateLineRequest) -> Line:
        """
        Create a line, with its first section when the request carries one.

        Raises:
            HTTPException: 404 if a station is missing, 409 if the name is taken
        """
        await self._ensure_name_available(request.name)

        line = Line(name=request.name, color=request.color)
        if request.has_initial_section:
            up_station = await self.station_service.get_station_by_id(request.up_station_id)
            down_station = await self.station_service.get_station_by_id(request.down_station_id)
            try:
                line.add_section(up_station, down_station, request.distance)
            except SectionError as e:
                raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e)) from e

        section_count = len(line.sections)
        self.db.add(line)
        await self._commit_line_name(request.name)

        logger.info("line_created", line_id=str(line.id), name=line.name, section_count=section_count)
        return line

    async def update_line(self, line_id: uuid.UUID, request: UpdateLineRequest) -> Line:
        """
        Update line name and/or color.

        Raises:
            HTTPException: 404 if line not found, 409 if the new name is taken
        """
        line = await self.get_line_by_id(line_id)

        if request.name is not None and request.name != line.name:
            await self._ensure_name_available(request.name)

        line.update(name=request.name, color=request.color)
        await self._commit_line_name(line.name)

        return line

    async def delete_line(self, line_id: uuid.UUID) -> None:
        """
        Delete a line and all of its sections.

        Raises:
            HTTPException: 404 if line not found
        """
        line = await self.get_line_by_id(line_id)

        await self.db.delete(line)
        await self.db.commit()
        logger.info("line_deleted", line_id=str(line_id))

    async def add_section(self, line_id: uuid.UUID, request: CreateSectionRequest) -> Section:
        """
        Add a section to a line, splitting an existing section when needed.

        Returns:
            The new section

        Raises:
            HTTPException: 404 if line or a station is missing, 400 if the chain rejects the section
        """
        with service_span("line.add_section", SERVICE_NAME, **{"line.id": str(line_id)}) as span:
            line = await self.get_line_by_id(line_id, for_update=True)
            up_station = await self.station_service.get_station_by_id(request.up_station_id)
            down_station = await self.station_service.get_station_by_id(request.down_station_id)

            try:
                section = line.add_section(up_station, down_station, request.distance)
            except SectionError as e:
                await self.db.rollback()
                logger.info("section_rejected", line_id=str(line_id), reason=type(e).__name__)
                raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e)) from e

            await self._commit()
            span.set_attribute("line.section_count", len(line.sections))

        logger.info(
            "section_added",
            line_id=str(line_id),
            up_station_id=str(up_station.id),
            down_station_id=str(down_station.id),
            distance=request.distance,
        )
        return section

    async def remove_station(self, line_id: uuid.UUID, station_id: uuid.UUID) -> None:
        """
        Remove a station from a line, merging its two sections when it is interior.

        A station that exists but is not on the line is ignored.

        Raises:
            HTTPException: 404 if line or station is missing, 400 if the line has a single section
        """
        with service_span("line.remove_station", SERVICE_NAME, **{"line.id": str(line_id)}) as span:
            line = await self.get_line_by_id(line_id, for_update=True)
            station = await self.station_service.get_station_by_id(station_id)

            section_count = len(line.sections)
            try:
                line.remove_station(station)
            except SectionError as e:
                await self.db.rollback()
                logger.info("station_removal_rejected", line_id=str(line_id), reason=type(e).__name__)
                raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e)) from e

            if len(line.sections) == section_count:
                await self.db.rollback()
                logger.info("station_not_on_line", line_id=str(line_id), station_id=str(station_id))
                return

            await self._commit()
            span.set_attribute("line.section_count", len(line.sections))

        logger.info("station_removed", line_id=str(line_id), station_id=str(station_id))

    # ==================== Private Helper Methods ====================

    async def _ensure_name_available(self, name: str) -> None:
        """
        Check line name uniqueness at the storage boundary.

        Raises:
            HTTPException: 409 if a line with this name exists
        """
        result = await self.db.execute(select(Line.id).where(Line.name == name))
        if result.scalar_one_or_none() is not None:
            raise HTTPException(
                status_code=status.HTTP_409_CONFLICT,
                detail=f"Line '{name}' already exists.",
            )

    async def _commit_line_name(self, name: str) -> None:
        """Commit, reporting a unique-name race as 409."""
        try:
            await self.db.commit()
        except IntegrityError as e:
            await self.db.rollback()
            raise HTTPException(
                status_code=status.HTTP_409_CONFLICT,
                detail=f"Line '{name}' already exists.",
            ) from e

    async def _commit(self) -> None:
        try:
            await self.db.commit()
        except Exception:
            await self.db.rollback()
            raise
