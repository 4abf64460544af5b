"""Pydantic schemas for line and section management."""

from datetime import datetime
from typing import Self
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, model_validator

from subway.models.line import Line
from subway.schemas.stations import StationResponse

# ==================== Helper Functions ====================


def _validate_distinct_stations(up_station_id: UUID | None, down_station_id: UUID | None) -> None:
    """
    Reject a section whose two ends are the same station.

    Raises:
        ValueError: If both ids are given and equal
    """
    if up_station_id is not None and up_station_id == down_station_id:
        msg = "up_station_id and down_station_id must differ"
        raise ValueError(msg)


# ==================== Request Schemas ====================


class CreateLineRequest(BaseModel):
    """
    Request to create a line.

    The first section is optional, but when given all three of
    up_station_id, down_station_id and distance are required.
    """

    name: str = Field(..., min_length=1, max_length=255, description="Line name, unique across the network")
    color: str = Field(..., min_length=1, max_length=50, description="Display color (e.g., 'bg-red-600')")
    up_station_id: UUID | None = Field(None, description="Up terminal of the first section")
    down_station_id: UUID | None = Field(None, description="Down terminal of the first section")
    distance: int | None = Field(None, ge=1, description="Distance of the first section")

    @model_validator(mode="after")
    def validate_initial_section(self) -> Self:
        """Require the initial section fields together and with distinct stations."""
        provided = [self.up_station_id, self.down_station_id, self.distance]
        if any(value is not None for value in provided) and any(value is None for value in provided):
            msg = "up_station_id, down_station_id and distance must be provided together"
            raise ValueError(msg)
        _validate_distinct_stations(self.up_station_id, self.down_station_id)
        return self

    @property
    def has_initial_section(self) -> bool:
        """Whether the request carries a first section."""
        return self.up_station_id is not None


class UpdateLineRequest(BaseModel):
    """Request to update a line's name and/or color."""

    name: str | None = Field(None, min_length=1, max_length=255)
    color: str | None = Field(None, min_length=1, max_length=50)


class CreateSectionRequest(BaseModel):
    """Request to add a section to a line."""

    up_station_id: UUID
    down_station_id: UUID
    distance: int = Field(..., ge=1, description="Distance between the two stations")

    @model_validator(mode="after")
    def validate_stations(self) -> Self:
        """Ensure the section does not start and end at the same station."""
        _validate_distinct_stations(self.up_station_id, self.down_station_id)
        return self


# ==================== Response Schemas ====================


class SectionResponse(BaseModel):
    """A section of a line."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    up_station: StationResponse
    down_station: StationResponse
    distance: int


class LineListItemResponse(BaseModel):
    """Line summary for list views."""

    id: UUID
    name: str
    color: str
    station_count: int
    total_distance: int


class LineResponse(BaseModel):
    """A line with its stations in path order."""

    id: UUID
    name: str
    color: str
    stations: list[StationResponse]
    sections: list[SectionResponse]
    total_distance: int
    created_at: datetime
    updated_at: datetime

    @classmethod
    def from_line(cls, line: Line) -> "LineResponse":
        """Build the response from a line whose sections and stations are loaded."""
        return cls(
            id=line.id,
            name=line.name,
            color=line.color,
            stations=[StationResponse.model_validate(station) for station in line.stations()],
            sections=[SectionResponse.model_validate(section) for section in line.ordered_sections()],
            total_distance=line.total_distance,
            created_at=line.created_at,
            updated_at=line.updated_at,
        )
