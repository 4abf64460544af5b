"""Pydantic schemas for member favorites."""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from subway.schemas.stations import StationResponse


class CreateFavoriteRequest(BaseModel):
    """Request to save a favorite route between two stations."""

    source_station_id: UUID = Field(..., description="Station the route starts from")
    target_station_id: UUID = Field(..., description="Station the route ends at")


class FavoriteResponse(BaseModel):
    """A saved favorite with both stations expanded."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    source_station: StationResponse
    target_station: StationResponse
    created_at: datetime
