"""Database models for the subway service."""

# Import all models to register them with SQLAlchemy metadata
from subway.models.base import Base, BaseModel
from subway.models.favorite import Favorite
from subway.models.line import (
    CircularSectionError,
    DisconnectedSectionError,
    DuplicateSectionError,
    InvalidSectionDistanceError,
    Line,
    MinimumSectionError,
    Section,
    SectionError,
)
from subway.models.member import Member
from subway.models.station import Station

__all__ = [
    # Base
    "Base",
    "BaseModel",
    # Network models
    "Station",
    "Line",
    "Section",
    # Section chain errors
    "SectionError",
    "DuplicateSectionError",
    "DisconnectedSectionError",
    "MinimumSectionError",
    "InvalidSectionDistanceError",
    "CircularSectionError",
    # Member models
    "Member",
    "Favorite",
]
