"""Favorite route model."""

import uuid

from sqlalchemy import ForeignKey, Uuid
from sqlalchemy.orm import Mapped, mapped_column, relationship

from subway.models.base import BaseModel
from subway.models.member import Member
from subway.models.station import Station


class Favorite(BaseModel):
    """A member's saved (source, target) station pair. Not validated against any line."""

    __tablename__ = "favorites"

    member_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("members.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    source_station_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("stations.id", ondelete="RESTRICT"),
        nullable=False,
    )
    target_station_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("stations.id", ondelete="RESTRICT"),
        nullable=False,
    )

    # Relationships
    member: Mapped[Member] = relationship(back_populates="favorites")
    source_station: Mapped[Station] = relationship(foreign_keys=[source_station_id])
    target_station: Mapped[Station] = relationship(foreign_keys=[target_station_id])

    def __repr__(self) -> str:
        """String representation of the favorite."""
        return (
            f"<Favorite(id={self.id}, member={self.member_id}, "
            f"source={self.source_station_id}, target={self.target_station_id})>"
        )
