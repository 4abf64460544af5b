"""Station model."""

from sqlalchemy import String
from sqlalchemy.orm import Mapped, mapped_column

from subway.models.base import BaseModel


class Station(BaseModel):
    """A named point on the network. Identity is the primary key."""

    __tablename__ = "stations"

    name: Mapped[str] = mapped_column(
        String(255),
        unique=True,
        nullable=False,
        index=True,
    )

    def __repr__(self) -> str:
        """String representation of the station."""
        return f"<Station(id={self.id}, name={self.name})>"


def same_station(a: Station, b: Station) -> bool:
    """
    Check whether two references denote the same station.

    Stations with an id compare by id. Two stations that have not been flushed
    yet compare by value; name is unique, so equal names are the same station.
    A station with an id never equals one without.
    """
    if a is b:
        return True
    if a.id is not None or b.id is not None:
        return a.id == b.id
    return a.name == b.name
