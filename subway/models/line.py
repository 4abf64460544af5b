"""Line and Section models.

A line owns an unordered collection of sections. The ordered station path is
rebuilt from that collection on every read by matching each section's
down-station to the next section's up-station. ``add_section`` and
``remove_station`` are the only mutators and keep the sections forming a
single simple path between two terminal stations.
"""

import uuid
from collections.abc import Callable

from sqlalchemy import CheckConstraint, ForeignKey, Integer, String, Uuid
from sqlalchemy.orm import Mapped, mapped_column, relationship

from subway.models.base import BaseModel
from subway.models.station import Station, same_station

MINIMUM_SECTION_COUNT = 1


class SectionError(ValueError):
    """Base class for rejected section-chain mutations. The line is left unchanged."""

    default_message = "Invalid section."

    def __init__(self, message: str | None = None) -> None:
        super().__init__(message or self.default_message)


class DuplicateSectionError(SectionError):
    """Both stations of the new section are already on the line."""

    default_message = "Section is already registered on this line."


class DisconnectedSectionError(SectionError):
    """Neither station of the new section is on the line."""

    default_message = "Section does not connect to any station on this line."


class MinimumSectionError(SectionError):
    """The line would be left without a section."""

    default_message = "Cannot remove a station from a line with a single section."


class InvalidSectionDistanceError(SectionError):
    """The distance is not positive or does not fit inside the section being split."""

    default_message = "Section distance must be shorter than the section it splits."


class CircularSectionError(SectionError):
    """Up and down station are the same station."""

    default_message = "Up and down stations of a section must differ."


class Section(BaseModel):
    """A directed, distance-weighted edge between two stations of a line."""

    __tablename__ = "sections"

    line_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("lines.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    up_station_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("stations.id", ondelete="RESTRICT"),
        nullable=False,
    )
    down_station_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("stations.id", ondelete="RESTRICT"),
        nullable=False,
    )
    distance: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
    )

    # Relationships
    line: Mapped["Line"] = relationship(back_populates="sections")
    up_station: Mapped[Station] = relationship(foreign_keys=[up_station_id])
    down_station: Mapped[Station] = relationship(foreign_keys=[down_station_id])

    __table_args__ = (CheckConstraint("distance > 0", name="ck_sections_distance_positive"),)

    def shift_up_station(self, station: Station, distance: int) -> None:
        """Move the up end to ``station``, giving up ``distance`` to the section before it."""
        self.up_station = station
        self.distance -= distance

    def shift_down_station(self, station: Station, distance: int) -> None:
        """Move the down end to ``station``, giving up ``distance`` to the section after it."""
        self.down_station = station
        self.distance -= distance

    def __repr__(self) -> str:
        """String representation of the section."""
        return (
            f"<Section(id={self.id}, line={self.line_id}, up={self.up_station_id}, "
            f"down={self.down_station_id}, distance={self.distance})>"
        )


class Line(BaseModel):
    """A subway line: a unique name, a color and a chain of sections."""

    __tablename__ = "lines"

    name: Mapped[str] = mapped_column(
        String(255),
        unique=True,
        nullable=False,
    )
    color: Mapped[str] = mapped_column(
        String(50),
        nullable=False,
    )

    # Relationships
    sections: Mapped[list[Section]] = relationship(
        back_populates="line",
        cascade="all, delete-orphan",
    )

    def __init__(
        self,
        *,
        up_station: Station | None = None,
        down_station: Station | None = None,
        distance: int | None = None,
        **kwargs: object,
    ) -> None:
        """Create a line, optionally with its first section."""
        # Start loaded and empty so sections can be read after commit without a lazy load
        kwargs.setdefault("sections", [])
        super().__init__(**kwargs)
        if up_station is not None and down_station is not None and distance is not None:
            self.add_section(up_station, down_station, distance)

    def update(self, *, name: str | None = None, color: str | None = None) -> None:
        """Change name and/or color. Sections are only changed through the chain operations."""
        if name is not None:
            self.name = name
        if color is not None:
            self.color = color

    # ==================== Path Derivation ====================

    def _find_section(self, predicate: Callable[[Section], bool]) -> Section | None:
        return next((section for section in self.sections if predicate(section)), None)

    def _section_starting_at(self, station: Station) -> Section | None:
        return self._find_section(lambda section: same_station(section.up_station, station))

    def _section_ending_at(self, station: Station) -> Section | None:
        return self._find_section(lambda section: same_station(section.down_station, station))

    def start_station(self) -> Station | None:
        """
        Find the first terminal station of the path.

        Walks backward from the first section's up-station until no section ends
        at the current station. With a disconnected section set this is the start
        of whichever path holds the first section.
        """
        if not self.sections:
            return None

        current = self.sections[0].up_station
        while (previous := self._section_ending_at(current)) is not None:
            current = previous.up_station
        return current

    def stations(self) -> list[Station]:
        """Return the ordered stations from the first terminal to the last, or [] without sections."""
        start = self.start_station()
        if start is None:
            return []

        path = [start]
        current = start
        while (following := self._section_starting_at(current)) is not None:
            current = following.down_station
            path.append(current)
        return path

    def ordered_sections(self) -> list[Section]:
        """Return the sections in path order."""
        ordered: list[Section] = []
        current = self.start_station()
        while current is not None and (following := self._section_starting_at(current)) is not None:
            ordered.append(following)
            current = following.down_station
        return ordered

    @property
    def total_distance(self) -> int:
        """Sum of all section distances."""
        return sum(section.distance for section in self.sections)

    # ==================== Chain Mutations ====================

    def add_section(self, up_station: Station, down_station: Station, distance: int) -> Section:
        """
        Attach a new section to the chain.

        An empty line simply takes the section. Otherwise exactly one of the two
        stations must already be on the line. If the known station is the up
        station, the section currently leaving it is split: its up end moves to
        ``down_station`` and its distance shrinks by ``distance``. If the known
        station is the down station, the section currently arriving at it is
        split the same way from the other end. When no section needs splitting
        (the new section hangs off a terminal) the chain is extended.

        Returns:
            The newly created section

        Raises:
            CircularSectionError: up and down are the same station
            InvalidSectionDistanceError: distance < 1, or not shorter than the split section
            DuplicateSectionError: both stations are already on the line
            DisconnectedSectionError: neither station is on the line
        """
        if same_station(up_station, down_station):
            raise CircularSectionError
        if distance < 1:
            raise InvalidSectionDistanceError("Section distance must be at least 1.")

        path = self.stations()
        up_exists = any(same_station(station, up_station) for station in path)
        down_exists = any(same_station(station, down_station) for station in path)

        if up_exists and down_exists:
            raise DuplicateSectionError
        if path and not up_exists and not down_exists:
            raise DisconnectedSectionError

        if up_exists and (split := self._section_starting_at(up_station)) is not None:
            self._check_split_distance(split, distance)
            split.shift_up_station(down_station, distance)
        elif down_exists and (split := self._section_ending_at(down_station)) is not None:
            self._check_split_distance(split, distance)
            split.shift_down_station(up_station, distance)

        section = Section(up_station=up_station, down_station=down_station, distance=distance)
        self.sections.append(section)
        return section

    @staticmethod
    def _check_split_distance(section: Section, distance: int) -> None:
        if distance >= section.distance:
            msg = (
                f"Section distance {distance} must be shorter than the existing section "
                f"it splits ({section.distance})."
            )
            raise InvalidSectionDistanceError(msg)

    def remove_station(self, station: Station) -> Section | None:
        """
        Remove a station from the chain.

        An interior station merges its two sections into one spanning both, with
        the summed distance. A terminal station loses its only section. A station
        that is not on the line is ignored.

        Returns:
            The merged section when an interior station was removed, otherwise None

        Raises:
            MinimumSectionError: the line has a single section (checked first)
        """
        if len(self.sections) <= MINIMUM_SECTION_COUNT:
            raise MinimumSectionError

        outgoing = self._section_starting_at(station)
        incoming = self._section_ending_at(station)

        merged = None
        if outgoing is not None and incoming is not None:
            merged = Section(
                up_station=incoming.up_station,
                down_station=outgoing.down_station,
                distance=incoming.distance + outgoing.distance,
            )
            self.sections.append(merged)

        if outgoing is not None:
            self.sections.remove(outgoing)
        if incoming is not None:
            self.sections.remove(incoming)
        return merged

    def __repr__(self) -> str:
        """String representation of the line."""
        return f"<Line(id={self.id}, name={self.name}, color={self.color})>"
