"""Member model for authenticated principals."""

from typing import TYPE_CHECKING

from sqlalchemy import Index, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from subway.models.base import BaseModel

if TYPE_CHECKING:
    from subway.models.favorite import Favorite


class Member(BaseModel):
    """A member known by the subject of their identity-provider token."""

    __tablename__ = "members"

    external_id: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
    )
    auth_provider: Mapped[str] = mapped_column(
        String(50),
        nullable=False,
        default="auth0",
        server_default="auth0",
    )

    # Relationships
    favorites: Mapped[list["Favorite"]] = relationship(
        back_populates="member",
        cascade="all, delete-orphan",
    )

    __table_args__ = (Index("ix_members_external_id_auth_provider", "external_id", "auth_provider", unique=True),)

    def __repr__(self) -> str:
        """String representation of the member."""
        return f"<Member(id={self.id}, external_id={self.external_id}, auth_provider={self.auth_provider})>"
