"""Member service: maps authenticated subjects to member records."""

from uuid import UUID

import structlog
from sqlalchemy import and_, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from subway.models.member import Member

logger = structlog.get_logger(__name__)


class MemberService:
    """Service for member lookup and registration."""

    def __init__(self, db: AsyncSession) -> None:
        """
        Initialize member service.

        Args:
            db: Database session
        """
        self.db = db

    async def get_member_by_external_id(self, external_id: str, auth_provider: str = "auth0") -> Member | None:
        """
        Get member by external ID and auth provider.

        Args:
            external_id: Subject from the identity provider (e.g., 'auth0|123abc')
            auth_provider: Authentication provider name

        Returns:
            Member if found, None otherwise
        """
        result = await self.db.execute(
            select(Member).where(and_(Member.external_id == external_id, Member.auth_provider == auth_provider))
        )
        return result.scalar_one_or_none()

    async def get_member_by_id(self, member_id: UUID) -> Member | None:
        """Get member by internal UUID, or None."""
        result = await self.db.execute(select(Member).where(Member.id == member_id))
        return result.scalar_one_or_none()

    async def list_members(self) -> list[Member]:
        """List all members, oldest first."""
        result = await self.db.execute(select(Member).order_by(Member.created_at))
        return list(result.scalars().all())

    async def create_member(self, external_id: str, auth_provider: str = "auth0") -> Member:
        """
        Create a new member.

        A concurrent request may register the same subject between the lookup
        and the insert; in that case the existing member is returned.

        Raises:
            RuntimeError: If the insert conflicts but the existing member cannot be read back
        """
        member = Member(external_id=external_id, auth_provider=auth_provider)
        self.db.add(member)

        try:
            await self.db.commit()
        except IntegrityError:
            await self.db.rollback()

            existing_member = await self.get_member_by_external_id(external_id, auth_provider)
            if existing_member:
                return existing_member

            msg = (
                f"Member with external_id={external_id} and auth_provider={auth_provider} "
                "already exists, but could not be retrieved."
            )
            raise RuntimeError(msg) from None

        logger.info("member_created", member_id=str(member.id), auth_provider=auth_provider)
        return member

    async def get_or_create_member(self, external_id: str, auth_provider: str = "auth0") -> Member:
        """
        Get existing member or register a new one on first authenticated request.

        Returns:
            Member instance (existing or newly created)
        """
        member = await self.get_member_by_external_id(external_id, auth_provider)
        if member is None:
            member = await self.create_member(external_id, auth_provider)
        return member
