"""Repositories for practices and practice memberships."""

from typing import Optional
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.database.models import Practice, PracticeMember
from app.models.lifecycle import MemberRole
from app.repositories.base_repository import BaseRepository, utcnow
from app.utils.logging import get_logger

LOGGER = get_logger(__name__)


class PracticeRepository(BaseRepository[Practice]):
    """Repository for Practice records."""

    def __init__(self, session: AsyncSession):
        super().__init__(session, Practice)

    async def create_practice(self, name: str, owner_id: str) -> Practice:
        """Create a practice owned by ``owner_id``.

        Args:
            name: Display name of the practice
            owner_id: Identity provider user ID of the owner

        Returns:
            Created Practice record
        """
        now = utcnow()
        practice = await self.create(
            name=name,
            owner_id=owner_id,
            created_at=now,
            updated_at=now,
        )
        LOGGER.info(f"Created practice {practice.id} for owner {owner_id}")
        return practice


class PracticeMemberRepository(BaseRepository[PracticeMember]):
    """Repository for PracticeMember join records."""

    def __init__(self, session: AsyncSession):
        super().__init__(session, PracticeMember)

    async def get_by_user(self, user_id: str) -> Optional[PracticeMember]:
        """Get the membership of a user.

        Memberships are unique per user, so at most one row matches.

        Args:
            user_id: Identity provider user ID

        Returns:
            PracticeMember or None if the user has no practice
        """
        stmt = select(PracticeMember).where(PracticeMember.user_id == user_id)
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def get_by_practice_and_user(
        self,
        practice_id: UUID,
        user_id: str
    ) -> Optional[PracticeMember]:
        """Get the membership linking ``user_id`` to ``practice_id``, if any."""
        stmt = select(PracticeMember).where(
            PracticeMember.practice_id == practice_id,
            PracticeMember.user_id == user_id,
        )
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def create_membership(
        self,
        practice_id: UUID,
        user_id: str,
        role: MemberRole = MemberRole.MEMBER
    ) -> PracticeMember:
        """Create a membership row.

        Args:
            practice_id: Practice ID
            user_id: Identity provider user ID
            role: Membership role

        Returns:
            Created PracticeMember record
        """
        return await self.create(
            practice_id=practice_id,
            user_id=user_id,
            role=MemberRole(role).value,
            created_at=utcnow(),
        )
