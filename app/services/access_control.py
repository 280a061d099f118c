"""Practice-level access checks shared by the document and analysis services."""

from typing import Optional
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import AccessDeniedError, NoMembershipError, UnauthenticatedError
from app.database.models import PracticeMember
from app.repositories.practice_repository import PracticeMemberRepository
from app.schemas.auth import CurrentUser
from app.utils.logging import get_logger

LOGGER = get_logger(__name__)


class AccessControlService:
    """Guards run before any read or mutation of practice data."""

    def __init__(self, session: AsyncSession):
        self.member_repo = PracticeMemberRepository(session)

    @staticmethod
    def require_identity(user: Optional[CurrentUser]) -> CurrentUser:
        """Return the caller or raise UnauthenticatedError."""
        if user is None:
            raise UnauthenticatedError()
        return user

    async def resolve_membership(self, user_id: str) -> PracticeMember:
        """Return the caller's membership or raise NoMembershipError."""
        membership = await self.member_repo.get_by_user(user_id)
        if membership is None:
            raise NoMembershipError()
        return membership

    async def find_membership(self, user_id: str) -> Optional[PracticeMember]:
        """Like resolve_membership but returns None for soft-fail reads."""
        return await self.member_repo.get_by_user(user_id)

    async def verify_access(self, practice_id: UUID, user_id: str) -> PracticeMember:
        """Ensure ``user_id`` is a member of ``practice_id``.

        Raises:
            AccessDeniedError: If no membership links them
        """
        membership = await self.member_repo.get_by_practice_and_user(practice_id, user_id)
        if membership is None:
            LOGGER.warning(
                "Access denied",
                extra={"practice_id": str(practice_id), "user_id": user_id}
            )
            raise AccessDeniedError()
        return membership
