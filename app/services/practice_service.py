"""Practice service: the caller's practice, created on first use."""

from typing import Any, Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import AppError, PracticeNotFoundError
from app.database.models import Practice
from app.models.lifecycle import MemberRole
from app.repositories.practice_repository import PracticeMemberRepository, PracticeRepository
from app.schemas.auth import CurrentUser
from app.services.access_control import AccessControlService
from app.services.base_service import BaseService
from app.utils.logging import get_logger

LOGGER = get_logger(__name__)

GUEST_PRACTICE_NAME = "Guest Practice"


def practice_name_for(user: CurrentUser) -> str:
    """Display name for a newly created practice."""
    if user.is_guest:
        return GUEST_PRACTICE_NAME
    return f"{user.email}'s Practice"


class PracticeService(BaseService):
    """Service for practice lookup and first-use creation."""

    def __init__(self, session: AsyncSession):
        super().__init__(session)
        self.practice_repo = PracticeRepository(session)
        self.member_repo = PracticeMemberRepository(session)
        self.access = AccessControlService(session)

    async def run(self, *args, **kwargs) -> Any:
        action = kwargs.get("action")

        if action == "get_or_create_practice":
            return await self._get_or_create_practice_logic(kwargs.get("user"))
        elif action == "get_current_practice":
            return await self._get_current_practice_logic(kwargs.get("user"))
        else:
            raise AppError(f"Unknown action: {action}")

    async def get_or_create_practice(self, user: Optional[CurrentUser]) -> Practice:
        """Return the caller's practice, creating it with an owner membership if needed.

        Idempotent: repeated calls return the same practice.

        Raises:
            UnauthenticatedError: If there is no caller
            PracticeNotFoundError: If the membership points at a missing practice
        """
        return await self.execute(action="get_or_create_practice", user=user)

    async def get_current_practice(self, user: Optional[CurrentUser]) -> Optional[Practice]:
        """Return the caller's practice, or None for anonymous or membership-less callers."""
        return await self.execute(action="get_current_practice", user=user)

    async def _existing_practice(self, user_id: str) -> Optional[Practice]:
        membership = await self.member_repo.get_by_user(user_id)
        if membership is None:
            return None
        practice = await self.practice_repo.get_by_id(membership.practice_id)
        if practice is None:
            raise PracticeNotFoundError(f"Practice {membership.practice_id} not found")
        return practice

    async def _get_or_create_practice_logic(self, user: Optional[CurrentUser]) -> Practice:
        user = self.access.require_identity(user)

        practice = await self._existing_practice(user.id)
        if practice is not None:
            return practice

        try:
            practice = await self.practice_repo.create_practice(
                name=practice_name_for(user),
                owner_id=user.id,
            )
            await self.member_repo.create_membership(
                practice_id=practice.id,
                user_id=user.id,
                role=MemberRole.OWNER,
            )
            await self.session.commit()
        except IntegrityError:
            # Another request created the membership first; use theirs.
            await self.session.rollback()
            LOGGER.info(f"Concurrent practice creation for user {user.id}, reusing winner")
            practice = await self._existing_practice(user.id)
            if practice is None:
                raise
            return practice

        LOGGER.info(
            "Practice created",
            extra={"practice_id": str(practice.id), "user_id": user.id}
        )
        return practice

    async def _get_current_practice_logic(self, user: Optional[CurrentUser]) -> Optional[Practice]:
        if user is None:
            return None
        membership = await self.access.find_membership(user.id)
        if membership is None:
            return None
        return await self.practice_repo.get_by_id(membership.practice_id)
