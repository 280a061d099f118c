from typing import Optional, Any
from abc import ABC, abstractmethod

from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import AppError
from app.utils.logging import get_logger

LOGGER = get_logger(__name__)


class BaseService(ABC):
    """Base class for application services.

    A service owns the unit of work of the session it is given: public
    operations go through ``execute``, which validates input, runs the logic
    and rolls the session back if anything fails.
    """

    def __init__(self, session: Optional[AsyncSession] = None):
        """Initialize the service.

        Args:
            session: Database session whose transaction the service controls
        """
        self.session = session
        self.logger = LOGGER

    async def execute(self, *args, **kwargs) -> Any:
        """Execute the service logic.

        This template method handles:
        1. Input validation
        2. Core logic execution
        3. Rollback and standardized error handling

        Raises:
            AppError: If execution fails
        """
        try:
            self.validate(*args, **kwargs)
            return await self.run(*args, **kwargs)

        except AppError:
            await self._rollback()
            raise

        except Exception as e:
            await self._rollback()
            self.logger.error(
                f"Service execution failed: {str(e)}",
                exc_info=True,
                extra={"service": self.__class__.__name__, "action": kwargs.get("action")}
            )
            raise AppError(f"Service execution failed: {str(e)}", original_error=e)

    async def _rollback(self) -> None:
        if self.session is None:
            return
        try:
            await self.session.rollback()
        except Exception as e:
            self.logger.warning(f"Rollback failed: {e}")

    def validate(self, *args, **kwargs):
        """Validate service input.

        Override this method to implement custom validation logic.

        Raises:
            ValidationError: If input is invalid
        """
        pass

    @abstractmethod
    async def run(self, *args, **kwargs) -> Any:
        """Run the core service logic.

        Must be implemented by subclasses.
        """
        pass
