"""Repository for analysis records."""

from typing import Any, Dict, List, Optional
from uuid import UUID

from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.database.models import Analysis
from app.models.lifecycle import ACTIVE_STATUSES, AnalysisStatus
from app.repositories.base_repository import BaseRepository, utcnow
from app.utils.logging import get_logger

LOGGER = get_logger(__name__)


class AnalysisRepository(BaseRepository[Analysis]):
    """Repository for managing Analysis records."""

    def __init__(self, session: AsyncSession):
        super().__init__(session, Analysis)

    async def create_analysis(
        self,
        document_id: UUID,
        practice_id: UUID,
        created_by: str,
    ) -> Analysis:
        """Create a ``queued`` analysis for a document.

        Args:
            document_id: Parent document
            practice_id: Practice owning the document
            created_by: Identity provider user ID that triggered the run

        Returns:
            Created Analysis record
        """
        now = utcnow()
        return await self.create(
            document_id=document_id,
            practice_id=practice_id,
            status=AnalysisStatus.QUEUED.value,
            created_by=created_by,
            created_at=now,
            updated_at=now,
        )

    async def list_by_document(self, document_id: UUID) -> List[Analysis]:
        """List a document's analyses, newest first."""
        result = await self.session.execute(
            select(Analysis)
            .where(Analysis.document_id == document_id)
            .order_by(Analysis.created_at.desc(), Analysis.id.desc())
        )
        return list(result.scalars().all())

    async def get_latest_for_document(self, document_id: UUID) -> Optional[Analysis]:
        """Get the newest analysis of a document."""
        result = await self.session.execute(
            select(Analysis)
            .where(Analysis.document_id == document_id)
            .order_by(Analysis.created_at.desc(), Analysis.id.desc())
            .limit(1)
        )
        return result.scalar_one_or_none()

    async def get_active_for_document(self, document_id: UUID) -> Optional[Analysis]:
        """Get a ``queued`` or ``processing`` analysis of a document, if any."""
        result = await self.session.execute(
            select(Analysis)
            .where(
                Analysis.document_id == document_id,
                Analysis.status.in_([s.value for s in ACTIVE_STATUSES]),
            )
            .order_by(Analysis.created_at.desc())
            .limit(1)
        )
        return result.scalar_one_or_none()

    async def apply_transition(
        self,
        analysis: Analysis,
        status: str,
        fields: Optional[Dict[str, Any]] = None,
    ) -> Analysis:
        """Move an already-loaded analysis to ``status`` and set extra fields."""
        analysis.status = AnalysisStatus(status).value
        for key, value in (fields or {}).items():
            setattr(analysis, key, value)
        analysis.updated_at = utcnow()
        await self.session.flush()
        return analysis

    async def delete_by_document(self, document_id: UUID) -> int:
        """Delete every analysis of a document.

        Returns:
            Number of deleted rows
        """
        result = await self.session.execute(
            delete(Analysis).where(Analysis.document_id == document_id)
        )
        await self.session.flush()
        deleted = result.rowcount or 0
        LOGGER.info(f"Deleted {deleted} analyses for document {document_id}")
        return deleted
