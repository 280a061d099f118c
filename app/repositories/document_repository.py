from typing import List
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.repositories.base_repository import BaseRepository, utcnow
from app.database.models import Document
from app.models.lifecycle import DocumentStatus
from app.utils.logging import get_logger

LOGGER = get_logger(__name__)


class DocumentRepository(BaseRepository[Document]):
    """Repository for managing Document records.

    Inherits from BaseRepository for standard CRUD operations.
    """

    def __init__(self, session: AsyncSession):
        """Initialize document repository.

        Args:
            session: SQLAlchemy async session
        """
        super().__init__(session, Document)

    async def create_document(
        self,
        practice_id: UUID,
        storage_ref: str,
        filename: str,
        content_type: str,
        size_bytes: int,
        uploaded_by: str,
    ) -> Document:
        """Create a new document record in the ``uploaded`` state.

        Args:
            practice_id: Owning practice
            storage_ref: Object path of the uploaded blob
            filename: Original file name
            content_type: MIME type reported by the client
            size_bytes: Size of the blob
            uploaded_by: Identity provider user ID of the uploader

        Returns:
            Created Document record
        """
        now = utcnow()
        return await self.create(
            practice_id=practice_id,
            storage_ref=storage_ref,
            filename=filename,
            content_type=content_type,
            size_bytes=size_bytes,
            status=DocumentStatus.UPLOADED.value,
            uploaded_by=uploaded_by,
            created_at=now,
            updated_at=now,
        )

    async def list_by_practice(self, practice_id: UUID) -> List[Document]:
        """List a practice's documents, newest first."""
        result = await self.session.execute(
            select(Document)
            .where(Document.practice_id == practice_id)
            .order_by(Document.created_at.desc(), Document.id.desc())
        )
        return list(result.scalars().all())

    async def update_status(self, document_id: UUID, status: str) -> bool:
        """Update document status.

        Args:
            document_id: Document ID
            status: New status string

        Returns:
            True if updated, False if not found
        """
        return await self.update(document_id, status=DocumentStatus(status).value) is not None
