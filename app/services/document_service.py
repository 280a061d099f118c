"""Document service for document management operations."""

from typing import Any, List, Optional
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import settings
from app.core.exceptions import AppError, DocumentNotFoundError, StorageError, ValidationError
from app.database.models import Document
from app.repositories.analysis_repository import AnalysisRepository
from app.repositories.document_repository import DocumentRepository
from app.schemas.auth import CurrentUser
from app.schemas.document import DocumentResponse, UploadTargetResponse
from app.services.access_control import AccessControlService
from app.services.base_service import BaseService
from app.services.storage_service import StorageService
from app.utils.logging import get_logger

LOGGER = get_logger(__name__)


class DocumentService(BaseService):
    """Service for document management operations.

    Handles upload targets, document registration, retrieval and deletion.
    Every operation on an existing document checks practice membership first.
    """

    def __init__(self, session: AsyncSession, storage_service: Optional[StorageService] = None):
        """Initialize document service.

        Args:
            session: Database session
            storage_service: Blob storage client
        """
        super().__init__(session)
        self.doc_repo = DocumentRepository(session)
        self.analysis_repo = AnalysisRepository(session)
        self.access = AccessControlService(session)
        self.storage_service = storage_service or StorageService()

    async def run(self, *args, **kwargs) -> Any:
        """Route to appropriate handler based on action."""
        action = kwargs.get("action")

        if action == "generate_upload_url":
            return await self._generate_upload_url_logic(kwargs.get("user"))
        elif action == "create_document":
            return await self._create_document_logic(
                kwargs.get("user"),
                kwargs.get("storage_ref"),
                kwargs.get("filename"),
                kwargs.get("content_type"),
                kwargs.get("size_bytes"),
            )
        elif action == "list_documents":
            return await self._list_documents_logic(kwargs.get("user"))
        elif action == "get_document":
            return await self._get_document_logic(kwargs.get("user"), kwargs.get("document_id"))
        elif action == "delete_document":
            return await self._delete_document_logic(kwargs.get("user"), kwargs.get("document_id"))
        else:
            raise AppError(f"Unknown action: {action}")

    def validate(self, *args, **kwargs):
        if kwargs.get("action") != "create_document":
            return

        user = kwargs.get("user")
        storage_ref = (kwargs.get("storage_ref") or "").strip()
        if not storage_ref:
            raise ValidationError("storage_ref is required")
        if user is not None and (
            not storage_ref.startswith(f"{user.id}/") or ".." in storage_ref.split("/")
        ):
            raise ValidationError("storage_ref does not belong to the caller's upload area")
        if not (kwargs.get("filename") or "").strip():
            raise ValidationError("filename is required")
        if not (kwargs.get("content_type") or "").strip():
            raise ValidationError("content_type is required")
        size_bytes = kwargs.get("size_bytes")
        if not isinstance(size_bytes, int) or size_bytes < 0:
            raise ValidationError("size_bytes must be a non-negative integer")
        max_bytes = settings.supabase.max_upload_bytes
        if size_bytes > max_bytes:
            raise ValidationError(f"File is too large: {size_bytes} bytes exceeds the {max_bytes} byte limit")

    async def generate_upload_url(self, user: Optional[CurrentUser]) -> UploadTargetResponse:
        """Issue a signed single-use upload URL under the caller's prefix."""
        return await self.execute(action="generate_upload_url", user=user)

    async def create_document(
        self,
        user: Optional[CurrentUser],
        storage_ref: str,
        filename: str,
        content_type: str,
        size_bytes: int,
    ) -> Document:
        """Register an uploaded blob as a document of the caller's practice.

        Raises:
            UnauthenticatedError: If there is no caller
            NoMembershipError: If the caller has no practice
            ValidationError: If the metadata is malformed
        """
        return await self.execute(
            action="create_document",
            user=user,
            storage_ref=storage_ref,
            filename=filename,
            content_type=content_type,
            size_bytes=size_bytes,
        )

    async def list_documents(self, user: Optional[CurrentUser]) -> List[DocumentResponse]:
        """List the caller's practice documents, newest first, with download URLs.

        Anonymous and membership-less callers get an empty list.
        """
        return await self.execute(action="list_documents", user=user)

    async def get_document(self, user: Optional[CurrentUser], document_id: UUID) -> DocumentResponse:
        return await self.execute(action="get_document", user=user, document_id=document_id)

    async def delete_document(self, user: Optional[CurrentUser], document_id: UUID) -> None:
        """Delete a document's analyses, its blob and the record, in that order."""
        return await self.execute(action="delete_document", user=user, document_id=document_id)

    async def _generate_upload_url_logic(self, user: Optional[CurrentUser]) -> UploadTargetResponse:
        user = self.access.require_identity(user)
        target = await self.storage_service.create_upload_target(prefix=user.id)
        LOGGER.info(
            "Upload target issued",
            extra={"user_id": user.id, "storage_ref": target["storage_ref"]}
        )
        return UploadTargetResponse(**target)

    async def _create_document_logic(
        self,
        user: Optional[CurrentUser],
        storage_ref: str,
        filename: str,
        content_type: str,
        size_bytes: int,
    ) -> Document:
        user = self.access.require_identity(user)
        membership = await self.access.resolve_membership(user.id)

        document = await self.doc_repo.create_document(
            practice_id=membership.practice_id,
            storage_ref=storage_ref.strip(),
            filename=filename.strip(),
            content_type=content_type.strip(),
            size_bytes=size_bytes,
            uploaded_by=user.id,
        )
        await self.session.commit()

        LOGGER.info(
            f"Document created: document_id={document.id}, filename={document.filename}",
            extra={"practice_id": str(membership.practice_id)}
        )
        return document

    async def _with_url(self, document: Document) -> DocumentResponse:
        response = DocumentResponse.model_validate(document)
        try:
            response.url = await self.storage_service.resolve_url(document.storage_ref)
        except StorageError as e:
            LOGGER.warning(f"Could not resolve URL for document {document.id}: {e.message}")
            response.url = None
        return response

    async def _list_documents_logic(self, user: Optional[CurrentUser]) -> List[DocumentResponse]:
        if user is None:
            return []
        membership = await self.access.find_membership(user.id)
        if membership is None:
            return []

        documents = await self.doc_repo.list_by_practice(membership.practice_id)
        return [await self._with_url(document) for document in documents]

    async def _load_accessible(self, user: CurrentUser, document_id: UUID, for_update: bool = False) -> Document:
        document = await self.doc_repo.get_by_id(document_id, for_update=for_update)
        if document is None:
            raise DocumentNotFoundError(f"Document {document_id} not found")
        await self.access.verify_access(document.practice_id, user.id)
        return document

    async def _get_document_logic(self, user: Optional[CurrentUser], document_id: UUID) -> DocumentResponse:
        user = self.access.require_identity(user)
        document = await self._load_accessible(user, document_id)
        return await self._with_url(document)

    async def _delete_document_logic(self, user: Optional[CurrentUser], document_id: UUID) -> None:
        user = self.access.require_identity(user)
        document = await self._load_accessible(user, document_id, for_update=True)

        deleted_analyses = await self.analysis_repo.delete_by_document(document.id)
        # A storage failure here rolls back the analysis delete as well.
        await self.storage_service.delete_object(document.storage_ref)
        await self.doc_repo.delete(document.id)
        await self.session.commit()

        LOGGER.info(
            f"Document deleted: document_id={document_id}",
            extra={"analyses_deleted": deleted_analyses, "user_id": user.id}
        )
