"""Analysis orchestration: runs, status transitions and lookups.

An analysis moves ``queued -> processing -> complete | error`` and its parent
document mirrors the status of its newest analysis. Every transition patches
both rows in one transaction; transitions out of a terminal state are ignored,
and the document is only touched when the analysis is still the newest one.
"""

from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, Optional, Protocol, Union
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import (
    AnalysisInProgressError,
    AnalysisNotFoundError,
    AppError,
    DocumentNotFoundError,
    StorageError,
    UrlResolutionError,
    ValidationError,
)
from app.database.models import Analysis
from app.models.lifecycle import (
    ACTIVE_STATUSES,
    AnalysisStatus,
    can_transition,
    document_status_for,
)
from app.repositories.analysis_repository import AnalysisRepository
from app.repositories.base_repository import utcnow
from app.repositories.document_repository import DocumentRepository
from app.schemas.analysis import AnalysisResponse, RunAnalysisResponse
from app.schemas.auth import CurrentUser
from app.schemas.report import InsurancePlanReport
from app.services.access_control import AccessControlService
from app.services.base_service import BaseService
from app.services.storage_service import StorageService
from app.temporal.core.constants import ANALYSIS_MAX_LIFETIME_SECONDS, analysis_workflow_id
from app.utils.logging import get_logger

LOGGER = get_logger(__name__)

UNKNOWN_ERROR = "Unknown error occurred"
STALE_ANALYSIS_ERROR = "Analysis did not finish in time"


class Scheduler(Protocol):
    async def schedule(self, analysis_id: UUID, document_url: str, content_type: str) -> str:
        ...


def is_stale(analysis: Analysis, now: Optional[datetime] = None) -> bool:
    """True when an active analysis is older than any job that could still finish it."""
    updated_at = analysis.updated_at
    if updated_at is None:
        return False
    if updated_at.tzinfo is None:
        updated_at = updated_at.replace(tzinfo=timezone.utc)
    return (now or utcnow()) - updated_at > timedelta(seconds=ANALYSIS_MAX_LIFETIME_SECONDS)


class AnalysisService(BaseService):
    """Service driving the analysis state machine.

    Client-facing operations take the caller's identity; the internal
    transitions (``update_analysis_status``, ``complete_analysis``,
    ``fail_analysis``) are called by the extraction job and are no-ops when
    the analysis no longer exists.
    """

    def __init__(
        self,
        session: AsyncSession,
        scheduler: Optional[Scheduler] = None,
        storage_service: Optional[StorageService] = None,
    ):
        super().__init__(session)
        self.doc_repo = DocumentRepository(session)
        self.analysis_repo = AnalysisRepository(session)
        self.access = AccessControlService(session)
        self.scheduler = scheduler
        self.storage_service = storage_service or StorageService()

    async def run(self, *args, **kwargs) -> Any:
        """Route to appropriate handler based on action."""
        action = kwargs.get("action")

        if action == "run_analysis":
            return await self._run_analysis_logic(kwargs.get("user"), kwargs.get("document_id"))
        elif action == "transition":
            return await self._transition_logic(
                kwargs.get("analysis_id"),
                kwargs.get("status"),
                kwargs.get("fields"),
            )
        elif action == "list_analyses":
            return await self._list_analyses_logic(kwargs.get("user"), kwargs.get("document_id"))
        elif action == "get_analysis":
            return await self._get_analysis_logic(kwargs.get("user"), kwargs.get("analysis_id"))
        elif action == "get_latest_analysis":
            return await self._get_latest_analysis_logic(kwargs.get("user"), kwargs.get("document_id"))
        else:
            raise AppError(f"Unknown action: {action}")

    # Client-facing operations

    async def run_analysis(self, user: Optional[CurrentUser], document_id: UUID) -> RunAnalysisResponse:
        """Queue a new analysis for a document and schedule its extraction.

        Returns as soon as the job is scheduled.

        Raises:
            UnauthenticatedError: If there is no caller
            DocumentNotFoundError: If the document does not exist
            AccessDeniedError: If the caller is not in the document's practice
            AnalysisInProgressError: If an analysis is already queued or processing
            UrlResolutionError: If the document's blob cannot be resolved
        """
        return await self.execute(action="run_analysis", user=user, document_id=document_id)

    async def list_analyses(self, user: Optional[CurrentUser], document_id: UUID) -> List[AnalysisResponse]:
        """Analyses of a document, newest first. Empty for anonymous callers or missing documents."""
        return await self.execute(action="list_analyses", user=user, document_id=document_id)

    async def get_analysis(self, user: Optional[CurrentUser], analysis_id: UUID) -> AnalysisResponse:
        return await self.execute(action="get_analysis", user=user, analysis_id=analysis_id)

    async def get_latest_analysis(
        self,
        user: Optional[CurrentUser],
        document_id: UUID
    ) -> Optional[AnalysisResponse]:
        """The newest analysis of a document, which the document status mirrors."""
        return await self.execute(action="get_latest_analysis", user=user, document_id=document_id)

    # Internal transitions

    async def update_analysis_status(self, analysis_id: UUID, status: str) -> Optional[Analysis]:
        """Move an analysis (and its document) to a non-terminal status.

        Raises:
            ValidationError: For ``complete`` or ``error``, which need a report or message
        """
        try:
            target = AnalysisStatus(status)
        except ValueError:
            raise ValidationError(f"Unknown analysis status '{status}'")
        if target not in ACTIVE_STATUSES:
            raise ValidationError(
                f"Status '{status}' requires complete_analysis or fail_analysis"
            )
        return await self.execute(action="transition", analysis_id=analysis_id, status=status)

    async def complete_analysis(
        self,
        analysis_id: UUID,
        report: Union[InsurancePlanReport, Dict[str, Any]],
    ) -> Optional[Analysis]:
        """Store the report and mark the analysis and its document ``complete``."""
        if not isinstance(report, InsurancePlanReport):
            report = InsurancePlanReport.model_validate(report)
        return await self.execute(
            action="transition",
            analysis_id=analysis_id,
            status=AnalysisStatus.COMPLETE,
            fields={"report": report.to_storage(), "error_message": None},
        )

    async def fail_analysis(self, analysis_id: UUID, error_message: str) -> Optional[Analysis]:
        """Store the failure reason and mark the analysis and its document ``error``."""
        return await self.execute(
            action="transition",
            analysis_id=analysis_id,
            status=AnalysisStatus.ERROR,
            fields={"error_message": error_message or UNKNOWN_ERROR, "report": None},
        )

    # Logic

    async def _resolve_document_url(self, storage_ref: str) -> str:
        try:
            url = await self.storage_service.resolve_url(storage_ref)
        except StorageError as e:
            raise UrlResolutionError(f"Could not resolve document URL: {e.message}", original_error=e)
        if not url:
            raise UrlResolutionError("Document file is missing from storage")
        return url

    async def _run_analysis_logic(self, user: Optional[CurrentUser], document_id: UUID) -> RunAnalysisResponse:
        user = self.access.require_identity(user)

        document = await self.doc_repo.get_by_id(document_id, for_update=True)
        if document is None:
            raise DocumentNotFoundError(f"Document {document_id} not found")
        await self.access.verify_access(document.practice_id, user.id)

        active = await self.analysis_repo.get_active_for_document(document.id)
        if active is not None:
            if not is_stale(active):
                raise AnalysisInProgressError(
                    f"Analysis {active.id} is already {active.status} for this document"
                )
            # Its job has outlived the workflow timeout and will never report back.
            stale = await self.analysis_repo.get_by_id(active.id, for_update=True)
            LOGGER.warning(
                f"Failing stale analysis {stale.id} ({stale.status} since {stale.updated_at})",
                extra={"document_id": str(document.id)}
            )
            await self.analysis_repo.apply_transition(
                stale,
                AnalysisStatus.ERROR.value,
                {"error_message": STALE_ANALYSIS_ERROR, "report": None},
            )

        analysis = await self.analysis_repo.create_analysis(
            document_id=document.id,
            practice_id=document.practice_id,
            created_by=user.id,
        )
        await self.doc_repo.update_status(document.id, AnalysisStatus.QUEUED.value)

        # Raising here rolls back the analysis insert and the document update.
        document_url = await self._resolve_document_url(document.storage_ref)

        analysis.workflow_id = analysis_workflow_id(analysis.id)
        await self.session.commit()

        LOGGER.info(
            f"Analysis queued: analysis_id={analysis.id}, document_id={document.id}",
            extra={"practice_id": str(document.practice_id), "user_id": user.id}
        )

        try:
            workflow_id = await self._get_scheduler().schedule(
                analysis.id, document_url, document.content_type
            )
        except Exception as e:
            LOGGER.error(f"Failed to schedule analysis {analysis.id}: {e}", exc_info=True)
            await self._transition_logic(
                analysis.id,
                AnalysisStatus.ERROR,
                {"error_message": f"Failed to schedule analysis: {e}", "report": None},
            )
            return RunAnalysisResponse(
                analysis_id=analysis.id,
                status=AnalysisStatus.ERROR.value,
                workflow_id=None,
            )

        return RunAnalysisResponse(
            analysis_id=analysis.id,
            status=AnalysisStatus.QUEUED.value,
            workflow_id=workflow_id,
        )

    def _get_scheduler(self) -> Scheduler:
        if self.scheduler is None:
            from app.services.workflow_service import AnalysisScheduler
            self.scheduler = AnalysisScheduler()
        return self.scheduler

    async def _transition_logic(
        self,
        analysis_id: UUID,
        status: str,
        fields: Optional[Dict[str, Any]] = None,
    ) -> Optional[Analysis]:
        target = AnalysisStatus(status)

        analysis = await self.analysis_repo.get_by_id(analysis_id)
        if analysis is None:
            LOGGER.info(f"Analysis {analysis_id} no longer exists, ignoring {target.value}")
            return None

        # Lock order matches run_analysis and delete_document: document, then analysis.
        document = await self.doc_repo.get_by_id(analysis.document_id, for_update=True)
        analysis = await self.analysis_repo.get_by_id(analysis_id, for_update=True)
        if document is None or analysis is None:
            LOGGER.info(f"Document of analysis {analysis_id} was deleted, ignoring {target.value}")
            await self.session.rollback()
            return None

        if not can_transition(analysis.status, target):
            LOGGER.warning(
                f"Ignoring transition {analysis.status} -> {target.value} for analysis {analysis_id}"
            )
            # Nothing was written; commit releases the locks without expiring the instance.
            await self.session.commit()
            return analysis

        await self.analysis_repo.apply_transition(analysis, target.value, fields)

        latest = await self.analysis_repo.get_latest_for_document(document.id)
        if latest is None or latest.id == analysis.id:
            await self.doc_repo.update_status(document.id, document_status_for(target).value)
        else:
            LOGGER.info(
                f"Analysis {analysis_id} superseded by {latest.id}, document status left as {document.status}"
            )

        await self.session.commit()
        LOGGER.info(
            f"Analysis {analysis_id} -> {target.value}",
            extra={"document_id": str(document.id)}
        )
        return analysis

    async def _list_analyses_logic(self, user: Optional[CurrentUser], document_id: UUID) -> List[AnalysisResponse]:
        if user is None:
            return []
        document = await self.doc_repo.get_by_id(document_id)
        if document is None:
            return []
        await self.access.verify_access(document.practice_id, user.id)

        analyses = await self.analysis_repo.list_by_document(document.id)
        return [AnalysisResponse.model_validate(a) for a in analyses]

    async def _get_analysis_logic(self, user: Optional[CurrentUser], analysis_id: UUID) -> AnalysisResponse:
        user = self.access.require_identity(user)
        analysis = await self.analysis_repo.get_by_id(analysis_id)
        if analysis is None:
            raise AnalysisNotFoundError(f"Analysis {analysis_id} not found")
        await self.access.verify_access(analysis.practice_id, user.id)
        return AnalysisResponse.model_validate(analysis)

    async def _get_latest_analysis_logic(
        self,
        user: Optional[CurrentUser],
        document_id: UUID
    ) -> Optional[AnalysisResponse]:
        user = self.access.require_identity(user)
        document = await self.doc_repo.get_by_id(document_id)
        if document is None:
            raise DocumentNotFoundError(f"Document {document_id} not found")
        await self.access.verify_access(document.practice_id, user.id)

        latest = await self.analysis_repo.get_latest_for_document(document.id)
        return AnalysisResponse.model_validate(latest) if latest else None
