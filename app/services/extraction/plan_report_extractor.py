"""Extraction adapter turning a plan document into an InsurancePlanReport.

The adapter runs inside the background job. It records every outcome on the
analysis itself (``processing`` first, then ``complete`` with the report or
``error`` with a readable message) and does not raise extraction errors to its
caller.
"""

from typing import Any, Callable, Dict, Optional, Tuple
from uuid import UUID

from pydantic import ValidationError as PydanticValidationError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from app.core.database import async_session_maker
from app.core.exceptions import AppError, ExtractionFailure, UnsupportedContentTypeError
from app.core.llm_client import DocumentInput, StructuredLLMClient, create_llm_client
from app.models.lifecycle import AnalysisStatus
from app.prompts.system_prompts import (
    PLAN_REPORT_PROMPT_VERSION,
    PLAN_REPORT_SYSTEM_PROMPT,
    PLAN_REPORT_USER_PROMPT,
)
from app.schemas.report import InsurancePlanReport
from app.services.analysis_service import AnalysisService
from app.utils.logging import get_logger

LOGGER = get_logger(__name__)

SUPPORTED_MEDIA_TYPES: Dict[str, str] = {
    "image/png": "image",
    "image/jpeg": "image",
    "image/gif": "image",
    "image/webp": "image",
    "application/pdf": "pdf",
}

UNKNOWN_ERROR = "Unknown error occurred"


def normalize_content_type(content_type: Optional[str]) -> str:
    """Lowercase a MIME type and drop parameters (``; charset=...``)."""
    return (content_type or "").split(";")[0].strip().lower()


def classify_media(content_type: Optional[str]) -> Tuple[str, str]:
    """Return ``(media_type, kind)`` for a supported content type.

    Raises:
        UnsupportedContentTypeError: For anything but the supported images and PDF
    """
    media_type = normalize_content_type(content_type)
    kind = SUPPORTED_MEDIA_TYPES.get(media_type)
    if kind is None:
        raise UnsupportedContentTypeError(f"Unsupported content type: {content_type}")
    return media_type, kind


def describe_error(error: BaseException) -> str:
    """Readable failure message stored on the analysis."""
    if isinstance(error, AppError):
        return error.message or UNKNOWN_ERROR
    return str(error) or UNKNOWN_ERROR


class PlanReportExtractor:
    """Runs one extraction and records its outcome.

    Every status write uses its own session so a failed model call never
    leaves an open transaction behind.
    """

    def __init__(
        self,
        session_factory: async_sessionmaker = async_session_maker,
        llm_client: Optional[StructuredLLMClient] = None,
        service_factory: Callable[[AsyncSession], AnalysisService] = AnalysisService,
    ):
        self.session_factory = session_factory
        self.service_factory = service_factory
        self._llm_client = llm_client

    @property
    def llm_client(self) -> StructuredLLMClient:
        if self._llm_client is None:
            self._llm_client = create_llm_client()
        return self._llm_client

    async def analyze(self, analysis_id: UUID, document_url: str, content_type: str) -> Dict[str, Any]:
        """Extract a report for ``analysis_id`` from the document at ``document_url``.

        Returns:
            ``{"analysis_id", "status", "error"}`` describing what was recorded
        """
        started = await self._mark_processing(analysis_id)
        if not started:
            LOGGER.info(f"Analysis {analysis_id} is gone or already finished, skipping extraction")
            return {"analysis_id": str(analysis_id), "status": "skipped", "error": None}

        try:
            report = await self.extract(document_url, content_type)
        except Exception as e:
            message = describe_error(e)
            LOGGER.warning(
                f"Extraction failed for analysis {analysis_id}: {message}",
                extra={"content_type": content_type, "error_type": type(e).__name__}
            )
            await self._record(lambda service: service.fail_analysis(analysis_id, message))
            return {"analysis_id": str(analysis_id), "status": AnalysisStatus.ERROR.value, "error": message}

        await self._record(lambda service: service.complete_analysis(analysis_id, report))
        LOGGER.info(
            f"Extraction complete for analysis {analysis_id}",
            extra={"carrier": report.plan_overview.carrier, "prompt_version": PLAN_REPORT_PROMPT_VERSION}
        )
        return {"analysis_id": str(analysis_id), "status": AnalysisStatus.COMPLETE.value, "error": None}

    async def extract(self, document_url: str, content_type: str) -> InsurancePlanReport:
        """Call the model and validate its answer.

        Raises:
            UnsupportedContentTypeError: If the media type cannot be sent to the model
            ExtractionFailure: If the model call fails or the answer does not validate
        """
        media_type, kind = classify_media(content_type)
        document = DocumentInput(url=document_url, media_type=media_type, kind=kind)

        try:
            raw = await self.llm_client.generate_structured(
                system_prompt=PLAN_REPORT_SYSTEM_PROMPT,
                user_prompt=PLAN_REPORT_USER_PROMPT,
                document=document,
                response_schema=InsurancePlanReport.response_schema(),
                schema_name="insurance_plan_report",
            )
        except AppError as e:
            raise ExtractionFailure(f"Model call failed: {e.message}", original_error=e) from e

        try:
            return InsurancePlanReport.model_validate(raw)
        except PydanticValidationError as e:
            raise ExtractionFailure(
                f"Model response did not match the report schema: {e.error_count()} errors",
                original_error=e,
            ) from e

    async def _mark_processing(self, analysis_id: UUID) -> bool:
        async def start(service: AnalysisService) -> bool:
            analysis = await service.update_analysis_status(analysis_id, AnalysisStatus.PROCESSING.value)
            # Read while the session is still open.
            return analysis is not None and analysis.status == AnalysisStatus.PROCESSING.value

        return await self._record(start)

    async def _record(self, operation):
        async with self.session_factory() as session:
            return await operation(self.service_factory(session))
