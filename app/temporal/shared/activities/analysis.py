"""Temporal activities for the analysis pipeline."""

from uuid import UUID

from temporalio import activity

from app.core.database import async_session_maker
from app.services.analysis_service import AnalysisService
from app.services.extraction.plan_report_extractor import PlanReportExtractor
from app.temporal.core.activity_registry import ActivityRegistry


@ActivityRegistry.register("shared", "analyze_document")
@activity.defn
async def analyze_document(analysis_id: str, document_url: str, content_type: str) -> dict:
    """Extract the plan report for an analysis and record the outcome.

    Args:
        analysis_id: UUID of the queued analysis (as string)
        document_url: Signed download URL of the document
        content_type: MIME type of the document

    Returns:
        ``{"analysis_id", "status", "error"}`` describing what was recorded
    """
    activity.logger.info(f"Analyzing document for analysis {analysis_id} ({content_type})")
    extractor = PlanReportExtractor(session_factory=async_session_maker)
    return await extractor.analyze(UUID(analysis_id), document_url, content_type)


@ActivityRegistry.register("shared", "fail_analysis")
@activity.defn
async def fail_analysis(analysis_id: str, error_message: str) -> bool:
    """Mark an analysis and its document as ``error``."""
    activity.logger.info(f"Failing analysis {analysis_id}: {error_message}")
    async with async_session_maker() as session:
        service = AnalysisService(session)
        analysis = await service.fail_analysis(UUID(analysis_id), error_message)
        return analysis is not None
