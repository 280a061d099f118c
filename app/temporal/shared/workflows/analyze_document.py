"""Workflow running the extraction step of one analysis."""

from datetime import timedelta
from typing import Dict, Optional

from temporalio import workflow
from temporalio.common import RetryPolicy
from temporalio.exceptions import ActivityError

from app.temporal.core.constants import (
    EXTRACTION_ACTIVITY_TIMEOUT_SECONDS,
    EXTRACTION_SCHEDULE_TIMEOUT_SECONDS,
    STATUS_ACTIVITY_TIMEOUT_SECONDS,
    STATUS_SCHEDULE_TIMEOUT_SECONDS,
)
from app.temporal.core.workflow_registry import WorkflowRegistry, WorkflowType


@WorkflowRegistry.register(category=WorkflowType.SHARED)
@workflow.defn
class AnalyzeDocumentWorkflow:
    """Runs the extraction activity once for a queued analysis.

    The activity records its own outcome. If it dies without doing so
    (timeout, worker crash, never picked up) the workflow fails the analysis so
    it never stays ``queued`` or ``processing`` forever.
    """

    def __init__(self):
        self._status = "queued"
        self._error: Optional[str] = None

    @workflow.query
    def get_status(self) -> dict:
        """Query handler for the job's view of the analysis."""
        return {"status": self._status, "error": self._error}

    @workflow.run
    async def run(self, payload: Dict) -> dict:
        analysis_id = payload["analysis_id"]
        self._status = "processing"

        try:
            result = await workflow.execute_activity(
                "analyze_document",
                args=[analysis_id, payload["document_url"], payload["content_type"]],
                start_to_close_timeout=timedelta(seconds=EXTRACTION_ACTIVITY_TIMEOUT_SECONDS),
                schedule_to_close_timeout=timedelta(seconds=EXTRACTION_SCHEDULE_TIMEOUT_SECONDS),
                # Retrying means a new analysis, never a silent re-run.
                retry_policy=RetryPolicy(maximum_attempts=1),
            )
        except ActivityError as e:
            cause = e.cause or e
            self._error = f"Extraction job failed: {cause}"
            workflow.logger.error(f"analyze_document failed for analysis {analysis_id}: {cause}")

            await workflow.execute_activity(
                "fail_analysis",
                args=[analysis_id, self._error],
                start_to_close_timeout=timedelta(seconds=STATUS_ACTIVITY_TIMEOUT_SECONDS),
                schedule_to_close_timeout=timedelta(seconds=STATUS_SCHEDULE_TIMEOUT_SECONDS),
                retry_policy=RetryPolicy(
                    maximum_attempts=5,
                    initial_interval=timedelta(seconds=2),
                    maximum_interval=timedelta(seconds=30),
                    backoff_coefficient=2.0,
                ),
            )
            self._status = "error"
            return {"analysis_id": analysis_id, "status": self._status, "error": self._error}

        self._status = result.get("status", "complete")
        self._error = result.get("error")
        return result
