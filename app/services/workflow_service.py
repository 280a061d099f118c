"""Scheduling of background extraction jobs on Temporal."""

from datetime import timedelta
from typing import Optional
from uuid import UUID

from temporalio.client import Client as TemporalClient
from temporalio.common import WorkflowIDReusePolicy
from temporalio.exceptions import WorkflowAlreadyStartedError

from app.core.config import settings
from app.core.temporal_client import get_temporal_client
from app.temporal.core.constants import ANALYSIS_MAX_LIFETIME_SECONDS, analysis_workflow_id
from app.temporal.shared.workflows.analyze_document import AnalyzeDocumentWorkflow
from app.utils.logging import get_logger

LOGGER = get_logger(__name__)


class AnalysisScheduler:
    """Starts the extraction workflow for a queued analysis."""

    def __init__(self, client: Optional[TemporalClient] = None, task_queue: Optional[str] = None):
        self._client = client
        self.task_queue = task_queue or settings.temporal_task_queue

    async def _get_client(self) -> TemporalClient:
        if self._client is None:
            self._client = await get_temporal_client()
        return self._client

    async def schedule(self, analysis_id: UUID, document_url: str, content_type: str) -> str:
        """Start the extraction for ``analysis_id`` exactly once.

        Returns:
            The workflow ID (job handle)
        """
        workflow_id = analysis_workflow_id(analysis_id)
        client = await self._get_client()

        try:
            handle = await client.start_workflow(
                AnalyzeDocumentWorkflow.run,
                {
                    "analysis_id": str(analysis_id),
                    "document_url": document_url,
                    "content_type": content_type,
                },
                id=workflow_id,
                task_queue=self.task_queue,
                id_reuse_policy=WorkflowIDReusePolicy.REJECT_DUPLICATE,
                execution_timeout=timedelta(seconds=ANALYSIS_MAX_LIFETIME_SECONDS),
            )
        except WorkflowAlreadyStartedError:
            LOGGER.info(f"Temporal workflow {workflow_id} already started, reusing it")
            return workflow_id

        LOGGER.info(
            f"Scheduled analysis workflow: {handle.id}",
            extra={"analysis_id": str(analysis_id), "task_queue": self.task_queue}
        )
        return handle.id
