from datetime import timedelta
from unittest.mock import AsyncMock, MagicMock
from uuid import uuid4

import pytest
from temporalio.common import WorkflowIDReusePolicy
from temporalio.exceptions import WorkflowAlreadyStartedError

from app.services.workflow_service import AnalysisScheduler
from app.temporal.core.constants import ANALYSIS_MAX_LIFETIME_SECONDS


class TestAnalysisScheduler:
    @pytest.mark.asyncio
    async def test_starts_one_workflow_per_analysis(self):
        analysis_id = uuid4()
        client = MagicMock()
        client.start_workflow = AsyncMock(return_value=MagicMock(id=f"analysis-{analysis_id}"))
        scheduler = AnalysisScheduler(client=client, task_queue="analysis-queue")

        workflow_id = await scheduler.schedule(analysis_id, "https://files.example/plan.pdf", "application/pdf")

        assert workflow_id == f"analysis-{analysis_id}"
        _, payload = client.start_workflow.await_args.args
        kwargs = client.start_workflow.await_args.kwargs
        assert payload == {
            "analysis_id": str(analysis_id),
            "document_url": "https://files.example/plan.pdf",
            "content_type": "application/pdf",
        }
        assert kwargs["id"] == f"analysis-{analysis_id}"
        assert kwargs["task_queue"] == "analysis-queue"
        assert kwargs["id_reuse_policy"] == WorkflowIDReusePolicy.REJECT_DUPLICATE
        assert kwargs["execution_timeout"] == timedelta(seconds=ANALYSIS_MAX_LIFETIME_SECONDS)

    @pytest.mark.asyncio
    async def test_already_started_is_not_an_error(self):
        analysis_id = uuid4()
        client = MagicMock()
        client.start_workflow = AsyncMock(
            side_effect=WorkflowAlreadyStartedError(f"analysis-{analysis_id}", "AnalyzeDocumentWorkflow")
        )
        scheduler = AnalysisScheduler(client=client)

        assert await scheduler.schedule(analysis_id, "https://x", "image/png") == f"analysis-{analysis_id}"
