from unittest.mock import AsyncMock, MagicMock, patch
from uuid import uuid4

import pytest

from app.temporal.core.activity_registry import ActivityRegistry
from app.temporal.core.constants import DEFAULT_TASK_QUEUE
from app.temporal.core.discovery import discover_all
from app.temporal.core.workflow_registry import WorkflowRegistry
from app.temporal.shared.activities import analysis as analysis_activities
from app.temporal.shared.workflows.analyze_document import AnalyzeDocumentWorkflow


def test_discovery_registers_analysis_components():
    discover_all()

    assert AnalyzeDocumentWorkflow in WorkflowRegistry.get_by_queue(DEFAULT_TASK_QUEUE)
    activities = ActivityRegistry.get_all_activities()
    assert "shared:analyze_document" in activities
    assert "shared:fail_analysis" in activities


class TestAnalysisActivities:
    @pytest.mark.asyncio
    async def test_analyze_document_delegates_to_extractor(self):
        analysis_id = uuid4()
        extractor = MagicMock()
        extractor.analyze = AsyncMock(
            return_value={"analysis_id": str(analysis_id), "status": "complete", "error": None}
        )

        with patch.object(analysis_activities, "PlanReportExtractor", return_value=extractor), \
                patch.object(analysis_activities.activity, "logger"):
            result = await analysis_activities.analyze_document(
                str(analysis_id), "https://files.example/plan.pdf", "application/pdf"
            )

        assert result["status"] == "complete"
        extractor.analyze.assert_awaited_once_with(analysis_id, "https://files.example/plan.pdf", "application/pdf")

    @pytest.mark.asyncio
    async def test_fail_analysis_reports_missing_rows(self):
        analysis_id = uuid4()
        service = MagicMock()
        service.fail_analysis = AsyncMock(return_value=None)
        session_maker = MagicMock()
        session_maker.return_value.__aenter__ = AsyncMock(return_value=MagicMock())
        session_maker.return_value.__aexit__ = AsyncMock(return_value=False)

        with patch.object(analysis_activities, "async_session_maker", session_maker), \
                patch.object(analysis_activities, "AnalysisService", return_value=service), \
                patch.object(analysis_activities.activity, "logger"):
            recorded = await analysis_activities.fail_analysis(str(analysis_id), "worker crashed")

        assert recorded is False
        service.fail_analysis.assert_awaited_once_with(analysis_id, "worker crashed")
