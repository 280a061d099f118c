"""End-to-end flow over the services with an in-memory store.

Upload, analysis and deletion run through the real services; only the
repositories, storage, scheduler and model are faked.
"""

from unittest.mock import AsyncMock

import pytest

from app.services.analysis_service import AnalysisService
from app.services.document_service import DocumentService
from app.services.extraction.plan_report_extractor import PlanReportExtractor
from app.services.practice_service import PracticeService
from tests.fakes import (
    FakeSession,
    FakeSessionFactory,
    wire_analysis_service,
    wire_document_service,
    wire_practice_service,
)

PDF_SIZE = 2 * 1024 * 1024


@pytest.fixture
def llm_client() -> AsyncMock:
    client = AsyncMock()
    client.generate_structured.return_value = {
        "planOverview": {"planName": "Choice Plus 1500", "carrier": "UnitedHealthcare", "planType": "POS"},
        "importantNotes": ["Referrals required for specialists"],
    }
    return client


@pytest.fixture
def services(store, mock_storage, mock_scheduler, llm_client):
    session = FakeSession(store)
    practices = wire_practice_service(PracticeService(session), store)
    documents = wire_document_service(DocumentService(session, storage_service=mock_storage), store)
    analyses = wire_analysis_service(
        AnalysisService(session, scheduler=mock_scheduler, storage_service=mock_storage), store
    )
    extractor = PlanReportExtractor(
        session_factory=FakeSessionFactory(store),
        llm_client=llm_client,
        service_factory=lambda s: wire_analysis_service(
            AnalysisService(s, scheduler=mock_scheduler, storage_service=mock_storage), store
        ),
    )
    return practices, documents, analyses, extractor


@pytest.mark.integration
class TestPlanIntakeFlow:
    @pytest.mark.asyncio
    async def test_pdf_upload_to_complete_report(self, services, store, mock_scheduler, user):
        practices, documents, analyses, extractor = services

        await practices.get_or_create_practice(user)
        target = await documents.generate_upload_url(user)
        document = await documents.create_document(
            user,
            storage_ref=f"{user.id}/{target.storage_ref.split('/')[-1]}",
            filename="uhc-choice-plus.pdf",
            content_type="application/pdf",
            size_bytes=PDF_SIZE,
        )
        assert document.status == "uploaded"

        run = await analyses.run_analysis(user, document.id)
        assert run.status == "queued"
        assert store.documents[document.id].status == "queued"

        analysis_id, url, content_type = mock_scheduler.schedule.await_args.args
        outcome = await extractor.analyze(analysis_id, url, content_type)

        assert outcome["status"] == "complete"
        latest = await analyses.get_latest_analysis(user, document.id)
        assert latest.id == run.analysis_id
        assert latest.status == "complete"
        assert latest.report["planOverview"]["carrier"] == "UnitedHealthcare"
        assert (await documents.get_document(user, document.id)).status == "complete"

    @pytest.mark.asyncio
    async def test_text_file_ends_in_error(self, services, store, mock_scheduler, llm_client, user):
        practices, documents, analyses, extractor = services

        await practices.get_or_create_practice(user)
        document = await documents.create_document(
            user,
            storage_ref=f"{user.id}/notes",
            filename="notes.txt",
            content_type="text/plain",
            size_bytes=120,
        )
        await analyses.run_analysis(user, document.id)
        await extractor.analyze(*mock_scheduler.schedule.await_args.args)

        latest = await analyses.get_latest_analysis(user, document.id)
        assert latest.status == "error"
        assert latest.error_message == "Unsupported content type: text/plain"
        assert store.documents[document.id].status == "error"
        llm_client.generate_structured.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_deleting_mid_flight_makes_job_a_noop(self, services, store, mock_scheduler, user):
        practices, documents, analyses, extractor = services

        await practices.get_or_create_practice(user)
        document = await documents.create_document(
            user,
            storage_ref=f"{user.id}/plan",
            filename="plan.pdf",
            content_type="application/pdf",
            size_bytes=PDF_SIZE,
        )
        run = await analyses.run_analysis(user, document.id)
        await analyses.update_analysis_status(run.analysis_id, "processing")

        await documents.delete_document(user, document.id)

        assert await analyses.complete_analysis(run.analysis_id, {"planOverview": {"carrier": "Cigna"}}) is None
        assert await analyses.fail_analysis(run.analysis_id, "late failure") is None
        assert store.documents == {}
        assert store.analyses == {}
