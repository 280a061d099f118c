"""Extractor against a real SQLAlchemy session (SQLite) instead of the fakes."""

from unittest.mock import AsyncMock
from uuid import uuid4

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from app.core.database import Base
from app.database.models import Analysis, Document, Practice
from app.services.extraction.plan_report_extractor import PlanReportExtractor

URL = "https://project.supabase.co/storage/v1/object/sign/plan-documents/u/abc?token=t"


@pytest_asyncio.fixture
async def session_maker(tmp_path):
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'plans.db'}")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
    await engine.dispose()


async def seed_analysis(session_maker, **fields) -> Analysis:
    async with session_maker() as session:
        practice = Practice(id=uuid4(), name="Riverside Family Medicine", owner_id="user-1")
        document = Document(
            id=uuid4(),
            practice_id=practice.id,
            storage_ref="user-1/plan",
            filename="plan.pdf",
            content_type="application/pdf",
            size_bytes=2048,
            status=fields.get("status", "queued"),
            uploaded_by="user-1",
        )
        analysis = Analysis(id=uuid4(), document_id=document.id, practice_id=practice.id,
                            created_by="user-1", **fields)
        session.add_all([practice, document, analysis])
        await session.commit()
        return analysis


async def load(session_maker, model, id):
    async with session_maker() as session:
        return await session.get(model, id)


class TestExtractorOnDatabase:
    @pytest.mark.asyncio
    async def test_finished_analysis_is_skipped(self, session_maker):
        analysis = await seed_analysis(session_maker, status="error", error_message="unreadable scan")
        llm_client = AsyncMock()
        extractor = PlanReportExtractor(session_factory=session_maker, llm_client=llm_client)

        outcome = await extractor.analyze(analysis.id, URL, "application/pdf")

        assert outcome == {"analysis_id": str(analysis.id), "status": "skipped", "error": None}
        llm_client.generate_structured.assert_not_awaited()
        stored = await load(session_maker, Analysis, analysis.id)
        assert stored.status == "error"
        assert stored.error_message == "unreadable scan"

    @pytest.mark.asyncio
    async def test_queued_analysis_completes(self, session_maker):
        analysis = await seed_analysis(session_maker, status="queued")
        llm_client = AsyncMock()
        llm_client.generate_structured.return_value = {
            "planOverview": {"planName": "Silver HMO 2000", "carrier": "Kaiser Permanente", "planType": "HMO"},
        }
        extractor = PlanReportExtractor(session_factory=session_maker, llm_client=llm_client)

        outcome = await extractor.analyze(analysis.id, URL, "application/pdf")

        assert outcome["status"] == "complete"
        stored = await load(session_maker, Analysis, analysis.id)
        assert stored.status == "complete"
        assert stored.error_message is None
        assert stored.report["planOverview"]["carrier"] == "Kaiser Permanente"
        document = await load(session_maker, Document, analysis.document_id)
        assert document.status == "complete"
