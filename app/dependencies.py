"""Centralized dependency injection for FastAPI application.

This module provides factory functions for creating service instances bound
to the request's database session.
"""

from typing import Annotated

from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.database import get_async_session
from app.services.analysis_service import AnalysisService
from app.services.document_service import DocumentService
from app.services.practice_service import PracticeService
from app.services.storage_service import StorageService
from app.services.workflow_service import AnalysisScheduler


def get_storage_service() -> StorageService:
    """Get blob storage client."""
    return StorageService()


def get_analysis_scheduler() -> AnalysisScheduler:
    """Get the scheduler that starts extraction workflows."""
    return AnalysisScheduler()


async def get_practice_service(
    db_session: Annotated[AsyncSession, Depends(get_async_session)]
) -> PracticeService:
    return PracticeService(db_session)


async def get_document_service(
    db_session: Annotated[AsyncSession, Depends(get_async_session)],
    storage_service: Annotated[StorageService, Depends(get_storage_service)],
) -> DocumentService:
    return DocumentService(db_session, storage_service=storage_service)


async def get_analysis_service(
    db_session: Annotated[AsyncSession, Depends(get_async_session)],
    storage_service: Annotated[StorageService, Depends(get_storage_service)],
    scheduler: Annotated[AnalysisScheduler, Depends(get_analysis_scheduler)],
) -> AnalysisService:
    return AnalysisService(db_session, scheduler=scheduler, storage_service=storage_service)
