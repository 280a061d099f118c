"""Repository layer modules."""

from app.repositories.analysis_repository import AnalysisRepository
from app.repositories.document_repository import DocumentRepository
from app.repositories.practice_repository import (
    PracticeMemberRepository,
    PracticeRepository,
)

__all__ = [
    "AnalysisRepository",
    "DocumentRepository",
    "PracticeMemberRepository",
    "PracticeRepository",
]
