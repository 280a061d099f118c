"""Domain enums and lifecycle rules."""

from app.models.lifecycle import (
    AnalysisStatus,
    DocumentStatus,
    MemberRole,
    can_transition,
    document_status_for,
    is_terminal,
)

__all__ = [
    "AnalysisStatus",
    "DocumentStatus",
    "MemberRole",
    "can_transition",
    "document_status_for",
    "is_terminal",
]
