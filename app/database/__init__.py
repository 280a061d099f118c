"""Database module for SQLAlchemy models."""

from app.database.models import (
    Analysis,
    Document,
    Practice,
    PracticeMember,
)

__all__ = [
    "Analysis",
    "Document",
    "Practice",
    "PracticeMember",
]
