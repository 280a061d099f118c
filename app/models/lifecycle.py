"""Status vocabulary and transition rules for documents and analyses.

An analysis moves ``queued -> processing -> complete | error``. A document has
the same states plus ``uploaded`` (no analysis has ever run) and always mirrors
the status of its newest analysis.
"""

from enum import Enum
from typing import Dict, FrozenSet


class DocumentStatus(str, Enum):
    """Document lifecycle states."""

    UPLOADED = "uploaded"
    QUEUED = "queued"
    PROCESSING = "processing"
    COMPLETE = "complete"
    ERROR = "error"


class AnalysisStatus(str, Enum):
    """Analysis lifecycle states."""

    QUEUED = "queued"
    PROCESSING = "processing"
    COMPLETE = "complete"
    ERROR = "error"


class MemberRole(str, Enum):
    """Role of a user inside a practice."""

    OWNER = "owner"
    MEMBER = "member"


TERMINAL_STATUSES: FrozenSet[AnalysisStatus] = frozenset(
    {AnalysisStatus.COMPLETE, AnalysisStatus.ERROR}
)

ACTIVE_STATUSES: FrozenSet[AnalysisStatus] = frozenset(
    {AnalysisStatus.QUEUED, AnalysisStatus.PROCESSING}
)

# Re-entering the current state is allowed so retried status updates stay idempotent.
ALLOWED_TRANSITIONS: Dict[AnalysisStatus, FrozenSet[AnalysisStatus]] = {
    AnalysisStatus.QUEUED: frozenset(
        {
            AnalysisStatus.QUEUED,
            AnalysisStatus.PROCESSING,
            AnalysisStatus.COMPLETE,
            AnalysisStatus.ERROR,
        }
    ),
    AnalysisStatus.PROCESSING: frozenset(
        {AnalysisStatus.PROCESSING, AnalysisStatus.COMPLETE, AnalysisStatus.ERROR}
    ),
    AnalysisStatus.COMPLETE: frozenset(),
    AnalysisStatus.ERROR: frozenset(),
}


def is_terminal(status: str) -> bool:
    """Return True when no transition may leave ``status``."""
    return AnalysisStatus(status) in TERMINAL_STATUSES


def can_transition(current: str, target: str) -> bool:
    """Check whether an analysis may move from ``current`` to ``target``."""
    return AnalysisStatus(target) in ALLOWED_TRANSITIONS[AnalysisStatus(current)]


def document_status_for(status: str) -> DocumentStatus:
    """Map an analysis status onto the mirrored document status."""
    return DocumentStatus(AnalysisStatus(status).value)
