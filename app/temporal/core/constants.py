"""Shared constants for Temporal workflows."""

from uuid import UUID

from app.core.config import settings

# Task Queues
DEFAULT_TASK_QUEUE = settings.temporal_task_queue

# Timeouts
EXTRACTION_ACTIVITY_TIMEOUT_SECONDS = settings.temporal.extraction_timeout_seconds
# Queue wait plus run time; the activity is abandoned after this even if no worker ever polls.
EXTRACTION_SCHEDULE_TIMEOUT_SECONDS = EXTRACTION_ACTIVITY_TIMEOUT_SECONDS * 2
STATUS_ACTIVITY_TIMEOUT_SECONDS = 60
# Total budget for the retried fail_analysis cleanup.
STATUS_SCHEDULE_TIMEOUT_SECONDS = 300
# Workflow execution timeout. Past it no job can still report on an analysis.
ANALYSIS_MAX_LIFETIME_SECONDS = (
    EXTRACTION_SCHEDULE_TIMEOUT_SECONDS + STATUS_SCHEDULE_TIMEOUT_SECONDS + STATUS_ACTIVITY_TIMEOUT_SECONDS
)


def analysis_workflow_id(analysis_id: UUID) -> str:
    """Workflow ID for an analysis; one workflow per analysis, ever."""
    return f"analysis-{analysis_id}"
