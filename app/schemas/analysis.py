"""Response models for analysis endpoints."""

from datetime import datetime
from typing import Any, Dict, Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field


class AnalysisResponse(BaseModel):
    """One analysis attempt with its outcome."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    document_id: UUID
    practice_id: UUID
    status: str = Field(..., description="queued | processing | complete | error")
    report: Optional[Dict[str, Any]] = Field(None, description="Structured report, camelCase keys")
    error_message: Optional[str] = None
    workflow_id: Optional[str] = None
    created_by: str
    created_at: datetime
    updated_at: datetime


class RunAnalysisResponse(BaseModel):
    """Returned as soon as extraction has been scheduled."""

    analysis_id: UUID = Field(..., description="ID of the queued analysis")
    status: str = Field(..., description="Status at the time of the response")
    workflow_id: Optional[str] = Field(None, description="Background job handle")
